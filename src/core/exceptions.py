from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, status


@dataclass(eq=False)
class BlogException(Exception):
    message: str
    code: str = ""
    details: str | None = None

    def __post_init__(self) -> None:
        # Subclasses declare their code as a class attribute
        if not self.code:
            self.code = type(self).code or "error"

    def __str__(self) -> str:
        return self.message


class ValidationError(BlogException):
    code = "validation_error"


class MalformedRequestError(ValidationError):
    code = "malformed_request"


class AuthenticationError(BlogException):
    code = "authentication_error"


class AuthorizationError(BlogException):
    code = "authorization_error"


class NotFoundError(BlogException):
    code = "not_found"


class ConflictError(BlogException):
    code = "conflict"


class DatabaseError(BlogException):
    code = "database_error"


class StorageError(BlogException):
    code = "storage_error"


class PublicUrlError(StorageError):
    code = "public_url_error"


class ProvisioningError(BlogException):
    code = "provisioning_error"


class ConfigurationError(BlogException):
    code = "configuration_error"


class IdentityProviderError(BlogException):
    code = "identity_provider_error"


class InternalError(BlogException):
    code = "internal_error"


EXC_TO_STATUS: dict[type[BlogException], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    DatabaseError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ProvisioningError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    IdentityProviderError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    InternalError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Configuration problems are logged server-side only; the caller gets this.
CONFIGURATION_CLIENT_MESSAGE = "Server configuration error"


def map_exception_to_http(exc: BlogException) -> HTTPException:
    status_code = status.HTTP_400_BAD_REQUEST
    for typ, st in EXC_TO_STATUS.items():
        if isinstance(exc, typ):
            status_code = st
            break

    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}

    detail = CONFIGURATION_CLIENT_MESSAGE if isinstance(exc, ConfigurationError) else exc.message
    return HTTPException(status_code=status_code, detail=detail, headers=headers or {})
