import logging
from typing import Annotated

from fastapi import Depends, Request

from api.utils.request_context import get_session_token
from core.exceptions import AuthenticationError, IdentityProviderError
from services.auth_utils import authorize_admin
from services.identity_client import IdentityClient, SessionUser, get_identity_client
from services.image_store import ImageStore, get_image_store
from services.rebuild_hook import RebuildHook, get_rebuild_hook

logger = logging.getLogger(__name__)


# Resolved via dynamic module lookup at call-time so monkeypatching
# core.deps.get_identity_client also reaches the admin gate middleware.
def resolve_identity_client() -> IdentityClient:
    from core import deps as deps_module

    return deps_module.get_identity_client()


async def get_session_user(
    request: Request,
    identity: Annotated[IdentityClient, Depends(resolve_identity_client)],
) -> SessionUser | None:
    """Return the user behind the request's session token, or None without a valid session."""
    token = get_session_token(request)
    if not token:
        return None
    try:
        return await identity.get_user(token)
    except IdentityProviderError as e:
        logger.error("Could not resolve session user: %s", e.details or e.message)
        raise AuthenticationError("Not authenticated") from e


def require_admin(user: Annotated[SessionUser | None, Depends(get_session_user)]) -> SessionUser:
    """Require the single configured admin account."""
    return authorize_admin(user)


def image_store() -> ImageStore:
    return get_image_store()


def rebuild_hook() -> RebuildHook:
    return get_rebuild_hook()


__all__ = [
    "get_identity_client",
    "get_session_user",
    "image_store",
    "rebuild_hook",
    "require_admin",
    "resolve_identity_client",
]
