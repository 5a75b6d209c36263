import logging

from core.config import settings
from core.exceptions import AuthenticationError, AuthorizationError, ConfigurationError
from services.identity_client import SessionUser

logger = logging.getLogger(__name__)


def allowed_admin_email() -> str | None:
    admin = settings.admin
    return admin.allowed_email if admin else None


def authorize_admin(user: SessionUser | None) -> SessionUser:
    """Single-account policy: the session email must equal ADMIN_ALLOWED_EMAIL exactly."""
    if user is None:
        raise AuthenticationError("Not authenticated")

    allowed = allowed_admin_email()
    if not allowed:
        logger.error("ADMIN_ALLOWED_EMAIL environment variable is not set")
        raise ConfigurationError("Admin email not set")

    if user.email != allowed:
        logger.warning("Admin authorization failed for user %s: email does not match", user.id)
        raise AuthorizationError("Not authorized")
    return user
