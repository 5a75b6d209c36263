import importlib
import logging

from core.config import settings
from core.exceptions import ProvisioningError
from schemas.admin import AdminAccess
from schemas.responses import SuccessResponse
from services.auth_utils import authorize_admin
from services.identity_client import SessionUser

logger = logging.getLogger(__name__)


async def validate_admin(user: SessionUser | None) -> SuccessResponse[AdminAccess]:
    """Authorize the admin session, then make sure the schema exists.

    Provisioning runs on every validation; each statement is idempotent.
    """
    admin = authorize_admin(user)
    logger.info("Admin session %s validated, ensuring schema", admin.id)

    provisioning = importlib.import_module("db.provisioning")
    result = await provisioning.ensure_schema(
        settings.database.url,
        admin_email=settings.admin.allowed_email,
        bucket=settings.backend.storage_bucket,
    )
    if not result.ok:
        raise ProvisioningError(result.message, details=result.details)

    return SuccessResponse[AdminAccess].ok(AdminAccess(authorized=True, message=result.message))
