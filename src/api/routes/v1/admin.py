from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from core.deps import get_session_user
from schemas.admin import AdminAccess
from schemas.responses import SuccessResponse
from services import admin_service
from services.identity_client import SessionUser

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get(
    "/validate",
    response_model=SuccessResponse[AdminAccess],
    summary="Validate admin session and provision schema",
    description=(
        "Checks that the session belongs to the configured admin account, then idempotently "
        "creates the posts table, trigger, index, policies and image bucket."
    ),
)
async def validate(
    user: Annotated[SessionUser | None, Depends(get_session_user)],
) -> SuccessResponse[AdminAccess]:
    return await admin_service.validate_admin(user)
