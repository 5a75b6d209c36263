from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Request, UploadFile

from api.utils.request_context import request_host
from core.deps import image_store, require_admin
from schemas.admin import ImageUploadOut
from schemas.responses import SuccessResponse
from services import image_service
from services.identity_client import SessionUser
from services.image_store import ImageStore

router = APIRouter(prefix="/images", tags=["Images"])


@router.post(
    "",
    response_model=SuccessResponse[ImageUploadOut],
    summary="Upload image",
    description="Upload one image (multipart field `image`) and return its public URL.",
)
async def upload_image(
    request: Request,
    store: Annotated[ImageStore, Depends(image_store)],
    _admin: Annotated[SessionUser, Depends(require_admin)],
    image: Annotated[UploadFile | None, File(description="Image file")] = None,
) -> SuccessResponse[ImageUploadOut]:
    return await image_service.upload_image(store, image, host=request_host(request))
