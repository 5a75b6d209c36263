from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.utils.request_context import request_host
from core.deps import rebuild_hook, require_admin
from db.database import get_db
from schemas.posts import PostOut, PostSubmission, PostSummary, PublishResult
from schemas.responses import PaginatedResponse, SuccessResponse
from services import post_service, publish_service
from services.identity_client import SessionUser
from services.rebuild_hook import RebuildHook

router = APIRouter(prefix="/posts", tags=["Posts"])

# The pipeline parses the body itself so malformed JSON is reported like any other failure
_SUBMISSION_BODY: dict[str, Any] = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": PostSubmission.model_json_schema()}},
    }
}


@router.get(
    "",
    response_model=PaginatedResponse[PostSummary],
    summary="List posts",
    description="Paginated post summaries, newest publication date first.",
)
async def list_posts(
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, description="Page number starting from 1; lower values are clamped"),
    limit: int | None = Query(None, ge=1, le=100, description="Page size (1..100)"),
) -> PaginatedResponse[PostSummary]:
    return await post_service.list_posts(db=db, page=page, limit=limit)


@router.get(
    "/{slug}",
    response_model=SuccessResponse[PostOut],
    summary="Get post by slug",
    description="Fetch a single post including its full HTML content.",
)
async def get_post(slug: str, db: Annotated[AsyncSession, Depends(get_db)]) -> SuccessResponse[PostOut]:
    return await post_service.get_post(db=db, slug=slug)


@router.post(
    "",
    response_model=SuccessResponse[PublishResult],
    summary="Create post",
    description="Validate, derive the slug, store the post and trigger the rebuild hook.",
    openapi_extra=_SUBMISSION_BODY,
)
async def create_post(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    hook: Annotated[RebuildHook, Depends(rebuild_hook)],
    _admin: Annotated[SessionUser, Depends(require_admin)],
) -> SuccessResponse[PublishResult]:
    return await publish_service.create_post(
        db, await request.body(), host=request_host(request), rebuild_hook=hook
    )


@router.put(
    "/{slug}",
    response_model=SuccessResponse[PublishResult],
    summary="Update post",
    description="Replace every field except the slug.",
    openapi_extra=_SUBMISSION_BODY,
)
async def update_post(
    slug: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    hook: Annotated[RebuildHook, Depends(rebuild_hook)],
    _admin: Annotated[SessionUser, Depends(require_admin)],
) -> SuccessResponse[PublishResult]:
    return await publish_service.update_post(
        db, slug, await request.body(), host=request_host(request), rebuild_hook=hook
    )


@router.delete(
    "/{slug}",
    response_model=SuccessResponse[str],
    summary="Delete post",
    description="Delete a post by slug. Returns a confirmation message.",
)
async def delete_post(
    slug: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    _admin: Annotated[SessionUser, Depends(require_admin)],
) -> SuccessResponse[str]:
    return await publish_service.delete_post(db, slug, host=request_host(request))
