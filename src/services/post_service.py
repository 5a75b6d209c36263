import importlib

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import NotFoundError, ValidationError
import schemas.posts
from schemas.responses import PaginatedResponse, PaginationMeta, SuccessResponse
from services.post_utils import generate_snippet


def _summary(post, snippet_length: int) -> schemas.posts.PostSummary:
    return schemas.posts.PostSummary(
        slug=post.slug,
        title=post.title,
        published_at=post.published_at,
        snippet=generate_snippet(post.content, snippet_length),
    )


async def list_posts(
    db: AsyncSession, page: int = 1, limit: int | None = None
) -> PaginatedResponse[schemas.posts.PostSummary]:
    """Newest-first page of post summaries; snippets are rebuilt from the stored HTML on every read."""
    limit = limit or settings.blog.posts_per_page
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    page = max(1, page)

    offset = (page - 1) * limit
    repo = importlib.import_module("db.repositories.post_repository")
    total = await repo.count_posts(db)
    # Pages past the end are empty; huge offsets would overflow the driver's integer type
    posts = await repo.get_posts_paginated(db=db, offset=offset, limit=limit) if offset < total else []

    items = [_summary(p, settings.blog.snippet_length) for p in posts]
    total_pages = (total + limit - 1) // limit
    pagination = PaginationMeta(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
    return PaginatedResponse[schemas.posts.PostSummary].ok(items=items, pagination=pagination)


async def get_post(db: AsyncSession, slug: str) -> SuccessResponse[schemas.posts.PostOut]:
    repo = importlib.import_module("db.repositories.post_repository")
    post = await repo.get_post_by_slug(db, slug)
    if not post:
        raise NotFoundError("Post not found")
    return SuccessResponse[schemas.posts.PostOut].ok(schemas.posts.PostOut.model_validate(post))
