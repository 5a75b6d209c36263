from datetime import datetime
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ValidationError
from db.models.post import Post, utc_now
from db.repositories.decorators import handle_db_errors

logger = logging.getLogger(__name__)

DEFAULT_MAX_LIMIT: int = 100


@handle_db_errors("post")
async def create_post(
    db: AsyncSession,
    *,
    slug: str,
    title: str,
    published_at: datetime,
    content: str,
    description: str | None = None,
    keywords: str | None = None,
) -> Post:
    new_post = Post(
        slug=slug,
        title=title,
        published_at=published_at,
        content=content,
        description=description,
        keywords=keywords,
    )
    db.add(new_post)
    await db.flush()
    await db.refresh(new_post)
    logger.info("Created new post with slug %s", new_post.slug)
    return new_post


@handle_db_errors("post")
async def count_posts(db: AsyncSession) -> int:
    stmt = select(func.count(Post.id))
    res = await db.execute(stmt)
    return int(res.scalar_one())


@handle_db_errors("post")
async def get_post_by_slug(db: AsyncSession, slug: str) -> Post | None:
    stmt = select(Post).where(Post.slug == slug)
    res = await db.execute(stmt)
    post = res.scalars().first()
    if not post:
        logger.info("Post with slug %s not found", slug)
    return post


@handle_db_errors("post")
async def get_posts_paginated(db: AsyncSession, offset: int, limit: int) -> list[Post]:
    if offset < 0:
        raise ValidationError("offset must be an integer >= 0")
    if limit <= 0 or limit > DEFAULT_MAX_LIMIT:
        raise ValidationError(f"limit must be in 1..{DEFAULT_MAX_LIMIT}")

    # slug breaks ties between equal dates so pages never overlap
    stmt = select(Post).order_by(Post.published_at.desc(), Post.slug.asc()).offset(offset).limit(limit)
    res = await db.execute(stmt)
    return list(res.scalars().all())


@handle_db_errors("post")
async def update_post_by_slug(
    db: AsyncSession,
    slug: str,
    *,
    title: str,
    published_at: datetime,
    content: str,
    description: str | None = None,
    keywords: str | None = None,
) -> Post | None:
    post = await get_post_by_slug(db, slug)
    if not post:
        logger.info("Skip update: post %s not found", slug)
        return None

    post.title = title
    post.published_at = published_at
    post.content = content
    post.description = description
    post.keywords = keywords
    post.updated_at = utc_now()

    await db.flush()
    await db.refresh(post)
    logger.info("Updated post %s", slug)
    return post


@handle_db_errors("post")
async def delete_post_by_slug(db: AsyncSession, slug: str) -> bool:
    post = await get_post_by_slug(db, slug)
    if not post:
        logger.info("Skip delete: post %s not found", slug)
        return False

    await db.delete(post)
    await db.flush()
    logger.info("Deleted post with slug %s", slug)
    return True
