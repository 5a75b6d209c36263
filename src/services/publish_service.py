"""Create/update/delete pipeline for posts.

Each operation runs validate, derive-slug, write and notify steps inside a
try block whose ``finally`` always reports a telemetry event carrying the
error message (or None) and the time spent in the store.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
import importlib
import logging
import time

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import (
    BlogException,
    ConflictError,
    DatabaseError,
    InternalError,
    MalformedRequestError,
    NotFoundError,
    ValidationError,
)
from schemas.posts import PostSubmission, PublishResult
from schemas.responses import SuccessResponse
from services import telemetry
from services.post_utils import parse_published_at, slugify
from services.rebuild_hook import RebuildHook, RebuildStatus

logger = logging.getLogger(__name__)


class StoreTimer:
    """Accumulates wall-clock milliseconds spent in store calls, failed ones included."""

    def __init__(self) -> None:
        self.elapsed_ms: float | None = None

    @contextmanager
    def measure(self) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.elapsed_ms = (self.elapsed_ms or 0.0) + (time.perf_counter() - start) * 1000


def parse_submission(body: bytes) -> PostSubmission:
    try:
        return PostSubmission.model_validate_json(body or b"")
    except PydanticValidationError as e:
        errors = e.errors()
        # Root-level errors mean the body is not a JSON object at all
        fields = [str(err["loc"][0]) for err in errors if err["loc"]]
        if len(fields) < len(errors):
            raise MalformedRequestError("Invalid request body format.", details=str(e)) from e
        raise ValidationError(f"Invalid field type: {', '.join(dict.fromkeys(fields))}") from e


def _require(submission: PostSubmission, non_empty: tuple[str, ...], present: tuple[str, ...] = ()) -> None:
    missing = [name for name in non_empty if not getattr(submission, name)]
    missing += [name for name in present if getattr(submission, name) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def _published_at(submission: PostSubmission) -> datetime:
    parsed = parse_published_at(submission.published_at or "")
    if parsed is None:
        raise ValidationError("Invalid date format provided. Expected ISO string.")
    return parsed


def _rebuild_status(hook: RebuildHook, *, on_update: bool) -> RebuildStatus:
    if not hook.configured:
        return "not configured"
    if on_update and not settings.publish.rebuild_on_update:
        return "skipped"
    return hook.trigger()


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError:
        raise
    except SQLAlchemyError as e:
        logger.error("Commit failed: %s", e)
        raise DatabaseError("Database failure", details=str(e)) from e


async def _report(event_type: str, *, started: float, timer: StoreTimer, error: str | None, **extra) -> None:
    await telemetry.send_telemetry_event(
        event_type,
        {
            **extra,
            "responseTime": (time.perf_counter() - started) * 1000,
            "storeTime": timer.elapsed_ms,
            "error": error,
        },
    )


async def create_post(
    db: AsyncSession, body: bytes, *, host: str, rebuild_hook: RebuildHook
) -> SuccessResponse[PublishResult]:
    started = time.perf_counter()
    timer = StoreTimer()
    error: str | None = None
    try:
        submission = parse_submission(body)
        _require(submission, ("title", "content", "published_at"))
        published_at = _published_at(submission)

        slug = slugify(submission.slug or submission.title)
        if not slug:
            raise ValidationError("Could not generate a valid slug from the title")

        repo = importlib.import_module("db.repositories.post_repository")
        try:
            with timer.measure():
                post = await repo.create_post(
                    db,
                    slug=slug,
                    title=submission.title,
                    published_at=published_at,
                    content=submission.content,
                    description=submission.description or None,
                    keywords=submission.keywords or None,
                )
                await _commit(db)
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError("A post with this slug already exists.", details=str(e.orig)) from e

        logger.info("Blog post created: %s", post.slug)
        result = PublishResult(
            slug=post.slug,
            operation_status="created",
            rebuild_status=_rebuild_status(rebuild_hook, on_update=False),
        )
        return SuccessResponse[PublishResult].ok(result)
    except BlogException as e:
        error = e.message
        raise
    except Exception as e:
        logger.exception("Error in create-post handler")
        error = "Internal Server Error processing create-post request."
        raise InternalError("Internal Server Error") from e
    finally:
        await _report("blog_post_created", started=started, timer=timer, error=error, domain=host)


async def update_post(
    db: AsyncSession, slug: str, body: bytes, *, host: str, rebuild_hook: RebuildHook
) -> SuccessResponse[PublishResult]:
    started = time.perf_counter()
    timer = StoreTimer()
    error: str | None = None
    try:
        submission = parse_submission(body)
        _require(submission, ("title", "published_at"), present=("content",))
        published_at = _published_at(submission)

        repo = importlib.import_module("db.repositories.post_repository")
        with timer.measure():
            post = await repo.update_post_by_slug(
                db,
                slug,
                title=submission.title,
                published_at=published_at,
                content=submission.content,
                description=submission.description or None,
                keywords=submission.keywords or None,
            )
            if post is not None:
                await _commit(db)
        if post is None:
            raise NotFoundError("Post not found to update")

        logger.info("Blog post updated: %s", slug)
        result = PublishResult(
            slug=slug,
            operation_status="updated",
            rebuild_status=_rebuild_status(rebuild_hook, on_update=True),
        )
        return SuccessResponse[PublishResult].ok(result)
    except BlogException as e:
        error = e.message
        raise
    except Exception as e:
        logger.exception("Error in update-post handler for %s", slug)
        error = "Internal Server Error processing update-post request."
        raise InternalError("Internal Server Error") from e
    finally:
        await _report("blog_post_updated", started=started, timer=timer, error=error, slug=slug, domain=host)


async def delete_post(db: AsyncSession, slug: str, *, host: str) -> SuccessResponse[str]:
    started = time.perf_counter()
    timer = StoreTimer()
    error: str | None = None
    try:
        repo = importlib.import_module("db.repositories.post_repository")
        with timer.measure():
            deleted = await repo.delete_post_by_slug(db, slug)
            if deleted:
                await _commit(db)
        if not deleted:
            raise NotFoundError("Post not found to delete")

        logger.info("Blog post deleted: %s", slug)
        return SuccessResponse[str].ok(f"Post {slug} deleted.")
    except BlogException as e:
        error = e.message
        raise
    except Exception as e:
        logger.exception("Error in delete-post handler for %s", slug)
        error = "Internal Server Error processing delete-post request."
        raise InternalError("Internal Server Error") from e
    finally:
        await _report("blog_post_deleted", started=started, timer=timer, error=error, slug=slug, domain=host)
