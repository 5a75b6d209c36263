import json

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import ConflictError, InternalError, MalformedRequestError, NotFoundError, ValidationError
from db.repositories import post_repository
from services import publish_service
from services.rebuild_hook import RebuildHook, drain_pending
from tests.factories.posts import create_post, submission

HOST = "blog.example.com"


def _body(**overrides) -> bytes:
    return json.dumps(submission(**overrides)).encode()


def _hook(calls: list[httpx.Request] | None = None, status_code: int = 200) -> RebuildHook:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code)

    return RebuildHook("https://hooks.example.com/rebuild", transport=httpx.MockTransport(handler))


UNCONFIGURED = RebuildHook(None)


@pytest.mark.unit
async def test_create_post_derives_slug_and_triggers_rebuild(db_session: AsyncSession, telemetry_events):
    calls: list[httpx.Request] = []

    result = await publish_service.create_post(
        db_session, _body(title="My First Post!"), host=HOST, rebuild_hook=_hook(calls)
    )
    await drain_pending()

    assert result.data.slug == "my-first-post"
    assert result.data.operation_status == "created"
    assert result.data.rebuild_status == "triggered"
    assert len(calls) == 1 and calls[0].method == "POST"

    stored = await post_repository.get_post_by_slug(db_session, "my-first-post")
    assert stored is not None
    assert stored.keywords == "hello, first"

    [(event_type, payload)] = telemetry_events
    assert event_type == "blog_post_created"
    assert payload["domain"] == HOST
    assert payload["error"] is None
    assert payload["storeTime"] is not None
    assert payload["responseTime"] >= payload["storeTime"]


@pytest.mark.unit
async def test_create_post_uses_explicit_slug(db_session: AsyncSession, telemetry_events):
    result = await publish_service.create_post(
        db_session, _body(slug="Custom Slug"), host=HOST, rebuild_hook=UNCONFIGURED
    )

    assert result.data.slug == "custom-slug"
    assert result.data.rebuild_status == "not configured"


@pytest.mark.unit
async def test_create_post_reports_missing_fields_together(db_session: AsyncSession, telemetry_events):
    with pytest.raises(ValidationError) as exc_info:
        await publish_service.create_post(
            db_session, _body(title="", content=None), host=HOST, rebuild_hook=UNCONFIGURED
        )

    assert exc_info.value.message == "Missing required fields: title, content"
    assert await post_repository.count_posts(db_session) == 0
    [(_, payload)] = telemetry_events
    assert payload["error"] == "Missing required fields: title, content"
    assert payload["storeTime"] is None


@pytest.mark.unit
async def test_create_post_rejects_bad_date(db_session: AsyncSession, telemetry_events):
    with pytest.raises(ValidationError) as exc_info:
        await publish_service.create_post(
            db_session, _body(published_at="next tuesday"), host=HOST, rebuild_hook=UNCONFIGURED
        )

    assert exc_info.value.message == "Invalid date format provided. Expected ISO string."


@pytest.mark.unit
async def test_create_post_rejects_unsluggable_title(db_session: AsyncSession, telemetry_events):
    with pytest.raises(ValidationError) as exc_info:
        await publish_service.create_post(db_session, _body(title="!!!"), host=HOST, rebuild_hook=UNCONFIGURED)

    assert exc_info.value.message == "Could not generate a valid slug from the title"


@pytest.mark.unit
@pytest.mark.parametrize("raw", [b"{not json", b"", b"[1, 2]", b"null"])
async def test_malformed_body_is_reported(db_session: AsyncSession, telemetry_events, raw: bytes):
    with pytest.raises(MalformedRequestError) as exc_info:
        await publish_service.create_post(db_session, raw, host=HOST, rebuild_hook=UNCONFIGURED)

    assert exc_info.value.message == "Invalid request body format."
    [(event_type, payload)] = telemetry_events
    assert event_type == "blog_post_created"
    assert payload["error"] == "Invalid request body format."


@pytest.mark.unit
@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"title": 5}, "Invalid field type: title"),
        ({"published_at": 20240101}, "Invalid field type: published_at"),
        ({"title": ["a"], "keywords": {"k": 1}}, "Invalid field type: title, keywords"),
    ],
)
async def test_wrongly_typed_fields_are_named(db_session: AsyncSession, telemetry_events, overrides, message):
    with pytest.raises(ValidationError) as exc_info:
        await publish_service.create_post(db_session, _body(**overrides), host=HOST, rebuild_hook=UNCONFIGURED)

    assert not isinstance(exc_info.value, MalformedRequestError)
    assert exc_info.value.message == message
    assert await post_repository.count_posts(db_session) == 0
    [(_, payload)] = telemetry_events
    assert payload["error"] == message


@pytest.mark.unit
async def test_duplicate_slug_is_conflict_and_rebuild_not_triggered(db_session: AsyncSession, telemetry_events):
    await create_post(db_session, slug="hello-world")
    calls: list[httpx.Request] = []

    with pytest.raises(ConflictError) as exc_info:
        await publish_service.create_post(db_session, _body(), host=HOST, rebuild_hook=_hook(calls))
    await drain_pending()

    assert exc_info.value.message == "A post with this slug already exists."
    assert calls == []
    assert await post_repository.count_posts(db_session) == 1
    [(_, payload)] = telemetry_events
    assert payload["error"] == "A post with this slug already exists."
    assert payload["storeTime"] is not None


@pytest.mark.unit
async def test_unexpected_error_becomes_internal_error(db_session: AsyncSession, telemetry_events, monkeypatch):
    async def boom(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr("db.repositories.post_repository.create_post", boom)

    with pytest.raises(InternalError):
        await publish_service.create_post(db_session, _body(), host=HOST, rebuild_hook=UNCONFIGURED)

    [(_, payload)] = telemetry_events
    assert payload["error"] == "Internal Server Error processing create-post request."


@pytest.mark.unit
async def test_update_post_replaces_fields_and_skips_rebuild(db_session: AsyncSession, telemetry_events):
    await create_post(db_session, slug="hello-world")
    calls: list[httpx.Request] = []

    result = await publish_service.update_post(
        db_session,
        "hello-world",
        _body(title="Renamed", slug="ignored-slug", description=None, keywords=None),
        host=HOST,
        rebuild_hook=_hook(calls),
    )
    await drain_pending()

    assert result.data.slug == "hello-world"
    assert result.data.operation_status == "updated"
    assert result.data.rebuild_status == "skipped"
    assert calls == []

    stored = await post_repository.get_post_by_slug(db_session, "hello-world")
    assert stored.title == "Renamed"
    assert stored.description is None
    assert await post_repository.get_post_by_slug(db_session, "ignored-slug") is None

    [(event_type, payload)] = telemetry_events
    assert event_type == "blog_post_updated"
    assert payload["slug"] == "hello-world"


@pytest.mark.unit
async def test_update_post_triggers_rebuild_when_enabled(db_session: AsyncSession, telemetry_events, monkeypatch):
    monkeypatch.setattr(settings.publish, "rebuild_on_update", True)
    await create_post(db_session, slug="hello-world")
    calls: list[httpx.Request] = []

    result = await publish_service.update_post(
        db_session, "hello-world", _body(), host=HOST, rebuild_hook=_hook(calls)
    )
    await drain_pending()

    assert result.data.rebuild_status == "triggered"
    assert len(calls) == 1


@pytest.mark.unit
async def test_update_accepts_empty_content(db_session: AsyncSession, telemetry_events):
    await create_post(db_session, slug="hello-world")

    await publish_service.update_post(
        db_session, "hello-world", _body(content=""), host=HOST, rebuild_hook=UNCONFIGURED
    )

    stored = await post_repository.get_post_by_slug(db_session, "hello-world")
    assert stored.content == ""


@pytest.mark.unit
async def test_update_requires_content_key(db_session: AsyncSession, telemetry_events):
    await create_post(db_session, slug="hello-world")

    with pytest.raises(ValidationError) as exc_info:
        await publish_service.update_post(
            db_session, "hello-world", _body(content=None), host=HOST, rebuild_hook=UNCONFIGURED
        )

    assert exc_info.value.message == "Missing required fields: content"


@pytest.mark.unit
async def test_update_missing_post_is_not_found(db_session: AsyncSession, telemetry_events):
    with pytest.raises(NotFoundError) as exc_info:
        await publish_service.update_post(db_session, "ghost", _body(), host=HOST, rebuild_hook=UNCONFIGURED)

    assert exc_info.value.message == "Post not found to update"
    [(_, payload)] = telemetry_events
    assert payload["error"] == "Post not found to update"


@pytest.mark.unit
async def test_delete_then_get_is_not_found(db_session: AsyncSession, telemetry_events):
    await create_post(db_session, slug="hello-world")

    result = await publish_service.delete_post(db_session, "hello-world", host=HOST)

    assert result.data == "Post hello-world deleted."
    assert await post_repository.get_post_by_slug(db_session, "hello-world") is None
    [(event_type, payload)] = telemetry_events
    assert event_type == "blog_post_deleted"
    assert payload["error"] is None


@pytest.mark.unit
async def test_delete_missing_post_is_not_found(db_session: AsyncSession, telemetry_events):
    with pytest.raises(NotFoundError) as exc_info:
        await publish_service.delete_post(db_session, "ghost", host=HOST)

    assert exc_info.value.message == "Post not found to delete"
