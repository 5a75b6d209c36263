from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse

from db.database import check_db_connection

router = APIRouter(tags=["System"])


@router.get("/health", tags=["Health"])
async def health() -> dict[str, Any]:
    ok = await check_db_connection()
    return {
        "success": ok,
        "status": "ok" if ok else "degraded",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/", include_in_schema=False)
async def root(request: Request) -> RedirectResponse:
    # Keep indicators such as ?error=config_error for the blog index
    query = request.url.query
    return RedirectResponse(url=f"/blog?{query}" if query else "/blog")
