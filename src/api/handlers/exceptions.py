from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi.responses import JSONResponse

from core.exceptions import BlogException, ConfigurationError, map_exception_to_http
from schemas.responses import ErrorResponse

if TYPE_CHECKING:  # pragma: no cover
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)


def _error_body(message: str, error: dict[str, Any]) -> dict[str, Any]:
    return ErrorResponse(success=False, message=message, error=error).model_dump(mode="json")


def register_exception_handlers(app: FastAPI) -> None:
    """Register application-wide exception handlers."""

    @app.exception_handler(BlogException)
    async def blog_exception_handler(request: Request, exc: BlogException) -> JSONResponse:  # noqa: D401
        http_exc = map_exception_to_http(exc)
        error: dict[str, Any] = {"type": exc.__class__.__name__, "code": exc.code}
        if isinstance(exc, ConfigurationError):
            logger.error("Configuration error on %s: %s", request.url.path, exc.message)
        elif exc.details:
            error["details"] = exc.details
        return JSONResponse(
            status_code=http_exc.status_code,
            content=_error_body(http_exc.detail, error),
            headers=getattr(http_exc, "headers", None) or {},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal Server Error", {"type": "InternalError"}),
        )
