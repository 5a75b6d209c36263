"""Server-rendered blog pages, login flow and the admin console shell."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.admin_gate import is_protected_path
from api.utils.cookies import clear_session_cookie, set_session_cookie
from api.utils.request_context import request_host
from core.config import settings
from core.deps import resolve_identity_client
from core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DatabaseError,
    IdentityProviderError,
    NotFoundError,
)
from db.database import get_db
from services import post_service
from services.identity_client import IdentityClient
from services.post_utils import blog_title_for_host

logger = logging.getLogger(__name__)

WEB_DIR = Path(__file__).resolve().parents[2] / "web"
templates = Jinja2Templates(directory=str(WEB_DIR / "templates"))

router = APIRouter(prefix="/blog", tags=["Pages"], include_in_schema=False)

LOGIN_ERRORS = {
    "unauthorized": "This account is not allowed to access the admin area.",
    "auth_error": "Your session could not be verified. Please sign in again.",
}
INDEX_ERRORS = {
    "config_error": "The admin area is not configured on this server.",
}


def _parse_page(raw: str | None) -> int:
    try:
        page = int(raw) if raw is not None else 1
    except ValueError:
        return 1
    return max(1, page)


def _safe_return_path(raw: str | None) -> str:
    admin_prefix = settings.admin.path_prefix
    if raw and is_protected_path(raw, admin_prefix):
        return raw
    return admin_prefix


@router.get("", response_class=HTMLResponse)
async def blog_index(request: Request, db: Annotated[AsyncSession, Depends(get_db)]) -> Response:
    page = _parse_page(request.query_params.get("page"))
    posts: list = []
    pagination = None
    load_failed = False
    try:
        result = await post_service.list_posts(db=db, page=page)
        posts, pagination = result.data, result.pagination
    except DatabaseError as e:
        logger.error("Error fetching posts for index page: %s", e.details or e.message)
        load_failed = True

    return templates.TemplateResponse(
        request,
        "blog_list.html",
        {
            "blog_title": blog_title_for_host(request_host(request)),
            "posts": posts,
            "pagination": pagination,
            "current_page": page,
            "load_failed": load_failed,
            "notice": INDEX_ERRORS.get(request.query_params.get("error", "")),
        },
    )


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request) -> Response:
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "error": LOGIN_ERRORS.get(request.query_params.get("error", "")),
            "redirected_from": request.query_params.get("redirectedFrom", ""),
        },
    )


@router.post("/login", response_class=HTMLResponse)
async def login(
    request: Request,
    identity: Annotated[IdentityClient, Depends(resolve_identity_client)],
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    redirected_from: Annotated[str, Form()] = "",
) -> Response:
    def _failed(message: str, status_code: int) -> Response:
        return templates.TemplateResponse(
            request,
            "login.html",
            {"error": message, "redirected_from": redirected_from, "email": email},
            status_code=status_code,
        )

    email = email.strip()
    if not email or not password:
        return _failed("Email and password are required.", status.HTTP_400_BAD_REQUEST)

    allowed = settings.admin.allowed_email
    if not allowed:
        logger.error("Login attempted but ADMIN_ALLOWED_EMAIL is not set")
        return _failed("Server configuration error.", status.HTTP_500_INTERNAL_SERVER_ERROR)

    if email != allowed:
        logger.warning("Login attempt by non-admin email")
        return _failed("Invalid credentials.", status.HTTP_401_UNAUTHORIZED)

    try:
        token = await identity.sign_in_with_password(email, password)
    except AuthenticationError as e:
        logger.warning("Login rejected by auth provider: %s", e.message)
        return _failed(f"Login failed: {e.message}", status.HTTP_401_UNAUTHORIZED)
    except (IdentityProviderError, ConfigurationError) as e:
        logger.error("Login failed: %s", e.details or e.message)
        return _failed("Login is temporarily unavailable.", status.HTTP_502_BAD_GATEWAY)

    response = RedirectResponse(url=_safe_return_path(redirected_from), status_code=status.HTTP_303_SEE_OTHER)
    set_session_cookie(response, token)
    logger.info("Admin login successful")
    return response


@router.post("/logout")
async def logout() -> Response:
    response = RedirectResponse(url=settings.admin.login_path, status_code=status.HTTP_303_SEE_OTHER)
    clear_session_cookie(response)
    return response


@router.get("/admin", response_class=HTMLResponse)
async def admin_console(request: Request) -> Response:
    # Access is enforced by the admin gate middleware before this runs
    return templates.TemplateResponse(
        request,
        "admin.html",
        {"bucket": settings.backend.storage_bucket},
    )


@router.get("/{slug}", response_class=HTMLResponse)
async def blog_post(slug: str, request: Request, db: Annotated[AsyncSession, Depends(get_db)]) -> Response:
    try:
        result = await post_service.get_post(db=db, slug=slug)
    except NotFoundError:
        return templates.TemplateResponse(
            request,
            "not_found.html",
            {"blog_title": blog_title_for_host(request_host(request))},
            status_code=status.HTTP_404_NOT_FOUND,
        )

    return templates.TemplateResponse(
        request,
        "blog_post.html",
        {
            "blog_title": blog_title_for_host(request_host(request)),
            "post": result.data,
        },
    )
