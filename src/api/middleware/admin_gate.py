from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse, Response

from api.utils.request_context import get_session_token
from core.config import settings
from core.exceptions import ConfigurationError, IdentityProviderError

if TYPE_CHECKING:  # pragma: no cover
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


def is_protected_path(path: str, prefix: str) -> bool:
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


def _redirect(path: str, **params: str) -> RedirectResponse:
    url = f"{path}?{urlencode(params)}" if params else path
    return RedirectResponse(url=url)


def register_admin_gate_middleware(app: FastAPI) -> None:
    """Restrict the admin path prefix to a session of the configured admin email.

    Evaluated on every request under the prefix; nothing is cached.
    """

    @app.middleware("http")
    async def admin_gate(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:  # noqa: D401
        admin = settings.admin
        path = request.url.path
        if not is_protected_path(path, admin.path_prefix):
            return await call_next(request)

        token = get_session_token(request)
        if not token:
            logger.info("Admin gate: no session for %s, redirecting to login", path)
            return _redirect(admin.login_path, redirectedFrom=path)

        # Imported at call time so tests can swap the identity client
        from core import deps as deps_module

        try:
            user = await deps_module.get_identity_client().get_user(token)
        except (IdentityProviderError, ConfigurationError) as e:
            logger.error("Admin gate: error fetching user for %s: %s", path, e.details or e.message)
            return _redirect(admin.login_path, error="auth_error")

        if user is None:
            logger.info("Admin gate: invalid session for %s, redirecting to login", path)
            return _redirect(admin.login_path, redirectedFrom=path)

        if not admin.allowed_email:
            logger.error("Admin gate: ADMIN_ALLOWED_EMAIL environment variable not set")
            return _redirect("/", error="config_error")

        if user.email != admin.allowed_email:
            logger.warning("Admin gate: user %s is not the admin, redirecting", user.id)
            return _redirect(admin.login_path, error="unauthorized")

        logger.debug("Admin gate: user %s authorized for %s", user.id, path)
        return await call_next(request)
