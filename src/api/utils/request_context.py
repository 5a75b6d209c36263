from fastapi import Request

from core.config import settings


def request_host(request: Request) -> str:
    """
    Host the request was addressed to, for telemetry and page titles.
    Priority:
      1) X-Forwarded-Host (first value)
      2) Host header
      3) "unknown"
    """
    forwarded = request.headers.get("x-forwarded-host")
    if forwarded:
        parts = [p.strip() for p in forwarded.split(",") if p.strip()]
        if parts:
            return parts[0]
    return request.headers.get("host") or "unknown"


def get_session_token(request: Request) -> str | None:
    """
    Session access token from the session cookie, falling back to a Bearer
    Authorization header for API clients.
    """
    cookie_name = settings.admin.session_cookie_name
    token = request.cookies.get(cookie_name)
    if token:
        return token

    auth = request.headers.get("authorization")
    if auth:
        scheme, _, credentials = auth.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return None
