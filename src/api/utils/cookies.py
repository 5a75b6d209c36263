from fastapi import Response

from core.config import settings

SESSION_COOKIE_PATH = "/"


def set_session_cookie(response: Response, access_token: str) -> None:
    admin = settings.admin
    response.set_cookie(
        key=admin.session_cookie_name,
        value=access_token,
        max_age=admin.session_cookie_max_age,
        httponly=True,
        secure=admin.session_cookie_secure,
        # Lax so the cookie survives the redirect back into the admin area
        samesite="lax",
        path=SESSION_COOKIE_PATH,
    )


def clear_session_cookie(response: Response) -> None:
    admin = settings.admin
    response.set_cookie(
        key=admin.session_cookie_name,
        value="",
        max_age=0,
        httponly=True,
        secure=admin.session_cookie_secure,
        samesite="lax",
        path=SESSION_COOKIE_PATH,
    )
