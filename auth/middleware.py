from __future__ import annotations

from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse
from starlette.requests import Request

from auth.session import is_logged_in
from services.app_config import get_app_config


PUBLIC_PATH_PREFIXES = (
    "/login",
    "/grants/",   # public grant detail pages
    "/_nicegui",  # required for NiceGUI internal assets/websocket
    "/favicon",
)


def safe_next_path(value: str | None) -> str:
    """Only same-site absolute paths are followed after sign-in."""
    text = str(value or "").strip()
    if not text.startswith("/") or text.startswith("//") or text.startswith("/login"):
        return ""
    return text


def login_redirect_url(request: Request) -> str:
    params = {"reason": "auth_required"}
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    if request.method == "GET" and target != "/" and safe_next_path(target):
        params["next"] = target
    return f"/login?{urlencode(params)}"


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if not get_app_config().auth.login_required:
            return await call_next(request)

        if request.url.path.startswith(PUBLIC_PATH_PREFIXES) or is_logged_in():
            return await call_next(request)

        return RedirectResponse(login_redirect_url(request))
