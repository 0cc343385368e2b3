# middleware/route_guard.py

import re

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.config import SESSION_COOKIE_NAME
from routes import (
    PUBLIC_ROUTES, AUTH_ROUTES, OPEN_AUTH_ROUTES, API_AUTH_PREFIX, DEFAULT_LOGIN_REDIRECT, LOGIN_ROUTE,
)
from utils.auth_utils import decode_access_token

# static files and the interactive API docs are never guarded
_STATIC_PATH = re.compile(r".+\.\w+$")
_UNGUARDED_PREFIXES = ("/docs", "/redoc")


def is_logged_in(request: Request) -> bool:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        authorization = request.headers.get("authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer":
            token = credentials
    return bool(token) and decode_access_token(token) is not None


def resolve_redirect(path: str, logged_in: bool) -> str | None:
    """Where the guard sends a request for `path`, or None to let it through."""
    if _STATIC_PATH.match(path) or path.startswith(_UNGUARDED_PREFIXES):
        return None
    if path.startswith(API_AUTH_PREFIX) or path in OPEN_AUTH_ROUTES:
        return None
    if path in AUTH_ROUTES:
        return DEFAULT_LOGIN_REDIRECT if logged_in else None
    if not logged_in and path not in PUBLIC_ROUTES:
        return LOGIN_ROUTE
    return None


class RouteGuardMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        target = resolve_redirect(request.url.path, is_logged_in(request))
        if target is not None:
            return RedirectResponse(url=target)
        return await call_next(request)
