import logging
import secrets

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import OAUTH_STATE_COOKIE_NAME, SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE
from database import get_db
from dependencies.auth import get_optional_user
from routers.auth_router import set_session_cookie
from routes import API_AUTH_PREFIX, DEFAULT_LOGIN_REDIRECT
from services.oauth_service import OAuthService, OAuthError, get_provider, authorization_url
from services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_AUTH_PREFIX, tags=["Auth"])


def error_redirect(code: str) -> RedirectResponse:
    return RedirectResponse(url=f"/auth/error?error={code}", status_code=302)


@router.get("/signin/{provider}")
async def oauth_signin(provider: str):
    try:
        oauth_provider = get_provider(provider)
    except OAuthError as e:
        logger.warning("OAuth sign-in rejected: %s", e)
        return error_redirect(e.code)

    state = secrets.token_urlsafe(32)
    response = RedirectResponse(url=authorization_url(oauth_provider, state), status_code=302)
    response.set_cookie(
        key=OAUTH_STATE_COOKIE_NAME,
        value=state,
        max_age=600,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    return response

@router.get("/callback/{provider}")
async def oauth_callback(
    provider: str,
    request: Request,
    code: str = Query(""),
    state: str = Query(""),
    db: AsyncSession = Depends(get_db),
):
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE_NAME)
    if not code or not state or not expected_state or not secrets.compare_digest(state, expected_state):
        return error_redirect("OAuthCallbackError")

    service = OAuthService(db)
    try:
        oauth_provider = get_provider(provider)
        profile = await service.fetch_profile(oauth_provider, code)
        user = await service.sign_in(profile)
    except OAuthError as e:
        return error_redirect(e.code)

    session_token = await UserService(db).create_session_token(user)
    response = RedirectResponse(url=DEFAULT_LOGIN_REDIRECT, status_code=302)
    set_session_cookie(response, session_token)
    response.delete_cookie(OAUTH_STATE_COOKIE_NAME)
    return response

@router.get("/session")
async def get_session(user=Depends(get_optional_user), db: AsyncSession = Depends(get_db)):
    if user is None:
        return {"user": None}
    return {"user": await UserService(db).session_user(user)}

@router.post("/signout")
async def signout():
    response = JSONResponse(content={"success": "Signed out"})
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response
