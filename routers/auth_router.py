from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE, ACCESS_TOKEN_EXPIRE_MINUTES
from database import get_db
from schemas.user_schema import ActionResult
from services.oauth_service import PROVIDERS
from services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Auth"])

AUTH_ERROR_MESSAGES = {
    "OAuthAccountNotLinked": "Email already in use with a different provider!",
}


def to_response(result: ActionResult) -> JSONResponse:
    status_code = 400 if result.error else 200
    return JSONResponse(status_code=status_code, content=result.model_dump(exclude_none=True))


def set_session_cookie(response: Response, token: str):
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
    )


@router.post("/register")
async def register(values: dict = Body(...), db: AsyncSession = Depends(get_db)):
    service = UserService(db)
    return to_response(await service.register(values))

@router.post("/login")
async def login(values: dict = Body(...), db: AsyncSession = Depends(get_db)):
    service = UserService(db)
    result, session_token = await service.login(values)
    response = to_response(result)
    if session_token:
        set_session_cookie(response, session_token)
    return response

@router.post("/new-verification")
async def new_verification(token: str = Query(""), db: AsyncSession = Depends(get_db)):
    service = UserService(db)
    if not token:
        return to_response(ActionResult(error="Missing token!"))
    return to_response(await service.new_verification(token))

@router.post("/reset")
async def reset(values: dict = Body(...), db: AsyncSession = Depends(get_db)):
    service = UserService(db)
    return to_response(await service.reset(values))

@router.post("/new-password")
async def new_password(values: dict = Body(...), token: str = Query(""), db: AsyncSession = Depends(get_db)):
    service = UserService(db)
    return to_response(await service.new_password(values, token))

@router.get("/error")
async def auth_error(error: str = Query("")):
    return {"error": AUTH_ERROR_MESSAGES.get(error, "Oops! Something went wrong!")}

@router.get("/login")
async def login_page():
    return {"providers": [name for name, provider in PROVIDERS.items() if provider.client_id]}
