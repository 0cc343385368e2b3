from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from dependencies.auth import get_current_user
from models.user_model import User
from routers.auth_router import to_response
from schemas.user_schema import UserOut
from services.user_service import UserService

router = APIRouter(tags=["Account"])


def user_out(user: User) -> UserOut:
    out = UserOut.model_validate(user)
    out.is_verified = user.email_verified is not None
    return out


@router.get("/dashboard")
async def dashboard(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return {"user": await UserService(db).session_user(user)}

@router.get("/settings", response_model=UserOut)
async def get_settings(user: User = Depends(get_current_user)):
    return user_out(user)

@router.post("/settings")
async def update_settings(
    values: dict = Body(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = UserService(db)
    return to_response(await service.update_settings(user, values))
