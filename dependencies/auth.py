from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import SESSION_COOKIE_NAME
from database import get_db
from models.user_model import User, UserRole
from utils.auth_utils import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_session_token(request: Request, bearer: str | None = Depends(oauth2_scheme)) -> str | None:
    """Session JWT from the cookie, falling back to an Authorization header."""
    return request.cookies.get(SESSION_COOKIE_NAME) or bearer


async def get_optional_user(
    token: str | None = Depends(get_session_token),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    if not token:
        return None
    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        return None
    try:
        user_id = int(payload["sub"])
    except ValueError:
        return None
    # reload so role and 2FA changes apply without a new session
    return await db.get(User, user_id)


async def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token or user")
    return user


class RoleGate:
    """Dependency that lets a request through only for one role."""

    def __init__(self, allowed_role: UserRole):
        self.allowed_role = allowed_role

    async def __call__(self, user: User = Depends(get_current_user)) -> User:
        if user.role != self.allowed_role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not authorized to access this page",
            )
        return user


require_admin = RoleGate(UserRole.ADMIN)
