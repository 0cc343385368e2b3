import logging
import secrets
import uuid
from datetime import timedelta

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.config import TOKEN_EXPIRE_SECONDS
from database import utcnow
from models.token_model import (
    VerificationToken, PasswordResetToken, TwoFactorToken, TwoFactorConfirmation
)

logger = logging.getLogger(__name__)


class TokenService:
    """Issues and looks up the short-lived tokens mailed to users.

    Each email holds at most one token of each kind: generating a new one
    deletes whatever was there before, expired or not.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _replace(self, model, email: str, token: str):
        await self.db.execute(delete(model).where(model.email == email))
        new_token = model(
            email=email,
            token=token,
            expires=utcnow() + timedelta(seconds=TOKEN_EXPIRE_SECONDS),
        )
        self.db.add(new_token)
        await self.db.commit()
        return new_token

    async def generate_verification_token(self, email: str) -> VerificationToken:
        return await self._replace(VerificationToken, email, str(uuid.uuid4()))

    async def generate_password_reset_token(self, email: str) -> PasswordResetToken:
        return await self._replace(PasswordResetToken, email, str(uuid.uuid4()))

    async def generate_two_factor_token(self, email: str) -> TwoFactorToken:
        code = str(secrets.randbelow(900_000) + 100_000)
        return await self._replace(TwoFactorToken, email, code)

    async def _first(self, query):
        try:
            return await self.db.scalar(query)
        except SQLAlchemyError as e:
            logger.error("Token lookup failed: %s", e)
            return None

    # verification tokens are only ever handed out while still valid
    async def get_verification_token_by_token(self, token: str):
        return await self._first(
            select(VerificationToken).where(
                VerificationToken.token == token, VerificationToken.expires >= utcnow()
            )
        )

    async def get_verification_token_by_email(self, email: str):
        return await self._first(
            select(VerificationToken).where(
                VerificationToken.email == email, VerificationToken.expires >= utcnow()
            )
        )

    async def get_password_reset_token_by_token(self, token: str):
        return await self._first(select(PasswordResetToken).where(PasswordResetToken.token == token))

    async def get_two_factor_token_by_email(self, email: str):
        return await self._first(select(TwoFactorToken).where(TwoFactorToken.email == email))

    async def get_two_factor_confirmation_by_user_id(self, user_id: int):
        return await self._first(
            select(TwoFactorConfirmation).where(TwoFactorConfirmation.user_id == user_id)
        )
