import logging

from pydantic import ValidationError
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import utcnow
from models.user_model import User, Account, UserRole
from models.token_model import TwoFactorToken, TwoFactorConfirmation, VerificationToken, PasswordResetToken
from routes import DEFAULT_LOGIN_REDIRECT
from schemas.user_schema import (
    UserCreate, UserLogin, ResetPasswordRequest, NewPasswordForm, SettingsUpdate, ActionResult, SessionUser
)
from services.token_service import TokenService
from utils.auth_utils import Hasher, create_access_token
from utils.email_service import EmailService

logger = logging.getLogger(__name__)


def error(message: str) -> ActionResult:
    return ActionResult(error=message)


def success(message: str, **extra) -> ActionResult:
    return ActionResult(success=message, **extra)


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.tokens = TokenService(db)

    # lookups: a database failure is logged and reported as "not found"

    async def get_user_by_email(self, email: str):
        try:
            return await self.db.scalar(select(User).where(User.email == email))
        except SQLAlchemyError as e:
            logger.error("User lookup by email failed: %s", e)
            return None

    async def get_user_by_id(self, user_id: int):
        try:
            return await self.db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("User lookup by id failed: %s", e)
            return None

    async def get_account_by_user_id(self, user_id: int):
        try:
            return await self.db.scalar(select(Account).where(Account.user_id == user_id).limit(1))
        except SQLAlchemyError as e:
            logger.error("Account lookup failed: %s", e)
            return None

    # sessions

    async def session_user(self, user: User) -> SessionUser:
        account = await self.get_account_by_user_id(user.id)
        return SessionUser(
            id=user.id,
            name=user.name,
            email=user.email,
            image=user.image,
            role=user.role,
            is_two_factor_enabled=user.is_two_factor_enabled,
            is_oauth=account is not None,
        )

    async def create_session_token(self, user: User) -> str:
        claims = (await self.session_user(user)).model_dump(mode="json")
        claims["sub"] = str(claims.pop("id"))
        return create_access_token(claims)

    async def can_sign_in_with_credentials(self, user: User) -> bool:
        """Final gate before a credentials session is issued."""
        if not user.email_verified:
            return False
        if user.is_two_factor_enabled:
            confirmation = await self.tokens.get_two_factor_confirmation_by_user_id(user.id)
            if not confirmation:
                return False
            await self.db.delete(confirmation)
            await self.db.commit()
        return True

    # form actions

    async def register(self, values: dict) -> ActionResult:
        try:
            user_data = UserCreate.model_validate(values)
        except ValidationError:
            return error("Invalid form data!")

        existing_user = await self.get_user_by_email(user_data.email)
        if existing_user:
            return error("User already exists!")

        new_user = User(
            name=user_data.name,
            email=user_data.email,
            hashed_password=Hasher.get_password_hash(user_data.password),
        )
        self.db.add(new_user)
        await self.db.commit()

        verification_token = await self.tokens.generate_verification_token(new_user.email)
        await EmailService.send_verification_email(verification_token.email, verification_token.token)
        return success("Verification email sent!")

    async def login(self, values: dict) -> tuple[ActionResult, str | None]:
        """Returns the result and, when the user is signed in, the session token."""
        try:
            user_data = UserLogin.model_validate(values)
        except ValidationError:
            return error("Invalid email or password!"), None

        user = await self.get_user_by_email(user_data.email)
        if not user or not user.email or not user.hashed_password:
            return error("User not found!"), None

        if not Hasher.verify_password(user_data.password, user.hashed_password):
            return error("Invalid email or password!"), None

        if not user.email_verified:
            verification_token = await self.tokens.generate_verification_token(user.email)
            await EmailService.send_verification_email(verification_token.email, verification_token.token)
            return success("Verification email sent!"), None

        if user.is_two_factor_enabled:
            if not user_data.code:
                two_factor_token = await self.tokens.generate_two_factor_token(user.email)
                await EmailService.send_two_factor_token_email(two_factor_token.email, two_factor_token.token)
                return ActionResult(two_factor=True), None

            two_factor_token = await self.tokens.get_two_factor_token_by_email(user.email)
            if not two_factor_token or two_factor_token.token != user_data.code:
                return error("Invalid code!"), None
            if two_factor_token.expires < utcnow():
                return error("Code expired!"), None

            await self.db.execute(delete(TwoFactorToken).where(TwoFactorToken.id == two_factor_token.id))
            await self.db.execute(delete(TwoFactorConfirmation).where(TwoFactorConfirmation.user_id == user.id))
            self.db.add(TwoFactorConfirmation(user_id=user.id))
            await self.db.commit()

        if not await self.can_sign_in_with_credentials(user):
            return error("Something went wrong!"), None

        session_token = await self.create_session_token(user)
        return success("Login successful!", redirect=DEFAULT_LOGIN_REDIRECT), session_token

    async def new_verification(self, token: str) -> ActionResult:
        existing_token = await self.tokens.get_verification_token_by_token(token)
        if not existing_token:
            return error("The token is invalid or has expired!")

        user = await self.get_user_by_email(existing_token.email)
        if not user:
            return error("User not found!")

        user.email_verified = utcnow()
        user.email = existing_token.email
        await self.db.execute(delete(VerificationToken).where(VerificationToken.id == existing_token.id))
        await self.db.commit()
        return success("Email verified successfully!")

    async def reset(self, values: dict) -> ActionResult:
        try:
            data = ResetPasswordRequest.model_validate(values)
        except ValidationError:
            return error("Invalid form data!")

        user = await self.get_user_by_email(data.email)
        if not user:
            return error("User not found!")

        reset_token = await self.tokens.generate_password_reset_token(user.email)
        await EmailService.send_password_reset_email(reset_token.email, reset_token.token)
        return success("Reset email sent!")

    async def new_password(self, values: dict, token: str | None) -> ActionResult:
        if not token:
            return error("Missing token!")

        try:
            data = NewPasswordForm.model_validate(values)
        except ValidationError:
            return error("Invalid form data!")

        reset_token = await self.tokens.get_password_reset_token_by_token(token)
        if not reset_token:
            return error("Invalid token!")
        if reset_token.expires < utcnow():
            return error("Token expired!")

        user = await self.get_user_by_email(reset_token.email)
        if not user:
            return error("User not found!")

        user.hashed_password = Hasher.get_password_hash(data.password)
        await self.db.execute(delete(PasswordResetToken).where(PasswordResetToken.id == reset_token.id))
        await self.db.commit()
        return success("Password reset successfully!")

    async def update_settings(self, current_user: User, values: dict) -> ActionResult:
        try:
            data = SettingsUpdate.model_validate(values)
        except ValidationError as e:
            return error(e.errors()[0]["msg"].removeprefix("Value error, "))

        try:
            db_user = await self.get_user_by_id(current_user.id)
            if not db_user:
                return error("Unauthorized")

            if await self.get_account_by_user_id(db_user.id):
                # the provider owns these for OAuth users
                data.email = None
                data.password = None
                data.new_password = None
                data.is_two_factor_enabled = None

            if data.role is not None and db_user.role != UserRole.ADMIN:
                return error("Unauthorized")

            if data.email and data.email != db_user.email:
                existing_user = await self.get_user_by_email(data.email)
                if existing_user and existing_user.id != db_user.id:
                    return error("Email already in use")

                db_user.email = data.email
                db_user.email_verified = None
                await self.db.commit()

                verification_token = await self.tokens.generate_verification_token(data.email)
                await EmailService.send_verification_email(verification_token.email, verification_token.token)
                return success("Verification email sent")

            if data.password and data.new_password and db_user.hashed_password:
                if not Hasher.verify_password(data.password, db_user.hashed_password):
                    return error("Invalid password")

                db_user.hashed_password = Hasher.get_password_hash(data.new_password)
                await self.db.commit()
                return success("Password updated successfully")

            for field in ("name", "is_two_factor_enabled", "role"):
                value = getattr(data, field)
                if value is not None:
                    setattr(db_user, field, value)
            await self.db.commit()
            return success("Settings updated successfully")
        except SQLAlchemyError as e:
            logger.error("Settings update failed for user %s: %s", current_user.id, e)
            await self.db.rollback()
            return error("Internal server error")
