# create_admin.py
import asyncio

from sqlalchemy.future import select

from core.config import ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_NAME
from database import AsyncSessionLocal, create_tables, utcnow
from models.user_model import User, UserRole
from utils.auth_utils import Hasher


async def create_admin(email: str, password: str, name: str) -> User:
    """Create a verified admin, or promote and re-password an existing user."""
    async with AsyncSessionLocal() as session:
        user = await session.scalar(select(User).where(User.email == email))
        if user is None:
            user = User(email=email, name=name)
            session.add(user)
        user.hashed_password = Hasher.get_password_hash(password)
        user.role = UserRole.ADMIN
        user.email_verified = user.email_verified or utcnow()
        await session.commit()
        return user


async def main():
    if len(ADMIN_PASSWORD) < 8:
        raise SystemExit("ADMIN_PASSWORD must be set and at least 8 characters long")
    await create_tables()
    user = await create_admin(ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_NAME)
    print(f"Admin ready: {user.email} (id={user.id})")

if __name__ == "__main__":
    asyncio.run(main())
