# init_db.py
import asyncio
from database import create_tables


async def init_db():
    print("Creating database...")
    await create_tables()
    print("Database created successfully.")

if __name__ == "__main__":
    asyncio.run(init_db())
