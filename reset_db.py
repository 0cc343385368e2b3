# reset_db.py
import asyncio
from database import create_tables


async def reset():
    print("Resetting database...")
    await create_tables(drop_first=True)
    print("Database reset complete.")

if __name__ == "__main__":
    asyncio.run(reset())
