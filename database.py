from datetime import datetime, timezone

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from core.config import DATABASE_URL, SQL_ECHO

_MEMORY_URLS = ("sqlite+aiosqlite://", "sqlite+aiosqlite:///:memory:")

engine_options = {"echo": SQL_ECHO}
if DATABASE_URL in _MEMORY_URLS:
    # one shared connection, otherwise every session sees an empty database
    engine_options["poolclass"] = StaticPool

engine = create_async_engine(DATABASE_URL, **engine_options)

if DATABASE_URL.startswith("sqlite"):
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        # sqlite ignores ON DELETE clauses unless this is set per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)
Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


def load_models():
    # every table has to be registered on Base.metadata before create_all
    from models import user_model, token_model, category_model, catalog_model  # noqa: F401
    return Base.metadata


async def create_tables(drop_first: bool = False):
    metadata = load_models()
    async with engine.begin() as conn:
        if drop_first:
            await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
