"""
Database engine and session management for the Tip Settlement service.

Uses SQLAlchemy async engine (aiosqlite in development, asyncpg in
production) for non-blocking DB operations inside FastAPI. Tables are
auto-created on server startup via init_db().
"""
import logging

from sqlalchemy import text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


# ── Engine ──────────────────────────────────────────────────────────

# Convert sqlite:///... → sqlite+aiosqlite:///... and postgresql://... →
# postgresql+asyncpg://... for the async drivers
_raw_url = settings.database_url
if _raw_url.startswith("sqlite:///"):
    _async_url = _raw_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
elif _raw_url.startswith("postgresql://"):
    _async_url = _raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
else:
    _async_url = _raw_url

engine = create_async_engine(
    _async_url,
    echo=False,
    future=True,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# ── Helpers ─────────────────────────────────────────────────────────

async def init_db() -> None:
    """Create all tables. Called once on server startup."""
    # Import models so Base.metadata knows about them
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created (or already exist)")


async def ping(db: AsyncSession) -> None:
    """Round-trip a trivial query; raises if the database is unreachable."""
    await db.execute(text("SELECT 1"))


def insert_for(db: AsyncSession, model):
    """
    Dialect-specific INSERT for ``model`` supporting ON CONFLICT DO NOTHING.

    SQLite and Postgres share the on_conflict_do_nothing() API but live in
    different dialect modules.
    """
    if db.bind.dialect.name == "postgresql":
        return pg_insert(model)
    return sqlite_insert(model)


async def get_db() -> AsyncSession:
    """FastAPI dependency: yields an async session."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()
