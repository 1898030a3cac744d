"""Database engine, session factory and the ``get_db`` dependency.

Subscriptions live in PostgreSQL in production. A ``sqlite:///`` URL runs the
service on aiosqlite for local work; tables are then created at startup.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from billing.config import get_settings


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    if not database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo, pool_pre_ping=True)

    url = database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    path = url.split("///")[-1]
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(url, echo=echo, connect_args={"check_same_thread": False})


engine = build_engine(get_settings().database_url, echo=get_settings().debug)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; the caller commits."""
    async with async_session_factory() as session:
        yield session
