"""Tests for database URL handling and engine construction."""

from sqlalchemy import text

from billing.config import normalize_database_url
from billing.db.session import build_engine


def test_postgres_urls_use_asyncpg():
    assert normalize_database_url("postgres://u:p@db/x") == "postgresql+asyncpg://u:p@db/x"
    assert normalize_database_url("postgresql://u:p@db/x") == "postgresql+asyncpg://u:p@db/x"
    assert normalize_database_url("sqlite:///./billing.db") == "sqlite:///./billing.db"


def test_postgres_engine_uses_asyncpg():
    engine = build_engine("postgresql+asyncpg://u:p@db/x")
    assert engine.dialect.driver == "asyncpg"


async def test_sqlite_engine_creates_its_directory(tmp_path):
    db_file = tmp_path / "data" / "billing.db"
    engine = build_engine(f"sqlite:///{db_file}")
    assert engine.dialect.driver == "aiosqlite"
    assert db_file.parent.is_dir()

    async with engine.connect() as conn:
        assert (await conn.execute(text("select 1"))).scalar() == 1
    await engine.dispose()
