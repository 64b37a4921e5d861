from __future__ import annotations
from pathlib import Path
from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from .config import Settings

class Base(DeclarativeBase):
    pass

def sqlite_path(database_url: str | URL) -> Path | None:
    """Database file of a sqlite URL; None for other backends and :memory:."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return None
    return Path(url.database)

def make_engine(settings: Settings) -> AsyncEngine:
    path = sqlite_path(settings.database_url)
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(settings.database_url, echo=False, future=True)

def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def ensure_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        if sqlite_path(engine.url) is not None:
            await conn.execute(text("PRAGMA journal_mode=WAL;"))
            await conn.execute(text("PRAGMA synchronous=NORMAL;"))
        await conn.run_sync(Base.metadata.create_all)
        if engine.dialect.name != "sqlite":
            return
        # attempts tables created before corrections were stored lack these columns
        result = await conn.execute(text("PRAGMA table_info(attempts);"))
        columns = {row[1] for row in result.fetchall()}
        if "summary_json" not in columns:
            await conn.execute(text("ALTER TABLE attempts ADD COLUMN summary_json TEXT;"))
        if "revision" not in columns:
            await conn.execute(text("ALTER TABLE attempts ADD COLUMN revision INTEGER DEFAULT 0;"))
