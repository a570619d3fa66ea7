"""Async engine and session factory."""

from dataclasses import dataclass
from pathlib import Path

from dishka import AsyncContainer
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from roomshare.config import Config


def _ensure_sqlite_parent_dir(url: str) -> None:
    if not url.startswith("sqlite"):
        return
    path = url.split("///", 1)[-1]
    if path in (":memory:", "") or "///" not in url:
        return
    Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)


def create_db_engine(config: Config) -> AsyncEngine:
    url = config.database.url
    _ensure_sqlite_parent_dir(url)
    engine = create_async_engine(url, echo=config.database.echo, pool_pre_ping=True)

    if engine.dialect.name == "sqlite":
        # FK enforcement is off by default in SQLite
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):  # noqa: ANN001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@dataclass
class SessionSlot:
    """Holds the UOW's session once something in the scope has asked for it."""

    session: AsyncSession | None = None


async def rollback_session(container: AsyncContainer) -> None:
    """Discard the UOW's pending writes; the later commit is then a no-op.

    A request that failed before touching storage never opened a session,
    and none is opened here just to be rolled back.
    """
    slot = await container.get(SessionSlot)
    if slot.session is not None:
        await slot.session.rollback()
