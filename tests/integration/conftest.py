"""Fixtures for SQLite integration tests."""

import pytest
import pytest_asyncio
from dishka import AsyncContainer, provide
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from roomshare.application.di import create_container
from roomshare.config import Config
from roomshare.domain.roommate.port.notification import NotificationSender
from roomshare.domain.roommate.port.post_directory import PostDirectory
from roomshare.domain.roommate.port.rental_gateway import RentalGateway
from roomshare.infrastructure.persistence.tables import metadata
from roomshare.util.di.base import Provider
from roomshare.util.di.scope import Scope


def pytest_collection_modifyitems(items):
    for item in items:
        if "tests/integration" in str(item.path):
            item.add_marker(pytest.mark.integration)


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path):
    """Per-test async engine on a fresh SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'roomshare.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: AsyncEngine):
    return async_sessionmaker(sqlite_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def sqlite_session(session_factory):
    """Per-test session; tests commit explicitly when they need to."""
    async with session_factory() as session:
        yield session
        await session.rollback()


class Collaborators(Provider):
    """Swaps the HTTP collaborators for in-memory fakes."""

    def __init__(self, posts, rentals, sender) -> None:  # noqa: ANN001
        super().__init__()
        self._posts = posts
        self._rentals = rentals
        self._sender = sender

    @provide(scope=Scope.APP)
    def get_post_directory(self) -> PostDirectory:
        return self._posts

    @provide(scope=Scope.APP)
    def get_rental_gateway(self) -> RentalGateway:
        return self._rentals

    @provide(scope=Scope.APP)
    def get_notification_sender(self) -> NotificationSender:
        return self._sender


@pytest.fixture
def app_config(tmp_path) -> Config:
    """Config on a fresh SQLite file whose schema is already in place."""
    db_path = tmp_path / "app.db"
    sync_engine = create_engine(f"sqlite:///{db_path}")
    metadata.create_all(sync_engine)
    sync_engine.dispose()

    return Config(
        database={"url": f"sqlite+aiosqlite:///{db_path}", "auto_migrate": False},
        worker={"enabled": False},
    )


@pytest.fixture
def container(app_config, posts, rentals, sender) -> AsyncContainer:
    """Real application container with fake collaborators."""
    return create_container(app_config, Collaborators(posts, rentals, sender))
