from typing import AsyncIterable

from dishka import provide
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from roomshare.config import Config
from roomshare.domain.roommate.port.repository import ApplicationRepository
from roomshare.domain.shared.port.event_repository import EventRepository
from roomshare.infrastructure.persistence.database import (
    SessionSlot,
    create_db_engine,
    create_session_factory,
)
from roomshare.infrastructure.persistence.repository.application import (
    SQLAlchemyApplicationRepository,
)
from roomshare.infrastructure.persistence.repository.event import (
    SQLAlchemyEventRepository,
)
from roomshare.util.di.base import Provider
from roomshare.util.di.scope import Scope


class PersistenceProvider(Provider):
    # APP-scoped factories
    @provide(scope=Scope.APP)
    async def get_engine(self, config: Config) -> AsyncIterable[AsyncEngine]:
        engine = create_db_engine(config)
        yield engine
        await engine.dispose()

    @provide(scope=Scope.APP)
    def get_session_factory(self, engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
        return create_session_factory(engine)

    @provide(scope=Scope.UOW)
    def get_session_slot(self) -> SessionSlot:
        return SessionSlot()

    # UOW-scoped session (one per unit of work)
    @provide(scope=Scope.UOW)
    async def get_session(
        self, session_factory: async_sessionmaker[AsyncSession], slot: SessionSlot
    ) -> AsyncIterable[AsyncSession]:
        async with session_factory() as session:
            slot.session = session
            yield session
            await session.commit()

    # UOW-scoped repositories
    application_repo = provide(
        SQLAlchemyApplicationRepository, scope=Scope.UOW, provides=ApplicationRepository
    )
    event_repo = provide(SQLAlchemyEventRepository, scope=Scope.UOW, provides=EventRepository)
