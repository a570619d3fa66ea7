"""UOW scopes: one session per scope, rolled back on failure."""

import pytest
import pytest_asyncio

from roomshare.domain.auth.model.identity import Identity, System
from roomshare.domain.roommate.port.repository import ApplicationRepository
from roomshare.infrastructure.persistence.database import SessionSlot, rollback_session
from roomshare.util.di.scope import Scope


@pytest_asyncio.fixture
async def app(container):
    yield container
    await container.close()


def uow(container):  # noqa: ANN001
    return container(scope=Scope.UOW, context={Identity: System()})


@pytest.mark.asyncio
class TestRollbackSession:
    async def test_scope_without_storage_opens_no_session(self, app):
        async with uow(app) as scope:
            await rollback_session(scope)

            slot = await scope.get(SessionSlot)
            assert slot.session is None

    async def test_discards_pending_writes(self, app, make_application):
        application = make_application()

        async with uow(app) as scope:
            repo = await scope.get(ApplicationRepository)
            await repo.add(application)
            await rollback_session(scope)

        async with uow(app) as scope:
            repo = await scope.get(ApplicationRepository)
            assert await repo.get(application.id) is None

    async def test_clean_scope_commits(self, app, make_application):
        application = make_application()

        async with uow(app) as scope:
            repo = await scope.get(ApplicationRepository)
            await repo.add(application)

        async with uow(app) as scope:
            repo = await scope.get(ApplicationRepository)
            assert (await repo.get(application.id)).id == application.id
