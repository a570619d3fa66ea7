from dishka import AsyncContainer, Provider, from_context, make_async_container

from roomshare.config import Config
from roomshare.domain.auth.util.di.provider import AuthProvider
from roomshare.domain.roommate.util.di.provider import RoommateProvider
from roomshare.infrastructure.event.di import EventProvider
from roomshare.infrastructure.http.di import HttpProvider
from roomshare.infrastructure.persistence.di import PersistenceProvider
from roomshare.util.di.base import Provider as RoomshareProvider
from roomshare.util.di.scope import Scope


class ConfigProvider(RoomshareProvider):
    config = from_context(provides=Config, scope=Scope.APP)


def create_container(config: Config | None = None, *overrides: Provider) -> AsyncContainer:
    """Build the application container.

    Providers in ``overrides`` are registered last and replace earlier
    bindings for the same type (tests swap collaborators this way).
    """
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()  # type: ignore[call-arg]

    return make_async_container(
        ConfigProvider(),
        PersistenceProvider(),
        HttpProvider(),
        EventProvider(),
        RoommateProvider(),
        AuthProvider(),
        *overrides,
        context={Config: config},
        scopes=Scope,  # type: ignore[arg-type]  # Custom scope class
    )
