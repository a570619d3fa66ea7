"""DI provider for HTTP collaborator adapters."""

from typing import NewType

import httpx
from dishka import provide

from roomshare.config import Config
from roomshare.domain.roommate.port.notification import NotificationSender
from roomshare.domain.roommate.port.post_directory import PostDirectory
from roomshare.domain.roommate.port.rental_gateway import RentalGateway
from roomshare.infrastructure.http.notification_sender import (
    HttpNotificationSender,
    LoggingNotificationSender,
)
from roomshare.infrastructure.http.post_directory import HttpPostDirectory
from roomshare.infrastructure.http.rental_gateway import HttpRentalGateway
from roomshare.util.di.base import Provider
from roomshare.util.di.scope import Scope

# One client for all marketplace collaborators (connection pooling)
CollaboratorHttpClient = NewType("CollaboratorHttpClient", httpx.AsyncClient)


class HttpProvider(Provider):
    """DI provider for HTTP collaborator adapters."""

    @provide(scope=Scope.APP)
    def get_collaborator_http_client(self, config: Config) -> CollaboratorHttpClient:
        timeout = config.collaborators.timeout_seconds
        return CollaboratorHttpClient(
            httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=5.0))
        )

    @provide(scope=Scope.APP)
    def get_post_directory(self, client: CollaboratorHttpClient, config: Config) -> PostDirectory:
        return HttpPostDirectory(client=client, base_url=config.collaborators.listings_url)

    @provide(scope=Scope.APP)
    def get_rental_gateway(self, client: CollaboratorHttpClient, config: Config) -> RentalGateway:
        return HttpRentalGateway(client=client, base_url=config.collaborators.rentals_url)

    @provide(scope=Scope.APP)
    def get_notification_sender(
        self, client: CollaboratorHttpClient, config: Config
    ) -> NotificationSender:
        if config.collaborators.messaging_url is None:
            return LoggingNotificationSender()
        return HttpNotificationSender(client=client, base_url=config.collaborators.messaging_url)
