"""Dependency injection provider for event system."""

import logging
from typing import Any, NewType

from dishka import AsyncContainer, provide

from roomshare.config import Config
from roomshare.domain.roommate.handler import (
    NotifyPartiesOfApproval,
    NotifyPartiesOfConfirmation,
    NotifyPartiesOfExpiry,
    NotifyPartiesOfRejection,
    NotifyTenantOfApplication,
    NotifyTenantOfCancellation,
)
from roomshare.domain.roommate.schedule.expiry_reaper import ExpiryReaper
from roomshare.domain.shared.event import EventHandler
from roomshare.domain.shared.model.subscription_registry import SubscriptionRegistry
from roomshare.domain.shared.outbox import Outbox
from roomshare.domain.shared.port.event_repository import EventRepository
from roomshare.infrastructure.event.worker import ScheduleConfig, ScheduleConfigs, WorkerPool
from roomshare.util.di.base import Provider
from roomshare.util.di.scope import Scope

logger = logging.getLogger(__name__)

EXPIRY_REAPER_SCHEDULE_ID = "expiry-reaper"

# Type alias for handler list
HandlerTypes = NewType("HandlerTypes", list[type[EventHandler[Any]]])

# All event handlers for WorkerPool registration
HANDLERS: HandlerTypes = HandlerTypes(
    [
        NotifyTenantOfApplication,
        NotifyPartiesOfApproval,
        NotifyPartiesOfRejection,
        NotifyPartiesOfConfirmation,
        NotifyTenantOfCancellation,
        NotifyPartiesOfExpiry,
    ]
)


def build_subscription_registry(handlers: HandlerTypes) -> SubscriptionRegistry:
    """Build a SubscriptionRegistry from the HANDLERS list.

    Maps each handler's __event_type__.__name__ → handler.__name__.
    """
    registry: dict[str, set[str]] = {}
    for handler in handlers:
        event_type_name = handler.__event_type__.__name__
        if event_type_name not in registry:
            registry[event_type_name] = set()
        registry[event_type_name].add(handler.__name__)
    return SubscriptionRegistry(registry)


def build_schedules(config: Config) -> ScheduleConfigs:
    return ScheduleConfigs(
        [
            ScheduleConfig(
                schedule_type=ExpiryReaper,
                cron=config.workflow.reaper_cron,
                id=EXPIRY_REAPER_SCHEDULE_ID,
                params={"batch_size": config.workflow.reaper_batch_size},
            )
        ]
    )


class EventProvider(Provider):
    """Provides event system components.

    Handlers, Schedules, and Outbox are UOW-scoped (fresh per unit of work).
    WorkerPool and SubscriptionRegistry are APP-scoped singletons.
    """

    # UOW-scoped Outbox (wraps EventRepository + SubscriptionRegistry)
    @provide(scope=Scope.UOW)
    def get_outbox(self, repo: EventRepository, registry: SubscriptionRegistry) -> Outbox:
        return Outbox(repo, registry)

    # UOW-scoped providers for handlers
    for _handler_type in HANDLERS:
        locals()[_handler_type.__name__] = provide(_handler_type, scope=Scope.UOW)

    expiry_reaper = provide(ExpiryReaper, scope=Scope.UOW)

    @provide(scope=Scope.APP)
    def get_handler_types(self) -> HandlerTypes:
        """Return the handler types for WorkerPool registration."""
        return HANDLERS

    @provide(scope=Scope.APP)
    def get_subscription_registry(self, handler_types: HandlerTypes) -> SubscriptionRegistry:
        """Build subscription registry from handler list at startup."""
        registry = build_subscription_registry(handler_types)
        logger.info(
            f"Built subscription registry: {len(registry)} event types, "
            f"{sum(len(v) for v in registry.values())} consumer groups"
        )
        return registry

    @provide(scope=Scope.APP)
    def get_worker_pool(
        self,
        container: AsyncContainer,
        handler_types: HandlerTypes,
        config: Config,
    ) -> WorkerPool:
        """WorkerPool with pull-based event handlers and the expiry reaper."""
        pool = WorkerPool(
            container=container,
            stale_claim_interval=config.worker.stale_claim_interval,
            schedules=build_schedules(config),
            poll_interval=config.worker.poll_interval,
        )

        for handler_type in handler_types:
            pool.register(handler_type)

        logger.info(f"WorkerPool created with {len(pool.workers)} workers")
        return pool
