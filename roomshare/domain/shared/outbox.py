"""Outbox - domain service for reliable event delivery."""

from roomshare.domain.shared.event import ClaimResult, Event
from roomshare.domain.shared.model.subscription_registry import SubscriptionRegistry
from roomshare.domain.shared.port.event_repository import EventRepository
from roomshare.domain.shared.service import Service


class Outbox(Service):
    """Domain service for reliable event delivery via the transactional outbox pattern.

    Events are appended in the same unit of work as the state change that
    produced them, so a rolled-back transition never notifies anyone. On
    append(), the SubscriptionRegistry is consulted for consumer groups
    subscribed to the event type and one delivery row is created per group.
    Audit-only events (no subscribers) are saved to the log without deliveries.
    """

    _repo: EventRepository
    _registry: SubscriptionRegistry

    async def append(self, event: Event) -> None:
        """Add an event to the outbox for delivery."""
        event_type_name = type(event).__name__
        consumer_groups = self._registry.get(event_type_name, set())
        await self._repo.save_with_deliveries(event, consumer_groups=consumer_groups)

    async def claim(
        self,
        event_types: list[type[Event]],
        limit: int,
        consumer_group: str,
    ) -> ClaimResult:
        """Claim pending deliveries for a specific consumer group."""
        event_type_names = [et.__name__ for et in event_types]
        return await self._repo.claim_delivery(
            consumer_group=consumer_group,
            event_types=event_type_names,
            limit=limit,
        )

    async def mark_delivered(self, delivery_id: str) -> None:
        """Mark a delivery as successfully delivered."""
        await self._repo.mark_delivery_status(delivery_id, status="delivered")

    async def mark_failed_with_retry(
        self,
        delivery_id: str,
        error: str,
        max_retries: int,
    ) -> None:
        """Mark a delivery as failed, resetting it to pending while retries remain."""
        await self._repo.mark_failed_with_retry(delivery_id, error=error, max_retries=max_retries)

    async def reset_stale_claims(self, timeout_seconds: float) -> int:
        """Reset deliveries that have been claimed for too long (crashed workers)."""
        return await self._repo.reset_stale_deliveries(timeout_seconds)
