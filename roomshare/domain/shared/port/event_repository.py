"""EventRepository port - pure CRUD for event persistence."""

from typing import Protocol

from roomshare.domain.shared.event import ClaimResult, Event, EventId


class EventRepository(Protocol):
    """Repository for domain events - pure data access.

    Events are stored in an append-only log. Delivery tracking is handled
    via a separate deliveries table, one row per (event, consumer_group) pair.
    """

    async def save_with_deliveries(self, event: Event, consumer_groups: set[str]) -> None:
        """Save event to the append-only log and create delivery rows.

        If ``consumer_groups`` is empty the event is saved audit-only.
        """
        ...

    async def get(self, event_id: EventId) -> Event | None:
        """Get an event by ID."""
        ...

    async def list_events(
        self,
        limit: int = 50,
        event_types: list[str] | None = None,
        newest_first: bool = False,
    ) -> list[Event]:
        """List events, optionally filtered by type names."""
        ...

    async def claim_delivery(
        self,
        consumer_group: str,
        event_types: list[str],
        limit: int = 1,
    ) -> ClaimResult:
        """Claim pending deliveries for a consumer group (FOR UPDATE SKIP LOCKED)."""
        ...

    async def mark_delivery_status(
        self,
        delivery_id: str,
        status: str,
        error: str | None = None,
    ) -> None:
        """Update a delivery's status (delivered, failed, skipped)."""
        ...

    async def reset_stale_deliveries(self, timeout_seconds: float) -> int:
        """Reset claimed deliveries older than ``timeout_seconds`` back to pending."""
        ...

    async def mark_failed_with_retry(
        self,
        delivery_id: str,
        error: str,
        max_retries: int,
    ) -> None:
        """Increment retry_count and reset to pending, or mark failed when exhausted."""
        ...
