"""SQLAlchemy adapter implementing EventRepository."""

import logging
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from roomshare.domain.shared.event import ClaimedDelivery, ClaimResult, Event, EventId
from roomshare.domain.shared.port.event_repository import EventRepository
from roomshare.infrastructure.persistence.tables import deliveries_table, events_table

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 30


def retry_backoff(retry_count: int) -> timedelta:
    """min(30, 5^retry_count) seconds."""
    return timedelta(seconds=min(MAX_BACKOFF_SECONDS, 5**retry_count))


class SQLAlchemyEventRepository(EventRepository):
    """SQLAlchemy-backed event repository.

    Events are stored in an append-only log. Delivery tracking uses a
    separate deliveries table with one row per (event, consumer_group) pair.
    Retry backoff is stored as ``next_attempt_at`` so the claim query stays
    portable between SQLite and PostgreSQL.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save_with_deliveries(self, event: Event, consumer_groups: set[str]) -> None:
        """Save event to append-only log and create delivery rows."""
        now = datetime.now(UTC)

        await self._session.execute(
            insert(events_table).values(
                id=str(event.id),
                event_type=type(event).__name__,
                payload=event.model_dump(mode="json"),
                created_at=now,
            )
        )

        for group in sorted(consumer_groups):
            await self._session.execute(
                insert(deliveries_table).values(
                    id=str(uuid4()),
                    event_id=str(event.id),
                    consumer_group=group,
                    status="pending",
                    retry_count=0,
                    updated_at=now,
                )
            )

    async def get(self, event_id: EventId) -> Event | None:
        stmt = select(
            events_table.c.event_type,
            events_table.c.payload,
        ).where(events_table.c.id == str(event_id))

        result = await self._session.execute(stmt)
        row = result.first()

        if row is None:
            return None

        event_type, payload = row
        return self._deserialize(event_type, payload)

    async def list_events(
        self,
        limit: int = 50,
        event_types: list[str] | None = None,
        newest_first: bool = False,
    ) -> list[Event]:
        stmt = select(events_table.c.event_type, events_table.c.payload)

        if newest_first:
            stmt = stmt.order_by(events_table.c.created_at.desc())
        else:
            stmt = stmt.order_by(events_table.c.created_at.asc())

        if event_types:
            stmt = stmt.where(events_table.c.event_type.in_(event_types))

        result = await self._session.execute(stmt.limit(limit))

        events: list[Event] = []
        for event_type, payload in result.fetchall():
            event = self._deserialize(event_type, payload)
            if event is not None:
                events.append(event)
        return events

    async def claim_delivery(
        self,
        consumer_group: str,
        event_types: list[str],
        limit: int = 1,
    ) -> ClaimResult:
        """Claim pending deliveries for a specific consumer group.

        Uses FOR UPDATE SKIP LOCKED on the deliveries table (ignored by
        SQLite, which serializes writers anyway).
        """
        now = datetime.now(UTC)

        stmt = (
            select(
                deliveries_table.c.id,
                events_table.c.event_type,
                events_table.c.payload,
            )
            .join(events_table, deliveries_table.c.event_id == events_table.c.id)
            .where(
                deliveries_table.c.consumer_group == consumer_group,
                deliveries_table.c.status == "pending",
                events_table.c.event_type.in_(event_types),
                or_(
                    deliveries_table.c.next_attempt_at.is_(None),
                    deliveries_table.c.next_attempt_at <= now,
                ),
            )
            .order_by(events_table.c.created_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True, of=deliveries_table)
        )

        result = await self._session.execute(stmt)
        rows = result.fetchall()

        if not rows:
            return ClaimResult(deliveries=[], claimed_at=now)

        delivery_ids = [row[0] for row in rows]
        await self._session.execute(
            update(deliveries_table)
            .where(deliveries_table.c.id.in_(delivery_ids))
            .values(status="claimed", claimed_at=now, updated_at=now)
        )

        deliveries: list[ClaimedDelivery] = []
        for delivery_id, event_type, payload in rows:
            event = self._deserialize(event_type, payload)
            if event is None:
                # Unknown or corrupt payload: park it instead of reclaiming forever
                await self.mark_delivery_status(delivery_id, "skipped", error="undecodable event")
                continue
            deliveries.append(ClaimedDelivery(delivery_id=delivery_id, event=event))

        return ClaimResult(deliveries=deliveries, claimed_at=now)

    async def mark_delivery_status(
        self,
        delivery_id: str,
        status: str,
        error: str | None = None,
    ) -> None:
        now = datetime.now(UTC)
        values: dict = {
            "status": status,
            "updated_at": now,
        }
        if status == "delivered":
            values["delivered_at"] = now
        if error is not None:
            values["delivery_error"] = error

        stmt = update(deliveries_table).where(deliveries_table.c.id == delivery_id).values(**values)
        await self._session.execute(stmt)

    async def reset_stale_deliveries(self, timeout_seconds: float) -> int:
        """Reset deliveries that have been claimed for too long."""
        now = datetime.now(UTC)
        cutoff = now - timedelta(seconds=timeout_seconds)

        stmt = (
            update(deliveries_table)
            .where(
                deliveries_table.c.status == "claimed",
                deliveries_table.c.claimed_at < cutoff,
            )
            .values(status="pending", claimed_at=None, updated_at=now)
        )

        result = await self._session.execute(stmt)
        count = result.rowcount
        if count > 0:
            logger.info(f"Reset {count} stale deliveries (older than {timeout_seconds}s)")
        return count

    async def mark_failed_with_retry(
        self,
        delivery_id: str,
        error: str,
        max_retries: int,
    ) -> None:
        now = datetime.now(UTC)

        result = await self._session.execute(
            select(deliveries_table.c.retry_count).where(deliveries_table.c.id == delivery_id)
        )
        row = result.first()

        if row is None:
            logger.warning(f"Delivery {delivery_id} not found for mark_failed_with_retry")
            return

        new_retry_count = (row[0] or 0) + 1

        if new_retry_count >= max_retries:
            values = {
                "status": "failed",
                "delivery_error": error,
                "retry_count": new_retry_count,
                "updated_at": now,
                "delivered_at": now,
            }
        else:
            values = {
                "status": "pending",
                "delivery_error": error,
                "retry_count": new_retry_count,
                "claimed_at": None,
                "next_attempt_at": now + retry_backoff(new_retry_count),
                "updated_at": now,
            }

        await self._session.execute(
            update(deliveries_table).where(deliveries_table.c.id == delivery_id).values(**values)
        )

    def _deserialize(self, event_type: str, payload: dict | str) -> Event | None:
        event_cls = Event.lookup(event_type)
        if event_cls is None:
            logger.warning(f"Unknown event type '{event_type}' - skipping")
            return None

        try:
            if isinstance(payload, str):
                return event_cls.model_validate_json(payload)
            return event_cls.model_validate(payload)
        except PydanticValidationError as e:
            logger.error(f"Failed to deserialize event type '{event_type}': {e}")
            return None
