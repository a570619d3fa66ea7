"""Unit tests for Worker poll loop lifecycle."""

import asyncio
from datetime import UTC, datetime
from typing import ClassVar
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from roomshare.domain.auth.model.identity import Identity, System
from roomshare.domain.shared.event import (
    ClaimedDelivery,
    ClaimResult,
    Event,
    EventHandler,
    EventId,
    WorkerStatus,
)
from roomshare.domain.shared.outbox import Outbox
from roomshare.infrastructure.event.worker import Worker


class DummyEvent(Event):
    """Test event for worker tests."""

    id: EventId
    data: str


class DummyHandler(EventHandler[DummyEvent]):
    """Test handler that tracks handle calls."""

    __poll_interval__: ClassVar[float] = 0.01

    processed_events: list[DummyEvent]

    async def handle(self, event: DummyEvent) -> None:
        self.processed_events.append(event)


class BatchHandler(EventHandler[DummyEvent]):
    __batch_size__: ClassVar[int] = 10
    __poll_interval__: ClassVar[float] = 0.01

    batches: list[list[DummyEvent]]

    async def handle_batch(self, events: list[DummyEvent]) -> None:
        self.batches.append(events)


class FailingHandler(EventHandler[DummyEvent]):
    """Handler that always raises an error."""

    __max_retries__: ClassVar[int] = 5

    async def handle(self, event: DummyEvent) -> None:
        raise RuntimeError("Processing failed")


def make_claim(*events: DummyEvent) -> ClaimResult:
    return ClaimResult(
        deliveries=[ClaimedDelivery(delivery_id=f"d-{e.data}", event=e) for e in events],
        claimed_at=datetime.now(UTC),
    )


def make_event(data: str) -> DummyEvent:
    return DummyEvent(id=EventId(uuid4()), data=data)


def make_mock_container(outbox: AsyncMock, handler: EventHandler | None = None):
    """Create a mock DI container whose UOW scope yields the outbox and handler."""

    async def get_dependency(cls):
        if cls == Outbox:
            return outbox
        if handler is not None and issubclass(cls, EventHandler):
            return handler
        raise LookupError(cls)

    scope = AsyncMock()
    scope.get = AsyncMock(side_effect=get_dependency)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=scope)
    context.__aexit__ = AsyncMock(return_value=None)

    container = MagicMock()
    container.return_value = context
    return container


class TestWorkerConfig:
    def test_reads_handler_class_variables(self):
        worker = Worker(BatchHandler)
        assert worker.name == "BatchHandler"
        assert worker.config.batch_size == 10
        assert worker.config.event_types == (DummyEvent,)

    def test_pool_poll_interval_overrides_handler(self):
        worker = Worker(DummyHandler, poll_interval=2.5)
        assert worker.config.poll_interval == 2.5

    def test_start_requires_container(self):
        with pytest.raises(RuntimeError):
            Worker(DummyHandler).start()


class TestWorkerPollLoop:
    @pytest.mark.asyncio
    async def test_claims_and_processes_single_event(self):
        event = make_event("one")
        outbox = AsyncMock(spec=Outbox)
        outbox.claim.return_value = make_claim(event)
        handler = DummyHandler(processed_events=[])
        container = make_mock_container(outbox, handler)

        worker = Worker(DummyHandler)
        worker.set_container(container)
        had_events = await worker._poll_once()

        assert had_events is True
        assert handler.processed_events == [event]
        outbox.claim.assert_awaited_once_with(
            event_types=[DummyEvent], limit=1, consumer_group="DummyHandler"
        )
        outbox.mark_delivered.assert_awaited_once_with("d-one")
        assert worker.state.processed_count == 1
        assert worker.state.status == WorkerStatus.IDLE

    @pytest.mark.asyncio
    async def test_uow_scope_runs_as_system_identity(self):
        outbox = AsyncMock(spec=Outbox)
        outbox.claim.return_value = make_claim()
        container = make_mock_container(outbox)

        worker = Worker(DummyHandler)
        worker.set_container(container)
        await worker._poll_once()

        _, kwargs = container.call_args
        assert kwargs["context"] == {Identity: System()}

    @pytest.mark.asyncio
    async def test_returns_false_when_idle(self):
        outbox = AsyncMock(spec=Outbox)
        outbox.claim.return_value = make_claim()
        container = make_mock_container(outbox, DummyHandler(processed_events=[]))

        worker = Worker(DummyHandler)
        worker.set_container(container)

        assert await worker._poll_once() is False
        assert worker.state.status == WorkerStatus.IDLE
        outbox.mark_delivered.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_batch_handler_gets_whole_batch(self):
        events = [make_event("a"), make_event("b")]
        outbox = AsyncMock(spec=Outbox)
        outbox.claim.return_value = make_claim(*events)
        handler = BatchHandler(batches=[])
        container = make_mock_container(outbox, handler)

        worker = Worker(BatchHandler)
        worker.set_container(container)
        await worker._poll_once()

        assert handler.batches == [events]
        assert outbox.mark_delivered.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_marks_deliveries_for_retry(self):
        outbox = AsyncMock(spec=Outbox)
        outbox.claim.return_value = make_claim(make_event("x"))
        container = make_mock_container(outbox, FailingHandler())

        worker = Worker(FailingHandler)
        worker.set_container(container)
        await worker._poll_once()

        outbox.mark_delivered.assert_not_awaited()
        outbox.mark_failed_with_retry.assert_awaited_once_with(
            "d-x", "Processing failed", max_retries=5
        )
        assert worker.state.failed_count == 1
        assert isinstance(worker.state.error, RuntimeError)

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        outbox = AsyncMock(spec=Outbox)
        outbox.claim.return_value = make_claim()
        container = make_mock_container(outbox, DummyHandler(processed_events=[]))

        worker = Worker(DummyHandler)
        worker.set_container(container)
        task = worker.start()
        await asyncio.sleep(0.05)
        worker.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert task.done()
        assert outbox.claim.await_count >= 1
