"""Global test fixtures."""

import asyncio
import os
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

# Set JWT secret before any test modules import Config
# This must happen at module load time, not in a fixture
os.environ.setdefault("ROOMSHARE_AUTH__JWT__SECRET", "test-secret-for-unit-tests-min-32")

from roomshare.domain.auth.model.value import UserId  # noqa: E402
from roomshare.domain.roommate.model.aggregate import RoommateApplication  # noqa: E402
from roomshare.domain.roommate.model.value import (  # noqa: E402
    OPEN_STATUSES,
    ApplicantProfile,
    ApplicationFilter,
    ApplicationId,
    ApplicationStatus,
    PostId,
    PostStatus,
    RentalId,
    RentalTerms,
    ResponseLogEntry,
    RoomOwnership,
    SeekingPost,
)
from roomshare.domain.roommate.port.notification import (  # noqa: E402
    Notification,
    NotificationSender,
)
from roomshare.domain.roommate.port.post_directory import PostDirectory  # noqa: E402
from roomshare.domain.roommate.port.rental_gateway import RentalGateway  # noqa: E402
from roomshare.domain.roommate.port.repository import ApplicationRepository  # noqa: E402
from roomshare.domain.roommate.service.confirmation import ConfirmationGate  # noqa: E402
from roomshare.domain.roommate.service.coordinator import ApprovalCoordinator  # noqa: E402
from roomshare.domain.shared.error import (  # noqa: E402
    AlreadyTerminal,
    ConcurrentModification,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
)

_LANDLORD_ROUND = (ApplicationStatus.APPROVED_BY_TENANT, ApplicationStatus.AWAITING_CONFIRMATION)


class InMemoryApplicationRepository(ApplicationRepository):
    """Dict-backed repository with the same compare-and-swap rules as the SQL one.

    ``get`` snapshots the record and then yields to the event loop, so two
    concurrent callers can load the same version and race on the write.
    """

    def __init__(self) -> None:
        self.rows: dict[ApplicationId, RoommateApplication] = {}
        self.responses: list[ResponseLogEntry] = []

    async def get(self, id: ApplicationId) -> RoommateApplication | None:
        stored = self.rows.get(id)
        snapshot = stored.model_copy(deep=True) if stored is not None else None
        await asyncio.sleep(0)
        return snapshot

    async def add(self, application: RoommateApplication) -> None:
        if application.id in self.rows:
            raise ConflictError(f"Duplicate application {application.id}")
        self.rows[application.id] = application.model_copy(deep=True)

    async def compare_and_swap(
        self, application: RoommateApplication, expected_version: int
    ) -> None:
        stored = self.rows.get(application.id)
        if stored is None:
            raise NotFoundError(f"Application not found: {application.id}")
        if stored.version == expected_version and not stored.is_terminal:
            self.rows[application.id] = application.model_copy(deep=True)
            return
        if stored.is_terminal:
            raise AlreadyTerminal(f"Application {application.id} is already {stored.status}")
        raise ConcurrentModification(f"Application {application.id} changed")

    async def attach_rental(
        self, application: RoommateApplication, expected_version: int
    ) -> None:
        stored = self.rows.get(application.id)
        if stored is None:
            raise NotFoundError(f"Application not found: {application.id}")
        if stored.rental_id is not None:
            raise ConflictError(f"Application {application.id} already has a rental")
        if stored.version != expected_version or stored.status is not ApplicationStatus.CONFIRMED:
            raise ConcurrentModification(f"Application {application.id} changed")
        self.rows[application.id] = application.model_copy(deep=True)

    async def append_response(self, entry: ResponseLogEntry) -> None:
        self.responses.append(entry)

    async def list_responses(self, id: ApplicationId) -> list[ResponseLogEntry]:
        return sorted(
            (r for r in self.responses if r.application_id == id), key=lambda r: r.version
        )

    async def find_open(
        self, post_id: PostId, applicant_id: UserId
    ) -> RoommateApplication | None:
        for app in self.rows.values():
            if (
                app.post_id == post_id
                and app.applicant_id == applicant_id
                and app.status in OPEN_STATUSES
            ):
                return app.model_copy(deep=True)
        return None

    async def list_for_applicant(self, applicant_id, filter):  # noqa: ANN001
        return self._page(lambda a: a.applicant_id == applicant_id, filter)

    async def list_for_post(self, post_id, filter):  # noqa: ANN001
        return self._page(lambda a: a.post_id == post_id, filter)

    async def list_for_tenant(self, tenant_id, filter):  # noqa: ANN001
        return self._page(lambda a: a.tenant_id == tenant_id, filter)

    async def list_pending_for_landlord(self, landlord_id, filter):  # noqa: ANN001
        return self._page(
            lambda a: a.landlord_id == landlord_id
            and a.is_platform_room
            and a.status in _LANDLORD_ROUND,
            filter,
        )

    async def list_lapsed(self, now: datetime, limit: int) -> list[RoommateApplication]:
        lapsed = sorted(
            (a for a in self.rows.values() if a.is_lapsed(now)), key=lambda a: a.expires_at
        )
        return [a.model_copy(deep=True) for a in lapsed[:limit]]

    async def count_by_status(self, *, applicant_id=None, tenant_id=None):  # noqa: ANN001
        counts: dict[ApplicationStatus, int] = {}
        for app in self.rows.values():
            if applicant_id is not None and app.applicant_id != applicant_id:
                continue
            if tenant_id is not None and app.tenant_id != tenant_id:
                continue
            counts[app.status] = counts.get(app.status, 0) + 1
        return counts

    def _page(self, keep, filter: ApplicationFilter):  # noqa: ANN001
        matched = [
            a
            for a in self.rows.values()
            if keep(a) and (filter.status is None or a.status is filter.status)
        ]
        matched.sort(key=lambda a: a.created_at, reverse=True)
        items = matched[filter.offset : filter.offset + filter.limit]
        return [a.model_copy(deep=True) for a in items], len(matched)


class RecordingOutbox:
    """Stands in for Outbox; keeps appended events in order."""

    def __init__(self) -> None:
        self.events: list = []

    async def append(self, event) -> None:  # noqa: ANN001
        self.events.append(event)

    def of_type(self, cls: type) -> list:
        return [e for e in self.events if isinstance(e, cls)]


class FakePostDirectory(PostDirectory):
    def __init__(self) -> None:
        self.posts: dict[PostId, SeekingPost] = {}
        self.platform_rooms: dict[UUID, UserId] = {}

    def add_post(
        self,
        owner_id: UserId,
        *,
        landlord_id: UserId | None = None,
        status: PostStatus = PostStatus.ACTIVE,
        monthly_rent: str = "3500000",
    ) -> SeekingPost:
        room_instance_id = uuid4()
        if landlord_id is not None:
            self.platform_rooms[room_instance_id] = landlord_id
        post = SeekingPost(
            id=PostId(uuid4()),
            owner_id=owner_id,
            status=status,
            room_instance_id=room_instance_id,
            terms=RentalTerms(monthly_rent=Decimal(monthly_rent)),
        )
        self.posts[post.id] = post
        return post

    async def get_post(self, post_id: PostId) -> SeekingPost | None:
        return self.posts.get(post_id)

    async def resolve_room_ownership(self, post: SeekingPost) -> RoomOwnership:
        landlord_id = self.platform_rooms.get(post.room_instance_id)
        if landlord_id is None:
            return RoomOwnership(is_platform_room=False)
        return RoomOwnership(is_platform_room=True, landlord_id=landlord_id)


class FakeRentalGateway(RentalGateway):
    """Idempotent by application id, like the real rentals service."""

    def __init__(self) -> None:
        self.calls: list[ApplicationId] = []
        self.rentals: dict[ApplicationId, RentalId] = {}
        self.fail = False

    async def create_rental(self, application_id: ApplicationId, terms: RentalTerms) -> RentalId:
        self.calls.append(application_id)
        if self.fail:
            raise ExternalServiceError("rentals service down")
        if application_id not in self.rentals:
            self.rentals[application_id] = RentalId(f"rental-{len(self.rentals) + 1}")
        return self.rentals[application_id]


class RecordingNotificationSender(NotificationSender):
    def __init__(self) -> None:
        self.sent: list[tuple[UserId, Notification]] = []

    async def send(self, recipient_id: UserId, notification: Notification) -> None:
        self.sent.append((recipient_id, notification))

    @property
    def recipients(self) -> list[UserId]:
        return [r for r, _ in self.sent]


@pytest.fixture
def applicant_id() -> UserId:
    return UserId.generate()


@pytest.fixture
def tenant_id() -> UserId:
    return UserId.generate()


@pytest.fixture
def landlord_id() -> UserId:
    return UserId.generate()


@pytest.fixture
def profile() -> ApplicantProfile:
    return ApplicantProfile(
        full_name="Linh Tran",
        occupation="Software engineer",
        phone_number="+84901234567",
        move_in_date=date(2026, 11, 1),
        intended_stay_months=12,
        application_message="Quiet, non-smoker, works from the office.",
    )


@pytest.fixture
def make_application(applicant_id, tenant_id, landlord_id, profile):  # noqa: ANN001
    """Factory for applications in any state.

    ``platform`` picks the room kind; extra keyword arguments override fields
    after submission (e.g. ``status=...``, ``expires_at=...``).
    """

    def _make(platform: bool = True, **overrides) -> RoommateApplication:  # noqa: ANN003
        now = datetime.now(UTC)
        application = RoommateApplication.submit(
            post_id=PostId(uuid4()),
            applicant_id=applicant_id,
            tenant_id=tenant_id,
            landlord_id=landlord_id if platform else None,
            is_platform_room=platform,
            profile=profile,
            terms=RentalTerms(monthly_rent=Decimal("3500000")),
            now=now,
            ttl=timedelta(days=14),
        )
        return application.model_copy(update=overrides) if overrides else application

    return _make


@pytest.fixture
def repo() -> InMemoryApplicationRepository:
    return InMemoryApplicationRepository()


@pytest.fixture
def outbox() -> RecordingOutbox:
    return RecordingOutbox()


@pytest.fixture
def rentals() -> FakeRentalGateway:
    return FakeRentalGateway()


@pytest.fixture
def posts() -> FakePostDirectory:
    return FakePostDirectory()


@pytest.fixture
def sender() -> RecordingNotificationSender:
    return RecordingNotificationSender()


@pytest.fixture
def gate(repo, rentals) -> ConfirmationGate:  # noqa: ANN001
    return ConfirmationGate(repo=repo, rentals=rentals)


@pytest.fixture
def coordinator(repo, gate, outbox) -> ApprovalCoordinator:  # noqa: ANN001
    return ApprovalCoordinator(repo=repo, gate=gate, outbox=outbox)
