from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import Field, RootModel

from roomshare.domain.auth.model.value import UserId
from roomshare.domain.shared.model.value import ValueObject


class ApplicationId(RootModel[UUID]):
    """Opaque identifier of a roommate application."""

    @classmethod
    def generate(cls) -> "ApplicationId":
        return cls(uuid4())

    def __str__(self) -> str:
        return str(self.root)

    def __hash__(self) -> int:
        return hash(self.root)


class PostId(RootModel[UUID]):
    """Identifier of a roommate-seeking post (owned by the listings service)."""

    def __str__(self) -> str:
        return str(self.root)

    def __hash__(self) -> int:
        return hash(self.root)


class RentalId(RootModel[str]):
    """Identifier of a rental created by the rentals service."""

    def __str__(self) -> str:
        return self.root

    def __hash__(self) -> int:
        return hash(self.root)


class ApplicationStatus(StrEnum):
    PENDING = "pending"
    REJECTED_BY_TENANT = "rejected_by_tenant"
    APPROVED_BY_TENANT = "approved_by_tenant"
    REJECTED_BY_LANDLORD = "rejected_by_landlord"
    APPROVED_BY_LANDLORD = "approved_by_landlord"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[ApplicationStatus] = frozenset(
    {
        ApplicationStatus.REJECTED_BY_TENANT,
        ApplicationStatus.REJECTED_BY_LANDLORD,
        ApplicationStatus.CANCELLED,
        ApplicationStatus.EXPIRED,
        ApplicationStatus.CONFIRMED,
    }
)

OPEN_STATUSES: frozenset[ApplicationStatus] = frozenset(ApplicationStatus) - TERMINAL_STATUSES


class ActorRole(StrEnum):
    """Party a caller acts as on one application."""

    APPLICANT = "applicant"
    TENANT = "tenant"
    LANDLORD = "landlord"
    SYSTEM = "system"


class Action(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    TIMEOUT = "timeout"


class Decision(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def action(self) -> Action:
        return Action(self.value)


class PostStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CLOSED = "closed"
    EXPIRED = "expired"


class WorkflowState(ValueObject):
    """The part of an application the state machine reads and writes."""

    status: ApplicationStatus
    is_platform_room: bool
    confirmed_by_tenant: bool = False
    confirmed_by_landlord: bool = False


class ApplicantProfile(ValueObject):
    """What the applicant tells the tenant about themselves."""

    full_name: str = Field(min_length=1, max_length=200)
    occupation: str = Field(min_length=1, max_length=200)
    phone_number: str = Field(min_length=6, max_length=32)
    move_in_date: date
    intended_stay_months: int = Field(ge=1, le=120)
    application_message: str = Field(default="", max_length=2000)
    is_urgent: bool = False


class RentalTerms(ValueObject):
    """Rent snapshot taken from the seeking post at apply time."""

    monthly_rent: Decimal
    deposit_amount: Decimal = Decimal("0")
    utility_cost_per_person: Decimal = Decimal("0")
    currency: str = "VND"


class PartyResponse(ValueObject):
    """A tenant's or landlord's decision on an application."""

    decision: Decision
    message: str | None = None
    responded_at: datetime


class SeekingPost(ValueObject):
    """Read model of a roommate-seeking post, as reported by the listings service."""

    id: PostId
    owner_id: UserId
    status: PostStatus
    room_instance_id: UUID | None = None
    terms: RentalTerms


class RoomOwnership(ValueObject):
    """Whether the post's room is platform-managed, and by which landlord."""

    is_platform_room: bool
    landlord_id: UserId | None = None


class ApplicationFilter(ValueObject):
    """Optional status filter plus page/limit pagination."""

    status: ApplicationStatus | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ResponseLogEntry(ValueObject):
    """One accepted transition in an application's audit trail."""

    id: UUID = Field(default_factory=uuid4)
    application_id: ApplicationId
    actor_id: UserId
    role: ActorRole
    action: Action
    message: str | None = None
    from_status: ApplicationStatus
    to_status: ApplicationStatus
    version: int
    created_at: datetime


class ApplicationStatistics(ValueObject):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    cancelled: int = 0
    expired: int = 0
    confirmed: int = 0

