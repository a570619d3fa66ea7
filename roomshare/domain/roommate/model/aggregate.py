from datetime import datetime, timedelta

from roomshare.domain.auth.model.value import UserId
from roomshare.domain.roommate.model import state_machine
from roomshare.domain.roommate.model.value import (
    ActorRole,
    ApplicantProfile,
    ApplicationId,
    ApplicationStatus,
    Decision,
    PartyResponse,
    PostId,
    RentalId,
    RentalTerms,
    WorkflowState,
)
from roomshare.domain.shared.error import (
    AlreadyTerminal,
    InvalidStateError,
    InvalidTransition,
)
from roomshare.domain.shared.model.aggregate import Aggregate


class RoommateApplication(Aggregate):
    """One applicant's request to join an incumbent tenant's room.

    Mutators bump ``version`` by one; the repository persists the result with
    a compare-and-swap against the version the caller loaded.
    """

    id: ApplicationId
    post_id: PostId
    applicant_id: UserId
    tenant_id: UserId
    landlord_id: UserId | None = None
    is_platform_room: bool
    profile: ApplicantProfile
    terms: RentalTerms
    status: ApplicationStatus = ApplicationStatus.PENDING
    tenant_response: PartyResponse | None = None
    landlord_response: PartyResponse | None = None
    confirmed_by_tenant: bool = False
    confirmed_by_landlord: bool = False
    confirmed_at: datetime | None = None
    rental_id: RentalId | None = None
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    version: int = 1

    @classmethod
    def submit(
        cls,
        *,
        post_id: PostId,
        applicant_id: UserId,
        tenant_id: UserId,
        landlord_id: UserId | None,
        is_platform_room: bool,
        profile: ApplicantProfile,
        terms: RentalTerms,
        now: datetime,
        ttl: timedelta,
    ) -> "RoommateApplication":
        return cls(
            id=ApplicationId.generate(),
            post_id=post_id,
            applicant_id=applicant_id,
            tenant_id=tenant_id,
            landlord_id=landlord_id if is_platform_room else None,
            is_platform_room=is_platform_room,
            profile=profile,
            terms=terms,
            created_at=now,
            updated_at=now,
            expires_at=now + ttl,
        )

    @property
    def state(self) -> WorkflowState:
        return WorkflowState(
            status=self.status,
            is_platform_room=self.is_platform_room,
            confirmed_by_tenant=self.confirmed_by_tenant,
            confirmed_by_landlord=self.confirmed_by_landlord,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def ready_to_provision(self) -> bool:
        return state_machine.ready_to_provision(self.state)

    @property
    def needs_provisioning(self) -> bool:
        return self.ready_to_provision and self.rental_id is None

    def is_lapsed(self, now: datetime) -> bool:
        """Past its deadline but not yet swept by the reaper."""
        return not self.is_terminal and self.expires_at <= now

    def party_id(self, role: ActorRole) -> UserId | None:
        if role is ActorRole.APPLICANT:
            return self.applicant_id
        if role is ActorRole.TENANT:
            return self.tenant_id
        if role is ActorRole.LANDLORD:
            return self.landlord_id
        return None

    def advance(
        self,
        to: WorkflowState,
        *,
        role: ActorRole,
        decision: Decision | None = None,
        message: str | None = None,
        now: datetime,
    ) -> None:
        """Apply a state computed by ``state_machine.transition``."""
        if self.is_terminal:
            raise AlreadyTerminal(f"Application {self.id} is already {self.status}")
        if to.is_platform_room != self.is_platform_room:
            raise InvalidStateError("Room kind is fixed at submission")
        if (self.confirmed_by_tenant and not to.confirmed_by_tenant) or (
            self.confirmed_by_landlord and not to.confirmed_by_landlord
        ):
            raise InvalidStateError("Confirmation flags cannot be cleared")

        self.status = to.status
        self.confirmed_by_tenant = to.confirmed_by_tenant
        self.confirmed_by_landlord = to.confirmed_by_landlord

        if decision is not None:
            response = PartyResponse(decision=decision, message=message, responded_at=now)
            if role is ActorRole.TENANT:
                self.tenant_response = response
            elif role is ActorRole.LANDLORD:
                self.landlord_response = response

        if to.status is ApplicationStatus.CONFIRMED:
            self.confirmed_at = now
        self._touch(now)

    def attach_rental(self, rental_id: RentalId, now: datetime) -> None:
        if self.status is not ApplicationStatus.CONFIRMED or not self.ready_to_provision:
            raise InvalidStateError(f"Application {self.id} is not fully confirmed")
        if self.rental_id is not None:
            raise InvalidStateError(f"Application {self.id} already has rental {self.rental_id}")
        self.rental_id = rental_id
        self._touch(now)

    def update_profile(self, profile: ApplicantProfile, now: datetime) -> None:
        if self.is_terminal:
            raise AlreadyTerminal(f"Application {self.id} is already {self.status}")
        if self.status is not ApplicationStatus.PENDING:
            raise InvalidTransition("Only pending applications can be edited")
        self.profile = profile
        self._touch(now)

    def _touch(self, now: datetime) -> None:
        self.updated_at = now
        self.version += 1
