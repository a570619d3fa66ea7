from abc import abstractmethod
from datetime import datetime
from typing import Protocol

from roomshare.domain.auth.model.value import UserId
from roomshare.domain.roommate.model.aggregate import RoommateApplication
from roomshare.domain.roommate.model.value import (
    ApplicationFilter,
    ApplicationId,
    ApplicationStatus,
    PostId,
    ResponseLogEntry,
)
from roomshare.domain.shared.port import Port


class ApplicationRepository(Port, Protocol):
    """Persistence for roommate applications and their response log.

    Writes are compare-and-swap on ``version``: an update lands only if the
    stored version still equals ``expected_version``, the stored status is not
    terminal, and no rental has been stamped yet.
    """

    @abstractmethod
    async def get(self, id: ApplicationId) -> RoommateApplication | None: ...

    @abstractmethod
    async def add(self, application: RoommateApplication) -> None: ...

    @abstractmethod
    async def compare_and_swap(
        self, application: RoommateApplication, expected_version: int
    ) -> None:
        """Persist ``application`` if nobody wrote since ``expected_version``.

        Raises:
            ConcurrentModification: the stored version moved on.
            AlreadyTerminal: the stored record is already terminal.
            NotFoundError: no such application.
        """
        ...

    @abstractmethod
    async def attach_rental(
        self, application: RoommateApplication, expected_version: int
    ) -> None:
        """Stamp ``application.rental_id`` once; fails if a rental is already set."""
        ...

    @abstractmethod
    async def append_response(self, entry: ResponseLogEntry) -> None: ...

    @abstractmethod
    async def list_responses(self, id: ApplicationId) -> list[ResponseLogEntry]: ...

    @abstractmethod
    async def find_open(
        self, post_id: PostId, applicant_id: UserId
    ) -> RoommateApplication | None: ...

    @abstractmethod
    async def list_for_applicant(
        self, applicant_id: UserId, filter: ApplicationFilter
    ) -> tuple[list[RoommateApplication], int]: ...

    @abstractmethod
    async def list_for_post(
        self, post_id: PostId, filter: ApplicationFilter
    ) -> tuple[list[RoommateApplication], int]: ...

    @abstractmethod
    async def list_for_tenant(
        self, tenant_id: UserId, filter: ApplicationFilter
    ) -> tuple[list[RoommateApplication], int]: ...

    @abstractmethod
    async def list_pending_for_landlord(
        self, landlord_id: UserId, filter: ApplicationFilter
    ) -> tuple[list[RoommateApplication], int]:
        """Open platform-room applications waiting on this landlord's round."""
        ...

    @abstractmethod
    async def list_lapsed(self, now: datetime, limit: int) -> list[RoommateApplication]:
        """Non-terminal applications whose ``expires_at`` is at or before ``now``."""
        ...

    @abstractmethod
    async def count_by_status(
        self,
        *,
        applicant_id: UserId | None = None,
        tenant_id: UserId | None = None,
    ) -> dict[ApplicationStatus, int]: ...
