from roomshare.domain.roommate.event.base import ApplicationEvent
from roomshare.domain.roommate.model.value import ActorRole


class ApplicationRejected(ApplicationEvent):
    """Emitted when the tenant or the landlord rejects an application."""

    rejected_by: ActorRole
    message: str | None = None
