from roomshare.domain.roommate.event.base import ApplicationEvent
from roomshare.domain.roommate.model.value import ActorRole


class ApplicationApproved(ApplicationEvent):
    """Emitted when the tenant or the landlord approves an application."""

    approved_by: ActorRole
    message: str | None = None
