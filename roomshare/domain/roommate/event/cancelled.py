from roomshare.domain.roommate.event.base import ApplicationEvent


class ApplicationCancelled(ApplicationEvent):
    """Emitted when the applicant withdraws a pending application."""
