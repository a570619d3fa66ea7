from roomshare.domain.roommate.event.base import ApplicationEvent


class ApplicationExpired(ApplicationEvent):
    """Emitted when the reaper times out an application."""
