from roomshare.domain.roommate.event.base import ApplicationEvent


class ApplicationSubmitted(ApplicationEvent):
    """Emitted when an applicant applies to a seeking post."""

    applicant_name: str
    is_urgent: bool = False
