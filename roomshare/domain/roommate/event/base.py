from roomshare.domain.auth.model.value import UserId
from roomshare.domain.roommate.model.value import ApplicationId, ApplicationStatus, PostId
from roomshare.domain.shared.event import Event, EventId


class ApplicationEvent(Event):
    """Common payload of roommate application events.

    Carries every party's id so notification handlers need no repository reads.
    """

    id: EventId
    application_id: ApplicationId
    post_id: PostId
    status: ApplicationStatus
    actor_id: UserId
    applicant_id: UserId
    tenant_id: UserId
    landlord_id: UserId | None = None
