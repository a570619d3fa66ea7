from roomshare.domain.roommate.event.base import ApplicationEvent
from roomshare.domain.roommate.model.value import ActorRole, RentalId


class ApplicationConfirmed(ApplicationEvent):
    """Emitted on each accepted confirmation.

    ``rental_id`` is set once the last confirmation provisioned the rental.
    """

    confirmed_by: ActorRole
    rental_id: RentalId | None = None
