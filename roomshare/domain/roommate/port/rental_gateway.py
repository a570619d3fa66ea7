from abc import abstractmethod
from typing import Protocol

from roomshare.domain.roommate.model.value import ApplicationId, RentalId, RentalTerms
from roomshare.domain.shared.port import Port


class RentalGateway(Port, Protocol):
    @abstractmethod
    async def create_rental(self, application_id: ApplicationId, terms: RentalTerms) -> RentalId:
        """Create the rental for an application.

        Idempotent by ``application_id``: repeated calls return the same rental.
        """
        ...
