"""ConfirmationGate - provisions the rental once every required party confirmed."""

import logging
from datetime import datetime

import logfire

from roomshare.domain.roommate.model.aggregate import RoommateApplication
from roomshare.domain.roommate.model.value import ApplicationStatus, RentalId
from roomshare.domain.roommate.port.rental_gateway import RentalGateway
from roomshare.domain.roommate.port.repository import ApplicationRepository
from roomshare.domain.shared.error import ExternalServiceError, ProvisioningFailed
from roomshare.domain.shared.service import Service

logger = logging.getLogger(__name__)


class ConfirmationGate(Service):
    """Creates the rental for a confirmed application and stamps its id.

    Runs inside the caller's unit of work, after the coordinator has written
    the ``confirmed`` status. A gateway failure raises ProvisioningFailed so
    the whole transaction rolls back; the application is left one step short
    of ``confirmed`` and the next confirm retries provisioning. The rental
    service dedupes on the application id, so retries never double-book.
    """

    repo: ApplicationRepository
    rentals: RentalGateway

    async def provision_if_ready(
        self, application: RoommateApplication, now: datetime
    ) -> RentalId | None:
        if application.status is not ApplicationStatus.CONFIRMED:
            return None
        if not application.needs_provisioning:
            return application.rental_id

        expected_version = application.version
        with logfire.span("ProvisionRental", application_id=str(application.id)):
            try:
                rental_id = await self.rentals.create_rental(application.id, application.terms)
            except ExternalServiceError as e:
                logger.warning("Rental provisioning failed for %s: %s", application.id, e)
                raise ProvisioningFailed(
                    f"Could not create rental for application {application.id}: {e.message}"
                ) from e

            application.attach_rental(rental_id, now)
            await self.repo.attach_rental(application, expected_version)

        logger.info("Provisioned rental %s for application %s", rental_id, application.id)
        return rental_id
