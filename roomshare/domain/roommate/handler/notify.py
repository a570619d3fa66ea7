"""Notification handlers - turn application events into chat messages.

Each handler runs in its own consumer group, so a messaging outage for one
kind of notice never blocks another. Delivery retries are the worker's job.
"""

import logging

from roomshare.domain.auth.model.value import UserId
from roomshare.domain.roommate.event.approved import ApplicationApproved
from roomshare.domain.roommate.event.base import ApplicationEvent
from roomshare.domain.roommate.event.cancelled import ApplicationCancelled
from roomshare.domain.roommate.event.confirmed import ApplicationConfirmed
from roomshare.domain.roommate.event.expired import ApplicationExpired
from roomshare.domain.roommate.event.rejected import ApplicationRejected
from roomshare.domain.roommate.event.submitted import ApplicationSubmitted
from roomshare.domain.roommate.model.value import ActorRole, ApplicationStatus
from roomshare.domain.roommate.port.notification import Notification, NotificationSender
from roomshare.domain.shared.event import EventHandler

logger = logging.getLogger(__name__)


async def _send_all(
    sender: NotificationSender,
    recipients: list[UserId | None],
    event: ApplicationEvent,
    title: str,
    body: str,
) -> None:
    notification = Notification(
        kind=type(event).__name__,
        title=title,
        body=body,
        application_id=str(event.application_id),
    )
    for recipient in dict.fromkeys(r for r in recipients if r is not None):
        await sender.send(recipient, notification)
    logger.debug(f"{notification.kind} sent for application {event.application_id}")


class NotifyTenantOfApplication(EventHandler[ApplicationSubmitted]):
    sender: NotificationSender

    async def handle(self, event: ApplicationSubmitted) -> None:
        prefix = "[Urgent] " if event.is_urgent else ""
        await _send_all(
            self.sender,
            [event.tenant_id],
            event,
            f"{prefix}New roommate application",
            f"{event.applicant_name} applied to share your room.",
        )


class NotifyPartiesOfApproval(EventHandler[ApplicationApproved]):
    """Tells the applicant, and brings in the landlord after the tenant's approval."""

    sender: NotificationSender

    async def handle(self, event: ApplicationApproved) -> None:
        if event.approved_by is ActorRole.TENANT:
            await _send_all(
                self.sender,
                [event.applicant_id],
                event,
                "Application approved by tenant",
                "The tenant approved your application.",
            )
            if event.landlord_id is not None:
                await _send_all(
                    self.sender,
                    [event.landlord_id],
                    event,
                    "Roommate application awaiting your review",
                    "A tenant approved a new roommate for your room.",
                )
            else:
                await _send_all(
                    self.sender,
                    [event.tenant_id],
                    event,
                    "Confirm your new roommate",
                    "Confirm the application to create the rental.",
                )
        else:
            await _send_all(
                self.sender,
                [event.applicant_id, event.tenant_id],
                event,
                "Application approved by landlord",
                "The landlord approved the application; the tenant can now confirm.",
            )


class NotifyPartiesOfRejection(EventHandler[ApplicationRejected]):
    sender: NotificationSender

    async def handle(self, event: ApplicationRejected) -> None:
        recipients: list[UserId | None] = [event.applicant_id]
        if event.rejected_by is ActorRole.LANDLORD:
            recipients.append(event.tenant_id)
        body = f"Rejected by the {event.rejected_by}."
        if event.message:
            body = f"{body} {event.message}"
        await _send_all(self.sender, recipients, event, "Application rejected", body)


class NotifyPartiesOfConfirmation(EventHandler[ApplicationConfirmed]):
    sender: NotificationSender

    async def handle(self, event: ApplicationConfirmed) -> None:
        if event.status is ApplicationStatus.CONFIRMED:
            body = "All parties confirmed."
            if event.rental_id:
                body = f"{body} Rental {event.rental_id} has been created."
            await _send_all(
                self.sender,
                [event.applicant_id, event.tenant_id, event.landlord_id],
                event,
                "Roommate application confirmed",
                body,
            )
        elif event.status is ApplicationStatus.AWAITING_CONFIRMATION:
            await _send_all(
                self.sender,
                [event.landlord_id],
                event,
                "Final confirmation needed",
                "The tenant confirmed; confirm to create the rental.",
            )


class NotifyTenantOfCancellation(EventHandler[ApplicationCancelled]):
    sender: NotificationSender

    async def handle(self, event: ApplicationCancelled) -> None:
        await _send_all(
            self.sender,
            [event.tenant_id],
            event,
            "Application withdrawn",
            "The applicant cancelled their application.",
        )


class NotifyPartiesOfExpiry(EventHandler[ApplicationExpired]):
    sender: NotificationSender

    async def handle(self, event: ApplicationExpired) -> None:
        await _send_all(
            self.sender,
            [event.applicant_id, event.tenant_id],
            event,
            "Application expired",
            "The application timed out before every party responded.",
        )
