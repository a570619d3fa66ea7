"""Adapters for the NotificationSender port."""

import logging

import httpx

from roomshare.domain.auth.model.value import UserId
from roomshare.domain.roommate.port.notification import Notification, NotificationSender
from roomshare.domain.shared.error import ExternalServiceError

logger = logging.getLogger(__name__)


class HttpNotificationSender(NotificationSender):
    """Posts notifications to the messaging service."""

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def send(self, recipient_id: UserId, notification: Notification) -> None:
        payload = {
            "userId": str(recipient_id),
            "notificationType": notification.kind,
            "title": notification.title,
            "message": notification.body,
            "data": {"applicationId": notification.application_id},
        }
        try:
            response = await self._client.post(f"{self._base_url}/api/notifications", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            # Raised so the worker retries the delivery with backoff
            raise ExternalServiceError(f"Notification delivery failed: {e}") from e


class LoggingNotificationSender(NotificationSender):
    """Used when no messaging service is configured."""

    async def send(self, recipient_id: UserId, notification: Notification) -> None:
        logger.info(
            "Notification %s for user %s: %s",
            notification.kind,
            recipient_id,
            notification.title,
        )
