from abc import abstractmethod
from typing import Protocol

from roomshare.domain.auth.model.value import UserId
from roomshare.domain.shared.model.value import ValueObject
from roomshare.domain.shared.port import Port


class Notification(ValueObject):
    kind: str
    title: str
    body: str
    application_id: str


class NotificationSender(Port, Protocol):
    @abstractmethod
    async def send(self, recipient_id: UserId, notification: Notification) -> None: ...
