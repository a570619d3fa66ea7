"""Roommate domain event handlers."""

from roomshare.domain.roommate.handler.notify import (
    NotifyPartiesOfApproval,
    NotifyPartiesOfConfirmation,
    NotifyPartiesOfExpiry,
    NotifyPartiesOfRejection,
    NotifyTenantOfApplication,
    NotifyTenantOfCancellation,
)

__all__ = [
    "NotifyPartiesOfApproval",
    "NotifyPartiesOfConfirmation",
    "NotifyPartiesOfExpiry",
    "NotifyPartiesOfRejection",
    "NotifyTenantOfApplication",
    "NotifyTenantOfCancellation",
]
