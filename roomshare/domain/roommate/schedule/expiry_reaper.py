"""ExpiryReaper - scheduled sweep that times out lapsed applications."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from roomshare.domain.roommate.port.repository import ApplicationRepository
from roomshare.domain.roommate.service.coordinator import ApprovalCoordinator
from roomshare.domain.shared.error import AlreadyTerminal, ConcurrentModification
from roomshare.domain.shared.event import Schedule

logger = logging.getLogger(__name__)


@dataclass
class ExpiryReaper(Schedule):
    """Moves every non-terminal application past its ``expires_at`` to ``expired``.

    Goes through the coordinator's compare-and-swap path, so a record that an
    actor touched mid-sweep is skipped and picked up on the next cycle.
    """

    repo: ApplicationRepository
    coordinator: ApprovalCoordinator

    async def run(self, **params: Any) -> int:
        """Expire one batch of lapsed applications.

        Params:
            batch_size: Max applications to expire in this sweep (default 100)
        """
        batch_size: int = params.get("batch_size", 100)
        now = datetime.now(UTC)

        lapsed = await self.repo.list_lapsed(now, batch_size)
        expired = 0
        for application in lapsed:
            try:
                await self.coordinator.expire(application, now)
            except (ConcurrentModification, AlreadyTerminal) as e:
                logger.info("Skipping expiry of %s this cycle: %s", application.id, e.message)
                continue
            expired += 1

        if lapsed:
            logger.info(f"Expiry sweep: {expired}/{len(lapsed)} applications expired")
        return expired
