"""ApprovalCoordinator - authorizes actor actions and drives the state machine."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import logfire

from roomshare.domain.auth.model.value import SYSTEM_USER_ID, UserId
from roomshare.domain.roommate.event.approved import ApplicationApproved
from roomshare.domain.roommate.event.base import ApplicationEvent
from roomshare.domain.roommate.event.cancelled import ApplicationCancelled
from roomshare.domain.roommate.event.confirmed import ApplicationConfirmed
from roomshare.domain.roommate.event.expired import ApplicationExpired
from roomshare.domain.roommate.event.rejected import ApplicationRejected
from roomshare.domain.roommate.model.aggregate import RoommateApplication
from roomshare.domain.roommate.model.state_machine import transition
from roomshare.domain.roommate.model.value import (
    Action,
    ActorRole,
    ApplicantProfile,
    ApplicationId,
    Decision,
    ResponseLogEntry,
    WorkflowState,
)
from roomshare.domain.roommate.port.repository import ApplicationRepository
from roomshare.domain.roommate.service.confirmation import ConfirmationGate
from roomshare.domain.shared.error import (
    AlreadyTerminal,
    DomainError,
    Forbidden,
    NotApplicable,
    NotFoundError,
    ValidationError,
)
from roomshare.domain.shared.event import EventId
from roomshare.domain.shared.outbox import Outbox
from roomshare.domain.shared.service import Service

logger = logging.getLogger(__name__)

_RESPONDING_ROLES = (ActorRole.TENANT, ActorRole.LANDLORD)


@dataclass
class BulkOutcome:
    updated_count: int = 0
    failures: dict[str, str] = field(default_factory=dict)


class ApprovalCoordinator(Service):
    """Single entry point for every write to an application's workflow state.

    Each accepted action is one compare-and-swap on ``version``, one response
    log row and one outbox event, all in the caller's unit of work. Losing a
    race surfaces as ConcurrentModification; nothing here retries.
    """

    repo: ApplicationRepository
    gate: ConfirmationGate
    outbox: Outbox

    async def respond(
        self,
        application_id: ApplicationId,
        actor_id: UserId,
        role: ActorRole,
        decision: Decision,
        message: str | None = None,
    ) -> RoommateApplication:
        _require_responding_role(role)
        now = datetime.now(UTC)
        application = await self._load_for(application_id, actor_id, role, now)

        with logfire.span(
            "Respond", application_id=str(application_id), role=role, decision=decision
        ):
            next_state = transition(application.state, decision.action, role)
            await self._commit(
                application,
                next_state,
                actor_id=actor_id,
                role=role,
                action=decision.action,
                decision=decision,
                message=message,
                now=now,
            )

        if decision is Decision.APPROVE:
            event: ApplicationEvent = _event(
                ApplicationApproved, application, actor_id, approved_by=role, message=message
            )
        else:
            event = _event(
                ApplicationRejected, application, actor_id, rejected_by=role, message=message
            )
        await self.outbox.append(event)
        return application

    async def confirm(
        self, application_id: ApplicationId, actor_id: UserId, role: ActorRole
    ) -> RoommateApplication:
        _require_responding_role(role)
        now = datetime.now(UTC)
        application = await self._load_for(application_id, actor_id, role, now)

        with logfire.span("Confirm", application_id=str(application_id), role=role):
            current = application.state
            next_state = transition(current, Action.CONFIRM, role)
            if next_state == current:
                logger.info("Repeated %s confirmation on %s ignored", role, application_id)
                # Completes a confirmed application that somehow lacks its rental
                await self.gate.provision_if_ready(application, now)
                return application

            await self._commit(
                application,
                next_state,
                actor_id=actor_id,
                role=role,
                action=Action.CONFIRM,
                now=now,
            )
            rental_id = await self.gate.provision_if_ready(application, now)

        await self.outbox.append(
            _event(
                ApplicationConfirmed,
                application,
                actor_id,
                confirmed_by=role,
                rental_id=rental_id,
            )
        )
        return application

    async def cancel(self, application_id: ApplicationId, actor_id: UserId) -> RoommateApplication:
        now = datetime.now(UTC)
        application = await self._load_for(application_id, actor_id, ActorRole.APPLICANT, now)

        next_state = transition(application.state, Action.CANCEL, ActorRole.APPLICANT)
        await self._commit(
            application,
            next_state,
            actor_id=actor_id,
            role=ActorRole.APPLICANT,
            action=Action.CANCEL,
            now=now,
        )
        await self.outbox.append(_event(ApplicationCancelled, application, actor_id))
        return application

    async def expire(self, application: RoommateApplication, now: datetime) -> RoommateApplication:
        """Time out a lapsed application on behalf of the system."""
        next_state = transition(application.state, Action.TIMEOUT, ActorRole.SYSTEM)
        await self._commit(
            application,
            next_state,
            actor_id=SYSTEM_USER_ID,
            role=ActorRole.SYSTEM,
            action=Action.TIMEOUT,
            now=now,
        )
        await self.outbox.append(_event(ApplicationExpired, application, SYSTEM_USER_ID))
        return application

    async def update_profile(
        self, application_id: ApplicationId, actor_id: UserId, profile: ApplicantProfile
    ) -> RoommateApplication:
        now = datetime.now(UTC)
        application = await self._load_for(application_id, actor_id, ActorRole.APPLICANT, now)
        expected_version = application.version
        application.update_profile(profile, now)
        await self.repo.compare_and_swap(application, expected_version)
        logger.debug("Profile updated on %s", application_id)
        return application

    async def bulk_respond(
        self,
        application_ids: list[ApplicationId],
        actor_id: UserId,
        role: ActorRole,
        decision: Decision,
        message: str | None = None,
    ) -> BulkOutcome:
        """Respond to several applications; each id succeeds or fails on its own."""
        outcome = BulkOutcome()
        for application_id in application_ids:
            try:
                await self.respond(application_id, actor_id, role, decision, message)
            except DomainError as e:
                logger.info("Bulk %s skipped %s: %s", decision, application_id, e.message)
                outcome.failures[str(application_id)] = e.code
            else:
                outcome.updated_count += 1
        return outcome

    async def _load_for(
        self,
        application_id: ApplicationId,
        actor_id: UserId,
        role: ActorRole,
        now: datetime,
    ) -> RoommateApplication:
        application = await self.repo.get(application_id)
        if application is None:
            raise NotFoundError(f"Application not found: {application_id}")
        if role is ActorRole.LANDLORD and not application.is_platform_room:
            raise NotApplicable(f"Application {application_id} is for an external room")
        if application.party_id(role) != actor_id:
            raise Forbidden(f"User {actor_id} is not the {role} of application {application_id}")
        if application.is_lapsed(now):
            raise AlreadyTerminal(f"Application {application_id} has expired")
        return application

    async def _commit(
        self,
        application: RoommateApplication,
        next_state: WorkflowState,
        *,
        actor_id: UserId,
        role: ActorRole,
        action: Action,
        decision: Decision | None = None,
        message: str | None = None,
        now: datetime,
    ) -> None:
        expected_version = application.version
        from_status = application.status
        application.advance(next_state, role=role, decision=decision, message=message, now=now)
        await self.repo.compare_and_swap(application, expected_version)
        await self.repo.append_response(
            ResponseLogEntry(
                application_id=application.id,
                actor_id=actor_id,
                role=role,
                action=action,
                message=message,
                from_status=from_status,
                to_status=application.status,
                version=application.version,
                created_at=now,
            )
        )
        logger.info(
            "Application %s: %s -> %s by %s (v%d)",
            application.id,
            from_status,
            application.status,
            role,
            application.version,
        )


def _require_responding_role(role: ActorRole) -> None:
    if role not in _RESPONDING_ROLES:
        raise ValidationError(f"Role must be tenant or landlord, got {role}", field="role")


def _event(
    cls: type[ApplicationEvent], application: RoommateApplication, actor_id: UserId, **extra: Any
) -> ApplicationEvent:
    return cls(
        id=EventId(uuid4()),
        application_id=application.id,
        post_id=application.post_id,
        status=application.status,
        actor_id=actor_id,
        applicant_id=application.applicant_id,
        tenant_id=application.tenant_id,
        landlord_id=application.landlord_id,
        **extra,
    )
