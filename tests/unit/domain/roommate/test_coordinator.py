"""Unit tests for ApprovalCoordinator."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from roomshare.domain.auth.model.value import SYSTEM_USER_ID, UserId
from roomshare.domain.roommate.event.approved import ApplicationApproved
from roomshare.domain.roommate.event.cancelled import ApplicationCancelled
from roomshare.domain.roommate.event.confirmed import ApplicationConfirmed
from roomshare.domain.roommate.event.expired import ApplicationExpired
from roomshare.domain.roommate.event.rejected import ApplicationRejected
from roomshare.domain.roommate.model.value import (
    Action,
    ActorRole,
    ApplicationId,
    ApplicationStatus,
    Decision,
)
from roomshare.domain.shared.error import (
    AlreadyTerminal,
    ConcurrentModification,
    Forbidden,
    InvalidTransition,
    NotApplicable,
    NotFoundError,
    ProvisioningFailed,
    ValidationError,
)

S = ApplicationStatus


@pytest.mark.asyncio
class TestRespond:
    async def test_tenant_approval_is_persisted_logged_and_published(
        self, coordinator, repo, outbox, make_application, tenant_id
    ):
        app = make_application()
        await repo.add(app)

        result = await coordinator.respond(
            app.id, tenant_id, ActorRole.TENANT, Decision.APPROVE, "Welcome"
        )

        assert result.status is S.APPROVED_BY_TENANT
        stored = repo.rows[app.id]
        assert stored.status is S.APPROVED_BY_TENANT
        assert stored.version == 2

        (entry,) = repo.responses
        assert entry.action is Action.APPROVE
        assert entry.from_status is S.PENDING
        assert entry.to_status is S.APPROVED_BY_TENANT
        assert entry.version == 2
        assert entry.message == "Welcome"

        (event,) = outbox.events
        assert isinstance(event, ApplicationApproved)
        assert event.approved_by is ActorRole.TENANT
        assert event.status is S.APPROVED_BY_TENANT

    async def test_tenant_rejection_publishes_rejected(
        self, coordinator, repo, outbox, make_application, tenant_id
    ):
        app = make_application()
        await repo.add(app)

        await coordinator.respond(app.id, tenant_id, ActorRole.TENANT, Decision.REJECT)

        assert repo.rows[app.id].status is S.REJECTED_BY_TENANT
        (event,) = outbox.of_type(ApplicationRejected)
        assert event.rejected_by is ActorRole.TENANT

    async def test_unknown_application(self, coordinator, tenant_id):
        with pytest.raises(NotFoundError):
            await coordinator.respond(
                ApplicationId.generate(), tenant_id, ActorRole.TENANT, Decision.APPROVE
            )

    async def test_wrong_party_is_forbidden(self, coordinator, repo, outbox, make_application):
        app = make_application()
        await repo.add(app)

        with pytest.raises(Forbidden):
            await coordinator.respond(
                app.id, UserId.generate(), ActorRole.TENANT, Decision.APPROVE
            )

        assert repo.rows[app.id].version == 1
        assert outbox.events == []

    async def test_applicant_cannot_respond_as_tenant(
        self, coordinator, repo, make_application, applicant_id
    ):
        app = make_application()
        await repo.add(app)

        with pytest.raises(Forbidden):
            await coordinator.respond(app.id, applicant_id, ActorRole.TENANT, Decision.APPROVE)

    async def test_responding_role_must_be_tenant_or_landlord(
        self, coordinator, repo, make_application, applicant_id
    ):
        app = make_application()
        await repo.add(app)

        with pytest.raises(ValidationError):
            await coordinator.respond(
                app.id, applicant_id, ActorRole.APPLICANT, Decision.APPROVE
            )

    async def test_landlord_action_on_external_room_is_not_applicable(
        self, coordinator, repo, make_application, landlord_id
    ):
        app = make_application(platform=False, status=S.APPROVED_BY_TENANT)
        await repo.add(app)

        with pytest.raises(NotApplicable):
            await coordinator.respond(app.id, landlord_id, ActorRole.LANDLORD, Decision.APPROVE)

    async def test_illegal_edge_leaves_record_untouched(
        self, coordinator, repo, outbox, make_application, landlord_id
    ):
        app = make_application()
        await repo.add(app)

        with pytest.raises(InvalidTransition):
            await coordinator.respond(app.id, landlord_id, ActorRole.LANDLORD, Decision.APPROVE)

        assert repo.rows[app.id].status is S.PENDING
        assert repo.responses == []
        assert outbox.events == []

    async def test_lapsed_application_is_treated_as_expired(
        self, coordinator, repo, make_application, tenant_id
    ):
        app = make_application(expires_at=datetime.now(UTC) - timedelta(minutes=1))
        await repo.add(app)

        with pytest.raises(AlreadyTerminal):
            await coordinator.respond(app.id, tenant_id, ActorRole.TENANT, Decision.APPROVE)
        assert repo.rows[app.id].status is S.PENDING


@pytest.mark.asyncio
class TestConfirm:
    async def test_external_room_tenant_confirmation_provisions_rental(
        self, coordinator, repo, outbox, rentals, make_application, tenant_id
    ):
        app = make_application(platform=False, status=S.APPROVED_BY_TENANT)
        await repo.add(app)

        result = await coordinator.confirm(app.id, tenant_id, ActorRole.TENANT)

        assert result.status is S.CONFIRMED
        assert result.rental_id is not None
        stored = repo.rows[app.id]
        assert stored.rental_id == result.rental_id
        assert stored.confirmed_at is not None
        assert rentals.calls == [app.id]

        (event,) = outbox.of_type(ApplicationConfirmed)
        assert event.rental_id == result.rental_id

    async def test_platform_room_needs_both_confirmations(
        self, coordinator, repo, outbox, rentals, make_application, tenant_id, landlord_id
    ):
        app = make_application(status=S.APPROVED_BY_LANDLORD)
        await repo.add(app)

        first = await coordinator.confirm(app.id, tenant_id, ActorRole.TENANT)
        assert first.status is S.AWAITING_CONFIRMATION
        assert first.rental_id is None
        assert rentals.calls == []

        second = await coordinator.confirm(app.id, landlord_id, ActorRole.LANDLORD)
        assert second.status is S.CONFIRMED
        assert second.confirmed_by_tenant and second.confirmed_by_landlord
        assert rentals.calls == [app.id]

        events = outbox.of_type(ApplicationConfirmed)
        assert [e.status for e in events] == [S.AWAITING_CONFIRMATION, S.CONFIRMED]
        assert events[1].rental_id == second.rental_id

    async def test_repeated_confirmation_is_idempotent(
        self, coordinator, repo, outbox, rentals, make_application, tenant_id
    ):
        app = make_application(platform=False, status=S.APPROVED_BY_TENANT)
        await repo.add(app)

        first = await coordinator.confirm(app.id, tenant_id, ActorRole.TENANT)
        again = await coordinator.confirm(app.id, tenant_id, ActorRole.TENANT)

        assert again.status is S.CONFIRMED
        assert again.rental_id == first.rental_id
        assert again.version == first.version
        assert len(repo.responses) == 1
        assert len(outbox.of_type(ApplicationConfirmed)) == 1
        assert rentals.calls == [app.id]

    async def test_repeated_tenant_confirmation_while_awaiting_landlord(
        self, coordinator, repo, make_application, tenant_id
    ):
        app = make_application(status=S.APPROVED_BY_LANDLORD)
        await repo.add(app)

        await coordinator.confirm(app.id, tenant_id, ActorRole.TENANT)
        again = await coordinator.confirm(app.id, tenant_id, ActorRole.TENANT)

        assert again.status is S.AWAITING_CONFIRMATION
        assert again.version == 2

    async def test_provisioning_failure_raises(
        self, coordinator, repo, outbox, rentals, make_application, tenant_id
    ):
        app = make_application(platform=False, status=S.APPROVED_BY_TENANT)
        await repo.add(app)
        rentals.fail = True

        with pytest.raises(ProvisioningFailed):
            await coordinator.confirm(app.id, tenant_id, ActorRole.TENANT)

        # Event is never appended; the unit of work is expected to roll back
        assert outbox.of_type(ApplicationConfirmed) == []

    async def test_confirmed_application_missing_rental_is_completed_on_retry(
        self, coordinator, repo, rentals, make_application, tenant_id
    ):
        app = make_application(
            platform=False, status=S.CONFIRMED, confirmed_by_tenant=True, version=3
        )
        await repo.add(app)

        result = await coordinator.confirm(app.id, tenant_id, ActorRole.TENANT)

        assert result.rental_id is not None
        assert repo.rows[app.id].rental_id == result.rental_id
        assert rentals.calls == [app.id]


@pytest.mark.asyncio
class TestCancel:
    async def test_applicant_cancels_pending(
        self, coordinator, repo, outbox, make_application, applicant_id
    ):
        app = make_application()
        await repo.add(app)

        result = await coordinator.cancel(app.id, applicant_id)

        assert result.status is S.CANCELLED
        assert repo.rows[app.id].status is S.CANCELLED
        assert isinstance(outbox.events[0], ApplicationCancelled)

    async def test_only_applicant_cancels(self, coordinator, repo, make_application, tenant_id):
        app = make_application()
        await repo.add(app)

        with pytest.raises(Forbidden):
            await coordinator.cancel(app.id, tenant_id)

    async def test_cancel_after_approval_is_invalid(
        self, coordinator, repo, make_application, applicant_id
    ):
        app = make_application(status=S.APPROVED_BY_TENANT)
        await repo.add(app)

        with pytest.raises(InvalidTransition):
            await coordinator.cancel(app.id, applicant_id)


@pytest.mark.asyncio
class TestExpire:
    async def test_expire_records_system_actor(self, coordinator, repo, outbox, make_application):
        app = make_application(status=S.APPROVED_BY_TENANT)
        await repo.add(app)

        await coordinator.expire(app, datetime.now(UTC))

        assert repo.rows[app.id].status is S.EXPIRED
        (entry,) = repo.responses
        assert entry.actor_id == SYSTEM_USER_ID
        assert entry.role is ActorRole.SYSTEM
        assert entry.action is Action.TIMEOUT
        (event,) = outbox.events
        assert isinstance(event, ApplicationExpired)


@pytest.mark.asyncio
class TestUpdateProfile:
    async def test_applicant_edits_pending(
        self, coordinator, repo, outbox, make_application, applicant_id, profile
    ):
        app = make_application()
        await repo.add(app)

        changed = profile.model_copy(update={"intended_stay_months": 6})
        result = await coordinator.update_profile(app.id, applicant_id, changed)

        assert result.profile.intended_stay_months == 6
        assert repo.rows[app.id].version == 2
        assert outbox.events == []

    async def test_other_users_cannot_edit(
        self, coordinator, repo, make_application, tenant_id, profile
    ):
        app = make_application()
        await repo.add(app)

        with pytest.raises(Forbidden):
            await coordinator.update_profile(app.id, tenant_id, profile)


@pytest.mark.asyncio
class TestBulkRespond:
    async def test_each_id_succeeds_or_fails_on_its_own(
        self, coordinator, repo, make_application, tenant_id
    ):
        ok_1 = make_application()
        ok_2 = make_application()
        done = make_application(status=S.CANCELLED)
        for app in (ok_1, ok_2, done):
            await repo.add(app)
        missing = ApplicationId.generate()

        outcome = await coordinator.bulk_respond(
            [ok_1.id, done.id, missing, ok_2.id], tenant_id, ActorRole.TENANT, Decision.REJECT
        )

        assert outcome.updated_count == 2
        assert outcome.failures == {
            str(done.id): "AlreadyTerminal",
            str(missing): "NotFoundError",
        }
        assert repo.rows[ok_1.id].status is S.REJECTED_BY_TENANT
        assert repo.rows[ok_2.id].status is S.REJECTED_BY_TENANT


@pytest.mark.asyncio
class TestRaces:
    async def test_concurrent_approve_and_cancel_exactly_one_wins(
        self, coordinator, repo, outbox, make_application, applicant_id, tenant_id
    ):
        app = make_application()
        await repo.add(app)

        results = await asyncio.gather(
            coordinator.respond(app.id, tenant_id, ActorRole.TENANT, Decision.APPROVE),
            coordinator.cancel(app.id, applicant_id),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], ConcurrentModification)

        stored = repo.rows[app.id]
        assert stored.version == 2
        assert stored.status in (S.APPROVED_BY_TENANT, S.CANCELLED)
        assert len(repo.responses) == 1
        assert len(outbox.events) == 1

    async def test_late_action_after_terminal_write_is_rejected(
        self, coordinator, repo, make_application, applicant_id, tenant_id
    ):
        app = make_application()
        await repo.add(app)

        await coordinator.cancel(app.id, applicant_id)

        with pytest.raises(AlreadyTerminal):
            await coordinator.respond(app.id, tenant_id, ActorRole.TENANT, Decision.APPROVE)
        assert repo.rows[app.id].status is S.CANCELLED
