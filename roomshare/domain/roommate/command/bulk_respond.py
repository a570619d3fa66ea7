import logfire
from pydantic import Field

from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.roommate.model.value import ActorRole, ApplicationId, Decision
from roomshare.domain.roommate.service.coordinator import ApprovalCoordinator
from roomshare.domain.shared.authorization.gate import at_least
from roomshare.domain.shared.command import Command, CommandHandler, Result


class BulkRespond(Command):
    application_ids: list[ApplicationId] = Field(min_length=1, max_length=100)
    decision: Decision
    message: str | None = None
    role: ActorRole = ActorRole.TENANT


class BulkResponded(Result):
    updated_count: int
    failures: dict[str, str]


class BulkRespondHandler(CommandHandler[BulkRespond, BulkResponded]):
    __auth__ = at_least(Role.USER)
    principal: Principal
    coordinator: ApprovalCoordinator

    async def run(self, cmd: BulkRespond) -> BulkResponded:
        with logfire.span("BulkRespond", count=len(cmd.application_ids), decision=cmd.decision):
            outcome = await self.coordinator.bulk_respond(
                cmd.application_ids,
                self.principal.user_id,
                cmd.role,
                cmd.decision,
                cmd.message,
            )
            return BulkResponded(updated_count=outcome.updated_count, failures=outcome.failures)
