import logfire

from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.roommate.model.value import ActorRole, ApplicationId, Decision
from roomshare.domain.roommate.query.view import ApplicationView
from roomshare.domain.roommate.service.coordinator import ApprovalCoordinator
from roomshare.domain.shared.authorization.gate import at_least
from roomshare.domain.shared.command import Command, CommandHandler, Result


class RespondToApplication(Command):
    application_id: ApplicationId
    role: ActorRole
    decision: Decision
    message: str | None = None


class ApplicationUpdated(Result):
    application: ApplicationView


class RespondHandler(CommandHandler[RespondToApplication, ApplicationUpdated]):
    __auth__ = at_least(Role.USER)
    principal: Principal
    coordinator: ApprovalCoordinator

    async def run(self, cmd: RespondToApplication) -> ApplicationUpdated:
        with logfire.span("RespondToApplication", application_id=str(cmd.application_id)):
            application = await self.coordinator.respond(
                cmd.application_id,
                self.principal.user_id,
                cmd.role,
                cmd.decision,
                cmd.message,
            )
            return ApplicationUpdated(application=ApplicationView.of(application))
