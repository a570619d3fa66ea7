import logfire

from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.roommate.command.respond import ApplicationUpdated
from roomshare.domain.roommate.model.value import ActorRole, ApplicationId
from roomshare.domain.roommate.query.view import ApplicationView
from roomshare.domain.roommate.service.coordinator import ApprovalCoordinator
from roomshare.domain.shared.authorization.gate import at_least
from roomshare.domain.shared.command import Command, CommandHandler


class ConfirmApplication(Command):
    application_id: ApplicationId
    role: ActorRole


class ConfirmHandler(CommandHandler[ConfirmApplication, ApplicationUpdated]):
    __auth__ = at_least(Role.USER)
    principal: Principal
    coordinator: ApprovalCoordinator

    async def run(self, cmd: ConfirmApplication) -> ApplicationUpdated:
        with logfire.span("ConfirmApplication", application_id=str(cmd.application_id)):
            application = await self.coordinator.confirm(
                cmd.application_id, self.principal.user_id, cmd.role
            )
            return ApplicationUpdated(application=ApplicationView.of(application))
