import logfire

from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.roommate.command.respond import ApplicationUpdated
from roomshare.domain.roommate.model.value import ApplicationId
from roomshare.domain.roommate.query.view import ApplicationView
from roomshare.domain.roommate.service.coordinator import ApprovalCoordinator
from roomshare.domain.shared.authorization.gate import at_least
from roomshare.domain.shared.command import Command, CommandHandler


class CancelApplication(Command):
    application_id: ApplicationId


class CancelHandler(CommandHandler[CancelApplication, ApplicationUpdated]):
    __auth__ = at_least(Role.USER)
    principal: Principal
    coordinator: ApprovalCoordinator

    async def run(self, cmd: CancelApplication) -> ApplicationUpdated:
        with logfire.span("CancelApplication", application_id=str(cmd.application_id)):
            application = await self.coordinator.cancel(cmd.application_id, self.principal.user_id)
            return ApplicationUpdated(application=ApplicationView.of(application))
