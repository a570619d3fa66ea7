import logfire

from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.roommate.command.respond import ApplicationUpdated
from roomshare.domain.roommate.model.value import ApplicantProfile, ApplicationId
from roomshare.domain.roommate.query.view import ApplicationView
from roomshare.domain.roommate.service.coordinator import ApprovalCoordinator
from roomshare.domain.shared.authorization.gate import at_least
from roomshare.domain.shared.command import Command, CommandHandler


class UpdateApplication(Command):
    application_id: ApplicationId
    profile: ApplicantProfile


class UpdateApplicationHandler(CommandHandler[UpdateApplication, ApplicationUpdated]):
    __auth__ = at_least(Role.USER)
    principal: Principal
    coordinator: ApprovalCoordinator

    async def run(self, cmd: UpdateApplication) -> ApplicationUpdated:
        application = await self.coordinator.update_profile(
            cmd.application_id, self.principal.user_id, cmd.profile
        )
        logfire.info("Application profile updated", application_id=str(cmd.application_id))
        return ApplicationUpdated(application=ApplicationView.of(application))
