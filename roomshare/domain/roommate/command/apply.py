import logfire

from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.roommate.model.value import (
    ApplicantProfile,
    ApplicationId,
    ApplicationStatus,
    PostId,
)
from roomshare.domain.roommate.service.application import ApplicationService
from roomshare.domain.shared.authorization.gate import at_least
from roomshare.domain.shared.command import Command, CommandHandler, Result


class ApplyForRoom(Command):
    post_id: PostId
    profile: ApplicantProfile


class ApplicationCreated(Result):
    id: ApplicationId
    status: ApplicationStatus
    is_platform_room: bool


class ApplyHandler(CommandHandler[ApplyForRoom, ApplicationCreated]):
    __auth__ = at_least(Role.USER)
    principal: Principal
    service: ApplicationService

    async def run(self, cmd: ApplyForRoom) -> ApplicationCreated:
        with logfire.span("ApplyForRoom", post_id=str(cmd.post_id)):
            application = await self.service.apply(self.principal.user_id, cmd.post_id, cmd.profile)
            return ApplicationCreated(
                id=application.id,
                status=application.status,
                is_platform_room=application.is_platform_room,
            )
