from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.roommate.model.value import ApplicationId, ResponseLogEntry
from roomshare.domain.roommate.query.view import ApplicationView
from roomshare.domain.roommate.service.application import ApplicationService
from roomshare.domain.shared.authorization.gate import at_least
from roomshare.domain.shared.query import Query, QueryHandler, Result


class GetApplication(Query):
    application_id: ApplicationId


class ApplicationDetail(Result):
    application: ApplicationView
    responses: list[ResponseLogEntry]


class GetApplicationHandler(QueryHandler[GetApplication, ApplicationDetail]):
    __auth__ = at_least(Role.USER)
    principal: Principal
    service: ApplicationService

    async def run(self, cmd: GetApplication) -> ApplicationDetail:
        application, responses = await self.service.get(cmd.application_id, self.principal)
        return ApplicationDetail(application=ApplicationView.of(application), responses=responses)
