from enum import StrEnum

from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.roommate.service.application import ApplicationService
from roomshare.domain.shared.authorization.gate import at_least
from roomshare.domain.shared.query import Query, QueryHandler, Result


class StatisticsScope(StrEnum):
    MY_APPLICATIONS = "my-applications"
    FOR_MY_POSTS = "for-my-posts"


class GetStatistics(Query):
    scope: StatisticsScope


class Statistics(Result):
    total: int
    pending: int
    approved: int
    rejected: int
    cancelled: int
    expired: int
    confirmed: int


class GetStatisticsHandler(QueryHandler[GetStatistics, Statistics]):
    __auth__ = at_least(Role.USER)
    principal: Principal
    service: ApplicationService

    async def run(self, cmd: GetStatistics) -> Statistics:
        if cmd.scope is StatisticsScope.MY_APPLICATIONS:
            stats = await self.service.statistics(applicant_id=self.principal.user_id)
        else:
            stats = await self.service.statistics(tenant_id=self.principal.user_id)
        return Statistics(**stats.model_dump())
