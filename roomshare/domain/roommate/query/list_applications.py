from pydantic import Field

from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.roommate.model.value import ApplicationFilter, ApplicationStatus, PostId
from roomshare.domain.roommate.query.view import ApplicationList
from roomshare.domain.roommate.service.application import ApplicationService
from roomshare.domain.shared.authorization.gate import at_least
from roomshare.domain.shared.query import Query, QueryHandler


class _Filtered(Query):
    status: ApplicationStatus | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @property
    def filter(self) -> ApplicationFilter:
        return ApplicationFilter(status=self.status, page=self.page, limit=self.limit)


class ListMyApplications(_Filtered):
    pass


class ListForMyPosts(_Filtered):
    pass


class ListForPost(_Filtered):
    post_id: PostId


class ListPendingForLandlord(_Filtered):
    pass


class ListMyApplicationsHandler(QueryHandler[ListMyApplications, ApplicationList]):
    __auth__ = at_least(Role.USER)
    principal: Principal
    service: ApplicationService

    async def run(self, cmd: ListMyApplications) -> ApplicationList:
        page = await self.service.list_for_applicant(self.principal.user_id, cmd.filter)
        return ApplicationList.of(page)


class ListForMyPostsHandler(QueryHandler[ListForMyPosts, ApplicationList]):
    """Applications received on any post the caller owns."""

    __auth__ = at_least(Role.USER)
    principal: Principal
    service: ApplicationService

    async def run(self, cmd: ListForMyPosts) -> ApplicationList:
        page = await self.service.list_for_tenant(self.principal.user_id, cmd.filter)
        return ApplicationList.of(page)


class ListForPostHandler(QueryHandler[ListForPost, ApplicationList]):
    __auth__ = at_least(Role.USER)
    principal: Principal
    service: ApplicationService

    async def run(self, cmd: ListForPost) -> ApplicationList:
        page = await self.service.list_for_post(cmd.post_id, self.principal.user_id, cmd.filter)
        return ApplicationList.of(page)


class ListPendingForLandlordHandler(QueryHandler[ListPendingForLandlord, ApplicationList]):
    __auth__ = at_least(Role.LANDLORD)
    principal: Principal
    service: ApplicationService

    async def run(self, cmd: ListPendingForLandlord) -> ApplicationList:
        page = await self.service.list_pending_for_landlord(self.principal.user_id, cmd.filter)
        return ApplicationList.of(page)
