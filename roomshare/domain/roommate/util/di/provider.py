from datetime import timedelta

from dishka import provide

from roomshare.config import Config
from roomshare.domain.roommate.command.apply import ApplyHandler
from roomshare.domain.roommate.command.bulk_respond import BulkRespondHandler
from roomshare.domain.roommate.command.cancel import CancelHandler
from roomshare.domain.roommate.command.confirm import ConfirmHandler
from roomshare.domain.roommate.command.respond import RespondHandler
from roomshare.domain.roommate.command.update import UpdateApplicationHandler
from roomshare.domain.roommate.query.get_application import GetApplicationHandler
from roomshare.domain.roommate.query.list_applications import (
    ListForMyPostsHandler,
    ListForPostHandler,
    ListMyApplicationsHandler,
    ListPendingForLandlordHandler,
)
from roomshare.domain.roommate.query.statistics import GetStatisticsHandler
from roomshare.domain.roommate.service.application import ApplicationService, ApplicationTtl
from roomshare.domain.roommate.service.confirmation import ConfirmationGate
from roomshare.domain.roommate.service.coordinator import ApprovalCoordinator
from roomshare.util.di.base import Provider
from roomshare.util.di.scope import Scope


class RoommateProvider(Provider):
    # Services
    application_service = provide(ApplicationService, scope=Scope.UOW)
    confirmation_gate = provide(ConfirmationGate, scope=Scope.UOW)
    coordinator = provide(ApprovalCoordinator, scope=Scope.UOW)

    # Command Handlers
    apply_handler = provide(ApplyHandler, scope=Scope.UOW)
    respond_handler = provide(RespondHandler, scope=Scope.UOW)
    confirm_handler = provide(ConfirmHandler, scope=Scope.UOW)
    cancel_handler = provide(CancelHandler, scope=Scope.UOW)
    update_handler = provide(UpdateApplicationHandler, scope=Scope.UOW)
    bulk_respond_handler = provide(BulkRespondHandler, scope=Scope.UOW)

    # Query Handlers
    get_handler = provide(GetApplicationHandler, scope=Scope.UOW)
    list_mine_handler = provide(ListMyApplicationsHandler, scope=Scope.UOW)
    list_for_my_posts_handler = provide(ListForMyPostsHandler, scope=Scope.UOW)
    list_for_post_handler = provide(ListForPostHandler, scope=Scope.UOW)
    list_pending_landlord_handler = provide(ListPendingForLandlordHandler, scope=Scope.UOW)
    statistics_handler = provide(GetStatisticsHandler, scope=Scope.UOW)

    @provide(scope=Scope.APP)
    def get_application_ttl(self, config: Config) -> ApplicationTtl:
        return ApplicationTtl(timedelta(days=config.workflow.application_ttl_days))
