"""Roommate application REST routes."""

from uuid import UUID

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter, Query
from pydantic import BaseModel

from roomshare.domain.roommate.command.apply import (
    ApplicationCreated,
    ApplyForRoom,
    ApplyHandler,
)
from roomshare.domain.roommate.command.bulk_respond import (
    BulkRespond,
    BulkRespondHandler,
    BulkResponded,
)
from roomshare.domain.roommate.command.cancel import CancelApplication, CancelHandler
from roomshare.domain.roommate.command.confirm import ConfirmApplication, ConfirmHandler
from roomshare.domain.roommate.command.respond import (
    ApplicationUpdated,
    RespondHandler,
    RespondToApplication,
)
from roomshare.domain.roommate.command.update import (
    UpdateApplication,
    UpdateApplicationHandler,
)
from roomshare.domain.roommate.model.value import (
    ActorRole,
    ApplicantProfile,
    ApplicationId,
    ApplicationStatus,
    Decision,
    PostId,
)
from roomshare.domain.roommate.query.get_application import (
    ApplicationDetail,
    GetApplication,
    GetApplicationHandler,
)
from roomshare.domain.roommate.query.list_applications import (
    ListForMyPosts,
    ListForMyPostsHandler,
    ListForPost,
    ListForPostHandler,
    ListMyApplications,
    ListMyApplicationsHandler,
    ListPendingForLandlord,
    ListPendingForLandlordHandler,
)
from roomshare.domain.roommate.query.statistics import (
    GetStatistics,
    GetStatisticsHandler,
    Statistics,
    StatisticsScope,
)
from roomshare.domain.roommate.query.view import ApplicationList

router = APIRouter(
    prefix="/roommate-applications", tags=["Roommate applications"], route_class=DishkaRoute
)


class RespondBody(BaseModel):
    role: ActorRole = ActorRole.TENANT
    decision: Decision
    message: str | None = None


class ConfirmBody(BaseModel):
    role: ActorRole = ActorRole.TENANT


class UpdateBody(BaseModel):
    profile: ApplicantProfile


@router.post("", response_model=ApplicationCreated, status_code=201)
async def apply(
    body: ApplyForRoom,
    handler: FromDishka[ApplyHandler],
) -> ApplicationCreated:
    return await handler.run(body)


@router.get("/my-applications", response_model=ApplicationList)
async def list_my_applications(
    handler: FromDishka[ListMyApplicationsHandler],
    status: ApplicationStatus | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> ApplicationList:
    return await handler.run(ListMyApplications(status=status, page=page, limit=limit))


@router.get("/for-my-posts", response_model=ApplicationList)
async def list_for_my_posts(
    handler: FromDishka[ListForMyPostsHandler],
    status: ApplicationStatus | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> ApplicationList:
    return await handler.run(ListForMyPosts(status=status, page=page, limit=limit))


@router.get("/pending-landlord", response_model=ApplicationList)
async def list_pending_for_landlord(
    handler: FromDishka[ListPendingForLandlordHandler],
    status: ApplicationStatus | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> ApplicationList:
    return await handler.run(ListPendingForLandlord(status=status, page=page, limit=limit))


@router.get("/posts/{post_id}", response_model=ApplicationList)
async def list_for_post(
    post_id: UUID,
    handler: FromDishka[ListForPostHandler],
    status: ApplicationStatus | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> ApplicationList:
    return await handler.run(
        ListForPost(post_id=PostId(post_id), status=status, page=page, limit=limit)
    )


@router.get("/statistics/{scope}", response_model=Statistics)
async def statistics(
    scope: StatisticsScope,
    handler: FromDishka[GetStatisticsHandler],
) -> Statistics:
    return await handler.run(GetStatistics(scope=scope))


@router.post("/bulk-respond", response_model=BulkResponded)
async def bulk_respond(
    body: BulkRespond,
    handler: FromDishka[BulkRespondHandler],
) -> BulkResponded:
    return await handler.run(body)


@router.get("/{application_id}", response_model=ApplicationDetail)
async def get_application(
    application_id: UUID,
    handler: FromDishka[GetApplicationHandler],
) -> ApplicationDetail:
    return await handler.run(GetApplication(application_id=ApplicationId(application_id)))


@router.patch("/{application_id}", response_model=ApplicationUpdated)
async def update_application(
    application_id: UUID,
    body: UpdateBody,
    handler: FromDishka[UpdateApplicationHandler],
) -> ApplicationUpdated:
    return await handler.run(
        UpdateApplication(application_id=ApplicationId(application_id), profile=body.profile)
    )


@router.patch("/{application_id}/respond", response_model=ApplicationUpdated)
async def respond(
    application_id: UUID,
    body: RespondBody,
    handler: FromDishka[RespondHandler],
) -> ApplicationUpdated:
    return await handler.run(
        RespondToApplication(
            application_id=ApplicationId(application_id),
            role=body.role,
            decision=body.decision,
            message=body.message,
        )
    )


@router.patch("/{application_id}/confirm", response_model=ApplicationUpdated)
async def confirm(
    application_id: UUID,
    body: ConfirmBody,
    handler: FromDishka[ConfirmHandler],
) -> ApplicationUpdated:
    return await handler.run(
        ConfirmApplication(application_id=ApplicationId(application_id), role=body.role)
    )


@router.patch("/{application_id}/cancel", response_model=ApplicationUpdated)
async def cancel(
    application_id: UUID,
    handler: FromDishka[CancelHandler],
) -> ApplicationUpdated:
    return await handler.run(CancelApplication(application_id=ApplicationId(application_id)))
