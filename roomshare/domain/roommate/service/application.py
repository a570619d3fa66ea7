"""ApplicationService - submission and read side of roommate applications."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import NewType
from uuid import uuid4

from roomshare.domain.auth.model.principal import Principal
from roomshare.domain.auth.model.role import Role
from roomshare.domain.auth.model.value import UserId
from roomshare.domain.roommate.event.submitted import ApplicationSubmitted
from roomshare.domain.roommate.model.aggregate import RoommateApplication
from roomshare.domain.roommate.model.value import (
    ApplicantProfile,
    ApplicationFilter,
    ApplicationId,
    ApplicationStatistics,
    ApplicationStatus,
    PostId,
    PostStatus,
    ResponseLogEntry,
)
from roomshare.domain.roommate.port.post_directory import PostDirectory
from roomshare.domain.roommate.port.repository import ApplicationRepository
from roomshare.domain.shared.error import (
    ConflictError,
    Forbidden,
    NotFoundError,
    PostNotAcceptingApplications,
    ValidationError,
)
from roomshare.domain.shared.event import EventId
from roomshare.domain.shared.outbox import Outbox
from roomshare.domain.shared.service import Service

logger = logging.getLogger(__name__)

ApplicationTtl = NewType("ApplicationTtl", timedelta)

S = ApplicationStatus

_APPROVED = (S.APPROVED_BY_TENANT, S.APPROVED_BY_LANDLORD, S.AWAITING_CONFIRMATION)
_REJECTED = (S.REJECTED_BY_TENANT, S.REJECTED_BY_LANDLORD)


@dataclass(frozen=True)
class ApplicationPage:
    items: list[RoommateApplication]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)


class ApplicationService(Service):
    repo: ApplicationRepository
    posts: PostDirectory
    outbox: Outbox
    ttl: ApplicationTtl

    async def apply(
        self, applicant_id: UserId, post_id: PostId, profile: ApplicantProfile
    ) -> RoommateApplication:
        """Submit a new application to an active seeking post.

        The room's kind and landlord are resolved once here and frozen on the
        application; later changes to the post do not reroute it.
        """
        post = await self.posts.get_post(post_id)
        if post is None:
            raise NotFoundError(f"Seeking post not found: {post_id}")
        if post.status is not PostStatus.ACTIVE:
            raise PostNotAcceptingApplications(f"Post {post_id} is {post.status}")
        if post.owner_id == applicant_id:
            raise ValidationError("Cannot apply to your own post", field="post_id")
        if await self.repo.find_open(post_id, applicant_id) is not None:
            raise ConflictError(f"An open application to post {post_id} already exists")

        ownership = await self.posts.resolve_room_ownership(post)
        application = RoommateApplication.submit(
            post_id=post_id,
            applicant_id=applicant_id,
            tenant_id=post.owner_id,
            landlord_id=ownership.landlord_id,
            is_platform_room=ownership.is_platform_room,
            profile=profile,
            terms=post.terms,
            now=datetime.now(UTC),
            ttl=self.ttl,
        )
        await self.repo.add(application)

        await self.outbox.append(
            ApplicationSubmitted(
                id=EventId(uuid4()),
                application_id=application.id,
                post_id=post_id,
                status=application.status,
                actor_id=applicant_id,
                applicant_id=applicant_id,
                tenant_id=application.tenant_id,
                landlord_id=application.landlord_id,
                applicant_name=profile.full_name,
                is_urgent=profile.is_urgent,
            )
        )
        logger.info(
            "Application %s submitted to post %s (platform=%s)",
            application.id,
            post_id,
            application.is_platform_room,
        )
        return application

    async def get(
        self, application_id: ApplicationId, viewer: Principal
    ) -> tuple[RoommateApplication, list[ResponseLogEntry]]:
        application = await self.repo.get(application_id)
        if application is None:
            raise NotFoundError(f"Application not found: {application_id}")
        parties = {application.applicant_id, application.tenant_id, application.landlord_id}
        if viewer.user_id not in parties and not viewer.has_role(Role.ADMIN):
            raise Forbidden(f"User {viewer.user_id} is not a party to application {application_id}")
        return application, await self.repo.list_responses(application_id)

    async def list_for_applicant(
        self, applicant_id: UserId, filter: ApplicationFilter
    ) -> ApplicationPage:
        items, total = await self.repo.list_for_applicant(applicant_id, filter)
        return _page(items, total, filter)

    async def list_for_post(
        self, post_id: PostId, owner_id: UserId, filter: ApplicationFilter
    ) -> ApplicationPage:
        post = await self.posts.get_post(post_id)
        if post is None:
            raise NotFoundError(f"Seeking post not found: {post_id}")
        if post.owner_id != owner_id:
            raise Forbidden(f"User {owner_id} does not own post {post_id}")
        items, total = await self.repo.list_for_post(post_id, filter)
        return _page(items, total, filter)

    async def list_for_tenant(
        self, tenant_id: UserId, filter: ApplicationFilter
    ) -> ApplicationPage:
        items, total = await self.repo.list_for_tenant(tenant_id, filter)
        return _page(items, total, filter)

    async def list_pending_for_landlord(
        self, landlord_id: UserId, filter: ApplicationFilter
    ) -> ApplicationPage:
        items, total = await self.repo.list_pending_for_landlord(landlord_id, filter)
        return _page(items, total, filter)

    async def statistics(
        self,
        *,
        applicant_id: UserId | None = None,
        tenant_id: UserId | None = None,
    ) -> ApplicationStatistics:
        counts = await self.repo.count_by_status(applicant_id=applicant_id, tenant_id=tenant_id)
        return ApplicationStatistics(
            total=sum(counts.values()),
            pending=counts.get(S.PENDING, 0),
            approved=sum(counts.get(s, 0) for s in _APPROVED),
            rejected=sum(counts.get(s, 0) for s in _REJECTED),
            cancelled=counts.get(S.CANCELLED, 0),
            expired=counts.get(S.EXPIRED, 0),
            confirmed=counts.get(S.CONFIRMED, 0),
        )


def _page(
    items: list[RoommateApplication], total: int, filter: ApplicationFilter
) -> ApplicationPage:
    return ApplicationPage(items=items, page=filter.page, limit=filter.limit, total=total)
