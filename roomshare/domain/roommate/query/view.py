from datetime import datetime

from pydantic import BaseModel

from roomshare.domain.auth.model.value import UserId
from roomshare.domain.roommate.model.aggregate import RoommateApplication
from roomshare.domain.roommate.model.value import (
    ApplicantProfile,
    ApplicationId,
    ApplicationStatus,
    PartyResponse,
    PostId,
    RentalId,
    RentalTerms,
)
from roomshare.domain.roommate.service.application import ApplicationPage
from roomshare.domain.shared.query import Result


class ApplicationView(BaseModel):
    id: ApplicationId
    post_id: PostId
    applicant_id: UserId
    tenant_id: UserId
    landlord_id: UserId | None
    is_platform_room: bool
    status: ApplicationStatus
    profile: ApplicantProfile
    terms: RentalTerms
    tenant_response: PartyResponse | None
    landlord_response: PartyResponse | None
    confirmed_by_tenant: bool
    confirmed_by_landlord: bool
    confirmed_at: datetime | None
    rental_id: RentalId | None
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    version: int

    @classmethod
    def of(cls, app: RoommateApplication) -> "ApplicationView":
        return cls(
            id=app.id,
            post_id=app.post_id,
            applicant_id=app.applicant_id,
            tenant_id=app.tenant_id,
            landlord_id=app.landlord_id,
            is_platform_room=app.is_platform_room,
            status=app.status,
            profile=app.profile,
            terms=app.terms,
            tenant_response=app.tenant_response,
            landlord_response=app.landlord_response,
            confirmed_by_tenant=app.confirmed_by_tenant,
            confirmed_by_landlord=app.confirmed_by_landlord,
            confirmed_at=app.confirmed_at,
            rental_id=app.rental_id,
            created_at=app.created_at,
            updated_at=app.updated_at,
            expires_at=app.expires_at,
            version=app.version,
        )


class ApplicationList(Result):
    items: list[ApplicationView]
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def of(cls, page: ApplicationPage) -> "ApplicationList":
        return cls(
            items=[ApplicationView.of(a) for a in page.items],
            page=page.page,
            limit=page.limit,
            total=page.total,
            total_pages=page.total_pages,
        )
