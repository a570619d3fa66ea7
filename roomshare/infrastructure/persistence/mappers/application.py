"""Roommate application mapper - converts between domain and persistence."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from roomshare.domain.auth.model.value import UserId
from roomshare.domain.roommate.model.aggregate import RoommateApplication
from roomshare.domain.roommate.model.value import (
    Action,
    ActorRole,
    ApplicantProfile,
    ApplicationId,
    ApplicationStatus,
    PartyResponse,
    PostId,
    RentalId,
    RentalTerms,
    ResponseLogEntry,
)


def _as_utc(value: datetime | str | None) -> datetime | None:
    """SQLite hands back naive (or string) timestamps; everything stored is UTC."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _response(raw: dict[str, Any] | None) -> PartyResponse | None:
    return PartyResponse.model_validate(raw) if raw else None


def row_to_application(row: dict[str, Any]) -> RoommateApplication:
    """Convert database row to RoommateApplication aggregate."""
    landlord_id = row.get("landlord_id")
    rental_id = row.get("rental_id")
    return RoommateApplication(
        id=ApplicationId(UUID(row["id"])),
        post_id=PostId(UUID(row["post_id"])),
        applicant_id=UserId(UUID(row["applicant_id"])),
        tenant_id=UserId(UUID(row["tenant_id"])),
        landlord_id=UserId(UUID(landlord_id)) if landlord_id else None,
        is_platform_room=bool(row["is_platform_room"]),
        profile=ApplicantProfile.model_validate(row["profile"]),
        terms=RentalTerms.model_validate(row["terms"]),
        status=ApplicationStatus(row["status"]),
        tenant_response=_response(row.get("tenant_response")),
        landlord_response=_response(row.get("landlord_response")),
        confirmed_by_tenant=bool(row["confirmed_by_tenant"]),
        confirmed_by_landlord=bool(row["confirmed_by_landlord"]),
        confirmed_at=_as_utc(row.get("confirmed_at")),
        rental_id=RentalId(rental_id) if rental_id else None,
        created_at=_as_utc(row["created_at"]),
        updated_at=_as_utc(row["updated_at"]),
        expires_at=_as_utc(row["expires_at"]),
        version=row["version"],
    )


def application_to_dict(application: RoommateApplication) -> dict[str, Any]:
    """Convert RoommateApplication aggregate to database dict."""
    return {
        "id": str(application.id),
        "post_id": str(application.post_id),
        "applicant_id": str(application.applicant_id),
        "tenant_id": str(application.tenant_id),
        "landlord_id": str(application.landlord_id) if application.landlord_id else None,
        "is_platform_room": application.is_platform_room,
        "status": application.status.value,
        "profile": application.profile.model_dump(mode="json"),
        "terms": application.terms.model_dump(mode="json"),
        "tenant_response": (
            application.tenant_response.model_dump(mode="json")
            if application.tenant_response
            else None
        ),
        "landlord_response": (
            application.landlord_response.model_dump(mode="json")
            if application.landlord_response
            else None
        ),
        "confirmed_by_tenant": application.confirmed_by_tenant,
        "confirmed_by_landlord": application.confirmed_by_landlord,
        "confirmed_at": application.confirmed_at,
        "rental_id": str(application.rental_id) if application.rental_id else None,
        "created_at": application.created_at,
        "updated_at": application.updated_at,
        "expires_at": application.expires_at,
        "version": application.version,
    }


def row_to_response(row: dict[str, Any]) -> ResponseLogEntry:
    return ResponseLogEntry(
        id=UUID(row["id"]),
        application_id=ApplicationId(UUID(row["application_id"])),
        actor_id=UserId(UUID(row["actor_id"])),
        role=ActorRole(row["role"]),
        action=Action(row["action"]),
        message=row.get("message"),
        from_status=ApplicationStatus(row["from_status"]),
        to_status=ApplicationStatus(row["to_status"]),
        version=row["version"],
        created_at=_as_utc(row["created_at"]),
    )


def response_to_dict(entry: ResponseLogEntry) -> dict[str, Any]:
    return {
        "id": str(entry.id),
        "application_id": str(entry.application_id),
        "actor_id": str(entry.actor_id),
        "role": entry.role.value,
        "action": entry.action.value,
        "message": entry.message,
        "from_status": entry.from_status.value,
        "to_status": entry.to_status.value,
        "version": entry.version,
        "created_at": entry.created_at,
    }
