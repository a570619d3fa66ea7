"""HTTP adapter for the PostDirectory port (listings service)."""

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

import httpx

from roomshare.domain.auth.model.value import UserId
from roomshare.domain.roommate.model.value import (
    PostId,
    PostStatus,
    RentalTerms,
    RoomOwnership,
    SeekingPost,
)
from roomshare.domain.roommate.port.post_directory import PostDirectory
from roomshare.domain.shared.error import ExternalServiceError

logger = logging.getLogger(__name__)


class HttpPostDirectory(PostDirectory):
    """Reads seeking posts and room instances from the listings API.

    Responses may be wrapped as ``{"data": {...}}``; both shapes are accepted.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def get_post(self, post_id: PostId) -> SeekingPost | None:
        body = await self._get_json(f"/api/roommate-seeking-posts/{post_id}")
        if body is None:
            return None
        return _to_post(body)

    async def resolve_room_ownership(self, post: SeekingPost) -> RoomOwnership:
        if post.room_instance_id is None:
            return RoomOwnership(is_platform_room=False)

        body = await self._get_json(f"/api/rooms/instance/{post.room_instance_id}")
        if body is None:
            logger.info(
                "Room instance %s of post %s is not on the platform",
                post.room_instance_id,
                post.id,
            )
            return RoomOwnership(is_platform_room=False)

        owner = body.get("ownerId") or body.get("landlordId")
        if owner is None:
            raise ExternalServiceError(
                f"Room instance {post.room_instance_id} has no owner in listings response"
            )
        try:
            landlord_id = UserId(UUID(str(owner)))
        except ValueError as e:
            raise ExternalServiceError(f"Room instance owner is not a user id: {owner}") from e
        return RoomOwnership(is_platform_room=True, landlord_id=landlord_id)

    async def _get_json(self, path: str) -> dict[str, Any] | None:
        try:
            response = await self._client.get(f"{self._base_url}{path}")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Listings service request failed: {e}") from e
        except ValueError as e:
            raise ExternalServiceError(f"Listings service returned invalid JSON: {e}") from e
        if not isinstance(body, dict):
            raise ExternalServiceError(f"Listings service returned a non-object body for {path}")
        if isinstance(body.get("data"), dict):
            return body["data"]
        return body


def _to_post(body: dict[str, Any]) -> SeekingPost:
    try:
        room_instance_id = body.get("roomInstanceId")
        return SeekingPost(
            id=PostId(UUID(body["id"])),
            owner_id=UserId(UUID(body.get("userId") or body["tenantId"])),
            status=PostStatus(body["status"]),
            room_instance_id=UUID(room_instance_id) if room_instance_id else None,
            terms=RentalTerms(
                monthly_rent=Decimal(str(body["monthlyRent"])),
                deposit_amount=Decimal(str(body.get("depositAmount", 0))),
                utility_cost_per_person=Decimal(str(body.get("utilityCostPerPerson", 0))),
                currency=body.get("currency") or "VND",
            ),
        )
    except (KeyError, ValueError) as e:
        raise ExternalServiceError(f"Malformed seeking post from listings service: {e}") from e
