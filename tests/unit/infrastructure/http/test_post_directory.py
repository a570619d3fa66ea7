"""Unit tests for HttpPostDirectory adapter."""

from decimal import Decimal
from uuid import uuid4

import httpx
import pytest

from roomshare.domain.roommate.model.value import PostId, PostStatus
from roomshare.domain.shared.error import ExternalServiceError
from roomshare.infrastructure.http.post_directory import HttpPostDirectory

BASE_URL = "http://listings.test"


def post_body(post_id, owner_id, room_instance_id=None, **extra) -> dict:  # noqa: ANN001, ANN003
    body = {
        "id": str(post_id),
        "userId": str(owner_id),
        "status": "active",
        "roomInstanceId": str(room_instance_id) if room_instance_id else None,
        "monthlyRent": 3500000,
        "depositAmount": "1000000",
        "utilityCostPerPerson": 250000.5,
    }
    body.update(extra)
    return body


def directory(handler) -> HttpPostDirectory:  # noqa: ANN001
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpPostDirectory(client=client, base_url=f"{BASE_URL}/")


@pytest.mark.asyncio
class TestGetPost:
    async def test_parses_post(self):
        post_id, owner_id, room_id = uuid4(), uuid4(), uuid4()
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=post_body(post_id, owner_id, room_id))

        post = await directory(handler).get_post(PostId(post_id))

        assert seen == [f"{BASE_URL}/api/roommate-seeking-posts/{post_id}"]
        assert post is not None
        assert post.owner_id.root == owner_id
        assert post.status is PostStatus.ACTIVE
        assert post.room_instance_id == room_id
        assert post.terms.monthly_rent == Decimal("3500000")
        assert post.terms.deposit_amount == Decimal("1000000")
        assert post.terms.utility_cost_per_person == Decimal("250000.5")
        assert post.terms.currency == "VND"

    async def test_unwraps_data_envelope(self):
        post_id, owner_id = uuid4(), uuid4()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": post_body(post_id, owner_id, currency="USD")})

        post = await directory(handler).get_post(PostId(post_id))

        assert post is not None
        assert post.room_instance_id is None
        assert post.terms.currency == "USD"

    async def test_accepts_tenant_id_field(self):
        post_id, owner_id = uuid4(), uuid4()
        body = post_body(post_id, owner_id)
        body["tenantId"] = body.pop("userId")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        post = await directory(handler).get_post(PostId(post_id))
        assert post is not None
        assert post.owner_id.root == owner_id

    async def test_not_found_is_none(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "not found"})

        assert await directory(handler).get_post(PostId(uuid4())) is None

    async def test_server_error_is_external_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502)

        with pytest.raises(ExternalServiceError):
            await directory(handler).get_post(PostId(uuid4()))

    async def test_malformed_post_is_external_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "nope"})

        with pytest.raises(ExternalServiceError):
            await directory(handler).get_post(PostId(uuid4()))

    @pytest.mark.parametrize("payload", [[{"id": "p-1"}], "active", 42])
    async def test_non_object_body_is_external_failure(self, payload):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        with pytest.raises(ExternalServiceError):
            await directory(handler).get_post(PostId(uuid4()))

    async def test_invalid_json_is_external_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>")

        with pytest.raises(ExternalServiceError):
            await directory(handler).get_post(PostId(uuid4()))

    async def test_connection_error_is_external_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ExternalServiceError):
            await directory(handler).get_post(PostId(uuid4()))


@pytest.mark.asyncio
class TestResolveRoomOwnership:
    async def _post(self, room_instance_id):  # noqa: ANN001
        post_id, owner_id = uuid4(), uuid4()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=post_body(post_id, owner_id, room_instance_id))

        return await directory(handler).get_post(PostId(post_id))

    async def test_no_room_instance_is_external(self):
        post = await self._post(None)

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no lookup expected")

        ownership = await directory(handler).resolve_room_ownership(post)
        assert ownership.is_platform_room is False
        assert ownership.landlord_id is None

    async def test_platform_room_reports_landlord(self):
        room_id, landlord_id = uuid4(), uuid4()
        post = await self._post(room_id)

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/api/rooms/instance/{room_id}"
            room = {"id": str(room_id), "ownerId": str(landlord_id)}
            return httpx.Response(200, json={"data": room})

        ownership = await directory(handler).resolve_room_ownership(post)
        assert ownership.is_platform_room is True
        assert ownership.landlord_id.root == landlord_id

    async def test_unknown_room_instance_is_external(self):
        post = await self._post(uuid4())

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        ownership = await directory(handler).resolve_room_ownership(post)
        assert ownership.is_platform_room is False

    async def test_room_without_owner_is_external_failure(self):
        post = await self._post(uuid4())

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "room"})

        with pytest.raises(ExternalServiceError):
            await directory(handler).resolve_room_ownership(post)

    async def test_room_owner_that_is_not_a_user_id_is_external_failure(self):
        post = await self._post(uuid4())

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ownerId": "landlord-7"})

        with pytest.raises(ExternalServiceError):
            await directory(handler).resolve_room_ownership(post)
