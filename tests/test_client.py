"""
Tests for the API client and the keyed screen bindings, against a mocked transport
"""

import httpx
import pytest

from app.client import BoardActions, BoardApiClient
from app.core.responses import err, ok

BASE_URL = "http://board.test/api/v1"


def make_client(handler, token="token-1"):
    return BoardApiClient(base_url=BASE_URL, access_token=token, timeout=5.0, transport=httpx.MockTransport(handler))


class TestBoardApiClient:
    @pytest.mark.asyncio
    async def test_success_returns_json(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[{"id": "g1", "name": "CS 101"}])

        async with make_client(handler) as client:
            result = await client.list_my_groups()

        assert result == ok([{"id": "g1", "name": "CS 101"}])
        assert seen["url"] == f"{BASE_URL}/groups"
        assert seen["auth"] == "Bearer token-1"

    @pytest.mark.asyncio
    async def test_error_detail_becomes_failure(self):
        def handler(request):
            return httpx.Response(403, json={"detail": "Only admins and contributors can create announcements"})

        result = await make_client(handler).create_announcement("g1", "Title", "Body")
        assert result == err("Only admins and contributors can create announcements")

    @pytest.mark.asyncio
    async def test_validation_errors_are_joined(self):
        def handler(request):
            return httpx.Response(422, json={"detail": [
                {"loc": ["body", "code"], "msg": "Field required"},
                {"loc": ["body", "name"], "msg": "String too short"},
            ]})

        result = await make_client(handler).join_group("")
        assert result == err("Field required; String too short")

    @pytest.mark.asyncio
    async def test_no_content(self):
        def handler(request):
            assert request.method == "DELETE"
            return httpx.Response(204)

        assert await make_client(handler).delete_announcement("a1") == ok(None)

    @pytest.mark.asyncio
    async def test_transport_error_becomes_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await make_client(handler).get_group("g1")
        assert result == err("connection refused")

    @pytest.mark.asyncio
    async def test_query_params_skip_none(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"data": [], "total": 0})

        await make_client(handler).list_announcements("g1", page=2, tag_id=None, sort_order="asc")
        assert seen["params"] == {"page": "2", "sort_order": "asc"}

    @pytest.mark.asyncio
    async def test_sign_in_stores_token(self):
        def handler(request):
            if request.url.path.endswith("/auth/login"):
                return httpx.Response(200, json={"access_token": "fresh", "token_type": "bearer"})
            return httpx.Response(200, json={"id": "user-1"})

        client = make_client(handler, token=None)
        assert client._headers() == {}
        result = await client.sign_in("user@example.com", "secret1")
        assert result.success
        assert client._headers() == {"Authorization": "Bearer fresh"}

        await client.sign_out()
        assert client.access_token is None


class TestBoardActions:
    @pytest.fixture
    def api(self):
        calls = []
        announcements = []

        def handler(request):
            calls.append((request.method, request.url.path))
            path = request.url.path
            if request.method == "POST" and path.endswith("/announcements"):
                announcements.append({"id": f"a{len(announcements) + 1}"})
                return httpx.Response(201, json=announcements[-1])
            if path.endswith("/announcements/group/g1"):
                return httpx.Response(200, json={"data": list(announcements), "total": len(announcements)})
            if path.endswith("/announcements/group/g1/pinned"):
                return httpx.Response(200, json=[])
            if path.endswith("/groups/join"):
                return httpx.Response(404, json={"detail": "Invalid group code"})
            if path.endswith("/groups"):
                return httpx.Response(200, json=[{"id": "g1"}])
            return httpx.Response(404, json={"detail": "Not Found"})

        return make_client(handler), calls

    @pytest.mark.asyncio
    async def test_create_announcement_refreshes_lists(self, store, api):
        client, calls = api
        actions = BoardActions(store, client)

        await actions.announcements("g1").execute(page=1)
        assert store.read("announcements-g1").data["total"] == 0

        await actions.create_announcement("g1").execute("Exam moved", "Now on Friday")

        assert store.read("create-announcement-g1").data == {"id": "a1"}
        assert store.read("announcements-g1").data["total"] == 1
        assert store.read("pinned-g1").data == []
        assert ("GET", "/api/v1/announcements/group/g1/pinned") in calls

    @pytest.mark.asyncio
    async def test_failed_join_reports_error_and_skips_refresh(self, store, api):
        client, calls = api
        joined = []
        action = BoardActions(store, client).join_group(on_joined=joined.append)

        await action.execute("BADCODE1")

        assert store.read("join-group").error == "Invalid group code"
        assert joined == []
        assert store.read("my-groups").data is None

    @pytest.mark.asyncio
    async def test_readers_share_my_groups(self, store, api):
        client, _ = api
        actions = BoardActions(store, client)
        await actions.my_groups().execute()
        assert actions.my_groups().data == [{"id": "g1"}]
