"""
Tests for HttpRpcTransport and RpcRecordSource
"""

import json

import httpx
import pytest

from clinic_archive.clients.records import RpcRecordSource
from clinic_archive.clients.rpc import HttpRpcTransport
from clinic_archive.core.exceptions import RemoteRejectedError, TransportError
from clinic_archive.models import ItemType

BASE_URL = "https://backend.test/rest/v1/rpc"


def make_transport(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpRpcTransport(base_url=BASE_URL, api_key="anon-key", client=client, **kwargs)


class TestHttpRpcTransport:

    @pytest.mark.asyncio
    async def test_posts_params_with_auth_headers(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "data": []})

        transport = make_transport(handler, access_token="user-jwt")
        payload = await transport.call("manage_patient_archives", {"p_action": "list_archived"})

        assert payload == {"success": True, "data": []}
        assert seen["url"] == f"{BASE_URL}/manage_patient_archives"
        assert seen["headers"]["apikey"] == "anon-key"
        assert seen["headers"]["authorization"] == "Bearer user-jwt"
        assert seen["body"] == {"p_action": "list_archived"}

    @pytest.mark.asyncio
    async def test_falls_back_to_api_key_bearer(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={})

        await make_transport(handler).call("fn", {})

        assert seen["auth"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_error_status_is_transport_error(self):
        def handler(request):
            return httpx.Response(404, json={"message": "Could not find the function"})

        with pytest.raises(TransportError, match="HTTP error 404: Could not find the function"):
            await make_transport(handler).call("missing_fn", {})

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TransportError, match="timed out"):
            await make_transport(handler).call("fn", {})

    @pytest.mark.asyncio
    async def test_connection_error_is_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError, match="ConnectError"):
            await make_transport(handler).call("fn", {})

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>gateway</html>")

        with pytest.raises(TransportError, match="Malformed"):
            await make_transport(handler).call("fn", {})

    def test_trailing_slash_is_stripped(self):
        assert HttpRpcTransport(base_url=BASE_URL + "/", api_key="").base_url == BASE_URL


class TestRpcRecordSource:

    @pytest.fixture
    def transport(self):
        class Stub:
            payload = None
            params = None

            async def call(self, function, params):
                self.params = params
                return self.payload

        return Stub()

    @pytest.mark.asyncio
    async def test_current_shape(self, transport, patient):
        transport.payload = {
            "success": True,
            "data": {"items": [{"id": "a"}], "pagination": {"totalCount": 12, "hasMore": True}},
        }
        source = RpcRecordSource(transport, "get_appointments_by_role", extra_params={"p_status": None})

        page = await source.fetch_page(patient, ItemType.APPOINTMENT, offset=10, limit=5)

        assert page.items == [{"id": "a"}]
        assert page.total_count == 12
        assert page.has_more is True
        assert transport.params == {"p_status": None, "p_limit": 5, "p_offset": 10}

    @pytest.mark.asyncio
    async def test_legacy_shape(self, transport, patient):
        transport.payload = {
            "success": True,
            "data": {"feedback_history": [{"id": "f1"}, {"id": "f2"}], "total_count": 2, "has_more": False},
        }
        source = RpcRecordSource(transport, "get_patient_feedback_history", items_key="feedback_history")

        page = await source.fetch_page(patient, ItemType.FEEDBACK, offset=0, limit=50)

        assert [r["id"] for r in page.items] == ["f1", "f2"]
        assert page.total_count == 2
        assert page.has_more is False

    def test_bare_list_has_no_total(self):
        page = RpcRecordSource(None, "fn").parse_page([{"id": "a"}])
        assert page.total_count is None
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_unsuccessful_listing(self, transport, patient):
        transport.payload = {"success": False, "error": "Access denied"}
        source = RpcRecordSource(transport, "get_user_notifications")

        with pytest.raises(RemoteRejectedError, match="Access denied"):
            await source.fetch_page(patient, ItemType.NOTIFICATION, 0, 10)

    def test_malformed_page(self):
        with pytest.raises(TransportError):
            RpcRecordSource(None, "fn").parse_page("nope")
