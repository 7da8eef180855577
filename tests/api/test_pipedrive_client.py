"""Tests for the Pipedrive HTTP client using httpx's mock transport."""

from __future__ import annotations

import json

import httpx
import pytest

from pipesheet.api.client import (
    PipedriveAuthError,
    PipedriveClient,
    PipedriveError,
    PipedriveRateLimitError,
)
from pipesheet.config import settings

BASE_URL = "https://acme.pipedrive.com/api/v1"


def _client(handler, **kwargs) -> PipedriveClient:
    kwargs.setdefault("api_token", "tok")
    return PipedriveClient(base_url=BASE_URL, page_size=2, transport=httpx.MockTransport(handler), **kwargs)


def _page(items, more=False, next_start=None):
    pagination = {"more_items_in_collection": more}
    if next_start is not None:
        pagination["next_start"] = next_start
    return {"success": True, "data": items, "additional_data": {"pagination": pagination}}


class TestListRecords:
    """Paginated record listing."""

    @pytest.mark.asyncio
    async def test_follows_pagination(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(dict(request.url.params))
            if request.url.params["start"] == "0":
                return httpx.Response(200, json=_page([{"id": 1}, {"id": 2}], more=True, next_start=2))
            return httpx.Response(200, json=_page([{"id": 3}]))

        async with _client(handler) as client:
            records = await client.list_records("deals")

        assert [r["id"] for r in records] == [1, 2, 3]
        assert [p["start"] for p in seen] == ["0", "2"]
        assert all(p["api_token"] == "tok" for p in seen)
        assert "filter_id" not in seen[0]

    @pytest.mark.asyncio
    async def test_filter_and_path(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_page([{"id": 5}]))

        async with _client(handler) as client:
            await client.list_records("persons", filter_id=12)

        assert seen[0].url.path == "/api/v1/persons"
        assert seen[0].url.params["filter_id"] == "12"

    @pytest.mark.asyncio
    async def test_limit_caps_results(self):
        limits = []

        def handler(request: httpx.Request) -> httpx.Response:
            limits.append(request.url.params["limit"])
            start = int(request.url.params["start"])
            items = [{"id": start + 1}, {"id": start + 2}][: int(request.url.params["limit"])]
            return httpx.Response(200, json=_page(items, more=True, next_start=start + len(items)))

        async with _client(handler) as client:
            records = await client.list_records("deals", limit=3)

        assert len(records) == 3
        assert limits == ["2", "1"]

    @pytest.mark.asyncio
    async def test_empty_data(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "data": None})

        async with _client(handler) as client:
            assert await client.list_records("deals") == []


class TestUpdates:
    """Record updates and field definitions."""

    @pytest.mark.asyncio
    async def test_update_uses_put(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": {"id": 42, "title": "Renewal"}})

        async with _client(handler) as client:
            updated = await client.update_record("deals", 42, {"title": "Renewal"})

        assert seen[0].method == "PUT"
        assert seen[0].url.path == "/api/v1/deals/42"
        assert json.loads(seen[0].content) == {"title": "Renewal"}
        assert updated["title"] == "Renewal"

    @pytest.mark.asyncio
    async def test_leads_use_patch(self):
        methods = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(200, json={"success": True, "data": {}})

        async with _client(handler) as client:
            await client.update_record("leads", "adf21080-0e10-11eb-879b-05d71fb426ec", {"title": "x"})

        assert methods == ["PATCH"]

    @pytest.mark.asyncio
    async def test_get_record(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": {"id": 11, "name": "Jo Buyer"}})

        async with _client(handler) as client:
            record = await client.get_record("persons", 11)

        assert seen[0].method == "GET"
        assert seen[0].url.path == "/api/v1/persons/11"
        assert record == {"id": 11, "name": "Jo Buyer"}

    @pytest.mark.asyncio
    async def test_list_fields(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": [{"key": "title", "name": "Title"}]})

        async with _client(handler) as client:
            fields = await client.list_fields("deals")

        assert seen[0].url.path == "/api/v1/dealFields"
        assert fields == [{"key": "title", "name": "Title"}]

    @pytest.mark.asyncio
    async def test_list_fields_unknown_entity(self):
        async with _client(lambda request: httpx.Response(200)) as client:
            with pytest.raises(PipedriveError):
                await client.list_fields("tickets")


class TestErrors:
    """Error responses become PipedriveError subclasses."""

    @pytest.mark.asyncio
    async def test_unsuccessful_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "error": "Filter not found"})

        async with _client(handler) as client:
            with pytest.raises(PipedriveError) as exc_info:
                await client.list_records("deals", filter_id=999)

        assert exc_info.value.message == "Filter not found"

    @pytest.mark.asyncio
    async def test_unauthorized(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"success": False, "error": "unauthorized access"})

        async with _client(handler) as client:
            with pytest.raises(PipedriveAuthError) as exc_info:
                await client.list_records("deals")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        async with _client(lambda request: httpx.Response(429)) as client:
            with pytest.raises(PipedriveRateLimitError):
                await client.update_record("deals", 1, {"title": "x"})

    @pytest.mark.asyncio
    async def test_server_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"success": False, "error": "Deal not found"})

        async with _client(handler) as client:
            with pytest.raises(PipedriveError) as exc_info:
                await client.update_record("deals", 1, {"title": "x"})

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Deal not found"

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(PipedriveError, match="Request failed"):
                await client.list_records("deals")


class TestAuth:
    @pytest.mark.asyncio
    async def test_bearer_token(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_page([]))

        async with _client(handler, api_token=None, access_token="oauth-abc") as client:
            await client.list_records("deals")

        assert seen[0].headers["Authorization"] == "Bearer oauth-abc"
        assert "api_token" not in seen[0].url.params

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.setattr(settings, "api_token", None)
        monkeypatch.setattr(settings, "access_token", None)

        with pytest.raises(PipedriveAuthError):
            PipedriveClient()
