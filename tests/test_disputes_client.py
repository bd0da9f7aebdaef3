"""Tests for the dispute dashboard data client."""

from __future__ import annotations

import httpx
import pytest
from conftest import SAMPLE_USER_ID

from gigvora.clients.disputes import DisputesDataClient

pytestmark = pytest.mark.anyio

BASE = f"/v1/users/{SAMPLE_USER_ID}/disputes"


class FakeDisputesApi:
    """In-memory stand-in for the disputes endpoints that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.disputes: dict[str, dict] = {
            "d1": {"id": "d1", "status": "open", "events": []},
        }
        self.fail_next = False

    def _dashboard(self) -> dict:
        return {
            "summary": {"total": len(self.disputes)},
            "disputes": list(self.disputes.values()),
            "eligible_transactions": [],
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        if self.fail_next:
            self.fail_next = False
            return httpx.Response(500, json={"error": "internal_server_error"})
        path = request.url.path
        if request.method == "GET" and path == BASE:
            return httpx.Response(200, json=self._dashboard())
        if request.method == "POST" and path == BASE:
            created = {"id": "d2", "status": "open", "events": []}
            self.disputes["d2"] = created
            return httpx.Response(201, json=created)
        dispute_id = path.removeprefix(f"{BASE}/").split("/")[0]
        if request.method == "GET":
            return httpx.Response(200, json=self.disputes[dispute_id])
        if request.method == "POST" and path.endswith("/events"):
            updated = {**self.disputes[dispute_id], "events": [{"notes": "hi"}]}
            self.disputes[dispute_id] = updated
            return httpx.Response(201, json=updated)
        return httpx.Response(404)


@pytest.fixture
def api() -> FakeDisputesApi:
    return FakeDisputesApi()


@pytest.fixture
def client(api: FakeDisputesApi) -> DisputesDataClient:
    return DisputesDataClient(
        "http://gigvora.test",
        SAMPLE_USER_ID,
        token="test-token",
        transport=httpx.MockTransport(api.handler),
    )


class TestDisputesDataClient:
    async def test_refresh_loads_dashboard(self, client, api):
        await client.refresh()
        assert client.summary == {"total": 1}
        assert [d["id"] for d in client.disputes] == ["d1"]
        assert client.loading is False
        assert api.calls == [("GET", BASE)]

    async def test_select_fetches_each_dispute_once(self, client, api):
        first = await client.select("d1")
        second = await client.select("d1")
        assert first is second
        assert client.selected == first
        assert api.calls == [("GET", f"{BASE}/d1")]

    async def test_create_caches_detail_and_refreshes_dashboard(self, client, api):
        created = await client.create({"escrow_transaction_id": "t1", "reason_code": "x", "summary": "y"})

        assert created["id"] == "d2"
        assert client.selected_id == "d2"
        assert client.details["d2"] == created
        assert client.summary == {"total": 2}
        assert client.mutating is False
        assert api.calls == [("POST", BASE), ("GET", BASE)]

        # The created dispute is served from cache.
        await client.select("d2")
        assert len(api.calls) == 2

    async def test_log_event_replaces_cached_detail(self, client, api):
        await client.select("d1")
        updated = await client.log_event("d1", {"notes": "hi"})

        assert client.details["d1"] == updated
        assert updated["events"] == [{"notes": "hi"}]
        assert api.calls == [
            ("GET", f"{BASE}/d1"),
            ("POST", f"{BASE}/d1/events"),
            ("GET", BASE),
        ]

    async def test_failed_request_records_error(self, client, api):
        api.fail_next = True
        with pytest.raises(httpx.HTTPStatusError):
            await client.refresh()
        assert isinstance(client.error, httpx.HTTPStatusError)
        assert client.loading is False
        assert client.data is None

        await client.refresh()
        assert client.error is None

    async def test_requests_carry_bearer_token(self, api):
        seen: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("authorization"))
            return api.handler(request)

        client = DisputesDataClient(
            "http://gigvora.test/",
            SAMPLE_USER_ID,
            token="abc",
            transport=httpx.MockTransport(handler),
        )
        await client.refresh()
        assert seen == ["Bearer abc"]

    async def test_freelancer_prefix(self, api):
        client = DisputesDataClient("http://gigvora.test", "u1", prefix="/v1/freelancer/")
        assert client.disputes_path == "/v1/freelancer/u1/disputes"
