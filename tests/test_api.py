"""HTTP-level tests: auth, error envelope, router wiring, middleware and health."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from conftest import AGENCY_USER, OTHER_USER_ID, SAMPLE_USER, SAMPLE_USER_ID, make_mock_db, make_result
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from gigvora.core import database, sentry
from gigvora.core.errors import NotFoundError
from gigvora.core.security import create_access_token
from gigvora.main import app
from gigvora.middleware.security import RequestBodySizeLimitMiddleware
from gigvora.modules.agency_projects import service as agency_service
from gigvora.modules.disputes import service as disputes_service
from gigvora.modules.presence import service as presence_service
from gigvora.modules.presence.calendar import CalendarSyncError

pytestmark = pytest.mark.anyio

PRESENCE_SNAPSHOT = {
    "presence": {
        "user_id": str(SAMPLE_USER_ID),
        "availability": "available",
        "message": None,
        "online": True,
        "expires_at": None,
        "last_calendar_sync_at": None,
    },
    "active_focus_session": None,
    "timeline": [],
}


def _dispute_dashboard() -> dict:
    return {
        "summary": disputes_service.build_dispute_summary([]),
        "disputes": [],
        "eligible_transactions": [],
        "metadata": {},
        "permissions": {"can_create": False},
    }


# ── Authentication ────────────────────────────────────────────────────────────


class TestAuthentication:
    async def test_invalid_token_is_rejected(self, client: AsyncClient):
        resp = await client.get(
            f"/v1/presence/{SAMPLE_USER_ID}",
            headers={"Authorization": "Bearer not-a-jwt", "X-Request-ID": "req-123"},
        )
        assert resp.status_code == 401
        body = resp.json()
        assert body["error"] == "http_401"
        assert body["request_id"] == "req-123"
        assert resp.headers["www-authenticate"] == "Bearer"

    async def test_valid_token_reaches_the_router(self, client: AsyncClient):
        token = create_access_token({
            "sub": str(SAMPLE_USER_ID),
            "user_type": "freelancer",
            "roles": ["freelancer"],
        })
        app.dependency_overrides[database.get_db] = lambda: make_mock_db()
        try:
            with patch.object(
                presence_service, "get_presence", new_callable=AsyncMock, return_value=PRESENCE_SNAPSHOT
            ):
                resp = await client.get(
                    f"/v1/presence/{SAMPLE_USER_ID}",
                    headers={"Authorization": f"Bearer {token}"},
                )
        finally:
            app.dependency_overrides.clear()

        assert resp.status_code == 200
        assert resp.json()["presence"]["availability"] == "available"
        assert resp.headers["x-api-version"] == "v1"
        assert resp.headers["x-content-type-options"] == "nosniff"
        assert resp.headers["server"] == "gigvora"
        assert "cache-control" not in resp.headers

    async def test_role_without_permission_is_forbidden(self, client: AsyncClient, override_deps):
        override_deps(SAMPLE_USER)
        resp = await client.get("/v1/agency/projects")
        assert resp.status_code == 403
        assert resp.json()["message"] == "Permission denied: view on agency_project"


# ── Error envelope ────────────────────────────────────────────────────────────


class TestErrorEnvelope:
    async def test_domain_authorization_error(self, client: AsyncClient, override_deps):
        override_deps(SAMPLE_USER)
        resp = await client.put(f"/v1/presence/{OTHER_USER_ID}", json={"availability": "busy"})
        assert resp.status_code == 403
        assert resp.json() == {
            "error": "forbidden",
            "message": "You can only manage your own presence.",
            "detail": None,
            "request_id": "unknown",
        }

    async def test_not_found_from_service(self, client: AsyncClient, override_deps):
        override_deps(AGENCY_USER)
        with patch.object(
            agency_service,
            "get_agency_project",
            new_callable=AsyncMock,
            side_effect=NotFoundError("Agency project not found."),
        ):
            resp = await client.get(f"/v1/agency/projects/{OTHER_USER_ID}")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"
        assert resp.json()["message"] == "Agency project not found."

    async def test_request_validation(self, client: AsyncClient, override_deps):
        override_deps(SAMPLE_USER)
        resp = await client.put(f"/v1/presence/{SAMPLE_USER_ID}", json={"message": "hi"})
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "validation_error"
        assert body["detail"][0]["loc"][-1] == "availability"

    async def test_service_validation_error_details(self, client: AsyncClient, override_deps):
        override_deps(SAMPLE_USER)
        resp = await client.put(f"/v1/presence/{SAMPLE_USER_ID}", json={"availability": "napping"})
        assert resp.status_code == 422
        assert resp.json()["detail"] == [{"field": "availability", "value": "napping"}]

    async def test_calendar_outage_is_bad_gateway(self, client: AsyncClient, override_deps):
        override_deps(SAMPLE_USER)
        with patch.object(
            presence_service,
            "sync_calendar",
            new_callable=AsyncMock,
            side_effect=CalendarSyncError("Calendar service is unavailable."),
        ):
            resp = await client.post(f"/v1/presence/{SAMPLE_USER_ID}/calendar-sync")
        assert resp.status_code == 502
        assert resp.json()["error"] == "calendar_unavailable"

    async def test_unhandled_exception(self, override_deps):
        override_deps(SAMPLE_USER)
        with patch.object(
            presence_service, "get_presence", new_callable=AsyncMock, side_effect=RuntimeError("boom")
        ):
            async with AsyncClient(
                transport=ASGITransport(app=app, raise_app_exceptions=False),
                base_url="http://test",
            ) as ac:
                resp = await ac.get(f"/v1/presence/{SAMPLE_USER_ID}")
        assert resp.status_code == 500
        assert resp.json()["error"] == "internal_server_error"


# ── Router wiring ─────────────────────────────────────────────────────────────


class TestRouting:
    @pytest.mark.parametrize("prefix", ["/v1/users", "/v1/freelancer"])
    async def test_disputes_are_mounted_for_users_and_freelancers(
        self, prefix, client: AsyncClient, override_deps
    ):
        override_deps(SAMPLE_USER)
        with patch.object(
            disputes_service,
            "list_user_disputes",
            new_callable=AsyncMock,
            return_value=_dispute_dashboard(),
        ) as list_disputes:
            resp = await client.get(f"{prefix}/{SAMPLE_USER_ID}/disputes?stage=mediation")

        assert resp.status_code == 200
        assert resp.json()["summary"]["total"] == 0
        assert resp.headers["cache-control"] == "no-store"
        assert list_disputes.await_args.kwargs == {"stage": "mediation", "status": None}

    async def test_disputes_of_other_users_are_forbidden(self, client: AsyncClient, override_deps):
        override_deps(SAMPLE_USER)
        resp = await client.get(f"/v1/users/{OTHER_USER_ID}/disputes")
        assert resp.status_code == 403

    async def test_presence_of_another_user_hides_the_timeline(self, client: AsyncClient, override_deps):
        db = make_mock_db(make_result(one=None), make_result(one=None))
        override_deps(SAMPLE_USER, db)

        snapshot = await client.get(f"/v1/presence/{OTHER_USER_ID}")
        events = await client.get(f"/v1/presence/{OTHER_USER_ID}/events")

        assert snapshot.status_code == 200
        assert snapshot.json()["presence"]["availability"] == "available"
        assert snapshot.json()["timeline"] == []
        assert db.execute.await_count == 2
        assert events.status_code == 403

    async def test_owner_sees_their_timeline(self, client: AsyncClient, override_deps):
        override_deps(SAMPLE_USER)
        with patch.object(
            presence_service, "get_presence", new_callable=AsyncMock, return_value=PRESENCE_SNAPSHOT
        ) as get_presence:
            resp = await client.get(f"/v1/presence/{SAMPLE_USER_ID}")
        assert resp.status_code == 200
        assert get_presence.await_args.kwargs == {"include_timeline": True}

    async def test_agency_requires_workspace(self, client: AsyncClient, override_deps):
        override_deps(AGENCY_USER.model_copy(update={"workspace_id": None}))
        resp = await client.get("/v1/agency/projects")
        assert resp.status_code == 403
        assert resp.json()["message"] == "An agency workspace is required to manage projects."

    async def test_focus_session_created(self, client: AsyncClient, override_deps):
        override_deps(SAMPLE_USER)
        session = {
            "id": str(OTHER_USER_ID),
            "user_id": str(SAMPLE_USER_ID),
            "label": None,
            "planned_minutes": 30,
            "started_at": "2026-09-01T14:00:00+00:00",
            "ends_at": "2026-09-01T14:30:00+00:00",
            "ended_at": None,
        }
        with patch.object(
            presence_service, "start_focus_session", new_callable=AsyncMock, return_value=session
        ):
            resp = await client.post(
                f"/v1/presence/{SAMPLE_USER_ID}/focus-sessions", json={"duration_minutes": 30}
            )
        assert resp.status_code == 201
        assert resp.json()["planned_minutes"] == 30

    async def test_events_limit_is_bounded(self, client: AsyncClient, override_deps):
        override_deps(SAMPLE_USER)
        resp = await client.get(f"/v1/presence/{SAMPLE_USER_ID}/events?limit=500")
        assert resp.status_code == 422


# ── Middleware and health ─────────────────────────────────────────────────────


class TestMiddleware:
    async def test_oversized_body_is_rejected(self):
        mini = FastAPI()

        @mini.post("/echo")
        async def echo() -> dict:
            return {"ok": True}

        mini.add_middleware(RequestBodySizeLimitMiddleware, max_bytes=1024 * 1024)
        async with AsyncClient(transport=ASGITransport(app=mini), base_url="http://test") as ac:
            small = await ac.post("/echo", content=b"x" * 10)
            large = await ac.post("/echo", content=b"x" * (1024 * 1024 + 1))

        assert small.status_code == 200
        assert large.status_code == 413
        assert large.json()["error"] == "payload_too_large"
        assert large.json()["message"] == "Request body exceeds 1 MB."


class TestHealth:
    async def test_degraded_when_database_is_down(self, client: AsyncClient):
        redis_client = MagicMock()
        redis_client.ping = AsyncMock(return_value=True)
        redis_client.aclose = AsyncMock()

        def _broken_session():
            raise ConnectionRefusedError("connection refused")

        with (
            patch.object(database, "async_session_factory", side_effect=_broken_session),
            patch("redis.asyncio.from_url", return_value=redis_client),
        ):
            resp = await client.get("/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "degraded"
        assert body["checks"]["postgresql"]["status"] == "unhealthy"
        assert body["checks"]["redis"] == {"status": "healthy"}


class TestSentryScrubbing:
    def test_headers_and_evidence_are_redacted(self):
        event = {
            "request": {
                "headers": {"Authorization": "Bearer abc", "Accept": "application/json"},
                "data": {
                    "notes": "see attached",
                    "evidence": {"content": "aGVsbG8=", "file_name": "receipt.pdf"},
                },
            }
        }

        scrubbed = sentry._before_send(event, {})

        assert scrubbed["request"]["headers"] == {
            "Authorization": "[REDACTED]",
            "Accept": "application/json",
        }
        assert scrubbed["request"]["data"] == {"notes": "see attached", "evidence": "[REDACTED]"}

    def test_init_is_a_no_op_without_dsn(self):
        with patch.object(sentry.sentry_sdk, "init") as init:
            sentry.init_sentry("", "test")
        init.assert_not_called()
