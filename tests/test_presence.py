"""Tests for presence status, focus sessions and calendar sync."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from conftest import SAMPLE_USER, SAMPLE_USER_ID, SAMPLE_WORKSPACE_ID, added_objects, make_mock_db, make_result

from gigvora.core.errors import NotFoundError, ValidationError
from gigvora.models.presence import FocusSession, PresenceEvent, PresenceStatus
from gigvora.modules.presence import service
from gigvora.modules.presence.calendar import CalendarClient, CalendarSyncError
from gigvora.modules.presence.schemas import FocusSessionStart, PresenceUpdate
from gigvora.schemas.auth import CurrentUser

pytestmark = pytest.mark.anyio

SESSION_ID = uuid.UUID("00000000-0000-0000-0000-000000000201")
NOW = datetime(2026, 9, 1, 14, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _frozen_now():
    with patch.object(service, "_now", return_value=NOW):
        yield


def _status(**overrides) -> PresenceStatus:
    fields = dict(
        id=uuid.uuid4(),
        user_id=SAMPLE_USER_ID,
        availability="available",
        online=True,
        is_deleted=False,
    )
    fields.update(overrides)
    return PresenceStatus(**fields)


def _session(**overrides) -> FocusSession:
    fields = dict(
        id=SESSION_ID,
        user_id=SAMPLE_USER_ID,
        label="Deep work",
        planned_minutes=60,
        started_at=NOW - timedelta(minutes=30),
        ends_at=NOW + timedelta(minutes=30),
        is_deleted=False,
    )
    fields.update(overrides)
    return FocusSession(**fields)


def _events_of_type(db, event_type: str) -> list[PresenceEvent]:
    return [e for e in added_objects(db, PresenceEvent) if e.event_type == event_type]


# ── Snapshot ──────────────────────────────────────────────────────────────────


class TestGetPresence:
    async def test_default_presence_without_row(self):
        db = make_mock_db(make_result(one=None), make_result(one=None), make_result(items=[]))

        data = await service.get_presence(db, SAMPLE_USER_ID)

        assert data["presence"]["availability"] == "available"
        assert data["presence"]["online"] is True
        assert data["active_focus_session"] is None
        assert data["timeline"] == []
        assert db.execute.await_count == 3

    async def test_expired_status_reads_as_available(self):
        row = _status(availability="busy", message="On a call", expires_at=NOW - timedelta(minutes=1))
        event = PresenceEvent(
            id=uuid.uuid4(), user_id=SAMPLE_USER_ID, event_type="status_changed",
            availability="busy", metadata_={"previous": "available", "_debug": 1},
        )
        db = make_mock_db(make_result(one=row), make_result(one=None), make_result(items=[event]))

        data = await service.get_presence(db, SAMPLE_USER_ID)

        assert data["presence"]["availability"] == "available"
        assert data["presence"]["message"] is None
        assert data["presence"]["expired"] is True
        assert data["timeline"][0]["metadata"] == {"previous": "available"}

    async def test_running_focus_session_is_reported(self):
        row = _status(availability="focus", expires_at=NOW + timedelta(minutes=30))
        db = make_mock_db(make_result(one=row), make_result(one=_session()), make_result(items=[]))

        data = await service.get_presence(db, SAMPLE_USER_ID)

        assert data["presence"]["availability"] == "focus"
        assert data["active_focus_session"]["id"] == str(SESSION_ID)

    async def test_focus_session_past_its_end_is_not_active(self):
        db = make_mock_db(make_result(one=None), make_result(one=None), make_result(items=[]))

        await service.get_presence(db, SAMPLE_USER_ID)

        focus_stmt = db.execute.await_args_list[1].args[0]
        compiled = focus_stmt.compile()
        assert "focus_sessions.ends_at >" in str(compiled)
        assert NOW in compiled.params.values()

    async def test_timeline_is_skipped_for_other_viewers(self):
        db = make_mock_db(make_result(one=_status()), make_result(one=None))

        data = await service.get_presence(db, SAMPLE_USER_ID, include_timeline=False)

        assert data["timeline"] == []
        assert db.execute.await_count == 2


# ── Status updates ────────────────────────────────────────────────────────────


class TestUpdatePresence:
    async def test_update_creates_row_and_records_event(self):
        db = make_mock_db(make_result(one=None))

        data = await service.update_presence(
            db, SAMPLE_USER_ID, PresenceUpdate(availability="Busy", message=" Client workshop ")
        )

        row = added_objects(db, PresenceStatus)[0]
        assert row.availability == "busy"
        assert row.message == "Client workshop"
        event = _events_of_type(db, "status_changed")[0]
        assert event.metadata_ == {"previous": "available"}
        assert event.summary == "Client workshop"
        assert data["availability"] == "busy"
        db.commit.assert_awaited_once()

    async def test_offline_marks_user_offline(self):
        row = _status()
        db = make_mock_db(make_result(one=row))
        await service.update_presence(db, SAMPLE_USER_ID, PresenceUpdate(availability="offline"))
        assert row.online is False

    async def test_unknown_availability(self):
        db = make_mock_db()
        with pytest.raises(ValidationError, match="availability must be one of"):
            await service.update_presence(db, SAMPLE_USER_ID, PresenceUpdate(availability="napping"))

    async def test_message_too_long(self):
        db = make_mock_db()
        with pytest.raises(ValidationError, match="at most 280"):
            await service.update_presence(
                db, SAMPLE_USER_ID, PresenceUpdate(availability="away", message="x" * 281)
            )

    async def test_expiry_must_be_in_future(self):
        db = make_mock_db()
        with pytest.raises(ValidationError, match="in the future"):
            await service.update_presence(
                db,
                SAMPLE_USER_ID,
                PresenceUpdate(availability="away", expires_at=NOW - timedelta(minutes=5)),
            )
        db.execute.assert_not_called()


# ── Focus sessions ────────────────────────────────────────────────────────────


class TestFocusSessions:
    async def test_start_sets_focus_until_session_ends(self):
        row = _status()
        db = make_mock_db(make_result(one=None), make_result(one=row))

        data = await service.start_focus_session(
            db, SAMPLE_USER_ID, FocusSessionStart(duration_minutes=45, label="Proposal writing")
        )

        session = added_objects(db, FocusSession)[0]
        assert session.planned_minutes == 45
        assert session.ends_at == NOW + timedelta(minutes=45)
        assert row.availability == "focus"
        assert row.expires_at == session.ends_at
        assert row.message == "Proposal writing"
        started = _events_of_type(db, "focus_started")[0]
        assert started.metadata_ == {"session_id": str(session.id), "planned_minutes": 45}
        assert data["planned_minutes"] == 45

    async def test_start_replaces_running_session(self):
        running = _session()
        db = make_mock_db(make_result(one=running), make_result(one=_status(availability="focus")))

        await service.start_focus_session(db, SAMPLE_USER_ID, FocusSessionStart(duration_minutes=25))

        assert running.ended_at == NOW
        ended = _events_of_type(db, "focus_ended")[0]
        assert ended.metadata_ == {"session_id": str(SESSION_ID), "reason": "replaced"}

    @pytest.mark.parametrize("minutes", [4, 481])
    async def test_duration_bounds(self, minutes):
        db = make_mock_db()
        with pytest.raises(ValidationError, match="between 5 and 480"):
            await service.start_focus_session(
                db, SAMPLE_USER_ID, FocusSessionStart(duration_minutes=minutes)
            )

    async def test_end_restores_availability(self):
        session = _session()
        row = _status(availability="focus", expires_at=session.ends_at)
        db = make_mock_db(make_result(one=session), make_result(one=row))

        data = await service.end_focus_session(db, SAMPLE_USER_ID)

        assert session.ended_at == NOW
        assert row.availability == "available"
        assert row.expires_at is None
        ended = _events_of_type(db, "focus_ended")[0]
        assert ended.metadata_["actual_minutes"] == 30
        assert data["ended_at"] == NOW.isoformat()

    async def test_end_without_session(self):
        db = make_mock_db(make_result(one=None))
        with pytest.raises(NotFoundError, match="No focus session"):
            await service.end_focus_session(db, SAMPLE_USER_ID)
        db.commit.assert_not_called()


# ── Timeline ──────────────────────────────────────────────────────────────────


class TestTimeline:
    async def test_limit_is_clamped(self):
        db = make_mock_db(make_result(items=[]))
        await service.list_presence_events(db, SAMPLE_USER_ID, limit=500)
        stmt = db.execute.await_args.args[0]
        assert stmt._limit_clause.value == 100


# ── Calendar sync ─────────────────────────────────────────────────────────────


def _calendar_event(event_id: str, starts: datetime, ends: datetime, **extra) -> dict:
    return {
        "id": event_id,
        "title": extra.pop("title", f"Event {event_id}"),
        "eventType": extra.pop("eventType", "meeting"),
        "startsAt": starts.isoformat(),
        "endsAt": ends.isoformat(),
        **extra,
    }


class TestCalendarClient:
    async def test_fetch_sends_identity_and_flattens_groups(self):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["headers"] = request.headers
            return httpx.Response(
                200,
                json={
                    "eventsByType": {
                        "meeting": [{"id": "a"}],
                        "interview": [{"id": "b"}, {"id": "c"}],
                        "deadline": None,
                    }
                },
            )

        client = CalendarClient(
            base_url="http://calendar.test/",
            api_key="cal-key",
            transport=httpx.MockTransport(handler),
        )
        events = await client.fetch_events(
            user_id=SAMPLE_USER_ID,
            workspace_id=SAMPLE_WORKSPACE_ID,
            roles=["freelancer", "agency"],
            window_from=NOW - timedelta(hours=1),
            window_to=NOW + timedelta(hours=24),
        )

        assert [e["id"] for e in events] == ["a", "b", "c"]
        assert seen["path"] == "/api/company/calendar/events"
        assert seen["params"]["workspaceId"] == str(SAMPLE_WORKSPACE_ID)
        assert seen["headers"]["x-user-id"] == str(SAMPLE_USER_ID)
        assert seen["headers"]["x-roles"] == "freelancer,agency"
        assert seen["headers"]["x-api-key"] == "cal-key"

    async def test_http_error_becomes_sync_error(self):
        client = CalendarClient(
            base_url="http://calendar.test",
            api_key="",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        with pytest.raises(CalendarSyncError) as exc_info:
            await client.fetch_events(
                user_id=SAMPLE_USER_ID,
                workspace_id=SAMPLE_WORKSPACE_ID,
                roles=[],
                window_from=NOW,
                window_to=NOW + timedelta(hours=1),
            )
        assert exc_info.value.status_code == 502
        assert exc_info.value.error == "calendar_unavailable"


class TestCalendarSync:
    def _client(self, events: list[dict]) -> AsyncMock:
        client = AsyncMock(spec=CalendarClient)
        client.fetch_events.return_value = events
        return client

    async def test_in_progress_meeting_sets_in_meeting(self):
        meeting = _calendar_event(
            "m1", NOW - timedelta(minutes=10), NOW + timedelta(minutes=20), title="Client standup"
        )
        cancelled = _calendar_event(
            "m2", NOW - timedelta(minutes=5), NOW + timedelta(minutes=5), status="cancelled"
        )
        later = _calendar_event("m3", NOW + timedelta(hours=2), NOW + timedelta(hours=3))
        row = _status()
        db = make_mock_db(make_result(one=row))
        client = self._client([meeting, cancelled, later])

        data = await service.sync_calendar(db, SAMPLE_USER_ID, SAMPLE_USER, client=client)

        kwargs = client.fetch_events.await_args.kwargs
        assert kwargs["workspace_id"] == SAMPLE_WORKSPACE_ID
        assert kwargs["window_from"] == NOW - timedelta(hours=1)
        assert kwargs["window_to"] == NOW + timedelta(hours=24)
        assert row.availability == "in_meeting"
        assert row.message == "Client standup"
        assert row.expires_at == NOW + timedelta(minutes=20)
        assert row.last_calendar_sync_at == NOW
        assert data["event_count"] == 3
        assert [e["id"] for e in data["in_progress_events"]] == ["m1"]
        synced = _events_of_type(db, "calendar_synced")[0]
        assert synced.summary == "Synced 3 calendar events"
        assert synced.metadata_ == {"event_count": 3, "in_progress": 1}

    async def test_focus_is_not_overridden_by_meetings(self):
        meeting = _calendar_event("m1", NOW - timedelta(minutes=10), NOW + timedelta(minutes=20))
        row = _status(availability="focus", message="Deep work")
        db = make_mock_db(make_result(one=row))

        await service.sync_calendar(db, SAMPLE_USER_ID, SAMPLE_USER, client=self._client([meeting]))

        assert row.availability == "focus"
        assert row.message == "Deep work"
        assert row.last_calendar_sync_at == NOW

    async def test_expired_focus_does_not_block_meetings(self):
        meeting = _calendar_event(
            "m1", NOW - timedelta(minutes=5), NOW + timedelta(minutes=25), title="Design review"
        )
        row = _status(availability="focus", message="Deep work", expires_at=NOW - timedelta(minutes=5))
        db = make_mock_db(make_result(one=row))

        data = await service.sync_calendar(db, SAMPLE_USER_ID, SAMPLE_USER, client=self._client([meeting]))

        assert row.availability == "in_meeting"
        assert row.message == "Design review"
        assert row.expires_at == NOW + timedelta(minutes=25)
        assert data["presence"]["availability"] == "in_meeting"

    async def test_events_with_bad_times_are_ignored(self):
        broken = {"id": "x", "title": "Broken", "startsAt": "soon", "endsAt": None}
        row = _status()
        db = make_mock_db(make_result(one=row))

        data = await service.sync_calendar(db, SAMPLE_USER_ID, SAMPLE_USER, client=self._client([broken]))

        assert row.availability == "available"
        assert data["in_progress_events"] == []

    async def test_workspace_is_required(self):
        actor = CurrentUser(user_id=SAMPLE_USER_ID, roles=["freelancer"])
        client = self._client([])
        db = make_mock_db()
        with pytest.raises(ValidationError, match="workspace"):
            await service.sync_calendar(db, SAMPLE_USER_ID, actor, client=client)
        client.fetch_events.assert_not_called()

    async def test_calendar_failure_leaves_presence_untouched(self):
        client = AsyncMock(spec=CalendarClient)
        client.fetch_events.side_effect = CalendarSyncError("Calendar service is unavailable.")
        db = make_mock_db()
        with pytest.raises(CalendarSyncError):
            await service.sync_calendar(db, SAMPLE_USER_ID, SAMPLE_USER, client=client)
        db.execute.assert_not_called()
        db.commit.assert_not_called()
