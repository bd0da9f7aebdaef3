"""Presence service: availability status, focus sessions, calendar sync and the presence timeline.

Each user has at most one presence row. Every change also appends a
``presence_events`` row in the same transaction so the timeline is complete.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gigvora.core.errors import NotFoundError, ValidationError
from gigvora.models.enums import Availability, PresenceEventType
from gigvora.models.presence import FocusSession, PresenceEvent, PresenceStatus
from gigvora.modules.presence.calendar import CalendarClient, default_sync_window
from gigvora.schemas.auth import CurrentUser
from gigvora.utils.sanitizers import (
    ensure_choice,
    parse_datetime,
    parse_int,
    sanitize_string,
    strip_private_metadata,
)

logger = structlog.get_logger()

AVAILABILITY_VALUES = {a.value for a in Availability}
FOCUS_MIN_MINUTES = 5
FOCUS_MAX_MINUTES = 480
MESSAGE_MAX_LENGTH = 280
TIMELINE_LIMIT = 20


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _serialize(model: Any) -> dict[str, Any]:
    data = model.to_dict(exclude={"is_deleted"})
    if "metadata" in data:
        data["metadata"] = strip_private_metadata(data["metadata"])
    return data


def _presence_payload(user_id: uuid.UUID, row: PresenceStatus | None, now: datetime) -> dict[str, Any]:
    if row is None:
        return {
            "user_id": str(user_id),
            "availability": Availability.AVAILABLE.value,
            "message": None,
            "online": True,
            "expires_at": None,
            "last_calendar_sync_at": None,
        }
    data = _serialize(row)
    # An expired custom status falls back to available.
    if row.expires_at and row.expires_at <= now:
        data["availability"] = Availability.AVAILABLE.value
        data["message"] = None
        data["expired"] = True
    return data


async def _get_status_row(db: AsyncSession, user_id: uuid.UUID) -> PresenceStatus | None:
    result = await db.execute(
        select(PresenceStatus).where(
            PresenceStatus.user_id == user_id,
            PresenceStatus.is_deleted == False,  # noqa: E712
        )
    )
    return result.scalar_one_or_none()


async def _get_or_create_status_row(db: AsyncSession, user_id: uuid.UUID) -> PresenceStatus:
    row = await _get_status_row(db, user_id)
    if row is None:
        row = PresenceStatus(user_id=user_id, availability="available", online=True)
        db.add(row)
    return row


async def _active_focus_session(
    db: AsyncSession, user_id: uuid.UUID, now: datetime | None = None
) -> FocusSession | None:
    """The unended focus session. With ``now``, sessions past their ``ends_at`` are ignored."""
    stmt = select(FocusSession).where(
        FocusSession.user_id == user_id,
        FocusSession.ended_at.is_(None),
        FocusSession.is_deleted == False,  # noqa: E712
    )
    if now is not None:
        stmt = stmt.where(FocusSession.ends_at > now)
    result = await db.execute(stmt.order_by(FocusSession.started_at.desc()).limit(1))
    return result.scalar_one_or_none()


def _in_focus(row: PresenceStatus, now: datetime) -> bool:
    if row.availability != Availability.FOCUS.value:
        return False
    return row.expires_at is None or row.expires_at > now


def _record_event(
    db: AsyncSession,
    user_id: uuid.UUID,
    event_type: str,
    availability: str | None,
    summary: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> PresenceEvent:
    event = PresenceEvent(
        user_id=user_id,
        event_type=event_type,
        availability=availability,
        summary=summary,
        metadata_=metadata,
    )
    db.add(event)
    return event


async def list_presence_events(
    db: AsyncSession, user_id: uuid.UUID, limit: int = TIMELINE_LIMIT
) -> list[dict[str, Any]]:
    limit = max(1, min(limit, 100))
    result = await db.execute(
        select(PresenceEvent)
        .where(PresenceEvent.user_id == user_id)
        .order_by(PresenceEvent.created_at.desc())
        .limit(limit)
    )
    return [_serialize(e) for e in result.scalars().all()]


async def get_presence(
    db: AsyncSession, user_id: uuid.UUID, include_timeline: bool = True
) -> dict[str, Any]:
    """Current presence and focus session. The timeline is only loaded for its owner."""
    now = _now()
    row = await _get_status_row(db, user_id)
    focus = await _active_focus_session(db, user_id, now)
    return {
        "presence": _presence_payload(user_id, row, now),
        "active_focus_session": _serialize(focus) if focus else None,
        "timeline": await list_presence_events(db, user_id) if include_timeline else [],
    }


async def update_presence(db: AsyncSession, user_id: uuid.UUID, body: Any) -> dict[str, Any]:
    data = body.model_dump(exclude_unset=True)
    availability = ensure_choice(data.get("availability"), "availability", AVAILABILITY_VALUES)
    if availability is None:
        raise ValidationError("availability is required.")

    message = sanitize_string(data.get("message"), max_length=MESSAGE_MAX_LENGTH + 1)
    if message and len(message) > MESSAGE_MAX_LENGTH:
        raise ValidationError(f"message must be at most {MESSAGE_MAX_LENGTH} characters.")

    now = _now()
    expires_at = parse_datetime(data.get("expires_at"), "expires_at")
    if expires_at and expires_at <= now:
        raise ValidationError("expires_at must be in the future.")

    row = await _get_or_create_status_row(db, user_id)
    previous = row.availability
    row.availability = availability
    row.online = availability != Availability.OFFLINE.value
    row.expires_at = expires_at
    if "message" in data:
        row.message = message

    _record_event(
        db,
        user_id,
        PresenceEventType.STATUS_CHANGED.value,
        availability,
        summary=message,
        metadata={"previous": previous},
    )
    await db.commit()
    await db.refresh(row)

    logger.info("presence.status_changed", user_id=str(user_id), availability=availability, previous=previous)
    return _presence_payload(user_id, row, now)


async def start_focus_session(db: AsyncSession, user_id: uuid.UUID, body: Any) -> dict[str, Any]:
    data = body.model_dump(exclude_unset=True)
    minutes = parse_int(
        data.get("duration_minutes"),
        "duration_minutes",
        minimum=FOCUS_MIN_MINUTES,
        maximum=FOCUS_MAX_MINUTES,
    )
    if minutes is None:
        raise ValidationError("duration_minutes is required.")
    label = sanitize_string(data.get("label"), max_length=160)
    now = _now()

    running = await _active_focus_session(db, user_id)
    if running is not None:
        running.ended_at = now
        _record_event(
            db,
            user_id,
            PresenceEventType.FOCUS_ENDED.value,
            None,
            metadata={"session_id": str(running.id), "reason": "replaced"},
        )

    session = FocusSession(
        id=uuid.uuid4(),
        user_id=user_id,
        label=label,
        planned_minutes=minutes,
        started_at=now,
        ends_at=now + timedelta(minutes=minutes),
    )
    db.add(session)

    row = await _get_or_create_status_row(db, user_id)
    row.availability = Availability.FOCUS.value
    row.online = True
    row.expires_at = session.ends_at
    if label:
        row.message = label

    _record_event(
        db,
        user_id,
        PresenceEventType.FOCUS_STARTED.value,
        Availability.FOCUS.value,
        summary=label,
        metadata={"session_id": str(session.id), "planned_minutes": minutes},
    )
    await db.commit()
    await db.refresh(session)

    logger.info("presence.focus_started", user_id=str(user_id), planned_minutes=minutes)
    return _serialize(session)


async def end_focus_session(db: AsyncSession, user_id: uuid.UUID) -> dict[str, Any]:
    session = await _active_focus_session(db, user_id)
    if session is None:
        raise NotFoundError("No focus session is running.")

    now = _now()
    session.ended_at = now
    row = await _get_or_create_status_row(db, user_id)
    row.availability = Availability.AVAILABLE.value
    row.online = True
    row.expires_at = None

    actual_minutes = max(0, round((now - session.started_at).total_seconds() / 60))
    _record_event(
        db,
        user_id,
        PresenceEventType.FOCUS_ENDED.value,
        Availability.AVAILABLE.value,
        metadata={"session_id": str(session.id), "actual_minutes": actual_minutes},
    )
    await db.commit()
    await db.refresh(session)

    logger.info("presence.focus_ended", user_id=str(user_id), actual_minutes=actual_minutes)
    return _serialize(session)


def _event_time(value: Any) -> datetime | None:
    try:
        return parse_datetime(value, "event time")
    except ValidationError:
        return None


def _in_progress(event: dict[str, Any], now: datetime) -> bool:
    if event.get("status") == "cancelled":
        return False
    starts = _event_time(event.get("startsAt"))
    ends = _event_time(event.get("endsAt"))
    return bool(starts and ends and starts <= now < ends)


async def sync_calendar(
    db: AsyncSession,
    user_id: uuid.UUID,
    actor: CurrentUser,
    client: CalendarClient | None = None,
) -> dict[str, Any]:
    """Pull calendar events once and reflect an in-progress meeting in presence."""
    if actor.workspace_id is None:
        raise ValidationError("A workspace is required to sync calendar events.")

    client = client or CalendarClient()
    now = _now()
    window_from, window_to = default_sync_window(now)
    events = await client.fetch_events(
        user_id=user_id,
        workspace_id=actor.workspace_id,
        roles=actor.roles,
        window_from=window_from,
        window_to=window_to,
    )
    in_progress = [e for e in events if _in_progress(e, now)]

    row = await _get_or_create_status_row(db, user_id)
    # A running focus session outranks calendar-derived status.
    if in_progress and not _in_focus(row, now):
        current = in_progress[0]
        row.availability = Availability.IN_MEETING.value
        row.online = True
        row.message = sanitize_string(current.get("title"), max_length=MESSAGE_MAX_LENGTH)
        row.expires_at = _event_time(current.get("endsAt"))
    row.last_calendar_sync_at = now

    _record_event(
        db,
        user_id,
        PresenceEventType.CALENDAR_SYNCED.value,
        row.availability,
        summary=f"Synced {len(events)} calendar events",
        metadata={"event_count": len(events), "in_progress": len(in_progress)},
    )
    await db.commit()
    await db.refresh(row)

    logger.info(
        "presence.calendar_synced",
        user_id=str(user_id),
        event_count=len(events),
        in_progress=len(in_progress),
    )
    return {
        "presence": _presence_payload(user_id, row, now),
        "event_count": len(events),
        "in_progress_events": [
            {
                "id": e.get("id"),
                "title": e.get("title"),
                "event_type": e.get("eventType"),
                "starts_at": e.get("startsAt"),
                "ends_at": e.get("endsAt"),
            }
            for e in in_progress
        ],
    }
