"""Client for the company calendar service used by presence calendar sync."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any

import httpx
import structlog

from gigvora.core.config import settings
from gigvora.core.errors import DomainError

logger = structlog.get_logger()

EVENTS_PATH = "/api/company/calendar/events"


class CalendarSyncError(DomainError):
    status_code = 502
    error = "calendar_unavailable"


class CalendarClient:
    """Fetches a user's workspace calendar events.

    Calls are made once and awaited; failures surface as ``CalendarSyncError``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.CALENDAR_SERVICE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.CALENDAR_SERVICE_API_KEY
        self.timeout = timeout or settings.CALENDAR_SYNC_TIMEOUT_SECONDS
        self._transport = transport

    def _headers(self, user_id: uuid.UUID, roles: list[str]) -> dict[str, str]:
        headers = {"x-user-id": str(user_id), "x-roles": ",".join(roles or ["user"])}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def fetch_events(
        self,
        *,
        user_id: uuid.UUID,
        workspace_id: uuid.UUID,
        roles: list[str],
        window_from: datetime,
        window_to: datetime,
    ) -> list[dict[str, Any]]:
        params = {
            "workspaceId": str(workspace_id),
            "from": window_from.isoformat(),
            "to": window_to.isoformat(),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(
                    f"{self.base_url}{EVENTS_PATH}",
                    params=params,
                    headers=self._headers(user_id, roles),
                )
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("presence.calendar_fetch_failed", user_id=str(user_id), error=str(exc))
            raise CalendarSyncError("Calendar service is unavailable.") from exc

        events: list[dict[str, Any]] = []
        for group in (payload.get("eventsByType") or {}).values():
            events.extend(group or [])
        return events


def default_sync_window(now: datetime) -> tuple[datetime, datetime]:
    return now - timedelta(hours=1), now + timedelta(hours=24)
