"""Dispute dashboard data client.

Holds the dashboard payload and a per-dispute detail cache for one user.
Reads are served from the cache; only mutations refetch the dashboard.
"""

from __future__ import annotations

import uuid
from typing import Any

import httpx
import structlog

logger = structlog.get_logger()


class DisputesDataClient:
    def __init__(
        self,
        base_url: str,
        user_id: uuid.UUID | str,
        token: str | None = None,
        *,
        prefix: str = "/v1/users",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_id = str(user_id)
        self.token = token
        self.prefix = prefix.rstrip("/")
        self.timeout = timeout
        self._transport = transport

        self.data: dict[str, Any] | None = None
        self.details: dict[str, dict[str, Any]] = {}
        self.selected_id: str | None = None
        self.loading = False
        self.mutating = False
        self.error: Exception | None = None

    @property
    def disputes_path(self) -> str:
        return f"{self.prefix}/{self.user_id}/disputes"

    @property
    def summary(self) -> dict[str, Any] | None:
        return self.data.get("summary") if self.data else None

    @property
    def disputes(self) -> list[dict[str, Any]]:
        return list(self.data.get("disputes", [])) if self.data else []

    @property
    def selected(self) -> dict[str, Any] | None:
        return self.details.get(self.selected_id) if self.selected_id else None

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.request(method, path, json=json, headers=self._headers())
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as exc:
            self.error = exc
            logger.warning("disputes_client.request_failed", method=method, path=path, error=str(exc))
            raise

    async def refresh(self) -> dict[str, Any]:
        """Fetch the dashboard payload (summary, disputes, eligible transactions)."""
        self.loading = True
        try:
            self.data = await self._request("GET", self.disputes_path)
            self.error = None
            return self.data
        finally:
            self.loading = False

    async def select(self, dispute_id: uuid.UUID | str) -> dict[str, Any]:
        key = str(dispute_id)
        self.selected_id = key
        if key in self.details:
            return self.details[key]
        self.loading = True
        try:
            detail = await self._request("GET", f"{self.disputes_path}/{key}")
        finally:
            self.loading = False
        self.details[key] = detail
        return detail

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.mutating = True
        try:
            created = await self._request("POST", self.disputes_path, json=payload)
            key = str(created["id"])
            self.details[key] = created
            self.selected_id = key
            await self.refresh()
        finally:
            self.mutating = False
        logger.info("disputes_client.dispute_created", dispute_id=key)
        return created

    async def log_event(self, dispute_id: uuid.UUID | str, payload: dict[str, Any]) -> dict[str, Any]:
        key = str(dispute_id)
        self.mutating = True
        try:
            updated = await self._request("POST", f"{self.disputes_path}/{key}/events", json=payload)
            self.details[key] = updated
            await self.refresh()
        finally:
            self.mutating = False
        return updated
