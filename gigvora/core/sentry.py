"""Sentry initialisation for the Gigvora API."""

from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.httpx import HttpxIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

logger = structlog.get_logger()

_REDACTED = "[REDACTED]"
_SENSITIVE_HEADERS = {"authorization", "cookie", "x-api-key"}
# Evidence uploads and payout references.
_SENSITIVE_BODY_FIELDS = {"content", "evidence", "external_reference"}


def _scrub_body(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: _REDACTED if k.lower() in _SENSITIVE_BODY_FIELDS else _scrub_body(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_scrub_body(v) for v in value]
    return value


def _before_send(event: dict, hint: dict) -> dict:
    request = event.get("request") or {}
    headers = request.get("headers") or {}
    for header in list(headers):
        if header.lower() in _SENSITIVE_HEADERS:
            headers[header] = _REDACTED
    if "data" in request:
        request["data"] = _scrub_body(request["data"])
    return event


def init_sentry(
    dsn: str | None,
    environment: str = "development",
    release: str | None = None,
) -> None:
    """Initialise Sentry. Must run before the FastAPI app is created; no-op without a DSN."""
    if not dsn:
        logger.info("sentry_disabled")
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=f"gigvora-api@{release}" if release else None,
        traces_sample_rate=0.1 if environment == "production" else 1.0,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            RedisIntegration(),
            HttpxIntegration(),
        ],
        send_default_pii=False,
        before_send=_before_send,
    )
    logger.info("sentry_initialized", environment=environment, release=release)
