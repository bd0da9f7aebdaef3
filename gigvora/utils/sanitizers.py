"""Input normalisation shared by the service layer.

Every helper raises :class:`gigvora.core.errors.ValidationError` for input it
cannot coerce, so services can validate a payload before touching the
database.
"""

from __future__ import annotations

import math
import re
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from gigvora.core.errors import ValidationError

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}

_SENSITIVE_KEYS = {
    "secret",
    "secrets",
    "apikey",
    "api_key",
    "token",
    "accesstoken",
    "access_token",
    "refreshtoken",
    "refresh_token",
    "password",
    "credentials",
}
_PRIVATE_PREFIXES = ("internal", "private")


def sanitize_string(
    value: Any,
    *,
    max_length: int = 255,
    allow_null: bool = True,
    lower: bool = False,
    upper: bool = False,
) -> str | None:
    """Trim, truncate and optionally case a value. Blank becomes ``None``."""
    if value is None:
        return None if allow_null else ""
    text = str(value).strip()
    if not text:
        return None if allow_null else ""
    if lower:
        text = text.lower()
    elif upper:
        text = text.upper()
    return text[:max_length]


def require_string(value: Any, field: str, *, max_length: int = 255) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required.")
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters.")
    return text


def normalize_currency(value: Any, fallback: str | None = "USD") -> str | None:
    code = sanitize_string(value, upper=True)
    if code is None:
        return fallback
    if not re.fullmatch(r"[A-Z]{3}", code):
        raise ValidationError(
            "Currency code must be a three letter ISO code.",
            details=[{"field": "currency_code", "value": code}],
        )
    return code


def sanitize_metadata(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def _is_private_key(key: str) -> bool:
    if key.startswith("_"):
        return True
    lowered = key.lower()
    if lowered in _SENSITIVE_KEYS:
        return True
    return any(lowered.startswith(prefix) for prefix in _PRIVATE_PREFIXES)


def strip_private_metadata(value: Any) -> Any:
    """Recursively drop private, internal and credential keys from dicts and lists."""
    if isinstance(value, dict):
        return {
            key: strip_private_metadata(item)
            for key, item in value.items()
            if not (isinstance(key, str) and _is_private_key(key))
        }
    if isinstance(value, list):
        return [strip_private_metadata(item) for item in value]
    return value


def to_number(value: Any, fallback: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def parse_decimal(value: Any, field: str, *, minimum: Decimal | None = None) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be a number.") from exc
    if not number.is_finite():
        raise ValidationError(f"{field} must be a number.")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}.")
    return number


def parse_int(
    value: Any, field: str, *, minimum: int | None = None, maximum: int | None = None
) -> int | None:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a whole number.") from exc
    if (minimum is not None and number < minimum) or (maximum is not None and number > maximum):
        raise ValidationError(f"{field} must be between {minimum} and {maximum}.")
    return number


def parse_datetime(value: Any, field: str) -> datetime | None:
    """Accept datetimes, dates and ISO-8601 strings; naive values are UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(f"{field} must be a valid date.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_uuid(value: Any, field: str) -> uuid.UUID | None:
    if value is None or value == "":
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise ValidationError(f"{field} must be a valid identifier.") from exc


def ensure_optional_bool(value: Any, field: str) -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValidationError(f"{field} must be a boolean value.")


def ensure_choice(value: Any, field: str, choices: set[str], *, default: str | None = None) -> str | None:
    text = sanitize_string(value, max_length=60, lower=True)
    if text is None:
        return default
    if text not in choices:
        raise ValidationError(
            f"{field} must be one of: {', '.join(sorted(choices))}.",
            details=[{"field": field, "value": text}],
        )
    return text


def humanize(value: str | None) -> str:
    """``"awaiting_customer"`` -> ``"Awaiting Customer"``."""
    if not value:
        return ""
    return " ".join(part.capitalize() for part in re.split(r"[_\s-]+", value) if part)


def like_pattern(term: str, escape: str = "\\") -> str:
    """Substring pattern for LIKE/ILIKE with the wildcards in ``term`` matched literally."""
    for char in (escape, "%", "_"):
        term = term.replace(char, escape + char)
    return f"%{term}%"
