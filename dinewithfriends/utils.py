"""Utility functions for the application."""

from __future__ import annotations

import dataclasses
import datetime
import re
from typing import Any, TypeVar

from flask.json.provider import DefaultJSONProvider

from .errors import ValidationError

T = TypeVar("T")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def to_snake_case(name: str) -> str:
    """Convert a camelCase payload key to snake_case."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def parse_payload(cls: type[T], payload: Any) -> T:
    """Build the request dataclass ``cls`` from a JSON payload.

    Keys may be camelCase or snake_case. Unknown keys and missing required
    fields are rejected instead of being silently merged or defaulted. If the
    dataclass defines ``validate()`` it is called before returning.

    Raises:
        ValidationError: If the payload does not match ``cls``.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")

    fields = {f.name: f for f in dataclasses.fields(cls)}  # type: ignore[arg-type]
    kwargs: dict[str, Any] = {}
    unknown = []
    for key, value in payload.items():
        name = to_snake_case(key)
        if name not in fields or not fields[name].init:
            unknown.append(key)
        else:
            kwargs[name] = value
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(sorted(unknown))}.")

    missing = [
        name
        for name, f in fields.items()
        if f.init
        and name not in kwargs
        and f.default is dataclasses.MISSING
        and f.default_factory is dataclasses.MISSING
    ]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}.")

    instance = cls(**kwargs)
    validate = getattr(instance, "validate", None)
    if callable(validate):
        validate()
    return instance


def require_text(value: Any, field: str) -> str:
    """Return ``value`` stripped, or raise if it is not a non-empty string."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required.")
    return value.strip()


def require_id_list(value: Any, field: str) -> list[str]:
    """Return ``value`` as a list of non-empty string IDs, preserving order."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)) or not all(
        isinstance(item, str) and item for item in value
    ):
        raise ValidationError(f"{field} must be a list of IDs.")
    return list(dict.fromkeys(value))


def parse_date(value: Any, field: str = "date") -> datetime.date:
    """Parse a ``YYYY-MM-DD`` string (or date) into a date."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        try:
            return datetime.date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise ValidationError(f"{field} must be a date in YYYY-MM-DD format.")


def parse_datetime(value: Any, field: str) -> datetime.datetime:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime."""
    if isinstance(value, str):
        try:
            value = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 timestamp.") from None
    if not isinstance(value, datetime.datetime):
        raise ValidationError(f"{field} must be an ISO-8601 timestamp.")
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def _json_default(o: Any) -> Any:
    if isinstance(o, (datetime.datetime, datetime.date)):
        return o.isoformat()
    return DefaultJSONProvider.default(o)


class JSONProvider(DefaultJSONProvider):
    """Flask JSON provider that renders timestamps as ISO-8601 strings."""

    default = staticmethod(_json_default)  # type: ignore[assignment]
