"""Small helpers for reading loosely-typed JSON request bodies."""
from __future__ import annotations

import uuid
from datetime import date, timezone as dt_timezone
from typing import Any, List, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .exceptions import BadRequest


def ensure_string(value: Any, field: str) -> str:
    """Return ``value`` stripped, or raise a 400 naming the missing field."""
    if not isinstance(value, str) or not value.strip():
        raise BadRequest(f"{field} is required.")
    return value.strip()


def optional_string(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def as_string_array(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def is_truthy_flag(value: Any) -> bool:
    """Query-string flags accept ``1`` and ``true``."""
    return str(value).strip().lower() in {"1", "true"}


def parse_date_value(value: Any) -> Optional[date]:
    """Parse an ISO date or datetime string; ``None`` when unparseable."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        parsed = parse_date(text)
    except ValueError:
        parsed = None
    if parsed is not None:
        return parsed
    try:
        moment = parse_datetime(text)
    except ValueError:
        moment = None
    return moment.date() if moment is not None else None


def parse_datetime_value(value: Any):
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        moment = parse_datetime(value.strip())
    except ValueError:
        return None
    if moment is not None and timezone.is_naive(moment):
        moment = timezone.make_aware(moment, dt_timezone.utc)
    return moment


def body_dict(request) -> dict:
    """Request body as a plain dict (empty for non-object JSON)."""
    data = request.data
    if hasattr(data, "dict"):
        return data.dict()
    return data if isinstance(data, dict) else {}


def parse_uuid(value: Any) -> Optional[uuid.UUID]:
    """UUID from a string or UUID; ``None`` for anything else."""
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None
