"""Conversion between platform millisecond timestamps and ISO 8601 strings."""

from datetime import datetime, timezone
from typing import Optional

from .errors import ValidationError


def ms_to_iso(value: Optional[int]) -> Optional[str]:
    """Render a millisecond timestamp as ISO 8601 UTC, e.g. 2025-01-31T00:00:00.000Z."""
    if not value:
        return None
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def iso_to_ms(value: str) -> int:
    """Parse an ISO 8601 date or datetime into a millisecond timestamp.

    Naive values are taken as UTC.
    """
    text = (value or "").strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}. Expected ISO 8601, e.g. 2025-01-31")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)
