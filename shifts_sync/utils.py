from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo
from typing import Optional, Union

EVENT_ID_PREFIX = "shift"

_DISALLOWED_ID_CHARS = re.compile(r"[^a-z0-9]")
_FRACTION = re.compile(r"\.(\d+)")


def derive_event_id(shift_id: str) -> str:
    return EVENT_ID_PREFIX + _DISALLOWED_ID_CHARS.sub("", shift_id.lower())


def parse_timestamp(value: str) -> datetime:
    """Parse a Graph/ISO-8601 timestamp into an aware UTC datetime.

    Graph emits a trailing ``Z`` and up to seven fractional digits, neither of
    which ``datetime.fromisoformat`` accepts on every supported Python.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def as_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return parse_timestamp(value)


def format_clock(value: datetime, tz: tzinfo) -> str:
    local = value.astimezone(tz)
    return f"{local.hour % 12 or 12}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"


def format_time_range(start: datetime, end: datetime, tz: tzinfo) -> str:
    return f"{format_clock(start, tz)} - {format_clock(end, tz)}"
