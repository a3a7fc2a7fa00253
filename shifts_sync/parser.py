from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from .models import Shift, ShiftActivity, ShiftItem
from .utils import parse_timestamp


class ParseError(Exception):
    pass


def _timestamp(payload: dict, key: str, context: str):
    raw = payload.get(key)
    if not raw:
        raise ParseError(f"{context}: missing {key}")
    try:
        return parse_timestamp(raw)
    except ValueError as exc:
        raise ParseError(f"{context}: invalid {key} {raw!r}") from exc


def _parse_activity(payload: dict, context: str) -> ShiftActivity:
    if not isinstance(payload, dict):
        raise ParseError(f"{context}: activity is not an object: {payload!r}")
    return ShiftActivity(
        code=payload.get("code") or "",
        display_name=payload.get("displayName") or None,
        start=_timestamp(payload, "startDateTime", context),
        end=_timestamp(payload, "endDateTime", context),
        is_paid=bool(payload.get("isPaid", True)),
    )


def _parse_item(payload: Optional[dict], context: str) -> Optional[ShiftItem]:
    if not payload:
        return None
    if not isinstance(payload, dict):
        raise ParseError(f"{context}: sharedShift is not an object")
    start = _timestamp(payload, "startDateTime", context)
    end = _timestamp(payload, "endDateTime", context)
    if end <= start:
        raise ParseError(f"{context}: endDateTime {end} is not after startDateTime {start}")
    activities = []
    for raw in payload.get("activities") or []:
        try:
            activities.append(_parse_activity(raw, context))
        except ParseError as exc:
            logging.warning("Dropping activity: %s", exc)
    return ShiftItem(
        display_name=payload.get("displayName") or None,
        notes=payload.get("notes") or None,
        start=start,
        end=end,
        theme=payload.get("theme") or "white",
        activities=tuple(activities),
    )


def parse_interval(payload: dict) -> Optional[tuple[datetime, datetime]]:
    """Start and end of a raw ``sharedShift``, or None if either is unusable."""
    try:
        return parse_timestamp(payload["startDateTime"]), parse_timestamp(payload["endDateTime"])
    except (KeyError, TypeError, AttributeError, ValueError):
        return None


def parse_shift(payload: dict) -> Shift:
    shift_id = payload.get("id")
    if not shift_id:
        raise ParseError("Shift without id")
    context = f"shift {shift_id}"
    return Shift(
        id=shift_id,
        user_id=payload.get("userId") or "",
        last_modified=_timestamp(payload, "lastModifiedDateTime", context),
        shared_shift=_parse_item(payload.get("sharedShift"), context),
        is_staged_for_deletion=bool(payload.get("isStagedForDeletion", False)),
        scheduling_group_id=payload.get("schedulingGroupId"),
    )

