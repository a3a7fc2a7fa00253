from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from .models import CalendarEvent, Shift
from .utils import as_datetime, derive_event_id, format_time_range, format_timestamp

# Teams shift themes -> Google Calendar color IDs
# https://developers.google.com/calendar/api/v3/reference/colors/get
THEME_TO_COLOR = {
    "white": "8",
    "blue": "9",
    "green": "10",
    "purple": "3",
    "pink": "4",
    "yellow": "5",
    "gray": "8",
    "darkBlue": "9",
    "darkGreen": "10",
    "darkPurple": "3",
    "darkPink": "4",
    "darkYellow": "5",
}
NEUTRAL_COLOR = "8"

FOOTER = "---\nSynced from Microsoft Teams Shifts"


@dataclass(frozen=True)
class MapOptions:
    default_title: str = "Work Shift"
    time_zone: tzinfo = ZoneInfo("UTC")
    use_theme_colors: bool = True
    default_color_id: str = "9"


def is_active_for_owner(shift: Shift, owner_id: str) -> bool:
    return shift.user_id == owner_id and not shift.is_staged_for_deletion and shift.shared_shift is not None


def is_in_window(shift: Shift, now: datetime, horizon_end: datetime) -> bool:
    # Overlap test, so shifts already in progress stay in the window.
    item = shift.shared_shift
    if item is None:
        return False
    return item.end >= now and item.start <= horizon_end


def has_changed_since(shift: Shift, last_known: Union[str, datetime, None]) -> bool:
    known = as_datetime(last_known)
    if known is None:
        return True
    return shift.last_modified > known


def theme_color(theme: str) -> str:
    return THEME_TO_COLOR.get(theme, NEUTRAL_COLOR)


def build_description(shift: Shift, tz: tzinfo) -> str:
    item = shift.shared_shift
    parts = []
    if item.notes:
        parts.append(item.notes)
    if item.activities:
        parts.append("\nActivities:")
        for activity in item.activities:
            label = activity.display_name or activity.code
            unpaid = "" if activity.is_paid else " (unpaid)"
            parts.append(f"• {label}{unpaid} - {format_time_range(activity.start, activity.end, tz)}")
    parts.append("\n" + FOOTER)
    return "\n".join(parts).lstrip("\n")


def to_calendar_event(shift: Shift, options: MapOptions) -> Optional[CalendarEvent]:
    item = shift.shared_shift
    if item is None:
        return None

    if options.use_theme_colors:
        color_id = theme_color(item.theme)
    else:
        color_id = options.default_color_id

    return CalendarEvent(
        id=derive_event_id(shift.id),
        title=item.display_name or options.default_title,
        description=build_description(shift, options.time_zone),
        start=item.start.astimezone(options.time_zone),
        end=item.end.astimezone(options.time_zone),
        time_zone=getattr(options.time_zone, "key", "UTC"),
        color_id=color_id,
        shift_id=shift.id,
        shift_modified=format_timestamp(shift.last_modified),
    )
