from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

EVENT_SOURCE_TAG = "teams-shifts-sync"


@dataclass(frozen=True)
class ShiftActivity:
    code: str
    display_name: Optional[str]
    start: datetime
    end: datetime
    is_paid: bool = True


@dataclass(frozen=True)
class ShiftItem:
    display_name: Optional[str]
    notes: Optional[str]
    start: datetime
    end: datetime
    theme: str = "white"
    activities: tuple[ShiftActivity, ...] = ()


@dataclass(frozen=True)
class Shift:
    id: str
    user_id: str
    last_modified: datetime
    shared_shift: Optional[ShiftItem]
    is_staged_for_deletion: bool = False
    scheduling_group_id: Optional[str] = None


@dataclass(frozen=True)
class ShiftWindow:
    """Shifts returned by a source for one run.

    ``in_window`` is what gets synced; ``active_ids`` covers every active shift
    of the owner, inside the window or not. ``malformed`` maps ids of
    shifts the source could not parse to the reason.
    """

    in_window: list[Shift]
    active_ids: frozenset[str] = frozenset()
    malformed: dict[str, str] = field(default_factory=dict)


@dataclass
class CalendarEvent:
    id: str
    title: str
    description: str
    start: datetime
    end: datetime
    time_zone: str
    color_id: str
    shift_id: str
    shift_modified: str

    def to_gcal_body(self) -> dict:
        return {
            "id": self.id,
            "summary": self.title,
            "description": self.description,
            "start": {"dateTime": self.start.isoformat(), "timeZone": self.time_zone},
            "end": {"dateTime": self.end.isoformat(), "timeZone": self.time_zone},
            "colorId": self.color_id,
            "status": "confirmed",
            "extendedProperties": {
                "private": {
                    "shiftId": self.shift_id,
                    "source": EVENT_SOURCE_TAG,
                    "lastModified": self.shift_modified,
                }
            },
        }


@dataclass(frozen=True)
class LedgerRecord:
    event_id: str
    last_modified: str


@dataclass
class SyncResult:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    deleted: int = 0
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def failed(self) -> bool:
        return bool(self.errors)
