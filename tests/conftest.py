from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from shifts_sync.ledger import SyncLedger
from shifts_sync.mapper import is_active_for_owner, is_in_window
from shifts_sync.models import CalendarEvent, Shift, ShiftActivity, ShiftItem, ShiftWindow

OWNER = "user-1"
NOW = datetime(2026, 2, 4, 12, 0, tzinfo=timezone.utc)


def build_shift(
    shift_id: str = "shift-1",
    user_id: str = OWNER,
    modified: datetime = datetime(2026, 1, 1, tzinfo=timezone.utc),
    start: datetime = datetime(2026, 2, 5, 8, 0, tzinfo=timezone.utc),
    end: Optional[datetime] = None,
    deleted: bool = False,
    payload: bool = True,
    **item_fields,
) -> Shift:
    item = None
    if payload:
        item = ShiftItem(
            display_name=item_fields.pop("display_name", "Morning"),
            notes=item_fields.pop("notes", None),
            start=start,
            end=end or start + timedelta(hours=8),
            theme=item_fields.pop("theme", "blue"),
            activities=tuple(item_fields.pop("activities", ())),
        )
    return Shift(
        id=shift_id,
        user_id=user_id,
        last_modified=modified,
        shared_shift=item,
        is_staged_for_deletion=deleted,
    )


def build_activity(label: str, start: datetime, hours: float = 1, paid: bool = True) -> ShiftActivity:
    return ShiftActivity(
        code=label.upper(),
        display_name=label,
        start=start,
        end=start + timedelta(hours=hours),
        is_paid=paid,
    )


class FakeShiftSource:
    def __init__(self, shifts: Optional[list[Shift]] = None):
        self.shifts = list(shifts or [])
        self.calls = []

    def fetch_shifts_in_window(self, owner_id, window_start, window_end) -> ShiftWindow:
        self.calls.append((owner_id, window_start, window_end))
        active = [s for s in self.shifts if is_active_for_owner(s, owner_id)]
        return ShiftWindow(
            in_window=[s for s in active if is_in_window(s, window_start, window_end)],
            active_ids=frozenset(s.id for s in active),
        )


class FakeCalendarSink:
    """In-memory calendar keyed by event id with the same upsert/delete contract."""

    def __init__(self):
        self.events: dict[str, CalendarEvent] = {}
        self.calls = []
        self.fail_for = set()

    def upsert(self, event_id: str, event: CalendarEvent) -> str:
        self.calls.append(("upsert", event_id))
        if event.shift_id in self.fail_for:
            raise RuntimeError("calendar unavailable")
        self.events[event_id] = event
        return event_id

    def delete_event(self, event_id: str) -> None:
        self.calls.append(("delete", event_id))
        if event_id in self.fail_for:
            raise RuntimeError("calendar unavailable")
        self.events.pop(event_id, None)


@pytest.fixture
def ledger_path(tmp_path):
    return tmp_path / "sync-state.json"


@pytest.fixture
def ledger(ledger_path):
    store = SyncLedger(ledger_path)
    store.load()
    return store


@pytest.fixture
def sink():
    return FakeCalendarSink()
