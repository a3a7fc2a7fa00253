from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from conftest import NOW, OWNER, build_activity, build_shift
from shifts_sync.mapper import (
    NEUTRAL_COLOR,
    MapOptions,
    has_changed_since,
    is_active_for_owner,
    is_in_window,
    to_calendar_event,
)
from shifts_sync.utils import derive_event_id, parse_timestamp

HORIZON = NOW + timedelta(days=6)


class TestIsActiveForOwner:
    def test_accepts_live_shift_of_owner(self):
        assert is_active_for_owner(build_shift(), OWNER)

    @pytest.mark.parametrize(
        "shift",
        [
            build_shift(user_id="user-2"),
            build_shift(deleted=True),
            build_shift(payload=False),
        ],
        ids=["other-owner", "staged-for-deletion", "no-payload"],
    )
    def test_rejects(self, shift):
        assert not is_active_for_owner(shift, OWNER)


class TestIsInWindow:
    def test_ongoing_shift_is_included(self):
        assert is_in_window(build_shift(start=NOW - timedelta(hours=4)), NOW, HORIZON)

    def test_upcoming_shift_is_included(self):
        assert is_in_window(build_shift(start=NOW + timedelta(days=5)), NOW, HORIZON)

    def test_shift_ending_exactly_now_is_included(self):
        shift = build_shift(start=NOW - timedelta(hours=8), end=NOW)
        assert is_in_window(shift, NOW, HORIZON)

    def test_shift_starting_exactly_at_horizon_is_included(self):
        assert is_in_window(build_shift(start=HORIZON), NOW, HORIZON)

    def test_ended_shift_is_excluded(self):
        assert not is_in_window(build_shift(start=NOW - timedelta(days=1), end=NOW - timedelta(seconds=1)), NOW, HORIZON)

    def test_shift_beyond_horizon_is_excluded(self):
        assert not is_in_window(build_shift(start=HORIZON + timedelta(seconds=1)), NOW, HORIZON)

    def test_missing_payload_is_excluded(self):
        assert not is_in_window(build_shift(payload=False), NOW, HORIZON)


class TestDeriveEventId:
    def test_is_stable_and_lowercase_alphanumeric(self):
        shift_id = "SHFT_4f8a-91B2:cd"
        first = derive_event_id(shift_id)
        assert first == derive_event_id(shift_id)
        assert first == "shiftshft4f8a91b2cd"
        assert first.isalnum() and first == first.lower()

    def test_never_empty_or_digit_leading(self):
        assert derive_event_id("---") == "shift"
        assert derive_event_id("123")[0].isalpha()


class TestHasChangedSince:
    def test_unknown_previous_timestamp_counts_as_changed(self):
        assert has_changed_since(build_shift(), None)
        assert has_changed_since(build_shift(), "")

    def test_same_instant_in_different_formats_is_unchanged(self):
        shift = build_shift(modified=parse_timestamp("2026-01-01T10:00:00.1234567Z"))
        assert not has_changed_since(shift, "2026-01-01T11:00:00.123456+01:00")

    def test_newer_modification_is_changed(self):
        shift = build_shift(modified=datetime(2026, 1, 2, tzinfo=timezone.utc))
        assert has_changed_since(shift, "2026-01-01T23:59:59Z")

    def test_older_modification_is_unchanged(self):
        shift = build_shift(modified=datetime(2026, 1, 1, tzinfo=timezone.utc))
        assert not has_changed_since(shift, "2026-01-02T00:00:00Z")


class TestToCalendarEvent:
    def test_returns_none_without_payload(self):
        assert to_calendar_event(build_shift(payload=False), MapOptions()) is None

    def test_maps_title_color_times_and_metadata(self):
        shift = build_shift(shift_id="abc-123", theme="darkGreen")
        event = to_calendar_event(shift, MapOptions(time_zone=ZoneInfo("America/Chicago")))

        assert event.id == "shiftabc123"
        assert event.title == "Morning"
        assert event.color_id == "10"
        assert event.time_zone == "America/Chicago"
        assert event.start == shift.shared_shift.start
        body = event.to_gcal_body()
        assert body["start"]["timeZone"] == "America/Chicago"
        assert body["extendedProperties"]["private"] == {
            "shiftId": "abc-123",
            "source": "teams-shifts-sync",
            "lastModified": "2026-01-01T00:00:00Z",
        }

    def test_default_title_when_shift_has_no_name(self):
        event = to_calendar_event(build_shift(display_name=None), MapOptions(default_title="Work Shift"))
        assert event.title == "Work Shift"

    def test_unknown_theme_falls_back_to_neutral_color(self):
        event = to_calendar_event(build_shift(theme="ultraviolet"), MapOptions())
        assert event.color_id == NEUTRAL_COLOR

    def test_fixed_color_when_theme_colors_disabled(self):
        event = to_calendar_event(build_shift(theme="pink"), MapOptions(use_theme_colors=False, default_color_id="2"))
        assert event.color_id == "2"

    def test_description_lists_notes_activities_and_footer(self):
        start = datetime(2026, 2, 5, 14, 0, tzinfo=timezone.utc)
        shift = build_shift(
            start=start,
            notes="Bring badge",
            activities=[
                build_activity("Register", start, hours=4),
                build_activity("Lunch", start + timedelta(hours=4), hours=0.5, paid=False),
            ],
        )
        event = to_calendar_event(shift, MapOptions(time_zone=ZoneInfo("America/Chicago")))

        assert event.description == (
            "Bring badge\n"
            "\n"
            "Activities:\n"
            "• Register - 8:00 AM - 12:00 PM\n"
            "• Lunch (unpaid) - 12:00 PM - 12:30 PM\n"
            "\n"
            "---\n"
            "Synced from Microsoft Teams Shifts"
        )

    def test_description_without_notes_or_activities_is_footer_only(self):
        event = to_calendar_event(build_shift(), MapOptions())
        assert event.description == "---\nSynced from Microsoft Teams Shifts"
