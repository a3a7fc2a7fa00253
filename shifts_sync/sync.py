from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from .ledger import SyncLedger
from .mapper import MapOptions, has_changed_since, to_calendar_event
from .models import CalendarEvent, LedgerRecord, Shift, ShiftWindow, SyncResult
from .utils import derive_event_id, format_timestamp

RULE = "-" * 50


class ShiftSource(Protocol):
    def fetch_shifts_in_window(self, owner_id: str, window_start: datetime, window_end: datetime) -> ShiftWindow:
        ...


class CalendarSink(Protocol):
    def upsert(self, event_id: str, event: CalendarEvent) -> str:
        ...

    def delete_event(self, event_id: str) -> None:
        ...


@dataclass(frozen=True)
class SyncOptions:
    days_ahead: int = 30
    map_options: MapOptions = MapOptions()


class SyncEngine:
    def __init__(
        self,
        options: SyncOptions,
        source: ShiftSource,
        sink: CalendarSink,
        ledger: SyncLedger,
        owner_id: str,
    ):
        self.options = options
        self.source = source
        self.sink = sink
        self.ledger = ledger
        self.owner_id = owner_id

    def run(self, dry_run: bool = False, now: Optional[datetime] = None) -> SyncResult:
        now = now or datetime.now(timezone.utc)
        horizon_end = now + timedelta(days=self.options.days_ahead)
        result = SyncResult(dry_run=dry_run)

        logging.info("Starting sync%s for %s - %s", " (dry run)" if dry_run else "", now, horizon_end)
        window = self.source.fetch_shifts_in_window(self.owner_id, now, horizon_end)

        current_ids: set[str] = set()
        for shift in window.in_window:
            if shift.id in current_ids:
                logging.debug("Shift %s returned more than once, already handled", shift.id)
                continue
            current_ids.add(shift.id)
            try:
                self._reconcile_shift(shift, result, dry_run)
            except Exception as exc:
                logging.error("Failed to sync shift %s: %s", shift.id, exc)
                result.errors.append(f"Failed to sync shift {shift.id}: {exc}")

        for shift_id, reason in window.malformed.items():
            current_ids.add(shift_id)
            result.errors.append(f"Failed to sync shift {shift_id}: {reason}")

        for shift_id in sorted(self.ledger.all_known_shift_ids() - current_ids):
            try:
                self._remove_shift(shift_id, shift_id in window.active_ids, result, dry_run)
            except Exception as exc:
                logging.error("Failed to delete shift %s: %s", shift_id, exc)
                result.errors.append(f"Failed to delete shift {shift_id}: {exc}")

        if not dry_run:
            self.ledger.save()

        log_summary(result)
        return result

    def _reconcile_shift(self, shift: Shift, result: SyncResult, dry_run: bool) -> None:
        record = self.ledger.get_record(shift.id)
        if record and not has_changed_since(shift, record.last_modified):
            result.skipped += 1
            return

        event = to_calendar_event(shift, self.options.map_options)
        if event is None:
            result.skipped += 1
            return

        verb = "Updated" if record else "Created"
        if dry_run:
            verb = "Would update" if record else "Would create"
        else:
            event_id = self.sink.upsert(record.event_id if record else derive_event_id(shift.id), event)
            self.ledger.set_record(
                shift.id,
                LedgerRecord(event_id=event_id, last_modified=format_timestamp(shift.last_modified)),
            )

        if record:
            result.updated += 1
        else:
            result.created += 1
        logging.info("  %s: %s (%s)", verb, event.title, event.start.strftime("%a %b %d"))

    def _remove_shift(self, shift_id: str, still_active: bool, result: SyncResult, dry_run: bool) -> None:
        record = self.ledger.get_record(shift_id)
        if record is None:
            return
        reason = "left the sync window" if still_active else "no longer scheduled"
        if dry_run:
            logging.info("  Would delete: event for shift %s (%s)", shift_id, reason)
        else:
            self.sink.delete_event(record.event_id)
            self.ledger.delete_record(shift_id)
            logging.info("  Deleted: event for shift %s (%s)", shift_id, reason)
        result.deleted += 1


def log_summary(result: SyncResult) -> None:
    logging.info(RULE)
    logging.info("Sync summary%s", " (dry run, nothing changed)" if result.dry_run else "")
    logging.info(RULE)
    logging.info("  Created: %d", result.created)
    logging.info("  Updated: %d", result.updated)
    logging.info("  Deleted: %d", result.deleted)
    logging.info("  Skipped: %d", result.skipped)
    if result.errors:
        logging.error("  Errors:  %d", len(result.errors))
        for error in result.errors:
            logging.error("    %s", error)
    logging.info(RULE)
