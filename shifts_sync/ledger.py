from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .models import LedgerRecord
from .utils import format_timestamp

SCHEMA_VERSION = 2


class LedgerError(Exception):
    pass


def is_legacy_layout(data: dict) -> bool:
    return "schemaVersion" not in data


def check_records(data: dict, path: Path) -> None:
    records = data.get("records", {})
    if not isinstance(records, dict):
        raise LedgerError(f"Ledger {path} has malformed records: expected an object, got {type(records).__name__}")
    for shift_id, record in records.items():
        if not isinstance(record, dict):
            raise LedgerError(f"Ledger {path} has a malformed record for shift {shift_id}: {record!r}")


def migrate_legacy(data: dict) -> dict:
    """Convert the unversioned ``{lastSync, records: {calendarEventId}}`` layout."""
    records = {}
    for shift_id, record in data.get("records", {}).items():
        records[shift_id] = {
            "eventId": record.get("calendarEventId") or record.get("eventId"),
            "lastModified": record.get("lastModified") or "",
        }
    return {
        "schemaVersion": SCHEMA_VERSION,
        "lastSyncTimestamp": data.get("lastSync"),
        "records": records,
    }


class SyncLedger:
    """Durable map of shift id -> calendar event id and last synced modification.

    All accessors work on the in-memory copy; only ``load`` and ``save`` touch
    the file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._records: dict[str, LedgerRecord] = {}
        self._last_sync: Optional[str] = None

    @property
    def last_sync(self) -> Optional[str]:
        return self._last_sync

    def load(self) -> None:
        if not self.path.exists():
            logging.info("No ledger at %s, starting empty", self.path)
            self._records = {}
            self._last_sync = None
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise LedgerError(f"Cannot read ledger {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise LedgerError(f"Ledger {self.path} is not a JSON object")
        check_records(data, self.path)

        migrated = False
        if is_legacy_layout(data):
            logging.info("Migrating legacy ledger %s to schema version %d", self.path, SCHEMA_VERSION)
            data = migrate_legacy(data)
            migrated = True

        version = data.get("schemaVersion")
        if not isinstance(version, int) or version > SCHEMA_VERSION:
            raise LedgerError(
                f"Ledger {self.path} has schema version {version!r}; "
                f"this build supports up to {SCHEMA_VERSION}. Upgrade before syncing."
            )

        self._last_sync = data.get("lastSyncTimestamp")
        self._records = {}
        for shift_id, record in data.get("records", {}).items():
            if not record.get("eventId"):
                logging.warning("Dropping ledger entry %s without an event id", shift_id)
                continue
            self._records[shift_id] = LedgerRecord(
                event_id=record["eventId"],
                last_modified=record.get("lastModified") or "",
            )
        logging.info("Loaded %d ledger record(s) from %s", len(self._records), self.path)

        if migrated:
            try:
                self.save(preserve_last_sync=True)
            except OSError as exc:
                raise LedgerError(f"Cannot persist migrated ledger {self.path}: {exc}") from exc

    def get_record(self, shift_id: str) -> Optional[LedgerRecord]:
        return self._records.get(shift_id)

    def set_record(self, shift_id: str, record: LedgerRecord) -> None:
        self._records[shift_id] = record

    def delete_record(self, shift_id: str) -> None:
        self._records.pop(shift_id, None)

    def all_known_shift_ids(self) -> set[str]:
        return set(self._records)

    def to_dict(self) -> dict:
        return {
            "schemaVersion": SCHEMA_VERSION,
            "lastSyncTimestamp": self._last_sync,
            "records": {
                shift_id: {"eventId": record.event_id, "lastModified": record.last_modified}
                for shift_id, record in sorted(self._records.items())
            },
        }

    def save(self, preserve_last_sync: bool = False) -> None:
        if not preserve_last_sync:
            self._last_sync = format_timestamp(datetime.now(timezone.utc))

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(self.to_dict(), tmp, indent=2)
                tmp.write("\n")
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logging.debug("Saved ledger with %d record(s) to %s", len(self._records), self.path)
