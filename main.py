from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

import requests
from google.auth.exceptions import GoogleAuthError

from shifts_sync.config import ConfigError, get_settings
from shifts_sync.doctor import run_doctor
from shifts_sync.gcal import GoogleCalendarSink, build_service
from shifts_sync.graph import GraphShiftSource
from shifts_sync.ledger import LedgerError, SyncLedger
from shifts_sync.mapper import MapOptions
from shifts_sync.msauth import AuthError, acquire_graph_token, build_graph_session
from shifts_sync.sync import SyncEngine, SyncOptions


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync Microsoft Teams Shifts to Google Calendar")
    parser.add_argument("-n", "--dry-run", action="store_true", help="Show what would be synced without making changes")
    parser.add_argument("--doctor", action="store_true", help="Run diagnostics to check configuration")
    parser.add_argument("--days-ahead", type=int, default=None, help="Override SYNC_DAYS_AHEAD")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)
    if args.days_ahead is not None and args.days_ahead < 0:
        parser.error("--days-ahead must be a non-negative integer")
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    if args.doctor:
        return 0 if run_doctor() else 1

    try:
        settings = get_settings()
        days_ahead = settings.days_ahead if args.days_ahead is None else args.days_ahead

        ledger = SyncLedger(settings.state_file_path)
        ledger.load()

        source = GraphShiftSource(build_graph_session(acquire_graph_token(settings)), settings.team_id)
        owner_id = source.get_current_user_id()
        sink = GoogleCalendarSink(
            build_service(settings.google_credentials_path, settings.google_token_path),
            settings.calendar_id,
        )
    except (ConfigError, AuthError, LedgerError, requests.RequestException, GoogleAuthError) as exc:
        logging.error("Setup failed: %s", exc)
        logging.error('Run "python main.py --doctor" to diagnose configuration issues.')
        return 1

    options = SyncOptions(
        days_ahead=days_ahead,
        map_options=MapOptions(
            default_title=settings.default_event_title,
            time_zone=settings.timezone,
            use_theme_colors=settings.use_teams_colors,
            default_color_id=settings.default_event_color,
        ),
    )
    engine = SyncEngine(options, source, sink, ledger, owner_id)
    result = engine.run(dry_run=args.dry_run)

    logging.info("Done")
    return 1 if result.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
