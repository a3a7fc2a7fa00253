from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

REQUIRED_ENV = ("AZURE_TENANT_ID", "AZURE_CLIENT_ID", "AZURE_TEAM_ID")

DEFAULTS = {
    "GOOGLE_CALENDAR_ID": "primary",
    "GOOGLE_CREDENTIALS_PATH": "./credentials.json",
    "GOOGLE_TOKEN_PATH": "./google-token.json",
    "SYNC_DAYS_AHEAD": "30",
    "STATE_FILE_PATH": "./sync-state.json",
    "TOKEN_CACHE_PATH": "./token-cache.json",
    "DEFAULT_EVENT_TITLE": "Work Shift",
    "DEFAULT_EVENT_COLOR": "9",
    "USE_TEAMS_COLORS": "true",
    "TIMEZONE": "UTC",
}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    tenant_id: str
    client_id: str
    team_id: str
    calendar_id: str
    google_credentials_path: Path
    google_token_path: Path
    days_ahead: int
    state_file_path: Path
    token_cache_path: Path
    default_event_title: str
    default_event_color: str
    use_teams_colors: bool
    timezone: ZoneInfo


def env(name: str) -> str:
    return os.getenv(name) or DEFAULTS.get(name, "")


def get_timezone() -> ZoneInfo:
    tz_name = env("TIMEZONE")
    try:
        return ZoneInfo(tz_name)
    except Exception:
        logging.warning("Invalid TIMEZONE %s, falling back to UTC", tz_name)
        return ZoneInfo("UTC")


def parse_days_ahead(raw: str) -> int:
    try:
        days = int(raw)
    except ValueError:
        raise ConfigError(f"SYNC_DAYS_AHEAD must be a non-negative integer, got {raw!r}") from None
    if days < 0:
        raise ConfigError(f"SYNC_DAYS_AHEAD must be a non-negative integer, got {raw!r}")
    return days


def parse_color(raw: str) -> str:
    if not raw.isdigit() or not 1 <= int(raw) <= 11:
        raise ConfigError(f"DEFAULT_EVENT_COLOR must be a Google Calendar color ID 1-11, got {raw!r}")
    return str(int(raw))


def parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_settings() -> Settings:
    missing = [name for name in REQUIRED_ENV if not os.getenv(name)]
    if missing:
        raise ConfigError(f"Missing required environment variable(s): {', '.join(missing)}")

    return Settings(
        tenant_id=os.environ["AZURE_TENANT_ID"],
        client_id=os.environ["AZURE_CLIENT_ID"],
        team_id=os.environ["AZURE_TEAM_ID"],
        calendar_id=env("GOOGLE_CALENDAR_ID"),
        google_credentials_path=Path(env("GOOGLE_CREDENTIALS_PATH")).resolve(),
        google_token_path=Path(env("GOOGLE_TOKEN_PATH")).resolve(),
        days_ahead=parse_days_ahead(env("SYNC_DAYS_AHEAD")),
        state_file_path=Path(env("STATE_FILE_PATH")).resolve(),
        token_cache_path=Path(env("TOKEN_CACHE_PATH")).resolve(),
        default_event_title=env("DEFAULT_EVENT_TITLE"),
        default_event_color=parse_color(env("DEFAULT_EVENT_COLOR")),
        use_teams_colors=parse_bool(env("USE_TEAMS_COLORS")),
        timezone=get_timezone(),
    )
