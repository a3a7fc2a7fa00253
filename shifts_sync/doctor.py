from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .config import REQUIRED_ENV, env
from .ledger import SCHEMA_VERSION

PASS, WARN, FAIL = "pass", "warn", "fail"

STATUS_LABEL = {PASS: "[ OK ]", WARN: "[WARN]", FAIL: "[FAIL]"}


@dataclass
class CheckResult:
    name: str
    status: str
    message: str


def check_env_vars() -> list[CheckResult]:
    missing = [name for name in REQUIRED_ENV if not os.getenv(name)]
    if missing:
        return [CheckResult("Required env vars", FAIL, f"Missing: {', '.join(missing)}")]
    return [CheckResult("Required env vars", PASS, "All required environment variables are set")]


def check_google_credentials() -> list[CheckResult]:
    name = "Google credentials"
    path = Path(env("GOOGLE_CREDENTIALS_PATH")).resolve()
    if not path.exists():
        return [CheckResult(name, FAIL, f"File not found: {path}")]
    if not os.access(path, os.R_OK):
        return [CheckResult(name, FAIL, f"File not readable: {path}")]
    try:
        creds = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        return [CheckResult(name, FAIL, f"Invalid JSON in {path}: {exc}")]

    oauth = (creds.get("installed") or creds.get("web")) if isinstance(creds, dict) else None
    if not oauth:
        return [CheckResult(name, FAIL, f"Invalid format: missing 'installed' or 'web' key in {path}")]
    missing = [key for key in ("client_id", "client_secret", "redirect_uris") if not oauth.get(key)]
    if missing:
        return [CheckResult(name, FAIL, f"Invalid format: missing {', '.join(missing)} in {path}")]
    return [CheckResult(name, PASS, f"Found: {path}")]


def check_writable_file(name: str, env_name: str, absent_hint: str) -> list[CheckResult]:
    path = Path(env(env_name)).resolve()
    if not path.exists():
        if not os.access(path.parent, os.W_OK):
            return [CheckResult(name, FAIL, f"Not found and parent directory not writable: {path}")]
        return [CheckResult(name, WARN, f"Not found ({absent_hint}): {path}")]
    if not os.access(path, os.R_OK):
        return [CheckResult(name, FAIL, f"File not readable: {path}")]
    if not os.access(path, os.W_OK):
        return [CheckResult(name, FAIL, f"File not writable: {path}")]
    return [CheckResult(name, PASS, f"Found: {path}")]


def check_google_token() -> list[CheckResult]:
    return check_writable_file("Google token", "GOOGLE_TOKEN_PATH", "will prompt on first sync")


def check_microsoft_token() -> list[CheckResult]:
    return check_writable_file("Microsoft token", "TOKEN_CACHE_PATH", "will prompt on first sync")


def check_state_file() -> list[CheckResult]:
    results = check_writable_file("State file", "STATE_FILE_PATH", "will be created on first sync")
    if results[0].status != PASS:
        return results

    path = Path(env("STATE_FILE_PATH")).resolve()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        return [CheckResult("State file", FAIL, f"Invalid JSON in {path}: {exc}")]
    version = data.get("schemaVersion") if isinstance(data, dict) else None
    if version is None:
        results.append(CheckResult("Ledger schema", WARN, "Legacy layout, will be migrated on next sync"))
    elif not isinstance(version, int) or version > SCHEMA_VERSION:
        results.append(
            CheckResult("Ledger schema", FAIL, f"Version {version!r} is newer than supported {SCHEMA_VERSION}")
        )
    else:
        results.append(CheckResult("Ledger schema", PASS, f"Version {version}"))
    return results


def check_config() -> list[CheckResult]:
    results = []

    raw_days = env("SYNC_DAYS_AHEAD")
    try:
        days = int(raw_days)
    except ValueError:
        days = -1
    if days < 0:
        results.append(
            CheckResult("SYNC_DAYS_AHEAD", FAIL, f'Invalid value "{raw_days}" - must be a non-negative integer')
        )
    elif days < 1:
        results.append(CheckResult("SYNC_DAYS_AHEAD", WARN, f"Value is {days} - no shifts will be synced"))
    elif days > 365:
        results.append(CheckResult("SYNC_DAYS_AHEAD", WARN, f"Value is {days} - this may be slow"))
    else:
        results.append(CheckResult("SYNC_DAYS_AHEAD", PASS, f"{days} days"))

    raw_color = env("DEFAULT_EVENT_COLOR")
    if not raw_color.isdigit() or not 1 <= int(raw_color) <= 11:
        results.append(CheckResult("DEFAULT_EVENT_COLOR", FAIL, f'Invalid value "{raw_color}" - must be 1-11'))
    else:
        results.append(CheckResult("DEFAULT_EVENT_COLOR", PASS, f"Color ID {raw_color}"))

    return results


CHECKS: list[Callable[[], list[CheckResult]]] = [
    check_env_vars,
    check_google_credentials,
    check_google_token,
    check_microsoft_token,
    check_state_file,
    check_config,
]


def run_checks() -> list[CheckResult]:
    results: list[CheckResult] = []
    for check in CHECKS:
        results.extend(check())
    return results


def run_doctor() -> bool:
    logging.info("Running diagnostics...")
    results = run_checks()
    for result in results:
        level = logging.ERROR if result.status == FAIL else logging.INFO
        logging.log(level, "%s %s: %s", STATUS_LABEL[result.status], result.name, result.message)

    failures = [r for r in results if r.status == FAIL]
    warnings = [r for r in results if r.status == WARN]
    if failures:
        logging.error("%d issue(s) must be fixed before syncing", len(failures))
        return False
    if warnings:
        logging.info("%d warning(s), but ready to sync", len(warnings))
    else:
        logging.info("All checks passed")
    return True
