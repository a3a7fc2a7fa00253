from __future__ import annotations

import logging
from pathlib import Path

import msal
import requests

from .config import Settings

SCOPES = ["https://graph.microsoft.com/Schedule.Read.All"]


class AuthError(Exception):
    pass


def _load_cache(path: Path) -> msal.SerializableTokenCache:
    cache = msal.SerializableTokenCache()
    if path.exists():
        try:
            cache.deserialize(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise AuthError(f"Cannot read Microsoft token cache {path}: {exc}") from exc
        logging.info("Loaded cached Microsoft tokens from %s", path)
    return cache


def _save_cache(cache: msal.SerializableTokenCache, path: Path) -> None:
    if cache.has_state_changed:
        path.write_text(cache.serialize(), encoding="utf-8")


def acquire_graph_token(settings: Settings) -> str:
    cache = _load_cache(settings.token_cache_path)
    app = msal.PublicClientApplication(
        settings.client_id,
        authority=f"https://login.microsoftonline.com/{settings.tenant_id}",
        token_cache=cache,
    )

    result = None
    accounts = app.get_accounts()
    if accounts:
        result = app.acquire_token_silent(SCOPES, account=accounts[0])
        if result and "access_token" in result:
            logging.info("Using cached Microsoft token")

    if not result or "access_token" not in result:
        flow = app.initiate_device_flow(scopes=SCOPES)
        if "user_code" not in flow:
            raise AuthError(f"Could not start device code flow: {flow.get('error_description', flow)}")
        logging.warning("Microsoft authentication required")
        logging.warning(flow["message"])
        result = app.acquire_token_by_device_flow(flow)

    _save_cache(cache, settings.token_cache_path)

    if "access_token" not in result:
        error = result.get("error", "unknown_error")
        raise AuthError(f"Microsoft authentication failed: {error} - {result.get('error_description', '')}")
    return result["access_token"]


def build_graph_session(access_token: str) -> requests.Session:
    session = requests.Session()
    session.headers.update({"Authorization": f"Bearer {access_token}", "Accept": "application/json"})
    return session
