from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterator

import requests

from .mapper import is_active_for_owner, is_in_window
from .models import Shift, ShiftWindow
from .parser import ParseError, parse_interval, parse_shift

GRAPH_URL = "https://graph.microsoft.com/v1.0"
REQUEST_TIMEOUT = 30


class _TeamNotFound(Exception):
    pass


def is_graph_not_found(response: requests.Response) -> bool:
    if response.status_code == 404:
        return True
    if response.status_code < 400:
        return False
    try:
        data = response.json()
    except ValueError:
        return False
    error = data.get("error") if isinstance(data, dict) else None
    return isinstance(error, dict) and error.get("code") == "NotFound"


class GraphShiftSource:
    def __init__(self, session: requests.Session, team_id: str, base_url: str = GRAPH_URL):
        self.session = session
        self.team_id = team_id
        self.base_url = base_url

    def _get(self, url: str, **params) -> requests.Response:
        return self.session.get(url, params=params or None, timeout=REQUEST_TIMEOUT)

    def get_current_user_id(self) -> str:
        response = self._get(f"{self.base_url}/me", **{"$select": "id"})
        response.raise_for_status()
        return response.json()["id"]

    def _pages(self) -> Iterator[list[dict]]:
        # The shifts endpoint cannot filter by user or date range, so every page is read.
        url = f"{self.base_url}/teams/{self.team_id}/schedule/shifts"
        while url:
            response = self._get(url)
            if is_graph_not_found(response):
                raise _TeamNotFound()
            response.raise_for_status()
            data = response.json()
            yield data.get("value") or []
            url = data.get("@odata.nextLink")

    def fetch_shifts_in_window(self, owner_id: str, window_start: datetime, window_end: datetime) -> ShiftWindow:
        logging.info("Fetching shifts for team %s", self.team_id)
        active: list[Shift] = []
        malformed: dict[str, str] = {}
        try:
            for page in self._pages():
                for payload in page:
                    if payload.get("userId") != owner_id:
                        continue
                    item = payload.get("sharedShift")
                    if payload.get("isStagedForDeletion") or not item:
                        continue
                    try:
                        shift = parse_shift(payload)
                    except ParseError as exc:
                        interval = parse_interval(item) if isinstance(item, dict) else None
                        if interval and not (interval[1] >= window_start and interval[0] <= window_end):
                            logging.debug("Ignoring malformed shift outside the sync window: %s", exc)
                            continue
                        if payload.get("id"):
                            malformed[payload["id"]] = str(exc)
                        else:
                            logging.warning("Ignoring shift without id: %s", exc)
                        continue
                    if is_active_for_owner(shift, owner_id):
                        active.append(shift)
        except _TeamNotFound:
            logging.warning("Team not found or Shifts not enabled for this team; treating as no shifts")
            return ShiftWindow(in_window=[], active_ids=frozenset())

        in_window = [shift for shift in active if is_in_window(shift, window_start, window_end)]
        logging.info(
            "Found %d active shift(s), %d between %s and %s",
            len(active),
            len(in_window),
            window_start.date(),
            window_end.date(),
        )
        return ShiftWindow(
            in_window=in_window,
            active_ids=frozenset(shift.id for shift in active),
            malformed=malformed,
        )
