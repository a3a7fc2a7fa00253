from __future__ import annotations

import logging
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .config import ConfigError
from .models import CalendarEvent

SCOPES = ["https://www.googleapis.com/auth/calendar.events"]

# Google answers 410 for events that were deleted but not yet purged.
NOT_FOUND_STATUSES = (404, 410)


def _load_credentials(client_secrets_file: Path, token_file: Path) -> Credentials:
    creds = None
    if token_file.exists():
        try:
            creds = Credentials.from_authorized_user_file(str(token_file), SCOPES)
        except ValueError as exc:
            logging.warning("Ignoring unusable Google token %s: %s", token_file, exc)
            creds = None
    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            logging.info("Refreshing Google token...")
            creds.refresh(Request())
        else:
            if not client_secrets_file.exists():
                raise ConfigError(
                    f"Could not load Google credentials from {client_secrets_file}. "
                    "Download OAuth 2.0 credentials from Google Cloud Console."
                )
            flow = InstalledAppFlow.from_client_secrets_file(str(client_secrets_file), SCOPES)
            creds = flow.run_local_server(port=0)
        with open(token_file, "w") as token:
            token.write(creds.to_json())
    return creds


def build_service(client_secrets_file: Path, token_file: Path):
    creds = _load_credentials(client_secrets_file, token_file)
    return build("calendar", "v3", credentials=creds, cache_discovery=False)


def is_not_found(exc: Exception) -> bool:
    return isinstance(exc, HttpError) and exc.resp.status in NOT_FOUND_STATUSES


class GoogleCalendarSink:
    def __init__(self, service, calendar_id: str):
        self.service = service
        self.calendar_id = calendar_id

    def upsert(self, event_id: str, event: CalendarEvent) -> str:
        body = event.to_gcal_body()
        body["id"] = event_id
        try:
            updated = (
                self.service.events()
                .update(calendarId=self.calendar_id, eventId=event_id, body=body)
                .execute()
            )
            return updated.get("id", event_id)
        except HttpError as exc:
            if not is_not_found(exc):
                raise
        logging.debug("Event %s not found, creating it", event_id)
        created = self.service.events().insert(calendarId=self.calendar_id, body=body).execute()
        return created.get("id", event_id)

    def delete_event(self, event_id: str) -> None:
        try:
            self.service.events().delete(calendarId=self.calendar_id, eventId=event_id).execute()
        except HttpError as exc:
            if not is_not_found(exc):
                raise
            logging.debug("Event %s already gone", event_id)
