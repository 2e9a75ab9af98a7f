"""Gmail SDK wrapper for outbound mail (gmail.send scope).

Credentials come from the token file at settings.GOOGLE_TOKEN_PATH. The
one-time consent flow runs from ``scripts/gmail_auth.py``; workers never
open a browser, they only load and refresh the stored token.
"""

from __future__ import annotations

import base64
import logging
from email.message import EmailMessage
from pathlib import Path
from typing import Any

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from quote_portal.core.config import get_settings

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


class GmailNotConfigured(RuntimeError):
    pass


class GmailClient:
    def __init__(self, token_path: str | None = None) -> None:
        self.token_path = Path(token_path or get_settings().GOOGLE_TOKEN_PATH)
        self._service: Any | None = None

    def is_configured(self) -> bool:
        return self.token_path.exists()

    def authorize(self) -> Credentials:
        """Interactive consent; writes the token file for later runs."""
        settings = get_settings()
        if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
            raise GmailNotConfigured("Missing GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET in environment")
        client_config = {
            "installed": {
                "client_id": settings.GOOGLE_CLIENT_ID,
                "client_secret": settings.GOOGLE_CLIENT_SECRET,
                "redirect_uris": ["http://localhost", "http://localhost:8080/"],
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        }
        flow = InstalledAppFlow.from_client_config(client_config, SCOPES)
        creds = flow.run_local_server(port=0)
        self._save(creds)
        return creds

    def _load_credentials(self) -> Credentials:
        if not self.is_configured():
            raise GmailNotConfigured(f"No Gmail token at {self.token_path}")
        creds = Credentials.from_authorized_user_file(str(self.token_path), SCOPES)
        if not creds.valid:
            if creds.expired and creds.refresh_token:
                creds.refresh(Request())
                self._save(creds)
            else:
                raise GmailNotConfigured("Stored Gmail token is invalid; run scripts/gmail_auth.py")
        return creds

    def _save(self, creds: Credentials) -> None:
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.token_path, "w", encoding="utf-8") as f:
            f.write(creds.to_json())

    def get_service(self) -> Any:
        if self._service is None:
            creds = self._load_credentials()
            self._service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        return self._service

    def send_message(self, message: EmailMessage) -> str:
        """Send and return the Gmail message id."""
        raw = base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")
        sent = self.get_service().users().messages().send(userId="me", body={"raw": raw}).execute()
        logger.info("Sent '%s' to %s (gmail id %s)", message["Subject"], message["To"], sent.get("id"))
        return sent.get("id", "")
