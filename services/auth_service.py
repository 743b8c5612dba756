from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from services.errors import AuthFailure
from utils.config import AccountConfig

LOGGER = logging.getLogger(__name__)
# Changing scopes invalidates the saved token; delete token.json afterwards.
SCOPES: Iterable[str] = (
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.send",
)


class AuthService:
    """Load, refresh, and persist the OAuth2 credential for one Gmail account."""

    def __init__(self, account: AccountConfig, scopes: Iterable[str] = SCOPES):
        self._account = account
        self._scopes = list(scopes)

    @property
    def token_file(self) -> Path:
        return self._account.token_file

    def save(self, creds: Credentials) -> None:
        LOGGER.debug("Persisting OAuth tokens to %s", self._account.token_file)
        self._account.token_file.parent.mkdir(parents=True, exist_ok=True)
        self._account.token_file.write_text(creds.to_json(), encoding="utf-8")

    def load(self) -> Credentials | None:
        """Return the saved credential, refreshed if needed, or ``None``."""

        token_path: Path = self._account.token_file
        if not token_path.exists():
            return None
        LOGGER.debug("Loading cached credential from %s", token_path)
        try:
            data = json.loads(token_path.read_text(encoding="utf-8"))
            creds = Credentials.from_authorized_user_info(data, self._scopes)
        except ValueError as exc:
            LOGGER.warning("Ignoring unreadable token file %s: %s", token_path, exc)
            return None

        if creds.valid:
            return creds
        if creds.expired and creds.refresh_token:
            return self.refresh(creds)
        return None

    def refresh(self, creds: Credentials) -> Credentials:
        LOGGER.info("Refreshing expired Gmail token")
        try:
            creds.refresh(Request())
        except (RefreshError, TransportError) as exc:
            raise AuthFailure(f"Could not refresh Gmail token: {exc}") from exc
        self.save(creds)
        return creds

    def authorize_interactively(self) -> Credentials:
        credentials_file = self._account.credentials_file
        if not credentials_file.exists():
            raise AuthFailure(f"Missing OAuth client secrets file: {credentials_file}")
        LOGGER.info("Initiating OAuth flow using %s", credentials_file)
        flow = InstalledAppFlow.from_client_secrets_file(str(credentials_file), scopes=self._scopes)
        creds = flow.run_local_server(port=0)
        self.save(creds)
        return creds

    def authenticate(self, interactive: bool = True) -> Credentials:
        creds = self.load()
        if creds is not None:
            return creds
        if not interactive:
            raise AuthFailure(f"No usable Gmail token at {self._account.token_file}; run `mail-responder authorize`")
        return self.authorize_interactively()
