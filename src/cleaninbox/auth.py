"""Authentication helpers for the Gmail API."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Callable

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow, InstalledAppFlow
from googleapiclient.discovery import Resource, build

from .config import GoogleClientSettings
from .constants import CONFIG_DIR, CREDENTIALS_PATH, SCOPES, TOKEN_PATH
from .errors import AuthenticationError, ValidationError
from .log import get_logger

logger = get_logger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"

TokensListener = Callable[[dict], None]


def _parse_expiry(value: str | None) -> datetime | None:
    # google-auth stores expiry as a naive UTC datetime
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed.replace(tzinfo=None) if parsed.tzinfo else parsed


class OAuthManager:
    """OAuth 2.0 web flow for a Google account.

    Listeners registered with ``on_tokens_updated`` receive the token dict
    every time tokens change so the caller can persist them.

        oauth = OAuthManager(google_settings_from_env())
        print("Visit:", oauth.generate_auth_url())
        tokens = oauth.exchange_code(code)
        service = build_gmail_service(oauth.credentials)
    """

    def __init__(self, settings: GoogleClientSettings) -> None:
        self.settings = settings
        self._flow = Flow.from_client_config(
            settings.to_client_config(),
            scopes=list(settings.scopes),
            redirect_uri=settings.redirect_uri,
        )
        self.credentials: Credentials | None = None
        self._listeners: list[TokensListener] = []

    def on_tokens_updated(self, callback: TokensListener) -> None:
        self._listeners.append(callback)

    def _emit_tokens(self) -> None:
        tokens = self.tokens
        for callback in list(self._listeners):
            try:
                callback(tokens)
            except Exception as exc:  # noqa: BLE001
                logger.error("tokens_listener_failed", error=str(exc))

    @property
    def tokens(self) -> dict | None:
        if self.credentials is None:
            return None
        return json.loads(self.credentials.to_json())

    def generate_auth_url(self) -> str:
        """Return the consent URL. Offline access so a refresh token is issued."""
        url, _state = self._flow.authorization_url(access_type="offline", prompt="consent")
        return url

    def exchange_code(self, code: str) -> dict:
        """Exchange the authorization code from the redirect for tokens."""
        if not code:
            raise ValidationError("Authorization code is required.")
        try:
            self._flow.fetch_token(code=code)
        except Exception as exc:  # noqa: BLE001
            raise AuthenticationError(f"Could not exchange authorization code: {exc}") from exc

        self.credentials = self._flow.credentials
        logger.info("tokens_obtained", has_refresh_token=bool(self.credentials.refresh_token))
        self._emit_tokens()
        return self.tokens

    def set_tokens(self, tokens: dict) -> None:
        """Load previously saved tokens (as produced by ``tokens``)."""
        self.credentials = Credentials(
            token=tokens.get("token") or tokens.get("access_token"),
            refresh_token=tokens.get("refresh_token"),
            token_uri=tokens.get("token_uri", TOKEN_URI),
            client_id=self.settings.client_id,
            client_secret=self.settings.client_secret,
            scopes=tokens.get("scopes") or list(self.settings.scopes),
            expiry=_parse_expiry(tokens.get("expiry")),
        )
        self._emit_tokens()

    def refresh_if_expired(self, force: bool = False) -> dict:
        """Refresh the access token when it is expired (or always with *force*).

        Raises:
            ValidationError: if no refresh token is available.
            AuthenticationError: if Google rejects the refresh.
        """
        if self.credentials is None or not self.credentials.refresh_token:
            raise ValidationError("No refresh token available.")

        if force or not self.credentials.valid:
            try:
                self.credentials.refresh(Request())
            except (RefreshError, TransportError) as exc:
                raise AuthenticationError(f"Token refresh failed: {exc}") from exc
            logger.info("tokens_refreshed")
            self._emit_tokens()

        return self.tokens


def build_gmail_service(credentials: Credentials) -> Resource:
    return build("gmail", "v1", credentials=credentials, cache_discovery=False)


def get_gmail_service() -> Resource:
    """Return an authenticated Gmail API service object.

    Loads cached token from TOKEN_PATH if available.  When the token is
    expired it is silently refreshed.  If no token exists, an OAuth
    browser flow is launched (requires credentials.json at
    CREDENTIALS_PATH).
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    creds: Credentials | None = None

    if TOKEN_PATH.exists():
        creds = Credentials.from_authorized_user_file(str(TOKEN_PATH), SCOPES)

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(Request())
    elif not creds or not creds.valid:
        if not CREDENTIALS_PATH.exists():
            raise FileNotFoundError(
                f"Credentials file not found at {CREDENTIALS_PATH}.\n"
                "Download your OAuth client credentials from the Google Cloud Console "
                "and save them as:\n"
                f"  {CREDENTIALS_PATH}"
            )
        flow = InstalledAppFlow.from_client_secrets_file(str(CREDENTIALS_PATH), SCOPES)
        creds = flow.run_local_server(port=0)

    TOKEN_PATH.write_text(creds.to_json())

    return build_gmail_service(creds)


def check_auth() -> str:
    """Return the address of the authenticated Gmail account.

    Raises:
        FileNotFoundError: if no OAuth client credentials are installed.
        AuthenticationError: if the Gmail API cannot be reached with them.
    """
    service = get_gmail_service()
    try:
        profile = service.users().getProfile(userId="me").execute()
    except Exception as exc:  # noqa: BLE001
        raise AuthenticationError(f"Authentication failed: {exc}") from exc
    return profile["emailAddress"]
