"""Loading of user-editable configuration: keyword rules and OAuth client settings."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from .classifier import ClassifierRules
from .constants import (
    DEFAULT_REDIRECT_URI,
    ENV_GOOGLE_CLIENT_ID,
    ENV_GOOGLE_CLIENT_SECRET,
    ENV_GOOGLE_REDIRECT_URI,
    RULES_PATH,
    SCOPES,
)
from .errors import ValidationError
from .log import get_logger

logger = get_logger(__name__)


@dataclass
class GoogleClientSettings:
    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    scopes: tuple[str, ...] = tuple(SCOPES)

    def to_client_config(self) -> dict:
        """Return the dict layout expected by ``google_auth_oauthlib.flow.Flow``."""
        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": [self.redirect_uri],
            }
        }


def load_rules(path: Path | str | None = None) -> ClassifierRules:
    """Load classifier keyword lists from a JSON file.

    The file holds an object with any of the keys ``newsletter``, ``spam`` and
    ``unsubscribe``, each a list of regular expressions. Missing keys keep the
    built-in defaults; a missing file yields the defaults. With
    ``"extend": true`` the lists are appended to the defaults instead of
    replacing them.
    """
    path = Path(path) if path else RULES_PATH
    rules = ClassifierRules()
    if not path.exists():
        return rules

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid rules file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid rules file {path}: expected a JSON object")

    extend = bool(data.get("extend", False))
    for key in ("newsletter", "spam", "unsubscribe"):
        if key not in data:
            continue
        values = data[key]
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise ValidationError(f"Invalid rules file {path}: {key!r} must be a list of strings")
        setattr(rules, key, getattr(rules, key) + values if extend else list(values))

    logger.debug("rules_loaded", path=str(path), extend=extend)
    return rules


def google_settings_from_env() -> GoogleClientSettings:
    """Read the Google OAuth client from ``CLEANINBOX_GOOGLE_*`` variables."""
    client_id = os.environ.get(ENV_GOOGLE_CLIENT_ID)
    client_secret = os.environ.get(ENV_GOOGLE_CLIENT_SECRET)
    if not client_id or not client_secret:
        raise ValidationError(
            f"Google OAuth client not configured. Set {ENV_GOOGLE_CLIENT_ID} "
            f"and {ENV_GOOGLE_CLIENT_SECRET}."
        )
    return GoogleClientSettings(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=os.environ.get(ENV_GOOGLE_REDIRECT_URI, DEFAULT_REDIRECT_URI),
    )
