"""Users, premium tiers and preferences.

The store behind EntitlementStore is pluggable: InMemoryUserStore keeps users
for the lifetime of the process, SqliteUserStore persists them. Both satisfy
the same get / find_by_email / put contract.

Updates are not transactional; concurrent writers race and the last write
wins per field.
"""

from __future__ import annotations

import json
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from .constants import FEATURE_LEVELS, PREMIUM_LEVELS, USERS_DB_PATH
from .errors import ValidationError
from .log import get_logger
from .models import UserEntitlement

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore(Protocol):
    def get(self, user_id: str) -> UserEntitlement | None: ...

    def find_by_email(self, email: str) -> UserEntitlement | None: ...

    def put(self, user: UserEntitlement) -> None: ...


class InMemoryUserStore:
    """Dict-backed store. Returns the stored objects themselves."""

    def __init__(self) -> None:
        self._users: dict[str, UserEntitlement] = {}

    def get(self, user_id: str) -> UserEntitlement | None:
        return self._users.get(user_id)

    def find_by_email(self, email: str) -> UserEntitlement | None:
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    def put(self, user: UserEntitlement) -> None:
        self._users[user.id] = user

    def __len__(self) -> int:
        return len(self._users)


_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT UNIQUE,
    premium_level INTEGER,
    subscription_valid INTEGER,
    subscription_expiry TEXT,
    preferences_json TEXT,
    created_at TEXT,
    updated_at TEXT
);
"""


class SqliteUserStore:
    """Persistent SQLite store for user entitlements."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = Path(db_path or USERS_DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._conn.executescript(_CREATE_TABLES_SQL)

    @staticmethod
    def _from_row(row: sqlite3.Row) -> UserEntitlement:
        expiry = row["subscription_expiry"]
        return UserEntitlement(
            id=row["id"],
            email=row["email"],
            premium_level=row["premium_level"],
            subscription_valid=bool(row["subscription_valid"]),
            subscription_expiry=datetime.fromisoformat(expiry) if expiry else None,
            preferences=json.loads(row["preferences_json"] or "{}"),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def get(self, user_id: str) -> UserEntitlement | None:
        with self._lock:
            row = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._from_row(row) if row else None

    def find_by_email(self, email: str) -> UserEntitlement | None:
        with self._lock:
            row = self._conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return self._from_row(row) if row else None

    def put(self, user: UserEntitlement) -> None:
        expiry = user.subscription_expiry.isoformat() if user.subscription_expiry else None
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO users (id, email, premium_level, subscription_valid, "
                "subscription_expiry, preferences_json, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    user.id,
                    user.email,
                    user.premium_level,
                    int(user.subscription_valid),
                    expiry,
                    json.dumps(user.preferences, default=str),
                    user.created_at.isoformat(),
                    user.updated_at.isoformat(),
                ),
            )

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # --- context manager ---

    def __enter__(self) -> SqliteUserStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.close()


class EntitlementStore:
    """Get-or-create users by email and gate features by premium level."""

    def __init__(self, store: UserStore | None = None) -> None:
        self.store = store if store is not None else InMemoryUserStore()
        self._create_lock = threading.Lock()

    def get_or_create_user(self, email: str) -> UserEntitlement:
        """Return the user registered under *email*, creating a free user if needed."""
        email = _normalize_email(email)
        with self._create_lock:
            user = self.store.find_by_email(email)
            if user is not None:
                return user

            now = _now()
            user = UserEntitlement(id=str(uuid.uuid4()), email=email, created_at=now, updated_at=now)
            self.store.put(user)

        logger.info("user_created", user_id=user.id)
        return user

    def get_user(self, user_id: str) -> UserEntitlement | None:
        return self.store.get(user_id)

    def update_subscription(
        self,
        user_id: str,
        level: int | None = None,
        valid: bool | None = None,
        expiry: datetime | None = None,
    ) -> UserEntitlement | None:
        """Partially update subscription fields; ``None`` leaves a field unchanged.

        Returns the updated user, or ``None`` if *user_id* is unknown.
        """
        if level is not None and level not in PREMIUM_LEVELS:
            raise ValidationError(f"Premium level must be one of {PREMIUM_LEVELS}, got {level}.")

        user = self.store.get(user_id)
        if user is None:
            return None

        if level is not None:
            user.premium_level = level
        if valid is not None:
            user.subscription_valid = valid
        if expiry is not None:
            user.subscription_expiry = expiry
        user.updated_at = _now()
        self.store.put(user)

        logger.info(
            "subscription_updated",
            user_id=user_id,
            level=user.premium_level,
            valid=user.subscription_valid,
        )
        return user

    def has_access(self, user_id: str, required_level: int) -> bool:
        """True if the user's subscription is valid and their level is high enough."""
        user = self.store.get(user_id)
        if user is None or not user.subscription_valid:
            return False
        return user.premium_level >= required_level

    def can_use(self, user_id: str, feature: str) -> bool:
        """Check access to a named feature from FEATURE_LEVELS."""
        if feature not in FEATURE_LEVELS:
            raise ValidationError(f"Unknown feature {feature!r}.")
        return self.has_access(user_id, FEATURE_LEVELS[feature])

    def update_preferences(self, user_id: str, prefs: dict) -> UserEntitlement | None:
        """Shallow-merge *prefs* into the user's preferences."""
        user = self.store.get(user_id)
        if user is None:
            return None
        user.preferences = {**user.preferences, **prefs}
        user.updated_at = _now()
        self.store.put(user)
        return user

    def get_preferences(self, user_id: str) -> dict | None:
        user = self.store.get(user_id)
        return user.preferences if user else None
