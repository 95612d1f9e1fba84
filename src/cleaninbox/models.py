"""Data models for cleaninbox."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class NormalizedMessage:
    """Provider-agnostic view of a single message."""

    id: str
    sender: str = ""  # Bare address, lowercased
    sender_name: str = ""
    subject: str = ""
    date: datetime = EPOCH
    size_bytes: int = 0
    is_read: bool = False
    is_spam: bool = False
    categories: set[str] = field(default_factory=set)
    html_body: str = ""
    text_body: str = ""
    has_list_unsubscribe: bool = False
    list_unsubscribe: str = ""  # Raw List-Unsubscribe header


@dataclass
class ClassificationResult:
    is_newsletter: bool = False
    is_spam: bool = False
    unsubscribe_links: list[str] = field(default_factory=list)


class Action(str, Enum):
    """Terminal outcome of cleaning a single message."""

    SKIPPED_PROTECTED = "skipped_protected"
    DELETED_TOO_OLD = "deleted_too_old"
    DELETED_NEWSLETTER = "deleted_newsletter"
    DELETED_SPAM = "deleted_spam"
    KEPT = "kept"
    ERROR = "error"

    @property
    def is_delete(self) -> bool:
        return self.value.startswith("deleted_")


@dataclass
class CleaningAction:
    message_id: str
    action: Action
    error: str | None = None


@dataclass
class CleanOptions:
    """Rules applied by the cleaning orchestrator."""

    delete_newsletters: bool = False
    delete_spam: bool = False
    max_age_days: float | None = None
    except_senders: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        self.except_senders = frozenset(s.strip().lower() for s in self.except_senders)


@dataclass
class UnsubscribeAttemptResult:
    url: str
    status: int | None = None
    ok: bool = False
    error: str | None = None


@dataclass
class UnsubscribeOutcome:
    links: list[str] = field(default_factory=list)
    results: list[UnsubscribeAttemptResult] | None = None


@dataclass
class UserEntitlement:
    """Premium tier and preferences of a single user."""

    id: str
    email: str
    premium_level: int = 0  # 0 = free, 1 = premium, 2 = premium plus
    subscription_valid: bool = False
    subscription_expiry: datetime | None = None
    preferences: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class JobEventKind(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REMOVED = "removed"


@dataclass
class JobEvent:
    kind: JobEventKind
    job_id: str
    exception: BaseException | None = None
