"""Composable predicates over normalized messages.

Each factory returns a function ``NormalizedMessage -> bool``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable

from .dates import parse_date
from .models import NormalizedMessage

FilterPredicate = Callable[[NormalizedMessage], bool]


def older_than(threshold: datetime | str | int | float) -> FilterPredicate:
    """Messages dated strictly before *threshold*."""
    limit = parse_date(threshold)

    def _pred(message: NormalizedMessage) -> bool:
        return message.date < limit

    return _pred


def from_sender(sender_or_domain: str) -> FilterPredicate:
    """Messages from an exact address, or from any address at a domain.

    ``"alice@example.com"`` matches that address only; ``"example.com"``
    matches every ``...@example.com`` sender.
    """
    value = sender_or_domain.strip().lower()

    if "@" in value:
        return lambda message: message.sender.lower() == value

    suffix = f"@{value}"
    return lambda message: message.sender.lower().endswith(suffix)


def subject_contains(keyword: str) -> FilterPredicate:
    needle = keyword.lower()

    def _pred(message: NormalizedMessage) -> bool:
        if not message.subject:
            return False
        return needle in message.subject.lower()

    return _pred


def size_greater_than(min_bytes: int) -> FilterPredicate:
    return lambda message: message.size_bytes > min_bytes


def has_category(category: str) -> FilterPredicate:
    """Category membership; stored categories are lowercase."""
    wanted = category.lower()
    return lambda message: wanted in message.categories


def is_unread() -> FilterPredicate:
    return lambda message: message.is_read is False


def all_of(predicates: Iterable[FilterPredicate]) -> FilterPredicate:
    """AND combinator, stops at the first False."""
    predicates = list(predicates)
    return lambda message: all(pred(message) for pred in predicates)


def any_of(predicates: Iterable[FilterPredicate]) -> FilterPredicate:
    """OR combinator, stops at the first True."""
    predicates = list(predicates)
    return lambda message: any(pred(message) for pred in predicates)


def negate(predicate: FilterPredicate) -> FilterPredicate:
    return lambda message: not predicate(message)


def select(messages: Iterable[NormalizedMessage], predicate: FilterPredicate) -> list[NormalizedMessage]:
    """Return the messages matching *predicate*, in order."""
    return [m for m in messages if predicate(m)]
