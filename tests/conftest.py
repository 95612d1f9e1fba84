"""Shared fixtures for tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from cleaninbox.models import NormalizedMessage

NOW = datetime(2025, 6, 9, 12, 0, tzinfo=timezone.utc)


def make_message(message_id: str = "m1", days_old: float = 1, **kwargs) -> NormalizedMessage:
    kwargs.setdefault("sender", "alice.smith@gmail.com")
    kwargs.setdefault("subject", "Re: Lunch tomorrow?")
    return NormalizedMessage(id=message_id, date=NOW - timedelta(days=days_old), **kwargs)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def newsletter_message() -> NormalizedMessage:
    return make_message(
        "msg_nl_001",
        days_old=3,
        sender="newsletter@example-newsletter.com",
        sender_name="Newsletter Team",
        subject="Weekly Digest: Top Stories This Week",
        categories={"promotions"},
        html_body='<p>Hello</p><a href="https://example-newsletter.com/unsubscribe?u=1">Unsubscribe</a>',
        has_list_unsubscribe=True,
    )


@pytest.fixture
def personal_message() -> NormalizedMessage:
    return make_message(
        "msg_ps_001",
        days_old=2,
        sender="alice.smith@gmail.com",
        sender_name="Alice Smith",
        subject="Re: Lunch tomorrow?",
        text_body="See you at noon.",
        is_read=True,
    )


@pytest.fixture
def spam_message() -> NormalizedMessage:
    return make_message(
        "msg_sp_001",
        days_old=1,
        sender="winner@lottery.biz",
        subject="Claim your reward",
        text_body="You have been selected.",
        is_spam=True,
    )


@pytest.fixture
def old_message() -> NormalizedMessage:
    return make_message(
        "msg_old_001",
        days_old=45,
        sender="bob@corp.com",
        subject="Q3 Budget Review",
        size_bytes=250_000,
    )
