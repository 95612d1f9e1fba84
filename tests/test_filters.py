"""Tests for the filters module."""

from datetime import timedelta

from cleaninbox.filters import (
    all_of,
    any_of,
    from_sender,
    has_category,
    is_unread,
    negate,
    older_than,
    select,
    size_greater_than,
    subject_contains,
)
from conftest import NOW, make_message


def test_older_than_is_strict():
    message = make_message(days_old=10)
    assert older_than(NOW - timedelta(days=5))(message) is True
    assert older_than(message.date)(message) is False
    assert older_than(NOW - timedelta(days=20))(message) is False


def test_older_than_accepts_strings():
    message = make_message(days_old=400)
    assert older_than("2025-01-01")(message) is True


def test_from_sender_exact_address():
    message = make_message(sender="boss@corp.com")
    assert from_sender("Boss@Corp.com")(message) is True
    assert from_sender("other@corp.com")(message) is False


def test_from_sender_domain():
    message = make_message(sender="news@shop.example.com")
    assert from_sender("shop.example.com")(message) is True
    assert from_sender("EXAMPLE.COM")(message) is False
    assert from_sender("example.com")(make_message(sender="a@example.com")) is True


def test_subject_contains():
    assert subject_contains("invoice")(make_message(subject="Your INVOICE #12")) is True
    assert subject_contains("invoice")(make_message(subject="Receipt")) is False
    assert subject_contains("invoice")(make_message(subject="")) is False


def test_size_greater_than_is_strict():
    assert size_greater_than(100)(make_message(size_bytes=101)) is True
    assert size_greater_than(100)(make_message(size_bytes=100)) is False


def test_has_category():
    message = make_message(categories={"promotions", "updates"})
    assert has_category("Promotions")(message) is True
    assert has_category("social")(message) is False
    assert has_category("social")(make_message()) is False


def test_is_unread():
    assert is_unread()(make_message(is_read=False)) is True
    assert is_unread()(make_message(is_read=True)) is False


def test_all_of_short_circuits():
    calls = []

    def tracked(result):
        def _pred(message):
            calls.append(result)
            return result
        return _pred

    assert all_of([tracked(True), tracked(False), tracked(True)])(make_message()) is False
    assert calls == [True, False]


def test_any_of_short_circuits():
    calls = []

    def tracked(result):
        def _pred(message):
            calls.append(result)
            return result
        return _pred

    assert any_of([tracked(False), tracked(True), tracked(False)])(make_message()) is True
    assert calls == [False, True]


def test_empty_combinators():
    assert all_of([])(make_message()) is True
    assert any_of([])(make_message()) is False


def test_combined_query():
    """Large unread mail from a domain, or anything with 'sale' in the subject."""
    pred = any_of([
        all_of([from_sender("shop.com"), is_unread(), size_greater_than(1000)]),
        subject_contains("sale"),
    ])
    messages = [
        make_message("a", sender="x@shop.com", size_bytes=5000),
        make_message("b", sender="x@shop.com", size_bytes=5000, is_read=True),
        make_message("c", sender="y@other.com", subject="Summer SALE"),
        make_message("d", sender="y@other.com"),
    ]
    assert [m.id for m in select(messages, pred)] == ["a", "c"]
    assert [m.id for m in select(messages, negate(pred))] == ["b", "d"]
