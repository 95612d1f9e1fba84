"""Tests for the classifier module."""

from cleaninbox.classifier import (
    ClassifierRules,
    classify,
    extract_unsubscribe_links,
    is_newsletter,
    is_spam,
    parse_list_unsubscribe,
)


def test_newsletter_subject():
    assert is_newsletter("Weekly Newsletter – 20% off", "shop@store.com", None) is True


def test_business_mail_is_not_newsletter():
    assert is_newsletter("Q3 Budget Review", "finance@corp.com", None) is False


def test_newsletter_sender_pattern():
    """A newsletter@ address is enough even with a neutral subject."""
    assert is_newsletter("Hello", "newsletter@brand.com", "") is True


def test_newsletter_body_match():
    assert is_newsletter("Hello", "team@brand.com", "<p>Big summer sale</p>") is True


def test_newsletter_case_insensitive():
    assert is_newsletter("MONTHLY DIGEST", "x@y.com") is True


def test_spam_phrases():
    assert is_spam("URGENT: act now") is True
    assert is_spam("Hi", "You could win a prize today") is True
    assert is_spam("Meeting notes", "Agenda attached") is False


def test_extract_single_link():
    html = '<a href="http://x.com/u">Click here to unsubscribe</a>'
    assert extract_unsubscribe_links(html) == ["http://x.com/u"]


def test_extract_no_matching_anchor():
    html = '<p>Hi</p><a href="http://x.com/blog">Read our blog</a>'
    assert extract_unsubscribe_links(html) == []


def test_extract_duplicates_collapse():
    html = (
        '<a href="http://x.com/u">Unsubscribe</a>'
        '<a href="http://x.com/prefs">Manage preferences</a>'
        '<a href="http://x.com/u">unsubscribe here</a>'
    )
    assert extract_unsubscribe_links(html) == ["http://x.com/u", "http://x.com/prefs"]


def test_extract_matches_href_only():
    """The keyword may appear only in the URL."""
    html = '<a href="https://mail.example.com/opt-out?id=42">here</a>'
    assert extract_unsubscribe_links(html) == ["https://mail.example.com/opt-out?id=42"]


def test_extract_french_phrasing():
    html = '<a href="https://exemple.fr/x">Se désabonner</a><a href="https://exemple.fr/y">Me désinscrire</a>'
    assert extract_unsubscribe_links(html) == ["https://exemple.fr/x", "https://exemple.fr/y"]


def test_extract_empty_and_malformed():
    assert extract_unsubscribe_links("") == []
    assert extract_unsubscribe_links(None) == []
    assert extract_unsubscribe_links("<<<not html at all") == []


def test_extract_ignores_anchor_without_href():
    assert extract_unsubscribe_links("<a>unsubscribe</a>") == []


def test_custom_rules():
    rules = ClassifierRules(newsletter=["weekly"], spam=[], unsubscribe=["leave list"])
    assert is_newsletter("Weekly roundup", "a@b.com", rules=rules) is True
    assert is_newsletter("Newsletter", "a@b.com", rules=rules) is False
    assert is_spam("urgent", rules=rules) is False
    html = '<a href="http://x.com/1">Leave list</a><a href="http://x.com/2">Unsubscribe</a>'
    assert extract_unsubscribe_links(html, rules=rules) == ["http://x.com/1"]


def test_parse_list_unsubscribe():
    header = "<mailto:unsub@example.com?subject=stop>, <https://example.com/u/1>"
    assert parse_list_unsubscribe(header) == [
        "mailto:unsub@example.com?subject=stop",
        "https://example.com/u/1",
    ]
    assert parse_list_unsubscribe("") == []


def test_classify_message(newsletter_message, personal_message, spam_message):
    result = classify(newsletter_message)
    assert result.is_newsletter is True
    assert result.unsubscribe_links == ["https://example-newsletter.com/unsubscribe?u=1"]

    result = classify(personal_message)
    assert result.is_newsletter is False
    assert result.is_spam is False
    assert result.unsubscribe_links == []

    # Provider flag alone marks the message as spam
    assert classify(spam_message).is_spam is True
