"""Keyword/regex classification of messages and unsubscribe link discovery."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import cached_property

from bs4 import BeautifulSoup, ParserRejectedMarkup

from .constants import NEWSLETTER_PATTERNS, SPAM_PATTERNS, UNSUBSCRIBE_PATTERNS
from .log import get_logger
from .models import ClassificationResult, NormalizedMessage

logger = get_logger(__name__)

_LIST_UNSUBSCRIBE_RE = re.compile(r"<([^>]+)>")


@dataclass
class ClassifierRules:
    """Keyword lists driving classification. Each entry is a regular expression."""

    newsletter: list[str] = field(default_factory=lambda: list(NEWSLETTER_PATTERNS))
    spam: list[str] = field(default_factory=lambda: list(SPAM_PATTERNS))
    unsubscribe: list[str] = field(default_factory=lambda: list(UNSUBSCRIBE_PATTERNS))

    @cached_property
    def newsletter_re(self) -> re.Pattern:
        return _compile(self.newsletter)

    @cached_property
    def spam_re(self) -> re.Pattern:
        return _compile(self.spam)

    @cached_property
    def unsubscribe_re(self) -> re.Pattern:
        return _compile(self.unsubscribe)


def _compile(patterns: list[str]) -> re.Pattern:
    if not patterns:
        # Matches nothing
        return re.compile(r"(?!)")
    return re.compile("|".join(f"(?:{p})" for p in patterns), re.IGNORECASE)


DEFAULT_RULES = ClassifierRules()


def is_newsletter(
    subject: str | None,
    sender: str | None,
    html_body: str | None = None,
    rules: ClassifierRules | None = None,
) -> bool:
    """True if a newsletter keyword appears in the subject, sender or body."""
    rules = rules or DEFAULT_RULES
    combined = f"{subject or ''} {sender or ''} {html_body or ''}"
    return rules.newsletter_re.search(combined) is not None


def is_spam(
    subject: str | None,
    text_body: str | None = None,
    rules: ClassifierRules | None = None,
) -> bool:
    """True if a spam trigger phrase appears in the subject or body."""
    rules = rules or DEFAULT_RULES
    combined = f"{subject or ''} {text_body or ''}"
    return rules.spam_re.search(combined) is not None


def extract_unsubscribe_links(
    html_content: str | None,
    rules: ClassifierRules | None = None,
) -> list[str]:
    """Return hrefs of anchors whose text or target looks like an unsubscribe link.

    Links are deduplicated, keeping the order in which they first appear.
    Empty or unparseable HTML yields an empty list.
    """
    if not html_content:
        return []
    rules = rules or DEFAULT_RULES

    try:
        soup = BeautifulSoup(html_content, "html.parser")
    except (ParserRejectedMarkup, AssertionError, ValueError) as exc:
        logger.warning("html_parse_failed", error=str(exc))
        return []

    links: dict[str, None] = {}
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href:
            continue
        text = anchor.get_text(" ", strip=True)
        if rules.unsubscribe_re.search(f"{href} {text}"):
            links.setdefault(href, None)
    return list(links)


def parse_list_unsubscribe(header: str | None) -> list[str]:
    """Extract the URLs of an RFC 2369 ``List-Unsubscribe`` header.

    ``<mailto:u@example.com>, <https://example.com/u>`` ->
    ``["mailto:u@example.com", "https://example.com/u"]``
    """
    if not header:
        return []
    urls: dict[str, None] = {}
    for url in _LIST_UNSUBSCRIBE_RE.findall(header):
        url = url.strip()
        if url:
            urls.setdefault(url, None)
    return list(urls)


def classify(message: NormalizedMessage, rules: ClassifierRules | None = None) -> ClassificationResult:
    """Classify a normalized message.

    Spam is reported when the provider already flagged the message or when a
    trigger phrase matches.
    """
    body = message.text_body or message.html_body
    return ClassificationResult(
        is_newsletter=is_newsletter(message.subject, message.sender, message.html_body, rules),
        is_spam=message.is_spam or is_spam(message.subject, body, rules),
        unsubscribe_links=extract_unsubscribe_links(message.html_body, rules),
    )
