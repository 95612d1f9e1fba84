"""Metadata extraction: turn provider payloads into NormalizedMessage objects."""

from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime
from email import message_from_bytes, policy
from email.message import EmailMessage

from .dates import parse_date
from .log import get_logger
from .models import EPOCH, NormalizedMessage

logger = get_logger(__name__)

_FROM_RE = re.compile(r"^(.*?)\s*<([^>]+)>$")


def parse_from_header(from_value: str | None) -> tuple[str, str]:
    """Parse a From header into (display name, email address).

    Handles formats like:
      "John Doe <john@example.com>" -> ("John Doe", "john@example.com")
      "<john@example.com>"          -> ("", "john@example.com")
      "john@example.com"            -> ("", "john@example.com")
    """
    if not from_value:
        return ("", "")
    m = _FROM_RE.match(from_value.strip())
    if m:
        name = m.group(1).strip().strip('"').strip("'")
        return (name, m.group(2).strip())
    email = from_value.strip().strip("<>")
    return ("", email)


def _safe_date(value) -> datetime:
    if value in (None, ""):
        return EPOCH
    try:
        return parse_date(value)
    except ValueError:
        logger.debug("unparseable_date", value=str(value))
        return EPOCH


def _safe_int(value) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def extract_metadata(raw: dict) -> dict:
    """Pull the basic fields out of a loosely shaped message dict.

    Absent fields come back as empty strings or zero.
    """
    return {
        "from": raw.get("from") or "",
        "to": raw.get("to") or "",
        "subject": raw.get("subject") or "",
        "date": raw.get("date") or "",
        "size": raw.get("size") or 0,
    }


def from_dict(raw: dict) -> NormalizedMessage:
    """Build a message from a plain dict (fixtures, exports, other tooling)."""
    meta = extract_metadata(raw)
    name, email = parse_from_header(raw.get("sender") or meta["from"])
    return NormalizedMessage(
        id=str(raw.get("id", "")),
        sender=email.lower(),
        sender_name=name,
        subject=meta["subject"],
        date=_safe_date(meta["date"]),
        size_bytes=_safe_int(meta["size"]),
        is_read=bool(raw.get("is_read", False)),
        is_spam=bool(raw.get("is_spam", False)),
        categories={c.lower() for c in raw.get("categories") or []},
        html_body=raw.get("html") or raw.get("html_body") or "",
        text_body=raw.get("text") or raw.get("text_body") or "",
    )


# --- Gmail ---


def _decode_b64url(data: str) -> str:
    try:
        padded = data + "=" * (-len(data) % 4)
        return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return ""


def _walk_gmail_parts(part: dict, bodies: dict[str, str]) -> None:
    mime_type = part.get("mimeType", "")
    data = part.get("body", {}).get("data")
    if data and mime_type in ("text/html", "text/plain") and mime_type not in bodies:
        bodies[mime_type] = _decode_b64url(data)
    for child in part.get("parts", []) or []:
        _walk_gmail_parts(child, bodies)


def from_gmail(resource: dict) -> NormalizedMessage:
    """Normalize a ``users.messages.get`` resource (format ``full`` or ``metadata``)."""
    payload = resource.get("payload", {}) or {}
    headers = {h["name"].lower(): h["value"] for h in payload.get("headers", [])}
    labels = resource.get("labelIds", []) or []

    name, email = parse_from_header(headers.get("from", ""))
    bodies: dict[str, str] = {}
    _walk_gmail_parts(payload, bodies)

    date_value = headers.get("date")
    if not date_value and resource.get("internalDate"):
        date_value = _safe_int(resource["internalDate"])

    return NormalizedMessage(
        id=resource.get("id", ""),
        sender=email.lower(),
        sender_name=name,
        subject=headers.get("subject", ""),
        date=_safe_date(date_value),
        size_bytes=_safe_int(resource.get("sizeEstimate", 0)),
        is_read="UNREAD" not in labels,
        is_spam="SPAM" in labels,
        categories={lbl[len("CATEGORY_"):].lower() for lbl in labels if lbl.startswith("CATEGORY_")},
        html_body=bodies.get("text/html", ""),
        text_body=bodies.get("text/plain", ""),
        has_list_unsubscribe="list-unsubscribe" in headers,
        list_unsubscribe=headers.get("list-unsubscribe", ""),
    )


# --- Microsoft Graph ---


def from_graph(resource: dict) -> NormalizedMessage:
    """Normalize a Microsoft Graph ``message`` resource."""
    address = (resource.get("from") or {}).get("emailAddress") or {}
    body = resource.get("body") or {}
    content = body.get("content") or ""
    is_html = (body.get("contentType") or "").lower() == "html"
    headers = {
        h.get("name", "").lower(): h.get("value", "")
        for h in resource.get("internetMessageHeaders") or []
    }
    categories = {c.lower() for c in resource.get("categories") or []}
    if resource.get("inferenceClassification"):
        categories.add(resource["inferenceClassification"].lower())

    return NormalizedMessage(
        id=resource.get("id", ""),
        sender=(address.get("address") or "").lower(),
        sender_name=address.get("name") or "",
        subject=resource.get("subject") or "",
        date=_safe_date(resource.get("receivedDateTime")),
        size_bytes=len(content.encode("utf-8")),
        is_read=bool(resource.get("isRead", False)),
        is_spam=headers.get("x-spam-flag", "").strip().lower() == "yes",
        categories=categories,
        html_body=content if is_html else "",
        text_body="" if is_html else content,
        has_list_unsubscribe="list-unsubscribe" in headers,
        list_unsubscribe=headers.get("list-unsubscribe", ""),
    )


# --- IMAP / raw MIME ---


def _body_text(msg: EmailMessage, subtype: str) -> str:
    part = msg.get_body(preferencelist=(subtype,))
    if part is None:
        return ""
    try:
        return part.get_content()
    except (LookupError, UnicodeDecodeError):
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def from_mime(uid: str, raw: bytes, flags: tuple | list = ()) -> NormalizedMessage:
    """Normalize an RFC 822 message fetched over IMAP."""
    msg = message_from_bytes(raw, policy=policy.default)
    flag_names = {f.decode() if isinstance(f, bytes) else f for f in flags}
    name, email = parse_from_header(str(msg.get("From", "")))

    return NormalizedMessage(
        id=str(uid),
        sender=email.lower(),
        sender_name=name,
        subject=str(msg.get("Subject", "")),
        date=_safe_date(str(msg.get("Date", ""))),
        size_bytes=len(raw),
        is_read="\\Seen" in flag_names,
        is_spam=str(msg.get("X-Spam-Flag", "")).strip().lower() == "yes",
        categories={f.lower() for f in flag_names if not f.startswith("\\")},
        html_body=_body_text(msg, "html"),
        text_body=_body_text(msg, "plain"),
        has_list_unsubscribe="List-Unsubscribe" in msg,
        list_unsubscribe=str(msg.get("List-Unsubscribe", "")),
    )
