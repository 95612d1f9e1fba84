"""Generic IMAP provider (imaplib, one connection, UID commands)."""

from __future__ import annotations

import asyncio
import imaplib
import threading

from .constants import IMAP_MAILBOX, IMAP_PORT
from .errors import ExternalCallError
from .log import get_logger
from .models import NormalizedMessage
from .parser import from_mime

logger = get_logger(__name__)


class ImapProvider:
    """MailProvider for any IMAP4 server over SSL.

    imaplib is blocking and not thread-safe, so commands are serialized
    with a lock and run in a worker thread.
    """

    name = "imap"

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        port: int = IMAP_PORT,
        mailbox: str = IMAP_MAILBOX,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.mailbox = mailbox
        self._conn: imaplib.IMAP4 | None = None
        self._lock = threading.Lock()

    def _connect(self) -> imaplib.IMAP4:
        conn = imaplib.IMAP4_SSL(self.host, self.port, timeout=30)
        conn.login(self.username, self.password)
        typ, _ = conn.select(self.mailbox)
        if typ != "OK":
            raise ExternalCallError(f"Cannot select mailbox {self.mailbox!r}")
        logger.info("imap_connected", host=self.host, mailbox=self.mailbox)
        return conn

    def _uid(self, command: str, *args) -> list:
        with self._lock:
            try:
                if self._conn is None:
                    self._conn = self._connect()
                typ, data = self._conn.uid(command, *args)
            except (imaplib.IMAP4.error, OSError) as exc:
                raise ExternalCallError(f"IMAP {command} failed: {exc}") from exc
        if typ != "OK":
            raise ExternalCallError(f"IMAP {command} returned {typ}: {data!r}")
        return data

    def _search(self, query: str | None, max_results: int | None) -> list[str]:
        data = self._uid("SEARCH", None, query or "ALL")
        if not data or data[0] is None:
            return []
        uids = data[0].decode().split()
        return uids[:max_results] if max_results else uids

    def _fetch(self, uid: str) -> NormalizedMessage:
        data = self._uid("FETCH", uid, "(FLAGS BODY.PEEK[])")
        for item in data:
            if isinstance(item, tuple) and len(item) == 2:
                header, raw = item
                return from_mime(uid, raw, imaplib.ParseFlags(header))
        raise ExternalCallError(f"IMAP message {uid} not found")

    def _delete(self, uid: str) -> None:
        self._uid("STORE", uid, "+FLAGS", r"(\Deleted)")
        with self._lock:
            try:
                self._conn.expunge()
            except (imaplib.IMAP4.error, OSError) as exc:
                raise ExternalCallError(f"IMAP EXPUNGE failed: {exc}") from exc

    def _set_seen(self, uid: str, read: bool) -> None:
        self._uid("STORE", uid, "+FLAGS" if read else "-FLAGS", r"(\Seen)")

    async def list_messages(self, query: str | None = None, max_results: int | None = None) -> list[str]:
        """UIDs matching an IMAP SEARCH query (``ALL`` by default)."""
        return await asyncio.to_thread(self._search, query, max_results)

    async def get_message(self, message_id: str) -> NormalizedMessage:
        return await asyncio.to_thread(self._fetch, message_id)

    async def delete_message(self, message_id: str) -> None:
        await asyncio.to_thread(self._delete, message_id)
        logger.debug("imap_message_deleted", message_id=message_id)

    async def mark_read(self, message_id: str, read: bool = True) -> None:
        await asyncio.to_thread(self._set_seen, message_id, read)

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                try:
                    self._conn.logout()
                except (imaplib.IMAP4.error, OSError) as exc:
                    logger.debug("imap_logout_failed", error=str(exc))
                self._conn = None
