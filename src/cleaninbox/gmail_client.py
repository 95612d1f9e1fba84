"""Gmail API provider: list, fetch, trash and mark messages."""

from __future__ import annotations

import asyncio

from googleapiclient.errors import HttpError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from .constants import PAGE_SIZE
from .errors import ExternalCallError
from .log import get_logger
from .models import NormalizedMessage
from .parser import from_gmail

logger = get_logger(__name__)


def _is_retryable_http_error(exc: BaseException) -> bool:
    return isinstance(exc, HttpError) and exc.resp.status in (429, 500, 503)


@retry(
    retry=retry_if_exception(_is_retryable_http_error),
    wait=wait_exponential(multiplier=1, min=1, max=60),
    stop=stop_after_attempt(5),
    reraise=True,
)
def _execute(request) -> dict:
    return request.execute()


def _call(request, operation: str) -> dict:
    try:
        return _execute(request)
    except HttpError as exc:
        raise ExternalCallError(f"Gmail {operation} failed: {exc}", status_code=exc.resp.status) from exc


class GmailProvider:
    """MailProvider backed by a ``googleapiclient`` Gmail service.

    The client library is blocking; every call is moved to a worker thread
    so the orchestrators can await it.
    """

    name = "gmail"

    def __init__(self, service, user_id: str = "me") -> None:
        self.service = service
        self.user_id = user_id

    def _list_ids(self, query: str | None, max_results: int | None) -> list[str]:
        ids: list[str] = []
        page_token: str | None = None

        while True:
            kwargs: dict = {"userId": self.user_id, "maxResults": PAGE_SIZE, "fields": "messages/id,nextPageToken"}
            if query:
                kwargs["q"] = query
            if page_token:
                kwargs["pageToken"] = page_token

            resp = _call(self.service.users().messages().list(**kwargs), "list")
            for msg in resp.get("messages", []):
                ids.append(msg["id"])
                if max_results and len(ids) >= max_results:
                    return ids[:max_results]

            page_token = resp.get("nextPageToken")
            if not page_token:
                break

        return ids

    async def list_messages(self, query: str | None = None, max_results: int | None = None) -> list[str]:
        """List message IDs matching a Gmail search query, handling pagination."""
        return await asyncio.to_thread(self._list_ids, query, max_results)

    async def get_message(self, message_id: str) -> NormalizedMessage:
        request = self.service.users().messages().get(userId=self.user_id, id=message_id, format="full")
        resource = await asyncio.to_thread(_call, request, "get")
        return from_gmail(resource)

    async def delete_message(self, message_id: str) -> None:
        """Move a message to the trash."""
        request = self.service.users().messages().trash(userId=self.user_id, id=message_id)
        await asyncio.to_thread(_call, request, "trash")
        logger.debug("gmail_message_trashed", message_id=message_id)

    async def mark_read(self, message_id: str, read: bool = True) -> None:
        labels = {"removeLabelIds": ["UNREAD"]} if read else {"addLabelIds": ["UNREAD"]}
        request = self.service.users().messages().modify(userId=self.user_id, id=message_id, body=labels)
        await asyncio.to_thread(_call, request, "modify")
