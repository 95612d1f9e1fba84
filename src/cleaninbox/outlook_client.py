"""Microsoft Graph provider for Outlook / Microsoft 365 mailboxes."""

from __future__ import annotations

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from .constants import GRAPH_BASE_URL, GRAPH_PAGE_SIZE, GRAPH_SELECT_FIELDS, HTTP_TIMEOUT
from .errors import ExternalCallError, ValidationError
from .log import get_logger
from .models import NormalizedMessage
from .parser import from_graph

logger = get_logger(__name__)

RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ExternalCallError) and exc.status_code in RETRYABLE_STATUSES


class OutlookProvider:
    """MailProvider over the Microsoft Graph REST API.

    Requires an OAuth access token with the ``Mail.ReadWrite`` scope.
    """

    name = "outlook"

    def __init__(
        self,
        access_token: str,
        base_url: str = GRAPH_BASE_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not access_token:
            raise ValidationError("Access token is required.")
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Prefer": 'outlook.body-content-type="html"',
        }

    @retry(
        retry=retry_if_exception(_is_retryable),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if not url.startswith("http"):
            url = f"{self.base_url}{url}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=self._headers, **kwargs)
            else:
                # Fresh client per call: scheduled runs each get their own event loop.
                async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                    response = await client.request(method, url, headers=self._headers, **kwargs)
        except httpx.HTTPError as exc:
            raise ExternalCallError(f"Graph {method} {url} failed: {exc}") from exc

        if response.is_error:
            raise ExternalCallError(
                f"Graph {method} {url} failed: {response.status_code} {response.text}",
                status_code=response.status_code,
            )
        return response

    async def list_messages(self, query: str | None = None, max_results: int | None = None) -> list[str]:
        """List inbox message IDs. *query* is an OData ``$filter`` expression."""
        params: dict = {"$top": GRAPH_PAGE_SIZE, "$select": "id"}
        if query:
            params["$filter"] = query

        ids: list[str] = []
        url: str | None = "/mailFolders/inbox/messages"
        while url:
            response = await self._request("GET", url, params=params)
            data = response.json()
            for msg in data.get("value", []):
                ids.append(msg["id"])
                if max_results and len(ids) >= max_results:
                    return ids[:max_results]
            url = data.get("@odata.nextLink")
            # nextLink already carries the query string
            params = {}

        return ids

    async def get_message(self, message_id: str) -> NormalizedMessage:
        response = await self._request(
            "GET", f"/messages/{message_id}", params={"$select": GRAPH_SELECT_FIELDS}
        )
        return from_graph(response.json())

    async def delete_message(self, message_id: str) -> None:
        await self._request("DELETE", f"/messages/{message_id}")
        logger.debug("outlook_message_deleted", message_id=message_id)

    async def mark_read(self, message_id: str, read: bool = True) -> None:
        await self._request("PATCH", f"/messages/{message_id}", json={"isRead": read})
