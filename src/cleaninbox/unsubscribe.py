"""Unsubscribe workflow - find unsubscribe links and optionally follow them."""

from __future__ import annotations

from typing import Iterable

import httpx

from .classifier import ClassifierRules, extract_unsubscribe_links
from .constants import HTTP_TIMEOUT, USER_AGENT
from .log import get_logger
from .models import UnsubscribeAttemptResult, UnsubscribeOutcome

logger = get_logger(__name__)


def _make_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=HTTP_TIMEOUT,
        headers={"User-Agent": USER_AGENT},
    )


async def _attempt(client: httpx.AsyncClient, url: str) -> UnsubscribeAttemptResult:
    if url.lower().startswith("mailto:"):
        return UnsubscribeAttemptResult(url=url, error="mailto link not supported")

    # Some links expect a POST or a form submission; only GET is attempted.
    try:
        response = await client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("unsubscribe_failed", url=url, error=str(exc))
        return UnsubscribeAttemptResult(url=url, error=str(exc) or exc.__class__.__name__)

    logger.info("unsubscribe_requested", url=url, status=response.status_code)
    return UnsubscribeAttemptResult(
        url=url,
        status=response.status_code,
        ok=response.is_success,
    )


async def unsubscribe_from_links(
    links: Iterable[str],
    client: httpx.AsyncClient | None = None,
) -> list[UnsubscribeAttemptResult]:
    """Request every link in order, one at a time.

    A failing link is recorded with ``status=None`` and does not stop the
    remaining ones.
    """
    if client is not None:
        return [await _attempt(client, url) for url in links]

    async with _make_client() as own_client:
        return [await _attempt(own_client, url) for url in links]


async def unsubscribe_from_email(
    html_content: str | None,
    auto_unsubscribe: bool = False,
    client: httpx.AsyncClient | None = None,
    rules: ClassifierRules | None = None,
) -> UnsubscribeOutcome:
    """Extract unsubscribe links and, if asked, follow them.

    ``results`` stays ``None`` when *auto_unsubscribe* is off or no link was
    found; no request is made in that case.
    """
    links = extract_unsubscribe_links(html_content, rules)
    if auto_unsubscribe and links:
        results = await unsubscribe_from_links(links, client=client)
        return UnsubscribeOutcome(links=links, results=results)
    return UnsubscribeOutcome(links=links, results=None)
