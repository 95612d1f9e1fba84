"""Tests for the unsubscribe module."""

import httpx
import pytest

from cleaninbox.unsubscribe import unsubscribe_from_email, unsubscribe_from_links


def make_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)


def status_by_path(request):
    if request.url.path == "/ok":
        return httpx.Response(200, text="You have been unsubscribed")
    if request.url.path == "/gone":
        return httpx.Response(404)
    if request.url.path == "/down":
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(500)


@pytest.mark.asyncio
async def test_links_without_auto_are_not_requested():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200)

    html = '<a href="https://x.com/ok">Unsubscribe</a>'
    async with make_client(handler) as client:
        outcome = await unsubscribe_from_email(html, auto_unsubscribe=False, client=client)

    assert outcome.links == ["https://x.com/ok"]
    assert outcome.results is None
    assert requests == []


@pytest.mark.asyncio
async def test_no_links_means_no_results():
    outcome = await unsubscribe_from_email("<p>Hello</p>", auto_unsubscribe=True)
    assert outcome.links == []
    assert outcome.results is None


@pytest.mark.asyncio
async def test_auto_unsubscribe_follows_every_link():
    html = (
        '<a href="https://x.com/ok">Unsubscribe</a>'
        '<a href="https://x.com/gone">Opt out</a>'
    )
    async with make_client(status_by_path) as client:
        outcome = await unsubscribe_from_email(html, auto_unsubscribe=True, client=client)

    assert [r.url for r in outcome.results] == outcome.links
    ok, gone = outcome.results
    assert ok.status == 200 and ok.ok is True
    assert gone.status == 404 and gone.ok is False


@pytest.mark.asyncio
async def test_failing_link_does_not_stop_the_rest():
    links = ["https://x.com/down", "https://x.com/ok"]
    async with make_client(status_by_path) as client:
        results = await unsubscribe_from_links(links, client=client)

    assert results[0].status is None
    assert results[0].ok is False
    assert "connection refused" in results[0].error
    assert results[1].ok is True


@pytest.mark.asyncio
async def test_redirects_are_followed():
    def handler(request):
        if request.url.path == "/start":
            return httpx.Response(302, headers={"Location": "https://x.com/ok"})
        return httpx.Response(200)

    async with make_client(handler) as client:
        results = await unsubscribe_from_links(["https://x.com/start"], client=client)

    assert results[0].status == 200
    assert results[0].ok is True


@pytest.mark.asyncio
async def test_mailto_is_not_requested():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200)

    async with make_client(handler) as client:
        results = await unsubscribe_from_links(["mailto:leave@list.com"], client=client)

    assert results[0].status is None
    assert results[0].error == "mailto link not supported"
    assert requests == []


@pytest.mark.asyncio
async def test_empty_link_list():
    assert await unsubscribe_from_links([]) == []
