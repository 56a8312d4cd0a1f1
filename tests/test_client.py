"""Tests for the Cubox REST client using httpx.MockTransport."""

import asyncio
import json

import httpx
import pytest

from cubox_daily.core.errors import CuboxApiError, DownloadFailed
from cubox_daily.fetch.client import CuboxClient


def _card(card_id: str, update_time: str = "2026-01-02T00:00:00Z") -> dict:
    return {
        "id": card_id,
        "title": f"Title {card_id}",
        "url": "",
        "create_time": "2026-01-01T00:00:00Z",
        "update_time": update_time,
        "type": "Memo",
    }


def _run_with_handler(handler, coro_factory, retries: int = 0):
    async def _main():
        transport = httpx.MockTransport(handler)
        async with CuboxClient("cubox.pro", "secret", retries=retries, transport=transport) as client:
            return await coro_factory(client)

    return asyncio.run(_main())


def test_list_articles_first_page_request_shape():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"code": 200, "message": "", "data": [_card("a"), _card("b")]})

    page = _run_with_handler(handler, lambda c: c.list_articles_page(None, None, limit=2))

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://cubox.pro/c/api/third-party/card/filter"
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {"limit": 2}
    assert [a.id for a in page.articles] == ["a", "b"]
    assert page.articles[0].updated_at == "2026-01-02T00:00:00Z"
    assert page.articles[0].kind == "Memo"
    assert page.has_more is True


def test_list_articles_resume_and_short_page():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"code": 200, "message": "", "data": [_card("c")]})

    page = _run_with_handler(
        handler, lambda c: c.list_articles_page("b", "2026-01-02T00:00:00Z", limit=500)
    )

    assert bodies[0] == {
        "limit": 500,
        "last_card_id": "b",
        "last_card_update_time": "2026-01-02T00:00:00Z",
    }
    assert page.has_more is False


def test_list_articles_null_data_is_empty():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": 200, "message": "", "data": None})

    page = _run_with_handler(handler, lambda c: c.list_articles_page(None, None))

    assert page.articles == []
    assert page.has_more is False


def test_get_article_content():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/c/api/third-party/card/content"
        assert request.url.params["id"] == "a1"
        return httpx.Response(200, json={"code": 200, "message": "", "data": "# Hello"})

    assert _run_with_handler(handler, lambda c: c.get_article_content("a1")) == "# Hello"


def test_error_status_raises_after_retries(monkeypatch):
    calls = 0
    sleeps: list[float] = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr("cubox_daily.fetch.client.asyncio.sleep", fake_sleep)

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(CuboxApiError) as excinfo:
        _run_with_handler(handler, lambda c: c.get_article_content("a1"), retries=2)

    assert excinfo.value.status_code == 502
    assert calls == 3
    assert sleeps == [0.5, 1.0]


def test_network_error_and_bad_json_raise_api_error():
    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    def not_json(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    with pytest.raises(CuboxApiError):
        _run_with_handler(broken, lambda c: c.list_articles_page(None, None))
    with pytest.raises(CuboxApiError):
        _run_with_handler(not_json, lambda c: c.list_articles_page(None, None))


def test_download():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/ok.png":
            assert "Authorization" not in request.headers
            return httpx.Response(200, content=b"png-bytes")
        return httpx.Response(404)

    assert _run_with_handler(handler, lambda c: c.download("https://img.example.com/ok.png")) == b"png-bytes"
    with pytest.raises(DownloadFailed):
        _run_with_handler(handler, lambda c: c.download("https://img.example.com/missing.png"))
    with pytest.raises(DownloadFailed):
        _run_with_handler(handler, lambda c: c.download("https://img.example.com:abc/a.png"))


def test_update_config():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "cubox.cc"
        assert request.headers["Authorization"] == "Bearer other"
        return httpx.Response(200, json={"data": "ok"})

    def _call(client):
        client.update_config("cubox.cc", "other")
        return client.get_article_content("x")

    assert _run_with_handler(handler, _call) == "ok"
