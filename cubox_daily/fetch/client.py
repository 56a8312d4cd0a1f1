"""
Async client for the Cubox third-party REST API.

Cards are listed newest-update-first through the filter endpoint, which
paginates by the id and update time of the last card already seen.
Transport failures are retried with a linear backoff and then surface as
CuboxApiError.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from ..core.errors import CuboxApiError, DownloadFailed
from ..core.types import Article, ArticlePage

FILTER_PATH = "/c/api/third-party/card/filter"
CONTENT_PATH = "/c/api/third-party/card/content"
DEFAULT_PAGE_LIMIT = 500


class CuboxClient:
    """Thin wrapper over httpx.AsyncClient for the Cubox API.

    Use as an async context manager so the connection pool is closed:

        async with CuboxClient("cubox.pro", key) as client:
            page = await client.list_articles_page(None, None)
    """

    def __init__(
        self,
        domain: str,
        api_key: str,
        timeout_seconds: float = 20.0,
        retries: int = 2,
        trust_env: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = f"https://{domain}"
        self.api_key = api_key
        self.retries = max(0, int(retries))
        self._http = httpx.AsyncClient(
            timeout=timeout_seconds,
            trust_env=trust_env,
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> "CuboxClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def update_config(self, domain: str, api_key: str) -> None:
        """Replace domain and API key together."""
        self.endpoint = f"https://{domain}"
        self.api_key = api_key

    async def list_articles_page(
        self,
        last_card_id: str | None,
        last_card_update_time: str | None,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> ArticlePage:
        """Fetch one page of cards ordered by descending update time.

        Args:
            last_card_id: Id of the last card of the previous page, if resuming
            last_card_update_time: Update time of that card, if resuming
            limit: Page size requested from the server

        Returns:
            ArticlePage whose has_more is True when the page came back full
        """
        body: dict[str, Any] = {"limit": limit}
        if last_card_id and last_card_update_time:
            body["last_card_id"] = last_card_id
            body["last_card_update_time"] = last_card_update_time

        payload = await self._request("POST", FILTER_PATH, json=body)
        raw_articles = payload.get("data") or []
        if not isinstance(raw_articles, list):
            raise CuboxApiError(f"Unexpected card list payload: {type(raw_articles).__name__}")

        articles = [Article.from_api(item) for item in raw_articles if isinstance(item, dict)]
        return ArticlePage(articles=articles, has_more=len(raw_articles) >= limit)

    async def get_article_content(self, article_id: str) -> str | None:
        """Return the Markdown content of a card, or None if Cubox has none."""
        payload = await self._request("GET", CONTENT_PATH, params={"id": article_id})
        content = payload.get("data")
        if content is None:
            return None
        return str(content)

    async def download(self, url: str) -> bytes:
        """Download binary content from an arbitrary URL.

        Raises:
            DownloadFailed: On an error status or a network failure
        """
        try:
            resp = await self._http.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DownloadFailed(f"Image download failed: {type(exc).__name__}: {exc}") from exc
        if resp.status_code >= 400:
            raise DownloadFailed(f"Image download failed with status {resp.status_code}")
        return resp.content

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.endpoint}{path}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        last_error: CuboxApiError | None = None

        for attempt in range(self.retries + 1):
            try:
                resp = await self._http.request(method, url, headers=headers, **kwargs)
                if resp.status_code >= 400:
                    raise CuboxApiError(
                        f"API request failed: {resp.status_code}", status_code=resp.status_code
                    )
                data = resp.json()
                if not isinstance(data, dict):
                    raise CuboxApiError(f"Unexpected API response: {type(data).__name__}")
                return data
            except CuboxApiError as exc:
                last_error = exc
            except httpx.HTTPError as exc:
                last_error = CuboxApiError(f"{type(exc).__name__}: {exc}")
            except ValueError as exc:
                # json.JSONDecodeError
                last_error = CuboxApiError(f"Invalid JSON from {path}: {exc}")
            if attempt < self.retries:
                await asyncio.sleep(0.5 * (attempt + 1))

        assert last_error is not None
        raise last_error
