# pickboard/services/article_fetcher.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import httpx
from bs4 import BeautifulSoup

from pickboard.core.errors import FetchError
from pickboard.models.types import RawArticle
from pickboard.services.content_cache import ContentCache, content_hash

logger = logging.getLogger("pickboard.fetcher")

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36"
)
MAX_ATTEMPTS = 3
# timeouts and rate limits; other 4xx are permanent
RETRYABLE_4XX = {408, 429}

_TRACKING_PARAMS = {"fbclid", "gclid", "dclid", "msclkid", "mc_cid", "mc_eid", "ref", "ref_src"}


def canonical_url(url: str) -> str:
    """Drop the fragment and tracking query params so URL variants share a cache key."""
    parsed = urlparse(url.strip())
    q = [
        (k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True)
        if not k.lower().startswith("utm_") and k.lower() not in _TRACKING_PARAMS
    ]
    return urlunparse(parsed._replace(query=urlencode(q), fragment=""))


def extract_text(html: str) -> str:
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    root = soup.body or soup
    return " ".join(root.get_text(" ").split())


@dataclass
class FetchedArticle:
    article: RawArticle
    text: str
    from_cache: bool

    @property
    def already_processed(self) -> bool:
        return self.from_cache and self.article.processed


class ArticleFetcher:
    """
    Document fetch through the content cache.

    Order: exact URL already stored -> no network; else GET with retry,
    then content-hash lookup, then store.
    """

    def __init__(
        self,
        cache: ContentCache,
        retry_base_delay: float = 0.5,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cache = cache
        self.retry_base_delay = retry_base_delay
        self.timeout = timeout
        self.transport = transport

    async def _get_html(self, url: str) -> str:
        last: Optional[Exception] = None
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            max_redirects=3,
            transport=self.transport,
        ) as client:
            for attempt in range(1, MAX_ATTEMPTS + 1):
                try:
                    r = await client.get(url)
                    r.raise_for_status()
                    return r.text
                except httpx.HTTPError as e:
                    if isinstance(e, httpx.HTTPStatusError):
                        code = e.response.status_code
                        if 400 <= code < 500 and code not in RETRYABLE_4XX:
                            raise FetchError(url, f"HTTP {code}, not retrying") from e
                    last = e
                    logger.warning("fetch attempt %s/%s failed for %s: %r", attempt, MAX_ATTEMPTS, url, e)
                    if attempt < MAX_ATTEMPTS:
                        await asyncio.sleep(self.retry_base_delay * attempt)
        raise FetchError(url, f"giving up after {MAX_ATTEMPTS} attempts: {last!r}")

    async def fetch(self, source_id: str, url: str, week: Optional[int] = None) -> FetchedArticle:
        url = canonical_url(url)

        existing = await self.cache.lookup(source_id, url)
        if existing:
            return FetchedArticle(existing, extract_text(existing.body), from_cache=True)

        html = await self._get_html(url)
        dup = await self.cache.lookup_by_hash(source_id, content_hash(url, html))
        if dup:
            return FetchedArticle(dup, extract_text(dup.body), from_cache=True)

        stored = await self.cache.store(source_id, url, html, week=week, processed=False)
        return FetchedArticle(stored, extract_text(stored.body), from_cache=False)
