# pickboard/services/content_cache.py
from __future__ import annotations

import hashlib
import logging
from typing import Optional

from pickboard.core.repository import Repository
from pickboard.models.types import RawArticle

logger = logging.getLogger("pickboard.cache")


def content_hash(url: str, body: str) -> str:
    # URL bytes then body bytes, one digest
    h = hashlib.sha256()
    h.update(url.encode("utf-8"))
    h.update(body.encode("utf-8"))
    return h.hexdigest()


class ContentCache:
    """
    Content-addressed article store keyed by (source, sha256(url + body)).

    Nothing is ever evicted: stored documents are the record of what each
    prediction was extracted from.
    """

    def __init__(self, repo: Repository):
        self.repo = repo

    async def lookup(self, source_id: str, url: str) -> Optional[RawArticle]:
        existing = await self.repo.find_article_by_url(source_id, url)
        if existing:
            logger.info("cache hit by url source=%s url=%s", source_id, url)
        return existing

    async def lookup_by_hash(self, source_id: str, digest: str) -> Optional[RawArticle]:
        existing = await self.repo.find_article_by_hash(source_id, digest)
        if existing:
            logger.info("cache hit by content source=%s hash=%s", source_id, digest[:12])
        else:
            logger.debug("cache miss source=%s hash=%s", source_id, digest[:12])
        return existing

    async def store(
        self,
        source_id: str,
        url: str,
        body: str,
        week: Optional[int] = None,
        processed: bool = False,
    ) -> RawArticle:
        digest = content_hash(url, body)
        existing = await self.repo.find_article_by_hash(source_id, digest)
        if existing:
            return existing

        stored = await self.repo.insert_article(
            RawArticle(
                source_id=source_id,
                url=url,
                body=body,
                content_hash=digest,
                week=week,
                processed=processed,
            )
        )
        logger.info("cached article source=%s url=%s", source_id, url)
        return stored

    async def mark_processed(self, article: RawArticle, week: Optional[int] = None) -> None:
        await self.repo.mark_article_processed(article.id, week)
