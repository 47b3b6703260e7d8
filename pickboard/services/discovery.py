# pickboard/services/discovery.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from pickboard.core.errors import ConfigError, DiscoveryError
from pickboard.models.types import Source

logger = logging.getLogger("pickboard.discovery")

EXA_ENDPOINT = "https://api.exa.ai/search"


@dataclass(frozen=True)
class Candidate:
    url: str
    published: Optional[datetime] = None


def build_query(source: Source, week: int, season: int) -> str:
    team = f" {source.associated_team} " if source.associated_team else " "
    return f"{source.name}{team}week {week} picks {season} site:{source.base_url}"


def _parse_published(raw: Any) -> Optional[datetime]:
    if not raw or not isinstance(raw, str):
        return None
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def filter_recent(candidates: List[Candidate], max_age_hours: int, now: Optional[datetime] = None) -> List[str]:
    """Keep URLs published inside the window; undated URLs are presumed recent."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(hours=max_age_hours)
    return [c.url for c in candidates if c.published is None or c.published >= cutoff]


class ExaDiscoveryClient:
    def __init__(
        self,
        api_key: Optional[str],
        max_results: int = 10,
        max_age_hours: int = 24,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.max_results = max_results
        self.max_age_hours = max_age_hours
        self.timeout = timeout
        self.transport = transport

    async def search(self, query: str) -> List[Candidate]:
        if not self.api_key:
            raise ConfigError("EXA_API_KEY not configured")
        headers = {"Content-Type": "application/json", "x-api-key": self.api_key}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers=headers, transport=self.transport) as client:
                r = await client.post(EXA_ENDPOINT, json={"query": query, "numResults": self.max_results})
                r.raise_for_status()
                data: Dict[str, Any] = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DiscoveryError(f"exa search failed: {e!r}") from e

        out: List[Candidate] = []
        for item in data.get("results") or []:
            url = (item or {}).get("url")
            if not url:
                continue
            raw = item.get("publishedDate")
            published = _parse_published(raw)
            # only a missing date counts as presumed-recent
            if raw and published is None:
                logger.warning("dropping %s: unparseable publishedDate %r", url, raw)
                continue
            out.append(Candidate(url=url, published=published))
        return out

    async def discover(self, source: Source, week: int, season: int) -> List[str]:
        query = build_query(source, week, season)
        logger.info("discovery source=%s query=%r", source.name, query)
        candidates = await self.search(query)
        urls = filter_recent(candidates, self.max_age_hours)
        logger.info("discovery source=%s results=%d recent=%d", source.name, len(candidates), len(urls))
        return urls
