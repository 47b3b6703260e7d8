"""Tests for article discovery via Exa search."""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from pickboard.core.errors import ConfigError, DiscoveryError
from pickboard.models.types import Source
from pickboard.services.discovery import Candidate, ExaDiscoveryClient, build_query, filter_recent

NOW = datetime(2024, 10, 3, 12, 0, tzinfo=timezone.utc)


class TestBuildQuery:
    def test_with_team(self):
        src = Source(name="Arrowhead Pride", base_url="arrowheadpride.com", associated_team="KC")
        assert build_query(src, 5, 2024) == "Arrowhead Pride KC week 5 picks 2024 site:arrowheadpride.com"

    def test_without_team(self):
        src = Source(name="Action Network", base_url="actionnetwork.com")
        assert build_query(src, 5, 2024) == "Action Network week 5 picks 2024 site:actionnetwork.com"


class TestFilterRecent:
    """Only the last 24h, plus undated results."""

    def test_window(self):
        cands = [
            Candidate("https://a.test/fresh", NOW - timedelta(hours=2)),
            Candidate("https://a.test/stale", NOW - timedelta(hours=30)),
            Candidate("https://a.test/undated", None),
        ]
        assert filter_recent(cands, 24, now=NOW) == ["https://a.test/fresh", "https://a.test/undated"]


class TestExaDiscoveryClient:
    @pytest.mark.asyncio
    async def test_search_parses_results(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["x-api-key"] == "exa-key"
            body = json.loads(request.content)
            assert body["numResults"] == 3
            assert "week 5 picks 2024" in body["query"]
            return httpx.Response(200, json={"results": [
                {"url": "https://a.test/1", "publishedDate": "2024-10-03T08:00:00.000Z"},
                {"url": "https://a.test/2"},
                {"title": "no url"},
            ]})

        client = ExaDiscoveryClient("exa-key", max_results=3, transport=httpx.MockTransport(handler))
        cands = await client.search("Arrowhead Pride KC week 5 picks 2024 site:arrowheadpride.com")
        assert [c.url for c in cands] == ["https://a.test/1", "https://a.test/2"]
        assert cands[0].published == datetime(2024, 10, 3, 8, 0, tzinfo=timezone.utc)
        assert cands[1].published is None

    @pytest.mark.asyncio
    async def test_discover_keeps_undated(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"results": [{"url": "https://a.test/1"}]}))
        client = ExaDiscoveryClient("exa-key", transport=transport)
        urls = await client.discover(Source(name="Blog", base_url="a.test"), 5, 2024)
        assert urls == ["https://a.test/1"]

    @pytest.mark.asyncio
    async def test_unparseable_date_is_dropped_not_presumed_recent(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"results": [
            {"url": "https://a.test/bad", "publishedDate": "last Tuesday"},
            {"url": "https://a.test/undated"},
        ]}))
        client = ExaDiscoveryClient("exa-key", transport=transport)
        urls = await client.discover(Source(name="Blog", base_url="a.test"), 5, 2024)
        assert urls == ["https://a.test/undated"]

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        client = ExaDiscoveryClient("exa-key", transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        with pytest.raises(DiscoveryError):
            await client.search("q")

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ConfigError):
            await ExaDiscoveryClient(None).search("q")
