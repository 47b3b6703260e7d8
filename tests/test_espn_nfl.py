"""Tests for the ESPN scoreboard adapter."""

import httpx
import pytest

from pickboard.core.errors import ScheduleError
from pickboard.services.espn_nfl import EspnScheduleClient, extract_game, parse_spread, parse_total


def _event(home_abbr="KC", away_abbr="BUF", odds=None, home_name=None):
    return {
        "id": "401671789",
        "date": "2024-10-06T20:20Z",
        "competitions": [
            {
                "date": "2024-10-06T20:20Z",
                "status": {"type": {"name": "STATUS_SCHEDULED"}},
                "odds": odds if odds is not None else [{"details": "KC -2.5", "overUnder": 47.5}],
                "competitors": [
                    {"homeAway": "home", "team": {"abbreviation": home_abbr, "name": home_name, "displayName": "Home"}},
                    {"homeAway": "away", "team": {"abbreviation": away_abbr, "displayName": "Away"}},
                ],
            }
        ],
    }


class TestParseOdds:
    def test_structured_spread_wins(self):
        assert parse_spread([{"spread": -3.0, "details": "KC -2.5"}]) == -3.0

    def test_spread_from_details(self):
        assert parse_spread([{"details": "KC -3.5"}]) == -3.5
        assert parse_spread([{"details": "BUF +1"}]) == 1.0

    def test_no_number(self):
        assert parse_spread([{"details": "EVEN"}]) is None
        assert parse_spread(None) is None
        assert parse_spread([]) is None

    def test_total(self):
        assert parse_total([{"overUnder": 47.5}]) == 47.5
        assert parse_total([{"overUnder": "n/a"}]) is None


class TestExtractGame:
    def test_flattens_event(self):
        g = extract_game(_event(), 2024, 5)
        assert (g.home_team, g.away_team) == ("KC", "BUF")
        assert g.spread_line == -2.5
        assert g.total_line == 47.5
        assert g.kickoff.year == 2024 and g.kickoff.tzinfo is not None
        assert g.status == "STATUS_SCHEDULED"

    def test_falls_back_to_short_name(self):
        g = extract_game(_event(home_abbr="???", home_name="Chiefs"), 2024, 5)
        assert g.home_team == "KC"

    def test_unmapped_team_skipped(self):
        assert extract_game(_event(home_abbr="XYZ"), 2024, 5) is None

    def test_missing_competitor_skipped(self):
        ev = _event()
        ev["competitions"][0]["competitors"].pop()
        assert extract_game(ev, 2024, 5) is None


class TestEspnScheduleClient:
    @pytest.mark.asyncio
    async def test_sync_week_upserts_games(self, repo):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(dict(request.url.params))
            return httpx.Response(200, json={"events": [_event(), _event("DAL", "NYG"), _event("XYZ", "BUF")]})

        client = EspnScheduleClient(repo, "https://espn.test/nfl/", transport=httpx.MockTransport(handler))
        games = await client.sync_week(2024, 5)

        assert seen["dates"] == "2024"
        assert seen["seasontype"] == "2"
        assert seen["week"] == "5"
        assert [(g.home_team, g.away_team) for g in games] == [("KC", "BUF"), ("DAL", "NYG")]
        assert len(await repo.list_games(2024, 5)) == 2

        # second sync keeps ids
        again = await client.sync_week(2024, 5)
        assert [g.id for g in again] == [g.id for g in games]

    @pytest.mark.asyncio
    async def test_http_failure_raises_schedule_error(self, repo):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        client = EspnScheduleClient(repo, "https://espn.test/nfl", transport=transport)
        with pytest.raises(ScheduleError):
            await client.sync_week(2024, 5)
