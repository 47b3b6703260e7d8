# pickboard/services/espn_nfl.py
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from pickboard.core.errors import ScheduleError
from pickboard.core.repository import Repository
from pickboard.models.types import Game
from pickboard.services import teams

logger = logging.getLogger("pickboard.espn_nfl")

HEADERS = {"User-Agent": "Mozilla/5.0", "Accept": "application/json"}
REGULAR_SEASON = 2

_NUMBER = re.compile(r"([+-]?\d+\.?\d*)")


def _to_ts(dt_str: str | None) -> datetime | None:
    if not dt_str:
        return None
    # ESPN dates are ISO with a trailing Z
    try:
        return datetime.fromisoformat(dt_str.replace("Z", "+00:00")).astimezone(timezone.utc)
    except ValueError:
        logger.warning("espn_nfl: unparseable date %r", dt_str)
        return None


def parse_spread(odds: Optional[List[Dict[str, Any]]]) -> Optional[float]:
    """
    Structured `spread` wins; otherwise the first signed decimal in `details`
    (e.g. "KC -3.5" -> -3.5). "EVEN" and friends give None.
    """
    if not odds:
        return None
    first = odds[0] or {}
    spread = first.get("spread")
    if isinstance(spread, (int, float)):
        return float(spread)
    detail = first.get("details")
    if not detail:
        return None
    m = _NUMBER.search(detail)
    return float(m.group(1)) if m else None


def parse_total(odds: Optional[List[Dict[str, Any]]]) -> Optional[float]:
    if not odds:
        return None
    ou = (odds[0] or {}).get("overUnder")
    return float(ou) if isinstance(ou, (int, float)) else None


def _resolve_competitor(comp: Dict[str, Any]) -> Optional[str]:
    team = (comp or {}).get("team") or {}
    for key in ("abbreviation", "name", "displayName"):
        code = teams.resolve(team.get(key))
        if code:
            return code
    return None


def extract_game(ev: Dict[str, Any], season: int, week: int) -> Optional[Game]:
    """
    Flatten an ESPN NFL scoreboard event into a Game with canonical team codes.
    Returns None when either side cannot be resolved.
    """
    comp = (ev.get("competitions") or [{}])[0]
    competitors = comp.get("competitors") or []

    home = next((c for c in competitors if c.get("homeAway") == "home"), None)
    away = next((c for c in competitors if c.get("homeAway") == "away"), None)
    if not home or not away:
        logger.warning("espn_nfl: event %s missing home/away competitor", ev.get("id"))
        return None

    home_code = _resolve_competitor(home)
    away_code = _resolve_competitor(away)
    if not home_code or not away_code:
        logger.warning(
            "espn_nfl: skipping unmapped teams home=%s away=%s",
            (home.get("team") or {}).get("displayName"),
            (away.get("team") or {}).get("displayName"),
        )
        return None

    odds = comp.get("odds")
    status = ((comp.get("status") or {}).get("type") or {}).get("name") or "scheduled"
    return Game(
        season=season,
        week=week,
        kickoff=_to_ts(comp.get("date") or ev.get("date")),
        home_team=home_code,
        away_team=away_code,
        spread_line=parse_spread(odds),
        total_line=parse_total(odds),
        status=status,
    )


class EspnScheduleClient:
    """Pulls one NFL week from the ESPN scoreboard and upserts it as Games."""

    def __init__(
        self,
        repo: Repository,
        base_url: str,
        timeout: float = 12.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.repo = repo
        self.url = f"{base_url.rstrip('/')}/scoreboard"
        self.timeout = timeout
        self.transport = transport

    async def fetch_events(self, season: int, week: int) -> List[Dict[str, Any]]:
        params = {"dates": season, "seasontype": REGULAR_SEASON, "week": week, "limit": 500}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers=HEADERS, transport=self.transport) as client:
                r = await client.get(self.url, params=params)
                r.raise_for_status()
                data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ScheduleError(f"scoreboard fetch failed for season={season} week={week}: {e!r}") from e
        events = data.get("events") or []
        return events if isinstance(events, list) else []

    async def fetch_week(self, season: int, week: int) -> List[Game]:
        events = await self.fetch_events(season, week)
        games = [g for g in (extract_game(ev, season, week) for ev in events) if g is not None]
        logger.info("NFL scoreboard: season=%s week=%s events=%d games=%d", season, week, len(events), len(games))
        return games

    async def sync_week(self, season: int, week: int) -> List[Game]:
        logger.info("NFL schedule sync: season=%s week=%s url=%s", season, week, self.url)
        return [await self.repo.upsert_game(g) for g in await self.fetch_week(season, week)]
