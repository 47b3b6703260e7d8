# pickboard/services/sheets.py
from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote

import httpx
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from pickboard.core.errors import ConfigError, PublishError
from pickboard.core.repository import Repository
from pickboard.models.types import ConsensusScore, Game

logger = logging.getLogger("pickboard.sheets")

SHEETS_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

HEADER = ["Season", "Week", "Home", "Away", "Pick Type", "Majority", "Score", "Signal", "Num Predictions"]


def tab_title(week: int) -> str:
    return f"Week {week}"


def build_rows(scores: List[ConsensusScore], games: List[Game]) -> List[List[Any]]:
    lookup = {g.id: g for g in games}
    rows: List[List[Any]] = [list(HEADER)]
    for s in scores:
        g = lookup.get(s.game_id)
        rows.append([
            s.season,
            s.week,
            g.home_team if g else "",
            g.away_team if g else "",
            s.pick_type.value,
            s.majority_side.value,
            s.score,
            s.signal_label,
            s.num_predictions,
        ])
    return rows


def service_account_token(credentials_path: Optional[str]) -> Callable[[], Awaitable[str]]:
    """Token provider backed by a service-account key file (google-auth)."""

    async def _token() -> str:
        if not credentials_path or not os.path.exists(credentials_path):
            raise ConfigError(f"Google Sheets credentials file not found at {credentials_path}")
        creds = service_account.Credentials.from_service_account_file(credentials_path, scopes=SCOPES)
        # google-auth refresh is blocking
        await asyncio.to_thread(creds.refresh, Request())
        return creds.token

    return _token


class SheetsPublisher:
    """Writes the week's consensus table to a `Week <n>` tab, replacing what was there."""

    def __init__(
        self,
        repo: Repository,
        sheet_id: Optional[str],
        token_provider: Callable[[], Awaitable[str]],
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.repo = repo
        self.sheet_id = sheet_id
        self.token_provider = token_provider
        self.timeout = timeout
        self.transport = transport

    async def _ensure_tab(self, client: httpx.AsyncClient, title: str) -> None:
        r = await client.get(f"{SHEETS_BASE}/{self.sheet_id}", params={"fields": "sheets.properties.title"})
        r.raise_for_status()
        titles = [((s or {}).get("properties") or {}).get("title") for s in (r.json().get("sheets") or [])]
        if title in titles:
            return
        r = await client.post(
            f"{SHEETS_BASE}/{self.sheet_id}:batchUpdate",
            json={"requests": [{"addSheet": {"properties": {"title": title}}}]},
        )
        r.raise_for_status()
        logger.info("created sheet tab %r", title)

    async def publish(self, season: int, week: int) -> int:
        if not self.sheet_id:
            raise ConfigError("GOOGLE_SHEET_ID not configured")

        scores = await self.repo.list_consensus_scores(season, week)
        games = await self.repo.list_games(season, week)
        rows = build_rows(scores, games)

        title = tab_title(week)
        tab = quote(f"'{title}'", safe="")
        rng = quote(f"'{title}'!A1", safe="")
        token = await self.token_provider()
        headers: Dict[str, str] = {"Authorization": f"Bearer {token}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers=headers, transport=self.transport) as client:
                await self._ensure_tab(client, title)
                r = await client.post(f"{SHEETS_BASE}/{self.sheet_id}/values/{tab}:clear", json={})
                r.raise_for_status()
                r = await client.put(
                    f"{SHEETS_BASE}/{self.sheet_id}/values/{rng}",
                    params={"valueInputOption": "RAW"},
                    json={"values": rows},
                )
                r.raise_for_status()
        except httpx.HTTPError as e:
            raise PublishError(f"sheets publish failed for {title}: {e!r}") from e

        logger.info("published consensus to sheets season=%s week=%s rows=%d", season, week, len(rows) - 1)
        return len(rows) - 1
