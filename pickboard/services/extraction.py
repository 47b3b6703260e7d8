# pickboard/services/extraction.py
"""
OpenRouter chat-completion client that turns article text into picks.

Only transport failures raise (`ExtractionError`). Anything the model sends
back that is not a schema-valid JSON array comes back as `ExtractionInvalid`.
"""
from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import httpx

from pickboard.core.errors import ConfigError, ExtractionError
from pickboard.models.extraction import ExtractionInvalid, ExtractionResult, parse_extraction
from pickboard.models.types import Game
from pickboard.services.teams import display_name

logger = logging.getLogger("pickboard.extraction")

OPENROUTER_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
MAX_ARTICLE_CHARS = 6000

SYSTEM_PROMPT = "Extract structured NFL betting picks in valid JSON."

PROMPT_TEMPLATE = """You are an information extraction model that reads NFL betting articles and returns structured picks.

NFL schedule (awayTeam at homeTeam):
{schedule}

Extract all explicit betting picks. Return JSON only, no prose.
Schema:
[
  {{
    "game": {{ "homeTeam": "KC", "awayTeam": "BUF", "week": {week}, "season": {season} }},
    "pickType": "spread" | "total",
    "pickSide": "home" | "away" | "over" | "under",
    "line": number,
    "confidence": number between 0 and 1,
    "quote": "verbatim supporting sentence"
  }}
]

Rules:
- Use the team codes exactly as shown in the schedule.
- For spread picks, pickSide is "home" or "away" relative to the listed homeTeam.
- For total picks, pickSide is "over" or "under".
- Include every pick found; omit speculative statements.
- If no picks are present, return an empty array [].

Article:
\"\"\"{article}\"\"\""""


def _fmt_line(v: Optional[float]) -> str:
    return "N/A" if v is None else f"{v:g}"


def _fmt_team(code: str) -> str:
    name = display_name(code)
    return f"{code} ({name})" if name else code


def build_prompt(article_text: str, games: List[Game]) -> str:
    schedule = "\n".join(
        f"{_fmt_team(g.away_team)} at {_fmt_team(g.home_team)} on {g.kickoff.isoformat() if g.kickoff else 'TBD'} "
        f"(spread: {_fmt_line(g.spread_line)}, total: {_fmt_line(g.total_line)})"
        for g in games
    )
    season = games[0].season if games else 0
    week = games[0].week if games else 0
    return PROMPT_TEMPLATE.format(
        schedule=schedule,
        season=season,
        week=week,
        article=article_text[:MAX_ARTICLE_CHARS],
    )


def slice_json_array(content: str) -> Any:
    """Pull the outermost [...] out of a reply that may carry prose or code fences."""
    trimmed = content.strip()
    start = trimmed.find("[")
    end = trimmed.rfind("]")
    if start == -1 or end == -1 or end < start:
        raise ValueError("no JSON array found in model output")
    return json.loads(trimmed[start:end + 1])


class OpenRouterExtractor:
    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.transport = transport

    async def _complete(self, prompt: str) -> str:
        if not self.api_key:
            raise ConfigError("OPENROUTER_API_KEY not configured")
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.2,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers=headers, transport=self.transport) as client:
                r = await client.post(OPENROUTER_ENDPOINT, json=payload)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPStatusError as e:
            raise ExtractionError(f"OpenRouter API error: {e.response.status_code} {e.response.text[:300]}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ExtractionError(f"OpenRouter request failed: {e!r}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str):
            raise ExtractionError("OpenRouter response missing content")
        return content

    async def extract(self, article_text: str, games: List[Game]) -> ExtractionResult:
        content = await self._complete(build_prompt(article_text, games))
        try:
            payload = slice_json_array(content)
        except ValueError as e:
            logger.error("failed to parse model output: %s preview=%r", e, content[:500])
            return ExtractionInvalid(reason=str(e))
        return parse_extraction(payload)
