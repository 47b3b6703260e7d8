# pickboard/services/matcher.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Tuple, Union

from pickboard.models.extraction import ExtractedPick
from pickboard.models.types import ExtractionMethod, Game, PickType, Prediction
from pickboard.services import teams

logger = logging.getLogger("pickboard.matcher")

DEFAULT_CONFIDENCE = 0.5


class RejectReason(str, Enum):
    UNRESOLVED_TEAM = "UnresolvedTeam"
    UNMATCHED_GAME = "UnmatchedGame"
    NO_RELEVANT_GAMES = "NoRelevantGames"


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    detail: str = ""


def pair_key(a: str, b: str) -> Tuple[str, str]:
    """Order-independent key for a matchup."""
    return tuple(sorted((a, b)))  # type: ignore[return-value]


def relevant_games(text: str, games: Iterable[Game]) -> List[Game]:
    """Games whose home AND away team are both mentioned in the text."""
    lowered = (text or "").lower()
    return [
        g for g in games
        if teams.mentions(lowered, g.home_team) and teams.mentions(lowered, g.away_team)
    ]


def filter_article(text: str, games: Iterable[Game]) -> Union[List[Game], Rejected]:
    found = relevant_games(text, games)
    if not found:
        return Rejected(RejectReason.NO_RELEVANT_GAMES)
    return found


class PredictionMatcher:
    """Binds extracted picks to this week's known games. Never touches storage."""

    def __init__(self, games: Iterable[Game]):
        self.games = list(games)
        self._index: Dict[Tuple[str, str], Game] = {
            pair_key(g.home_team, g.away_team): g for g in self.games
        }

    def match(
        self,
        pick: ExtractedPick,
        *,
        source_id: str,
        article_url: str,
        season: int,
        week: int,
    ) -> Union[Prediction, Rejected]:
        home = teams.resolve(pick.game.homeTeam)
        away = teams.resolve(pick.game.awayTeam)
        if not home or not away:
            return Rejected(
                RejectReason.UNRESOLVED_TEAM,
                f"home={pick.game.homeTeam!r}->{home} away={pick.game.awayTeam!r}->{away}",
            )

        game = self._index.get(pair_key(home, away))
        if game is None:
            return Rejected(RejectReason.UNMATCHED_GAME, f"{away}@{home}")

        line = pick.line
        if line is None:
            stored = game.total_line if pick.pickType is PickType.TOTAL else game.spread_line
            line = stored if stored is not None else 0.0

        return Prediction(
            source_id=source_id,
            game_id=game.id,
            season=season,
            week=week,
            pick_type=pick.pickType,
            pick_side=pick.pickSide,
            line_at_pick=float(line),
            article_url=article_url,
            extraction_method=ExtractionMethod.MODEL,
            confidence=pick.confidence if pick.confidence is not None else DEFAULT_CONFIDENCE,
            quote=pick.quote,
        )
