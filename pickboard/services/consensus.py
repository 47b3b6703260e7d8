# pickboard/services/consensus.py
from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Tuple

from pickboard.core.repository import Repository
from pickboard.models.types import SIDES_FOR_TYPE, ConsensusScore, PickSide, PickType, Prediction

logger = logging.getLogger("pickboard.consensus")


def signal_label(score: int) -> str:
    if score >= 4:
        return "strong"
    if score >= 2:
        return "moderate"
    return "lean"


def _tally(pick_type: PickType, group: List[Prediction]) -> Dict[PickSide, int]:
    counts = {side: 0 for side in PickSide}
    valid = SIDES_FOR_TYPE[pick_type]
    for p in group:
        side = _as_side(p.pick_side)
        if side not in valid:
            logger.warning(
                "dropping prediction %s: side %r not valid for %s",
                p.id, getattr(p.pick_side, "value", p.pick_side), pick_type.value,
            )
            continue
        counts[side] += 1
    return counts


def _as_side(raw) -> PickSide | None:
    try:
        return PickSide(raw)
    except ValueError:
        return None


def score_group(game_id: str, pick_type: PickType, season: int, week: int, group: List[Prediction]) -> ConsensusScore:
    counts = _tally(pick_type, group)
    first, second = SIDES_FOR_TYPE[pick_type]
    # ties go to the first-listed side (home / over)
    majority = first if counts[first] >= counts[second] else second

    ranked = sorted(counts.values(), reverse=True)
    score = ranked[0] - ranked[1]

    return ConsensusScore(
        game_id=game_id,
        season=season,
        week=week,
        pick_type=pick_type,
        majority_side=majority,
        score=score,
        signal_label=signal_label(score),
        num_predictions=sum(counts.values()),
    )


def compute(season: int, week: int, predictions: Iterable[Prediction]) -> List[ConsensusScore]:
    """
    One score per (game, pick type), in first-seen order.

    `num_predictions` counts only tallied predictions. A row whose side is not
    valid for its pick type (e.g. "over" on a spread) is dropped before the
    count, so it never shows up in the published sheet.
    """
    grouped: "OrderedDict[Tuple[str, PickType], List[Prediction]]" = OrderedDict()
    for p in predictions:
        grouped.setdefault((p.game_id, PickType(p.pick_type)), []).append(p)

    return [
        score_group(game_id, pick_type, season, week, group)
        for (game_id, pick_type), group in grouped.items()
    ]


class ConsensusEngine:
    def __init__(self, repo: Repository):
        self.repo = repo

    async def refresh(self, season: int, week: int) -> List[ConsensusScore]:
        """
        Recompute every (game, pick type) score for the week and upsert it.

        Scores for groups that no longer have predictions are left in place.
        """
        predictions = await self.repo.list_predictions(season=season, week=week)
        scores = compute(season, week, predictions)
        stored = [await self.repo.upsert_consensus_score(s) for s in scores]
        logger.info("consensus season=%s week=%s predictions=%d groups=%d", season, week, len(predictions), len(stored))
        return stored
