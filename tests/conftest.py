from datetime import datetime, timezone

import pytest

from pickboard.core.repository import MemoryRepository
from pickboard.models.types import Game, PickSide, PickType, Prediction


@pytest.fixture
def repo():
    return MemoryRepository()


def make_game(home="KC", away="BUF", season=2024, week=5, spread=-2.5, total=47.5):
    return Game(
        season=season,
        week=week,
        kickoff=datetime(2024, 10, 6, 20, 20, tzinfo=timezone.utc),
        home_team=home,
        away_team=away,
        spread_line=spread,
        total_line=total,
    )


def make_prediction(game_id, pick_type, side, source_id="src", season=2024, week=5):
    return Prediction(
        source_id=source_id,
        game_id=game_id,
        season=season,
        week=week,
        pick_type=PickType(pick_type),
        pick_side=PickSide(side),
        line_at_pick=-2.5,
        article_url=f"https://example.com/{source_id}",
    )
