"""Unit tests for binding extracted picks to scheduled games."""

from pickboard.models.extraction import ExtractedPick
from pickboard.models.types import ExtractionMethod, PickSide, PickType, Prediction
from pickboard.services.matcher import (
    PredictionMatcher,
    RejectReason,
    Rejected,
    filter_article,
    pair_key,
    relevant_games,
)

from conftest import make_game


def _pick(home="KC", away="BUF", pick_type="spread", side="home", **extra):
    payload = {"game": {"homeTeam": home, "awayTeam": away}, "pickType": pick_type, "pickSide": side}
    payload.update(extra)
    return ExtractedPick.model_validate(payload)


def _match(matcher, pick):
    return matcher.match(pick, source_id="src-1", article_url="https://x.test/a", season=2024, week=5)


class TestPairKey:
    def test_order_independent(self):
        assert pair_key("KC", "BUF") == pair_key("BUF", "KC") == ("BUF", "KC")


class TestRelevantGames:
    """An article is relevant to a game only if it names both teams."""

    def test_both_teams_required(self):
        kc_buf = make_game("KC", "BUF")
        dal_nyg = make_game("DAL", "NYG")
        text = "The Chiefs host Buffalo Bills on Sunday. The Cowboys are on bye in our hearts."
        assert relevant_games(text, [kc_buf, dal_nyg]) == [kc_buf]

    def test_no_relevant_games_is_rejected(self):
        out = filter_article("A column about fantasy baseball.", [make_game()])
        assert isinstance(out, Rejected)
        assert out.reason is RejectReason.NO_RELEVANT_GAMES

    def test_filter_returns_games(self):
        game = make_game()
        assert filter_article("Kansas City Chiefs vs Bills", [game]) == [game]


class TestPredictionMatcher:
    def test_matches_by_resolved_pair(self):
        game = make_game()
        out = _match(PredictionMatcher([game]), _pick(home="Kansas City Chiefs", away="Bills", line=-3.0, confidence=0.8))
        assert isinstance(out, Prediction)
        assert out.game_id == game.id
        assert out.pick_type is PickType.SPREAD
        assert out.pick_side is PickSide.HOME
        assert out.line_at_pick == -3.0
        assert out.confidence == 0.8
        assert out.extraction_method is ExtractionMethod.MODEL
        assert out.article_url == "https://x.test/a"

    def test_swapped_home_away_still_matches(self):
        game = make_game()
        out = _match(PredictionMatcher([game]), _pick(home="BUF", away="KC"))
        assert isinstance(out, Prediction)
        assert out.game_id == game.id

    def test_unmatched_game(self):
        out = _match(PredictionMatcher([make_game()]), _pick(home="DAL", away="NYG"))
        assert isinstance(out, Rejected)
        assert out.reason is RejectReason.UNMATCHED_GAME

    def test_unresolved_team(self):
        out = _match(PredictionMatcher([make_game()]), _pick(home="Toronto Argonauts", away="BUF"))
        assert isinstance(out, Rejected)
        assert out.reason is RejectReason.UNRESOLVED_TEAM

    def test_line_defaults_to_stored_line(self):
        matcher = PredictionMatcher([make_game(spread=-2.5, total=47.5)])
        spread = _match(matcher, _pick())
        total = _match(matcher, _pick(pick_type="total", side="under"))
        assert spread.line_at_pick == -2.5
        assert total.line_at_pick == 47.5
        assert spread.confidence == 0.5

    def test_line_defaults_to_zero_without_stored_line(self):
        matcher = PredictionMatcher([make_game(spread=None, total=None)])
        assert _match(matcher, _pick()).line_at_pick == 0.0
