# pickboard/core/repository.py
"""
Storage contract for the pipeline.

Every write is an upsert keyed by the entity's natural unique key, so the
store (not the caller) guarantees there are no duplicates. `SqlRepository`
in `pickboard.core.persist` is the Postgres implementation; `MemoryRepository`
below is used when DATABASE_URL is unset and in tests.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Protocol, Tuple

from pickboard.models.types import (
    ConsensusScore,
    Game,
    PickType,
    Prediction,
    RawArticle,
    Source,
)


class Repository(Protocol):
    async def ping(self) -> bool: ...

    async def upsert_source(self, source: Source) -> Source: ...
    async def find_source_by_url(self, base_url: str) -> Optional[Source]: ...
    async def list_sources(self, active_only: bool = False) -> List[Source]: ...

    async def upsert_game(self, game: Game) -> Game: ...
    async def list_games(self, season: int, week: int) -> List[Game]: ...

    async def find_article_by_url(self, source_id: str, url: str) -> Optional[RawArticle]: ...
    async def find_article_by_hash(self, source_id: str, content_hash: str) -> Optional[RawArticle]: ...
    async def insert_article(self, article: RawArticle) -> RawArticle: ...
    async def mark_article_processed(self, article_id: str, week: Optional[int]) -> None: ...

    async def upsert_prediction(self, prediction: Prediction) -> Prediction: ...
    async def list_predictions(
        self, season: Optional[int] = None, week: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Prediction]: ...

    async def upsert_consensus_score(self, score: ConsensusScore) -> ConsensusScore: ...
    async def list_consensus_scores(self, season: int, week: int) -> List[ConsensusScore]: ...


class MemoryRepository:
    """Dict-backed store. Uniqueness keys mirror the SQL constraints."""

    def __init__(self) -> None:
        self.sources: Dict[str, Source] = {}
        self.games: Dict[Tuple[int, int, str, str], Game] = {}
        self.articles: Dict[Tuple[str, str], RawArticle] = {}
        self.predictions: Dict[Tuple[str, str, PickType], Prediction] = {}
        self.scores: Dict[Tuple[str, PickType], ConsensusScore] = {}

    async def ping(self) -> bool:
        return True

    # ---------- sources ----------
    async def upsert_source(self, source: Source) -> Source:
        existing = await self.find_source_by_url(source.base_url)
        if existing:
            source = replace(source, id=existing.id)
        self.sources[source.id] = source
        return source

    async def find_source_by_url(self, base_url: str) -> Optional[Source]:
        return next((s for s in self.sources.values() if s.base_url == base_url), None)

    async def list_sources(self, active_only: bool = False) -> List[Source]:
        return [s for s in self.sources.values() if s.active or not active_only]

    # ---------- games ----------
    async def upsert_game(self, game: Game) -> Game:
        existing = self.games.get(game.key)
        if existing:
            game = replace(game, id=existing.id)
        self.games[game.key] = game
        return game

    async def list_games(self, season: int, week: int) -> List[Game]:
        return [g for g in self.games.values() if g.season == season and g.week == week]

    # ---------- articles ----------
    async def find_article_by_url(self, source_id: str, url: str) -> Optional[RawArticle]:
        return next(
            (a for a in self.articles.values() if a.source_id == source_id and a.url == url),
            None,
        )

    async def find_article_by_hash(self, source_id: str, content_hash: str) -> Optional[RawArticle]:
        return self.articles.get((source_id, content_hash))

    async def insert_article(self, article: RawArticle) -> RawArticle:
        key = (article.source_id, article.content_hash)
        if key in self.articles:
            return self.articles[key]
        self.articles[key] = article
        return article

    async def mark_article_processed(self, article_id: str, week: Optional[int]) -> None:
        for key, a in self.articles.items():
            if a.id == article_id:
                self.articles[key] = replace(a, processed=True, week=week if week is not None else a.week)
                return

    # ---------- predictions ----------
    async def upsert_prediction(self, prediction: Prediction) -> Prediction:
        key = (prediction.source_id, prediction.game_id, prediction.pick_type)
        existing = self.predictions.get(key)
        if existing:
            prediction = replace(prediction, id=existing.id)
        self.predictions[key] = prediction
        return prediction

    async def list_predictions(
        self, season: Optional[int] = None, week: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Prediction]:
        out = [
            p for p in self.predictions.values()
            if (season is None or p.season == season) and (week is None or p.week == week)
        ]
        return out[:limit] if limit else out

    # ---------- consensus ----------
    async def upsert_consensus_score(self, score: ConsensusScore) -> ConsensusScore:
        key = (score.game_id, score.pick_type)
        existing = self.scores.get(key)
        if existing:
            score = replace(score, id=existing.id)
        self.scores[key] = score
        return score

    async def list_consensus_scores(self, season: int, week: int) -> List[ConsensusScore]:
        return [s for s in self.scores.values() if s.season == season and s.week == week]
