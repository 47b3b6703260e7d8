# pickboard/core/persist.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from pickboard.core.db import exec_sql, fetch_all, fetch_one
from pickboard.models.types import (
    ConsensusScore,
    ExtractionMethod,
    Game,
    PickSide,
    PickType,
    Prediction,
    RawArticle,
    Source,
)

logger = logging.getLogger("pickboard.persist")

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def _source(r: Dict[str, Any]) -> Source:
    return Source(
        id=r["id"],
        name=r["name"],
        base_url=r["base_url"],
        associated_team=r.get("associated_team"),
        category=r.get("category") or "Unknown",
        active=bool(r["active"]),
    )


def _game(r: Dict[str, Any]) -> Game:
    return Game(
        id=r["id"],
        season=r["season"],
        week=r["week"],
        kickoff=r.get("kickoff"),
        home_team=r["home_team"],
        away_team=r["away_team"],
        spread_line=r.get("spread_line"),
        total_line=r.get("total_line"),
        status=r.get("status") or "scheduled",
    )


def _article(r: Dict[str, Any]) -> RawArticle:
    return RawArticle(
        id=r["id"],
        source_id=r["source_id"],
        url=r["url"],
        body=r["body"],
        content_hash=r["content_hash"],
        week=r.get("week"),
        processed=bool(r["processed"]),
        fetched_at=r["fetched_at"],
    )


def _prediction(r: Dict[str, Any]) -> Prediction:
    return Prediction(
        id=r["id"],
        source_id=r["source_id"],
        game_id=r["game_id"],
        season=r["season"],
        week=r["week"],
        pick_type=PickType(r["pick_type"]),
        # raw string kept if it is outside the enum; consensus drops it with a warning
        pick_side=PickSide(r["pick_side"]) if r["pick_side"] in PickSide._value2member_map_ else r["pick_side"],
        line_at_pick=r["line_at_pick"],
        extraction_method=ExtractionMethod(r["extraction_method"]),
        confidence=r["confidence"],
        extracted_at=r["extracted_at"],
        article_url=r["article_url"],
        quote=r.get("quote"),
    )


def _score(r: Dict[str, Any]) -> ConsensusScore:
    return ConsensusScore(
        id=r["id"],
        game_id=r["game_id"],
        season=r["season"],
        week=r["week"],
        pick_type=PickType(r["pick_type"]),
        majority_side=PickSide(r["majority_side"]),
        score=r["score"],
        signal_label=r["signal_label"],
        num_predictions=r["num_predictions"],
        calculated_at=r["calculated_at"],
    )


class SqlRepository:
    """Postgres store. Every write is an `ON CONFLICT` upsert on the natural key."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def ensure_schema(self) -> None:
        # asyncpg prepares statements one at a time
        ddl = SCHEMA_PATH.read_text(encoding="utf-8")
        for stmt in (s.strip() for s in ddl.split(";")):
            if stmt:
                await exec_sql(self.engine, stmt)

    async def ping(self) -> bool:
        try:
            await fetch_one(self.engine, "SELECT 1 AS ok")
            return True
        except Exception as e:
            logger.warning("DB ping failed: %s", e)
            return False

    # ---------- sources ----------
    async def upsert_source(self, source: Source) -> Source:
        sql = """
        INSERT INTO sources (id, name, base_url, associated_team, category, active)
        VALUES (:id, :name, :base_url, :associated_team, :category, :active)
        ON CONFLICT (base_url) DO UPDATE SET
          name = EXCLUDED.name,
          associated_team = EXCLUDED.associated_team,
          category = EXCLUDED.category,
          active = EXCLUDED.active
        RETURNING *;
        """
        row = await fetch_one(self.engine, sql, {
            "id": source.id,
            "name": source.name,
            "base_url": source.base_url,
            "associated_team": source.associated_team,
            "category": source.category,
            "active": source.active,
        })
        return _source(row)

    async def find_source_by_url(self, base_url: str) -> Optional[Source]:
        row = await fetch_one(self.engine, "SELECT * FROM sources WHERE base_url = :u", {"u": base_url})
        return _source(row) if row else None

    async def list_sources(self, active_only: bool = False) -> List[Source]:
        sql = "SELECT * FROM sources"
        if active_only:
            sql += " WHERE active"
        sql += " ORDER BY name, id"
        return [_source(r) for r in await fetch_all(self.engine, sql)]

    # ---------- games ----------
    async def upsert_game(self, game: Game) -> Game:
        sql = """
        INSERT INTO games (id, season, week, kickoff, home_team, away_team, spread_line, total_line, status)
        VALUES (:id, :season, :week, :kickoff, :home_team, :away_team, :spread_line, :total_line, :status)
        ON CONFLICT (season, week, home_team, away_team) DO UPDATE SET
          kickoff = EXCLUDED.kickoff,
          spread_line = EXCLUDED.spread_line,
          total_line = EXCLUDED.total_line,
          status = EXCLUDED.status
        RETURNING *;
        """
        row = await fetch_one(self.engine, sql, {
            "id": game.id,
            "season": game.season,
            "week": game.week,
            "kickoff": game.kickoff,
            "home_team": game.home_team,
            "away_team": game.away_team,
            "spread_line": game.spread_line,
            "total_line": game.total_line,
            "status": game.status,
        })
        return _game(row)

    async def list_games(self, season: int, week: int) -> List[Game]:
        sql = "SELECT * FROM games WHERE season = :season AND week = :week ORDER BY kickoff, home_team"
        return [_game(r) for r in await fetch_all(self.engine, sql, {"season": season, "week": week})]

    # ---------- articles ----------
    async def find_article_by_url(self, source_id: str, url: str) -> Optional[RawArticle]:
        sql = "SELECT * FROM raw_articles WHERE source_id = :s AND url = :u ORDER BY fetched_at LIMIT 1"
        row = await fetch_one(self.engine, sql, {"s": source_id, "u": url})
        return _article(row) if row else None

    async def find_article_by_hash(self, source_id: str, content_hash: str) -> Optional[RawArticle]:
        sql = "SELECT * FROM raw_articles WHERE source_id = :s AND content_hash = :h"
        row = await fetch_one(self.engine, sql, {"s": source_id, "h": content_hash})
        return _article(row) if row else None

    async def insert_article(self, article: RawArticle) -> RawArticle:
        sql = """
        INSERT INTO raw_articles (id, source_id, url, body, content_hash, week, processed, fetched_at)
        VALUES (:id, :source_id, :url, :body, :content_hash, :week, :processed, :fetched_at)
        ON CONFLICT (source_id, content_hash) DO NOTHING;
        """
        await exec_sql(self.engine, sql, {
            "id": article.id,
            "source_id": article.source_id,
            "url": article.url,
            "body": article.body,
            "content_hash": article.content_hash,
            "week": article.week,
            "processed": article.processed,
            "fetched_at": article.fetched_at,
        })
        # the row that won the conflict, which may not be ours
        return await self.find_article_by_hash(article.source_id, article.content_hash)

    async def mark_article_processed(self, article_id: str, week: Optional[int]) -> None:
        sql = "UPDATE raw_articles SET processed = TRUE, week = COALESCE(:week, week) WHERE id = :id"
        await exec_sql(self.engine, sql, {"id": article_id, "week": week})

    # ---------- predictions ----------
    async def upsert_prediction(self, prediction: Prediction) -> Prediction:
        sql = """
        INSERT INTO predictions (id, source_id, game_id, season, week, pick_type, pick_side, line_at_pick,
                                 extraction_method, confidence, extracted_at, article_url, quote)
        VALUES (:id, :source_id, :game_id, :season, :week, :pick_type, :pick_side, :line_at_pick,
                :extraction_method, :confidence, :extracted_at, :article_url, :quote)
        ON CONFLICT (source_id, game_id, pick_type) DO UPDATE SET
          season = EXCLUDED.season,
          week = EXCLUDED.week,
          pick_side = EXCLUDED.pick_side,
          line_at_pick = EXCLUDED.line_at_pick,
          extraction_method = EXCLUDED.extraction_method,
          confidence = EXCLUDED.confidence,
          extracted_at = EXCLUDED.extracted_at,
          article_url = EXCLUDED.article_url,
          quote = EXCLUDED.quote
        RETURNING *;
        """
        row = await fetch_one(self.engine, sql, {
            "id": prediction.id,
            "source_id": prediction.source_id,
            "game_id": prediction.game_id,
            "season": prediction.season,
            "week": prediction.week,
            "pick_type": prediction.pick_type.value,
            "pick_side": prediction.pick_side.value,
            "line_at_pick": prediction.line_at_pick,
            "extraction_method": prediction.extraction_method.value,
            "confidence": prediction.confidence,
            "extracted_at": prediction.extracted_at,
            "article_url": prediction.article_url,
            "quote": prediction.quote,
        })
        return _prediction(row)

    async def list_predictions(
        self, season: Optional[int] = None, week: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Prediction]:
        sql = "SELECT * FROM predictions WHERE 1 = 1"
        params: Dict[str, Any] = {}
        if season is not None:
            sql += " AND season = :season"
            params["season"] = season
        if week is not None:
            sql += " AND week = :week"
            params["week"] = week
        sql += " ORDER BY extracted_at DESC"
        if limit:
            sql += " LIMIT :limit"
            params["limit"] = limit
        return [_prediction(r) for r in await fetch_all(self.engine, sql, params)]

    # ---------- consensus ----------
    async def upsert_consensus_score(self, score: ConsensusScore) -> ConsensusScore:
        sql = """
        INSERT INTO consensus_scores (id, game_id, season, week, pick_type, majority_side, score,
                                      signal_label, num_predictions, calculated_at)
        VALUES (:id, :game_id, :season, :week, :pick_type, :majority_side, :score,
                :signal_label, :num_predictions, :calculated_at)
        ON CONFLICT (game_id, pick_type) DO UPDATE SET
          season = EXCLUDED.season,
          week = EXCLUDED.week,
          majority_side = EXCLUDED.majority_side,
          score = EXCLUDED.score,
          signal_label = EXCLUDED.signal_label,
          num_predictions = EXCLUDED.num_predictions,
          calculated_at = EXCLUDED.calculated_at
        RETURNING *;
        """
        row = await fetch_one(self.engine, sql, {
            "id": score.id,
            "game_id": score.game_id,
            "season": score.season,
            "week": score.week,
            "pick_type": score.pick_type.value,
            "majority_side": score.majority_side.value,
            "score": score.score,
            "signal_label": score.signal_label,
            "num_predictions": score.num_predictions,
            "calculated_at": score.calculated_at,
        })
        return _score(row)

    async def list_consensus_scores(self, season: int, week: int) -> List[ConsensusScore]:
        sql = "SELECT * FROM consensus_scores WHERE season = :season AND week = :week ORDER BY game_id, pick_type"
        return [_score(r) for r in await fetch_all(self.engine, sql, {"season": season, "week": week})]
