# pickboard/routers/ingest_routes.py
from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from pickboard.services.nfl_weeks import MAX_WEEK, current_season_week

logger = logging.getLogger("pickboard.routes")
router = APIRouter(tags=["ingest"])


def _target(season: Optional[int], week: Optional[int]) -> tuple[int, int]:
    if season and week:
        return season, week
    d_season, d_week = current_season_week()
    return season or d_season, week or d_week


# ---------------- Run control ----------------
@router.post("/ingest")
async def ingest(
    request: Request,
    season: Optional[int] = None,
    week: Optional[int] = Query(None, ge=1, le=MAX_WEEK),
):
    """Start a background ingestion run. 409 if one is already running."""
    controller = request.app.state.controller
    try:
        started = controller.trigger(season, week)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not started:
        return JSONResponse(status_code=409, content={"status": "busy"})
    logger.info("manual ingestion trigger accepted season=%s week=%s", season, week)
    return {"status": "started"}


@router.get("/status")
async def status(request: Request):
    return request.app.state.controller.snapshot().as_dict()


@router.get("/health")
async def health(request: Request):
    storage_ok = await request.app.state.repo.ping()
    return {
        "ok": storage_ok,
        "storage": "ok" if storage_ok else "unreachable",
        "run": request.app.state.controller.snapshot().as_dict(),
    }


# ---------------- Read endpoints ----------------
@router.get("/sources")
async def sources(request: Request, active: bool = False):
    rows = await request.app.state.repo.list_sources(active_only=active)
    return {"count": len(rows), "sources": [asdict(s) for s in rows]}


@router.get("/predictions")
async def predictions(
    request: Request,
    season: Optional[int] = None,
    week: Optional[int] = Query(None, ge=1, le=MAX_WEEK),
    limit: int = Query(100, ge=1, le=1000),
):
    rows = await request.app.state.repo.list_predictions(season=season, week=week, limit=limit)
    return {"count": len(rows), "predictions": [asdict(p) for p in rows]}


@router.get("/consensus")
async def consensus(
    request: Request,
    season: Optional[int] = None,
    week: Optional[int] = Query(None, ge=1, le=MAX_WEEK),
):
    """Consensus table for a week (current week when omitted), joined to the matchup."""
    season, week = _target(season, week)
    repo = request.app.state.repo
    scores = await repo.list_consensus_scores(season, week)
    games = {g.id: g for g in await repo.list_games(season, week)}

    out = []
    for s in scores:
        g = games.get(s.game_id)
        row = asdict(s)
        row["homeTeam"] = g.home_team if g else None
        row["awayTeam"] = g.away_team if g else None
        out.append(row)
    return {"season": season, "week": week, "count": len(out), "consensus": out}
