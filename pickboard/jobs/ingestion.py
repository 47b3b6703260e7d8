# pickboard/jobs/ingestion.py
"""
Weekly ingestion run.

A run walks schedule -> sources -> discovered articles -> extraction ->
predictions -> consensus -> publish, one awaited step at a time. Every
source discovery call and every article is its own failure boundary: an
error there is logged and counted, and the sweep moves on. Only a failed
schedule sync ends the run early.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol, Set, Tuple

from pickboard.core.config import Settings
from pickboard.core.repository import Repository
from pickboard.core.run_state import RunStateTracker
from pickboard.models.extraction import ExtractionResult
from pickboard.models.types import Game, RunSnapshot, Source
from pickboard.services.article_fetcher import ArticleFetcher, FetchedArticle
from pickboard.services.consensus import ConsensusEngine
from pickboard.services.content_cache import ContentCache
from pickboard.services.discovery import ExaDiscoveryClient
from pickboard.services.espn_nfl import EspnScheduleClient
from pickboard.services.extraction import OpenRouterExtractor
from pickboard.services.matcher import PredictionMatcher, Rejected, filter_article
from pickboard.services.nfl_weeks import MAX_WEEK, current_season_week
from pickboard.services.sheets import SheetsPublisher, service_account_token

logger = logging.getLogger("pickboard.ingestion")


class ScheduleSource(Protocol):
    async def sync_week(self, season: int, week: int) -> List[Game]: ...


class Discovery(Protocol):
    async def discover(self, source: Source, week: int, season: int) -> List[str]: ...


class Fetcher(Protocol):
    async def fetch(self, source_id: str, url: str, week: Optional[int] = None) -> FetchedArticle: ...


class Extractor(Protocol):
    async def extract(self, article_text: str, games: List[Game]) -> ExtractionResult: ...


class Publisher(Protocol):
    async def publish(self, season: int, week: int) -> Any: ...


class IngestionOrchestrator:
    def __init__(
        self,
        repo: Repository,
        schedule: ScheduleSource,
        discovery: Discovery,
        fetcher: Fetcher,
        extractor: Extractor,
        publisher: Publisher,
        state: RunStateTracker,
        cache: Optional[ContentCache] = None,
        consensus: Optional[ConsensusEngine] = None,
    ):
        self.repo = repo
        self.schedule = schedule
        self.discovery = discovery
        self.fetcher = fetcher
        self.extractor = extractor
        self.publisher = publisher
        self.state = state
        self.cache = cache or ContentCache(repo)
        self.consensus = consensus or ConsensusEngine(repo)

    async def run(self, season: int, week: int) -> RunSnapshot:
        self.state.start(season, week)
        logger.info("ingestion start season=%s week=%s", season, week)

        try:
            games = await self.schedule.sync_week(season, week)
        except Exception as e:
            logger.exception("schedule sync failed, aborting run season=%s week=%s", season, week)
            self.state.mark_failed(f"schedule sync failed: {e}")
            return self.state.snapshot()

        if not games:
            logger.warning("no games for season=%s week=%s, skipping", season, week)
            self.state.mark_skipped("no games scheduled for week")
            return self.state.snapshot()

        sources = await self.repo.list_sources(active_only=True)
        if not sources:
            logger.warning("no active sources, skipping article discovery")
            self.state.mark_skipped("no active sources")
            return self.state.snapshot()
        self.state.set_source_count(len(sources))

        for source in sources:
            await self._process_source(source, games, season, week)

        try:
            await self.consensus.refresh(season, week)
        except Exception:
            logger.exception("consensus refresh failed season=%s week=%s", season, week)
            self.state.increment_errors()

        try:
            await self.publisher.publish(season, week)
        except Exception:
            logger.exception("publish failed season=%s week=%s", season, week)
            self.state.increment_errors()

        snap = self.state.snapshot()
        if snap.errors > 0:
            self.state.mark_failed(f"completed with {snap.errors} error(s)")
        else:
            self.state.mark_success("ingestion complete")
        snap = self.state.snapshot()
        logger.info(
            "ingestion done status=%s season=%s week=%s sources=%d articles=%d errors=%d rejections=%d",
            snap.status.value, season, week, snap.sources, snap.articles_processed, snap.errors, snap.rejections,
        )
        return snap

    async def _process_source(self, source: Source, games: List[Game], season: int, week: int) -> None:
        try:
            urls = await self.discovery.discover(source, week, season)
        except Exception:
            logger.exception("discovery failed for source=%s", source.name)
            self.state.increment_errors()
            return

        for url in urls:
            try:
                await self._process_article(source, url, games, season, week)
            except Exception:
                logger.exception("failed processing article url=%s source=%s", url, source.name)
                self.state.increment_errors()

    async def _process_article(
        self,
        source: Source,
        url: str,
        games: List[Game],
        season: int,
        week: int,
    ) -> None:
        fetched = await self.fetcher.fetch(source.id, url, week=week)
        if fetched.already_processed:
            logger.info("article already processed url=%s", fetched.article.url)
            return

        relevant = filter_article(fetched.text, games)
        if isinstance(relevant, Rejected):
            logger.warning("skipping article with no matching games url=%s season=%s week=%s", url, season, week)
            self.state.increment_rejections()
            await self.cache.mark_processed(fetched.article, week)
            return

        result = await self.extractor.extract(fetched.text, relevant)
        if not result.ok:
            logger.error("extraction output rejected url=%s reason=%s", url, result.reason)
            self.state.increment_errors()
            return

        # picks bind only to games the article itself names
        matcher = PredictionMatcher(relevant)
        saved = 0
        for pick in result.picks:
            outcome = matcher.match(
                pick,
                source_id=source.id,
                article_url=fetched.article.url,
                season=season,
                week=week,
            )
            if isinstance(outcome, Rejected):
                logger.warning("dropping pick url=%s reason=%s %s", url, outcome.reason.value, outcome.detail)
                self.state.increment_rejections()
                continue
            await self.repo.upsert_prediction(outcome)
            saved += 1

        await self.cache.mark_processed(fetched.article, week)
        self.state.increment_articles()
        logger.info("article processed url=%s picks=%d saved=%d", url, len(result.picks), saved)


class RunController:
    """
    Owns the one "run in progress" flag. The manual trigger route and the
    cron job both go through here; a second start while one is running is
    refused, not queued.
    """

    def __init__(
        self,
        orchestrator: IngestionOrchestrator,
        target: Callable[[], Tuple[int, int]] = current_season_week,
    ):
        self.orchestrator = orchestrator
        self.state = orchestrator.state
        self.target = target
        self._running = False
        self._tasks: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._running

    def snapshot(self) -> RunSnapshot:
        return self.state.snapshot()

    def _resolve_target(self, season: Optional[int], week: Optional[int]) -> Tuple[int, int]:
        if season is None or week is None:
            d_season, d_week = self.target()
            season = d_season if season is None else season
            week = d_week if week is None else week
        if not 1 <= week <= MAX_WEEK:
            raise ValueError(f"week must be between 1 and {MAX_WEEK}")
        return season, week

    def _claim(self) -> bool:
        # no await between check and set
        if self._running:
            return False
        self._running = True
        return True

    async def _execute(self, season: int, week: int) -> RunSnapshot:
        try:
            return await self.orchestrator.run(season, week)
        except Exception as e:
            logger.exception("ingestion run crashed season=%s week=%s", season, week)
            if self.state.is_running:
                self.state.mark_failed(f"unexpected error: {e}")
            return self.state.snapshot()
        finally:
            self._running = False

    async def run(self, season: Optional[int] = None, week: Optional[int] = None) -> Optional[RunSnapshot]:
        """Run to completion in the caller's task. None when another run holds the flag."""
        season, week = self._resolve_target(season, week)
        if not self._claim():
            logger.warning("ingestion already running, refusing start season=%s week=%s", season, week)
            return None
        return await self._execute(season, week)

    def trigger(self, season: Optional[int] = None, week: Optional[int] = None) -> bool:
        """Start a background run. False when one is already in progress."""
        season, week = self._resolve_target(season, week)
        if not self._claim():
            logger.warning("ingestion already running, refusing trigger season=%s week=%s", season, week)
            return False
        task = asyncio.create_task(self._execute(season, week))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def scheduled_tick(self) -> None:
        if not self.trigger():
            logger.warning("skipped scheduled ingestion because a run is already in progress")

    async def wait(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def build_controller(settings: Settings, repo: Repository) -> RunController:
    cache = ContentCache(repo)
    orchestrator = IngestionOrchestrator(
        repo=repo,
        schedule=EspnScheduleClient(repo, settings.sports_api_url),
        discovery=ExaDiscoveryClient(
            settings.exa_api_key,
            max_results=settings.exa_max_results,
            max_age_hours=settings.discovery_max_age_hours,
        ),
        fetcher=ArticleFetcher(cache, retry_base_delay=settings.fetch_retry_base_delay),
        extractor=OpenRouterExtractor(settings.openrouter_api_key, settings.openrouter_model),
        publisher=SheetsPublisher(
            repo,
            settings.google_sheet_id,
            service_account_token(settings.google_sheets_credentials),
        ),
        state=RunStateTracker(),
        cache=cache,
    )
    return RunController(orchestrator)
