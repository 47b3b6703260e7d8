# pickboard/core/run_state.py
from __future__ import annotations

import threading
from dataclasses import replace
from typing import Any, Optional

from pickboard.models.types import RunSnapshot, RunStatus, utcnow


class RunStateTracker:
    """
    Mutable record of the current (or last) ingestion run.

    Writers are the orchestrator; readers (status route, health check) only
    ever see `snapshot()`, a frozen copy taken under the lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = RunSnapshot()

    def start(self, season: int, week: int) -> None:
        with self._lock:
            self._state = RunSnapshot(
                status=RunStatus.RUNNING,
                started_at=utcnow(),
                season=season,
                week=week,
            )

    def increment_articles(self) -> None:
        with self._lock:
            self._state = replace(self._state, articles_processed=self._state.articles_processed + 1)

    def increment_errors(self) -> None:
        with self._lock:
            self._state = replace(self._state, errors=self._state.errors + 1)

    def increment_rejections(self) -> None:
        with self._lock:
            self._state = replace(self._state, rejections=self._state.rejections + 1)

    def set_source_count(self, count: int) -> None:
        with self._lock:
            self._state = replace(self._state, sources=count)

    def mark_success(self, message: Optional[str] = None, duration_ms: Optional[int] = None, **extra: Any) -> None:
        self._finish(RunStatus.SUCCESS, message, duration_ms, extra)

    def mark_failed(self, message: Optional[str] = None, duration_ms: Optional[int] = None, **extra: Any) -> None:
        self._finish(RunStatus.FAILED, message, duration_ms, extra)

    def mark_skipped(self, message: Optional[str] = None, duration_ms: Optional[int] = None, **extra: Any) -> None:
        self._finish(RunStatus.SKIPPED, message, duration_ms, extra)

    def _finish(self, status: RunStatus, message: Optional[str], duration_ms: Optional[int], extra: dict) -> None:
        with self._lock:
            finished = utcnow()
            if duration_ms is None and self._state.started_at is not None:
                duration_ms = int((finished - self._state.started_at).total_seconds() * 1000)
            fields = dict(extra)
            fields.update(status=status, finished_at=finished, duration_ms=duration_ms)
            if message is not None:
                fields["message"] = message
            # unknown keys raise TypeError from replace()
            self._state = replace(self._state, **fields)

    def snapshot(self) -> RunSnapshot:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.snapshot().status is RunStatus.RUNNING
