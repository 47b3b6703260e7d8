"""Unit tests for the run state tracker."""

import dataclasses
from datetime import timedelta

import pytest

from pickboard.core.run_state import RunStateTracker
from pickboard.models.types import RunStatus


class TestRunStateTracker:
    def test_initial_snapshot_is_idle(self):
        snap = RunStateTracker().snapshot()
        assert snap.status is RunStatus.IDLE
        assert snap.errors == 0
        assert snap.started_at is None

    def test_counters_and_success(self):
        state = RunStateTracker()
        state.start(2024, 5)
        assert state.is_running
        state.set_source_count(3)
        state.increment_articles()
        state.increment_articles()
        state.increment_rejections()
        state.mark_success("done")

        snap = state.snapshot()
        assert snap.status is RunStatus.SUCCESS
        assert (snap.season, snap.week) == (2024, 5)
        assert snap.sources == 3
        assert snap.articles_processed == 2
        assert snap.rejections == 1
        assert snap.errors == 0
        assert snap.message == "done"
        assert snap.finished_at >= snap.started_at
        assert snap.duration_ms is not None and snap.duration_ms >= 0
        assert not state.is_running

    def test_supplied_duration_wins(self):
        state = RunStateTracker()
        state.start(2024, 5)
        state.increment_errors()
        state.mark_failed("boom", duration_ms=1234)
        snap = state.snapshot()
        assert snap.status is RunStatus.FAILED
        assert snap.duration_ms == 1234
        assert snap.errors == 1

    def test_start_resets_counters(self):
        state = RunStateTracker()
        state.start(2024, 5)
        state.increment_errors()
        state.mark_failed()
        state.start(2024, 6)
        snap = state.snapshot()
        assert snap.errors == 0
        assert snap.week == 6
        assert snap.finished_at is None

    def test_extra_fields_and_unknown_key(self):
        state = RunStateTracker()
        state.start(2024, 5)
        state.mark_skipped("no games", sources=7)
        assert state.snapshot().sources == 7
        with pytest.raises(TypeError):
            state.mark_skipped(bogus=1)

    def test_snapshot_is_frozen(self):
        state = RunStateTracker()
        snap = state.snapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            snap.errors = 5  # type: ignore[misc]
        state.start(2024, 5)
        assert snap.status is RunStatus.IDLE

    def test_as_dict_keys(self):
        state = RunStateTracker()
        state.start(2024, 5)
        state.mark_success()
        d = state.snapshot().as_dict()
        assert d["status"] == "success"
        assert set(d) >= {"startedAt", "finishedAt", "durationMs", "articlesProcessed", "errors", "rejections"}
        started = state.snapshot().started_at
        assert d["startedAt"] == started.isoformat()
        assert state.snapshot().finished_at - started < timedelta(seconds=5)
