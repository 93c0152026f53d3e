"""Unit tests for leaderboard ordering and the ranking engine."""

from __future__ import annotations

import asyncio

import pytest

from civictask.errors import DataUnavailable
from civictask.ranking.engine import RankingEngine
from civictask.ranking.ranking import Leaderboard, calculate_percentile
from civictask.scoring.engine import ScoringEngine
from civictask.scoring.metrics import WorkerMetrics, compute_worker_metrics
from civictask.store.records import Department


def metrics(worker_id: str, completed: int, assigned: int | None = None) -> WorkerMetrics:
    return compute_worker_metrics(worker_id, assigned if assigned is not None else completed, completed)


class TestLeaderboard:
    def test_orders_by_score_desc(self):
        board = Leaderboard([metrics("a", 1), metrics("b", 5), metrics("c", 3)])
        assert [e.worker_id for e in board] == ["b", "c", "a"]

    def test_ties_break_by_worker_id(self):
        board = Leaderboard([metrics("zed", 2), metrics("amy", 2), metrics("kim", 2)])
        assert [e.worker_id for e in board] == ["amy", "kim", "zed"]
        assert [e.rank for e in board] == [1, 2, 3]

    def test_ranks_contiguous(self):
        board = Leaderboard(metrics(f"w{i:02d}", i % 4) for i in range(12))
        assert [e.rank for e in board] == list(range(1, 13))

    def test_restartable(self):
        board = Leaderboard([metrics("a", 1), metrics("b", 2)])
        assert list(board) == list(board)
        assert len(board) == 2

    def test_entry_for_missing_worker(self):
        board = Leaderboard([metrics("a", 1)])
        assert board.entry("a").rank == 1
        assert board.entry("ghost") is None

    def test_top_n(self):
        board = Leaderboard(metrics(f"w{i}", i) for i in range(5))
        assert [e.worker_id for e in board.top(2)] == ["w4", "w3"]
        assert board.top(0) == []
        assert len(board.top(50)) == 5

    def test_percentile(self):
        assert calculate_percentile(1, 4) == 75.0
        assert calculate_percentile(4, 4) == 0.0
        assert calculate_percentile(1, 3) == 66.67
        assert calculate_percentile(1, 0) == 0.0

    def test_empty(self):
        board = Leaderboard([])
        assert len(board) == 0
        assert list(board) == []


@pytest.mark.asyncio
class TestRankingEngine:
    async def test_inactive_workers_have_no_rank(self, store):
        store.add_worker("alice")
        store.add_worker("bob", active=False)
        store.add_history("alice", assigned=2, completed=1)
        store.add_history("bob", assigned=9, completed=9)

        board = await RankingEngine(store).compute_ranks()

        assert board.entry("alice").rank == 1
        assert board.entry("bob") is None
        assert len(board) == 1

    async def test_explicit_worker_list_drops_inactive(self, store):
        active = store.add_worker("alice")
        inactive = store.add_worker("bob", active=False)
        board = await RankingEngine(store).compute_ranks([active, inactive])
        assert [e.worker_id for e in board] == ["alice"]

    async def test_department_filter(self, store):
        store.add_worker("alice", department=Department.WATER)
        store.add_worker("raj", department=Department.PWD)
        board = await RankingEngine(store).compute_ranks(department=Department.PWD)
        assert [e.worker_id for e in board] == ["raj"]

    async def test_fan_out_is_bounded(self, store):
        for i in range(12):
            store.add_worker(f"w{i:02d}")

        in_flight = 0
        peak = 0

        class SlowScoring(ScoringEngine):
            async def compute_metrics(self, worker_id):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return await super().compute_metrics(worker_id)

        board = await RankingEngine(store, SlowScoring(store), max_concurrency=3).compute_ranks()

        assert len(board) == 12
        assert peak == 3

    async def test_store_failure_surfaces(self, store):
        store.add_worker("alice")
        store.failures["query_issues_by_assignee"] = ConnectionError("db gone")
        with pytest.raises(DataUnavailable):
            await RankingEngine(store).compute_ranks()

    async def test_failure_cancels_remaining_workers(self, store):
        for i in range(5):
            store.add_worker(f"w{i}")

        class FirstWorkerFails(ScoringEngine):
            async def compute_metrics(self, worker_id):
                if worker_id == "w0":
                    await asyncio.sleep(0.01)
                    raise DataUnavailable("issues table unreachable")
                return await super().compute_metrics(worker_id)

        engine = RankingEngine(store, FirstWorkerFails(store), max_concurrency=1)
        with pytest.raises(DataUnavailable, match="unreachable"):
            await engine.compute_ranks()
        calls_at_failure = list(store.calls)

        await asyncio.sleep(0.05)

        assert calls_at_failure == ["query_active_workers"]
        assert store.calls == calls_at_failure

    async def test_invalid_concurrency(self, store):
        with pytest.raises(ValueError):
            RankingEngine(store, max_concurrency=0)

    async def test_leaderboard_includes_current_worker_outside_top(self, store):
        for i in range(5):
            store.add_worker(f"w{i}")
            store.add_history(f"w{i}", assigned=5, completed=5 - i)

        board = await RankingEngine(store).leaderboard(top_n=2, current_worker_id="w4")

        assert [e["worker_id"] for e in board["entries"]] == ["w0", "w1"]
        assert board["current"]["worker_id"] == "w4"
        assert board["current"]["rank"] == 5
        assert board["current"]["is_current_worker"] is True
        assert board["total"] == 5

    async def test_worker_profile(self, store):
        store.add_worker("alice")
        store.add_worker("bob")
        store.add_history("alice", assigned=20, completed=20)
        store.add_history("bob", assigned=4, completed=1)

        profile = await RankingEngine(store).worker_profile("alice")

        assert profile["rank"] == 1
        assert profile["civic_score"] == 2200
        assert profile["level"] == 3
        assert profile["progress_percent"] == 20
        slugs = {b["slug"] for b in profile["badges"]}
        assert {"flawless", "rank_1", "top_5"} <= slugs
        assert store.cached["alice"].earned_badges == len(profile["badges"])

    async def test_profile_of_inactive_worker(self, store):
        store.add_worker("alice", active=False)
        store.add_history("alice", assigned=2, completed=2)

        profile = await RankingEngine(store).worker_profile("alice")

        assert profile["rank"] is None
        assert profile["percentile"] is None
        assert profile["completed"] == 2
        assert not any(b["category"] == "rank" for b in profile["badges"])
