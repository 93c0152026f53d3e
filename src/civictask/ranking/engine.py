"""Ranking engine: scores every active worker and orders them."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from civictask.ranking.ranking import Leaderboard, RankedWorker
from civictask.scoring.engine import ScoringEngine
from civictask.scoring.metrics import WorkerMetrics, compute_level, performance_tier
from civictask.store.base import IssueStore
from civictask.store.records import Department, Worker

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 10


class RankingEngine:
    def __init__(
        self,
        store: IssueStore,
        scoring: ScoringEngine | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.store = store
        self.scoring = scoring or ScoringEngine(store)
        self.max_concurrency = max_concurrency

    async def _score_all(self, workers: Sequence[Worker]) -> list[WorkerMetrics]:
        """Compute metrics for every worker, at most max_concurrency at a time.

        The first failure cancels every worker still queued or in flight and
        is re-raised as-is.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def score_one(worker: Worker) -> WorkerMetrics:
            async with semaphore:
                return await self.scoring.compute_metrics(worker.uid)

        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(score_one(w)) for w in workers]
        except ExceptionGroup as eg:
            raise eg.exceptions[0]  # noqa: B904
        return [t.result() for t in tasks]

    async def compute_ranks(
        self,
        active_workers: Sequence[Worker] | None = None,
        department: Department | None = None,
    ) -> Leaderboard:
        """Rank the given workers, or every active worker when none are given.

        Inactive workers are dropped; they have no rank and do not count
        towards percentiles.
        """
        if active_workers is None:
            active_workers = await self.store.query_active_workers()
        workers = [
            w for w in active_workers
            if w.active and (department is None or w.department_id == department)
        ]
        metrics = await self._score_all(workers)
        logger.debug("Ranked %d active workers (department=%s)", len(metrics), department)
        return Leaderboard(metrics)

    async def leaderboard(
        self,
        top_n: int,
        current_worker_id: str | None = None,
        department: Department | None = None,
    ) -> dict[str, Any]:
        """Top-N entries plus the current worker's own entry when they rank lower."""
        active = await self.store.query_active_workers()
        board = await self.compute_ranks(active, department)
        names = {w.uid: w for w in active}

        entries = [self._enrich(e, names, current_worker_id) for e in board.top(top_n)]
        current = None
        if current_worker_id is not None:
            own = board.entry(current_worker_id)
            if own is not None:
                current = self._enrich(own, names, current_worker_id)

        return {"entries": entries, "current": current, "total": len(board)}

    @staticmethod
    def _enrich(
        entry: RankedWorker, workers: dict[str, Worker], current_worker_id: str | None,
    ) -> dict[str, Any]:
        worker = workers.get(entry.worker_id)
        return {
            "rank": entry.rank,
            "worker_id": entry.worker_id,
            "name": worker.name if worker else "",
            "department_id": worker.department_id.value if worker else None,
            "civic_score": entry.civic_score,
            "tasks_completed": entry.metrics.completed,
            "completion_rate": entry.metrics.completion_rate,
            "level": entry.metrics.level,
            "percentile": entry.percentile,
            "tier": entry.tier,
            "is_current_worker": entry.worker_id == current_worker_id,
        }

    async def worker_profile(self, worker_id: str) -> dict[str, Any]:
        """Full score profile: metrics, level progress, rank and current badges.

        Refreshes the worker's cached metrics as a side effect.
        """
        worker = await self.store.get_worker(worker_id)
        board = await self.compute_ranks()

        own = board.entry(worker_id)
        if own is not None:
            metrics = own.metrics
            rank: int | None = own.rank
            percentile: float | None = own.percentile
        else:
            metrics = await self.scoring.compute_metrics(worker_id)
            rank = None
            percentile = None

        badges = self.scoring.evaluate_badges(metrics, rank)
        await self.scoring.refresh_cache(metrics, badges)

        level_info = compute_level(metrics.civic_score)
        return {
            "worker_id": worker.uid,
            "name": worker.name,
            "department_id": worker.department_id.value,
            "department_name": worker.department_name,
            "active": worker.active,
            "assigned": metrics.assigned,
            "completed": metrics.completed,
            "completion_rate": metrics.completion_rate,
            "civic_score": metrics.civic_score,
            "level": level_info["level"],
            "points_to_next_level": level_info["points_to_next_level"],
            "progress_percent": level_info["progress_percent"],
            "tier": performance_tier(metrics.civic_score),
            "rank": rank,
            "percentile": percentile,
            "total_ranked": len(board),
            "badges": [
                {k: b[k] for k in ("slug", "name", "description", "category", "rarity")}
                for b in badges
            ],
        }
