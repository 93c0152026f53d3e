"""Scoring engine: per-worker metrics from the issue store."""

from __future__ import annotations

import logging
from typing import Any

from civictask.errors import CivicError, DataUnavailable
from civictask.scoring.badges import eligible_badges
from civictask.scoring.metrics import WorkerMetrics, compute_worker_metrics
from civictask.store.base import IssueStore
from civictask.store.records import CachedMetrics, ProofStatus

logger = logging.getLogger(__name__)


class ScoringEngine:
    """Computes a worker's metrics from assigned and approved issue counts.

    Metrics are always derived from the store at call time. The cached copy
    on the worker record is written for display only and is never read back.
    """

    def __init__(self, store: IssueStore) -> None:
        self.store = store

    async def compute_metrics(self, worker_id: str) -> WorkerMetrics:
        try:
            assigned = await self.store.query_issues_by_assignee(worker_id)
            completed = await self.store.query_issues_by_assignee_and_proof_status(
                worker_id, ProofStatus.APPROVED,
            )
        except CivicError:
            raise
        except Exception as exc:
            raise DataUnavailable(f"Could not load issues for worker {worker_id}") from exc

        return compute_worker_metrics(worker_id, len(assigned), len(completed))

    @staticmethod
    def evaluate_badges(metrics: WorkerMetrics, rank: int | None = None) -> list[dict[str, Any]]:
        return eligible_badges(metrics, rank)

    async def refresh_cache(
        self,
        metrics: WorkerMetrics,
        badges: list[dict[str, Any]],
    ) -> None:
        """Write the metrics summary onto the worker record. Best-effort."""
        cached = CachedMetrics(
            civic_score=metrics.civic_score,
            tasks_completed=metrics.completed,
            earned_badges=len(badges),
        )
        try:
            await self.store.cache_worker_metrics(metrics.worker_id, cached)
        except Exception:
            logger.warning("Failed to cache metrics for worker %s", metrics.worker_id, exc_info=True)
