"""Deterministic leaderboard ordering.

Workers are ranked by civic score DESC, then by uid ASC so equal scores
always come out in the same order. Ranks are dense positions 1..N with no
gaps and no shared ranks.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from civictask.scoring.metrics import WorkerMetrics, performance_tier


def calculate_percentile(rank: int, total: int) -> float:
    """Share of the leaderboard at or below this rank, as a percentage."""
    if total <= 0:
        return 0.0
    return round(100 - (rank / total * 100), 2)


@dataclass(frozen=True)
class RankedWorker:
    rank: int
    worker_id: str
    civic_score: int
    percentile: float
    tier: str
    metrics: WorkerMetrics


class Leaderboard:
    """Ranked, immutable view over a set of worker metrics.

    Iterating yields ``RankedWorker`` entries best first; the view can be
    iterated any number of times.
    """

    def __init__(self, metrics: Iterable[WorkerMetrics]) -> None:
        ordered = sorted(metrics, key=lambda m: (-m.civic_score, m.worker_id))
        self._ordered: tuple[WorkerMetrics, ...] = tuple(ordered)
        self._positions: dict[str, int] = {m.worker_id: idx for idx, m in enumerate(self._ordered)}

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self) -> Iterator[RankedWorker]:
        for idx in range(len(self._ordered)):
            yield self._entry_at(idx)

    def _entry_at(self, idx: int) -> RankedWorker:
        m = self._ordered[idx]
        rank = idx + 1
        return RankedWorker(
            rank=rank,
            worker_id=m.worker_id,
            civic_score=m.civic_score,
            percentile=calculate_percentile(rank, len(self._ordered)),
            tier=performance_tier(m.civic_score),
            metrics=m,
        )

    def entry(self, worker_id: str) -> RankedWorker | None:
        """Ranked entry for a worker, or None when they are not on the board."""
        idx = self._positions.get(worker_id)
        return None if idx is None else self._entry_at(idx)

    def top(self, n: int) -> list[RankedWorker]:
        return [self._entry_at(idx) for idx in range(min(max(n, 0), len(self._ordered)))]
