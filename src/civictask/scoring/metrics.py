"""Civic score formula.

These values MUST match the front-end exactly: the profile, leaderboard and
achievements views all render from this formula.

    completionRate = round(100 * completed / assigned), 0 when nothing assigned
    civicScore     = completed * 100 + round(completionRate * 2)
    level          = floor(civicScore / 1000) + 1
    pointsToNext   = 1000 - civicScore mod 1000
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict

POINTS_PER_COMPLETION = 100
RATE_MULTIPLIER = 2
POINTS_PER_LEVEL = 1000

# Leaderboard grouping, highest first.
PERFORMANCE_TIERS: list[tuple[int, str]] = [
    (4500, "high_performer"),
    (3500, "average_performer"),
    (2500, "improving"),
    (0, "needs_support"),
]


class WorkerMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    worker_id: str
    assigned: int
    completed: int
    completion_rate: int
    civic_score: int
    level: int
    points_to_next_level: int


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (JS Math.round)."""
    return math.floor(value + 0.5)


def completion_rate(completed: int, assigned: int) -> int:
    """Percentage of assigned tasks completed. Zero assigned is 0%, never 100%."""
    if assigned <= 0:
        return 0
    return round_half_up(100 * completed / assigned)


def civic_score(completed: int, rate: int) -> int:
    return completed * POINTS_PER_COMPLETION + round_half_up(rate * RATE_MULTIPLIER)


def compute_level(score: int) -> dict:
    """Level info from a civic score."""
    into_level = score % POINTS_PER_LEVEL
    return {
        "level": score // POINTS_PER_LEVEL + 1,
        "points_into_level": into_level,
        "points_to_next_level": POINTS_PER_LEVEL - into_level,
        "progress_percent": round_half_up(into_level * 100 / POINTS_PER_LEVEL),
    }


def performance_tier(score: int) -> str:
    for floor_score, tier in PERFORMANCE_TIERS:
        if score >= floor_score:
            return tier
    return PERFORMANCE_TIERS[-1][1]


def compute_worker_metrics(worker_id: str, assigned: int, completed: int) -> WorkerMetrics:
    """Derive every metric from the two counts."""
    rate = completion_rate(completed, assigned)
    score = civic_score(completed, rate)
    level_info = compute_level(score)
    return WorkerMetrics(
        worker_id=worker_id,
        assigned=assigned,
        completed=completed,
        completion_rate=rate,
        civic_score=score,
        level=level_info["level"],
        points_to_next_level=level_info["points_to_next_level"],
    )
