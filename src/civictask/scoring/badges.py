"""Badge catalog and eligibility rules.

Badges are never stored as earned: eligibility is re-evaluated from the
current metrics on every read, so a worker whose completion rate drops
loses the matching performance badge.
"""

from __future__ import annotations

from typing import Any

from civictask.scoring.metrics import WorkerMetrics

RARITIES = ("common", "rare", "epic", "legendary")

BADGE_DEFINITIONS: list[dict[str, Any]] = [
    # Completion milestones
    {
        "slug": "first_fix",
        "name": "First Fix",
        "description": "Get your first task approved by the department",
        "category": "milestone",
        "rarity": "common",
        "trigger_type": "completed_count",
        "trigger_config": {"threshold": 1},
    },
    {
        "slug": "tasks_5",
        "name": "Helping Hand",
        "description": "5 approved tasks",
        "category": "milestone",
        "rarity": "common",
        "trigger_type": "completed_count",
        "trigger_config": {"threshold": 5},
    },
    {
        "slug": "tasks_25",
        "name": "Community Fixer",
        "description": "25 approved tasks",
        "category": "milestone",
        "rarity": "rare",
        "trigger_type": "completed_count",
        "trigger_config": {"threshold": 25},
    },
    {
        "slug": "tasks_50",
        "name": "Quick Resolver",
        "description": "Resolved 50+ tasks",
        "category": "milestone",
        "rarity": "rare",
        "trigger_type": "completed_count",
        "trigger_config": {"threshold": 50},
    },
    {
        "slug": "tasks_100",
        "name": "Civic Champion",
        "description": "100 approved tasks",
        "category": "milestone",
        "rarity": "epic",
        "trigger_type": "completed_count",
        "trigger_config": {"threshold": 100},
    },
    {
        "slug": "tasks_500",
        "name": "City Guardian",
        "description": "500 approved tasks. The city runs on you.",
        "category": "milestone",
        "rarity": "legendary",
        "trigger_type": "completed_count",
        "trigger_config": {"threshold": 500},
    },
    # Completion rate
    {
        "slug": "rate_70",
        "name": "Reliable",
        "description": "Maintain a 70%+ completion rate",
        "category": "performance",
        "rarity": "common",
        "trigger_type": "completion_rate",
        "trigger_config": {"threshold": 70},
    },
    {
        "slug": "rate_85",
        "name": "On-Time Hero",
        "description": "Maintain an 85%+ completion rate",
        "category": "performance",
        "rarity": "rare",
        "trigger_type": "completion_rate",
        "trigger_config": {"threshold": 85},
    },
    {
        "slug": "rate_95",
        "name": "Quality Guardian",
        "description": "Maintain a 95%+ completion rate",
        "category": "performance",
        "rarity": "epic",
        "trigger_type": "completion_rate",
        "trigger_config": {"threshold": 95},
    },
    {
        "slug": "flawless",
        "name": "Flawless",
        "description": "100% completion rate across at least 20 approved tasks",
        "category": "performance",
        "rarity": "legendary",
        "trigger_type": "completion_rate",
        "trigger_config": {"threshold": 100, "min_completed": 20},
    },
    # Leaderboard position
    {
        "slug": "top_50",
        "name": "Rising Star",
        "description": "Rank in the top 50 of active workers",
        "category": "rank",
        "rarity": "common",
        "trigger_type": "rank",
        "trigger_config": {"max_rank": 50},
    },
    {
        "slug": "top_10",
        "name": "Top Performer",
        "description": "Rank in the top 10 of active workers",
        "category": "rank",
        "rarity": "rare",
        "trigger_type": "rank",
        "trigger_config": {"max_rank": 10},
    },
    {
        "slug": "top_5",
        "name": "Elite Five",
        "description": "Rank in the top 5 of active workers",
        "category": "rank",
        "rarity": "epic",
        "trigger_type": "rank",
        "trigger_config": {"max_rank": 5},
    },
    {
        "slug": "rank_1",
        "name": "Number One",
        "description": "Hold the #1 spot on the leaderboard",
        "category": "rank",
        "rarity": "legendary",
        "trigger_type": "rank",
        "trigger_config": {"max_rank": 1},
    },
]

BADGES_BY_SLUG: dict[str, dict[str, Any]] = {b["slug"]: b for b in BADGE_DEFINITIONS}


def is_eligible(badge: dict[str, Any], metrics: WorkerMetrics, rank: int | None = None) -> bool:
    """Evaluate one badge rule against current metrics.

    Rank badges need the ranking engine's output; without a rank (inactive
    worker, or rank not computed) they are never earned.
    """
    trigger = badge["trigger_type"]
    config = badge["trigger_config"]

    if trigger == "completed_count":
        return metrics.completed >= config["threshold"]
    if trigger == "completion_rate":
        return (
            metrics.completion_rate >= config["threshold"]
            and metrics.completed >= config.get("min_completed", 0)
        )
    if trigger == "rank":
        return rank is not None and 1 <= rank <= config["max_rank"]
    raise ValueError(f"Unknown badge trigger type: {trigger}")


def eligible_badges(metrics: WorkerMetrics, rank: int | None = None) -> list[dict[str, Any]]:
    """All badges the metrics currently qualify for, in catalog order."""
    return [b for b in BADGE_DEFINITIONS if is_eligible(b, metrics, rank)]
