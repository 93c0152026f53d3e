"""Unit tests for badge eligibility."""

from __future__ import annotations

import pytest

from civictask.scoring.badges import BADGE_DEFINITIONS, BADGES_BY_SLUG, RARITIES, eligible_badges, is_eligible
from civictask.scoring.metrics import compute_worker_metrics


def slugs(assigned: int, completed: int, rank: int | None = None) -> set[str]:
    return {b["slug"] for b in eligible_badges(compute_worker_metrics("w1", assigned, completed), rank)}


class TestCatalog:
    def test_slugs_unique(self):
        assert len(BADGES_BY_SLUG) == len(BADGE_DEFINITIONS)

    def test_every_badge_has_known_rarity_and_category(self):
        for badge in BADGE_DEFINITIONS:
            assert badge["rarity"] in RARITIES
            assert badge["category"] in ("milestone", "performance", "rank")

    def test_milestone_thresholds(self):
        thresholds = [
            b["trigger_config"]["threshold"] for b in BADGE_DEFINITIONS if b["category"] == "milestone"
        ]
        assert thresholds == [1, 5, 25, 50, 100, 500]


class TestEligibility:
    def test_new_worker_has_nothing(self):
        assert slugs(0, 0) == set()

    def test_first_fix(self):
        assert "first_fix" in slugs(10, 1)

    def test_flawless_at_twenty_of_twenty(self):
        assert "flawless" in slugs(20, 20)

    def test_no_flawless_at_nineteen_of_twenty(self):
        earned = slugs(20, 19)
        assert "flawless" not in earned
        assert "rate_95" in earned

    def test_no_flawless_below_twenty_tasks(self):
        assert "flawless" not in slugs(19, 19)

    def test_badges_are_lost_when_rate_drops(self):
        assert "rate_85" in slugs(10, 9)
        assert "rate_85" not in slugs(20, 9)

    @pytest.mark.parametrize("rank,expected", [
        (1, {"rank_1", "top_5", "top_10", "top_50"}),
        (5, {"top_5", "top_10", "top_50"}),
        (10, {"top_10", "top_50"}),
        (50, {"top_50"}),
        (51, set()),
        (None, set()),
    ])
    def test_rank_badges(self, rank, expected):
        earned = {s for s in slugs(0, 0, rank) if BADGES_BY_SLUG[s]["category"] == "rank"}
        assert earned == expected

    def test_unknown_trigger_rejected(self):
        badge = {"trigger_type": "streak", "trigger_config": {}}
        with pytest.raises(ValueError, match="Unknown badge trigger"):
            is_eligible(badge, compute_worker_metrics("w1", 0, 0))
