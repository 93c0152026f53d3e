"""Pydantic response models for score, badge and availability endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class BadgeDefinitionResponse(BaseModel):
    slug: str
    name: str
    description: str
    category: str
    rarity: str


class AllBadgesResponse(BaseModel):
    badges: list[BadgeDefinitionResponse]


class EarnedBadgeResponse(BaseModel):
    slug: str
    name: str
    description: str
    category: str
    rarity: str


class ScoreProfileResponse(BaseModel):
    worker_id: str
    name: str
    department_id: str
    department_name: str
    active: bool
    assigned: int
    completed: int
    completion_rate: int
    civic_score: int
    level: int
    points_to_next_level: int
    progress_percent: int
    tier: str
    rank: int | None = None
    percentile: float | None = None
    total_ranked: int
    badges: list[EarnedBadgeResponse]


class AvailabilityRequest(BaseModel):
    active: bool


class AvailabilityResponse(BaseModel):
    worker_id: str
    active: bool
