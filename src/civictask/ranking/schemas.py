"""Pydantic response models for the leaderboard."""

from __future__ import annotations

from pydantic import BaseModel


class LeaderboardEntryResponse(BaseModel):
    rank: int
    worker_id: str
    name: str
    department_id: str | None = None
    civic_score: int
    tasks_completed: int
    completion_rate: int
    level: int
    percentile: float
    tier: str
    is_current_worker: bool


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntryResponse]
    current: LeaderboardEntryResponse | None = None
    total: int
