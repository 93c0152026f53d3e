"""Leaderboard endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from civictask.auth.dependencies import get_current_actor
from civictask.auth.schemas import Actor
from civictask.config import get_settings
from civictask.dependencies import get_ranking_engine
from civictask.ranking.engine import RankingEngine
from civictask.ranking.schemas import LeaderboardResponse
from civictask.store.records import Department

router = APIRouter(prefix="/api/v1", tags=["Leaderboard"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: int | None = Query(None, ge=1, le=100),
    department: Department | None = Query(None),
    actor: Actor = Depends(get_current_actor),
    ranking: RankingEngine = Depends(get_ranking_engine),
):
    """Top active workers plus the caller's own position."""
    top_n = limit or get_settings().leaderboard_default_limit
    board = await ranking.leaderboard(top_n, current_worker_id=actor.uid, department=department)
    return LeaderboardResponse(**board)
