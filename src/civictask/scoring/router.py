"""Score profile, badge catalog and availability endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from civictask.auth.dependencies import get_current_actor
from civictask.auth.schemas import Actor
from civictask.dependencies import get_issue_store, get_ranking_engine
from civictask.ranking.engine import RankingEngine
from civictask.scoring.badges import BADGE_DEFINITIONS
from civictask.scoring.schemas import (
    AllBadgesResponse,
    AvailabilityRequest,
    AvailabilityResponse,
    BadgeDefinitionResponse,
    ScoreProfileResponse,
)
from civictask.store.base import IssueStore

router = APIRouter(prefix="/api/v1", tags=["Scoring"])


@router.get("/badges", response_model=AllBadgesResponse)
async def list_badges():
    """All badge definitions, in display order."""
    return AllBadgesResponse(
        badges=[
            BadgeDefinitionResponse(
                slug=b["slug"],
                name=b["name"],
                description=b["description"],
                category=b["category"],
                rarity=b["rarity"],
            )
            for b in BADGE_DEFINITIONS
        ]
    )


@router.get("/me/score", response_model=ScoreProfileResponse)
async def get_my_score(
    actor: Actor = Depends(get_current_actor),
    ranking: RankingEngine = Depends(get_ranking_engine),
):
    return ScoreProfileResponse(**await ranking.worker_profile(actor.uid))


@router.get("/workers/{uid}/score", response_model=ScoreProfileResponse)
async def get_worker_score(
    uid: str,
    _actor: Actor = Depends(get_current_actor),
    ranking: RankingEngine = Depends(get_ranking_engine),
):
    return ScoreProfileResponse(**await ranking.worker_profile(uid))


@router.patch("/me/availability", response_model=AvailabilityResponse)
async def set_availability(
    body: AvailabilityRequest,
    actor: Actor = Depends(get_current_actor),
    store: IssueStore = Depends(get_issue_store),
):
    """Go on or off duty. Inactive workers drop off the leaderboard."""
    worker = await store.set_worker_active(actor.uid, body.active)
    return AvailabilityResponse(worker_id=worker.uid, active=worker.active)
