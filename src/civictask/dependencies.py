"""Shared FastAPI dependencies: store and engines wired from settings."""

from fastapi import Depends

from civictask.config import get_settings
from civictask.database import get_session_factory
from civictask.intake.classifier import Classifier, HttpClassifier
from civictask.lifecycle.engine import LifecycleEngine
from civictask.ranking.engine import RankingEngine
from civictask.redis_client import get_redis_or_none
from civictask.scoring.engine import ScoringEngine
from civictask.store.base import IssueStore
from civictask.store.sql import SqlIssueStore


def get_issue_store() -> IssueStore:
    settings = get_settings()
    return SqlIssueStore(get_session_factory(), timeout_seconds=settings.store_timeout_seconds)


def get_lifecycle_engine(store: IssueStore = Depends(get_issue_store)) -> LifecycleEngine:
    return LifecycleEngine(store, redis=get_redis_or_none())


def get_scoring_engine(store: IssueStore = Depends(get_issue_store)) -> ScoringEngine:
    return ScoringEngine(store)


def get_ranking_engine(
    store: IssueStore = Depends(get_issue_store),
    scoring: ScoringEngine = Depends(get_scoring_engine),
) -> RankingEngine:
    return RankingEngine(store, scoring, max_concurrency=get_settings().scoring_max_concurrency)


def get_classifier() -> Classifier:
    settings = get_settings()
    return HttpClassifier(
        settings.classifier_url,
        api_key=settings.classifier_api_key,
        timeout_seconds=settings.classifier_timeout_seconds,
    )
