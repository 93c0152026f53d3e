"""Issue API endpoints: intake, assignment and the worker/department lifecycle."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from civictask.auth.dependencies import get_current_actor, require_department
from civictask.auth.schemas import Actor
from civictask.dependencies import get_classifier, get_issue_store, get_lifecycle_engine
from civictask.intake.classifier import Classifier
from civictask.intake.service import submit_report
from civictask.lifecycle.engine import LifecycleEngine
from civictask.lifecycle.schemas import (
    AssignRequest,
    DecisionRequest,
    EscalateRequest,
    IssueListResponse,
    IssueResponse,
    ProofRequest,
    ReportRequest,
    StatusChangeRequest,
    issue_response,
)
from civictask.lifecycle.states import DisplayStatus, display_status
from civictask.store.base import IssueStore
from civictask.store.records import ProofRecord

router = APIRouter(prefix="/api/v1", tags=["Issues"])


@router.post("/issues", response_model=IssueResponse, status_code=201)
async def report_issue(
    body: ReportRequest,
    _actor: Actor = Depends(get_current_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
    classifier: Classifier = Depends(get_classifier),
):
    """Classify a citizen report and open an unassigned issue for it."""
    issue = await submit_report(engine, classifier, body.description, body.post_id, body.geo_data)
    return issue_response(issue)


@router.get("/me/issues", response_model=IssueListResponse)
async def list_my_issues(
    status: DisplayStatus | None = Query(None),
    actor: Actor = Depends(get_current_actor),
    store: IssueStore = Depends(get_issue_store),
):
    """Issues assigned to the caller, most recently updated first."""
    issues = await store.query_issues_by_assignee(actor.uid)
    if status is not None:
        issues = [i for i in issues if display_status(i) == status]
    return IssueListResponse(issues=[issue_response(i) for i in issues], total=len(issues))


@router.get("/issues/{issue_id}", response_model=IssueResponse)
async def get_issue(
    issue_id: str,
    actor: Actor = Depends(get_current_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    return issue_response(await engine.get_issue(issue_id, actor))


@router.post("/issues/{issue_id}/assign", response_model=IssueResponse)
async def assign_issue(
    issue_id: str,
    body: AssignRequest,
    actor: Actor = Depends(require_department),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    issue = await engine.assign(issue_id, body.worker_id, actor, body.expected_version)
    return issue_response(issue)


@router.post("/issues/{issue_id}/status", response_model=IssueResponse)
async def change_status(
    issue_id: str,
    body: StatusChangeRequest,
    actor: Actor = Depends(get_current_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    issue = await engine.change_status(issue_id, body.status, actor, body.expected_version)
    return issue_response(issue)


@router.post("/issues/{issue_id}/escalate", response_model=IssueResponse)
async def escalate_issue(
    issue_id: str,
    body: EscalateRequest,
    actor: Actor = Depends(get_current_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    issue = await engine.escalate(issue_id, body.reason, actor, body.expected_version)
    return issue_response(issue)


@router.post("/issues/{issue_id}/proof", response_model=IssueResponse)
async def submit_proof(
    issue_id: str,
    body: ProofRequest,
    actor: Actor = Depends(get_current_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    """Submit (or resubmit) proof of work. Replaces any earlier proof."""
    proof = ProofRecord(
        media_url=body.media_url,
        timestamp=body.timestamp or datetime.now(timezone.utc),
        notes=body.notes,
        geo=body.geo,
    )
    issue = await engine.submit_proof(issue_id, proof, actor, body.expected_version)
    return issue_response(issue)


@router.post("/issues/{issue_id}/proof/decision", response_model=IssueResponse)
async def decide_proof(
    issue_id: str,
    body: DecisionRequest,
    actor: Actor = Depends(require_department),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    issue = await engine.resolve_proof(issue_id, body.decision, actor, body.expected_version)
    return issue_response(issue)


@router.post("/issues/{issue_id}/escalation/decision", response_model=IssueResponse)
async def decide_escalation(
    issue_id: str,
    body: DecisionRequest,
    actor: Actor = Depends(require_department),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    issue = await engine.resolve_escalation(issue_id, body.decision, actor, body.expected_version)
    return issue_response(issue)
