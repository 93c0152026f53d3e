"""Request/response models for issue endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from civictask.lifecycle.states import display_status
from civictask.store.records import (
    Escalation,
    GeoData,
    GeoVerification,
    Issue,
    Personnel,
    ProofRecord,
)


# ── Requests ──


class ReportRequest(BaseModel):
    description: str = Field(min_length=1, max_length=5000)
    post_id: str | None = None
    geo_data: GeoData | None = None


class VersionedRequest(BaseModel):
    # Version the caller last saw; a stale value is rejected with 409 conflict.
    expected_version: int | None = None


class AssignRequest(VersionedRequest):
    worker_id: str


class StatusChangeRequest(VersionedRequest):
    status: str


class EscalateRequest(VersionedRequest):
    reason: str


class ProofRequest(VersionedRequest):
    media_url: str = Field(min_length=1)
    notes: str = ""
    timestamp: datetime | None = None
    geo: GeoVerification | None = None


class DecisionRequest(VersionedRequest):
    decision: Literal["approved", "rejected"]


# ── Responses ──


class IssueResponse(BaseModel):
    id: str
    category: str
    department: str
    priority: str
    summary: str
    description: str
    status: str
    display_status: str
    proof_status: str
    escalation: Escalation | None = None
    assigned_personnel: Personnel | None = None
    proof_of_work: list[ProofRecord] = []
    geo_data: GeoData | None = None
    reported_at: datetime
    assigned_at: datetime | None = None
    last_updated: datetime
    last_updated_by: str | None = None
    submitted_at: datetime | None = None
    original_post_id: str | None = None
    related_posts: list[str] = []
    version: int


class IssueListResponse(BaseModel):
    issues: list[IssueResponse]
    total: int


def issue_response(issue: Issue) -> IssueResponse:
    return IssueResponse(
        id=issue.id,
        category=issue.category,
        department=issue.department.value,
        priority=issue.priority.value,
        summary=issue.summary,
        description=issue.description,
        status=issue.status.value,
        display_status=display_status(issue).value,
        proof_status=issue.proof_status.value,
        escalation=issue.escalation,
        assigned_personnel=issue.assigned_personnel,
        proof_of_work=list(issue.proof_of_work),
        geo_data=issue.geo_data,
        reported_at=issue.reported_at,
        assigned_at=issue.assigned_at,
        last_updated=issue.last_updated,
        last_updated_by=issue.last_updated_by,
        submitted_at=issue.submitted_at,
        original_post_id=issue.original_post_id,
        related_posts=list(issue.related_posts),
        version=issue.version,
    )
