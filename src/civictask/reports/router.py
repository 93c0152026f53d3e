"""Worker task report endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel

from civictask.auth.dependencies import get_current_actor
from civictask.auth.schemas import Actor
from civictask.dependencies import get_issue_store
from civictask.lifecycle.schemas import IssueResponse, issue_response
from civictask.reports.service import build_report, export_csv, filter_issues
from civictask.store.base import IssueStore

router = APIRouter(prefix="/api/v1", tags=["Reports"])

_STATUS_PATTERN = "^(all|completed|escalated)$"


class CategoryCount(BaseModel):
    category: str
    count: int


class ReportResponse(BaseModel):
    total: int
    completed: int
    escalated: int
    in_progress: int
    pending: int
    pending_review: int
    completion_rate: int
    avg_resolution_hours: float
    top_categories: list[CategoryCount]
    recent: list[IssueResponse]


@router.get("/me/reports", response_model=ReportResponse)
async def get_report(
    status: str = Query("all", pattern=_STATUS_PATTERN),
    search: str = Query(""),
    actor: Actor = Depends(get_current_actor),
    store: IssueStore = Depends(get_issue_store),
):
    """Summary over all of the caller's tasks; ``recent`` honours the filters."""
    issues = list(await store.query_issues_by_assignee(actor.uid))
    matched = filter_issues(issues, status, search)
    return ReportResponse(
        **build_report(issues),
        recent=[issue_response(i) for i in matched[:5]],
    )


@router.get("/me/reports/export")
async def export_report(
    status: str = Query("all", pattern=_STATUS_PATTERN),
    search: str = Query(""),
    actor: Actor = Depends(get_current_actor),
    store: IssueStore = Depends(get_issue_store),
):
    issues = filter_issues(await store.query_issues_by_assignee(actor.uid), status, search)
    filename = f"task-report-{datetime.now(timezone.utc):%Y-%m}.csv"
    return Response(
        content=export_csv(issues),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
