"""Integration tests: notification feed and task reports."""

from __future__ import annotations

import csv
import io
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from civictask.store.records import (
    Escalation,
    EscalationStatus,
    IssueStatus,
    Personnel,
    Priority,
    ProofStatus,
)

pytestmark = pytest.mark.asyncio

NOW = datetime.now(timezone.utc)


@pytest.fixture
def tasks(store):
    """w1: one fresh assignment, one approved fix, one rejected escalation."""
    me = Personnel(id="w1", name="Asha")
    store.add_issue(
        "new", assigned_personnel=me, status=IssueStatus.ASSIGN, assigned_at=NOW,
        priority=Priority.CRITICAL, summary="Sewage overflow", last_updated=NOW,
    )
    store.add_issue(
        "done", assigned_personnel=me, status=IssueStatus.RESOLVED, proof_status=ProofStatus.APPROVED,
        summary="Leaking valve", category="Water Supply & Sewage",
        reported_at=NOW - timedelta(hours=10), last_updated=NOW - timedelta(hours=1),
    )
    store.add_issue(
        "stuck", assigned_personnel=me, status=IssueStatus.ESCALATED, summary="Collapsed drain",
        escalation=Escalation(reason="Needs JCB", escalated_by="w1", escalated_at=NOW,
                              status=EscalationStatus.REJECTED),
        last_updated=NOW - timedelta(hours=2),
    )
    store.add_issue("other", assigned_personnel=Personnel(id="w2"), status=IssueStatus.ASSIGN, assigned_at=NOW)
    return store


class TestNotificationsAPI:
    async def test_feed(self, client: AsyncClient, tasks, headers):
        response = await client.get("/api/v1/me/notifications", headers=headers("w1"))

        assert response.status_code == 200
        data = response.json()
        assert data["unread_count"] == 3
        ids = [n["id"] for n in data["notifications"]]
        assert set(ids) == {"assign-new", "approved-done", "esc-rejected-stuck"}
        assert data["notifications"][-1]["id"] == "approved-done"

    async def test_emergency_filter_keeps_unread_count(self, client: AsyncClient, tasks, headers):
        response = await client.get("/api/v1/me/notifications", params={"filter": "emergency"}, headers=headers("w1"))

        data = response.json()
        assert {n["id"] for n in data["notifications"]} == {"assign-new", "esc-rejected-stuck"}
        assert data["unread_count"] == 3

    async def test_unknown_filter(self, client: AsyncClient, headers):
        response = await client.get("/api/v1/me/notifications", params={"filter": "starred"}, headers=headers("w1"))
        assert response.status_code == 422

    async def test_empty_feed(self, client: AsyncClient, headers):
        data = (await client.get("/api/v1/me/notifications", headers=headers("w9"))).json()
        assert data == {"notifications": [], "unread_count": 0}


class TestReportsAPI:
    async def test_summary(self, client: AsyncClient, tasks, headers):
        response = await client.get("/api/v1/me/reports", headers=headers("w1"))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["completed"] == 1
        assert data["completion_rate"] == 33
        assert data["avg_resolution_hours"] == 9.0
        assert [i["id"] for i in data["recent"]] == ["new", "done", "stuck"]

    async def test_completed_filter(self, client: AsyncClient, tasks, headers):
        data = (await client.get("/api/v1/me/reports", params={"status": "completed"}, headers=headers("w1"))).json()
        assert [i["id"] for i in data["recent"]] == ["done"]
        assert data["total"] == 3

    async def test_csv_export(self, client: AsyncClient, tasks, headers):
        response = await client.get("/api/v1/me/reports/export", params={"search": "valve"}, headers=headers("w1"))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0][0] == "Task ID"
        assert [r[0] for r in rows[1:]] == ["done"]
        assert rows[1][3] == "completed"
        assert rows[1][7] == "9h"
