"""Worker notification feed derived from their most recently updated issues.

Nothing here is stored: the feed is rebuilt from issue state on every read.
Only the newest few issues start out unread; older entries are shown as
already read.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from civictask.errors import ValidationError
from civictask.store.records import EscalationStatus, Issue, IssueStatus, Priority, ProofStatus

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

FILTERS = ("all", "unread", "emergency", "tasks")

# Feed position (0-based) after which an entry of this kind counts as read.
_ASSIGN_UNREAD_WINDOW = 2
_APPROVAL_UNREAD_WINDOW = 1


def _feed_priority(priority: Priority) -> str:
    if priority in (Priority.HIGH, Priority.CRITICAL):
        return "high"
    return priority.value.lower()


def _notification(
    kind: str,
    issue: Issue,
    *,
    type_: str,
    title: str,
    message: str,
    read: bool,
    priority: str,
) -> dict[str, Any]:
    return {
        "id": f"{kind}-{issue.id}",
        "type": type_,
        "title": title,
        "message": message,
        "read": read,
        "priority": priority,
        "issue_id": issue.id,
        "timestamp": issue.last_updated,
    }


def notifications_for_issue(issue: Issue, index: int) -> list[dict[str, Any]]:
    """Every notification one issue currently produces."""
    summary = issue.summary or "task"
    found: list[dict[str, Any]] = []

    if issue.status == IssueStatus.ASSIGN and issue.assigned_at is not None:
        address = issue.geo_data.address if issue.geo_data and issue.geo_data.address else "location"
        found.append(_notification(
            "assign", issue,
            type_="task",
            title="New Task Assigned",
            message=f"{summary} at {address} has been assigned to you. Priority: {issue.priority.value}",
            read=index > _ASSIGN_UNREAD_WINDOW,
            priority=_feed_priority(issue.priority),
        ))

    if issue.proof_status == ProofStatus.APPROVED:
        found.append(_notification(
            "approved", issue,
            type_="task",
            title="Work Approved",
            message=f"Your work on {summary} has been approved by the department.",
            read=index > _APPROVAL_UNREAD_WINDOW,
            priority="medium",
        ))
    elif issue.proof_status == ProofStatus.REJECTED:
        found.append(_notification(
            "rejected", issue,
            type_="task",
            title="Work Rejected",
            message=f"Your work on {summary} needs revision. Please resubmit proof of work.",
            read=False,
            priority="high",
        ))

    if issue.escalation is not None:
        if issue.escalation.status == EscalationStatus.APPROVED:
            found.append(_notification(
                "esc-approved", issue,
                type_="escalation",
                title="Escalation Approved",
                message=f"Your escalation for {summary} has been approved by the department.",
                read=index > _APPROVAL_UNREAD_WINDOW,
                priority="medium",
            ))
        elif issue.escalation.status == EscalationStatus.REJECTED:
            found.append(_notification(
                "esc-rejected", issue,
                type_="escalation",
                title="Escalation Rejected",
                message=f"Your escalation for {summary} was not approved. Please continue with the task.",
                read=False,
                priority="high",
            ))

    return found


def _matches(notification: dict[str, Any], filter_: str) -> bool:
    if filter_ == "unread":
        return not notification["read"]
    if filter_ == "emergency":
        return notification["type"] == "emergency" or notification["priority"] == "high"
    if filter_ == "tasks":
        return notification["type"] in ("task", "escalation")
    return True


def derive_notifications(issues: Iterable[Issue], filter_: str = "all") -> list[dict[str, Any]]:
    """Build the feed from issues ordered newest first.

    Unread entries sort before read ones, then by priority high to low.
    """
    if filter_ not in FILTERS:
        raise ValidationError(f"Unknown notification filter: {filter_}")

    feed: list[dict[str, Any]] = []
    for index, issue in enumerate(issues):
        feed.extend(notifications_for_issue(issue, index))

    feed.sort(key=lambda n: (n["read"], PRIORITY_ORDER.get(n["priority"], 1)))
    return [n for n in feed if _matches(n, filter_)]


def unread_count(feed: Iterable[dict[str, Any]]) -> int:
    return sum(1 for n in feed if not n["read"])
