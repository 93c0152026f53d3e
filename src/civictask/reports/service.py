"""Per-worker task reports and CSV export."""

from __future__ import annotations

import csv
import io
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from civictask.errors import ValidationError
from civictask.lifecycle.states import DisplayStatus, display_status
from civictask.scoring.metrics import completion_rate
from civictask.store.records import Issue

REPORT_FILTERS = ("all", "completed", "escalated")
TOP_CATEGORIES = 5

CSV_COLUMNS = ["Task ID", "Title", "Category", "Status", "Location", "Created", "Completed", "Duration"]


def format_date(value: datetime) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def format_duration(start: datetime, end: datetime) -> str:
    """Whole hours under a day, whole days after that."""
    hours = max(int((end - start).total_seconds() // 3600), 0)
    if hours < 24:
        return f"{hours}h"
    return f"{hours // 24}d"


def _location(issue: Issue) -> str:
    return (issue.geo_data.address or "") if issue.geo_data else ""


def filter_issues(issues: Iterable[Issue], status: str = "all", search: str = "") -> list[Issue]:
    """Issues matching a display-status filter and a case-insensitive search term."""
    if status not in REPORT_FILTERS:
        raise ValidationError(f"Unknown report filter: {status}")

    term = search.strip().lower()
    matched = []
    for issue in issues:
        if status != "all" and display_status(issue).value != status:
            continue
        if term and not any(term in field.lower() for field in (issue.summary, _location(issue), issue.category)):
            continue
        matched.append(issue)
    return matched


def build_report(issues: Sequence[Issue]) -> dict[str, Any]:
    """Counts by display status, completion rate and top categories."""
    statuses = Counter(display_status(i) for i in issues)
    completed = [i for i in issues if display_status(i) == DisplayStatus.COMPLETED]

    durations = [
        (i.last_updated - i.reported_at).total_seconds() / 3600
        for i in completed
    ]
    avg_hours = round(sum(durations) / len(durations), 1) if durations else 0.0

    categories = Counter(i.category or "General" for i in issues)
    return {
        "total": len(issues),
        "completed": statuses[DisplayStatus.COMPLETED],
        "escalated": statuses[DisplayStatus.ESCALATED],
        "in_progress": statuses[DisplayStatus.IN_PROGRESS],
        "pending": statuses[DisplayStatus.PENDING],
        "pending_review": statuses[DisplayStatus.PENDING_REVIEW],
        "completion_rate": completion_rate(len(completed), len(issues)),
        "avg_resolution_hours": avg_hours,
        "top_categories": [
            {"category": name, "count": count}
            for name, count in sorted(categories.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_CATEGORIES]
        ],
    }


def export_csv(issues: Iterable[Issue]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for issue in issues:
        status = display_status(issue)
        writer.writerow([
            issue.id,
            issue.summary,
            issue.category,
            status.value,
            _location(issue),
            format_date(issue.reported_at),
            format_date(issue.last_updated) if status == DisplayStatus.COMPLETED else "N/A",
            format_duration(issue.reported_at, issue.last_updated),
        ])
    return buf.getvalue()
