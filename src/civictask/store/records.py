"""Immutable snapshots of store records handed to the engines.

The engines never hold ORM objects: every read returns a fresh snapshot and
every write goes back through ``IssueStore.update_issue_fields``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Department(str, Enum):
    PWD = "pwd"
    WATER = "water"
    SWM = "swm"
    TRAFFIC = "traffic"
    HEALTH = "health"
    ENVIRONMENT = "environment"
    ELECTRICITY = "electricity"
    DISASTER = "disaster"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class IssueStatus(str, Enum):
    """Raw status values persisted on an issue."""

    UNASSIGNED = "unassigned"
    ASSIGN = "assign"
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    ESCALATED = "escalated"
    PENDING_REVIEW = "pending-review"
    RESOLVED = "resolved"


class ProofStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EscalationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Record(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=False)


class Personnel(Record):
    """Weak reference from an issue to the worker it is routed to."""

    id: str
    name: str = ""


class GeoVerification(Record):
    latitude: float
    longitude: float
    accuracy_m: float | None = None


class ProofRecord(Record):
    media_url: str
    timestamp: datetime
    notes: str = ""
    geo: GeoVerification | None = None


class Escalation(Record):
    reason: str
    escalated_by: str
    escalated_at: datetime
    status: EscalationStatus = EscalationStatus.PENDING
    decided_by: str | None = None
    decided_at: datetime | None = None


class GeoData(Record):
    latitude: float | None = None
    longitude: float | None = None
    address: str | None = None


class Issue(Record):
    id: str
    category: str = ""
    department: Department
    priority: Priority = Priority.MEDIUM
    summary: str = ""
    description: str = ""
    status: IssueStatus = IssueStatus.UNASSIGNED
    proof_status: ProofStatus = ProofStatus.NONE
    escalation: Escalation | None = None
    assigned_personnel: Personnel | None = None
    proof_of_work: tuple[ProofRecord, ...] = ()
    geo_data: GeoData | None = None
    reported_at: datetime
    assigned_at: datetime | None = None
    last_updated: datetime
    last_updated_by: str | None = None
    submitted_at: datetime | None = None
    original_post_id: str | None = None
    related_posts: tuple[str, ...] = ()
    version: int = 1

    @property
    def origin_post_ids(self) -> list[str]:
        """Every citizen-facing post that mirrors this issue, deduplicated."""
        ids: list[str] = []
        for post_id in (self.original_post_id, *self.related_posts):
            if post_id and post_id not in ids:
                ids.append(post_id)
        return ids


class Worker(Record):
    uid: str
    name: str
    department_id: Department
    department_name: str = ""
    active: bool = True
    # Write-only cache; read paths must go through the scoring engine.
    civic_score: int = 0
    tasks_completed: int = 0
    earned_badges: int = 0


class CachedMetrics(Record):
    civic_score: int
    tasks_completed: int
    earned_badges: int


# Fields the lifecycle engine is allowed to write through update_issue_fields.
UPDATABLE_ISSUE_FIELDS = frozenset({
    "status",
    "proof_status",
    "escalation",
    "assigned_personnel",
    "proof_of_work",
    "assigned_at",
    "last_updated",
    "last_updated_by",
    "submitted_at",
})


class IssueDraft(Record):
    """Fields needed to create a new issue from a classified report."""

    category: str = ""
    department: Department
    priority: Priority
    summary: str
    description: str
    reported_at: datetime
    geo_data: GeoData | None = None
    original_post_id: str | None = None
    related_posts: tuple[str, ...] = Field(default_factory=tuple)
