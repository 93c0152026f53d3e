"""ORM models for issues, department workers and citizen posts.

Nested documents (escalation, proof of work, geo data) live in JSON columns;
the assignee id is a plain indexed column so assignee queries stay cheap.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from civictask.db.base import Base, JSONType


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------


class Issue(Base):
    """Maps to the 'issues' table."""

    __tablename__ = "issues"
    __table_args__ = (
        Index("idx_issues_assignee", "assigned_personnel_id"),
        Index("idx_issues_assignee_proof", "assigned_personnel_id", "proof_status"),
        Index("idx_issues_last_updated", "last_updated"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    category: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    department: Mapped[str] = mapped_column(String(32), nullable=False)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="Medium")
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="unassigned")
    proof_status: Mapped[str] = mapped_column(String(16), nullable=False, default="none")
    escalation: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    assigned_personnel_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    assigned_personnel_name: Mapped[str | None] = mapped_column(String(128), nullable=True)

    proof_of_work: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    geo_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    reported_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_updated_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    original_post_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    related_posts: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


# ---------------------------------------------------------------------------
# Workers
# ---------------------------------------------------------------------------


class Worker(Base):
    """Department staff member who can be assigned issues."""

    __tablename__ = "workers"
    __table_args__ = (
        Index("idx_workers_active", "active"),
    )

    uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    department_id: Mapped[str] = mapped_column(String(32), nullable=False)
    department_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Metrics cache, refreshed by the scoring engine. Never read back as truth.
    civic_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    earned_badges: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    metrics_cached_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Citizen posts
# ---------------------------------------------------------------------------


class Post(Base):
    """Citizen-facing feed post an issue originated from."""

    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=lambda: str(uuid.uuid4()))
    uid: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="working")
    ai_category: Mapped[str | None] = mapped_column(String(128), nullable=True)
    ai_priority: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
