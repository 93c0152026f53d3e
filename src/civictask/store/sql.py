"""SQLAlchemy implementation of the issue store.

Every write is a single field-scoped UPDATE. Issue updates bump ``version``
and, when an expected version is supplied, only match that version, so two
writers racing on the same snapshot cannot both succeed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from civictask.db import models as orm
from civictask.errors import CivicError, Conflict, DataUnavailable, NotFound, Timeout
from civictask.store.records import (
    UPDATABLE_ISSUE_FIELDS,
    CachedMetrics,
    Escalation,
    GeoData,
    Issue,
    IssueDraft,
    IssueStatus,
    Personnel,
    ProofRecord,
    ProofStatus,
    Worker,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def issue_from_row(row: orm.Issue) -> Issue:
    """Build an immutable snapshot from an ORM row."""
    personnel = None
    if row.assigned_personnel_id:
        personnel = Personnel(id=row.assigned_personnel_id, name=row.assigned_personnel_name or "")

    return Issue(
        id=row.id,
        category=row.category,
        department=row.department,
        priority=row.priority,
        summary=row.summary,
        description=row.description,
        status=row.status,
        proof_status=row.proof_status,
        escalation=Escalation.model_validate(row.escalation) if row.escalation else None,
        assigned_personnel=personnel,
        proof_of_work=tuple(ProofRecord.model_validate(p) for p in row.proof_of_work or []),
        geo_data=GeoData.model_validate(row.geo_data) if row.geo_data else None,
        reported_at=_utc(row.reported_at),
        assigned_at=_utc(row.assigned_at),
        last_updated=_utc(row.last_updated),
        last_updated_by=row.last_updated_by,
        submitted_at=_utc(row.submitted_at),
        original_post_id=row.original_post_id,
        related_posts=tuple(row.related_posts or ()),
        version=row.version,
    )


def worker_from_row(row: orm.Worker) -> Worker:
    return Worker(
        uid=row.uid,
        name=row.name,
        department_id=row.department_id,
        department_name=row.department_name,
        active=row.active,
        civic_score=row.civic_score,
        tasks_completed=row.tasks_completed,
        earned_badges=row.earned_badges,
    )


def issue_columns(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Translate snapshot field names into column values for an UPDATE."""
    unknown = set(fields) - UPDATABLE_ISSUE_FIELDS
    if unknown:
        raise ValueError(f"Fields not writable through the store: {sorted(unknown)}")

    values: dict[str, Any] = {}
    for name, value in fields.items():
        if name in ("status", "proof_status"):
            values[name] = value.value if hasattr(value, "value") else str(value)
        elif name == "escalation":
            values[name] = value.model_dump(mode="json") if value is not None else None
        elif name == "assigned_personnel":
            values["assigned_personnel_id"] = value.id if value is not None else None
            values["assigned_personnel_name"] = value.name if value is not None else None
        elif name == "proof_of_work":
            values[name] = [p.model_dump(mode="json") for p in value]
        else:
            values[name] = value
    return values


class SqlIssueStore:
    """Issue store over an async SQLAlchemy session factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout_seconds: float = 5.0,
    ) -> None:
        self._sessions = session_factory
        self.timeout_seconds = timeout_seconds

    async def _call(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run one store operation under the deadline, mapping driver failures."""
        try:
            return await asyncio.wait_for(fn(), timeout=self.timeout_seconds)
        except CivicError:
            raise
        except TimeoutError as exc:
            raise Timeout(f"Store call {name} timed out after {self.timeout_seconds}s") from exc
        except SQLAlchemyError as exc:
            logger.warning("Store call %s failed", name, exc_info=True)
            raise DataUnavailable(f"Store call {name} failed") from exc

    # ── Issues ──

    async def get_issue(self, issue_id: str) -> Issue:
        async def op() -> Issue:
            async with self._sessions() as session:
                row = await session.get(orm.Issue, issue_id)
                if row is None:
                    raise NotFound(f"Issue {issue_id} not found")
                return issue_from_row(row)

        return await self._call("get_issue", op)

    async def create_issue(self, draft: IssueDraft) -> Issue:
        async def op() -> Issue:
            async with self._sessions() as session, session.begin():
                row = orm.Issue(
                    category=draft.category,
                    department=draft.department.value,
                    priority=draft.priority.value,
                    summary=draft.summary,
                    description=draft.description,
                    status=IssueStatus.UNASSIGNED.value,
                    proof_status=ProofStatus.NONE.value,
                    proof_of_work=[],
                    geo_data=draft.geo_data.model_dump(mode="json") if draft.geo_data else None,
                    reported_at=draft.reported_at,
                    last_updated=draft.reported_at,
                    original_post_id=draft.original_post_id,
                    related_posts=list(draft.related_posts),
                    version=1,
                )
                session.add(row)
                await session.flush()
                return issue_from_row(row)

        return await self._call("create_issue", op)

    async def query_issues_by_assignee(self, worker_id: str) -> Sequence[Issue]:
        async def op() -> list[Issue]:
            async with self._sessions() as session:
                result = await session.execute(
                    select(orm.Issue)
                    .where(orm.Issue.assigned_personnel_id == worker_id)
                    .order_by(orm.Issue.last_updated.desc())
                )
                return [issue_from_row(r) for r in result.scalars()]

        return await self._call("query_issues_by_assignee", op)

    async def query_issues_by_assignee_and_proof_status(
        self, worker_id: str, status: ProofStatus,
    ) -> Sequence[Issue]:
        async def op() -> list[Issue]:
            async with self._sessions() as session:
                result = await session.execute(
                    select(orm.Issue)
                    .where(
                        orm.Issue.assigned_personnel_id == worker_id,
                        orm.Issue.proof_status == status.value,
                    )
                    .order_by(orm.Issue.last_updated.desc())
                )
                return [issue_from_row(r) for r in result.scalars()]

        return await self._call("query_issues_by_assignee_and_proof_status", op)

    async def query_recent_issues_by_assignee(self, worker_id: str, limit: int) -> Sequence[Issue]:
        async def op() -> list[Issue]:
            async with self._sessions() as session:
                result = await session.execute(
                    select(orm.Issue)
                    .where(orm.Issue.assigned_personnel_id == worker_id)
                    .order_by(orm.Issue.last_updated.desc())
                    .limit(limit)
                )
                return [issue_from_row(r) for r in result.scalars()]

        return await self._call("query_recent_issues_by_assignee", op)

    async def update_issue_fields(
        self,
        issue_id: str,
        fields: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> Issue:
        values = issue_columns(fields)

        async def op() -> Issue:
            async with self._sessions() as session, session.begin():
                stmt = update(orm.Issue).where(orm.Issue.id == issue_id)
                if expected_version is not None:
                    stmt = stmt.where(orm.Issue.version == expected_version)
                stmt = stmt.values(**values, version=orm.Issue.version + 1).execution_options(
                    synchronize_session=False,
                )
                result = await session.execute(stmt)

                if result.rowcount == 0:
                    exists = await session.scalar(select(orm.Issue.id).where(orm.Issue.id == issue_id))
                    if exists is None:
                        raise NotFound(f"Issue {issue_id} not found")
                    raise Conflict(
                        f"Issue {issue_id} changed since version {expected_version}; re-read and retry"
                    )

                row = await session.scalar(
                    select(orm.Issue)
                    .where(orm.Issue.id == issue_id)
                    .execution_options(populate_existing=True)
                )
                return issue_from_row(row)

        return await self._call("update_issue_fields", op)

    # ── Workers ──

    async def get_worker(self, uid: str) -> Worker:
        async def op() -> Worker:
            async with self._sessions() as session:
                row = await session.get(orm.Worker, uid)
                if row is None:
                    raise NotFound(f"Worker {uid} not found")
                return worker_from_row(row)

        return await self._call("get_worker", op)

    async def query_active_workers(self) -> Sequence[Worker]:
        async def op() -> list[Worker]:
            async with self._sessions() as session:
                result = await session.execute(
                    select(orm.Worker).where(orm.Worker.active.is_(True)).order_by(orm.Worker.uid)
                )
                return [worker_from_row(r) for r in result.scalars()]

        return await self._call("query_active_workers", op)

    async def set_worker_active(self, uid: str, active: bool) -> Worker:
        async def op() -> Worker:
            async with self._sessions() as session, session.begin():
                result = await session.execute(
                    update(orm.Worker)
                    .where(orm.Worker.uid == uid)
                    .values(active=active)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFound(f"Worker {uid} not found")
                row = await session.scalar(
                    select(orm.Worker)
                    .where(orm.Worker.uid == uid)
                    .execution_options(populate_existing=True)
                )
                return worker_from_row(row)

        return await self._call("set_worker_active", op)

    async def cache_worker_metrics(self, uid: str, metrics: CachedMetrics) -> None:
        async def op() -> None:
            async with self._sessions() as session, session.begin():
                result = await session.execute(
                    update(orm.Worker)
                    .where(orm.Worker.uid == uid)
                    .values(
                        civic_score=metrics.civic_score,
                        tasks_completed=metrics.tasks_completed,
                        earned_badges=metrics.earned_badges,
                        metrics_cached_at=datetime.now(timezone.utc),
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFound(f"Worker {uid} not found")

        await self._call("cache_worker_metrics", op)

    # ── Posts ──

    async def mirror_status_to_origin_post(self, post_id: str, status: str) -> None:
        async def op() -> None:
            async with self._sessions() as session, session.begin():
                result = await session.execute(
                    update(orm.Post)
                    .where(orm.Post.id == post_id)
                    .values(status=status, updated_at=datetime.now(timezone.utc))
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFound(f"Post {post_id} not found")

        await self._call("mirror_status_to_origin_post", op)
