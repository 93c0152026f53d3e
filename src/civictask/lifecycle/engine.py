"""Lifecycle engine: validates and applies issue transitions.

Each operation re-reads the issue, validates the transition against that
snapshot, then writes only the fields it owns with a compare-and-set on the
snapshot's version. A concurrent writer that got there first makes the
store raise ``Conflict``; the engine never retries on the caller's behalf.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from civictask.auth.schemas import Actor
from civictask.errors import Conflict, Forbidden, InvalidTransition, ValidationError
from civictask.lifecycle import states
from civictask.notifications.push import publish_issue_event
from civictask.store.base import IssueStore
from civictask.store.records import (
    Escalation,
    EscalationStatus,
    Issue,
    IssueDraft,
    IssueStatus,
    Personnel,
    ProofRecord,
    ProofStatus,
)

logger = logging.getLogger(__name__)


class LifecycleEngine:
    """Issue state machine over an issue store."""

    def __init__(self, store: IssueStore, redis: object | None = None) -> None:
        self.store = store
        self.redis = redis

    # ── Internals ──

    async def _load(self, issue_id: str, expected_version: int | None) -> Issue:
        """Fresh read of the issue, failing fast if the caller's view is stale."""
        issue = await self.store.get_issue(issue_id)
        if expected_version is not None and issue.version != expected_version:
            raise Conflict(
                f"Issue {issue_id} is at version {issue.version}, caller expected {expected_version}"
            )
        return issue

    async def _commit(self, issue: Issue, fields: dict[str, Any], actor: Actor, event: str) -> Issue:
        """Write the transition's fields against the snapshot version."""
        fields = {
            **fields,
            "last_updated": datetime.now(timezone.utc),
            "last_updated_by": actor.uid,
        }
        updated = await self.store.update_issue_fields(issue.id, fields, expected_version=issue.version)
        logger.info(
            "Issue %s: %s by %s (status=%s, proof=%s, version=%d)",
            issue.id, event, actor.uid, updated.status.value, updated.proof_status.value, updated.version,
        )
        await self._mirror(updated)
        await publish_issue_event(self.redis, updated, event)
        return updated

    async def _mirror(self, issue: Issue) -> None:
        """Copy the display status onto the citizen posts. Failures are logged, never raised."""
        status = states.display_status(issue).value
        for post_id in issue.origin_post_ids:
            try:
                await self.store.mirror_status_to_origin_post(post_id, status)
            except Exception:
                logger.warning(
                    "Failed to mirror status %s of issue %s to post %s", status, issue.id, post_id,
                    exc_info=True,
                )

    @staticmethod
    def _ensure_worker_access(issue: Issue, actor: Actor) -> None:
        """Assignee, or an admin of the issue's department."""
        if actor.is_department and actor.department == issue.department:
            return
        if issue.assigned_personnel is not None and issue.assigned_personnel.id == actor.uid:
            return
        raise Forbidden(f"{actor.uid} is not assigned to issue {issue.id}")

    @staticmethod
    def _ensure_department_access(issue: Issue, actor: Actor) -> None:
        if not actor.is_department or actor.department != issue.department:
            raise Forbidden(f"Only the {issue.department.value} department can do this on issue {issue.id}")

    # ── Operations ──

    async def get_issue(self, issue_id: str, actor: Actor) -> Issue:
        """Read an issue visible to the actor."""
        issue = await self.store.get_issue(issue_id)
        self._ensure_worker_access(issue, actor)
        return issue

    async def open_issue(self, draft: IssueDraft) -> Issue:
        """Create a new unassigned issue from a classified report."""
        issue = await self.store.create_issue(draft)
        logger.info("Issue %s opened (department=%s, priority=%s)", issue.id, issue.department.value,
                    issue.priority.value)
        return issue

    async def assign(
        self,
        issue_id: str,
        worker_id: str,
        actor: Actor,
        expected_version: int | None = None,
    ) -> Issue:
        """Route an unassigned issue to an active worker of its department."""
        issue = await self._load(issue_id, expected_version)
        self._ensure_department_access(issue, actor)
        states.validate_assign(issue)

        worker = await self.store.get_worker(worker_id)
        if not worker.active:
            raise InvalidTransition(f"Cannot assign: worker {worker_id} is not active")
        if worker.department_id != issue.department:
            raise InvalidTransition(
                f"Cannot assign: worker {worker_id} belongs to {worker.department_id.value}, "
                f"issue belongs to {issue.department.value}"
            )

        return await self._commit(issue, {
            "assigned_personnel": Personnel(id=worker.uid, name=worker.name),
            "status": IssueStatus.ASSIGN,
            "assigned_at": datetime.now(timezone.utc),
        }, actor, "task_assigned")

    async def change_status(
        self,
        issue_id: str,
        new_status: str | IssueStatus,
        actor: Actor,
        expected_version: int | None = None,
    ) -> Issue:
        """Set the raw status to a worker-settable value.

        Setting the status the issue already has is a no-op that returns the
        current snapshot without writing.
        """
        target = new_status if isinstance(new_status, IssueStatus) else states.parse_status(new_status)
        issue = await self._load(issue_id, expected_version)
        self._ensure_worker_access(issue, actor)
        states.validate_change_status(issue, target)

        if issue.status == target:
            return issue

        return await self._commit(issue, {"status": target}, actor, "status_changed")

    async def escalate(
        self,
        issue_id: str,
        reason: str,
        actor: Actor,
        expected_version: int | None = None,
    ) -> Issue:
        """Hand the issue back to department-level handling."""
        if not (reason or "").strip():
            raise ValidationError("Escalation reason must not be empty")

        issue = await self._load(issue_id, expected_version)
        self._ensure_worker_access(issue, actor)
        cleaned = states.validate_escalate(issue, reason)

        escalation = Escalation(
            reason=cleaned,
            escalated_by=actor.uid,
            escalated_at=datetime.now(timezone.utc),
            status=EscalationStatus.PENDING,
        )
        return await self._commit(issue, {
            "escalation": escalation,
            "status": IssueStatus.ESCALATED,
        }, actor, "escalated")

    async def submit_proof(
        self,
        issue_id: str,
        proof: ProofRecord | None,
        actor: Actor,
        expected_version: int | None = None,
    ) -> Issue:
        """Replace the single active proof and send the issue for review."""
        if proof is None:
            raise ValidationError("Proof of work is required")

        issue = await self._load(issue_id, expected_version)
        self._ensure_worker_access(issue, actor)
        states.validate_submit_proof(issue)

        now = datetime.now(timezone.utc)
        return await self._commit(issue, {
            "proof_of_work": (proof,),
            "status": IssueStatus.PENDING_REVIEW,
            "proof_status": ProofStatus.PENDING,
            "submitted_at": issue.submitted_at or now,
        }, actor, "proof_submitted")

    async def resolve_proof(
        self,
        issue_id: str,
        decision: str,
        actor: Actor,
        expected_version: int | None = None,
    ) -> Issue:
        """Department review of the submitted proof."""
        decision = states.parse_decision(decision)
        issue = await self._load(issue_id, expected_version)
        self._ensure_department_access(issue, actor)
        states.validate_resolve_proof(issue)

        if decision == "approved":
            fields: dict[str, Any] = {
                "proof_status": ProofStatus.APPROVED,
                "status": IssueStatus.RESOLVED,
            }
            event = "proof_approved"
        else:
            fields = {"proof_status": ProofStatus.REJECTED}
            event = "proof_rejected"

        return await self._commit(issue, fields, actor, event)

    async def resolve_escalation(
        self,
        issue_id: str,
        decision: str,
        actor: Actor,
        expected_version: int | None = None,
    ) -> Issue:
        """Department decision on a pending escalation. Approval locks the issue."""
        decision = states.parse_decision(decision)
        issue = await self._load(issue_id, expected_version)
        self._ensure_department_access(issue, actor)
        states.validate_resolve_escalation(issue)

        escalation = issue.escalation.model_copy(update={
            "status": EscalationStatus(decision),
            "decided_by": actor.uid,
            "decided_at": datetime.now(timezone.utc),
        })
        return await self._commit(issue, {"escalation": escalation}, actor, f"escalation_{decision}")
