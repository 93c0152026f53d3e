"""Issue lifecycle rules: pure functions over an issue snapshot.

Raw progression: unassigned -> assign -> in-progress -> {escalated | pending-review} -> resolved
A rejected proof sends the issue back to an actionable state; an approved
escalation locks the issue for good.
"""

from __future__ import annotations

from enum import Enum

from civictask.errors import InvalidTransition, ValidationError
from civictask.store.records import EscalationStatus, Issue, IssueStatus, ProofStatus


class DisplayStatus(str, Enum):
    UNASSIGNED = "unassigned"
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    ESCALATED = "escalated"
    PENDING_REVIEW = "pending-review"
    COMPLETED = "completed"


# Statuses a worker may set directly. Everything else is reached through a
# dedicated operation (escalate, submit_proof, resolve_proof).
WORKER_SETTABLE_STATUSES: frozenset[IssueStatus] = frozenset({
    IssueStatus.PENDING,
    IssueStatus.IN_PROGRESS,
})

DECISIONS = frozenset({"approved", "rejected"})


def derive_display_status(
    status: IssueStatus,
    proof_status: ProofStatus,
    escalation_status: EscalationStatus | None,
) -> DisplayStatus:
    """Collapse the raw fields into the single status shown to users.

    Precedence, highest first: approved escalation, approved proof or
    resolved, rejected proof or escalation, raw ``assign``, raw status.
    """
    if escalation_status == EscalationStatus.APPROVED:
        return DisplayStatus.ESCALATED
    if proof_status == ProofStatus.APPROVED or status == IssueStatus.RESOLVED:
        return DisplayStatus.COMPLETED
    if proof_status == ProofStatus.REJECTED or escalation_status == EscalationStatus.REJECTED:
        return DisplayStatus.PENDING
    if status == IssueStatus.ASSIGN:
        return DisplayStatus.PENDING
    return DisplayStatus(status.value)


def display_status(issue: Issue) -> DisplayStatus:
    """Display status of an issue snapshot."""
    escalation_status = issue.escalation.status if issue.escalation else None
    return derive_display_status(issue.status, issue.proof_status, escalation_status)


def is_locked(issue: Issue) -> bool:
    """An approved escalation freezes the worker-facing lifecycle."""
    return issue.escalation is not None and issue.escalation.status == EscalationStatus.APPROVED


def is_completed(issue: Issue) -> bool:
    return issue.proof_status == ProofStatus.APPROVED or issue.status == IssueStatus.RESOLVED


def has_pending_escalation(issue: Issue) -> bool:
    return issue.escalation is not None and issue.escalation.status == EscalationStatus.PENDING


def parse_status(value: str) -> IssueStatus:
    """Parse a raw status string. Raises ValidationError for unknown values."""
    try:
        return IssueStatus(value)
    except ValueError:
        valid = [s.value for s in IssueStatus]
        raise ValidationError(f"Unknown status '{value}'. Valid statuses: {valid}") from None


def parse_decision(value: str) -> str:
    """Parse a department decision. Raises ValidationError unless approved/rejected."""
    if value not in DECISIONS:
        raise ValidationError(f"Decision must be one of {sorted(DECISIONS)}, got '{value}'")
    return value


def _ensure_not_locked(issue: Issue, action: str) -> None:
    if is_locked(issue):
        raise InvalidTransition(f"Cannot {action}: issue {issue.id} was escalated and is locked")


def _ensure_assigned(issue: Issue, action: str) -> None:
    if issue.assigned_personnel is None:
        raise InvalidTransition(f"Cannot {action}: issue {issue.id} is not assigned to anyone")


def validate_assign(issue: Issue) -> None:
    """Routing is only legal for an issue nobody holds yet."""
    _ensure_not_locked(issue, "assign")
    if issue.assigned_personnel is not None or issue.status != IssueStatus.UNASSIGNED:
        raise InvalidTransition(f"Cannot assign: issue {issue.id} is already assigned")


def validate_change_status(issue: Issue, target: IssueStatus) -> None:
    """Validate a worker-driven status change.

    Raises InvalidTransition when the issue is locked, completed, awaiting
    proof review or escalation review, or when the target can only be
    reached through another operation.
    """
    _ensure_not_locked(issue, "change status")
    _ensure_assigned(issue, "change status")
    if is_completed(issue):
        raise InvalidTransition(f"Cannot change status: issue {issue.id} is already completed")
    if issue.proof_status == ProofStatus.PENDING:
        raise InvalidTransition(f"Cannot change status: proof for issue {issue.id} is awaiting review")
    if has_pending_escalation(issue):
        raise InvalidTransition(f"Cannot change status: escalation for issue {issue.id} is awaiting review")
    if target not in WORKER_SETTABLE_STATUSES:
        valid = sorted(s.value for s in WORKER_SETTABLE_STATUSES)
        raise InvalidTransition(
            f"Invalid transition: {issue.status.value} -> {target.value}. Valid targets: {valid}"
        )


def validate_escalate(issue: Issue, reason: str) -> str:
    """Validate an escalation request and return the cleaned reason."""
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("Escalation reason must not be empty")
    _ensure_not_locked(issue, "escalate")
    _ensure_assigned(issue, "escalate")
    if is_completed(issue):
        raise InvalidTransition(f"Cannot escalate: issue {issue.id} is already completed")
    if has_pending_escalation(issue):
        raise InvalidTransition(f"Cannot escalate: issue {issue.id} already has a pending escalation")
    if issue.proof_status == ProofStatus.PENDING:
        raise InvalidTransition(f"Cannot escalate: proof for issue {issue.id} is awaiting review")
    return cleaned


def validate_submit_proof(issue: Issue) -> None:
    """Proof and escalation reviews are never open at the same time."""
    _ensure_not_locked(issue, "submit proof")
    _ensure_assigned(issue, "submit proof")
    if is_completed(issue):
        raise InvalidTransition(f"Cannot submit proof: issue {issue.id} is already completed")
    if has_pending_escalation(issue):
        raise InvalidTransition(f"Cannot submit proof: escalation for issue {issue.id} is awaiting review")


def validate_resolve_proof(issue: Issue) -> None:
    _ensure_not_locked(issue, "review proof")
    if issue.proof_status != ProofStatus.PENDING or not issue.proof_of_work:
        raise InvalidTransition(f"Cannot review proof: issue {issue.id} has no proof awaiting review")


def validate_resolve_escalation(issue: Issue) -> None:
    if is_completed(issue):
        raise InvalidTransition(f"Cannot review escalation: issue {issue.id} is already completed")
    if not has_pending_escalation(issue):
        raise InvalidTransition(f"Cannot review escalation: issue {issue.id} has no pending escalation")
