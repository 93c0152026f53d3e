"""Unit tests for display status derivation and transition validators."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone

import pytest

from civictask.errors import InvalidTransition, ValidationError
from civictask.lifecycle.states import (
    DisplayStatus,
    derive_display_status,
    display_status,
    parse_decision,
    parse_status,
    validate_assign,
    validate_change_status,
    validate_escalate,
    validate_resolve_escalation,
    validate_resolve_proof,
    validate_submit_proof,
)
from civictask.store.records import (
    Department,
    Escalation,
    EscalationStatus,
    Issue,
    IssueStatus,
    Personnel,
    ProofRecord,
    ProofStatus,
)

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def make_issue(**fields) -> Issue:
    data = {
        "id": "iss-1",
        "department": Department.WATER,
        "reported_at": NOW,
        "last_updated": NOW,
        "assigned_personnel": Personnel(id="w1", name="Asha"),
        "status": IssueStatus.IN_PROGRESS,
    }
    data.update(fields)
    return Issue(**data)


def escalation(status: EscalationStatus) -> Escalation:
    return Escalation(reason="Needs a JCB", escalated_by="w1", escalated_at=NOW, status=status)


def proof() -> ProofRecord:
    return ProofRecord(media_url="https://cdn.example/p.jpg", timestamp=NOW)


class TestDisplayStatus:
    def test_approved_escalation_wins_over_everything(self):
        result = derive_display_status(IssueStatus.RESOLVED, ProofStatus.APPROVED, EscalationStatus.APPROVED)
        assert result == DisplayStatus.ESCALATED

    def test_approved_proof_is_completed(self):
        assert derive_display_status(IssueStatus.PENDING_REVIEW, ProofStatus.APPROVED, None) == DisplayStatus.COMPLETED

    def test_resolved_is_completed(self):
        assert derive_display_status(IssueStatus.RESOLVED, ProofStatus.NONE, None) == DisplayStatus.COMPLETED

    def test_rejected_proof_shows_pending(self):
        result = derive_display_status(IssueStatus.PENDING_REVIEW, ProofStatus.REJECTED, None)
        assert result == DisplayStatus.PENDING

    def test_rejected_escalation_shows_pending(self):
        result = derive_display_status(IssueStatus.ESCALATED, ProofStatus.NONE, EscalationStatus.REJECTED)
        assert result == DisplayStatus.PENDING

    def test_assign_shows_pending(self):
        assert derive_display_status(IssueStatus.ASSIGN, ProofStatus.NONE, None) == DisplayStatus.PENDING

    @pytest.mark.parametrize("status", [
        IssueStatus.UNASSIGNED,
        IssueStatus.PENDING,
        IssueStatus.IN_PROGRESS,
        IssueStatus.ESCALATED,
        IssueStatus.PENDING_REVIEW,
    ])
    def test_other_raw_statuses_pass_through(self, status):
        assert derive_display_status(status, ProofStatus.NONE, None).value == status.value

    def test_pure_and_idempotent_over_all_inputs(self):
        """Same inputs always give the same output; every output is a display status."""
        combos = itertools.product(IssueStatus, ProofStatus, [None, *EscalationStatus])
        for status, proof_status, esc in combos:
            first = derive_display_status(status, proof_status, esc)
            assert derive_display_status(status, proof_status, esc) == first
            assert isinstance(first, DisplayStatus)

    def test_display_status_reads_issue_snapshot(self):
        issue = make_issue(status=IssueStatus.ESCALATED, escalation=escalation(EscalationStatus.PENDING))
        assert display_status(issue) == DisplayStatus.ESCALATED


class TestParsers:
    def test_parse_status(self):
        assert parse_status("in-progress") == IssueStatus.IN_PROGRESS

    def test_parse_unknown_status(self):
        with pytest.raises(ValidationError, match="Unknown status"):
            parse_status("done")

    def test_parse_decision(self):
        assert parse_decision("approved") == "approved"
        with pytest.raises(ValidationError):
            parse_decision("maybe")


class TestValidators:
    def test_assign_requires_unassigned(self):
        validate_assign(make_issue(status=IssueStatus.UNASSIGNED, assigned_personnel=None))
        with pytest.raises(InvalidTransition, match="already assigned"):
            validate_assign(make_issue())

    def test_change_status_to_in_progress(self):
        validate_change_status(make_issue(status=IssueStatus.ASSIGN), IssueStatus.IN_PROGRESS)

    @pytest.mark.parametrize("target", [
        IssueStatus.RESOLVED,
        IssueStatus.ESCALATED,
        IssueStatus.PENDING_REVIEW,
        IssueStatus.UNASSIGNED,
        IssueStatus.ASSIGN,
    ])
    def test_change_status_rejects_operation_only_targets(self, target):
        with pytest.raises(InvalidTransition, match="Invalid transition"):
            validate_change_status(make_issue(), target)

    def test_change_status_locked(self):
        issue = make_issue(status=IssueStatus.ESCALATED, escalation=escalation(EscalationStatus.APPROVED))
        with pytest.raises(InvalidTransition, match="locked"):
            validate_change_status(issue, IssueStatus.IN_PROGRESS)

    def test_change_status_while_proof_pending(self):
        issue = make_issue(
            status=IssueStatus.PENDING_REVIEW, proof_status=ProofStatus.PENDING, proof_of_work=(proof(),),
        )
        with pytest.raises(InvalidTransition, match="awaiting review"):
            validate_change_status(issue, IssueStatus.IN_PROGRESS)

    def test_change_status_after_rejected_proof(self):
        issue = make_issue(
            status=IssueStatus.PENDING_REVIEW, proof_status=ProofStatus.REJECTED, proof_of_work=(proof(),),
        )
        validate_change_status(issue, IssueStatus.IN_PROGRESS)

    def test_change_status_unassigned(self):
        with pytest.raises(InvalidTransition, match="not assigned"):
            validate_change_status(
                make_issue(status=IssueStatus.UNASSIGNED, assigned_personnel=None), IssueStatus.IN_PROGRESS,
            )

    def test_escalate_empty_reason_is_validation_error(self):
        with pytest.raises(ValidationError):
            validate_escalate(make_issue(), "   ")

    def test_escalate_returns_trimmed_reason(self):
        assert validate_escalate(make_issue(), "  Needs excavation  ") == "Needs excavation"

    def test_escalate_twice(self):
        issue = make_issue(status=IssueStatus.ESCALATED, escalation=escalation(EscalationStatus.PENDING))
        with pytest.raises(InvalidTransition, match="pending escalation"):
            validate_escalate(issue, "again")

    def test_escalate_after_rejection_allowed(self):
        issue = make_issue(status=IssueStatus.ESCALATED, escalation=escalation(EscalationStatus.REJECTED))
        assert validate_escalate(issue, "still blocked") == "still blocked"

    def test_submit_proof_locked(self):
        issue = make_issue(status=IssueStatus.ESCALATED, escalation=escalation(EscalationStatus.APPROVED))
        with pytest.raises(InvalidTransition):
            validate_submit_proof(issue)

    def test_submit_proof_completed(self):
        issue = make_issue(status=IssueStatus.RESOLVED, proof_status=ProofStatus.APPROVED, proof_of_work=(proof(),))
        with pytest.raises(InvalidTransition, match="already completed"):
            validate_submit_proof(issue)

    def test_resolve_proof_needs_pending_proof(self):
        with pytest.raises(InvalidTransition, match="no proof awaiting review"):
            validate_resolve_proof(make_issue())

    def test_resolve_escalation_needs_pending(self):
        with pytest.raises(InvalidTransition, match="no pending escalation"):
            validate_resolve_escalation(make_issue())

    def test_submit_proof_while_escalation_pending(self):
        issue = make_issue(status=IssueStatus.ESCALATED, escalation=escalation(EscalationStatus.PENDING))
        with pytest.raises(InvalidTransition, match="escalation"):
            validate_submit_proof(issue)

    def test_submit_proof_after_rejected_escalation(self):
        validate_submit_proof(make_issue(escalation=escalation(EscalationStatus.REJECTED)))

    def test_escalate_while_proof_pending(self):
        issue = make_issue(
            status=IssueStatus.PENDING_REVIEW, proof_status=ProofStatus.PENDING, proof_of_work=(proof(),),
        )
        with pytest.raises(InvalidTransition, match="awaiting review"):
            validate_escalate(issue, "Blocked")

    def test_resolve_escalation_on_completed_issue(self):
        issue = make_issue(
            status=IssueStatus.RESOLVED,
            proof_status=ProofStatus.APPROVED,
            proof_of_work=(proof(),),
            escalation=escalation(EscalationStatus.PENDING),
        )
        with pytest.raises(InvalidTransition, match="already completed"):
            validate_resolve_escalation(issue)
