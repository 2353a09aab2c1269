"""
Tests for the review state machine.

Tests:
- Transition table per submission kind
- Rejection notes requirement
- Store calls issued by request_transition
"""

import pytest

from moderation.errors import InvalidTransitionError, ReviewValidationError, StoreRequestError
from moderation.models import SubmissionKind, SubmissionStatus
from moderation.state_machine import (
    VALID_TRANSITIONS,
    ReviewStateMachine,
    normalize_notes,
    validate_transition,
)


class TestTransitionTable:
    """Tests for the legal transition table."""

    @pytest.mark.parametrize("kind, start", [
        (SubmissionKind.EVIDENCE, SubmissionStatus.PENDING),
        (SubmissionKind.AUDIT, SubmissionStatus.SUBMITTED),
    ])
    def test_reviewable_status_allows_both_outcomes(self, kind, start):
        assert VALID_TRANSITIONS[kind][start] == [SubmissionStatus.APPROVED, SubmissionStatus.REJECTED]

    @pytest.mark.parametrize("kind", list(SubmissionKind))
    def test_outcomes_are_terminal(self, kind):
        assert VALID_TRANSITIONS[kind][SubmissionStatus.APPROVED] == []
        assert VALID_TRANSITIONS[kind][SubmissionStatus.REJECTED] == []

    def test_draft_audit_not_reviewable(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition(SubmissionKind.AUDIT, SubmissionStatus.DRAFT, SubmissionStatus.APPROVED)

        assert exc_info.value.current_status == "draft"
        assert exc_info.value.target_status == "approved"

    def test_approved_evidence_cannot_be_rejected(self):
        with pytest.raises(InvalidTransitionError, match="Cannot transition evidence from approved"):
            validate_transition(
                SubmissionKind.EVIDENCE, SubmissionStatus.APPROVED, SubmissionStatus.REJECTED, "late"
            )

    def test_evidence_cannot_move_back_to_pending(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(SubmissionKind.EVIDENCE, SubmissionStatus.PENDING, SubmissionStatus.PENDING)


class TestReviewNotes:
    """Tests for review notes handling."""

    def test_approval_without_notes(self):
        assert validate_transition(
            SubmissionKind.EVIDENCE, SubmissionStatus.PENDING, SubmissionStatus.APPROVED
        ) is None

    def test_approval_keeps_optional_notes(self):
        assert validate_transition(
            SubmissionKind.EVIDENCE, SubmissionStatus.PENDING, SubmissionStatus.APPROVED, "  Great  "
        ) == "Great"

    @pytest.mark.parametrize("notes", [None, "", "   ", "\n\t"])
    def test_rejection_requires_notes(self, notes):
        with pytest.raises(ReviewValidationError, match="Review notes are required"):
            validate_transition(
                SubmissionKind.EVIDENCE, SubmissionStatus.PENDING, SubmissionStatus.REJECTED, notes
            )

    def test_audit_rejection_requires_notes(self):
        with pytest.raises(ReviewValidationError):
            validate_transition(SubmissionKind.AUDIT, SubmissionStatus.SUBMITTED, SubmissionStatus.REJECTED)

    def test_normalize_notes(self):
        assert normalize_notes(None) is None
        assert normalize_notes("  ") is None
        assert normalize_notes(" Blurry photo ") == "Blurry photo"


class TestRequestTransition:
    """Tests for ReviewStateMachine.request_transition."""

    @pytest.mark.asyncio
    async def test_approve_issues_one_update(self, store):
        machine = ReviewStateMachine(store)
        submission = store.submissions["e1"]

        result = await machine.request_transition(submission, SubmissionStatus.APPROVED)

        assert store.calls_named("update") == [
            ("update", SubmissionKind.EVIDENCE, "e1", SubmissionStatus.APPROVED, None)
        ]
        assert result.status_updated
        assert result.submission.status == SubmissionStatus.APPROVED

    @pytest.mark.asyncio
    async def test_snapshot_is_not_mutated(self, store):
        machine = ReviewStateMachine(store)
        submission = store.submissions["e1"]

        await machine.request_transition(submission, SubmissionStatus.REJECTED, "Blurry")

        assert submission.status == SubmissionStatus.PENDING
        assert submission.review_notes is None

    @pytest.mark.asyncio
    async def test_rejection_sends_trimmed_notes(self, store):
        machine = ReviewStateMachine(store)

        await machine.request_transition(store.submissions["e2"], SubmissionStatus.REJECTED, "  Blurry  ")

        assert store.calls_named("update")[0][-1] == "Blurry"

    @pytest.mark.asyncio
    async def test_invalid_rejection_makes_no_request(self, store):
        machine = ReviewStateMachine(store)

        with pytest.raises(ReviewValidationError):
            await machine.request_transition(store.submissions["e1"], SubmissionStatus.REJECTED, "  ")

        assert store.calls_named("update") == []

    @pytest.mark.asyncio
    async def test_terminal_submission_makes_no_request(self, store, evidence_factory):
        approved = evidence_factory("e9", SubmissionStatus.APPROVED)
        machine = ReviewStateMachine(store)

        with pytest.raises(InvalidTransitionError):
            await machine.request_transition(approved, SubmissionStatus.REJECTED, "Changed my mind")

        assert store.calls_named("update") == []

    @pytest.mark.asyncio
    async def test_store_error_propagates(self, store, store_error):
        store.fail_with = store_error
        machine = ReviewStateMachine(store)

        with pytest.raises(StoreRequestError) as exc_info:
            await machine.request_transition(store.submissions["e1"], SubmissionStatus.APPROVED)

        assert exc_info.value.status_code == 500

    def test_can_transition(self, store, audit_factory):
        machine = ReviewStateMachine(store)

        assert machine.can_transition(store.submissions["a1"], SubmissionStatus.APPROVED)
        assert not machine.can_transition(audit_factory("a9", SubmissionStatus.DRAFT), SubmissionStatus.APPROVED)
