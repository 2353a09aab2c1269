"""
Review State Machine

Legal status transitions for school submissions:
- evidence: PENDING -> APPROVED | REJECTED
- audits:   SUBMITTED -> APPROVED | REJECTED
- APPROVED and REJECTED are terminal, DRAFT audits are not reviewable

Rules:
- Rejection requires non-empty review notes
- A transition is a single store request; nothing is changed locally
"""

import logging
from typing import Dict, List, Optional

from moderation.errors import InvalidTransitionError, ReviewValidationError
from moderation.models import (
    Submission,
    SubmissionKind,
    SubmissionStatus,
    TransitionResult,
)

logger = logging.getLogger(__name__)


# Valid status transitions per submission kind
VALID_TRANSITIONS: Dict[SubmissionKind, Dict[SubmissionStatus, List[SubmissionStatus]]] = {
    SubmissionKind.EVIDENCE: {
        SubmissionStatus.PENDING: [SubmissionStatus.APPROVED, SubmissionStatus.REJECTED],
        SubmissionStatus.APPROVED: [],
        SubmissionStatus.REJECTED: [],
    },
    SubmissionKind.AUDIT: {
        SubmissionStatus.DRAFT: [],
        SubmissionStatus.SUBMITTED: [SubmissionStatus.APPROVED, SubmissionStatus.REJECTED],
        SubmissionStatus.APPROVED: [],
        SubmissionStatus.REJECTED: [],
    },
}


def normalize_notes(notes: Optional[str]) -> Optional[str]:
    """Strip review notes, mapping blank input to None."""
    if notes is None:
        return None
    stripped = notes.strip()
    return stripped or None


def validate_transition(
    kind: SubmissionKind,
    current: SubmissionStatus,
    target: SubmissionStatus,
    notes: Optional[str] = None,
) -> Optional[str]:
    """
    Check a review transition without touching the store.

    Args:
        kind: Submission kind
        current: Status the submission holds now
        target: Requested status
        notes: Operator review notes

    Returns:
        The normalized notes to persist

    Raises:
        InvalidTransitionError: If the move is not allowed from current
        ReviewValidationError: If a rejection has no notes
    """
    valid_targets = VALID_TRANSITIONS[kind].get(current, [])

    if target not in valid_targets:
        raise InvalidTransitionError(
            f"Cannot transition {kind.value} from {current.value} to {target.value}. "
            f"Valid transitions: {[s.value for s in valid_targets]}",
            current.value,
            target.value,
        )

    cleaned = normalize_notes(notes)
    if target == SubmissionStatus.REJECTED and cleaned is None:
        raise ReviewValidationError("Review notes are required when rejecting a submission")

    return cleaned


class ReviewStateMachine:
    """
    Issues single-submission review transitions against a SubmissionStore.

    The submission snapshot passed in is never modified. On success the
    result carries the snapshot read back from the store; on failure the
    store error propagates and the caller keeps its dialog state for retry.
    """

    def __init__(self, store):
        """
        Initialize the state machine.

        Args:
            store: SubmissionStore implementation
        """
        self._store = store

    def can_transition(self, submission: Submission, target_status: SubmissionStatus) -> bool:
        return target_status in VALID_TRANSITIONS[submission.kind].get(submission.status, [])

    async def request_transition(
        self,
        submission: Submission,
        target_status: SubmissionStatus,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """
        Move a submission out of its reviewable status.

        Args:
            submission: Current snapshot of the submission
            target_status: APPROVED or REJECTED
            notes: Review notes (required for REJECTED)

        Returns:
            TransitionResult from the store

        Raises:
            InvalidTransitionError: If the transition is illegal
            ReviewValidationError: If rejection notes are missing
            StoreRequestError: If the store request fails
        """
        cleaned = validate_transition(submission.kind, submission.status, target_status, notes)

        logger.info(
            f"Requesting {submission.kind.value} {submission.id} -> {target_status.value}",
            extra={
                "submission_id": submission.id,
                "kind": submission.kind.value,
                "previous_status": submission.status.value,
                "new_status": target_status.value,
            },
        )

        return await self._store.update_status(
            submission.kind, submission.id, target_status, cleaned
        )


__all__ = [
    "VALID_TRANSITIONS",
    "normalize_notes",
    "validate_transition",
    "ReviewStateMachine",
]
