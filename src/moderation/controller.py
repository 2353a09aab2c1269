"""
Review View Controller

Owns the state of one review view (evidence queue or audit queue):
- the loaded submission list and its filter
- the selection set and batch dialog
- the single-submission review dialog
- operator notices for every success and failure

One controller exists per open view. Collaborators are injected.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from moderation.batch import BatchKind, BatchOperation, BatchOperationCoordinator, BatchOutcome
from moderation.errors import ModerationError, OperationInFlightError, ReviewValidationError
from moderation.invalidation import (
    PENDING_COUNTS_KEY,
    ViewInvalidator,
    submissions_key,
    submissions_prefix,
)
from moderation.models import (
    OperatorNotice,
    PendingCounts,
    Submission,
    SubmissionFilter,
    SubmissionKind,
    SubmissionStatus,
    TransitionResult,
)
from moderation.selection import SelectionSet
from moderation.state_machine import ReviewStateMachine

logger = logging.getLogger(__name__)

_ACTION_VERBS = {
    SubmissionStatus.APPROVED: "approve",
    SubmissionStatus.REJECTED: "reject",
}


@dataclass
class ReviewDialog:
    """Single-submission review dialog."""
    submission: Submission
    target_status: SubmissionStatus
    notes: Optional[str] = None
    consent_warning: bool = False
    consent_acknowledged: bool = False

    @property
    def action(self) -> str:
        return _ACTION_VERBS.get(self.target_status, self.target_status.value)


def needs_consent_warning(submission: Submission, target_status: SubmissionStatus) -> bool:
    """Approving evidence from a school without photo consent needs confirmation."""
    return (
        submission.kind == SubmissionKind.EVIDENCE
        and target_status == SubmissionStatus.APPROVED
        and submission.photo_consent_status != "approved"
    )


class ReviewViewController:
    """
    Controller for one moderation view.

    Example:
        controller = ReviewViewController(store, SubmissionKind.EVIDENCE)
        await controller.load()
        controller.open_review(submission_id, SubmissionStatus.REJECTED)
        controller.set_review_notes("Photo is blurry")
        await controller.confirm_review()
    """

    def __init__(
        self,
        store,
        kind: SubmissionKind,
        invalidator: Optional[ViewInvalidator] = None,
        selection: Optional[SelectionSet] = None,
        filters: Optional[SubmissionFilter] = None,
        max_batch_size: Optional[int] = None,
    ):
        self.store = store
        self.kind = kind
        self.invalidator = invalidator or ViewInvalidator()
        self.selection = selection or SelectionSet()
        self.filters = filters or SubmissionFilter()
        self.state_machine = ReviewStateMachine(store)
        self.batch = BatchOperationCoordinator(
            store, kind, self.selection, self.invalidator, max_batch_size=max_batch_size
        )

        self.submissions: List[Submission] = []
        self.pending_counts: Optional[PendingCounts] = None
        self.review_dialog: Optional[ReviewDialog] = None
        self.notices: List[OperatorNotice] = []

        self._review_in_flight = False
        self._list_unsubscribe: Optional[Callable[[], None]] = None
        self._counts_unsubscribe: Optional[Callable[[], None]] = None

    # =========================================================================
    # LIST & FILTER
    # =========================================================================

    @property
    def visible_ids(self) -> List[str]:
        return [s.id for s in self.submissions]

    def get_submission(self, submission_id: str) -> Submission:
        for submission in self.submissions:
            if submission.id == submission_id:
                return submission
        raise KeyError(submission_id)

    async def load(self) -> List[Submission]:
        """Fetch the list for the current filter and watch it for invalidation."""
        if self._list_unsubscribe is None:
            self._list_unsubscribe = self.invalidator.subscribe(
                submissions_key(self.kind, self.filters), self.refresh
            )
        return await self.refresh()

    async def refresh(self) -> List[Submission]:
        self.submissions = await self.store.list_submissions(self.kind, self.filters)
        return self.submissions

    async def set_filter(self, filters: SubmissionFilter) -> List[Submission]:
        """Change the list filter. The selection is kept, including hidden ids."""
        if self._list_unsubscribe is not None:
            self._list_unsubscribe()
            self._list_unsubscribe = None
        self.filters = filters
        return await self.load()

    async def load_pending_counts(self) -> PendingCounts:
        """Fetch pending counts and watch them for invalidation."""
        if self._counts_unsubscribe is None:
            self._counts_unsubscribe = self.invalidator.subscribe(PENDING_COUNTS_KEY, self.refresh_pending_counts)
        return await self.refresh_pending_counts()

    async def refresh_pending_counts(self) -> PendingCounts:
        self.pending_counts = await self.store.pending_counts()
        return self.pending_counts

    # =========================================================================
    # SELECTION
    # =========================================================================

    def toggle(self, submission_id: str) -> bool:
        return self.selection.toggle(submission_id)

    def select_all(self) -> None:
        self.selection.select_all_visible(self.visible_ids)

    @property
    def all_visible_selected(self) -> bool:
        visible = set(self.visible_ids)
        return bool(visible) and visible == set(self.selection)

    # =========================================================================
    # SINGLE REVIEW
    # =========================================================================

    def open_review(self, submission_id: str, target_status: SubmissionStatus) -> ReviewDialog:
        submission = self.get_submission(submission_id)
        self.review_dialog = ReviewDialog(
            submission=submission,
            target_status=target_status,
            consent_warning=needs_consent_warning(submission, target_status),
        )
        return self.review_dialog

    def set_review_notes(self, notes: Optional[str]) -> None:
        self._require_review_dialog().notes = notes

    def acknowledge_consent_warning(self) -> None:
        self._require_review_dialog().consent_acknowledged = True

    def cancel_review(self) -> None:
        if self._review_in_flight:
            raise OperationInFlightError("A review request in flight cannot be cancelled")
        self.review_dialog = None

    @property
    def review_in_flight(self) -> bool:
        return self._review_in_flight

    @property
    def can_confirm_review(self) -> bool:
        return self.review_dialog is not None and not self._review_in_flight

    async def confirm_review(self) -> TransitionResult:
        """
        Send the open review dialog to the store.

        On failure the dialog stays open with its notes and an error notice
        is recorded; the error is re-raised to the caller.

        Raises:
            OperationInFlightError: If a review request is already pending
            ModerationError: If validation or the store request fails
        """
        if self._review_in_flight:
            raise OperationInFlightError()
        dialog = self._require_review_dialog()
        title = f"Failed to {dialog.action} {self.kind.value}"

        self._review_in_flight = True
        try:
            if dialog.consent_warning and not dialog.consent_acknowledged:
                raise ReviewValidationError(
                    "This school has not approved photo consent; acknowledge the warning to approve"
                )
            result = await self.state_machine.request_transition(
                dialog.submission, dialog.target_status, dialog.notes
            )
        except ModerationError as e:
            self._notify("error", title, str(e))
            raise
        finally:
            self._review_in_flight = False

        message = f"Submission {dialog.target_status.value}"
        if not result.notification_queued:
            message = f"{message}; the school was not notified"
        self._notify("success", f"{dialog.target_status.value.capitalize()} {self.kind.value}", message)

        self.review_dialog = None
        await self.invalidator.invalidate(submissions_prefix(self.kind), PENDING_COUNTS_KEY)
        return result

    # =========================================================================
    # BATCH
    # =========================================================================

    def open_batch(self, kind: BatchKind) -> BatchOperation:
        return self.batch.open(kind)

    def set_batch_notes(self, notes: Optional[str]) -> None:
        self.batch.dialog.set_notes(notes)

    def acknowledge_batch_warning(self) -> None:
        self.batch.dialog.acknowledge_irreversible()

    def cancel_batch(self) -> None:
        self.batch.cancel()

    async def confirm_batch(self) -> BatchOutcome:
        operation = self.batch.dialog.operation
        action = operation.kind.value if operation else "process"
        try:
            outcome = await self.batch.confirm()
        except ModerationError as e:
            self._notify("error", f"Failed to {action} selected {self.kind.value}", str(e))
            raise

        result = outcome.result
        message = result.message or f"{len(result.succeeded)} of {result.total} processed"
        self._notify("success", f"Bulk {action} complete", message)
        return outcome

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def leave(self) -> None:
        """Navigate away: drop selection, dialogs and invalidation hooks."""
        self.selection.clear()
        self.review_dialog = None
        if self.batch.dialog.is_open and not self.batch.in_flight:
            self.batch.dialog.close()
        if self._list_unsubscribe is not None:
            self._list_unsubscribe()
            self._list_unsubscribe = None
        if self._counts_unsubscribe is not None:
            self._counts_unsubscribe()
            self._counts_unsubscribe = None

    def _require_review_dialog(self) -> ReviewDialog:
        if self.review_dialog is None:
            raise ReviewValidationError("No review is open")
        return self.review_dialog

    def _notify(self, level: str, title: str, message: str) -> None:
        self.notices.append(OperatorNotice(level=level, title=title, message=message))
        log = logger.warning if level == "error" else logger.info
        log(f"{title}: {message}", extra={"kind": self.kind.value})
