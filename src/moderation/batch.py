"""
Batch Operations

Coordinates approve / reject / delete over a selection of submissions:
- BatchOperation: frozen intent captured when the dialog opens
- BatchDialog: confirmation dialog state (notes, irreversible-action warning)
- BatchOperationCoordinator: validates the intent and issues one store request

The client treats a batch as all-or-nothing. The store's per-item report is
attached to the outcome for display only.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from moderation.errors import (
    BatchOperationError,
    EmptySelectionError,
    ModerationError,
    OperationInFlightError,
    ReviewValidationError,
)
from moderation.invalidation import PENDING_COUNTS_KEY, ViewInvalidator, submissions_prefix
from moderation.models import BulkResult, SubmissionKind, SubmissionStatus
from moderation.selection import SelectionSet
from moderation.state_machine import normalize_notes

logger = logging.getLogger(__name__)


class BatchKind(str, Enum):
    """Actions available on a multi-selection."""
    APPROVE = "approve"
    REJECT = "reject"
    DELETE = "delete"

    @property
    def target_status(self) -> Optional[SubmissionStatus]:
        if self == BatchKind.APPROVE:
            return SubmissionStatus.APPROVED
        if self == BatchKind.REJECT:
            return SubmissionStatus.REJECTED
        return None


class BatchDialogState(str, Enum):
    """States of the batch confirmation dialog."""
    CLOSED = "closed"
    OPEN = "open"
    VALIDATING = "validating"
    VALIDATION_FAILED = "validation_failed"
    SUBMITTING = "submitting"
    SUBMIT_FAILED = "submit_failed"


@dataclass(frozen=True)
class BatchOperation:
    """Operator intent for one batch action. Never persisted."""
    kind: BatchKind
    target_ids: Tuple[str, ...]
    notes: Optional[str] = None

    def validate(self, max_batch_size: Optional[int] = None) -> Optional[str]:
        """
        Check the intent before any request is made.

        Returns:
            Normalized notes to send

        Raises:
            EmptySelectionError: If there are no targets
            ReviewValidationError: If a rejection has no notes or the batch is too large
        """
        if not self.target_ids:
            raise EmptySelectionError()
        if max_batch_size is not None and len(self.target_ids) > max_batch_size:
            raise ReviewValidationError(
                f"Cannot {self.kind.value} more than {max_batch_size} submissions at once"
            )
        notes = normalize_notes(self.notes)
        if self.kind == BatchKind.REJECT and notes is None:
            raise ReviewValidationError("Review notes are required when rejecting submissions")
        if self.kind == BatchKind.DELETE:
            return None
        return notes


@dataclass(frozen=True)
class BatchOutcome:
    """Successful batch: the intent that was sent and the store's report."""
    operation: BatchOperation
    result: BulkResult


class BatchDialog:
    """
    Confirmation dialog for a batch action.

    The target ids are snapshotted at open time; later selection changes
    do not reach an open dialog.
    """

    def __init__(self):
        self.state = BatchDialogState.CLOSED
        self.operation: Optional[BatchOperation] = None
        self.irreversible_acknowledged = False
        self.last_error: Optional[ModerationError] = None
        self.transitions: List[BatchDialogState] = [BatchDialogState.CLOSED]

    @property
    def is_open(self) -> bool:
        return self.state != BatchDialogState.CLOSED

    @property
    def requires_acknowledgement(self) -> bool:
        return self.operation is not None and self.operation.kind == BatchKind.DELETE

    def transition_to(self, state: BatchDialogState) -> None:
        self.state = state
        self.transitions.append(state)

    def open(self, kind: BatchKind, target_ids: Sequence[str]) -> BatchOperation:
        self.operation = BatchOperation(kind=kind, target_ids=tuple(target_ids))
        self.irreversible_acknowledged = False
        self.last_error = None
        self.transition_to(BatchDialogState.OPEN)
        return self.operation

    def set_notes(self, notes: Optional[str]) -> None:
        if self.operation is None:
            raise ReviewValidationError("No batch operation is open")
        self.operation = replace(self.operation, notes=notes)

    def acknowledge_irreversible(self) -> None:
        """Operator confirmed the delete warning."""
        self.irreversible_acknowledged = True

    def close(self) -> None:
        self.operation = None
        self.irreversible_acknowledged = False
        self.transition_to(BatchDialogState.CLOSED)

    def fail(self, state: BatchDialogState, error: ModerationError) -> None:
        """Record a failure and return to OPEN with the intent intact."""
        self.last_error = error
        self.transition_to(state)
        self.transition_to(BatchDialogState.OPEN)


class BatchOperationCoordinator:
    """
    Runs batch actions for one review view.

    One confirm sends exactly one bulk request carrying every target id.
    """

    def __init__(
        self,
        store,
        kind: SubmissionKind,
        selection: SelectionSet,
        invalidator: ViewInvalidator,
        max_batch_size: Optional[int] = None,
    ):
        self._store = store
        self.kind = kind
        self.selection = selection
        self.invalidator = invalidator
        self.max_batch_size = max_batch_size
        self.dialog = BatchDialog()
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def can_confirm(self) -> bool:
        return self.dialog.state == BatchDialogState.OPEN and not self._in_flight

    def open(self, kind: BatchKind) -> BatchOperation:
        """Open the dialog over a snapshot of the current selection."""
        return self.dialog.open(kind, self.selection.snapshot())

    def cancel(self) -> None:
        """Discard the intent without a request and clear the selection."""
        if self._in_flight:
            raise OperationInFlightError("A batch request in flight cannot be cancelled")
        self.dialog.close()
        self.selection.clear()

    async def confirm(self) -> BatchOutcome:
        """
        Validate and submit the open batch operation.

        Returns:
            BatchOutcome with the store's per-item report

        Raises:
            OperationInFlightError: If a request is already pending
            ReviewValidationError: If the intent is invalid (no request made)
            BatchOperationError: If the store request fails
        """
        if self._in_flight:
            raise OperationInFlightError()

        dialog = self.dialog
        operation = dialog.operation
        if operation is None or dialog.state != BatchDialogState.OPEN:
            raise ReviewValidationError("No batch operation is open")

        dialog.transition_to(BatchDialogState.VALIDATING)
        try:
            notes = operation.validate(self.max_batch_size)
            if operation.kind == BatchKind.DELETE and not dialog.irreversible_acknowledged:
                raise ReviewValidationError(
                    "Deleting submissions cannot be undone; acknowledge the warning to continue"
                )
        except ReviewValidationError as e:
            dialog.fail(BatchDialogState.VALIDATION_FAILED, e)
            raise

        dialog.transition_to(BatchDialogState.SUBMITTING)
        self._in_flight = True
        try:
            if operation.kind == BatchKind.DELETE:
                result = await self._store.bulk_delete(self.kind, list(operation.target_ids))
            else:
                result = await self._store.bulk_review(
                    self.kind, list(operation.target_ids), operation.kind.target_status, notes
                )
        except Exception as e:
            error = BatchOperationError(operation.kind.value, e)
            logger.error(
                f"Batch {operation.kind.value} of {len(operation.target_ids)} {self.kind.value} failed: {e}",
                extra={"action": operation.kind.value, "target_count": len(operation.target_ids)},
            )
            dialog.fail(BatchDialogState.SUBMIT_FAILED, error)
            raise error from e
        finally:
            self._in_flight = False

        logger.info(
            f"Batch {operation.kind.value} of {len(operation.target_ids)} {self.kind.value} completed",
            extra={
                "action": operation.kind.value,
                "succeeded": len(result.succeeded),
                "failed": len(result.failed),
                "notifications_queued": result.notifications_queued,
            },
        )

        self.selection.clear()
        dialog.close()
        await self.invalidator.invalidate(submissions_prefix(self.kind), PENDING_COUNTS_KEY)
        return BatchOutcome(operation=operation, result=result)
