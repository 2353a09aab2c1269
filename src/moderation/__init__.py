"""
Submission Moderation

Review workflow for school evidence and audit submissions.

Provides:
- Review state machine (pending/submitted -> approved | rejected)
- Selection sets over filtered review lists
- Batch approve / reject / delete with a confirmation dialog
- Store client for the admin REST API
- Per-view controller with operator notices and view invalidation

Usage:
    from moderation import HttpSubmissionStore, ReviewViewController, SubmissionKind

    async with HttpSubmissionStore("http://localhost:8000/api/admin", reviewer_id="u-1") as store:
        view = ReviewViewController(store, SubmissionKind.EVIDENCE)
        await view.load()
        view.select_all()
        view.open_batch(BatchKind.APPROVE)
        await view.confirm_batch()
"""

from .models import (
    SubmissionKind,
    SubmissionStatus,
    Submission,
    SubmissionFilter,
    TransitionResult,
    BulkResult,
    ItemFailure,
    PendingCounts,
    OperatorNotice,
)
from .errors import (
    ModerationError,
    ReviewValidationError,
    EmptySelectionError,
    InvalidTransitionError,
    StoreRequestError,
    BatchOperationError,
    OperationInFlightError,
)
from .state_machine import ReviewStateMachine, validate_transition
from .selection import SelectionSet
from .batch import (
    BatchKind,
    BatchOperation,
    BatchDialog,
    BatchDialogState,
    BatchOperationCoordinator,
    BatchOutcome,
)
from .invalidation import ViewInvalidator
from .store_client import SubmissionStore, HttpSubmissionStore
from .controller import ReviewViewController, ReviewDialog

__all__ = [
    # Data model
    "SubmissionKind",
    "SubmissionStatus",
    "Submission",
    "SubmissionFilter",
    "TransitionResult",
    "BulkResult",
    "ItemFailure",
    "PendingCounts",
    "OperatorNotice",
    # Errors
    "ModerationError",
    "ReviewValidationError",
    "EmptySelectionError",
    "InvalidTransitionError",
    "StoreRequestError",
    "BatchOperationError",
    "OperationInFlightError",
    # Workflow
    "ReviewStateMachine",
    "validate_transition",
    "SelectionSet",
    "BatchKind",
    "BatchOperation",
    "BatchDialog",
    "BatchDialogState",
    "BatchOperationCoordinator",
    "BatchOutcome",
    "ViewInvalidator",
    # Store
    "SubmissionStore",
    "HttpSubmissionStore",
    # Views
    "ReviewViewController",
    "ReviewDialog",
]
