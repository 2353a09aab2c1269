"""
Review Service - Server side of the submission review workflow.

Handles:
- Single reviews with optimistic status checks
- Bulk review and bulk delete with per-item results
- Pending counts for the admin dashboard

Ordering per reviewed item:
1. Conditional status update, committed on its own
2. Activity log entry
3. Notification dispatch
4. School progression, after approvals (once per school in a bulk request)

Steps 2 to 4 never undo step 1.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from database.repositories import SubmissionRepository, to_submission_dict
from moderation.errors import InvalidTransitionError, ReviewValidationError
from moderation.models import REVIEW_OUTCOMES, SubmissionKind, SubmissionStatus
from moderation.state_machine import normalize_notes, validate_transition
from notifications.dispatcher import NotificationDispatcher

from .activity_log import ActivityAction, ActivityLogService
from .progression import SchoolProgressionService

logger = logging.getLogger(__name__)


_NOT_FOUND = {
    SubmissionKind.EVIDENCE: "Evidence not found",
    SubmissionKind.AUDIT: "Audit not found",
}


class SubmissionNotFoundError(Exception):
    """Raised when a submission id does not exist."""

    def __init__(self, kind: SubmissionKind, submission_id: str):
        self.kind = kind
        self.submission_id = submission_id
        super().__init__(_NOT_FOUND[kind])


@dataclass
class ReviewOutcome:
    """Result of a single review."""
    submission: Dict[str, Any]
    status_updated: bool
    notification_queued: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submission": self.submission,
            "statusUpdated": self.status_updated,
            "notificationQueued": self.notification_queued,
        }


@dataclass
class BulkReport:
    """Per-item results of a bulk request."""
    success: List[str] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)
    notifications_queued: int = 0

    def fail(self, submission_id: str, reason: str) -> None:
        self.failed.append({"id": submission_id, "reason": reason})

    def to_dict(self, verb: str) -> Dict[str, Any]:
        return {
            "message": f"Bulk {verb} completed: {len(self.success)} succeeded, {len(self.failed)} failed",
            "results": {
                "success": self.success,
                "failed": self.failed,
                "notificationsQueued": self.notifications_queued,
            },
        }


def _unique(ids: Sequence[str]) -> List[str]:
    seen = set()
    ordered = []
    for submission_id in ids:
        if submission_id not in seen:
            seen.add(submission_id)
            ordered.append(submission_id)
    return ordered


class ReviewService:
    """
    Reviews submissions for the admin API.

    Example:
        service = ReviewService(session, NotificationDispatcher())
        outcome = await service.review(
            SubmissionKind.EVIDENCE, "e-1", SubmissionStatus.APPROVED, None, reviewer_id="admin-1"
        )
    """

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: NotificationDispatcher,
        activity_log: Optional[ActivityLogService] = None,
    ):
        self.session = session
        self.repository = SubmissionRepository(session)
        self.dispatcher = dispatcher
        self.activity_log = activity_log or ActivityLogService(session)
        self.progression = SchoolProgressionService(session)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def list(
        self,
        kind: SubmissionKind,
        status: Optional[SubmissionStatus] = None,
        assigned_to: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        records = await self.repository.list(kind, status=status, assigned_to=assigned_to)
        return [to_submission_dict(kind, record) for record in records]

    async def pending_counts(self) -> Dict[str, int]:
        return await self.repository.pending_counts()

    # =========================================================================
    # SINGLE REVIEW
    # =========================================================================

    async def review(
        self,
        kind: SubmissionKind,
        submission_id: str,
        status: SubmissionStatus,
        notes: Optional[str],
        reviewer_id: Optional[str],
    ) -> ReviewOutcome:
        """
        Review one submission.

        Raises:
            SubmissionNotFoundError: Unknown id
            InvalidTransitionError: Submission is not awaiting review
            ReviewValidationError: Rejection without notes
        """
        if status not in REVIEW_OUTCOMES:
            raise ReviewValidationError(f"Status must be 'approved' or 'rejected', got '{status.value}'")

        record = await self.repository.get(kind, submission_id)
        if record is None:
            raise SubmissionNotFoundError(kind, submission_id)

        current = SubmissionStatus(record.status.value)
        cleaned = validate_transition(kind, current, status, notes)

        updated = await self.repository.apply_review(kind, submission_id, status, cleaned, reviewer_id)
        if not updated:
            # Lost a race with another reviewer, or the row vanished
            await self.session.rollback()
            latest = await self.repository.get(kind, submission_id)
            if latest is None:
                raise SubmissionNotFoundError(kind, submission_id)
            raise InvalidTransitionError(
                f"{kind.value.capitalize()} {submission_id} is no longer awaiting review",
                latest.status.value,
                status.value,
            )

        await self.session.commit()
        logger.info(
            f"Reviewed {kind.value} {submission_id}: {current.value} -> {status.value}",
            extra={"submission_id": submission_id, "reviewer_id": reviewer_id},
        )

        await self._log_review(kind, submission_id, status, cleaned, reviewer_id)
        record = await self.repository.get(kind, submission_id)
        queued = await self._dispatch(kind, record, status, cleaned)
        if status == SubmissionStatus.APPROVED:
            await self._update_progression([record.school_id])
            record = await self.repository.get(kind, submission_id)

        return ReviewOutcome(
            submission=to_submission_dict(kind, record),
            status_updated=True,
            notification_queued=queued,
        )

    # =========================================================================
    # BULK OPERATIONS
    # =========================================================================

    async def bulk_review(
        self,
        kind: SubmissionKind,
        ids: Sequence[str],
        status: SubmissionStatus,
        notes: Optional[str],
        reviewer_id: Optional[str],
    ) -> BulkReport:
        """
        Review many submissions. Each item commits independently.

        Raises:
            ReviewValidationError: Empty id list, non-outcome status, or
                rejection without notes
        """
        if not ids:
            raise ReviewValidationError(f"{kind.value.capitalize()} IDs array is required")
        if status not in REVIEW_OUTCOMES:
            raise ReviewValidationError(f"Status must be 'approved' or 'rejected', got '{status.value}'")
        cleaned = normalize_notes(notes)
        if status == SubmissionStatus.REJECTED and cleaned is None:
            raise ReviewValidationError("Review notes are required when rejecting a submission")

        report = BulkReport()
        affected_schools: List[str] = []
        for submission_id in _unique(ids):
            try:
                updated = await self.repository.apply_review(kind, submission_id, status, cleaned, reviewer_id)
                if not updated:
                    await self.session.rollback()
                    exists = await self.repository.get(kind, submission_id)
                    report.fail(submission_id, "Not awaiting review" if exists else _NOT_FOUND[kind])
                    continue
                await self.session.commit()
            except Exception:
                logger.exception(f"Bulk review failed for {kind.value} {submission_id}")
                await self.session.rollback()
                report.fail(submission_id, "Review failed")
                continue

            report.success.append(submission_id)
            await self._log_review(kind, submission_id, status, cleaned, reviewer_id)
            record = await self.repository.get(kind, submission_id)
            if record is not None and record.school_id not in affected_schools:
                affected_schools.append(record.school_id)
            if await self._dispatch(kind, record, status, cleaned):
                report.notifications_queued += 1

        if status == SubmissionStatus.APPROVED:
            await self._update_progression(affected_schools)

        logger.info(
            f"Bulk {status.value} {kind.value}: {len(report.success)} succeeded, {len(report.failed)} failed",
            extra={"reviewer_id": reviewer_id},
        )
        return report

    async def bulk_delete(
        self,
        kind: SubmissionKind,
        ids: Sequence[str],
        reviewer_id: Optional[str],
    ) -> BulkReport:
        """Delete many submissions. Deleted items send no notification."""
        if not ids:
            raise ReviewValidationError(f"{kind.value.capitalize()} IDs array is required")

        report = BulkReport()
        for submission_id in _unique(ids):
            try:
                deleted = await self.repository.delete(kind, submission_id)
                if not deleted:
                    await self.session.rollback()
                    report.fail(submission_id, _NOT_FOUND[kind])
                    continue
                await self.session.commit()
            except Exception:
                logger.exception(f"Bulk delete failed for {kind.value} {submission_id}")
                await self.session.rollback()
                report.fail(submission_id, "Delete failed")
                continue

            report.success.append(submission_id)
            await self.activity_log.log_action(
                reviewer_id, ActivityAction.for_delete(kind), kind.value, submission_id
            )
            await self.session.commit()

        logger.info(
            f"Bulk delete {kind.value}: {len(report.success)} succeeded, {len(report.failed)} failed",
            extra={"reviewer_id": reviewer_id},
        )
        return report

    # =========================================================================
    # SIDE EFFECTS
    # =========================================================================

    async def _log_review(
        self,
        kind: SubmissionKind,
        submission_id: str,
        status: SubmissionStatus,
        notes: Optional[str],
        reviewer_id: Optional[str],
    ) -> None:
        await self.activity_log.log_action(
            reviewer_id,
            ActivityAction.for_review(kind, status),
            kind.value,
            submission_id,
            details={"status": status.value, "reviewNotes": notes},
        )
        await self.session.commit()

    async def _update_progression(self, school_ids: Sequence[str]) -> None:
        for school_id in school_ids:
            try:
                await self.progression.check_and_update(school_id)
                await self.session.commit()
            except Exception:
                logger.exception(f"Failed to update progression for school {school_id}")
                await self.session.rollback()

    async def _dispatch(self, kind: SubmissionKind, record, status: SubmissionStatus, notes: Optional[str]) -> bool:
        if record is None:
            return False
        submitter = record.submitter
        school = record.school
        return await self.dispatcher.dispatch_review(
            kind,
            status,
            submission_id=record.id,
            recipient_email=submitter.email if submitter else None,
            school_name=school.name if school else None,
            title=getattr(record, "title", None),
            review_notes=notes,
        )
