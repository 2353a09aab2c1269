"""
Pytest fixtures for moderation workflow tests.

Provides:
- FakeSubmissionStore recording every call
- Sample evidence and audit snapshots
"""

from dataclasses import replace
from typing import Dict, List, Optional, Sequence

import pytest

from moderation.errors import StoreRequestError
from moderation.models import (
    BulkResult,
    PendingCounts,
    Submission,
    SubmissionFilter,
    SubmissionKind,
    SubmissionStatus,
    TransitionResult,
)


class FakeSubmissionStore:
    """In-memory SubmissionStore. Set `fail_with` to make the next calls raise."""

    def __init__(self, submissions: Optional[List[Submission]] = None):
        self.submissions: Dict[str, Submission] = {s.id: s for s in submissions or []}
        self.calls: List[tuple] = []
        self.fail_with: Optional[Exception] = None
        self.notification_queued = True

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def list_submissions(self, kind: SubmissionKind, filters: Optional[SubmissionFilter] = None):
        self.calls.append(("list", kind, filters))
        self._maybe_fail()
        filters = filters or SubmissionFilter()
        return [
            s for s in self.submissions.values()
            if s.kind == kind and (filters.status is None or s.status == filters.status)
        ]

    async def update_status(self, kind, submission_id, status, notes=None):
        self.calls.append(("update", kind, submission_id, status, notes))
        self._maybe_fail()
        updated = replace(self.submissions[submission_id], status=status, review_notes=notes)
        self.submissions[submission_id] = updated
        return TransitionResult(
            status_updated=True,
            notification_queued=self.notification_queued,
            submission=updated,
        )

    async def bulk_review(self, kind, ids: Sequence[str], status, notes=None):
        self.calls.append(("bulk_review", kind, tuple(ids), status, notes))
        self._maybe_fail()
        for submission_id in ids:
            self.submissions[submission_id] = replace(
                self.submissions[submission_id], status=status, review_notes=notes
            )
        return BulkResult(succeeded=tuple(ids), notifications_queued=len(ids))

    async def bulk_delete(self, kind, ids: Sequence[str]):
        self.calls.append(("bulk_delete", kind, tuple(ids)))
        self._maybe_fail()
        for submission_id in ids:
            self.submissions.pop(submission_id, None)
        return BulkResult(succeeded=tuple(ids))

    async def pending_counts(self):
        self.calls.append(("pending_counts",))
        self._maybe_fail()
        return PendingCounts(
            pending_evidence=sum(
                1 for s in self.submissions.values()
                if s.kind == SubmissionKind.EVIDENCE and s.status == SubmissionStatus.PENDING
            ),
            pending_audits=sum(
                1 for s in self.submissions.values()
                if s.kind == SubmissionKind.AUDIT and s.status == SubmissionStatus.SUBMITTED
            ),
        )

    def calls_named(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]


def make_evidence(submission_id: str, status: SubmissionStatus = SubmissionStatus.PENDING,
                  consent: str = "approved") -> Submission:
    return Submission(
        id=submission_id,
        kind=SubmissionKind.EVIDENCE,
        status=status,
        title=f"Evidence {submission_id}",
        school_id="school-1",
        school_name="Oak Primary",
        photo_consent_status=consent,
    )


def make_audit(submission_id: str, status: SubmissionStatus = SubmissionStatus.SUBMITTED) -> Submission:
    return Submission(
        id=submission_id,
        kind=SubmissionKind.AUDIT,
        status=status,
        school_id="school-1",
        school_name="Oak Primary",
    )


@pytest.fixture
def evidence_items() -> List[Submission]:
    return [make_evidence("e1"), make_evidence("e2"), make_evidence("e3")]


@pytest.fixture
def store(evidence_items) -> FakeSubmissionStore:
    return FakeSubmissionStore(evidence_items + [make_audit("a1"), make_audit("a2", SubmissionStatus.DRAFT)])


@pytest.fixture
def store_error() -> StoreRequestError:
    return StoreRequestError("PATCH failed with 500: boom", status_code=500, detail="boom")


@pytest.fixture
def evidence_factory():
    return make_evidence


@pytest.fixture
def audit_factory():
    return make_audit


@pytest.fixture
def store_factory():
    return FakeSubmissionStore
