"""Async Submission Repository.

Reads and reviews evidence items and audits using SQLAlchemy async sessions.
A review is a single conditional UPDATE that only matches rows still in
their reviewable status, so two reviewers racing on the same submission
cannot both succeed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from database.models import (
    AuditRecord,
    AuditStatus,
    EvidenceRecord,
    EvidenceStatus,
)
from moderation.models import REVIEWABLE_STATUS, SubmissionKind, SubmissionStatus

logger = logging.getLogger(__name__)

SubmissionRecord = Union[EvidenceRecord, AuditRecord]

_MODELS = {
    SubmissionKind.EVIDENCE: EvidenceRecord,
    SubmissionKind.AUDIT: AuditRecord,
}

_STATUS_ENUMS = {
    SubmissionKind.EVIDENCE: EvidenceStatus,
    SubmissionKind.AUDIT: AuditStatus,
}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def to_submission_dict(kind: SubmissionKind, record: SubmissionRecord) -> Dict[str, Any]:
    """Serialize a record to the admin API's camelCase payload."""
    school = record.school
    data = {
        "id": record.id,
        "kind": kind.value,
        "status": record.status.value if hasattr(record.status, "value") else record.status,
        "schoolId": record.school_id,
        "schoolName": school.name if school else None,
        "submittedBy": record.submitted_by,
        "submittedAt": _iso(record.submitted_at),
        "reviewNotes": record.review_notes,
        "reviewedBy": record.reviewed_by,
        "reviewedAt": _iso(record.reviewed_at),
    }
    if kind == SubmissionKind.EVIDENCE:
        consent = school.photo_consent_status if school else None
        data.update({
            "title": record.title,
            "stage": record.stage,
            "assignedTo": record.assigned_to,
            "photoConsentStatus": consent.value if hasattr(consent, "value") else consent,
        })
    return data


class SubmissionRepository:
    """
    Async repository for reviewable submissions.

    Records are returned with their school and submitter loaded.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with a session.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _model(self, kind: SubmissionKind):
        return _MODELS[kind]

    def _db_status(self, kind: SubmissionKind, status: SubmissionStatus):
        return _STATUS_ENUMS[kind](status.value)

    async def get(self, kind: SubmissionKind, submission_id: str) -> Optional[SubmissionRecord]:
        """
        Get one submission by id.

        Returns:
            The record or None if not found.
        """
        model = self._model(kind)
        query = (
            select(model)
            .where(model.id == submission_id)
            .options(selectinload(model.school), selectinload(model.submitter))
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(query)
        return result.scalar_one_or_none()

    async def list(
        self,
        kind: SubmissionKind,
        status: Optional[SubmissionStatus] = None,
        assigned_to: Optional[str] = None,
    ) -> List[SubmissionRecord]:
        """
        List submissions newest first.

        Args:
            kind: Evidence or audit
            status: Optional status filter
            assigned_to: Reviewer id, or "null" for unassigned (evidence only)
        """
        model = self._model(kind)
        query = select(model).options(selectinload(model.school), selectinload(model.submitter))

        if status is not None:
            query = query.where(model.status == self._db_status(kind, status))

        if assigned_to and kind == SubmissionKind.EVIDENCE:
            if assigned_to == "null":
                query = query.where(model.assigned_to.is_(None))
            else:
                query = query.where(model.assigned_to == assigned_to)

        order_column = model.submitted_at if kind == SubmissionKind.EVIDENCE else model.created_at
        query = query.order_by(order_column.desc())

        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def apply_review(
        self,
        kind: SubmissionKind,
        submission_id: str,
        status: SubmissionStatus,
        notes: Optional[str],
        reviewer_id: Optional[str],
    ) -> bool:
        """
        Move a submission out of its reviewable status.

        Returns:
            True if a row was updated; False if the submission is missing or
            no longer reviewable.
        """
        model = self._model(kind)
        now = datetime.utcnow()
        stmt = (
            update(model)
            .where(
                model.id == submission_id,
                model.status == self._db_status(kind, REVIEWABLE_STATUS[kind]),
            )
            .values(
                status=self._db_status(kind, status),
                review_notes=notes,
                reviewed_by=reviewer_id,
                reviewed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount > 0

    async def delete(self, kind: SubmissionKind, submission_id: str) -> bool:
        model = self._model(kind)
        result = await self._session.execute(
            delete(model)
            .where(model.id == submission_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def count_by_status(self, kind: SubmissionKind, status: SubmissionStatus) -> int:
        model = self._model(kind)
        result = await self._session.execute(
            select(func.count()).select_from(model).where(model.status == self._db_status(kind, status))
        )
        return int(result.scalar_one())

    async def pending_counts(self) -> Dict[str, int]:
        """Counts of submissions awaiting review, keyed for the stats payload."""
        return {
            "pendingEvidence": await self.count_by_status(
                SubmissionKind.EVIDENCE, REVIEWABLE_STATUS[SubmissionKind.EVIDENCE]
            ),
            "pendingAudits": await self.count_by_status(
                SubmissionKind.AUDIT, REVIEWABLE_STATUS[SubmissionKind.AUDIT]
            ),
        }
