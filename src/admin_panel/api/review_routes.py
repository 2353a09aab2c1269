"""
Review Routes - Evidence and audit moderation endpoints.

Provides:
- Review queues for evidence and audits
- Single review (approve / reject)
- Bulk review and bulk delete with per-item results
- Pending counts for the dashboard

The reviewer is identified by a request header set by the upstream auth
layer.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import get_settings
from database.async_engine import get_db_session
from database.models import UserRecord
from moderation.errors import InvalidTransitionError, ReviewValidationError
from moderation.models import KIND_STATUSES, SubmissionKind, SubmissionStatus
from notifications.dispatcher import NotificationDispatcher

from ..services.review_service import ReviewService, SubmissionNotFoundError


router = APIRouter(tags=["Submission Review"])
logger = logging.getLogger(__name__)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class EvidenceReviewRequest(BaseModel):
    """Review decision for one evidence item."""
    model_config = ConfigDict(populate_by_name=True)

    status: SubmissionStatus
    review_notes: Optional[str] = Field(None, alias="reviewNotes")


class AuditReviewRequest(BaseModel):
    """Review decision for one audit."""
    model_config = ConfigDict(populate_by_name=True)

    approved: bool
    review_notes: Optional[str] = Field(None, alias="reviewNotes")


class EvidenceBulkReviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    evidence_ids: List[str] = Field(..., alias="evidenceIds")
    status: SubmissionStatus
    review_notes: Optional[str] = Field(None, alias="reviewNotes")


class AuditBulkReviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audit_ids: List[str] = Field(..., alias="auditIds")
    status: SubmissionStatus
    review_notes: Optional[str] = Field(None, alias="reviewNotes")


class EvidenceBulkDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    evidence_ids: List[str] = Field(..., alias="evidenceIds")


class AuditBulkDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audit_ids: List[str] = Field(..., alias="auditIds")


# =============================================================================
# DEPENDENCIES
# =============================================================================

async def get_reviewer_id(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> str:
    """
    Reviewer id from the configured identity header.

    The id must belong to an admin user; review columns reference users.
    """
    header = get_settings().moderation.reviewer_header
    reviewer_id = request.headers.get(header)
    if not reviewer_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {header} header",
        )

    reviewer = await session.get(UserRecord, reviewer_id)
    if reviewer is None or not reviewer.is_admin:
        logger.warning(f"Rejected reviewer {reviewer_id}: not an admin user")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return reviewer_id


def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()


async def get_review_service(
    session: AsyncSession = Depends(get_db_session),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> ReviewService:
    return ReviewService(session, dispatcher)


def _resolve_assignee(assigned_to: Optional[str], reviewer_id: str) -> Optional[str]:
    if assigned_to == "me":
        return reviewer_id
    return assigned_to


def _parse_status(value: Optional[str], kind: SubmissionKind) -> Optional[SubmissionStatus]:
    if not value:
        return None
    try:
        parsed = SubmissionStatus.from_string(value)
    except ValueError:
        parsed = None
    if parsed not in KIND_STATUSES[kind]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown {kind.value} status '{value}'",
        )
    return parsed


async def _run_review(service: ReviewService, kind: SubmissionKind, submission_id: str,
                      target: SubmissionStatus, notes: Optional[str], reviewer_id: str) -> Dict[str, Any]:
    try:
        outcome = await service.review(kind, submission_id, target, notes, reviewer_id)
    except SubmissionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ReviewValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return outcome.to_dict()


def _check_batch_size(ids: List[str]) -> None:
    limit = get_settings().moderation.max_batch_size
    if len(ids) > limit:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {limit} submissions can be processed at once",
        )


async def _run_bulk_review(service: ReviewService, kind: SubmissionKind, ids: List[str],
                           target: SubmissionStatus, notes: Optional[str], reviewer_id: str) -> Dict[str, Any]:
    _check_batch_size(ids)
    try:
        report = await service.bulk_review(kind, ids, target, notes, reviewer_id)
    except ReviewValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return report.to_dict("review")


async def _run_bulk_delete(service: ReviewService, kind: SubmissionKind, ids: List[str],
                           reviewer_id: str) -> Dict[str, Any]:
    _check_batch_size(ids)
    try:
        report = await service.bulk_delete(kind, ids, reviewer_id)
    except ReviewValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return report.to_dict("delete")


# =============================================================================
# EVIDENCE
# =============================================================================

@router.get("/evidence")
async def list_evidence(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    assigned_to: Optional[str] = Query(None, alias="assignedTo", description="Reviewer id, 'me' or 'null'"),
    reviewer_id: str = Depends(get_reviewer_id),
    service: ReviewService = Depends(get_review_service),
):
    """List evidence submissions, newest first."""
    return await service.list(
        SubmissionKind.EVIDENCE,
        status=_parse_status(status_filter, SubmissionKind.EVIDENCE),
        assigned_to=_resolve_assignee(assigned_to, reviewer_id),
    )


@router.patch("/evidence/{evidence_id}/review")
async def review_evidence(
    evidence_id: str,
    body: EvidenceReviewRequest,
    reviewer_id: str = Depends(get_reviewer_id),
    service: ReviewService = Depends(get_review_service),
):
    """
    Approve or reject one evidence item.

    The school is emailed after the status change is saved; the response
    says whether that email was queued.
    """
    return await _run_review(
        service, SubmissionKind.EVIDENCE, evidence_id, body.status, body.review_notes, reviewer_id
    )


@router.post("/evidence/bulk-review")
async def bulk_review_evidence(
    body: EvidenceBulkReviewRequest,
    reviewer_id: str = Depends(get_reviewer_id),
    service: ReviewService = Depends(get_review_service),
):
    """Approve or reject many evidence items."""
    return await _run_bulk_review(
        service, SubmissionKind.EVIDENCE, body.evidence_ids, body.status, body.review_notes, reviewer_id
    )


@router.delete("/evidence/bulk-delete")
async def bulk_delete_evidence(
    body: EvidenceBulkDeleteRequest,
    reviewer_id: str = Depends(get_reviewer_id),
    service: ReviewService = Depends(get_review_service),
):
    """Permanently delete many evidence items."""
    return await _run_bulk_delete(service, SubmissionKind.EVIDENCE, body.evidence_ids, reviewer_id)


# =============================================================================
# AUDITS
# =============================================================================

@router.get("/audits")
async def list_audits(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    reviewer_id: str = Depends(get_reviewer_id),
    service: ReviewService = Depends(get_review_service),
):
    """List audits, newest first."""
    return await service.list(SubmissionKind.AUDIT, status=_parse_status(status_filter, SubmissionKind.AUDIT))


@router.get("/audits/pending")
async def list_pending_audits(
    reviewer_id: str = Depends(get_reviewer_id),
    service: ReviewService = Depends(get_review_service),
):
    """Audits awaiting review."""
    return await service.list(SubmissionKind.AUDIT, status=SubmissionStatus.SUBMITTED)


@router.patch("/audits/{audit_id}/review")
async def review_audit(
    audit_id: str,
    body: AuditReviewRequest,
    reviewer_id: str = Depends(get_reviewer_id),
    service: ReviewService = Depends(get_review_service),
):
    """Approve or reject one audit."""
    target = SubmissionStatus.APPROVED if body.approved else SubmissionStatus.REJECTED
    return await _run_review(
        service, SubmissionKind.AUDIT, audit_id, target, body.review_notes, reviewer_id
    )


@router.post("/audits/bulk-review")
async def bulk_review_audits(
    body: AuditBulkReviewRequest,
    reviewer_id: str = Depends(get_reviewer_id),
    service: ReviewService = Depends(get_review_service),
):
    """Approve or reject many audits."""
    return await _run_bulk_review(
        service, SubmissionKind.AUDIT, body.audit_ids, body.status, body.review_notes, reviewer_id
    )


@router.delete("/audits/bulk-delete")
async def bulk_delete_audits(
    body: AuditBulkDeleteRequest,
    reviewer_id: str = Depends(get_reviewer_id),
    service: ReviewService = Depends(get_review_service),
):
    """Permanently delete many audits."""
    return await _run_bulk_delete(service, SubmissionKind.AUDIT, body.audit_ids, reviewer_id)


# =============================================================================
# STATS
# =============================================================================

@router.get("/stats")
async def get_stats(
    reviewer_id: str = Depends(get_reviewer_id),
    service: ReviewService = Depends(get_review_service),
):
    """Counts of submissions awaiting review."""
    return await service.pending_counts()
