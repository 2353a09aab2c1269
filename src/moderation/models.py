"""
Moderation Data Model

Value types shared by the moderation workflow:
- SubmissionKind / SubmissionStatus enums
- Submission: read-only snapshot of a stored evidence item or audit
- SubmissionFilter: list query parameters for a review view
- TransitionResult / BulkResult / PendingCounts: store responses
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class SubmissionKind(str, Enum):
    """Kinds of reviewable submissions."""
    EVIDENCE = "evidence"
    AUDIT = "audit"


class SubmissionStatus(str, Enum):
    """Submission statuses across evidence and audits."""
    DRAFT = "draft"            # audits only, not reviewable yet
    SUBMITTED = "submitted"    # audits awaiting review
    PENDING = "pending"        # evidence awaiting review
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def from_string(cls, value: str) -> "SubmissionStatus":
        """Convert a wire value to SubmissionStatus (case-insensitive)."""
        return cls(value.strip().lower())


# Status a submission must hold for the review state machine to move it.
REVIEWABLE_STATUS: Dict[SubmissionKind, SubmissionStatus] = {
    SubmissionKind.EVIDENCE: SubmissionStatus.PENDING,
    SubmissionKind.AUDIT: SubmissionStatus.SUBMITTED,
}

REVIEW_OUTCOMES: Tuple[SubmissionStatus, ...] = (
    SubmissionStatus.APPROVED,
    SubmissionStatus.REJECTED,
)

KIND_STATUSES: Dict[SubmissionKind, Tuple[SubmissionStatus, ...]] = {
    SubmissionKind.EVIDENCE: (
        SubmissionStatus.PENDING,
        SubmissionStatus.APPROVED,
        SubmissionStatus.REJECTED,
    ),
    SubmissionKind.AUDIT: (
        SubmissionStatus.DRAFT,
        SubmissionStatus.SUBMITTED,
        SubmissionStatus.APPROVED,
        SubmissionStatus.REJECTED,
    ),
}


def _parse_dt(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class Submission:
    """
    Snapshot of one evidence item or audit as returned by the store.

    The moderation core never mutates a Submission. A transition produces
    a new snapshot read back from the store.
    """
    id: str
    kind: SubmissionKind
    status: SubmissionStatus
    submitted_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    title: Optional[str] = None
    school_id: Optional[str] = None
    school_name: Optional[str] = None
    submitted_by: Optional[str] = None
    assigned_to: Optional[str] = None
    photo_consent_status: Optional[str] = None

    @property
    def is_reviewable(self) -> bool:
        return self.status == REVIEWABLE_STATUS[self.kind]

    @classmethod
    def from_dict(cls, kind: SubmissionKind, data: Dict[str, Any]) -> "Submission":
        """Build a snapshot from the store's camelCase JSON payload."""
        return cls(
            id=str(data["id"]),
            kind=kind,
            status=SubmissionStatus.from_string(data["status"]),
            submitted_at=_parse_dt(data.get("submittedAt")),
            review_notes=data.get("reviewNotes"),
            reviewed_at=_parse_dt(data.get("reviewedAt")),
            reviewed_by=data.get("reviewedBy"),
            title=data.get("title"),
            school_id=data.get("schoolId"),
            school_name=data.get("schoolName"),
            submitted_by=data.get("submittedBy"),
            assigned_to=data.get("assignedTo"),
            photo_consent_status=data.get("photoConsentStatus"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the store's camelCase JSON payload."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "status": self.status.value,
            "submittedAt": self.submitted_at.isoformat() if self.submitted_at else None,
            "reviewNotes": self.review_notes,
            "reviewedAt": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewedBy": self.reviewed_by,
            "title": self.title,
            "schoolId": self.school_id,
            "schoolName": self.school_name,
            "submittedBy": self.submitted_by,
            "assignedTo": self.assigned_to,
            "photoConsentStatus": self.photo_consent_status,
        }


@dataclass(frozen=True)
class SubmissionFilter:
    """
    Query parameters for a review list.

    assigned_to accepts a reviewer id, or "null" for unassigned items.
    """
    status: Optional[SubmissionStatus] = None
    assigned_to: Optional[str] = None

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.status is not None:
            params["status"] = self.status.value
        if self.assigned_to:
            params["assignedTo"] = self.assigned_to
        return params


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a single status change.

    The status change and the notification are separate, non-transactional
    steps. A failed email never rolls back a status change.
    """
    status_updated: bool
    notification_queued: bool
    submission: Optional[Submission] = None


@dataclass(frozen=True)
class ItemFailure:
    """A target the store could not process inside a batch."""
    id: str
    reason: str


@dataclass(frozen=True)
class BulkResult:
    """Per-identifier report returned by the store for a batch request."""
    succeeded: Tuple[str, ...] = ()
    failed: Tuple[ItemFailure, ...] = ()
    notifications_queued: int = 0
    message: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BulkResult":
        results = data.get("results", data)
        return cls(
            succeeded=tuple(str(i) for i in results.get("success", [])),
            failed=tuple(
                ItemFailure(id=str(f["id"]), reason=str(f.get("reason", "")))
                for f in results.get("failed", [])
            ),
            notifications_queued=int(results.get("notificationsQueued", 0)),
            message=data.get("message"),
        )


@dataclass(frozen=True)
class PendingCounts:
    """Aggregate counts shown outside the review view."""
    pending_evidence: int = 0
    pending_audits: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingCounts":
        return cls(
            pending_evidence=int(data.get("pendingEvidence", 0)),
            pending_audits=int(data.get("pendingAudits", 0)),
        )


@dataclass
class OperatorNotice:
    """A toast-style message shown to the operator after an action."""
    level: str            # "success" or "error"
    title: str
    message: str
    created_at: datetime = field(default_factory=datetime.utcnow)
