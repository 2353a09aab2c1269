"""
Submission Store Client

Contract between the moderation workflow and the persistent submission
store, plus an httpx implementation speaking the admin REST API:

    GET    /api/admin/evidence?status=&assignedTo=
    PATCH  /api/admin/evidence/{id}/review      {status, reviewNotes}
    POST   /api/admin/evidence/bulk-review      {evidenceIds, status, reviewNotes}
    DELETE /api/admin/evidence/bulk-delete      {evidenceIds}
    GET    /api/admin/audits?status=
    PATCH  /api/admin/audits/{id}/review        {approved, reviewNotes}
    POST   /api/admin/audits/bulk-review        {auditIds, status, reviewNotes}
    DELETE /api/admin/audits/bulk-delete        {auditIds}
    GET    /api/admin/stats
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

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

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

_COLLECTIONS: Dict[SubmissionKind, str] = {
    SubmissionKind.EVIDENCE: "evidence",
    SubmissionKind.AUDIT: "audits",
}

_ID_FIELDS: Dict[SubmissionKind, str] = {
    SubmissionKind.EVIDENCE: "evidenceIds",
    SubmissionKind.AUDIT: "auditIds",
}


class SubmissionStore(Protocol):
    """Operations the moderation workflow needs from the store."""

    async def list_submissions(
        self, kind: SubmissionKind, filters: Optional[SubmissionFilter] = None
    ) -> List[Submission]:
        ...

    async def update_status(
        self,
        kind: SubmissionKind,
        submission_id: str,
        status: SubmissionStatus,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        ...

    async def bulk_review(
        self,
        kind: SubmissionKind,
        ids: Sequence[str],
        status: SubmissionStatus,
        notes: Optional[str] = None,
    ) -> BulkResult:
        ...

    async def bulk_delete(self, kind: SubmissionKind, ids: Sequence[str]) -> BulkResult:
        ...

    async def pending_counts(self) -> PendingCounts:
        ...


def review_payload(kind: SubmissionKind, status: SubmissionStatus, notes: Optional[str]) -> Dict[str, Any]:
    """Body of a single review request. Audits take an approved flag."""
    if kind == SubmissionKind.AUDIT:
        return {"approved": status == SubmissionStatus.APPROVED, "reviewNotes": notes}
    return {"status": status.value, "reviewNotes": notes}


class HttpSubmissionStore:
    """
    SubmissionStore backed by the admin REST API.

    The reviewer identity is forwarded in a header; authentication itself
    is handled upstream.
    """

    def __init__(
        self,
        base_url: str,
        reviewer_id: Optional[str] = None,
        reviewer_header: str = "X-Reviewer-Id",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if reviewer_id:
            headers[reviewer_header] = reviewer_id
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, reviewer_id: Optional[str] = None, settings=None) -> "HttpSubmissionStore":
        """Build a client from MODERATION_* settings."""
        if settings is None:
            from config.settings import get_settings
            settings = get_settings().moderation
        return cls(
            settings.store_base_url,
            reviewer_id=reviewer_id,
            reviewer_header=settings.reviewer_header,
            timeout=settings.request_timeout,
        )

    async def __aenter__(self) -> "HttpSubmissionStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Submission store timed out: {method} {path}")
            raise StoreRequestError(f"Request timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            logger.error(f"Submission store unreachable: {method} {path}: {e}")
            raise StoreRequestError(f"Request failed: {method} {path}: {e}") from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.warning(
                f"Submission store returned {response.status_code} for {method} {path}: {detail}",
                extra={"status_code": response.status_code, "path": path},
            )
            raise StoreRequestError(
                f"{method} {path} failed with {response.status_code}: {detail}",
                status_code=response.status_code,
                detail=detail,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Submission store sent a non-JSON body for {method} {path}")
            raise StoreRequestError(
                f"Invalid response body: {method} {path}",
                status_code=response.status_code,
                detail=response.text[:200],
            ) from e

    async def list_submissions(
        self, kind: SubmissionKind, filters: Optional[SubmissionFilter] = None
    ) -> List[Submission]:
        params = filters.to_params() if filters else {}
        data = await self._request("GET", f"/{_COLLECTIONS[kind]}", params=params)
        items = data.get("items", []) if isinstance(data, dict) else data
        return [Submission.from_dict(kind, item) for item in items]

    async def update_status(
        self,
        kind: SubmissionKind,
        submission_id: str,
        status: SubmissionStatus,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        data = await self._request(
            "PATCH",
            f"/{_COLLECTIONS[kind]}/{submission_id}/review",
            json=review_payload(kind, status, notes),
        )
        submission = data.get("submission")
        return TransitionResult(
            status_updated=bool(data.get("statusUpdated", True)),
            notification_queued=bool(data.get("notificationQueued", False)),
            submission=Submission.from_dict(kind, submission) if submission else None,
        )

    async def bulk_review(
        self,
        kind: SubmissionKind,
        ids: Sequence[str],
        status: SubmissionStatus,
        notes: Optional[str] = None,
    ) -> BulkResult:
        data = await self._request(
            "POST",
            f"/{_COLLECTIONS[kind]}/bulk-review",
            json={_ID_FIELDS[kind]: list(ids), "status": status.value, "reviewNotes": notes},
        )
        return BulkResult.from_dict(data)

    async def bulk_delete(self, kind: SubmissionKind, ids: Sequence[str]) -> BulkResult:
        data = await self._request(
            "DELETE",
            f"/{_COLLECTIONS[kind]}/bulk-delete",
            json={_ID_FIELDS[kind]: list(ids)},
        )
        return BulkResult.from_dict(data)

    async def pending_counts(self) -> PendingCounts:
        data = await self._request("GET", "/stats")
        return PendingCounts.from_dict(data)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message") or body.get("error")
        if detail is not None:
            return str(detail)
    return str(body)
