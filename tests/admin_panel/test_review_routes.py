"""
Tests for the admin review API.

Runs the FastAPI app against a seeded SQLite database:
- Listing and filtering
- Single review, including conflict and validation errors
- Bulk review and bulk delete per-item reports
- Activity log rows
"""

import asyncio

import pytest
from sqlalchemy import select

from database.async_engine import close_database, get_async_session
from unittest.mock import AsyncMock, patch

from database.models import ActivityLogRecord, AuditRecord, EvidenceRecord, SchoolRecord


def _fetch(model, record_id):
    async def load():
        async with get_async_session() as session:
            result = await session.execute(select(model).where(model.id == record_id))
            return result.scalar_one_or_none()

    async def run():
        try:
            return await load()
        finally:
            await close_database()

    return asyncio.run(run())


def _activity():
    async def load():
        async with get_async_session() as session:
            result = await session.execute(select(ActivityLogRecord).order_by(ActivityLogRecord.created_at))
            return list(result.scalars().all())

    async def run():
        try:
            return await load()
        finally:
            await close_database()

    return asyncio.run(run())


class TestListing:
    """Tests for the list and stats endpoints."""

    def test_requires_reviewer_header(self, client):
        response = client.get("/api/admin/evidence")

        assert response.status_code == 401
        assert "X-Reviewer-Id" in response.json()["message"]

    def test_list_evidence_newest_first(self, client, admin_headers):
        response = client.get("/api/admin/evidence", headers=admin_headers)

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == ["e3", "e2", "e1", "e4"]

    def test_filter_by_status(self, client, admin_headers):
        response = client.get("/api/admin/evidence", params={"status": "pending"}, headers=admin_headers)

        assert {item["id"] for item in response.json()} == {"e1", "e2", "e4"}

    def test_assigned_to_me(self, client, admin_headers):
        response = client.get("/api/admin/evidence", params={"assignedTo": "me"}, headers=admin_headers)

        assert [item["id"] for item in response.json()] == ["e2"]

    def test_unassigned(self, client, admin_headers):
        response = client.get(
            "/api/admin/evidence",
            params={"status": "pending", "assignedTo": "null"},
            headers=admin_headers,
        )

        assert {item["id"] for item in response.json()} == {"e1", "e4"}

    def test_unknown_status_filter(self, client, admin_headers):
        response = client.get("/api/admin/evidence", params={"status": "archived"}, headers=admin_headers)

        assert response.status_code == 400

    def test_audit_only_status_rejected_for_evidence(self, client, admin_headers):
        response = client.get("/api/admin/evidence", params={"status": "draft"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_evidence_only_status_rejected_for_audits(self, client, admin_headers):
        response = client.get("/api/admin/audits", params={"status": "pending"}, headers=admin_headers)

        assert response.status_code == 400

    def test_audit_status_filter(self, client, admin_headers):
        response = client.get("/api/admin/audits", params={"status": "draft"}, headers=admin_headers)

        assert [item["id"] for item in response.json()] == ["a2"]

    def test_evidence_payload(self, client, admin_headers):
        item = next(
            i for i in client.get("/api/admin/evidence", headers=admin_headers).json() if i["id"] == "e1"
        )

        assert item["status"] == "pending"
        assert item["title"] == "Litter pick"
        assert item["schoolName"] == "Oak Primary"
        assert item["photoConsentStatus"] == "approved"

    def test_pending_audits(self, client, admin_headers):
        response = client.get("/api/admin/audits/pending", headers=admin_headers)

        assert [item["id"] for item in response.json()] == ["a1"]

    def test_stats(self, client, admin_headers):
        response = client.get("/api/admin/stats", headers=admin_headers)

        assert response.json() == {"pendingEvidence": 3, "pendingAudits": 1}


class TestSingleReview:
    """Tests for PATCH .../review."""

    def test_approve_evidence(self, client, admin_headers, dispatcher):
        response = client.patch(
            "/api/admin/evidence/e1/review", json={"status": "approved"}, headers=admin_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["statusUpdated"] is True
        assert body["notificationQueued"] is True
        assert body["submission"]["status"] == "approved"
        assert body["submission"]["reviewedBy"] == "admin-1"

        record = _fetch(EvidenceRecord, "e1")
        assert record.status.value == "approved"
        assert record.reviewed_at is not None

        assert dispatcher.calls == [{
            "kind": "evidence",
            "status": "approved",
            "submission_id": "e1",
            "recipient_email": "teacher@oak.sch.uk",
            "school_name": "Oak Primary",
            "title": "Litter pick",
            "review_notes": None,
        }]

    def test_reject_evidence_with_notes(self, client, admin_headers, dispatcher):
        response = client.patch(
            "/api/admin/evidence/e2/review",
            json={"status": "rejected", "reviewNotes": "  Photo is blurry "},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert _fetch(EvidenceRecord, "e2").review_notes == "Photo is blurry"
        assert dispatcher.calls[0]["review_notes"] == "Photo is blurry"

    def test_reject_without_notes(self, client, admin_headers, dispatcher):
        response = client.patch(
            "/api/admin/evidence/e1/review", json={"status": "rejected", "reviewNotes": " "},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert _fetch(EvidenceRecord, "e1").status.value == "pending"
        assert dispatcher.calls == []

    def test_review_terminal_evidence_conflicts(self, client, admin_headers, dispatcher):
        response = client.patch(
            "/api/admin/evidence/e3/review",
            json={"status": "rejected", "reviewNotes": "Changed my mind"},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"
        assert dispatcher.calls == []

    def test_second_review_conflicts(self, client, admin_headers):
        first = client.patch("/api/admin/evidence/e1/review", json={"status": "approved"}, headers=admin_headers)
        second = client.patch(
            "/api/admin/evidence/e1/review",
            json={"status": "rejected", "reviewNotes": "No"},
            headers=admin_headers,
        )

        assert first.status_code == 200
        assert second.status_code == 409

    def test_unknown_evidence(self, client, admin_headers):
        response = client.patch(
            "/api/admin/evidence/missing/review", json={"status": "approved"}, headers=admin_headers
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Evidence not found"

    def test_pending_is_not_a_review_outcome(self, client, admin_headers):
        response = client.patch(
            "/api/admin/evidence/e1/review", json={"status": "pending"}, headers=admin_headers
        )

        assert response.status_code == 400

    def test_invalid_body(self, client, admin_headers):
        response = client.patch(
            "/api/admin/evidence/e1/review", json={"status": "bogus"}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_no_recipient_reports_not_queued(self, client, admin_headers, dispatcher):
        response = client.patch(
            "/api/admin/evidence/e4/review", json={"status": "approved"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["notificationQueued"] is False
        assert _fetch(EvidenceRecord, "e4").status.value == "approved"

    def test_notification_failure_keeps_status(self, client, admin_headers, dispatcher):
        dispatcher.queue_result = False

        response = client.patch(
            "/api/admin/audits/a1/review", json={"approved": True}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["notificationQueued"] is False
        assert _fetch(AuditRecord, "a1").status.value == "approved"

    def test_reject_audit_requires_notes(self, client, admin_headers):
        response = client.patch(
            "/api/admin/audits/a1/review", json={"approved": False}, headers=admin_headers
        )

        assert response.status_code == 400
        assert _fetch(AuditRecord, "a1").status.value == "submitted"

    def test_draft_audit_not_reviewable(self, client, admin_headers):
        response = client.patch(
            "/api/admin/audits/a2/review", json={"approved": True}, headers=admin_headers
        )

        assert response.status_code == 409

    def test_review_writes_activity_log(self, client, admin_headers):
        client.patch(
            "/api/admin/audits/a1/review",
            json={"approved": False, "reviewNotes": "Totals missing"},
            headers=admin_headers,
        )

        entries = _activity()
        assert len(entries) == 1
        assert entries[0].action == "audit_rejected"
        assert entries[0].user_id == "admin-1"
        assert entries[0].target_id == "a1"
        assert entries[0].details["reviewNotes"] == "Totals missing"


class TestBulkOperations:
    """Tests for bulk review and bulk delete."""

    def test_bulk_approve_reports_per_item(self, client, admin_headers, dispatcher):
        response = client.post(
            "/api/admin/evidence/bulk-review",
            json={"evidenceIds": ["e1", "e2", "e3", "missing", "e1"], "status": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Bulk review completed: 2 succeeded, 2 failed"
        assert body["results"]["success"] == ["e1", "e2"]
        assert body["results"]["failed"] == [
            {"id": "e3", "reason": "Not awaiting review"},
            {"id": "missing", "reason": "Evidence not found"},
        ]
        assert body["results"]["notificationsQueued"] == 2
        assert [c["submission_id"] for c in dispatcher.calls] == ["e1", "e2"]

    def test_bulk_reject_requires_notes(self, client, admin_headers, dispatcher):
        response = client.post(
            "/api/admin/evidence/bulk-review",
            json={"evidenceIds": ["e1"], "status": "rejected"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert _fetch(EvidenceRecord, "e1").status.value == "pending"

    def test_bulk_empty_ids(self, client, admin_headers):
        response = client.post(
            "/api/admin/audits/bulk-review",
            json={"auditIds": [], "status": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_batch_size_limit(self, client, admin_headers, monkeypatch):
        from config.settings import get_settings

        monkeypatch.setenv("MODERATION_MAX_BATCH_SIZE", "1")
        get_settings.cache_clear()
        try:
            response = client.post(
                "/api/admin/evidence/bulk-review",
                json={"evidenceIds": ["e1", "e2"], "status": "approved"},
                headers=admin_headers,
            )
        finally:
            get_settings.cache_clear()

        assert response.status_code == 400
        assert _fetch(EvidenceRecord, "e1").status.value == "pending"

    def test_bulk_reject_audits(self, client, admin_headers):
        response = client.post(
            "/api/admin/audits/bulk-review",
            json={"auditIds": ["a1", "a2"], "status": "rejected", "reviewNotes": "Incomplete"},
            headers=admin_headers,
        )

        results = response.json()["results"]
        assert results["success"] == ["a1"]
        assert results["failed"] == [{"id": "a2", "reason": "Not awaiting review"}]
        assert _fetch(AuditRecord, "a1").review_notes == "Incomplete"

    def test_bulk_delete(self, client, admin_headers, dispatcher):
        response = client.request(
            "DELETE",
            "/api/admin/evidence/bulk-delete",
            json={"evidenceIds": ["e1", "e3", "missing"]},
            headers=admin_headers,
        )

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["success"] == ["e1", "e3"]
        assert results["failed"] == [{"id": "missing", "reason": "Evidence not found"}]
        assert _fetch(EvidenceRecord, "e1") is None
        assert dispatcher.calls == []
        assert [e.action for e in _activity()] == ["evidence_deleted", "evidence_deleted"]

    def test_bulk_delete_audits(self, client, admin_headers):
        response = client.request(
            "DELETE", "/api/admin/audits/bulk-delete", json={"auditIds": ["a2"]}, headers=admin_headers
        )

        assert response.json()["results"]["success"] == ["a2"]
        assert _fetch(AuditRecord, "a2") is None


class TestReviewerIdentity:
    """Tests for the reviewer header check."""

    def test_unknown_reviewer_forbidden(self, client, dispatcher):
        response = client.patch(
            "/api/admin/evidence/e1/review",
            json={"status": "approved"},
            headers={"X-Reviewer-Id": "someone-else"},
        )

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"
        assert _fetch(EvidenceRecord, "e1").status.value == "pending"
        assert dispatcher.calls == []

    def test_non_admin_forbidden(self, client):
        response = client.get("/api/admin/evidence", headers={"X-Reviewer-Id": "teacher-1"})

        assert response.status_code == 403

    def test_unknown_reviewer_bulk_review_forbidden(self, client):
        response = client.post(
            "/api/admin/evidence/bulk-review",
            json={"evidenceIds": ["e1", "e2"], "status": "approved"},
            headers={"X-Reviewer-Id": "someone-else"},
        )

        assert response.status_code == 403
        assert _fetch(EvidenceRecord, "e2").status.value == "pending"


class TestSchoolProgression:
    """Tests for progression updates after approvals."""

    def test_three_inspire_approvals_complete_stage(self, client, admin_headers):
        response = client.post(
            "/api/admin/evidence/bulk-review",
            json={"evidenceIds": ["e1", "e2", "e4"], "status": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        school = _fetch(SchoolRecord, "school-1")
        assert school.inspire_completed is True
        assert school.current_stage == "investigate"
        assert school.progress_percentage == 33

    def test_audit_approval_completes_investigate(self, client, admin_headers):
        client.patch("/api/admin/audits/a1/review", json={"approved": True}, headers=admin_headers)

        school = _fetch(SchoolRecord, "school-1")
        assert school.investigate_completed is True
        assert school.current_stage == "inspire"

    def test_rejection_leaves_progression(self, client, admin_headers):
        with patch(
            "admin_panel.services.progression.SchoolProgressionService.check_and_update",
            new_callable=AsyncMock,
        ) as check:
            client.patch(
                "/api/admin/evidence/e1/review",
                json={"status": "rejected", "reviewNotes": "Blurry"},
                headers=admin_headers,
            )

        check.assert_not_awaited()

    def test_bulk_approval_checks_each_school_once(self, client, admin_headers):
        with patch(
            "admin_panel.services.progression.SchoolProgressionService.check_and_update",
            new_callable=AsyncMock,
        ) as check:
            client.post(
                "/api/admin/evidence/bulk-review",
                json={"evidenceIds": ["e1", "e2"], "status": "approved"},
                headers=admin_headers,
            )

        check.assert_awaited_once_with("school-1")

    def test_progression_failure_keeps_review(self, client, admin_headers, dispatcher):
        with patch(
            "admin_panel.services.progression.SchoolProgressionService.check_and_update",
            new_callable=AsyncMock,
            side_effect=RuntimeError("progress table locked"),
        ):
            response = client.patch(
                "/api/admin/evidence/e1/review", json={"status": "approved"}, headers=admin_headers
            )

        assert response.status_code == 200
        assert response.json()["submission"]["status"] == "approved"
        assert _fetch(EvidenceRecord, "e1").status.value == "approved"
        assert len(dispatcher.calls) == 1


class TestHealth:
    """Tests for health endpoints."""

    def test_api_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["database"] == "ok"

    def test_admin_health(self, client):
        assert client.get("/api/admin/health").json()["status"] == "healthy"

    def test_request_id_header(self, client):
        response = client.get("/api/health", headers={"X-Request-Id": "req-42"})

        assert response.headers["X-Request-Id"] == "req-42"
