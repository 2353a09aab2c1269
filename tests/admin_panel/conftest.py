"""
Pytest fixtures for admin review API tests.

Provides:
- A seeded SQLite database (one school, one teacher, one admin)
- A TestClient with the notification dispatcher replaced by a recorder
"""

import asyncio
from datetime import datetime, timedelta
from typing import List

import pytest
from fastapi.testclient import TestClient

from admin_panel.api.review_routes import get_notification_dispatcher
from database.async_engine import close_database, get_async_session, init_database
from database.models import (
    AuditRecord,
    AuditStatus,
    EvidenceRecord,
    EvidenceStatus,
    PhotoConsentStatus,
    SchoolRecord,
    UserRecord,
)

ADMIN_ID = "admin-1"
TEACHER_EMAIL = "teacher@oak.sch.uk"


class RecordingDispatcher:
    """Stands in for NotificationDispatcher; records every dispatch."""

    def __init__(self):
        self.calls: List[dict] = []
        self.queue_result = True

    async def dispatch_review(self, kind, status, submission_id, recipient_email, school_name,
                              title=None, review_notes=None):
        self.calls.append({
            "kind": kind.value,
            "status": status.value,
            "submission_id": submission_id,
            "recipient_email": recipient_email,
            "school_name": school_name,
            "title": title,
            "review_notes": review_notes,
        })
        return self.queue_result and recipient_email is not None


async def _seed():
    await init_database()
    now = datetime.utcnow()
    async with get_async_session() as session:
        session.add_all([
            SchoolRecord(id="school-1", name="Oak Primary", photo_consent_status=PhotoConsentStatus.APPROVED),
            UserRecord(id=ADMIN_ID, email="admin@plasticclever.org", is_admin=True),
            UserRecord(id="teacher-1", email=TEACHER_EMAIL, first_name="Ada"),
        ])
        await session.flush()
        session.add_all([
            EvidenceRecord(id="e1", school_id="school-1", submitted_by="teacher-1", title="Litter pick",
                           stage="inspire",
                           status=EvidenceStatus.PENDING, submitted_at=now - timedelta(days=2)),
            EvidenceRecord(id="e2", school_id="school-1", submitted_by="teacher-1", title="Assembly",
                           stage="inspire",
                           status=EvidenceStatus.PENDING, assigned_to=ADMIN_ID,
                           submitted_at=now - timedelta(days=1)),
            EvidenceRecord(id="e3", school_id="school-1", submitted_by="teacher-1", title="Posters",
                           status=EvidenceStatus.APPROVED, submitted_at=now),
            EvidenceRecord(id="e4", school_id="school-1", submitted_by=None, title="Anonymous",
                           stage="inspire",
                           status=EvidenceStatus.PENDING, submitted_at=now - timedelta(days=3)),
            AuditRecord(id="a1", school_id="school-1", submitted_by="teacher-1",
                        status=AuditStatus.SUBMITTED, submitted_at=now),
            AuditRecord(id="a2", school_id="school-1", submitted_by="teacher-1", status=AuditStatus.DRAFT),
        ])
    await close_database()


@pytest.fixture
def seeded_database(sqlite_database):
    asyncio.run(_seed())
    return sqlite_database


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def client(seeded_database, dispatcher):
    from web.app import create_app

    app = create_app()
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return {"X-Reviewer-Id": ADMIN_ID}
