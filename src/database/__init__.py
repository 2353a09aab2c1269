"""
Database Layer for the Submission Store.

This module provides:
- SQLAlchemy ORM models for schools, users, evidence, audits and logs
- Async database engine and FastAPI session dependency
- Submission repository with conditional review updates
"""

from .models import (
    Base,
    SchoolRecord,
    UserRecord,
    EvidenceRecord,
    AuditRecord,
    ActivityLogRecord,
    EmailLogRecord,
    EvidenceStatus,
    AuditStatus,
    PhotoConsentStatus,
)

from .async_engine import (
    get_async_engine,
    get_async_session,
    get_async_session_factory,
    get_db_session,
    check_database_connection,
    init_database,
    close_database,
)

from .repositories import SubmissionRepository

__all__ = [
    # Models
    "Base",
    "SchoolRecord",
    "UserRecord",
    "EvidenceRecord",
    "AuditRecord",
    "ActivityLogRecord",
    "EmailLogRecord",
    "EvidenceStatus",
    "AuditStatus",
    "PhotoConsentStatus",
    # Async Engine
    "get_async_engine",
    "get_async_session",
    "get_async_session_factory",
    "get_db_session",
    "check_database_connection",
    "init_database",
    "close_database",
    # Repositories
    "SubmissionRepository",
]
