"""
SQLAlchemy ORM Models for the Submission Store.

Schools submit evidence items and plastic-waste audits; admins review them.

Architecture:
- Primary Keys: string UUIDs (the admin API exchanges ids as strings)
- Status Flags: Enum-based status tracking per submission kind
- Review columns (reviewed_by, reviewed_at) are written once, when a
  submission leaves its reviewable status
- Activity and email logs are append-only
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import (
    Column, String, Boolean, Integer, DateTime, Text, Enum, ForeignKey, Index, JSON
)
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator


# Cross-database compatible JSON type
# Uses JSONB on PostgreSQL, JSON on SQLite/others
class JSONB(TypeDecorator):
    """A portable JSONB type that works with both PostgreSQL and SQLite."""
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PG_JSONB())
        else:
            return dialect.type_descriptor(JSON())


Base = declarative_base()


def _new_id() -> str:
    return str(uuid4())


# =============================================================================
# ENUMERATIONS
# =============================================================================

class EvidenceStatus(str, PyEnum):
    """Evidence review status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AuditStatus(str, PyEnum):
    """Audit lifecycle status. Only SUBMITTED audits are reviewable."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class PhotoConsentStatus(str, PyEnum):
    """School photo consent status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# =============================================================================
# PARTICIPANTS
# =============================================================================

class SchoolRecord(Base):
    """A school enrolled in the programme."""
    __tablename__ = "schools"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    country = Column(String(100), nullable=True)
    photo_consent_status = Column(
        Enum(PhotoConsentStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )

    # Programme progression, recomputed after approvals
    current_stage = Column(String(20), default="inspire", nullable=False)
    inspire_completed = Column(Boolean, default=False, nullable=False)
    investigate_completed = Column(Boolean, default=False, nullable=False)
    act_completed = Column(Boolean, default=False, nullable=False)
    progress_percentage = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    evidence = relationship("EvidenceRecord", back_populates="school", cascade="all, delete-orphan")
    audits = relationship("AuditRecord", back_populates="school", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<School(id={self.id}, name={self.name})>"


class UserRecord(Base):
    """Teachers who submit and admins who review."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), nullable=True, unique=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or (self.email or "")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


# =============================================================================
# SUBMISSIONS
# =============================================================================

class EvidenceRecord(Base):
    """
    Evidence item submitted by a school for a programme stage.

    Reviewable while PENDING; APPROVED and REJECTED are terminal.
    """
    __tablename__ = "evidence"

    id = Column(String(36), primary_key=True, default=_new_id)
    school_id = Column(String(36), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    submitted_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    assigned_to = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    stage = Column(String(50), nullable=True)
    files = Column(JSONB, nullable=True)

    status = Column(
        Enum(EvidenceStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=EvidenceStatus.PENDING,
        index=True,
    )
    review_notes = Column(Text, nullable=True)
    reviewed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    school = relationship("SchoolRecord", back_populates="evidence")
    submitter = relationship("UserRecord", foreign_keys=[submitted_by])

    __table_args__ = (
        Index('ix_evidence_status_submitted', 'status', 'submitted_at'),
    )

    def __repr__(self):
        return f"<Evidence(id={self.id}, status={self.status})>"


class AuditRecord(Base):
    """
    Plastic-waste audit completed by a school.

    Drafts are edited by the school; only SUBMITTED audits are reviewable.
    """
    __tablename__ = "audits"

    id = Column(String(36), primary_key=True, default=_new_id)
    school_id = Column(String(36), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    submitted_by = Column(String(36), ForeignKey("users.id"), nullable=True)

    audit_data = Column(JSONB, nullable=True, comment="Per-part audit answers")

    status = Column(
        Enum(AuditStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AuditStatus.DRAFT,
        index=True,
    )
    review_notes = Column(Text, nullable=True)
    reviewed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    submitted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    school = relationship("SchoolRecord", back_populates="audits")
    submitter = relationship("UserRecord", foreign_keys=[submitted_by])

    def __repr__(self):
        return f"<Audit(id={self.id}, status={self.status})>"


# =============================================================================
# LOGS
# =============================================================================

class ActivityLogRecord(Base):
    """Append-only record of admin actions."""
    __tablename__ = "user_activity_logs"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String(100), nullable=False, index=True)
    target_type = Column(String(50), nullable=True)
    target_id = Column(String(36), nullable=True)
    details = Column(JSONB, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)


class EmailLogRecord(Base):
    """One row per review notification delivery attempt."""
    __tablename__ = "email_logs"

    id = Column(String(36), primary_key=True, default=_new_id)
    recipient_email = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=False)
    template = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False)
    error = Column(Text, nullable=True)
    provider_message_id = Column(String(255), nullable=True)
    submission_kind = Column(String(20), nullable=True)
    submission_id = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
