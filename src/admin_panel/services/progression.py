"""
School Progression - Stage completion after approvals.

A school moves through three stages:
- inspire: complete once 3 inspire evidence items are approved
- investigate: complete once an audit is approved
- act: complete once 3 act evidence items are approved

The current stage is the first incomplete one; progress is the share of
completed stages.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import AuditRecord, AuditStatus, EvidenceRecord, EvidenceStatus, SchoolRecord
from services.logging_config import get_logger

logger = get_logger(__name__)

STAGES = ("inspire", "investigate", "act")
REQUIRED_APPROVALS = 3

_STAGE_PROGRESS = {0: 0, 1: 33, 2: 67, 3: 100}


@dataclass
class StageCounts:
    """Approved work per stage for one school."""
    inspire_approved: int = 0
    act_approved: int = 0
    has_approved_audit: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inspireApproved": self.inspire_approved,
            "actApproved": self.act_approved,
            "hasApprovedAudit": self.has_approved_audit,
        }


class SchoolProgressionService:
    """Recomputes a school's stage flags from its approved submissions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def stage_counts(self, school_id: str) -> StageCounts:
        result = await self.session.execute(
            select(EvidenceRecord.stage, func.count())
            .where(
                EvidenceRecord.school_id == school_id,
                EvidenceRecord.status == EvidenceStatus.APPROVED,
            )
            .group_by(EvidenceRecord.stage)
        )
        approved = {stage: count for stage, count in result.all()}

        audit = await self.session.execute(
            select(AuditRecord.id)
            .where(AuditRecord.school_id == school_id, AuditRecord.status == AuditStatus.APPROVED)
            .limit(1)
        )
        return StageCounts(
            inspire_approved=approved.get("inspire", 0),
            act_approved=approved.get("act", 0),
            has_approved_audit=audit.scalar_one_or_none() is not None,
        )

    async def check_and_update(self, school_id: str) -> Optional[SchoolRecord]:
        """
        Recompute progression for one school and flush any change.

        Completed stages stay completed. Returns None for an unknown school.
        """
        school = await self.session.get(SchoolRecord, school_id)
        if school is None:
            return None

        counts = await self.stage_counts(school_id)
        completed = {
            "inspire": school.inspire_completed or counts.inspire_approved >= REQUIRED_APPROVALS,
            "investigate": school.investigate_completed or counts.has_approved_audit,
            "act": school.act_completed or counts.act_approved >= REQUIRED_APPROVALS,
        }
        stage = next((s for s in STAGES if not completed[s]), "act")
        progress = _STAGE_PROGRESS[sum(completed.values())]

        changed = (
            completed["inspire"] != school.inspire_completed
            or completed["investigate"] != school.investigate_completed
            or completed["act"] != school.act_completed
            or stage != school.current_stage
            or progress != school.progress_percentage
        )
        if not changed:
            return school

        school.inspire_completed = completed["inspire"]
        school.investigate_completed = completed["investigate"]
        school.act_completed = completed["act"]
        school.current_stage = stage
        school.progress_percentage = progress
        await self.session.flush()

        logger.info(
            f"School {school_id} progression: stage={stage}, progress={progress}%",
            extra={"school_id": school_id, **counts.to_dict()},
        )
        return school
