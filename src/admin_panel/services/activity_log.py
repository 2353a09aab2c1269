"""
Activity Log Service - Trail of admin review actions.

Handles:
- Recording review and delete actions per submission
- Querying the trail for a submission

Writing the log never blocks or undoes the action it describes.
"""

from typing import Any, Dict, List, Optional
from enum import Enum
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import ActivityLogRecord
from moderation.models import SubmissionKind, SubmissionStatus


logger = logging.getLogger(__name__)


class ActivityAction(str, Enum):
    """Types of logged admin actions."""
    EVIDENCE_APPROVED = "evidence_approved"
    EVIDENCE_REJECTED = "evidence_rejected"
    EVIDENCE_DELETED = "evidence_deleted"
    AUDIT_APPROVED = "audit_approved"
    AUDIT_REJECTED = "audit_rejected"
    AUDIT_DELETED = "audit_deleted"

    @classmethod
    def for_review(cls, kind: SubmissionKind, status: SubmissionStatus) -> "ActivityAction":
        return cls(f"{kind.value}_{status.value}")

    @classmethod
    def for_delete(cls, kind: SubmissionKind) -> "ActivityAction":
        return cls(f"{kind.value}_deleted")


class ActivityLogService:
    """Service for the admin activity trail."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_action(
        self,
        user_id: Optional[str],
        action: ActivityAction,
        target_type: str,
        target_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Record an action.

        Must be called after the action itself is committed: on failure the
        session is rolled back to discard the log row.

        Returns:
            True if the entry was written
        """
        try:
            self.db.add(ActivityLogRecord(
                user_id=user_id,
                action=action.value,
                target_type=target_type,
                target_id=target_id,
                details=details or {},
            ))
            await self.db.flush()
        except Exception as e:
            logger.error(f"Failed to log activity {action.value} on {target_type}:{target_id}: {e}")
            await self.db.rollback()
            return False

        logger.debug(f"Activity log: {action.value} by {user_id} on {target_type}:{target_id}")
        return True

    async def get_activity(self, target_type: str, target_id: str) -> List[ActivityLogRecord]:
        """Entries for one submission, oldest first."""
        result = await self.db.execute(
            select(ActivityLogRecord)
            .where(
                ActivityLogRecord.target_type == target_type,
                ActivityLogRecord.target_id == target_id,
            )
            .order_by(ActivityLogRecord.created_at)
        )
        return list(result.scalars().all())
