"""
Admin Panel Services Layer.

Business logic for:
- Submission review and bulk operations
- Activity trail
"""

from .activity_log import ActivityAction, ActivityLogService
from .review_service import (
    BulkReport,
    ReviewOutcome,
    ReviewService,
    SubmissionNotFoundError,
)

__all__ = [
    "ActivityAction",
    "ActivityLogService",
    "BulkReport",
    "ReviewOutcome",
    "ReviewService",
    "SubmissionNotFoundError",
]
