"""Repository implementations for the submission store."""

from .submission_repository import SubmissionRepository, to_submission_dict

__all__ = [
    "SubmissionRepository",
    "to_submission_dict",
]
