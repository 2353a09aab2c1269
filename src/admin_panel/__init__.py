"""
Admin Panel Module

Server side of the moderation console:
- api/: REST routes for reviewing evidence and audits
- services/: Review workflow and activity trail

Integration:
- Uses the database package for records and sessions
- Uses the notifications package for review emails
"""

__all__ = ["admin_router"]


def __getattr__(name):
    """
    Lazily expose admin_router to avoid import-time side effects.

    Importing admin_panel.services should not build the API router tree.
    """
    if name == "admin_router":
        from .api.router import admin_router

        return admin_router
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
