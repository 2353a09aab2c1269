"""
Admin Panel API Routes

- review_routes: Evidence and audit moderation
"""

from .router import admin_router

__all__ = ["admin_router"]
