"""
Admin Panel API Router

Aggregates all admin-related routes into a single router.

Route Structure:
- /api/admin/evidence, /api/admin/audits  - Review queues and actions
- /api/admin/stats                        - Pending counts
"""

from fastapi import APIRouter
import logging

from .review_routes import router as review_router

logger = logging.getLogger(__name__)

# Create main admin router
admin_router = APIRouter(tags=["Admin Panel"])

admin_router.include_router(review_router, prefix="/admin")


# =============================================================================
# HEALTH CHECK
# =============================================================================

@admin_router.get("/admin/health")
async def admin_health_check():
    """Admin panel health check endpoint."""
    return {
        "status": "healthy",
        "module": "admin_panel",
        "routes": {
            "evidence": "active",
            "audits": "active",
            "stats": "active",
        },
    }


# =============================================================================
# API DOCUMENTATION
# =============================================================================

@admin_router.get("/admin/docs/routes")
async def get_admin_route_documentation():
    """Get documentation of all admin panel routes."""
    return {
        "prefix": "/api/admin",
        "domains": {
            "evidence": {
                "description": "Evidence review queue",
                "endpoints": [
                    "GET /evidence - List evidence (status, assignedTo filters)",
                    "PATCH /evidence/{id}/review - Approve or reject",
                    "POST /evidence/bulk-review - Approve or reject many",
                    "DELETE /evidence/bulk-delete - Delete many",
                ],
            },
            "audits": {
                "description": "Audit review queue",
                "endpoints": [
                    "GET /audits - List audits (status filter)",
                    "GET /audits/pending - Audits awaiting review",
                    "PATCH /audits/{id}/review - Approve or reject",
                    "POST /audits/bulk-review - Approve or reject many",
                    "DELETE /audits/bulk-delete - Delete many",
                ],
            },
            "stats": {
                "description": "Dashboard counts",
                "endpoints": [
                    "GET /stats - Pending evidence and audit counts",
                ],
            },
        },
    }
