"""API route registration.

Aggregates all API routers into a single router
for inclusion in the main application.
"""

from fastapi import APIRouter

from orgflow.api.routes.system import router as system_router
from orgflow.api.routes.workflow_templates import router as workflow_templates_router

# Main API router
api_router = APIRouter()

api_router.include_router(system_router, tags=["System"])
api_router.include_router(workflow_templates_router)

__all__ = ["api_router"]
