"""Main router for API v1."""

from fastapi import APIRouter

from blueshift.api.v1 import apps, health

router = APIRouter(prefix="/v1")

# Include sub-routers
router.include_router(health.router, tags=["health"])
router.include_router(apps.router, prefix="/apps", tags=["apps"])
