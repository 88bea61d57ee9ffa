"""API router - aggregates all /api endpoints."""

from fastapi import APIRouter

from quicklink.api.admin import router as admin_router
from quicklink.api.analytics import router as analytics_router
from quicklink.api.urls import router as urls_router

router = APIRouter(prefix="/api")

# Include sub-routers
router.include_router(urls_router)
router.include_router(analytics_router)
router.include_router(admin_router)
