"""Aggregated images router combining ingestion and query sub-routers."""

from fastapi import APIRouter
from .ingest import router as ingest_router
from .core import router as core_router

# Main router with shared prefix and tags
router = APIRouter(
    prefix="/api",
    tags=["images"]
)

# Fixed paths (/images/url, /images/upload, /images/myimages, /images/search)
# must be registered before /images/{image_id}.
router.include_router(ingest_router)
router.include_router(core_router)
