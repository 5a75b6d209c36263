from __future__ import annotations

from fastapi import APIRouter

from api.routes.v1.admin import router as admin_router
from api.routes.v1.images import router as images_router
from api.routes.v1.posts import router as posts_router

# Aggregate all domain routers under a single versioned router
router = APIRouter(prefix="/api/v1")
router.include_router(posts_router)
router.include_router(images_router)
router.include_router(admin_router)
