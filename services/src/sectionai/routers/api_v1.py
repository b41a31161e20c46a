"""API v1 aggregate router."""

from __future__ import annotations

from fastapi import APIRouter

from .document import router as document_router
from .plans import router as plans_router
from .sections import router as sections_router

router = APIRouter(prefix="/api/v1")
router.include_router(document_router)
router.include_router(sections_router)
router.include_router(plans_router)

__all__ = ["router"]
