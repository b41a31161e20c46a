"""Health endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from ..section_ai import SectionAiService
from .dependencies import get_section_ai

__all__ = ["router", "get_service_version", "health"]


router = APIRouter(prefix="/api/v1", tags=["health"])


def get_service_version(request: Request) -> str:
    """Return the service version attached to the application state."""

    return getattr(request.app.state, "service_version", "unknown")


@router.get("/healthz")
async def health(
    request: Request,
    version: str = Depends(get_service_version),
    section_ai: SectionAiService = Depends(get_section_ai),
) -> dict[str, Any]:
    settings = getattr(request.app.state, "settings", None)
    return {
        "status": "ok",
        "version": version,
        "mode": getattr(settings, "mode", "unknown"),
        "ai_processing": section_ai.is_processing,
        "pending_preview": section_ai.pending is not None,
    }
