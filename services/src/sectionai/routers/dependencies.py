"""Dependency injection helpers for FastAPI routers."""

from __future__ import annotations

from typing import cast

from fastapi import Request

from ..document import InMemoryDocument
from ..runtime import SectionStepExecutor
from ..section_ai import SectionAiService
from ..settings import Settings

__all__ = [
    "get_document",
    "get_section_ai",
    "get_settings",
    "get_step_executor",
]


def get_settings(request: Request) -> Settings:
    """Return the settings the application was created with."""

    return cast(Settings, request.app.state.settings)


def get_document(request: Request) -> InMemoryDocument:
    """Return the shared in-memory document."""

    return cast(InMemoryDocument, request.app.state.document)


def get_section_ai(request: Request) -> SectionAiService:
    """Return the orchestrator that owns the AI session guard."""

    return cast(SectionAiService, request.app.state.section_ai)


def get_step_executor(request: Request) -> SectionStepExecutor:
    return SectionStepExecutor(get_section_ai(request))
