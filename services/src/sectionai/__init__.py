"""Section AI services: intent, plan, diff and repair for AI-driven document edits."""

from __future__ import annotations

from .app import SERVICE_VERSION, create_app
from .section_ai import SectionAiService

__all__ = ["SERVICE_VERSION", "SectionAiService", "create_app"]
