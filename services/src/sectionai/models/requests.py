"""Request bodies accepted by the HTTP routers."""

from __future__ import annotations

from pydantic import Field

from ._wire import WireModel
from .results import SectionAiOptions


class ClarificationRequest(WireModel):
    answer: str = Field(min_length=1)
    options: SectionAiOptions | None = None


class MacroRequest(WireModel):
    doc_id: str = Field(min_length=1)
    section_id: str = Field(min_length=1)


__all__ = ["ClarificationRequest", "MacroRequest"]
