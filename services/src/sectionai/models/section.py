"""Section context supplied to the diff and repair layers."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from ._wire import WireModel

NodeType = Literal["paragraph", "heading", "list_item", "quote"]


class ParagraphInfo(WireModel):
    """One existing content node inside a section."""

    node_key: str = Field(min_length=1)
    text: str
    node_type: NodeType = "paragraph"
    node_path: list[int] = Field(default_factory=list)
    style: dict[str, Any] | None = None


class LlmParagraph(WireModel):
    """Paragraph text proposed by the model for an original position."""

    index: int = Field(ge=0)
    text: str


class ChildSectionMeta(WireModel):
    section_id: str
    title_text: str
    level: int = Field(ge=1, le=3)
    start_index: int = Field(ge=0)
    end_index: int = Field(ge=0)
    own_paragraph_count: int = Field(default=0, ge=0)


class SectionContext(WireModel):
    """Snapshot of a heading and the content it owns."""

    section_id: str
    title_text: str
    level: int = Field(ge=1, le=3)
    own_paragraphs: list[ParagraphInfo] = Field(default_factory=list)
    subtree_paragraphs: list[ParagraphInfo] = Field(default_factory=list)
    child_sections: list[ChildSectionMeta] = Field(default_factory=list)
    start_index: int = Field(default=0, ge=0)
    end_index: int = Field(default=0, ge=0)

    @property
    def paragraphs(self) -> list[ParagraphInfo]:
        return self.own_paragraphs

    def paragraphs_for_scope(self, scope: str | None) -> list[ParagraphInfo]:
        """Return subtree content for ``chapter`` scope, own content otherwise."""

        if scope == "chapter":
            return self.subtree_paragraphs
        return self.own_paragraphs


class DiffContext(WireModel):
    """Minimal context for diffing when no full section is available."""

    section_id: str = ""
    paragraphs: list[ParagraphInfo] = Field(default_factory=list)


__all__ = [
    "ChildSectionMeta",
    "DiffContext",
    "LlmParagraph",
    "NodeType",
    "ParagraphInfo",
    "SectionContext",
]
