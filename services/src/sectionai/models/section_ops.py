"""Low-level section mutations and the reports produced around them."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import Field

from ._wire import WireModel
from .section import LlmParagraph

InlineMarkType = Literal["highlight", "bold", "italic", "underline"]


class ReplaceParagraphOp(WireModel):
    type: Literal["replace_paragraph"] = "replace_paragraph"
    target_key: str
    new_text: str
    preserve_style: bool = True
    index: int = Field(ge=0)


class InsertParagraphAfterOp(WireModel):
    type: Literal["insert_paragraph_after"] = "insert_paragraph_after"
    reference_key: str
    new_text: str
    index: int = Field(ge=0)
    style: dict[str, Any] | None = None


class DeleteParagraphOp(WireModel):
    type: Literal["delete_paragraph"] = "delete_paragraph"
    target_key: str
    index: int = Field(ge=0)


class ApplyInlineMarkOp(WireModel):
    """Mark a character range inside a single paragraph."""

    type: Literal["apply_inline_mark"] = "apply_inline_mark"
    target_key: str
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)
    mark_type: InlineMarkType = "bold"
    index: int = Field(ge=0)


SectionDocOp = Annotated[
    Union[ReplaceParagraphOp, InsertParagraphAfterOp, DeleteParagraphOp, ApplyInlineMarkOp],
    Field(discriminator="type"),
]


class RepairDetails(WireModel):
    input_type: Literal["array", "invalid"]
    original_count: int = Field(ge=0)
    target_count: int = Field(ge=0)
    valid_new_count: int = Field(ge=0)
    fallback_indices: list[int] = Field(default_factory=list)
    input_count: int = Field(default=0, ge=0)


class RepairResult(WireModel):
    paragraphs: list[LlmParagraph]
    was_repaired: bool
    repair_details: RepairDetails


class OpOutcome(WireModel):
    """Per-op apply result: ``applied`` or ``skipped`` with a reason."""

    index: int
    op_type: str
    status: Literal["applied", "skipped"]
    node_key: str | None = None
    reason: str | None = None


class ApplyReport(WireModel):
    success: bool = True
    outcomes: list[OpOutcome] = Field(default_factory=list)
    document_version: int | None = None
    error: str | None = None

    @property
    def applied_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "applied")

    @property
    def skipped_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "skipped")

    @property
    def changed(self) -> bool:
        return self.applied_count > 0


__all__ = [
    "ApplyInlineMarkOp",
    "ApplyReport",
    "DeleteParagraphOp",
    "InlineMarkType",
    "InsertParagraphAfterOp",
    "OpOutcome",
    "RepairDetails",
    "RepairResult",
    "ReplaceParagraphOp",
    "SectionDocOp",
]
