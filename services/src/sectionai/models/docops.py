"""DocOps plan emitted by the model in the ``[docops]`` block."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Field

from ._wire import WireModel

DOC_OPS_VERSION = "1.0"

MarkType = Literal["highlight", "bold", "italic"]


class OpScope(WireModel):
    section_id: str = Field(min_length=1)
    start_offset: int | None = Field(default=None, ge=0)
    end_offset: int | None = Field(default=None, ge=0)


class PlanParagraph(WireModel):
    """Proposed paragraph text keyed by its position in the original section."""

    index: int = Field(ge=0)
    text: str


class ReplaceRangePayload(WireModel):
    paragraphs: list[PlanParagraph] = Field(min_length=1)


class ApplyMarkPayload(WireModel):
    mark_type: MarkType


class InsertAfterSectionPayload(WireModel):
    content: str = Field(min_length=1)


class InsertParagraphAfterPayload(WireModel):
    reference_paragraph_index: int | None = Field(default=None, ge=0)
    text: str


class AddCommentPayload(WireModel):
    comment: str = Field(min_length=1)


class ReplaceRangeOp(WireModel):
    type: Literal["replace_range"]
    scope: OpScope
    payload: ReplaceRangePayload


class ApplyMarkOp(WireModel):
    type: Literal["apply_mark"]
    scope: OpScope
    payload: ApplyMarkPayload


class InsertAfterSectionOp(WireModel):
    type: Literal["insert_after_section"]
    scope: OpScope
    payload: InsertAfterSectionPayload


class InsertParagraphAfterOp(WireModel):
    type: Literal["insert_paragraph_after"]
    scope: OpScope
    payload: InsertParagraphAfterPayload


class AddCommentOp(WireModel):
    type: Literal["add_comment"]
    scope: OpScope
    payload: AddCommentPayload


DocOp = Annotated[
    Union[
        ReplaceRangeOp,
        ApplyMarkOp,
        InsertAfterSectionOp,
        InsertParagraphAfterOp,
        AddCommentOp,
    ],
    Field(discriminator="type"),
]


class DocOpsPlan(WireModel):
    version: str
    intent_id: str = Field(min_length=1)
    ops: list[DocOp] = Field(min_length=1)

    def ops_of_type(self, op_type: str) -> list[DocOp]:
        return [op for op in self.ops if op.type == op_type]


class DocOpsValidation(WireModel):
    """Cross-field check results for a parsed plan."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


__all__ = [
    "AddCommentOp",
    "ApplyMarkOp",
    "DOC_OPS_VERSION",
    "DocOp",
    "DocOpsPlan",
    "DocOpsValidation",
    "InsertAfterSectionOp",
    "InsertParagraphAfterOp",
    "MarkType",
    "OpScope",
    "PlanParagraph",
    "ReplaceRangeOp",
]
