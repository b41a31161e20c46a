"""Options and result envelopes for section AI actions and plan runs."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from ._wire import WireModel
from .doc_edit import HighlightMode, HighlightStyle, Length, SummaryStyle, Tone
from .docops import DocOpsPlan
from .intent import CanonicalIntent, HighlightTerm, ResponseMode, Uncertainty
from .section_ops import ApplyReport, RepairDetails, SectionDocOp

SectionAiAction = Literal["rewrite", "summarize", "expand", "highlight"]
SectionScope = Literal["intro", "chapter"]


class RewriteOptions(WireModel):
    tone: Tone = "default"
    length: Length = "same"
    keep_structure: bool = True
    scope: SectionScope = "intro"


class SummarizeOptions(WireModel):
    style: SummaryStyle = "bullet"
    bullet_count: int = Field(default=3, ge=1)
    placement: Literal["replace", "append"] = "replace"


class ExpandOptions(WireModel):
    target_paragraphs: int | None = Field(default=None, ge=1)


class HighlightOptions(WireModel):
    mode: HighlightMode = "terms"
    count: int = Field(default=5, ge=1)
    style: HighlightStyle = "bold"
    terms: list[HighlightTerm] | None = None


class SectionAiOptions(WireModel):
    rewrite: RewriteOptions = Field(default_factory=RewriteOptions)
    summarize: SummarizeOptions = Field(default_factory=SummarizeOptions)
    expand: ExpandOptions = Field(default_factory=ExpandOptions)
    highlight: HighlightOptions = Field(default_factory=HighlightOptions)
    custom_prompt: str | None = None


class DiffAnchors(WireModel):
    """Unchanged character counts on either side of the edit."""

    left: int = Field(ge=0)
    right: int = Field(ge=0)


class DiffAddition(WireModel):
    range: tuple[int, int]
    text: str


class DiffRemoval(WireModel):
    range: tuple[int, int]


class DiffChange(WireModel):
    range: tuple[int, int]
    replacement: str


class TextDiff(WireModel):
    added: list[DiffAddition] = Field(default_factory=list)
    removed: list[DiffRemoval] = Field(default_factory=list)
    changed: list[DiffChange] = Field(default_factory=list)
    anchors: DiffAnchors


class ReplacementPreview(WireModel):
    target_key: str
    index: int
    old_text: str
    new_text: str
    diff: TextDiff


class SectionAiResult(WireModel):
    success: bool
    action: SectionAiAction | None = None
    section_id: str | None = None
    doc_ops: list[SectionDocOp] = Field(default_factory=list)
    intent: CanonicalIntent | None = None
    doc_ops_plan: DocOpsPlan | None = None
    assistant_text: str | None = None
    response_mode: ResponseMode | None = None
    confidence: float | None = None
    uncertainties: list[Uncertainty] = Field(default_factory=list)
    applied: bool = False
    apply_report: ApplyReport | None = None
    repair: RepairDetails | None = None
    previews: list[ReplacementPreview] = Field(default_factory=list)
    error: str | None = None
    error_code: str | None = None
    message: str | None = None


RunState = Literal["pending", "running", "completed", "failed"]


class StepResult(WireModel):
    step_index: int = Field(ge=0)
    step_type: str
    success: bool
    duration_ms: float = Field(ge=0)
    error: str | None = None
    result: SectionAiResult | None = None


class PlanRunResult(WireModel):
    success: bool
    state: RunState
    completed_steps: int = Field(ge=0)
    total_steps: int = Field(ge=0)
    step_results: list[StepResult] = Field(default_factory=list)
    error: str | None = None


__all__ = [
    "DiffAddition",
    "DiffAnchors",
    "DiffChange",
    "DiffRemoval",
    "ExpandOptions",
    "HighlightOptions",
    "PlanRunResult",
    "ReplacementPreview",
    "RewriteOptions",
    "RunState",
    "SectionAiAction",
    "SectionAiOptions",
    "SectionAiResult",
    "SectionScope",
    "StepResult",
    "SummarizeOptions",
    "TextDiff",
]
