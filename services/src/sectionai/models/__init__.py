"""Pydantic models for the section AI wire contracts and service IO."""

from .doc_edit import DocEditIntent, DocEditPlan, NormalizedDocEditIntent
from .docops import DocOpsPlan, DocOpsValidation
from .errors import ErrorResponse
from .intent import CanonicalIntent, IntentScope
from .results import PlanRunResult, SectionAiOptions, SectionAiResult, StepResult
from .section import DiffContext, LlmParagraph, ParagraphInfo, SectionContext
from .section_ops import (
    ApplyInlineMarkOp,
    ApplyReport,
    DeleteParagraphOp,
    InsertParagraphAfterOp,
    OpOutcome,
    RepairResult,
    ReplaceParagraphOp,
    SectionDocOp,
)

__all__ = [
    "ApplyInlineMarkOp",
    "ApplyReport",
    "CanonicalIntent",
    "DeleteParagraphOp",
    "DiffContext",
    "DocEditIntent",
    "DocEditPlan",
    "DocOpsPlan",
    "DocOpsValidation",
    "ErrorResponse",
    "InsertParagraphAfterOp",
    "IntentScope",
    "LlmParagraph",
    "NormalizedDocEditIntent",
    "OpOutcome",
    "ParagraphInfo",
    "PlanRunResult",
    "RepairResult",
    "ReplaceParagraphOp",
    "SectionAiOptions",
    "SectionAiResult",
    "SectionContext",
    "SectionDocOp",
    "StepResult",
]
