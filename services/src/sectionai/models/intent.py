"""Canonical intent emitted by the model in the ``[intent]`` block."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import Field, field_validator, model_validator

from ._wire import WireModel

ScopeTarget = Literal["selection", "section", "document", "outline_range"]
ResponseMode = Literal["auto_apply", "preview", "clarify"]
InteractionMode = Literal["apply_directly", "preview_then_apply", "ask_clarification"]

PREVIEW_CONFIDENCE_THRESHOLD = 0.5

_TASK_TYPE_ALIASES: dict[str, str] = {
    "mark_key_terms": "highlight_terms",
    "highlight_spans": "highlight_terms",
}


class SelectionRange(WireModel):
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "SelectionRange":
        if self.end_offset < self.start_offset:
            msg = "selection.endOffset must be >= startOffset"
            raise ValueError(msg)
        return self


class OutlineRange(WireModel):
    from_section_id: str = Field(min_length=1)
    to_section_id: str = Field(min_length=1)


class IntentScope(WireModel):
    """Where an intent applies; ``target`` is inferred when omitted."""

    target: ScopeTarget
    section_id: str | None = None
    selection: SelectionRange | None = None
    outline_range: OutlineRange | None = None

    @model_validator(mode="before")
    @classmethod
    def _infer_target(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("target") is not None:
            return data
        inferred = dict(data)
        if _present(data, "sectionId", "section_id"):
            inferred["target"] = "section"
        elif _present(data, "selection"):
            inferred["target"] = "selection"
        elif _present(data, "outlineRange", "outline_range"):
            inferred["target"] = "outline_range"
        else:
            inferred["target"] = "document"
        return inferred

    @model_validator(mode="after")
    def _check_target_detail(self) -> "IntentScope":
        if self.target == "section" and not self.section_id:
            raise ValueError("scope.target 'section' requires sectionId")
        if self.target == "selection" and self.selection is None:
            raise ValueError("scope.target 'selection' requires selection")
        if self.target == "outline_range" and self.outline_range is None:
            raise ValueError("scope.target 'outline_range' requires outlineRange")
        return self


class RewriteParams(WireModel):
    tone: str | None = None
    depth: Literal["light", "medium", "deep"] | None = None
    preserve_structure: bool | None = None
    highlight_mode: Literal["none", "sentences", "terms", "mixed"] | None = None
    include_summary: bool | None = None


class TranslateParams(WireModel):
    target_language: str = Field(min_length=2)
    style: Literal["literal", "fluent", "academic"] | None = None


class SummarizeParams(WireModel):
    style: Literal["bullet", "short", "long"] | None = None
    max_paragraphs: int | None = Field(default=None, gt=0)


class HighlightTerm(WireModel):
    """A phrase to mark; ``occurrence`` is 1-based within the section."""

    phrase: str = Field(min_length=1)
    occurrence: int = Field(default=1, ge=1)


class HighlightTermsParams(WireModel):
    max_terms: int | None = Field(default=None, gt=0)
    mode: Literal["sentences", "terms", "mixed"] | None = None
    terms: list[HighlightTerm] = Field(default_factory=list)
    style: Literal["default", "bold", "underline", "background"] | None = None


class InsertBlockParams(WireModel):
    block_type: Literal["paragraph", "bullet_list", "quote"]
    reference_section_id: str | None = None
    content: str | None = None


class AddCommentParams(WireModel):
    comment: str = Field(min_length=1)
    reference_section_id: str | None = None


class RewriteTask(WireModel):
    type: Literal["rewrite"]
    params: RewriteParams = Field(default_factory=RewriteParams)


class TranslateTask(WireModel):
    type: Literal["translate"]
    params: TranslateParams


class SummarizeTask(WireModel):
    type: Literal["summarize"]
    params: SummarizeParams = Field(default_factory=SummarizeParams)


class HighlightTermsTask(WireModel):
    type: Literal["highlight_terms"]
    params: HighlightTermsParams = Field(default_factory=HighlightTermsParams)


class InsertBlockTask(WireModel):
    type: Literal["insert_block"]
    params: InsertBlockParams


class AddCommentTask(WireModel):
    type: Literal["add_comment"]
    params: AddCommentParams


IntentTask = Annotated[
    Union[
        RewriteTask,
        TranslateTask,
        SummarizeTask,
        HighlightTermsTask,
        InsertBlockTask,
        AddCommentTask,
    ],
    Field(discriminator="type"),
]


class IntentPreferences(WireModel):
    preserve_formatting: bool | None = None
    preserve_structure: bool | None = None
    insert_mode: Literal["in_place", "append_after", "insert_comment"] | None = None
    use_user_highlight_habit: bool | None = None


class Uncertainty(WireModel):
    """A field the model was unsure about, with candidate answers."""

    field: str
    reason: str
    candidate_options: list[str] | None = None


class IntentMeta(WireModel):
    inferred_from_behavior: list[str] = Field(default_factory=list)
    notes: str | None = None


class CanonicalIntent(WireModel):
    """Validated description of the edit the model intends to perform."""

    intent_id: str = Field(min_length=1)
    scope: IntentScope
    tasks: list[IntentTask] = Field(min_length=1)
    preferences: IntentPreferences | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    uncertainties: list[Uncertainty] = Field(default_factory=list)
    response_mode: ResponseMode
    meta: IntentMeta | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_response_mode(cls, data: Any) -> Any:
        if not isinstance(data, dict) or _present(data, "responseMode", "response_mode"):
            return data
        defaulted = dict(data)
        defaulted["responseMode"] = default_response_mode(data.get("confidence"))
        return defaulted

    @field_validator("tasks", mode="before")
    @classmethod
    def _alias_task_types(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        tasks: list[Any] = []
        for task in value:
            if isinstance(task, dict) and task.get("type") in _TASK_TYPE_ALIASES:
                task = {**task, "type": _TASK_TYPE_ALIASES[task["type"]]}
            tasks.append(task)
        return tasks

    def find_task(self, task_type: str) -> IntentTask | None:
        for task in self.tasks:
            if task.type == task_type:
                return task
        return None

    def highlight_terms(self) -> list[HighlightTerm]:
        """Return terms carried by a ``highlight_terms`` task, if any."""

        task = self.find_task("highlight_terms")
        if isinstance(task, HighlightTermsTask):
            return list(task.params.terms)
        return []


def default_response_mode(confidence: Any) -> ResponseMode:
    """Pick ``preview`` for low-confidence intents, ``auto_apply`` otherwise."""

    if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
        if confidence < PREVIEW_CONFIDENCE_THRESHOLD:
            return "preview"
    return "auto_apply"


def _present(data: dict[str, Any], *keys: str) -> bool:
    return any(data.get(key) is not None for key in keys)


__all__ = [
    "AddCommentTask",
    "CanonicalIntent",
    "HighlightTerm",
    "HighlightTermsParams",
    "HighlightTermsTask",
    "InsertBlockTask",
    "IntentMeta",
    "IntentPreferences",
    "IntentScope",
    "IntentTask",
    "InteractionMode",
    "OutlineRange",
    "PREVIEW_CONFIDENCE_THRESHOLD",
    "ResponseMode",
    "RewriteParams",
    "RewriteTask",
    "ScopeTarget",
    "SelectionRange",
    "SummarizeParams",
    "SummarizeTask",
    "TranslateTask",
    "Uncertainty",
    "default_response_mode",
]
