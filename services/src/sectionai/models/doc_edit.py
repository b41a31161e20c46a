"""Capability-toggle intents and the step plans built from them."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import Field, field_validator

from ._wire import WireModel

DocEditIntentKind = Literal["section_edit", "section_analysis", "document_edit", "custom"]
LegacyDocEditIntentKind = Literal[
    "rewrite_section_with_highlight_and_summary",
    "rewrite_section_plain",
    "summarize_section_plain",
]
LEGACY_INTENT_KINDS: tuple[str, ...] = (
    "rewrite_section_with_highlight_and_summary",
    "rewrite_section_plain",
    "summarize_section_plain",
)

Tone = Literal["default", "formal", "casual", "neutral", "polished"]
Length = Literal["shorter", "same", "longer"]
HighlightMode = Literal["sentences", "terms", "mixed"]
HighlightStyle = Literal["default", "bold", "underline", "background"]
SummaryStyle = Literal["bullet", "short", "long"]
DocAgentPrimitive = Literal[
    "RewriteSection",
    "HighlightSpans",
    "HighlightKeyTerms",
    "HighlightKeySentences",
    "AppendSummary",
]


def _legacy_length(value: Any) -> Any:
    return "same" if value == "keep" else value


class DocEditTarget(WireModel):
    doc_id: str = Field(min_length=1)
    section_id: str = Field(min_length=1)


class RewriteConfig(WireModel):
    enabled: bool | None = None
    tone: Tone | None = None
    length: Length | None = None
    keep_structure: bool | None = None

    @field_validator("length", mode="before")
    @classmethod
    def _map_keep(cls, value: Any) -> Any:
        return _legacy_length(value)


class HighlightConfig(WireModel):
    enabled: bool | None = None
    mode: HighlightMode | None = None
    highlight_count: int | None = Field(default=None, ge=1)
    term_count: int | None = Field(default=None, ge=1)
    style: HighlightStyle | None = None


class SummaryConfig(WireModel):
    enabled: bool | None = None
    bullet_count: int | None = Field(default=None, ge=1)
    style: SummaryStyle | None = None


class SemanticConfig(WireModel):
    """Deprecated pre-toggle rewrite settings."""

    tone: Tone | None = None
    length: Length | None = None

    @field_validator("length", mode="before")
    @classmethod
    def _map_keep(cls, value: Any) -> Any:
        return _legacy_length(value)


class FormattingConfig(WireModel):
    """Deprecated pre-toggle highlight settings."""

    highlight_key_sentences: bool | None = None
    highlight_count: int | None = Field(default=None, ge=1)


class DocEditIntent(WireModel):
    """High-level edit request, possibly in a legacy shape."""

    id: str | None = None
    kind: DocEditIntentKind | LegacyDocEditIntentKind = "section_edit"
    target: DocEditTarget
    rewrite: RewriteConfig | None = None
    highlight: HighlightConfig | None = None
    summary: SummaryConfig | None = None
    extra: dict[str, Any] | None = None
    semantic: SemanticConfig | None = None
    formatting: FormattingConfig | None = None

    @property
    def is_legacy(self) -> bool:
        return (
            self.kind in LEGACY_INTENT_KINDS
            or self.semantic is not None
            or self.formatting is not None
        )


class NormalizedRewrite(WireModel):
    enabled: bool
    tone: Tone
    length: Length
    keep_structure: bool


class NormalizedHighlight(WireModel):
    enabled: bool
    mode: HighlightMode
    highlight_count: int
    term_count: int
    style: HighlightStyle


class NormalizedSummary(WireModel):
    enabled: bool
    bullet_count: int
    style: SummaryStyle


class NormalizedDocEditIntent(WireModel):
    """Intent with every capability config present and defaulted."""

    id: str
    kind: DocEditIntentKind
    target: DocEditTarget
    rewrite: NormalizedRewrite
    highlight: NormalizedHighlight
    summary: NormalizedSummary
    extra: dict[str, Any] = Field(default_factory=dict)


INTENT_DEFAULTS: dict[str, dict[str, Any]] = {
    "rewrite": {"enabled": True, "tone": "default", "length": "same", "keep_structure": True},
    "highlight": {
        "enabled": False,
        "mode": "sentences",
        "highlight_count": 3,
        "term_count": 5,
        "style": "bold",
    },
    "summary": {"enabled": False, "bullet_count": 3, "style": "bullet"},
}


class RewriteSectionStep(WireModel):
    type: Literal["rewrite_section"] = "rewrite_section"
    tone: Tone = "default"
    length: Length = "same"
    keep_structure: bool = True


class MarkKeySentencesStep(WireModel):
    type: Literal["mark_key_sentences"] = "mark_key_sentences"
    highlight_count: int = Field(default=3, ge=1)
    style: HighlightStyle = "bold"


class MarkKeyTermsStep(WireModel):
    type: Literal["mark_key_terms"] = "mark_key_terms"
    terms: list[str] | None = None
    term_count: int = Field(default=5, ge=1)
    max_term_length: int = Field(default=20, ge=1)
    mark_kind: Literal["key_term"] = "key_term"
    style: HighlightStyle = "bold"


class AppendBulletSummaryStep(WireModel):
    type: Literal["append_bullet_summary"] = "append_bullet_summary"
    bullet_count: int = Field(default=3, ge=1)
    style: SummaryStyle = "bullet"


DocEditPlanStep = Annotated[
    Union[RewriteSectionStep, MarkKeySentencesStep, MarkKeyTermsStep, AppendBulletSummaryStep],
    Field(discriminator="type"),
]


class DocEditPlanMeta(WireModel):
    created_at: str
    source: Literal["ui", "chat", "macro", "api"] = "ui"
    enabled_features: list[DocAgentPrimitive] = Field(default_factory=list)


class DocEditPlan(WireModel):
    intent_id: str
    intent_kind: DocEditIntentKind
    doc_id: str
    section_id: str
    steps: list[DocEditPlanStep] = Field(default_factory=list)
    meta: DocEditPlanMeta


__all__ = [
    "AppendBulletSummaryStep",
    "DocAgentPrimitive",
    "DocEditIntent",
    "DocEditIntentKind",
    "DocEditPlan",
    "DocEditPlanMeta",
    "DocEditPlanStep",
    "DocEditTarget",
    "FormattingConfig",
    "HighlightConfig",
    "HighlightMode",
    "HighlightStyle",
    "INTENT_DEFAULTS",
    "LEGACY_INTENT_KINDS",
    "Length",
    "MarkKeySentencesStep",
    "MarkKeyTermsStep",
    "NormalizedDocEditIntent",
    "NormalizedHighlight",
    "NormalizedRewrite",
    "NormalizedSummary",
    "RewriteConfig",
    "RewriteSectionStep",
    "SemanticConfig",
    "SummaryConfig",
    "SummaryStyle",
    "Tone",
]
