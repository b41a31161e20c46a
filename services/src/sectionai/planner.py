"""Turn capability-toggle intents into ordered primitive step plans."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from .models.doc_edit import (
    INTENT_DEFAULTS,
    AppendBulletSummaryStep,
    DocAgentPrimitive,
    DocEditIntent,
    DocEditPlan,
    DocEditPlanMeta,
    DocEditPlanStep,
    DocEditTarget,
    HighlightConfig,
    MarkKeySentencesStep,
    MarkKeyTermsStep,
    NormalizedDocEditIntent,
    NormalizedHighlight,
    NormalizedRewrite,
    NormalizedSummary,
    RewriteConfig,
    RewriteSectionStep,
    SummaryConfig,
)
from .models.section import SectionContext

LOGGER = logging.getLogger(__name__)

MIXED_SENTENCE_CAP = 2
MIXED_TERM_CAP = 4

Clock = Callable[[], datetime]

_LEGACY_TOGGLES: dict[str, tuple[bool, bool, bool]] = {
    "rewrite_section_with_highlight_and_summary": (True, True, True),
    "rewrite_section_plain": (True, False, False),
    "summarize_section_plain": (False, False, True),
}


class PlanBuildError(ValueError):
    """Raised when an intent cannot be turned into an executable plan."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def adapt_legacy_intent(intent: DocEditIntent) -> DocEditIntent:
    """Translate legacy kinds and the ``semantic``/``formatting`` blocks.

    Intents already in the current shape are returned unchanged. The result
    never carries a legacy kind or deprecated block.
    """

    if not intent.is_legacy:
        return intent

    rewrite = intent.rewrite
    highlight = intent.highlight
    summary = intent.summary
    kind = intent.kind

    if kind in _LEGACY_TOGGLES:
        rewrite_on, highlight_on, summary_on = _LEGACY_TOGGLES[kind]
        rewrite = (rewrite or RewriteConfig()).model_copy(update={"enabled": rewrite_on})
        highlight = (highlight or HighlightConfig()).model_copy(update={"enabled": highlight_on})
        summary = (summary or SummaryConfig()).model_copy(update={"enabled": summary_on})
        kind = "section_edit"

    if intent.semantic is not None:
        rewrite = rewrite or RewriteConfig()
        rewrite = rewrite.model_copy(
            update={
                "tone": rewrite.tone or intent.semantic.tone,
                "length": rewrite.length or intent.semantic.length,
            }
        )

    if intent.formatting is not None:
        highlight = highlight or HighlightConfig()
        updates: dict[str, Any] = {}
        if highlight.enabled is None and intent.formatting.highlight_key_sentences is not None:
            updates["enabled"] = intent.formatting.highlight_key_sentences
        if highlight.highlight_count is None and intent.formatting.highlight_count is not None:
            updates["highlight_count"] = intent.formatting.highlight_count
        if highlight.mode is None and intent.formatting.highlight_key_sentences:
            updates["mode"] = "sentences"
        highlight = highlight.model_copy(update=updates)

    LOGGER.debug(
        "planner.legacy_intent_adapted",
        extra={"extra_payload": {"legacy_kind": intent.kind, "intent_id": intent.id}},
    )
    return intent.model_copy(
        update={
            "kind": kind,
            "rewrite": rewrite,
            "highlight": highlight,
            "summary": summary,
            "semantic": None,
            "formatting": None,
        }
    )


def _fill(section: str, config: Any) -> dict[str, Any]:
    values = dict(INTENT_DEFAULTS[section])
    if config is not None:
        for key, value in config.model_dump(exclude_none=True).items():
            if key in values:
                values[key] = value
    return values


def _derived_intent_id(intent: DocEditIntent) -> str:
    seed = f"{intent.target.doc_id}/{intent.target.section_id}/{intent.kind}"
    return f"intent-{uuid.uuid5(uuid.NAMESPACE_URL, seed).hex[:12]}"


def normalize_doc_edit_intent(intent: DocEditIntent) -> NormalizedDocEditIntent:
    """Adapt legacy shapes then fill every capability field with its default."""

    current = adapt_legacy_intent(intent)
    return NormalizedDocEditIntent(
        id=current.id or _derived_intent_id(current),
        kind=current.kind,
        target=current.target,
        rewrite=NormalizedRewrite(**_fill("rewrite", current.rewrite)),
        highlight=NormalizedHighlight(**_fill("highlight", current.highlight)),
        summary=NormalizedSummary(**_fill("summary", current.summary)),
        extra=dict(current.extra or {}),
    )


def get_enabled_features(intent: NormalizedDocEditIntent) -> list[DocAgentPrimitive]:
    features: list[DocAgentPrimitive] = []
    if intent.rewrite.enabled:
        features.append("RewriteSection")
    if intent.highlight.enabled:
        mode = intent.highlight.mode
        if mode in ("sentences", "mixed"):
            features.append("HighlightKeySentences")
        if mode in ("terms", "mixed"):
            features.append("HighlightKeyTerms")
    if intent.summary.enabled:
        features.append("AppendSummary")
    return features


def _build_steps(intent: NormalizedDocEditIntent) -> list[DocEditPlanStep]:
    steps: list[DocEditPlanStep] = []
    rewrite, highlight, summary = intent.rewrite, intent.highlight, intent.summary

    if rewrite.enabled:
        steps.append(
            RewriteSectionStep(
                tone=rewrite.tone,
                length=rewrite.length,
                keep_structure=rewrite.keep_structure,
            )
        )

    if highlight.enabled:
        if highlight.mode == "sentences":
            steps.append(
                MarkKeySentencesStep(highlight_count=highlight.highlight_count, style=highlight.style)
            )
        elif highlight.mode == "terms":
            steps.append(MarkKeyTermsStep(term_count=highlight.term_count, style=highlight.style))
        else:
            steps.append(
                MarkKeySentencesStep(
                    highlight_count=min(MIXED_SENTENCE_CAP, highlight.highlight_count),
                    style=highlight.style,
                )
            )
            steps.append(
                MarkKeyTermsStep(
                    term_count=min(MIXED_TERM_CAP, highlight.term_count),
                    style=highlight.style,
                )
            )

    if summary.enabled:
        steps.append(AppendBulletSummaryStep(bullet_count=summary.bullet_count, style=summary.style))

    return steps


def build_doc_edit_plan_for_intent(
    intent: DocEditIntent | NormalizedDocEditIntent,
    section_context: SectionContext | None = None,
    *,
    source: str = "ui",
    clock: Clock = _utcnow,
) -> DocEditPlan:
    """Build the ordered step plan: rewrite, then highlight, then summary."""

    normalized = (
        intent
        if isinstance(intent, NormalizedDocEditIntent)
        else normalize_doc_edit_intent(intent)
    )
    steps = _build_steps(normalized)
    if not steps:
        raise PlanBuildError("No steps generated. At least one capability must be enabled.")

    section_id = normalized.target.section_id
    if section_context is not None and section_context.section_id != section_id:
        LOGGER.warning(
            "planner.section_mismatch",
            extra={
                "extra_payload": {
                    "intent_section_id": section_id,
                    "context_section_id": section_context.section_id,
                }
            },
        )

    plan = DocEditPlan(
        intent_id=normalized.id,
        intent_kind=normalized.kind,
        doc_id=normalized.target.doc_id,
        section_id=section_id,
        steps=steps,
        meta=DocEditPlanMeta(
            created_at=clock().isoformat(),
            source=source,
            enabled_features=get_enabled_features(normalized),
        ),
    )
    LOGGER.info(
        "planner.plan_built",
        extra={
            "extra_payload": {
                "intent_id": plan.intent_id,
                "section_id": plan.section_id,
                "steps": get_plan_step_types(plan),
            }
        },
    )
    return plan


def get_plan_step_types(plan: DocEditPlan) -> list[str]:
    return [step.type for step in plan.steps]


def is_valid_plan(plan: Any) -> bool:
    return (
        isinstance(plan, DocEditPlan)
        and bool(plan.doc_id)
        and bool(plan.section_id)
        and len(plan.steps) > 0
    )


def create_section_edit_intent(
    doc_id: str,
    section_id: str,
    *,
    rewrite: RewriteConfig | None = None,
    highlight: HighlightConfig | None = None,
    summary: SummaryConfig | None = None,
    intent_id: str | None = None,
) -> DocEditIntent:
    return DocEditIntent(
        id=intent_id,
        kind="section_edit",
        target=DocEditTarget(doc_id=doc_id, section_id=section_id),
        rewrite=rewrite,
        highlight=highlight,
        summary=summary,
    )


__all__ = [
    "MIXED_SENTENCE_CAP",
    "MIXED_TERM_CAP",
    "PlanBuildError",
    "adapt_legacy_intent",
    "build_doc_edit_plan_for_intent",
    "create_section_edit_intent",
    "get_enabled_features",
    "get_plan_step_types",
    "is_valid_plan",
    "normalize_doc_edit_intent",
]
