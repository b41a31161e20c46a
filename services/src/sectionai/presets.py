"""Named intent presets and the UI commands that select them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Final

from .models.doc_edit import (
    DocEditIntent,
    DocEditTarget,
    HighlightConfig,
    HighlightMode,
    Length,
    RewriteConfig,
    SummaryConfig,
    Tone,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentPreset:
    name: str
    label: str
    rewrite: dict[str, Any]
    highlight: dict[str, Any]
    summary: dict[str, Any]


PRESETS: Final[dict[str, IntentPreset]] = {
    preset.name: preset
    for preset in (
        IntentPreset(
            name="rewrite_plain",
            label="Rewrite",
            rewrite={"enabled": True},
            highlight={"enabled": False},
            summary={"enabled": False},
        ),
        IntentPreset(
            name="rewrite_with_highlight",
            label="Rewrite and highlight key sentences",
            rewrite={"enabled": True},
            highlight={"enabled": True, "mode": "sentences", "highlight_count": 3},
            summary={"enabled": False},
        ),
        IntentPreset(
            name="rewrite_with_highlight_and_summary",
            label="Rewrite, highlight and summarise",
            rewrite={"enabled": True},
            highlight={"enabled": True, "mode": "sentences", "highlight_count": 3},
            summary={"enabled": True, "bullet_count": 3},
        ),
        IntentPreset(
            name="rewrite_with_summary",
            label="Rewrite and summarise",
            rewrite={"enabled": True},
            highlight={"enabled": False},
            summary={"enabled": True, "bullet_count": 3},
        ),
        IntentPreset(
            name="highlight_only",
            label="Highlight key terms",
            rewrite={"enabled": False},
            highlight={"enabled": True, "mode": "terms", "term_count": 5},
            summary={"enabled": False},
        ),
        IntentPreset(
            name="summary_only",
            label="Summarise",
            rewrite={"enabled": False},
            highlight={"enabled": False},
            summary={"enabled": True, "bullet_count": 3},
        ),
    )
}

DEFAULT_PRESET: Final[str] = "rewrite_plain"

COMMAND_TO_PRESET: Final[dict[str, str]] = {
    "rewrite_section_plain": "rewrite_plain",
    "rewrite_section_intro": "rewrite_plain",
    "rewrite_section_chapter": "rewrite_plain",
    "rewrite_section_with_highlight": "rewrite_with_highlight",
    "rewrite_section_with_highlight_and_summary": "rewrite_with_highlight_and_summary",
    "rewrite_section_with_summary": "rewrite_with_summary",
    "highlight_section_terms": "highlight_only",
    "summarize_section": "summary_only",
}


def get_intent_preset(name: str) -> IntentPreset:
    try:
        return PRESETS[name]
    except KeyError:
        raise KeyError(f"Unknown intent preset {name!r}") from None


def preset_for_command(command: str) -> IntentPreset:
    """Resolve a UI command; unknown commands fall back to a plain rewrite."""

    name = COMMAND_TO_PRESET.get(command)
    if name is None:
        LOGGER.warning(
            "presets.unknown_command",
            extra={"extra_payload": {"command": command, "fallback": DEFAULT_PRESET}},
        )
        name = DEFAULT_PRESET
    return PRESETS[name]


def build_intent_from_preset(preset: IntentPreset, doc_id: str, section_id: str) -> DocEditIntent:
    return DocEditIntent(
        kind="section_edit",
        target=DocEditTarget(doc_id=doc_id, section_id=section_id),
        rewrite=RewriteConfig(**preset.rewrite),
        highlight=HighlightConfig(**preset.highlight),
        summary=SummaryConfig(**preset.summary),
        extra={"preset": preset.name},
    )


def build_intent_from_command(command: str, doc_id: str, section_id: str) -> DocEditIntent:
    return build_intent_from_preset(preset_for_command(command), doc_id, section_id)


def build_custom_intent(
    doc_id: str,
    section_id: str,
    *,
    rewrite: bool = True,
    tone: Tone | None = None,
    length: Length | None = None,
    highlight: bool = False,
    highlight_mode: HighlightMode | None = None,
    highlight_count: int | None = None,
    summary: bool = False,
    bullet_count: int | None = None,
) -> DocEditIntent:
    """Build an intent from individual toggles, e.g. a settings dialog."""

    return DocEditIntent(
        kind="custom",
        target=DocEditTarget(doc_id=doc_id, section_id=section_id),
        rewrite=RewriteConfig(enabled=rewrite, tone=tone, length=length),
        highlight=HighlightConfig(enabled=highlight, mode=highlight_mode, highlight_count=highlight_count),
        summary=SummaryConfig(enabled=summary, bullet_count=bullet_count),
    )


def describe_preset(name: str) -> str:
    """Human-readable summary of what a preset will do."""

    preset = get_intent_preset(name)
    parts: list[str] = []
    if preset.rewrite.get("enabled"):
        parts.append("rewrite the section")
    if preset.highlight.get("enabled"):
        if preset.highlight.get("mode") == "terms":
            parts.append(f"highlight {preset.highlight.get('term_count', 5)} key terms")
        else:
            parts.append(f"highlight {preset.highlight.get('highlight_count', 3)} key sentences")
    if preset.summary.get("enabled"):
        parts.append(f"append a {preset.summary.get('bullet_count', 3)}-point summary")
    if not parts:
        return "does nothing"
    if len(parts) == 1:
        return parts[0].capitalize()
    return (", ".join(parts[:-1]) + " and " + parts[-1]).capitalize()


__all__ = [
    "COMMAND_TO_PRESET",
    "DEFAULT_PRESET",
    "IntentPreset",
    "PRESETS",
    "build_custom_intent",
    "build_intent_from_command",
    "build_intent_from_preset",
    "describe_preset",
    "get_intent_preset",
    "preset_for_command",
]
