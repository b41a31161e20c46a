"""Prompt construction for section AI actions."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Sequence

from .models.results import SectionAiAction, SectionAiOptions
from .models.section import ParagraphInfo, SectionContext

PARAGRAPHS_MARKER = "SECTION_PARAGRAPHS_JSON:"

BASE_SYSTEM_PROMPT = """You edit one section of a structured document.
Reply with exactly three blocks, in this order, without Markdown fences:

[assistant]
One or two sentences for the user describing what you did.
[intent]
A JSON CanonicalIntent: {"intentId", "scope", "tasks", "confidence", "uncertainties", "responseMode"}.
[docops]
A JSON DocOpsPlan: {"version": "1.0", "intentId", "ops"}. The intentId must equal the one in [intent].

Paragraph rules:
- Paragraphs are addressed by their zero-based "index" in the input.
- Return paragraph text in a single "replace_range" op as payload.paragraphs.
- Never merge, split or reorder paragraphs unless the task says so.
- Set "confidence" between 0 and 1. When the request is ambiguous set
  "responseMode" to "clarify" and list what is unclear in "uncertainties".
"""

_TONE_HINTS: dict[str, str] = {
    "default": "Keep the author's tone.",
    "formal": "Use a formal, precise register.",
    "casual": "Use a relaxed, conversational register.",
    "neutral": "Use a neutral, factual register.",
    "polished": "Polish wording and rhythm without changing the meaning.",
}

_LENGTH_HINTS: dict[str, str] = {
    "shorter": "Make each paragraph noticeably shorter.",
    "same": "Keep each paragraph roughly the same length.",
    "longer": "Expand each paragraph with supporting detail.",
}


@dataclass(frozen=True)
class BuiltPrompt:
    system: str
    user: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def estimated_tokens(self) -> int:
        return (len(self.system) + len(self.user)) // 4

    def messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def _paragraph_payload(paragraphs: Sequence[ParagraphInfo]) -> str:
    return json.dumps(
        [{"index": i, "text": paragraph.text} for i, paragraph in enumerate(paragraphs)],
        ensure_ascii=False,
    )


def _task_lines(action: SectionAiAction, count: int, options: SectionAiOptions) -> list[str]:
    if action == "rewrite":
        rewrite = options.rewrite
        lines = [
            f"Task: rewrite all {count} paragraphs. Return exactly {count} paragraphs with indices 0..{count - 1}.",
            _TONE_HINTS.get(rewrite.tone, _TONE_HINTS["default"]),
            _LENGTH_HINTS.get(rewrite.length, _LENGTH_HINTS["same"]),
        ]
        if rewrite.keep_structure:
            lines.append("Keep lists, quotes and paragraph boundaries as they are.")
        return lines
    if action == "summarize":
        summarize = options.summarize
        if summarize.placement == "append":
            return [
                f"Task: write a {summarize.bullet_count}-point summary of the section.",
                f"Return {summarize.bullet_count} paragraphs, one bullet each, indices 0..{summarize.bullet_count - 1}.",
            ]
        return [
            f"Task: summarise the section into at most {count} paragraphs ({summarize.style} style).",
            "Never return more paragraphs than the input has.",
        ]
    if action == "expand":
        target = options.expand.target_paragraphs
        lines = ["Task: expand the section with more detail and examples. You may add paragraphs after the last one."]
        if target:
            lines.append(f"Aim for about {target} paragraphs in total.")
        return lines
    highlight = options.highlight
    unit = "sentences" if highlight.mode == "sentences" else "terms"
    return [
        f"Task: pick up to {highlight.count} key {unit} to highlight ({highlight.mode} mode).",
        'Put them in a "highlight_terms" task as params.terms: [{"phrase", "occurrence"}].',
        "Each phrase must appear verbatim in the section. The [docops] block may be omitted.",
    ]


def build_section_prompt(
    action: SectionAiAction,
    context: SectionContext,
    paragraphs: Sequence[ParagraphInfo],
    options: SectionAiOptions | None = None,
) -> BuiltPrompt:
    """Assemble the system and user prompt for one action on one section."""

    options = options or SectionAiOptions()
    user_lines = [
        f'Section id: "{context.section_id}"',
        f"Section title: {context.title_text}",
        f"Heading level: {context.level}",
        f"Action: {action}",
        "",
        *_task_lines(action, len(paragraphs), options),
    ]
    if options.custom_prompt:
        user_lines += ["", f"Additional instructions: {options.custom_prompt.strip()}"]
    user_lines += ["", PARAGRAPHS_MARKER, _paragraph_payload(paragraphs)]

    return BuiltPrompt(
        system=BASE_SYSTEM_PROMPT,
        user="\n".join(user_lines),
        metadata={
            "action": action,
            "section_id": context.section_id,
            "paragraph_count": len(paragraphs),
        },
    )


def extract_prompt_paragraphs(user_prompt: str) -> list[dict[str, Any]]:
    """Recover the paragraph array embedded by :func:`build_section_prompt`."""

    _, marker, payload = user_prompt.rpartition(PARAGRAPHS_MARKER)
    if not marker:
        return []
    try:
        data = json.loads(payload.strip())
    except json.JSONDecodeError:
        return []
    return [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []


__all__ = [
    "BASE_SYSTEM_PROMPT",
    "BuiltPrompt",
    "PARAGRAPHS_MARKER",
    "build_section_prompt",
    "extract_prompt_paragraphs",
]
