"""Reconcile unreliable model paragraph output with the original section."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from .diff_engine import HasParagraphs
from .models.section import LlmParagraph
from .models.section_ops import RepairDetails, RepairResult

LOGGER = logging.getLogger(__name__)


def _entry_fields(item: Any) -> tuple[Any, Any]:
    if isinstance(item, dict):
        return item.get("index"), item.get("text")
    return getattr(item, "index", None), getattr(item, "text", None)


def _is_usable_index(index: Any, count: int) -> bool:
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < count


def repair_rewrite_section_paragraphs_with_details(
    context: HasParagraphs, new_paragraphs: Any
) -> RepairResult:
    """Return exactly one paragraph per original position.

    Positions the model did not fill with usable text fall back to the
    original text and are listed in ``fallback_indices``.
    """

    originals = list(context.paragraphs)
    original_count = len(originals)
    section_id = getattr(context, "section_id", None)

    if not isinstance(new_paragraphs, (list, tuple)):
        LOGGER.warning(
            "repair.invalid_input",
            extra={
                "extra_payload": {
                    "section_id": section_id,
                    "input_type": type(new_paragraphs).__name__,
                }
            },
        )
        return RepairResult(
            paragraphs=[LlmParagraph(index=i, text=p.text) for i, p in enumerate(originals)],
            was_repaired=True,
            repair_details=RepairDetails(
                input_type="invalid",
                original_count=original_count,
                target_count=original_count,
                valid_new_count=0,
                fallback_indices=list(range(original_count)),
                input_count=0,
            ),
        )

    accepted: dict[int, str] = {}
    dropped: list[Any] = []
    for item in new_paragraphs:
        index, text = _entry_fields(item)
        if not _is_usable_index(index, original_count):
            dropped.append(index)
            continue
        if not isinstance(text, str) or not text.strip():
            dropped.append(index)
            continue
        accepted[index] = text

    if dropped:
        LOGGER.info(
            "repair.dropped_entries",
            extra={"extra_payload": {"section_id": section_id, "indices": [repr(i) for i in dropped]}},
        )

    paragraphs: list[LlmParagraph] = []
    fallback_indices: list[int] = []
    for index, original in enumerate(originals):
        if index in accepted:
            paragraphs.append(LlmParagraph(index=index, text=accepted[index]))
        else:
            paragraphs.append(LlmParagraph(index=index, text=original.text))
            fallback_indices.append(index)

    was_repaired = len(new_paragraphs) != original_count or bool(fallback_indices)
    if was_repaired:
        LOGGER.warning(
            "repair.applied",
            extra={
                "extra_payload": {
                    "section_id": section_id,
                    "input_count": len(new_paragraphs),
                    "original_count": original_count,
                    "fallback_indices": fallback_indices,
                }
            },
        )

    return RepairResult(
        paragraphs=paragraphs,
        was_repaired=was_repaired,
        repair_details=RepairDetails(
            input_type="array",
            original_count=original_count,
            target_count=len(paragraphs),
            valid_new_count=len(accepted),
            fallback_indices=fallback_indices,
            input_count=len(new_paragraphs),
        ),
    )


def repair_rewrite_section_paragraphs(context: HasParagraphs, new_paragraphs: Any) -> list[LlmParagraph]:
    return repair_rewrite_section_paragraphs_with_details(context, new_paragraphs).paragraphs


def needs_repair(context: HasParagraphs, new_paragraphs: Any) -> bool:
    """Cheap check used to decide whether a warning is worth surfacing."""

    if not isinstance(new_paragraphs, (list, tuple)):
        return True
    count = len(context.paragraphs)
    if len(new_paragraphs) != count:
        return True
    seen: set[int] = set()
    for item in new_paragraphs:
        index, text = _entry_fields(item)
        if not _is_usable_index(index, count) or not isinstance(text, str) or not text.strip():
            return True
        seen.add(index)
    return len(seen) != count


def truncate_for_summarize(paragraphs: Sequence[Any], original_count: int) -> list[Any]:
    """Keep at most ``original_count`` proposals; summaries never grow a section."""

    if len(paragraphs) <= original_count:
        return list(paragraphs)
    LOGGER.warning(
        "repair.summarize_truncated",
        extra={"extra_payload": {"proposed": len(paragraphs), "original_count": original_count}},
    )
    return list(paragraphs[:original_count])


__all__ = [
    "needs_repair",
    "repair_rewrite_section_paragraphs",
    "repair_rewrite_section_paragraphs_with_details",
    "truncate_for_summarize",
]
