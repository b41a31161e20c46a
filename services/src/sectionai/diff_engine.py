"""Paragraph-level diff producing the minimal set of section mutations."""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Protocol, Sequence

from .models.results import DiffAddition, DiffAnchors, DiffChange, DiffRemoval, TextDiff
from .models.section import LlmParagraph, ParagraphInfo
from .models.section_ops import (
    ApplyInlineMarkOp,
    DeleteParagraphOp,
    InsertParagraphAfterOp,
    ReplaceParagraphOp,
    SectionDocOp,
)

LOGGER = logging.getLogger(__name__)

DiffMode = Literal["rewrite", "summarize", "expand"]

_ACTION_MODES: dict[str, DiffMode] = {
    "rewrite": "rewrite",
    "summarize": "summarize",
    "expand": "expand",
}
_GROWTH_MODES: frozenset[str] = frozenset({"rewrite", "expand"})


class HasParagraphs(Protocol):
    @property
    def paragraphs(self) -> Sequence[ParagraphInfo]: ...


class SectionDiffError(ValueError):
    """Raised in strict mode when the proposal does not fit the diff mode."""

    def __init__(self, message: str, *, section_id: str, old_length: int, new_length: int, mode: DiffMode) -> None:
        super().__init__(message)
        self.section_id = section_id
        self.old_length = old_length
        self.new_length = new_length
        self.mode = mode


@dataclass(frozen=True)
class DocOpsCount:
    replace: int = 0
    insert: int = 0
    delete: int = 0
    mark: int = 0

    @property
    def total(self) -> int:
        return self.replace + self.insert + self.delete + self.mark


def diff_mode_for_action(action: str) -> DiffMode:
    """Map an AI action name onto the diff mode it should run in."""

    try:
        return _ACTION_MODES[action]
    except KeyError:
        raise ValueError(f"No diff mode for action {action!r}") from None


def _proposed_texts(
    proposed: Sequence[LlmParagraph | dict[str, Any] | str],
    *,
    section_id: str,
    old_length: int,
    mode: DiffMode,
) -> list[str]:
    """Return proposal texts; an indexed entry must sit at its own position."""

    texts: list[str] = []
    for position, item in enumerate(proposed):
        if isinstance(item, str):
            texts.append(item)
            continue
        if isinstance(item, dict):
            index, text = item.get("index", position), str(item.get("text", ""))
        else:
            index, text = item.index, item.text
        if isinstance(index, bool) or index != position:
            raise SectionDiffError(
                f"Paragraph at position {position} has index {index!r}; indices must run 0..n-1 in order",
                section_id=section_id,
                old_length=old_length,
                new_length=len(proposed),
                mode=mode,
            )
        texts.append(text)
    return texts


def build_section_doc_ops_diff(
    context: HasParagraphs,
    proposed: Sequence[LlmParagraph | dict[str, Any] | str],
    *,
    mode: DiffMode = "rewrite",
    strict: bool = False,
) -> list[SectionDocOp]:
    """Diff original paragraphs against proposed ones, position by position.

    Unchanged positions emit nothing. Changed positions emit a style-preserving
    replace. Surplus proposals become inserts after the last original node and
    surplus originals become deletes. ``summarize`` never grows a section:
    surplus proposals are dropped, or raise :class:`SectionDiffError` when
    ``strict`` is set.

    Indexed proposals must carry indices ``0..n-1`` in order, otherwise
    :class:`SectionDiffError` is raised regardless of ``strict``.

    The result is ordered replaces (ascending), deletes (descending), then
    inserts (ascending) so that applying it in sequence never shifts a target.
    """

    originals = list(context.paragraphs)
    section_id = str(getattr(context, "section_id", ""))
    texts = _proposed_texts(list(proposed), section_id=section_id, old_length=len(originals), mode=mode)
    old_length, new_length = len(originals), len(texts)

    if new_length > old_length and mode not in _GROWTH_MODES:
        message = f"{mode} produced {new_length} paragraphs for a {old_length}-paragraph section"
        if strict:
            raise SectionDiffError(
                message,
                section_id=section_id,
                old_length=old_length,
                new_length=new_length,
                mode=mode,
            )
        LOGGER.warning(
            "diff.summarize_growth",
            extra={
                "extra_payload": {
                    "section_id": section_id,
                    "old_length": old_length,
                    "new_length": new_length,
                    "mode": mode,
                }
            },
        )
        texts = texts[:old_length]
        new_length = old_length

    replaces: list[SectionDocOp] = []
    for index in range(min(old_length, new_length)):
        original = originals[index]
        if original.text == texts[index]:
            continue
        replaces.append(
            ReplaceParagraphOp(
                target_key=original.node_key,
                new_text=texts[index],
                preserve_style=True,
                index=index,
            )
        )

    deletes: list[SectionDocOp] = [
        DeleteParagraphOp(target_key=originals[index].node_key, index=index)
        for index in range(old_length - 1, new_length - 1, -1)
    ]

    inserts: list[SectionDocOp] = []
    if new_length > old_length:
        if not originals:
            LOGGER.warning(
                "diff.no_anchor",
                extra={"extra_payload": {"section_id": section_id, "dropped": new_length}},
            )
        else:
            anchor = originals[-1]
            inserts = [
                InsertParagraphAfterOp(
                    reference_key=anchor.node_key,
                    new_text=texts[index],
                    index=index,
                    style=dict(anchor.style) if anchor.style else None,
                )
                for index in range(old_length, new_length)
            ]

    return [*replaces, *deletes, *inserts]


def count_doc_ops(ops: Iterable[SectionDocOp]) -> DocOpsCount:
    replace = insert = delete = mark = 0
    for op in ops:
        if isinstance(op, ReplaceParagraphOp):
            replace += 1
        elif isinstance(op, InsertParagraphAfterOp):
            insert += 1
        elif isinstance(op, DeleteParagraphOp):
            delete += 1
        elif isinstance(op, ApplyInlineMarkOp):
            mark += 1
    return DocOpsCount(replace=replace, insert=insert, delete=delete, mark=mark)


def is_doc_ops_empty(ops: Sequence[SectionDocOp]) -> bool:
    return len(ops) == 0


def compute_text_diff(original: str, revised: str) -> TextDiff:
    """Describe a single replacement as character ranges over ``original``."""

    original = original or ""
    revised = revised or ""

    added: list[DiffAddition] = []
    removed: list[DiffRemoval] = []
    changed: list[DiffChange] = []
    matcher = difflib.SequenceMatcher(a=original, b=revised, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "insert":
            added.append(DiffAddition(range=(i1, i1), text=revised[j1:j2]))
        elif tag == "delete":
            removed.append(DiffRemoval(range=(i1, i2)))
        elif tag == "replace":
            changed.append(DiffChange(range=(i1, i2), replacement=revised[j1:j2]))

    left = _common_prefix(original, revised)
    right = _common_prefix(original[left:][::-1], revised[left:][::-1])
    return TextDiff(
        added=added,
        removed=removed,
        changed=changed,
        anchors=DiffAnchors(left=left, right=right),
    )


def _common_prefix(left: str, right: str) -> int:
    count = 0
    for a, b in zip(left, right):
        if a != b:
            break
        count += 1
    return count


__all__ = [
    "DiffMode",
    "DocOpsCount",
    "SectionDiffError",
    "build_section_doc_ops_diff",
    "compute_text_diff",
    "count_doc_ops",
    "diff_mode_for_action",
    "is_doc_ops_empty",
]
