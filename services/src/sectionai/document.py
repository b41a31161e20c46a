"""In-memory document tree: section context provider and mutation sink."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Protocol, Sequence

from .models.document import BlockModel, DocumentSnapshot, TextRunModel
from .models.section import ChildSectionMeta, ParagraphInfo, SectionContext
from .models.section_ops import (
    ApplyInlineMarkOp,
    ApplyReport,
    DeleteParagraphOp,
    InsertParagraphAfterOp,
    OpOutcome,
    ReplaceParagraphOp,
    SectionDocOp,
)

LOGGER = logging.getLogger(__name__)

MAX_SECTION_LEVEL = 3

SnapshotListener = Callable[[DocumentSnapshot], None]


class SectionContextError(LookupError):
    """Raised when a section id cannot be resolved to a usable heading."""

    def __init__(self, code: str, message: str, *, section_id: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.section_id = section_id


class SectionContextProvider(Protocol):
    def extract_section_context(self, section_id: str) -> SectionContext: ...


class DocumentSink(Protocol):
    def apply_ops(self, ops: Sequence[SectionDocOp]) -> ApplyReport: ...

    def get_snapshot(self) -> DocumentSnapshot: ...


@dataclass
class TextRun:
    text: str
    marks: set[str] = field(default_factory=set)
    style: dict[str, Any] = field(default_factory=dict)

    def slice(self, start: int, end: int) -> "TextRun":
        return TextRun(self.text[start:end], set(self.marks), dict(self.style))


@dataclass
class Block:
    key: str
    type: str
    runs: list[TextRun]
    level: int | None = None

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)

    def clone(self) -> "Block":
        return Block(self.key, self.type, [run.slice(0, len(run.text)) for run in self.runs], self.level)


class InMemoryDocument:
    """A flat block list where headings delimit sections.

    Mutations go through :meth:`apply_ops` only. Each batch runs against a
    working copy and is committed in one swap, so readers and listeners see
    either the previous or the next state and nothing in between.
    """

    def __init__(self, blocks: Iterable[BlockModel | dict[str, Any]] = ()) -> None:
        self._keys = itertools.count(1)
        self._blocks: list[Block] = []
        self._version = 0
        self._listeners: list[SnapshotListener] = []
        self.load(blocks)

    def load(self, blocks: Iterable[BlockModel | dict[str, Any]]) -> DocumentSnapshot:
        loaded: list[Block] = []
        seen: set[str] = set()
        for raw in blocks:
            model = raw if isinstance(raw, BlockModel) else BlockModel.model_validate(raw)
            key = model.key or self._new_key(seen)
            if key in seen:
                raise ValueError(f"Duplicate block key {key!r}")
            seen.add(key)
            loaded.append(
                Block(
                    key=key,
                    type=model.type,
                    runs=[TextRun(run.text, set(run.marks), dict(run.style)) for run in model.run_models()],
                    level=model.level,
                )
            )
        self._blocks = loaded
        self._version += 1
        snapshot = self.get_snapshot()
        self._notify(snapshot)
        return snapshot

    @property
    def version(self) -> int:
        return self._version

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def get_snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(
            version=self._version,
            blocks=[
                BlockModel(
                    key=block.key,
                    type=block.type,
                    level=block.level,
                    runs=[
                        TextRunModel(text=run.text, marks=sorted(run.marks), style=dict(run.style))
                        for run in block.runs
                    ],
                )
                for block in self._blocks
            ],
        )

    def texts(self) -> list[str]:
        return [block.text for block in self._blocks]

    # Section extraction -------------------------------------------------

    def extract_section_context(self, section_id: str) -> SectionContext:
        """Collect the heading's own content, its subtree and direct children.

        ``end_index`` is exclusive: the position of the next heading at the
        same or a higher level, or the document length.
        """

        position = next((i for i, block in enumerate(self._blocks) if block.key == section_id), None)
        if position is None:
            raise SectionContextError("SECTION_NOT_FOUND", f"Section {section_id!r} not found", section_id=section_id)
        heading = self._blocks[position]
        if heading.type != "heading":
            raise SectionContextError("NOT_A_HEADING", f"Block {section_id!r} is not a heading", section_id=section_id)
        level = heading.level or 0
        if not 1 <= level <= MAX_SECTION_LEVEL:
            raise SectionContextError(
                "INVALID_HEADING_LEVEL",
                f"Heading level {level} is not a section level",
                section_id=section_id,
            )

        end = len(self._blocks)
        for i in range(position + 1, len(self._blocks)):
            block = self._blocks[i]
            if block.type == "heading" and (block.level or 0) <= level:
                end = i
                break

        own: list[ParagraphInfo] = []
        for i in range(position + 1, end):
            if self._blocks[i].type == "heading":
                break
            own.append(self._paragraph_info(i))

        children: list[ChildSectionMeta] = []
        for i in range(position + 1, end):
            block = self._blocks[i]
            if block.type == "heading" and block.level == level + 1 and block.level <= MAX_SECTION_LEVEL:
                child_end = next(
                    (
                        j
                        for j in range(i + 1, end)
                        if self._blocks[j].type == "heading" and (self._blocks[j].level or 0) <= block.level
                    ),
                    end,
                )
                own_count = 0
                for j in range(i + 1, child_end):
                    if self._blocks[j].type == "heading":
                        break
                    own_count += 1
                children.append(
                    ChildSectionMeta(
                        section_id=block.key,
                        title_text=block.text,
                        level=block.level,
                        start_index=i,
                        end_index=child_end,
                        own_paragraph_count=own_count,
                    )
                )

        return SectionContext(
            section_id=heading.key,
            title_text=heading.text,
            level=level,
            own_paragraphs=own,
            subtree_paragraphs=[self._paragraph_info(i) for i in range(position + 1, end)],
            child_sections=children,
            start_index=position,
            end_index=end,
        )

    def _paragraph_info(self, position: int) -> ParagraphInfo:
        block = self._blocks[position]
        first = block.runs[0] if block.runs else None
        return ParagraphInfo(
            node_key=block.key,
            text=block.text,
            node_type=block.type,
            node_path=[position],
            style=dict(first.style) if first and first.style else None,
        )

    # Mutation ------------------------------------------------------------

    def apply_ops(self, ops: Sequence[SectionDocOp]) -> ApplyReport:
        """Apply a batch of section ops as a single transaction.

        Ops whose target cannot be resolved are skipped and reported; they do
        not fail the batch. An unexpected error discards the working copy.
        """

        working = [block.clone() for block in self._blocks]
        inserted_after: dict[str, str] = {}
        outcomes: list[OpOutcome] = []

        try:
            for position, op in enumerate(ops):
                outcomes.append(self._apply_one(working, position, op, inserted_after))
        except Exception as exc:
            LOGGER.exception(
                "apply.transaction_failed",
                extra={"extra_payload": {"ops": len(ops), "completed": len(outcomes)}},
            )
            return ApplyReport(success=False, outcomes=outcomes, document_version=self._version, error=str(exc))

        report = ApplyReport(success=True, outcomes=outcomes, document_version=self._version)
        if report.changed:
            self._blocks = working
            self._version += 1
            report.document_version = self._version
            self._notify(self.get_snapshot())
        LOGGER.info(
            "apply.committed",
            extra={
                "extra_payload": {
                    "applied": report.applied_count,
                    "skipped": report.skipped_count,
                    "version": self._version,
                }
            },
        )
        return report

    def _apply_one(
        self,
        working: list[Block],
        position: int,
        op: SectionDocOp,
        inserted_after: dict[str, str],
    ) -> OpOutcome:
        if isinstance(op, ReplaceParagraphOp):
            target = _find(working, op.target_key)
            if target is None:
                return _skipped(position, op, op.target_key, "target node not found")
            block = working[target]
            template = block.runs[0] if op.preserve_style and block.runs else None
            if template is not None:
                block.runs = [TextRun(op.new_text, set(template.marks), dict(template.style))]
            else:
                block.runs = [TextRun(op.new_text)]
            return _applied(position, op, op.target_key)

        if isinstance(op, InsertParagraphAfterOp):
            anchor_key = inserted_after.get(op.reference_key, op.reference_key)
            anchor = _find(working, anchor_key)
            if anchor is None:
                return _skipped(position, op, op.reference_key, "reference node not found")
            new_block = Block(
                key=self._new_key({block.key for block in working}),
                type="paragraph",
                runs=[TextRun(op.new_text, style=dict(op.style or {}))],
            )
            working.insert(anchor + 1, new_block)
            inserted_after[op.reference_key] = new_block.key
            return _applied(position, op, new_block.key)

        if isinstance(op, DeleteParagraphOp):
            target = _find(working, op.target_key)
            if target is None:
                return _skipped(position, op, op.target_key, "target node not found")
            del working[target]
            return _applied(position, op, op.target_key)

        if isinstance(op, ApplyInlineMarkOp):
            target = _find(working, op.target_key)
            if target is None:
                return _skipped(position, op, op.target_key, "target node not found")
            block = working[target]
            if not 0 <= op.start_offset < op.end_offset <= len(block.text):
                return _skipped(position, op, op.target_key, "mark range outside paragraph")
            _mark_range(block, op.start_offset, op.end_offset, op.mark_type)
            return _applied(position, op, op.target_key)

        raise TypeError(f"Unsupported section op: {op!r}")

    def _new_key(self, taken: set[str] | frozenset[str] = frozenset()) -> str:
        key = f"n{next(self._keys)}"
        while key in taken:
            key = f"n{next(self._keys)}"
        return key

    def _notify(self, snapshot: DocumentSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                LOGGER.exception("document.listener_failed")


def _find(blocks: list[Block], key: str) -> int | None:
    for position, block in enumerate(blocks):
        if block.key == key:
            return position
    return None


def _applied(position: int, op: SectionDocOp, node_key: str) -> OpOutcome:
    return OpOutcome(index=position, op_type=op.type, status="applied", node_key=node_key)


def _skipped(position: int, op: SectionDocOp, node_key: str, reason: str) -> OpOutcome:
    LOGGER.warning(
        "apply.skip",
        extra={"extra_payload": {"op": op.type, "node_key": node_key, "reason": reason}},
    )
    return OpOutcome(index=position, op_type=op.type, status="skipped", node_key=node_key, reason=reason)


def _mark_range(block: Block, start: int, end: int, mark: str) -> None:
    runs: list[TextRun] = []
    offset = 0
    for run in block.runs:
        run_start, run_end = offset, offset + len(run.text)
        offset = run_end
        if run_end <= start or run_start >= end:
            runs.append(run)
            continue
        cut_from = max(start, run_start) - run_start
        cut_to = min(end, run_end) - run_start
        if cut_from > 0:
            runs.append(run.slice(0, cut_from))
        marked = run.slice(cut_from, cut_to)
        marked.marks.add(mark)
        runs.append(marked)
        if cut_to < len(run.text):
            runs.append(run.slice(cut_to, len(run.text)))
    block.runs = runs


__all__ = [
    "Block",
    "DocumentSink",
    "InMemoryDocument",
    "SectionContextError",
    "SectionContextProvider",
    "TextRun",
]
