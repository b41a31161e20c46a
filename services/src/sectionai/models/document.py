"""Wire shapes for the in-memory reference document."""

from __future__ import annotations

from typing import Any

from pydantic import Field, model_validator

from ._wire import WireModel
from .section import NodeType


class TextRunModel(WireModel):
    text: str
    marks: list[str] = Field(default_factory=list)
    style: dict[str, Any] = Field(default_factory=dict)


class BlockModel(WireModel):
    """A heading or content block; plain ``text`` is shorthand for one run."""

    key: str | None = None
    type: NodeType = "paragraph"
    level: int | None = Field(default=None, ge=1, le=6)
    text: str | None = None
    runs: list[TextRunModel] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_heading(self) -> "BlockModel":
        if self.type == "heading" and self.level is None:
            raise ValueError("heading blocks require a level")
        return self

    def run_models(self) -> list[TextRunModel]:
        if self.runs:
            return list(self.runs)
        return [TextRunModel(text=self.text or "")]


class DocumentSnapshot(WireModel):
    version: int = Field(ge=0)
    blocks: list[BlockModel] = Field(default_factory=list)

    def texts(self) -> list[str]:
        return ["".join(run.text for run in block.runs) for block in self.blocks]


class LoadDocumentRequest(WireModel):
    blocks: list[BlockModel]


__all__ = ["BlockModel", "DocumentSnapshot", "LoadDocumentRequest", "TextRunModel"]
