"""Shared base model for JSON exchanged with the LLM and the UI."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python, unknown keys preserved."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialise using wire aliases, keeping only explicitly set fields."""

        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


__all__ = ["WireModel"]
