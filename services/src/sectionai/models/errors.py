"""Error envelope returned by every HTTP endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["ErrorResponse"]

_EXAMPLE = {
    "code": "SECTION_NOT_FOUND",
    "message": "Section 'h9' not found",
    "details": {"section_id": "h9"},
    "trace_id": "123e4567-e89b-12d3-a456-426614174000",
}


class ErrorResponse(BaseModel):
    """``code`` comes from ``service_errors.ERROR_DEFINITIONS``; ``trace_id`` echoes ``x-trace-id``.

    Failed section actions put the serialised result under ``details["result"]``.
    """

    model_config = ConfigDict(extra="forbid", json_schema_extra={"examples": [_EXAMPLE]})

    code: str = Field(min_length=1)
    message: str = Field(min_length=1)
    details: dict[str, Any] = Field(default_factory=dict)
    trace_id: str = Field(min_length=1)
