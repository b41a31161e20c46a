"""Central service error definitions and helper exception types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


ERROR_DEFINITIONS: Dict[str, ErrorDefinition] = {
    "INTERNAL": ErrorDefinition("INTERNAL", "Internal server error.", status.HTTP_500_INTERNAL_SERVER_ERROR),
    "VALIDATION": ErrorDefinition("VALIDATION", "Validation failed.", status.HTTP_400_BAD_REQUEST),
    "CONFLICT": ErrorDefinition("CONFLICT", "Request conflicts with the current state.", status.HTTP_409_CONFLICT),
    "BUSY": ErrorDefinition("BUSY", "An AI action is already running.", status.HTTP_409_CONFLICT),
    "NO_PENDING_OPS": ErrorDefinition("NO_PENDING_OPS", "No pending changes to apply.", status.HTTP_409_CONFLICT),
    "SECTION_NOT_FOUND": ErrorDefinition("SECTION_NOT_FOUND", "Section not found.", status.HTTP_404_NOT_FOUND),
    "NOT_A_HEADING": ErrorDefinition("NOT_A_HEADING", "Block is not a heading.", status.HTTP_400_BAD_REQUEST),
    "INVALID_HEADING_LEVEL": ErrorDefinition(
        "INVALID_HEADING_LEVEL", "Heading level is not a section level.", status.HTTP_400_BAD_REQUEST
    ),
    "EMPTY_SECTION": ErrorDefinition("EMPTY_SECTION", "Section has no paragraphs.", status.HTTP_400_BAD_REQUEST),
    "PLAN_INVALID": ErrorDefinition("PLAN_INVALID", "Edit plan could not be built.", status.HTTP_400_BAD_REQUEST),
    "PROTOCOL_ERROR": ErrorDefinition(
        "PROTOCOL_ERROR", "Model response violated the edit protocol.", status.HTTP_422_UNPROCESSABLE_ENTITY
    ),
    "DIFF_REJECTED": ErrorDefinition(
        "DIFF_REJECTED", "Proposed paragraphs do not fit the edit mode.", status.HTTP_422_UNPROCESSABLE_ENTITY
    ),
    "MODEL_ERROR": ErrorDefinition("MODEL_ERROR", "Model execution failed.", status.HTTP_502_BAD_GATEWAY),
    "APPLY_FAILED": ErrorDefinition("APPLY_FAILED", "Document update failed.", status.HTTP_500_INTERNAL_SERVER_ERROR),
}

DEFAULT_ERROR_DEFINITION = ErrorDefinition(
    "UNEXPECTED_ERROR",
    "Unexpected error occurred.",
    status.HTTP_500_INTERNAL_SERVER_ERROR,
)


class ServiceError(Exception):
    """Structured error for router responses."""

    def __init__(
        self,
        *,
        code: str,
        status_code: int,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.status_code = status_code


def definition_for(code: str | None) -> ErrorDefinition:
    if code is None:
        return DEFAULT_ERROR_DEFINITION
    return ERROR_DEFINITIONS.get(code, DEFAULT_ERROR_DEFINITION)


__all__ = [
    "DEFAULT_ERROR_DEFINITION",
    "ERROR_DEFINITIONS",
    "ErrorDefinition",
    "ServiceError",
    "definition_for",
]
