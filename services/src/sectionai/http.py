"""HTTP utilities shared by the section AI routers and middleware."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Final, NoReturn
from uuid import UUID, uuid4

from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .models.errors import ErrorResponse
from .models.results import SectionAiResult
from .service_errors import ServiceError, definition_for

LOGGER = logging.getLogger(__name__)

TRACE_ID_HEADER: Final[str] = "x-trace-id"
_TRACE_ID_CONTEXT: ContextVar[str] = ContextVar("sectionai_trace_id", default="")

DEFAULT_ERROR_RESPONSES: Final[dict[int | str, dict[str, Any]]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
}


def default_error_responses() -> dict[int | str, dict[str, Any]]:
    """Return a copy of the default error response mapping for routers."""

    return {status_code: dict(schema) for status_code, schema in DEFAULT_ERROR_RESPONSES.items()}


def resolve_trace_id(candidate: str | None) -> str:
    """Return a valid UUID string, preferring the provided candidate."""

    if candidate:
        try:
            UUID(candidate)
            return candidate
        except ValueError:
            LOGGER.debug("Ignoring invalid trace identifier: %s", candidate)
    return str(uuid4())


def ensure_trace_id() -> str:
    trace_id = _TRACE_ID_CONTEXT.get()
    if not trace_id:
        trace_id = str(uuid4())
        _TRACE_ID_CONTEXT.set(trace_id)
    return trace_id


def get_trace_context() -> ContextVar[str]:
    return _TRACE_ID_CONTEXT


def build_error_payload(*, code: str, message: str, details: dict[str, Any], trace_id: str) -> ErrorResponse:
    return ErrorResponse(code=code, message=message, details=jsonable_encoder(details), trace_id=trace_id)


def error_response(*, status_code: int, payload: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=payload.model_dump(),
        headers={TRACE_ID_HEADER: payload.trace_id},
    )


def http_exception_to_response(exc: HTTPException, trace_id: str) -> JSONResponse:
    """Translate an ``HTTPException`` into the shared error envelope."""

    detail = exc.detail
    if isinstance(detail, dict):
        payload = build_error_payload(
            code=str(detail.get("code", "INTERNAL")),
            message=str(detail.get("message", "Internal server error.")),
            details=dict(detail.get("details", {})),
            trace_id=trace_id,
        )
    else:
        payload = build_error_payload(
            code="NOT_FOUND" if exc.status_code == status.HTTP_404_NOT_FOUND else "INTERNAL",
            message=str(detail),
            details={},
            trace_id=trace_id,
        )
    response = error_response(status_code=exc.status_code, payload=payload)
    for key, value in (exc.headers or {}).items():
        response.headers.setdefault(key, value)
    return response


def request_validation_response(exc: RequestValidationError, trace_id: str) -> JSONResponse:
    payload = build_error_payload(
        code="VALIDATION",
        message="Request validation failed.",
        details={"errors": exc.errors()},
        trace_id=trace_id,
    )
    return error_response(status_code=status.HTTP_400_BAD_REQUEST, payload=payload)


def service_error_response(exc: ServiceError, trace_id: str) -> JSONResponse:
    payload = build_error_payload(code=exc.code, message=exc.message, details=exc.details, trace_id=trace_id)
    return error_response(status_code=exc.status_code, payload=payload)


def internal_error_response(trace_id: str) -> JSONResponse:
    payload = build_error_payload(
        code="INTERNAL",
        message="Internal server error.",
        details={},
        trace_id=trace_id,
    )
    return error_response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, payload=payload)


def raise_service_error(
    *,
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
    status_code: int | None = None,
) -> NoReturn:
    """Raise a ``ServiceError`` using registry defaults for anything omitted."""

    definition = definition_for(code)
    final_message = message or definition.message
    final_status = status_code or definition.status_code
    LOGGER.info(
        "service.failure",
        extra={"extra_payload": {"code": code, "status": final_status, "message": final_message}},
    )
    raise ServiceError(code=code, status_code=final_status, message=final_message, details=details or {})


def ensure_action_succeeded(result: SectionAiResult) -> SectionAiResult:
    """Turn a failed action result into a ``ServiceError`` carrying the result."""

    if result.success:
        return result
    raise_service_error(
        code=result.error_code or "INTERNAL",
        message=result.error,
        details={"result": result.model_dump(by_alias=True, mode="json", exclude_none=True)},
    )


__all__ = [
    "DEFAULT_ERROR_RESPONSES",
    "TRACE_ID_HEADER",
    "build_error_payload",
    "default_error_responses",
    "ensure_action_succeeded",
    "ensure_trace_id",
    "get_trace_context",
    "http_exception_to_response",
    "internal_error_response",
    "raise_service_error",
    "request_validation_response",
    "resolve_trace_id",
    "service_error_response",
]
