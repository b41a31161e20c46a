"""FastAPI application factory for the section AI service."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Final

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .document import InMemoryDocument
from .http import (
    TRACE_ID_HEADER,
    default_error_responses,
    ensure_trace_id,
    get_trace_context,
    http_exception_to_response,
    internal_error_response,
    request_validation_response,
    resolve_trace_id,
    service_error_response,
)
from .llm import LlmService, build_llm_service
from .routers import api_router
from .routers.health import router as health_router
from .section_ai import SectionAiService
from .service_errors import ServiceError
from .settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)

SERVICE_VERSION: Final[str] = "0.3.0"


class TraceMiddleware:
    """ASGI middleware that applies trace IDs and unified error handling."""

    def __init__(self, app: ASGIApp, *, trace_context: ContextVar[str]) -> None:
        self.app = app
        self._trace_context = trace_context

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        trace_id = resolve_trace_id(request.headers.get(TRACE_ID_HEADER))
        token = self._trace_context.set(trace_id)
        scope.setdefault("state", {})
        scope["state"]["trace_id"] = trace_id  # type: ignore[index]

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.setdefault(TRACE_ID_HEADER, trace_id)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except HTTPException as exc:
            await http_exception_to_response(exc, trace_id)(scope, receive, send)
        except RequestValidationError as exc:
            await request_validation_response(exc, trace_id)(scope, receive, send)
        except ServiceError as exc:
            await service_error_response(exc, trace_id)(scope, receive, send)
        except Exception as exc:
            LOGGER.exception(
                "Unhandled error processing %s %s",
                request.method,
                request.url.path,
                exc_info=exc,
            )
            await internal_error_response(trace_id)(scope, receive, send)
        finally:
            self._trace_context.reset(token)


def create_app(
    settings: Settings | None = None,
    *,
    llm: LlmService | None = None,
    document: InMemoryDocument | None = None,
) -> FastAPI:
    """Construct the FastAPI application around one document and one AI session guard."""

    service_settings = settings or get_settings()

    application = FastAPI(
        title="Section AI Services",
        version=SERVICE_VERSION,
        responses=default_error_responses(),
    )
    application.state.settings = service_settings
    application.state.service_version = SERVICE_VERSION
    application.state.document = document if document is not None else InMemoryDocument()
    application.state.section_ai = SectionAiService(
        llm=llm if llm is not None else build_llm_service(service_settings),
        provider=application.state.document,
        sink=application.state.document,
        strict_diff=service_settings.strict_diff,
    )
    LOGGER.info(
        "app.created",
        extra={"extra_payload": {"mode": service_settings.mode, "version": SERVICE_VERSION}},
    )

    async def http_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, HTTPException):
            return http_exception_to_response(exc, trace_id)
        return internal_error_response(trace_id)

    async def validation_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, RequestValidationError):
            return request_validation_response(exc, trace_id)
        return internal_error_response(trace_id)

    async def service_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, ServiceError):
            return service_error_response(exc, trace_id)
        return internal_error_response(trace_id)

    application.add_exception_handler(HTTPException, http_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.add_exception_handler(ServiceError, service_exception_handler)

    application.add_middleware(TraceMiddleware, trace_context=get_trace_context())

    application.include_router(health_router)
    application.include_router(api_router)

    @application.get("/", include_in_schema=False)
    async def service_index(request: Request) -> dict[str, str]:
        """Return a lightweight service manifest for manual probes."""

        return {
            "service": "section-ai",
            "version": getattr(request.app.state, "service_version", SERVICE_VERSION),
            "api_base": "/api/v1",
        }

    @application.get("/favicon.ico", include_in_schema=False)
    async def favicon_placeholder() -> Response:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return application


__all__ = ["SERVICE_VERSION", "TraceMiddleware", "create_app"]
