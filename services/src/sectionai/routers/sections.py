"""Section context and section AI action endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from ..document import InMemoryDocument, SectionContextError
from ..http import ensure_action_succeeded, raise_service_error
from ..models.requests import ClarificationRequest
from ..models.results import SectionAiAction, SectionAiOptions, SectionAiResult
from ..models.section import SectionContext
from ..section_ai import SectionAiService, normalize_section_id
from .dependencies import get_document, get_section_ai

router = APIRouter(prefix="/sections", tags=["sections"])


@router.get("/{section_id}", response_model=SectionContext)
async def read_section(
    section_id: str,
    document: InMemoryDocument = Depends(get_document),
) -> SectionContext:
    try:
        return document.extract_section_context(normalize_section_id(section_id))
    except SectionContextError as exc:
        raise_service_error(code=exc.code, message=exc.message, details={"section_id": exc.section_id})


@router.post("/ai/pending/apply", response_model=SectionAiResult)
async def apply_pending(section_ai: SectionAiService = Depends(get_section_ai)) -> SectionAiResult:
    return ensure_action_succeeded(await section_ai.apply_pending_doc_ops())


@router.delete("/ai/pending")
async def discard_pending(section_ai: SectionAiService = Depends(get_section_ai)) -> dict[str, Any]:
    return {"discarded": section_ai.discard_pending_doc_ops()}


@router.post("/{section_id}/ai/{action}", response_model=SectionAiResult)
async def run_action(
    section_id: str,
    action: SectionAiAction,
    options: SectionAiOptions | None = Body(default=None),
    section_ai: SectionAiService = Depends(get_section_ai),
) -> SectionAiResult:
    """Run one AI action; failures map onto the shared error envelope."""

    result = await section_ai.run_section_ai_action(action, section_id, options)
    return ensure_action_succeeded(result)


@router.post("/{section_id}/ai/{action}/clarify", response_model=SectionAiResult)
async def run_action_with_clarification(
    section_id: str,
    action: SectionAiAction,
    request: ClarificationRequest,
    section_ai: SectionAiService = Depends(get_section_ai),
) -> SectionAiResult:
    result = await section_ai.run_with_clarification(action, section_id, request.answer, request.options)
    return ensure_action_succeeded(result)


__all__ = ["router"]
