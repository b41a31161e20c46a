"""Endpoints for loading and reading the in-memory document."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..document import InMemoryDocument
from ..http import raise_service_error
from ..models.document import DocumentSnapshot, LoadDocumentRequest
from ..section_ai import SectionAiService
from .dependencies import get_document, get_section_ai

router = APIRouter(prefix="/document", tags=["document"])


@router.get("", response_model=DocumentSnapshot)
async def read_document(document: InMemoryDocument = Depends(get_document)) -> DocumentSnapshot:
    return document.get_snapshot()


@router.put("", response_model=DocumentSnapshot)
async def load_document(
    request: LoadDocumentRequest,
    document: InMemoryDocument = Depends(get_document),
    section_ai: SectionAiService = Depends(get_section_ai),
) -> DocumentSnapshot:
    """Replace the document; refused while an AI action is in flight."""

    if section_ai.is_processing:
        raise_service_error(code="CONFLICT", message="Cannot replace the document while an AI action is running.")
    try:
        snapshot = document.load(request.blocks)
    except ValueError as exc:
        raise_service_error(code="VALIDATION", message=str(exc))
    section_ai.discard_pending_doc_ops()
    return snapshot


__all__ = ["router"]
