"""Pytest configuration for the section AI test suite."""

from __future__ import annotations

import json
import sys
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Any, Sequence

import httpx
import pytest
from fastapi import FastAPI


def _ensure_src_on_path() -> None:
    """Add the services src directory to ``sys.path`` for imports."""

    src_dir = Path(__file__).resolve().parent.parent / "src"
    src_path = str(src_dir)
    if src_dir.is_dir() and src_path not in sys.path:
        sys.path.insert(0, src_path)


_ensure_src_on_path()

from sectionai.app import create_app  # noqa: E402
from sectionai.document import InMemoryDocument  # noqa: E402
from sectionai.llm import ChatMessage, ChatResult  # noqa: E402
from sectionai.settings import Settings  # noqa: E402

SAMPLE_BLOCKS: list[dict[str, Any]] = [
    {"key": "h1", "type": "heading", "level": 1, "text": "Introduction"},
    {"key": "p1", "type": "paragraph", "text": "Alpha   one. Second sentence."},
    {"key": "p2", "type": "paragraph", "text": "Beta two."},
    {"key": "h2", "type": "heading", "level": 2, "text": "Details"},
    {"key": "p3", "type": "paragraph", "text": "Gamma three."},
    {"key": "h3", "type": "heading", "level": 1, "text": "Closing"},
    {"key": "p4", "type": "paragraph", "text": "Delta four."},
]


def protocol_response(
    paragraphs: Sequence[str] | None,
    *,
    intent_id: str = "i-1",
    task: dict[str, Any] | None = None,
    confidence: float | None = 0.9,
    response_mode: str | None = None,
    extra_ops: Sequence[dict[str, Any]] = (),
    assistant: str = "Done.",
) -> str:
    """Render a model reply in the three-block protocol format."""

    intent: dict[str, Any] = {
        "intentId": intent_id,
        "scope": {"sectionId": "h1"},
        "tasks": [task or {"type": "rewrite", "params": {}}],
        "confidence": confidence,
        "uncertainties": [],
    }
    if response_mode is not None:
        intent["responseMode"] = response_mode
    text = f"[assistant]\n{assistant}\n[intent]\n{json.dumps(intent)}\n"
    ops: list[dict[str, Any]] = []
    if paragraphs is not None:
        ops.append(
            {
                "type": "replace_range",
                "scope": {"sectionId": "h1"},
                "payload": {"paragraphs": [{"index": i, "text": t} for i, t in enumerate(paragraphs)]},
            }
        )
    ops.extend(extra_ops)
    if ops:
        plan = {"version": "1.0", "intentId": intent_id, "ops": ops}
        text += f"[docops]\n{json.dumps(plan)}\n"
    return text


class ScriptedLlm:
    """Chat collaborator that replays canned replies in order."""

    def __init__(self, *replies: str | ChatResult) -> None:
        self._replies = list(replies)
        self.calls: list[list[ChatMessage]] = []

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResult:
        self.calls.append(list(messages))
        if not self._replies:
            return ChatResult(success=False, error="no scripted reply")
        reply = self._replies.pop(0)
        if isinstance(reply, ChatResult):
            return reply
        return ChatResult(success=True, content=reply)


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def document() -> InMemoryDocument:
    return InMemoryDocument(SAMPLE_BLOCKS)


@pytest.fixture()
def make_document() -> Callable[..., InMemoryDocument]:
    def _make(blocks: Sequence[dict[str, Any]] = SAMPLE_BLOCKS) -> InMemoryDocument:
        return InMemoryDocument(blocks)

    return _make


@pytest.fixture()
def service_settings() -> Settings:
    return Settings(mode="mock", strict_diff=False)


@pytest.fixture()
def service_app(service_settings: Settings, document: InMemoryDocument) -> FastAPI:
    """Provide the FastAPI application bound to the sample document and the mock model."""

    return create_app(service_settings, document=document)


@pytest.fixture()
async def async_client(service_app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Provide an HTTPX async client bound to the FastAPI application."""

    transport = httpx.ASGITransport(app=service_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
