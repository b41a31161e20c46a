"""LLM chat collaborators: OpenAI-compatible HTTP client and offline stand-ins."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Literal, Protocol, Sequence

import httpx

from .prompts import extract_prompt_paragraphs
from .settings import Settings

LOGGER = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str


@dataclass(frozen=True)
class ChatResult:
    success: bool
    content: str | None = None
    error: str | None = None


class LlmService(Protocol):
    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResult: ...


class OpenAIChatService:
    """Client for any ``/chat/completions`` endpoint speaking the OpenAI shape."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str | None,
        model: str,
        temperature: float = 0.3,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResult:
        body = {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=self._headers(),
                    json=body,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            LOGGER.warning(
                "llm.http_error",
                extra={"extra_payload": {"status": exc.response.status_code, "model": self.model}},
            )
            return ChatResult(success=False, error=f"LLM HTTP error: {exc.response.status_code}")
        except httpx.RequestError as exc:
            LOGGER.warning("llm.request_error", extra={"extra_payload": {"error": str(exc)}})
            return ChatResult(success=False, error=f"LLM connection error: {exc}")
        except json.JSONDecodeError:
            return ChatResult(success=False, error="LLM returned a non-JSON body")

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return ChatResult(success=False, error="LLM response missing choices[0].message.content")
        if not isinstance(content, str) or not content.strip():
            return ChatResult(success=False, error="LLM returned empty content")
        return ChatResult(success=True, content=content)


class UnavailableLlmService:
    """Offline mode: every call fails without touching the network."""

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResult:
        return ChatResult(success=False, error="LLM service unavailable")


_ACTION_LINE = re.compile(r"^Action:\s*(\w+)\s*$", re.MULTILINE)
_WHITESPACE = re.compile(r"\s+")


class EchoLlmService:
    """Deterministic mock: answers in protocol format with tidied input text.

    Rewrites collapse runs of whitespace, summaries keep the first sentence of
    each paragraph, expands repeat nothing new and highlight picks no terms.
    """

    def __init__(self, *, confidence: float = 0.9) -> None:
        self.confidence = confidence
        self.calls = 0

    async def chat(self, messages: Sequence[ChatMessage]) -> ChatResult:
        self.calls += 1
        user = next((m.content for m in reversed(messages) if m.role == "user"), "")
        match = _ACTION_LINE.search(user)
        action = match.group(1) if match else "rewrite"
        paragraphs = extract_prompt_paragraphs(user)
        intent_id = f"mock-{self.calls}"

        if action == "highlight":
            intent = self._intent(intent_id, {"type": "highlight_terms", "params": {"terms": []}})
            return ChatResult(success=True, content=f"[assistant]\nNo terms selected.\n[intent]\n{json.dumps(intent)}\n")

        texts = [_WHITESPACE.sub(" ", str(p.get("text", ""))).strip() for p in paragraphs]
        if action == "summarize":
            texts = [text.split(". ")[0] for text in texts]
        proposed = [{"index": i, "text": text} for i, text in enumerate(texts)]
        if not proposed:
            proposed = [{"index": 0, "text": ""}]

        task_type = "summarize" if action == "summarize" else "rewrite"
        intent = self._intent(intent_id, {"type": task_type, "params": {}})
        plan = {
            "version": "1.0",
            "intentId": intent_id,
            "ops": [
                {
                    "type": "replace_range",
                    "scope": {"sectionId": "mock"},
                    "payload": {"paragraphs": proposed},
                }
            ],
        }
        content = (
            f"[assistant]\nMock {action} of {len(texts)} paragraphs.\n"
            f"[intent]\n{json.dumps(intent)}\n[docops]\n{json.dumps(plan)}\n"
        )
        return ChatResult(success=True, content=content)

    def _intent(self, intent_id: str, task: dict[str, Any]) -> dict[str, Any]:
        return {
            "intentId": intent_id,
            "scope": {"target": "section", "sectionId": "mock"},
            "tasks": [task],
            "confidence": self.confidence,
            "uncertainties": [],
        }


def build_llm_service(settings: Settings) -> LlmService:
    """Pick the chat collaborator for the configured mode."""

    if settings.mode == "live":
        if not settings.openai_api_key:
            LOGGER.warning("llm.missing_api_key", extra={"extra_payload": {"mode": settings.mode}})
        return OpenAIChatService(
            base_url=settings.llm_base_url,
            api_key=settings.openai_api_key,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            timeout=settings.request_timeout_seconds,
        )
    if settings.mode == "mock":
        return EchoLlmService()
    return UnavailableLlmService()


__all__ = [
    "ChatMessage",
    "ChatResult",
    "EchoLlmService",
    "LlmService",
    "OpenAIChatService",
    "UnavailableLlmService",
    "build_llm_service",
]
