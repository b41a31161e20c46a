"""Integration tests for the section AI HTTP surface."""

from __future__ import annotations

import httpx
import pytest

from conftest import SAMPLE_BLOCKS, ScriptedLlm, protocol_response
from sectionai.app import SERVICE_VERSION, create_app
from sectionai.document import InMemoryDocument
from sectionai.settings import Settings

pytestmark = pytest.mark.anyio("asyncio")

API_PREFIX = "/api/v1"
TRACE_ID = "123e4567-e89b-12d3-a456-426614174000"


def _client_for(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


async def test_health_reports_mode_and_session_state(async_client: httpx.AsyncClient) -> None:
    response = await async_client.get(f"{API_PREFIX}/healthz")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "version": SERVICE_VERSION,
        "mode": "mock",
        "ai_processing": False,
        "pending_preview": False,
    }


async def test_trace_id_is_echoed(async_client: httpx.AsyncClient) -> None:
    response = await async_client.get(f"{API_PREFIX}/healthz", headers={"x-trace-id": TRACE_ID})

    assert response.headers["x-trace-id"] == TRACE_ID


async def test_index_and_favicon(async_client: httpx.AsyncClient) -> None:
    index = await async_client.get("/")
    favicon = await async_client.get("/favicon.ico")

    assert index.json()["api_base"] == API_PREFIX
    assert favicon.status_code == 204


async def test_read_and_replace_document(async_client: httpx.AsyncClient) -> None:
    current = await async_client.get(f"{API_PREFIX}/document")
    assert current.json()["version"] == 1
    assert len(current.json()["blocks"]) == len(SAMPLE_BLOCKS)

    replaced = await async_client.put(
        f"{API_PREFIX}/document",
        json={"blocks": [{"key": "s", "type": "heading", "level": 2, "text": "Only"}, {"text": "Body."}]},
    )

    assert replaced.status_code == 200
    assert replaced.json()["version"] == 2
    assert [block["type"] for block in replaced.json()["blocks"]] == ["heading", "paragraph"]


async def test_replace_document_rejects_duplicate_keys(async_client: httpx.AsyncClient) -> None:
    response = await async_client.put(
        f"{API_PREFIX}/document",
        json={"blocks": [{"key": "a", "text": "x"}, {"key": "a", "text": "y"}]},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION"


async def test_section_context(async_client: httpx.AsyncClient) -> None:
    response = await async_client.get(f"{API_PREFIX}/sections/h1")

    body = response.json()
    assert response.status_code == 200
    assert body["sectionId"] == "h1"
    assert [p["nodeKey"] for p in body["ownParagraphs"]] == ["p1", "p2"]
    assert body["childSections"][0]["sectionId"] == "h2"


@pytest.mark.parametrize(
    ("section_id", "status_code", "code"),
    [("missing", 404, "SECTION_NOT_FOUND"), ("p1", 400, "NOT_A_HEADING")],
)
async def test_section_context_errors(
    async_client: httpx.AsyncClient, section_id: str, status_code: int, code: str
) -> None:
    response = await async_client.get(f"{API_PREFIX}/sections/{section_id}", headers={"x-trace-id": TRACE_ID})

    assert response.status_code == status_code
    assert response.json()["code"] == code
    assert response.json()["trace_id"] == TRACE_ID


async def test_rewrite_action_with_mock_model(async_client: httpx.AsyncClient) -> None:
    response = await async_client.post(f"{API_PREFIX}/sections/h1/ai/rewrite")

    body = response.json()
    assert response.status_code == 200, body
    assert body["success"] is True
    assert body["applied"] is True
    assert [op["type"] for op in body["docOps"]] == ["replace_paragraph"]

    document = await async_client.get(f"{API_PREFIX}/document")
    assert document.json()["blocks"][1]["runs"][0]["text"] == "Alpha one. Second sentence."


async def test_action_accepts_options_body(async_client: httpx.AsyncClient) -> None:
    response = await async_client.post(
        f"{API_PREFIX}/sections/h1/ai/highlight",
        json={"highlight": {"terms": [{"phrase": "Beta"}], "style": "underline"}},
    )

    body = response.json()
    assert response.status_code == 200, body
    assert body["docOps"][0]["markType"] == "underline"


async def test_unknown_action_is_a_validation_error(async_client: httpx.AsyncClient) -> None:
    response = await async_client.post(f"{API_PREFIX}/sections/h1/ai/translate")

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION"


async def test_offline_model_maps_to_bad_gateway() -> None:
    app = create_app(Settings(mode="offline"), document=InMemoryDocument(SAMPLE_BLOCKS))

    async with _client_for(app) as client:
        response = await client.post(f"{API_PREFIX}/sections/h1/ai/rewrite")

    body = response.json()
    assert response.status_code == 502
    assert body["code"] == "MODEL_ERROR"
    assert body["message"] == "LLM service unavailable"
    assert body["details"]["result"]["errorCode"] == "MODEL_ERROR"


async def test_preview_apply_and_discard_flow() -> None:
    reply = protocol_response(["Alpha changed.", "Beta two."], confidence=0.2)
    second = protocol_response(["Alpha again.", "Beta two."], confidence=0.2)
    app = create_app(
        Settings(mode="mock"),
        llm=ScriptedLlm(reply, second),
        document=InMemoryDocument(SAMPLE_BLOCKS),
    )

    async with _client_for(app) as client:
        nothing = await client.post(f"{API_PREFIX}/sections/ai/pending/apply")
        assert nothing.status_code == 409
        assert nothing.json()["code"] == "NO_PENDING_OPS"

        preview = await client.post(f"{API_PREFIX}/sections/h1/ai/rewrite")
        assert preview.status_code == 200
        assert preview.json()["responseMode"] == "preview"
        assert preview.json()["previews"][0]["newText"] == "Alpha changed."

        health = await client.get(f"{API_PREFIX}/healthz")
        assert health.json()["pending_preview"] is True

        applied = await client.post(f"{API_PREFIX}/sections/ai/pending/apply")
        assert applied.status_code == 200
        assert applied.json()["applied"] is True

        await client.post(f"{API_PREFIX}/sections/h1/ai/rewrite")
        discarded = await client.delete(f"{API_PREFIX}/sections/ai/pending")
        assert discarded.json() == {"discarded": True}


async def test_clarify_endpoint_forwards_answer() -> None:
    llm = ScriptedLlm(protocol_response(["Alpha formal.", "Beta two."]))
    app = create_app(Settings(mode="mock"), llm=llm, document=InMemoryDocument(SAMPLE_BLOCKS))

    async with _client_for(app) as client:
        response = await client.post(
            f"{API_PREFIX}/sections/h1/ai/rewrite/clarify",
            json={"answer": "Formal, please"},
        )

    assert response.status_code == 200
    assert "User clarification: Formal, please" in llm.calls[0][1].content


async def test_build_plan(async_client: httpx.AsyncClient) -> None:
    response = await async_client.post(
        f"{API_PREFIX}/plans",
        json={"target": {"docId": "doc", "sectionId": "h1"}, "highlight": {"enabled": True, "mode": "mixed"}},
    )

    body = response.json()
    assert response.status_code == 200, body
    assert [step["type"] for step in body["steps"]] == ["rewrite_section", "mark_key_sentences", "mark_key_terms"]
    assert body["meta"]["source"] == "api"


async def test_build_plan_without_capabilities(async_client: httpx.AsyncClient) -> None:
    response = await async_client.post(
        f"{API_PREFIX}/plans",
        json={"target": {"docId": "doc", "sectionId": "h1"}, "rewrite": {"enabled": False}},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "PLAN_INVALID"


async def test_run_plan(async_client: httpx.AsyncClient) -> None:
    response = await async_client.post(
        f"{API_PREFIX}/plans/run",
        json={"target": {"docId": "doc", "sectionId": "h1"}, "summary": {"enabled": True, "bulletCount": 1}},
    )

    body = response.json()
    assert response.status_code == 200, body
    assert body["success"] is True
    assert body["state"] == "completed"
    assert [step["stepType"] for step in body["stepResults"]] == ["rewrite_section", "append_bullet_summary"]


async def test_failed_plan_run_still_returns_the_run(async_client: httpx.AsyncClient) -> None:
    response = await async_client.post(
        f"{API_PREFIX}/plans/run",
        json={"target": {"docId": "doc", "sectionId": "missing"}},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is False
    assert body["completedSteps"] == 0
    assert body["stepResults"][0]["result"]["errorCode"] == "SECTION_NOT_FOUND"


async def test_macro_command(async_client: httpx.AsyncClient) -> None:
    response = await async_client.post(
        f"{API_PREFIX}/macros/highlight_section_terms",
        json={"docId": "doc", "sectionId": "h2"},
    )

    body = response.json()
    assert response.status_code == 200, body
    assert body["success"] is True
    assert body["totalSteps"] == 1
