import json
from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors

from src.ai import enhance as enhance_mod
from src.ai.enhance import (
    CvEnhancer,
    EnhancementResult,
    build_user_prompt,
    detect_locale,
    fallback_enhance,
    parse_model_json,
)
from src.api.endpoints import ai as ai_endpoint
from src.integrations.clients.real_http import anthropic as anthropic_mod
from src.integrations.clients.real_http.anthropic import AnthropicAPIError, AnthropicMessagesClient

CV = {
    "fullName": "Omar Hassan",
    "title": "Backend Engineer",
    "summary": "Engineer building payment systems.",
    "experience": [{"company": "Fawry", "role": "developer", "description": "Built APIs"}],
    "skills": ["Python"],
}


class DummyModels:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(text=reply)


class DummyClient:
    replies = []
    last = None

    def __init__(self, api_key=None):
        self.api_key = api_key
        self.models = DummyModels(DummyClient.replies)
        DummyClient.last = self


# ---------------------------------------------------------------------------
# Prompt and parsing helpers
# ---------------------------------------------------------------------------
def test_parse_model_json_handles_fences_and_garbage():
    assert parse_model_json('{"a": 1}') == {"a": 1}
    assert parse_model_json('Here you go:\n```json\n{"a": 2}\n```') == {"a": 2}
    assert parse_model_json("not json") is None
    assert parse_model_json("[1, 2]") is None


def test_build_user_prompt_only_mentions_present_sections():
    prompt = build_user_prompt({"summary": "x", "experience": []}, "en")
    assert "Summary:" in prompt
    assert "Experience:" not in prompt
    assert prompt.endswith("Return JSON only, no extra prose.")

    ar_prompt = build_user_prompt({"skills": ["بايثون"]}, "ar")
    assert "المهارات" in ar_prompt


def test_detect_locale():
    assert detect_locale({"summary": "مهندس برمجيات بخبرة خمس سنوات في تطوير الأنظمة المصرفية"}) == "ar"
    assert detect_locale({"summary": "Software engineer with five years of experience in banking systems"}) == "en"
    assert detect_locale({}) == "en"


def test_fallback_enhance_touches_up_roles_and_summary():
    enhanced = fallback_enhance(CV)
    assert enhanced["experience"][0]["role"] == "Developer"
    assert enhanced["experience"][0]["description"] == "• Built APIs"
    assert enhanced["summary"] == "✔ Engineer building payment systems."
    # input left alone
    assert CV["experience"][0]["role"] == "developer"


# ---------------------------------------------------------------------------
# Gemini backend
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_gemini_enhance_returns_parsed_json(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "fake-key")
    DummyClient.replies = [json.dumps({**CV, "summary": "Improved"})]
    monkeypatch.setattr(enhance_mod.genai, "Client", DummyClient)

    result = await CvEnhancer(backend="gemini").enhance(CV, "en")

    assert result.ok is True
    assert result.data["summary"] == "Improved"
    assert result.model == "gemini-2.5-flash"
    call = DummyClient.last.models.calls[0]
    assert call["model"] == "gemini-2.5-flash"
    assert "Omar Hassan" in call["contents"]


@pytest.mark.asyncio
async def test_gemini_enhance_without_key():
    result = await CvEnhancer(backend="gemini").enhance(CV, "en")
    assert result.ok is False
    assert result.reason == "missing_api_key"


@pytest.mark.asyncio
async def test_gemini_enhance_reports_parse_error(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "fake-key")
    DummyClient.replies = ["I cannot help with that"]
    monkeypatch.setattr(enhance_mod.genai, "Client", DummyClient)

    result = await CvEnhancer(backend="gemini").enhance(CV, "en")

    assert result.ok is False
    assert result.reason == "parse_error"


@pytest.mark.asyncio
async def test_gemini_enhance_retries_server_errors(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "fake-key")
    overloaded = genai_errors.ServerError(503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}})
    DummyClient.replies = [overloaded, json.dumps(CV)]
    monkeypatch.setattr(enhance_mod.genai, "Client", DummyClient)

    async def no_sleep(_seconds):
        return None

    monkeypatch.setattr(enhance_mod.asyncio, "sleep", no_sleep)

    result = await CvEnhancer(backend="gemini", max_attempts=2).enhance(CV, "en")

    assert result.ok is True
    assert len(DummyClient.last.models.calls) == 2


# ---------------------------------------------------------------------------
# Anthropic backend
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_anthropic_client_posts_messages_request(monkeypatch):
    seen = {}

    def handler(request):
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"content": [{"type": "text", "text": '{"ok": true}'}]})

    real_async_client = httpx.AsyncClient

    def client_factory(**kwargs):
        return real_async_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(anthropic_mod.httpx, "AsyncClient", client_factory)

    text = await AnthropicMessagesClient(api_key="sk-test").create_message(
        system="sys",
        content=[{"type": "text", "text": "hi"}],
        model="claude-test",
    )

    assert text == '{"ok": true}'
    assert seen["headers"]["x-api-key"] == "sk-test"
    assert seen["headers"]["anthropic-version"] == "2023-06-01"
    assert seen["body"]["model"] == "claude-test"
    assert seen["body"]["messages"][0]["role"] == "user"


@pytest.mark.asyncio
async def test_anthropic_client_raises_on_error_status(monkeypatch):
    real_async_client = httpx.AsyncClient

    def client_factory(**kwargs):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="invalid x-api-key"))
        return real_async_client(transport=transport, **kwargs)

    monkeypatch.setattr(anthropic_mod.httpx, "AsyncClient", client_factory)

    with pytest.raises(AnthropicAPIError) as excinfo:
        await AnthropicMessagesClient(api_key="sk-test").create_message(system="s", content=[])
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_anthropic_enhance_maps_api_error(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")

    class FailingClient:
        def __init__(self, **kwargs):
            pass

        async def create_message(self, **kwargs):
            raise AnthropicAPIError(529, "overloaded")

    monkeypatch.setattr(enhance_mod, "AnthropicMessagesClient", FailingClient)

    result = await CvEnhancer(backend="anthropic").enhance(CV, "ar")

    assert result.ok is False
    assert result.reason == "api_error"
    assert result.message == "overloaded"


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
class StubEnhancer:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def enhance(self, data, locale, model=None):
        self.calls.append((locale, model))
        return self.result


def test_enhance_route_requires_object(client):
    resp = client.post("/api/ai/enhance", json={"data": "just text"})
    assert resp.status_code == 400


def test_enhance_route_success(client, monkeypatch):
    stub = StubEnhancer(EnhancementResult(ok=True, data={"fullName": "Omar"}, model="m1"))
    monkeypatch.setattr(ai_endpoint, "get_enhancer", lambda: stub)

    resp = client.post("/api/ai/enhance", json={"data": CV, "locale": "en"})

    assert resp.status_code == 200
    assert resp.json() == {"data": {"fullName": "Omar"}, "model": "m1"}
    assert stub.calls == [("en", None)]


def test_enhance_route_missing_key_is_503(client, monkeypatch):
    stub = StubEnhancer(EnhancementResult(ok=False, reason="missing_api_key", message="no key"))
    monkeypatch.setattr(ai_endpoint, "get_enhancer", lambda: stub)

    resp = client.post("/api/ai/enhance", json={"data": CV})

    assert resp.status_code == 503
    assert resp.json()["reason"] == "missing_api_key"


def test_enhance_route_falls_back_on_model_errors(client, monkeypatch):
    stub = StubEnhancer(EnhancementResult(ok=False, reason="parse_error", message="bad json"))
    monkeypatch.setattr(ai_endpoint, "get_enhancer", lambda: stub)

    resp = client.post("/api/ai/enhance", json={"data": CV, "locale": "en"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["fallback"] is True
    assert body["reason"] == "parse_error"
    assert body["data"]["experience"][0]["role"] == "Developer"


def test_readiness_lists_missing_fields(client):
    resp = client.post("/api/ai/readiness", json={"data": {"fullName": "A"}, "locale": "ar"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ready"] is False
    assert body["missing"] == ["الاسم الكامل", "خبرة عمل واحدة على الأقل"]

    ok = client.post("/api/ai/readiness", json={"data": CV})
    assert ok.json() == {"ready": True, "missing": []}
