import json

import httpx
import pytest

from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.llm.ollama.LLMClientOllama import LLMClientOllama
from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai

pytestmark = pytest.mark.anyio


def test_manager_builds_configured_engine(helper_config, monkeypatch):
    client = LLMClientManager(helper_config=helper_config).get_client()
    assert isinstance(client, LLMClientOpenai)
    assert client.chat_model == "env-model"

    monkeypatch.setenv("LLM_ENGINE", "ollama")
    monkeypatch.setenv("LLM_OLLAMA_BASE_URL", "http://ollama.test")
    assert isinstance(LLMClientManager(helper_config=helper_config).get_client(), LLMClientOllama)

    monkeypatch.setenv("LLM_ENGINE", "")
    with pytest.raises(ValueError, match="LLM_ENGINE"):
        LLMClientManager(helper_config=helper_config)


async def test_openai_chat_request_and_reply(llm_client, llm_backend):
    messages = [{"role": "system", "content": "be brief"}, {"role": "user", "content": "hi"}]

    reply = await llm_client.do_chat(messages, model="picked-model")

    assert reply == "Fixed text."
    [request] = llm_backend.sent("POST", "/api/v1/chat/completions")
    assert json.loads(request.content) == {"model": "picked-model", "stream": False, "messages": messages}
    assert "authorization" not in request.headers


async def test_openai_uses_bearer_key_and_default_model(helper_config, llm_backend, monkeypatch):
    monkeypatch.setenv("LLM_OPENAI_API_KEY", "sk-test")
    client = LLMClientOpenai(helper_config=helper_config)
    await client.boot(transport=llm_backend.transport())
    try:
        await client.do_chat([{"role": "user", "content": "hi"}])
    finally:
        await client.close()

    [request] = llm_backend.sent("POST")
    assert request.headers["authorization"] == "Bearer sk-test"
    assert json.loads(request.content)["model"] == "env-model"


async def test_openai_fetch_models(llm_client, llm_backend):
    llm_backend.route("GET", "/api/v1/models", json={"data": [{"id": "m1"}, {"name": "m2"}, "m3", {"owner": "x"}]})

    assert await llm_client.do_fetch_models() == ["m1", "m2", "m3"]


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"choices": [{"message": {"content": "  plain  "}}]}, "plain"),
        ({"choices": [{"message": {"content": [{"type": "text", "text": "a"}, {"text": "b"}]}}]}, "ab"),
        ({"choices": [{"text": "legacy"}]}, "legacy"),
        ({"content": "top level"}, "top level"),
        ({"choices": []}, ""),
    ],
)
def test_openai_extract_chat_response(helper_config, payload, expected):
    assert LLMClientOpenai(helper_config=helper_config).extract_chat_response(payload) == expected


async def test_plain_text_reply_is_returned_as_is(llm_client, llm_backend):
    llm_backend.route("POST", "/api/v1/chat/completions", lambda request: httpx.Response(200, text="raw body"))

    assert await llm_client.do_chat([{"role": "user", "content": "hi"}]) == "raw body"


async def test_backend_error_raises(llm_client, llm_backend):
    llm_backend.route("POST", "/api/v1/chat/completions", status=500, json={"error": "model not loaded"})

    with pytest.raises(Exception, match="model not loaded"):
        await llm_client.do_chat([{"role": "user", "content": "hi"}])


async def test_ollama_chat(helper_config, monkeypatch):
    monkeypatch.setenv("LLM_OLLAMA_BASE_URL", "http://ollama.test")
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": "llama3"}, {"size": 1}]})
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "ollama says hi"}})

    client = LLMClientOllama(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(handler))
    try:
        assert await client.do_chat([{"role": "user", "content": "hi"}]) == "ollama says hi"
        assert await client.do_fetch_models() == ["llama3"]
    finally:
        await client.close()

    assert seen[0].url.path == "/api/chat"
    assert json.loads(seen[0].content)["stream"] is False
    assert client.extract_chat_response({"done": True}) == ""
