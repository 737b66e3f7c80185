"""Shared fixtures for the draft review test suite."""

import logging
import re
import uuid
from collections.abc import AsyncIterator, Callable
from datetime import timedelta

import httpx
import pytest

from services.content_review.confirm.ConfirmStatic import ConfirmStatic
from services.content_review.wiring import build_review_service
from shared.clients.content.tldw.ContentClientTldw import ContentClientTldw
from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai
from shared.helper.HelperConfig import HelperConfig
from shared.models.draft import ContentDraft, DraftSource, utc_now
from shared.models.review import ReviewSettings
from shared.store.memory.DraftStoreMemory import DraftStoreMemory

CONTENT_BASE_URL = "http://content.test"
LLM_BASE_URL = "http://llm.test"
API_KEY = "test-api-key"


class FakeBackend:
    """Routes requests of an httpx.MockTransport by method and path regex and records them."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: list[tuple[str, re.Pattern, Callable]] = []

    def route(self, method: str, path: str, handler: Callable | None = None, status: int = 200, json=None) -> None:
        """Register a responder. Routes added later win over earlier ones."""
        if handler is None:
            payload = {} if json is None else json

            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(status, json=payload)

        self._routes.append((method.upper(), re.compile(path), handler))

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def sent(self, method: str, path: str | None = None) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and (path is None or r.url.path == path)]

    def _handle(self, request: httpx.Request):
        self.requests.append(request)
        for method, pattern, handler in reversed(self._routes):
            if method == request.method and pattern.fullmatch(request.url.path):
                return handler(request)
        return httpx.Response(404, json={"detail": f"No route for {request.method} {request.url.path}"})


def chat_reply(text: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "DRAFT_STORE_ENGINE",
        "DRAFT_STORE_FILE_ROOT",
        "DRAFT_STORAGE_CAP_BYTES",
        "DRAFT_TTL_DAYS",
        "LLM_OPENAI_API_KEY",
        "LLM_OPENAI_CHAT_PATH",
        "LLM_OPENAI_MODELS_PATH",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ROOT_DIR", str(tmp_path))
    monkeypatch.setenv("CONTENT_ENGINE", "tldw")
    monkeypatch.setenv("CONTENT_TLDW_BASE_URL", CONTENT_BASE_URL)
    monkeypatch.setenv("CONTENT_TLDW_API_KEY", "content-key")
    monkeypatch.setenv("LLM_ENGINE", "openai")
    monkeypatch.setenv("LLM_OPENAI_BASE_URL", LLM_BASE_URL)
    monkeypatch.setenv("LLM_CHAT_MODEL", "env-model")
    monkeypatch.setenv("API_SERVER_API_KEY", API_KEY)
    monkeypatch.setenv("DRAFT_AUTOSAVE_DELAY_MS", "20")


@pytest.fixture()
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("draft_review.tests"))


@pytest.fixture()
def settings() -> ReviewSettings:
    return ReviewSettings(autosave_delay_ms=20)


@pytest.fixture()
def store(helper_config: HelperConfig, settings: ReviewSettings) -> DraftStoreMemory:
    return DraftStoreMemory(helper_config=helper_config, settings=settings)


@pytest.fixture()
def content_backend() -> FakeBackend:
    backend = FakeBackend()
    backend.route("POST", "/api/v1/media/add", json={"results": [{"media_id": 42}]})
    backend.route("PUT", r"/api/v1/media/\w+", json={"ok": True})
    backend.route("PATCH", r"/api/v1/media/\w+/metadata", json={"ok": True})
    return backend


@pytest.fixture()
def llm_backend() -> FakeBackend:
    backend = FakeBackend()
    backend.route("POST", "/api/v1/chat/completions", json=chat_reply("Fixed text."))
    backend.route("GET", "/api/v1/models", json={"data": [{"id": "env-model"}, {"id": "other-model"}]})
    return backend


@pytest.fixture()
async def content_client(helper_config: HelperConfig, content_backend: FakeBackend) -> AsyncIterator[ContentClientTldw]:
    client = ContentClientTldw(helper_config=helper_config)
    await client.boot(transport=content_backend.transport())
    yield client
    await client.close()


@pytest.fixture()
async def llm_client(helper_config: HelperConfig, llm_backend: FakeBackend) -> AsyncIterator[LLMClientOpenai]:
    client = LLMClientOpenai(helper_config=helper_config)
    await client.boot(transport=llm_backend.transport())
    yield client
    await client.close()


@pytest.fixture()
def review(helper_config, settings, store, content_client, llm_client):
    """A review session whose default confirmation approves everything."""
    return build_review_service(
        helper_config=helper_config,
        settings=settings,
        store=store,
        content_client=content_client,
        llm_client=llm_client,
        confirm=ConfirmStatic(answer=True),
    )


@pytest.fixture()
def make_draft() -> Callable[..., ContentDraft]:
    """Factory for drafts. created_at increases with every call so batch order is stable."""
    base = utc_now()
    counter = {"n": 0}

    def _make(**overrides) -> ContentDraft:
        counter["n"] += 1
        content = overrides.pop("content", "First paragraph.\n\nSecond paragraph.")
        values = {
            "id": uuid.uuid4().hex,
            "batch_id": "batch-1",
            "title": "Meeting notes",
            "content": content,
            "original_content": content,
            "source": DraftSource(kind="url", url="https://example.com/article"),
            "created_at": base + timedelta(seconds=counter["n"]),
        }
        values.update(overrides)
        return ContentDraft(**values)

    return _make
