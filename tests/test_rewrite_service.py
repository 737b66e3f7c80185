import json

import anyio
import httpx
import pytest

from services.content_review.RewriteService import RewriteService
from services.content_review.confirm.ConfirmStatic import ConfirmStatic
from services.content_review.errors import (
    DraftFinalizedError,
    DraftValidationError,
    RewriteBusyError,
    RewriteConsentError,
    RewriteEmptyError,
    RewriteFailedError,
    RewriteNoChangeError,
)
from services.content_review.prompts import (
    AI_CORRECTION_LABEL,
    AI_CORRECTION_PROMPT,
    CONTENT_END_MARKER,
    CONTENT_START_MARKER,
    TEMPLATE_LABEL,
)
from shared.models.draft import ContentFormat, DraftStatus

pytestmark = pytest.mark.anyio

CHAT_PATH = "/api/v1/chat/completions"


def chat_reply(text: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


@pytest.fixture()
def rewrite(helper_config, llm_client, settings, store) -> RewriteService:
    return RewriteService(
        helper_config=helper_config,
        llm_client=llm_client,
        confirm=ConfirmStatic(answer=False),
        settings=settings,
        store=store,
    )


async def test_declined_consent_sends_nothing(rewrite, llm_backend, settings, make_draft):
    confirm = ConfirmStatic(answer=False)

    with pytest.raises(RewriteConsentError):
        await rewrite.do_fix(make_draft(), confirm=confirm)

    assert len(confirm.asked) == 1
    assert llm_backend.requests == []
    assert settings.ai_consent_given is False


async def test_fix_applies_reply_and_persists_consent(rewrite, llm_backend, settings, store, make_draft):
    draft = make_draft()

    updated = await rewrite.do_fix(draft, confirm=ConfirmStatic(answer=True))

    assert updated.content == "Fixed text."
    assert updated.revisions[0].change_description == AI_CORRECTION_LABEL
    assert (await store.get_draft(draft.id)).content == "Fixed text."
    assert settings.ai_consent_given is True
    assert await store.load_settings() is settings

    [request] = llm_backend.sent("POST", CHAT_PATH)
    body = json.loads(request.content)
    assert body["model"] == "env-model"
    assert body["messages"][0] == {"role": "system", "content": AI_CORRECTION_PROMPT.system}
    user = body["messages"][1]["content"]
    assert user.startswith(AI_CORRECTION_PROMPT.instruction)
    assert f"{CONTENT_START_MARKER}\n{draft.content}\n{CONTENT_END_MARKER}" in user

    # consent is asked once per install
    confirm = ConfirmStatic(answer=False)
    llm_backend.route("POST", CHAT_PATH, json=chat_reply("Fixed again."))
    await rewrite.do_fix(updated, confirm=confirm)
    assert confirm.asked == []


async def test_model_resolution_order(rewrite, settings, llm_backend, store, make_draft):
    settings.ai_consent_given = True
    assert rewrite.resolve_model() == "env-model"

    await rewrite.select_model("picked-model")
    assert rewrite.resolve_model() == "picked-model"
    assert rewrite.resolve_model("override") == "override"

    await rewrite.do_fix(make_draft(), model_override="override")
    assert json.loads(llm_backend.requests[-1].content)["model"] == "override"

    await rewrite.select_model("")
    assert settings.selected_model is None


async def test_code_fence_is_stripped(rewrite, llm_backend, settings, make_draft):
    settings.ai_consent_given = True
    llm_backend.route("POST", CHAT_PATH, json=chat_reply("```markdown\n# Title\n\nBody\n```"))

    updated = await rewrite.do_fix(make_draft())

    assert updated.content == "# Title\n\nBody"


async def test_unchanged_reply_leaves_draft_untouched(rewrite, llm_backend, settings, store, make_draft):
    settings.ai_consent_given = True
    draft = await store.put_draft(make_draft())
    llm_backend.route("POST", CHAT_PATH, json=chat_reply(f"  {draft.content}\n"))

    with pytest.raises(RewriteNoChangeError, match="No changes returned."):
        await rewrite.do_fix(draft)

    stored = await store.get_draft(draft.id)
    assert stored.updated_at == draft.updated_at
    assert stored.revisions == []


async def test_empty_reply_is_rejected(rewrite, llm_backend, settings, make_draft):
    settings.ai_consent_given = True
    llm_backend.route("POST", CHAT_PATH, json={"choices": [{"message": {"content": ""}}]})

    with pytest.raises(RewriteEmptyError, match="AI returned no content."):
        await rewrite.do_fix(make_draft())


async def test_backend_failure_is_wrapped(rewrite, llm_backend, settings, make_draft):
    settings.ai_consent_given = True
    llm_backend.route("POST", CHAT_PATH, status=503, json={"detail": "overloaded"})
    draft = make_draft()

    with pytest.raises(RewriteFailedError, match="overloaded"):
        await rewrite.do_fix(draft)
    assert not rewrite.is_busy(draft.id)


async def test_concurrent_rewrite_of_same_draft_is_rejected(rewrite, llm_backend, settings, make_draft):
    settings.ai_consent_given = True
    release = anyio.Event()

    async def slow_chat(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return httpx.Response(200, json=chat_reply("Fixed text."))

    llm_backend.route("POST", CHAT_PATH, slow_chat)
    draft = make_draft()

    async with anyio.create_task_group() as tg:
        tg.start_soon(rewrite.do_fix, draft)
        while not rewrite.is_busy(draft.id):
            await anyio.sleep(0.01)
        with pytest.raises(RewriteBusyError):
            await rewrite.do_fix(draft)
        release.set()

    assert not rewrite.is_busy(draft.id)


async def test_template_switches_content_format(rewrite, llm_backend, settings, make_draft):
    settings.ai_consent_given = True
    llm_backend.route("POST", CHAT_PATH, json=chat_reply("## Part one\nFirst paragraph.\n\n## Part two\nSecond paragraph."))

    updated = await rewrite.do_apply_template(make_draft(), "chapter_headings")

    assert updated.content_format == ContentFormat.MARKDOWN
    assert updated.revisions[0].change_description == TEMPLATE_LABEL


async def test_invalid_inputs(rewrite, llm_backend, settings, make_draft):
    settings.ai_consent_given = True

    with pytest.raises(DraftValidationError, match="Unknown template"):
        await rewrite.do_apply_template(make_draft(), "haiku")
    with pytest.raises(DraftValidationError):
        await rewrite.do_fix(make_draft(content="   "))
    with pytest.raises(DraftFinalizedError):
        await rewrite.do_fix(make_draft(status=DraftStatus.DISCARDED))
    with pytest.raises(DraftValidationError):
        await rewrite.rewrite("system", "", "content")

    assert llm_backend.requests == []
