"""AI rewrite service.

Sends draft content to the configured chat-completion backend as a single
system + user exchange and applies the returned text as a labeled revision.
Content only leaves the install after the operator gave the one-time AI
consent, which is persisted through the draft store.
"""

from services.content_review.confirm.ConfirmInterface import ConfirmInterface, ConfirmRequest
from services.content_review.errors import (
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
    TEMPLATE_LABEL,
    get_template,
    strip_code_fences,
    wrap_draft_for_prompt,
)
from services.content_review.revisions import record_revision
from services.content_review.states import ensure_editable
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.draft import ContentDraft
from shared.models.review import ReviewSettings
from shared.store.DraftStoreInterface import DraftStoreInterface

AI_CONSENT_REQUEST = ConfirmRequest(
    title="Send draft to server?",
    body="This will send the draft content to your AI server for processing. Drafts stay local until you commit.",
    ok_label="Continue",
)


class RewriteService:
    def __init__(
        self,
        helper_config: HelperConfig,
        llm_client: LLMClientInterface,
        confirm: ConfirmInterface,
        settings: ReviewSettings,
        store: DraftStoreInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client
        self._confirm = confirm
        self._settings = settings
        self._store = store
        self._busy: set[str] = set()

    ##########################################
    ################ GETTER ##################
    ##########################################

    def resolve_model(self, model_override: str | None = None) -> str:
        """Explicit override, then the persisted selection, then the client's configured model."""
        return model_override or self._settings.selected_model or self._llm_client.chat_model

    def is_busy(self, draft_id: str) -> bool:
        return draft_id in self._busy

    ##########################################
    ################ CONSENT #################
    ##########################################

    async def ensure_consent(self, confirm: ConfirmInterface | None = None) -> None:
        """Ask for the one-time AI consent unless it was already given.

        Raises:
            RewriteConsentError: If the operator declined.
        """
        if self._settings.ai_consent_given:
            return
        if not await (confirm or self._confirm).confirm(AI_CONSENT_REQUEST):
            self.logging.info("AI consent declined.")
            raise RewriteConsentError()
        self._settings.ai_consent_given = True
        await self._store.save_settings(self._settings)
        self.logging.info("AI consent given and persisted.")

    async def select_model(self, model: str | None) -> None:
        """Persist the model used when a rewrite has no explicit override."""
        self._settings.selected_model = model or None
        await self._store.save_settings(self._settings)

    ##########################################
    ################ REWRITE #################
    ##########################################

    async def rewrite(
        self,
        system_prompt: str,
        instruction: str,
        content: str,
        model_override: str | None = None,
    ) -> str:
        """Run one non-streaming completion over content.

        Args:
            system_prompt (str): The system message.
            instruction (str): Instruction placed in front of the wrapped content.
            content (str): The draft content.
            model_override (str | None): Model to use instead of the selected one.

        Returns:
            str: The completion text with an enclosing code fence removed ("" if none).

        Raises:
            DraftValidationError: If instruction or content is empty.
            Exception: If the request to the backend fails.
        """
        if not instruction.strip():
            raise DraftValidationError("Rewrite instruction is empty.")
        if not content.strip():
            raise DraftValidationError("Draft content is empty.")

        model = self.resolve_model(model_override)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": wrap_draft_for_prompt(content, instruction)},
        ]
        self.logging.debug("Requesting rewrite from %s with model '%s'.", self._llm_client.get_engine_name(), model)
        text = await self._llm_client.do_chat(messages, model=model)
        return strip_code_fences(text)

    async def do_fix(
        self,
        draft: ContentDraft,
        model_override: str | None = None,
        confirm: ConfirmInterface | None = None,
    ) -> ContentDraft:
        """Apply the fixed "AI corrections" prompt to a draft and persist the result."""
        return await self._apply(
            draft,
            system_prompt=AI_CORRECTION_PROMPT.system,
            instruction=AI_CORRECTION_PROMPT.instruction,
            label=AI_CORRECTION_LABEL,
            model_override=model_override,
            confirm=confirm,
        )

    async def do_apply_template(
        self,
        draft: ContentDraft,
        template_id: str,
        model_override: str | None = None,
        confirm: ConfirmInterface | None = None,
    ) -> ContentDraft:
        """Apply a named formatting template. The template's output format becomes the draft's content format.

        Raises:
            DraftValidationError: If the template is unknown.
        """
        template = get_template(template_id)
        if template is None:
            raise DraftValidationError(f"Unknown template '{template_id}'.")
        return await self._apply(
            draft,
            system_prompt=template.system_prompt,
            instruction=template.instruction,
            label=TEMPLATE_LABEL,
            model_override=model_override,
            confirm=confirm,
            extras={"content_format": template.output_format},
        )

    async def _apply(
        self,
        draft: ContentDraft,
        system_prompt: str,
        instruction: str,
        label: str,
        model_override: str | None,
        confirm: ConfirmInterface | None,
        extras: dict | None = None,
    ) -> ContentDraft:
        ensure_editable(draft)
        if not draft.content.strip():
            raise DraftValidationError("Draft content is empty.")
        if draft.id in self._busy:
            raise RewriteBusyError(draft.id)

        self._busy.add(draft.id)
        try:
            await self.ensure_consent(confirm)
            try:
                next_content = await self.rewrite(system_prompt, instruction, draft.content, model_override)
            except Exception as e:
                self.logging.error("%s failed for draft %s: %s", label, draft.id, e)
                raise RewriteFailedError(str(e) or f"{label} failed.") from e
            if not next_content:
                raise RewriteEmptyError()
            if next_content.strip() == draft.content.strip():
                raise RewriteNoChangeError()

            updated = record_revision(draft, next_content, label, extras=extras)
            updated = await self._store.put_draft(updated)
            self.logging.info("Applied '%s' to draft %s.", label, draft.id)
            return updated
        finally:
            self._busy.discard(draft.id)
