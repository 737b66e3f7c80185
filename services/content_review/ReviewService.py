"""Review session.

Holds the active batch and the open draft and exposes every operator action
of the review workflow: staging, opening, editing, section toggles, resets,
AI rewrites, status changes, navigation, source file reattachment, commits
and clearing local drafts. Edits of the open draft are persisted through the
AutosaveScheduler; status changes and AI rewrites are persisted immediately.
"""

import uuid
from datetime import timedelta
from typing import Any

from pydantic import ValidationError

from services.content_review.AutosaveScheduler import AutosaveScheduler
from services.content_review.BulkCommitService import PRE_COMMIT_SAVE_LABEL, BulkCommitService
from services.content_review.CommitService import CommitService
from services.content_review.RewriteService import RewriteService
from services.content_review.confirm.ConfirmInterface import ConfirmInterface, ConfirmRequest
from services.content_review.diff import build_diff
from services.content_review.errors import (
    ConfirmationDeclinedError,
    DraftNotFoundError,
    DraftValidationError,
)
from services.content_review.prompts import REWRITE_TEMPLATES, RewriteTemplate
from services.content_review.sections import build_content_from_sections, detect_sections
from services.content_review.staging import build_draft
from services.content_review.states import check_transition, ensure_editable
from shared.helper.HelperConfig import HelperConfig
from shared.models.draft import ContentDraft, DraftBatch, DraftSource, DraftStatus, ProcessingOptions, utc_now
from shared.models.review import (
    AssetStoreResult,
    BatchStats,
    BulkCommitSummary,
    CommitResult,
    DraftDiff,
    DraftInput,
    ReviewSettings,
    StagedBatch,
)
from shared.store.DraftStoreInterface import DraftStoreInterface

EDITABLE_FIELDS = ("title", "content", "keywords", "analysis", "prompt", "review_notes", "metadata", "processing_options")

REDETECT_REQUEST = ConfirmRequest(
    title="Re-detect sections?",
    body="This will replace existing sections and reset your selections.",
    ok_label="Re-detect",
)
RESET_REQUEST = ConfirmRequest(
    title="Reset draft?",
    body="This will restore the original content for this draft.",
    ok_label="Reset",
)
DISCARD_REQUEST = ConfirmRequest(
    title="Discard draft?",
    body="This draft will be marked as discarded and removed from review.",
    ok_label="Discard",
    danger=True,
)
CLEAR_REQUEST = ConfirmRequest(
    title="Clear all drafts?",
    body="This removes all local content review drafts and assets.",
    ok_label="Clear drafts",
    danger=True,
)


class ReviewService:
    def __init__(
        self,
        helper_config: HelperConfig,
        settings: ReviewSettings,
        store: DraftStoreInterface,
        autosave: AutosaveScheduler,
        rewrite_service: RewriteService,
        commit_service: CommitService,
        bulk_commit_service: BulkCommitService,
        confirm: ConfirmInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._settings = settings
        self._store = store
        self._autosave = autosave
        self._rewrite_service = rewrite_service
        self._commit_service = commit_service
        self._bulk_commit_service = bulk_commit_service
        self._confirm = confirm
        self._active_batch_id: str | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_active_batch_id(self) -> str | None:
        return self._active_batch_id

    def get_open_draft(self) -> ContentDraft | None:
        return self._autosave.get_draft()

    def get_templates(self) -> list[RewriteTemplate]:
        return list(REWRITE_TEMPLATES)

    async def get_batches(self) -> list[DraftBatch]:
        return await self._store.get_batches()

    async def get_draft(self, draft_id: str) -> ContentDraft:
        """The open in-memory draft when it matches, else the stored one.

        Raises:
            DraftNotFoundError: If no such draft exists.
        """
        open_draft = self._autosave.get_draft()
        if open_draft is not None and open_draft.id == draft_id:
            return open_draft
        draft = await self._store.get_draft(draft_id)
        if draft is None:
            raise DraftNotFoundError(f"Draft {draft_id} not found.")
        return draft

    async def get_batch_drafts(self, batch_id: str | None = None) -> list[ContentDraft]:
        batch_id = batch_id or self._active_batch_id
        if not batch_id:
            return []
        drafts = await self._store.get_drafts_by_batch(batch_id)
        open_draft = self._autosave.get_draft()
        if open_draft is None:
            return drafts
        return [open_draft if d.id == open_draft.id else d for d in drafts]

    async def get_batch_stats(self, batch_id: str | None = None) -> BatchStats:
        stats = BatchStats()
        for draft in await self.get_batch_drafts(batch_id):
            stats.total += 1
            setattr(stats, draft.status.value, getattr(stats, draft.status.value) + 1)
        return stats

    async def get_diff(self, draft_id: str) -> DraftDiff:
        draft = await self.get_draft(draft_id)
        return build_diff(draft.original_content, draft.content)

    ##########################################
    ################ STAGING #################
    ##########################################

    async def stage_batch(
        self,
        items: list[DraftInput],
        name: str | None = None,
        source: str = "manual",
        processing_options: ProcessingOptions | None = None,
    ) -> StagedBatch:
        """Create a batch with one pending draft per item.

        Source files are stored as assets subject to the storage cap. A file
        the cap rejects is counted in skipped_assets; its draft keeps the file
        descriptor without an asset.
        """
        now = utc_now()
        expires_at = now + timedelta(days=self._settings.draft_ttl_days) if self._settings.draft_ttl_days > 0 else None
        batch = DraftBatch(
            id=uuid.uuid4().hex,
            name=name,
            source=source,
            source_details={"total": len(items)},
            created_at=now,
            updated_at=now,
        )
        await self._store.put_batch(batch)

        staged = StagedBatch(batch=batch)
        options = processing_options or ProcessingOptions()
        for index, item in enumerate(items):
            # batch order is created_at order, so space the drafts one microsecond apart
            created_at = now + timedelta(microseconds=index)
            draft = build_draft(uuid.uuid4().hex, batch.id, item, options, created_at, expires_at)
            if item.file_bytes is not None:
                result = await self._store.put_asset(
                    draft.id, item.file_name or "upload.bin", item.mime_type or "", item.file_bytes
                )
                if result.stored:
                    draft.source_asset_id = result.asset.id
                else:
                    staged.skipped_assets += 1
            await self._store.put_draft(draft)
            staged.draft_ids.append(draft.id)

        self.logging.info(
            "Staged batch %s with %d draft(s), %d asset(s) skipped.",
            batch.id, len(staged.draft_ids), staged.skipped_assets,
        )
        return staged

    ##########################################
    ############### NAVIGATION ###############
    ##########################################

    async def select_batch(self, batch_id: str) -> list[ContentDraft]:
        """Make batch_id the active batch and return its drafts.

        Raises:
            DraftNotFoundError: If the batch does not exist.
        """
        if await self._store.get_batch(batch_id) is None:
            raise DraftNotFoundError(f"Batch {batch_id} not found.")
        if batch_id != self._active_batch_id:
            await self._autosave.open(None)
        self._active_batch_id = batch_id
        return await self.get_batch_drafts(batch_id)

    async def open_draft(self, draft_id: str, flush: bool = True) -> ContentDraft:
        """Open a draft for review. A pending draft moves to in_progress.

        Args:
            draft_id (str): The draft to open.
            flush (bool): Persist unsaved edits of the previously open draft first.
                With False they are dropped.
        """
        open_draft = self._autosave.get_draft()
        if open_draft is not None and open_draft.id == draft_id:
            return open_draft

        draft = await self._store.get_draft(draft_id)
        if draft is None:
            raise DraftNotFoundError(f"Draft {draft_id} not found.")
        await self._autosave.open(None, flush=flush)

        if draft.status == DraftStatus.PENDING:
            check_transition(draft, DraftStatus.IN_PROGRESS)
            draft = await self._store.put_draft(
                draft.model_copy(update={"status": DraftStatus.IN_PROGRESS, "updated_at": utc_now()})
            )
        self._active_batch_id = draft.batch_id
        await self._autosave.open(draft, flush=False)
        return draft

    async def navigate(self, direction: int, flush: bool = True) -> ContentDraft | None:
        """Open the draft direction steps away from the open one within the active batch."""
        open_draft = self._autosave.get_draft()
        if open_draft is None:
            return None
        drafts = await self.get_batch_drafts(open_draft.batch_id)
        index = next((i for i, d in enumerate(drafts) if d.id == open_draft.id), -1)
        target = index + direction
        if index < 0 or target < 0 or target >= len(drafts):
            return None
        return await self.open_draft(drafts[target].id, flush=flush)

    ##########################################
    ################# EDITS ##################
    ##########################################

    async def update_fields(self, draft_id: str, changes: dict[str, Any]) -> ContentDraft:
        """Apply field edits to a draft and schedule an autosave.

        Raises:
            DraftValidationError: If a field is not editable or its value is invalid.
            DraftFinalizedError: If the draft is committed or discarded.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise DraftValidationError(f"Fields not editable: {', '.join(sorted(unknown))}.")
        draft = await self._require_open(draft_id)
        ensure_editable(draft)
        try:
            updated = ContentDraft.model_validate({**draft.model_dump(), **changes})
        except ValidationError as e:
            fields = sorted({str(error["loc"][0]) for error in e.errors() if error["loc"]})
            raise DraftValidationError(f"Invalid value for: {', '.join(fields) or 'draft'}.") from e
        self._autosave.mark_dirty(updated)
        return updated

    async def toggle_section(self, draft_id: str, section_id: str, include: bool) -> ContentDraft:
        """Include or exclude a section. Content is rebuilt from the included sections."""
        draft = await self._require_open(draft_id)
        ensure_editable(draft)
        if not any(s.id == section_id for s in draft.sections):
            raise DraftValidationError(f"Section {section_id} not found in draft {draft_id}.")

        excluded = [sid for sid in draft.excluded_section_ids if sid != section_id]
        if not include:
            excluded.append(section_id)
        updated = draft.model_copy(
            update={
                "excluded_section_ids": excluded,
                "content": build_content_from_sections(draft.sections, excluded),
            }
        )
        self._autosave.mark_dirty(updated)
        return updated

    async def redetect_sections(self, draft_id: str, confirm: ConfirmInterface | None = None) -> ContentDraft:
        """Detect sections from the current content, replacing existing ones after confirmation.

        Finding no structure leaves the draft unchanged.
        """
        draft = await self._require_open(draft_id)
        ensure_editable(draft)
        if draft.sections:
            await self._ask(REDETECT_REQUEST, "Re-detect sections", confirm)

        sections, strategy = detect_sections(draft.content)
        if not sections:
            self.logging.info("No sections detected in draft %s.", draft_id)
            return draft

        updated = draft.model_copy(
            update={
                "sections": sections,
                "excluded_section_ids": [],
                "section_strategy": strategy,
                "updated_at": utc_now(),
            }
        )
        return await self._persist(updated)

    async def reset_content(self, draft_id: str, confirm: ConfirmInterface | None = None) -> ContentDraft:
        """Restore the original content and include every section again."""
        draft = await self._require_open(draft_id)
        ensure_editable(draft)
        await self._ask(RESET_REQUEST, "Reset draft", confirm)
        updated = draft.model_copy(update={"content": draft.original_content, "excluded_section_ids": []})
        self._autosave.mark_dirty(updated)
        return updated

    async def save(self, draft_id: str, label: str | None = None) -> ContentDraft:
        """Persist the open draft now, optionally recording a labeled revision."""
        draft = await self._require_open(draft_id)
        ensure_editable(draft)
        return await self._autosave.save_now(label)

    ##########################################
    ################ STATUS ##################
    ##########################################

    async def mark_reviewed(self, draft_id: str) -> tuple[ContentDraft, ContentDraft | None]:
        """Mark the draft reviewed and open the next draft of the batch.

        Returns:
            tuple[ContentDraft, ContentDraft | None]: The reviewed draft and the newly
                opened next draft (None at the end of the batch).
        """
        draft = await self._require_open(draft_id)
        check_transition(draft, DraftStatus.REVIEWED)
        now = utc_now()
        reviewed = await self._persist(
            draft.model_copy(update={"status": DraftStatus.REVIEWED, "reviewed_at": now, "updated_at": now})
        )
        next_draft = await self.navigate(1)
        return reviewed, next_draft

    async def discard(self, draft_id: str, confirm: ConfirmInterface | None = None) -> ContentDraft:
        """Discard a draft after confirmation. Its content is kept but it can no longer be edited or committed."""
        draft = await self._require_open(draft_id)
        check_transition(draft, DraftStatus.DISCARDED)
        await self._ask(DISCARD_REQUEST, "Discard draft", confirm)
        return await self._persist(draft.model_copy(update={"status": DraftStatus.DISCARDED, "updated_at": utc_now()}))

    ##########################################
    ################# ASSETS #################
    ##########################################

    async def reattach_file(
        self,
        draft_id: str,
        file_name: str,
        mime_type: str,
        data: bytes,
        last_modified: int | None = None,
    ) -> AssetStoreResult:
        """Store a new source file for the draft and drop the one it replaces.

        When the storage cap rejects the file the draft is left unchanged and
        the result carries the reason.
        """
        draft = await self.get_draft(draft_id)
        ensure_editable(draft)
        result = await self._store.put_asset(draft.id, file_name, mime_type, data)
        if not result.stored:
            self.logging.warning("Reattach for draft %s rejected: %s", draft_id, result.reason)
            return result

        previous_asset_id = draft.source_asset_id
        updated = draft.model_copy(
            update={
                "source": DraftSource(
                    kind="file",
                    file_name=file_name,
                    mime_type=mime_type,
                    size_bytes=len(data),
                    last_modified=last_modified,
                ),
                "source_asset_id": result.asset.id,
            }
        )
        await self._persist(updated)
        if previous_asset_id and previous_asset_id != result.asset.id:
            await self._store.delete_asset(previous_asset_id)
        self.logging.info("Reattached '%s' to draft %s.", file_name, draft_id)
        return result

    ##########################################
    ################### AI ###################
    ##########################################

    async def ai_fix(
        self,
        draft_id: str,
        model_override: str | None = None,
        confirm: ConfirmInterface | None = None,
    ) -> ContentDraft:
        draft = await self._require_open(draft_id)
        updated = await self._rewrite_service.do_fix(draft, model_override=model_override, confirm=confirm)
        self._sync_open(updated)
        return updated

    async def apply_template(
        self,
        draft_id: str,
        template_id: str,
        model_override: str | None = None,
        confirm: ConfirmInterface | None = None,
    ) -> ContentDraft:
        draft = await self._require_open(draft_id)
        updated = await self._rewrite_service.do_apply_template(
            draft, template_id, model_override=model_override, confirm=confirm
        )
        self._sync_open(updated)
        return updated

    ##########################################
    ################# COMMIT #################
    ##########################################

    async def commit(self, draft_id: str) -> CommitResult:
        """Commit one draft. Unsaved edits of the open draft are saved first."""
        open_draft = self._autosave.get_draft()
        if open_draft is not None and open_draft.id == draft_id and self._autosave.is_dirty():
            await self._autosave.save_now(PRE_COMMIT_SAVE_LABEL)
        draft = await self.get_draft(draft_id)
        result = await self._commit_service.commit(draft)
        if result.ok and result.draft is not None:
            self._sync_open(result.draft)
        else:
            self.logging.warning("Commit of draft %s failed at %s: %s", draft_id, result.stage, result.error)
        return result

    async def select_model(self, model: str | None) -> None:
        await self._rewrite_service.select_model(model)

    async def commit_all(self, batch_id: str | None = None, confirm: ConfirmInterface | None = None) -> BulkCommitSummary:
        batch_id = batch_id or self._active_batch_id
        if not batch_id:
            raise DraftValidationError("No batch selected.")
        return await self._bulk_commit_service.do_commit_all(batch_id, confirm=confirm)

    ##########################################
    ############### HOUSEKEEPING #############
    ##########################################

    async def clear_all(self, confirm: ConfirmInterface | None = None) -> None:
        """Remove every local draft, asset and batch after confirmation."""
        await self._ask(CLEAR_REQUEST, "Clear all drafts", confirm)
        await self._autosave.open(None, flush=False)
        await self._store.clear_all()
        self._active_batch_id = None

    async def flush(self) -> None:
        """Persist unsaved edits of the open draft and stop its timer."""
        await self._autosave.flush()
        self._autosave.cancel()

    async def purge_expired(self) -> int:
        open_draft = self._autosave.get_draft()
        removed = await self._store.purge_expired()
        if open_draft is not None and await self._store.get_draft(open_draft.id) is None:
            await self._autosave.open(None, flush=False)
        return removed

    ##########################################
    ############### INTERNALS ################
    ##########################################

    async def _require_open(self, draft_id: str) -> ContentDraft:
        open_draft = self._autosave.get_draft()
        if open_draft is not None and open_draft.id == draft_id:
            return open_draft
        return await self.open_draft(draft_id)

    async def _ask(self, request: ConfirmRequest, action: str, confirm: ConfirmInterface | None) -> None:
        if not await (confirm or self._confirm).confirm(request):
            raise ConfirmationDeclinedError(action)

    async def _persist(self, draft: ContentDraft) -> ContentDraft:
        stored = await self._store.put_draft(draft)
        self._sync_open(stored)
        return stored

    def _sync_open(self, draft: ContentDraft) -> None:
        open_draft = self._autosave.get_draft()
        if open_draft is not None and open_draft.id == draft.id:
            self._autosave.replace(draft)
