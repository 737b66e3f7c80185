"""Commit pipeline.

Pushes one draft into the remote content store:

1. assemble upload fields from media type, processing flags and advanced values
2. choose the payload by provenance: URL, stored asset, or a file synthesized
   from the edited content (audio/video cannot be synthesized)
3. upload and resolve the created media id from the response
4. update title/content/keywords/analysis/prompt (non-empty values only)
5. merge-patch the free-form metadata
6. mark the draft committed locally

Any failure aborts the sequence and leaves the local draft as it was.
Steps 4 and 5 are not compensated: when they fail after a successful
upload the remote record exists in a partially updated state. That case is
logged as a warning and raised as CommitFollowUpError carrying the media id.
"""

import re
from typing import Any

from services.content_review.errors import (
    CommitBusyError,
    CommitError,
    CommitFollowUpError,
    DraftValidationError,
    MediaIdNotReturnedError,
    ReviewError,
    UploadFailedError,
)
from services.content_review.states import check_transition, ensure_editable
from shared.clients.content.ContentClientInterface import ContentClientInterface
from shared.clients.content.models.UploadFile import UploadFile
from shared.helper.HelperConfig import HelperConfig
from shared.models.draft import ContentDraft, ContentFormat, DraftStatus, utc_now
from shared.models.review import CommitResult
from shared.store.DraftStoreInterface import DraftStoreInterface

UPLOAD_MEDIA_TYPES = ("document", "pdf", "audio", "video")
SYNTHETIC_NAME_FALLBACK = "review-draft"
SYNTHETIC_NAME_MAX_LENGTH = 64
UPDATE_FIELDS = ("title", "content", "keywords", "analysis", "prompt")

_UNSAFE_NAME_CHARS = re.compile(r"[^\w.-]+")


def normalize_media_type(media_type: str | None) -> str:
    """Map a draft media type onto the upload media types. "html" and unknown types become "document"."""
    value = (media_type or "").lower()
    return value if value in UPLOAD_MEDIA_TYPES else "document"


def assign_at_path(obj: dict[str, Any], path: list[str], value: Any) -> None:
    """Set value at the nested path inside obj, creating intermediate dicts."""
    current = obj
    for segment in path[:-1]:
        nxt = current.get(segment)
        if not isinstance(nxt, dict):
            nxt = {}
            current[segment] = nxt
        current = nxt
    current[path[-1]] = value


def build_fields(draft: ContentDraft) -> dict[str, Any]:
    """Assemble the upload fields of a draft.

    Dotted advanced-value keys ("a.b.c") are expanded into nested objects
    which are merged into the flat field set after the plain keys.
    """
    options = draft.processing_options
    fields: dict[str, Any] = {
        "media_type": normalize_media_type(draft.media_type),
        "perform_analysis": bool(options.perform_analysis),
        "perform_chunking": bool(options.perform_chunking),
        "overwrite_existing": bool(options.overwrite_existing),
    }
    nested: dict[str, Any] = {}
    for key, value in options.advanced_values.items():
        if "." in key:
            assign_at_path(nested, key.split("."), value)
        else:
            fields[key] = value
    fields.update(nested)
    return fields


def build_synthetic_file(draft: ContentDraft) -> UploadFile:
    """Build an upload file from the current edited content, named after the title."""
    markdown = draft.content_format == ContentFormat.MARKDOWN
    base = (draft.title or "").strip() or SYNTHETIC_NAME_FALLBACK
    safe_name = _UNSAFE_NAME_CHARS.sub("_", base)[:SYNTHETIC_NAME_MAX_LENGTH]
    return UploadFile(
        name=f"{safe_name}.{'md' if markdown else 'txt'}",
        mime_type="text/markdown" if markdown else "text/plain",
        data=(draft.content or "").encode("utf-8"),
        synthesized=True,
    )


def build_safe_metadata(draft: ContentDraft, include_original_type: bool) -> dict[str, Any] | None:
    """Free-form metadata to merge-patch, or None when there is nothing to send."""
    safe_metadata = dict(draft.metadata or {})
    if include_original_type:
        safe_metadata["original_media_type"] = draft.media_type
    return safe_metadata or None


def build_update_payload(draft: ContentDraft) -> dict[str, Any]:
    """The non-empty subset of title, content, keywords, analysis and prompt."""
    payload = {}
    for field in UPDATE_FIELDS:
        value = getattr(draft, field)
        if value:
            payload[field] = list(value) if isinstance(value, list) else value
    return payload


class CommitService:
    """Runs the commit pipeline for single drafts."""

    def __init__(
        self,
        helper_config: HelperConfig,
        content_client: ContentClientInterface,
        store: DraftStoreInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._content_client = content_client
        self._store = store
        self._in_flight: set[str] = set()

    def is_committing(self, draft_id: str) -> bool:
        return draft_id in self._in_flight

    ##########################################
    ################ COMMIT ##################
    ##########################################

    async def commit(self, draft: ContentDraft) -> CommitResult:
        """Commit a draft and report the outcome instead of raising.

        The local draft is only changed when every step succeeded.
        """
        try:
            committed, media_id = await self._run(draft)
        except CommitError as e:
            return CommitResult(
                draft_id=draft.id, ok=False, error=str(e), stage=e.stage, media_id=getattr(e, "media_id", None)
            )
        except ReviewError as e:
            return CommitResult(draft_id=draft.id, ok=False, error=str(e), stage="validation")
        except Exception as e:
            self.logging.error("Commit of draft %s failed unexpectedly: %s", draft.id, e)
            return CommitResult(draft_id=draft.id, ok=False, error=str(e) or "Commit failed.")
        return CommitResult(draft_id=draft.id, ok=True, media_id=media_id, draft=committed)

    async def do_commit(self, draft: ContentDraft) -> ContentDraft:
        """Run all pipeline steps for a draft.

        Returns:
            ContentDraft: The stored, committed draft.

        Raises:
            CommitBusyError: If another commit of the same draft is still running.
            DraftFinalizedError: If the draft is already committed or discarded.
            DraftValidationError: If the source file is required but missing.
            UploadFailedError: If the upload request failed.
            MediaIdNotReturnedError: If the upload response carries no media id.
            CommitFollowUpError: If the field update or metadata patch failed after the upload.
        """
        committed, _ = await self._run(draft)
        return committed

    async def _run(self, draft: ContentDraft) -> tuple[ContentDraft, str]:
        # one commit per draft at a time
        if draft.id in self._in_flight:
            self.logging.warning("Commit of draft %s refused: another commit is still running.", draft.id)
            raise CommitBusyError(draft.id)
        self._in_flight.add(draft.id)
        try:
            stored = await self._store.get_draft(draft.id)
            if stored is not None:
                # a caller may hold a copy read before another commit finished
                ensure_editable(stored)
            return await self._run_steps(draft)
        finally:
            self._in_flight.discard(draft.id)

    async def _run_steps(self, draft: ContentDraft) -> tuple[ContentDraft, str]:
        check_transition(draft, DraftStatus.COMMITTED, via_commit=True)
        self.logging.info("Committing draft %s (%s)...", draft.id, draft.title or "untitled")

        fields = build_fields(draft)
        upload_file, include_original_type = await self._select_payload(draft, fields)

        try:
            response = await self._content_client.do_upload(fields, upload_file)
        except Exception as e:
            self.logging.error("Upload of draft %s failed: %s", draft.id, e)
            raise UploadFailedError(str(e) or "Upload failed.") from e

        media_id = self._content_client.extract_media_id(response)
        if not media_id:
            self.logging.error(
                "Upload of draft %s succeeded but no media id was returned. The remote record may be orphaned.",
                draft.id,
            )
            raise MediaIdNotReturnedError()
        self.logging.info("Uploaded draft %s as media %s.", draft.id, media_id)

        update_payload = build_update_payload(draft)
        if update_payload:
            await self._follow_up(draft, media_id, "update", self._content_client.do_update_fields(media_id, update_payload))

        safe_metadata = build_safe_metadata(draft, include_original_type)
        if safe_metadata:
            await self._follow_up(draft, media_id, "metadata", self._content_client.do_patch_metadata(media_id, safe_metadata, merge=True))

        now = utc_now()
        committed = draft.model_copy(
            update={
                "status": DraftStatus.COMMITTED,
                "reviewed_at": draft.reviewed_at or now,
                "committed_at": now,
                "updated_at": now,
            },
            deep=True,
        )
        committed = await self._store.put_draft(committed)
        self.logging.info("Draft %s committed as media %s.", draft.id, media_id, color="green")
        return committed, media_id

    ##########################################
    ############### INTERNALS ################
    ##########################################

    async def _select_payload(self, draft: ContentDraft, fields: dict[str, Any]) -> tuple[UploadFile | None, bool]:
        """Pick the upload payload by provenance. Mutates fields for URL and synthesized uploads.

        Returns:
            tuple[UploadFile | None, bool]: The file to upload (None for URLs) and whether
                the original media type has to be recorded in the metadata.
        """
        if draft.source.is_url():
            fields["urls"] = [draft.source.url]
            return None, False

        if draft.source_asset_id:
            asset = await self._store.get_source_asset(draft)
            if asset is None:
                raise DraftValidationError("Source file missing. Please reattach to commit.")
            return UploadFile(name=asset.file_name, mime_type=asset.mime_type, data=asset.blob), False

        if draft.requires_source_file():
            raise DraftValidationError("Audio/video drafts require the original source file to commit.")

        fields["media_type"] = "document"
        return build_synthetic_file(draft), True

    async def _follow_up(self, draft: ContentDraft, media_id: str, stage: str, request) -> None:
        try:
            await request
        except Exception as e:
            self.logging.warning(
                "Upload succeeded, follow-up failed: draft %s was uploaded as media %s but the %s step failed (%s). "
                "The remote record may be partially updated; the draft stays uncommitted.",
                draft.id, media_id, stage, e,
            )
            raise CommitFollowUpError(media_id, stage, e) from e
