"""Pydantic models shared by the review services: settings, results and summaries."""

from typing import Any

from pydantic import BaseModel, Field

from shared.helper.HelperConfig import HelperConfig
from shared.models.draft import ContentDraft, ContentFormat, DraftAsset, DraftBatch

DEFAULT_STORAGE_CAP_BYTES = 100 * 1024 * 1024
DEFAULT_AUTOSAVE_DELAY_MS = 2000
DEFAULT_DRAFT_TTL_DAYS = 30


class ReviewSettings(BaseModel):
    """
    Explicit settings context handed to the draft store and the rewrite service.

    storage_cap_bytes, autosave_delay_ms and draft_ttl_days come from the environment;
    ai_consent_given and selected_model are persisted install-wide flags.
    """
    storage_cap_bytes: int = DEFAULT_STORAGE_CAP_BYTES
    autosave_delay_ms: int = DEFAULT_AUTOSAVE_DELAY_MS
    draft_ttl_days: int = DEFAULT_DRAFT_TTL_DAYS
    ai_consent_given: bool = False
    selected_model: str | None = None

    @classmethod
    def from_config(cls, helper_config: HelperConfig) -> "ReviewSettings":
        return cls(
            storage_cap_bytes=helper_config.get_size_val("DRAFT_STORAGE_CAP_BYTES", default=DEFAULT_STORAGE_CAP_BYTES),
            autosave_delay_ms=int(helper_config.get_number_val("DRAFT_AUTOSAVE_DELAY_MS", default=DEFAULT_AUTOSAVE_DELAY_MS)),
            draft_ttl_days=int(helper_config.get_number_val("DRAFT_TTL_DAYS", default=DEFAULT_DRAFT_TTL_DAYS)),
        )

    def persisted_flags(self) -> dict:
        """The subset of settings written to the draft store."""
        return {"ai_consent_given": self.ai_consent_given, "selected_model": self.selected_model}


class AssetStoreResult(BaseModel):
    """
    Outcome of storing an asset. asset is None when the storage cap rejected it.
    """
    asset: DraftAsset | None = None
    reason: str | None = None
    used_bytes: int = 0
    cap_bytes: int = 0

    @property
    def stored(self) -> bool:
        return self.asset is not None


class CommitResult(BaseModel):
    """
    Outcome of one draft commit at the pipeline boundary.
    """
    draft_id: str
    ok: bool
    media_id: str | None = None
    draft: ContentDraft | None = None
    error: str | None = None
    stage: str | None = None  # "validation" | "upload" | "media_id" | "update" | "metadata" | "finalize"


class BulkCommitSummary(BaseModel):
    """
    Aggregate of a bulk commit: counts only, no per-draft detail.
    """
    success_count: int = 0
    failed_count: int = 0


class BatchStats(BaseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    reviewed: int = 0
    committed: int = 0
    discarded: int = 0


class DraftDiff(BaseModel):
    """
    Read-only comparison between a draft's original and current content.
    """
    unified: str
    added_lines: int
    removed_lines: int
    changed: bool


class DraftInput(BaseModel):
    """
    One ingested item to stage as a draft. Either url or file_name identifies the source;
    file_bytes, when given, is stored as the draft's source asset.
    """
    title: str | None = None
    content: str = ""
    media_type: str = "document"
    url: str | None = None
    file_name: str | None = None
    mime_type: str | None = None
    file_bytes: bytes | None = Field(default=None, repr=False)
    last_modified: int | None = None
    content_format: ContentFormat | None = None
    keywords: list[str] | str | None = None
    metadata: dict[str, Any] = {}
    analysis: str | None = None
    prompt: str | None = None
    segments: list[dict[str, Any]] | None = None


class StagedBatch(BaseModel):
    batch: DraftBatch
    draft_ids: list[str] = []
    skipped_assets: int = 0
