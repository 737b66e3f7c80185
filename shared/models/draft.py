"""Pydantic models for locally staged content drafts.

Hierarchy:
  DraftBatch     one ingest run, owns its drafts
  ContentDraft   the unit of review
  DraftAsset     the original binary of a file-sourced draft
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DraftStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    REVIEWED = "reviewed"
    DISCARDED = "discarded"
    COMMITTED = "committed"


TERMINAL_STATUSES = frozenset({DraftStatus.COMMITTED, DraftStatus.DISCARDED})

# media that cannot be rebuilt from the edited text
BINARY_ONLY_MEDIA_TYPES = ("audio", "video")


class ContentFormat(str, Enum):
    PLAIN = "plain"
    MARKDOWN = "markdown"


class SectionStrategy(str, Enum):
    SERVER = "server"
    HEADINGS = "headings"
    TIMESTAMPS = "timestamps"
    PARAGRAPHS = "paragraphs"


class DraftSource(BaseModel):
    """
    Where the draft came from: a remote URL or a local file descriptor.
    """
    kind: str = "url"  # "url" | "file"
    url: str | None = None
    file_name: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    last_modified: int | None = None

    def is_url(self) -> bool:
        return self.kind == "url" and bool(self.url)


class DraftSection(BaseModel):
    """
    An addressable sub-span of a draft's content.
    """
    id: str
    label: str
    content: str
    kind: str = "paragraph"  # "heading" | "paragraph" | "speaker_turn"
    start_offset: int = 0
    end_offset: int = 0
    level: int | None = None
    source: str = "heuristic"  # "server" | "heuristic"
    meta: dict[str, Any] | None = None


class DraftRevision(BaseModel):
    """
    Snapshot of a draft's content taken at a labeled save point.
    """
    id: str
    content: str
    metadata: dict[str, Any] = {}
    timestamp: datetime
    change_description: str


class ProcessingOptions(BaseModel):
    """
    Server-side processing flags sent with the upload. Keys of advanced_values
    may contain "." to address nested request fields.
    """
    perform_analysis: bool = False
    perform_chunking: bool = False
    overwrite_existing: bool = False
    advanced_values: dict[str, Any] = {}


class ContentDraft(BaseModel):
    """
    A locally staged, editable unit of content awaiting review.
    """
    id: str
    batch_id: str
    source: DraftSource = Field(default_factory=DraftSource)
    source_asset_id: str | None = None
    media_type: str = "document"  # "html" | "document" | "pdf" | "audio" | "video"

    title: str = ""
    original_title: str | None = None
    content: str = ""
    original_content: str = ""
    content_format: ContentFormat = ContentFormat.PLAIN
    original_content_format: ContentFormat | None = None

    status: DraftStatus = DraftStatus.PENDING

    sections: list[DraftSection] = []
    excluded_section_ids: list[str] = []
    section_strategy: SectionStrategy | None = None

    revisions: list[DraftRevision] = []

    keywords: list[str] = []
    analysis: str | None = None
    original_analysis: str | None = None
    prompt: str | None = None
    original_prompt: str | None = None
    review_notes: str | None = None
    processing_options: ProcessingOptions = Field(default_factory=ProcessingOptions)
    metadata: dict[str, Any] = {}
    original_metadata: dict[str, Any] | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    reviewed_at: datetime | None = None
    committed_at: datetime | None = None
    expires_at: datetime | None = None

    def is_finalized(self) -> bool:
        """True once the draft is committed or discarded."""
        return self.status in TERMINAL_STATUSES

    def requires_source_file(self) -> bool:
        """True for audio/video drafts that are not URL-sourced and have no stored asset to upload."""
        return (
            not self.source.is_url()
            and not self.source_asset_id
            and (self.media_type or "").lower() in BINARY_ONLY_MEDIA_TYPES
        )


class DraftBatch(BaseModel):
    """
    A named group of drafts produced by one ingest operation.
    """
    id: str
    name: str | None = None
    source: str = "manual"  # "url_list" | "file_upload" | "quick_ingest" | "manual"
    source_details: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None


class DraftAsset(BaseModel):
    """
    The stored original binary of a file-sourced draft.
    """
    id: str
    draft_id: str
    kind: str = "file"
    file_name: str
    mime_type: str
    size_bytes: int
    blob: bytes = Field(default=b"", repr=False)
    created_at: datetime = Field(default_factory=utc_now)
