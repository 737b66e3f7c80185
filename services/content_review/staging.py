"""Helpers that turn ingested items into pending drafts."""

import copy
import re
from datetime import datetime
from typing import Any

from services.content_review.sections import detect_sections
from shared.models.draft import ContentDraft, ContentFormat, DraftSource, ProcessingOptions
from shared.models.review import DraftInput

DRAFT_MEDIA_TYPES = ("html", "document", "pdf", "audio", "video")

_MARKDOWN_HINTS = (
    re.compile(r"(^|\n)#{1,6}\s+\S"),
    re.compile(r"```"),
    re.compile(r"(^|\n)\s*[-*]\s+\S"),
)


def infer_content_format(content: str) -> ContentFormat:
    """Markdown when the text has headings, fences or list items, plain otherwise."""
    text = content or ""
    if any(pattern.search(text) for pattern in _MARKDOWN_HINTS):
        return ContentFormat.MARKDOWN
    return ContentFormat.PLAIN


def normalize_keywords(value: Any) -> list[str]:
    """Accept a list or a comma separated string. Blank entries are dropped."""
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return []


def coerce_media_type(value: str | None) -> str:
    media_type = (value or "document").lower()
    return media_type if media_type in DRAFT_MEDIA_TYPES else "document"


def build_source(item: DraftInput) -> DraftSource:
    if item.file_name or item.file_bytes is not None:
        return DraftSource(
            kind="file",
            file_name=item.file_name,
            mime_type=item.mime_type,
            size_bytes=len(item.file_bytes) if item.file_bytes is not None else None,
            last_modified=item.last_modified,
        )
    return DraftSource(kind="url", url=item.url)


def build_draft(
    draft_id: str,
    batch_id: str,
    item: DraftInput,
    processing_options: ProcessingOptions,
    now: datetime,
    expires_at: datetime | None,
) -> ContentDraft:
    """Build a pending draft. Every original_* field snapshots the ingested value."""
    content = item.content or ""
    content_format = item.content_format or infer_content_format(content)
    title = (item.title or "").strip() or item.url or item.file_name or "Untitled source"
    sections, strategy = detect_sections(content, item.segments)
    return ContentDraft(
        id=draft_id,
        batch_id=batch_id,
        source=build_source(item),
        media_type=coerce_media_type(item.media_type),
        title=title,
        original_title=title,
        content=content,
        original_content=content,
        content_format=content_format,
        original_content_format=content_format,
        sections=sections,
        section_strategy=strategy,
        keywords=normalize_keywords(item.keywords if item.keywords is not None else item.metadata.get("keywords")),
        analysis=item.analysis,
        original_analysis=item.analysis,
        prompt=item.prompt,
        original_prompt=item.prompt,
        processing_options=processing_options.model_copy(deep=True),
        metadata=copy.deepcopy(item.metadata),
        original_metadata=copy.deepcopy(item.metadata),
        created_at=now,
        updated_at=now,
        expires_at=expires_at,
    )
