from typing import Any

from pydantic import BaseModel

from shared.models.draft import ContentFormat, ProcessingOptions


class ConfirmBody(BaseModel):
    """Destructive actions only run when confirm is true."""
    confirm: bool = False


class StageDraftItem(BaseModel):
    title: str | None = None
    content: str = ""
    media_type: str = "document"
    url: str | None = None
    file_name: str | None = None
    mime_type: str | None = None
    content_format: ContentFormat | None = None
    keywords: list[str] | str | None = None
    metadata: dict[str, Any] = {}
    analysis: str | None = None
    prompt: str | None = None
    segments: list[dict[str, Any]] | None = None


class StageBatchRequest(BaseModel):
    name: str | None = None
    source: str = "manual"
    items: list[StageDraftItem]
    processing_options: ProcessingOptions | None = None


class DraftEditRequest(BaseModel):
    title: str | None = None
    content: str | None = None
    keywords: list[str] | None = None
    analysis: str | None = None
    prompt: str | None = None
    review_notes: str | None = None
    metadata: dict[str, Any] | None = None
    processing_options: ProcessingOptions | None = None


class SaveRequest(BaseModel):
    label: str | None = None


class SectionToggleRequest(BaseModel):
    include: bool


class NavigateRequest(BaseModel):
    direction: int = 1
    flush: bool = True


class RewriteRequest(ConfirmBody):
    model: str | None = None


class TemplateRequest(RewriteRequest):
    template_id: str


class ModelSelectionRequest(BaseModel):
    model: str | None = None
