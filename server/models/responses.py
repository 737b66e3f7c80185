from pydantic import BaseModel

from shared.models.draft import ContentDraft, DraftBatch
from shared.models.review import BatchStats


class BatchListResponse(BaseModel):
    batches: list[DraftBatch]
    active_batch_id: str | None


class DraftListResponse(BaseModel):
    batch_id: str
    drafts: list[ContentDraft]
    stats: BatchStats


class ReviewedResponse(BaseModel):
    draft: ContentDraft
    next_draft: ContentDraft | None


class ReattachResponse(BaseModel):
    stored: bool
    asset_id: str | None
    reason: str | None
    used_bytes: int
    cap_bytes: int


class ModelListResponse(BaseModel):
    models: list[str]
    selected_model: str | None


class PurgeResponse(BaseModel):
    removed: int
