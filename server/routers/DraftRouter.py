from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from server.dependencies.auth import verify_api_key
from server.models.requests import (
    ConfirmBody,
    DraftEditRequest,
    ModelSelectionRequest,
    NavigateRequest,
    RewriteRequest,
    SaveRequest,
    SectionToggleRequest,
    StageBatchRequest,
    TemplateRequest,
)
from server.models.responses import (
    BatchListResponse,
    DraftListResponse,
    ModelListResponse,
    PurgeResponse,
    ReattachResponse,
    ReviewedResponse,
)
from services.content_review.ReviewService import ReviewService
from services.content_review.confirm.ConfirmStatic import ConfirmStatic
from services.content_review.prompts import RewriteTemplate
from shared.models.draft import ContentDraft
from shared.models.review import BulkCommitSummary, CommitResult, DraftDiff, DraftInput, StagedBatch

router = APIRouter(prefix="/review", tags=["review"], dependencies=[Depends(verify_api_key)])

# failed commits answer 502 unless the stage maps to a client error
COMMIT_STAGE_STATUS = {"validation": 422, "busy": 409}


def _review(request: Request) -> ReviewService:
    return request.app.state.review_service


################ BATCHES ##################
@router.get("/batches")
async def list_batches(request: Request) -> BatchListResponse:
    review = _review(request)
    return BatchListResponse(batches=await review.get_batches(), active_batch_id=review.get_active_batch_id())


@router.post("/batches")
async def stage_batch(request: Request, body: StageBatchRequest) -> StagedBatch:
    """Stage ingested items as a new batch of pending drafts."""
    items = [DraftInput(**item.model_dump()) for item in body.items]
    return await _review(request).stage_batch(
        items, name=body.name, source=body.source, processing_options=body.processing_options
    )


@router.post("/batches/{batch_id}/select")
async def select_batch(request: Request, batch_id: str) -> DraftListResponse:
    review = _review(request)
    drafts = await review.select_batch(batch_id)
    return DraftListResponse(batch_id=batch_id, drafts=drafts, stats=await review.get_batch_stats(batch_id))


@router.get("/batches/{batch_id}/drafts")
async def list_drafts(request: Request, batch_id: str) -> DraftListResponse:
    review = _review(request)
    return DraftListResponse(
        batch_id=batch_id,
        drafts=await review.get_batch_drafts(batch_id),
        stats=await review.get_batch_stats(batch_id),
    )


@router.post("/batches/{batch_id}/commit")
async def commit_batch(request: Request, batch_id: str, body: ConfirmBody) -> BulkCommitSummary:
    """Commit every reviewed draft of the batch. Requires {"confirm": true}."""
    return await _review(request).commit_all(batch_id, confirm=ConfirmStatic(body.confirm))


################ DRAFTS ##################
@router.get("/drafts/{draft_id}")
async def get_draft(request: Request, draft_id: str) -> ContentDraft:
    return await _review(request).get_draft(draft_id)


@router.post("/drafts/{draft_id}/open")
async def open_draft(request: Request, draft_id: str) -> ContentDraft:
    return await _review(request).open_draft(draft_id)


@router.patch("/drafts/{draft_id}")
async def edit_draft(request: Request, draft_id: str, body: DraftEditRequest) -> ContentDraft:
    """Edit fields of a draft. Only fields present in the body are changed; the draft is autosaved."""
    changes = body.model_dump(exclude_unset=True)
    return await _review(request).update_fields(draft_id, changes)


@router.post("/drafts/{draft_id}/save")
async def save_draft(request: Request, draft_id: str, body: SaveRequest) -> ContentDraft:
    return await _review(request).save(draft_id, label=body.label)


@router.post("/drafts/{draft_id}/sections/{section_id}")
async def toggle_section(request: Request, draft_id: str, section_id: str, body: SectionToggleRequest) -> ContentDraft:
    return await _review(request).toggle_section(draft_id, section_id, include=body.include)


@router.post("/drafts/{draft_id}/redetect-sections")
async def redetect_sections(request: Request, draft_id: str, body: ConfirmBody) -> ContentDraft:
    return await _review(request).redetect_sections(draft_id, confirm=ConfirmStatic(body.confirm))


@router.post("/drafts/{draft_id}/reset")
async def reset_draft(request: Request, draft_id: str, body: ConfirmBody) -> ContentDraft:
    return await _review(request).reset_content(draft_id, confirm=ConfirmStatic(body.confirm))


@router.post("/drafts/{draft_id}/reviewed")
async def mark_reviewed(request: Request, draft_id: str) -> ReviewedResponse:
    draft, next_draft = await _review(request).mark_reviewed(draft_id)
    return ReviewedResponse(draft=draft, next_draft=next_draft)


@router.post("/drafts/{draft_id}/discard")
async def discard_draft(request: Request, draft_id: str, body: ConfirmBody) -> ContentDraft:
    return await _review(request).discard(draft_id, confirm=ConfirmStatic(body.confirm))


@router.put("/drafts/{draft_id}/file")
async def reattach_file(
    request: Request,
    draft_id: str,
    file_name: str = Query(...),
    last_modified: int | None = Query(default=None),
) -> ReattachResponse:
    """Reattach the source file. The raw request body is the file; Content-Type is its mime type."""
    data = await request.body()
    mime_type = request.headers.get("content-type", "application/octet-stream")
    result = await _review(request).reattach_file(draft_id, file_name, mime_type, data, last_modified=last_modified)
    return ReattachResponse(
        stored=result.stored,
        asset_id=result.asset.id if result.asset else None,
        reason=result.reason,
        used_bytes=result.used_bytes,
        cap_bytes=result.cap_bytes,
    )


@router.post("/drafts/{draft_id}/ai/fix")
async def ai_fix(request: Request, draft_id: str, body: RewriteRequest) -> ContentDraft:
    """Run AI corrections. The first call of an install needs {"confirm": true} as AI consent."""
    return await _review(request).ai_fix(draft_id, model_override=body.model, confirm=ConfirmStatic(body.confirm))


@router.post("/drafts/{draft_id}/ai/template")
async def ai_template(request: Request, draft_id: str, body: TemplateRequest) -> ContentDraft:
    return await _review(request).apply_template(
        draft_id, body.template_id, model_override=body.model, confirm=ConfirmStatic(body.confirm)
    )


@router.post("/drafts/{draft_id}/commit")
async def commit_draft(request: Request, response: Response, draft_id: str) -> CommitResult:
    """Commit one draft. A failed commit answers 502 with the failing stage, 409 while another commit of it runs."""
    result = await _review(request).commit(draft_id)
    if not result.ok:
        response.status_code = COMMIT_STAGE_STATUS.get(result.stage, 502)
    return result


@router.get("/drafts/{draft_id}/diff")
async def draft_diff(request: Request, draft_id: str) -> DraftDiff:
    return await _review(request).get_diff(draft_id)


################ SESSION ##################
@router.post("/navigate")
async def navigate(request: Request, body: NavigateRequest) -> ContentDraft | None:
    return await _review(request).navigate(body.direction, flush=body.flush)


@router.get("/templates")
async def list_templates(request: Request) -> list[RewriteTemplate]:
    return _review(request).get_templates()


@router.get("/models")
async def list_models(request: Request) -> ModelListResponse:
    try:
        models = await request.app.state.llm_client.do_fetch_models()
    except Exception as e:
        request.app.state.logging.error("Fetching models failed: %s", e)
        raise HTTPException(status_code=502, detail=f"Fetching models failed: {e}")
    return ModelListResponse(models=models, selected_model=request.app.state.settings.selected_model)


@router.put("/models/selected")
async def select_model(request: Request, body: ModelSelectionRequest) -> ModelListResponse:
    await _review(request).select_model(body.model)
    return ModelListResponse(models=[], selected_model=request.app.state.settings.selected_model)


@router.post("/clear")
async def clear_drafts(request: Request, body: ConfirmBody) -> Response:
    await _review(request).clear_all(confirm=ConfirmStatic(body.confirm))
    return Response(status_code=204)


@router.post("/purge-expired")
async def purge_expired(request: Request) -> PurgeResponse:
    return PurgeResponse(removed=await _review(request).purge_expired())
