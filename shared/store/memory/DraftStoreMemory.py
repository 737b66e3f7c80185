from shared.helper.HelperConfig import HelperConfig
from shared.models.draft import ContentDraft, DraftAsset, DraftBatch
from shared.models.review import ReviewSettings
from shared.store.DraftStoreInterface import DraftStoreInterface


class DraftStoreMemory(DraftStoreInterface):
    """In-process store. Records are copied on the way in and out so callers never share state with it."""

    def __init__(self, helper_config: HelperConfig, settings: ReviewSettings):
        super().__init__(helper_config=helper_config, settings=settings)
        self._drafts: dict[str, ContentDraft] = {}
        self._batches: dict[str, DraftBatch] = {}
        self._assets: dict[str, DraftAsset] = {}
        self._settings_payload: dict = {}

    def _get_engine_name(self) -> str:
        return "Memory"

    ################ DRAFTS ##################
    async def _read_draft(self, draft_id: str) -> ContentDraft | None:
        draft = self._drafts.get(draft_id)
        return draft.model_copy(deep=True) if draft else None

    async def _write_draft(self, draft: ContentDraft) -> None:
        self._drafts[draft.id] = draft.model_copy(deep=True)

    async def _remove_draft(self, draft_id: str) -> None:
        self._drafts.pop(draft_id, None)

    async def _list_drafts(self) -> list[ContentDraft]:
        return [d.model_copy(deep=True) for d in self._drafts.values()]

    ################ BATCHES ##################
    async def _read_batch(self, batch_id: str) -> DraftBatch | None:
        batch = self._batches.get(batch_id)
        return batch.model_copy(deep=True) if batch else None

    async def _write_batch(self, batch: DraftBatch) -> None:
        self._batches[batch.id] = batch.model_copy(deep=True)

    async def _remove_batch(self, batch_id: str) -> None:
        self._batches.pop(batch_id, None)

    async def _list_batches(self) -> list[DraftBatch]:
        return [b.model_copy(deep=True) for b in self._batches.values()]

    ################ ASSETS ##################
    async def _read_asset(self, asset_id: str) -> DraftAsset | None:
        asset = self._assets.get(asset_id)
        return asset.model_copy() if asset else None

    async def _write_asset(self, asset: DraftAsset) -> None:
        self._assets[asset.id] = asset.model_copy()

    async def _remove_asset(self, asset_id: str) -> None:
        self._assets.pop(asset_id, None)

    async def _list_assets(self) -> list[DraftAsset]:
        return [a.model_copy() for a in self._assets.values()]

    ################ SETTINGS ##################
    async def _read_settings(self) -> dict:
        return dict(self._settings_payload)

    async def _write_settings(self, payload: dict) -> None:
        self._settings_payload = dict(payload)
