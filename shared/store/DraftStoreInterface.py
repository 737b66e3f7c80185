import asyncio
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from shared.helper.HelperConfig import HelperConfig
from shared.models.draft import ContentDraft, DraftAsset, DraftBatch, utc_now
from shared.models.review import AssetStoreResult, ReviewSettings


def format_bytes(size: int) -> str:
    """Human readable byte size, e.g. "100MB"."""
    for unit, factor in (("GB", 1024 ** 3), ("MB", 1024 ** 2), ("KB", 1024)):
        if size >= factor:
            return f"{round(size / factor)}{unit}"
    return f"{size}B"


class DraftStoreInterface(ABC):
    """Local persistence for drafts, batches and binary assets.

    Engines implement the record primitives; the interface enforces the asset
    byte cap, asset ownership, batch cascades and draft expiry on top of them.
    """

    def __init__(self, helper_config: HelperConfig, settings: ReviewSettings):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._settings = settings
        self._asset_lock = asyncio.Lock()

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        """
        Returns the name of the storage engine. E.g. "memory"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    def get_storage_cap_bytes(self) -> int:
        return self._settings.storage_cap_bytes

    ##########################################
    ############### PRIMITIVES ###############
    ##########################################

    @abstractmethod
    async def _read_draft(self, draft_id: str) -> ContentDraft | None:
        pass

    @abstractmethod
    async def _write_draft(self, draft: ContentDraft) -> None:
        pass

    @abstractmethod
    async def _remove_draft(self, draft_id: str) -> None:
        pass

    @abstractmethod
    async def _list_drafts(self) -> list[ContentDraft]:
        pass

    @abstractmethod
    async def _read_batch(self, batch_id: str) -> DraftBatch | None:
        pass

    @abstractmethod
    async def _write_batch(self, batch: DraftBatch) -> None:
        pass

    @abstractmethod
    async def _remove_batch(self, batch_id: str) -> None:
        pass

    @abstractmethod
    async def _list_batches(self) -> list[DraftBatch]:
        pass

    @abstractmethod
    async def _read_asset(self, asset_id: str) -> DraftAsset | None:
        """Read an asset including its bytes."""
        pass

    @abstractmethod
    async def _write_asset(self, asset: DraftAsset) -> None:
        pass

    @abstractmethod
    async def _remove_asset(self, asset_id: str) -> None:
        pass

    @abstractmethod
    async def _list_assets(self) -> list[DraftAsset]:
        """List asset records. Engines may leave blob empty here."""
        pass

    @abstractmethod
    async def _read_settings(self) -> dict:
        pass

    @abstractmethod
    async def _write_settings(self, payload: dict) -> None:
        pass

    ##########################################
    ################# DRAFTS #################
    ##########################################

    async def get_draft(self, draft_id: str) -> ContentDraft | None:
        return await self._read_draft(draft_id)

    async def put_draft(self, draft: ContentDraft) -> ContentDraft:
        """Insert or replace a draft. Stamps expires_at from the configured TTL if unset."""
        if draft.expires_at is None and self._settings.draft_ttl_days > 0:
            draft = draft.model_copy(update={"expires_at": draft.created_at + timedelta(days=self._settings.draft_ttl_days)})
        await self._write_draft(draft)
        return draft

    async def delete_draft(self, draft_id: str) -> None:
        """Delete a draft together with every asset it owns."""
        for asset in await self._list_assets():
            if asset.draft_id == draft_id:
                await self._remove_asset(asset.id)
        await self._remove_draft(draft_id)

    async def get_drafts_by_batch(self, batch_id: str) -> list[ContentDraft]:
        """Drafts of a batch, oldest first."""
        drafts = [d for d in await self._list_drafts() if d.batch_id == batch_id]
        return sorted(drafts, key=lambda d: d.created_at)

    ##########################################
    ################# ASSETS #################
    ##########################################

    async def get_asset(self, asset_id: str) -> DraftAsset | None:
        return await self._read_asset(asset_id)

    async def get_source_asset(self, draft: ContentDraft) -> DraftAsset | None:
        """Resolve a draft's source asset. Assets owned by another draft do not resolve."""
        if not draft.source_asset_id:
            return None
        asset = await self._read_asset(draft.source_asset_id)
        if asset is None:
            return None
        if asset.draft_id != draft.id:
            self.logging.warning(
                "Asset %s is owned by draft %s, not %s. Ignoring.", asset.id, asset.draft_id, draft.id
            )
            return None
        return asset

    async def get_used_asset_bytes(self) -> int:
        return sum(asset.size_bytes for asset in await self._list_assets())

    async def put_asset(self, draft_id: str, file_name: str, mime_type: str, data: bytes) -> AssetStoreResult:
        """Store a binary asset for a draft unless it would exceed the global byte cap.

        Args:
            draft_id (str): The owning draft.
            file_name (str): Original file name.
            mime_type (str): Original mime type.
            data (bytes): The file contents.

        Returns:
            AssetStoreResult: asset is None and reason is set when the cap rejected it; nothing is written then.
        """
        cap = self.get_storage_cap_bytes()
        size = len(data)
        async with self._asset_lock:
            used = await self.get_used_asset_bytes()
            if used + size > cap:
                self.logging.warning(
                    "Asset '%s' (%d bytes) for draft %s rejected: storage cap %d bytes, %d in use.",
                    file_name, size, draft_id, cap, used,
                )
                return AssetStoreResult(
                    asset=None,
                    reason=f"File exceeds the local draft storage cap ({format_bytes(cap)}).",
                    used_bytes=used,
                    cap_bytes=cap,
                )
            asset = DraftAsset(
                id=uuid.uuid4().hex,
                draft_id=draft_id,
                file_name=file_name,
                mime_type=mime_type or "application/octet-stream",
                size_bytes=size,
                blob=data,
            )
            await self._write_asset(asset)
        self.logging.debug("Stored asset %s (%d bytes) for draft %s.", asset.id, size, draft_id)
        return AssetStoreResult(asset=asset, used_bytes=used + size, cap_bytes=cap)

    async def delete_asset(self, asset_id: str) -> None:
        await self._remove_asset(asset_id)

    ##########################################
    ################ BATCHES #################
    ##########################################

    async def get_batch(self, batch_id: str) -> DraftBatch | None:
        return await self._read_batch(batch_id)

    async def get_batches(self) -> list[DraftBatch]:
        """All batches, newest first."""
        return sorted(await self._list_batches(), key=lambda b: b.created_at, reverse=True)

    async def put_batch(self, batch: DraftBatch) -> DraftBatch:
        await self._write_batch(batch)
        return batch

    async def delete_batch(self, batch_id: str) -> None:
        """Delete a batch with all of its drafts and their assets."""
        for draft in await self.get_drafts_by_batch(batch_id):
            await self.delete_draft(draft.id)
        await self._remove_batch(batch_id)

    async def clear_all(self) -> None:
        """Remove every draft, asset and batch. Settings are kept."""
        for asset in await self._list_assets():
            await self._remove_asset(asset.id)
        for draft in await self._list_drafts():
            await self._remove_draft(draft.id)
        for batch in await self._list_batches():
            await self._remove_batch(batch.id)
        self.logging.info("Cleared all local drafts, assets and batches.")

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete drafts whose expires_at has passed, with their assets.

        Returns:
            int: The number of drafts removed.
        """
        now = now or utc_now()
        removed = 0
        for draft in await self._list_drafts():
            if draft.expires_at is not None and draft.expires_at <= now:
                await self.delete_draft(draft.id)
                removed += 1
        if removed:
            self.logging.info("Purged %d expired draft(s).", removed)
        return removed

    ##########################################
    ################ SETTINGS ################
    ##########################################

    async def load_settings(self) -> ReviewSettings:
        """Overlay the persisted flags onto the settings object and return it."""
        persisted = await self._read_settings()
        if "ai_consent_given" in persisted:
            self._settings.ai_consent_given = bool(persisted["ai_consent_given"])
        if persisted.get("selected_model"):
            self._settings.selected_model = persisted["selected_model"]
        return self._settings

    async def save_settings(self, settings: ReviewSettings) -> None:
        await self._write_settings(settings.persisted_flags())
