"""Filesystem draft store.

Layout under DRAFT_STORE_FILE_ROOT:

    drafts/<id>.json
    batches/<id>.json
    assets/<id>.json    asset record without bytes
    assets/<id>.bin     asset bytes
    settings.json

Every write goes to a temp file that is then renamed over the target, so a
crash never leaves a half-written record behind.
"""

import asyncio
import json
import os
import re
import uuid
from pathlib import Path

from pydantic import ValidationError

from shared.helper.HelperConfig import HelperConfig
from shared.models.draft import ContentDraft, DraftAsset, DraftBatch
from shared.models.review import ReviewSettings
from shared.store.DraftStoreInterface import DraftStoreInterface

_RECORD_ID = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]{0,127}$")


def _write_bytes_atomic(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.parent / f".{path.name}.{uuid.uuid4().hex}.tmp"
    with temp_path.open("wb") as handle:
        handle.write(data)
        handle.flush()
        os.fsync(handle.fileno())
    temp_path.replace(path)


def _write_text_atomic(path: Path, text: str) -> None:
    _write_bytes_atomic(path, text.encode("utf-8"))


def _read_bytes_or_none(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


class DraftStoreFile(DraftStoreInterface):
    def __init__(self, helper_config: HelperConfig, settings: ReviewSettings):
        super().__init__(helper_config=helper_config, settings=settings)
        default_root = os.path.join(helper_config.get_root_dir(), "drafts")
        self._root = Path(helper_config.get_string_val("DRAFT_STORE_FILE_ROOT", default=default_root))
        for sub in ("drafts", "batches", "assets"):
            (self._root / sub).mkdir(parents=True, exist_ok=True)

    def _get_engine_name(self) -> str:
        return "File"

    ################ PATHS ##################
    def _record_path(self, kind: str, record_id: str, suffix: str = ".json") -> Path:
        if not _RECORD_ID.match(record_id):
            raise ValueError(f"Invalid {kind} id '{record_id}'.")
        return self._root / kind / f"{record_id}{suffix}"

    def _load_json(self, path: Path) -> dict | None:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            self.logging.error("Corrupt record %s: %s", path, exc)
            return None

    def _list_json(self, kind: str) -> list[dict]:
        records = []
        for path in sorted((self._root / kind).glob("*.json")):
            payload = self._load_json(path)
            if payload is not None:
                records.append(payload)
        return records

    def _parse(self, model, payload: dict | None, source: str):
        if payload is None:
            return None
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            self.logging.error("Skipping invalid record %s: %s", source, exc)
            return None

    ################ DRAFTS ##################
    async def _read_draft(self, draft_id: str) -> ContentDraft | None:
        path = self._record_path("drafts", draft_id)
        return self._parse(ContentDraft, await asyncio.to_thread(self._load_json, path), str(path))

    async def _write_draft(self, draft: ContentDraft) -> None:
        await asyncio.to_thread(_write_text_atomic, self._record_path("drafts", draft.id), draft.model_dump_json(indent=2))

    async def _remove_draft(self, draft_id: str) -> None:
        self._record_path("drafts", draft_id).unlink(missing_ok=True)

    async def _list_drafts(self) -> list[ContentDraft]:
        drafts = [self._parse(ContentDraft, payload, "drafts") for payload in await asyncio.to_thread(self._list_json, "drafts")]
        return [d for d in drafts if d is not None]

    ################ BATCHES ##################
    async def _read_batch(self, batch_id: str) -> DraftBatch | None:
        path = self._record_path("batches", batch_id)
        return self._parse(DraftBatch, await asyncio.to_thread(self._load_json, path), str(path))

    async def _write_batch(self, batch: DraftBatch) -> None:
        await asyncio.to_thread(_write_text_atomic, self._record_path("batches", batch.id), batch.model_dump_json(indent=2))

    async def _remove_batch(self, batch_id: str) -> None:
        self._record_path("batches", batch_id).unlink(missing_ok=True)

    async def _list_batches(self) -> list[DraftBatch]:
        batches = [self._parse(DraftBatch, payload, "batches") for payload in await asyncio.to_thread(self._list_json, "batches")]
        return [b for b in batches if b is not None]

    ################ ASSETS ##################
    async def _read_asset(self, asset_id: str) -> DraftAsset | None:
        meta_path = self._record_path("assets", asset_id)
        blob_path = self._record_path("assets", asset_id, suffix=".bin")
        asset = self._parse(DraftAsset, await asyncio.to_thread(self._load_json, meta_path), str(meta_path))
        if asset is None:
            return None
        blob = await asyncio.to_thread(_read_bytes_or_none, blob_path)
        if blob is None:
            self.logging.warning("Asset %s has no stored bytes.", asset_id)
            return None
        return asset.model_copy(update={"blob": blob})

    async def _write_asset(self, asset: DraftAsset) -> None:
        # bytes first so a record never points at a missing blob
        await asyncio.to_thread(_write_bytes_atomic, self._record_path("assets", asset.id, suffix=".bin"), asset.blob)
        await asyncio.to_thread(
            _write_text_atomic, self._record_path("assets", asset.id), asset.model_dump_json(exclude={"blob"}, indent=2)
        )

    async def _remove_asset(self, asset_id: str) -> None:
        self._record_path("assets", asset_id).unlink(missing_ok=True)
        self._record_path("assets", asset_id, suffix=".bin").unlink(missing_ok=True)

    async def _list_assets(self) -> list[DraftAsset]:
        assets = [self._parse(DraftAsset, payload, "assets") for payload in await asyncio.to_thread(self._list_json, "assets")]
        return [a for a in assets if a is not None]

    ################ SETTINGS ##################
    async def _read_settings(self) -> dict:
        return await asyncio.to_thread(self._load_json, self._root / "settings.json") or {}

    async def _write_settings(self, payload: dict) -> None:
        await asyncio.to_thread(_write_text_atomic, self._root / "settings.json", json.dumps(payload, indent=2))
