from datetime import timedelta

import pytest

from shared.models.draft import DraftBatch, utc_now
from shared.models.review import ReviewSettings
from shared.store.DraftStoreManager import DraftStoreManager
from shared.store.file.DraftStoreFile import DraftStoreFile
from shared.store.memory.DraftStoreMemory import DraftStoreMemory

pytestmark = pytest.mark.anyio


@pytest.fixture(params=["memory", "file"])
def any_store(request, helper_config, settings, tmp_path, monkeypatch):
    if request.param == "file":
        monkeypatch.setenv("DRAFT_STORE_FILE_ROOT", str(tmp_path / "store"))
        return DraftStoreFile(helper_config=helper_config, settings=settings)
    return DraftStoreMemory(helper_config=helper_config, settings=settings)


async def test_draft_round_trip_stamps_expiry(any_store, make_draft, settings):
    draft = make_draft(keywords=["a"], metadata={"nested": {"k": 1}})

    stored = await any_store.put_draft(draft)
    loaded = await any_store.get_draft(draft.id)

    assert stored.expires_at == draft.created_at + timedelta(days=settings.draft_ttl_days)
    assert loaded.model_dump() == stored.model_dump()
    assert await any_store.get_draft("missing") is None


async def test_returned_drafts_are_copies(any_store, make_draft):
    draft = make_draft()
    await any_store.put_draft(draft)

    loaded = await any_store.get_draft(draft.id)
    loaded.metadata["changed"] = True

    assert "changed" not in (await any_store.get_draft(draft.id)).metadata


async def test_drafts_by_batch_are_ordered_oldest_first(any_store, make_draft):
    first, second, other = make_draft(), make_draft(), make_draft(batch_id="batch-2")
    for draft in (second, other, first):
        await any_store.put_draft(draft)

    drafts = await any_store.get_drafts_by_batch("batch-1")

    assert [d.id for d in drafts] == [first.id, second.id]


async def test_asset_cap_rejects_without_writing(any_store, settings):
    settings.storage_cap_bytes = 10

    first = await any_store.put_asset("d1", "a.bin", "application/octet-stream", b"123456")
    rejected = await any_store.put_asset("d1", "b.bin", "application/octet-stream", b"12345")
    exact = await any_store.put_asset("d2", "c.bin", "", b"1234")

    assert first.stored and first.used_bytes == 6
    assert not rejected.stored
    assert rejected.reason == "File exceeds the local draft storage cap (10B)."
    assert rejected.used_bytes == 6 and rejected.cap_bytes == 10
    assert exact.stored
    assert exact.asset.mime_type == "application/octet-stream"
    assert await any_store.get_used_asset_bytes() == 10


async def test_cap_message_names_megabytes(any_store, settings):
    settings.storage_cap_bytes = 2 * 1024 * 1024

    result = await any_store.put_asset("d1", "huge.bin", "application/octet-stream", b"0" * (2 * 1024 * 1024 + 1))

    assert result.reason == "File exceeds the local draft storage cap (2MB)."
    assert await any_store.get_used_asset_bytes() == 0


async def test_asset_round_trip_and_ownership(any_store, make_draft):
    owner = make_draft()
    result = await any_store.put_asset(owner.id, "talk.mp3", "audio/mpeg", b"ID3-bytes")
    owner = owner.model_copy(update={"source_asset_id": result.asset.id})
    stranger = make_draft(source_asset_id=result.asset.id)

    asset = await any_store.get_source_asset(owner)

    assert asset.blob == b"ID3-bytes"
    assert asset.file_name == "talk.mp3"
    assert await any_store.get_source_asset(stranger) is None
    assert await any_store.get_source_asset(make_draft()) is None


async def test_delete_draft_cascades_assets(any_store, make_draft):
    draft = make_draft()
    await any_store.put_draft(draft)
    await any_store.put_asset(draft.id, "a.bin", "application/octet-stream", b"abc")
    kept = await any_store.put_asset("other", "b.bin", "application/octet-stream", b"de")

    await any_store.delete_draft(draft.id)

    assert await any_store.get_draft(draft.id) is None
    assert await any_store.get_used_asset_bytes() == 2
    assert await any_store.get_asset(kept.asset.id) is not None


async def test_delete_batch_cascades_drafts(any_store, make_draft):
    await any_store.put_batch(DraftBatch(id="batch-1", name="First"))
    await any_store.put_batch(DraftBatch(id="batch-2", name="Second"))
    draft, other = make_draft(), make_draft(batch_id="batch-2")
    await any_store.put_draft(draft)
    await any_store.put_draft(other)
    await any_store.put_asset(draft.id, "a.bin", "application/octet-stream", b"abc")

    await any_store.delete_batch("batch-1")

    assert await any_store.get_batch("batch-1") is None
    assert await any_store.get_draft(draft.id) is None
    assert await any_store.get_draft(other.id) is not None
    assert await any_store.get_used_asset_bytes() == 0
    assert [b.id for b in await any_store.get_batches()] == ["batch-2"]


async def test_purge_expired(any_store, make_draft):
    now = utc_now()
    expired = make_draft(expires_at=now - timedelta(minutes=1))
    fresh = make_draft(expires_at=now + timedelta(days=1))
    await any_store.put_draft(expired)
    await any_store.put_draft(fresh)
    await any_store.put_asset(expired.id, "a.bin", "application/octet-stream", b"abc")

    assert await any_store.purge_expired(now=now) == 1
    assert await any_store.get_draft(expired.id) is None
    assert await any_store.get_draft(fresh.id) is not None
    assert await any_store.get_used_asset_bytes() == 0


async def test_clear_all_keeps_settings(any_store, make_draft, settings):
    await any_store.put_batch(DraftBatch(id="batch-1"))
    await any_store.put_draft(make_draft())
    await any_store.put_asset("d1", "a.bin", "application/octet-stream", b"abc")
    settings.ai_consent_given = True
    await any_store.save_settings(settings)

    await any_store.clear_all()
    settings.ai_consent_given = False
    await any_store.load_settings()

    assert await any_store.get_batches() == []
    assert await any_store.get_drafts_by_batch("batch-1") == []
    assert await any_store.get_used_asset_bytes() == 0
    assert settings.ai_consent_given is True


async def test_file_store_survives_restart(helper_config, tmp_path, monkeypatch, make_draft):
    monkeypatch.setenv("DRAFT_STORE_FILE_ROOT", str(tmp_path / "store"))
    first_settings = ReviewSettings(ai_consent_given=True, selected_model="picked")
    first = DraftStoreFile(helper_config=helper_config, settings=first_settings)
    draft = make_draft()
    await first.put_draft(draft)
    await first.save_settings(first_settings)

    second_settings = ReviewSettings()
    second = DraftStoreFile(helper_config=helper_config, settings=second_settings)
    await second.load_settings()

    assert (await second.get_draft(draft.id)).title == draft.title
    assert second_settings.ai_consent_given is True
    assert second_settings.selected_model == "picked"


async def test_file_store_rejects_unsafe_ids_and_skips_corrupt_records(helper_config, settings, tmp_path, monkeypatch, make_draft):
    root = tmp_path / "store"
    monkeypatch.setenv("DRAFT_STORE_FILE_ROOT", str(root))
    file_store = DraftStoreFile(helper_config=helper_config, settings=settings)
    await file_store.put_draft(make_draft())
    (root / "drafts" / "broken.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError):
        await file_store.get_draft("../escape")
    assert await file_store.get_draft("broken") is None
    assert len(await file_store.get_drafts_by_batch("batch-1")) == 1


def test_manager_selects_engine(helper_config, settings, tmp_path, monkeypatch):
    assert isinstance(DraftStoreManager(helper_config=helper_config, settings=settings).get_store(), DraftStoreMemory)

    monkeypatch.setenv("DRAFT_STORE_ENGINE", "file")
    store = DraftStoreManager(helper_config=helper_config, settings=settings).get_store()
    assert isinstance(store, DraftStoreFile)
    assert store.get_engine_name() == "file"
    assert (tmp_path / "drafts" / "drafts").is_dir()

    monkeypatch.setenv("DRAFT_STORE_ENGINE", "redis")
    with pytest.raises(ValueError, match="Unsupported draft store engine"):
        DraftStoreManager(helper_config=helper_config, settings=settings)


async def test_file_store_assets_keep_bytes_across_instances(helper_config, settings, tmp_path, monkeypatch):
    root = tmp_path / "store"
    monkeypatch.setenv("DRAFT_STORE_FILE_ROOT", str(root))
    blob = bytes(range(256)) * 64
    result = await DraftStoreFile(helper_config=helper_config, settings=settings).put_asset("d1", "scan.pdf", "application/pdf", blob)

    reopened = DraftStoreFile(helper_config=helper_config, settings=settings)
    assert (await reopened.get_asset(result.asset.id)).blob == blob

    (root / "assets" / f"{result.asset.id}.bin").unlink()
    assert await reopened.get_asset(result.asset.id) is None
