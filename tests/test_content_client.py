import json

import pytest

from shared.clients.content.ContentClientManager import ContentClientManager
from shared.clients.content.models.UploadFile import UploadFile
from shared.clients.content.tldw.ContentClientTldw import ContentClientTldw

pytestmark = pytest.mark.anyio


def test_manager_builds_configured_engine(helper_config, monkeypatch):
    assert isinstance(ContentClientManager(helper_config=helper_config).get_client(), ContentClientTldw)

    monkeypatch.setenv("CONTENT_ENGINE", "nonexistent")
    with pytest.raises(ValueError, match="Unsupported content engine"):
        ContentClientManager(helper_config=helper_config)


def test_missing_base_url_fails_validation(helper_config, monkeypatch):
    monkeypatch.delenv("CONTENT_TLDW_BASE_URL")
    with pytest.raises(ValueError, match="CONTENT_TLDW_BASE_URL"):
        ContentClientTldw(helper_config=helper_config)


def test_upload_form_encoding(helper_config):
    client = ContentClientTldw(helper_config=helper_config)

    form = client.get_upload_form(
        {
            "media_type": "document",
            "perform_analysis": True,
            "overwrite_existing": False,
            "urls": ["https://a.test", None, "https://b.test"],
            "chunk": {"size": 500},
            "max_tokens": 3,
            "skipped": None,
        }
    )

    assert form == {
        "media_type": "document",
        "perform_analysis": "true",
        "overwrite_existing": "false",
        "urls": ["https://a.test", "https://b.test"],
        "chunk": json.dumps({"size": 500}),
        "max_tokens": "3",
    }


async def test_upload_sends_multipart_with_auth_header(content_client, content_backend):
    file = UploadFile(name="notes.txt", mime_type="text/plain", data=b"hello draft")

    response = await content_client.do_upload({"media_type": "document", "perform_chunking": False}, file)

    assert content_client.extract_media_id(response) == "42"
    [request] = content_backend.sent("POST", "/api/v1/media/add")
    assert request.headers["X-API-KEY"] == "content-key"
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'filename="notes.txt"' in request.content
    assert b"hello draft" in request.content
    assert b'name="perform_chunking"\r\n\r\nfalse' in request.content


async def test_update_and_metadata_requests(content_client, content_backend):
    await content_client.do_update_fields("42", {"title": "New", "keywords": ["a"]})
    await content_client.do_patch_metadata("42", {"author": "x"})

    [put] = content_backend.sent("PUT", "/api/v1/media/42")
    [patch] = content_backend.sent("PATCH", "/api/v1/media/42/metadata")
    assert json.loads(put.content) == {"title": "New", "keywords": ["a"]}
    assert json.loads(patch.content) == {"safe_metadata": {"author": "x"}, "merge": True}


async def test_failed_request_raises_with_server_detail(content_client, content_backend):
    content_backend.route("PUT", "/api/v1/media/9", status=409, json={"detail": "Version conflict"})

    with pytest.raises(Exception, match="Version conflict"):
        await content_client.do_update_fields("9", {"title": "x"})
