import pytest

from shared.clients.content.models.UploadResponse import classify_response, resolve_media_id


@pytest.mark.parametrize(
    "payload",
    [
        {"media_id": 7},
        {"id": 7},
        {"pk": "7"},
        {"uuid": 7},
        {"media": {"id": 7}},
        {"result": {"media_id": 7}},
        {"results": [{"pk": 7}, {"pk": 8}]},
        {"result": {"media": {"results": [{"id": 7}]}}},
    ],
)
def test_known_shapes_resolve(payload):
    assert resolve_media_id(payload) == "7"


def test_direct_id_takes_precedence_over_nested():
    assert resolve_media_id({"id": 1, "media": {"id": 2}}) == "1"
    assert classify_response({"id": 1, "media": {"id": 2}}).name == "direct"


@pytest.mark.parametrize("payload", [None, "7", [], {}, {"results": []}, {"status": "queued"}, {"id": None}])
def test_unresolved_shapes_return_none(payload):
    assert resolve_media_id(payload) is None


def test_self_referential_payload_terminates():
    payload: dict = {"status": "ok"}
    payload["result"] = payload

    assert resolve_media_id(payload) is None
