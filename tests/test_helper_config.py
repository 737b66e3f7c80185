import pytest

from shared.models.review import DEFAULT_STORAGE_CAP_BYTES, ReviewSettings


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2048", 2048),
        ("512KB", 512 * 1024),
        ("512kb", 512 * 1024),
        ("100MB", 100 * 1024 * 1024),
        ("1.5GB", int(1.5 * 1024 ** 3)),
        ("10B", 10),
    ],
)
def test_get_size_val_parses_units(helper_config, monkeypatch, raw, expected):
    monkeypatch.setenv("DRAFT_STORAGE_CAP_BYTES", raw)
    assert helper_config.get_size_val("DRAFT_STORAGE_CAP_BYTES") == expected


def test_get_size_val_default_and_errors(helper_config, monkeypatch):
    assert helper_config.get_size_val("DRAFT_STORAGE_CAP_BYTES", default=7) == 7

    with pytest.raises(ValueError):
        helper_config.get_size_val("DRAFT_STORAGE_CAP_BYTES")

    monkeypatch.setenv("DRAFT_STORAGE_CAP_BYTES", "12XB")
    with pytest.raises(ValueError):
        helper_config.get_size_val("DRAFT_STORAGE_CAP_BYTES")


def test_scalar_and_list_values(helper_config, monkeypatch):
    monkeypatch.setenv("SOME_FLAG", "Yes")
    monkeypatch.setenv("SOME_NUMBER", "2.5")
    monkeypatch.setenv("SOME_LIST", "[a, b ,c]")

    assert helper_config.get_bool_val("some_flag") is True
    assert helper_config.get_number_val("SOME_NUMBER") == 2.5
    assert helper_config.get_list_val("SOME_LIST") == ["a", "b", "c"]
    assert helper_config.get_string_val("MISSING_VALUE", default="fallback") == "fallback"

    monkeypatch.setenv("SOME_LIST", "a,b")
    with pytest.raises(ValueError):
        helper_config.get_list_val("SOME_LIST")


def test_review_settings_from_config(helper_config, monkeypatch):
    assert ReviewSettings.from_config(helper_config).storage_cap_bytes == DEFAULT_STORAGE_CAP_BYTES

    monkeypatch.setenv("DRAFT_STORAGE_CAP_BYTES", "1MB")
    monkeypatch.setenv("DRAFT_TTL_DAYS", "3")
    settings = ReviewSettings.from_config(helper_config)

    assert settings.storage_cap_bytes == 1024 * 1024
    assert settings.autosave_delay_ms == 20
    assert settings.draft_ttl_days == 3
    assert settings.persisted_flags() == {"ai_consent_given": False, "selected_model": None}
