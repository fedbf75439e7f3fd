from pathlib import Path

import pytest

from vault_ocr.config import DEFAULT_FILE_MARKER, ConfigError, Settings

BASE_ENV = {
    "CLOVA_API_URL": "https://ocr.example.test",
    "CLOVA_SECRET_KEY": "secret",
    "ANTHROPIC_API_KEY": "sk-test",
    "OBSIDIAN_VAULT_PATH": "/vault",
}


def test_from_env_defaults():
    settings = Settings.from_env(environ=dict(BASE_ENV))

    assert settings.vault_path == Path("/vault")
    assert settings.watch_root == Path("/vault")
    assert settings.file_marker == DEFAULT_FILE_MARKER
    assert settings.stability_seconds == 2.0
    assert settings.rename_images is False
    assert settings.anthropic_model.startswith("claude-")


def test_from_env_overrides():
    env = dict(
        BASE_ENV,
        WATCH_FOLDER="/vault/inbox",
        FILE_MARKER="_OCR",
        WATCH_STABILITY_SECONDS="0.5",
        MAX_WORKERS="4",
        RENAME_IMAGES="yes",
        LOG_LEVEL="debug",
    )
    settings = Settings.from_env(environ=env)

    assert settings.watch_root == Path("/vault/inbox")
    assert settings.file_marker == "_OCR"
    assert settings.stability_seconds == 0.5
    assert settings.max_workers == 4
    assert settings.rename_images is True
    assert settings.log_level == "DEBUG"


def test_vault_argument_overrides_env():
    settings = Settings.from_env(vault_path=Path("/other"), environ=dict(BASE_ENV))
    assert settings.vault_path == Path("/other")


def test_missing_required_values_are_all_reported():
    env = {"CLOVA_API_URL": "https://ocr.example.test"}
    with pytest.raises(ConfigError) as excinfo:
        Settings.from_env(environ=env)
    message = str(excinfo.value)
    for name in ("CLOVA_SECRET_KEY", "ANTHROPIC_API_KEY", "OBSIDIAN_VAULT_PATH"):
        assert name in message
    assert "CLOVA_API_URL" not in message


@pytest.mark.parametrize("value", ["soon", "-1", "0"])
def test_bad_numbers_are_rejected(value):
    with pytest.raises(ConfigError):
        Settings.from_env(environ=dict(BASE_ENV, MAX_WORKERS=value))


def test_settings_are_immutable(settings):
    with pytest.raises(AttributeError):
        settings.file_marker = "changed"
