from pathlib import Path

import pytest

from vault_ocr.config import Settings


@pytest.fixture
def vault(tmp_path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def settings(vault) -> Settings:
    return Settings(
        clova_api_url="https://ocr.example.test/general",
        clova_secret_key="ocr-secret",
        anthropic_api_key="sk-test",
        vault_path=vault,
        stability_seconds=2.0,
        log_file="",
    )
