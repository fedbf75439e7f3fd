"""
Central configuration for the vault OCR annotator.

All paths, API keys, and tuning knobs live here.  Values are read from
environment variables (or a .env file) once at startup and frozen into a
``Settings`` object that is handed to every component.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_FILE_MARKER = "_MD5"
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp")

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ConfigError(Exception):
    """Raised when required configuration is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    # ── Clova OCR ─────────────────────────────────────────────────────
    clova_api_url: str
    clova_secret_key: str
    # ── Anthropic / Claude ────────────────────────────────────────────
    anthropic_api_key: str
    # ── Obsidian Vault ────────────────────────────────────────────────
    vault_path: Path
    anthropic_model: str = DEFAULT_ANTHROPIC_MODEL
    # Folder to watch for new images; defaults to the vault itself
    watch_folder: Path | None = None
    # Only filenames containing this substring are processed
    file_marker: str = DEFAULT_FILE_MARKER
    image_extensions: tuple[str, ...] = IMAGE_EXTENSIONS
    # ── Watcher behaviour ─────────────────────────────────────────────
    poll_interval: float = 1.0
    # Seconds a file's size/mtime must stay unchanged before processing
    stability_seconds: float = 2.0
    max_workers: int = 2
    # ── Collaborators ─────────────────────────────────────────────────
    ocr_timeout: float = 60.0
    # Rename images using the model's suggested filename
    rename_images: bool = False
    # ── Logging ───────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_file: str = "vault_ocr.log"

    @property
    def watch_root(self) -> Path:
        return self.watch_folder or self.vault_path

    @classmethod
    def from_env(cls, vault_path: Path | None = None, environ=None) -> "Settings":
        """
        Build settings from the environment.  *vault_path* overrides
        OBSIDIAN_VAULT_PATH.  Raises ConfigError listing every missing
        required variable.
        """
        env = os.environ if environ is None else environ

        required = {
            "CLOVA_API_URL": env.get("CLOVA_API_URL", "").strip(),
            "CLOVA_SECRET_KEY": env.get("CLOVA_SECRET_KEY", "").strip(),
            "ANTHROPIC_API_KEY": env.get("ANTHROPIC_API_KEY", "").strip(),
            "OBSIDIAN_VAULT_PATH": str(vault_path or env.get("OBSIDIAN_VAULT_PATH", "")).strip(),
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigError(
                f"Missing required configuration: {', '.join(missing)}. "
                "Add it to your .env file or environment."
            )

        watch_folder = env.get("WATCH_FOLDER", "").strip()

        return cls(
            clova_api_url=required["CLOVA_API_URL"],
            clova_secret_key=required["CLOVA_SECRET_KEY"],
            anthropic_api_key=required["ANTHROPIC_API_KEY"],
            anthropic_model=env.get("ANTHROPIC_MODEL", "") or DEFAULT_ANTHROPIC_MODEL,
            vault_path=Path(required["OBSIDIAN_VAULT_PATH"]).expanduser(),
            watch_folder=Path(watch_folder).expanduser() if watch_folder else None,
            file_marker=env.get("FILE_MARKER", DEFAULT_FILE_MARKER),
            poll_interval=_number(env, "WATCH_POLL_INTERVAL", 1.0, float),
            stability_seconds=_number(env, "WATCH_STABILITY_SECONDS", 2.0, float),
            max_workers=_number(env, "MAX_WORKERS", 2, int),
            ocr_timeout=_number(env, "OCR_TIMEOUT", 60.0, float),
            rename_images=env.get("RENAME_IMAGES", "false").strip().lower() in _TRUE_VALUES,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            log_file=env.get("LOG_FILE", "vault_ocr.log"),
        )


def _number(env, name: str, default, cast):
    raw = env.get(name, "")
    if not str(raw).strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value
