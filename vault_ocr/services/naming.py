"""Path and filename helpers shared by the pipeline."""

import re
from pathlib import Path

MAX_FILE_NAME_LENGTH = 50
CATEGORY_DEPTH = 3

_IMAGE_EXTENSION = re.compile(r"\.(jpg|jpeg|png|gif|bmp|webp)$", re.IGNORECASE)
_HOSTILE = re.compile(r'[\\/?*:|"<>\s]')
_CONTROL = re.compile(r"[\x00-\x1f\x7f]")


def category_path(vault_path: Path, image_path: Path) -> str:
    """
    The image's folders relative to the vault, without ``_``-prefixed
    folders, keeping only the deepest three, joined with ``/``.
    """
    try:
        rel = Path(image_path).relative_to(vault_path)
    except ValueError:
        return ""
    parts = [p for p in rel.parts[:-1] if not p.startswith("_")]
    return "/".join(parts[-CATEGORY_DEPTH:])


def trim_image_extension(file_name: str) -> str:
    return _IMAGE_EXTENSION.sub("", file_name)


def sanitize_file_name(name: str, max_length: int = MAX_FILE_NAME_LENGTH) -> str:
    """Make model-suggested text safe to use as a file name stem."""
    name = _CONTROL.sub("", name)
    name = _HOSTILE.sub("_", name)
    name = name.lstrip(".")
    return name[:max_length]


def renamed_path(image_path: Path, suggestion: str) -> Path | None:
    """
    Target path for renaming *image_path* after *suggestion*, keeping the
    original extension.  None when there is nothing usable to rename to.
    """
    image_path = Path(image_path)
    stem = sanitize_file_name(trim_image_extension(suggestion.strip()))
    if not stem.strip("_"):
        return None
    target = image_path.with_name(f"{stem}{image_path.suffix or '.jpeg'}")
    if target.name == image_path.name:
        return None
    return target
