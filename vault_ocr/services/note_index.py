"""
Note Index — enumerates the markdown notes of the vault and answers
"which notes embed this image".  Nothing is cached: the vault can change
between runs, so every query rescans.
"""

import logging
from pathlib import Path

from vault_ocr.services.note_editor import embed_pattern

logger = logging.getLogger(__name__)

NOTE_SUFFIX = ".md"


class NoteIndex:
    """Read-only view over the notes in a vault."""

    def __init__(self, vault_path: Path):
        self.vault_path = Path(vault_path)

    def list_all_notes(self) -> list[Path]:
        """Every ``.md`` file under the vault, in no particular order."""
        return [
            path
            for path in self.vault_path.rglob("*")
            if path.suffix.lower() == NOTE_SUFFIX and path.is_file()
        ]

    def read_note(self, path: Path) -> str | None:
        # newline="" returns line endings as stored on disk
        try:
            with path.open(encoding="utf-8", newline="") as fh:
                return fh.read()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable note %s: %s", path, exc)
            return None

    def write_note(self, path: Path, content: str) -> bool:
        try:
            with path.open("w", encoding="utf-8", newline="") as fh:
                fh.write(content)
        except OSError:
            logger.exception("Failed to write note %s", path)
            return False
        return True

    def find_notes_referencing(self, image_file_name: str) -> list[Path]:
        """Notes containing at least one ``![[...]]`` embed of *image_file_name*."""
        pattern = embed_pattern(image_file_name)
        results = []
        for note_path in self.list_all_notes():
            content = self.read_note(note_path)
            if content is not None and pattern.search(content):
                results.append(note_path)
        logger.debug("%d note(s) reference %s", len(results), image_file_name)
        return results
