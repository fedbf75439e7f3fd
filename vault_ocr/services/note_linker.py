"""
Note Linker — writes annotation blocks into the notes that embed an image
and carries image renames through to note text.

Each note's read-modify-write runs under a per-path lock, so two images
embedded in the same note can be processed concurrently without one run
overwriting the other's insertion.
"""

import logging
import threading
import weakref
from pathlib import Path

from vault_ocr.services import note_editor
from vault_ocr.services.note_index import NoteIndex

logger = logging.getLogger(__name__)


class NoteLinker:
    """Mutates vault notes on behalf of the pipeline."""

    def __init__(self, index: NoteIndex):
        self.index = index
        # Entries drop out once no run holds the lock
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, path: Path) -> threading.Lock:
        key = path.resolve()
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    # ── Annotation insertion ──────────────────────────────────────────

    def insert_annotation(self, image_path: Path, block: str) -> list[Path]:
        """
        Insert *block* under every ``![[...]]`` embed of the image in every
        note that references it.  Returns the notes that were rewritten.
        """
        file_name = Path(image_path).name
        updated = []
        for note_path in self.index.find_notes_referencing(file_name):
            if self._insert_into_note(note_path, file_name, block):
                updated.append(note_path)

        logger.info(
            "Annotation inserted for %s into %d note(s).", file_name, len(updated)
        )
        return updated

    def _insert_into_note(self, note_path: Path, file_name: str, block: str) -> bool:
        with self._lock_for(note_path):
            content = self.index.read_note(note_path)
            if content is None:
                return False

            newline = note_editor.line_ending(content)
            note_block = block.replace("\r\n", "\n").replace("\n", newline)
            content = note_editor.remove_legacy_links(content, file_name)
            lines = note_editor.split_lines(content)
            lines, inserted = note_editor.insert_after_matches(
                lines, note_editor.embed_pattern(file_name), note_block
            )
            if not inserted:
                logger.debug("No new embed of %s in %s", file_name, note_path)
                return False

            return self.index.write_note(note_path, newline.join(lines))

    # ── Rename propagation ────────────────────────────────────────────

    def propagate_rename(self, note_paths, old_name: str, new_name: str) -> list[Path]:
        """Replace *old_name* (any case) with *new_name* in each note."""
        changed = []
        for note_path in note_paths:
            with self._lock_for(note_path):
                content = self.index.read_note(note_path)
                if content is None:
                    continue
                replaced = note_editor.replace_case_insensitive(content, old_name, new_name)
                if replaced == content:
                    continue
                if self.index.write_note(note_path, replaced):
                    logger.info(
                        "Note link updated: %s (%s -> %s)",
                        note_path.name,
                        old_name,
                        new_name,
                    )
                    changed.append(note_path)
        return changed
