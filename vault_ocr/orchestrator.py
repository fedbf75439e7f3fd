"""
Orchestrator — runs one detected image through the annotation pipeline:

  Detected → Normalized → Extracted → Reconstructed → Annotated → Linked → Done

Each stage runs once, with no retries.  Whatever a stage raises is logged
with the image path and ends the run as Failed, so a broken OCR call
never reaches the notes.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable

from vault_ocr.config import Settings
from vault_ocr.services import naming
from vault_ocr.services.annotation_requester import AnnotationBundle, AnnotationRequester
from vault_ocr.services.file_watcher import ImageWatcher, is_accepted
from vault_ocr.services.image_normalizer import normalize_image
from vault_ocr.services.line_reconstructor import lines_to_prompt_text, reconstruct_lines
from vault_ocr.services.note_index import NoteIndex
from vault_ocr.services.note_linker import NoteLinker
from vault_ocr.services.ocr_client import ClovaOcrClient

logger = logging.getLogger(__name__)


class Stage(enum.Enum):
    DETECTED = "detected"
    NORMALIZED = "normalized"
    EXTRACTED = "extracted"
    RECONSTRUCTED = "reconstructed"
    ANNOTATED = "annotated"
    LINKED = "linked"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineRun:
    """Outcome of processing one image."""
    image_path: Path
    stage: Stage = Stage.DETECTED
    bundle: AnnotationBundle = field(default_factory=AnnotationBundle.empty)
    notes_updated: list[Path] = field(default_factory=list)
    failed_stage: Stage | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.stage is Stage.DONE


def build_hidden_block(bundle: AnnotationBundle, now: datetime) -> str:
    """The ``%% ... %%`` block placed under each embed of the image."""
    lines = ["%%", f"**Registered:** {now.strftime('%Y-%m-%d %H:%M:%S')}"]
    if bundle.category_tag:
        lines.append(f"**Tags:** {bundle.category_tag}")
    lines += [
        f"**Summary:** {bundle.one_line_summary}",
        "",
        "**Content:**",
        bundle.improved_text,
        "%%",
    ]
    return "\n".join(lines).strip()


class ImageAnnotator:
    """Top-level pipeline that coordinates all sub-services."""

    def __init__(
        self,
        settings: Settings,
        normalizer: Callable | None = None,
        ocr: ClovaOcrClient | None = None,
        requester: AnnotationRequester | None = None,
        index: NoteIndex | None = None,
        linker: NoteLinker | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings
        self.normalize = normalizer or normalize_image
        self.ocr = ocr or ClovaOcrClient(settings)
        self.requester = requester or AnnotationRequester(settings)
        self.index = index or NoteIndex(settings.vault_path)
        self.linker = linker or NoteLinker(self.index)
        self.clock = clock

    @staticmethod
    def setup_logging(settings: Settings) -> None:
        handlers = [logging.StreamHandler()]
        if settings.log_file:
            handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
        logging.basicConfig(
            level=getattr(logging, settings.log_level, logging.INFO),
            format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
            handlers=handlers,
        )

    # ── Single image ──────────────────────────────────────────────────

    def handle_event(self, image_path: Path) -> PipelineRun | None:
        """Acceptance filter, then the full pipeline."""
        image_path = Path(image_path)
        if not is_accepted(image_path, self.settings):
            logger.debug("Not an annotatable image: %s", image_path)
            return None
        return self.process_image(image_path)

    def process_image(self, image_path: Path) -> PipelineRun:
        image_path = Path(image_path)
        run = PipelineRun(image_path=image_path)
        logger.info("Processing new image: %s", image_path)

        attempt = Stage.NORMALIZED
        try:
            # Step 1: Shrink and recompress
            normalized = self.normalize(image_path)
            run.stage = Stage.NORMALIZED

            # Step 2: OCR
            attempt = Stage.EXTRACTED
            fragments = self.ocr.extract_fragments(normalized.data, normalized.format)
            run.stage = Stage.EXTRACTED

            # Step 3: Rebuild reading-order lines
            attempt = Stage.RECONSTRUCTED
            lines = reconstruct_lines(fragments)
            ocr_text = lines_to_prompt_text(lines)
            run.stage = Stage.RECONSTRUCTED

            # Step 4: Note context + one Claude call
            attempt = Stage.ANNOTATED
            referencing = self.index.find_notes_referencing(image_path.name)
            note_title = referencing[0].stem if referencing else ""
            run.bundle = self.requester.request(
                ocr_text=ocr_text,
                note_title=note_title,
                old_file_name=image_path.name,
                category_path=naming.category_path(self.settings.vault_path, image_path),
            )
            if run.bundle.is_empty():
                logger.warning("Empty annotation for %s; linking with blank fields.", image_path)
            run.stage = Stage.ANNOTATED

            # Step 5: Optional rename, then write the hidden block
            attempt = Stage.LINKED
            if self.settings.rename_images:
                image_path = self._rename_image(image_path, run.bundle, referencing)
                run.image_path = image_path
            block = build_hidden_block(run.bundle, self.clock())
            run.notes_updated = self.linker.insert_annotation(image_path, block)
            run.stage = Stage.LINKED
        except Exception as exc:
            logger.exception("Image processing failed at %s stage: %s", attempt.value, image_path)
            run.failed_stage = attempt
            run.stage = Stage.FAILED
            run.error = str(exc) or type(exc).__name__
            return run

        run.stage = Stage.DONE
        logger.info("Image processing complete: %s", image_path)
        return run

    def _rename_image(
        self, image_path: Path, bundle: AnnotationBundle, referencing: list[Path]
    ) -> Path:
        """Rename to the model's suggestion; the original path on any problem."""
        target = naming.renamed_path(image_path, bundle.new_file_name)
        if target is None:
            return image_path
        if target.exists():
            logger.warning("Rename target already exists, keeping %s", image_path.name)
            return image_path
        try:
            image_path.rename(target)
        except OSError:
            logger.exception("Failed to rename %s -> %s", image_path.name, target.name)
            return image_path

        logger.info("Image renamed: %s -> %s", image_path.name, target.name)
        self.linker.propagate_rename(referencing, image_path.name, target.name)
        return target

    # ── Continuous watch ──────────────────────────────────────────────

    def watch(self) -> None:
        """Watch the configured folder until interrupted."""
        ImageWatcher(self.settings).watch(self.handle_event)
