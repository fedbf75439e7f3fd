"""
Image Watcher — polls the watch folder for newly added images, waits until
each file has stopped changing, and hands accepted files to a callback on
a small worker pool.

Files already present when the watcher starts are ignored; only additions
after that point are processed, once per appearance: a file deleted and
later written again at the same path is processed again.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from vault_ocr.config import Settings

logger = logging.getLogger(__name__)


def is_accepted(path: Path, settings: Settings) -> bool:
    """Valid image extension and the configured marker in the file name."""
    path = Path(path)
    if path.suffix.lower() not in settings.image_extensions:
        return False
    return settings.file_marker in path.name


class ImageWatcher:
    """Polling watcher with a size/mtime stability debounce."""

    def __init__(self, settings: Settings, clock: Callable[[], float] = time.monotonic):
        self.settings = settings
        self.root = Path(settings.watch_root)
        self.clock = clock
        self._seen: set[Path] = set()
        # path -> ((size, mtime_ns), time the signature was first observed)
        self._pending: dict[Path, tuple[tuple[int, int], float]] = {}

    def _candidates(self) -> list[Path]:
        return [
            path
            for path in self.root.rglob("*")
            if path.suffix.lower() in self.settings.image_extensions and path.is_file()
        ]

    def snapshot(self) -> None:
        """Mark everything currently in the folder as already seen."""
        self._seen = set(self._candidates())
        self._pending.clear()
        logger.debug("Watcher snapshot: %d existing image(s).", len(self._seen))

    def poll_once(self) -> list[Path]:
        """
        Single poll cycle.  Returns newly added files whose size and mtime
        have been unchanged for at least the stability window.
        """
        now = self.clock()
        ready = []
        candidates = set(self._candidates())
        for path in candidates:
            if path in self._seen:
                continue
            try:
                stat = path.stat()
            except FileNotFoundError:
                self._pending.pop(path, None)
                continue
            signature = (stat.st_size, stat.st_mtime_ns)

            previous = self._pending.get(path)
            if previous is None or previous[0] != signature:
                self._pending[path] = (signature, now)
                continue
            if now - previous[1] >= self.settings.stability_seconds:
                del self._pending[path]
                self._seen.add(path)
                if is_accepted(path, self.settings):
                    ready.append(path)
                else:
                    logger.debug("Ignoring %s (no marker %r)", path, self.settings.file_marker)

        # Forget files that vanished, so a new file at the same path counts as new
        self._seen &= candidates
        for path in [p for p in self._pending if p not in candidates]:
            del self._pending[path]
        return ready

    def watch(self, callback: Callable[[Path], object]) -> None:
        """
        Continuous polling loop.  Calls *callback(path)* on a worker thread
        for every stable, accepted new image.  Runs until interrupted.
        """
        self.snapshot()
        logger.info(
            "Watching images in %s (marker %r, interval %.1fs)",
            self.root,
            self.settings.file_marker,
            self.settings.poll_interval,
        )
        with ThreadPoolExecutor(
            max_workers=self.settings.max_workers, thread_name_prefix="annotate"
        ) as pool:
            while True:
                try:
                    for path in self.poll_once():
                        logger.info("New image detected: %s", path)
                        future = pool.submit(callback, path)
                        future.add_done_callback(_log_failure)
                except OSError:
                    logger.exception("Error during watch poll cycle")
                time.sleep(self.settings.poll_interval)


def _log_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error("Image run crashed", exc_info=exc)
