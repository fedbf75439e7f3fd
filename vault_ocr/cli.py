"""
CLI entry point for the vault OCR annotator.

Usage:
  python -m vault_ocr watch                 # Watch the vault for new images
  python -m vault_ocr process <image>       # Run the pipeline on one image
  python -m vault_ocr find-notes <name>     # List notes that embed an image
"""

import argparse
import sys
from pathlib import Path

from vault_ocr.config import ConfigError, Settings
from vault_ocr.orchestrator import ImageAnnotator


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="vault-ocr",
        description="Annotate images in an Obsidian vault with OCR text and summaries.",
    )
    parser.add_argument(
        "--vault",
        type=Path,
        default=None,
        help="Path to the Obsidian vault (overrides OBSIDIAN_VAULT_PATH env var).",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("watch", help="Continuously watch the vault for new images.")

    process = sub.add_parser("process", help="Annotate a single image right away.")
    process.add_argument("image", type=Path, help="Path to the image file.")

    find_notes = sub.add_parser("find-notes", help="List notes that embed an image.")
    find_notes.add_argument("name", help="Image file name, e.g. slide_MD5.png")

    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env(vault_path=args.vault)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    ImageAnnotator.setup_logging(settings)
    annotator = ImageAnnotator(settings)

    if args.command == "watch":
        print(f"Watching {settings.watch_root} for new images (Ctrl+C to stop)…")
        try:
            annotator.watch()
        except KeyboardInterrupt:
            print("\nStopped.")

    elif args.command == "process":
        if not args.image.exists():
            print(f"Error: file not found — {args.image}", file=sys.stderr)
            return 1
        run = annotator.process_image(args.image)
        if not run.ok:
            print(
                f"Failed at {run.failed_stage.value} stage: {run.error}",
                file=sys.stderr,
            )
            return 1
        print(f"Annotated {run.image_path.name} in {len(run.notes_updated)} note(s).")
        for p in run.notes_updated:
            print(f"  → {p}")

    elif args.command == "find-notes":
        for p in annotator.index.find_notes_referencing(args.name):
            print(p)

    return 0


if __name__ == "__main__":
    sys.exit(main())
