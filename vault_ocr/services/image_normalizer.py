"""
Image Normalizer — shrinks an image to fit the OCR service's sweet spot
and recompresses it before upload.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

logger = logging.getLogger(__name__)

MAX_SIZE = (1920, 1080)
JPEG_QUALITY = 80
PNG_COMPRESS_LEVEL = 9


@dataclass(frozen=True)
class NormalizedImage:
    data: bytes
    format: str     # "jpg" | "png", as the OCR request expects


def normalize_image(image_path: Path) -> NormalizedImage:
    """
    Resize to fit within 1920x1080 (never enlarging) and re-encode.
    PNG stays PNG; everything else becomes JPEG at quality 80.
    """
    with Image.open(image_path) as img:
        source_format = (img.format or "").upper()
        original_size = img.size
        img.thumbnail(MAX_SIZE)

        buf = io.BytesIO()
        if source_format == "PNG":
            img.save(buf, format="PNG", optimize=True, compress_level=PNG_COMPRESS_LEVEL)
            fmt = "png"
        else:
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            img.save(buf, format="JPEG", quality=JPEG_QUALITY)
            fmt = "jpg"

    logger.debug(
        "Normalized %s: %s -> %s (%s, %d bytes)",
        image_path,
        original_size,
        img.size,
        fmt,
        buf.tell(),
    )
    return NormalizedImage(data=buf.getvalue(), format=fmt)
