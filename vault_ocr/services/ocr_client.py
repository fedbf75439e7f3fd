"""
Clova OCR client — uploads normalised image bytes to the General OCR
endpoint and returns the text fragments it recognised.
"""

import json
import logging
import time
import uuid

import requests

from vault_ocr.config import Settings
from vault_ocr.services.line_reconstructor import TextFragment, fragments_from_clova

logger = logging.getLogger(__name__)

CLOVA_VERSION = "V2"


class OcrError(Exception):
    """The OCR service could not be reached or returned an unusable reply."""


class ClovaOcrClient:
    """Thin wrapper around the Clova General OCR HTTP API."""

    def __init__(self, settings: Settings, session=None):
        self.settings = settings
        self.session = session or requests.Session()

    def _message(self, image_format: str) -> dict:
        now_ms = int(time.time() * 1000)
        return {
            "version": CLOVA_VERSION,
            "requestId": uuid.uuid4().hex,
            "timestamp": now_ms,
            "images": [{"format": image_format, "name": "image"}],
        }

    def recognize(self, image_bytes: bytes, image_format: str = "png") -> dict:
        """POST the image and return the raw JSON response."""
        try:
            resp = self.session.post(
                self.settings.clova_api_url,
                headers={"X-OCR-SECRET": self.settings.clova_secret_key},
                data={"message": json.dumps(self._message(image_format))},
                files={"file": (f"image.{image_format}", image_bytes)},
                timeout=self.settings.ocr_timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as exc:
            raise OcrError(f"Clova OCR request failed: {exc}") from exc
        except ValueError as exc:
            raise OcrError("Clova OCR returned a non-JSON response") from exc

    def extract_fragments(self, image_bytes: bytes, image_format: str = "png") -> list[TextFragment]:
        result = self.recognize(image_bytes, image_format)
        images = result.get("images") or []
        if images and images[0].get("inferResult") not in (None, "SUCCESS"):
            raise OcrError(
                f"Clova OCR inference failed: {images[0].get('inferResult')} "
                f"{images[0].get('message', '')}".strip()
            )
        fragments = fragments_from_clova(result)
        logger.info("OCR returned %d fragment(s).", len(fragments))
        return fragments
