"""
Annotation Requester — sends the reconstructed OCR lines plus note context
to Claude in a single request and turns the reply into an
``AnnotationBundle``:

  1. improvedText    — the OCR text rewritten as clean markdown
  2. oneLineSummary  — a one-sentence summary
  3. newFileName     — a filename suggestion for the image
  4. categoryTag     — an Obsidian tag derived from the folder path

The reply is all-or-nothing: anything short of a complete JSON object,
and any transport failure, yields the empty bundle.
"""

import json
import logging
from dataclasses import dataclass

import anthropic

from vault_ocr.config import Settings

logger = logging.getLogger(__name__)

BUNDLE_KEYS = ("improvedText", "oneLineSummary", "newFileName", "categoryTag")


@dataclass(frozen=True)
class AnnotationBundle:
    """Everything the model produces for one image.  Never holds None."""
    improved_text: str = ""
    one_line_summary: str = ""
    new_file_name: str = ""
    category_tag: str = ""

    @classmethod
    def empty(cls) -> "AnnotationBundle":
        return cls()

    def is_empty(self) -> bool:
        return self == AnnotationBundle.empty()


@dataclass(frozen=True)
class Ok:
    value: AnnotationBundle


@dataclass(frozen=True)
class Err:
    reason: str


ANNOTATION_SYSTEM_PROMPT = """\
You are an expert at turning raw OCR output into tidy Obsidian notes, and
you always answer with a single JSON object.
"""

ANNOTATION_USER_PROMPT = """\
Use the information below to produce four results at once, as JSON.

[Input]
1) OCR text:
"{ocr_text}"

2) Note title: "{note_title}"
3) Current file name: "{old_file_name}"
4) Folder path (up to 3 levels): "{category_path}"

[Requirements]
1) improvedText:
   - The OCR text is a JSON list of (x, y, text) lines extracted from an image.
   - Use the coordinates to recover sections and lists, and write clean
     markdown (###, - and so on).
   - Leave out presenter names or labels unrelated to the body, such as
     slide corner captions.
   - Do not include coordinates in the result, only text.
   - Wrap the result in a code block (```).
2) oneLineSummary:
   - Summarise improvedText in one sentence.
3) newFileName:
   - A "NoteTitle_Summary" style file name (no extension, 50 characters or fewer).
   - Replace spaces and special characters with '_'.
4) categoryTag:
   - Interpret the folder path as a tag such as "#Study/Session".
   - Use "" when there is no folder path.

[Output format]
Return ONLY the JSON object, nothing else.
{{
  "improvedText": "...",
  "oneLineSummary": "...",
  "newFileName": "...",
  "categoryTag": "..."
}}"""


def build_prompt(ocr_text: str, note_title: str, old_file_name: str, category_path: str) -> str:
    return ANNOTATION_USER_PROMPT.format(
        ocr_text=ocr_text,
        note_title=note_title,
        old_file_name=old_file_name,
        category_path=category_path,
    )


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
    if text.endswith("```"):
        text = text.rsplit("```", 1)[0]
    return text.strip()


def parse_annotation(text: str) -> Ok | Err:
    """Parse a model reply into a bundle.  Every key must be present and non-null."""
    try:
        data = json.loads(_strip_fences(text))
    except json.JSONDecodeError as exc:
        return Err(f"reply is not valid JSON ({exc.msg})")

    if not isinstance(data, dict):
        return Err(f"reply is a JSON {type(data).__name__}, not an object")

    missing = [key for key in BUNDLE_KEYS if data.get(key) is None]
    if missing:
        return Err(f"reply is missing {', '.join(missing)}")

    return Ok(
        AnnotationBundle(
            improved_text=str(data["improvedText"]),
            one_line_summary=str(data["oneLineSummary"]),
            new_file_name=str(data["newFileName"]),
            category_tag=str(data["categoryTag"]),
        )
    )


class AnnotationRequester:
    """Single-shot Claude call producing an AnnotationBundle."""

    def __init__(self, settings: Settings, client=None):
        self.settings = settings
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self.settings.anthropic_api_key)
        return self._client

    def request(
        self,
        ocr_text: str,
        note_title: str = "",
        old_file_name: str = "",
        category_path: str = "",
    ) -> AnnotationBundle:
        """Ask Claude for the bundle.  Never raises; failures give the empty bundle."""
        prompt = build_prompt(ocr_text, note_title, old_file_name, category_path)
        logger.debug("OCR text for %s: %s", old_file_name, ocr_text)

        try:
            response = self._get_client().messages.create(
                model=self.settings.anthropic_model,
                max_tokens=4096,
                temperature=0.3,
                system=ANNOTATION_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
            text = response.content[0].text
        except anthropic.APIError:
            logger.exception("Annotation request failed for %s", old_file_name)
            return AnnotationBundle.empty()
        except (IndexError, AttributeError):
            logger.exception("Unexpected annotation response shape for %s", old_file_name)
            return AnnotationBundle.empty()

        result = parse_annotation(text)
        if isinstance(result, Err):
            logger.error(
                "Failed to parse annotation for %s: %s — raw: %s",
                old_file_name,
                result.reason,
                text[:300],
            )
            return AnnotationBundle.empty()

        logger.debug("Annotation for %s: %s", old_file_name, result.value)
        return result.value
