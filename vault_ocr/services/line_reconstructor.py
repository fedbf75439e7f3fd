"""
Line Reconstructor — turns the fragment list returned by the OCR service
into logical text lines.

The OCR service already emits fragments in reading order and flags the
last fragment of each visual line, so lines are closed on those markers
rather than re-sorted by geometry.  The coordinates kept on each line are
hints for the formatter, not a sort key.
"""

import json
import math
from dataclasses import dataclass

Point = tuple[float, float]


def _coord(vertex, key: str) -> float:
    if not isinstance(vertex, dict):
        return math.inf
    value = vertex.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return math.inf


@dataclass(frozen=True)
class TextFragment:
    """One recognised word/phrase with its bounding polygon."""
    text: str
    bounding_box: tuple[Point, ...] | None = None
    is_line_break: bool = False

    @classmethod
    def from_clova(cls, field: dict) -> "TextFragment":
        """Build a fragment from a Clova ``fields[]`` entry."""
        poly = field.get("boundingPoly")
        vertices = poly.get("vertices") if isinstance(poly, dict) else None
        box = None
        if isinstance(vertices, (list, tuple)) and vertices:
            box = tuple((_coord(v, "x"), _coord(v, "y")) for v in vertices)
        return cls(
            text=str(field.get("inferText", "")),
            bounding_box=box,
            is_line_break=bool(field.get("lineBreak", False)),
        )


@dataclass(frozen=True)
class ReconstructedLine:
    text: str
    y: float
    x: float | None = None


def fragments_from_clova(response: dict) -> list[TextFragment]:
    """Extract ``images[0].fields`` from a Clova OCR response."""
    images = (response or {}).get("images") or []
    if not images:
        return []
    fields = images[0].get("fields") or []
    return [TextFragment.from_clova(f) for f in fields]


def _min_coord(fragments: list[TextFragment], axis: int) -> float:
    values = [
        min((point[axis] for point in frag.bounding_box), default=math.inf)
        if frag.bounding_box
        else math.inf
        for frag in fragments
    ]
    return min(values, default=math.inf)


def _join(fragments: list[TextFragment]) -> str:
    return " ".join(frag.text for frag in fragments)


def reconstruct_lines(fragments) -> list[ReconstructedLine]:
    """
    Group fragments into lines in emission order.

    A line closes on every line-break marker; any trailing fragments form
    one final line, which also carries its minimum x.
    """
    lines: list[ReconstructedLine] = []
    current: list[TextFragment] = []

    for frag in fragments:
        current.append(frag)
        if frag.is_line_break:
            lines.append(ReconstructedLine(text=_join(current), y=_min_coord(current, 1)))
            current = []

    if current:
        lines.append(
            ReconstructedLine(
                text=_join(current),
                y=_min_coord(current, 1),
                x=_min_coord(current, 0),
            )
        )
    return lines


def _finite(value: float | None) -> float | None:
    if value is None or math.isinf(value):
        return None
    return value


def lines_to_prompt_text(lines: list[ReconstructedLine]) -> str:
    """Serialise lines as ``{"texts": [{"text", "y"[, "x"]}]}`` for the prompt."""
    texts = []
    for line in lines:
        entry = {"text": line.text, "y": _finite(line.y)}
        if line.x is not None:
            entry["x"] = _finite(line.x)
        texts.append(entry)
    return json.dumps({"texts": texts}, ensure_ascii=False)
