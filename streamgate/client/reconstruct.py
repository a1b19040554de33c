"""
Response reconstruction for display.

Turns the raw text of a (possibly partial) answer into display text.
Three tiers are tried in order:

1. Strict: the text holds a JSON object with summary, details and
   key_points; it is validated and rendered as markdown.
2. Recovery: the fields are pulled out with regular expressions, which
   also works on truncated or slightly broken JSON. Lossy by nature.
3. Fallback: the raw text with cosmetic cleanup only.

Every function here is pure, and ``reconstruct`` is idempotent.
"""

import json
import re
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

INVISIBLE_CHARACTERS = "\u200b\u200c\u200d\u2060\u00a0\u202f"

_INVISIBLE_RE = re.compile(f"[{INVISIBLE_CHARACTERS}]")

_COSMETIC_RULES = (
    # "$ 12" -> "$12"
    (re.compile(r"\$[ \t]+(\d)"), r"$\1"),
    # "5 %" -> "5%"
    (re.compile(r"(\d+(?:\.\d+)?)[ \t]*%"), r"\1%"),
    # "5million" -> "5 million"
    (re.compile(r"(\d)([A-Za-z])"), r"\1 \2"),
    # "end.Next" -> "end. Next"
    (re.compile(r"([.!?])([A-Z])"), r"\1 \2"),
    (re.compile(r"[ \t]+"), " "),
    (re.compile(r" +$", re.MULTILINE), ""),
)

_STRING_FIELD = r'"{name}"\s*:\s*"((?:[^"\\]|\\.)*)"'
_SUMMARY_RE = re.compile(_STRING_FIELD.format(name="summary"), re.DOTALL)
_DETAILS_RE = re.compile(_STRING_FIELD.format(name="details"), re.DOTALL)
_KEY_POINTS_RE = re.compile(r'"key_points"\s*:\s*\[(.*?)\]', re.DOTALL)

KEY_POINTS_HEADING = "### Key Points"


class StructuredResponse(BaseModel):
    """Answer laid out as summary, details and key points."""

    summary: str
    details: str
    key_points: List[str] = Field(...)
    status: Optional[str] = None

    @field_validator("summary", "details")
    @classmethod
    def require_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("key_points", mode="before")
    @classmethod
    def stringify_points(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [item if isinstance(item, str) else json.dumps(item) for item in v]
        return v


def normalize_invisible(text: str) -> str:
    """Replace zero-width and non-breaking spaces with plain spaces."""
    return _INVISIBLE_RE.sub(" ", text)


def clean_cosmetics(text: str) -> str:
    """
    Tidy spacing around currency, percentages, numbers and sentences.

    Line breaks are kept.

    Args:
        text: Text to clean

    Returns:
        Cleaned text
    """
    for pattern, replacement in _COSMETIC_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def parse_structured(text: str) -> Optional[StructuredResponse]:
    """
    Parse the JSON object embedded in text.

    The object is taken from the first ``{`` to the last ``}``, so
    surrounding prose or code fences are ignored.

    Args:
        text: Raw answer text

    Returns:
        Validated response, or None if the text holds no valid object
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        data = json.loads(text[start : end + 1])
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return StructuredResponse.model_validate(data)
    except ValidationError:
        return None


def _unescape(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"', strict=False)
    except ValueError:
        return raw.replace("\\n", "\n").replace('\\"', '"').replace("\\\\", "\\")


def _extract_key_points(text: str) -> List[str]:
    match = _KEY_POINTS_RE.search(text)
    if match is None:
        return []
    inner = match.group(1)
    try:
        points = json.loads(f"[{inner}]", strict=False)
        return [p if isinstance(p, str) else json.dumps(p) for p in points]
    except ValueError:
        # Naive split; commas inside a point break it apart.
        parts = (part.strip().strip('"').strip() for part in inner.split(","))
        return [part for part in parts if part]


def extract_fields(text: str) -> Optional[Tuple[str, str, List[str]]]:
    """
    Pull summary, details and key points out of broken JSON.

    Args:
        text: Raw answer text

    Returns:
        (summary, details, key_points), or None unless both summary and
        details are found
    """
    summary = _SUMMARY_RE.search(text)
    details = _DETAILS_RE.search(text)
    if summary is None or details is None:
        return None
    return (
        _unescape(summary.group(1)),
        _unescape(details.group(1)),
        _extract_key_points(text),
    )


def render_structured(summary: str, details: str, key_points: List[str]) -> str:
    """
    Render structured fields as markdown.

    The key points section is left out when there are none.
    """
    sections = [f"## {clean_cosmetics(summary)}", clean_cosmetics(details)]
    points = [p for p in (clean_cosmetics(point) for point in key_points) if p]
    if points:
        sections.append(KEY_POINTS_HEADING)
        sections.append("\n".join(f"- {point}" for point in points))
    return "\n\n".join(section for section in sections if section)


def reconstruct(raw_text: str) -> str:
    """
    Turn raw answer text into display text.

    Args:
        raw_text: Accumulated stream buffer

    Returns:
        Markdown for structured answers, cleaned text otherwise
    """
    text = normalize_invisible(raw_text)

    structured = parse_structured(text)
    if structured is not None:
        return render_structured(
            structured.summary, structured.details, structured.key_points
        )

    fields = extract_fields(text)
    if fields is not None:
        return render_structured(*fields)

    return clean_cosmetics(text)
