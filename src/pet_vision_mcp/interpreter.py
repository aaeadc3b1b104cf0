"""Turn Gemini's free-text health assessment into an ``AnalysisResult``.

The model is asked for six labelled sections, but the format is not
guaranteed. Interpretation therefore runs in two passes:

1. **Label pass**: tokenize the text at every known label and take each
   label's content up to the next label (or end of text).
2. **Block pass**, only when the label pass looks incomplete (no summary,
   or no observations although the label is present): split on blank lines
   and read each block that starts with a label. List sections without
   bullet markers fall back to every line longer than 10 characters.

Whatever neither pass finds keeps its default. ``parse`` never raises.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .models.analysis import AnalysisResult

logger = logging.getLogger(__name__)

CONCERN_LEVEL = "CONCERN_LEVEL:"
SUMMARY = "SUMMARY:"
OBSERVATIONS = "OBSERVATIONS:"
POSSIBLE_CAUSES = "POSSIBLE_CAUSES:"
RECOMMENDATIONS = "RECOMMENDATIONS:"
VETERINARY_RECOMMENDATION = "VETERINARY_RECOMMENDATION:"

LABELS: tuple[str, ...] = (
    CONCERN_LEVEL,
    SUMMARY,
    OBSERVATIONS,
    POSSIBLE_CAUSES,
    RECOMMENDATIONS,
    VETERINARY_RECOMMENDATION,
)

# label -> AnalysisResult field
_SCALAR_FIELDS = {
    CONCERN_LEVEL: "concern_level",
    SUMMARY: "summary",
    VETERINARY_RECOMMENDATION: "veterinary_recommendation",
}
_LIST_FIELDS = {
    OBSERVATIONS: "observations",
    POSSIBLE_CAUSES: "possible_causes",
    RECOMMENDATIONS: "recommendations",
}

_BULLETS = ("-", "•")
_MIN_UNMARKED_ITEM = 10
# A label only counts when it is not the tail of a longer identifier.
_LABEL_RE = re.compile(r"(?<![A-Za-z0-9_])(" + "|".join(re.escape(label) for label in LABELS) + ")")
_BLANK_LINE_RE = re.compile(r"\n[ \t]*\n")


@dataclass(frozen=True)
class _Section:
    label: str
    content: str


def _clean(raw_text: object) -> str:
    if not isinstance(raw_text, str):
        return ""
    return raw_text.replace("**", "").replace("\r\n", "\n")


def _tokenize(text: str) -> list[_Section]:
    """Split *text* at every label; text before the first label is dropped."""
    matches = list(_LABEL_RE.finditer(text))
    sections = []
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        sections.append(_Section(match.group(1), text[match.end():end]))
    return sections


def _lines(content: str) -> list[str]:
    return [line.strip() for line in content.split("\n") if line.strip()]


def _bullet_items(lines: list[str]) -> list[str]:
    return [line[1:].strip() for line in lines if line.startswith(_BULLETS)]


def _list_items(content: str, *, allow_unmarked: bool) -> list[str]:
    lines = _lines(content)
    items = _bullet_items(lines)
    if not items and allow_unmarked:
        items = [line for line in lines if len(line) > _MIN_UNMARKED_ITEM]
    return items


def _label_pass(text: str, fields: dict) -> None:
    seen: set[str] = set()
    for section in _tokenize(text):
        if section.label in seen:
            continue
        seen.add(section.label)
        if section.label in _LIST_FIELDS:
            fields[_LIST_FIELDS[section.label]] = _list_items(section.content, allow_unmarked=False)
        elif value := section.content.strip():
            fields[_SCALAR_FIELDS[section.label]] = value


def _block_pass(text: str, fields: dict) -> None:
    for block in _BLANK_LINE_RE.split(text):
        block = block.strip()
        label = next((lbl for lbl in LABELS if block.startswith(lbl)), None)
        if label is None:
            continue
        content = block[len(label):]
        if trailing := _LABEL_RE.search(content):
            content = content[:trailing.start()]
        if label in _LIST_FIELDS:
            if items := _list_items(content, allow_unmarked=True):
                fields[_LIST_FIELDS[label]] = items
        elif value := content.strip():
            fields[_SCALAR_FIELDS[label]] = value


def _needs_block_pass(text: str, fields: dict) -> bool:
    if not fields.get("summary"):
        return True
    return not fields.get("observations") and OBSERVATIONS in text


def parse(raw_text: str) -> AnalysisResult:
    """Interpret a model answer; missing sections fall back to defaults.

    Args:
        raw_text: The model's text response. Non-string input reads as empty.

    Returns:
        A complete record. If interpretation fails midway, the fields read
        so far are kept and the rest default.
    """
    fields: dict = {}
    try:
        text = _clean(raw_text)
        _label_pass(text, fields)
        if _needs_block_pass(text, fields):
            logger.info("Label pass incomplete, trying blank-line blocks")
            _block_pass(text, fields)
    except Exception:
        logger.exception("Response interpretation failed; returning partial record")

    result = AnalysisResult(**fields)
    logger.debug(
        "Parsed result: concern=%s observations=%d causes=%d recommendations=%d",
        result.concern_level,
        len(result.observations),
        len(result.possible_causes),
        len(result.recommendations),
    )
    return result
