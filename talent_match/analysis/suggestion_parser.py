"""
Defensive parsing of improvement suggestions.

Generator output is untrusted: it may be a JSON array, a JSON object
wrapping an array, a fenced code block (possibly after a line of prose),
a numbered list in prose, or nothing at all. classify() maps any of those
onto one of three variants and normalize() turns every variant into the
same list of at most five clean strings:

    Structured(items)  parsed JSON list (strings or {"suggestion": ...} dicts)
    FreeText(text)     anything else with content; split into lines
    Empty()            nothing usable

Normalization strips list markers, collapses whitespace, drops entries
shorter than 10 characters and case-insensitive duplicates, then keeps the
first five.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from ..common.errors import SuggestionParseError
from ..common.json_utils import parse_llm_json, strip_code_fences

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5
MIN_SUGGESTION_LENGTH = 10
MAX_SUGGESTION_LENGTH = 500

_WRAPPER_KEYS = ("suggestions", "improvements", "items", "recommendations")
_TEXT_KEYS = ("suggestion", "text", "title", "description")

_LIST_MARKER = re.compile(r"^\s*(?:[-*•+]|\d{1,2}[.)]|\(\d{1,2}\)|#+)\s+")
_FENCED_BLOCK = re.compile(r"```[a-zA-Z0-9_-]*[ \t]*\n(.*?)```", re.DOTALL)
_EMBEDDED_JSON = re.compile(r"(\{.*\}|\[.*\])", re.DOTALL)


@dataclass(frozen=True)
class Structured:
    items: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class FreeText:
    text: str


@dataclass(frozen=True)
class Empty:
    pass


ParseOutcome = Union[Structured, FreeText, Empty]


def _unwrap(value: Any) -> List[Any]:
    """Turn a parsed JSON value into a list of candidate items."""
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        for key in _WRAPPER_KEYS:
            if isinstance(value.get(key), list):
                return value[key]
        if any(key in value for key in _TEXT_KEYS):
            return [value]
    raise SuggestionParseError(f"JSON value has no suggestion list: {str(value)[:100]}")


def _parse_json_text(text: str) -> List[Any]:
    try:
        parsed = parse_llm_json(text)
    except ValueError as e:
        raise SuggestionParseError(str(e)) from e
    return _unwrap(parsed)


def classify(raw: Any) -> ParseOutcome:
    """Map raw generator output onto Structured, FreeText or Empty."""
    if raw is None:
        return Empty()

    if isinstance(raw, (list, dict)):
        try:
            return Structured(list(_unwrap(raw)))
        except SuggestionParseError as e:
            logger.warning(f"Unusable structured suggestions: {e}")
            return Empty()

    block = _fenced_block(str(raw))
    text = strip_code_fences(str(raw))
    if not text:
        return Empty()

    if block or text[0] in "[{":
        try:
            return Structured(_parse_json_text(block or text))
        except SuggestionParseError as e:
            logger.info(f"Suggestion output is not JSON, treating as text: {e}")
    else:
        # Unfenced JSON after a line of prose; no repair so "[README]" stays prose
        items = _embedded_json(text)
        if items is not None:
            return Structured(items)

    return FreeText(text)


def _fenced_block(text: str) -> str:
    """Body of the first fenced code block anywhere in text, or ""."""
    match = _FENCED_BLOCK.search(text)
    return match.group(1).strip() if match else ""


def _embedded_json(text: str) -> Optional[List[Any]]:
    match = _EMBEDDED_JSON.search(text)
    if not match:
        return None
    try:
        return _unwrap(json.loads(match.group(0)))
    except (ValueError, SuggestionParseError):
        return None


def _item_text(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in _TEXT_KEYS:
            value = item.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return ""


def _priority(item: Any, index: int) -> tuple:
    if isinstance(item, dict):
        try:
            return (int(item.get("priority")), index)
        except (TypeError, ValueError):
            pass
    # Items without a priority keep their position after prioritized ones
    return (MAX_SUGGESTIONS + 1, index)


def _clean(text: str) -> str:
    text = _LIST_MARKER.sub("", text.strip())
    text = " ".join(text.split())
    text = text.strip("*_` ")
    return text[:MAX_SUGGESTION_LENGTH]


def normalize(outcome: ParseOutcome, max_count: int = MAX_SUGGESTIONS) -> List[str]:
    """Deterministically turn any parse outcome into at most max_count suggestions."""
    if isinstance(outcome, Structured):
        ordered = sorted(enumerate(outcome.items), key=lambda pair: _priority(pair[1], pair[0]))
        texts = [_item_text(item) for _, item in ordered]
    elif isinstance(outcome, FreeText):
        texts = outcome.text.splitlines()
    else:
        texts = []

    results: List[str] = []
    seen = set()
    for text in texts:
        cleaned = _clean(text)
        key = cleaned.casefold()
        if len(cleaned) < MIN_SUGGESTION_LENGTH or key in seen:
            continue
        seen.add(key)
        results.append(cleaned)
        if len(results) >= max_count:
            break
    return results


def parse_suggestions(raw: Any, max_count: int = MAX_SUGGESTIONS) -> List[str]:
    """classify() then normalize(). Never raises."""
    return normalize(classify(raw), max_count)
