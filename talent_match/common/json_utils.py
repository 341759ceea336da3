"""
JSON Utilities for LLM Response Parsing.

LLM output may contain malformed JSON (single quotes, trailing commas,
unquoted keys, code fences). Uses json-repair as a fallback when standard
json.loads() fails.
"""

import json
import re
from typing import Any, Union

JsonValue = Union[dict, list]


def strip_code_fences(text: str) -> str:
    """
    Remove markdown code block wrappers from text.

    Handles ```json ... ```, ``` ... ``` and surrounding whitespace.
    """
    result = text.strip()
    result = re.sub(r"^```[a-zA-Z0-9_-]*\s*\n?", "", result)
    if result.endswith("```"):
        result = result[:-3]
    return result.strip()


def parse_llm_json(text: str) -> JsonValue:
    """
    Parse a JSON object or array from LLM output with robust error recovery.

    Args:
        text: Raw LLM response text that may contain JSON

    Returns:
        Parsed dict or list

    Raises:
        ValueError: If no valid JSON can be extracted or repaired

    Example:
        >>> parse_llm_json('```json\\n["Add a README"]\\n```')
        ['Add a README']
        >>> parse_llm_json("{'suggestions': ['Deploy it',]}")
        {'suggestions': ['Deploy it']}
    """
    if not text or not text.strip():
        raise ValueError("Empty input: no JSON content to parse")

    json_str = _extract_json(strip_code_fences(text))

    try:
        parsed = json.loads(json_str)
    except json.JSONDecodeError:
        parsed = _repair(json_str)

    if not isinstance(parsed, (dict, list)):
        raise ValueError(f"Expected JSON object or array, got {type(parsed).__name__}")
    return parsed


def _repair(json_str: str) -> Any:
    from json_repair import repair_json

    try:
        repaired = repair_json(json_str, return_objects=True)
    except Exception as e:
        raise ValueError(f"Failed to repair JSON: {e}") from e

    if isinstance(repaired, str):
        # json_repair hands back "" when nothing is salvageable
        if not repaired:
            raise ValueError(f"Failed to parse or repair JSON: {json_str[:200]}")
        return json.loads(repaired)
    return repaired


def _extract_json(text: str) -> str:
    """
    Extract the outermost JSON object or array from surrounding prose.

    Raises:
        ValueError: If no JSON pattern is found
    """
    text = text.strip()
    if text.startswith(("{", "[")):
        return text

    match = re.search(r"(\{.*\}|\[.*\])", text, re.DOTALL)
    if match:
        return match.group(0)

    raise ValueError(f"No JSON found in text: {text[:200]}")
