"""Best-effort JSON extraction from LLM output.

Models asked for "JSON only" still wrap answers in markdown fences, leave
literal newlines inside strings, or emit trailing commas.  The helpers here
try several strategies before giving up.
"""

from __future__ import annotations

import json
import re
from typing import Any

from src.utils.logging import get_logger

logger = get_logger("utils.json_extractor")

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)
_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


def _escape_newlines_in_strings(text: str) -> str:
    """Replace raw CR/LF characters that appear inside JSON string literals."""
    out: list[str] = []
    in_string = False
    escaped = False
    i = 0
    while i < len(text):
        char = text[i]
        if in_string and char in "\r\n":
            out.append("\\n")
            # Collapse CRLF into a single escape.
            if char == "\r" and i + 1 < len(text) and text[i + 1] == "\n":
                i += 1
        else:
            if char == '"' and not escaped:
                in_string = not in_string
            out.append(char)
        escaped = char == "\\" and not escaped
        i += 1
    return "".join(out)


def _parse_clean(text: str) -> Any:
    cleaned = _escape_newlines_in_strings(text)
    cleaned = re.sub(r":\s*undefined\b", ": null", cleaned)
    cleaned = re.sub(r",\s*}", "}", cleaned)
    cleaned = re.sub(r",\s*]", "]", cleaned)
    return json.loads(cleaned)


def extract_json(text: str) -> Any:
    """Extract a JSON value from *text*.

    Tries, in order: a fenced code block, the outermost ``{...}``, the
    outermost ``[...]``, then the whole string.

    Raises :class:`json.JSONDecodeError` when every strategy fails.
    """
    text = (text or "").strip()

    candidates: list[str] = []
    match = _FENCED_BLOCK.search(text)
    if match:
        candidates.append(match.group(1).strip())
    match = _OBJECT.search(text)
    if match:
        candidates.append(match.group(0))
    match = _ARRAY.search(text)
    if match:
        candidates.append(match.group(0))
    candidates.append(text)

    for candidate in candidates:
        try:
            return _parse_clean(candidate)
        except json.JSONDecodeError:
            continue

    raise json.JSONDecodeError("No JSON value found in response", text, 0)


def extract_json_object(text: str) -> dict:
    """Like :func:`extract_json` but requires the result to be an object."""
    value = extract_json(text)
    if not isinstance(value, dict):
        raise json.JSONDecodeError("Expected a JSON object", text or "", 0)
    return value


def extract_json_safe(text: str, fallback: Any = None) -> Any:
    """Never-raising variant of :func:`extract_json`."""
    try:
        return extract_json(text)
    except json.JSONDecodeError as exc:
        logger.warning("json_extraction_fallback", error=str(exc), raw=(text or "")[:200])
        return fallback
