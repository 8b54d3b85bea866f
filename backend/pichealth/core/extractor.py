"""
PicHealth API — Response Extractor
===================================

What:  Recovers a JSON object from a model's free-form text response.
Why:   The model is told to answer with JSON only, but that is a prompt-level
       contract. It regularly wraps the object in a ```json fence, prefixes
       a sentence of prose, or trails an explanation after the closing brace.
How:   Candidate substrings are tried in a fixed order; the first one that
       parses to a JSON *object* wins:

           1. interior of a fenced code block (```json ... ``` or ``` ... ```)
           2. balanced-brace object starting at the first "{"
           3. greedy span from the first "{" to the last "}"
           4. the whole string

       A fenced block always beats loose braces. The balanced scan tracks
       string literals and escapes, so a "}" inside a description does not
       end the object early, and trailing prose containing braces does not
       extend it.
Who:   Called by OCR and insight services right after the AI call.
"""

import json
import logging
import re
from typing import Any, Dict, Iterator, Optional

from pichealth.exceptions import ExtractionFailed

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_GREEDY_RE = re.compile(r"\{[\s\S]*\}")


def _balanced_object(text: str) -> Optional[str]:
    """Return the substring from the first '{' to its matching '}', or None."""
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def _candidates(text: str) -> Iterator[str]:
    fence = _FENCE_RE.search(text)
    if fence:
        yield fence.group(1)

    balanced = _balanced_object(text)
    if balanced is not None:
        yield balanced

    greedy = _GREEDY_RE.search(text)
    if greedy:
        yield greedy.group(0)

    yield text


def extract_json(text: Optional[str]) -> Dict[str, Any]:
    """
    Extract the JSON object embedded in a model response.

    Args:
        text: Raw model output. None and blank strings are treated as empty.

    Returns:
        The parsed object as a dict.

    Raises:
        ExtractionFailed: No candidate parses to a JSON object. Arrays and
            scalars count as failures because every domain expects an object.
    """
    if not text or not text.strip():
        raise ExtractionFailed(message="Model response was empty")

    for candidate in _candidates(text):
        try:
            parsed = json.loads(candidate)
        except (ValueError, TypeError):
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.warning("No JSON object found in model response (%d chars)", len(text))
    raise ExtractionFailed(context={"length": len(text)})


def try_extract_json(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Like extract_json() but returns None instead of raising."""
    try:
        return extract_json(text)
    except ExtractionFailed:
        return None
