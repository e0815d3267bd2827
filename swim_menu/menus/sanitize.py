"""Extraction of a JSON object from raw model output.

Model output may be wrapped in Markdown fences and surrounded by commentary.
The sanitizer never raises: when no valid JSON object can be isolated it hands
back the original text so the caller's JSON parse fails with a clear error
instead of silently working on truncated content.
"""

import json
import re

from loguru import logger

_FENCE_RE = re.compile(r"```(?:json)?\s*\n([\s\S]*?)\n```", re.IGNORECASE)


def strip_code_fence(raw: str) -> str:
    """Return the body of the first fenced code block, trimmed.

    Text without a fence is only trimmed.
    """
    if not raw:
        return raw
    match = _FENCE_RE.search(raw)
    body = match.group(1) if match else raw
    return body.strip()


def sanitize(raw: str) -> str:
    """Isolate a JSON object in ``raw``.

    Args:
        raw: Raw model output

    Returns:
        The JSON object text when it parses, otherwise ``raw`` unchanged
    """
    if not raw:
        return raw

    cleaned = strip_code_fence(raw)

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        cleaned = cleaned[start : end + 1]

    try:
        json.loads(cleaned)
    except ValueError as e:
        logger.warning(
            "Sanitized model output is not valid JSON, returning original content",
            error=str(e),
            preview=raw[:200],
        )
        return raw
    return cleaned
