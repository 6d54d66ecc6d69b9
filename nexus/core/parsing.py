"""Helpers for structured (JSON) model responses."""

from __future__ import annotations

import json
import re
from typing import Any

from nexus.utils.exceptions import (
    EmptyResponseError,
    InvalidResponseStructureError,
    ResponseParseError,
)
from nexus.utils.logging import get_logger

logger = get_logger(__name__)

# One outer ```lang ... ``` wrapper around the whole payload
_FENCE_RE = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove exactly one markdown code fence wrapping the whole text.

    Args:
        text: Raw response text.

    Returns:
        The trimmed inner payload, or the trimmed text if it is not fenced.
    """
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match and match.group(2):
        return match.group(2).strip()
    return stripped


def parse_json_object(raw_text: str | None, source: str) -> dict[str, Any]:
    """Parse a model response that must be a single JSON object.

    Args:
        raw_text: Raw response text.
        source: Human-readable name of the producing capability for messages.

    Returns:
        The parsed object.

    Raises:
        EmptyResponseError: If the text is missing or blank.
        ResponseParseError: If the payload is not valid JSON.
        InvalidResponseStructureError: If the payload is not a JSON object.
    """
    if raw_text is None or not raw_text.strip():
        logger.error("Empty structured response", source=source)
        raise EmptyResponseError(source)

    payload = strip_code_fence(raw_text)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.error(
            "Structured response is not valid JSON",
            source=source,
            raw_text=raw_text,
            error=str(e),
        )
        raise ResponseParseError(raw_text, source=source, cause=e) from e

    if not isinstance(data, dict):
        logger.error("Structured response is not an object", source=source, raw_text=raw_text)
        raise InvalidResponseStructureError(
            f"{source} returned an invalid response structure.", raw_payload=data
        )

    return data
