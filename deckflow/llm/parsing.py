"""Tolerant JSON extraction from model output."""

import json
import re

import structlog

from deckflow.errors import AnalyzerServiceError

logger = structlog.get_logger(__name__)

_CODE_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


class ResponseParseError(AnalyzerServiceError):
    """Model output did not contain a JSON object."""

    pass


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span, ignoring braces inside strings."""
    depth = 0
    start = None
    in_string = False
    escape_next = False

    for i, char in enumerate(text):
        if escape_next:
            escape_next = False
            continue
        if char == "\\" and in_string:
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == "{":
            if depth == 0:
                start = i
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                return text[start:i + 1]

    return None


def clean_json_string(text: str) -> str:
    """Drop BOM/zero-width characters and trailing commas."""
    text = text.strip("\ufeff\u200b\u200c\u200d")
    return _TRAILING_COMMA.sub(r"\1", text)


def parse_json_response(response: str) -> dict:
    """Parse a JSON object from a model response.

    Handles code fences, preamble text before the object and trailing
    commas.

    Raises:
        ResponseParseError: If no JSON object can be recovered.
    """
    if not response or not response.strip():
        raise ResponseParseError("Empty response from analyzer")

    text = response.strip()

    match = _CODE_BLOCK.search(text)
    if match and match.group(1).strip().startswith("{"):
        text = match.group(1).strip()

    candidates = [text]
    extracted = extract_json_object(text)
    if extracted and extracted != text:
        candidates.append(extracted)

    for candidate in candidates:
        try:
            parsed = json.loads(clean_json_string(candidate))
        except json.JSONDecodeError as e:
            logger.debug("json_parse_attempt_failed", error=str(e))
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.error("json_parse_error", response_preview=text[:300])
    raise ResponseParseError(f"Failed to parse analyzer JSON response. Response preview: {text[:150]}")
