"""Tolerant parsing of completion-service replies into cuts.

Completion services are asked for ``{"cuts": [{"start", "end", "description"}]}``
but are not bound to it: replies may be wrapped in a markdown fence, surrounded
by prose, or use other key spellings. ``parse_cuts`` never raises; anything it
cannot read yields no cuts.
"""
import json
import logging
import math
from typing import Any, List, Optional

from shortclips.models.cut import VideoCut
from shortclips.pipeline.intervals import is_valid_range

logger = logging.getLogger(__name__)

LIST_KEYS = ("cuts", "clips", "moments")
START_KEYS = ("start", "start_seconds", "startSeconds")
END_KEYS = ("end", "end_seconds", "endSeconds")
DESCRIPTION_KEYS = ("description", "reason")


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ``` or ```json fence, if any."""
    text = text.strip()
    if not text.startswith("```"):
        return text

    first_newline = text.find("\n")
    if first_newline == -1:
        # Single-line fence such as ```{"cuts": []}```
        body = text[3:]
        if body.lower().startswith("json"):
            body = body[4:]
    else:
        body = text[first_newline + 1:]

    body = body.rstrip()
    if body.endswith("```"):
        body = body[:-3]
    return body.strip()


def extract_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` span in text.

    Braces inside JSON string literals are ignored. Returns None when there is
    no opening brace or it is never closed.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False

    for pos in range(start, len(text)):
        ch = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:pos + 1]

    return None


def _first_number(item: dict, keys) -> Optional[float]:
    for key in keys:
        if key not in item:
            continue
        value = item[key]
        if isinstance(value, bool) or value is None:
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number):
            return number
    return None


def _first_text(item: dict, keys) -> Optional[str]:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _cut_items(payload: Any) -> List[Any]:
    if not isinstance(payload, dict):
        return []
    for key in LIST_KEYS:
        items = payload.get(key)
        if isinstance(items, list):
            return items
    return []


def parse_cuts(raw_text: Optional[str]) -> List[VideoCut]:
    """
    Parse a completion reply into cuts.

    Elements missing a start or end, or whose range is invalid (negative start,
    end <= start), are dropped individually; the rest of the reply is kept.

    Args:
        raw_text: Reply text as returned by the completion service

    Returns:
        Cuts in reply order; empty when nothing could be read
    """
    if not raw_text or not raw_text.strip():
        return []

    try:
        span = extract_json_object(strip_code_fence(raw_text))
        if span is None:
            return []

        cuts = []
        for item in _cut_items(json.loads(span)):
            if not isinstance(item, dict):
                continue
            start = _first_number(item, START_KEYS)
            end = _first_number(item, END_KEYS)
            if start is None or end is None or not is_valid_range(start, end):
                continue
            cuts.append(VideoCut(start, end, _first_text(item, DESCRIPTION_KEYS)))
        return cuts

    except (ValueError, TypeError, RecursionError) as e:
        logger.debug(f"Could not parse completion reply: {e}")
        return []
