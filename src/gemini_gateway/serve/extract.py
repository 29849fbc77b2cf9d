"""Pull generated text out of Gemini responses.

The API has nested the text differently across versions and SDKs, so a few
known paths are tried in order before giving up and dumping the whole object.
"""
from __future__ import annotations
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

LOGGER = logging.getLogger("gemini_gateway.serve.extract")

_MISSING = object()

TEXT_PATHS: tuple[tuple[str | int, ...], ...] = (
    ("response", "candidates", 0, "content", "parts", 0, "text"),
    ("candidates", 0, "content", "parts", 0, "text"),
    ("response", "candidates", 0, "content", "text"),
)


def _step(obj: Any, key: str | int) -> Any:
    if isinstance(key, int):
        if isinstance(obj, Sequence) and not isinstance(obj, (str, bytes)):
            return obj[key] if -len(obj) <= key < len(obj) else _MISSING
        return _MISSING
    if isinstance(obj, Mapping):
        return obj.get(key, _MISSING)
    return getattr(obj, key, _MISSING)


def _lookup(obj: Any, path: tuple[str | int, ...]) -> Any:
    for key in path:
        if obj is None or obj is _MISSING:
            return _MISSING
        obj = _step(obj, key)
    return obj


def dump_response(response: Any) -> str:
    try:
        return json.dumps(response, indent=2, ensure_ascii=False, default=str)
    except ValueError:
        # circular references
        return repr(response)


def extract_text(response: Any) -> str:
    """
    Return the first generated text fragment in ``response``.

    Never raises: falls back to an indented JSON dump of the response when
    no known path holds a value.
    """
    try:
        for path in TEXT_PATHS:
            value = _lookup(response, path)
            if value is not None and value is not _MISSING:
                return value if isinstance(value, str) else str(value)
    except Exception as e:
        LOGGER.warning("Error extracting text: %s", e)
    else:
        LOGGER.warning("No text found in model response; returning raw dump")
    return dump_response(response)
