"""Text extraction and delta normalization.

The realtime protocol carries the same spoken or typed text under different
shapes depending on turn role and completion phase. These helpers hide that
variation from the reconciler and always return a flat string.
"""

from collections.abc import Mapping, Sequence
from typing import Any

TEXT_CONTENT_TYPES = frozenset({"input_text", "output_text", "text"})

# "audio" and "output_audio" are what assistant audio parts are called on the
# wire; "transcript" and "input_audio" cover user turns.
TRANSCRIPT_CONTENT_TYPES = frozenset({"transcript", "input_audio", "audio", "output_audio"})


def _field(source: Any, name: str) -> Any:
    """Read a field from a mapping or an attribute-bearing object."""
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _top_level(payload: Any, name: str) -> str | None:
    formatted = _field(payload, "formatted")
    if formatted is not None:
        value = _non_empty_str(_field(formatted, name))
        if value:
            return value
    return _non_empty_str(_field(payload, name))


def _content_entries(payload: Any) -> list[Any]:
    content = _field(payload, "content")
    if isinstance(content, Sequence) and not isinstance(content, (str, bytes)):
        return list(content)
    return []


def extract_text(payload: Any) -> str:
    """Extract the text of a conversation item or response payload.

    Search order:
        1. a pre-formatted top-level ``text`` field
        2. a pre-formatted top-level ``transcript`` field
        3. the first content entry of a text type carrying ``text``
        4. the first content entry of a transcript type carrying ``transcript``

    Args:
        payload: Item or response payload (mapping or object)

    Returns:
        The extracted text, or an empty string if nothing matched
    """
    if payload is None:
        return ""

    for name in ("text", "transcript"):
        value = _top_level(payload, name)
        if value:
            return value

    entries = _content_entries(payload)
    for entry in entries:
        if _field(entry, "type") in TEXT_CONTENT_TYPES:
            value = _non_empty_str(_field(entry, "text"))
            if value:
                return value

    for entry in entries:
        if _field(entry, "type") in TRANSCRIPT_CONTENT_TYPES:
            value = _non_empty_str(_field(entry, "transcript"))
            if value:
                return value

    return ""


def extract_response_text(response: Any) -> str:
    """Extract the final text of a response.

    Applies :func:`extract_text` to the response itself, then to each of its
    output items in order, returning the first non-empty result.
    """
    if response is None:
        return ""

    text = extract_text(response)
    if text:
        return text

    output = _field(response, "output")
    if isinstance(output, Sequence) and not isinstance(output, (str, bytes)):
        for item in output:
            text = extract_text(item)
            if text:
                return text
    return ""


def normalize_delta(delta: Any) -> str:
    """Flatten a delta payload into a string.

    A delta may be a bare string, a sequence of sub-deltas, or an object
    exposing ``text`` or ``transcript``. Anything else normalizes to "".
    """
    if delta is None:
        return ""
    if isinstance(delta, str):
        return delta
    if isinstance(delta, bytes):
        return delta.decode("utf-8", errors="replace")
    if isinstance(delta, Mapping) or hasattr(delta, "text") or hasattr(delta, "transcript"):
        text = normalize_delta(_field(delta, "text"))
        return text or normalize_delta(_field(delta, "transcript"))
    if isinstance(delta, Sequence):
        return "".join(normalize_delta(part) for part in delta)
    return ""
