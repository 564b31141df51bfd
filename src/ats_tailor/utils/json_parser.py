"""Extract a JSON object from raw LLM text."""

from __future__ import annotations

import json
from collections.abc import Iterator


def extract_json(text: str) -> dict | list:
    """Extract JSON from an LLM response, tolerating fences and chatter.

    Candidates are tried in order: the whole text, the text with ```json
    fences removed, the outermost ``{...}`` span, the outermost ``[...]``
    span, and finally a repair of a truncated object (missing closers).

    Raises:
        ValueError: when no candidate parses.
    """
    text = (text or "").strip()
    for candidate in _candidates(text):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    raise ValueError(f"Could not extract JSON from text: {text[:200]}...")


def extract_json_object(text: str) -> dict:
    """Like :func:`extract_json` but requires a top-level object."""
    data = extract_json(text)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def _candidates(text: str) -> Iterator[str]:
    if not text:
        return
    yield text
    unfenced = _strip_code_fences(text)
    if unfenced != text:
        yield unfenced
    for source in dict.fromkeys((unfenced, text)):
        span = _outer_span(source, "{", "}")
        if span:
            yield span
    span = _outer_span(text, "[", "]")
    if span:
        yield span
    repaired = _close_truncated(unfenced)
    if repaired:
        yield repaired


def _strip_code_fences(text: str) -> str:
    lines = text.split("\n")
    if lines and lines[0].strip().startswith("```"):
        lines = lines[1:]
    while lines and lines[-1].strip() in ("```", ""):
        lines = lines[:-1]
    return "\n".join(lines).strip()


def _outer_span(text: str, opener: str, closer: str) -> str | None:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def _close_truncated(text: str) -> str | None:
    """Append missing ``]``/``}`` to an object cut off mid-stream."""
    start = text.find("{")
    if start == -1:
        return None
    candidate = text[start:]
    # Cut back to the last complete string so we never close inside a value.
    last_quote = candidate.rfind('"')
    if candidate.count('"') % 2 == 1 and last_quote > 0:
        candidate = candidate[:last_quote]
    candidate = candidate.rstrip().rstrip(",").rstrip()
    open_brackets = candidate.count("[") - candidate.count("]")
    open_braces = candidate.count("{") - candidate.count("}")
    if open_braces <= 0 and open_brackets <= 0:
        return None
    return candidate + "]" * max(0, open_brackets) + "}" * max(0, open_braces)
