"""Best-effort parsing of JSON objects emitted by a text generator.

Repairs are heuristic regex patches for the malformations generators
actually produce. Anything they cannot fix yields ``None``.
"""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?|\n?```\s*$")
_OBJECT = re.compile(r"\{[\s\S]*\}")

# String literals, including ones holding raw newlines.
_STRING = re.compile(r'"(?:[^"\\]|\\.)*"')

# Applied in order, outside string literals only.
SANITIZERS: list[tuple[str, re.Pattern, str]] = [
    ("trailing commas", re.compile(r",(\s*[}\]])"), r"\1"),
    ("leading zeros", re.compile(r"([:\[,]\s*)-?0+(\d)"), None),
    ("non-finite numbers", re.compile(r"([:\[,]\s*)-?(?:NaN|Infinity)\b", re.IGNORECASE), r"\1null"),
]

# Raw control characters are invalid inside strings too, so this runs everywhere.
_CONTROL = re.compile(r"[\x00-\x1f\x7f]")


def _strip_leading_zeros(match: re.Match) -> str:
    # keep a negative sign: ": -007" -> ": -7"
    prefix, digit = match.group(1), match.group(2)
    sign = "-" if match.group(0)[len(prefix):].startswith("-") else ""
    return f"{prefix}{sign}{digit}"


def _reject_constant(name: str):
    # json accepts NaN/Infinity by default; route them through the sanitizers
    raise ValueError(f"non-finite number {name}")


def _patch_structure(segment: str) -> str:
    for _name, pattern, replacement in SANITIZERS:
        if replacement is None:
            segment = pattern.sub(_strip_leading_zeros, segment)
        else:
            segment = pattern.sub(replacement, segment)
    return segment


def sanitize_json(text: str) -> str:
    """Patch common malformations, leaving string contents verbatim."""
    parts = []
    last = 0
    for match in _STRING.finditer(text):
        parts.append(_patch_structure(text[last:match.start()]))
        parts.append(match.group(0))
        last = match.end()
    parts.append(_patch_structure(text[last:]))
    return _CONTROL.sub(" ", "".join(parts))


def try_parse_structured_output(raw_text: str | None) -> dict | None:
    """Parse the outermost JSON object in ``raw_text``; ``None`` if impossible."""
    if not raw_text:
        return None

    text = _FENCE.sub("", raw_text.strip())
    match = _OBJECT.search(text)
    if match is None:
        logger.warning("No JSON object found in response (%d chars)", len(raw_text))
        return None

    candidate = match.group(0)
    try:
        parsed = json.loads(candidate, parse_constant=_reject_constant)
    except ValueError:
        try:
            parsed = json.loads(sanitize_json(candidate))
        except ValueError as exc:
            logger.warning("Structured output parse failed: %s; preview: %s", exc, raw_text[:300])
            return None

    if not isinstance(parsed, dict):
        return None
    return parsed
