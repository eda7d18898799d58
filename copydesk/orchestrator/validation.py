"""Extraction and removal of the generator's trailing self-validation block."""

from __future__ import annotations

import re

from copydesk.models.generation import Validation

_VALIDATION = re.compile(
    r"^[ \t*#>_]*VALIDATION:[ \t*_]*$[\s\S]*?^\s*1\.\s*(.+?)\s*$"
    r"[\s\S]*?^\s*2\.\s*(.+?)\s*$"
    r"[\s\S]*?^\s*3\.\s*(.+?)\s*$",
    re.IGNORECASE | re.MULTILINE,
)

# Applied in order; later patterns mop up what earlier ones leave behind.
SCRUB_PATTERNS: list[re.Pattern] = [
    # dashed trailer under a VALIDATION: heading line, closed or running to the end
    re.compile(
        r"-{3,}[ \t]*\n\s*[ \t*#>_]*VALIDATION:[ \t*_]*(?:\n[\s\S]*?(?:\n[ \t]*-{3,}[ \t]*(?=\n|$)|$)|$)",
        re.IGNORECASE,
    ),
    re.compile(r"^[ \t*#>_]*VALIDATION:[ \t*_]*$[\s\S]*", re.IGNORECASE | re.MULTILINE),
    re.compile(r"\*\*FINAL OUTPUT VALIDATION:?\*\*[\s\S]*$", re.IGNORECASE),
    re.compile(r"^#{1,3}\s*FINAL OUTPUT VALIDATION[\s\S]*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"\*\*Quality Gate[\s\S]*?actionable advice\.\*", re.IGNORECASE),
    re.compile(r"^\d+\.\s*\*\*Quality Gate.*?(?=\n\n|\n?\Z)", re.IGNORECASE | re.MULTILINE | re.DOTALL),
    re.compile(r"^\d+\.\s*\*\*Universal Content Formula.*?(?=\n\n|\n?\Z)", re.IGNORECASE | re.MULTILINE | re.DOTALL),
    re.compile(r"^\d+\.\s*\*\*Would a smart professional.*?(?=\n\n|\n?\Z)", re.IGNORECASE | re.MULTILINE | re.DOTALL),
    re.compile(r"^\*\s*Would a (?:serious|smart) professional save this\?.*?(?=\n\n|\n?\Z)", re.IGNORECASE | re.MULTILINE | re.DOTALL),
    re.compile(r"^\*\s*Does this earn attention.*?(?=\n\n|\n?\Z)", re.IGNORECASE | re.MULTILINE | re.DOTALL),
    re.compile(r"^\*\s*Does it invite experience.*?(?=\n\n|\n?\Z)", re.IGNORECASE | re.MULTILINE | re.DOTALL),
    re.compile(r"^\*\s*ATTENTION:.*?ACTION:.*?(?=\n\n|\n?\Z)", re.IGNORECASE | re.MULTILINE | re.DOTALL),
]

_BLANK_RUNS = re.compile(r"\n{3,}")
_TRAILING_RULE = re.compile(r"(?:\n\s*-{3,}\s*)+$")


def extract_validation(text: str) -> Validation | None:
    match = _VALIDATION.search(text)
    if match is None:
        return None
    return Validation(
        assumption_invalidated=match.group(1).strip(),
        data_support=match.group(2).strip(),
        decision_to_reconsider=match.group(3).strip(),
    )


def clean_content(text: str) -> str:
    """Strip validation and quality-gate artifacts so only content remains."""
    for pattern in SCRUB_PATTERNS:
        text = pattern.sub("", text)
    text = _BLANK_RUNS.sub("\n\n", text).strip()
    return _TRAILING_RULE.sub("", text).strip()
