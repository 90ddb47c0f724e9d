"""Placeholder token helpers shared by the registry, memory store and restorer.

A placeholder is ``{{TYPE_ID}}``, or ``{{TYPE1_ID1|TYPE2_ID2}}`` when one value
was classified under several types.
"""

import re
from collections.abc import Iterable

PLACEHOLDER_TYPES: frozenset[str] = frozenset(
    {
        "EMAIL",
        "ADDRESS",
        "IP",
        "DATETIME",
        "LINK",
        "MONEY",
        "NUMBER",
        "ALNUM_ID",
        "PERSON",
        "LOCATION",
        "ORG",
    }
)

PLACEHOLDER_RE: re.Pattern[str] = re.compile(r"\{\{[A-Z0-9_|]+\}\}")

_SEGMENT_ID_RE = re.compile(r"^(?P<type>.+?)_(?P<id>\d+)$")
_ID_RE = re.compile(r"_(\d+)")


def make_placeholder(entity_type: str, placeholder_id: int) -> str:
    return f"{{{{{entity_type}_{placeholder_id}}}}}"


def inner(placeholder: str) -> str:
    """Strip the surrounding braces: ``{{PERSON_1}}`` -> ``PERSON_1``."""
    return placeholder[2:-2]


def combine_placeholders(parts: Iterable[str]) -> str:
    """Join single-type placeholders into one combined token."""
    parts = list(parts)
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0]
    return "{{" + "|".join(inner(part) for part in parts) + "}}"


def split_placeholder(placeholder: str) -> list[str]:
    """Return the single-type segments of a (possibly combined) placeholder."""
    return [segment for segment in inner(placeholder).split("|") if segment]


def is_placeholder_segment(segment: str) -> bool:
    """Check ``TYPE`` or ``TYPE_ID`` against the known type vocabulary."""
    if not segment:
        return False
    match = _SEGMENT_ID_RE.match(segment)
    type_part = match.group("type") if match else segment
    return type_part.upper() in PLACEHOLDER_TYPES


def looks_like_placeholder_value(value: str) -> bool:
    """True when *value* is already a placeholder (or a fragment of one)."""
    trimmed = value.strip()
    if not trimmed:
        return False
    if "{{" in trimmed and "}}" in trimmed:
        return True
    stripped = trimmed.replace("{", "").replace("}", "")
    if not stripped:
        return False
    if stripped.upper() == stripped and stripped in PLACEHOLDER_TYPES:
        return True
    return all(is_placeholder_segment(segment) for segment in stripped.split("|"))


def contains_placeholder(value: str) -> bool:
    return "{{" in value and "}}" in value


def max_placeholder_id(placeholders: Iterable[str]) -> int:
    """Largest numeric ID referenced by any of *placeholders*, 0 if none."""
    max_id = 0
    for token in placeholders:
        for raw_id in _ID_RE.findall(token):
            max_id = max(max_id, int(raw_id))
    return max_id


def extract_type(placeholder: str) -> str:
    """``{{PERSON_1|ORG_2}}`` -> ``PERSON|ORG``."""
    types: list[str] = []
    for segment in split_placeholder(placeholder):
        match = _SEGMENT_ID_RE.match(segment)
        types.append(match.group("type") if match else segment)
    return "|".join(types) or "UNKNOWN"


def build_replacement_regex(value: str) -> re.Pattern[str] | None:
    """Case-insensitive pattern for literal occurrences of *value*.

    Values made only of word characters and whitespace are matched on word
    boundaries; anything else is matched as a plain substring.
    """
    if len(value) < 2:
        return None
    escaped = re.escape(value)
    if re.fullmatch(r"[\w\s]+", value) and re.search(r"\w", value):
        return re.compile(rf"\b{escaped}\b", re.IGNORECASE)
    return re.compile(escaped, re.IGNORECASE)
