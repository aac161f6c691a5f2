"""
Field Normalizer.

Canonical forms for the loosely-typed identifiers that drive matching:
zone labels, zone numbers, project codes, activity names and input types.
All functions are total: None and empty input give an empty result,
never an exception.
"""
import re
from typing import Optional

from ..config import get_config
from ..domain.entities import InputType


_WHITESPACE = re.compile(r'\s+')
_ZONE_PREFIXED = re.compile(r'zone\s*[-_]?\s*(\d+)', re.IGNORECASE)
_TRAILING_DIGITS = re.compile(r'(\d+)\s*$')
_ANY_DIGITS = re.compile(r'(\d+)')


def _clean(value) -> str:
    if value is None:
        return ''
    return str(value).strip()


def normalize_zone(raw) -> str:
    """
    Normalize a zone label: trim, upper-case, collapse internal whitespace.

    '  zone   1 ' -> 'ZONE 1'; None -> ''
    """
    text = _clean(raw)
    if not text:
        return ''
    return _WHITESPACE.sub(' ', text).upper()


def is_zone_placeholder(raw, placeholders: Optional[list[str]] = None) -> bool:
    """True when the zone value means 'no zone' ('', 'N/A', '-', '0', ...)."""
    if placeholders is None:
        placeholders = get_config().zone_placeholders
    return normalize_zone(raw) in placeholders


def normalize_optional_zone(raw, placeholders: Optional[list[str]] = None) -> str:
    """Normalized zone, or '' when the value is a placeholder."""
    if is_zone_placeholder(raw, placeholders):
        return ''
    return normalize_zone(raw)


def extract_zone_number(raw) -> Optional[str]:
    """
    Extract the numeric part of a zone label.

    Tried in order:
        'Zone-3', 'zone_3', 'ZONE 3' -> '3'  (zone prefix)
        'Block A 12'                 -> '12' (trailing digits)
        'Z3-East'                    -> '3'  (first digits anywhere)

    Returns:
        Digit string, or None when the label holds no digits
    """
    text = _clean(raw)
    if not text:
        return None

    for pattern in (_ZONE_PREFIXED, _TRAILING_DIGITS, _ANY_DIGITS):
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def normalize_project_code(raw) -> str:
    """Trim and case-fold a project code."""
    return _clean(raw).casefold()


def normalize_activity_name(raw) -> str:
    """Trim and case-fold an activity description. No stemming or fuzzing."""
    return _clean(raw).casefold()


def normalize_input_type(raw) -> Optional[InputType]:
    """
    Classify a raw input type.

    'Planned ', 'PLANNED' -> InputType.PLANNED; 'actual' -> InputType.ACTUAL.
    Anything else -> None, which excludes the entry from all sums.
    """
    if isinstance(raw, InputType):
        return raw
    key = _clean(raw).lower()
    for input_type in InputType:
        if input_type.value == key:
            return input_type
    return None


def natural_sort_key(label) -> tuple:
    """
    Sort key ordering labels by their numeric part first.

    'Zone 2' sorts before 'Zone 10'; labels without digits sort after
    numbered ones, alphabetically.
    """
    text = _clean(label)
    number = extract_zone_number(text)
    if number is not None:
        return (0, int(number), text.upper())
    return (1, 0, text.upper())
