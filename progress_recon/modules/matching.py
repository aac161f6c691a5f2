"""
Matcher: decides whether a progress entry belongs to a work item.

Three tiers, AND-ed and evaluated in order; the first failing tier
decides the outcome:

1. Project  - strict full-code equality when the work item is sub-coded,
              otherwise code and full code are interchangeable.
2. Activity - exact or containment match of normalized descriptions
              (exact only in combined mode).
3. Zone     - skipped in combined mode. When a target zone is set the
              entry must carry a zone; numbers are compared when both
              sides have one, normalized text otherwise.

Project and activity take the stricter reading; zone takes the
permissive one when only the target side is blank.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional
import logging

from ..config import get_config
from ..domain.entities import ProgressEntry, WorkItem
from .normalize import (
    normalize_project_code,
    normalize_activity_name,
    normalize_optional_zone,
    extract_zone_number,
)

logger = logging.getLogger(__name__)


class MatchReason(Enum):
    """Branch of the matching rules that decided the outcome."""
    # Project tier
    PROJECT_CODE_MISSING = "project_code_missing"
    PROJECT_SUBCODE_STRICT = "project_subcode_strict"
    PROJECT_SUBCODE_MISMATCH = "project_subcode_mismatch"
    PROJECT_CODE_INTERCHANGEABLE = "project_code_interchangeable"
    PROJECT_CODE_MISMATCH = "project_code_mismatch"
    # Activity tier
    ACTIVITY_MISSING = "activity_missing"
    ACTIVITY_EXACT = "activity_exact"
    ACTIVITY_CONTAINMENT = "activity_containment"
    ACTIVITY_MISMATCH = "activity_mismatch"
    # Zone tier
    ZONE_SKIPPED_COMBINED = "zone_skipped_combined"
    ZONE_NOT_REQUIRED = "zone_not_required"
    ZONE_MISSING_ON_ENTRY = "zone_missing_on_entry"
    ZONE_NUMBER_MATCH = "zone_number_match"
    ZONE_NUMBER_MISMATCH = "zone_number_mismatch"
    ZONE_TEXT_MATCH = "zone_text_match"
    ZONE_TEXT_MISMATCH = "zone_text_mismatch"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one tier, or of the whole match."""
    matched: bool
    reason: MatchReason

    def __bool__(self) -> bool:
        return self.matched


# =============================================================================
# Tiers
# =============================================================================

def match_project(
    entry: ProgressEntry,
    work_item: WorkItem,
    separator: Optional[str] = None
) -> MatchResult:
    """Project tier."""
    if separator is None:
        separator = get_config().sub_code_separator

    item_full = normalize_project_code(work_item.full_code)
    item_code = normalize_project_code(work_item.project_code)
    entry_full = normalize_project_code(entry.project_full_code)
    entry_code = normalize_project_code(entry.project_code)

    if not (item_full or item_code) or not (entry_full or entry_code):
        return MatchResult(False, MatchReason.PROJECT_CODE_MISSING)

    # Sub-coded work item: only the exact full code will do
    if item_full and separator in item_full:
        if entry_full == item_full:
            return MatchResult(True, MatchReason.PROJECT_SUBCODE_STRICT)
        return MatchResult(False, MatchReason.PROJECT_SUBCODE_MISMATCH)

    item_codes = {c for c in (item_full, item_code) if c}
    entry_codes = {c for c in (entry_full, entry_code) if c}
    if item_codes & entry_codes:
        return MatchResult(True, MatchReason.PROJECT_CODE_INTERCHANGEABLE)
    return MatchResult(False, MatchReason.PROJECT_CODE_MISMATCH)


def match_activity(
    entry: ProgressEntry,
    work_item: WorkItem,
    combined: bool = False
) -> MatchResult:
    """Activity tier."""
    item_name = normalize_activity_name(work_item.description)
    entry_name = normalize_activity_name(entry.activity_description)

    if not item_name or not entry_name:
        return MatchResult(False, MatchReason.ACTIVITY_MISSING)
    if item_name == entry_name:
        return MatchResult(True, MatchReason.ACTIVITY_EXACT)
    if not combined and (item_name in entry_name or entry_name in item_name):
        return MatchResult(True, MatchReason.ACTIVITY_CONTAINMENT)
    return MatchResult(False, MatchReason.ACTIVITY_MISMATCH)


def match_zone(
    entry: ProgressEntry,
    work_item: WorkItem,
    target_zone: Optional[str] = None,
    combined: bool = False,
    placeholders: Optional[List[str]] = None
) -> MatchResult:
    """
    Zone tier.

    Args:
        entry: Progress entry
        work_item: Work item; its zone is the default target
        target_zone: Zone the caller is reporting on, overriding the item's
        combined: Combined mode ignores zones entirely
        placeholders: Zone values meaning 'no zone'
    """
    if combined:
        return MatchResult(True, MatchReason.ZONE_SKIPPED_COMBINED)

    target = normalize_optional_zone(
        target_zone if target_zone is not None else work_item.zone, placeholders
    )
    if not target:
        return MatchResult(True, MatchReason.ZONE_NOT_REQUIRED)

    entry_zone = normalize_optional_zone(entry.zone, placeholders)
    if not entry_zone:
        return MatchResult(False, MatchReason.ZONE_MISSING_ON_ENTRY)

    target_number = extract_zone_number(target)
    entry_number = extract_zone_number(entry_zone)
    if target_number is not None and entry_number is not None:
        if int(target_number) == int(entry_number):
            return MatchResult(True, MatchReason.ZONE_NUMBER_MATCH)
        return MatchResult(False, MatchReason.ZONE_NUMBER_MISMATCH)

    if target == entry_zone:
        return MatchResult(True, MatchReason.ZONE_TEXT_MATCH)
    return MatchResult(False, MatchReason.ZONE_TEXT_MISMATCH)


# =============================================================================
# Entry points
# =============================================================================

def explain_match(
    entry: ProgressEntry,
    work_item: WorkItem,
    target_zone: Optional[str] = None,
    combined: bool = False
) -> MatchResult:
    """
    Run the three tiers and return the deciding branch.

    On success the reason is the zone tier's branch; on failure it is the
    branch of the first tier that failed.
    """
    project = match_project(entry, work_item)
    if not project:
        return project

    activity = match_activity(entry, work_item, combined=combined)
    if not activity:
        return activity

    return match_zone(entry, work_item, target_zone=target_zone, combined=combined)


def matches(
    entry: ProgressEntry,
    work_item: WorkItem,
    target_zone: Optional[str] = None,
    combined: bool = False
) -> bool:
    """True when the entry belongs to the work item."""
    return explain_match(entry, work_item, target_zone, combined).matched


def match_entries(
    work_item: WorkItem,
    entries: Iterable[ProgressEntry],
    target_zone: Optional[str] = None,
    combined: bool = False
) -> List[ProgressEntry]:
    """Entries that belong to the work item, in input order."""
    matched = [
        entry for entry in entries
        if matches(entry, work_item, target_zone=target_zone, combined=combined)
    ]
    logger.debug(
        f"Matched {len(matched)} entries to work item "
        f"{work_item.id or work_item.description!r} (zone={work_item.zone!r}, combined={combined})"
    )
    return matched
