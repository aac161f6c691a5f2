"""
Reconciliation diagnostics.

Review aids for data owners; none of this changes how entries match.

- Unmatched entries, with the closest work-item descriptions of the same
  project ranked by fuzzy similarity (rapidfuzz token_set_ratio).
- Entries matching more than one work item. The project/activity/zone
  rules are meant to make this impossible; the report shows where source
  data defeats them.
- Work items whose project code has no project.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from rapidfuzz import fuzz

from ..config import get_config
from ..domain.entities import Project, ProgressEntry, WorkItem
from .aggregation import belongs_to_project
from .matching import match_project, matches

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    """Normalize text for fuzzy matching."""
    if not text or not isinstance(text, str):
        return ''

    text = text.lower()
    text = re.sub(r'[^\w\s]', ' ', text)
    return re.sub(r'\s+', ' ', text).strip()


def compute_text_similarity(a: str, b: str) -> float:
    """
    Fuzzy similarity of two descriptions, 0-100.
    Uses token_set_ratio so reordered and partial wording still scores well.
    """
    a_norm = normalize_text(a)
    b_norm = normalize_text(b)
    if not a_norm or not b_norm:
        return 0.0
    return float(fuzz.token_set_ratio(a_norm, b_norm))


@dataclass
class Suggestion:
    """A work item an unmatched entry probably meant."""
    work_item_id: Optional[str]
    description: str
    zone: Optional[str]
    score: float

    def to_dict(self) -> Dict:
        return {
            'work_item_id': self.work_item_id,
            'description': self.description,
            'zone': self.zone,
            'score': round(self.score, 1),
        }


@dataclass
class UnmatchedEntry:
    entry: ProgressEntry
    suggestions: List[Suggestion] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'entry': self.entry.to_dict(),
            'suggestions': [s.to_dict() for s in self.suggestions],
        }


@dataclass
class AmbiguousEntry:
    entry: ProgressEntry
    work_items: List[WorkItem] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'entry': self.entry.to_dict(),
            'work_items': [
                {'id': w.id, 'description': w.description, 'zone': w.zone}
                for w in self.work_items
            ],
        }


def suggest_work_items(
    entry: ProgressEntry,
    work_items: Iterable[WorkItem],
    limit: Optional[int] = None,
    min_score: Optional[float] = None
) -> List[Suggestion]:
    """
    Rank work items of the entry's project by description similarity.

    Ties are broken by work item description, then id, so output is stable.
    """
    config = get_config()
    limit = config.suggestion_limit if limit is None else limit
    min_score = config.min_suggestion_score if min_score is None else min_score

    candidates = []
    for item in work_items:
        if not match_project(entry, item):
            continue
        score = compute_text_similarity(entry.activity_description, item.description)
        if score >= min_score:
            candidates.append(Suggestion(item.id, item.description, item.zone, score))

    candidates.sort(key=lambda s: (-s.score, s.description, s.work_item_id or ''))
    return candidates[:limit]


def find_unmatched_entries(
    work_items: Iterable[WorkItem],
    entries: Iterable[ProgressEntry],
    limit: Optional[int] = None
) -> List[UnmatchedEntry]:
    """Countable entries that match no work item, with suggestions."""
    work_items = list(work_items)
    result = []
    for entry in entries:
        if not entry.is_countable:
            continue
        if any(matches(entry, item) for item in work_items):
            continue
        result.append(UnmatchedEntry(entry, suggest_work_items(entry, work_items, limit)))

    if result:
        logger.info(f"{len(result)} entries match no work item")
    return result


def find_ambiguous_entries(
    work_items: Iterable[WorkItem],
    entries: Iterable[ProgressEntry]
) -> List[AmbiguousEntry]:
    """Entries that match more than one work item."""
    work_items = list(work_items)
    result = []
    for entry in entries:
        hits = [item for item in work_items if matches(entry, item)]
        if len(hits) > 1:
            result.append(AmbiguousEntry(entry, hits))

    if result:
        logger.warning(f"{len(result)} entries match more than one work item")
    return result


def find_excluded_entries(entries: Iterable[ProgressEntry]) -> List[ProgressEntry]:
    """Entries left out of every sum: unknown input type or unparsable date."""
    return [entry for entry in entries if not entry.is_countable]


def linkage_report(projects: Iterable[Project], work_items: Iterable[WorkItem]) -> List[WorkItem]:
    """Work items linked to no project."""
    projects = list(projects)
    orphans = [
        item for item in work_items
        if not any(belongs_to_project(item, project) for project in projects)
    ]
    if orphans:
        logger.warning(f"{len(orphans)} work items reference no known project")
    return orphans


def reconciliation_report(
    projects: Iterable[Project],
    work_items: Iterable[WorkItem],
    entries: Iterable[ProgressEntry]
) -> Dict:
    """All diagnostics as plain data."""
    projects = list(projects)
    work_items = list(work_items)
    entries = list(entries)
    return {
        'unmatched_entries': [u.to_dict() for u in find_unmatched_entries(work_items, entries)],
        'ambiguous_entries': [a.to_dict() for a in find_ambiguous_entries(work_items, entries)],
        'excluded_entries': [e.to_dict() for e in find_excluded_entries(entries)],
        'orphan_work_items': [w.to_dict() for w in linkage_report(projects, work_items)],
    }
