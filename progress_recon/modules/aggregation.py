"""
Progress Aggregator.

Builds the period progress report of a project: per work item, the
previous-period, before-period, period and cumulative planned/actual
quantities, the balance against scope and the derived percentages,
grouped by zone then division.

Percentages are on a 0-100 scale and are 0 whenever their denominator
is 0. A failure on one row is logged and recorded on the report; the
remaining rows still render.
"""
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Union
import logging

import pandas as pd

from ..config import get_config
from ..domain.entities import Period, Project, ProgressEntry, WorkItem
from .matching import match_entries
from .normalize import (
    natural_sort_key,
    normalize_activity_name,
    normalize_optional_zone,
    normalize_project_code,
)
from .periods import period_for, previous_period
from .status import detect_delay, is_completed, progress_status

logger = logging.getLogger(__name__)


def safe_divide(numerator: float, denominator: float) -> float:
    """Safe division that returns 0 on divide by zero."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def percent(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, or 0 when the denominator is 0."""
    return safe_divide(numerator * 100, denominator)


# =============================================================================
# Report records
# =============================================================================

@dataclass
class ProgressRow:
    """Period figures for one work item (or one merged activity in combined mode)."""
    work_item_id: Optional[str]
    description: str
    zone: str
    division: str
    unit: str
    scope_units: float
    previous_period_actual: float = 0.0
    before_period_actual: float = 0.0
    period_planned: float = 0.0
    period_actual: float = 0.0
    cumulative_planned: float = 0.0
    cumulative_actual: float = 0.0
    balance: float = 0.0
    period_actual_pct: float = 0.0
    cumulative_actual_pct: float = 0.0
    cumulative_planned_pct: float = 0.0
    matched_entries: int = 0
    status: str = ""
    completed: bool = False
    delayed: bool = False

    def to_dict(self) -> Dict:
        return {
            'work_item_id': self.work_item_id,
            'description': self.description,
            'zone': self.zone,
            'division': self.division,
            'unit': self.unit,
            'scope_units': self.scope_units,
            'previous_period_actual': self.previous_period_actual,
            'before_period_actual': self.before_period_actual,
            'period_planned': self.period_planned,
            'period_actual': self.period_actual,
            'cumulative_planned': self.cumulative_planned,
            'cumulative_actual': self.cumulative_actual,
            'balance': self.balance,
            'period_actual_pct': round(self.period_actual_pct, 2),
            'cumulative_actual_pct': round(self.cumulative_actual_pct, 2),
            'cumulative_planned_pct': round(self.cumulative_planned_pct, 2),
            'matched_entries': self.matched_entries,
            'status': self.status,
            'completed': self.completed,
            'delayed': self.delayed,
        }


@dataclass
class ProgressGroup:
    """Rows sharing a zone and division."""
    zone: str
    division: str
    rows: List[ProgressRow] = field(default_factory=list)

    def total(self, attribute: str) -> float:
        return sum(getattr(row, attribute) for row in self.rows)

    def to_dict(self) -> Dict:
        return {
            'zone': self.zone,
            'division': self.division,
            'period_planned': self.total('period_planned'),
            'period_actual': self.total('period_actual'),
            'cumulative_planned': self.total('cumulative_planned'),
            'cumulative_actual': self.total('cumulative_actual'),
            'rows': [row.to_dict() for row in self.rows],
        }


@dataclass
class ProgressReport:
    """Period progress report of one project."""
    project: Optional[Project]
    period: Period
    previous_period: Period
    combined: bool = False
    groups: List[ProgressGroup] = field(default_factory=list)
    errors: List[Dict] = field(default_factory=list)

    @property
    def rows(self) -> List[ProgressRow]:
        return [row for group in self.groups for row in group.rows]

    @property
    def summary(self) -> Dict:
        """Project-level totals across all rows."""
        rows = self.rows
        scope = sum(r.scope_units for r in rows)
        period_planned = sum(r.period_planned for r in rows)
        period_actual = sum(r.period_actual for r in rows)
        cumulative_planned = sum(r.cumulative_planned for r in rows)
        cumulative_actual = sum(r.cumulative_actual for r in rows)
        cumulative_progress = percent(cumulative_actual, cumulative_planned)

        return {
            'activities': len(rows),
            'zones': len({r.zone for r in rows}),
            'divisions': len({r.division for r in rows}),
            'scope_units': scope,
            'period_planned': period_planned,
            'period_actual': period_actual,
            'cumulative_planned': cumulative_planned,
            'cumulative_actual': cumulative_actual,
            'balance': sum(r.balance for r in rows),
            'period_progress_pct': round(percent(period_actual, period_planned), 2),
            'cumulative_progress_pct': round(cumulative_progress, 2),
            'overall_completion_pct': round(percent(cumulative_actual, scope), 2),
            'completed': sum(1 for r in rows if r.completed),
            'delayed': sum(1 for r in rows if r.delayed),
            'status': progress_status(cumulative_progress),
            'errors': len(self.errors),
        }

    def to_dict(self) -> Dict:
        return {
            'project': self.project.to_dict() if self.project else None,
            'period': self.period.to_dict(),
            'previous_period': self.previous_period.to_dict(),
            'combined': self.combined,
            'summary': self.summary,
            'groups': [group.to_dict() for group in self.groups],
            'errors': self.errors,
        }

    def to_frame(self) -> pd.DataFrame:
        """One DataFrame row per report row, in report order."""
        columns = list(ProgressRow.__dataclass_fields__.keys())
        if not self.rows:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame([row.to_dict() for row in self.rows], columns=columns)


# =============================================================================
# Linkage and merging
# =============================================================================

def belongs_to_project(work_item: WorkItem, project: Project) -> bool:
    """
    True when the work item is linked to the project.

    Full codes must agree; a project without sub-code also claims items
    booked against its bare code.
    """
    project_full = normalize_project_code(project.full_code)
    if normalize_project_code(work_item.full_code) == project_full:
        return True
    if not project.sub_code and not work_item.project_full_code:
        return normalize_project_code(work_item.project_code) == normalize_project_code(project.code)
    return False


def project_work_items(project: Project, work_items: Iterable[WorkItem]) -> List[WorkItem]:
    """Work items of a project, in input order."""
    return [item for item in work_items if belongs_to_project(item, project)]


def merge_across_zones(work_items: Iterable[WorkItem]) -> List[WorkItem]:
    """
    Merge work items of one project sharing an activity description.

    Items are keyed by full project code and activity, so same-named
    activities of different projects stay apart. Scope quantities and
    values are summed; the first item's identity, unit and division are
    kept. Order follows first appearance.
    """
    merged: Dict[tuple, WorkItem] = {}
    for item in work_items:
        key = (normalize_project_code(item.full_code), normalize_activity_name(item.description))
        existing = merged.get(key)
        if existing is None:
            merged[key] = replace(item, zone=None)
            continue
        total_value = None
        if existing.total_value is not None or item.total_value is not None:
            total_value = (existing.total_value or 0.0) + (item.total_value or 0.0)
        merged[key] = replace(
            existing,
            total_units=existing.total_units + item.total_units,
            planned_units=existing.planned_units + item.planned_units,
            actual_units=existing.actual_units + item.actual_units,
            total_value=total_value,
            completed=existing.completed and item.completed,
        )
    return list(merged.values())


# =============================================================================
# Row computation
# =============================================================================

def compute_progress_row(
    work_item: WorkItem,
    matched_entries: Iterable[ProgressEntry],
    period: Period,
    previous: Optional[Period] = None,
    cut_off: Optional[date] = None,
    zone_label: Optional[str] = None,
    division_label: Optional[str] = None
) -> ProgressRow:
    """
    Compute the period figures of one work item from its matched entries.

    Args:
        work_item: Work item the entries were matched to
        matched_entries: Entries already accepted by the matcher
        period: Reporting period
        previous: Period before it; derived from period when omitted
        cut_off: Ignore entries dated after this day
        zone_label: Group zone label
        division_label: Group division label

    Returns:
        ProgressRow
    """
    config = get_config()
    if previous is None:
        previous = previous_period(period)

    row = ProgressRow(
        work_item_id=work_item.id,
        description=work_item.description,
        zone=zone_label if zone_label is not None else (
            normalize_optional_zone(work_item.zone) or config.default_zone
        ),
        division=division_label if division_label is not None else (
            work_item.division or config.default_division
        ),
        unit=work_item.unit,
        scope_units=work_item.scope_units,
    )

    for entry in matched_entries:
        if not entry.is_countable:
            continue
        if cut_off is not None and entry.date > cut_off:
            continue
        row.matched_entries += 1
        in_period = period.contains(entry.date)

        if entry.is_planned:
            row.cumulative_planned += entry.quantity
            if in_period:
                row.period_planned += entry.quantity
        else:
            row.cumulative_actual += entry.quantity
            if in_period:
                row.period_actual += entry.quantity
            elif entry.date < period.start:
                row.before_period_actual += entry.quantity
            if previous.contains(entry.date):
                row.previous_period_actual += entry.quantity

    row.balance = row.scope_units - row.cumulative_actual
    row.period_actual_pct = percent(row.period_actual, row.period_planned)
    row.cumulative_actual_pct = percent(row.cumulative_actual, row.cumulative_planned)
    row.cumulative_planned_pct = percent(row.cumulative_planned, row.scope_units)

    measured = percent(row.cumulative_actual, row.scope_units)
    as_of = cut_off or period.end
    row.status = progress_status(measured)
    row.completed = is_completed(work_item, as_of, measured)
    row.delayed = detect_delay(work_item, as_of, measured).delayed
    return row


# =============================================================================
# Report
# =============================================================================

def build_progress_report(
    project: Optional[Project],
    work_items: Iterable[WorkItem],
    entries: Iterable[ProgressEntry],
    period: Union[Period, str],
    combined: bool = False,
    cut_off: Optional[date] = None
) -> ProgressReport:
    """
    Build the period progress report of a project.

    Args:
        project: Project to report on; None reports on every work item given
        work_items: Work items (filtered to the project when one is given)
        entries: Progress entries of any project
        period: Period or period key
        combined: Merge same-activity items across zones and ignore zones
        cut_off: Ignore entries dated after this day

    Returns:
        ProgressReport with groups sorted by zone then division
    """
    config = get_config()
    if not isinstance(period, Period):
        period = period_for(period)
    previous = previous_period(period)

    entries = list(entries)
    items = project_work_items(project, work_items) if project is not None else list(work_items)
    if project is not None and not items:
        logger.warning(f"Project {project.full_code} has no linked work items")
    if combined:
        items = merge_across_zones(items)

    report = ProgressReport(project=project, period=period, previous_period=previous, combined=combined)
    groups: Dict[tuple, ProgressGroup] = {}

    for item in items:
        try:
            zone = config.combined_zone_label if combined else (
                normalize_optional_zone(item.zone) or config.default_zone
            )
            division = item.division or config.default_division
            matched = match_entries(item, entries, combined=combined)
            row = compute_progress_row(
                item, matched, period,
                previous=previous,
                cut_off=cut_off,
                zone_label=zone,
                division_label=division,
            )
        except Exception as e:
            logger.exception(f"Failed to compute progress row for work item {item.id or item.description!r}")
            report.errors.append({
                'work_item_id': item.id,
                'description': item.description,
                'error': str(e),
            })
            continue

        group = groups.get((zone, division))
        if group is None:
            group = groups[(zone, division)] = ProgressGroup(zone=zone, division=division)
        group.rows.append(row)

    report.groups = sorted(
        groups.values(),
        key=lambda g: (natural_sort_key(g.zone), g.division.lower()),
    )
    logger.info(
        f"Progress report {period.key}: {len(report.rows)} rows in "
        f"{len(report.groups)} groups, {len(report.errors)} errors"
    )
    return report
