"""
Productivity Forecaster (LookAhead).

For each work item: remaining units, observed productivity, remaining
working days and a predicted completion date on the working-day
calendar. For each project: the latest predicted completion among its
unfinished items.

Entries are counted up to the cut-off (yesterday by default): today's
records may still be incomplete. Productivity is a plain historical
average; an item with no measurable productivity gets no date rather
than a guessed one.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from ..config import get_config
from ..domain.entities import Project, ProgressEntry, WorkItem
from .aggregation import belongs_to_project, percent, safe_divide
from .matching import match_entries
from .periods import completion_labels
from .status import (
    ActivityState,
    DelayAssessment,
    classify_activity,
    detect_delay,
)
from .workdays import WorkCalendar

logger = logging.getLogger(__name__)


@dataclass
class ActivityLookAhead:
    """Forecast for one work item."""
    work_item: WorkItem
    state: ActivityState
    delay: DelayAssessment
    scope_units: float = 0.0
    cumulative_planned: float = 0.0
    cumulative_actual: float = 0.0
    remaining_units: float = 0.0
    actual_working_days: int = 0
    planned_working_days: int = 0
    actual_productivity: float = 0.0
    planned_productivity: float = 0.0
    remaining_working_days: Optional[int] = None
    predicted_completion_date: Optional[date] = None

    @property
    def completed(self) -> bool:
        return self.state is ActivityState.COMPLETED

    @property
    def productivity(self) -> float:
        """Actual productivity, falling back to planned."""
        if self.actual_productivity > 0:
            return self.actual_productivity
        return self.planned_productivity

    @property
    def progress_percent(self) -> float:
        return percent(self.cumulative_actual, self.scope_units)

    def to_dict(self) -> Dict:
        return {
            'work_item_id': self.work_item.id,
            'description': self.work_item.description,
            'zone': self.work_item.zone,
            'division': self.work_item.division,
            'state': self.state.value,
            'completed': self.completed,
            'delay': self.delay.to_dict(),
            'scope_units': self.scope_units,
            'cumulative_planned': self.cumulative_planned,
            'cumulative_actual': self.cumulative_actual,
            'remaining_units': self.remaining_units,
            'progress_percent': round(self.progress_percent, 2),
            'actual_productivity': round(self.actual_productivity, 4),
            'planned_productivity': round(self.planned_productivity, 4),
            'remaining_working_days': self.remaining_working_days,
            'predicted_completion_date': (
                self.predicted_completion_date.isoformat() if self.predicted_completion_date else None
            ),
        }


@dataclass
class ProjectLookAhead:
    """Forecast for one project: its activities and latest completion."""
    project: Project
    activities: List[ActivityLookAhead] = field(default_factory=list)
    latest_completion_date: Optional[date] = None
    errors: List[Dict] = field(default_factory=list)

    @property
    def open_activities(self) -> List[ActivityLookAhead]:
        """Non-completed activities."""
        return [a for a in self.activities if not a.completed]

    @property
    def has_remaining_work(self) -> bool:
        return any(a.remaining_units > 0 for a in self.open_activities)

    @property
    def remaining_units(self) -> float:
        return sum(a.remaining_units for a in self.open_activities)

    @property
    def completion_labels(self) -> Dict:
        return completion_labels(self.latest_completion_date)

    def to_dict(self) -> Dict:
        return {
            'project': self.project.to_dict(),
            'latest_completion_date': (
                self.latest_completion_date.isoformat() if self.latest_completion_date else None
            ),
            'completion': self.completion_labels,
            'remaining_units': self.remaining_units,
            'activities': [a.to_dict() for a in self.activities],
            'errors': self.errors,
        }


# =============================================================================
# Activity forecast
# =============================================================================

def default_cut_off(today: date) -> date:
    """Last day whose entries are counted."""
    return today - timedelta(days=get_config().cut_off_offset_days)


def remaining_working_days(remaining_units: float, productivity: float) -> Optional[int]:
    """
    Working days needed to finish the remaining units.

    Returns:
        ceil(remaining / productivity), or None when productivity is not positive
    """
    if productivity <= 0:
        return None
    if remaining_units <= 0:
        return 0
    # Rounding first keeps 0.6 / 0.2 at 3 rather than 4
    return math.ceil(round(remaining_units / productivity, 9))


def compute_activity_lookahead(
    work_item: WorkItem,
    matched_entries: Iterable[ProgressEntry],
    today: date,
    calendar: Optional[WorkCalendar] = None,
    cut_off: Optional[date] = None
) -> ActivityLookAhead:
    """
    Forecast one work item from its matched entries.

    Args:
        work_item: Work item
        matched_entries: Entries already accepted by the matcher
        today: Reference date; the completion count starts here
        calendar: Working-day calendar (configuration default when omitted)
        cut_off: Last day whose entries count (default: yesterday)

    Returns:
        ActivityLookAhead
    """
    calendar = calendar or WorkCalendar.default()
    if cut_off is None:
        cut_off = default_cut_off(today)

    actual_total = 0.0
    planned_total = 0.0
    actual_dates = set()
    planned_dates = set()
    for entry in matched_entries:
        if not entry.is_countable or entry.date > cut_off:
            continue
        if entry.is_actual:
            actual_total += entry.quantity
            actual_dates.add(entry.date)
        else:
            planned_total += entry.quantity
            planned_dates.add(entry.date)

    scope = work_item.scope_units
    # Over-reported actuals never push remaining below zero
    cumulative_actual = min(max(actual_total, 0.0), scope) if scope > 0 else max(actual_total, 0.0)
    remaining = max(scope - cumulative_actual, 0.0)

    # Non-working-day quantities stay in the numerator; only working days are counted
    actual_days = calendar.distinct_working_days(actual_dates)
    planned_days = calendar.distinct_working_days(planned_dates)
    actual_productivity = safe_divide(cumulative_actual, actual_days)
    planned_productivity = safe_divide(max(planned_total, 0.0), planned_days)
    if planned_productivity <= 0 and work_item.calendar_duration:
        planned_productivity = safe_divide(scope, work_item.calendar_duration)

    measured = percent(cumulative_actual, scope)
    state = classify_activity(work_item, today, measured, remaining)
    delay = detect_delay(work_item, today, measured, remaining)

    lookahead = ActivityLookAhead(
        work_item=work_item,
        state=state,
        delay=delay,
        scope_units=scope,
        cumulative_planned=planned_total,
        cumulative_actual=cumulative_actual,
        remaining_units=remaining,
        actual_working_days=actual_days,
        planned_working_days=planned_days,
        actual_productivity=actual_productivity,
        planned_productivity=planned_productivity,
    )

    if lookahead.completed:
        lookahead.remaining_working_days = 0
        return lookahead

    days = remaining_working_days(remaining, lookahead.productivity)
    lookahead.remaining_working_days = days
    if days is None:
        logger.debug(
            f"No productivity for work item {work_item.id or work_item.description!r}; "
            f"completion date undeterminable"
        )
        return lookahead

    lookahead.predicted_completion_date = calendar.add_working_days(today, days)
    if lookahead.predicted_completion_date is None:
        logger.debug(
            f"Work item {work_item.id or work_item.description!r} needs {days} working days, "
            f"beyond the calendar; completion date undeterminable"
        )
    return lookahead


# =============================================================================
# Project and portfolio forecast
# =============================================================================

def latest_completion(activities: Iterable[ActivityLookAhead]) -> Optional[date]:
    """Latest predicted completion among non-completed activities."""
    dates = [
        a.predicted_completion_date for a in activities
        if not a.completed and a.predicted_completion_date is not None
    ]
    return max(dates) if dates else None


def build_project_lookahead(
    project: Project,
    work_items: Iterable[WorkItem],
    entries: Iterable[ProgressEntry],
    today: date,
    calendar: Optional[WorkCalendar] = None,
    cut_off: Optional[date] = None
) -> ProjectLookAhead:
    """Forecast every work item linked to the project."""
    calendar = calendar or WorkCalendar.default()
    entries = list(entries)
    items = [item for item in work_items if belongs_to_project(item, project)]

    activities = []
    errors = []
    for item in items:
        try:
            matched = match_entries(item, entries)
            activities.append(compute_activity_lookahead(item, matched, today, calendar, cut_off))
        except Exception as e:
            logger.exception(f"Lookahead failed for work item {item.id or item.description!r}")
            errors.append({
                'work_item_id': item.id,
                'description': item.description,
                'error': str(e),
            })

    return ProjectLookAhead(
        project=project,
        activities=activities,
        latest_completion_date=latest_completion(activities),
        errors=errors,
    )


def build_portfolio_lookahead(
    projects: Iterable[Project],
    work_items: Iterable[WorkItem],
    entries: Iterable[ProgressEntry],
    today: date,
    statuses: Optional[Sequence[str]] = None,
    division: Optional[str] = None,
    completion_window: Optional[Tuple[date, date]] = None,
    calendar: Optional[WorkCalendar] = None,
    cut_off: Optional[date] = None
) -> List[ProjectLookAhead]:
    """
    Forecast every active project that still has work to do.

    Args:
        projects: Projects to consider
        work_items: Work items of any project
        entries: Progress entries of any project
        today: Reference date
        statuses: Project statuses to include (default: configured active statuses)
        division: Only projects of this division (case-insensitive)
        completion_window: Only projects whose latest completion falls in (start, end)
        calendar: Working-day calendar
        cut_off: Last day whose entries count

    Returns:
        ProjectLookAhead list in project input order. Projects with no
        unfinished item holding remaining units are left out.
    """
    calendar = calendar or WorkCalendar.default()
    if statuses is None:
        statuses = get_config().active_statuses
    wanted = {s.strip().lower() for s in statuses}
    projects = list(projects)
    work_items = list(work_items)
    entries = list(entries)

    orphans = [
        item for item in work_items
        if not any(belongs_to_project(item, project) for project in projects)
    ]
    if orphans:
        logger.warning(f"{len(orphans)} work items reference no known project; left out of the lookahead")

    result = []
    for project in projects:
        if project.status is None or project.status.value not in wanted:
            continue
        if division and project.division.strip().lower() != division.strip().lower():
            continue

        lookahead = build_project_lookahead(project, work_items, entries, today, calendar, cut_off)
        if not lookahead.has_remaining_work:
            logger.debug(f"Project {project.full_code} has no remaining work; excluded")
            continue
        if completion_window is not None:
            start, end = completion_window
            completion = lookahead.latest_completion_date
            if completion is None or not start <= completion <= end:
                continue
        result.append(lookahead)

    logger.info(f"Portfolio lookahead as of {today}: {len(result)} projects with remaining work")
    return result


def lookahead_frame(lookaheads: Iterable[ProjectLookAhead]) -> pd.DataFrame:
    """One DataFrame row per project."""
    rows = []
    for la in lookaheads:
        rows.append({
            'project': la.project.full_code,
            'name': la.project.name,
            'status': la.project.status.value if la.project.status else None,
            'open_activities': len(la.open_activities),
            'remaining_units': la.remaining_units,
            'latest_completion_date': la.latest_completion_date,
            'completion_month': la.completion_labels['month'],
        })
    return pd.DataFrame(rows, columns=[
        'project', 'name', 'status', 'open_activities',
        'remaining_units', 'latest_completion_date', 'completion_month',
    ])
