"""
Financial Projector.

Turns LookAhead quantity forecasts into period-bucketed revenue. For each
forecast period an unfinished item contributes

    working days in [max(period start, today), min(period end, completion)]
        x productivity

capped so the item never forecasts more than its remaining units across
all periods, then valued at the item's derived rate.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

import pandas as pd

from ..domain.entities import Period, WorkItem
from .lookahead import ActivityLookAhead, ProjectLookAhead
from .workdays import WorkCalendar

logger = logging.getLogger(__name__)


def derive_rate(work_item: WorkItem) -> float:
    """
    Unit rate of a work item.

    Fallback chain:
        total_value / scope_units   when both are positive
        stored rate                 when positive
        0                           otherwise (zero-value forecast, never an error)
    """
    scope = work_item.scope_units
    if work_item.total_value and work_item.total_value > 0 and scope > 0:
        return work_item.total_value / scope
    if work_item.rate and work_item.rate > 0:
        return work_item.rate
    return 0.0


def forecast_quantity(
    activity: ActivityLookAhead,
    period: Period,
    today: date,
    calendar: Optional[WorkCalendar] = None,
    already_forecast: float = 0.0
) -> float:
    """
    Forecast quantity of one activity within one period.

    Args:
        activity: Activity forecast
        period: Forecast period
        today: Reference date; days before it are not forecast
        calendar: Working-day calendar
        already_forecast: Quantity forecast for this activity in earlier periods

    Returns:
        Quantity, 0 for completed or undeterminable activities and for
        periods starting after the predicted completion
    """
    if activity.completed or activity.productivity <= 0:
        return 0.0
    completion = activity.predicted_completion_date
    if completion is None or completion < period.start:
        return 0.0

    calendar = calendar or WorkCalendar.default()
    start = max(period.start, today)
    end = min(period.end, completion)
    working_days = calendar.count_working_days(start, end)

    available = max(activity.remaining_units - already_forecast, 0.0)
    return min(activity.productivity * working_days, available)


# =============================================================================
# Forecast table
# =============================================================================

@dataclass
class ForecastRow:
    """Per-project forecast values, aligned with the table's periods."""
    project_code: str
    project_name: str
    currency: str
    per_period_value: List[float] = field(default_factory=list)
    per_period_quantity: List[float] = field(default_factory=list)
    total_remaining_value: float = 0.0
    completion_date: Optional[date] = None

    @property
    def forecast_total(self) -> float:
        return sum(self.per_period_value)

    def to_dict(self) -> Dict:
        return {
            'project': self.project_code,
            'project_name': self.project_name,
            'currency': self.currency,
            'per_period_value': [round(v, 2) for v in self.per_period_value],
            'forecast_total': round(self.forecast_total, 2),
            'total_remaining_value': round(self.total_remaining_value, 2),
            'completion_date': self.completion_date.isoformat() if self.completion_date else None,
        }


@dataclass
class ForecastTable:
    """Portfolio revenue forecast: one row per project, one column per period."""
    periods: List[Period]
    rows: List[ForecastRow] = field(default_factory=list)

    @property
    def period_totals(self) -> List[float]:
        """Portfolio total per period."""
        return [
            sum(row.per_period_value[i] for row in self.rows)
            for i in range(len(self.periods))
        ]

    @property
    def grand_total(self) -> float:
        return sum(self.period_totals)

    @property
    def total_remaining_value(self) -> float:
        return sum(row.total_remaining_value for row in self.rows)

    def to_dict(self) -> Dict:
        return {
            'periods': [p.to_dict() for p in self.periods],
            'rows': [row.to_dict() for row in self.rows],
            'period_totals': [round(v, 2) for v in self.period_totals],
            'grand_total': round(self.grand_total, 2),
            'total_remaining_value': round(self.total_remaining_value, 2),
        }

    def to_frame(self) -> pd.DataFrame:
        """Projects as rows, period labels as columns, plus remaining value and completion."""
        labels = [p.label for p in self.periods]
        records = []
        for row in self.rows:
            record = {'project': row.project_code}
            record.update(dict(zip(labels, row.per_period_value)))
            record['total_remaining_value'] = row.total_remaining_value
            record['completion_date'] = row.completion_date
            records.append(record)
        columns = ['project'] + labels + ['total_remaining_value', 'completion_date']
        return pd.DataFrame(records, columns=columns).set_index('project')


def project_forecast_row(
    lookahead: ProjectLookAhead,
    periods: List[Period],
    today: date,
    calendar: Optional[WorkCalendar] = None
) -> ForecastRow:
    """Forecast values of one project across the periods."""
    calendar = calendar or WorkCalendar.default()
    values = [0.0] * len(periods)
    quantities = [0.0] * len(periods)
    remaining_value = 0.0

    for activity in lookahead.open_activities:
        rate = derive_rate(activity.work_item)
        remaining_value += activity.remaining_units * rate

        forecast_so_far = 0.0
        for i, period in enumerate(periods):
            quantity = forecast_quantity(activity, period, today, calendar, forecast_so_far)
            forecast_so_far += quantity
            quantities[i] += quantity
            values[i] += quantity * rate

    return ForecastRow(
        project_code=lookahead.project.full_code,
        project_name=lookahead.project.name,
        currency=lookahead.project.currency,
        per_period_value=values,
        per_period_quantity=quantities,
        total_remaining_value=remaining_value,
        completion_date=lookahead.latest_completion_date,
    )


def build_forecast_table(
    lookaheads: Iterable[ProjectLookAhead],
    periods: Iterable[Period],
    today: date,
    calendar: Optional[WorkCalendar] = None
) -> ForecastTable:
    """
    Build the portfolio revenue forecast.

    Periods are forecast in chronological order so the remaining-units cap
    is consumed earliest first.
    """
    calendar = calendar or WorkCalendar.default()
    periods = sorted(periods, key=lambda p: p.start)
    table = ForecastTable(periods=periods)
    for lookahead in lookaheads:
        table.rows.append(project_forecast_row(lookahead, periods, today, calendar))

    logger.info(
        f"Forecast table: {len(table.rows)} projects x {len(periods)} periods, "
        f"total {table.grand_total:,.2f}"
    )
    return table
