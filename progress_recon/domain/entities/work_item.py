"""
Work Item Entity - One bill-of-quantities line of a project.

A work item is scoped by project code, activity description and zone,
and carries the scope quantity, the commercial rate and the schedule
dates used by the delay and lookahead logic.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class WorkItem:
    """
    Immutable bill-of-quantities line.

    Attributes:
        id: Source identifier
        project_code: Code of the owning project
        project_full_code: Code plus sub-code, when the item is sub-coded
        description: Activity description used for matching
        zone: Optional zone label ('Zone 1', '1', 'Z-03', ...)
        division: Trade or division label used for grouping
        unit: Unit of measure
        total_units: Scope quantity (must be non-negative)
        planned_units: Planned quantity recorded on the item itself
        actual_units: Actual quantity recorded on the item itself
        rate: Unit rate
        total_value: Scope value; takes precedence over rate when both exist
        progress_percent: Stored progress percentage from the source system
        completed: Explicit completion flag
        delayed: Explicit delay flag
        delay_percent: Stored delay percentage
        calendar_duration: Planned duration in calendar days
        deadline: Contractual finish date
        planned_start / actual_start / planned_completion / actual_completion
    """

    id: Optional[str] = None
    project_code: str = ""
    project_full_code: Optional[str] = None
    description: str = ""
    zone: Optional[str] = None
    division: str = ""
    unit: str = ""

    # Quantities
    total_units: float = 0.0
    planned_units: float = 0.0
    actual_units: float = 0.0

    # Commercial
    rate: Optional[float] = None
    total_value: Optional[float] = None

    # Status
    progress_percent: Optional[float] = None
    completed: bool = False
    delayed: bool = False
    delay_percent: Optional[float] = None
    calendar_duration: Optional[float] = None

    # Schedule
    deadline: Optional[date] = None
    planned_start: Optional[date] = None
    actual_start: Optional[date] = None
    planned_completion: Optional[date] = None
    actual_completion: Optional[date] = None

    def __post_init__(self):
        """Validate quantities and value are non-negative."""
        if self.total_units < 0:
            raise ValueError("Work item total units cannot be negative")
        if self.planned_units < 0 or self.actual_units < 0:
            raise ValueError("Work item planned/actual units cannot be negative")
        if self.total_value is not None and self.total_value < 0:
            raise ValueError("Work item total value cannot be negative")

    @property
    def full_code(self) -> str:
        """Full project code, falling back to the bare code."""
        return self.project_full_code or self.project_code

    @property
    def scope_units(self) -> float:
        """Denominator for progress: total units, else the planned quantity."""
        if self.total_units > 0:
            return self.total_units
        return self.planned_units

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'project_code': self.project_code,
            'project_full_code': self.project_full_code,
            'description': self.description,
            'zone': self.zone,
            'division': self.division,
            'unit': self.unit,
            'total_units': self.total_units,
            'planned_units': self.planned_units,
            'actual_units': self.actual_units,
            'rate': self.rate,
            'total_value': self.total_value,
            'progress_percent': self.progress_percent,
            'completed': self.completed,
            'delayed': self.delayed,
        }
