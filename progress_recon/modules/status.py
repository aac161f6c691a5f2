"""
Activity status classification.

Completion, delay signals and progress status bands for a work item on
a given day. Completion always wins: a completed item is never delayed,
whatever its flags or dates say. Otherwise any single delay signal marks
the item delayed.
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple

from ..config import get_config
from ..domain.entities import WorkItem


class ActivityState(Enum):
    """Terminal classification of a work item on a given day."""
    COMPLETED = "completed"
    DELAYED_NOT_STARTED = "delayed_not_started"
    IN_PROGRESS = "in_progress"


class DelaySignal(Enum):
    """Independent reasons for calling an item delayed."""
    EXPLICIT_FLAG = "explicit_flag"
    DEADLINE_PASSED = "deadline_passed"
    START_OVERDUE = "start_overdue"
    DELAY_PERCENT = "delay_percent"


@dataclass(frozen=True)
class DelayAssessment:
    """Delay verdict plus every signal that fired."""
    delayed: bool
    completed: bool
    signals: Tuple[DelaySignal, ...] = ()

    def to_dict(self) -> dict:
        return {
            'delayed': self.delayed,
            'completed': self.completed,
            'signals': [s.value for s in self.signals],
        }


def effective_progress(work_item: WorkItem, measured_percent: Optional[float] = None) -> float:
    """Larger of the stored progress percentage and the measured one."""
    stored = work_item.progress_percent or 0.0
    if measured_percent is None:
        return stored
    return max(stored, measured_percent)


def is_completed(
    work_item: WorkItem,
    today: date,
    progress_percent: Optional[float] = None,
    remaining_units: Optional[float] = None
) -> bool:
    """
    True when any completion signal holds.

    Args:
        work_item: Item to check
        today: Reference date
        progress_percent: Measured progress; the stored value is used when larger
        remaining_units: Remaining scope, when already computed
    """
    if work_item.completed:
        return True
    if effective_progress(work_item, progress_percent) >= 100:
        return True
    if work_item.actual_completion is not None and work_item.actual_completion <= today:
        return True
    if remaining_units is not None and remaining_units <= 0 and work_item.scope_units > 0:
        return True
    return False


def detect_delay(
    work_item: WorkItem,
    today: date,
    progress_percent: Optional[float] = None,
    remaining_units: Optional[float] = None
) -> DelayAssessment:
    """Assess delay. Completion suppresses every signal; otherwise any one triggers."""
    if is_completed(work_item, today, progress_percent, remaining_units):
        return DelayAssessment(delayed=False, completed=True)

    progress = effective_progress(work_item, progress_percent)
    signals = []
    if work_item.delayed:
        signals.append(DelaySignal.EXPLICIT_FLAG)
    if work_item.deadline is not None and work_item.deadline < today:
        signals.append(DelaySignal.DEADLINE_PASSED)
    if (work_item.planned_start is not None and work_item.planned_start < today
            and work_item.actual_start is None and progress <= 0):
        signals.append(DelaySignal.START_OVERDUE)
    if work_item.delay_percent is not None and work_item.delay_percent > 0:
        signals.append(DelaySignal.DELAY_PERCENT)

    return DelayAssessment(delayed=bool(signals), completed=False, signals=tuple(signals))


def classify_activity(
    work_item: WorkItem,
    today: date,
    progress_percent: Optional[float] = None,
    remaining_units: Optional[float] = None
) -> ActivityState:
    """Completed, delayed-not-started, or in progress."""
    if is_completed(work_item, today, progress_percent, remaining_units):
        return ActivityState.COMPLETED

    progress = effective_progress(work_item, progress_percent)
    if (work_item.planned_start is not None and work_item.planned_start < today
            and work_item.actual_start is None and progress <= 0):
        return ActivityState.DELAYED_NOT_STARTED
    return ActivityState.IN_PROGRESS


def progress_status(percent: float) -> str:
    """Status band for a progress percentage: completed, on_track, at_risk or delayed."""
    return get_config().get_status_band(percent)
