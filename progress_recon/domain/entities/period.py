"""
Period Entity - An inclusive reporting window.
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum


class Granularity(Enum):
    """Reporting period granularity."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Period:
    """
    Inclusive date window [start, end] with its canonical key and label.

    Attributes:
        start: First day of the period
        end: Last day of the period
        key: Canonical key ('2025-W02', '2025-01', ...)
        label: Human-readable label
        granularity: Granularity the key was built with
    """

    start: date
    end: date
    key: str = ""
    label: str = ""
    granularity: Granularity = Granularity.CUSTOM

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Period start {self.start} is after end {self.end}")

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    @property
    def days(self) -> int:
        """Number of calendar days in the period."""
        return (self.end - self.start).days + 1

    def to_dict(self) -> dict:
        return {
            'key': self.key,
            'label': self.label,
            'granularity': self.granularity.value,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
        }
