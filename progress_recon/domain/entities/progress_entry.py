"""
Progress Entry Entity - One dated planned or actual quantity record.
"""
from dataclasses import dataclass
import datetime
from enum import Enum
from typing import Optional


class InputType(Enum):
    """Whether a progress entry records plan or execution."""
    PLANNED = "planned"
    ACTUAL = "actual"


@dataclass(frozen=True)
class ProgressEntry:
    """
    Immutable dated progress record.

    input_type is None when the source value was not recognized and date
    is None when it could not be parsed. Such entries are kept for
    diagnostics but never counted in any sum.

    Attributes:
        project_code: Project code the entry was booked against
        project_full_code: Code plus sub-code, when given
        activity_description: Free-text activity name
        zone: Optional zone label
        input_type: PLANNED, ACTUAL or None
        date: Work date
        quantity: Quantity of work; 0 when the source value was unparsable
        id: Source identifier
    """

    project_code: str = ""
    project_full_code: Optional[str] = None
    activity_description: str = ""
    zone: Optional[str] = None
    input_type: Optional[InputType] = None
    date: Optional[datetime.date] = None
    quantity: float = 0.0
    id: Optional[str] = None

    @property
    def is_countable(self) -> bool:
        """True when the entry can take part in sums."""
        return self.input_type is not None and self.date is not None

    @property
    def is_planned(self) -> bool:
        return self.input_type is InputType.PLANNED and self.date is not None

    @property
    def is_actual(self) -> bool:
        return self.input_type is InputType.ACTUAL and self.date is not None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'project_code': self.project_code,
            'project_full_code': self.project_full_code,
            'activity_description': self.activity_description,
            'zone': self.zone,
            'input_type': self.input_type.value if self.input_type else None,
            'date': self.date.isoformat() if self.date else None,
            'quantity': self.quantity,
        }
