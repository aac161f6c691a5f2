"""
Project Entity - A contract tracked by code and optional sub-code.
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from ...config import get_config


class ProjectStatus(Enum):
    """Lifecycle status of a project."""
    UPCOMING = "upcoming"
    SITE_PREPARATION = "site-preparation"
    ON_GOING = "on-going"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"

    @classmethod
    def from_value(cls, value) -> Optional['ProjectStatus']:
        """Loose lookup: 'On Going', 'ongoing' and 'on-going' are the same status."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        key = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        if key == "ongoing":
            key = "on-going"
        for status in cls:
            if status.value == key:
                return status
        return None


@dataclass(frozen=True)
class Project:
    """
    Immutable project header.

    Attributes:
        id: Source identifier
        code: Project code (e.g. 'P100')
        sub_code: Optional sub-code (e.g. 'A'); full code becomes 'P100-A'
        name: Display name
        status: Lifecycle status, None when the source value was unknown
        division: Owning division or business unit
        currency: Currency of contract and rates
        contract_amount: Contract value
    """

    id: Optional[str] = None
    code: str = ""
    sub_code: Optional[str] = None
    name: str = ""
    status: Optional[ProjectStatus] = None
    division: str = ""
    currency: str = ""
    contract_amount: Decimal = Decimal("0")

    def __post_init__(self):
        if self.contract_amount < 0:
            raise ValueError("Project contract amount cannot be negative")

    @property
    def full_code(self) -> str:
        if self.sub_code:
            return f"{self.code}{get_config().sub_code_separator}{self.sub_code}"
        return self.code

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'code': self.code,
            'sub_code': self.sub_code,
            'full_code': self.full_code,
            'name': self.name,
            'status': self.status.value if self.status else None,
            'division': self.division,
            'currency': self.currency,
            'contract_amount': float(self.contract_amount),
        }
