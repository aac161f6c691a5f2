"""
Domain Exceptions for Progress Reconciliation.

Most data problems are recovered in place (quantity -> 0, date -> excluded,
denominator -> 0). The exceptions below cover the cases a caller must see:
- Period keys that cannot be parsed
- Granularities the bucketer does not know
- Records that are not records at all
"""
from typing import Optional


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


# =============================================================================
# Period Exceptions
# =============================================================================

class InvalidPeriodError(DomainError):
    """Raised when a period key or date range cannot be interpreted."""

    def __init__(self, value: str, reason: str = "unrecognized period key"):
        message = f"Invalid period '{value}': {reason}"
        super().__init__(message, code="INVALID_PERIOD")
        self.value = value
        self.reason = reason


class UnknownGranularityError(DomainError):
    """Raised when a granularity name is not daily, weekly, monthly or custom."""

    def __init__(self, granularity: str):
        message = (
            f"Unknown granularity '{granularity}'. "
            f"Expected one of: daily, weekly, monthly, custom"
        )
        super().__init__(message, code="UNKNOWN_GRANULARITY")
        self.granularity = granularity


# =============================================================================
# Record Exceptions
# =============================================================================

class MalformedRecordError(DomainError):
    """Raised when a raw record cannot be turned into an entity."""

    def __init__(self, record_type: str, reason: str, index: Optional[int] = None):
        location = f" at index {index}" if index is not None else ""
        message = f"Malformed {record_type} record{location}: {reason}"
        super().__init__(message, code="MALFORMED_RECORD")
        self.record_type = record_type
        self.reason = reason
        self.index = index
