"""
Domain Layer - Core business entities and exceptions for progress reconciliation.

This module contains:
- entities/: Immutable domain objects (Project, WorkItem, ProgressEntry, Period)
- exceptions: DomainError hierarchy
"""

from .entities.project import Project, ProjectStatus
from .entities.work_item import WorkItem
from .entities.progress_entry import ProgressEntry, InputType
from .entities.period import Period, Granularity
from .exceptions import (
    DomainError,
    InvalidPeriodError,
    UnknownGranularityError,
    MalformedRecordError,
)

__all__ = [
    'Project', 'ProjectStatus',
    'WorkItem',
    'ProgressEntry', 'InputType',
    'Period', 'Granularity',
    'DomainError', 'InvalidPeriodError', 'UnknownGranularityError',
    'MalformedRecordError',
]
