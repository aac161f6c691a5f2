"""
Domain Entities - Core immutable business objects.
"""

from .project import Project, ProjectStatus
from .work_item import WorkItem
from .progress_entry import ProgressEntry, InputType
from .period import Period, Granularity

__all__ = [
    'Project', 'ProjectStatus',
    'WorkItem',
    'ProgressEntry', 'InputType',
    'Period', 'Granularity',
]
