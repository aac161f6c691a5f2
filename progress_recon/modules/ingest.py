"""
Ingestion adapter.

Turns raw, loosely-typed records (spreadsheet exports, API rows, JSON
snapshots) into canonical Project / WorkItem / ProgressEntry entities.
Each canonical field has an ordered alias list; the first alias present
with a non-blank value wins.

Recovery rules:
    quantity unparsable  -> 0.0
    date unparsable      -> None (entry excluded from sums downstream)
    input type unknown   -> None (entry excluded from sums downstream)
    not a mapping, or violates entity invariants -> MalformedRecordError
"""
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd

from ..config import get_config
from ..domain.entities import (
    InputType,
    Project,
    ProjectStatus,
    ProgressEntry,
    WorkItem,
)
from ..domain.exceptions import MalformedRecordError
from .normalize import normalize_input_type

logger = logging.getLogger(__name__)


# =============================================================================
# Field aliases
# =============================================================================

PROJECT_FIELDS = {
    'id': ['id', 'ID', 'project_id'],
    'code': ['Project Code', 'project_code', 'code'],
    'sub_code': ['Project Sub-Code', 'Project Sub Code', 'project_sub_code', 'sub_code'],
    'full_code': ['Project Full Code', 'project_full_code', 'full_code'],
    'name': ['Project Name', 'project_name', 'name'],
    'status': ['Project Status', 'project_status', 'status'],
    'division': ['Responsible Division', 'responsible_division', 'division'],
    'currency': ['Currency', 'currency'],
    'contract_amount': ['Contract Amount', 'contract_amount'],
}

WORK_ITEM_FIELDS = {
    'id': ['id', 'ID'],
    'project_code': ['Project Code', 'project_code'],
    'project_full_code': ['Project Full Code', 'project_full_code'],
    'description': [
        'Activity Description', 'Activity', 'Activity Name',
        'activity_description', 'activity', 'activity_name', 'description',
    ],
    'zone': ['Zone #', 'Zone Number', 'Zone', 'zone_number', 'zone'],
    'division': ['Activity Division', 'activity_division', 'division'],
    'unit': ['Unit', 'unit'],
    'total_units': ['Total Units', 'total_units'],
    'planned_units': ['Planned Units', 'planned_units'],
    'actual_units': ['Actual Units', 'actual_units'],
    'rate': ['Rate', 'rate'],
    'total_value': ['Total Value', 'total_value'],
    'progress_percent': ['Activity Progress %', 'activity_progress_percentage', 'progress_percent'],
    'completed': ['Activity Completed', 'activity_completed', 'completed'],
    'delayed': ['Activity Delayed?', 'activity_delayed', 'delayed'],
    'delay_percent': ['Delay %', 'delay_percentage', 'delay_percent'],
    'calendar_duration': ['Calendar Duration', 'calendar_duration'],
    'deadline': ['Deadline', 'deadline'],
    'planned_start': ['Planned Activity Start Date', 'planned_activity_start_date', 'planned_start'],
    'actual_start': ['Actual Activity Start Date', 'actual_activity_start_date', 'actual_start'],
    'planned_completion': [
        'Planned Activity Completion Date', 'activity_planned_completion_date', 'planned_completion',
    ],
    'actual_completion': [
        'Actual Activity Completion Date', 'activity_actual_completion_date', 'actual_completion',
    ],
}

ENTRY_FIELDS = {
    'id': ['id', 'ID'],
    'project_code': ['Project Code', 'project_code'],
    'project_full_code': ['Project Full Code', 'project_full_code'],
    'activity_description': [
        'Activity Description', 'Activity', 'Activity Name',
        'activity_description', 'activity', 'activity_name',
    ],
    'zone': ['Zone #', 'Zone Number', 'Zone', 'zone_number', 'zone'],
    'input_type': ['Input Type', 'input_type'],
    'quantity': ['Quantity', 'quantity'],
}

# Date aliases depend on the entry's input type
ENTRY_DATE_FIELDS = {
    InputType.ACTUAL: ['Actual Date', 'actual_date', 'Activity Date', 'activity_date', 'Date', 'date'],
    InputType.PLANNED: ['Target Date', 'target_date', 'Activity Date', 'activity_date', 'Date', 'date'],
    None: ['Activity Date', 'activity_date', 'Date', 'date'],
}

_TRUE_VALUES = {'true', 'yes', 'y', '1', 'completed', 'x'}
_BLANK_VALUES = {'', '-', 'null', 'none', 'undefined', 'n/a', '#div/0!', '#error!'}

# Excel serial dates count from 1899-12-30
EXCEL_EPOCH = '1899-12-30'
_SERIAL = re.compile(r'^\d+(\.\d+)?$')


# =============================================================================
# Value parsing
# =============================================================================

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    if isinstance(value, str) and value.strip().lower() in _BLANK_VALUES:
        return True
    return False


def pick(record: Mapping, aliases: Iterable[str], default: Any = None) -> Any:
    """First non-blank value among the aliases, else default."""
    for alias in aliases:
        if alias in record and not _is_blank(record[alias]):
            return record[alias]
    return default


def parse_quantity(value: Union[str, float, int, None]) -> float:
    """
    Parse a quantity to float using Decimal.

    Handles:
        " 1,250.5 " -> 1250.5
        12          -> 12.0
        None, NaN, "", "-", "abc" -> 0.0
    """
    if _is_blank(value):
        return 0.0
    if isinstance(value, bool):
        return 0.0

    s = str(value).strip().replace(',', '').replace(' ', '')
    try:
        d = Decimal(s)
    except (InvalidOperation, ValueError):
        return 0.0
    if not d.is_finite():
        return 0.0
    return float(d)


def parse_optional_number(value: Any) -> Optional[float]:
    """Like parse_quantity but keeps 'absent' distinct from zero."""
    if _is_blank(value):
        return None
    return parse_quantity(value)


def parse_flag(value: Any) -> bool:
    """Parse a loosely-typed boolean ('Yes', 'TRUE', 1, True)."""
    if _is_blank(value):
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_VALUES


def _parse_with_format(s: str, fmt: str) -> Optional[date]:
    parsed = pd.to_datetime(s, format=fmt, errors='coerce')
    if pd.isna(parsed):
        return None
    return parsed.date()


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a date from the formats found in project exports.

    Handles:
        date / datetime / pandas Timestamp
        2025-01-06, 2025-01-06T08:00:00   (ISO)
        20250106                          (YYYYMMDD)
        01/06/2025                        (MM/DD/YYYY)
        23/01/2025                        (DD/MM/YYYY when the first part > 12)
        6-Jan-25, 6-Jan-2025              (D-Mon-YY)
        45663                             (Excel serial)

    Returns:
        date, or None when the value cannot be parsed
    """
    if _is_blank(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None

    s = str(value).strip()

    # YYYYMMDD before Excel serials: both are all digits
    if len(s) == 8 and s.isdigit():
        return _parse_with_format(s, '%Y%m%d')

    if _SERIAL.match(s):
        serial = float(s)
        if not 0 < serial < 1000000:
            return None
        parsed = pd.to_datetime(int(serial), unit='D', origin=EXCEL_EPOCH)
        if not 1900 <= parsed.year <= 2100:
            return None
        return parsed.date()

    if re.match(r'^\d{4}-\d{2}-\d{2}', s):
        return _parse_with_format(s[:10], '%Y-%m-%d')

    match = re.match(r'^(\d{1,2})/(\d{1,2})/(\d{4})$', s)
    if match:
        if int(match.group(1)) > 12:
            return _parse_with_format(s, '%d/%m/%Y')
        return _parse_with_format(s, '%m/%d/%Y')

    match = re.match(r'^\d{1,2}-[A-Za-z]{3}-(\d{2}|\d{4})$', s)
    if match:
        fmt = '%d-%b-%y' if len(match.group(1)) == 2 else '%d-%b-%Y'
        return _parse_with_format(s.title(), fmt)

    return None


def _text(value: Any) -> str:
    if _is_blank(value):
        return ''
    return str(value).strip()


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _require_mapping(record: Any, record_type: str, index: Optional[int]) -> Mapping:
    if not isinstance(record, Mapping):
        raise MalformedRecordError(record_type, f"expected a mapping, got {type(record).__name__}", index)
    return record


# =============================================================================
# Record adapters
# =============================================================================

def project_from_record(record: Mapping, index: Optional[int] = None) -> Project:
    """
    Build a Project from a raw record.

    When only a full code is given ('P100-A') the code and sub-code are
    split on the first separator.
    """
    record = _require_mapping(record, 'project', index)
    f = PROJECT_FIELDS

    code = _text(pick(record, f['code']))
    sub_code = _optional_text(pick(record, f['sub_code']))
    full_code = _text(pick(record, f['full_code']))

    if full_code and not sub_code:
        separator = get_config().sub_code_separator
        prefix = f"{code}{separator}"
        if code and full_code.startswith(prefix) and len(full_code) > len(prefix):
            sub_code = full_code[len(prefix):]
        elif not code:
            code, _, rest = full_code.partition(separator)
            sub_code = rest or None
    if not code:
        raise MalformedRecordError('project', "missing project code", index)

    status_raw = pick(record, f['status'])
    status = ProjectStatus.from_value(status_raw)
    if status_raw is not None and status is None:
        logger.debug(f"Unknown project status {status_raw!r} for project {code}")

    try:
        return Project(
            id=_optional_text(pick(record, f['id'])),
            code=code,
            sub_code=sub_code,
            name=_text(pick(record, f['name'])),
            status=status,
            division=_text(pick(record, f['division'])),
            currency=_text(pick(record, f['currency'])),
            contract_amount=Decimal(str(parse_quantity(pick(record, f['contract_amount'])))),
        )
    except ValueError as e:
        raise MalformedRecordError('project', str(e), index)


def work_item_from_record(record: Mapping, index: Optional[int] = None) -> WorkItem:
    """Build a WorkItem from a raw record."""
    record = _require_mapping(record, 'work item', index)
    f = WORK_ITEM_FIELDS

    try:
        return WorkItem(
            id=_optional_text(pick(record, f['id'])),
            project_code=_text(pick(record, f['project_code'])),
            project_full_code=_optional_text(pick(record, f['project_full_code'])),
            description=_text(pick(record, f['description'])),
            zone=_optional_text(pick(record, f['zone'])),
            division=_text(pick(record, f['division'])),
            unit=_text(pick(record, f['unit'])),
            total_units=parse_quantity(pick(record, f['total_units'])),
            planned_units=parse_quantity(pick(record, f['planned_units'])),
            actual_units=parse_quantity(pick(record, f['actual_units'])),
            rate=parse_optional_number(pick(record, f['rate'])),
            total_value=parse_optional_number(pick(record, f['total_value'])),
            progress_percent=parse_optional_number(pick(record, f['progress_percent'])),
            completed=parse_flag(pick(record, f['completed'])),
            delayed=parse_flag(pick(record, f['delayed'])),
            delay_percent=parse_optional_number(pick(record, f['delay_percent'])),
            calendar_duration=parse_optional_number(pick(record, f['calendar_duration'])),
            deadline=parse_date(pick(record, f['deadline'])),
            planned_start=parse_date(pick(record, f['planned_start'])),
            actual_start=parse_date(pick(record, f['actual_start'])),
            planned_completion=parse_date(pick(record, f['planned_completion'])),
            actual_completion=parse_date(pick(record, f['actual_completion'])),
        )
    except ValueError as e:
        raise MalformedRecordError('work item', str(e), index)


def progress_entry_from_record(record: Mapping, index: Optional[int] = None) -> ProgressEntry:
    """
    Build a ProgressEntry from a raw record.

    Never fails on bad values: an unknown input type or unparsable date
    yields an entry that downstream sums ignore.
    """
    record = _require_mapping(record, 'progress entry', index)
    f = ENTRY_FIELDS

    input_type = normalize_input_type(pick(record, f['input_type']))
    raw_date = pick(record, ENTRY_DATE_FIELDS[input_type])
    entry_date = parse_date(raw_date)

    if input_type is None:
        logger.debug(f"Entry {index}: unrecognized input type {pick(record, f['input_type'])!r}")
    if entry_date is None:
        logger.debug(f"Entry {index}: unparsable date {raw_date!r}")

    return ProgressEntry(
        id=_optional_text(pick(record, f['id'])),
        project_code=_text(pick(record, f['project_code'])),
        project_full_code=_optional_text(pick(record, f['project_full_code'])),
        activity_description=_text(pick(record, f['activity_description'])),
        zone=_optional_text(pick(record, f['zone'])),
        input_type=input_type,
        date=entry_date,
        quantity=parse_quantity(pick(record, f['quantity'])),
    )


# =============================================================================
# Snapshot
# =============================================================================

@dataclass
class Snapshot:
    """Canonical inputs for one engine invocation."""
    projects: List[Project] = field(default_factory=list)
    work_items: List[WorkItem] = field(default_factory=list)
    entries: List[ProgressEntry] = field(default_factory=list)
    skipped: List[MalformedRecordError] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'projects': len(self.projects),
            'work_items': len(self.work_items),
            'entries': len(self.entries),
            'excluded_entries': sum(1 for e in self.entries if not e.is_countable),
            'skipped': [e.message for e in self.skipped],
        }


def _adapt_all(records, adapter, skipped: list) -> list:
    result = []
    for i, record in enumerate(records or []):
        try:
            result.append(adapter(record, i))
        except MalformedRecordError as e:
            logger.warning(f"Skipping record: {e.message}")
            skipped.append(e)
    return result


def load_snapshot(
    projects: Iterable[Mapping] = (),
    work_items: Iterable[Mapping] = (),
    entries: Iterable[Mapping] = ()
) -> Snapshot:
    """
    Adapt raw record collections into a Snapshot.

    Malformed records are skipped with a warning and listed in
    Snapshot.skipped; the rest of the snapshot still loads.
    """
    skipped: List[MalformedRecordError] = []
    snapshot = Snapshot(
        projects=_adapt_all(projects, project_from_record, skipped),
        work_items=_adapt_all(work_items, work_item_from_record, skipped),
        entries=_adapt_all(entries, progress_entry_from_record, skipped),
        skipped=skipped,
    )
    logger.info(
        f"Loaded snapshot: {len(snapshot.projects)} projects, "
        f"{len(snapshot.work_items)} work items, {len(snapshot.entries)} entries "
        f"({len(skipped)} skipped)"
    )
    return snapshot


def read_snapshot(path: Union[str, Path]) -> Snapshot:
    """
    Load a JSON snapshot file with 'projects', 'work_items' and 'entries' arrays.

    Raises:
        MalformedRecordError: the file is not a JSON object
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise MalformedRecordError('snapshot', f"{path} must contain a JSON object")
    return load_snapshot(
        projects=data.get('projects', []),
        work_items=data.get('work_items', []),
        entries=data.get('entries', []),
    )
