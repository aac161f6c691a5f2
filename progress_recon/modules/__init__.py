# Progress Reconciliation Engine - Modules
from .matching import matches, explain_match, match_entries
from .periods import period_key, period_bounds, period_label, previous_period
from .aggregation import build_progress_report, compute_progress_row
from .lookahead import build_project_lookahead, build_portfolio_lookahead
from .financial import derive_rate, build_forecast_table
from .ingest import load_snapshot, read_snapshot

__all__ = [
    "matches",
    "explain_match",
    "match_entries",
    "period_key",
    "period_bounds",
    "period_label",
    "previous_period",
    "build_progress_report",
    "compute_progress_row",
    "build_project_lookahead",
    "build_portfolio_lookahead",
    "derive_rate",
    "build_forecast_table",
    "load_snapshot",
    "read_snapshot",
]
