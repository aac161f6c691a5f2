"""
Report CLI Commands - Progress reports, lookahead and revenue forecast.

Every command reads a JSON snapshot with 'projects', 'work_items' and
'entries' arrays of raw records and runs the engine on it.
"""
import json
import logging
from datetime import date
from typing import Optional

import click

from progress_recon import __version__
from progress_recon.config import get_config
from progress_recon.domain.exceptions import DomainError
from progress_recon.modules.aggregation import build_progress_report
from progress_recon.modules.diagnostics import reconciliation_report
from progress_recon.modules.financial import build_forecast_table
from progress_recon.modules.ingest import Snapshot, read_snapshot
from progress_recon.modules.lookahead import build_portfolio_lookahead, lookahead_frame
from progress_recon.modules.normalize import normalize_project_code
from progress_recon.modules.periods import (
    custom_period,
    date_range_periods,
    lookahead_periods,
    make_period,
    period_for,
    recent_periods,
)

logger = logging.getLogger(__name__)

DATE_TYPE = click.DateTime(formats=['%Y-%m-%d'])


def _as_date(value) -> Optional[date]:
    return value.date() if value is not None else None


def _load(snapshot_path: str) -> Snapshot:
    try:
        snapshot = read_snapshot(snapshot_path)
    except (ValueError, DomainError) as e:
        click.echo(click.style(f"Cannot read snapshot: {e}", fg='red'), err=True)
        raise click.Abort()
    if snapshot.skipped:
        click.echo(click.style(
            f"Warning: {len(snapshot.skipped)} malformed records skipped",
            fg='yellow'
        ), err=True)
    return snapshot


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _find_project(snapshot: Snapshot, code: str):
    wanted = normalize_project_code(code)
    for project in snapshot.projects:
        if normalize_project_code(project.full_code) == wanted:
            return project
    for project in snapshot.projects:
        if normalize_project_code(project.code) == wanted:
            return project
    return None


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose: bool):
    """Progress Reconciliation and Forecasting Engine CLI.

    Reconcile dated planned/actual progress entries against
    bill-of-quantities work items, report period progress and forecast
    completion dates and remaining revenue.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@cli.command()
@click.argument('snapshot', type=click.Path(exists=True, dir_okay=False))
@click.option('--project', 'project_code', required=True, help='Project code or full code (e.g. P100-A)')
@click.option(
    '--granularity',
    type=click.Choice(['daily', 'weekly', 'monthly']),
    default='weekly',
    help='Period granularity'
)
@click.option('--period', 'period_key', default=None, help='Period key (2025-W02, 2025-01, 2025-01-06)')
@click.option('--start', type=DATE_TYPE, default=None, help='Custom period start (YYYY-MM-DD)')
@click.option('--end', type=DATE_TYPE, default=None, help='Custom period end (YYYY-MM-DD)')
@click.option('--combined', is_flag=True, help='Merge activities across zones')
@click.option('--cut-off', type=DATE_TYPE, default=None, help='Ignore entries after this date')
@click.option('--today', type=DATE_TYPE, default=None, help='Reference date (default: today)')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
def report(snapshot: str, project_code: str, granularity: str, period_key: Optional[str],
           start, end, combined: bool, cut_off, today, output_json: bool):
    """Period progress report for one project.

    Example:
        python cli.py report snapshot.json --project P100 --period 2025-W02
    """
    data = _load(snapshot)
    project = _find_project(data, project_code)
    if project is None:
        click.echo(click.style(f"Project '{project_code}' not found", fg='red'), err=True)
        raise click.Abort()

    today = _as_date(today) or date.today()
    try:
        if start is not None or end is not None:
            if start is None or end is None:
                raise click.BadParameter("--start and --end must be given together")
            period = custom_period(_as_date(start), _as_date(end))
        elif period_key:
            period = period_for(period_key)
        else:
            period = make_period(today, granularity)
    except DomainError as e:
        click.echo(click.style(e.message, fg='red'), err=True)
        raise click.Abort()

    result = build_progress_report(
        project, data.work_items, data.entries, period,
        combined=combined,
        cut_off=_as_date(cut_off),
    )

    if output_json:
        _echo_json(result.to_dict())
        return

    summary = result.summary
    click.echo(f"\n{'=' * 60}")
    click.echo(click.style(f"PROGRESS REPORT - {project.full_code} {project.name}", fg='green', bold=True))
    click.echo(f"{period.label}  (previous: {result.previous_period.label})")
    click.echo(f"{'=' * 60}")
    for group in result.groups:
        click.echo(click.style(f"\nZone {group.zone} / {group.division}", fg='cyan'))
        for row in group.rows:
            click.echo(
                f"  {row.description[:40]:<40} "
                f"period {row.period_actual:>10,.2f}/{row.period_planned:<10,.2f} "
                f"cum {row.cumulative_actual:>10,.2f}/{row.cumulative_planned:<10,.2f} "
                f"bal {row.balance:>10,.2f}  {row.status}"
            )
    click.echo(f"\n{'=' * 60}")
    click.echo(f"Activities:          {summary['activities']}")
    click.echo(f"Period progress:     {summary['period_progress_pct']:.1f}%")
    click.echo(f"Cumulative progress: {summary['cumulative_progress_pct']:.1f}%")
    click.echo(f"Overall completion:  {summary['overall_completion_pct']:.1f}%")
    click.echo(f"Completed / delayed: {summary['completed']} / {summary['delayed']}")
    for error in result.errors:
        click.echo(click.style(f"Row failed: {error['description']}: {error['error']}", fg='red'))


@cli.command()
@click.argument('snapshot', type=click.Path(exists=True, dir_okay=False))
@click.option('--today', type=DATE_TYPE, default=None, help='Reference date (default: today)')
@click.option('--division', default=None, help='Only projects of this division')
@click.option('--status', 'statuses', multiple=True, help='Project status to include (repeatable)')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
def lookahead(snapshot: str, today, division: Optional[str], statuses, output_json: bool):
    """Predicted completion dates of active projects."""
    data = _load(snapshot)
    today = _as_date(today) or date.today()

    result = build_portfolio_lookahead(
        data.projects, data.work_items, data.entries, today,
        statuses=list(statuses) or None,
        division=division,
    )

    if output_json:
        _echo_json([la.to_dict() for la in result])
        return

    click.echo(click.style(f"LOOKAHEAD as of {today.isoformat()}", fg='green', bold=True))
    if not result:
        click.echo("No active projects with remaining work.")
        return
    click.echo(lookahead_frame(result).to_string(index=False))
    for la in result:
        for error in la.errors:
            click.echo(click.style(
                f"Activity failed: {la.project.full_code} {error['description']}: {error['error']}", fg='red'
            ))


@cli.command()
@click.argument('snapshot', type=click.Path(exists=True, dir_okay=False))
@click.option('--today', type=DATE_TYPE, default=None, help='Reference date (default: today)')
@click.option(
    '--period-type',
    type=click.Choice(['days', 'weeks', 'months']),
    default=None,
    help='Column unit in count mode'
)
@click.option('--count', type=int, default=None, help='Number of columns in count mode')
@click.option('--start', type=DATE_TYPE, default=None, help='Range start (date mode)')
@click.option('--end', type=DATE_TYPE, default=None, help='Range end (date mode)')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
def forecast(snapshot: str, today, period_type: Optional[str], count: Optional[int],
             start, end, output_json: bool):
    """Period-bucketed revenue forecast of active projects.

    Count mode (default) forecasts the next N days, weeks or months;
    date mode (--start/--end) picks daily, weekly or monthly columns
    from the range length.
    """
    data = _load(snapshot)
    today = _as_date(today) or date.today()

    try:
        if start is not None or end is not None:
            if start is None or end is None:
                raise click.BadParameter("--start and --end must be given together")
            periods = date_range_periods(_as_date(start), _as_date(end))
        else:
            periods = lookahead_periods(today, period_type, count)
    except DomainError as e:
        click.echo(click.style(e.message, fg='red'), err=True)
        raise click.Abort()

    lookaheads = build_portfolio_lookahead(data.projects, data.work_items, data.entries, today)
    table = build_forecast_table(lookaheads, periods, today)

    if output_json:
        _echo_json(table.to_dict())
        return

    click.echo(click.style(f"REVENUE FORECAST as of {today.isoformat()}", fg='green', bold=True))
    click.echo(table.to_frame().to_string())
    click.echo(f"\nForecast total:        {table.grand_total:>15,.2f}")
    click.echo(f"Total remaining value: {table.total_remaining_value:>15,.2f}")


@cli.command()
@click.argument('snapshot', type=click.Path(exists=True, dir_okay=False))
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
def diagnose(snapshot: str, output_json: bool):
    """Unmatched, ambiguous and excluded entries, and orphan work items."""
    data = _load(snapshot)
    result = reconciliation_report(data.projects, data.work_items, data.entries)

    if output_json:
        _echo_json(result)
        return

    click.echo(click.style("RECONCILIATION DIAGNOSTICS", fg='green', bold=True))
    click.echo(f"Unmatched entries:  {len(result['unmatched_entries'])}")
    for item in result['unmatched_entries']:
        entry = item['entry']
        click.echo(f"  - {entry['project_code']} / {entry['activity_description']} / zone {entry['zone']}")
        for suggestion in item['suggestions']:
            click.echo(f"      did you mean '{suggestion['description']}' ({suggestion['score']:.0f})")
    click.echo(f"Ambiguous entries:  {len(result['ambiguous_entries'])}")
    click.echo(f"Excluded entries:   {len(result['excluded_entries'])}")
    click.echo(f"Orphan work items:  {len(result['orphan_work_items'])}")


@cli.command()
@click.option(
    '--granularity',
    type=click.Choice(['daily', 'weekly', 'monthly']),
    default='weekly',
    help='Period granularity'
)
@click.option('--count', type=int, default=None, help='Number of periods (default from config)')
@click.option('--today', type=DATE_TYPE, default=None, help='Reference date (default: today)')
def periods(granularity: str, count: Optional[int], today):
    """List recent period keys, newest last."""
    today = _as_date(today) or date.today()
    count = count if count is not None else get_config().recent_period_count
    for period in recent_periods(granularity, today, count):
        click.echo(f"{period.key:<12} {period.label}")
