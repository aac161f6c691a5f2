"""
Tests for the command-line interface.
Runs each command against a small JSON snapshot.
"""
import json
import pytest

from click.testing import CliRunner

from progress_recon.cli import cli
from progress_recon.domain.exceptions import DomainError


WORKED_DAYS = ['2026-10-%02d' % d for d in (5, 6, 7, 8, 11, 12, 13, 14, 15, 18)]


@pytest.fixture
def snapshot(tmp_path):
    data = {
        'projects': [
            {'Project Code': 'P100', 'Project Name': 'Tower', 'Project Status': 'On Going',
             'Responsible Division': 'Buildings', 'Currency': 'SAR'},
        ],
        'work_items': [
            {'ID': 'W1', 'Project Code': 'P100', 'Activity': 'Excavation',
             'Total Units': 80, 'Activity Completed': 'Yes'},
            {'ID': 'W2', 'Project Code': 'P100', 'Activity': 'Block Work',
             'Total Units': 100, 'Total Value': '1,000'},
        ],
        'entries': [
            {'Project Code': 'P100', 'Activity': 'Block Work', 'Input Type': 'Actual',
             'Actual Date': d, 'Quantity': 5}
            for d in WORKED_DAYS
        ] + [
            {'Project Code': 'P100', 'Activity': 'Excavaton', 'Input Type': 'Actual',
             'Actual Date': '2026-10-12', 'Quantity': 3},
            {'Project Code': 'P100', 'Activity': 'Block Work', 'Input Type': 'Forecast',
             'Activity Date': '2026-10-12', 'Quantity': 3},
        ],
    }
    path = tmp_path / 'snapshot.json'
    path.write_text(json.dumps(data))
    return str(path)


@pytest.fixture
def runner():
    return CliRunner()


class TestReportCommand:
    """Tests for the report command."""

    def test_json_report(self, runner, snapshot):
        result = runner.invoke(cli, ['report', snapshot, '--project', 'P100', '--period', '2026-W42', '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data['period']['key'] == '2026-W42'
        rows = {row['description']: row for group in data['groups'] for row in group['rows']}
        assert rows['Block Work']['period_actual'] == 25
        assert rows['Block Work']['previous_period_actual'] == 25
        assert rows['Block Work']['cumulative_actual'] == 50

    def test_text_report(self, runner, snapshot):
        result = runner.invoke(cli, ['report', snapshot, '--project', 'p100', '--period', '2026-10'])
        assert result.exit_code == 0, result.output
        assert 'PROGRESS REPORT - P100 Tower' in result.output
        assert 'October 2026' in result.output

    def test_unknown_project(self, runner, snapshot):
        result = runner.invoke(cli, ['report', snapshot, '--project', 'P999'])
        assert result.exit_code != 0
        assert "Project 'P999' not found" in result.output

    def test_invalid_period(self, runner, snapshot):
        result = runner.invoke(cli, ['report', snapshot, '--project', 'P100', '--period', '2026-W60'])
        assert result.exit_code != 0


class TestLookaheadCommand:
    """Tests for the lookahead command."""

    def test_json_lookahead(self, runner, snapshot):
        result = runner.invoke(cli, ['lookahead', snapshot, '--today', '2026-10-19', '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert len(data) == 1
        assert data[0]['latest_completion_date'] == '2026-11-01'

    def test_status_filter(self, runner, snapshot):
        result = runner.invoke(cli, ['lookahead', snapshot, '--today', '2026-10-19', '--status', 'on-hold'])
        assert result.exit_code == 0
        assert 'No active projects with remaining work.' in result.output


class TestForecastCommand:
    """Tests for the forecast command."""

    def test_monthly_forecast(self, runner, snapshot):
        result = runner.invoke(cli, [
            'forecast', snapshot, '--today', '2026-10-19',
            '--period-type', 'months', '--count', '2', '--json',
        ])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data['period_totals'] == [450.0, 50.0]
        assert data['grand_total'] == 500.0

    def test_text_forecast(self, runner, snapshot):
        result = runner.invoke(cli, ['forecast', snapshot, '--today', '2026-10-19'])
        assert result.exit_code == 0, result.output
        assert 'REVENUE FORECAST as of 2026-10-19' in result.output

    def test_reversed_range_rejected(self, runner, snapshot):
        """A start after the end is reported, not raised."""
        result = runner.invoke(cli, [
            'forecast', snapshot, '--today', '2026-10-19',
            '--start', '2026-12-01', '--end', '2026-11-01',
        ])
        assert result.exit_code == 1
        assert 'Invalid period' in result.output
        assert not isinstance(result.exception, DomainError)


class TestDiagnoseCommand:

    def test_json_diagnose(self, runner, snapshot):
        result = runner.invoke(cli, ['diagnose', snapshot, '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert len(data['unmatched_entries']) == 1
        assert data['unmatched_entries'][0]['suggestions'][0]['description'] == 'Excavation'
        assert len(data['excluded_entries']) == 1

    def test_text_diagnose(self, runner, snapshot):
        result = runner.invoke(cli, ['diagnose', snapshot])
        assert "did you mean 'Excavation'" in result.output


class TestPeriodsCommand:

    def test_recent_months(self, runner):
        result = runner.invoke(cli, ['periods', '--granularity', 'monthly', '--count', '3', '--today', '2026-10-19'])
        assert result.exit_code == 0
        keys = [line.split()[0] for line in result.output.strip().splitlines()]
        assert keys == ['2026-08', '2026-09', '2026-10']
