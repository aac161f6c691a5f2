"""
Tests for the productivity forecaster and activity status rules.

Reference day is Monday 19 Oct 2026 on a Friday/Saturday weekend calendar.
"""
import pytest
from datetime import date

from progress_recon.domain.entities import (
    InputType,
    Project,
    ProjectStatus,
    ProgressEntry,
    WorkItem,
)
from progress_recon.modules import lookahead
from progress_recon.modules.lookahead import (
    build_portfolio_lookahead,
    build_project_lookahead,
    compute_activity_lookahead,
    default_cut_off,
    lookahead_frame,
    remaining_working_days,
)
from progress_recon.modules.status import (
    ActivityState,
    DelaySignal,
    classify_activity,
    detect_delay,
    is_completed,
    progress_status,
)
from progress_recon.modules.workdays import WorkCalendar


TODAY = date(2026, 10, 19)

# Ten working days before TODAY (Fri 9/16 and Sat 10/17 skipped)
WORKED_DAYS = [date(2026, 10, d) for d in (5, 6, 7, 8, 11, 12, 13, 14, 15, 18)]


def actual(activity, d, quantity, project='P100', zone=None):
    return ProgressEntry(
        project_code=project, activity_description=activity, zone=zone,
        input_type=InputType.ACTUAL, date=d, quantity=quantity,
    )


def planned(activity, d, quantity, project='P100', zone=None):
    return ProgressEntry(
        project_code=project, activity_description=activity, zone=zone,
        input_type=InputType.PLANNED, date=d, quantity=quantity,
    )


@pytest.fixture
def calendar():
    return WorkCalendar(weekend_days=[4, 5], holidays=[])


@pytest.fixture
def project():
    return Project(id='1', code='P100', name='Tower', status=ProjectStatus.ON_GOING, division='Buildings')


@pytest.fixture
def work_items():
    return [
        WorkItem(id='done', project_code='P100', description='Excavation', total_units=80, progress_percent=100),
        WorkItem(id='half', project_code='P100', description='Block Work', total_units=100, total_value=1000),
    ]


@pytest.fixture
def entries():
    return [actual('Block Work', d, 5) for d in WORKED_DAYS]


class TestRemainingWorkingDays:
    """Tests for the remaining-duration formula."""

    def test_ceiling(self):
        assert remaining_working_days(50, 5) == 10
        assert remaining_working_days(51, 5) == 11

    def test_float_noise_does_not_add_a_day(self):
        assert remaining_working_days(0.6, 0.2) == 3

    def test_zero_productivity_is_none(self):
        assert remaining_working_days(50, 0) is None
        assert remaining_working_days(0, 0) is None

    def test_non_increasing_in_productivity(self):
        days = [remaining_working_days(100, p) for p in (1, 2, 3, 5, 10, 25)]
        assert days == sorted(days, reverse=True)


class TestActivityLookAhead:
    """Tests for per-item forecasts."""

    def test_half_done_item(self, work_items, entries, calendar):
        la = compute_activity_lookahead(work_items[1], entries, TODAY, calendar)
        assert la.cumulative_actual == 50
        assert la.remaining_units == 50
        assert la.actual_working_days == 10
        assert la.actual_productivity == 5
        assert la.remaining_working_days == 10
        # Today counts as day 1; Fri/Sat skipped
        assert la.predicted_completion_date == date(2026, 11, 1)
        assert la.state is ActivityState.IN_PROGRESS

    def test_today_entries_not_counted(self, work_items, entries, calendar):
        la = compute_activity_lookahead(
            work_items[1], entries + [actual('Block Work', TODAY, 40)], TODAY, calendar
        )
        assert la.cumulative_actual == 50
        assert default_cut_off(TODAY) == date(2026, 10, 18)

    def test_over_reported_actuals_capped(self, calendar):
        item = WorkItem(project_code='P100', description='Block Work', total_units=100)
        la = compute_activity_lookahead(item, [actual('Block Work', date(2026, 10, 12), 150)], TODAY, calendar)
        assert la.cumulative_actual == 100
        assert la.remaining_units == 0
        assert la.completed

    def test_no_productivity_gives_no_date(self, calendar):
        item = WorkItem(project_code='P100', description='Block Work', total_units=100)
        la = compute_activity_lookahead(item, [], TODAY, calendar)
        assert la.productivity == 0
        assert la.remaining_working_days is None
        assert la.predicted_completion_date is None

    def test_planned_productivity_fallback(self, calendar):
        item = WorkItem(project_code='P100', description='Block Work', total_units=100)
        plan = [planned('Block Work', date(2026, 10, 12), 10), planned('Block Work', date(2026, 10, 13), 10)]
        la = compute_activity_lookahead(item, plan, TODAY, calendar)
        assert la.actual_productivity == 0
        assert la.planned_productivity == 10
        assert la.remaining_working_days == 10

    def test_calendar_duration_fallback(self, calendar):
        item = WorkItem(project_code='P100', description='Block Work', total_units=100, calendar_duration=20)
        la = compute_activity_lookahead(item, [], TODAY, calendar)
        assert la.planned_productivity == 5
        assert la.remaining_working_days == 20

    def test_weekend_entries_do_not_count_as_days(self, calendar):
        """Weekend output is spread over the working days; its day is not counted."""
        item = WorkItem(project_code='P100', description='Block Work', total_units=100)
        work = [actual('Block Work', date(2026, 10, 15), 10), actual('Block Work', date(2026, 10, 16), 10)]
        la = compute_activity_lookahead(item, work, TODAY, calendar)
        assert la.cumulative_actual == 20
        assert la.remaining_units == 80
        assert la.actual_working_days == 1
        assert la.actual_productivity == 20
        assert la.remaining_working_days == 4

    def test_weekend_planned_quantities_spread_over_working_days(self, calendar):
        item = WorkItem(project_code='P100', description='Block Work', total_units=100)
        plan = [planned('Block Work', date(2026, 10, 15), 10), planned('Block Work', date(2026, 10, 17), 30)]
        la = compute_activity_lookahead(item, plan, TODAY, calendar)
        assert la.cumulative_planned == 40
        assert la.planned_working_days == 1
        assert la.planned_productivity == 40

    def test_weekend_only_output_has_no_productivity(self, calendar):
        item = WorkItem(project_code='P100', description='Block Work', total_units=100)
        la = compute_activity_lookahead(item, [actual('Block Work', date(2026, 10, 16), 10)], TODAY, calendar)
        assert la.cumulative_actual == 10
        assert la.actual_working_days == 0
        assert la.actual_productivity == 0
        assert la.predicted_completion_date is None

    def test_stalled_item_beyond_calendar_gives_no_date(self, calendar):
        """A near-zero rate on a huge scope needs more days than the calendar holds."""
        item = WorkItem(id='stalled', project_code='P100', description='Block Work', total_units=5_000_000)
        la = compute_activity_lookahead(item, [actual('Block Work', date(2026, 10, 12), 0.1)], TODAY, calendar)
        assert la.actual_productivity == pytest.approx(0.1)
        assert isinstance(la.remaining_working_days, int)
        assert la.predicted_completion_date is None
        assert la.to_dict()['predicted_completion_date'] is None

    def test_completed_item(self, work_items, calendar):
        la = compute_activity_lookahead(work_items[0], [], TODAY, calendar)
        assert la.completed
        assert la.predicted_completion_date is None
        assert la.remaining_working_days == 0


class TestProjectLookAhead:
    """Tests for project-level aggregation."""

    def test_latest_completion_skips_completed(self, project, work_items, entries, calendar):
        la = build_project_lookahead(project, work_items, entries, TODAY, calendar)
        assert len(la.activities) == 2
        assert la.latest_completion_date == date(2026, 11, 1)
        assert la.completion_labels['month'] == 'November 2026'
        assert la.remaining_units == 50

    def test_latest_is_max(self, project, calendar):
        items = [
            WorkItem(id='fast', project_code='P100', description='Plaster', total_units=10, calendar_duration=10),
            WorkItem(id='slow', project_code='P100', description='Tiling', total_units=100, calendar_duration=50),
        ]
        la = build_project_lookahead(project, items, [], TODAY, calendar)
        slow = next(a for a in la.activities if a.work_item.id == 'slow')
        assert la.latest_completion_date == slow.predicted_completion_date

    def test_to_dict(self, project, work_items, entries, calendar):
        data = build_project_lookahead(project, work_items, entries, TODAY, calendar).to_dict()
        assert data['latest_completion_date'] == '2026-11-01'
        assert data['project']['full_code'] == 'P100'
        assert data['errors'] == []

    def test_item_failure_isolated(self, project, work_items, entries, calendar, monkeypatch):
        real = lookahead.compute_activity_lookahead

        def flaky(item, *args, **kwargs):
            if item.id == 'done':
                raise RuntimeError('boom')
            return real(item, *args, **kwargs)

        monkeypatch.setattr(lookahead, 'compute_activity_lookahead', flaky)
        la = build_project_lookahead(project, work_items, entries, TODAY, calendar)
        assert [a.work_item.id for a in la.activities] == ['half']
        assert la.errors == [{'work_item_id': 'done', 'description': 'Excavation', 'error': 'boom'}]
        assert la.latest_completion_date == date(2026, 11, 1)

    def test_stalled_item_does_not_break_project(self, project, work_items, entries, calendar):
        stalled = WorkItem(id='stalled', project_code='P100', description='Plaster', total_units=5_000_000)
        work = entries + [actual('Plaster', date(2026, 10, 12), 0.1)]
        la = build_project_lookahead(project, work_items + [stalled], work, TODAY, calendar)
        assert la.latest_completion_date == date(2026, 11, 1)
        assert la.errors == []


class TestPortfolioLookAhead:
    """Tests for portfolio filtering."""

    def test_project_without_remaining_work_excluded(self, project, calendar):
        items = [WorkItem(project_code='P100', description='Excavation', total_units=80, completed=True)]
        assert build_portfolio_lookahead([project], items, [], TODAY, calendar=calendar) == []

    def test_inactive_status_excluded(self, work_items, entries, calendar):
        on_hold = Project(code='P100', status=ProjectStatus.ON_HOLD)
        assert build_portfolio_lookahead([on_hold], work_items, entries, TODAY, calendar=calendar) == []

    def test_explicit_statuses(self, work_items, entries, calendar):
        on_hold = Project(code='P100', status=ProjectStatus.ON_HOLD)
        result = build_portfolio_lookahead(
            [on_hold], work_items, entries, TODAY, statuses=['on-hold'], calendar=calendar
        )
        assert len(result) == 1

    def test_division_filter(self, project, work_items, entries, calendar):
        assert build_portfolio_lookahead([project], work_items, entries, TODAY, division='buildings', calendar=calendar)
        assert not build_portfolio_lookahead([project], work_items, entries, TODAY, division='Roads', calendar=calendar)

    def test_completion_window(self, project, work_items, entries, calendar):
        inside = (date(2026, 11, 1), date(2026, 11, 30))
        outside = (date(2026, 12, 1), date(2026, 12, 31))
        assert build_portfolio_lookahead([project], work_items, entries, TODAY, completion_window=inside, calendar=calendar)
        assert not build_portfolio_lookahead([project], work_items, entries, TODAY, completion_window=outside, calendar=calendar)

    def test_stalled_only_project_still_listed(self, project, calendar):
        stalled = WorkItem(id='stalled', project_code='P100', description='Plaster', total_units=5_000_000)
        result = build_portfolio_lookahead(
            [project], [stalled], [actual('Plaster', date(2026, 10, 12), 0.1)], TODAY, calendar=calendar
        )
        assert len(result) == 1
        assert result[0].latest_completion_date is None
        assert result[0].completion_labels['month'] is None

    def test_orphan_items_do_not_create_projects(self, project, work_items, entries, calendar):
        orphan = WorkItem(project_code='P999', description='Roofing', total_units=10, calendar_duration=5)
        result = build_portfolio_lookahead([project], work_items + [orphan], entries, TODAY, calendar=calendar)
        assert [la.project.code for la in result] == ['P100']
        assert all(a.work_item.project_code == 'P100' for a in result[0].activities)

    def test_frame(self, project, work_items, entries, calendar):
        frame = lookahead_frame(build_portfolio_lookahead([project], work_items, entries, TODAY, calendar=calendar))
        assert list(frame['project']) == ['P100']
        assert frame.iloc[0]['open_activities'] == 1


class TestStatusRules:
    """Tests for completion and delay classification."""

    def test_completion_signals(self):
        assert is_completed(WorkItem(completed=True), TODAY)
        assert is_completed(WorkItem(progress_percent=100), TODAY)
        assert is_completed(WorkItem(actual_completion=TODAY), TODAY)
        assert is_completed(WorkItem(total_units=10), TODAY, remaining_units=0)
        assert not is_completed(WorkItem(actual_completion=date(2026, 10, 20)), TODAY)
        assert not is_completed(WorkItem(total_units=0), TODAY, remaining_units=0)

    def test_delayed_not_started(self):
        item = WorkItem(planned_start=date(2026, 10, 1))
        assert classify_activity(item, TODAY, 0) is ActivityState.DELAYED_NOT_STARTED
        assert DelaySignal.START_OVERDUE in detect_delay(item, TODAY, 0).signals

    def test_started_item_is_in_progress(self):
        item = WorkItem(planned_start=date(2026, 10, 1), actual_start=date(2026, 10, 2))
        assert classify_activity(item, TODAY, 10) is ActivityState.IN_PROGRESS

    def test_any_signal_triggers_delay(self):
        assert detect_delay(WorkItem(delayed=True), TODAY).delayed
        assert detect_delay(WorkItem(deadline=date(2026, 10, 1)), TODAY).delayed
        assert detect_delay(WorkItem(delay_percent=5), TODAY).delayed
        assert not detect_delay(WorkItem(deadline=date(2026, 12, 1)), TODAY).delayed

    def test_completion_wins_over_delay_signals(self):
        item = WorkItem(completed=True, delayed=True, deadline=date(2026, 1, 1), delay_percent=20)
        assessment = detect_delay(item, TODAY)
        assert assessment.completed
        assert not assessment.delayed
        assert assessment.signals == ()

    def test_all_signals_listed(self):
        item = WorkItem(delayed=True, deadline=date(2026, 1, 1), planned_start=date(2025, 12, 1), delay_percent=3)
        assert set(detect_delay(item, TODAY).signals) == set(DelaySignal)

    def test_progress_status_bands(self):
        assert progress_status(100) == 'completed'
        assert progress_status(85) == 'on_track'
        assert progress_status(50) == 'at_risk'
        assert progress_status(10) == 'delayed'
