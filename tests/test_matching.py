"""
Tests for the three-tier matcher.
Each test pins down one named branch of the rules.
"""
import pytest
from datetime import date

from progress_recon.domain.entities import InputType, ProgressEntry, WorkItem
from progress_recon.modules.matching import (
    MatchReason,
    explain_match,
    match_activity,
    match_entries,
    match_project,
    match_zone,
    matches,
)


def make_item(**overrides) -> WorkItem:
    fields = dict(
        id='W1',
        project_code='P100',
        description='Excavation',
        zone='1',
        total_units=100,
    )
    fields.update(overrides)
    return WorkItem(**fields)


def make_entry(**overrides) -> ProgressEntry:
    fields = dict(
        project_code='P100',
        activity_description='Excavation',
        zone='Zone-1',
        input_type=InputType.ACTUAL,
        date=date(2025, 1, 6),
        quantity=10,
    )
    fields.update(overrides)
    return ProgressEntry(**fields)


class TestProjectTier:
    """Tests for project code matching."""

    def test_sub_coded_item_requires_exact_full_code(self):
        item = make_item(project_full_code='P100-A')
        result = match_project(make_entry(), item)
        assert not result
        assert result.reason is MatchReason.PROJECT_SUBCODE_MISMATCH

    def test_sub_coded_item_full_code_match(self):
        item = make_item(project_full_code='P100-A')
        entry = make_entry(project_full_code=' p100-a ')
        assert match_project(entry, item).reason is MatchReason.PROJECT_SUBCODE_STRICT

    def test_sub_coded_item_rejects_other_sub_code(self):
        item = make_item(project_full_code='P100-A')
        entry = make_entry(project_full_code='P100-B')
        assert not match_project(entry, item)

    def test_hyphenated_bare_code_is_strict(self):
        item = make_item(project_code='P-100')
        assert not match_project(make_entry(project_code='P-100'), item)
        assert match_project(make_entry(project_full_code='P-100'), item)

    def test_code_and_full_code_interchangeable(self):
        item = make_item()
        entry = make_entry(project_code='', project_full_code='P100')
        result = match_project(entry, item)
        assert result
        assert result.reason is MatchReason.PROJECT_CODE_INTERCHANGEABLE

    def test_different_code(self):
        result = match_project(make_entry(project_code='P200'), make_item())
        assert result.reason is MatchReason.PROJECT_CODE_MISMATCH

    def test_missing_code_fails_closed(self):
        result = match_project(make_entry(project_code=''), make_item())
        assert result.reason is MatchReason.PROJECT_CODE_MISSING


class TestActivityTier:
    """Tests for activity description matching."""

    def test_exact_ignores_case_and_whitespace(self):
        entry = make_entry(activity_description='  EXCAVATION ')
        assert match_activity(entry, make_item()).reason is MatchReason.ACTIVITY_EXACT

    def test_containment_either_direction(self):
        item = make_item(description='Concrete Pouring')
        longer = make_entry(activity_description='Concrete Pouring - Level 2')
        shorter = make_entry(activity_description='concrete')
        assert match_activity(longer, item).reason is MatchReason.ACTIVITY_CONTAINMENT
        assert match_activity(shorter, item).reason is MatchReason.ACTIVITY_CONTAINMENT

    def test_combined_mode_requires_exact(self):
        item = make_item(description='Concrete Pouring')
        entry = make_entry(activity_description='Concrete Pouring - Level 2')
        assert match_activity(entry, item, combined=True).reason is MatchReason.ACTIVITY_MISMATCH

    def test_empty_description_fails_closed(self):
        entry = make_entry(activity_description='')
        assert match_activity(entry, make_item()).reason is MatchReason.ACTIVITY_MISSING


class TestZoneTier:
    """Tests for zone matching."""

    def test_numeric_zone_match(self):
        result = match_zone(make_entry(zone='Zone-1'), make_item(zone='1'))
        assert result.reason is MatchReason.ZONE_NUMBER_MATCH

    def test_leading_zeros(self):
        assert match_zone(make_entry(zone='Zone 01'), make_item(zone='1'))

    def test_different_numbers(self):
        result = match_zone(make_entry(zone='Zone 2'), make_item(zone='1'))
        assert result.reason is MatchReason.ZONE_NUMBER_MISMATCH

    def test_entry_without_zone_rejected(self):
        result = match_zone(make_entry(zone=None), make_item(zone='1'))
        assert result.reason is MatchReason.ZONE_MISSING_ON_ENTRY

    def test_placeholder_entry_zone_counts_as_missing(self):
        result = match_zone(make_entry(zone='N/A'), make_item(zone='1'))
        assert result.reason is MatchReason.ZONE_MISSING_ON_ENTRY

    def test_item_without_zone_accepts_any(self):
        assert match_zone(make_entry(zone='Zone 5'), make_item(zone=None)).reason is MatchReason.ZONE_NOT_REQUIRED
        assert match_zone(make_entry(zone=None), make_item(zone='0')).reason is MatchReason.ZONE_NOT_REQUIRED

    def test_text_zones(self):
        assert match_zone(make_entry(zone='east  wing'), make_item(zone='EAST WING')).reason is MatchReason.ZONE_TEXT_MATCH
        assert match_zone(make_entry(zone='West'), make_item(zone='East')).reason is MatchReason.ZONE_TEXT_MISMATCH

    def test_number_on_one_side_only_compares_text(self):
        result = match_zone(make_entry(zone='East'), make_item(zone='Zone 1'))
        assert result.reason is MatchReason.ZONE_TEXT_MISMATCH

    def test_target_zone_overrides_item_zone(self):
        item = make_item(zone=None)
        assert not match_zone(make_entry(zone='Zone 4'), item, target_zone='3')
        assert match_zone(make_entry(zone='Zone 3'), item, target_zone='3')

    def test_combined_mode_skips_zone(self):
        result = match_zone(make_entry(zone='Zone 2'), make_item(zone='1'), combined=True)
        assert result.reason is MatchReason.ZONE_SKIPPED_COMBINED


class TestMatches:
    """Tests for the full three-tier match."""

    def test_zone_label_variants_match_same_item(self):
        item = make_item(zone='2')
        assert matches(make_entry(zone='2'), item)
        assert matches(make_entry(zone='Zone 2'), item)

    def test_first_failing_tier_reported(self):
        entry = make_entry(project_code='P999', activity_description='Other', zone=None)
        assert explain_match(entry, make_item()).reason is MatchReason.PROJECT_CODE_MISMATCH

    def test_zone_not_transitive_except_combined(self):
        zone1 = make_item(id='W1', zone='1')
        entry = make_entry(zone='Zone 2')
        assert not matches(entry, zone1)
        assert matches(entry, zone1, combined=True)

    def test_at_most_one_item_per_zone(self):
        items = [make_item(id='W1', zone='1'), make_item(id='W2', zone='2')]
        entry = make_entry(zone='Zone 1')
        hits = [item.id for item in items if matches(entry, item)]
        assert hits == ['W1']

    def test_match_entries_keeps_order(self):
        entries = [
            make_entry(id='E1', zone='Zone 1'),
            make_entry(id='E2', zone='Zone 2'),
            make_entry(id='E3', zone='1'),
        ]
        assert [e.id for e in match_entries(make_item(), entries)] == ['E1', 'E3']
