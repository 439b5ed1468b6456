"""
Tests for snapshot capture and drift analysis.

Variance and tracking-status tests work on unsaved snapshots; capture tests
persist a scenario so the (scenario, date) uniqueness is enforced end to end.
"""
from datetime import date
from decimal import Decimal

import pytest

from extensions import db
from models.retirement_scenario import RetirementScenario
from models.retirement_snapshot import (
    RetirementScenarioSnapshot,
    TRACKING_AHEAD,
    TRACKING_BEHIND,
    TRACKING_NO_PROJECTION,
    TRACKING_ON_TRACK,
)
from services.scenario_calculator import ScenarioCalculator
from services.snapshot_tracker import SnapshotConflictError, SnapshotTracker


def _snapshot(current, projected=None, snapshot_date=date(2025, 1, 1), **extra):
    return RetirementScenarioSnapshot(
        snapshot_date=snapshot_date,
        current_portfolio_value=None if current is None else Decimal(str(current)),
        projected_portfolio_value=None if projected is None else Decimal(str(projected)),
        **extra
    )


@pytest.fixture
def scenario(app, family):
    s = RetirementScenario(
        family_id=family.id,
        name='Tracked plan',
        calculation_date=date(2025, 1, 1),
        retirement_monthly_expenses=Decimal('4000'),
        state_pension_monthly=Decimal('1500'),
        portfolio_withdrawal_rate=Decimal('4.0'),
        portfolio_growth_rate=Decimal('12.0'),
        inflation_rate=Decimal('3.0'),
        monthly_contribution=Decimal('0'),
    )
    db.session.add(s)
    db.session.commit()
    return s


def _recalculate(scenario, net_worth, on_date):
    ScenarioCalculator.recalculate(scenario, Decimal(net_worth), as_of_date=on_date)


# ---------------------------------------------------------------------------
# Variance and tracking status
# ---------------------------------------------------------------------------

class TestTrackingStatus:
    def test_ahead(self):
        snap = _snapshot(110000, 100000)
        assert snap.portfolio_variance == Decimal('10000')
        assert snap.portfolio_variance_percent == Decimal('10.00')
        assert snap.tracking_status == TRACKING_AHEAD

    def test_behind(self):
        snap = _snapshot(90000, 100000)
        assert snap.portfolio_variance == Decimal('-10000')
        assert snap.tracking_status == TRACKING_BEHIND

    def test_on_track_within_tolerance(self):
        assert _snapshot(104000, 100000).tracking_status == TRACKING_ON_TRACK
        assert _snapshot(95000, 100000).tracking_status == TRACKING_ON_TRACK

    def test_no_projection(self):
        snap = _snapshot(100000)
        assert snap.portfolio_variance is None
        assert snap.portfolio_variance_percent is None
        assert snap.tracking_status == TRACKING_NO_PROJECTION
        assert snap.tracking_status_label == 'No projection data'

    def test_zero_projection_has_no_percent(self):
        snap = _snapshot(5000, 0)
        assert snap.portfolio_variance == Decimal('5000')
        assert snap.portfolio_variance_percent is None
        assert snap.tracking_status == TRACKING_ON_TRACK


class TestActualGrowthRate:
    def test_annualised_rate(self):
        previous = _snapshot(100000, snapshot_date=date(2023, 1, 1))
        current = _snapshot(121000, snapshot_date=date(2025, 1, 1))
        assert current.actual_growth_rate_since(previous) == Decimal('10.00')

    def test_same_month_is_undefined(self):
        previous = _snapshot(100000, snapshot_date=date(2025, 1, 1))
        current = _snapshot(101000, snapshot_date=date(2025, 1, 20))
        assert current.actual_growth_rate_since(previous) is None

    def test_non_positive_start_is_undefined(self):
        previous = _snapshot(0, snapshot_date=date(2024, 1, 1))
        current = _snapshot(1000, snapshot_date=date(2025, 1, 1))
        assert current.actual_growth_rate_since(previous) is None

    def test_missing_values(self):
        previous = _snapshot(None, snapshot_date=date(2024, 1, 1))
        assert _snapshot(1000).actual_growth_rate_since(previous) is None
        assert _snapshot(1000).actual_growth_rate_since(None) is None


# ---------------------------------------------------------------------------
# Projected value from the previous snapshot
# ---------------------------------------------------------------------------

class TestProjectedValue:
    def test_uses_previous_assumptions(self):
        previous = _snapshot(100000, snapshot_date=date(2025, 1, 1),
                             growth_rate_assumption=Decimal('12'),
                             monthly_contribution_assumption=Decimal('0'))
        assert SnapshotTracker.projected_value_for_date(previous, date(2025, 3, 1)) == Decimal('102010.00')

    def test_contribution_included(self):
        previous = _snapshot(1000, snapshot_date=date(2025, 1, 1),
                             growth_rate_assumption=None,
                             monthly_contribution_assumption=Decimal('100'))
        assert SnapshotTracker.projected_value_for_date(previous, date(2025, 7, 1)) == Decimal('1600.00')

    def test_no_previous(self):
        assert SnapshotTracker.projected_value_for_date(None, date(2025, 3, 1)) is None

    def test_target_before_previous(self):
        previous = _snapshot(100000, snapshot_date=date(2025, 3, 1))
        assert SnapshotTracker.projected_value_for_date(previous, date(2025, 1, 1)) is None


# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------

class TestCreateSnapshot:
    def test_first_snapshot_has_no_projection(self, scenario):
        _recalculate(scenario, '250000', date(2025, 1, 1))
        snap = SnapshotTracker.create_snapshot(scenario, notes='Initial')
        db.session.commit()

        assert snap.id is not None
        assert snap.snapshot_date == date(2025, 1, 1)
        assert snap.current_portfolio_value == Decimal('250000')
        assert snap.required_portfolio_value == Decimal('750000')
        assert snap.progress_percent == Decimal('33.3')
        assert snap.growth_rate_assumption == Decimal('12.0')
        assert snap.projected_portfolio_value is None
        assert snap.tracking_status == TRACKING_NO_PROJECTION

    def test_second_snapshot_compares_with_first(self, scenario):
        _recalculate(scenario, '100000', date(2025, 1, 1))
        SnapshotTracker.create_snapshot(scenario)
        _recalculate(scenario, '110000', date(2025, 3, 1))
        second = SnapshotTracker.create_snapshot(scenario)
        db.session.commit()

        # 100000 at 1% a month for two months
        assert second.projected_portfolio_value == Decimal('102010.00')
        assert second.tracking_status == TRACKING_AHEAD
        assert SnapshotTracker.latest_snapshot(scenario) is second

    def test_duplicate_date_conflicts(self, scenario):
        _recalculate(scenario, '250000', date(2025, 1, 1))
        SnapshotTracker.create_snapshot(scenario)
        db.session.commit()

        with pytest.raises(SnapshotConflictError):
            SnapshotTracker.create_snapshot(scenario, snapshot_date=date(2025, 1, 1))

    def test_history_is_append_only(self, scenario):
        _recalculate(scenario, '100000', date(2025, 1, 1))
        first = SnapshotTracker.create_snapshot(scenario)
        db.session.commit()
        original_value = first.current_portfolio_value

        scenario.portfolio_growth_rate = Decimal('2.0')
        _recalculate(scenario, '130000', date(2025, 6, 1))
        SnapshotTracker.create_snapshot(scenario)
        db.session.commit()

        assert first.current_portfolio_value == original_value
        assert first.growth_rate_assumption == Decimal('12.0')
        assert len(scenario.snapshots) == 2

    def test_backdated_snapshot_uses_earlier_one(self, scenario):
        _recalculate(scenario, '100000', date(2025, 1, 1))
        SnapshotTracker.create_snapshot(scenario)
        _recalculate(scenario, '120000', date(2025, 12, 1))
        SnapshotTracker.create_snapshot(scenario)

        previous = SnapshotTracker.previous_snapshot(scenario, date(2025, 6, 1))
        assert previous.snapshot_date == date(2025, 1, 1)


# ---------------------------------------------------------------------------
# Sequence analysis
# ---------------------------------------------------------------------------

class TestHistoryAnalysis:
    def _two_snapshots(self, scenario):
        _recalculate(scenario, '100000', date(2023, 1, 1))
        SnapshotTracker.create_snapshot(scenario)
        _recalculate(scenario, '121000', date(2025, 1, 1))
        SnapshotTracker.create_snapshot(scenario)
        db.session.commit()

    def test_accuracy_summary_needs_two_snapshots(self, scenario):
        _recalculate(scenario, '100000', date(2025, 1, 1))
        SnapshotTracker.create_snapshot(scenario)
        assert SnapshotTracker.assumption_accuracy_summary(scenario) is None

    def test_accuracy_summary(self, scenario):
        self._two_snapshots(scenario)
        summary = SnapshotTracker.assumption_accuracy_summary(scenario)

        assert summary['assumed_growth_rate'] == Decimal('12.0')
        assert summary['actual_growth_rate'] == Decimal('10.00')
        assert summary['growth_rate_variance'] == Decimal('-2.00')

    def test_tracking_history(self, scenario):
        self._two_snapshots(scenario)
        history = SnapshotTracker.tracking_history(scenario)

        assert [h['snapshot'].snapshot_date for h in history] == [date(2023, 1, 1), date(2025, 1, 1)]
        assert history[0]['actual_growth_rate'] is None
        assert history[1]['actual_growth_rate'] == Decimal('10.00')
        # 121000 vs 126973.46 projected at 12%: -4.70%, inside the tolerance
        assert history[1]['tracking_status'] == TRACKING_ON_TRACK

    def test_projected_value_for_today(self, scenario):
        self._two_snapshots(scenario)
        value = SnapshotTracker.projected_value_for_today(scenario, today=date(2025, 2, 1))
        assert value == Decimal('122210.00')
