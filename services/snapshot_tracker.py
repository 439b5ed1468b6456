"""
Snapshot Tracker
================
Longitudinal tracking of a scenario: captures append-only snapshots and
compares what actually happened with what the previous snapshot predicted.

Capture
-------
create_snapshot() records the scenario's current outputs together with the
assumptions in force (growth, inflation, contribution, withdrawal).  It also
stores ``projected_portfolio_value``: the value the *previous* snapshot's
assumptions predicted for this date, compounded month by month with
InterestCalculator.future_value_with_contributions().  Storing it at capture
time means later assumption edits never rewrite history.

A second snapshot for the same (scenario, date) is a conflict and raises
SnapshotConflictError; existing snapshots are never overwritten.

Analysis
--------
Per-snapshot variance and tracking status live on RetirementScenarioSnapshot
(portfolio_variance, portfolio_variance_percent, tracking_status).  This
service adds the sequence-level views: chronological history, the latest
snapshot, and assumed vs realised growth across the whole history.
"""
import logging
from datetime import date

from sqlalchemy.exc import IntegrityError

from extensions import db
from models.retirement_snapshot import RetirementScenarioSnapshot
from services.interest_calculator import InterestCalculator
from services.scenario_calculator import ScenarioCalculator
from utils.money import ZERO, money, month_difference, to_decimal


logger = logging.getLogger(__name__)


class SnapshotConflictError(ValueError):
    """A snapshot already exists for this scenario on this date."""

    def __init__(self, scenario_id, snapshot_date):
        self.scenario_id = scenario_id
        self.snapshot_date = snapshot_date
        super().__init__(f'A snapshot for scenario {scenario_id} on {snapshot_date} already exists')


class SnapshotTracker:

    @staticmethod
    def chronological(scenario):
        return sorted(scenario.snapshots, key=lambda s: s.snapshot_date)

    @staticmethod
    def latest_snapshot(scenario):
        return scenario.latest_snapshot

    @staticmethod
    def previous_snapshot(scenario, snapshot_date):
        """Most recent snapshot strictly before ``snapshot_date``."""
        earlier = [s for s in SnapshotTracker.chronological(scenario) if s.snapshot_date < snapshot_date]
        return earlier[-1] if earlier else None

    @staticmethod
    def projected_value_for_date(previous, target_date):
        """
        Portfolio value ``previous``'s assumptions predict for ``target_date``.

        Grows the earlier actual value over the whole months in between using
        that snapshot's growth and contribution assumptions.  None when there
        is no earlier snapshot/value or the target is before it.
        """
        if previous is None or previous.current_portfolio_value is None:
            return None
        months = month_difference(previous.snapshot_date, target_date)
        if months < 0:
            return None

        result = InterestCalculator.future_value_with_contributions(
            principal=previous.current_portfolio_value,
            annual_rate=to_decimal(previous.growth_rate_assumption, ZERO),
            monthly_contribution=to_decimal(previous.monthly_contribution_assumption, ZERO),
            months=months,
        )
        return money(result['final_balance'])

    @staticmethod
    def projected_value_for_today(scenario, today=None):
        return SnapshotTracker.projected_value_for_date(
            SnapshotTracker.latest_snapshot(scenario), today or date.today())

    @staticmethod
    def create_snapshot(scenario, snapshot_date=None, notes=None, median_monthly_surplus=None):
        """
        Capture the scenario's current outputs and assumptions.

        Args:
            scenario:               a recalculated RetirementScenario.
            snapshot_date:          defaults to scenario.calculation_date, then today.
            notes:                  free text ("Manual snapshot", "Monthly job", ...).
            median_monthly_surplus: contribution assumption when the scenario
                                    has no explicit monthly_contribution.

        Returns:
            the new RetirementScenarioSnapshot (flushed, not committed).

        Raises:
            SnapshotConflictError if the scenario already has a snapshot on that date.
        """
        snapshot_date = snapshot_date or scenario.calculation_date or date.today()

        if any(s.snapshot_date == snapshot_date for s in scenario.snapshots):
            raise SnapshotConflictError(scenario.id, snapshot_date)

        previous = SnapshotTracker.previous_snapshot(scenario, snapshot_date)

        snapshot = RetirementScenarioSnapshot(
            snapshot_date=snapshot_date,
            current_portfolio_value=scenario.current_portfolio_value,
            required_portfolio_value=scenario.required_portfolio_value,
            portfolio_gap=scenario.portfolio_gap,
            progress_percent=ScenarioCalculator.progress_percent(scenario),
            projected_retirement_date=scenario.projected_retirement_date,
            total_pension_income=scenario.total_pension_income,
            income_gap_monthly=scenario.income_gap_monthly,
            projected_portfolio_value=SnapshotTracker.projected_value_for_date(previous, snapshot_date),
            growth_rate_assumption=scenario.portfolio_growth_rate,
            inflation_rate_assumption=scenario.inflation_rate,
            monthly_contribution_assumption=ScenarioCalculator.contribution_for(scenario, median_monthly_surplus),
            withdrawal_rate_assumption=scenario.portfolio_withdrawal_rate,
            notes=notes,
        )
        scenario.snapshots.append(snapshot)

        if scenario.id is not None:
            db.session.add(snapshot)
            try:
                db.session.flush()
            except IntegrityError:
                # Lost a race with another capture for the same date
                db.session.rollback()
                raise SnapshotConflictError(scenario.id, snapshot_date)

        logger.info(f"scenario {scenario.id}: snapshot {snapshot_date} status={snapshot.tracking_status}")
        return snapshot

    @staticmethod
    def tracking_history(scenario):
        """Per-snapshot variance, status and realised growth since the previous one."""
        history = []
        previous = None
        for snapshot in SnapshotTracker.chronological(scenario):
            history.append({
                'snapshot': snapshot,
                'portfolio_variance': snapshot.portfolio_variance,
                'portfolio_variance_percent': snapshot.portfolio_variance_percent,
                'tracking_status': snapshot.tracking_status,
                'actual_growth_rate': snapshot.actual_growth_rate_since(previous),
            })
            previous = snapshot
        return history

    @staticmethod
    def assumption_accuracy_summary(scenario):
        """
        Growth assumed at the first snapshot vs growth realised since then.

        Returns None with fewer than two snapshots.
        """
        snapshots = SnapshotTracker.chronological(scenario)
        if len(snapshots) < 2:
            return None

        first, latest = snapshots[0], snapshots[-1]
        assumed = first.growth_rate_assumption
        actual = latest.actual_growth_rate_since(first)
        variance = None
        if assumed is not None and actual is not None:
            variance = actual - to_decimal(assumed)

        return {
            'assumed_growth_rate': to_decimal(assumed),
            'actual_growth_rate': actual,
            'growth_rate_variance': variance,
        }
