"""
Retirement Service
==================
Orchestration shared by the retirement blueprint and the ``flask retirement``
CLI group.  The engine services stay pure; this layer fetches the injected
inputs (net worth, median surplus), links pension accounts, and decides when
to write.

Primary entry points
--------------------
  create_scenario()          — new scenario from validated form data
  update_scenario()          — apply validated form data to an existing scenario
  link_pension_accounts()    — replace a scenario's linked pension sources
  recalculate()              — recompute outputs, optionally capture a snapshot
  recalculate_all()          — batch job over every scenario (CLI)
  scenario_summary()         — to_dict() plus derived progress figures

Apart from the recalculate_all() batch job nothing here commits; routes and
CLI commands own the transaction.
"""
import logging
from datetime import date

from flask import current_app

from extensions import db
from models.accounts import Account
from models.retirement_scenario import RetirementScenario
from models.retirement_pension_source import RetirementPensionSource
from services.networth_service import NetWorthService
from services.scenario_calculator import ScenarioCalculator
from services.snapshot_tracker import SnapshotConflictError, SnapshotTracker
from utils.money import chart_value, iso_date, to_decimal


logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    ('name', 'description', 'is_primary')
    + RetirementScenario.NUMERIC_INPUT_FIELDS
    + RetirementScenario.DATE_INPUT_FIELDS
)

# Assumption column -> config key supplying its default
RATE_DEFAULTS = {
    'portfolio_withdrawal_rate': 'RETIREMENT_DEFAULT_WITHDRAWAL_RATE',
    'portfolio_growth_rate': 'RETIREMENT_DEFAULT_GROWTH_RATE',
    'inflation_rate': 'RETIREMENT_DEFAULT_INFLATION_RATE',
}


class RetirementService:

    # ------------------------------------------------------------------
    # Scenario CRUD
    # ------------------------------------------------------------------

    @staticmethod
    def create_scenario(data, family_id, pension_links=None):
        """
        Build and add a scenario from validated form data.

        Blank assumption rates fall back to the configured defaults.  The
        scenario is flushed so it has an id; the caller commits.
        """
        scenario = RetirementScenario(family_id=family_id, calculation_date=date.today())
        RetirementService._apply(scenario, data)

        for field, config_key in RATE_DEFAULTS.items():
            if getattr(scenario, field) is None:
                setattr(scenario, field, to_decimal(current_app.config[config_key]))

        db.session.add(scenario)
        if scenario.is_primary:
            RetirementService._clear_other_primaries(scenario)
        if pension_links is not None:
            RetirementService.link_pension_accounts(scenario, pension_links)
        db.session.flush()

        logger.info(f"Created retirement scenario '{scenario.name}' for family {family_id}")
        return scenario

    @staticmethod
    def update_scenario(scenario, data, pension_links=None):
        """Apply the submitted fields; fields absent from ``data`` are left as they are."""
        RetirementService._apply(scenario, data)
        if scenario.is_primary:
            RetirementService._clear_other_primaries(scenario)
        if pension_links is not None:
            RetirementService.link_pension_accounts(scenario, pension_links)
        db.session.flush()
        return scenario

    @staticmethod
    def _apply(scenario, data):
        for field in EDITABLE_FIELDS:
            if field in data:
                setattr(scenario, field, data[field])

    @staticmethod
    def _clear_other_primaries(scenario):
        others = RetirementScenario.query.filter(
            RetirementScenario.family_id == scenario.family_id,
            RetirementScenario.is_primary.is_(True),
        )
        for other in others:
            if other is not scenario:
                other.is_primary = False

    # ------------------------------------------------------------------
    # Pension accounts
    # ------------------------------------------------------------------

    @staticmethod
    def pension_accounts(family_id):
        """Active pension-bearing accounts available for linking."""
        return Account.query.filter(
            Account.family_id == family_id,
            Account.is_active.is_(True),
            Account.pension_type.isnot(None),
        ).order_by(Account.name).all()

    @staticmethod
    def link_pension_accounts(scenario, links):
        """
        Replace the scenario's linked pension sources.

        Args:
            links: list of dicts with ``account_id`` and optional
                   ``expected_monthly_payout`` / ``payout_start_date``.
                   Blank values are copied from the account once.

        Accounts that are not pension-bearing, or belong to another family,
        raise ValueError.  Sources for accounts still linked keep their values
        unless new ones are supplied.
        """
        existing = {source.account_id: source for source in scenario.pension_sources}
        wanted = []

        for link in links:
            account_id = int(link['account_id'])
            account = Account.query.filter_by(id=account_id, family_id=scenario.family_id).first()
            if account is None:
                raise ValueError(f'Account {account_id} not found')
            if not account.is_pension:
                raise ValueError(f"Account '{account.name}' is not a pension account")

            source = existing.get(account_id)
            if source is None:
                source = RetirementPensionSource(account=account)
                scenario.pension_sources.append(source)
            if link.get('expected_monthly_payout') is not None:
                source.expected_monthly_payout = to_decimal(link['expected_monthly_payout'])
            if link.get('payout_start_date') is not None:
                source.payout_start_date = link['payout_start_date']
            source.populate_from_account()
            wanted.append(account_id)

        for account_id, source in existing.items():
            if account_id not in wanted:
                scenario.pension_sources.remove(source)

        return scenario.pension_sources

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    @staticmethod
    def recalculate(scenario, current_net_worth=None, median_monthly_surplus=None,
                    snapshot=False, notes=None, as_of_date=None):
        """
        Recompute the scenario's outputs and optionally capture a snapshot.

        Net worth and median surplus default to NetWorthService lookups for
        the scenario's family.

        Returns:
            (outputs, snapshot) — outputs is None for an incomplete scenario,
            snapshot is None unless requested and the scenario was calculated.

        Raises:
            SnapshotConflictError when a snapshot for that date already exists.
        """
        if current_net_worth is None:
            current_net_worth = NetWorthService.current_net_worth(family_id=scenario.family_id)
        if median_monthly_surplus is None:
            median_monthly_surplus = NetWorthService.median_monthly_surplus(family_id=scenario.family_id)

        outputs = ScenarioCalculator.recalculate(
            scenario, current_net_worth,
            as_of_date=as_of_date,
            median_monthly_surplus=median_monthly_surplus,
        )

        captured = None
        if snapshot and outputs is not None:
            captured = SnapshotTracker.create_snapshot(
                scenario, notes=notes, median_monthly_surplus=median_monthly_surplus)
        return outputs, captured

    @staticmethod
    def recalculate_all(snapshot=False, notes=None):
        """
        Recalculate every scenario, grouping net worth lookups per family.

        Commits after each scenario so one conflict cannot undo the others.

        Returns:
            dict with calculated, skipped, snapshots and conflicts counts.
        """
        stats = {'calculated': 0, 'skipped': 0, 'snapshots': 0, 'conflicts': 0}
        net_worth_cache = {}

        for scenario in RetirementScenario.query.order_by(RetirementScenario.id).all():
            family_id = scenario.family_id
            if family_id not in net_worth_cache:
                net_worth_cache[family_id] = (
                    NetWorthService.current_net_worth(family_id=family_id),
                    NetWorthService.median_monthly_surplus(family_id=family_id),
                )
            net_worth, surplus = net_worth_cache[family_id]

            try:
                outputs, captured = RetirementService.recalculate(
                    scenario, net_worth, surplus, snapshot=snapshot, notes=notes)
            except SnapshotConflictError as e:
                # A failed flush rolls the session back; recompute without a snapshot
                logger.warning(str(e))
                stats['conflicts'] += 1
                outputs, captured = RetirementService.recalculate(scenario, net_worth, surplus)

            db.session.commit()
            if outputs is None:
                stats['skipped'] += 1
                continue
            stats['calculated'] += 1
            if captured is not None:
                stats['snapshots'] += 1

        return stats

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    @staticmethod
    def scenario_summary(scenario):
        """to_dict() plus the derived progress figures shown on a scenario card."""
        data = scenario.to_dict()
        latest = scenario.latest_snapshot
        data.update({
            'can_retire_now': ScenarioCalculator.can_retire_now(scenario),
            'pension_self_sufficient': ScenarioCalculator.pension_self_sufficient(scenario),
            'progress_percent': chart_value(ScenarioCalculator.progress_percent(scenario), 1),
            'pension_coverage_percent': chart_value(ScenarioCalculator.pension_coverage_percent(scenario), 1),
            'months_until_retirement': ScenarioCalculator.months_until_retirement(scenario),
            'years_until_retirement': chart_value(ScenarioCalculator.years_until_retirement(scenario), 1),
            'annual_retirement_expenses': chart_value(ScenarioCalculator.annual_retirement_expenses(scenario)),
            'annual_pension_income': chart_value(ScenarioCalculator.annual_pension_income(scenario)),
            'real_portfolio_growth_rate': chart_value(ScenarioCalculator.real_portfolio_growth_rate(scenario)),
            'required_monthly_contribution': chart_value(ScenarioCalculator.required_monthly_contribution(scenario)),
            'snapshot_count': len(scenario.snapshots),
            'latest_snapshot_date': iso_date(latest.snapshot_date) if latest else None,
        })
        return data
