"""
Pension Aggregator
==================
Combines a scenario's guaranteed income sources into monthly totals.

Sources
-------
  State pension     — scenario.state_pension_monthly (gated by its start date)
  Linked pensions   — RetirementPensionSource rows with a nonzero payout,
                      each gated by its own payout_start_date
  Legacy fields     — scenario.riester_monthly / ruerup_monthly /
                      betriebsrente_monthly, entered by hand before accounts
                      could be linked
  Other pension     — scenario.other_pension_monthly (gated by its start date)

Precedence
----------
A legacy manual field is ignored when any linked source's account has the same
PensionType, so a user who moves from manual entry to a linked account is not
counted twice.  The rule is a pure function of the set of linked types; nothing
here queries the database.
"""
from utils.money import ZERO, to_decimal
from models.accounts import PensionType


class PensionAggregator:

    @staticmethod
    def with_payout(sources):
        """Sources whose expected payout is set and nonzero."""
        return [s for s in sources if to_decimal(s.expected_monthly_payout, ZERO) != 0]

    @staticmethod
    def linked_types(sources):
        return {s.pension_type for s in sources if s.pension_type is not None}

    @staticmethod
    def legacy_fields_in_effect(scenario, linked_types):
        """
        Legacy manual amounts that still count towards income.

        Args:
            scenario:     object exposing riester_monthly / ruerup_monthly /
                          betriebsrente_monthly.
            linked_types: set of PensionType with at least one linked source.

        Returns:
            dict PensionType -> Decimal for each present, non-superseded field.
        """
        in_effect = {}
        for pension_type in PensionType:
            amount = getattr(scenario, pension_type.legacy_field, None)
            if amount is None or pension_type in linked_types:
                continue
            in_effect[pension_type] = to_decimal(amount)
        return in_effect

    @staticmethod
    def pension_sources_total(sources):
        return sum((to_decimal(s.expected_monthly_payout) for s in PensionAggregator.with_payout(sources)), ZERO)

    @staticmethod
    def total_now(scenario, sources=None):
        """Total monthly pension income, ignoring start dates."""
        if sources is None:
            sources = scenario.pension_sources
        total = ZERO

        if scenario.state_pension_monthly is not None:
            total += to_decimal(scenario.state_pension_monthly)

        total += PensionAggregator.pension_sources_total(sources)

        legacy = PensionAggregator.legacy_fields_in_effect(
            scenario, PensionAggregator.linked_types(sources))
        total += sum(legacy.values(), ZERO)

        if scenario.other_pension_monthly is not None:
            total += to_decimal(scenario.other_pension_monthly)

        return total

    @staticmethod
    def income_breakdown_at_date(scenario, sources, on_date):
        """
        Monthly income by category on ``on_date``.

        Each date is evaluated on its own, so callers may ask for dates in any
        order.  Legacy manual fields carry no start date and always count.

        Returns:
            dict with salary, state_pension, private_pensions, other (Decimal).
        """
        if sources is None:
            sources = scenario.pension_sources
        breakdown = {
            'salary': ZERO,
            'state_pension': ZERO,
            'private_pensions': ZERO,
            'other': ZERO,
        }

        salary = to_decimal(scenario.current_annual_salary, ZERO)
        if salary > 0:
            if scenario.salary_end_date is None or on_date <= scenario.salary_end_date:
                breakdown['salary'] = salary / 12

        state_pension = to_decimal(scenario.state_pension_monthly, ZERO)
        if state_pension > 0:
            start = scenario.state_pension_start_date
            if start is None or on_date >= start:
                breakdown['state_pension'] = state_pension

        for source in PensionAggregator.with_payout(sources):
            if source.payout_start_date is None or on_date >= source.payout_start_date:
                breakdown['private_pensions'] += to_decimal(source.expected_monthly_payout)

        legacy = PensionAggregator.legacy_fields_in_effect(
            scenario, PensionAggregator.linked_types(sources))
        breakdown['private_pensions'] += sum(legacy.values(), ZERO)

        other = to_decimal(scenario.other_pension_monthly, ZERO)
        if other > 0:
            start = scenario.other_pension_start_date
            if start is None or on_date >= start:
                breakdown['other'] = other

        return breakdown
