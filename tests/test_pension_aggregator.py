"""
Tests for PensionAggregator: totals, per-date breakdown and the rule that a
linked pension account supersedes the legacy manual field of the same type.
"""
from datetime import date
from decimal import Decimal

from models.accounts import Account, PensionType
from models.retirement_pension_source import RetirementPensionSource
from models.retirement_scenario import RetirementScenario
from services.pension_aggregator import PensionAggregator


def _scenario(**overrides):
    fields = dict(
        name='Aggregator test',
        calculation_date=date(2025, 1, 1),
        retirement_monthly_expenses=Decimal('4000'),
        current_annual_salary=Decimal('72000'),
        salary_end_date=date(2040, 12, 31),
        state_pension_monthly=Decimal('1500'),
        state_pension_start_date=date(2042, 1, 1),
    )
    fields.update(overrides)
    return RetirementScenario(**fields)


def _source(pension_type, payout, start_date=None):
    account = Account(name=pension_type.short_label, account_type='Pension',
                      balance=Decimal('0'), pension_type=pension_type)
    return RetirementPensionSource(
        account=account,
        expected_monthly_payout=None if payout is None else Decimal(str(payout)),
        payout_start_date=start_date,
    )


# ---------------------------------------------------------------------------
# Precedence between linked sources and legacy fields
# ---------------------------------------------------------------------------

class TestLegacyPrecedence:
    def test_linked_type_supersedes_legacy_field(self):
        scenario = _scenario(riester_monthly=Decimal('200'), ruerup_monthly=Decimal('100'))
        sources = [_source(PensionType.RIESTER, 300)]

        in_effect = PensionAggregator.legacy_fields_in_effect(
            scenario, PensionAggregator.linked_types(sources))

        assert PensionType.RIESTER not in in_effect
        assert in_effect == {PensionType.RUERUP: Decimal('100')}

    def test_no_links_keeps_all_legacy_fields(self):
        scenario = _scenario(riester_monthly=Decimal('200'), betriebsrente_monthly=Decimal('50'))
        in_effect = PensionAggregator.legacy_fields_in_effect(scenario, set())
        assert in_effect == {PensionType.RIESTER: Decimal('200'), PensionType.BETRIEBSRENTE: Decimal('50')}

    def test_zero_payout_link_still_supersedes(self):
        scenario = _scenario(riester_monthly=Decimal('200'))
        sources = [_source(PensionType.RIESTER, 0)]
        assert PensionAggregator.total_now(scenario, sources) == Decimal('1500')


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------

class TestTotalNow:
    def test_sums_every_source_ignoring_start_dates(self):
        scenario = _scenario(
            riester_monthly=Decimal('200'),
            ruerup_monthly=Decimal('100'),
            other_pension_monthly=Decimal('250'),
            other_pension_start_date=date(2050, 1, 1),
        )
        sources = [_source(PensionType.RIESTER, 300, date(2045, 1, 1))]

        # state 1500 + linked riester 300 + legacy ruerup 100 + other 250
        assert PensionAggregator.total_now(scenario, sources) == Decimal('2150')

    def test_with_payout_drops_blank_and_zero(self):
        sources = [
            _source(PensionType.RIESTER, None),
            _source(PensionType.RUERUP, 0),
            _source(PensionType.BETRIEBSRENTE, 400),
        ]
        assert [s.pension_type for s in PensionAggregator.with_payout(sources)] == [PensionType.BETRIEBSRENTE]
        assert PensionAggregator.pension_sources_total(sources) == Decimal('400')

    def test_defaults_to_scenario_sources(self):
        scenario = _scenario()
        scenario.pension_sources.append(_source(PensionType.BETRIEBSRENTE, 400))
        assert PensionAggregator.total_now(scenario) == Decimal('1900')

    def test_no_income_at_all(self):
        scenario = _scenario(state_pension_monthly=None)
        assert PensionAggregator.total_now(scenario, []) == Decimal('0')


# ---------------------------------------------------------------------------
# Per-date breakdown
# ---------------------------------------------------------------------------

class TestIncomeBreakdownAtDate:
    def test_while_working(self):
        breakdown = PensionAggregator.income_breakdown_at_date(_scenario(), [], date(2025, 6, 1))
        assert breakdown['salary'] == Decimal('6000')
        assert breakdown['state_pension'] == Decimal('0')
        assert breakdown['private_pensions'] == Decimal('0')
        assert breakdown['other'] == Decimal('0')

    def test_salary_paid_through_end_date(self):
        breakdown = PensionAggregator.income_breakdown_at_date(_scenario(), [], date(2040, 12, 31))
        assert breakdown['salary'] == Decimal('6000')

    def test_after_state_pension_starts(self):
        breakdown = PensionAggregator.income_breakdown_at_date(_scenario(), [], date(2042, 2, 1))
        assert breakdown['salary'] == Decimal('0')
        assert breakdown['state_pension'] == Decimal('1500')

    def test_linked_source_gated_by_start_date(self):
        sources = [_source(PensionType.BETRIEBSRENTE, 400, date(2043, 1, 1))]
        before = PensionAggregator.income_breakdown_at_date(_scenario(), sources, date(2042, 12, 1))
        after = PensionAggregator.income_breakdown_at_date(_scenario(), sources, date(2043, 1, 1))
        assert before['private_pensions'] == Decimal('0')
        assert after['private_pensions'] == Decimal('400')

    def test_legacy_fields_always_count(self):
        scenario = _scenario(ruerup_monthly=Decimal('120'))
        breakdown = PensionAggregator.income_breakdown_at_date(scenario, [], date(2025, 6, 1))
        assert breakdown['private_pensions'] == Decimal('120')

    def test_other_pension_without_start_date_counts_now(self):
        scenario = _scenario(other_pension_monthly=Decimal('300'))
        breakdown = PensionAggregator.income_breakdown_at_date(scenario, [], date(2025, 6, 1))
        assert breakdown['other'] == Decimal('300')

    def test_dates_evaluated_independently(self):
        scenario = _scenario()
        late = PensionAggregator.income_breakdown_at_date(scenario, [], date(2050, 1, 1))
        early = PensionAggregator.income_breakdown_at_date(scenario, [], date(2025, 1, 1))
        assert late['state_pension'] == Decimal('1500')
        assert early['salary'] == Decimal('6000')
