"""
Tests for ProjectionEngine.
"""
from datetime import date
from decimal import Decimal

from models.retirement_scenario import RetirementScenario
from services.interest_calculator import InterestCalculator
from services.projection_engine import ProjectionEngine, DEFAULT_PROJECTION_MONTHS


START = date(2025, 1, 1)


def _engine(**overrides):
    fields = dict(
        starting_value=Decimal('100000'),
        required_value=Decimal('101500'),
        annual_growth_rate=Decimal('12'),
        monthly_contribution=Decimal('0'),
        start_date=START,
    )
    fields.update(overrides)
    return ProjectionEngine(**fields)


class TestGenerateProjections:
    def test_rows_and_values(self):
        rows = _engine().generate_projections(months=2)

        assert len(rows) == 2
        assert rows[0]['month'] == 1
        assert rows[0]['date'] == date(2025, 2, 1)
        assert rows[0]['portfolio_value'] == Decimal('101000')
        assert rows[0]['investment_return'] == Decimal('1000')
        assert rows[0]['can_retire'] is False
        assert rows[1]['portfolio_value'] == Decimal('102010')
        assert rows[1]['can_retire'] is True

    def test_default_horizon(self):
        assert len(_engine().generate_projections()) == DEFAULT_PROJECTION_MONTHS

    def test_deterministic(self):
        engine = _engine(monthly_contribution=Decimal('1500'), annual_growth_rate=Decimal('6.5'))
        assert engine.generate_projections(240) == engine.generate_projections(240)

    def test_agrees_with_future_value(self):
        engine = _engine(monthly_contribution=Decimal('750'), annual_growth_rate=Decimal('7'))
        rows = engine.generate_projections(120)
        result = InterestCalculator.future_value_with_contributions(
            Decimal('100000'), Decimal('7'), Decimal('750'), 120)

        assert rows[-1]['portfolio_value'] == result['final_balance']
        assert sum(r['investment_return'] for r in rows) == result['total_returns']
        assert engine.total_returns(120) == result['total_returns']
        assert engine.total_contributions(120) == Decimal('90000')

    def test_month_end_dates_clamp(self):
        rows = _engine(start_date=date(2025, 1, 31)).generate_projections(1)
        assert rows[0]['date'] == date(2025, 2, 28)


class TestGoalSearch:
    def test_retirement_month_index(self):
        rows = _engine().generate_projections(12)
        assert ProjectionEngine.retirement_month_index(rows) == 1

    def test_find_goal_date(self):
        assert _engine().find_goal_date() == date(2025, 3, 1)

    def test_goal_never_reached(self):
        engine = _engine(annual_growth_rate=Decimal('0'), required_value=Decimal('200000'))
        assert engine.find_goal_date() is None

    def test_search_is_bounded(self):
        engine = _engine(annual_growth_rate=Decimal('0'), monthly_contribution=Decimal('100'),
                         required_value=Decimal('148000'))
        # 100000 + 480 x 100 = 148000 exactly at the last searched month
        assert engine.find_goal_date() == date(2065, 1, 1)
        assert engine.find_goal_date(horizon=479) is None


class TestForScenario:
    def _scenario(self, **overrides):
        fields = dict(
            name='Projection test',
            calculation_date=START,
            retirement_monthly_expenses=Decimal('4000'),
            portfolio_growth_rate=Decimal('5'),
            current_portfolio_value=Decimal('200000'),
            required_portfolio_value=Decimal('750000'),
        )
        fields.update(overrides)
        return RetirementScenario(**fields)

    def test_uses_stored_outputs(self):
        engine = ProjectionEngine.for_scenario(self._scenario())
        assert engine.starting_value == Decimal('200000')
        assert engine.required_value == Decimal('750000')
        assert engine.annual_growth_rate == Decimal('5')
        assert engine.start_date == START

    def test_median_surplus_fallback(self):
        engine = ProjectionEngine.for_scenario(self._scenario(), median_monthly_surplus=Decimal('1800'))
        assert engine.monthly_contribution == Decimal('1800')

        explicit = ProjectionEngine.for_scenario(
            self._scenario(monthly_contribution=Decimal('900')), median_monthly_surplus=Decimal('1800'))
        assert explicit.monthly_contribution == Decimal('900')

    def test_overrides(self):
        engine = ProjectionEngine.for_scenario(
            self._scenario(), current_value=Decimal('1'), required_value=Decimal('2'))
        assert engine.starting_value == Decimal('1')
        assert engine.required_value == Decimal('2')

    def test_missing_growth_rate_uses_default(self):
        engine = ProjectionEngine.for_scenario(self._scenario(portfolio_growth_rate=None))
        assert engine.annual_growth_rate == Decimal('7')
