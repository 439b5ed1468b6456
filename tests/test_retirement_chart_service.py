"""
Tests for the chart payloads built by RetirementChartService.
"""
from datetime import date
from decimal import Decimal

from models.retirement_scenario import RetirementScenario
from models.retirement_snapshot import RetirementScenarioSnapshot
from services.retirement_chart_service import RetirementChartService
from services.scenario_calculator import ScenarioCalculator


AS_OF = date(2025, 1, 1)


def _scenario(**overrides):
    fields = dict(
        name='Chart test',
        calculation_date=AS_OF,
        retirement_monthly_expenses=Decimal('4000'),
        current_annual_salary=Decimal('72000'),
        salary_end_date=date(2040, 12, 31),
        state_pension_monthly=Decimal('1500'),
        state_pension_start_date=date(2042, 1, 1),
        portfolio_withdrawal_rate=Decimal('4.0'),
        portfolio_growth_rate=Decimal('7.0'),
        inflation_rate=Decimal('3.0'),
        monthly_contribution=Decimal('2000'),
    )
    fields.update(overrides)
    scenario = RetirementScenario(**fields)
    ScenarioCalculator.recalculate(scenario, Decimal('250000'), as_of_date=AS_OF)
    return scenario


class TestIncomeTimelineChart:
    def test_shape(self):
        data = RetirementChartService.income_timeline(_scenario(), years=30, currency='EUR', today=AS_OF)

        assert set(data['series']) == {'salary', 'state_pension', 'private_pensions', 'other'}
        assert len(data['series']['salary']) == 360
        assert data['series']['salary'][0] == {'date': '2025-01-01', 'value': 6000.0}
        assert len(data['expenses_line']) == 360
        assert data['metadata']['currency'] == 'EUR'
        assert data['metadata']['currency_symbol'] == '€'
        assert data['metadata']['has_gap'] is True

    def test_gap_period(self):
        gap = RetirementChartService.income_timeline(_scenario(), years=30, today=AS_OF)['gap_period']
        assert gap == {
            'start_date': '2041-01-01',
            'end_date': '2041-12-31',
            'months': 12,
            'monthly_shortfall': 4000.0,
            'total_needed': 48000.0,
            'can_bridge': True,
        }

    def test_milestones_serialised(self):
        milestones = RetirementChartService.income_timeline(_scenario(), years=5, today=AS_OF)['milestones']
        assert milestones[0]['date'] == '2040-12-31'
        assert milestones[0]['amount'] is None
        assert milestones[-1]['amount'] == 1500.0

    def test_no_gap(self):
        data = RetirementChartService.income_timeline(_scenario(salary_end_date=None), years=1, today=AS_OF)
        assert data['gap_period'] is None
        assert data['metadata']['income_at_retirement'] is None


class TestPortfolioProjectionChart:
    def test_months_clamped_to_retirement(self):
        scenario = _scenario()
        months = ScenarioCalculator.months_until_retirement(scenario)
        assert RetirementChartService.projection_months(scenario) == min(max(months, 12), 360)

    def test_minimum_twelve_months(self):
        scenario = _scenario(retirement_monthly_expenses=Decimal('1000'))
        assert ScenarioCalculator.can_retire_now(scenario) is True
        assert RetirementChartService.projection_months(scenario) == 12

    def test_unknown_retirement_uses_default(self):
        scenario = _scenario(portfolio_growth_rate=Decimal('0'), monthly_contribution=Decimal('0'))
        assert scenario.projected_retirement_date is None
        assert RetirementChartService.projection_months(scenario) == 360

    def test_series_and_metadata(self):
        data = RetirementChartService.portfolio_projection(_scenario(), months=120)

        assert len(data['series']['portfolio']) == 120
        assert data['series']['contributions'][-1]['value'] == 240000.0
        assert data['required_portfolio'] == 750000.0
        meta = data['metadata']
        assert meta['has_data'] is True
        assert meta['starting_value'] == 250000.0
        assert meta['total_contributions'] == 240000.0
        assert meta['final_value'] == data['series']['portfolio'][-1]['value']
        assert meta['can_retire_now'] is False

    def test_milestones(self):
        data = RetirementChartService.portfolio_projection(_scenario(), months=360)
        types = [m['type'] for m in data['milestones']]

        assert types[0] == 'retirement_ready'
        assert types.count('year_marker') == 5
        ready = data['milestones'][0]
        assert ready['value'] >= 750000.0
        assert data['metadata']['retirement_month'] is not None


class TestSnapshotHistoryChart:
    def test_empty(self):
        data = RetirementChartService.snapshot_history(_scenario(), today=AS_OF)
        assert data['metadata']['has_data'] is False
        assert data['current_point'] is None
        assert data['series'] == {'actual': [], 'projected': [], 'required': []}

    def test_series_and_current_point(self):
        scenario = _scenario()
        scenario.snapshots.append(RetirementScenarioSnapshot(
            snapshot_date=date(2024, 1, 1),
            current_portfolio_value=Decimal('200000'),
            required_portfolio_value=Decimal('750000'),
            progress_percent=Decimal('26.7'),
            growth_rate_assumption=Decimal('7.0'),
            monthly_contribution_assumption=Decimal('2000'),
        ))
        scenario.snapshots.append(RetirementScenarioSnapshot(
            snapshot_date=date(2024, 7, 1),
            current_portfolio_value=Decimal('230000'),
            required_portfolio_value=Decimal('750000'),
            projected_portfolio_value=Decimal('219000'),
            progress_percent=Decimal('30.7'),
            growth_rate_assumption=Decimal('7.0'),
            monthly_contribution_assumption=Decimal('2000'),
        ))

        data = RetirementChartService.snapshot_history(scenario, today=AS_OF)

        assert [p['date'] for p in data['series']['actual']] == ['2024-01-01', '2024-07-01']
        assert data['series']['projected'] == [{'date': '2024-07-01', 'value': 219000.0}]
        assert data['metadata']['snapshot_count'] == 2
        assert data['metadata']['tracking_status'] == 'ahead'
        assert data['current_point']['date'] == '2025-01-01'
        assert data['current_point']['actual_value'] == 250000.0
        assert data['current_point']['projected_value'] > 230000.0
