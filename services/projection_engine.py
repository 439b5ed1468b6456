"""
Projection Engine
=================
Month-by-month portfolio projection towards a scenario's required value.

Each month (see InterestCalculator.monthly_steps):

    investment_return = balance × (growth_rate / 100 / 12)
    balance           = balance + investment_return + contribution

The contribution is the scenario's explicit monthly_contribution, or the
household's median monthly surplus when none is set.  A row is flagged
``can_retire`` once its balance reaches the required portfolio value.

Horizons
--------
  generate_projections() — 360 months (30 years) unless told otherwise
  find_goal_date()       — searches 480 months (40 years); None if never reached
"""
from datetime import date

from utils.money import ZERO, add_months, to_decimal
from services.interest_calculator import InterestCalculator


DEFAULT_GROWTH_RATE = 7
DEFAULT_PROJECTION_MONTHS = 360
SEARCH_HORIZON_MONTHS = 480


class ProjectionEngine:
    """
    Deterministic projection of one portfolio.

    Holds only plain values, so the same inputs always give the same
    trajectory and nothing is read from or written to the database.
    """

    def __init__(self, starting_value, required_value, annual_growth_rate=None,
                 monthly_contribution=None, start_date=None):
        self.starting_value = to_decimal(starting_value, ZERO)
        self.required_value = to_decimal(required_value, ZERO)
        self.annual_growth_rate = to_decimal(annual_growth_rate, to_decimal(DEFAULT_GROWTH_RATE))
        self.monthly_contribution = to_decimal(monthly_contribution, ZERO)
        self.start_date = start_date or date.today()

    @classmethod
    def for_scenario(cls, scenario, median_monthly_surplus=None, current_value=None, required_value=None):
        """
        Build an engine from a scenario's stored inputs and outputs.

        ``current_value`` / ``required_value`` override the stored outputs,
        which lets ScenarioCalculator project before it has written anything.
        """
        contribution = scenario.monthly_contribution
        if contribution is None:
            contribution = median_monthly_surplus
        return cls(
            starting_value=scenario.current_portfolio_value if current_value is None else current_value,
            required_value=scenario.required_portfolio_value if required_value is None else required_value,
            annual_growth_rate=scenario.portfolio_growth_rate,
            monthly_contribution=contribution,
            start_date=scenario.calculation_date,
        )

    def generate_projections(self, months=None):
        """
        Simulate ``months`` months (default 360).

        Returns:
            list[dict] — one per month with keys: month, date, portfolio_value,
            investment_return, contribution, can_retire.
        """
        if months is None:
            months = DEFAULT_PROJECTION_MONTHS

        projections = []
        for month, balance, investment_return in InterestCalculator.monthly_steps(
                self.starting_value, self.annual_growth_rate, self.monthly_contribution, months):
            projections.append({
                'month': month,
                'date': add_months(self.start_date, month),
                'portfolio_value': balance,
                'investment_return': investment_return,
                'contribution': self.monthly_contribution,
                'can_retire': balance >= self.required_value,
            })
        return projections

    @staticmethod
    def retirement_month_index(projections):
        """Index of the first row that reaches the goal, or None."""
        for index, row in enumerate(projections):
            if row['can_retire']:
                return index
        return None

    def find_goal_date(self, horizon=SEARCH_HORIZON_MONTHS):
        """Date of the first month the portfolio reaches the required value."""
        projections = self.generate_projections(months=horizon)
        index = self.retirement_month_index(projections)
        return projections[index]['date'] if index is not None else None

    def total_contributions(self, months):
        return self.monthly_contribution * max(int(months), 0)

    def total_returns(self, months):
        result = InterestCalculator.future_value_with_contributions(
            self.starting_value, self.annual_growth_rate, self.monthly_contribution, months)
        return result['total_returns']
