"""
Scenario Calculator
===================
Turns a RetirementScenario's inputs into its calculated outputs.

Pipeline (modified 4% rule, applied to the income gap only)
-----------------------------------------------------------
  1. total_pension_income     = PensionAggregator.total_now()
  2. income_gap_monthly       = max(expenses − total_pension_income, 0)
  3. required_portfolio_value = income_gap × 12 / (withdrawal_rate / 100),
                                or 0 when pensions already cover expenses
  4. portfolio_gap            = required_portfolio_value − current net worth
  5. projected_retirement_date:
       • calculation date, if net worth already covers the requirement
       • first month ProjectionEngine reaches the goal (growth rate set,
         40-year search, None if never reached)
       • linear fallback, ceil(portfolio_gap / median_monthly_surplus)
         months ahead, when no growth rate is configured

Inputs from outside the scenario (current net worth, median monthly surplus)
are always passed in by the caller.  calculate() is pure; recalculate() is the
one explicit entry point that writes outputs back onto the scenario.

Monetary outputs are rounded to minor units before they are compared, so
portfolio_gap == required_portfolio_value − current_portfolio_value exactly.
"""
import logging
import math
from datetime import date
from decimal import Decimal

from utils.money import ZERO, add_months, money, month_difference, round_to, to_decimal
from services.interest_calculator import InterestCalculator
from services.pension_aggregator import PensionAggregator
from services.projection_engine import ProjectionEngine, SEARCH_HORIZON_MONTHS


logger = logging.getLogger(__name__)

DEFAULT_WITHDRAWAL_RATE = Decimal('4.0')


class ScenarioCalculator:

    @staticmethod
    def calculate(scenario, current_net_worth, as_of_date=None, median_monthly_surplus=None, sources=None):
        """
        Compute a scenario's outputs without modifying it.

        Args:
            scenario:               RetirementScenario (saved or not).
            current_net_worth:      household net worth on ``as_of_date``.
            as_of_date:             defaults to scenario.calculation_date, then today.
            median_monthly_surplus: historical income − expenses; used as the
                                    contribution when none is set, and for the
                                    linear fallback.
            sources:                pension sources; defaults to scenario.pension_sources.

        Returns:
            dict of the six output fields, or None if the scenario has no
            monthly expenses (incomplete input).
        """
        if not scenario.is_complete:
            return None

        as_of_date = as_of_date or scenario.calculation_date or date.today()
        if sources is None:
            sources = scenario.pension_sources

        total_pension_income = money(PensionAggregator.total_now(scenario, sources))
        expenses = to_decimal(scenario.retirement_monthly_expenses)
        income_gap_monthly = money(max(expenses - total_pension_income, ZERO))

        withdrawal_rate = to_decimal(scenario.portfolio_withdrawal_rate, DEFAULT_WITHDRAWAL_RATE)
        if income_gap_monthly > 0:
            required_portfolio_value = money(income_gap_monthly * 12 / (withdrawal_rate / 100))
        else:
            # Pensions alone cover expenses
            required_portfolio_value = money(ZERO)

        current_portfolio_value = money(to_decimal(current_net_worth, ZERO))
        portfolio_gap = required_portfolio_value - current_portfolio_value

        if current_portfolio_value >= required_portfolio_value:
            projected_retirement_date = as_of_date
        else:
            projected_retirement_date = ScenarioCalculator.estimate_retirement_date(
                scenario,
                total_pension_income=total_pension_income,
                current_portfolio_value=current_portfolio_value,
                required_portfolio_value=required_portfolio_value,
                as_of_date=as_of_date,
                median_monthly_surplus=median_monthly_surplus,
            )

        return {
            'total_pension_income': total_pension_income,
            'income_gap_monthly': income_gap_monthly,
            'required_portfolio_value': required_portfolio_value,
            'current_portfolio_value': current_portfolio_value,
            'portfolio_gap': portfolio_gap,
            'projected_retirement_date': projected_retirement_date,
        }

    @staticmethod
    def recalculate(scenario, current_net_worth, as_of_date=None, median_monthly_surplus=None):
        """
        Recompute and store the scenario's outputs as of ``as_of_date`` (default today).

        Idempotent for identical inputs.  An incomplete scenario has its
        outputs cleared and None is returned.  The caller commits.
        """
        as_of_date = as_of_date or date.today()
        scenario.calculation_date = as_of_date

        outputs = ScenarioCalculator.calculate(
            scenario, current_net_worth, as_of_date=as_of_date,
            median_monthly_surplus=median_monthly_surplus)

        if outputs is None:
            logger.info(f"scenario {scenario.id}: no monthly expenses set, skipping calculation")
            scenario.clear_outputs()
            return None

        for field, value in outputs.items():
            setattr(scenario, field, value)

        logger.info(
            f"scenario {scenario.id}: required {outputs['required_portfolio_value']}, "
            f"gap {outputs['portfolio_gap']}, retire {outputs['projected_retirement_date']}"
        )
        return outputs

    @staticmethod
    def estimate_retirement_date(scenario, total_pension_income, current_portfolio_value,
                                 required_portfolio_value, as_of_date, median_monthly_surplus=None):
        """Projected retirement date when the portfolio is still short, or None."""
        expenses = to_decimal(scenario.retirement_monthly_expenses)
        if expenses is None or total_pension_income >= expenses:
            # Pensions cover expenses; nothing for the portfolio to reach
            return None

        portfolio_gap = required_portfolio_value - current_portfolio_value
        if portfolio_gap <= 0:
            return None

        if scenario.portfolio_growth_rate is not None:
            engine = ProjectionEngine(
                starting_value=current_portfolio_value,
                required_value=required_portfolio_value,
                annual_growth_rate=scenario.portfolio_growth_rate,
                monthly_contribution=ScenarioCalculator.contribution_for(scenario, median_monthly_surplus),
                start_date=as_of_date,
            )
            return engine.find_goal_date(horizon=SEARCH_HORIZON_MONTHS)

        return ScenarioCalculator.estimate_retirement_date_linear(
            portfolio_gap, as_of_date, median_monthly_surplus)

    @staticmethod
    def estimate_retirement_date_linear(portfolio_gap, as_of_date, median_monthly_surplus):
        """
        Months of surplus needed to close the gap, rounded up.

        None without a surplus, or when the gap would take longer than the
        search horizon to close (same bound as the growth search).
        """
        surplus = to_decimal(median_monthly_surplus, ZERO)
        if surplus <= 0:
            return None
        months_needed = math.ceil(to_decimal(portfolio_gap) / surplus)
        if months_needed > SEARCH_HORIZON_MONTHS:
            return None
        return add_months(as_of_date, months_needed)

    @staticmethod
    def contribution_for(scenario, median_monthly_surplus=None):
        """The monthly contribution projections use: explicit, else median surplus."""
        if scenario.monthly_contribution is not None:
            return to_decimal(scenario.monthly_contribution)
        return to_decimal(median_monthly_surplus, ZERO)

    # ------------------------------------------------------------------
    # Derived accessors over stored outputs (total: None/0 when undefined)
    # ------------------------------------------------------------------

    @staticmethod
    def can_retire_now(scenario):
        if scenario.current_portfolio_value is None or scenario.required_portfolio_value is None:
            return False
        return scenario.current_portfolio_value >= scenario.required_portfolio_value

    @staticmethod
    def pension_self_sufficient(scenario):
        if scenario.total_pension_income is None or scenario.retirement_monthly_expenses is None:
            return False
        return scenario.total_pension_income >= scenario.retirement_monthly_expenses

    @staticmethod
    def progress_percent(scenario):
        """Current portfolio as a percentage of the required value (1dp)."""
        if ScenarioCalculator.can_retire_now(scenario):
            return Decimal('100')
        required = scenario.required_portfolio_value
        if required is None or required <= 0 or scenario.current_portfolio_value is None:
            return ZERO
        return round_to(to_decimal(scenario.current_portfolio_value) / to_decimal(required) * 100, 1)

    @staticmethod
    def pension_coverage_percent(scenario):
        """Share of expenses covered by pensions (1dp, capped at 100)."""
        expenses = scenario.retirement_monthly_expenses
        if expenses is None or expenses <= 0:
            return ZERO
        if ScenarioCalculator.pension_self_sufficient(scenario):
            return Decimal('100')
        income = to_decimal(scenario.total_pension_income, ZERO)
        return round_to(income / to_decimal(expenses) * 100, 1)

    @staticmethod
    def months_until_retirement(scenario):
        if ScenarioCalculator.can_retire_now(scenario):
            return 0
        if scenario.projected_retirement_date is None or scenario.calculation_date is None:
            return None
        return month_difference(scenario.calculation_date, scenario.projected_retirement_date)

    @staticmethod
    def years_until_retirement(scenario):
        months = ScenarioCalculator.months_until_retirement(scenario)
        if months is None:
            return None
        return round_to(Decimal(months) / 12, 1)

    @staticmethod
    def annual_retirement_expenses(scenario):
        if scenario.retirement_monthly_expenses is None:
            return None
        return to_decimal(scenario.retirement_monthly_expenses) * 12

    @staticmethod
    def annual_pension_income(scenario):
        if scenario.total_pension_income is None:
            return None
        return to_decimal(scenario.total_pension_income) * 12

    @staticmethod
    def real_portfolio_growth_rate(scenario):
        if scenario.portfolio_growth_rate is None or scenario.inflation_rate is None:
            return None
        return InterestCalculator.real_return(scenario.portfolio_growth_rate, scenario.inflation_rate)

    @staticmethod
    def required_monthly_contribution(scenario, target_date=None):
        """
        Contribution needed to reach the required value by ``target_date``.

        ``target_date`` defaults to the salary end date.  None when there is
        no target date or it is not after the calculation date.
        """
        target_date = target_date or scenario.salary_end_date
        if target_date is None or scenario.calculation_date is None:
            return None
        if scenario.required_portfolio_value is None:
            return None
        months = month_difference(scenario.calculation_date, target_date)
        return InterestCalculator.required_monthly_contribution(
            current_value=scenario.current_portfolio_value,
            target_value=scenario.required_portfolio_value,
            annual_rate=scenario.portfolio_growth_rate,
            months=months,
        )
