"""
Income Timeline Analyzer
========================
Calendar view of a scenario's income: what arrives each month, when each
source starts or stops, and whether there is a *gap period* with no
guaranteed income between the last salary and the first pension.

Gap period
----------
Exists only when a salary end date is set and at least one pension with a
nonzero amount has a known start date after it:

    start  = salary_end_date + 1 day
    end    = earliest_pension_start − 1 day
    months = whole-month difference + 1 (inclusive)

No income source is active inside the window, so the monthly shortfall is the
full monthly expense figure.

Every method works from PensionAggregator.income_breakdown_at_date(), which
evaluates each date independently.
"""
from datetime import date, timedelta

from utils.money import ZERO, add_months, month_difference, to_decimal
from services.pension_aggregator import PensionAggregator


class IncomeTimelineAnalyzer:

    def __init__(self, scenario, sources=None, today=None):
        self.scenario = scenario
        self.sources = list(scenario.pension_sources if sources is None else sources)
        self.today = today or date.today()

    @property
    def sources_with_payout(self):
        return PensionAggregator.with_payout(self.sources)

    @property
    def monthly_expenses(self):
        return to_decimal(self.scenario.retirement_monthly_expenses, ZERO)

    def income_breakdown_at_date(self, on_date):
        return PensionAggregator.income_breakdown_at_date(self.scenario, self.sources, on_date)

    def project_income_at_date(self, on_date):
        return sum(self.income_breakdown_at_date(on_date).values(), ZERO)

    # ------------------------------------------------------------------
    # Gap period
    # ------------------------------------------------------------------

    def earliest_pension_start_date(self):
        """Earliest start date among pension sources that actually pay something."""
        scenario = self.scenario
        dates = []

        if scenario.state_pension_start_date and to_decimal(scenario.state_pension_monthly, ZERO) > 0:
            dates.append(scenario.state_pension_start_date)

        for source in self.sources_with_payout:
            if source.payout_start_date:
                dates.append(source.payout_start_date)

        if scenario.other_pension_start_date and to_decimal(scenario.other_pension_monthly, ZERO) > 0:
            dates.append(scenario.other_pension_start_date)

        return min(dates) if dates else None

    def gap_period(self):
        """
        The window with no guaranteed income, or None.

        Returns:
            dict with start_date, end_date, months, monthly_shortfall.
        """
        salary_end = self.scenario.salary_end_date
        if salary_end is None:
            return None

        earliest_pension_start = self.earliest_pension_start_date()
        if earliest_pension_start is None:
            return None

        gap_start = salary_end + timedelta(days=1)
        gap_end = earliest_pension_start - timedelta(days=1)
        if gap_end < gap_start:
            return None

        return {
            'start_date': gap_start,
            'end_date': gap_end,
            'months': month_difference(gap_start, gap_end) + 1,
            'monthly_shortfall': self.monthly_expenses,
        }

    def gap_bridge_amount(self):
        """Cash needed to cover expenses through the gap period (0 if none)."""
        gap = self.gap_period()
        if not gap:
            return ZERO
        return gap['months'] * gap['monthly_shortfall']

    def can_bridge_gap(self):
        if not self.gap_period():
            return True
        current = self.scenario.current_portfolio_value
        if current is None:
            return False
        return to_decimal(current) >= self.gap_bridge_amount()

    def in_gap_period(self, on_date):
        return self._within(self.gap_period(), on_date)

    @staticmethod
    def _within(gap, on_date):
        if not gap:
            return False
        return gap['start_date'] <= on_date <= gap['end_date']

    # ------------------------------------------------------------------
    # Milestones and timeline
    # ------------------------------------------------------------------

    def income_milestones(self):
        """Dated income events sorted ascending; ties keep construction order."""
        scenario = self.scenario
        milestones = []

        if scenario.salary_end_date:
            milestones.append({
                'date': scenario.salary_end_date,
                'type': 'salary_end',
                'label': 'Salary ends',
                'description': 'Last month of salary income',
            })

        if scenario.state_pension_start_date and to_decimal(scenario.state_pension_monthly, ZERO) > 0:
            milestones.append({
                'date': scenario.state_pension_start_date,
                'type': 'state_pension_start',
                'label': 'State pension starts',
                'description': 'State pension payments begin',
                'amount': to_decimal(scenario.state_pension_monthly),
            })

        for source in self.sources_with_payout:
            if source.payout_start_date:
                milestones.append({
                    'date': source.payout_start_date,
                    'type': 'private_pension_start',
                    'label': f'{source.label} starts',
                    'description': f'{source.pension_type_label} payments begin',
                    'amount': to_decimal(source.expected_monthly_payout),
                })

        if scenario.other_pension_start_date and to_decimal(scenario.other_pension_monthly, ZERO) > 0:
            milestones.append({
                'date': scenario.other_pension_start_date,
                'type': 'other_pension_start',
                'label': 'Other pension starts',
                'description': 'Additional pension income begins',
                'amount': to_decimal(scenario.other_pension_monthly),
            })

        gap = self.gap_period()
        if gap:
            milestones.append({
                'date': gap['start_date'],
                'type': 'gap_start',
                'label': 'Gap period starts',
                'description': 'No income - portfolio bridge needed',
                'months': gap['months'],
            })
            milestones.append({
                'date': gap['end_date'],
                'type': 'gap_end',
                'label': 'Gap period ends',
                'description': 'Pension income begins',
            })

        return sorted(milestones, key=lambda m: m['date'])

    def generate_income_timeline(self, years=30):
        """
        One row per month for ``years`` years from the calculation date.

        Returns:
            list[dict] with date, month, salary, state_pension, private_pensions,
            other, total_income, expenses, surplus_deficit, in_gap_period.
        """
        start_date = self.scenario.calculation_date or self.today
        expenses = self.monthly_expenses
        gap = self.gap_period()

        timeline = []
        for i in range(int(years) * 12):
            row_date = add_months(start_date, i)
            breakdown = self.income_breakdown_at_date(row_date)
            total_income = sum(breakdown.values(), ZERO)
            timeline.append({
                'date': row_date,
                'month': i,
                'salary': breakdown['salary'],
                'state_pension': breakdown['state_pension'],
                'private_pensions': breakdown['private_pensions'],
                'other': breakdown['other'],
                'total_income': total_income,
                'expenses': expenses,
                'surplus_deficit': total_income - expenses,
                'in_gap_period': self._within(gap, row_date),
            })
        return timeline

    # ------------------------------------------------------------------
    # Income at life stages
    # ------------------------------------------------------------------

    def income_at_today(self):
        return self.project_income_at_date(self.today)

    def income_at_retirement(self):
        """Income the day after salary stops, or None without a salary end date."""
        if not self.scenario.salary_end_date:
            return None
        return self.project_income_at_date(self.scenario.salary_end_date + timedelta(days=1))

    def income_at_full_pension(self):
        """Income once every dated pension has started."""
        scenario = self.scenario
        dates = [d for d in (scenario.state_pension_start_date, scenario.other_pension_start_date) if d]
        dates.extend(s.payout_start_date for s in self.sources_with_payout if s.payout_start_date)

        if not dates:
            return PensionAggregator.total_now(scenario, self.sources)
        return self.project_income_at_date(max(dates))
