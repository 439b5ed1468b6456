"""
Retirement Chart Service
========================
Builds the three JSON-shaped payloads the charting layer consumes.

  income_timeline()       — stacked income by source, milestones, gap period
  portfolio_projection()  — projected portfolio with cumulative contributions/returns
  snapshot_history()      — actual vs projected vs required across snapshots

Dates are ISO strings.  Values are display floats rounded to 2dp; nothing
built here is persisted or fed back into a calculation.
"""
from datetime import date

from utils.money import add_months, chart_value, currency_symbol, ZERO
from services.income_timeline_analyzer import IncomeTimelineAnalyzer
from services.projection_engine import ProjectionEngine, DEFAULT_PROJECTION_MONTHS
from services.scenario_calculator import ScenarioCalculator
from services.snapshot_tracker import SnapshotTracker


# Chart marker every five years of projection
YEAR_MARKER_INTERVAL = 60
MIN_PROJECTION_MONTHS = 12


def _currency_metadata(currency):
    return {
        'currency': currency,
        'currency_symbol': currency_symbol(currency),
    }


class RetirementChartService:

    # ------------------------------------------------------------------
    # Income timeline
    # ------------------------------------------------------------------

    @staticmethod
    def income_timeline(scenario, years=30, currency='GBP', today=None):
        analyzer = IncomeTimelineAnalyzer(scenario, today=today)
        timeline = analyzer.generate_income_timeline(years=years)
        gap = analyzer.gap_period()

        def series(key):
            return [{'date': row['date'].isoformat(), 'value': chart_value(row[key])} for row in timeline]

        gap_data = None
        if gap:
            gap_data = {
                'start_date': gap['start_date'].isoformat(),
                'end_date': gap['end_date'].isoformat(),
                'months': gap['months'],
                'monthly_shortfall': chart_value(gap['monthly_shortfall']),
                'total_needed': chart_value(analyzer.gap_bridge_amount()),
                'can_bridge': analyzer.can_bridge_gap(),
            }

        start_date = scenario.calculation_date or analyzer.today
        income_at_retirement = analyzer.income_at_retirement()

        return {
            'series': {
                'salary': series('salary'),
                'state_pension': series('state_pension'),
                'private_pensions': series('private_pensions'),
                'other': series('other'),
            },
            'milestones': [
                {
                    'date': m['date'].isoformat(),
                    'type': m['type'],
                    'label': m['label'],
                    'description': m.get('description'),
                    'amount': chart_value(m.get('amount')),
                }
                for m in analyzer.income_milestones()
            ],
            'gap_period': gap_data,
            'expenses_line': series('expenses'),
            'metadata': {
                **_currency_metadata(currency),
                'start_date': start_date.isoformat(),
                'end_date': add_months(start_date, int(years) * 12).isoformat(),
                'years': years,
                'has_gap': gap is not None,
                'income_today': chart_value(analyzer.income_at_today()),
                'income_at_retirement': chart_value(income_at_retirement),
                'income_at_full_pension': chart_value(analyzer.income_at_full_pension()),
                'monthly_expenses': chart_value(scenario.retirement_monthly_expenses),
            },
        }

    # ------------------------------------------------------------------
    # Portfolio projection
    # ------------------------------------------------------------------

    @staticmethod
    def projection_months(scenario):
        """Months until retirement, clamped to 12..360."""
        months = ScenarioCalculator.months_until_retirement(scenario)
        if months is None:
            months = DEFAULT_PROJECTION_MONTHS
        return min(max(months, MIN_PROJECTION_MONTHS), DEFAULT_PROJECTION_MONTHS)

    @staticmethod
    def portfolio_projection(scenario, months=None, median_monthly_surplus=None, currency='GBP'):
        months = months or RetirementChartService.projection_months(scenario)
        engine = ProjectionEngine.for_scenario(scenario, median_monthly_surplus)
        projections = engine.generate_projections(months=months)

        if not projections:
            return {
                'series': {'portfolio': [], 'contributions': [], 'returns': []},
                'milestones': [],
                'required_portfolio': 0,
                'metadata': {**_currency_metadata(currency), 'has_data': False},
            }

        portfolio, contributions, returns = [], [], []
        cumulative_contributions = ZERO
        cumulative_returns = ZERO
        for row in projections:
            cumulative_contributions += row['contribution']
            cumulative_returns += row['investment_return']
            row_date = row['date'].isoformat()
            portfolio.append({'date': row_date, 'value': chart_value(row['portfolio_value'])})
            contributions.append({'date': row_date, 'value': chart_value(cumulative_contributions)})
            returns.append({'date': row_date, 'value': chart_value(cumulative_returns)})

        can_retire_now = ScenarioCalculator.can_retire_now(scenario)
        retirement_month = ProjectionEngine.retirement_month_index(projections)

        milestones = []
        if not can_retire_now and retirement_month is not None:
            ready = projections[retirement_month]
            milestones.append({
                'date': ready['date'].isoformat(),
                'type': 'retirement_ready',
                'label': 'Retirement Ready',
                'description': 'Portfolio reaches required value',
                'value': chart_value(ready['portfolio_value']),
            })
        for index, row in enumerate(projections):
            if index > 0 and index % YEAR_MARKER_INTERVAL == 0:
                milestones.append({
                    'date': row['date'].isoformat(),
                    'type': 'year_marker',
                    'label': f'Year {index // 12}',
                    'value': chart_value(row['portfolio_value']),
                })

        start_date = scenario.calculation_date or date.today()
        final = projections[-1]

        return {
            'series': {
                'portfolio': portfolio,
                'contributions': contributions,
                'returns': returns,
                'starting_value': chart_value(engine.starting_value),
            },
            'milestones': milestones,
            'required_portfolio': chart_value(engine.required_value),
            'metadata': {
                **_currency_metadata(currency),
                'has_data': True,
                'start_date': start_date.isoformat(),
                'end_date': final['date'].isoformat(),
                'months': months,
                'years': round(months / 12, 1),
                'starting_value': chart_value(engine.starting_value),
                'final_value': chart_value(final['portfolio_value']),
                'total_contributions': chart_value(engine.total_contributions(months)),
                'total_returns': chart_value(engine.total_returns(months)),
                'required_portfolio': chart_value(engine.required_value),
                'can_retire_now': can_retire_now,
                'retirement_month': retirement_month,
                'growth_rate': chart_value(scenario.portfolio_growth_rate),
                'inflation_rate': chart_value(scenario.inflation_rate),
                'real_growth_rate': chart_value(ScenarioCalculator.real_portfolio_growth_rate(scenario)),
                'monthly_contribution': chart_value(engine.monthly_contribution),
            },
        }

    # ------------------------------------------------------------------
    # Snapshot history
    # ------------------------------------------------------------------

    @staticmethod
    def snapshot_history(scenario, currency='GBP', today=None):
        today = today or date.today()
        snapshots = SnapshotTracker.chronological(scenario)

        if not snapshots:
            return {
                'series': {'actual': [], 'projected': [], 'required': []},
                'current_point': None,
                'metadata': {**_currency_metadata(currency), 'has_data': False, 'snapshot_count': 0},
            }

        actual, projected, required = [], [], []
        for snapshot in snapshots:
            snapshot_date = snapshot.snapshot_date.isoformat()
            actual.append({
                'date': snapshot_date,
                'value': chart_value(snapshot.current_portfolio_value),
                'progress_percent': chart_value(snapshot.progress_percent, 1),
            })
            if snapshot.projected_portfolio_value is not None:
                projected.append({'date': snapshot_date, 'value': chart_value(snapshot.projected_portfolio_value)})
            required.append({'date': snapshot_date, 'value': chart_value(snapshot.required_portfolio_value)})

        first, latest = snapshots[0], snapshots[-1]

        current_point = None
        if latest.snapshot_date != today:
            current_point = {
                'date': today.isoformat(),
                'actual_value': chart_value(scenario.current_portfolio_value),
                'projected_value': chart_value(SnapshotTracker.projected_value_for_today(scenario, today)),
                'required_value': chart_value(scenario.required_portfolio_value),
                'progress_percent': chart_value(ScenarioCalculator.progress_percent(scenario), 1),
            }

        accuracy = SnapshotTracker.assumption_accuracy_summary(scenario) or {}

        return {
            'series': {'actual': actual, 'projected': projected, 'required': required},
            'current_point': current_point,
            'metadata': {
                **_currency_metadata(currency),
                'has_data': True,
                'snapshot_count': len(snapshots),
                'first_snapshot_date': first.snapshot_date.isoformat(),
                'latest_snapshot_date': latest.snapshot_date.isoformat(),
                'tracking_status': latest.tracking_status,
                'tracking_status_label': latest.tracking_status_label,
                'portfolio_variance': chart_value(latest.portfolio_variance),
                'portfolio_variance_percent': chart_value(latest.portfolio_variance_percent),
                'assumed_growth_rate': chart_value(accuracy.get('assumed_growth_rate')),
                'actual_growth_rate': chart_value(accuracy.get('actual_growth_rate')),
                'growth_rate_variance': chart_value(accuracy.get('growth_rate_variance')),
            },
        }
