from extensions import db
from datetime import datetime, timezone
from decimal import Decimal

from utils.money import chart_value, iso_date, month_difference, round_to


TRACKING_AHEAD = 'ahead'
TRACKING_BEHIND = 'behind'
TRACKING_ON_TRACK = 'on_track'
TRACKING_NO_PROJECTION = 'no_projection'

TRACKING_LABELS = {
    TRACKING_AHEAD: 'Ahead of projection',
    TRACKING_BEHIND: 'Behind projection',
    TRACKING_ON_TRACK: 'On track',
    TRACKING_NO_PROJECTION: 'No projection data',
}

# Variance (percent of projected) beyond which a snapshot is ahead / behind
TRACKING_TOLERANCE_PERCENT = Decimal('5')


class RetirementScenarioSnapshot(db.Model):
    """
    Point-in-time capture of a scenario's outputs and assumptions.

    Append-only: one row per (scenario, snapshot_date), never updated.
    projected_portfolio_value is what the *previous* snapshot's assumptions
    predicted for this date, stored at capture time.
    """
    __tablename__ = 'retirement_scenario_snapshots'
    __table_args__ = (
        db.UniqueConstraint('scenario_id', 'snapshot_date', name='uq_snapshots_scenario_date'),
    )

    id = db.Column(db.Integer, primary_key=True)
    scenario_id = db.Column(db.Integer, db.ForeignKey('retirement_scenarios.id'), nullable=False, index=True)
    snapshot_date = db.Column(db.Date, nullable=False, index=True)

    # Actual values at snapshot time
    current_portfolio_value = db.Column(db.Numeric(19, 4))
    required_portfolio_value = db.Column(db.Numeric(19, 4))
    portfolio_gap = db.Column(db.Numeric(19, 4))
    progress_percent = db.Column(db.Numeric(8, 2))
    projected_retirement_date = db.Column(db.Date)
    total_pension_income = db.Column(db.Numeric(19, 4))
    income_gap_monthly = db.Column(db.Numeric(19, 4))

    projected_portfolio_value = db.Column(db.Numeric(19, 4))

    # Assumptions in force when captured
    growth_rate_assumption = db.Column(db.Numeric(5, 2))
    inflation_rate_assumption = db.Column(db.Numeric(5, 2))
    monthly_contribution_assumption = db.Column(db.Numeric(19, 4))
    withdrawal_rate_assumption = db.Column(db.Numeric(5, 2))

    notes = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    scenario = db.relationship('RetirementScenario', back_populates='snapshots')

    @property
    def portfolio_variance(self):
        """Actual minus projected portfolio value, or None without both."""
        if self.projected_portfolio_value is None or self.current_portfolio_value is None:
            return None
        return Decimal(self.current_portfolio_value) - Decimal(self.projected_portfolio_value)

    @property
    def portfolio_variance_percent(self):
        if self.projected_portfolio_value is None or self.projected_portfolio_value <= 0:
            return None
        variance = self.portfolio_variance
        if variance is None:
            return None
        return round_to(variance / Decimal(self.projected_portfolio_value) * 100, 2)

    @property
    def tracking_status(self):
        if self.projected_portfolio_value is None:
            return TRACKING_NO_PROJECTION

        variance_pct = self.portfolio_variance_percent
        if variance_pct is None:
            return TRACKING_ON_TRACK
        if variance_pct > TRACKING_TOLERANCE_PERCENT:
            return TRACKING_AHEAD
        if variance_pct < -TRACKING_TOLERANCE_PERCENT:
            return TRACKING_BEHIND
        return TRACKING_ON_TRACK

    @property
    def tracking_status_label(self):
        return TRACKING_LABELS[self.tracking_status]

    def actual_growth_rate_since(self, previous):
        """
        Annualised growth (percent, 2dp) of the portfolio since ``previous``.

        Uses the geometric monthly rate over the whole months between the two
        snapshot dates.  None when either value is missing, the earlier value
        is not positive, or less than one whole month has elapsed.
        """
        if previous is None:
            return None
        if self.current_portfolio_value is None or previous.current_portfolio_value is None:
            return None
        if previous.current_portfolio_value <= 0:
            return None

        months = month_difference(previous.snapshot_date, self.snapshot_date)
        if months <= 0:
            return None

        total_growth = Decimal(self.current_portfolio_value) / Decimal(previous.current_portfolio_value)
        if total_growth <= 0:
            return None
        monthly_rate = total_growth ** (Decimal(1) / Decimal(months)) - 1
        annual_rate = ((1 + monthly_rate) ** 12 - 1) * 100
        return round_to(annual_rate, 2)

    def to_dict(self):
        return {
            'id': self.id,
            'scenario_id': self.scenario_id,
            'snapshot_date': iso_date(self.snapshot_date),
            'current_portfolio_value': chart_value(self.current_portfolio_value),
            'required_portfolio_value': chart_value(self.required_portfolio_value),
            'portfolio_gap': chart_value(self.portfolio_gap),
            'progress_percent': chart_value(self.progress_percent, 1),
            'projected_retirement_date': iso_date(self.projected_retirement_date),
            'total_pension_income': chart_value(self.total_pension_income),
            'income_gap_monthly': chart_value(self.income_gap_monthly),
            'projected_portfolio_value': chart_value(self.projected_portfolio_value),
            'portfolio_variance': chart_value(self.portfolio_variance),
            'portfolio_variance_percent': chart_value(self.portfolio_variance_percent),
            'tracking_status': self.tracking_status,
            'growth_rate_assumption': chart_value(self.growth_rate_assumption),
            'inflation_rate_assumption': chart_value(self.inflation_rate_assumption),
            'monthly_contribution_assumption': chart_value(self.monthly_contribution_assumption),
            'withdrawal_rate_assumption': chart_value(self.withdrawal_rate_assumption),
            'notes': self.notes,
        }

    def __repr__(self):
        return f'<RetirementScenarioSnapshot {self.snapshot_date}: {self.current_portfolio_value}>'
