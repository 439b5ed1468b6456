from extensions import db
from datetime import datetime, timezone
from sqlalchemy.orm import validates

from utils.money import chart_value, iso_date


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class RetirementScenario(db.Model):
    """
    One retirement plan for a family.

    Input columns are edited by the user; the "calculated outputs" block is
    written only by ScenarioCalculator.recalculate() and is always a function
    of the inputs plus the net worth supplied at calculation_date.
    """
    __tablename__ = 'retirement_scenarios'

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=True, index=True)

    # Metadata
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    is_primary = db.Column(db.Boolean, default=False)

    # "As of" date for every calculated output
    calculation_date = db.Column(db.Date, nullable=False)

    # Expenses
    retirement_monthly_expenses = db.Column(db.Numeric(10, 2))

    # Salary
    current_annual_salary = db.Column(db.Numeric(10, 2))
    salary_end_date = db.Column(db.Date)

    # State pension
    state_pension_monthly = db.Column(db.Numeric(10, 2))
    state_pension_start_date = db.Column(db.Date)

    # Legacy manual pension amounts, ignored once an account of the same type is linked
    riester_monthly = db.Column(db.Numeric(10, 2))
    ruerup_monthly = db.Column(db.Numeric(10, 2))
    betriebsrente_monthly = db.Column(db.Numeric(10, 2))

    # Any other pension
    other_pension_monthly = db.Column(db.Numeric(10, 2))
    other_pension_start_date = db.Column(db.Date)

    # Portfolio assumptions (percent)
    portfolio_withdrawal_rate = db.Column(db.Numeric(5, 2), default=4.0)
    portfolio_growth_rate = db.Column(db.Numeric(5, 2), default=7.0)
    inflation_rate = db.Column(db.Numeric(5, 2), default=3.0)
    monthly_contribution = db.Column(db.Numeric(10, 2))  # blank = use median surplus

    # Calculated outputs
    total_pension_income = db.Column(db.Numeric(10, 2))
    income_gap_monthly = db.Column(db.Numeric(10, 2))
    required_portfolio_value = db.Column(db.Numeric(19, 4))
    current_portfolio_value = db.Column(db.Numeric(19, 4))
    portfolio_gap = db.Column(db.Numeric(19, 4))
    projected_retirement_date = db.Column(db.Date, index=True)

    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    # Relationships
    family = db.relationship('Family', back_populates='retirement_scenarios')
    pension_sources = db.relationship('RetirementPensionSource', back_populates='scenario',
                                      lazy=True, cascade='all, delete-orphan')
    snapshots = db.relationship('RetirementScenarioSnapshot', back_populates='scenario',
                                lazy=True, cascade='all, delete-orphan',
                                order_by='RetirementScenarioSnapshot.snapshot_date')

    __table_args__ = (
        db.Index('ix_retirement_scenarios_family_primary', 'family_id', 'is_primary'),
    )

    NUMERIC_INPUT_FIELDS = (
        'retirement_monthly_expenses',
        'current_annual_salary',
        'state_pension_monthly',
        'riester_monthly',
        'ruerup_monthly',
        'betriebsrente_monthly',
        'other_pension_monthly',
        'portfolio_withdrawal_rate',
        'portfolio_growth_rate',
        'inflation_rate',
        'monthly_contribution',
    )

    DATE_INPUT_FIELDS = (
        'salary_end_date',
        'state_pension_start_date',
        'other_pension_start_date',
    )

    OUTPUT_FIELDS = (
        'total_pension_income',
        'income_gap_monthly',
        'required_portfolio_value',
        'current_portfolio_value',
        'portfolio_gap',
        'projected_retirement_date',
    )

    @validates('portfolio_withdrawal_rate')
    def _validate_withdrawal_rate(self, key, value):
        if value is not None and not (0 < value <= 100):
            raise ValueError('portfolio_withdrawal_rate must be greater than 0 and at most 100')
        return value

    @validates('portfolio_growth_rate')
    def _validate_growth_rate(self, key, value):
        if value is not None and not (-20 <= value <= 50):
            raise ValueError('portfolio_growth_rate must be between -20 and 50')
        return value

    @validates('inflation_rate')
    def _validate_inflation_rate(self, key, value):
        if value is not None and not (0 <= value <= 20):
            raise ValueError('inflation_rate must be between 0 and 20')
        return value

    @property
    def is_complete(self):
        """A scenario without monthly expenses is never calculated."""
        return self.retirement_monthly_expenses is not None

    @property
    def latest_snapshot(self):
        return max(self.snapshots, key=lambda s: s.snapshot_date) if self.snapshots else None

    def clear_outputs(self):
        for field in self.OUTPUT_FIELDS:
            setattr(self, field, None)

    def to_dict(self):
        """Inputs, stored outputs and linked pension sources, JSON-ready."""
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'is_primary': bool(self.is_primary),
            'calculation_date': iso_date(self.calculation_date),
        }
        for field in self.DATE_INPUT_FIELDS:
            data[field] = iso_date(getattr(self, field))
        for field in self.NUMERIC_INPUT_FIELDS:
            data[field] = chart_value(getattr(self, field))
        for field in self.OUTPUT_FIELDS:
            value = getattr(self, field)
            data[field] = iso_date(value) if field == 'projected_retirement_date' else chart_value(value)
        data['pension_sources'] = [source.to_dict() for source in self.pension_sources]
        return data

    def __repr__(self):
        return f'<RetirementScenario {self.name} as of {self.calculation_date}>'
