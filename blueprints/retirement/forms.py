"""
Retirement Forms
Validation for scenario input submitted as JSON
"""
from flask_wtf import FlaskForm
from wtforms import BooleanField, DateField, DecimalField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, ValidationError


def _money_field(label):
    return DecimalField(label, places=2, validators=[
        Optional(),
        NumberRange(min=0, message=f'{label} cannot be negative')
    ])


class ScenarioForm(FlaskForm):
    """Scenario inputs; the JSON API has no session, so CSRF is off"""

    class Meta:
        csrf = False

    name = StringField('Name', validators=[
        DataRequired(message='Name is required'),
        Length(max=100, message='Name must be at most 100 characters')
    ])
    description = TextAreaField('Description', validators=[Optional()])
    is_primary = BooleanField('Primary scenario')

    retirement_monthly_expenses = _money_field('Monthly expenses in retirement')

    current_annual_salary = _money_field('Current annual salary')
    salary_end_date = DateField('Salary end date', validators=[Optional()])

    state_pension_monthly = _money_field('State pension (monthly)')
    state_pension_start_date = DateField('State pension start date', validators=[Optional()])

    riester_monthly = _money_field('Riester (monthly)')
    ruerup_monthly = _money_field('Rürup (monthly)')
    betriebsrente_monthly = _money_field('Betriebsrente (monthly)')

    other_pension_monthly = _money_field('Other pension (monthly)')
    other_pension_start_date = DateField('Other pension start date', validators=[Optional()])

    portfolio_withdrawal_rate = DecimalField('Withdrawal rate (%)', places=2, validators=[
        Optional(),
        NumberRange(max=100, message='Withdrawal rate must be at most 100%%')
    ])
    portfolio_growth_rate = DecimalField('Portfolio growth rate (%)', places=2, validators=[
        Optional(),
        NumberRange(min=-20, max=50, message='Growth rate must be between -20%% and 50%%')
    ])
    inflation_rate = DecimalField('Inflation rate (%)', places=2, validators=[
        Optional(),
        NumberRange(min=0, max=20, message='Inflation rate must be between 0%% and 20%%')
    ])
    monthly_contribution = _money_field('Monthly contribution')

    def validate_retirement_monthly_expenses(self, field):
        if field.data is not None and field.data <= 0:
            raise ValidationError('Monthly expenses must be greater than 0')

    def validate_portfolio_withdrawal_rate(self, field):
        if field.data is not None and field.data <= 0:
            raise ValidationError('Withdrawal rate must be greater than 0%')

    @property
    def scenario_data(self):
        """Field values keyed by scenario column."""
        return {name: field.data for name, field in self._fields.items()}
