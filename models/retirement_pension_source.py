from extensions import db
from datetime import datetime, timezone
from decimal import Decimal

from utils.money import chart_value, iso_date


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class RetirementPensionSource(db.Model):
    """
    Links a RetirementScenario to one pension-bearing Account.

    Payout and start date are copied from the account once, when the source is
    created with them blank (see populate_from_account).  They are not kept in
    sync afterwards; has_custom_values reports whether they have drifted.
    """
    __tablename__ = 'retirement_pension_sources'
    __table_args__ = (
        db.UniqueConstraint('scenario_id', 'account_id', name='uq_pension_sources_scenario_account'),
    )

    id = db.Column(db.Integer, primary_key=True)
    scenario_id = db.Column(db.Integer, db.ForeignKey('retirement_scenarios.id'), nullable=False, index=True)
    account_id = db.Column(db.Integer, db.ForeignKey('accounts.id'), nullable=False, index=True)

    expected_monthly_payout = db.Column(db.Numeric(19, 4))
    payout_start_date = db.Column(db.Date)

    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    scenario = db.relationship('RetirementScenario', back_populates='pension_sources')
    account = db.relationship('Account', back_populates='pension_sources')

    @property
    def pension_type(self):
        return self.account.pension_type if self.account else None

    @property
    def pension_type_label(self):
        pension_type = self.pension_type
        return pension_type.short_label if pension_type else 'Pension'

    @property
    def label(self):
        return self.account.name if self.account else 'Linked pension'

    @property
    def has_payout(self):
        return bool(self.expected_monthly_payout)

    def populate_from_account(self):
        """Fill blank payout / start date from the linked account's pension data."""
        if not self.account:
            return self
        if self.expected_monthly_payout is None and self.account.expected_monthly_payout is not None:
            self.expected_monthly_payout = self.account.expected_monthly_payout
        if self.payout_start_date is None and self.account.retirement_date is not None:
            self.payout_start_date = self.account.retirement_date
        return self

    @property
    def has_custom_values(self):
        """True if the stored values differ from the account's current pension data."""
        if not self.account:
            return False
        account_payout = self.account.expected_monthly_payout
        payout_differs = (
            (self.expected_monthly_payout is None) != (account_payout is None)
            or (self.expected_monthly_payout is not None
                and Decimal(self.expected_monthly_payout) != Decimal(account_payout))
        )
        return payout_differs or self.payout_start_date != self.account.retirement_date

    def to_dict(self):
        return {
            'id': self.id,
            'account_id': self.account_id,
            'label': self.label,
            'pension_type': self.pension_type.value if self.pension_type else None,
            'pension_type_label': self.pension_type_label,
            'expected_monthly_payout': chart_value(self.expected_monthly_payout),
            'payout_start_date': iso_date(self.payout_start_date),
            'has_custom_values': self.has_custom_values,
        }

    def __repr__(self):
        return f'<RetirementPensionSource {self.label}: {self.expected_monthly_payout}/mo>'
