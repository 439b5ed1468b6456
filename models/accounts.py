import enum
from datetime import date, datetime, timezone

from extensions import db


class PensionType(enum.Enum):
    """Private pension products that can back a linked pension source.

    Each type also has a legacy manual field on RetirementScenario
    (``riester_monthly`` etc.), which is why the set is closed.
    """
    RIESTER = 'riester'
    RUERUP = 'ruerup'
    BETRIEBSRENTE = 'betriebsrente'

    @property
    def short_label(self):
        return _PENSION_LABELS[self][0]

    @property
    def long_label(self):
        return _PENSION_LABELS[self][1]

    @property
    def legacy_field(self):
        """Name of the manual monthly-amount column on RetirementScenario."""
        return f'{self.value}_monthly'


_PENSION_LABELS = {
    PensionType.RIESTER: ('Riester', 'Riester Pension (Riester-Rente)'),
    PensionType.RUERUP: ('Rürup', 'Rürup Pension (Basisrente)'),
    PensionType.BETRIEBSRENTE: ('Betriebsrente', 'Occupational Pension (Betriebliche Altersvorsorge)'),
}


class Account(db.Model):
    __tablename__ = 'accounts'

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    account_type = db.Column(db.String(50), nullable=False)  # Joint, Personal, Savings, Investment, etc.
    balance = db.Column(db.Numeric(19, 4), default=0)
    is_active = db.Column(db.Boolean, default=True)

    # Pension defaults, copied into a RetirementPensionSource when it is linked
    pension_type = db.Column(db.Enum(PensionType, values_callable=lambda e: [m.value for m in e]), nullable=True)
    expected_monthly_payout = db.Column(db.Numeric(10, 2))
    retirement_date = db.Column(db.Date)  # payout start

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), onupdate=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    # Relationships
    pension_sources = db.relationship('RetirementPensionSource', back_populates='account', lazy=True)

    @property
    def is_pension(self):
        return self.pension_type is not None

    @property
    def pension_type_label(self):
        return self.pension_type.short_label if self.pension_type else None

    def in_payout_phase(self, on_date=None):
        """True once the pension's payout start date has been reached."""
        if not self.retirement_date:
            return False
        return (on_date or date.today()) >= self.retirement_date

    def __repr__(self):
        return f'<Account {self.name}>'
