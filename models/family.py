"""
Family model.

A Family groups users into a shared household; every retirement scenario,
account and setting belongs to exactly one family.
"""
from datetime import datetime, timezone
from extensions import db


class Family(db.Model):
    """A household sharing one set of accounts and retirement plans."""
    __tablename__ = 'families'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, default='My Family')
    # ISO code; display only, the engine never converts between currencies
    currency = db.Column(db.String(3), nullable=False, default='GBP')
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), nullable=False)

    # Relationships
    members = db.relationship('User', back_populates='family', lazy='dynamic')
    retirement_scenarios = db.relationship('RetirementScenario', back_populates='family',
                                           lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Family {self.name} ({self.currency})>'
