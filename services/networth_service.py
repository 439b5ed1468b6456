"""
Net Worth Service
=================
Supplies the two household figures the retirement engine takes as inputs but
never computes itself.

  current_net_worth()       — sum of active account balances for the family
  median_monthly_surplus()  — stored household surplus (Settings key
                              ``retirement_median_monthly_surplus``)

Both are read at the edges (routes, CLI) and passed into
ScenarioCalculator / SnapshotTracker explicitly.
"""
from decimal import Decimal

from models.accounts import Account
from models.settings import Settings
from utils.money import ZERO, money, to_decimal
from utils.db_helpers import family_query, get_family_id


MEDIAN_SURPLUS_SETTING = 'retirement_median_monthly_surplus'


class NetWorthService:

    @staticmethod
    def current_net_worth(family_id=None):
        """
        Today's net worth: the sum of every active account's balance.

        Scoped to ``family_id`` when given (CLI jobs), otherwise to the
        logged-in user's family.
        """
        if family_id is not None:
            accounts = Account.query.filter_by(family_id=family_id, is_active=True).all()
        else:
            accounts = family_query(Account).filter_by(is_active=True).all()
        return money(sum((to_decimal(acc.balance, ZERO) for acc in accounts), ZERO))

    @staticmethod
    def median_monthly_surplus(family_id=None):
        """The household's typical monthly income minus expenses, or None if never set."""
        if family_id is None:
            family_id = get_family_id()
        value = Settings.get_value(MEDIAN_SURPLUS_SETTING, family_id=family_id)
        return to_decimal(value)

    @staticmethod
    def set_median_monthly_surplus(value, family_id=None):
        if family_id is None:
            family_id = get_family_id()
        return Settings.set_value(
            MEDIAN_SURPLUS_SETTING,
            Decimal(str(value)),
            family_id=family_id,
            description='Median monthly surplus (income minus expenses)',
            setting_type='decimal',
        )
