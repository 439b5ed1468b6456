"""
Decimal and calendar helpers shared by the retirement engine.

All monetary values are handled as ``Decimal`` and rounded to currency minor
units only when they are stored or compared.  Month arithmetic goes through
``dateutil.relativedelta`` so that adding months clamps to the end of shorter
months (31 Jan + 1 month = 28/29 Feb).
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from dateutil.relativedelta import relativedelta


CENT = Decimal('0.01')
ZERO = Decimal('0')

CURRENCY_SYMBOLS = {
    'GBP': '£',
    'EUR': '€',
    'USD': '$',
    'CHF': 'CHF',
    'JPY': '¥',
}


def to_decimal(value, default=None):
    """Coerce ``value`` to Decimal.

    Floats go through ``str()`` so 0.1 becomes Decimal('0.1') rather than its
    binary expansion.  ``None`` and unparseable values return ``default``.
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def money(value):
    """Round to currency minor units (2dp, half-up).  ``None`` passes through."""
    if value is None:
        return None
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_to(value, places=2):
    if value is None:
        return None
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def chart_value(value, places=2):
    """Float for chart JSON, rounded.  Persisted values never go through here."""
    if value is None:
        return None
    return float(round_to(value, places))


def add_months(start_date, months):
    return start_date + relativedelta(months=months)


def month_difference(start_date, end_date):
    """Whole calendar months from ``start_date`` to ``end_date`` (days ignored)."""
    return (end_date.year - start_date.year) * 12 + (end_date.month - start_date.month)


def currency_symbol(code):
    return CURRENCY_SYMBOLS.get((code or '').upper(), '$')


def iso_date(value):
    return value.isoformat() if value else None
