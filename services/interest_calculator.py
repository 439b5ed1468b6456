"""
Interest Calculator
===================
Pure compound-interest maths shared by the retirement engine.

Every function is stateless and works in Decimal.  Rates are passed as
percentages (7.0 means 7% a year) and converted internally:

    monthly_rate = annual_rate / 100 / 12

Month-by-month simulation
-------------------------
monthly_steps() is the single simulation primitive: each month

    investment_return = balance × monthly_rate
    balance           = balance + investment_return + contribution

future_value_with_contributions() and ProjectionEngine both iterate it, so a
chart built from a projection always agrees with the summary totals.  There is
deliberately no closed-form shortcut for the contribution case.
"""

from utils.money import ZERO, to_decimal


class InterestCalculator:
    """Stateless compound-interest helpers (all static)."""

    @staticmethod
    def monthly_rate(annual_rate):
        return to_decimal(annual_rate, ZERO) / 100 / 12

    @staticmethod
    def monthly_steps(principal, annual_rate, monthly_contribution, months):
        """
        Yield ``(month_number, balance, investment_return)`` for each simulated month.

        month_number starts at 1; balance is the value *after* that month's
        return and contribution.  Yields nothing for months <= 0.
        """
        rate = InterestCalculator.monthly_rate(annual_rate)
        contribution = to_decimal(monthly_contribution, ZERO)
        balance = to_decimal(principal, ZERO)

        for month in range(1, int(months) + 1):
            investment_return = balance * rate
            balance = balance + investment_return + contribution
            yield month, balance, investment_return

    @staticmethod
    def compound_interest(principal, annual_rate, years):
        """FV = PV × (1 + r)^years with r = annual_rate / 100."""
        rate = to_decimal(annual_rate, ZERO) / 100
        return to_decimal(principal, ZERO) * (1 + rate) ** to_decimal(years, ZERO)

    @staticmethod
    def future_value_with_contributions(principal, annual_rate, monthly_contribution, months):
        """
        Simulate ``months`` of growth plus a fixed monthly contribution.

        Returns:
            dict with final_balance, total_contributions, total_returns.
        """
        balance = to_decimal(principal, ZERO)
        total_returns = ZERO
        for _, balance, investment_return in InterestCalculator.monthly_steps(
                principal, annual_rate, monthly_contribution, months):
            total_returns += investment_return

        return {
            'final_balance': balance,
            'total_contributions': to_decimal(monthly_contribution, ZERO) * max(int(months), 0),
            'total_returns': total_returns,
        }

    @staticmethod
    def required_monthly_contribution(current_value, target_value, annual_rate, months):
        """
        Monthly contribution needed to grow ``current_value`` into ``target_value``.

        The current value is compounded forward first; only the remaining gap
        has to be funded, using the future-value-of-annuity formula solved for
        the payment.  With a zero monthly rate the gap is split evenly.

        Returns 0 when already at or above target (now or after growth) and
        None when ``months`` is not positive.
        """
        current_value = to_decimal(current_value, ZERO)
        target_value = to_decimal(target_value, ZERO)
        if current_value >= target_value:
            return ZERO

        months = int(months)
        if months <= 0:
            return None

        rate = InterestCalculator.monthly_rate(annual_rate)
        future_value_of_current = current_value * (1 + rate) ** months

        remaining_gap = target_value - future_value_of_current
        if remaining_gap <= 0:
            return ZERO

        if rate == 0:
            return remaining_gap / months
        return remaining_gap * rate / ((1 + rate) ** months - 1)

    @staticmethod
    def real_return(nominal_rate, inflation_rate):
        """Inflation-adjusted return in percent (Fisher equation)."""
        nominal = to_decimal(nominal_rate, ZERO) / 100
        inflation = to_decimal(inflation_rate, ZERO) / 100
        return ((1 + nominal) / (1 + inflation) - 1) * 100

    @staticmethod
    def annuity_payment(principal, annual_rate, months):
        """
        Level monthly payment that repays ``principal`` over ``months``.

        PMT = P × r(1+r)^n / ((1+r)^n − 1); a zero rate divides evenly.
        None for a non-positive term.
        """
        months = int(months)
        if months <= 0:
            return None
        principal = to_decimal(principal, ZERO)
        rate = InterestCalculator.monthly_rate(annual_rate)
        if rate == 0:
            return principal / months
        growth = (1 + rate) ** months
        return principal * (rate * growth) / (growth - 1)

    @staticmethod
    def interest_only_payment(principal, annual_rate):
        """Monthly interest on ``principal`` (bullet / interest-only repayment)."""
        annual_rate = to_decimal(annual_rate, ZERO)
        if annual_rate <= 0:
            return ZERO
        return to_decimal(principal, ZERO) * InterestCalculator.monthly_rate(annual_rate)
