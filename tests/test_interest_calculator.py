"""
Tests for InterestCalculator.

All pure Decimal maths; no database access.
"""
from decimal import Decimal

import pytest

from services.interest_calculator import InterestCalculator


class TestCompoundInterest:
    def test_two_years_at_ten_percent(self):
        assert InterestCalculator.compound_interest(1000, 10, 2) == Decimal('1210')

    def test_zero_rate_keeps_principal(self):
        assert InterestCalculator.compound_interest(Decimal('5000'), 0, 10) == Decimal('5000')


class TestMonthlySteps:
    def test_one_percent_a_month(self):
        steps = list(InterestCalculator.monthly_steps(Decimal('100000'), 12, 0, 2))

        assert [s[0] for s in steps] == [1, 2]
        assert steps[0][1] == Decimal('101000')
        assert steps[0][2] == Decimal('1000')
        assert steps[1][1] == Decimal('102010')

    def test_contribution_added_after_return(self):
        steps = list(InterestCalculator.monthly_steps(Decimal('1000'), 12, Decimal('100'), 1))
        # 1000 + 10 return + 100 contribution
        assert steps[0][1] == Decimal('1110')
        assert steps[0][2] == Decimal('10')

    def test_no_months_yields_nothing(self):
        assert list(InterestCalculator.monthly_steps(1000, 7, 100, 0)) == []


class TestFutureValueWithContributions:
    def test_contributions_only(self):
        result = InterestCalculator.future_value_with_contributions(0, 0, Decimal('100'), 12)
        assert result['final_balance'] == Decimal('1200')
        assert result['total_contributions'] == Decimal('1200')
        assert result['total_returns'] == Decimal('0')

    def test_totals_reconcile(self):
        principal = Decimal('25000')
        result = InterestCalculator.future_value_with_contributions(principal, 7, Decimal('500'), 120)
        assert result['final_balance'] == principal + result['total_contributions'] + result['total_returns']

    def test_zero_months_returns_principal(self):
        result = InterestCalculator.future_value_with_contributions(Decimal('800'), 7, Decimal('50'), 0)
        assert result['final_balance'] == Decimal('800')
        assert result['total_contributions'] == Decimal('0')


class TestRequiredMonthlyContribution:
    def test_already_at_target(self):
        assert InterestCalculator.required_monthly_contribution(1000, 500, 5, 12) == Decimal('0')

    def test_growth_alone_reaches_target(self):
        # 100000 at 12% for 12 months is ~112683
        assert InterestCalculator.required_monthly_contribution(100000, 110000, 12, 12) == Decimal('0')

    def test_zero_rate_divides_evenly(self):
        assert InterestCalculator.required_monthly_contribution(0, 12000, 0, 12) == Decimal('1000')

    def test_non_positive_months(self):
        assert InterestCalculator.required_monthly_contribution(0, 12000, 5, 0) is None

    def test_solved_payment_reaches_target(self):
        payment = InterestCalculator.required_monthly_contribution(Decimal('10000'), Decimal('100000'), 6, 120)
        result = InterestCalculator.future_value_with_contributions(Decimal('10000'), 6, payment, 120)
        assert float(result['final_balance']) == pytest.approx(100000, abs=0.01)


class TestRealReturn:
    def test_fisher_equation(self):
        assert float(InterestCalculator.real_return(7, 3)) == pytest.approx(3.8835, abs=0.0001)

    def test_equal_rates_give_zero(self):
        assert InterestCalculator.real_return(3, 3) == Decimal('0')


class TestLoanPayments:
    def test_annuity_payment(self):
        payment = InterestCalculator.annuity_payment(10000, 6, 12)
        assert float(payment) == pytest.approx(860.66, abs=0.01)

    def test_annuity_zero_rate(self):
        assert InterestCalculator.annuity_payment(12000, 0, 12) == Decimal('1000')

    def test_annuity_invalid_term(self):
        assert InterestCalculator.annuity_payment(10000, 6, 0) is None

    def test_interest_only_payment(self):
        assert InterestCalculator.interest_only_payment(10000, 6) == Decimal('50')

    def test_interest_only_zero_rate(self):
        assert InterestCalculator.interest_only_payment(10000, 0) == Decimal('0')
