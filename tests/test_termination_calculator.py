"""Tests for severance and end-of-service gratuity."""

from datetime import date
from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from payroll_governance.calculators import TerminationBenefitCalculator, years_of_service


class TestYearsOfService:
    def test_completed_years_only(self):
        assert years_of_service(date(2020, 1, 1), date(2023, 12, 31)) == 3
        assert years_of_service(date(2020, 1, 1), date(2024, 1, 2)) == 4

    def test_unknown_hire_date(self):
        assert years_of_service(None, date(2026, 1, 1)) == 0

    def test_end_before_hire(self):
        assert years_of_service(date(2026, 1, 1), date(2025, 1, 1)) == 0


class TestTerminationBenefitCalculator:
    """Test the termination breakdown arithmetic."""

    calc = TerminationBenefitCalculator()

    def test_severance_on_termination(self):
        """One month of base per year."""
        assert self.calc.severance(Decimal("9000"), Decimal("4"), "termination") == Decimal(
            "36000.00"
        )

    def test_severance_on_resignation_is_halved(self):
        assert self.calc.severance(Decimal("9000"), Decimal("4"), "resignation") == Decimal(
            "18000.00"
        )

    def test_gratuity_first_tier(self):
        # 3 years x 21 days at 300/day
        assert self.calc.gratuity(Decimal("9000"), Decimal("3")) == Decimal("18900.00")

    def test_gratuity_second_tier(self):
        # 5 x 21 + 2 x 30 = 165 days at 300/day
        assert self.calc.gratuity(Decimal("9000"), Decimal("7")) == Decimal("49500.00")

    def test_calculate_totals_parts(self):
        breakdown = self.calc.calculate(
            base_salary=Decimal("9000"),
            hire_date=date(2019, 1, 1),
            end_date=date(2026, 1, 1),
            termination_type="termination",
            leave_encashment=Decimal("1200"),
        )

        assert breakdown.years_of_service == 7
        assert breakdown.severance_pay == Decimal("63000.00")
        assert breakdown.end_of_service_gratuity == Decimal("49500.00")
        assert breakdown.total_amount == Decimal("113700.00")
        assert breakdown.to_dict()["total_amount"] == breakdown.total_amount

    @given(
        base=st.integers(min_value=6000, max_value=200000),
        years=st.integers(min_value=0, max_value=40),
        encashment=st.integers(min_value=0, max_value=50000),
    )
    def test_breakdown_always_sums(self, base, years, encashment):
        breakdown = self.calc.calculate(
            base_salary=Decimal(base),
            hire_date=date(1980, 1, 1),
            end_date=date(1980 + years, 6, 1),
            termination_type="resignation",
            leave_encashment=Decimal(encashment),
        )

        parts = (
            breakdown.leave_encashment
            + breakdown.severance_pay
            + breakdown.end_of_service_gratuity
        )
        assert parts == breakdown.total_amount
