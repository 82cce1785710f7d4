from datetime import date
from decimal import Decimal

from maternity_backend.core.contribution import PERSONAL_RATE, calculate_personal_contribution, covered_months
from maternity_backend.core.schema import CalculatedPeriod, EmployeeCalculationInput

PERIOD = CalculatedPeriod(start_date=date(2025, 3, 10), end_date=date(2025, 6, 15), actual_days=98, working_days_estimate=70)


def _input(**overrides) -> EmployeeCalculationInput:
    payload = {"employee_name": "测试", "basic_salary": 10000, "start_date": "2025-03-10"}
    payload.update(overrides)
    return EmployeeCalculationInput.model_validate(payload)


def test_personal_rate_is_sum_of_components():
    assert PERSONAL_RATE == Decimal("0.225")


def test_covered_months_only_counts_full_months():
    assert covered_months(PERIOD) == ["2025-04", "2025-05"]
    assert covered_months(PERIOD, folded_months=["2025-03"]) == ["2025-03", "2025-04", "2025-05"]


def test_uniform_contribution_uses_basic_salary_and_rate():
    breakdown = calculate_personal_contribution(PERIOD, _input())

    assert breakdown.type == "uniform"
    assert breakdown.months == ("2025-04", "2025-05")
    assert breakdown.monthly_amount == Decimal("2250.000")
    assert breakdown.rate == Decimal("0.225")
    assert not breakdown.override_applied
    assert breakdown.total == Decimal("4500.00")


def test_monthly_override_replaces_rate_formula():
    breakdown = calculate_personal_contribution(PERIOD, _input(personal_ss_monthly="2,000"))

    assert breakdown.override_applied
    assert breakdown.rate is None
    assert breakdown.total == Decimal("4000.00")


def test_adjustment_splits_months_at_effective_month():
    employee = _input(
        personal_ss_monthly=5000,
        social_security_adjustment={"before_amount": 1800, "after_amount": 2200, "effective_month": "2025年5月"},
    )
    breakdown = calculate_personal_contribution(PERIOD, employee)

    assert breakdown.type == "adjusted"
    assert breakdown.before_months == ("2025-04",)
    assert breakdown.after_months == ("2025-05",)
    assert breakdown.total == Decimal("4000.00")


def test_leave_inside_one_month_has_no_contribution():
    period = CalculatedPeriod(start_date=date(2025, 3, 10), end_date=date(2025, 3, 24), actual_days=15, working_days_estimate=10)
    breakdown = calculate_personal_contribution(period, _input())

    assert breakdown.months == ()
    assert breakdown.total == Decimal("0.00")
