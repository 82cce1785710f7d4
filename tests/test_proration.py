from datetime import date
from decimal import Decimal

from maternity_backend.core.proration import month_bounds, prorate_boundary_months, prorate_month, salary_for_month
from maternity_backend.core.schema import CalculatedPeriod, EmployeeCalculationInput


def _period(start: date, end: date) -> CalculatedPeriod:
    days = (end - start).days + 1
    return CalculatedPeriod(start_date=start, end_date=end, actual_days=days, working_days_estimate=days * 5 // 7)


def _input(**overrides) -> EmployeeCalculationInput:
    payload = {"employee_name": "测试", "basic_salary": 10000, "start_date": "2025-03-10"}
    payload.update(overrides)
    return EmployeeCalculationInput.model_validate(payload)


def test_month_bounds_handles_leap_february():
    assert month_bounds(date(2024, 2, 15)) == (date(2024, 2, 1), date(2024, 2, 29))


def test_boundary_months_are_prorated_by_attended_working_days(weekend_calendar):
    period = _period(date(2025, 3, 10), date(2025, 6, 15))
    wages = prorate_boundary_months(period, _input(), weekend_calendar)

    start = wages.start_month
    assert start.month == "2025-03"
    assert start.month_working_days == 21
    assert start.attended_working_days == 5
    assert start.prorated_wage == Decimal("2380.95")
    assert start.salary_source == "basic_salary"

    end = wages.end_month
    assert end.month == "2025-06"
    assert end.attended_working_days == 11
    assert end.prorated_wage == Decimal("5238.10")
    assert wages.folded_months == ()


def test_legal_holidays_join_the_denominator(config_calendar):
    period = _period(date(2024, 10, 14), date(2025, 1, 20))
    wage = prorate_month(period.start_date, period, _input(), config_calendar)

    assert wage.month_working_days == 19
    assert wage.month_legal_holiday_days == 3
    assert wage.denominator == 22
    assert wage.attended_working_days == 5
    assert wage.prorated_wage == Decimal("2272.73")


def test_month_without_attendance_is_folded_into_contribution(weekend_calendar):
    period = _period(date(2025, 3, 1), date(2025, 6, 6))
    wages = prorate_boundary_months(period, _input(start_date="2025-03-01"), weekend_calendar)

    assert wages.start_month.prorated_wage is None
    assert wages.start_month.folded_into_contribution
    assert wages.folded_months == ("2025-03",)


def test_single_month_leave_has_no_end_month(weekend_calendar):
    period = _period(date(2025, 3, 10), date(2025, 3, 24))
    wages = prorate_boundary_months(period, _input(), weekend_calendar)

    assert wages.end_month is None
    assert wages.start_month.attended_working_days == 21 - 11


def test_current_base_salary_replaces_basic_salary(weekend_calendar):
    period = _period(date(2025, 3, 10), date(2025, 6, 15))
    wage = prorate_month(period.start_date, period, _input(current_base_salary=21000), weekend_calendar)

    assert wage.salary_source == "current_base_salary"
    assert wage.prorated_wage == Decimal("5000.00")


def test_salary_adjustment_picks_amount_by_month():
    employee = _input(
        current_base_salary=12000,
        salary_adjustment={"before_amount": 10000, "after_amount": 12600, "effective_month": "2025-06"},
    )
    assert salary_for_month(employee, "2025-03") == (Decimal("10000"), "before_adjustment")
    assert salary_for_month(employee, "2025-06") == (Decimal("12600"), "after_adjustment")
    assert salary_for_month(_input(), "2025-03") == (Decimal("10000"), "basic_salary")
