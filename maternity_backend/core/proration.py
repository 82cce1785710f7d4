"""Partial-month wages for the months in which leave starts and ends."""

from __future__ import annotations

import calendar as _cal
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from maternity_backend.core.calendar import HolidayCalendar, iter_days
from maternity_backend.core.money import quantize
from maternity_backend.core.schema import CalculatedPeriod, EmployeeCalculationInput, MonthWage

logger = logging.getLogger(__name__)


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def month_bounds(day: date) -> tuple[date, date]:
    last_day = _cal.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)


def salary_for_month(employee_input: EmployeeCalculationInput, month: str) -> tuple[Decimal, str]:
    adjustment = employee_input.salary_adjustment
    if adjustment is not None:
        source = "after_adjustment" if month >= adjustment.effective_month else "before_adjustment"
        return adjustment.amount_for(month), source
    source = "basic_salary" if employee_input.current_base_salary is None else "current_base_salary"
    return employee_input.proration_salary, source


def prorate_month(
    anchor: date,
    period: CalculatedPeriod,
    employee_input: EmployeeCalculationInput,
    calendar: HolidayCalendar,
) -> MonthWage:
    """Wage for the attended working days of the month containing ``anchor``.

    The denominator counts working days plus legal holidays in the month;
    the numerator counts working days outside the leave window.
    """

    first, last = month_bounds(anchor)
    key = month_key(anchor)
    working_days = calendar.working_days_between(first, last)
    legal_days = len(calendar.legal_holidays_between(first, last))
    attended = 0
    for day in iter_days(first, last):
        if period.start_date <= day <= period.end_date:
            continue
        if calendar.is_working_day(day):
            attended += 1

    salary, source = salary_for_month(employee_input, key)
    denominator = working_days + legal_days
    prorated = None
    if attended > 0 and denominator > 0:
        prorated = quantize(salary * Decimal(attended) / Decimal(denominator))
    logger.debug(
        "month %s: attended %s of %s (+%s legal) working days, salary %s -> %s",
        key,
        attended,
        working_days,
        legal_days,
        salary,
        prorated,
    )
    return MonthWage(
        month=key,
        month_working_days=working_days,
        month_legal_holiday_days=legal_days,
        attended_working_days=attended,
        salary_used=salary,
        salary_source=source,
        prorated_wage=prorated,
        folded_into_contribution=prorated is None,
    )


@dataclass(frozen=True)
class BoundaryWages:
    start_month: MonthWage
    end_month: MonthWage | None = None

    @property
    def folded_months(self) -> tuple[str, ...]:
        months = [wage.month for wage in (self.start_month, self.end_month) if wage and wage.folded_into_contribution]
        return tuple(months)


def prorate_boundary_months(
    period: CalculatedPeriod,
    employee_input: EmployeeCalculationInput,
    calendar: HolidayCalendar,
) -> BoundaryWages:
    start_wage = prorate_month(period.start_date, period, employee_input, calendar)
    if month_key(period.start_date) == month_key(period.end_date):
        return BoundaryWages(start_month=start_wage)
    end_wage = prorate_month(period.end_date, period, employee_input, calendar)
    return BoundaryWages(start_month=start_wage, end_month=end_wage)


def next_month(day: date) -> date:
    _, last = month_bounds(day)
    return last + timedelta(days=1)
