from datetime import date

import pytest

from maternity_backend.core.calendar import HolidayCalendar, iter_days
from maternity_backend.core.validation import ValidationError


def test_config_calendar_classifies_national_day(config_calendar):
    assert config_calendar.is_legal_holiday(date(2024, 10, 1))
    assert config_calendar.is_holiday(date(2024, 10, 4))
    assert not config_calendar.is_legal_holiday(date(2024, 10, 4))
    assert not config_calendar.is_working_day(date(2024, 10, 7))
    assert config_calendar.holiday_name(date(2024, 10, 2)) == "国庆节"


def test_makeup_workday_counts_as_working_day(config_calendar):
    saturday = date(2024, 10, 12)
    assert saturday.weekday() == 5
    assert config_calendar.is_makeup_workday(saturday)
    assert config_calendar.is_working_day(saturday)


def test_working_days_and_legal_holidays_in_october(config_calendar):
    start, end = date(2024, 10, 1), date(2024, 10, 31)
    assert config_calendar.working_days_between(start, end) == 19
    assert config_calendar.legal_holidays_between(start, end) == [
        date(2024, 10, 1),
        date(2024, 10, 2),
        date(2024, 10, 3),
    ]


def test_calendar_without_plan_only_rests_on_weekends(weekend_calendar):
    assert weekend_calendar.is_working_day(date(2031, 1, 1))
    assert not weekend_calendar.is_working_day(date(2031, 1, 4))
    assert weekend_calendar.plan_for(2031).holidays == ()


def test_bare_dates_are_rest_days_that_do_not_extend_leave():
    calendar = HolidayCalendar.from_plans({2030: {"holidays": ["2030-01-02"], "makeup_workdays": ["2030-01-05"]}})
    assert calendar.is_holiday(date(2030, 1, 2))
    assert not calendar.is_working_day(date(2030, 1, 2))
    assert not calendar.is_legal_holiday(date(2030, 1, 2))
    assert calendar.is_makeup_workday(date(2030, 1, 5))


def test_lookup_failure_surfaces_as_validation_error():
    def broken(year):
        raise RuntimeError("service down")

    calendar = HolidayCalendar(broken)
    with pytest.raises(ValidationError) as excinfo:
        calendar.is_legal_holiday(date(2025, 1, 1))
    assert "2025" in excinfo.value.messages[0]


def test_lookup_is_called_once_per_year():
    calls = []

    def lookup(year):
        calls.append(year)
        return {"holidays": [{"date": f"{year}-05-01", "name": "劳动节", "is_legal_holiday": True}]}

    calendar = HolidayCalendar(lookup)
    assert calendar.is_legal_holiday(date(2026, 5, 1))
    assert not calendar.is_legal_holiday(date(2026, 5, 2))
    assert calendar.working_days_between(date(2026, 5, 1), date(2026, 5, 31)) == 20
    assert calls == [2026]


def test_iter_days_is_inclusive():
    days = list(iter_days(date(2024, 2, 27), date(2024, 3, 1)))
    assert days == [date(2024, 2, 27), date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]
