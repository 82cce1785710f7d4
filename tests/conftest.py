import sys
from datetime import date
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from maternity_backend.application import reset_rule_state
from maternity_backend.core.calendar import HolidayCalendar
from maternity_backend.core.snapshot import load_rule_snapshot


@pytest.fixture(autouse=True)
def reset_state():
    reset_rule_state()
    yield
    reset_rule_state()


@pytest.fixture()
def client():
    from maternity_backend.app import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def weekend_calendar() -> HolidayCalendar:
    """Calendar without any holiday plan: only weekends are rest days."""
    return HolidayCalendar()


@pytest.fixture()
def config_calendar() -> HolidayCalendar:
    return HolidayCalendar.from_config()


@pytest.fixture()
def plain_city_snapshot():
    """One city on the default /30 formula with only statutory leave."""
    return load_rule_snapshot(
        [
            {"city": "杭州", "leave_type": "法定产假", "days": 98},
            {"city": "杭州", "leave_type": "多胞胎假", "days": 15},
        ],
        [{"city": "杭州", "social_average_wage": 10000, "company_average_wage": 20000, "payout_method": "个人账户"}],
        [{"employee_id": "HZ001", "employee_name": "赵六", "city": "杭州", "basic_salary": 25000}],
    )


def holiday_calendar(*legal_days: date, rest_days: tuple[date, ...] = ()) -> HolidayCalendar:
    plans: dict[int, dict] = {}
    for day in legal_days:
        plans.setdefault(day.year, {"holidays": []})["holidays"].append(
            {"date": day, "name": "测试节", "is_legal_holiday": True}
        )
    for day in rest_days:
        plans.setdefault(day.year, {"holidays": []})["holidays"].append(
            {"date": day, "name": "调休", "is_legal_holiday": False}
        )
    return HolidayCalendar.from_plans(plans)
