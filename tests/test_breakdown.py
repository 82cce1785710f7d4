from decimal import Decimal

import pytest

from maternity_backend.core import breakdown
from maternity_backend.core.allowance import calculate_for_employee
from maternity_backend.core.schema import EmployeeCalculationInput


@pytest.fixture()
def result(plain_city_snapshot, weekend_calendar):
    employee = EmployeeCalculationInput.model_validate(
        {"employee_name": "赵六", "city": "杭州", "basic_salary": 25000, "start_date": "2025-03-03"}
    )
    return calculate_for_employee(plain_city_snapshot, employee, weekend_calendar)


def test_government_process_shows_min_comparison(result):
    text = breakdown.government_process(result)
    assert text == "取小值（单位上年度月平均工资 20000.00, 三倍社保上限 30000.00） 20000.00 / 30 * 98天 = 65333.33"


def test_government_override_is_shown_as_manual_value(result):
    overridden = result.model_copy(
        update={
            "government_paid_amount": Decimal("50000.00"),
            "debug_info": result.debug_info.model_copy(update={"government_override_applied": True}),
        }
    )
    assert breakdown.government_process(overridden) == "手工填写值 50000.00"


def test_employee_process_shows_max_comparison(result):
    text = breakdown.employee_process(result)
    assert text == "取大值（单位上年度月平均工资 20000.00, 员工产前12月平均工资 25000.00） 25000.00 / 30 * 98天 = 81666.67"


def test_supplement_process_uses_authoritative_supplement(result):
    text = breakdown.supplement_process(result)
    assert text.startswith("员工应领取 81666.67 - 政府发放 65333.33 = 16333.33")
    assert "按未取整金额 81666.6667 - 65333.3333 计算" in text


def test_supplement_process_with_deductions_and_paid_wage(result):
    text = breakdown.supplement_process(
        result,
        deductions=[(Decimal("1000"), "事假扣款")],
        paid_wage_during_leave=Decimal("5000"),
    )
    lines = text.split("\n")
    assert lines[1] == "公司已发产假工资 5000.00，尚需补差 16333.33 - 5000.00 = 11333.33"
    assert lines[2] == "减扣项：事假扣款 1000.00"
    assert lines[3] == "减扣项合计 = 1000.00 = 1000.00"
    assert lines[4] == "扣减后补差 = 11333.33 - 1000.00 = 10333.33"


def test_personal_ss_process_lists_covered_months(result):
    text = breakdown.personal_ss_process(result)
    assert text == "月度个人部分社保公积金合计 5625.00 × 3个月（2025-03 - 2025-05） = 16875.00"


def test_month_wage_process_shows_proration(result):
    assert breakdown.month_wage_process(result.start_month_wage) == "2025-03 无出勤工作日，计入个人社保整月"
    assert (
        breakdown.month_wage_process(result.end_month_wage)
        == "应发工资=员工产前12个月的月均工资/工作日21天×出勤16天=25000.00/21*16=19047.62"
    )
    assert breakdown.month_wage_process(None) == "与开始月为同一月份"


def test_builders_degrade_instead_of_raising():
    assert breakdown.month_wage_process("not a wage") == breakdown.UNAVAILABLE
    assert breakdown.government_process(object()) == breakdown.UNAVAILABLE


def test_derivation_is_attached_to_result(result):
    derivation = result.derivation
    assert derivation.applied_rules_summary == "杭州 - 法定产假 98天"
    assert derivation.government_process == breakdown.government_process(result)
    assert derivation.supplement_process == breakdown.supplement_process(result)
    assert "拨付至企业账户" not in derivation.government_process
