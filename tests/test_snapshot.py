from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaValidationError

from maternity_backend.core.labels import CalculationBase, LeaveType, PayoutMethod, PregnancyPeriod
from maternity_backend.core.snapshot import load_default_snapshot, load_rule_snapshot
from maternity_backend.core.validation import ValidationError

ALLOWANCE = [{"city": "北京", "social_average_wage": 11518, "company_average_wage": 12000}]


def test_default_snapshot_covers_seed_cities():
    snapshot = load_default_snapshot()

    assert snapshot.cities() == sorted(["北京", "上海", "深圳", "广州", "成都", "天津"])
    assert len(snapshot.version) == 12
    assert snapshot.allowance_rule_for("北京市").payout_method is PayoutMethod.COMPANY_ACCOUNT
    assert snapshot.allowance_rule_for("上海").payout_method is PayoutMethod.PERSONAL_ACCOUNT
    assert snapshot.allowance_rule_for("成都").calculation_base is CalculationBase.AVERAGE_CONTRIBUTION_WAGE


def test_chinese_headers_and_legacy_labels_are_normalised():
    snapshot = load_rule_snapshot(
        [
            {"城市": "北京", "产假类型": "多胞胎", "天数": "15", "是否遇法定节假日顺延": "否"},
            {"城市": "北京", "产假类型": "晚育假", "天数": 30, "是否遇法定节假日顺延": "是", "是否享受津贴": "否"},
            {"城市": "北京", "产假类型": "流产", "流产类型": "不满4个月", "天数": 15},
        ],
        [{"城市": "北京", "社平工资": "11,518", "单位平均工资": 12000, "账户类型": "单位"}],
        [{"工号": "E1", "姓名": "王五", "城市": "北京", "员工产前12个月的月均工资": 9000}],
    )

    types = [rule.leave_type for rule in snapshot.maternity_rules]
    assert types == [LeaveType.MULTIPLE_BIRTH, LeaveType.REWARD, LeaveType.MISCARRIAGE]
    reward = snapshot.maternity_rules[1]
    assert reward.is_extendable and not reward.has_allowance
    assert snapshot.maternity_rules[2].miscarriage_type is PregnancyPeriod.BELOW_4_MONTHS
    assert snapshot.allowance_rules[0].social_average_wage == Decimal("11518")
    assert snapshot.allowance_rules[0].payout_method is PayoutMethod.COMPANY_ACCOUNT
    assert snapshot.employees[0].basic_salary == Decimal("9000")


def test_row_errors_are_collected_before_raising():
    with pytest.raises(ValidationError) as excinfo:
        load_rule_snapshot(
            [
                {"city": "北京", "leave_type": "不存在的假", "days": 10},
                {"city": "北京", "leave_type": "流产假", "days": 15},
            ],
            [{"city": "北京", "social_average_wage": 0, "company_average_wage": 12000}],
        )
    messages = excinfo.value.messages
    assert len(messages) == 3
    assert messages[0].startswith("产假规则第1行")
    assert messages[1].startswith("产假规则第2行")
    assert messages[2].startswith("津贴规则第1行")


def test_duplicate_rules_are_rejected():
    with pytest.raises(ValidationError) as excinfo:
        load_rule_snapshot(
            [
                {"city": "北京", "leave_type": "法定产假", "days": 98},
                {"city": "北京市", "leave_type": "legal", "days": 128},
            ],
            ALLOWANCE,
        )
    assert "重复" in excinfo.value.messages[0]


def test_snapshot_is_frozen_and_versioned_by_content():
    rows = [{"city": "北京", "leave_type": "法定产假", "days": 98}]
    first = load_rule_snapshot(rows, ALLOWANCE)
    second = load_rule_snapshot(rows, ALLOWANCE)
    changed = load_rule_snapshot([{"city": "北京", "leave_type": "法定产假", "days": 128}], ALLOWANCE)

    assert first.version == second.version
    assert first.version != changed.version
    with pytest.raises(SchemaValidationError):
        first.version = "other"


def test_find_employee_prefers_name_then_id():
    snapshot = load_default_snapshot()

    assert snapshot.find_employee(name="张三").employee_id == "EMP001"
    assert snapshot.find_employee(name="不存在", employee_id="emp002").employee_name == "李四"
    assert snapshot.find_employee(name="张三", employee_id="EMP002").employee_id == "EMP001"
    assert snapshot.resolve_city(employee_name="不存在") is None
