"""Canonical enumerations and the legacy label tables that map onto them.

Rule sheets and older stored rows use Chinese display labels (and a few
historical spellings) instead of the canonical values.  The lookups here are
applied once, when a snapshot or an input record is built; the calculation
code only ever sees the enum members.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TypeVar

from maternity_backend.core.name_normalize import normalize

logger = logging.getLogger(__name__)


class LeaveType(str, Enum):
    LEGAL = "legal"
    DIFFICULT_BIRTH = "difficult_birth"
    ASSISTED_DIFFICULT_BIRTH = "assisted_difficult_birth"
    MULTIPLE_BIRTH = "multiple_birth"
    REWARD = "reward"
    REWARD_SECOND_THIRD_CHILD = "reward_second_third_child"
    MISCARRIAGE = "miscarriage"


class PregnancyPeriod(str, Enum):
    BELOW_4_MONTHS = "below_4_months"
    BETWEEN_4_7_MONTHS = "between_4_7_months"
    ABOVE_7_MONTHS = "above_7_months"


class CalculationBase(str, Enum):
    AVERAGE_WAGE = "average_wage"
    AVERAGE_CONTRIBUTION_WAGE = "average_contribution_wage"


class PayoutMethod(str, Enum):
    COMPANY_ACCOUNT = "company_account"
    PERSONAL_ACCOUNT = "personal_account"


class HolidayType(str, Enum):
    HOLIDAY = "holiday"
    MAKEUP_WORKDAY = "makeup_workday"


LEAVE_TYPE_LABELS: dict[LeaveType, str] = {
    LeaveType.LEGAL: "法定产假",
    LeaveType.DIFFICULT_BIRTH: "难产假",
    LeaveType.ASSISTED_DIFFICULT_BIRTH: "补充难产假",
    LeaveType.MULTIPLE_BIRTH: "多胞胎假",
    LeaveType.REWARD: "奖励假",
    LeaveType.REWARD_SECOND_THIRD_CHILD: "二孩三孩奖励假",
    LeaveType.MISCARRIAGE: "流产假",
}

PREGNANCY_PERIOD_LABELS: dict[PregnancyPeriod, str] = {
    PregnancyPeriod.BELOW_4_MONTHS: "4个月以下",
    PregnancyPeriod.BETWEEN_4_7_MONTHS: "4个月以上7个月以下",
    PregnancyPeriod.ABOVE_7_MONTHS: "7个月以上",
}

PAYOUT_METHOD_LABELS: dict[PayoutMethod, str] = {
    PayoutMethod.COMPANY_ACCOUNT: "企业账户",
    PayoutMethod.PERSONAL_ACCOUNT: "个人账户",
}

CALCULATION_BASE_LABELS: dict[CalculationBase, str] = {
    CalculationBase.AVERAGE_WAGE: "平均工资",
    CalculationBase.AVERAGE_CONTRIBUTION_WAGE: "平均缴费工资",
}

# Historical spellings seen in older rule tables, on top of the display labels.
_LEGACY_ALIASES: dict[type[Enum], dict[str, Enum]] = {
    LeaveType: {
        "多胞胎": LeaveType.MULTIPLE_BIRTH,
        "多胎假": LeaveType.MULTIPLE_BIRTH,
        "助产难产假": LeaveType.ASSISTED_DIFFICULT_BIRTH,
        "难产假（补充）": LeaveType.ASSISTED_DIFFICULT_BIRTH,
        "晚育假": LeaveType.REWARD,
        "生育奖励假": LeaveType.REWARD,
        "二孩奖励假": LeaveType.REWARD_SECOND_THIRD_CHILD,
        "三孩奖励假": LeaveType.REWARD_SECOND_THIRD_CHILD,
        "二孩/三孩奖励假": LeaveType.REWARD_SECOND_THIRD_CHILD,
        "流产": LeaveType.MISCARRIAGE,
    },
    PregnancyPeriod: {
        "不满4个月": PregnancyPeriod.BELOW_4_MONTHS,
        "满4个月不满7个月": PregnancyPeriod.BETWEEN_4_7_MONTHS,
        "4-7个月": PregnancyPeriod.BETWEEN_4_7_MONTHS,
        "7个月及以上": PregnancyPeriod.ABOVE_7_MONTHS,
    },
    PayoutMethod: {
        "公司": PayoutMethod.COMPANY_ACCOUNT,
        "公司账户": PayoutMethod.COMPANY_ACCOUNT,
        "单位": PayoutMethod.COMPANY_ACCOUNT,
        "个人": PayoutMethod.PERSONAL_ACCOUNT,
    },
    CalculationBase: {
        "平均缴费基数": CalculationBase.AVERAGE_CONTRIBUTION_WAGE,
        "缴费工资": CalculationBase.AVERAGE_CONTRIBUTION_WAGE,
        "月平均工资": CalculationBase.AVERAGE_WAGE,
    },
}

_DISPLAY_LABELS: dict[type[Enum], dict] = {
    LeaveType: LEAVE_TYPE_LABELS,
    PregnancyPeriod: PREGNANCY_PERIOD_LABELS,
    PayoutMethod: PAYOUT_METHOD_LABELS,
    CalculationBase: CALCULATION_BASE_LABELS,
}

E = TypeVar("E", bound=Enum)


def _lookup_table(enum_cls: type[Enum]) -> dict[str, Enum]:
    table: dict[str, Enum] = {}
    for member in enum_cls:
        table[normalize(member.value)] = member
        table[normalize(member.name)] = member
    for member, label in _DISPLAY_LABELS.get(enum_cls, {}).items():
        table[normalize(label)] = member
    for alias, member in _LEGACY_ALIASES.get(enum_cls, {}).items():
        table[normalize(alias)] = member
    return table


_TABLES: dict[type[Enum], dict[str, Enum]] = {
    enum_cls: _lookup_table(enum_cls)
    for enum_cls in (LeaveType, PregnancyPeriod, CalculationBase, PayoutMethod, HolidayType)
}


def parse_label(enum_cls: type[E], value: object) -> E:
    """Map a canonical value, enum name or Chinese label onto ``enum_cls``.

    Raises ``ValueError`` for anything unknown so that pydantic reports it as
    a field error.
    """

    if isinstance(value, enum_cls):
        return value
    if value is None:
        raise ValueError(f"{enum_cls.__name__} 不能为空")
    key = normalize(str(value)).replace("-", "_")
    member = _TABLES[enum_cls].get(key) or _TABLES[enum_cls].get(normalize(str(value)))
    if member is None:
        raise ValueError(f"无法识别的{enum_cls.__name__}取值: {value}")
    if key != member.value:
        logger.debug("remapped %s label %r -> %s", enum_cls.__name__, value, member.value)
    return member  # type: ignore[return-value]


def display_label(member: Enum) -> str:
    labels = _DISPLAY_LABELS.get(type(member), {})
    return labels.get(member, str(member.value))
