"""Parser for city rule and employee directory spreadsheets.

Three sheet layouts are recognised from their headers:

* 产假规则 → ``maternity_rules`` (城市 / 产假类型 / 天数 / 是否遇法定节假日顺延 ...)
* 津贴规则 → ``allowance_rules`` (城市 / 社平工资 / 公司平均工资 / 账户类型 ...)
* 员工信息 → ``employees`` (工号 / 员工姓名 / 城市 / 基本工资 ...)

Rows come back with canonical field names but raw values; label and type
normalisation happens when the rows are loaded into a rule snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Iterable

from maternity_backend.core.validation import ValidationError
from maternity_backend.extractors.frames import extract_rows, map_columns, read_table

MATERNITY_FIELDS = [
    ("city", ["城市", "city"]),
    ("leave_type", ["产假类型", "假期类型", "leave_type", "leavetype"]),
    ("miscarriage_type", ["流产类型", "怀孕时间段", "miscarriage"]),
    ("days", ["天数", "days"]),
    ("is_extendable", ["顺延", "extendable"]),
    ("has_allowance", ["享受津贴", "has_allowance", "hasallowance"]),
]

ALLOWANCE_FIELDS = [
    ("city", ["城市", "city"]),
    ("social_average_wage", ["社平工资", "社会平均工资", "social_average", "socialaverage"]),
    ("company_contribution_wage", ["平均缴费工资", "contribution_wage", "contributionwage"]),
    ("company_average_wage", ["公司平均工资", "单位平均工资", "月平均工资", "company_average", "companyaverage"]),
    ("calculation_base", ["计算基数", "calculation_base", "calculationbase"]),
    ("payout_method", ["账户类型", "发放方式", "payout", "account"]),
    ("maternity_policy", ["产假政策", "maternity_policy"]),
    ("allowance_policy", ["津贴政策", "allowance_policy"]),
]

EMPLOYEE_FIELDS = [
    ("employee_id", ["工号", "员工编号", "employee_id", "employeeid", "employee_no"]),
    ("employee_name", ["员工姓名", "姓名", "employee_name", "employeename", "name"]),
    ("city", ["城市", "city"]),
    ("personal_ss_monthly", ["个人月缴费", "社保公积金个人", "personal_ss"]),
    ("current_base_salary", ["员工基本工资", "current_base_salary", "currentbasesalary"]),
    ("basic_salary", ["月均工资", "基本工资", "basic_salary", "basicsalary"]),
]

_LAYOUTS = {
    "maternity_rules": (MATERNITY_FIELDS, {"leave_type", "days"}, None),
    "allowance_rules": (ALLOWANCE_FIELDS, {"social_average_wage", "company_average_wage"}, None),
    "employees": (EMPLOYEE_FIELDS, {"employee_id", "employee_name", "city"}, "employee_name"),
}


@dataclass
class RuleSheetParseResult:
    kind: str
    rows: list[dict[str, Any]]


def detect_kind(columns: Iterable[str]) -> str | None:
    tokens = [str(column).strip().lower() for column in columns]

    def has(*keywords: str) -> bool:
        return any(keyword.lower() in token for token in tokens for keyword in keywords)

    if has("产假类型", "leave_type", "leavetype") and has("天数", "days"):
        return "maternity_rules"
    if has("社平工资", "社会平均工资", "social_average", "socialaverage"):
        return "allowance_rules"
    if has("工号", "员工编号", "employee_id", "employeeid") and has("城市", "city"):
        return "employees"
    return None


def parse(
    source: Path | BinaryIO,
    filename: str | None = None,
    kind: str | None = None,
    sheet_name: str | int | None = 0,
) -> RuleSheetParseResult:
    dataframe = read_table(source, filename=filename, sheet_name=sheet_name)
    kind = kind or detect_kind(dataframe.columns)
    if kind not in _LAYOUTS:
        raise ValidationError("无法识别的规则表格式，请使用产假规则、津贴规则或员工信息模板")

    fields, required, name_field = _LAYOUTS[kind]
    mapping = map_columns(dataframe, fields)
    missing = sorted(required - mapping.keys())
    if missing:
        raise ValidationError([f"表格缺少必需列: {field}" for field in missing])
    return RuleSheetParseResult(kind=kind, rows=extract_rows(dataframe, mapping, name_field))
