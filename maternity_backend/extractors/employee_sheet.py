"""Parser for batch calculation spreadsheets (one employee per row)."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

from maternity_backend.core.validation import ValidationError
from maternity_backend.extractors.frames import extract_rows, map_columns, read_table

# Earlier entries claim their column first, so "补充难产" is taken before "难产".
BATCH_FIELDS = [
    ("employee_id", ["工号", "员工编号", "employee_id", "employeeid"]),
    ("employee_name", ["员工姓名", "姓名", "employee_name", "employeename", "name"]),
    ("city", ["城市", "city"]),
    ("start_date", ["产假开始日期", "开始日期", "start_date", "startdate"]),
    ("override_end_date", ["产假结束日期", "结束日期", "end_date", "enddate"]),
    ("personal_ss_monthly", ["个人月缴费", "社保公积金个人", "personal_ss"]),
    ("current_base_salary", ["员工基本工资", "current_base_salary", "currentbasesalary"]),
    ("basic_salary", ["月均工资", "basic_salary", "basicsalary"]),
    ("meets_supplemental_difficult_birth", ["补充难产", "supplemental"]),
    ("is_difficult_birth", ["难产", "difficult"]),
    ("number_of_babies", ["胎儿数量", "胎数", "babies"]),
    ("pregnancy_period", ["怀孕时间段", "pregnancy"]),
    ("doctor_advice_days", ["医嘱天数", "doctor"]),
    ("is_miscarriage", ["流产", "miscarriage"]),
    ("is_second_third_child", ["二孩", "三孩", "second_third"]),
    ("payout_method", ["发放方式", "账户类型", "payout"]),
    ("government_paid_amount", ["政府发放", "government"]),
    ("company_average_wage", ["单位平均工资", "公司平均工资", "company_average"]),
    ("social_insurance_limit", ["社保上限", "三倍社保", "social_insurance_limit"]),
]


@dataclass
class EmployeeSheetParseResult:
    rows: list[dict[str, Any]]
    columns: dict[str, str]


def parse(
    source: Path | BinaryIO,
    filename: str | None = None,
    sheet_name: str | int | None = 0,
) -> EmployeeSheetParseResult:
    """Read calculation rows keyed by input field names.

    Values are left raw; each row is validated on its own by the batch
    worker so one bad cell only fails its row.
    """

    dataframe = read_table(source, filename=filename, sheet_name=sheet_name)
    mapping = map_columns(dataframe, BATCH_FIELDS)
    if "employee_name" not in mapping and "employee_id" not in mapping:
        raise ValidationError("表格缺少员工姓名或工号列")
    if "start_date" not in mapping:
        raise ValidationError("表格缺少产假开始日期列")
    return EmployeeSheetParseResult(rows=extract_rows(dataframe, mapping, "employee_name"), columns=mapping)
