import csv
from datetime import date, datetime
from decimal import Decimal
from io import StringIO
from pathlib import Path

import pytest
from openpyxl import Workbook

from maternity_backend.core.snapshot import load_default_snapshot, load_rule_snapshot
from maternity_backend.core.validation import ValidationError
from maternity_backend.exporters.allowance_csv import (
    BATCH_COLUMNS,
    RESULT_COLUMNS,
    error_records,
    export_allowance_csv,
    render_allowance_csv,
    render_batch_csv,
)
from maternity_backend.extractors import employee_sheet, rule_sheet
from maternity_backend.workers.batch import process_batch


def _write_xlsx(path: Path, header: list[str], rows: list[list]) -> Path:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(header)
    for row in rows:
        sheet.append(row)
    workbook.save(path)
    return path


def _write_csv(path: Path, header: list[str], rows: list[list]) -> Path:
    with path.open("w", encoding="utf-8", newline="") as fp:
        writer = csv.writer(fp)
        writer.writerow(header)
        writer.writerows(rows)
    return path


def test_maternity_rule_sheet_is_detected_and_loaded(tmp_path):
    path = _write_xlsx(
        tmp_path / "rules.xlsx",
        ["城市", "产假类型", "流产类型", "天数", "是否遇法定节假日顺延", "是否享受津贴"],
        [
            ["北京", "法定产假", None, 98, "否", "是"],
            ["北京", "奖励假", None, 60, "是", "是"],
            ["北京", "流产假", "4个月以下", 15, "否", "是"],
        ],
    )
    parsed = rule_sheet.parse(path)

    assert parsed.kind == "maternity_rules"
    assert parsed.rows[0] == {"city": "北京", "leave_type": "法定产假", "days": 98, "is_extendable": "否", "has_allowance": "是"}
    snapshot = load_rule_snapshot(parsed.rows, [{"city": "北京", "social_average_wage": 1, "company_average_wage": 1}])
    assert [rule.days for rule in snapshot.maternity_rules] == [98, 60, 15]
    assert snapshot.maternity_rules[1].is_extendable


def test_allowance_rule_sheet_from_csv(tmp_path):
    path = _write_csv(
        tmp_path / "allowance.csv",
        ["城市", "社平工资", "平均缴费工资", "公司平均工资", "计算基数", "账户类型"],
        [["深圳", "12964", "", "14000", "平均工资", "企业账户"]],
    )
    parsed = rule_sheet.parse(path)

    assert parsed.kind == "allowance_rules"
    assert parsed.rows == [
        {
            "city": "深圳",
            "social_average_wage": "12964",
            "company_average_wage": "14000",
            "calculation_base": "平均工资",
            "payout_method": "企业账户",
        }
    ]


def test_employee_directory_sheet_skips_total_rows(tmp_path):
    path = _write_xlsx(
        tmp_path / "employees.xlsx",
        ["工号", "员工姓名", "城市", "月均工资"],
        [["EMP010", "孙七", "广州", 12000], [None, "合计", None, 12000]],
    )
    parsed = rule_sheet.parse(path)

    assert parsed.kind == "employees"
    assert parsed.rows == [{"employee_id": "EMP010", "employee_name": "孙七", "city": "广州", "basic_salary": 12000}]


def test_unknown_sheet_layout_is_rejected(tmp_path):
    path = _write_csv(tmp_path / "other.csv", ["名称", "金额"], [["x", 1]])
    with pytest.raises(ValidationError):
        rule_sheet.parse(path)


def test_forced_kind_reports_missing_columns(tmp_path):
    path = _write_csv(tmp_path / "maternity.csv", ["城市", "产假类型"], [["北京", "法定产假"]])
    with pytest.raises(ValidationError) as excinfo:
        rule_sheet.parse(path, kind="maternity_rules")
    assert excinfo.value.messages == ["表格缺少必需列: days"]


def test_employee_batch_sheet_feeds_the_batch(tmp_path, config_calendar):
    path = _write_xlsx(
        tmp_path / "batch.xlsx",
        ["工号", "员工姓名", "城市", "产假开始日期", "员工产前12个月的月均工资", "是否难产", "胎儿数量"],
        [
            ["EMP001", "张三", None, datetime(2025, 3, 3), None, "否", 1],
            ["EMP003", "周八", "深圳", datetime(2025, 3, 3), 16000, "是", 2],
        ],
    )
    parsed = employee_sheet.parse(path)

    assert parsed.columns["start_date"] == "产假开始日期"
    assert parsed.rows[0]["start_date"] == date(2025, 3, 3)
    assert "city" not in parsed.rows[0]

    outcome = process_batch(parsed.rows, load_default_snapshot(), config_calendar)
    assert outcome.errors == []
    assert outcome.results[0].city == "北京"
    assert sum(entry.days for entry in outcome.results[1].applied_rules) == 98 + 30 + 15 + 80


def test_employee_sheet_requires_start_date(tmp_path):
    path = _write_csv(tmp_path / "batch.csv", ["工号", "员工姓名"], [["EMP001", "张三"]])
    with pytest.raises(ValidationError):
        employee_sheet.parse(path)


def test_results_render_to_csv(tmp_path, config_calendar):
    rows = [
        {"employee_id": "EMP001", "employee_name": "张三", "start_date": "2025-03-03"},
        {"employee_id": "X", "employee_name": "无名", "start_date": "2025-03-03"},
    ]
    outcome = process_batch(rows, load_default_snapshot(), config_calendar)

    content = render_allowance_csv(outcome.results)
    parsed = list(csv.DictReader(StringIO(content)))
    assert list(parsed[0].keys()) == RESULT_COLUMNS
    assert parsed[0]["姓名"] == "张三"
    assert parsed[0]["产假结束日期"] == "2025-08-07"
    assert parsed[0]["需补差金额"] == "15800.00"
    assert parsed[0]["发放方式"] == "企业账户"

    errors = error_records(outcome.errors)
    assert errors[0]["行号"] == 2
    assert errors[0]["工号"] == "X"

    path = export_allowance_csv(tmp_path / "out" / "allowance.csv", outcome.results)
    assert path.exists()
    assert Decimal(path.read_text(encoding="utf-8-sig").splitlines()[1].split(",")[10]) == Decimal("15800.00")


def test_batch_csv_interleaves_errors_by_row(config_calendar):
    rows = [
        {"employee_id": "X", "employee_name": "无名", "start_date": "2025-03-03"},
        {"employee_id": "EMP001", "employee_name": "张三", "start_date": "2025-03-03"},
    ]
    outcome = process_batch(rows, load_default_snapshot(), config_calendar)

    parsed = list(csv.DictReader(StringIO(render_batch_csv(outcome))))
    assert list(parsed[0].keys()) == BATCH_COLUMNS
    assert [row["行号"] for row in parsed] == ["1", "2"]
    assert parsed[0]["工号"] == "X"
    assert parsed[0]["错误类型"] == "ValidationError"
    assert parsed[0]["需补差金额"] == ""
    assert parsed[1]["需补差金额"] == "15800.00"
    assert parsed[1]["错误信息"] == ""
