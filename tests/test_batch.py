from decimal import Decimal

from maternity_backend.core.snapshot import load_default_snapshot
from maternity_backend.workers import batch
from maternity_backend.workers.batch import prepare_row, process_batch


def _row(**values):
    row = {"employee_id": "EMP001", "employee_name": "张三", "start_date": "2025-03-03"}
    row.update(values)
    return row


def test_one_bad_row_does_not_affect_the_others(config_calendar):
    snapshot = load_default_snapshot()
    rows = [
        _row(),
        {"employee_id": "EMP999", "employee_name": "王五", "start_date": "2025-03-03", "basic_salary": 10000},
    ]
    outcome = process_batch(rows, snapshot, config_calendar)

    assert len(outcome.results) == 1
    assert outcome.result_rows == [0]
    assert outcome.results[0].employee_name == "张三"
    assert outcome.results[0].company_supplement == Decimal("15800.00")

    assert len(outcome.errors) == 1
    error = outcome.errors[0]
    assert error.row_index == 1
    assert error.identity.employee_name == "王五"
    assert error.identity.employee_id == "EMP999"
    assert error.error_type == "ValidationError"


def test_directory_fills_city_and_salary():
    employee = prepare_row(_row(), load_default_snapshot())
    assert employee.city == "北京"
    assert employee.basic_salary == Decimal("15000")


def test_explicit_row_values_win_over_directory():
    employee = prepare_row(_row(city="上海", basic_salary="20000"), load_default_snapshot())
    assert employee.city == "上海"
    assert employee.basic_salary == Decimal("20000")


def test_missing_identity_and_bad_values_are_reported_together(weekend_calendar):
    outcome = process_batch(
        [{"city": "北京", "start_date": "not a date", "basic_salary": 10000}],
        load_default_snapshot(),
        weekend_calendar,
    )
    messages = outcome.errors[0].errors
    assert "员工姓名不能为空" in messages
    assert "员工编号不能为空" in messages
    assert any(message.startswith("产假开始日期") for message in messages)


def test_city_without_allowance_rule_is_rule_not_found(weekend_calendar):
    outcome = process_batch([_row(city="拉萨")], load_default_snapshot(), weekend_calendar)
    assert outcome.results == []
    assert outcome.errors[0].error_type == "RuleNotFoundError"


def test_unexpected_errors_are_isolated(weekend_calendar, monkeypatch):
    original = batch.calculate_for_employee

    def flaky(snapshot, employee_input, calendar):
        if employee_input.employee_id == "EMP002":
            raise RuntimeError("boom")
        return original(snapshot, employee_input, calendar)

    monkeypatch.setattr(batch, "calculate_for_employee", flaky)
    rows = [_row(), _row(employee_id="EMP002", employee_name="李四")]
    outcome = process_batch(rows, load_default_snapshot(), weekend_calendar)

    assert [result.employee_id for result in outcome.results] == ["EMP001"]
    assert outcome.errors[0].error_type == "UnexpectedError"
    assert outcome.errors[0].errors == ("计算错误: boom",)


def test_thread_pool_keeps_row_order(weekend_calendar):
    rows = [
        _row(employee_id=f"E{index}", employee_name=f"员工{index}", city="北京", basic_salary=10000 + index)
        for index in range(6)
    ]
    rows.insert(3, _row(employee_id="BAD", employee_name="坏行", city="拉萨"))
    outcome = process_batch(rows, load_default_snapshot(), weekend_calendar, max_workers=4)

    assert [result.employee_id for result in outcome.results] == [f"E{index}" for index in range(6)]
    assert outcome.result_rows == [0, 1, 2, 4, 5, 6]
    assert [error.row_index for error in outcome.errors] == [3]


def test_rows_that_are_not_objects_become_row_errors(weekend_calendar):
    rows = [_row(city="北京", basic_salary=10000), "not a row", None]
    outcome = process_batch(rows, load_default_snapshot(), weekend_calendar)

    assert outcome.result_rows == [0]
    assert [error.row_index for error in outcome.errors] == [1, 2]
    for error in outcome.errors:
        assert error.error_type == "ValidationError"
        assert error.identity.employee_name is None
        assert error.identity.employee_id is None
    assert "str" in outcome.errors[0].errors[0]
