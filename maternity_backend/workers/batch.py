from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from pydantic import ValidationError as SchemaValidationError

from maternity_backend.core.allowance import calculate_for_employee
from maternity_backend.core.calendar import HolidayCalendar
from maternity_backend.core.schema import (
    BatchError,
    BatchIdentity,
    BatchOutcome,
    CalculationResult,
    EmployeeCalculationInput,
    coerce_text,
)
from maternity_backend.core.snapshot import RuleSnapshot
from maternity_backend.core.validation import (
    CalculationError,
    RuleNotFoundError,
    ValidationError,
    from_schema_error,
)

logger = logging.getLogger(__name__)

_NAME_KEYS = ("employee_name", "employeeName", "name")
_ID_KEYS = ("employee_id", "employeeId", "employee_no", "employeeNo")
_SALARY_KEYS = ("basic_salary", "basicSalary", "employee_basic_salary", "employeeBasicSalary")
_CURRENT_SALARY_KEYS = (
    "current_base_salary",
    "currentBaseSalary",
    "employee_base_salary_current",
    "employeeBaseSalaryCurrent",
)
_PERSONAL_SS_KEYS = ("personal_ss_monthly", "personalSSMonthly", "overridePersonalSSMonthly")

BatchRow = Mapping[str, Any] | EmployeeCalculationInput


def _first(row: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = coerce_text(row.get(key))
        if value:
            return row.get(key)
    return None


def _identity(row: BatchRow) -> BatchIdentity:
    if isinstance(row, EmployeeCalculationInput):
        return BatchIdentity(employee_name=row.employee_name, employee_id=row.employee_id)
    if not isinstance(row, Mapping):
        return BatchIdentity()
    return BatchIdentity(
        employee_name=coerce_text(_first(row, _NAME_KEYS)),
        employee_id=coerce_text(_first(row, _ID_KEYS)),
    )


def _fill_from_directory(row: Mapping[str, Any], identity: BatchIdentity, snapshot: RuleSnapshot) -> dict[str, Any]:
    """Fill the city and salary fields a row leaves blank from the employee directory."""

    data = dict(row)
    employee = snapshot.find_employee(name=identity.employee_name, employee_id=identity.employee_id)
    if employee is None:
        return data
    if not coerce_text(data.get("city")):
        data["city"] = employee.city
    for keys, value in (
        (_SALARY_KEYS, employee.basic_salary),
        (_CURRENT_SALARY_KEYS, employee.current_base_salary),
        (_PERSONAL_SS_KEYS, employee.personal_ss_monthly),
    ):
        if value is not None and _first(data, keys) is None:
            data[keys[0]] = value
    return data


def prepare_row(row: BatchRow, snapshot: RuleSnapshot) -> EmployeeCalculationInput:
    """Validate one batch row; raise with every problem found in it."""

    if isinstance(row, EmployeeCalculationInput):
        employee_input = row
        errors: list[str] = []
    elif not isinstance(row, Mapping):
        raise ValidationError(f"批量数据行格式错误: 应为对象，实际为 {type(row).__name__}")
    else:
        identity = _identity(row)
        errors = []
        if not identity.employee_name:
            errors.append("员工姓名不能为空")
        if not identity.employee_id:
            errors.append("员工编号不能为空")
        data = _fill_from_directory(row, identity, snapshot)
        employee_input = None
        try:
            employee_input = EmployeeCalculationInput.model_validate(data)
        except SchemaValidationError as exc:
            errors.extend(from_schema_error(exc).messages)
        if errors:
            raise ValidationError(errors)

    if not employee_input.city:
        who = employee_input.employee_name or employee_input.employee_id or "未知员工"
        raise ValidationError(f"未找到员工 {who} 的城市信息")
    if snapshot.allowance_rule_for(employee_input.city) is None:
        raise RuleNotFoundError(f"城市 {employee_input.city} 没有找到津贴规则")
    return employee_input


@dataclass(frozen=True)
class _RowOutcome:
    index: int
    result: CalculationResult | None = None
    error: BatchError | None = None


def _process_row(index: int, row: BatchRow, snapshot: RuleSnapshot, calendar: HolidayCalendar) -> _RowOutcome:
    identity = BatchIdentity()
    try:
        identity = _identity(row)
        employee_input = prepare_row(row, snapshot)
        return _RowOutcome(index=index, result=calculate_for_employee(snapshot, employee_input, calendar))
    except CalculationError as exc:
        logger.warning("batch row %d (%s) failed: %s", index, identity.employee_name or identity.employee_id, exc)
        error_type, messages = type(exc).__name__, exc.messages
    except Exception as exc:  # one broken row must not abort the batch
        logger.exception("unexpected error in batch row %d", index)
        error_type, messages = "UnexpectedError", [f"计算错误: {exc}"]
    return _RowOutcome(
        index=index,
        error=BatchError(row_index=index, identity=identity, error_type=error_type, errors=tuple(messages)),
    )


def process_batch(
    rows: Iterable[BatchRow],
    snapshot: RuleSnapshot,
    calendar: HolidayCalendar,
    *,
    max_workers: int | None = None,
) -> BatchOutcome:
    """Run every row against one snapshot; failures are collected, never raised.

    With ``max_workers`` above one the rows fan out over a thread pool;
    results and errors are still reported in original row order.
    """

    rows = list(rows)
    logger.info("batch start: %d rows, snapshot %s", len(rows), snapshot.version or "-")
    if max_workers and max_workers > 1 and len(rows) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            outcomes = list(
                pool.map(lambda pair: _process_row(pair[0], pair[1], snapshot, calendar), enumerate(rows))
            )
    else:
        outcomes = [_process_row(index, row, snapshot, calendar) for index, row in enumerate(rows)]

    outcome = BatchOutcome()
    for item in sorted(outcomes, key=lambda entry: entry.index):
        if item.result is not None:
            outcome.results.append(item.result)
            outcome.result_rows.append(item.index)
        elif item.error is not None:
            outcome.errors.append(item.error)
    logger.info("batch finished: %d succeeded, %d failed", len(outcome.results), len(outcome.errors))
    return outcome
