from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Iterable, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as SchemaValidationError

from maternity_backend.core.config import load_config
from maternity_backend.core.name_normalize import normalize, normalize_city
from maternity_backend.core.schema import CityAllowanceRule, CityMaternityRule, EmployeeRecord
from maternity_backend.core.validation import ValidationError, from_schema_error

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Header spellings used by rule sheets and older stored rows.
_MATERNITY_FIELDS = {
    "城市": "city",
    "产假类型": "leave_type",
    "类型": "leave_type",
    "流产类型": "miscarriage_type",
    "怀孕时间段": "miscarriage_type",
    "天数": "days",
    "产假天数": "days",
    "是否遇法定节假日顺延": "is_extendable",
    "是否顺延": "is_extendable",
    "是否享受津贴": "has_allowance",
    "享受津贴": "has_allowance",
}

_ALLOWANCE_FIELDS = {
    "城市": "city",
    "社平工资": "social_average_wage",
    "社会平均工资": "social_average_wage",
    "公司平均工资": "company_average_wage",
    "单位平均工资": "company_average_wage",
    "单位上年度月平均工资": "company_average_wage",
    "单位平均缴费工资": "company_contribution_wage",
    "公司平均缴费工资": "company_contribution_wage",
    "计算基数": "calculation_base",
    "账户类型": "payout_method",
    "发放方式": "payout_method",
    "津贴发放方式": "payout_method",
    "产假政策": "maternity_policy",
    "津贴政策": "allowance_policy",
}

_EMPLOYEE_FIELDS = {
    "工号": "employee_id",
    "员工编号": "employee_id",
    "员工姓名": "employee_name",
    "姓名": "employee_name",
    "城市": "city",
    "基本工资": "basic_salary",
    "员工产前12个月的月均工资": "basic_salary",
    "员工基本工资": "current_base_salary",
    "社保公积金个人月缴费": "personal_ss_monthly",
}


def _canonical_row(row: Mapping[str, Any], aliases: Mapping[str, str]) -> dict[str, Any]:
    lookup = {normalize(alias): field for alias, field in aliases.items()}
    canonical: dict[str, Any] = {}
    for key, value in row.items():
        field = lookup.get(normalize(str(key)))
        if field is None:
            canonical[str(key)] = value
        elif field not in canonical:
            canonical[field] = value
    return canonical


def _validate_rows(
    rows: Iterable[Mapping[str, Any]],
    model: type[M],
    aliases: Mapping[str, str],
    label: str,
    errors: list[str],
) -> list[M]:
    records: list[M] = []
    for index, row in enumerate(rows, start=1):
        try:
            records.append(model.model_validate(_canonical_row(row, aliases)))
        except SchemaValidationError as exc:
            errors.extend(f"{label}第{index}行 {message}" for message in from_schema_error(exc).messages)
    return records


def _check_unique(records: Iterable[BaseModel], key, describe, label: str, errors: list[str]) -> None:
    seen: set = set()
    for record in records:
        marker = key(record)
        if marker in seen:
            errors.append(f"{label}重复: {describe(record)}")
        seen.add(marker)


class RuleSnapshot(BaseModel):
    """Immutable set of city rules and employee directory used for one run.

    Reloading rules produces a new snapshot; an existing one is never
    changed, so a batch captures exactly one version.
    """

    model_config = ConfigDict(frozen=True)

    maternity_rules: tuple[CityMaternityRule, ...] = ()
    allowance_rules: tuple[CityAllowanceRule, ...] = ()
    employees: tuple[EmployeeRecord, ...] = ()
    version: str = ""

    def maternity_rules_for(self, city: str) -> list[CityMaternityRule]:
        key = normalize_city(city)
        return [rule for rule in self.maternity_rules if normalize_city(rule.city) == key]

    def allowance_rule_for(self, city: str) -> CityAllowanceRule | None:
        key = normalize_city(city)
        return next((rule for rule in self.allowance_rules if normalize_city(rule.city) == key), None)

    def find_employee(self, *, name: str | None = None, employee_id: str | None = None) -> EmployeeRecord | None:
        if name:
            key = normalize(name)
            match = next((emp for emp in self.employees if normalize(emp.employee_name) == key), None)
            if match is not None:
                return match
        if employee_id:
            key = normalize(employee_id)
            return next((emp for emp in self.employees if normalize(emp.employee_id) == key), None)
        return None

    def resolve_city(self, *, employee_name: str | None = None, employee_id: str | None = None) -> str | None:
        employee = self.find_employee(name=employee_name, employee_id=employee_id)
        return employee.city if employee is not None else None

    def cities(self) -> list[str]:
        names = {rule.city for rule in self.allowance_rules} | {rule.city for rule in self.maternity_rules}
        return sorted(names)


def _fingerprint(
    maternity: tuple[CityMaternityRule, ...],
    allowance: tuple[CityAllowanceRule, ...],
    employees: tuple[EmployeeRecord, ...],
) -> str:
    payload = {
        "maternity_rules": [rule.model_dump(mode="json") for rule in maternity],
        "allowance_rules": [rule.model_dump(mode="json") for rule in allowance],
        "employees": [emp.model_dump(mode="json") for emp in employees],
    }
    digest = hashlib.sha256(json.dumps(payload, ensure_ascii=False, sort_keys=True).encode("utf-8"))
    return digest.hexdigest()[:12]


def load_rule_snapshot(
    maternity_rows: Iterable[Mapping[str, Any]],
    allowance_rows: Iterable[Mapping[str, Any]],
    employee_rows: Iterable[Mapping[str, Any]] = (),
) -> RuleSnapshot:
    """Normalise raw rule rows once and freeze them into a snapshot.

    Legacy headers and Chinese labels are mapped onto canonical fields and
    enum members here; every row error is collected before raising a single
    ``ValidationError``.
    """

    errors: list[str] = []
    maternity = _validate_rows(maternity_rows, CityMaternityRule, _MATERNITY_FIELDS, "产假规则", errors)
    allowance = _validate_rows(allowance_rows, CityAllowanceRule, _ALLOWANCE_FIELDS, "津贴规则", errors)
    employees = _validate_rows(employee_rows, EmployeeRecord, _EMPLOYEE_FIELDS, "员工信息", errors)

    _check_unique(
        maternity,
        lambda rule: (normalize_city(rule.city), rule.leave_type, rule.miscarriage_type),
        lambda rule: f"{rule.city}/{rule.leave_type.value}/{rule.miscarriage_type.value if rule.miscarriage_type else '-'}",
        "产假规则",
        errors,
    )
    _check_unique(allowance, lambda rule: normalize_city(rule.city), lambda rule: rule.city, "津贴规则城市", errors)
    _check_unique(employees, lambda emp: normalize(emp.employee_id), lambda emp: emp.employee_id, "员工工号", errors)
    if errors:
        raise ValidationError(errors)

    maternity_t, allowance_t, employees_t = tuple(maternity), tuple(allowance), tuple(employees)
    snapshot = RuleSnapshot(
        maternity_rules=maternity_t,
        allowance_rules=allowance_t,
        employees=employees_t,
        version=_fingerprint(maternity_t, allowance_t, employees_t),
    )
    logger.info(
        "loaded rule snapshot %s: %d maternity rules, %d allowance rules, %d employees",
        snapshot.version,
        len(maternity_t),
        len(allowance_t),
        len(employees_t),
    )
    return snapshot


def load_default_snapshot() -> RuleSnapshot:
    data = load_config("default_rules.yaml", {}) or {}
    return load_rule_snapshot(
        data.get("maternity_rules") or (),
        data.get("allowance_rules") or (),
        data.get("employees") or (),
    )
