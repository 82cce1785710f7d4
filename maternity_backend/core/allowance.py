from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from maternity_backend.core.breakdown import build_derivation
from maternity_backend.core.calendar import HolidayCalendar
from maternity_backend.core.config import load_config
from maternity_backend.core.contribution import calculate_personal_contribution
from maternity_backend.core.labels import CalculationBase
from maternity_backend.core.leave_days import LeaveConditions, LeaveResolution, resolve_leave_days
from maternity_backend.core.leave_period import calculate_leave_period
from maternity_backend.core.money import quantize
from maternity_backend.core.name_normalize import normalize_city
from maternity_backend.core.proration import prorate_boundary_months
from maternity_backend.core.schema import (
    CalculationResult,
    CityAllowanceRule,
    DebugInfo,
    EmployeeCalculationInput,
)
from maternity_backend.core.snapshot import RuleSnapshot
from maternity_backend.core.validation import (
    ComputationError,
    RuleNotFoundError,
    ValidationError,
    require_positive,
)

logger = logging.getLogger(__name__)

RULE_VERSION = "maternity_v1"
SOCIAL_LIMIT_MULTIPLIER = Decimal("3")
ZERO = Decimal("0")


@dataclass(frozen=True)
class CityFormula:
    """Daily-rate convention for one city."""

    formula_type: str = "monthly"
    divisor: Decimal | None = Decimal("30")
    months_per_year: int | None = None
    days_per_year: int | None = None

    def daily_rate(self, base: Decimal) -> Decimal:
        if self.formula_type == "annualized":
            return base * Decimal(self.months_per_year) / Decimal(self.days_per_year)
        return base / self.divisor

    @classmethod
    def from_config(cls, raw: dict) -> "CityFormula":
        formula_type = str(raw.get("type", "monthly"))
        if formula_type == "annualized":
            return cls(
                formula_type="annualized",
                divisor=None,
                months_per_year=int(raw.get("months_per_year", 12)),
                days_per_year=int(raw.get("days_per_year", 365)),
            )
        if formula_type != "monthly":
            raise ValueError(f"unknown city formula type: {formula_type}")
        return cls(divisor=Decimal(str(raw.get("divisor", 30))))


def _load_formulas() -> tuple[CityFormula, dict[str, CityFormula]]:
    table = load_config("city_formulas.yaml", {"default": {"type": "monthly", "divisor": 30}})
    default = CityFormula.from_config(table.get("default") or {})
    cities = {
        normalize_city(str(city)): CityFormula.from_config(raw or {})
        for city, raw in (table.get("cities") or {}).items()
    }
    return default, cities


DEFAULT_FORMULA, CITY_FORMULAS = _load_formulas()


def formula_for_city(city: str | None) -> CityFormula:
    if not city:
        return DEFAULT_FORMULA
    key = normalize_city(city)
    if key in CITY_FORMULAS:
        return CITY_FORMULAS[key]
    for name, formula in CITY_FORMULAS.items():
        if name in key:
            return formula
    return DEFAULT_FORMULA


def _company_wage(rule: CityAllowanceRule, employee_input: EmployeeCalculationInput) -> tuple[Decimal, str]:
    if employee_input.company_average_wage is not None:
        return employee_input.company_average_wage, "override"
    if (
        rule.calculation_base is CalculationBase.AVERAGE_CONTRIBUTION_WAGE
        and rule.company_contribution_wage is not None
    ):
        return rule.company_contribution_wage, "average_contribution_wage"
    return rule.company_average_wage, "average_wage"


def compute_allowance(
    allowance_rule: CityAllowanceRule,
    leave_resolution: LeaveResolution,
    employee_input: EmployeeCalculationInput,
    calendar: HolidayCalendar,
) -> CalculationResult:
    """Run the numeric path for one employee and return a frozen result.

    Intermediate values stay at full precision in ``debug_info``; the
    published currency fields are rounded half-up to the cent.
    """

    basic_salary = require_positive(employee_input.basic_salary, "员工产前12个月的月均工资")
    city = employee_input.city or allowance_rule.city

    leave = calculate_leave_period(
        leave_resolution,
        employee_input.start_date,
        calendar,
        override_end_date=employee_input.override_end_date,
    )

    company_wage, wage_source = _company_wage(allowance_rule, employee_input)
    require_positive(company_wage, "单位平均工资")
    social_average = require_positive(allowance_rule.social_average_wage, "社平工资")
    if employee_input.social_insurance_limit is not None:
        social_limit, limit_overridden = employee_input.social_insurance_limit, True
    else:
        social_limit, limit_overridden = social_average * SOCIAL_LIMIT_MULTIPLIER, False
    require_positive(social_limit, "社保3倍上限")

    base = require_positive(min(social_limit, company_wage), "产假津贴基数")
    formula = formula_for_city(city)
    daily = formula.daily_rate(base)

    # no entry flagged with allowance: every leave day is payable
    payable_days = sum(entry.total_days for entry in leave.applied_rules if entry.has_allowance)
    if payable_days == 0:
        payable_days = leave.total_days
    if payable_days < 0 or payable_days > leave.total_days:
        raise ComputationError(f"享受津贴天数 {payable_days} 超出产假总天数 {leave.total_days}")

    if employee_input.government_paid_amount is not None:
        government_raw, government_overridden = employee_input.government_paid_amount, True
    else:
        government_raw, government_overridden = daily * payable_days, False

    if basic_salary > company_wage:
        receivable_base, receivable_source = basic_salary, "employee_basic_salary"
    else:
        receivable_base, receivable_source = company_wage, "company_average_wage"
    employee_daily = formula.daily_rate(receivable_base)
    receivable_raw = employee_daily * payable_days
    supplement_raw = max(ZERO, receivable_raw - government_raw)

    wages = prorate_boundary_months(leave.period, employee_input, calendar)
    contribution = calculate_personal_contribution(leave.period, employee_input, wages.folded_months)

    debug = DebugInfo(
        company_average_wage=company_wage,
        company_wage_source=wage_source,
        social_average_wage=social_average,
        social_insurance_limit=social_limit,
        social_limit_overridden=limit_overridden,
        maternity_allowance_base=base,
        formula_type=formula.formula_type,
        monthly_divisor=formula.divisor,
        months_per_year=formula.months_per_year,
        days_per_year=formula.days_per_year,
        daily_allowance=daily,
        payable_allowance_days=payable_days,
        government_paid_amount=government_raw,
        government_override_applied=government_overridden,
        employee_basic_salary=basic_salary,
        employee_receivable_base=receivable_base,
        employee_receivable_base_source=receivable_source,
        employee_daily_rate=employee_daily,
        employee_receivable=receivable_raw,
        personal_ss_monthly=contribution.monthly_amount,
    )

    result = CalculationResult(
        employee_id=employee_input.employee_id,
        employee_name=employee_input.employee_name,
        city=city,
        payout_method=employee_input.payout_method or allowance_rule.payout_method,
        total_maternity_days=leave.total_days,
        total_allowance_eligible_days=payable_days,
        applied_rules=leave.applied_rules,
        calculated_period=leave.period,
        maternity_allowance_base=quantize(base),
        daily_allowance=quantize(daily),
        government_paid_amount=quantize(government_raw),
        employee_receivable=quantize(receivable_raw),
        company_supplement=quantize(supplement_raw),
        personal_social_security=contribution.total,
        personal_contribution_breakdown=contribution,
        start_month_wage=wages.start_month,
        end_month_wage=wages.end_month,
        debug_info=debug,
        rule_version=RULE_VERSION,
    )
    logger.debug(
        "computed allowance for %s (%s): government=%s receivable=%s supplement=%s",
        employee_input.employee_name or employee_input.employee_id,
        city,
        result.government_paid_amount,
        result.employee_receivable,
        result.company_supplement,
    )
    return result.model_copy(update={"derivation": build_derivation(result)})


def calculate_for_employee(
    snapshot: RuleSnapshot,
    employee_input: EmployeeCalculationInput,
    calendar: HolidayCalendar,
) -> CalculationResult:
    """Look up the city's rules in ``snapshot`` and compute one result."""

    city = employee_input.city or snapshot.resolve_city(
        employee_name=employee_input.employee_name,
        employee_id=employee_input.employee_id,
    )
    if not city:
        who = employee_input.employee_name or employee_input.employee_id or "未知员工"
        raise ValidationError(f"未找到员工 {who} 的城市信息")
    if city != employee_input.city:
        employee_input = employee_input.model_copy(update={"city": city})

    allowance_rule = snapshot.allowance_rule_for(city)
    if allowance_rule is None:
        raise RuleNotFoundError(f"城市 {city} 没有找到津贴规则")

    resolution = resolve_leave_days(
        snapshot.maternity_rules_for(city),
        LeaveConditions.from_input(employee_input),
    )
    result = compute_allowance(allowance_rule, resolution, employee_input, calendar)
    return result.model_copy(update={"snapshot_version": snapshot.version})
