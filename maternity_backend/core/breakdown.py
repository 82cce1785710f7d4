"""Human-readable derivation text for a finished calculation.

Every builder reads the authoritative figures from a ``CalculationResult``
and its ``debug_info``; nothing here recomputes an amount that the numeric
path already published.  Text is audit material only, so a builder that
cannot render degrades to ``UNAVAILABLE`` instead of raising.
"""

from __future__ import annotations

import functools
import logging
from decimal import Decimal
from typing import Callable, Iterable

from maternity_backend.core.labels import PayoutMethod
from maternity_backend.core.leave_days import format_applied_rules_summary
from maternity_backend.core.money import format_money, quantize
from maternity_backend.core.schema import CalculationResult, Derivation, MonthWage

logger = logging.getLogger(__name__)

UNAVAILABLE = "计算过程不可用"
NO_FULL_MONTH = "无整月产假，不计算个人社保"

_SALARY_LABELS = {
    "basic_salary": "员工产前12个月的月均工资",
    "current_base_salary": "员工基本工资",
    "before_adjustment": "员工基本工资（调整前）",
    "after_adjustment": "员工基本工资（调整后）",
}


def _degrades(builder: Callable[..., str]) -> Callable[..., str]:
    @functools.wraps(builder)
    def wrapper(*args, **kwargs) -> str:
        try:
            return builder(*args, **kwargs)
        except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("could not render %s: %s", builder.__name__, exc)
            return UNAVAILABLE

    return wrapper


def _num(value: Decimal | int) -> str:
    if isinstance(value, int):
        return str(value)
    return format(value.normalize(), "f")


def _days_label(result: CalculationResult) -> str:
    days = result.total_allowance_eligible_days
    if days != result.total_maternity_days:
        return f"{days}天（享受津贴天数）"
    return f"{days}天"


def _rate_expression(base: Decimal, result: CalculationResult) -> str:
    debug = result.debug_info
    if debug.formula_type == "annualized":
        return f"{format_money(base)} * {debug.months_per_year} / {debug.days_per_year}"
    return f"{format_money(base)} / {_num(debug.monthly_divisor)}"


@_degrades
def government_process(result: CalculationResult) -> str:
    debug = result.debug_info
    if debug.government_override_applied:
        return f"手工填写值 {format_money(result.government_paid_amount)}"
    comparison = (
        f"取小值（单位上年度月平均工资 {format_money(debug.company_average_wage)}, "
        f"三倍社保上限 {format_money(debug.social_insurance_limit)}）"
    )
    formula = (
        f"{_rate_expression(debug.maternity_allowance_base, result)} * {_days_label(result)}"
        f" = {format_money(result.government_paid_amount)}"
    )
    return f"{comparison} {formula}"


@_degrades
def employee_process(result: CalculationResult) -> str:
    debug = result.debug_info
    comparison = (
        f"取大值（单位上年度月平均工资 {format_money(debug.company_average_wage)}, "
        f"员工产前12月平均工资 {format_money(debug.employee_basic_salary)}）"
    )
    formula = (
        f"{_rate_expression(debug.employee_receivable_base, result)} * {_days_label(result)}"
        f" = {format_money(result.employee_receivable)}"
    )
    return f"{comparison} {formula}"


def _four_places(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.0001"))


def _signed(amount: Decimal, first: bool) -> str:
    text = format_money(abs(amount))
    if amount < 0:
        return f"-{text}"
    return text if first else f"+{text}"


@_degrades
def supplement_process(
    result: CalculationResult,
    deductions: Iterable[tuple[Decimal, str]] = (),
    paid_wage_during_leave: Decimal | None = None,
) -> str:
    """Supplement derivation, optionally followed by deductions and wages already paid.

    ``deductions`` holds ``(amount, note)`` pairs; a negative amount is an
    extra payment rather than a deduction.
    """

    debug = result.debug_info
    receivable = result.employee_receivable
    government = result.government_paid_amount
    supplement = result.company_supplement
    lines = [
        f"员工应领取 {format_money(receivable)} - 政府发放 {format_money(government)} = {format_money(supplement)}"
    ]
    if quantize(max(Decimal("0"), receivable - government)) != supplement:
        lines[0] += (
            f"（按未取整金额 {_num(_four_places(debug.employee_receivable))}"
            f" - {_num(_four_places(debug.government_paid_amount))} 计算）"
        )

    remaining = supplement
    if paid_wage_during_leave is not None and paid_wage_during_leave > 0:
        remaining = max(Decimal("0"), supplement - paid_wage_during_leave)
        lines.append(
            f"公司已发产假工资 {format_money(paid_wage_during_leave)}，"
            f"尚需补差 {format_money(supplement)} - {format_money(paid_wage_during_leave)} = {format_money(remaining)}"
        )

    items = [(Decimal(str(amount)), note) for amount, note in deductions if Decimal(str(amount)) != 0]
    if items:
        total = sum((amount for amount, _ in items), Decimal("0"))
        details = "；".join(f"{note or ('扣减' if amount > 0 else '发放')} {_signed(amount, True)}" for amount, note in items)
        numeric = "".join(_signed(amount, index == 0) for index, (amount, _) in enumerate(items))
        lines.append(f"减扣项：{details}")
        lines.append(f"减扣项合计 = {numeric} = {format_money(total)}")
        lines.append(
            f"扣减后补差 = {format_money(remaining)} - {format_money(total)}"
            f" = {format_money(max(Decimal('0'), remaining - total))}"
        )
    return "\n".join(lines)


def _month_range(months: tuple[str, ...]) -> str:
    if not months:
        return ""
    if len(months) == 1:
        return f"（{months[0]}）"
    return f"（{months[0]} - {months[-1]}）"


@_degrades
def personal_ss_process(result: CalculationResult) -> str:
    breakdown = result.personal_contribution_breakdown
    if not breakdown.months:
        return NO_FULL_MONTH

    if breakdown.type == "adjusted":
        segments = []
        calculations = []
        for label, amount, months in (
            ("调整前", breakdown.before_amount, breakdown.before_months),
            ("调整后", breakdown.after_amount, breakdown.after_months),
        ):
            if not months:
                continue
            segments.append(
                f"{label} 月度个人部分社保公积金 {format_money(amount)} × {len(months)}个月{_month_range(months)}"
            )
            calculations.append(f"{format_money(amount)} × {len(months)}")
        segments.append(f"= {' + '.join(calculations)} = {format_money(result.personal_social_security)}")
        return "\n".join(segments)

    source = "（手工填写）" if breakdown.override_applied else ""
    return (
        f"月度个人部分社保公积金合计 {format_money(breakdown.monthly_amount)}{source}"
        f" × {len(breakdown.months)}个月{_month_range(breakdown.months)}"
        f" = {format_money(result.personal_social_security)}"
    )


@_degrades
def month_wage_process(wage: MonthWage | None) -> str:
    if wage is None:
        return "与开始月为同一月份"
    if wage.prorated_wage is None:
        return f"{wage.month} 无出勤工作日，计入个人社保整月"
    label = _SALARY_LABELS[wage.salary_source]
    salary = format_money(wage.salary_used)
    if wage.month_legal_holiday_days:
        return (
            f"应发工资={label}/(工作日{wage.month_working_days}天+法定假日{wage.month_legal_holiday_days}天)"
            f"×出勤{wage.attended_working_days}天="
            f"{salary}/({wage.month_working_days}+{wage.month_legal_holiday_days})*{wage.attended_working_days}"
            f"={format_money(wage.prorated_wage)}"
        )
    return (
        f"应发工资={label}/工作日{wage.month_working_days}天×出勤{wage.attended_working_days}天="
        f"{salary}/{wage.month_working_days}*{wage.attended_working_days}={format_money(wage.prorated_wage)}"
    )


@_degrades
def applied_rules_summary(result: CalculationResult) -> str:
    return format_applied_rules_summary(result.applied_rules, result.city, result.total_maternity_days)


def build_derivation(result: CalculationResult) -> Derivation:
    government = government_process(result)
    if result.payout_method is PayoutMethod.COMPANY_ACCOUNT and government != UNAVAILABLE:
        government = f"{government}（拨付至企业账户）"
    return Derivation(
        applied_rules_summary=applied_rules_summary(result),
        government_process=government,
        employee_process=employee_process(result),
        supplement_process=supplement_process(result),
        personal_ss_process=personal_ss_process(result),
        start_month_process=month_wage_process(result.start_month_wage),
        end_month_process=month_wage_process(result.end_month_wage),
    )
