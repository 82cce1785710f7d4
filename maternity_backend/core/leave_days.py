from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from maternity_backend.core.labels import LeaveType, PregnancyPeriod, display_label
from maternity_backend.core.schema import AppliedRule, CityMaternityRule, EmployeeCalculationInput
from maternity_backend.core.validation import ValidationError

logger = logging.getLogger(__name__)

FALLBACK_TOTAL_DAYS = 98
DOCTOR_ADVICE_NOTE = "doctor-advice"
DEFAULT_RULE_NOTE = "default — rule not found"

MISCARRIAGE_DEFAULT_DAYS: dict[PregnancyPeriod, int] = {
    PregnancyPeriod.BELOW_4_MONTHS: 15,
    PregnancyPeriod.BETWEEN_4_7_MONTHS: 42,
    PregnancyPeriod.ABOVE_7_MONTHS: 75,
}

_NOTE_LABELS = {
    DOCTOR_ADVICE_NOTE: "医嘱",
    DEFAULT_RULE_NOTE: "未配置规则，按默认天数",
}

@dataclass(frozen=True)
class LeaveConditions:
    is_difficult_birth: bool = False
    number_of_babies: int = 1
    pregnancy_period: PregnancyPeriod = PregnancyPeriod.ABOVE_7_MONTHS
    is_miscarriage: bool = False
    doctor_advice_days: int | None = None
    meets_supplemental_difficult_birth: bool = False
    is_second_third_child: bool = False

    @classmethod
    def from_input(cls, employee_input: EmployeeCalculationInput) -> "LeaveConditions":
        return cls(
            is_difficult_birth=employee_input.is_difficult_birth,
            number_of_babies=employee_input.number_of_babies,
            pregnancy_period=employee_input.pregnancy_period,
            is_miscarriage=employee_input.is_miscarriage,
            doctor_advice_days=employee_input.doctor_advice_days,
            meets_supplemental_difficult_birth=employee_input.meets_supplemental_difficult_birth,
            is_second_third_child=employee_input.is_second_third_child,
        )


@dataclass(frozen=True)
class LeaveResolution:
    total_days: int
    applied_rules: tuple[AppliedRule, ...] = ()
    extendable_reward_days: int = 0
    extendable_reward_rule: AppliedRule | None = None

    @property
    def is_fallback(self) -> bool:
        return not self.applied_rules


def _find_rule(rules: Sequence[CityMaternityRule], leave_type: LeaveType) -> CityMaternityRule | None:
    return next((rule for rule in rules if rule.leave_type is leave_type), None)


def _entry(rule: CityMaternityRule, *, days: int | None = None, label: str | None = None) -> AppliedRule:
    return AppliedRule(
        leave_type=rule.leave_type,
        label=label or display_label(rule.leave_type),
        days=rule.days if days is None else days,
        has_allowance=rule.has_allowance,
        is_extendable=rule.is_extendable,
    )


def _resolve_miscarriage(rules: Sequence[CityMaternityRule], conditions: LeaveConditions) -> LeaveResolution:
    period = conditions.pregnancy_period
    label = f"{display_label(LeaveType.MISCARRIAGE)}({display_label(period)})"
    matching = next(
        (
            rule
            for rule in rules
            if rule.leave_type is LeaveType.MISCARRIAGE and rule.miscarriage_type is period
        ),
        None,
    )
    has_allowance = matching.has_allowance if matching is not None else True

    if conditions.doctor_advice_days and conditions.doctor_advice_days > 0:
        days, note = conditions.doctor_advice_days, DOCTOR_ADVICE_NOTE
    elif matching is not None:
        days, note = matching.days, None
    else:
        days, note = MISCARRIAGE_DEFAULT_DAYS[period], DEFAULT_RULE_NOTE

    logger.debug("miscarriage leave resolved to %s days (%s)", days, note or "city rule")
    entry = AppliedRule(
        leave_type=LeaveType.MISCARRIAGE,
        label=label,
        days=days,
        has_allowance=has_allowance,
        note=note,
    )
    return LeaveResolution(total_days=days, applied_rules=(entry,))


def resolve_leave_days(
    city_rules: Iterable[CityMaternityRule], conditions: LeaveConditions
) -> LeaveResolution:
    """Combine a city's maternity rules into total leave days and a ledger.

    Miscarriage leave excludes every other leave type.  A city with no rules
    at all falls back to 98 days with an empty ledger.
    """

    if conditions.number_of_babies < 1:
        raise ValidationError("胎儿数量必须大于等于1")
    if conditions.doctor_advice_days is not None and conditions.doctor_advice_days < 0:
        raise ValidationError("医嘱天数不能为负数")

    rules = list(city_rules)
    if not rules:
        logger.debug("no maternity rules for city, falling back to %s days", FALLBACK_TOTAL_DAYS)
        return LeaveResolution(total_days=FALLBACK_TOTAL_DAYS)

    if conditions.is_miscarriage:
        return _resolve_miscarriage(rules, conditions)

    ledger: list[AppliedRule] = []

    legal = _find_rule(rules, LeaveType.LEGAL)
    if legal is not None:
        ledger.append(_entry(legal))

    if conditions.is_difficult_birth:
        difficult = _find_rule(rules, LeaveType.DIFFICULT_BIRTH)
        if difficult is not None:
            ledger.append(_entry(difficult))

    if conditions.meets_supplemental_difficult_birth:
        assisted = _find_rule(rules, LeaveType.ASSISTED_DIFFICULT_BIRTH)
        if assisted is not None:
            ledger.append(_entry(assisted))

    if conditions.number_of_babies > 1:
        multiple = _find_rule(rules, LeaveType.MULTIPLE_BIRTH)
        if multiple is not None:
            extra_babies = conditions.number_of_babies - 1
            ledger.append(
                _entry(
                    multiple,
                    days=multiple.days * extra_babies,
                    label=f"{display_label(LeaveType.MULTIPLE_BIRTH)}({conditions.number_of_babies}胎)",
                )
            )

    reward = None
    if conditions.is_second_third_child:
        reward = _find_rule(rules, LeaveType.REWARD_SECOND_THIRD_CHILD)
    if reward is None:
        reward = _find_rule(rules, LeaveType.REWARD)
    reward_entry = None
    if reward is not None:
        reward_entry = _entry(reward)
        ledger.append(reward_entry)

    total = sum(entry.days for entry in ledger)
    extendable = reward_entry if reward_entry is not None and reward_entry.is_extendable else None
    logger.debug(
        "resolved %s leave days from %s; extendable reward=%s",
        total,
        [entry.leave_type.value for entry in ledger],
        extendable.days if extendable else 0,
    )
    return LeaveResolution(
        total_days=total,
        applied_rules=tuple(ledger),
        extendable_reward_days=extendable.days if extendable else 0,
        extendable_reward_rule=extendable,
    )


def format_applied_rules_summary(rules: Sequence[AppliedRule], city: str | None, total_days: int) -> str:
    """One-line summary such as ``北京 - 法定产假 98天+奖励假 30天 = 98+30 = 128天``."""

    city_text = city or "未选择城市"
    if not rules:
        return f"{city_text} - 按城市默认规则计算"

    segments = []
    for rule in rules:
        note = f"({_NOTE_LABELS.get(rule.note, rule.note)})" if rule.note else ""
        excluded = "" if rule.has_allowance else "（不计入享受津贴天数）"
        segments.append(f"{rule.label} {rule.days}天{note}{excluded}")
    summary = f"{city_text} - {'+'.join(segments)}"
    if len(rules) == 1:
        return summary

    bases = [rule.days for rule in rules if rule.days > 0]
    extension = sum(rule.extended_days for rule in rules if rule.extended_days > 0)
    expression = "+".join(str(value) for value in bases) or "0"
    if extension:
        expression = f"{expression}+{extension}（顺延）"
    return f"{summary} = {expression} = {total_days}天"
