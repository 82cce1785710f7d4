from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable

from pydantic import ValidationError as SchemaValidationError


class CalculationError(Exception):
    """Base class for failures of a single maternity calculation."""

    def __init__(self, messages: str | Iterable[str]) -> None:
        if isinstance(messages, str):
            messages = [messages]
        self.messages: list[str] = [str(message) for message in messages]
        super().__init__("; ".join(self.messages))


class ValidationError(CalculationError):
    """Raised when an input record or rule row fails validation."""


class RuleNotFoundError(CalculationError):
    """Raised when the rule snapshot has no rule for the requested city."""


class ComputationError(CalculationError):
    """Raised when a formula input breaks an invariant of the numeric path."""


_FIELD_LABELS = {
    "city": "城市",
    "basic_salary": "员工产前12个月的月均工资",
    "current_base_salary": "员工基本工资",
    "start_date": "产假开始日期",
    "override_end_date": "产假结束日期",
    "number_of_babies": "胎儿数量",
    "pregnancy_period": "怀孕时间段",
    "doctor_advice_days": "医嘱天数",
    "payout_method": "津贴发放方式",
    "effective_month": "调整生效月份",
}


def _describe_location(loc: tuple[Any, ...]) -> str:
    parts = [str(part) for part in loc if not isinstance(part, int)]
    if not parts:
        return "输入"
    return "/".join(_FIELD_LABELS.get(part, part) for part in parts)


def from_schema_error(exc: SchemaValidationError) -> ValidationError:
    """Translate a pydantic error into one domain ``ValidationError``."""

    messages: list[str] = []
    for error in exc.errors():
        location = _describe_location(tuple(error.get("loc") or ()))
        detail = str(error.get("msg") or "invalid value")
        if detail.startswith("Value error, "):
            detail = detail[len("Value error, ") :]
        messages.append(f"{location}: {detail}")
    return ValidationError(messages or ["输入数据校验失败"])


def require_positive(value: Decimal | None, label: str) -> Decimal:
    """Guard for formula inputs that must be finite and strictly positive."""

    if value is None or not value.is_finite() or value <= 0:
        raise ComputationError(f"{label}必须为正数，实际为 {value}")
    return value
