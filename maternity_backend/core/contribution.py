from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from maternity_backend.core.config import load_config
from maternity_backend.core.money import quantize
from maternity_backend.core.proration import month_bounds, month_key, next_month
from maternity_backend.core.schema import (
    CalculatedPeriod,
    EmployeeCalculationInput,
    PersonalContributionBreakdown,
)

logger = logging.getLogger(__name__)

_DEFAULT_RATES = {
    "personal": {
        "pension": "0.08",
        "medical": "0.02",
        "unemployment": "0.005",
        "housing_fund": "0.12",
    }
}


def _load_personal_rate() -> Decimal:
    table = load_config("contribution_rates.yaml", _DEFAULT_RATES)
    components = (table or {}).get("personal") or _DEFAULT_RATES["personal"]
    return sum((Decimal(str(value)) for value in components.values()), Decimal("0"))


PERSONAL_RATE = _load_personal_rate()


def covered_months(period: CalculatedPeriod, folded_months: Iterable[str] = ()) -> list[str]:
    """Calendar months fully inside the leave window, plus folded boundary months."""

    folded = set(folded_months)
    months: list[str] = []
    cursor = period.start_date.replace(day=1)
    while cursor <= period.end_date:
        first, last = month_bounds(cursor)
        key = month_key(cursor)
        if (period.start_date <= first and period.end_date >= last) or key in folded:
            months.append(key)
        cursor = next_month(cursor)
    return months


def calculate_personal_contribution(
    period: CalculatedPeriod,
    employee_input: EmployeeCalculationInput,
    folded_months: Iterable[str] = (),
    rate: Decimal | None = None,
) -> PersonalContributionBreakdown:
    rate = PERSONAL_RATE if rate is None else rate
    months = covered_months(period, folded_months)

    adjustment = employee_input.social_security_adjustment
    if adjustment is not None:
        before = [month for month in months if month < adjustment.effective_month]
        after = [month for month in months if month >= adjustment.effective_month]
        total = adjustment.before_amount * len(before) + adjustment.after_amount * len(after)
        logger.debug("personal contribution split at %s: %s before, %s after", adjustment.effective_month, before, after)
        return PersonalContributionBreakdown(
            type="adjusted",
            months=tuple(months),
            before_amount=adjustment.before_amount,
            after_amount=adjustment.after_amount,
            before_months=tuple(before),
            after_months=tuple(after),
            override_applied=True,
            total=quantize(max(Decimal("0"), total)),
        )

    if employee_input.personal_ss_monthly is not None:
        monthly, applied_rate, overridden = employee_input.personal_ss_monthly, None, True
    else:
        monthly, applied_rate, overridden = employee_input.basic_salary * rate, rate, False
    total = monthly * len(months)
    return PersonalContributionBreakdown(
        type="uniform",
        months=tuple(months),
        monthly_amount=monthly,
        rate=applied_rate,
        override_applied=overridden,
        total=quantize(max(Decimal("0"), total)),
    )
