from __future__ import annotations

from fastapi import APIRouter

from maternity_backend.application import get_rule_service
from maternity_backend.core.validation import CalculationError
from maternity_backend.routes.errors import to_http_error

router = APIRouter(prefix="/holidays", tags=["holidays"])


@router.get("/{year}")
async def get_holidays(year: int) -> dict:
    calendar = get_rule_service().holiday_calendar()
    try:
        plan = calendar.plan_for(year)
    except CalculationError as exc:
        raise to_http_error(exc) from exc
    return {
        "year": year,
        "holidays": [entry.model_dump(mode="json") for entry in plan.holidays],
        "makeup_workdays": [day.isoformat() for day in plan.makeup_workdays],
    }
