from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum

from maternity_backend.core.calendar import HolidayCalendar
from maternity_backend.core.leave_days import LeaveResolution
from maternity_backend.core.schema import AppliedRule, CalculatedPeriod
from maternity_backend.core.validation import ComputationError

logger = logging.getLogger(__name__)

# Upper bound on consecutive legal holidays the walk may skip.
MAX_HOLIDAY_STEPS = 60


class WalkState(str, Enum):
    CONSUMING_FIXED_DAYS = "consuming_fixed_days"
    CONSUMING_EXTENDABLE_DAYS = "consuming_extendable_days"
    FINAL_HOLIDAY_CHECK = "final_holiday_check"
    DONE = "done"


@dataclass
class _Walk:
    state: WalkState = WalkState.CONSUMING_FIXED_DAYS
    cursor: date | None = None
    remaining: int = 0
    landing: date | None = None
    extension_start: date | None = None
    skipped: list[date] = field(default_factory=list)
    skipped_names: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class LeavePeriod:
    period: CalculatedPeriod
    total_days: int
    applied_rules: tuple[AppliedRule, ...]
    extended_days: int = 0


def _make_period(start: date, end: date) -> CalculatedPeriod:
    if end < start:
        raise ComputationError(f"产假结束日期 {end} 早于开始日期 {start}")
    actual_days = (end - start).days + 1
    return CalculatedPeriod(
        start_date=start,
        end_date=end,
        actual_days=actual_days,
        working_days_estimate=actual_days * 5 // 7,
    )


def _skip(walk: _Walk, calendar: HolidayCalendar, day: date) -> None:
    walk.skipped.append(day)
    walk.skipped_names.append(calendar.holiday_name(day) or day.isoformat())
    if len(walk.skipped) > MAX_HOLIDAY_STEPS:
        raise ComputationError(f"节假日顺延超过 {MAX_HOLIDAY_STEPS} 天，请检查节假日数据")


def _run_walk(start: date, fixed_days: int, extendable_days: int, calendar: HolidayCalendar) -> _Walk:
    walk = _Walk(remaining=extendable_days)
    while walk.state is not WalkState.DONE:
        if walk.state is WalkState.CONSUMING_FIXED_DAYS:
            walk.cursor = start + timedelta(days=fixed_days)
            walk.extension_start = walk.cursor
            walk.state = WalkState.CONSUMING_EXTENDABLE_DAYS
        elif walk.state is WalkState.CONSUMING_EXTENDABLE_DAYS:
            day = walk.cursor
            if calendar.is_legal_holiday(day):
                logger.debug("extendable leave skips legal holiday %s", day)
                _skip(walk, calendar, day)
            else:
                walk.remaining -= 1
                walk.landing = day
            walk.cursor = day + timedelta(days=1)
            if walk.remaining <= 0:
                walk.state = WalkState.FINAL_HOLIDAY_CHECK
        elif walk.state is WalkState.FINAL_HOLIDAY_CHECK:
            if calendar.is_legal_holiday(walk.landing):
                _skip(walk, calendar, walk.landing)
                walk.landing = walk.landing + timedelta(days=1)
            else:
                walk.state = WalkState.DONE
    return walk


def calculate_leave_period(
    resolution: LeaveResolution,
    start_date: date,
    calendar: HolidayCalendar,
    override_end_date: date | None = None,
) -> LeavePeriod:
    """Turn resolved leave days into a concrete window starting on ``start_date``.

    Only an extendable reward entry walks the calendar.  Without one the
    window is ``start + total - 1``, or ``override_end_date`` when supplied.
    """

    total_days = resolution.total_days
    if total_days <= 0:
        raise ComputationError(f"产假天数必须大于0，实际为 {total_days}")

    reward = resolution.extendable_reward_rule
    if reward is None or resolution.extendable_reward_days <= 0:
        end = start_date + timedelta(days=total_days - 1)
        if override_end_date is not None:
            if override_end_date >= start_date:
                end = override_end_date
            else:
                logger.debug("ignoring override end date %s before start %s", override_end_date, start_date)
        return LeavePeriod(
            period=_make_period(start_date, end),
            total_days=total_days,
            applied_rules=resolution.applied_rules,
        )

    fixed_days = total_days - resolution.extendable_reward_days
    walk = _run_walk(start_date, fixed_days, resolution.extendable_reward_days, calendar)
    extended = len(walk.skipped)
    end = walk.landing
    logger.debug(
        "extendable walk from %s: %s legal holidays skipped, leave ends %s",
        walk.extension_start,
        extended,
        end,
    )

    ledger = resolution.applied_rules
    if extended:
        updated = reward.model_copy(
            update={
                "extended_days": extended,
                "extension_start": walk.extension_start,
                "extension_end": end,
                "extension_holidays": tuple(walk.skipped_names),
            }
        )
        ledger = tuple(updated if entry is reward else entry for entry in ledger)

    period = _make_period(start_date, end)
    if period.actual_days != total_days + extended:
        raise ComputationError(f"产假区间 {period.actual_days} 天与顺延后天数 {total_days + extended} 不一致")
    return LeavePeriod(
        period=period,
        total_days=total_days + extended,
        applied_rules=ledger,
        extended_days=extended,
    )
