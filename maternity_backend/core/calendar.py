"""Holiday calendar backing working-day counts and the leave extension walk."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Iterator, Mapping

from pydantic import ValidationError as SchemaValidationError

from maternity_backend.core.config import load_config
from maternity_backend.core.labels import HolidayType
from maternity_backend.core.schema import HolidayCalendarEntry, HolidayPlan
from maternity_backend.core.validation import ValidationError, from_schema_error

logger = logging.getLogger(__name__)

HolidayLookup = Callable[[int], "HolidayPlan | Mapping[str, Any] | None"]


@dataclass(slots=True)
class _YearIndex:
    plan: HolidayPlan
    rest_days: dict[date, HolidayCalendarEntry] = field(default_factory=dict)
    legal_days: set[date] = field(default_factory=set)
    makeup_days: set[date] = field(default_factory=set)


def _index_plan(plan: HolidayPlan) -> _YearIndex:
    index = _YearIndex(plan=plan)
    for entry in plan.holidays:
        if entry.holiday_type is HolidayType.MAKEUP_WORKDAY:
            index.makeup_days.add(entry.holiday_date)
            continue
        index.rest_days[entry.holiday_date] = entry
        if entry.is_legal_holiday:
            index.legal_days.add(entry.holiday_date)
    index.makeup_days.update(plan.makeup_workdays)
    return index


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


class HolidayCalendar:
    """Per-year holiday lookup with lazily cached plans.

    Only ``is_legal_holiday`` days push an extendable leave forward; other
    rest days (the bridging days around a festival) are simply not working
    days.
    """

    def __init__(self, lookup: HolidayLookup | None = None) -> None:
        self._lookup = lookup
        self._years: dict[int, _YearIndex] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_plans(cls, plans: Mapping[int, HolidayPlan | Mapping[str, Any]]) -> "HolidayCalendar":
        stored = {int(year): plan for year, plan in plans.items()}
        return cls(stored.get)

    @classmethod
    def from_config(cls) -> "HolidayCalendar":
        raw = load_config("holidays.cn.yaml", {})
        return cls.from_plans(raw or {})

    # ------------------------------------------------------------------
    # plan loading
    # ------------------------------------------------------------------
    def _year(self, year: int) -> _YearIndex:
        cached = self._years.get(year)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._years.get(year)
            if cached is None:
                cached = _index_plan(self._fetch(year))
                self._years[year] = cached
                logger.debug(
                    "loaded holiday plan %s: %d rest days, %d legal, %d make-up",
                    year,
                    len(cached.rest_days),
                    len(cached.legal_days),
                    len(cached.makeup_days),
                )
        return cached

    def _fetch(self, year: int) -> HolidayPlan:
        if self._lookup is None:
            return HolidayPlan(year=year)
        try:
            raw = self._lookup(year)
        except Exception as exc:  # collaborator failure surfaces as bad input
            raise ValidationError(f"{year}年节假日数据获取失败: {exc}") from exc
        if raw is None:
            return HolidayPlan(year=year)
        if isinstance(raw, HolidayPlan):
            return raw if raw.year is not None else raw.model_copy(update={"year": year})
        try:
            plan = HolidayPlan.model_validate(raw)
        except SchemaValidationError as exc:
            raise from_schema_error(exc) from exc
        return plan if plan.year is not None else plan.model_copy(update={"year": year})

    def plan_for(self, year: int) -> HolidayPlan:
        return self._year(year).plan

    # ------------------------------------------------------------------
    # day classification
    # ------------------------------------------------------------------
    def is_legal_holiday(self, day: date) -> bool:
        return day in self._year(day.year).legal_days

    def is_holiday(self, day: date) -> bool:
        return day in self._year(day.year).rest_days

    def is_makeup_workday(self, day: date) -> bool:
        return day in self._year(day.year).makeup_days

    def is_working_day(self, day: date) -> bool:
        if self.is_makeup_workday(day):
            return True
        return day.weekday() < 5 and not self.is_holiday(day)

    def holiday_name(self, day: date) -> str | None:
        entry = self._year(day.year).rest_days.get(day)
        if entry is None:
            return None
        return entry.name or day.isoformat()

    def working_days_between(self, start: date, end: date) -> int:
        """Working days in the inclusive range ``[start, end]``."""

        return sum(1 for day in iter_days(start, end) if self.is_working_day(day))

    def legal_holidays_between(self, start: date, end: date) -> list[date]:
        return [day for day in iter_days(start, end) if self.is_legal_holiday(day)]
