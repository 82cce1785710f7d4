"""Application service layer for rule snapshots and calculations."""
from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Mapping

from pydantic import ValidationError as SchemaValidationError

from maternity_backend.core.allowance import calculate_for_employee
from maternity_backend.core.calendar import HolidayCalendar
from maternity_backend.core.config import load_config
from maternity_backend.core.schema import BatchOutcome, CalculationResult, EmployeeCalculationInput
from maternity_backend.core.snapshot import RuleSnapshot, load_rule_snapshot
from maternity_backend.core.validation import from_schema_error
from maternity_backend.infrastructure import InMemoryRuleRepository, RuleRepository
from maternity_backend.workers.batch import process_batch

logger = logging.getLogger(__name__)


class RuleService:
    """Coordinates rule storage, snapshot building and calculation use cases."""

    def __init__(self, repository: RuleRepository, calendar: HolidayCalendar | None = None) -> None:
        self._repository = repository
        self._calendar = calendar
        self._snapshot: RuleSnapshot | None = None
        self._snapshot_revision = -1
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # snapshot lifecycle
    # ------------------------------------------------------------------
    def seed_defaults(self) -> None:
        data = load_config("default_rules.yaml", {}) or {}
        self._repository.replace_maternity_rows(data.get("maternity_rules") or [])
        self._repository.replace_allowance_rows(data.get("allowance_rules") or [])
        self._repository.replace_employee_rows(data.get("employees") or [])

    def current_snapshot(self) -> RuleSnapshot:
        """Snapshot for the stored rows; rebuilt only after a change."""

        with self._lock:
            revision = self._repository.revision()
            if self._snapshot is None or revision != self._snapshot_revision:
                self._snapshot = load_rule_snapshot(
                    self._repository.list_maternity_rows(),
                    self._repository.list_allowance_rows(),
                    self._repository.list_employee_rows(),
                )
                self._snapshot_revision = revision
            return self._snapshot

    def replace_maternity_rules(self, rows: Iterable[Mapping[str, Any]], *, source: str | None = None) -> RuleSnapshot:
        rows = [dict(row) for row in rows]
        load_rule_snapshot(rows, self._repository.list_allowance_rows(), self._repository.list_employee_rows())
        self._repository.replace_maternity_rows(rows)
        return self._after_change("maternity_rules", rows, source)

    def replace_allowance_rules(self, rows: Iterable[Mapping[str, Any]], *, source: str | None = None) -> RuleSnapshot:
        rows = [dict(row) for row in rows]
        load_rule_snapshot(self._repository.list_maternity_rows(), rows, self._repository.list_employee_rows())
        self._repository.replace_allowance_rows(rows)
        return self._after_change("allowance_rules", rows, source)

    def replace_employees(self, rows: Iterable[Mapping[str, Any]], *, source: str | None = None) -> RuleSnapshot:
        rows = [dict(row) for row in rows]
        load_rule_snapshot(self._repository.list_maternity_rows(), self._repository.list_allowance_rows(), rows)
        self._repository.replace_employee_rows(rows)
        return self._after_change("employees", rows, source)

    def _after_change(self, kind: str, rows: list[dict[str, Any]], source: str | None) -> RuleSnapshot:
        if source:
            self._repository.record_upload(source, kind, len(rows))
        snapshot = self.current_snapshot()
        logger.info("%s replaced with %d rows, snapshot now %s", kind, len(rows), snapshot.version)
        return snapshot

    def list_uploads(self) -> list[dict[str, object]]:
        return self._repository.list_uploads()

    def holiday_calendar(self) -> HolidayCalendar:
        if self._calendar is None:
            self._calendar = HolidayCalendar.from_config()
        return self._calendar

    # ------------------------------------------------------------------
    # calculations
    # ------------------------------------------------------------------
    def calculate(self, payload: Mapping[str, Any] | EmployeeCalculationInput) -> CalculationResult:
        if isinstance(payload, EmployeeCalculationInput):
            employee_input = payload
        else:
            try:
                employee_input = EmployeeCalculationInput.model_validate(dict(payload))
            except SchemaValidationError as exc:
                raise from_schema_error(exc) from exc
        return calculate_for_employee(self.current_snapshot(), employee_input, self.holiday_calendar())

    def calculate_batch(self, rows: Iterable[Mapping[str, Any]], *, max_workers: int | None = None) -> BatchOutcome:
        snapshot = self.current_snapshot()
        return process_batch(rows, snapshot, self.holiday_calendar(), max_workers=max_workers)

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._repository.reset()
        self._calendar = None
        self.seed_defaults()


_repository = InMemoryRuleRepository()
_service = RuleService(_repository)
_service.seed_defaults()


def get_rule_service() -> RuleService:
    """Return the singleton rule service for the process."""

    return _service


def reset_rule_state() -> None:
    """Restore the seeded rule tables (used in tests)."""

    _service.reset()
