"""Infrastructure layer for rule table persistence."""
from __future__ import annotations

from copy import deepcopy
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Iterable, Protocol

from maternity_backend.domain import RuleStoreState, UploadRecord


class RuleRepository(Protocol):
    """Persistence contract for raw rule and employee rows."""

    def revision(self) -> int: ...

    def list_maternity_rows(self) -> list[dict[str, Any]]: ...

    def list_allowance_rows(self) -> list[dict[str, Any]]: ...

    def list_employee_rows(self) -> list[dict[str, Any]]: ...

    def replace_maternity_rows(self, rows: Iterable[dict[str, Any]]) -> None: ...

    def replace_allowance_rows(self, rows: Iterable[dict[str, Any]]) -> None: ...

    def replace_employee_rows(self, rows: Iterable[dict[str, Any]]) -> None: ...

    def record_upload(self, filename: str, kind: str, rows: int) -> None: ...

    def list_uploads(self) -> list[dict[str, object]]: ...

    def reset(self) -> None: ...


class InMemoryRuleRepository:
    """Simple in-memory repository for fast iteration and tests."""

    def __init__(self) -> None:
        self._state = RuleStoreState()

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def revision(self) -> int:
        return self._state.revision

    def list_maternity_rows(self) -> list[dict[str, Any]]:
        return deepcopy(self._state.maternity_rows)

    def list_allowance_rows(self) -> list[dict[str, Any]]:
        return deepcopy(self._state.allowance_rows)

    def list_employee_rows(self) -> list[dict[str, Any]]:
        return deepcopy(self._state.employee_rows)

    def list_uploads(self) -> list[dict[str, object]]:
        return [asdict(record) for record in self._state.uploads]

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def replace_maternity_rows(self, rows: Iterable[dict[str, Any]]) -> None:
        self._state.maternity_rows = [dict(row) for row in rows]
        self._state.revision += 1

    def replace_allowance_rows(self, rows: Iterable[dict[str, Any]]) -> None:
        self._state.allowance_rows = [dict(row) for row in rows]
        self._state.revision += 1

    def replace_employee_rows(self, rows: Iterable[dict[str, Any]]) -> None:
        self._state.employee_rows = [dict(row) for row in rows]
        self._state.revision += 1

    def record_upload(self, filename: str, kind: str, rows: int) -> None:
        uploaded_at = datetime.now(timezone.utc).isoformat()
        self._state.uploads.append(UploadRecord(filename=filename, kind=kind, rows=rows, uploaded_at=uploaded_at))

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        revision = self._state.revision
        self._state = RuleStoreState(revision=revision + 1)
