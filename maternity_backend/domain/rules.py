"""Domain entities for the stored rule tables."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class UploadRecord:
    """One accepted rule or employee sheet upload."""

    filename: str
    kind: str
    rows: int
    uploaded_at: str


@dataclass(slots=True)
class RuleStoreState:
    """Raw rule rows as stored, before snapshot normalisation."""

    maternity_rows: list[dict[str, Any]] = field(default_factory=list)
    allowance_rows: list[dict[str, Any]] = field(default_factory=list)
    employee_rows: list[dict[str, Any]] = field(default_factory=list)
    uploads: list[UploadRecord] = field(default_factory=list)
    revision: int = 0
