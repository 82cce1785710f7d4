"""Shared DataFrame helpers for the spreadsheet parsers."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Sequence

import pandas as pd

TOTAL_ROW_MARKERS = {"合计", "汇总", "总计"}


def read_table(source: Path | BinaryIO, filename: str | None = None, sheet_name: str | int | None = 0) -> pd.DataFrame:
    name = filename or (str(source) if isinstance(source, Path) else "")
    if Path(name).suffix.lower() == ".csv":
        dataframe = pd.read_csv(source, dtype=object)
    else:
        dataframe = pd.read_excel(source, sheet_name=sheet_name or 0, dtype=object)
    return normalise_columns(dataframe)


def normalise_columns(dataframe: pd.DataFrame) -> pd.DataFrame:
    renamed = {col: str(col).strip() for col in dataframe.columns}
    dataframe = dataframe.rename(columns=renamed)
    return dataframe.dropna(how="all")


def find_column(dataframe: pd.DataFrame, candidates: Iterable[str], exclude: Iterable[str] = ()) -> str | None:
    skipped = set(exclude)
    for candidate in candidates:
        for column in dataframe.columns:
            if column in skipped:
                continue
            if candidate.lower() in str(column).lower():
                return column
    return None


def map_columns(dataframe: pd.DataFrame, fields: Sequence[tuple[str, list[str]]]) -> dict[str, str]:
    """Resolve each field to a column; earlier fields claim columns first."""

    mapping: dict[str, str] = {}
    for field, keywords in fields:
        column = find_column(dataframe, keywords, exclude=mapping.values())
        if column is not None:
            mapping[field] = column
    return mapping


def clean_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.date()
    if isinstance(value, datetime):
        return value.date()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def extract_rows(dataframe: pd.DataFrame, mapping: dict[str, str], name_field: str | None = None) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for _, raw in dataframe.iterrows():
        row = {field: clean_value(raw.get(column)) for field, column in mapping.items()}
        if all(value is None for value in row.values()):
            continue
        if name_field and str(row.get(name_field) or "").strip() in TOTAL_ROW_MARKERS:
            continue
        rows.append({field: value for field, value in row.items() if value is not None})
    return rows
