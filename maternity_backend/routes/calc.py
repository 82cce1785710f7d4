from __future__ import annotations

from io import BytesIO
from pathlib import Path

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import Response

from maternity_backend.application import get_rule_service
from maternity_backend.core.schema import BatchOutcome
from maternity_backend.core.validation import CalculationError
from maternity_backend.exporters.allowance_csv import render_batch_csv
from maternity_backend.extractors import employee_sheet
from maternity_backend.routes.errors import to_http_error

router = APIRouter(prefix="/calc", tags=["calculation"])


def _rows_from(payload: dict) -> list[dict]:
    rows = payload.get("rows")
    if not isinstance(rows, list) or not rows:
        raise HTTPException(status_code=400, detail="rows is required")
    return rows


def _batch_body(outcome: BatchOutcome) -> dict:
    return {
        "results": [result.model_dump(mode="json") for result in outcome.results],
        "result_rows": outcome.result_rows,
        "errors": [error.model_dump(mode="json") for error in outcome.errors],
    }


@router.post("")
async def calculate(payload: dict) -> dict:
    service = get_rule_service()
    try:
        result = service.calculate(payload)
    except CalculationError as exc:
        raise to_http_error(exc) from exc
    return result.model_dump(mode="json")


@router.post("/batch")
async def calculate_batch(payload: dict) -> dict:
    rows = _rows_from(payload)
    outcome = get_rule_service().calculate_batch(rows)
    return _batch_body(outcome)


@router.post("/batch/upload")
async def calculate_batch_upload(file: UploadFile = File(...)) -> dict:
    """Run a batch from an uploaded employee sheet."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="Uploaded file must have a filename")

    safe_name = Path(file.filename).name
    try:
        content = await file.read()
    finally:
        await file.close()

    try:
        parsed = employee_sheet.parse(BytesIO(content), filename=safe_name)
    except CalculationError as exc:
        raise to_http_error(exc) from exc

    outcome = get_rule_service().calculate_batch(parsed.rows)
    body = _batch_body(outcome)
    body["filename"] = safe_name
    return body


@router.post("/batch/export")
async def export_batch(payload: dict) -> Response:
    rows = _rows_from(payload)
    outcome = get_rule_service().calculate_batch(rows)
    content = render_batch_csv(outcome)
    return Response(
        content=content.encode("utf-8-sig"),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": 'attachment; filename="maternity_allowance.csv"',
            "X-Batch-Errors": str(len(outcome.errors)),
        },
    )
