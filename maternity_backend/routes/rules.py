from __future__ import annotations

from io import BytesIO
from pathlib import Path

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from maternity_backend.application import get_rule_service
from maternity_backend.core.validation import CalculationError
from maternity_backend.extractors import rule_sheet
from maternity_backend.routes.errors import to_http_error

router = APIRouter(prefix="/rules", tags=["rules"])


@router.get("")
async def get_rules() -> dict:
    snapshot = get_rule_service().current_snapshot()
    return {
        "version": snapshot.version,
        "cities": snapshot.cities(),
        "maternity_rules": [rule.model_dump(mode="json") for rule in snapshot.maternity_rules],
        "allowance_rules": [rule.model_dump(mode="json") for rule in snapshot.allowance_rules],
        "employees": [emp.model_dump(mode="json") for emp in snapshot.employees],
    }


@router.get("/uploads")
async def list_rule_uploads() -> dict:
    return {"items": get_rule_service().list_uploads()}


@router.post("/upload")
async def upload_rules(file: UploadFile = File(...), kind: str | None = Form(default=None)) -> dict:
    """Replace one rule table with the contents of an uploaded sheet."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="Uploaded file must have a filename")

    safe_name = Path(file.filename).name
    try:
        content = await file.read()
    finally:
        await file.close()

    service = get_rule_service()
    try:
        parsed = rule_sheet.parse(BytesIO(content), filename=safe_name, kind=kind)
        if parsed.kind == "maternity_rules":
            snapshot = service.replace_maternity_rules(parsed.rows, source=safe_name)
        elif parsed.kind == "allowance_rules":
            snapshot = service.replace_allowance_rules(parsed.rows, source=safe_name)
        else:
            snapshot = service.replace_employees(parsed.rows, source=safe_name)
    except CalculationError as exc:
        raise to_http_error(exc) from exc

    return {"kind": parsed.kind, "rows": len(parsed.rows), "version": snapshot.version}
