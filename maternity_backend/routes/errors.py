from __future__ import annotations

from fastapi import HTTPException

from maternity_backend.core.validation import (
    CalculationError,
    ComputationError,
    RuleNotFoundError,
    ValidationError,
)


def to_http_error(exc: CalculationError) -> HTTPException:
    if isinstance(exc, ValidationError):
        status_code = 400
    elif isinstance(exc, RuleNotFoundError):
        status_code = 404
    elif isinstance(exc, ComputationError):
        status_code = 422
    else:
        status_code = 500
    return HTTPException(status_code=status_code, detail=exc.messages)
