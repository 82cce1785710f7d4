from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from maternity_backend.core.labels import display_label
from maternity_backend.core.schema import BatchError, BatchOutcome, CalculationResult

RESULT_COLUMNS = [
    "姓名",
    "工号",
    "城市",
    "开始日期",
    "产假结束日期",
    "产假天数",
    "享受生育津贴天数",
    "日津贴",
    "政府发放金额",
    "员工应领取金额",
    "需补差金额",
    "个人社保缴费",
    "发放方式",
    "规则版本",
]

BATCH_COLUMNS = ["行号", *RESULT_COLUMNS, "错误类型", "错误信息"]


def result_records(results: Iterable[CalculationResult]) -> list[dict]:
    records = []
    for result in results:
        period = result.calculated_period
        records.append(
            {
                "姓名": result.employee_name or "",
                "工号": result.employee_id or "",
                "城市": result.city,
                "开始日期": period.start_date.isoformat(),
                "产假结束日期": period.end_date.isoformat(),
                "产假天数": result.total_maternity_days,
                "享受生育津贴天数": result.total_allowance_eligible_days,
                "日津贴": f"{result.daily_allowance:.2f}",
                "政府发放金额": f"{result.government_paid_amount:.2f}",
                "员工应领取金额": f"{result.employee_receivable:.2f}",
                "需补差金额": f"{result.company_supplement:.2f}",
                "个人社保缴费": f"{result.personal_social_security:.2f}",
                "发放方式": display_label(result.payout_method),
                "规则版本": result.snapshot_version or result.rule_version,
            }
        )
    return records


def error_records(errors: Iterable[BatchError]) -> list[dict]:
    return [
        {
            "行号": error.row_index + 1,
            "姓名": error.identity.employee_name or "",
            "工号": error.identity.employee_id or "",
            "错误类型": error.error_type,
            "错误信息": "；".join(error.errors),
        }
        for error in errors
    ]


def render_allowance_csv(results: Iterable[CalculationResult]) -> str:
    df = pd.DataFrame(result_records(results), columns=RESULT_COLUMNS)
    return df.to_csv(index=False)


def batch_records(outcome: BatchOutcome) -> list[dict]:
    """Results and failed rows together, in original row order."""

    records = []
    for index, record in zip(outcome.result_rows, result_records(outcome.results)):
        records.append({**record, "行号": index + 1, "错误类型": "", "错误信息": ""})
    records.extend(error_records(outcome.errors))
    blank = dict.fromkeys(BATCH_COLUMNS, "")
    return sorted(({**blank, **record} for record in records), key=lambda record: record["行号"])


def render_batch_csv(outcome: BatchOutcome) -> str:
    df = pd.DataFrame(batch_records(outcome), columns=BATCH_COLUMNS)
    return df.to_csv(index=False)


def export_allowance_csv(path: Path, results: Iterable[CalculationResult]) -> Path:
    df = pd.DataFrame(result_records(results), columns=RESULT_COLUMNS)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False, encoding="utf-8-sig")
    return path
