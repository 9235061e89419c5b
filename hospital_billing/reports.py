"""
Tabular views of bills and claims using pandas.
"""

from typing import Iterable

import pandas as pd

from .claims import ClaimRecord
from .models import Bill

BILL_COLUMNS = [
    "line_number", "code", "description", "category",
    "unit_price", "quantity", "line_total", "incurred_at",
]


def bill_to_frame(bill: Bill) -> pd.DataFrame:
    """
    One row per bill line item.

    Amounts are converted to floats for display; the Bill itself remains the
    authoritative Decimal record.
    """
    rows = [
        {
            "line_number": line.line_number,
            "code": line.code_id,
            "description": line.description,
            "category": line.category,
            "unit_price": float(line.unit_price),
            "quantity": float(line.quantity),
            "line_total": float(line.line_total),
            "incurred_at": line.incurred_at,
        }
        for line in bill.line_items
    ]
    return pd.DataFrame(rows, columns=BILL_COLUMNS)


def category_summary(bill: Bill) -> pd.DataFrame:
    """Line count and subtotal per category, largest subtotal first."""
    df = bill_to_frame(bill)
    summary = (
        df.groupby("category", sort=False)
        .agg(lines=("line_number", "count"), subtotal=("line_total", "sum"))
        .reset_index()
        .sort_values("subtotal", ascending=False, kind="stable")
        .reset_index(drop=True)
    )
    summary["subtotal"] = summary["subtotal"].round(2)
    return summary


def claims_to_frame(records: Iterable[ClaimRecord]) -> pd.DataFrame:
    """One row per claim snapshot."""
    rows = [
        {
            "claim_id": record.claim_id,
            "patient_id": record.patient_id,
            "bill_id": record.bill_id,
            "status": record.status.value,
            "provider_type": record.result.provider_type,
            "grand_total": float(record.result.grand_total),
            "covered_amount": float(record.result.covered_amount),
            "patient_payable": float(record.result.patient_payable),
        }
        for record in records
    ]
    return pd.DataFrame(rows, columns=[
        "claim_id", "patient_id", "bill_id", "status", "provider_type",
        "grand_total", "covered_amount", "patient_payable",
    ])
