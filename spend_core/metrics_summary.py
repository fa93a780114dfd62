from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from spend_core.data import format_spend_k
from spend_core.filters import FilterSelection


def compute_summary_metrics(df: pd.DataFrame) -> Dict[str, Any]:
    """KPI card values for the given records.

    Distinct counts include the empty string as a value (unlike facet options).
    """
    if df.empty:
        return {
            "total_spend": 0.0,
            "supplier_count": 0,
            "transaction_count": 0,
            "po_count": 0,
            "pr_count": 0,
            "invoice_count": 0,
        }
    count = int(len(df))
    return {
        "total_spend": float(df["amount"].sum()),
        "supplier_count": int(df["supplier"].nunique()),
        "transaction_count": count,
        "po_count": int(df["po_number"].nunique()),
        # No PR identifier in the feed; one request per transaction.
        "pr_count": count,
        "invoice_count": int(df["invoice"].nunique()),
    }


def compute_summary(filters: FilterSelection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    kpis = compute_summary_metrics(df)
    cards = [
        {"label": "Spend", "value": kpis["total_spend"], "display": format_spend_k(kpis["total_spend"])},
        {"label": "Suppliers", "value": kpis["supplier_count"], "display": f"{kpis['supplier_count']:,}"},
        {"label": "Transactions", "value": kpis["transaction_count"], "display": f"{kpis['transaction_count']:,}"},
        {"label": "PO Count", "value": kpis["po_count"], "display": f"{kpis['po_count']:,}"},
        {"label": "PR Count", "value": kpis["pr_count"], "display": f"{kpis['pr_count']:,}"},
        {"label": "Invoice Count", "value": kpis["invoice_count"], "display": f"{kpis['invoice_count']:,}"},
    ]
    return {"filters": asdict(filters), "kpis": kpis, "cards": cards}
