from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import altair as alt
import pandas as pd

from spend_core.charts import HEATMAP_COLORS, spend_tooltip, to_vega_spec
from spend_core.dates import WEEK_LABELS, month_label, record_dates, week_label
from spend_core.filters import FilterSelection


ALL_CATEGORIES = "All"


def _with_buckets(df: pd.DataFrame) -> pd.DataFrame:
    """Attach month/week labels, dropping records whose date does not parse."""
    dated = df.assign(_ts=record_dates(df)).dropna(subset=["_ts"])
    if dated.empty:
        return dated.assign(month=pd.Series(dtype=object), week=pd.Series(dtype=object))
    return dated.assign(month=dated["_ts"].map(month_label), week=dated["_ts"].map(week_label))


def build_temporal_buckets(df: pd.DataFrame) -> Dict[str, Dict[str, float]]:
    """Month label -> {"Week N" -> total}; records with unparseable dates are skipped."""
    if df.empty:
        return {}
    dated = _with_buckets(df)
    out: Dict[str, Dict[str, float]] = {}
    if dated.empty:
        return out
    for (month, week), amount in dated.groupby(["month", "week"], sort=False)["amount"].sum().items():
        out.setdefault(month, {})[week] = float(amount)
    return out


def month_axis(df: pd.DataFrame) -> List[str]:
    """Distinct month labels in chronological order."""
    if df.empty:
        return []
    dates = record_dates(df).dropna().sort_values()
    return list(dict.fromkeys(month_label(ts) for ts in dates))


def compute_heatmap(filters: FilterSelection, ctx: Dict[str, Any], *, category: str = ALL_CATEGORIES) -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    category = category or ALL_CATEGORIES
    categories = [ALL_CATEGORIES] + (list(dict.fromkeys(df["level1"].tolist())) if not df.empty else [])

    scoped = df if category == ALL_CATEGORIES or df.empty else df[df["level1"] == category]
    buckets = build_temporal_buckets(scoped)
    # The month axis spans every category so switching categories keeps columns aligned.
    months = month_axis(df)

    cells = [
        [mi, wi, buckets.get(month, {}).get(week, 0.0)]
        for mi, month in enumerate(months)
        for wi, week in enumerate(WEEK_LABELS)
    ]
    # Colour scale upper bound; 100 when there is nothing to scale.
    max_value = max((c[2] for c in cells), default=100.0)

    charts: Dict[str, Any] = {}
    if cells:
        grid = pd.DataFrame(
            [{"month": months[mi], "week": WEEK_LABELS[wi], "amount": value} for mi, wi, value in cells]
        )
        heat = (
            alt.Chart(grid)
            .mark_rect()
            .encode(
                x=alt.X("month:O", title="Month", sort=months, axis=alt.Axis(labelAngle=-45)),
                y=alt.Y("week:O", title=None, sort=WEEK_LABELS),
                color=alt.Color(
                    "amount:Q",
                    title="Spend",
                    scale=alt.Scale(range=HEATMAP_COLORS, domain=[0, max_value or 1]),
                ),
                tooltip=["month", "week", spend_tooltip("amount")],
            )
            .properties(height=260)
        )
        charts["month_week_heatmap"] = to_vega_spec(heat)

    title = "Spend by Month and Week" + (f" - {category}" if category != ALL_CATEGORIES else "")
    return {
        "filters": asdict(filters),
        "title": title,
        "category": category,
        "categories": categories,
        "months": months,
        "weeks": list(WEEK_LABELS),
        "buckets": buckets,
        "cells": cells,
        "max_value": max_value,
        "charts": charts,
    }
