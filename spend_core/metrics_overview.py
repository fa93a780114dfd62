from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from spend_core.filters import FilterSelection
from spend_core.metrics_geo import compute_geo
from spend_core.metrics_hierarchy import compute_sunburst, compute_treemap
from spend_core.metrics_summary import compute_summary
from spend_core.metrics_temporal import ALL_CATEGORIES, compute_heatmap


def _without_filters(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if k != "filters"}


def compute_overview(
    filters: FilterSelection,
    ctx: Dict[str, Any],
    *,
    category_level: str = "level1",
    heatmap_category: str = ALL_CATEGORIES,
) -> Dict[str, Any]:
    """Everything the dashboard page renders for one filter selection."""
    records: pd.DataFrame = ctx.get("records", pd.DataFrame())
    filtered: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    return {
        "filters": asdict(filters),
        "counts": {"loaded": int(len(records)), "filtered": int(len(filtered))},
        "facets": ctx.get("facets", {}),
        "summary": _without_filters(compute_summary(filters, ctx)),
        "treemap": _without_filters(compute_treemap(filters, ctx)),
        "sunburst": _without_filters(compute_sunburst(filters, ctx)),
        "geo": _without_filters(compute_geo(filters, ctx, category_level=category_level)),
        "heatmap": _without_filters(compute_heatmap(filters, ctx, category=heatmap_category)),
    }
