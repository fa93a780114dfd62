from __future__ import annotations

from typing import Any, Dict

import altair as alt

alt.data_transformers.disable_max_rows()

# Blue ramp shared by the heatmap and its legend.
HEATMAP_COLORS = ["#dce6ff", "#c4d3ff", "#a8c1ff", "#8aabff", "#6d95ff", "#4e7eff", "#2f67ff", "#0f50ff"]


def spend_tooltip(field: str, title: str = "Spend") -> alt.Tooltip:
    return alt.Tooltip(f"{field}:Q", title=title, format="$,.0f")


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Serialize an Altair chart to a Vega-Lite spec dict for the frontend."""
    return chart.to_dict()
