from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple

import altair as alt
import pandas as pd

from spend_core.charts import spend_tooltip, to_vega_spec
from spend_core.filters import FilterSelection


CATEGORY_LEVELS = ("level1", "level2", "level3")

# Country -> (longitude, latitude) used to place pie markers on the world map.
COUNTRY_COORDINATES: Dict[str, Tuple[float, float]] = {
    "USA": (-95.7129, 37.0902),
    "UK": (-3.436, 55.3781),
    "France": (2.2137, 46.2276),
    "Germany": (10.4515, 51.1657),
    "Japan": (138.2529, 36.2048),
    "China": (104.1954, 35.8617),
    "India": (78.9629, 20.5937),
    "Canada": (-106.3468, 56.1304),
    "Australia": (133.7751, -25.2744),
    "Brazil": (-51.9253, -14.235),
    "Mexico": (-102.5528, 23.6345),
    "Spain": (-3.7492, 40.4637),
    "Italy": (12.5674, 41.8719),
    "Denmark": (9.5018, 56.2639),
    "Netherlands": (5.2913, 52.1326),
    "Switzerland": (8.2275, 46.8182),
    "Sweden": (18.6435, 60.1282),
    "Norway": (8.4689, 60.472),
    "New Zealand": (174.886, -40.9006),
    "Thailand": (100.9925, 15.87),
    "Argentina": (-63.6167, -38.4161),
    "Belgium": (4.4699, 50.5039),
    "Singapore": (103.8198, 1.3521),
    "South Korea": (127.078, 37.5665),
    "Malaysia": (101.6964, 4.2105),
    "Chile": (-71.543, -35.6751),
    "Austria": (14.5501, 47.5162),
    "Poland": (19.1451, 51.9194),
    "Portugal": (-8.2245, 39.3999),
    "Greece": (21.8243, 39.0742),
}


def normalize_category_level(value: Optional[str]) -> str:
    level = (value or "level1").strip().lower()
    return level if level in CATEGORY_LEVELS else "level1"


def country_coordinates(country: str) -> Optional[List[float]]:
    coords = COUNTRY_COORDINATES.get(country)
    return list(coords) if coords else None


def build_geo_category(df: pd.DataFrame, category_level: str = "level1") -> Dict[str, Dict[str, Any]]:
    """Country -> {"total", "categories": {category -> total}} in first-occurrence order.

    Countries without coordinates are reported like any other.
    """
    if category_level not in CATEGORY_LEVELS:
        raise ValueError(f"category_level must be one of {CATEGORY_LEVELS}, got {category_level!r}")
    if df.empty:
        return {}

    out: Dict[str, Dict[str, Any]] = {}
    grouped = df.groupby(["country", category_level], sort=False, dropna=False)["amount"].sum()
    for (country, category), amount in grouped.items():
        entry = out.setdefault(country, {"total": 0.0, "categories": {}})
        entry["categories"][category] = float(amount)
        entry["total"] += float(amount)
    return out


def compute_geo(filters: FilterSelection, ctx: Dict[str, Any], *, category_level: str = "level1") -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    category_level = normalize_category_level(category_level)
    geo = build_geo_category(df, category_level)

    countries = [
        {
            "country": country,
            "total": entry["total"],
            "coordinates": country_coordinates(country),
            "categories": [{"name": name, "value": value} for name, value in entry["categories"].items()],
        }
        for country, entry in geo.items()
    ]
    legend = list(dict.fromkeys(df[category_level].tolist())) if not df.empty else []

    charts: Dict[str, Any] = {}
    if geo:
        long_df = pd.DataFrame(
            [
                {"country": country, "category": name, "amount": value}
                for country, entry in geo.items()
                for name, value in entry["categories"].items()
            ]
        )
        bar = (
            alt.Chart(long_df)
            .mark_bar()
            .encode(
                x=alt.X("country:N", title="Country", sort="-y"),
                y=alt.Y("amount:Q", stack="zero", title="Spend", axis=alt.Axis(format="$~s")),
                color=alt.Color("category:N", title="Category"),
                tooltip=["country", "category", spend_tooltip("amount")],
            )
            .properties(height=300)
        )
        charts["country_breakdown"] = to_vega_spec(bar)

    return {
        "filters": asdict(filters),
        "category_level": category_level,
        "countries": countries,
        "legend": legend,
        "charts": charts,
    }
