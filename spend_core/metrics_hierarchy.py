from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from spend_core.filters import FilterSelection


def _group_totals(df: pd.DataFrame, keys: List[str]) -> pd.Series:
    # sort=False keeps groups in first-occurrence order so charts stay stable.
    return df.groupby(keys, sort=False, dropna=False)["amount"].sum()


def build_hierarchy3(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Level1 -> Level2 -> Level3 spend tree (treemap nodes)."""
    if df.empty:
        return []

    tree: Dict[str, Dict[str, Dict[str, float]]] = {}
    for (level1, level2, level3), amount in _group_totals(df, ["level1", "level2", "level3"]).items():
        tree.setdefault(level1, {}).setdefault(level2, {})[level3] = float(amount)

    nodes: List[Dict[str, Any]] = []
    for level1, level2s in tree.items():
        children = []
        for level2, level3s in level2s.items():
            leaves = [{"name": level3, "value": amount} for level3, amount in level3s.items()]
            children.append({"name": level2, "value": sum(leaf["value"] for leaf in leaves), "children": leaves})
        nodes.append({"name": level1, "value": sum(child["value"] for child in children), "children": children})
    return nodes


def build_hierarchy2(df: pd.DataFrame) -> Dict[str, Any]:
    """Level1 -> Level2 spend rooted at a single "Spend" node (sunburst)."""
    if df.empty:
        return {"name": "Spend", "children": []}

    tree: Dict[str, List[Dict[str, Any]]] = {}
    for (level1, level2), amount in _group_totals(df, ["level1", "level2"]).items():
        tree.setdefault(level1, []).append({"name": level2, "value": float(amount)})
    return {
        "name": "Spend",
        "children": [{"name": level1, "children": children} for level1, children in tree.items()],
    }


def compute_treemap(filters: FilterSelection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    return {"filters": asdict(filters), "tree": build_hierarchy3(df)}


def compute_sunburst(filters: FilterSelection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    if df.empty:
        return {"filters": asdict(filters), "tree": [{"name": "No Data"}]}
    return {"filters": asdict(filters), "tree": [build_hierarchy2(df)]}
