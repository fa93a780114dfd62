"""
Unit tests -- Treemap (3-level) and sunburst (2-level) category hierarchies.
"""
import pytest

from spend_core.data import normalize_payload, prepare_context
from spend_core.filters import FilterSelection
from spend_core.metrics_hierarchy import build_hierarchy2, build_hierarchy3, compute_sunburst, compute_treemap


def _records():
    return normalize_payload([
        {"Level1": "Travel", "Level2": "Air", "Level3": "Domestic", "Amount": 100},
        {"Level1": "Electronics", "Level2": "Computers", "Level3": "Laptops", "Amount": 250},
        {"Level1": "Travel", "Level2": "Air", "Level3": "International", "Amount": 40},
        {"Level1": "Travel", "Level2": "Hotel", "Level3": "", "Amount": 60},
        {"Level1": "Travel", "Level2": "Air", "Level3": "Domestic", "Amount": 5},
    ])


# ── Hierarchy3 ──────────────────────────────────────────

def test_hierarchy3_shape_and_order():
    tree = build_hierarchy3(_records())
    assert [n["name"] for n in tree] == ["Travel", "Electronics"]
    travel = tree[0]
    assert [c["name"] for c in travel["children"]] == ["Air", "Hotel"]
    air = travel["children"][0]
    assert air["children"] == [
        {"name": "Domestic", "value": 105.0},
        {"name": "International", "value": 40.0},
    ]


def test_hierarchy3_totals_roll_up():
    df = _records()
    tree = build_hierarchy3(df)
    leaves = [leaf["value"] for l1 in tree for l2 in l1["children"] for leaf in l2["children"]]
    assert sum(leaves) == pytest.approx(df["amount"].sum())
    for l1 in tree:
        assert l1["value"] == pytest.approx(sum(c["value"] for c in l1["children"]))
        for l2 in l1["children"]:
            assert l2["value"] == pytest.approx(sum(c["value"] for c in l2["children"]))


def test_hierarchy3_empty_level3_becomes_leaf():
    hotel = build_hierarchy3(_records())[0]["children"][1]
    assert hotel == {"name": "Hotel", "value": 60.0, "children": [{"name": "", "value": 60.0}]}


def test_hierarchy3_empty():
    assert build_hierarchy3(normalize_payload([])) == []


def test_hierarchy3_is_deterministic():
    df = _records()
    assert build_hierarchy3(df) == build_hierarchy3(df.copy())


# ── Hierarchy2 ──────────────────────────────────────────

def test_hierarchy2():
    root = build_hierarchy2(_records())
    assert root["name"] == "Spend"
    assert root["children"] == [
        {"name": "Travel", "children": [{"name": "Air", "value": 145.0}, {"name": "Hotel", "value": 60.0}]},
        {"name": "Electronics", "children": [{"name": "Computers", "value": 250.0}]},
    ]


def test_hierarchy2_empty():
    assert build_hierarchy2(normalize_payload([])) == {"name": "Spend", "children": []}


# ── Page payloads ───────────────────────────────────────

def test_compute_treemap_respects_filters():
    df = _records()
    ctx = prepare_context({"categories": ["Electronics"]}, {"records": df})
    payload = compute_treemap(ctx["filters"], ctx)
    assert [n["name"] for n in payload["tree"]] == ["Electronics"]
    assert payload["filters"]["categories"] == ("Electronics",)


def test_compute_sunburst_no_data():
    ctx = prepare_context({}, {"records": normalize_payload([])})
    payload = compute_sunburst(FilterSelection(), ctx)
    assert payload["tree"] == [{"name": "No Data"}]
