"""
Unit tests -- Filter selection, filtering and facet options.
"""
import pandas as pd
import pytest

from spend_core.data import normalize_payload, prepare_context
from spend_core.filters import FilterSelection, apply_filters, facet_options, normalize_filters


def _records():
    return normalize_payload([
        {"PortCo": "Acme", "Supplier": "Delta", "Country": "USA", "Level1": "Travel", "Date": "2024-01-03", "Amount": 100},
        {"PortCo": "Acme", "Supplier": "Dell", "Country": "UK", "Level1": "Electronics", "Date": "2023-06-15", "Amount": 200},
        {"PortCo": "Globex", "Supplier": "", "Country": "", "Level1": "", "Date": "not a date", "Amount": 300},
        {"PortCo": "", "Supplier": "Delta", "Country": "USA", "Level1": "Travel", "Date": "2024-03-09", "Amount": 400},
    ])


# ── normalize_filters ───────────────────────────────────

def test_normalize_filters_defaults():
    assert normalize_filters(None) == FilterSelection()
    assert normalize_filters({}).is_empty()


def test_normalize_filters_coerces_and_dedupes():
    f = normalize_filters({"companies": ["Acme", None, "Acme"], "years": ["2024", 2023, "bad", 2024]})
    assert f.companies == ("Acme",)
    assert f.years == (2024, 2023)


# ── apply_filters ───────────────────────────────────────

def test_empty_selection_returns_everything_in_order():
    df = _records()
    out = apply_filters(df, FilterSelection())
    pd.testing.assert_frame_equal(out, df)


@pytest.mark.parametrize(
    "field, column, values",
    [
        ("companies", "company", ("Acme",)),
        ("suppliers", "supplier", ("Delta",)),
        ("countries", "country", ("USA", "UK")),
        ("categories", "level1", ("Electronics",)),
    ],
)
def test_every_row_matches_active_dimension(field, column, values):
    out = apply_filters(_records(), FilterSelection(**{field: values}))
    assert not out.empty
    assert out[column].isin(values).all()


def test_dimensions_combine_with_and():
    out = apply_filters(_records(), FilterSelection(companies=("Acme",), countries=("USA",)))
    assert out["amount"].tolist() == [100.0]


def test_year_filter_uses_date_and_drops_unparseable():
    out = apply_filters(_records(), FilterSelection(years=(2024,)))
    assert out["amount"].tolist() == [100.0, 400.0]


def test_unparseable_date_kept_without_year_filter():
    out = apply_filters(_records(), FilterSelection(companies=("Globex",)))
    assert out["date"].tolist() == ["not a date"]


def test_no_match_returns_empty():
    assert apply_filters(_records(), FilterSelection(suppliers=("Nobody",))).empty


def test_filter_on_empty_records():
    df = normalize_payload([])
    assert apply_filters(df, FilterSelection(years=(2024,))).empty


# ── facet_options ───────────────────────────────────────

def test_facets_sorted_and_empties_excluded_except_company():
    facets = facet_options(_records())
    # Company facet keeps the empty value; supplier/country/category do not.
    assert facets["companies"] == ["", "Acme", "Globex"]
    assert facets["suppliers"] == ["Dell", "Delta"]
    assert facets["countries"] == ["UK", "USA"]
    assert facets["categories"] == ["Electronics", "Travel"]
    assert facets["years"] == [2023, 2024]
    assert all(isinstance(y, int) for y in facets["years"])


def test_facets_on_empty_records():
    facets = facet_options(normalize_payload(""))
    assert facets == {"companies": [], "suppliers": [], "countries": [], "categories": [], "years": []}


def test_filtering_does_not_shrink_facets():
    df = _records()
    data_ctx = {"records": df, "facets": facet_options(df)}
    unfiltered = prepare_context({}, data_ctx)
    filtered = prepare_context({"countries": ["UK"], "years": [2023]}, data_ctx)
    assert len(filtered["filtered_records"]) == 1
    assert filtered["facets"] == unfiltered["facets"]
    assert filtered["facets"]["suppliers"] == ["Dell", "Delta"]
