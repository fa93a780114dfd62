from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from spend_core.dates import record_years


# Filter dimension -> canonical record column. "years" is derived from "date".
DIMENSION_COLUMNS: Dict[str, str] = {
    "companies": "company",
    "suppliers": "supplier",
    "countries": "country",
    "categories": "level1",
}


@dataclass(frozen=True)
class FilterSelection:
    companies: Tuple[str, ...] = ()
    suppliers: Tuple[str, ...] = ()
    countries: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    years: Tuple[int, ...] = ()

    def is_empty(self) -> bool:
        return not any((self.companies, self.suppliers, self.countries, self.categories, self.years))


def _as_str_tuple(values: Optional[Iterable[object]]) -> Tuple[str, ...]:
    if not values:
        return ()
    out: List[str] = []
    for v in values:
        if v is None:
            continue
        s = str(v)
        if s not in out:
            out.append(s)
    return tuple(out)


def _as_int_tuple(values: Optional[Iterable[object]]) -> Tuple[int, ...]:
    if not values:
        return ()
    out: List[int] = []
    for v in values:
        try:
            year = int(v)
        except (TypeError, ValueError):
            continue
        if year not in out:
            out.append(year)
    return tuple(out)


def normalize_filters(raw: Optional[dict]) -> FilterSelection:
    raw = raw or {}
    return FilterSelection(
        companies=_as_str_tuple(raw.get("companies")),
        suppliers=_as_str_tuple(raw.get("suppliers")),
        countries=_as_str_tuple(raw.get("countries")),
        categories=_as_str_tuple(raw.get("categories")),
        years=_as_int_tuple(raw.get("years")),
    )


def apply_filters(records: pd.DataFrame, selection: FilterSelection) -> pd.DataFrame:
    """Return the records accepted by every active dimension, in input order.

    Records with an unparseable date are dropped only while a year filter is active.
    """
    if records.empty or selection.is_empty():
        return records

    mask = pd.Series(True, index=records.index)
    for dimension, column in DIMENSION_COLUMNS.items():
        accepted = getattr(selection, dimension)
        if accepted:
            mask &= records[column].isin(set(accepted))

    if selection.years:
        years = record_years(records)
        mask &= years.isin(set(selection.years)).fillna(False).astype(bool)

    return records[mask]


def facet_options(records: pd.DataFrame) -> Dict[str, list]:
    """Distinct selectable values per dimension over the unfiltered records."""
    if records.empty:
        return {"companies": [], "suppliers": [], "countries": [], "categories": [], "years": []}

    def distinct(column: str, *, drop_empty: bool) -> List[str]:
        values = records[column].astype(str)
        if drop_empty:
            values = values[values != ""]
        return sorted(values.unique().tolist())

    years = record_years(records).dropna()
    return {
        "companies": distinct("company", drop_empty=False),
        "suppliers": distinct("supplier", drop_empty=True),
        "countries": distinct("country", drop_empty=True),
        "categories": distinct("level1", drop_empty=True),
        "years": sorted(int(y) for y in years.unique()),
    }
