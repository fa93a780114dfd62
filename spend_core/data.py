from __future__ import annotations

import enum
import json
import logging
import math
import os
import re
from dataclasses import asdict, dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from spend_core.filters import FilterSelection, apply_filters, facet_options, normalize_filters


logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get("SPEND_DATA_DIR") or Path(__file__).resolve().parents[1] / "data")
FILE_GLOBS = ("spend*.json", "spend*.csv", "spend*.txt")

CSV_DELIMITER = ","
LEADING_NUMBER = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
NESTED_FIELD = "data"

CANONICAL_COLUMNS = [
    "company",
    "invoice",
    "po_number",
    "date",
    "supplier",
    "country",
    "level1",
    "level2",
    "level3",
    "amount",
]
STRING_COLUMNS = CANONICAL_COLUMNS[:-1]

# Source field name -> canonical column. Canonical names map to themselves so
# already-normalized rows pass through unchanged.
ROW_COLUMNS = {
    "PortCo": "company",
    "Company": "company",
    "Invoice": "invoice",
    "PONo": "po_number",
    "PO Number": "po_number",
    "Date": "date",
    "Supplier": "supplier",
    "Country": "country",
    "Level1": "level1",
    "Level2": "level2",
    "Level3": "level3",
    "Amount": "amount",
    **{c: c for c in CANONICAL_COLUMNS},
}


@dataclass(frozen=True)
class SpendRecord:
    company: str = ""
    invoice: str = ""
    po_number: str = ""
    date: str = ""
    supplier: str = ""
    country: str = ""
    level1: str = ""
    level2: str = ""
    level3: str = ""
    amount: float = 0.0


class PayloadShape(enum.Enum):
    NESTED_ROWS = "nested_rows"
    NESTED_TEXT = "nested_text"
    ROWS = "rows"
    TEXT = "text"


# ---------------- Coercion helpers ----------------
def is_missing(value: object) -> bool:
    return value is None or (pd.api.types.is_scalar(value) and bool(pd.isna(value)))


def coerce_str(value: object) -> str:
    if is_missing(value):
        return ""
    return str(value)


def coerce_amount(value: object) -> float:
    """Float amount from the leading number ("12.5 USD" -> 12.5); otherwise 0."""
    if is_missing(value) or isinstance(value, bool):
        return 0.0
    try:
        if isinstance(value, str):
            match = LEADING_NUMBER.match(value)
            out = float(match.group(0)) if match else 0.0
        else:
            out = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if math.isnan(out) or math.isinf(out):
        return 0.0
    return out


def records_frame(records: Iterable[SpendRecord]) -> pd.DataFrame:
    rows = [asdict(r) for r in records]
    if not rows:
        return empty_records()
    df = pd.DataFrame(rows, columns=CANONICAL_COLUMNS)
    df["amount"] = df["amount"].astype(float)
    return df


def empty_records() -> pd.DataFrame:
    df = pd.DataFrame({c: pd.Series(dtype=object) for c in STRING_COLUMNS})
    df["amount"] = pd.Series(dtype=float)
    return df[CANONICAL_COLUMNS]


# ---------------- Normalizer ----------------
def classify_payload(payload: Any) -> PayloadShape:
    if isinstance(payload, Mapping) and NESTED_FIELD in payload:
        nested = payload[NESTED_FIELD]
        if isinstance(nested, list):
            return PayloadShape.NESTED_ROWS
        if isinstance(nested, str):
            return PayloadShape.NESTED_TEXT
    if isinstance(payload, (list, tuple)):
        return PayloadShape.ROWS
    return PayloadShape.TEXT


def record_from_row(row: object) -> SpendRecord:
    if not isinstance(row, Mapping):
        return SpendRecord()
    fields: Dict[str, object] = {}
    for key, value in row.items():
        column = ROW_COLUMNS.get(str(key))
        # First non-empty source wins when a row carries both spellings.
        if column is None:
            continue
        current = fields.get(column)
        if not is_missing(current) and not (isinstance(current, str) and current == ""):
            continue
        fields[column] = value
    return SpendRecord(
        **{c: coerce_str(fields.get(c)) for c in STRING_COLUMNS},
        amount=coerce_amount(fields.get("amount")),
    )


def parse_rows(rows: Iterable[object]) -> List[SpendRecord]:
    return [record_from_row(row) for row in rows]


def parse_csv_text(text: str) -> List[SpendRecord]:
    """Positional delimited text; the first line is a header and is discarded."""
    lines = (text or "").strip().split("\n")
    records: List[SpendRecord] = []
    for line in lines[1:]:
        values = line.split(CSV_DELIMITER)
        values += [""] * (len(CANONICAL_COLUMNS) - len(values))
        records.append(
            SpendRecord(
                **{c: values[i].strip() for i, c in enumerate(STRING_COLUMNS)},
                amount=coerce_amount(values[len(STRING_COLUMNS)]),
            )
        )
    return records


def normalize_payload(payload: Any) -> pd.DataFrame:
    """Normalize any raw payload into the canonical record frame. Never raises."""
    shape = classify_payload(payload)
    if shape is PayloadShape.NESTED_ROWS:
        records = parse_rows(payload[NESTED_FIELD])
    elif shape is PayloadShape.NESTED_TEXT:
        records = parse_csv_text(payload[NESTED_FIELD])
    elif shape is PayloadShape.ROWS:
        records = parse_rows(payload)
    else:
        if payload is None:
            text = ""
        elif isinstance(payload, bytes):
            text = payload.decode("utf-8", errors="replace")
        else:
            text = str(payload)
        records = parse_csv_text(text)
    return records_frame(records)


def parse_payload_text(text: str) -> pd.DataFrame:
    """Normalize a response body that may be JSON or delimited text."""
    try:
        payload: Any = json.loads(text)
    except ValueError:
        payload = text
    return normalize_payload(payload)


# ---------------- Formatting ----------------
def format_spend_k(value: object) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"${float(value) / 1000:.1f}K"


# ---------------- Loaders ----------------
def get_source_files() -> List[Path]:
    files: List[Path] = []
    for pattern in FILE_GLOBS:
        files.extend(DATA_DIR.glob(pattern))
    return sorted(set(files))


def file_signature(files: List[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files)


def load_spend_file(path: Path) -> pd.DataFrame:
    text = path.read_text(encoding="utf-8", errors="replace")
    if path.suffix.lower() == ".json":
        return parse_payload_text(text)
    return normalize_payload(text)


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(files_sig: Tuple[Tuple[str, float], ...]) -> Dict[str, object]:
    frames: List[pd.DataFrame] = []
    for name, _ in files_sig:
        path = Path(name)
        try:
            df = load_spend_file(path)
        except OSError:
            logger.warning("skipping unreadable spend file %s", path)
            continue
        logger.info("loaded %d spend records from %s", len(df), path.name)
        frames.append(df)

    records = pd.concat(frames, ignore_index=True) if frames else empty_records()
    return {
        "files": [Path(name).name for name, _ in files_sig],
        "records": records,
        "facets": facet_options(records),
    }


def load_dashboard_data() -> Dict[str, object]:
    files = get_source_files()
    if not files:
        logger.warning("no spend files found in %s", DATA_DIR)
        records = empty_records()
        return {"files": [], "records": records, "facets": facet_options(records)}
    return _load_dashboard_data_cached(file_signature(files))


def dashboard_data_from_payload(payload: Any) -> Dict[str, object]:
    records = normalize_payload(payload)
    return {"files": [], "records": records, "facets": facet_options(records)}


def prepare_context(filters: Optional[dict] | FilterSelection, data_ctx: Dict[str, object]) -> Dict[str, object]:
    records: pd.DataFrame = data_ctx.get("records", empty_records())
    filt = filters if isinstance(filters, FilterSelection) else normalize_filters(filters)
    filtered = apply_filters(records, filt)
    return {
        "filters": filt,
        "records": records,
        "filtered_records": filtered,
        "facets": data_ctx.get("facets") or facet_options(records),
    }
