from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, Literal

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response

from spend_api.schemas import FilterSelectionModel
from spend_core.data import (
    CANONICAL_COLUMNS,
    classify_payload,
    dashboard_data_from_payload,
    load_dashboard_data,
    prepare_context,
)
from spend_core.filters import FilterSelection, normalize_filters
from spend_core.metrics_geo import compute_geo
from spend_core.metrics_hierarchy import compute_sunburst, compute_treemap
from spend_core.metrics_overview import compute_overview
from spend_core.metrics_summary import compute_summary
from spend_core.metrics_temporal import ALL_CATEGORIES, compute_heatmap


app = FastAPI(title="Spend Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

CategoryLevel = Literal["level1", "level2", "level3"]


def _filters_from_model(model: FilterSelectionModel) -> FilterSelection:
    return normalize_filters(model.model_dump())


def _context(filters: FilterSelectionModel) -> tuple[FilterSelection, Dict[str, Any]]:
    f = _filters_from_model(filters)
    return f, prepare_context(f, load_dashboard_data())


def _error(name: str, exc: Exception) -> JSONResponse:
    logger.exception("%s failed", name)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


@app.get("/meta/facets")
def meta_facets():
    try:
        data_ctx = load_dashboard_data()
        return _json(data_ctx.get("facets", {}))
    except Exception as exc:
        return _error("meta_facets", exc)


@app.get("/meta/records")
def meta_records():
    try:
        data_ctx = load_dashboard_data()
        records: pd.DataFrame = data_ctx.get("records", pd.DataFrame())
        return _json({"files": data_ctx.get("files", []), "record_count": int(len(records)), "columns": CANONICAL_COLUMNS})
    except Exception as exc:
        return _error("meta_records", exc)


@app.post("/normalize")
async def normalize(request: Request):
    """Normalize an arbitrary JSON or delimited-text body into canonical records."""
    try:
        body = (await request.body()).decode("utf-8", errors="replace")
        try:
            payload: Any = json.loads(body)
        except ValueError:
            payload = body
        data_ctx = dashboard_data_from_payload(payload)
        records: pd.DataFrame = data_ctx["records"]
        return _json(
            {
                "shape": classify_payload(payload).value,
                "record_count": int(len(records)),
                "records": records.to_dict(orient="records"),
                "facets": data_ctx["facets"],
            }
        )
    except Exception as exc:
        return _error("normalize", exc)


@app.post("/summary")
def summary(filters: FilterSelectionModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_summary(f, ctx))
    except Exception as exc:
        return _error("summary", exc)


@app.post("/treemap")
def treemap(filters: FilterSelectionModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_treemap(f, ctx))
    except Exception as exc:
        return _error("treemap", exc)


@app.post("/sunburst")
def sunburst(filters: FilterSelectionModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_sunburst(f, ctx))
    except Exception as exc:
        return _error("sunburst", exc)


@app.post("/geo")
def geo(filters: FilterSelectionModel, category_level: CategoryLevel = Query(default="level1")):
    try:
        f, ctx = _context(filters)
        return _json(compute_geo(f, ctx, category_level=category_level))
    except Exception as exc:
        return _error("geo", exc)


@app.post("/heatmap")
def heatmap(filters: FilterSelectionModel, category: str = Query(default=ALL_CATEGORIES)):
    try:
        f, ctx = _context(filters)
        return _json(compute_heatmap(f, ctx, category=category))
    except Exception as exc:
        return _error("heatmap", exc)


@app.post("/overview")
def overview(
    filters: FilterSelectionModel,
    category_level: CategoryLevel = Query(default="level1"),
    heatmap_category: str = Query(default=ALL_CATEGORIES),
):
    try:
        f, ctx = _context(filters)
        return _json(compute_overview(f, ctx, category_level=category_level, heatmap_category=heatmap_category))
    except Exception as exc:
        return _error("overview", exc)


@app.post("/export/{page}")
def export_page(page: str, filters: FilterSelectionModel):
    f, ctx = _context(filters)
    if page == "records":
        export_df = ctx.get("records")
    elif page in {"filtered", "overview"}:
        export_df = ctx.get("filtered_records")
    else:
        export_df = pd.DataFrame(columns=CANONICAL_COLUMNS)

    if export_df is None or not hasattr(export_df, "to_csv"):
        export_df = pd.DataFrame(columns=CANONICAL_COLUMNS)
    filename = f"{page}.csv"
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
