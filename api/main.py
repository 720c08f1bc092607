from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import MetaCategoriesResponse, ProjectFiltersModel, ProjectsResponse
from core.data import LoadError
from core.filters import ProjectFilters, normalize_filters
from core.metrics_overview import compute_overview, table_rows
from core.store import RecordStore


app = FastAPI(title="Market CMS Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: ProjectFiltersModel) -> ProjectFilters:
    return normalize_filters(model.model_dump())


def _session_store(filters: ProjectFilters | None = None) -> RecordStore:
    # Request-local store over the memoised dataset.
    store = RecordStore().load()
    if filters is not None:
        store.apply_filter(filters.category)
    return store


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
            },
        )
    )


def _load_error(exc: LoadError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": str(exc), "type": "LoadError"})


@app.get("/meta/categories", response_model=MetaCategoriesResponse)
def meta_categories():
    try:
        store = _session_store()
        return _json({"categories": store.category_options()})
    except LoadError as exc:
        logger.exception("meta_categories failed to load data")
        return _load_error(exc)


@app.post("/overview")
def overview(filters: ProjectFiltersModel):
    try:
        f = _filters_from_model(filters)
        store = _session_store(f)
        return _json(compute_overview(f, store))
    except LoadError as exc:
        logger.exception("overview failed to load data")
        return _load_error(exc)


@app.post("/projects", response_model=ProjectsResponse)
def projects(filters: ProjectFiltersModel):
    try:
        store = _session_store(_filters_from_model(filters))
        return _json({"rows": table_rows(store.active_view, store.fields)})
    except LoadError as exc:
        logger.exception("projects failed to load data")
        return _load_error(exc)


@app.post("/export")
def export_view(filters: ProjectFiltersModel):
    try:
        store = _session_store(_filters_from_model(filters))
    except LoadError as exc:
        logger.exception("export failed to load data")
        return _load_error(exc)
    csv_bytes = store.active_view.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=projects.csv"})
