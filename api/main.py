from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import asdict
from functools import lru_cache
import logging
import math
from datetime import date
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from api.schemas import DashboardFiltersModel, DatasetsResponse, HealthResponse
from core.client import BackendClient
from core.config import get_config
from core.data import DATASETS, load_context
from core.filters import DashboardFilters, normalize_filters
from core.metrics_advertising import compute_campaigns
from core.metrics_cashflow import compute_cash_flow, compute_reinvestments
from core.metrics_commission import compute_commissions
from core.metrics_inventory import compute_inventory
from core.metrics_performance import compute_performance
from core.metrics_roi import compute_roi
from core.metrics_sales import compute_marketplaces, compute_sales_overview


# Datasets each view fetches; views never share fetched data.
VIEW_DATASETS = {
    "sales_overview": ["sales"],
    "marketplaces": ["sales"],
    "campaigns": ["advertising"],
    "roi": ["advertising"],
    "performance": ["sales"],
    "cash_flow": ["cash_flow"],
    "reinvestments": ["reinvestments"],
    "inventory": ["products", "stock_movements"],
    "commission_adjustments": ["commission_adjustments"],
}

_cfg = get_config()
logging.basicConfig(level=getattr(logging, _cfg.log_level, logging.INFO))

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _backend.cache_info().currsize:
        logger.info("closing backend session")
        _backend().close()
        _backend.cache_clear()


app = FastAPI(title="Fashion BI Dashboard API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cfg.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


@lru_cache(maxsize=1)
def _backend() -> BackendClient:
    """One pooled backend session per process."""
    return BackendClient.from_config(get_config())


def _context(view: str, f: DashboardFilters) -> dict:
    return load_context(VIEW_DATASETS[view], f, client=_backend(), cfg=get_config())


def _error(exc: Exception) -> JSONResponse:
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
                type(pd.NaT): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


@app.get("/health", response_model=HealthResponse)
def health():
    cfg = get_config()
    return {"status": "ok", "backend_url": cfg.backend_url, "use_sample_data": cfg.use_sample_data}


@app.get("/meta/datasets", response_model=DatasetsResponse)
def meta_datasets():
    return {
        "datasets": {name: meta.endpoint for name, meta in DATASETS.items()},
        "views": VIEW_DATASETS,
    }


@app.post("/sales/overview")
def sales_overview(filters: DashboardFiltersModel, as_of: Optional[date] = Query(default=None)):
    try:
        f = _filters_from_model(filters)
        ctx = _context("sales_overview", f)
        return _json(compute_sales_overview(f, ctx, as_of=as_of))
    except Exception as exc:
        logger.exception("sales_overview failed")
        return _error(exc)


@app.post("/sales/marketplaces")
def sales_marketplaces(filters: DashboardFiltersModel):
    try:
        f = _filters_from_model(filters)
        ctx = _context("marketplaces", f)
        return _json(compute_marketplaces(f, ctx))
    except Exception as exc:
        logger.exception("sales_marketplaces failed")
        return _error(exc)


@app.post("/advertising/campaigns")
def advertising_campaigns(filters: DashboardFiltersModel):
    try:
        f = _filters_from_model(filters)
        ctx = _context("campaigns", f)
        return _json(compute_campaigns(f, ctx))
    except Exception as exc:
        logger.exception("advertising_campaigns failed")
        return _error(exc)


@app.post("/advertising/roi")
def advertising_roi(filters: DashboardFiltersModel):
    try:
        f = _filters_from_model(filters)
        ctx = _context("roi", f)
        return _json(compute_roi(f, ctx))
    except Exception as exc:
        logger.exception("advertising_roi failed")
        return _error(exc)


@app.post("/performance")
def performance(filters: DashboardFiltersModel, as_of: Optional[date] = Query(default=None)):
    try:
        f = _filters_from_model(filters)
        ctx = _context("performance", f)
        return _json(compute_performance(f, ctx, as_of=as_of))
    except Exception as exc:
        logger.exception("performance failed")
        return _error(exc)


@app.post("/cash-flow")
def cash_flow(filters: DashboardFiltersModel):
    try:
        f = _filters_from_model(filters)
        ctx = _context("cash_flow", f)
        return _json(compute_cash_flow(f, ctx))
    except Exception as exc:
        logger.exception("cash_flow failed")
        return _error(exc)


@app.post("/cash-flow/reinvestments")
def cash_flow_reinvestments(filters: DashboardFiltersModel):
    try:
        f = _filters_from_model(filters)
        ctx = _context("reinvestments", f)
        return _json(compute_reinvestments(f, ctx))
    except Exception as exc:
        logger.exception("cash_flow_reinvestments failed")
        return _error(exc)


@app.post("/inventory")
def inventory(filters: DashboardFiltersModel):
    try:
        f = _filters_from_model(filters)
        ctx = _context("inventory", f)
        return _json(compute_inventory(f, ctx))
    except Exception as exc:
        logger.exception("inventory failed")
        return _error(exc)


@app.post("/commission-adjustments")
def commission_adjustments(filters: DashboardFiltersModel):
    try:
        f = _filters_from_model(filters)
        ctx = _context("commission_adjustments", f)
        return _json(compute_commissions(f, ctx))
    except Exception as exc:
        logger.exception("commission_adjustments failed")
        return _error(exc)


@app.post("/debug")
def debug(filters: DashboardFiltersModel):
    """Row counts and data sources per dataset for the given filters."""
    try:
        f = _filters_from_model(filters)
        ctx = load_context(list(DATASETS), f, client=_backend(), cfg=get_config())
        return _json(
            {
                "filters": asdict(f),
                "rows": {name: int(len(ctx[name])) for name in DATASETS},
                "sources": ctx["sources"],
                "warnings": ctx["warnings"],
            }
        )
    except Exception as exc:
        logger.exception("debug failed")
        return _error(exc)
