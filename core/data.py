from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from core.aggregate import DEFAULT_MIN_STOCK, numericize, to_number
from core.client import ApiError, BackendClient
from core.config import AppConfig, get_config
from core.filters import DashboardFilters, normalize_filters, to_query_params
from core import sample_data


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatasetSpec:
    endpoint: str
    list_key: Optional[str] = None
    numeric: Tuple[str, ...] = ()
    strings: Tuple[str, ...] = ()
    dates: Tuple[str, ...] = ()
    # Column the date-window filter applies to.
    date_col: Optional[str] = None


DATASETS: Dict[str, DatasetSpec] = {
    "sales": DatasetSpec(
        endpoint="/sales",
        numeric=("quantity", "total_revenue", "order_amount", "settlement_amount", "hpp"),
        strings=("order_id", "product_name", "seller_sku", "marketplace", "color", "size"),
        dates=("created_time", "delivered_time"),
        date_col="created_time",
    ),
    "advertising": DatasetSpec(
        endpoint="/advertising",
        numeric=("impressions", "clicks", "conversions", "cost", "revenue"),
        strings=("campaign_name", "campaign_type", "platform", "account_name"),
        dates=("date",),
        date_col="date",
    ),
    "products": DatasetSpec(
        endpoint="/products",
        numeric=("price", "cost", "stock_quantity", "min_stock"),
        strings=("product_code", "product_name", "category", "brand"),
    ),
    "stock_movements": DatasetSpec(
        endpoint="/stock/movements",
        numeric=("quantity",),
        strings=("product_code", "movement_type"),
        dates=("created_at",),
        date_col="created_at",
    ),
    "cash_flow": DatasetSpec(
        endpoint="/cash-flow",
        numeric=("amount",),
        strings=("type", "category", "source", "marketplace"),
        dates=("date",),
        date_col="date",
    ),
    "reinvestments": DatasetSpec(
        endpoint="/cash-flow/profit-reinvestment",
        list_key="reinvestments",
        numeric=("profit_amount", "reinvestment_amount"),
        strings=("source_profit_period", "reinvestment_type", "status"),
        dates=("date",),
        date_col="date",
    ),
    "commission_adjustments": DatasetSpec(
        endpoint="/commission-adjustments",
        numeric=("original_commission", "adjustment_amount", "final_commission", "commission_rate"),
        strings=("adjustment_type", "marketplace"),
        dates=("adjustment_date",),
        date_col="adjustment_date",
    ),
}

PLATFORM_HINTS = [
    ("tiktok", "tiktok_ads"),
    ("shopee", "shopee_ads"),
    ("facebook", "facebook_ads"),
    ("instagram", "instagram_ads"),
    ("google", "google_ads"),
]


@dataclass(frozen=True)
class DataResult:
    df: pd.DataFrame
    source: str  # "backend" | "sample"
    warning: Optional[str] = None


def extract_records(payload: Any, list_key: Optional[str] = None) -> List[dict]:
    """Pull the list of record dicts out of an unwrapped backend payload."""
    if isinstance(payload, list):
        return [r for r in payload if isinstance(r, dict)]
    if isinstance(payload, dict):
        keys = [list_key] if list_key else []
        keys += ["items", "records", "rows", "data"]
        for k in keys:
            if isinstance(payload.get(k), list):
                return [r for r in payload[k] if isinstance(r, dict)]
    return []


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col not in df.columns:
            df[col] = pd.NA
        series = df[col].astype("string").str.strip()
        df[col] = series.replace({"nan": pd.NA, "None": pd.NA, "null": pd.NA, "": pd.NA})
    return df


def _wall_clock(value: object) -> pd.Timestamp:
    if isinstance(value, str) and not value.strip():
        return pd.NaT
    if not pd.api.types.is_scalar(value) or pd.isna(value):
        return pd.NaT
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError):
        return pd.NaT
    if pd.isna(ts):
        return pd.NaT
    # Keep the local wall-clock time of offset-bearing values; days bucket on it.
    return ts.tz_localize(None) if ts.tzinfo is not None else ts


def to_timestamps(series: pd.Series) -> pd.Series:
    return pd.to_datetime(series.map(_wall_clock), errors="coerce")


def infer_platform(account_name: object) -> str:
    name = "" if account_name is None or pd.isna(account_name) else str(account_name).lower()
    for hint, platform in PLATFORM_HINTS:
        if hint in name:
            return platform
    return "other"


def _normalize_sales(df: pd.DataFrame) -> pd.DataFrame:
    df["revenue"] = df["total_revenue"].where(df["total_revenue"] != 0, df["order_amount"])
    df["category"] = df["product_name"].fillna("").str.split().str[0].replace({"": pd.NA})
    df["brand"] = df["seller_sku"].fillna("").str.split("-").str[0].replace({"": pd.NA})
    return df


def _normalize_advertising(df: pd.DataFrame) -> pd.DataFrame:
    missing = df["platform"].isna()
    if missing.any():
        df.loc[missing, "platform"] = df.loc[missing, "account_name"].map(infer_platform)
    return df


def _normalize_products(df: pd.DataFrame, raw: pd.DataFrame) -> pd.DataFrame:
    if "min_stock" in raw.columns:
        has_min = raw["min_stock"].map(lambda v: v is not None and v == v and str(v).strip() != "")
        df["min_stock"] = df["min_stock"].where(has_min, float(DEFAULT_MIN_STOCK))
    else:
        df["min_stock"] = float(DEFAULT_MIN_STOCK)
    return df


def records_to_frame(records: List[dict], dataset: str) -> pd.DataFrame:
    meta = DATASETS[dataset]
    raw = pd.DataFrame.from_records(records) if records else pd.DataFrame()
    df = raw.copy()

    if dataset == "advertising":
        date_src = pd.Series(pd.NA, index=df.index, dtype=object)
        for col in ("date", "date_range_start", "date_start"):
            if col in df.columns:
                vals = df[col].astype(object)
                date_src = vals.where(vals.notna() & (vals.astype(str).str.strip() != ""), date_src)
        df["date"] = date_src

    df = numericize(df, meta.numeric)
    df = coerce_str_safe(df, meta.strings)
    for col in meta.dates:
        if col not in df.columns:
            df[col] = pd.NaT
        df[col] = to_timestamps(df[col])

    if dataset == "sales":
        df = _normalize_sales(df)
    elif dataset == "advertising":
        df = _normalize_advertising(df)
    elif dataset == "products":
        df = _normalize_products(df, raw)
    elif dataset == "commission_adjustments":
        if "dynamic_rate_applied" not in df.columns:
            df["dynamic_rate_applied"] = False
        df["dynamic_rate_applied"] = df["dynamic_rate_applied"].map(
            lambda v: str(v).strip().lower() in {"true", "1", "yes"} if isinstance(v, str) else bool(to_number(v))
        )
    return df.reset_index(drop=True)


def _sample_frame(dataset: str) -> pd.DataFrame:
    return records_to_frame(sample_data.sample_records(dataset), dataset)


def fetch_dataset(
    dataset: str,
    filters: DashboardFilters,
    client: BackendClient,
    cfg: AppConfig,
) -> DataResult:
    """Fetch one dataset for a view; failures degrade to sample data, never raise."""
    if cfg.use_sample_data:
        return DataResult(df=_sample_frame(dataset), source="sample")

    meta = DATASETS[dataset]
    try:
        payload = client.get(meta.endpoint, params=to_query_params(filters))
    except ApiError as exc:
        logger.warning("fetching %s from %s failed: %s", dataset, meta.endpoint, exc)
        return DataResult(
            df=_sample_frame(dataset),
            source="sample",
            warning=f"{dataset}: backend unavailable, showing sample data ({type(exc).__name__})",
        )
    return DataResult(df=records_to_frame(extract_records(payload, meta.list_key), dataset), source="backend")


def apply_local_filters(dataset: str, df: pd.DataFrame, filters: DashboardFilters) -> pd.DataFrame:
    if df.empty:
        return df
    meta = DATASETS[dataset]
    out = df

    if meta.date_col and (filters.date_start or filters.date_end):
        days = out[meta.date_col].dt.normalize()
        mask = days.notna()
        if filters.date_start:
            mask &= days >= pd.Timestamp(filters.date_start)
        if filters.date_end:
            mask &= days <= pd.Timestamp(filters.date_end)
        out = out[mask]

    if filters.platform != "all" and "platform" in out.columns:
        out = out[out["platform"].fillna("").str.lower() == filters.platform.lower()]

    # Cash-flow expense rows have no marketplace.
    if filters.marketplace != "all" and "marketplace" in out.columns and dataset != "cash_flow":
        out = out[out["marketplace"].fillna("").str.lower() == filters.marketplace.lower()]

    if filters.category != "all" and "category" in out.columns and dataset in {"sales", "products"}:
        out = out[out["category"].fillna("").str.lower() == filters.category.lower()]

    return out.reset_index(drop=True)


def load_context(
    datasets: Iterable[str],
    filters: dict | DashboardFilters,
    client: Optional[BackendClient] = None,
    cfg: Optional[AppConfig] = None,
) -> Dict[str, Any]:
    filt = filters if isinstance(filters, DashboardFilters) else normalize_filters(filters)
    cfg = cfg or get_config()
    if client is None:
        # A client opened here is closed here.
        with BackendClient.from_config(cfg) as owned:
            return load_context(datasets, filt, client=owned, cfg=cfg)

    ctx: Dict[str, Any] = {"sources": {}, "warnings": []}
    for name in datasets:
        result = fetch_dataset(name, filt, client, cfg)
        ctx[name] = apply_local_filters(name, result.df, filt)
        ctx["sources"][name] = result.source
        if result.warning:
            ctx["warnings"].append(result.warning)
    return ctx


def frame(ctx: Dict[str, Any], name: str) -> pd.DataFrame:
    df = ctx.get(name)
    if isinstance(df, pd.DataFrame):
        return df.copy()
    return records_to_frame([], name)
