from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from core.aggregate import growth_pct, key_series, records, safe_div, safe_ratio, target_status
from core.data import frame
from core.filters import DashboardFilters


PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_MARKETPLACE = "TikTok Shop"
SCORE_CATEGORIES = ["revenue", "operations", "customer", "product", "marketplace"]
MAX_TARGET_RATIO = 1.5

# id, name, target, unit, category
KPI_DEFINITIONS = [
    ("revenue", "Total Revenue", 100_000_000, "IDR", "revenue"),
    ("orders", "Total Orders", 1_000, "orders", "operations"),
    ("aov", "Avg Order Value", 150_000, "IDR", "customer"),
    ("fulfillment", "Fulfillment Rate", 95, "%", "operations"),
    ("product_performance", "Revenue per Product", 5_000_000, "IDR", "product"),
    ("marketplace_count", "Active Marketplaces", 4, "platforms", "marketplace"),
]


def split_periods(df: pd.DataFrame, period: str, as_of: Optional[date] = None) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Current window and the equally long window before it.

    For ``all`` the current window is everything and the previous one is the
    older half of the rows by creation time.
    """
    if df.empty:
        return df, df
    if period not in PERIOD_DAYS:
        ordered = df.sort_values("created_time", kind="stable", na_position="first")
        return df, ordered.iloc[: len(ordered) // 2]

    days = PERIOD_DAYS[period]
    cutoff = pd.Timestamp(as_of or date.today()).normalize() - pd.Timedelta(days=days)
    previous_cutoff = cutoff - pd.Timedelta(days=days)
    created = df["created_time"]
    current = df[created >= cutoff]
    previous = df[(created >= previous_cutoff) & (created < cutoff)]
    return current, previous


def _period_values(df: pd.DataFrame) -> Dict[str, float]:
    orders = int(len(df))
    revenue = float(df["revenue"].sum()) if orders else 0.0
    delivered = int(df["delivered_time"].notna().sum()) if orders else 0
    products = int(df["product_name"].astype(object).nunique(dropna=False)) if orders else 0
    marketplaces = int(key_series(df, "marketplace", DEFAULT_MARKETPLACE).nunique()) if orders else 0
    return {
        "revenue": revenue,
        "orders": orders,
        "aov": safe_div(revenue, orders),
        "fulfillment": safe_div(delivered, orders, 100),
        "product_performance": safe_div(revenue, products),
        "marketplace_count": marketplaces,
    }


def compute_kpis(current: pd.DataFrame, previous: pd.DataFrame) -> List[Dict[str, Any]]:
    """Six KPIs for the current window; empty windows score zero."""
    cur = _period_values(current)
    prev = _period_values(previous)
    # Only revenue, orders and AOV are compared against the previous window.
    trended = {"revenue", "orders", "aov"}

    out: List[Dict[str, Any]] = []
    for kpi_id, name, target, unit, category in KPI_DEFINITIONS:
        value = cur[kpi_id]
        out.append(
            {
                "id": kpi_id,
                "name": name,
                "value": value,
                "target": target,
                "unit": unit,
                "trend": growth_pct(value, prev[kpi_id]) if kpi_id in trended else 0.0,
                "status": target_status(value, target),
                "category": category,
            }
        )
    return out


def compute_scores(kpis: List[Dict[str, Any]]) -> Dict[str, float]:
    scores: Dict[str, float] = {}
    for category in SCORE_CATEGORIES:
        members = [k for k in kpis if k["category"] == category]
        if not members:
            scores[category] = 0.0
            continue
        total = sum(min(safe_div(k["value"], k["target"]), MAX_TARGET_RATIO) * 100 for k in members)
        scores[category] = min(total / len(members), 100.0)
    scores["overall"] = sum(scores[c] for c in SCORE_CATEGORIES) / len(SCORE_CATEGORIES)
    return scores


def compute_top_products(df: pd.DataFrame, top_n: int = 10) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    base = df.assign(
        product_name=key_series(df, "product_name", "Unknown Product"),
        units=df["quantity"].where(df["quantity"] != 0, 1.0),
    )
    top = (
        base.groupby("product_name", sort=False)
        .agg(revenue=("revenue", "sum"), units_sold=("units", "sum"), orders=("revenue", "size"))
        .reset_index()
    )
    top["avg_order_value"] = safe_ratio(top["revenue"], top["orders"])
    top = top.sort_values("revenue", ascending=False, kind="stable").head(top_n)
    return records(top)


def compute_marketplace_performance(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    base = df.assign(
        marketplace=key_series(df, "marketplace", DEFAULT_MARKETPLACE),
        delivered=df["delivered_time"].notna().astype(int),
    )
    mp = (
        base.groupby("marketplace", sort=False)
        .agg(revenue=("revenue", "sum"), orders=("revenue", "size"), delivered_orders=("delivered", "sum"))
        .reset_index()
    )
    mp["avg_order_value"] = safe_ratio(mp["revenue"], mp["orders"])
    mp["fulfillment_rate"] = safe_ratio(mp["delivered_orders"], mp["orders"], 100)
    return records(mp.sort_values("revenue", ascending=False, kind="stable"))


def compute_operational_metrics(df: pd.DataFrame) -> Dict[str, float]:
    if df.empty:
        return {"order_processing_time": 0.0, "fulfillment_rate": 0.0}
    delivered = df[df["delivered_time"].notna()]
    elapsed = (delivered["delivered_time"] - delivered["created_time"]).dt.total_seconds() / 86_400
    elapsed = elapsed[elapsed > 0]
    return {
        "order_processing_time": float(elapsed.mean()) if not elapsed.empty else 0.0,
        "fulfillment_rate": safe_div(len(delivered), len(df), 100),
    }


def compute_performance(
    filters: DashboardFilters,
    ctx: Dict[str, Any],
    *,
    as_of: Optional[date] = None,
) -> Dict[str, Any]:
    df = frame(ctx, "sales")
    current, previous = split_periods(df, filters.period, as_of=as_of)
    # No scorecard only when there are no sales at all.
    kpis = compute_kpis(current, previous) if not df.empty else []
    return {
        "filters": asdict(filters),
        "period": filters.period,
        "kpis": kpis,
        "scores": compute_scores(kpis),
        "top_products": compute_top_products(current, filters.top_n),
        "marketplaces": compute_marketplace_performance(current),
        "operations": compute_operational_metrics(current),
        "sources": ctx.get("sources", {}),
        "warnings": ctx.get("warnings", []),
    }
