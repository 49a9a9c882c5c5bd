from __future__ import annotations

from dataclasses import asdict
from datetime import date, timedelta
from typing import Any, Dict, List, Literal, Optional

import pandas as pd

from core.aggregate import UNKNOWN, group_sum, key_series, records, safe_div, safe_ratio
from core.data import frame
from core.filters import DashboardFilters

Breakdown = Literal["category", "brand", "product", "sku"]

DEFAULT_DAILY_TARGET = 500_000.0
TARGET_UPLIFT = 1.2
FALLBACK_TARGET_SHARE = 0.8
DEFAULT_BRAND = "D'Busana"
PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}

BREAKDOWN_KEYS = {
    "category": ("category", UNKNOWN),
    "brand": ("brand", DEFAULT_BRAND),
    "product": ("product_name", "Unknown Product"),
    "sku": ("seller_sku", "Unknown SKU"),
}


def _as_of(as_of: Optional[date]) -> pd.Timestamp:
    return pd.Timestamp(as_of or date.today()).normalize()


def _distinct_orders(df: pd.DataFrame) -> int:
    if df.empty:
        return 0
    return int(df["order_id"].astype(object).nunique(dropna=False))


def settlement_profit(revenue: float, settlement: float, hpp: float) -> Dict[str, float]:
    """Profit and margin against settlement when any settlement exists, else against revenue."""
    base = settlement if settlement > 0 else revenue
    profit = base - hpp
    return {"profit": profit, "profit_margin": safe_div(profit, base, 100)}


def _distinct_nonblank(series: pd.Series, lower: bool = False) -> int:
    s = series.dropna().astype(str).str.strip()
    s = s[s != ""]
    if lower:
        s = s.str.lower()
    return int(s.nunique())


def compute_sales_kpis(df: pd.DataFrame, as_of: Optional[date] = None) -> Dict[str, Any]:
    today = _as_of(as_of)
    days = df["created_time"].dt.normalize() if not df.empty else pd.Series(dtype="datetime64[ns]")
    today_df = df[days == today] if not df.empty else df
    month_df = (
        df[(df["created_time"].dt.month == today.month) & (df["created_time"].dt.year == today.year)]
        if not df.empty
        else df
    )

    revenue = float(df["revenue"].sum()) if not df.empty else 0.0
    hpp = float(df["hpp"].sum()) if not df.empty else 0.0
    settlement = float(df["settlement_amount"].sum()) if not df.empty else 0.0
    orders = _distinct_orders(df)

    brands = df["brand"].fillna(DEFAULT_BRAND) if not df.empty else pd.Series(dtype=object)
    pm = settlement_profit(revenue, settlement, hpp)
    return {
        "distinct_orders": orders,
        "total_quantity_sold": float(df["quantity"].sum()) if not df.empty else 0.0,
        "total_revenue": revenue,
        "total_hpp": hpp,
        "total_settlement": settlement,
        "total_profit": pm["profit"],
        "profit_margin": pm["profit_margin"],
        "average_order_value": safe_div(revenue, orders),
        "total_sales": int(len(df)),
        "today_revenue": float(today_df["revenue"].sum()) if not today_df.empty else 0.0,
        "today_sales": int(len(today_df)),
        "today_orders": _distinct_orders(today_df),
        "month_revenue": float(month_df["revenue"].sum()) if not month_df.empty else 0.0,
        "month_sales": int(len(month_df)),
        "month_orders": _distinct_orders(month_df),
        "total_products": _distinct_nonblank(df.get("product_name", pd.Series(dtype=object)), lower=True),
        "total_skus": _distinct_nonblank(df.get("seller_sku", pd.Series(dtype=object))),
        "total_categories": _distinct_nonblank(df.get("category", pd.Series(dtype=object))),
        "total_brands": _distinct_nonblank(brands),
        "total_colors": _distinct_nonblank(df.get("color", pd.Series(dtype=object))),
        "total_sizes": _distinct_nonblank(df.get("size", pd.Series(dtype=object))),
    }


def compute_breakdown(df: pd.DataFrame, by: Breakdown = "category") -> List[Dict[str, Any]]:
    col, default = BREAKDOWN_KEYS[by]
    if df.empty:
        return []
    base = df
    # Category and brand are only derived for rows that carry a name / SKU.
    if by == "category":
        base = df[df["product_name"].notna()]
    elif by == "brand":
        base = df[df["seller_sku"].notna()]
    base = base.assign(**{by: key_series(base, col, default)})
    out = group_sum(base, [by], ["quantity", "revenue"]).rename(columns={"quantity": "sales"})
    out = out.sort_values("revenue", ascending=False, kind="stable")
    return records(out[[by, "sales", "revenue"]])


def compute_daily_series(df: pd.DataFrame, days: int = 30, as_of: Optional[date] = None) -> List[Dict[str, Any]]:
    """One point per day over the last ``days`` days, oldest first."""
    today = _as_of(as_of)
    if df.empty:
        by_day = pd.DataFrame(columns=["revenue", "orders", "quantity", "sales_count"])
        recent_revenue, has_recent = 0.0, False
    else:
        by_day = (
            df.assign(day=df["created_time"].dt.normalize(), oid=df["order_id"].astype(object))
            .groupby("day")
            .agg(
                revenue=("revenue", "sum"),
                orders=("oid", "nunique"),
                quantity=("quantity", "sum"),
                sales_count=("revenue", "size"),
            )
        )
        activity = df["delivered_time"].fillna(df["created_time"]).dt.normalize()
        recent = df[activity.notna() & ((today - activity).dt.days <= days)]
        recent_revenue, has_recent = float(recent["revenue"].sum()), not recent.empty

    fallback = (
        recent_revenue / min(days, 7) * FALLBACK_TARGET_SHARE if has_recent else DEFAULT_DAILY_TARGET
    )

    out: List[Dict[str, Any]] = []
    for i in range(days - 1, -1, -1):
        day = today - timedelta(days=i)
        row = by_day.loc[day] if day in by_day.index else None
        revenue = float(row["revenue"]) if row is not None else 0.0
        out.append(
            {
                "name": f"Day {days - i}",
                "date": day.strftime("%Y-%m-%d"),
                "revenue": revenue,
                "target": revenue * TARGET_UPLIFT if revenue > 0 else fallback,
                "orders": int(row["orders"]) if row is not None else 0,
                "quantity": float(row["quantity"]) if row is not None else 0.0,
                "sales_count": int(row["sales_count"]) if row is not None else 0,
            }
        )
    return out


def compute_marketplace_breakdown(df: pd.DataFrame) -> Dict[str, Any]:
    empty_summary = {
        "total_marketplaces": 0,
        "total_revenue": 0.0,
        "top_marketplace": "None",
        "top_marketplace_revenue": 0.0,
    }
    if df.empty:
        return {"marketplaces": [], "summary": empty_summary}

    base = df.assign(marketplace=key_series(df, "marketplace"))
    out = group_sum(base, ["marketplace"], ["quantity", "revenue", "hpp", "settlement_amount", "order_amount"])
    orders = base.groupby("marketplace", sort=False)["order_id"].nunique()
    out["distinct_orders"] = out["marketplace"].map(orders).fillna(0).astype(int)
    out = out.rename(columns={"records": "total_sales"})

    # Settlement-based profit per marketplace, margin against revenue.
    out["profit"] = out["settlement_amount"].where(out["settlement_amount"] > 0, out["revenue"]) - out["hpp"]
    out["profit_margin"] = safe_ratio(out["profit"], out["revenue"], 100)
    out["avg_order_value"] = safe_ratio(out["order_amount"], out["total_sales"])
    total_revenue = float(out["revenue"].sum())
    out["percentage"] = safe_ratio(out["revenue"], pd.Series(total_revenue, index=out.index), 100)
    out = out.sort_values("revenue", ascending=False, kind="stable").reset_index(drop=True)

    cols = [
        "marketplace", "total_sales", "distinct_orders", "quantity", "revenue", "hpp",
        "profit", "profit_margin", "avg_order_value", "percentage",
    ]
    return {
        "marketplaces": records(out[cols]),
        "summary": {
            "total_marketplaces": int(len(out)),
            "total_revenue": total_revenue,
            "top_marketplace": str(out["marketplace"].iloc[0]),
            "top_marketplace_revenue": float(out["revenue"].iloc[0]),
        },
    }


def compute_sales_overview(
    filters: DashboardFilters,
    ctx: Dict[str, Any],
    *,
    as_of: Optional[date] = None,
) -> Dict[str, Any]:
    df = frame(ctx, "sales")
    days = PERIOD_DAYS.get(filters.period, 30)
    return {
        "filters": asdict(filters),
        "kpis": compute_sales_kpis(df, as_of=as_of),
        "daily": compute_daily_series(df, days=days, as_of=as_of),
        "categories": compute_breakdown(df, "category")[: filters.top_n],
        "brands": compute_breakdown(df, "brand")[: filters.top_n],
        "top_products": compute_breakdown(df, "product")[: filters.top_n],
        "top_skus": compute_breakdown(df, "sku")[: filters.top_n],
        "sources": ctx.get("sources", {}),
        "warnings": ctx.get("warnings", []),
    }


def compute_marketplaces(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    payload = compute_marketplace_breakdown(frame(ctx, "sales"))
    return {
        "filters": asdict(filters),
        **payload,
        "sources": ctx.get("sources", {}),
        "warnings": ctx.get("warnings", []),
    }
