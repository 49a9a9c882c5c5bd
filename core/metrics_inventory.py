from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from core.aggregate import group_sum, records, stock_status
from core.data import frame
from core.filters import DashboardFilters


MOVEMENT_TYPES = ["in", "out", "adjustment"]


def with_stock_status(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return df.assign(status=pd.Series(dtype=object))
    status = [stock_status(q, m) for q, m in zip(df["stock_quantity"], df["min_stock"])]
    return df.assign(status=status)


def compute_stock_stats(df: pd.DataFrame) -> Dict[str, Any]:
    if df.empty:
        return {
            "total_products": 0,
            "low_stock_count": 0,
            "out_of_stock_count": 0,
            "negative_stock_count": 0,
            "total_categories": 0,
            "total_brands": 0,
            "inventory_value": 0.0,
        }
    if "status" not in df.columns:
        df = with_stock_status(df)
    counts = df["status"].value_counts()
    return {
        "total_products": int(len(df)),
        "low_stock_count": int(counts.get("low_stock", 0)),
        "out_of_stock_count": int(counts.get("out_of_stock", 0)),
        "negative_stock_count": int(counts.get("negative_stock", 0)),
        "total_categories": int(df["category"].dropna().nunique()),
        "total_brands": int(df["brand"].dropna().nunique()),
        "inventory_value": float((df["stock_quantity"].clip(lower=0) * df["cost"]).sum()),
    }


def compute_movement_summary(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty:
        return [{"movement_type": t, "movements": 0, "quantity": 0.0} for t in MOVEMENT_TYPES]
    grouped = group_sum(df.assign(movement_type=df["movement_type"].fillna("").str.lower()), ["movement_type"], ["quantity"])
    by_type = {row["movement_type"]: row for row in records(grouped)}
    out = []
    for t in MOVEMENT_TYPES + sorted(set(by_type) - set(MOVEMENT_TYPES)):
        row = by_type.get(t)
        out.append(
            {
                "movement_type": t,
                "movements": int(row["records"]) if row else 0,
                "quantity": float(row["quantity"]) if row else 0.0,
            }
        )
    return out


def filter_products(df: pd.DataFrame, filters: DashboardFilters) -> pd.DataFrame:
    out = df
    if out.empty:
        return out
    if filters.status != "all":
        out = out[out["status"] == filters.status]
    if filters.search:
        q = filters.search.lower()
        mask = out["product_name"].fillna("").str.lower().str.contains(q, regex=False) | out["product_code"].fillna(
            ""
        ).str.lower().str.contains(q, regex=False)
        out = out[mask]
    return out


def compute_inventory(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    products = with_stock_status(frame(ctx, "products"))
    movements = frame(ctx, "stock_movements")
    recent = (
        movements.sort_values("created_at", ascending=False, kind="stable", na_position="last").head(filters.top_n)
        if not movements.empty
        else movements
    )
    if not recent.empty:
        recent = recent.assign(created_at=recent["created_at"].dt.strftime("%Y-%m-%dT%H:%M:%S"))

    return {
        "filters": asdict(filters),
        "stats": compute_stock_stats(products),
        "products": records(filter_products(products, filters)),
        "movement_summary": compute_movement_summary(movements),
        "recent_movements": records(recent),
        "sources": ctx.get("sources", {}),
        "warnings": ctx.get("warnings", []),
    }
