from __future__ import annotations

from dataclasses import asdict
import math
from typing import Any, Dict, List

import pandas as pd

from core.aggregate import (
    ROI_RATING_CUTOFFS,
    ROI_RATING_DEFAULT,
    bucket_series,
    group_sum,
    records,
    safe_div,
    safe_ratio,
)
from core.data import frame
from core.filters import DashboardFilters


LTV_MULTIPLIER = 2.5
PAYBACK_MARGIN = 0.3

# (label, lower bound inclusive, upper bound exclusive)
ROI_DISTRIBUTION = [
    ("Excellent (>=300%)", 300.0, math.inf),
    ("Good (200-299%)", 200.0, 300.0),
    ("Average (100-199%)", 100.0, 200.0),
    ("Poor (0-99%)", 0.0, 100.0),
    ("Negative (<0%)", -math.inf, 0.0),
]


def _payback(cpa: float, aov: float) -> int:
    if cpa <= 0 or aov <= 0:
        return 0
    return int(math.ceil(cpa / (aov * PAYBACK_MARGIN)))


def compute_roi_table(df: pd.DataFrame) -> pd.DataFrame:
    if not df.empty:
        df = df[df["campaign_name"].notna()]
    grouped = group_sum(df, ["campaign_name", "platform"], ["cost", "revenue", "impressions", "clicks", "conversions"])
    grouped = grouped.rename(columns={"cost": "total_cost", "revenue": "total_revenue"})
    if grouped.empty:
        return grouped.assign(
            profit=[], roi_percentage=[], roas=[], cpc=[], cpa=[], avg_order_value=[],
            ltv_estimate=[], payback_period=[], efficiency_rating=[],
        )

    grouped["profit"] = grouped["total_revenue"] - grouped["total_cost"]
    grouped["roi_percentage"] = safe_ratio(grouped["profit"], grouped["total_cost"], 100)
    grouped["roas"] = safe_ratio(grouped["total_revenue"], grouped["total_cost"])
    grouped["cpc"] = safe_ratio(grouped["total_cost"], grouped["clicks"])
    grouped["cpa"] = safe_ratio(grouped["total_cost"], grouped["conversions"])
    grouped["avg_order_value"] = safe_ratio(grouped["total_revenue"], grouped["conversions"])
    grouped["ltv_estimate"] = grouped["avg_order_value"] * LTV_MULTIPLIER
    grouped["payback_period"] = [
        _payback(cpa, aov) for cpa, aov in zip(grouped["cpa"], grouped["avg_order_value"])
    ]
    grouped["efficiency_rating"] = bucket_series(grouped["roi_percentage"], ROI_RATING_CUTOFFS, ROI_RATING_DEFAULT)
    return grouped


def compute_roi_time_series(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Per-day cost/revenue with running totals, oldest day first."""
    if df.empty or "date" not in df.columns:
        return []
    dated = df[df["date"].notna()]
    if dated.empty:
        return []

    daily = (
        dated.assign(day=dated["date"].dt.normalize())
        .groupby("day")
        .agg(cost=("cost", "sum"), revenue=("revenue", "sum"))
        .sort_index()
    )
    daily["cumulative_cost"] = daily["cost"].cumsum()
    daily["cumulative_revenue"] = daily["revenue"].cumsum()
    daily["cumulative_profit"] = daily["cumulative_revenue"] - daily["cumulative_cost"]
    daily["daily_roi"] = safe_ratio(daily["revenue"] - daily["cost"], daily["cost"], 100)
    daily["cumulative_roi"] = safe_ratio(daily["cumulative_profit"], daily["cumulative_cost"], 100)

    out = daily.reset_index()
    out["date"] = out["day"].dt.strftime("%Y-%m-%d")
    return records(
        out[["date", "cost", "revenue", "cumulative_cost", "cumulative_revenue", "cumulative_profit", "daily_roi", "cumulative_roi"]]
    )


def compute_platform_breakdown(table: pd.DataFrame) -> List[Dict[str, Any]]:
    if table.empty:
        return []
    rows: List[Dict[str, Any]] = []
    for platform, grp in table.groupby("platform", sort=False):
        ranked = grp.sort_values("roi_percentage", ascending=False, kind="stable")
        investment = float(grp["total_cost"].sum())
        ret = float(grp["total_revenue"].sum())
        rows.append(
            {
                "platform": platform,
                "campaigns": int(len(grp)),
                "total_investment": investment,
                "total_return": ret,
                "net_profit": ret - investment,
                "roi_percentage": safe_div(ret - investment, investment, 100),
                "avg_roas": float(grp["roas"].mean()),
                "best_campaign": ranked["campaign_name"].iloc[0],
                "worst_campaign": ranked["campaign_name"].iloc[-1],
            }
        )
    return sorted(rows, key=lambda r: r["roi_percentage"], reverse=True)


def compute_roi_distribution(table: pd.DataFrame) -> List[Dict[str, Any]]:
    """Count campaigns per ROI bucket; the buckets partition the real line."""
    total = len(table)
    if total == 0:
        return []
    roi = table["roi_percentage"]
    out: List[Dict[str, Any]] = []
    for label, lo, hi in ROI_DISTRIBUTION:
        n = int(((roi >= lo) & (roi < hi)).sum())
        if n > 0:
            out.append({"name": label, "value": n, "percentage": n / total * 100})
    return out


def summarize_roi(table: pd.DataFrame) -> Dict[str, Any]:
    investment = float(table["total_cost"].sum()) if not table.empty else 0.0
    ret = float(table["total_revenue"].sum()) if not table.empty else 0.0
    return {
        "total_investment": investment,
        "total_return": ret,
        "total_profit": ret - investment,
        "overall_roi": safe_div(ret - investment, investment, 100),
        "avg_roas": float(table["roas"].mean()) if not table.empty else 0.0,
        "profitable_campaigns": int((table["roi_percentage"] > 0).sum()) if not table.empty else 0,
        "excellent_campaigns": int((table["efficiency_rating"] == "excellent").sum()) if not table.empty else 0,
        "total_campaigns": int(len(table)),
    }


def compute_roi(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    raw = frame(ctx, "advertising")
    table = compute_roi_table(raw)
    if filters.min_roi is not None and not table.empty:
        table = table[table["roi_percentage"] >= filters.min_roi]
    table = table.sort_values("roi_percentage", ascending=False, kind="stable").reset_index(drop=True)

    return {
        "filters": asdict(filters),
        "summary": summarize_roi(table),
        "campaigns": records(table),
        "platforms": compute_platform_breakdown(table),
        "distribution": compute_roi_distribution(table),
        "time_series": compute_roi_time_series(raw[raw["campaign_name"].notna()] if not raw.empty else raw),
        "sources": ctx.get("sources", {}),
        "warnings": ctx.get("warnings", []),
    }
