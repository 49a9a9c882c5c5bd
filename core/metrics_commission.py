from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from core.aggregate import group_sum, key_series, records, safe_div
from core.data import frame
from core.filters import DashboardFilters


TIME_SERIES_RECORDS = 30


def _impact_level(impact_rate: float) -> str:
    if impact_rate > 20:
        return "error"
    if impact_rate > 10:
        return "warning"
    return "info"


def compute_commission_overview(df: pd.DataFrame) -> Dict[str, Any]:
    n = int(len(df))
    original = float(df["original_commission"].sum()) if n else 0.0
    adjustment = float(df["adjustment_amount"].sum()) if n else 0.0
    loss = abs(adjustment)
    impact = safe_div(loss, original, 100) if original > 0 else 0.0
    dynamic = int(df["dynamic_rate_applied"].sum()) if n else 0
    return {
        "total_adjustments": n,
        "total_original_commission": original,
        "total_adjustment_amount": adjustment,
        "total_final_commission": float(df["final_commission"].sum()) if n else 0.0,
        "total_loss": loss,
        "impact_rate": impact,
        "average_adjustment": safe_div(adjustment, n),
        "average_commission_rate": float(df["commission_rate"].mean()) if n else 0.0,
        "dynamic_rate_affected": dynamic,
        "dynamic_rate_percentage": safe_div(dynamic, n, 100),
        "alert_level": _impact_level(impact),
    }


def compute_commission_breakdown(df: pd.DataFrame, by: str) -> List[Dict[str, Any]]:
    """Per-key adjustment totals, most negative adjustment first."""
    if df.empty:
        return []
    out = group_sum(df, [by], ["adjustment_amount", "original_commission", "commission_rate"])
    out["avg_commission_rate"] = out["commission_rate"] / out["records"]
    out = out.drop(columns=["commission_rate"]).rename(columns={"records": "count"})
    return records(out.sort_values("adjustment_amount", kind="stable"))


def compute_commission_time_series(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Daily totals over the most recent adjustments, newest day first."""
    if df.empty:
        return []
    latest = df[df["adjustment_date"].notna()].sort_values("adjustment_date", ascending=False, kind="stable")
    latest = latest.head(TIME_SERIES_RECORDS)
    if latest.empty:
        return []
    daily = (
        latest.assign(date=latest["adjustment_date"].dt.strftime("%Y-%m-%d"))
        .groupby("date")
        .agg(
            count=("adjustment_amount", "size"),
            total_adjustment=("adjustment_amount", "sum"),
            original_commission=("original_commission", "sum"),
        )
        .reset_index()
        .sort_values("date", ascending=False)
    )
    return records(daily)


def compute_commission_insights(overview: Dict[str, Any]) -> List[Dict[str, Any]]:
    impact = overview["impact_rate"]
    dynamic = overview["dynamic_rate_percentage"]
    return [
        {
            "type": overview["alert_level"],
            "title": "Commission Impact",
            "description": f"{impact:.1f}% of original commission affected by adjustments",
            "priority": "high" if impact > 15 else "medium",
        },
        {
            "type": "warning" if dynamic > 50 else "info",
            "title": "Dynamic Rate Impact",
            "description": f"{dynamic:.1f}% of adjustments caused by dynamic commission rates",
            "priority": "high" if dynamic > 70 else "medium",
        },
    ]


def compute_commissions(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    df = frame(ctx, "commission_adjustments")
    if not df.empty:
        df = df.assign(
            adjustment_type=key_series(df, "adjustment_type"),
            marketplace=key_series(df, "marketplace"),
        )
    overview = compute_commission_overview(df)
    return {
        "filters": asdict(filters),
        "overview": overview,
        "by_type": compute_commission_breakdown(df, "adjustment_type"),
        "by_marketplace": compute_commission_breakdown(df, "marketplace"),
        "time_series": compute_commission_time_series(df),
        "insights": compute_commission_insights(overview),
        "sources": ctx.get("sources", {}),
        "warnings": ctx.get("warnings", []),
    }
