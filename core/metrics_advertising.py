from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from core.aggregate import (
    EFFICIENCY_CUTOFFS,
    EFFICIENCY_DEFAULT,
    bucket_series,
    group_sum,
    records,
    safe_div,
    safe_ratio,
)
from core.data import frame
from core.filters import DashboardFilters


AD_FIELDS = ["impressions", "clicks", "conversions", "cost", "revenue"]
SORT_COLUMNS = {"revenue": "revenue", "cost": "cost", "roas": "roas", "conversions": "conversions"}
MAX_INSIGHTS = 10


def compute_campaign_performance(df: pd.DataFrame) -> pd.DataFrame:
    """One row per campaign_name + platform with sums, ratios and efficiency status."""
    perf = group_sum(df, ["campaign_name", "platform"], AD_FIELDS)
    if perf.empty:
        return perf.assign(
            ctr=[], conversion_rate=[], roas=[], profit=[], roi_percentage=[], efficiency_score=[], status=[]
        )

    perf["ctr"] = safe_ratio(perf["clicks"], perf["impressions"], 100)
    perf["conversion_rate"] = safe_ratio(perf["conversions"], perf["clicks"], 100)
    perf["roas"] = safe_ratio(perf["revenue"], perf["cost"])
    perf["profit"] = perf["revenue"] - perf["cost"]
    perf["roi_percentage"] = safe_ratio(perf["profit"], perf["cost"], 100)

    # ROAS carries half the weight.
    perf["efficiency_score"] = (
        np.minimum(perf["ctr"] / 5, 1) * 0.25
        + np.minimum(perf["conversion_rate"] / 10, 1) * 0.25
        + np.minimum(perf["roas"] / 5, 1) * 0.5
    ) * 100
    perf["status"] = bucket_series(perf["efficiency_score"], EFFICIENCY_CUTOFFS, EFFICIENCY_DEFAULT)
    return perf


def compute_campaign_insights(perf: pd.DataFrame) -> List[Dict[str, Any]]:
    insights: List[Dict[str, Any]] = []
    for row in perf.itertuples(index=False):
        name = row.campaign_name
        if row.roas > 5:
            insights.append(
                {
                    "type": "success",
                    "campaign": name,
                    "title": "Excellent ROAS Performance",
                    "description": f"ROAS of {row.roas:.2f}x is significantly above industry average",
                    "suggestion": "Consider increasing budget allocation for this high-performing campaign",
                    "impact": "high",
                }
            )
        if row.roas < 2 and row.cost > 500_000:
            insights.append(
                {
                    "type": "warning",
                    "campaign": name,
                    "title": "Low ROAS Alert",
                    "description": f"ROAS of {row.roas:.2f}x is below recommended threshold",
                    "suggestion": "Review targeting or creative, or pause the campaign to optimize",
                    "impact": "high",
                }
            )
        if row.ctr > 3 and row.conversion_rate < 2:
            insights.append(
                {
                    "type": "info",
                    "campaign": name,
                    "title": "Traffic Quality Opportunity",
                    "description": "Good CTR but low conversion rate suggests targeting or landing page issues",
                    "suggestion": "Optimize landing page experience or refine audience targeting",
                    "impact": "medium",
                }
            )
        if row.cost > 1_000_000 and row.efficiency_score < 40:
            insights.append(
                {
                    "type": "danger",
                    "campaign": name,
                    "title": "High Spend, Low Performance",
                    "description": "Significant budget spent with poor efficiency metrics",
                    "suggestion": "Consider pausing or a major optimization",
                    "impact": "high",
                }
            )
    return insights[:MAX_INSIGHTS]


def campaign_type_map(df: pd.DataFrame) -> Dict[str, str]:
    """campaign_name -> campaign_type of the last record seen for that name."""
    if df.empty or "campaign_type" not in df.columns:
        return {}
    base = df.dropna(subset=["campaign_name"])
    base = base[base["campaign_type"].notna()]
    last = base.drop_duplicates(subset=["campaign_name"], keep="last")
    return {str(k): str(v) for k, v in zip(last["campaign_name"], last["campaign_type"])}


def filter_campaigns(perf: pd.DataFrame, raw: pd.DataFrame, filters: DashboardFilters) -> pd.DataFrame:
    out = perf
    if out.empty:
        return out
    if filters.campaign_type != "all":
        types = campaign_type_map(raw)
        out = out[out["campaign_name"].map(lambda n: types.get(n) == filters.campaign_type)]
    if filters.search:
        q = filters.search.lower()
        mask = out["campaign_name"].str.lower().str.contains(q, regex=False) | out["platform"].str.lower().str.contains(
            q, regex=False
        )
        out = out[mask]
    col = SORT_COLUMNS.get(filters.sort_by, "revenue")
    return out.sort_values(col, ascending=False, kind="stable").reset_index(drop=True)


def summarize_campaigns(perf: pd.DataFrame) -> Dict[str, Any]:
    totals = {f: float(perf[f].sum()) if not perf.empty else 0.0 for f in AD_FIELDS}
    profit = totals["revenue"] - totals["cost"]
    return {
        "total_campaigns": int(len(perf)),
        **{f"total_{f}": v for f, v in totals.items()},
        "total_profit": profit,
        "ctr": safe_div(totals["clicks"], totals["impressions"], 100),
        "conversion_rate": safe_div(totals["conversions"], totals["clicks"], 100),
        "roas": safe_div(totals["revenue"], totals["cost"]),
        "roi_percentage": safe_div(profit, totals["cost"], 100),
        "avg_efficiency_score": float(perf["efficiency_score"].mean()) if not perf.empty else 0.0,
    }


def compute_campaigns(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    raw = frame(ctx, "advertising")
    perf = compute_campaign_performance(raw)
    shown = filter_campaigns(perf, raw, filters)

    status_counts = {s: 0 for s in ("excellent", "good", "average", "poor")}
    if not shown.empty:
        for s, n in shown["status"].value_counts().items():
            status_counts[str(s)] = int(n)

    return {
        "filters": asdict(filters),
        "summary": summarize_campaigns(shown),
        "campaigns": records(shown),
        "insights": compute_campaign_insights(shown),
        "status_counts": status_counts,
        "campaign_types": sorted(set(campaign_type_map(raw).values())),
        "sources": ctx.get("sources", {}),
        "warnings": ctx.get("warnings", []),
    }
