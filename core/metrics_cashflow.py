from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Literal

import pandas as pd

from core.aggregate import UNKNOWN, group_sum, key_series, records, safe_div, safe_ratio
from core.data import frame
from core.filters import DashboardFilters

Granularity = Literal["daily", "weekly", "monthly", "yearly"]


def period_start(dates: pd.Series, granularity: Granularity) -> pd.Series:
    """Map timestamps to the first day of their period (weeks start Monday)."""
    days = dates.dt.normalize()
    if granularity == "weekly":
        return days - pd.to_timedelta(days.dt.weekday, unit="D")
    if granularity == "monthly":
        return days.dt.to_period("M").dt.start_time
    if granularity == "yearly":
        return days.dt.to_period("Y").dt.start_time
    return days


def compute_cash_flow_summary(df: pd.DataFrame, granularity: Granularity = "daily") -> pd.DataFrame:
    cols = ["period", "total_income", "total_expenses", "net_cash_flow", "cash_flow_margin", "transactions"]
    if df.empty:
        return pd.DataFrame(columns=cols)
    dated = df[df["date"].notna()]
    if dated.empty:
        return pd.DataFrame(columns=cols)

    kind = dated["type"].fillna("").str.lower()
    base = pd.DataFrame(
        {
            "period": period_start(dated["date"], granularity).dt.strftime("%Y-%m-%d"),
            "total_income": dated["amount"].where(kind == "income", 0.0),
            "total_expenses": dated["amount"].where(kind == "expense", 0.0),
        }
    )
    out = group_sum(base, ["period"], ["total_income", "total_expenses"]).rename(columns={"records": "transactions"})
    out["net_cash_flow"] = out["total_income"] - out["total_expenses"]
    out["cash_flow_margin"] = safe_ratio(out["net_cash_flow"], out["total_income"], 100)
    return out.sort_values("period", kind="stable").reset_index(drop=True)[cols]


def compute_cash_flow_metrics(summary: pd.DataFrame) -> Dict[str, Any]:
    if summary.empty:
        return {
            "total_income": 0.0,
            "total_expenses": 0.0,
            "net_cash_flow": 0.0,
            "cash_flow_margin": 0.0,
            "growth_rate": 0.0,
            "positive_periods": 0,
            "average_period_flow": 0.0,
        }
    income = float(summary["total_income"].sum())
    expenses = float(summary["total_expenses"].sum())
    net = income - expenses

    mid = len(summary) // 2
    first_half = float(summary["net_cash_flow"].iloc[:mid].sum())
    second_half = float(summary["net_cash_flow"].iloc[mid:].sum())
    growth = (second_half - first_half) / abs(first_half) * 100 if first_half != 0 else 0.0

    return {
        "total_income": income,
        "total_expenses": expenses,
        "net_cash_flow": net,
        "cash_flow_margin": safe_div(net, income, 100) if income > 0 else 0.0,
        "growth_rate": growth,
        "positive_periods": int((summary["net_cash_flow"] > 0).sum()),
        "average_period_flow": safe_div(net, len(summary)),
    }


def compute_category_breakdown(df: pd.DataFrame, kind: Literal["income", "expense"]) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    subset = df[df["type"].fillna("").str.lower() == kind]
    if subset.empty:
        return []
    subset = subset.assign(category=key_series(subset, "category", UNKNOWN))
    out = group_sum(subset, ["category"], ["amount"]).rename(columns={"records": "transaction_count"})
    total = float(out["amount"].sum())
    out["percentage"] = out["amount"].map(lambda v: safe_div(v, total, 100))
    return records(out.sort_values("amount", ascending=False, kind="stable"))


def compute_reinvestment_summary(df: pd.DataFrame) -> Dict[str, Any]:
    if df.empty:
        return {"total_reinvested": 0.0, "planned_reinvestment": 0.0, "total_profit_used": 0.0, "by_type": []}
    status = df["status"].fillna("").str.lower()
    by_type = group_sum(df, ["reinvestment_type"], ["reinvestment_amount", "profit_amount"])
    by_type = by_type.sort_values("reinvestment_amount", ascending=False, kind="stable")
    return {
        "total_reinvested": float(df.loc[status == "executed", "reinvestment_amount"].sum()),
        "planned_reinvestment": float(df.loc[status == "planned", "reinvestment_amount"].sum()),
        "total_profit_used": float(df["profit_amount"].sum()),
        "by_type": records(by_type),
    }


def compute_cash_flow(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    df = frame(ctx, "cash_flow")
    summary = compute_cash_flow_summary(df, filters.granularity)  # type: ignore[arg-type]
    return {
        "filters": asdict(filters),
        "granularity": filters.granularity,
        "periods": records(summary),
        "metrics": compute_cash_flow_metrics(summary),
        "income_breakdown": compute_category_breakdown(df, "income"),
        "expense_breakdown": compute_category_breakdown(df, "expense"),
        "sources": ctx.get("sources", {}),
        "warnings": ctx.get("warnings", []),
    }


def compute_reinvestments(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    df = frame(ctx, "reinvestments")
    shown = df.sort_values("date", ascending=False, kind="stable", na_position="last") if not df.empty else df
    out = shown.assign(date=shown["date"].dt.strftime("%Y-%m-%d")) if not shown.empty else shown
    return {
        "filters": asdict(filters),
        "summary": compute_reinvestment_summary(df),
        "reinvestments": records(out),
        "sources": ctx.get("sources", {}),
        "warnings": ctx.get("warnings", []),
    }
