from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional


SORT_FIELDS = ("revenue", "cost", "roas", "conversions")
PERIODS = ("7d", "30d", "90d", "all")
GRANULARITIES = ("daily", "weekly", "monthly", "yearly")
STOCK_STATUSES = ("all", "in_stock", "low_stock", "out_of_stock", "negative_stock")


@dataclass(frozen=True)
class DashboardFilters:
    date_start: Optional[str] = None
    date_end: Optional[str] = None
    platform: str = "all"
    marketplace: str = "all"
    campaign_type: str = "all"
    category: str = "all"
    status: str = "all"
    search: str = ""
    sort_by: str = "revenue"
    min_roi: Optional[float] = None
    period: str = "30d"
    granularity: str = "daily"
    top_n: int = 10


def _as_iso_date(value: object) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value.isoformat()[:10]
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError:
        return None


def _choice(value: object, allowed, default: str) -> str:
    s = str(value or "").strip().lower()
    return s if s in allowed else default


def _label(value: object) -> str:
    s = str(value or "").strip()
    return s if s else "all"


def normalize_filters(raw: Optional[dict]) -> DashboardFilters:
    raw = raw or {}

    date_start = _as_iso_date(raw.get("date_start"))
    date_end = _as_iso_date(raw.get("date_end"))
    if date_start and date_end and date_start > date_end:
        date_start, date_end = date_end, date_start

    min_roi = raw.get("min_roi")
    try:
        min_roi = float(min_roi) if min_roi not in (None, "") else None
    except (TypeError, ValueError):
        min_roi = None

    top_n = raw.get("top_n", 10)
    try:
        top_n = int(top_n)
    except (TypeError, ValueError):
        top_n = 10
    top_n = max(1, min(200, top_n))

    return DashboardFilters(
        date_start=date_start,
        date_end=date_end,
        platform=_label(raw.get("platform")),
        marketplace=_label(raw.get("marketplace")),
        campaign_type=_label(raw.get("campaign_type")),
        category=_label(raw.get("category")),
        status=_choice(raw.get("status"), STOCK_STATUSES, "all"),
        search=(raw.get("search") or "").strip(),
        sort_by=_choice(raw.get("sort_by"), SORT_FIELDS, "revenue"),
        min_roi=min_roi,
        period=_choice(raw.get("period"), PERIODS, "30d"),
        granularity=_choice(raw.get("granularity"), GRANULARITIES, "daily"),
        top_n=top_n,
    )


def to_query_params(filters: DashboardFilters) -> Dict[str, str]:
    """Query string understood by the backend list endpoints ("all" is omitted)."""
    params: Dict[str, str] = {}
    if filters.platform != "all":
        params["platform"] = filters.platform
    if filters.marketplace != "all":
        params["marketplace"] = filters.marketplace
    if filters.date_start:
        params["date_start"] = filters.date_start
    if filters.date_end:
        params["date_end"] = filters.date_end
    return params
