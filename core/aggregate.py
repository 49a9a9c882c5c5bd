"""Client-side metric aggregation.

Every dashboard view follows the same recipe: coerce optional numeric fields
to numbers (missing or junk counts as 0), partition the records by a key,
sum the fields per group, then derive ratios and status labels. The helpers
here implement that recipe once; the ``metrics_*`` modules only pick keys,
fields and cutoffs.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd


UNKNOWN = "Unknown"

Cutoffs = Sequence[Tuple[float, str]]

# Efficiency score (0-100) of an advertising campaign.
EFFICIENCY_CUTOFFS: Cutoffs = ((80, "excellent"), (60, "good"), (40, "average"))
EFFICIENCY_DEFAULT = "poor"

# ROI percentage of a campaign.
ROI_RATING_CUTOFFS: Cutoffs = ((300, "excellent"), (200, "good"), (100, "average"))
ROI_RATING_DEFAULT = "poor"

# value / target ratio of a KPI.
TARGET_STATUS_CUTOFFS: Cutoffs = ((1.2, "excellent"), (1.0, "good"), (0.8, "warning"))
TARGET_STATUS_DEFAULT = "critical"

DEFAULT_MIN_STOCK = 5


def to_number(value: object) -> float:
    """Coerce to a finite float; anything unusable counts as 0."""
    if value is None or value is pd.NA:
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        out = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(out) or math.isinf(out):
        return 0.0
    return out


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = df[col].map(to_number).astype(float)
        else:
            df[col] = 0.0
    return df


def safe_div(numer: object, denom: object, scale: float = 1.0) -> float:
    d = to_number(denom)
    if d == 0:
        return 0.0
    return to_number(numer) / d * scale


def safe_ratio(numer: pd.Series, denom: pd.Series, scale: float = 1.0) -> pd.Series:
    denom = pd.to_numeric(denom, errors="coerce")
    out = pd.to_numeric(numer, errors="coerce") / denom.where(denom != 0) * scale
    return out.replace([np.inf, -np.inf], np.nan).fillna(0.0).astype(float)


def growth_pct(current: object, previous: object) -> float:
    """Percentage change vs a positive previous value, else 0."""
    prev = to_number(previous)
    if prev <= 0:
        return 0.0
    return (to_number(current) - prev) / prev * 100


def key_series(df: pd.DataFrame, col: str, default: str = UNKNOWN) -> pd.Series:
    if col not in df.columns:
        return pd.Series(default, index=df.index, dtype=object)
    s = df[col].astype(object)
    s = s.where(s.notna(), default).astype(str).str.strip()
    return s.where(s != "", default)


def group_sum(df: pd.DataFrame, keys: List[str], fields: List[str]) -> pd.DataFrame:
    """Partition ``df`` by ``keys`` and sum ``fields`` per group.

    Groups keep the order in which their key was first seen and carry a
    ``records`` count. Missing key values group under ``"Unknown"``.
    """
    if df is None or df.empty:
        return pd.DataFrame(columns=[*keys, *fields, "records"])

    base = pd.DataFrame({k: key_series(df, k) for k in keys}, index=df.index)
    num = numericize(df[[f for f in fields if f in df.columns]].copy(), fields)
    for f in fields:
        base[f] = num[f]
    base["records"] = 1

    aggs = {f: (f, "sum") for f in [*fields, "records"]}
    out = base.groupby(keys, sort=False, dropna=False).agg(**aggs).reset_index()
    out["records"] = out["records"].astype(int)
    return out


def bucket_status(value: object, cutoffs: Cutoffs, default: str) -> str:
    v = to_number(value)
    for threshold, label in cutoffs:
        if v >= threshold:
            return label
    return default


def bucket_series(values: pd.Series, cutoffs: Cutoffs, default: str) -> pd.Series:
    return values.map(lambda v: bucket_status(v, cutoffs, default))


def target_status(value: object, target: object) -> str:
    return bucket_status(safe_div(value, target), TARGET_STATUS_CUTOFFS, TARGET_STATUS_DEFAULT)


def stock_status(quantity: object, min_stock: object = DEFAULT_MIN_STOCK) -> str:
    qty = to_number(quantity)
    if qty < 0:
        return "negative_stock"
    if qty == 0:
        return "out_of_stock"
    if qty <= to_number(min_stock):
        return "low_stock"
    return "in_stock"


def records(df: pd.DataFrame) -> List[dict]:
    if df is None or df.empty:
        return []
    return df.to_dict(orient="records")
