from dataclasses import replace
from datetime import date

import pytest

from core.data import records_to_frame
from core.metrics_performance import (
    compute_kpis,
    compute_operational_metrics,
    compute_performance,
    compute_scores,
    compute_top_products,
    split_periods,
)


def _by_id(kpis):
    return {k["id"]: k for k in kpis}


def test_kpis_with_targets_and_status(sales_ctx):
    current, previous = split_periods(sales_ctx["sales"], "30d", as_of=date(2024, 3, 10))
    assert len(current) == 3
    assert previous.empty

    kpis = _by_id(compute_kpis(current, previous))
    assert kpis["revenue"]["value"] == 450000
    assert kpis["revenue"]["status"] == "critical"
    assert kpis["orders"]["value"] == 3
    assert kpis["aov"]["value"] == 150000
    assert kpis["aov"]["status"] == "good"
    assert kpis["fulfillment"]["value"] == pytest.approx(200 / 3)
    assert kpis["product_performance"]["value"] == 150000
    # Missing marketplace counts as TikTok Shop.
    assert kpis["marketplace_count"]["value"] == 2
    assert all(k["trend"] == 0 for k in kpis.values())


def test_trend_against_previous_window(sales_ctx):
    current, previous = split_periods(sales_ctx["sales"], "30d", as_of=date(2024, 3, 25))
    assert len(current) == 2
    assert len(previous) == 1
    kpis = _by_id(compute_kpis(current, previous))
    assert kpis["revenue"]["trend"] == pytest.approx(250.0)
    assert kpis["orders"]["trend"] == pytest.approx(100.0)
    assert kpis["aov"]["trend"] == pytest.approx(75.0)
    assert kpis["fulfillment"]["trend"] == 0


def test_all_period_compares_older_half(sales_ctx):
    current, previous = split_periods(sales_ctx["sales"], "all")
    assert len(current) == 3
    assert previous["order_id"].tolist() == ["B2"]


def test_scores_are_capped_and_averaged(sales_ctx):
    kpis = compute_kpis(sales_ctx["sales"], sales_ctx["sales"].iloc[0:0])
    scores = compute_scores(kpis)
    assert scores["customer"] == pytest.approx(100.0)
    assert scores["marketplace"] == pytest.approx(50.0)
    expected = sum(scores[c] for c in ["revenue", "operations", "customer", "product", "marketplace"]) / 5
    assert scores["overall"] == pytest.approx(expected)


def test_scores_cap_at_hundred():
    kpis = [{"category": "revenue", "value": 1000, "target": 10}]
    assert compute_scores(kpis)["revenue"] == 100.0
    assert compute_scores([])["overall"] == 0.0


def test_top_products_count_missing_quantity_as_one(sales_ctx):
    top = {p["product_name"]: p for p in compute_top_products(sales_ctx["sales"])}
    assert top["Kemeja Oxford"]["units_sold"] == 1
    assert top["Kemeja Linen"]["units_sold"] == 2


def test_operational_metrics(sales_ctx):
    ops = compute_operational_metrics(sales_ctx["sales"])
    assert ops["order_processing_time"] == pytest.approx(1.5)
    assert ops["fulfillment_rate"] == pytest.approx(200 / 3)


def test_performance_payload(filters, sales_ctx):
    payload = compute_performance(replace(filters, period="all"), sales_ctx)
    assert len(payload["kpis"]) == 6
    assert payload["marketplaces"][0]["marketplace"] == "Shopee"
    assert payload["marketplaces"][0]["fulfillment_rate"] == pytest.approx(50.0)


def test_stale_sales_still_get_a_scorecard(filters):
    df = records_to_frame(
        [{"order_id": "Z1", "product_name": "Kaos Polos", "total_revenue": 90000, "created_time": "2020-01-01"}],
        "sales",
    )
    current, previous = split_periods(df, "7d", as_of=date(2024, 1, 1))
    assert current.empty and previous.empty

    kpis = compute_kpis(current, previous)
    assert len(kpis) == 6
    assert all(k["value"] == 0 and k["status"] == "critical" for k in kpis)

    payload = compute_performance(replace(filters, period="7d"), {"sales": df}, as_of=date(2024, 1, 1))
    assert len(payload["kpis"]) == 6


def test_no_sales_means_no_kpis(filters):
    payload = compute_performance(filters, {}, as_of=date(2024, 1, 1))
    assert payload["kpis"] == []
    assert payload["scores"]["overall"] == 0.0
