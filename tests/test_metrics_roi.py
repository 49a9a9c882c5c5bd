from dataclasses import replace

import pandas as pd
import pytest

from core.data import records_to_frame
from core.metrics_roi import compute_roi, compute_roi_distribution, compute_roi_table


def test_roi_table_derived_fields(ad_ctx):
    table = compute_roi_table(ad_ctx["advertising"]).set_index("campaign_name")
    ramadan = table.loc["Ramadan Sale"]
    assert ramadan["roi_percentage"] == pytest.approx(500.0)
    assert ramadan["cpc"] == pytest.approx(400.0)
    assert ramadan["cpa"] == pytest.approx(8000.0)
    assert ramadan["avg_order_value"] == pytest.approx(48000.0)
    assert ramadan["ltv_estimate"] == pytest.approx(120000.0)
    assert ramadan["payback_period"] == 1
    assert ramadan["efficiency_rating"] == "excellent"

    brand = table.loc["Brand Search"]
    assert brand["payback_period"] == 4
    assert brand["efficiency_rating"] == "poor"
    assert table.loc["Retargeting", "payback_period"] == 0


def test_rows_without_campaign_name_are_dropped():
    df = records_to_frame(
        [{"campaign_name": None, "platform": "x", "cost": 10, "revenue": 20}, {"campaign_name": "A", "platform": "x", "cost": 10, "revenue": 40}],
        "advertising",
    )
    table = compute_roi_table(df)
    assert table["campaign_name"].tolist() == ["A"]


def test_compute_roi_payload(filters, ad_ctx):
    payload = compute_roi(filters, ad_ctx)
    assert [c["campaign_name"] for c in payload["campaigns"]] == ["Ramadan Sale", "Brand Search", "Retargeting"]

    summary = payload["summary"]
    assert summary["total_investment"] == 800000
    assert summary["total_return"] == 1800000
    assert summary["overall_roi"] == pytest.approx(125.0)
    assert summary["avg_roas"] == pytest.approx(7 / 3)
    assert summary["profitable_campaigns"] == 1
    assert summary["excellent_campaigns"] == 1

    assert payload["platforms"][0]["platform"] == "tiktok_ads"
    assert payload["platforms"][0]["best_campaign"] == "Ramadan Sale"

    dist = {d["name"]: d["value"] for d in payload["distribution"]}
    assert dist == {"Excellent (>=300%)": 1, "Poor (0-99%)": 2}


def test_roi_time_series_is_cumulative(filters, ad_ctx):
    series = compute_roi(filters, ad_ctx)["time_series"]
    assert [p["date"] for p in series] == ["2024-03-01", "2024-03-02"]
    first, second = series
    assert first["cumulative_cost"] == 700000
    assert first["daily_roi"] == pytest.approx(600000 / 700000 * 100)
    assert second["cumulative_revenue"] == 1800000
    assert second["cumulative_roi"] == pytest.approx(125.0)


def test_min_roi_filter(filters, ad_ctx):
    payload = compute_roi(replace(filters, min_roi=100), ad_ctx)
    assert [c["campaign_name"] for c in payload["campaigns"]] == ["Ramadan Sale"]


def test_distribution_covers_every_roi_value():
    table = pd.DataFrame({"roi_percentage": [-5, 0, 99.5, 100, 150, 199.9, 200, 299, 300, 1000]})
    dist = compute_roi_distribution(table)
    assert sum(d["value"] for d in dist) == len(table)
    assert {d["name"]: d["value"] for d in dist}["Average (100-199%)"] == 3
