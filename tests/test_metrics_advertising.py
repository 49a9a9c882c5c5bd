from dataclasses import replace

import pytest

from core.metrics_advertising import compute_campaign_performance, compute_campaigns


def test_campaign_rows_are_grouped_by_name_and_platform(ad_ctx):
    perf = compute_campaign_performance(ad_ctx["advertising"])
    assert len(perf) == 3
    ramadan = perf[perf["campaign_name"] == "Ramadan Sale"].iloc[0]
    assert ramadan["cost"] == 200000
    assert ramadan["revenue"] == 1200000
    assert ramadan["ctr"] == pytest.approx(2.5)
    assert ramadan["conversion_rate"] == pytest.approx(5.0)
    assert ramadan["roas"] == pytest.approx(6.0)
    assert ramadan["roi_percentage"] == pytest.approx(500.0)
    assert ramadan["efficiency_score"] == pytest.approx(75.0)
    assert ramadan["status"] == "good"


def test_missing_platform_is_inferred_and_zero_rows_do_not_divide(ad_ctx):
    perf = compute_campaign_performance(ad_ctx["advertising"])
    retargeting = perf[perf["campaign_name"] == "Retargeting"].iloc[0]
    assert retargeting["platform"] == "facebook_ads"
    assert retargeting["ctr"] == 0
    assert retargeting["roas"] == 0
    assert retargeting["status"] == "poor"


def test_compute_campaigns_sorts_and_generates_insights(filters, ad_ctx):
    payload = compute_campaigns(filters, ad_ctx)
    names = [c["campaign_name"] for c in payload["campaigns"]]
    assert names == ["Ramadan Sale", "Brand Search", "Retargeting"]

    kinds = [(i["campaign"], i["type"]) for i in payload["insights"]]
    assert kinds == [("Ramadan Sale", "success"), ("Brand Search", "warning"), ("Brand Search", "info")]
    assert payload["status_counts"] == {"excellent": 0, "good": 1, "average": 0, "poor": 2}
    assert payload["summary"]["total_cost"] == 800000
    assert payload["summary"]["roas"] == pytest.approx(1800000 / 800000)


def test_campaign_type_and_search_filters(filters, ad_ctx):
    by_type = compute_campaigns(replace(filters, campaign_type="traffic"), ad_ctx)
    assert [c["campaign_name"] for c in by_type["campaigns"]] == ["Brand Search"]

    by_search = compute_campaigns(replace(filters, search="GOOGLE"), ad_ctx)
    assert [c["campaign_name"] for c in by_search["campaigns"]] == ["Brand Search"]


def test_sort_by_cost(filters, ad_ctx):
    payload = compute_campaigns(replace(filters, sort_by="cost"), ad_ctx)
    assert payload["campaigns"][0]["campaign_name"] == "Brand Search"


def test_empty_advertising_data(filters):
    payload = compute_campaigns(filters, {})
    assert payload["campaigns"] == []
    assert payload["insights"] == []
    assert payload["summary"]["roas"] == 0.0
