import pytest

from core.data import records_to_frame
from core.metrics_commission import compute_commission_overview, compute_commissions


@pytest.fixture
def commission_ctx():
    df = records_to_frame(
        [
            {"adjustment_type": "return_refund", "marketplace": "Shopee", "original_commission": 1000,
             "adjustment_amount": -150, "final_commission": 850, "commission_rate": 5,
             "dynamic_rate_applied": True, "adjustment_date": "2024-03-01"},
            {"adjustment_type": "cancellation", "marketplace": "Shopee", "original_commission": 500,
             "adjustment_amount": -50, "final_commission": 450, "commission_rate": 3,
             "dynamic_rate_applied": "false", "adjustment_date": "2024-03-01"},
            {"adjustment_type": "return_refund", "marketplace": None, "original_commission": 500,
             "adjustment_amount": -100, "final_commission": 400, "commission_rate": 4,
             "dynamic_rate_applied": None, "adjustment_date": "2024-03-02"},
        ],
        "commission_adjustments",
    )
    return {"commission_adjustments": df, "sources": {}, "warnings": []}


def test_overview(commission_ctx):
    overview = compute_commission_overview(commission_ctx["commission_adjustments"])
    assert overview["total_adjustments"] == 3
    assert overview["total_original_commission"] == 2000
    assert overview["total_loss"] == 300
    assert overview["impact_rate"] == pytest.approx(15.0)
    assert overview["alert_level"] == "warning"
    assert overview["average_adjustment"] == pytest.approx(-100.0)
    assert overview["dynamic_rate_affected"] == 1
    assert overview["dynamic_rate_percentage"] == pytest.approx(100 / 3)


@pytest.mark.parametrize("loss,level", [(-250, "error"), (-200, "warning"), (-100, "info")])
def test_alert_levels(loss, level):
    df = records_to_frame(
        [{"original_commission": 1000, "adjustment_amount": loss, "adjustment_date": "2024-01-01"}],
        "commission_adjustments",
    )
    assert compute_commission_overview(df)["alert_level"] == level


def test_breakdowns_and_time_series(filters, commission_ctx):
    payload = compute_commissions(filters, commission_ctx)
    by_type = payload["by_type"]
    assert by_type[0]["adjustment_type"] == "return_refund"
    assert by_type[0]["adjustment_amount"] == -250
    assert by_type[0]["count"] == 2
    assert by_type[0]["avg_commission_rate"] == pytest.approx(4.5)

    markets = {m["marketplace"]: m for m in payload["by_marketplace"]}
    assert set(markets) == {"Shopee", "Unknown"}

    assert [p["date"] for p in payload["time_series"]] == ["2024-03-02", "2024-03-01"]
    assert payload["time_series"][1]["count"] == 2
    assert payload["insights"][0]["type"] == "warning"


def test_empty_commission_data(filters):
    payload = compute_commissions(filters, {})
    assert payload["overview"]["impact_rate"] == 0.0
    assert payload["overview"]["alert_level"] == "info"
    assert payload["by_type"] == []
