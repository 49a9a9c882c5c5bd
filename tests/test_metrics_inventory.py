from dataclasses import replace

import pytest

from core.data import records_to_frame
from core.metrics_inventory import compute_inventory, compute_movement_summary, compute_stock_stats, with_stock_status


@pytest.fixture
def inventory_ctx():
    products = records_to_frame(
        [
            {"product_code": "KLP-HIT", "product_name": "Kemeja Linen Hitam", "category": "Kemeja", "brand": "Loka",
             "cost": 50000, "stock_quantity": 20, "min_stock": 5},
            {"product_code": "KLP-PUT", "product_name": "Kemeja Linen Putih", "category": "Kemeja", "brand": "Loka",
             "cost": 50000, "stock_quantity": 3},
            {"product_code": "DBW-NAV", "product_name": "Dress Batik Navy", "category": "Dress", "brand": "Wastra",
             "cost": 80000, "stock_quantity": 0, "min_stock": 2},
            {"product_code": "HVP-CRM", "product_name": "Hijab Voal Cream", "category": "Hijab", "brand": None,
             "cost": 20000, "stock_quantity": -4, "min_stock": 2},
        ],
        "products",
    )
    movements = records_to_frame(
        [
            {"product_code": "KLP-HIT", "movement_type": "in", "quantity": 10, "created_at": "2024-03-01T09:00:00"},
            {"product_code": "KLP-HIT", "movement_type": "OUT", "quantity": 4, "created_at": "2024-03-02T09:00:00"},
            {"product_code": "DBW-NAV", "movement_type": "out", "quantity": 2, "created_at": "2024-03-03T09:00:00"},
        ],
        "stock_movements",
    )
    return {"products": products, "stock_movements": movements, "sources": {}, "warnings": []}


def test_min_stock_defaults_to_five(inventory_ctx):
    products = with_stock_status(inventory_ctx["products"])
    assert products["min_stock"].tolist() == [5, 5, 2, 2]
    assert products["status"].tolist() == ["in_stock", "low_stock", "out_of_stock", "negative_stock"]


def test_stock_stats(inventory_ctx):
    stats = compute_stock_stats(with_stock_status(inventory_ctx["products"]))
    assert stats == {
        "total_products": 4,
        "low_stock_count": 1,
        "out_of_stock_count": 1,
        "negative_stock_count": 1,
        "total_categories": 3,
        "total_brands": 2,
        "inventory_value": 20 * 50000 + 3 * 50000,
    }


def test_movement_summary(inventory_ctx):
    summary = {m["movement_type"]: m for m in compute_movement_summary(inventory_ctx["stock_movements"])}
    assert summary["in"]["quantity"] == 10
    assert summary["out"]["movements"] == 2
    assert summary["out"]["quantity"] == 6
    assert summary["adjustment"]["movements"] == 0


def test_inventory_filters_and_recent_movements(filters, inventory_ctx):
    payload = compute_inventory(replace(filters, status="low_stock"), inventory_ctx)
    assert [p["product_code"] for p in payload["products"]] == ["KLP-PUT"]
    assert payload["recent_movements"][0]["created_at"] == "2024-03-03T09:00:00"

    searched = compute_inventory(replace(filters, search="dress"), inventory_ctx)
    assert [p["product_code"] for p in searched["products"]] == ["DBW-NAV"]


def test_empty_inventory(filters):
    payload = compute_inventory(filters, {})
    assert payload["products"] == []
    assert payload["stats"]["total_products"] == 0
    assert [m["movements"] for m in payload["movement_summary"]] == [0, 0, 0]
