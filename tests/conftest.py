from __future__ import annotations

import pytest

from core.data import records_to_frame
from core.filters import DashboardFilters


@pytest.fixture
def filters() -> DashboardFilters:
    return DashboardFilters()


@pytest.fixture
def ad_records():
    return [
        {"campaign_name": "Ramadan Sale", "platform": "tiktok_ads", "campaign_type": "conversion",
         "impressions": 10000, "clicks": 400, "conversions": 20, "cost": 100000, "revenue": 700000,
         "date_start": "2024-03-01"},
        {"campaign_name": "Ramadan Sale", "platform": "tiktok_ads", "campaign_type": "conversion",
         "impressions": 10000, "clicks": 100, "conversions": 5, "cost": 100000, "revenue": 500000,
         "date_start": "2024-03-02"},
        {"campaign_name": "Brand Search", "platform": "google_ads", "campaign_type": "traffic",
         "impressions": 5000, "clicks": 250, "conversions": 2, "cost": 600000, "revenue": 600000,
         "date_range_start": "2024-03-01"},
        {"campaign_name": "Retargeting", "platform": None, "account_name": "FB Ads Fashion",
         "campaign_type": "conversion", "impressions": 0, "clicks": 0, "conversions": 0,
         "cost": 0, "revenue": "n/a", "date_start": "not a date"},
    ]


@pytest.fixture
def ad_ctx(ad_records):
    return {"advertising": records_to_frame(ad_records, "advertising"), "sources": {"advertising": "backend"}, "warnings": []}


@pytest.fixture
def sales_records():
    return [
        {"order_id": "A1", "product_name": "Kemeja Linen", "seller_sku": "KLP-HIT-M", "marketplace": "Shopee",
         "quantity": 2, "total_revenue": 200000, "settlement_amount": 180000, "hpp": 100000,
         "created_time": "2024-03-10T10:00:00", "delivered_time": "2024-03-12T10:00:00"},
        {"order_id": "A1", "product_name": "Dress Batik", "seller_sku": "DBW-NAV-S", "marketplace": "Shopee",
         "quantity": 1, "total_revenue": 0, "order_amount": 150000, "settlement_amount": 0, "hpp": 60000,
         "created_time": "2024-03-10T11:00:00", "delivered_time": None},
        {"order_id": "B2", "product_name": "Kemeja Oxford", "seller_sku": "KOX-PUT-L", "marketplace": None,
         "quantity": None, "total_revenue": 100000, "settlement_amount": 90000, "hpp": 40000,
         "created_time": "2024-02-20T09:00:00", "delivered_time": "2024-02-21T09:00:00"},
    ]


@pytest.fixture
def sales_ctx(sales_records):
    return {"sales": records_to_frame(sales_records, "sales"), "sources": {"sales": "backend"}, "warnings": []}
