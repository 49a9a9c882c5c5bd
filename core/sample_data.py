from __future__ import annotations

from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

import numpy as np


MARKETPLACES = ["TikTok Shop", "Shopee", "Tokopedia", "Lazada"]
PRODUCTS = [
    ("Kemeja Linen Pria", "KLP", "Kemeja"),
    ("Dress Batik Wanita", "DBW", "Dress"),
    ("Celana Chino Slim", "CCS", "Celana"),
    ("Hijab Voal Premium", "HVP", "Hijab"),
    ("Kaos Oversize Basic", "KOB", "Kaos"),
]
COLORS = ["Hitam", "Putih", "Navy", "Cream"]
SIZES = ["S", "M", "L", "XL"]
CAMPAIGNS = [
    ("Ramadan Sale", "tiktok_ads", "Toko Utama TikTok", "conversion"),
    ("New Arrival Push", "shopee_ads", "Shopee Official", "awareness"),
    ("Retargeting Cart", "facebook_ads", "FB Ads Fashion", "conversion"),
    ("Payday Flash", "tiktok_ads", "Toko Utama TikTok", "traffic"),
    ("Brand Search", "google_ads", "Google Brand", "traffic"),
]


def _days(n: int, end: Optional[date] = None) -> List[date]:
    end = end or date.today()
    return [end - timedelta(days=i) for i in range(n)][::-1]


def sales_sample(n_days: int = 60, seed: int = 11) -> List[dict]:
    rng = np.random.default_rng(seed)
    rows: List[dict] = []
    order_no = 1000
    for day in _days(n_days):
        for _ in range(int(rng.integers(3, 9))):
            order_no += 1
            name, prefix, _cat = PRODUCTS[int(rng.integers(len(PRODUCTS)))]
            qty = int(rng.integers(1, 4))
            price = float(rng.choice([89000, 129000, 159000, 199000, 249000]))
            revenue = price * qty
            hpp = round(revenue * float(rng.uniform(0.45, 0.6)), 0)
            delivered = day + timedelta(days=int(rng.integers(2, 6))) if rng.random() < 0.85 else None
            rows.append(
                {
                    "order_id": f"ORD-{order_no}",
                    "product_name": name,
                    "seller_sku": f"{prefix}-{rng.choice(COLORS)[:3].upper()}-{rng.choice(SIZES)}",
                    "color": str(rng.choice(COLORS)),
                    "size": str(rng.choice(SIZES)),
                    "marketplace": MARKETPLACES[int(rng.integers(len(MARKETPLACES)))],
                    "quantity": qty,
                    "order_amount": revenue,
                    "total_revenue": revenue,
                    "settlement_amount": round(revenue * 0.9, 0),
                    "hpp": hpp,
                    "created_time": f"{day.isoformat()}T10:00:00",
                    "delivered_time": f"{delivered.isoformat()}T15:00:00" if delivered else None,
                }
            )
    return rows


def advertising_sample(n_days: int = 30, seed: int = 13) -> List[dict]:
    rng = np.random.default_rng(seed)
    rows: List[dict] = []
    for day in _days(n_days):
        for name, platform, account, ctype in CAMPAIGNS:
            impressions = int(rng.integers(5_000, 60_000))
            clicks = int(impressions * rng.uniform(0.01, 0.05))
            conversions = int(clicks * rng.uniform(0.01, 0.08))
            cost = round(float(rng.uniform(50_000, 400_000)), 0)
            revenue = round(cost * float(rng.uniform(0.8, 6.0)), 0)
            rows.append(
                {
                    "campaign_name": name,
                    "campaign_type": ctype,
                    "platform": platform,
                    "account_name": account,
                    "impressions": impressions,
                    "clicks": clicks,
                    "conversions": conversions,
                    "cost": cost,
                    "revenue": revenue,
                    "date_start": day.isoformat(),
                }
            )
    return rows


def products_sample(seed: int = 17) -> List[dict]:
    rng = np.random.default_rng(seed)
    rows: List[dict] = []
    for name, prefix, category in PRODUCTS:
        for color in COLORS[:2]:
            qty = int(rng.integers(-2, 40))
            rows.append(
                {
                    "product_code": f"{prefix}-{color[:3].upper()}",
                    "product_name": f"{name} {color}",
                    "category": category,
                    "brand": "Nusantara Wear" if prefix < "H" else "Urban Loka",
                    "price": float(rng.choice([129000, 159000, 199000])),
                    "cost": float(rng.choice([60000, 75000, 90000])),
                    "stock_quantity": qty,
                    "min_stock": 5,
                }
            )
    return rows


def stock_movements_sample(n_days: int = 14, seed: int = 19) -> List[dict]:
    rng = np.random.default_rng(seed)
    codes = [f"{p[1]}-{c[:3].upper()}" for p in PRODUCTS for c in COLORS[:2]]
    rows: List[dict] = []
    for day in _days(n_days):
        for _ in range(3):
            rows.append(
                {
                    "product_code": str(rng.choice(codes)),
                    "movement_type": str(rng.choice(["in", "out", "out", "adjustment"])),
                    "quantity": int(rng.integers(1, 12)),
                    "created_at": f"{day.isoformat()}T09:00:00",
                }
            )
    return rows


def cash_flow_sample(n_days: int = 60, seed: int = 23) -> List[dict]:
    rng = np.random.default_rng(seed)
    income_cats = ["sales", "marketplace_settlement", "other_income"]
    expense_cats = ["advertising", "production", "salary", "shipping", "operational"]
    rows: List[dict] = []
    for day in _days(n_days):
        rows.append(
            {
                "date": day.isoformat(),
                "type": "income",
                "category": str(rng.choice(income_cats)),
                "amount": round(float(rng.uniform(1_000_000, 6_000_000)), 0),
                "source": "sample",
                "marketplace": MARKETPLACES[int(rng.integers(len(MARKETPLACES)))],
            }
        )
        for _ in range(int(rng.integers(1, 3))):
            rows.append(
                {
                    "date": day.isoformat(),
                    "type": "expense",
                    "category": str(rng.choice(expense_cats)),
                    "amount": round(float(rng.uniform(300_000, 3_000_000)), 0),
                    "source": "sample",
                    "marketplace": None,
                }
            )
    return rows


def reinvestments_sample(seed: int = 29) -> List[dict]:
    rng = np.random.default_rng(seed)
    types = ["inventory", "marketing", "equipment", "training"]
    rows: List[dict] = []
    for i, day in enumerate(_days(6)):
        profit = round(float(rng.uniform(5_000_000, 15_000_000)), 0)
        rows.append(
            {
                "source_profit_period": day.strftime("%Y-%m"),
                "profit_amount": profit,
                "reinvestment_type": types[i % len(types)],
                "reinvestment_amount": round(profit * float(rng.uniform(0.2, 0.6)), 0),
                "status": "executed" if i % 3 else "planned",
                "date": day.isoformat(),
            }
        )
    return rows


def commission_adjustments_sample(n_days: int = 30, seed: int = 31) -> List[dict]:
    rng = np.random.default_rng(seed)
    types = ["return_refund", "cancellation", "dynamic_commission", "promo_adjustment"]
    rows: List[dict] = []
    for day in _days(n_days):
        original = round(float(rng.uniform(20_000, 120_000)), 0)
        adjustment = -round(original * float(rng.uniform(0.0, 0.3)), 0)
        rate = round(float(rng.uniform(2.0, 8.0)), 2)
        rows.append(
            {
                "adjustment_type": str(rng.choice(types)),
                "marketplace": MARKETPLACES[int(rng.integers(len(MARKETPLACES)))],
                "original_commission": original,
                "adjustment_amount": adjustment,
                "final_commission": original + adjustment,
                "commission_rate": rate,
                "dynamic_rate_applied": bool(rng.random() < 0.3),
                "adjustment_date": day.isoformat(),
            }
        )
    return rows


SAMPLES: Dict[str, Callable[[], List[dict]]] = {
    "sales": sales_sample,
    "advertising": advertising_sample,
    "products": products_sample,
    "stock_movements": stock_movements_sample,
    "cash_flow": cash_flow_sample,
    "reinvestments": reinvestments_sample,
    "commission_adjustments": commission_adjustments_sample,
}


def sample_records(name: str) -> List[dict]:
    fn = SAMPLES.get(name)
    return fn() if fn else []
