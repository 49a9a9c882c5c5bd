from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel


class DashboardFiltersModel(BaseModel):
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


class HealthResponse(BaseModel):
    status: str
    backend_url: str
    use_sample_data: bool


class DatasetsResponse(BaseModel):
    datasets: Dict[str, str]
    views: Dict[str, List[str]]
