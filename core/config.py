from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


DEFAULT_BACKEND_URL = "http://localhost:3001/api"
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
]


@dataclass(frozen=True)
class AppConfig:
    backend_url: str = DEFAULT_BACKEND_URL
    timeout: float = 3.0

    # One retry with a fixed delay; no backoff.
    max_retries: int = 1
    retry_delay: float = 0.5

    use_sample_data: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name, default)
    if v is None:
        return None
    v = v.strip()
    return v if v else None


def _as_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def _as_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def get_config() -> AppConfig:
    """
    Centralized config: this is the ONLY place env vars are read.
    - Loads `.env` if present (local dev)
    - Unparseable numbers fall back to the defaults
    """
    load_dotenv(override=False)

    origins = _getenv("BI_CORS_ORIGINS")
    return AppConfig(
        backend_url=(_getenv("BI_BACKEND_URL", DEFAULT_BACKEND_URL) or DEFAULT_BACKEND_URL).rstrip("/"),
        timeout=max(0.1, _as_float(_getenv("BI_API_TIMEOUT"), 3.0)),
        max_retries=max(0, _as_int(_getenv("BI_API_MAX_RETRIES"), 1)),
        retry_delay=max(0.0, _as_float(_getenv("BI_API_RETRY_DELAY"), 0.5)),
        use_sample_data=(_getenv("BI_USE_SAMPLE_DATA", "false") or "false").lower() in {"1", "true", "yes"},
        log_level=(_getenv("BI_LOG_LEVEL", "INFO") or "INFO").upper(),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else list(DEFAULT_CORS_ORIGINS),
    )
