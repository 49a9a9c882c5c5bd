from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from core.config import AppConfig


logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """Backend call failed (transport, HTTP status, bad JSON or ``success: false``)."""

    def __init__(self, message: str, *, endpoint: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


def with_retry(
    max_retries: int = 1,
    delay: float = 0.5,
    exceptions: tuple = (ApiError,),
    retry_if: Optional[Callable[[Exception], bool]] = None,
):
    """Retry decorator: ``max_retries`` extra attempts with a fixed delay.

    The last exception is re-raised once attempts are exhausted, or right away
    when ``retry_if`` rejects it.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            attempts = max(0, int(max_retries)) + 1
            for attempt in range(attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    if attempt >= attempts - 1 or (retry_if is not None and not retry_if(exc)):
                        raise
                    logger.info("%s failed (%s), retrying in %.1fs", func.__name__, exc, delay)
                    if delay > 0:
                        time.sleep(delay)

        return wrapper

    return decorator


def is_retryable(exc: Exception) -> bool:
    """Transport failures and 5xx responses are worth another attempt; 4xx are not."""
    status = getattr(exc, "status_code", None)
    return status is None or status >= 500


class BackendClient:
    """Thin JSON client for the BI backend REST API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 3.0,
        max_retries: int = 1,
        retry_delay: float = 0.5,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        if session is None:
            session = requests.Session()
            # Retries are handled by with_retry, not by urllib3.
            adapter = HTTPAdapter(max_retries=Retry(total=0, connect=0, read=0, redirect=0, status=0))
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self.session = session

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "BackendClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @classmethod
    def from_config(cls, cfg: AppConfig, session: Optional[requests.Session] = None) -> "BackendClient":
        return cls(
            cfg.backend_url,
            timeout=cfg.timeout,
            max_retries=cfg.max_retries,
            retry_delay=cfg.retry_delay,
            session=session,
        )

    def _get_once(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            response = self.session.get(url, params=params or None, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ApiError(f"request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

        if not response.ok:
            raise ApiError(
                f"{endpoint} returned HTTP {response.status_code}",
                endpoint=endpoint,
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise ApiError(f"{endpoint} returned invalid JSON", endpoint=endpoint) from exc

        # Envelope: {"success": bool, "data": ..., "error": str}
        if isinstance(body, dict) and "success" in body:
            if not body.get("success"):
                raise ApiError(body.get("error") or body.get("message") or f"{endpoint} failed", endpoint=endpoint)
            return body.get("data")
        return body

    def get(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Any:
        call = with_retry(self.max_retries, self.retry_delay, retry_if=is_retryable)(self._get_once)
        return call(endpoint, params)
