"""
Connection settings for the DemoMed assessment API.

Environment
-----------
DEMO_MED_API_KEY     : API key sent as the ``x-api-key`` header (not validated locally)
DEMO_MED_BASE_URL    : Optional base URL override (default "https://assessment.ksensetech.com/api")
DEMO_MED_PAGE_LIMIT  : Patients requested per page (default 20)
DEMO_MED_MAX_RETRIES : Rate-limit retry budget (default 5)
DEMO_MED_TIMEOUT     : Per-request timeout in seconds (default 30)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_BASE_URL = "https://assessment.ksensetech.com/api"
DEFAULT_PAGE_LIMIT = 20
DEFAULT_MAX_RETRIES = 5
DEFAULT_TIMEOUT = 30.0


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass
class ClientConfig:
    """
    Everything the API client needs to talk to the service.

    Attributes:
        api_key: Secret sent with every request. May be empty; the server rejects it.
        base_url: API root without a trailing slash.
        page_limit: Value of the ``limit`` query parameter.
        max_retries: Rate-limit (429) retry budget.
        timeout: Per-request timeout in seconds.
    """

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    page_limit: int = DEFAULT_PAGE_LIMIT
    max_retries: int = DEFAULT_MAX_RETRIES
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self):
        self.base_url = self.base_url.rstrip("/")
        if self.page_limit <= 0:
            raise ValueError(f"page_limit must be positive, got {self.page_limit}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must not be negative, got {self.max_retries}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            api_key=os.getenv("DEMO_MED_API_KEY", ""),
            base_url=os.getenv("DEMO_MED_BASE_URL", DEFAULT_BASE_URL),
            page_limit=_env_int("DEMO_MED_PAGE_LIMIT", DEFAULT_PAGE_LIMIT),
            max_retries=_env_int("DEMO_MED_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            timeout=_env_float("DEMO_MED_TIMEOUT", DEFAULT_TIMEOUT),
        )

    @property
    def patients_url(self) -> str:
        return f"{self.base_url}/patients"

    @property
    def submit_url(self) -> str:
        return f"{self.base_url}/submit-assessment"
