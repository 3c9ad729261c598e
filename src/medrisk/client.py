"""
Client for the DemoMed assessment API.

Glues the retrying requester and the page collector to the two endpoints:

  GET  {base}/patients?limit=N&page=P
  POST {base}/submit-assessment
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests

from .config import ClientConfig
from .pagination import DEFAULT_MAX_PAGES, PageResponse, collect_all, decode_page
from .patient import PatientRecord
from .report import AssessmentReport
from .requester import NetworkOrParseError, RetryPolicy, fetch_with_retry

logger = logging.getLogger(__name__)


class DemoMedClient:
    """
    Talks to the patients and submit-assessment endpoints.

    Attributes:
        config: Connection settings; `api_key` is installed on the session.
        session: requests.Session shared by every call (a new one by default).
        policy: Retry budgets for page fetches (defaults to `config.max_retries`).
        max_pages: Upper bound on pages fetched by `fetch_all_patients`.
        sleep: Waiting function handed to the requester; replaced in tests.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: Optional[requests.Session] = None,
        policy: Optional[RetryPolicy] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._config = config
        self._session = session if session is not None else requests.Session()
        self._session.headers.update({"x-api-key": config.api_key})
        self._policy = policy if policy is not None else RetryPolicy(max_retries=config.max_retries)
        self._max_pages = max_pages
        self._sleep = sleep

    @property
    def config(self) -> ClientConfig:
        return self._config

    def page_url(self, page_number: int) -> str:
        return f"{self._config.patients_url}?limit={self._config.page_limit}&page={page_number}"

    def fetch_page(self, page_number: int) -> PageResponse:
        payload = fetch_with_retry(
            self._session,
            self.page_url(page_number),
            policy=self._policy,
            timeout=self._config.timeout,
            sleep=self._sleep,
        )
        return decode_page(payload, page_number)

    def fetch_all_patients(self) -> list[PatientRecord]:
        patients = collect_all(self.fetch_page, max_pages=self._max_pages)
        logger.info("Collected %d patients", len(patients))
        return patients

    def submit_assessment(self, report: AssessmentReport) -> Any:
        """
        POST the report once and return the decoded response body.
        There is no retry; failures surface as NetworkOrParseError.
        """
        url = self._config.submit_url
        try:
            response = self._session.post(
                url,
                json=report.to_payload(),
                headers={"Content-Type": "application/json"},
                timeout=self._config.timeout,
            )
        except requests.RequestException as e:
            logger.error("Submission to %s failed: %s", url, e)
            raise NetworkOrParseError(f"Failed POST {url}: {e}") from e

        logger.info("Submission answered with status %s", response.status_code)
        try:
            body = response.json()
        except ValueError as e:
            logger.error("Undecodable submission response (status %s): %s", response.status_code, e)
            raise NetworkOrParseError(f"Invalid JSON from {url}: {e}") from e
        logger.info("Submission response: %s", body)
        return body
