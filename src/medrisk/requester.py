"""
Retry-aware JSON requests against the DemoMed API.

High level
----------
The patient endpoint is deliberately unreliable: it rate-limits (429) and
fails intermittently with 500/502/503. `fetch_with_retry` hides both behind a
single call that either returns the decoded JSON body or raises one of the
`RetrievalError` subclasses below.

Key behaviors
-------------
- 429: wait for the server-suggested `retry_after` (seconds, from the JSON body,
  then the Retry-After header, then a fixed default) and retry. The number of
  rate-limit retries is bounded by `RetryPolicy.max_retries`.
- 500/502/503: retry with exponential backoff against a separate, finite
  budget (`RetryPolicy.max_server_retries`).
- Any other status: the JSON body is returned untouched.
- Transport and JSON decode failures are never retried.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import requests

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUS = 429
SERVER_ERROR_STATUSES = frozenset({500, 502, 503})


# ------------------------------------------------------------------------------
# Error taxonomy
# ------------------------------------------------------------------------------


class RetrievalError(RuntimeError):
    """Base class for failures that abort a collection run."""


class RateLimitExceeded(RetrievalError):
    """Raised when the service keeps answering 429 after the retry budget is spent."""


class TransientServerError(RetrievalError):
    """A 500/502/503 answer from the service."""


class ServerErrorRetriesExhausted(TransientServerError):
    """Raised when server errors persist after the server-error budget is spent."""


class NetworkOrParseError(RetrievalError):
    """Raised on transport failures or an undecodable response body."""


# ------------------------------------------------------------------------------
# Policy
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounds for `fetch_with_retry`.

    Attributes:
        max_retries: How many times a 429 may be retried.
        default_retry_after: Seconds to wait when a 429 carries no usable hint.
        max_server_retries: How many times a 500/502/503 may be retried.
        server_backoff_base: First server-error wait, doubled on every retry.
        server_backoff_cap: Upper bound for a single server-error wait.
    """

    max_retries: int = 5
    default_retry_after: float = 9.0
    max_server_retries: int = 5
    server_backoff_base: float = 0.5
    server_backoff_cap: float = 8.0

    def server_backoff(self, attempt: int) -> float:
        return min(self.server_backoff_base * (2**attempt), self.server_backoff_cap)


# ------------------------------------------------------------------------------
# Small utilities
# ------------------------------------------------------------------------------


def _coerce_seconds(value: Any) -> Optional[float]:
    """Return a positive finite number of seconds, or None if `value` is not one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        return None
    return seconds


def _retry_after_seconds(response: requests.Response, default: float) -> float:
    """
    Work out how long to wait after a 429.

    The JSON body's `retry_after` wins; the Retry-After header is the fallback;
    `default` is used when neither is usable (absent, zero, or garbage).
    """
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        seconds = _coerce_seconds(body.get("retry_after"))
        if seconds is not None:
            return seconds
    headers = getattr(response, "headers", None) or {}
    seconds = _coerce_seconds(headers.get("Retry-After"))
    if seconds is not None:
        return seconds
    return default


def _decode_json(response: requests.Response, url: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        logger.error("Undecodable JSON from %s (status %s): %s", url, response.status_code, e)
        raise NetworkOrParseError(f"Invalid JSON from {url}: {e}") from e


# ------------------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------------------


def fetch_with_retry(
    session: requests.Session,
    url: str,
    *,
    headers: Optional[Mapping[str, str]] = None,
    policy: RetryPolicy = RetryPolicy(),
    timeout: float = 30.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """
    GET `url` and return its decoded JSON body, retrying rate limits and server errors.

    Parameters
    ----------
    session : requests.Session
        Session used for the request (carries connection pooling and default headers).
    url : str
        Fully-built URL, query string included.
    headers : Mapping[str, str], optional
        Extra per-request headers.
    policy : RetryPolicy
        Retry budgets and wait times.
    timeout : float
        Per-attempt timeout in seconds, handed to requests.
    sleep : callable
        Waiting function; replaced in tests.

    Returns
    -------
    Any
        The JSON body of the first response that is neither a 429 nor a 5xx.

    Raises
    ------
    RateLimitExceeded
        When a 429 is still returned after `policy.max_retries` retries.
    ServerErrorRetriesExhausted
        When a 500/502/503 is still returned after `policy.max_server_retries` retries.
    NetworkOrParseError
        On any transport failure or an undecodable body.
    """
    rate_retries_left = policy.max_retries
    server_attempt = 0

    while True:
        try:
            response = session.get(url, headers=dict(headers or {}), timeout=timeout)
        except requests.RequestException as e:
            logger.error("Request to %s failed: %s", url, e)
            raise NetworkOrParseError(f"Failed GET {url}: {e}") from e

        status = response.status_code
        logger.debug("GET %s -> %s", url, status)

        if status == RATE_LIMIT_STATUS:
            if rate_retries_left <= 0:
                logger.error("Rate limit retries exhausted for %s", url)
                raise RateLimitExceeded(
                    f"Max retries ({policy.max_retries}) exceeded on rate limit for {url}"
                )
            wait = _retry_after_seconds(response, policy.default_retry_after)
            rate_retries_left -= 1
            logger.warning(
                "Rate limited on %s; waiting %.1f seconds (%d retries left)",
                url,
                wait,
                rate_retries_left,
            )
            sleep(wait)
            continue

        if status in SERVER_ERROR_STATUSES:
            if server_attempt >= policy.max_server_retries:
                logger.error("Server error %s persisted for %s", status, url)
                raise ServerErrorRetriesExhausted(
                    f"Server error {status} persisted after "
                    f"{policy.max_server_retries} retries for {url}"
                )
            wait = policy.server_backoff(server_attempt)
            server_attempt += 1
            logger.warning(
                "Server error %s on %s; retry %d/%d in %.2f seconds",
                status,
                url,
                server_attempt,
                policy.max_server_retries,
                wait,
            )
            sleep(wait)
            continue

        return _decode_json(response, url)
