"""
Page Fetcher
Fetches raw HTML from the legislature site. Failures are reported as
FetchFailure and never retried here; callers decide whether to skip.
"""

import time
import logging
from typing import Optional, Callable
import requests

from pa_bill_tracker.scraping.utils import get_browser_headers

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class FetchFailure(Exception):
    """A page could not be fetched (non-2xx status or transport error)."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        if status_code is not None:
            message = f"HTTP {status_code} fetching {url}"
        else:
            message = f"Request failed for {url}: {reason}"
        super().__init__(message)


def fetch_page(url: str, session: Optional[requests.Session] = None,
               timeout: int = DEFAULT_TIMEOUT) -> str:
    """
    Fetch a page and return its body text.

    Args:
        url: Page URL
        session: Optional requests session to reuse connections
        timeout: Request timeout in seconds

    Returns:
        Response body text

    Raises:
        FetchFailure: on a non-2xx response or any requests error
    """
    http = session or requests
    try:
        response = http.get(url, headers=get_browser_headers(), timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise FetchFailure(url, reason=str(e)) from e

    if not 200 <= response.status_code < 300:
        raise FetchFailure(url, status_code=response.status_code, reason=response.reason)

    logger.debug(f"Fetched {url} ({len(response.text)} chars)")
    return response.text


def make_fetcher(session: Optional[requests.Session] = None,
                 timeout: int = DEFAULT_TIMEOUT) -> Callable[[str], str]:
    """Bind a session and timeout into a single-argument fetcher."""
    def fetcher(url: str) -> str:
        return fetch_page(url, session=session, timeout=timeout)
    return fetcher


class RequestPacer:
    """
    Keeps consecutive outbound requests at least min_interval seconds apart.
    A zero interval never sleeps.
    """

    def __init__(self, min_interval: float = 0.0,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.min_interval = max(0.0, float(min_interval or 0.0))
        self._sleep = sleep
        self._clock = clock
        self._last_request_time: Optional[float] = None

    def wait(self) -> None:
        """Wait if the previous request was too recent, then mark a new request."""
        if self.min_interval <= 0:
            return

        if self._last_request_time is not None:
            elapsed = self._clock() - self._last_request_time
            if elapsed < self.min_interval:
                sleep_time = self.min_interval - elapsed
                logger.debug(f"Pacing requests: waiting {sleep_time:.2f}s")
                self._sleep(sleep_time)

        self._last_request_time = self._clock()
