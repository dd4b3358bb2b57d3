"""
Listing page fetcher with retry/backoff.
"""
from typing import Dict, Optional
import logging
import random
import time

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 20
BLOCKED_STATUSES = (403, 429)

USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
]


class PageFetchError(Exception):
    """Raised when a page could not be fetched after all retries."""


def _headers() -> Dict[str, str]:
    return {
        "User-Agent": random.choice(USER_AGENTS),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
        "Accept-Language": "en-GB,en;q=0.9,en-US;q=0.8",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "Upgrade-Insecure-Requests": "1",
    }


def fetch_with_retry(url: str, max_retries: int = 3, session: Optional[requests.Session] = None) -> str:
    """
    Fetch a page, retrying transient failures.
    403/429 back off (attempt + 1) * 2s, other failures (attempt + 1) * 1s.
    Raises PageFetchError once attempts are exhausted.
    """
    http = session or requests.Session()
    last_error = "Failed to fetch after retries"

    for attempt in range(max_retries):
        is_last = attempt == max_retries - 1
        try:
            response = http.get(url, headers=_headers(), timeout=REQUEST_TIMEOUT, allow_redirects=True)
        except requests.RequestException as e:
            last_error = str(e)
            logger.warning(f"Fetch error on attempt {attempt + 1}/{max_retries} for {url}: {e}")
            if not is_last:
                time.sleep((attempt + 1) * 1)
            continue

        if response.ok:
            return response.text

        if response.status_code in BLOCKED_STATUSES:
            last_error = f"HTTP {response.status_code}: Access blocked or rate limited"
            logger.warning(f"{last_error} ({url}), attempt {attempt + 1}/{max_retries}")
            time.sleep((attempt + 1) * 2)
            continue

        last_error = f"HTTP {response.status_code}: {response.reason}"
        logger.warning(f"{last_error} ({url}), attempt {attempt + 1}/{max_retries}")
        if not is_last:
            time.sleep((attempt + 1) * 1)

    raise PageFetchError(last_error)
