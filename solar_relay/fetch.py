"""HTTP access to the SWPC products, standard library only."""

from __future__ import annotations

import http.client
import logging
import urllib.error
import urllib.request

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
USER_AGENT = "SolarDataRelay/2.0"


def fetch_text(url: str, timeout: float = DEFAULT_TIMEOUT, user_agent: str = USER_AGENT) -> str:
    req = urllib.request.Request(url, headers={"User-Agent": user_agent})
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        if resp.status != 200:
            raise RuntimeError(f"{url} -> HTTP {resp.status}")
        data = resp.read()
    return data.decode("utf-8", "replace")


class HttpFetcher:
    """Callable returning a feed body, or an empty string when the fetch fails."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, user_agent: str = USER_AGENT) -> None:
        self.timeout = timeout
        self.user_agent = user_agent

    def __call__(self, url: str) -> str:
        try:
            return fetch_text(url, timeout=self.timeout, user_agent=self.user_agent)
        except (urllib.error.URLError, http.client.HTTPException, OSError, RuntimeError, ValueError) as exc:
            logger.warning("fetch %s failed: %s", url, exc)
            return ""
