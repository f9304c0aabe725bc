"""Fetch-once cache of upstream manifest text.

Release artifacts are immutable once published, so a successful download
is kept for the lifetime of the process. The key space is the handful of
URLs in the version table, so there is no eviction.

The cache is shared between request threads without a lock. Two concurrent
misses for the same URL may both download and both store; the content is
identical so the second write is harmless.
"""

import logging
from typing import Optional

import requests

from weave.errors import FetchError

logger = logging.getLogger(__name__)


class DocumentCache:
    """Raw manifest text keyed by source URL."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        entries: Optional[dict] = None,
    ):
        """Initialize cache.

        Args:
            session: HTTP session used for downloads (created if None)
            timeout: Per-request timeout in seconds (None: transport default)
            entries: Pre-seeded url -> text mapping
        """
        self.session = session or requests.Session()
        self.timeout = timeout
        self._entries: dict = dict(entries or {})

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def fetch(self, url: str) -> str:
        """Return manifest text for a URL, downloading it on first use.

        Only a 200 response is cached. Any other status returns the response
        body for this call alone.

        Raises:
            FetchError: If the download fails at the transport level
        """
        cached = self._entries.get(url)
        if cached is not None:
            logger.info("Getting %s from cache", url)
            return cached

        logger.info("Getting %s from remote", url)
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise FetchError(url, str(e)) from e

        text = resp.text
        if resp.status_code == 200:
            self._entries[url] = text
        else:
            logger.warning("Not caching %s: HTTP %d", url, resp.status_code)
        return text
