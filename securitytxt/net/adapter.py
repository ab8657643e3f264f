"""
securitytxt/net/adapter.py
HTTP fetch capability for the validation engine.

All outbound HTTP traffic of the signer goes through a UrlFetcher. The engine
only sees the abstract interface, so tests substitute a stub and the real
implementation wraps httpx.Client.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Union

import httpx

from securitytxt.base.config import HttpConfig
from securitytxt.base.exceptions import FetchError
from securitytxt.errors import ErrorCode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Final status of a GET request and whether redirects were followed to reach it."""
    status: int
    redirected: bool = False
    redirect_status: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == 200


class UrlFetcher(ABC):
    """Capability interface for reachability checks and key document downloads."""

    @abstractmethod
    def fetch_status(self, url: str) -> FetchResult:
        """Return the final status of a GET on url; raise FetchError on transport failure."""

    @abstractmethod
    def fetch_body(self, url: str) -> bytes:
        """Return the body of a successful GET on url; raise FetchError otherwise."""

    def close(self) -> None:
        pass


class HttpxFetcher(UrlFetcher):
    """UrlFetcher backed by a synchronous httpx.Client that follows redirects."""

    def __init__(self, config: Optional[HttpConfig] = None, client: Optional[httpx.Client] = None):
        self.config = config or HttpConfig()
        self.client = client or httpx.Client(
            timeout=self.config.timeout_seconds,
            verify=self.config.verify_tls,
            follow_redirects=True,
            headers={"User-Agent": self.config.user_agent},
        )

    def _get(self, url: str) -> httpx.Response:
        try:
            return self.client.get(url)
        except httpx.TimeoutException as e:
            raise FetchError(url, f"Timed out fetching {url}: {e}", code=ErrorCode.FETCH_TIMEOUT) from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"Unable to fetch {url}: {e}") from e
        except httpx.InvalidURL as e:
            raise FetchError(url, f"Invalid URL {url}: {e}") from e

    def fetch_status(self, url: str) -> FetchResult:
        resp = self._get(url)
        redirect_status = resp.history[0].status_code if resp.history else None
        logger.debug(f"GET {url} -> {resp.status_code} (redirects: {len(resp.history)})")
        return FetchResult(
            status=resp.status_code,
            redirected=bool(resp.history),
            redirect_status=redirect_status,
        )

    def fetch_body(self, url: str) -> bytes:
        resp = self._get(url)
        if resp.status_code != 200:
            raise FetchError(
                url,
                f"HTTP STATUS {resp.status_code} fetching {url}",
                status=resp.status_code,
                code=ErrorCode.FETCH_BAD_STATUS,
            )
        return resp.content

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "HttpxFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class CachingFetcher(UrlFetcher):
    """
    Memoizes another fetcher so each URL is requested at most once per run.

    prefetch() warms the status cache concurrently; lookups stay thread-safe.
    """

    def __init__(self, inner: UrlFetcher):
        self.inner = inner
        self._lock = threading.Lock()
        self._status: Dict[str, Union[FetchResult, FetchError]] = {}
        self._body: Dict[str, Union[bytes, FetchError]] = {}

    def _memoized(self, cache: Dict, url: str, loader):
        with self._lock:
            if url in cache:
                hit = cache[url]
                if isinstance(hit, FetchError):
                    raise hit
                return hit
        try:
            value = loader(url)
        except FetchError as e:
            with self._lock:
                cache[url] = e
            raise
        with self._lock:
            cache[url] = value
        return value

    def fetch_status(self, url: str) -> FetchResult:
        return self._memoized(self._status, url, self.inner.fetch_status)

    def fetch_body(self, url: str) -> bytes:
        return self._memoized(self._body, url, self.inner.fetch_body)

    def prefetch(self, urls: Iterable[str], workers: int) -> None:
        pending = sorted(set(urls))
        if not pending:
            return
        logger.info(f"Prefetching {len(pending)} URL(s) with {workers} worker(s)")

        def warm(url: str) -> None:
            try:
                self.fetch_status(url)
            except FetchError:
                # Cached; reported when the line itself is validated.
                pass

        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            list(executor.map(warm, pending))

    def close(self) -> None:
        self.inner.close()
