"""Pytest configuration for securitytxt-signer."""
from typing import Dict, List, Optional, Union

import pytest

from securitytxt.base.config import SignerConfig, set_config
from securitytxt.base.exceptions import FetchError
from securitytxt.engine.crossref import CrossReferenceVerifier
from securitytxt.engine.models import RunState
from securitytxt.engine.validators import ValidationContext
from securitytxt.net.adapter import FetchResult, UrlFetcher

RESOLVED = "2024-12-30T00:00:00Z"


class StubFetcher(UrlFetcher):
    """In-memory fetcher; unknown URLs fail like an unreachable host."""

    def __init__(
        self,
        statuses: Optional[Dict[str, Union[int, FetchResult, Exception]]] = None,
        bodies: Optional[Dict[str, bytes]] = None,
    ):
        self.statuses = statuses or {}
        self.bodies = bodies or {}
        self.status_calls: List[str] = []
        self.body_calls: List[str] = []

    def fetch_status(self, url: str) -> FetchResult:
        self.status_calls.append(url)
        result = self.statuses.get(url)
        if result is None:
            raise FetchError(url, f"Could not resolve host for {url}")
        if isinstance(result, Exception):
            raise result
        if isinstance(result, int):
            return FetchResult(status=result)
        return result

    def fetch_body(self, url: str) -> bytes:
        self.body_calls.append(url)
        if url not in self.bodies:
            raise FetchError(url, f"Could not resolve host for {url}")
        return self.bodies[url]


@pytest.fixture(autouse=True)
def _default_config():
    set_config(SignerConfig())
    yield
    set_config(None)


@pytest.fixture
def make_fetcher():
    return StubFetcher


@pytest.fixture
def make_ctx():
    def _make(fetcher=None, key=None, inspector=None, **counters):
        fetcher = fetcher or StubFetcher()
        return ValidationContext(
            state=RunState(**counters),
            expires=RESOLVED,
            fetcher=fetcher,
            verifier=CrossReferenceVerifier(key, fetcher, inspector),
        )
    return _make
