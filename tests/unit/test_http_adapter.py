"""
tests/unit/test_http_adapter.py
httpx-backed fetcher and the per-run cache, driven by httpx.MockTransport.
"""
import httpx
import pytest

from securitytxt.base.exceptions import FetchError
from securitytxt.errors import ErrorCode
from securitytxt.net.adapter import CachingFetcher, FetchResult, HttpxFetcher


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/old":
        return httpx.Response(301, headers={"Location": "https://example.com/new"})
    if path == "/new":
        return httpx.Response(200, text="moved here")
    if path == "/key.txt":
        return httpx.Response(200, content=b"KEY MATERIAL")
    if path == "/down":
        raise httpx.ConnectError("connection refused", request=request)
    if path == "/slow":
        raise httpx.ReadTimeout("timed out", request=request)
    return httpx.Response(404)


@pytest.fixture
def fetcher():
    client = httpx.Client(transport=httpx.MockTransport(_handler), follow_redirects=True)
    with HttpxFetcher(client=client) as f:
        yield f


def test_plain_success(fetcher):
    result = fetcher.fetch_status("https://example.com/new")
    assert result == FetchResult(status=200)
    assert result.ok


def test_redirect_is_followed_and_reported(fetcher):
    result = fetcher.fetch_status("https://example.com/old")
    assert result.status == 200
    assert result.redirected is True
    assert result.redirect_status == 301


def test_not_found_is_a_result_not_an_error(fetcher):
    result = fetcher.fetch_status("https://example.com/missing")
    assert result.status == 404
    assert not result.ok


def test_transport_errors_raise_fetch_error(fetcher):
    with pytest.raises(FetchError) as exc_info:
        fetcher.fetch_status("https://example.com/down")
    assert exc_info.value.code == ErrorCode.FETCH_FAILED

    with pytest.raises(FetchError) as exc_info:
        fetcher.fetch_status("https://example.com/slow")
    assert exc_info.value.code == ErrorCode.FETCH_TIMEOUT


def test_malformed_url_raises_fetch_error(fetcher):
    with pytest.raises(FetchError) as exc_info:
        fetcher.fetch_status("https://example.com:abc/policy")
    assert exc_info.value.code == ErrorCode.FETCH_FAILED
    assert exc_info.value.url == "https://example.com:abc/policy"


def test_fetch_body(fetcher):
    assert fetcher.fetch_body("https://example.com/key.txt") == b"KEY MATERIAL"
    with pytest.raises(FetchError) as exc_info:
        fetcher.fetch_body("https://example.com/missing")
    assert exc_info.value.status == 404


class TestCachingFetcher:
    def test_each_url_is_requested_once(self, make_fetcher):
        inner = make_fetcher({"https://a.example": 200})
        cache = CachingFetcher(inner)
        assert cache.fetch_status("https://a.example").ok
        assert cache.fetch_status("https://a.example").ok
        assert inner.status_calls == ["https://a.example"]

    def test_failures_are_cached(self, make_fetcher):
        inner = make_fetcher()
        cache = CachingFetcher(inner)
        for _ in range(2):
            with pytest.raises(FetchError):
                cache.fetch_status("https://gone.example")
        assert inner.status_calls == ["https://gone.example"]

    def test_prefetch_warms_cache(self, make_fetcher):
        urls = ["https://a.example", "https://b.example", "https://a.example", "https://gone.example"]
        inner = make_fetcher({"https://a.example": 200, "https://b.example": 404})
        cache = CachingFetcher(inner)
        cache.prefetch(urls, workers=4)
        assert sorted(inner.status_calls) == ["https://a.example", "https://b.example", "https://gone.example"]

        cache.fetch_status("https://b.example")
        assert len(inner.status_calls) == 3
