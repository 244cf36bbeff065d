from types import SimpleNamespace

import pytest

from streamscout.providers.base import FetchError, ResolvedStream
from streamscout.providers.fetcher import Fetcher, origin_headers, origin_of


def test_origin_of():
    assert origin_of("https://embed.example.com:8443/e/1?x=2") == "https://embed.example.com:8443"
    assert origin_of("/relative/path") is None


def test_origin_headers():
    assert origin_headers("https://embed.example.com/e/1") == {
        "Referer": "https://embed.example.com/",
        "Origin": "https://embed.example.com",
    }
    assert origin_headers("nope") == {}


def test_error_status_raises():
    with pytest.raises(FetchError) as exc:
        Fetcher._check(SimpleNamespace(status=503), "https://site.example/", False)
    assert exc.value.status == 503
    assert exc.value.url == "https://site.example/"


def test_error_status_tolerated():
    Fetcher._check(SimpleNamespace(status=404), "https://site.example/", True)
    Fetcher._check(SimpleNamespace(status=200), "https://site.example/", False)


def test_fetcher_timeout_is_explicit():
    fetcher = Fetcher(timeout=7)
    assert fetcher.timeout.total == 7


def test_resolved_stream_dict():
    stream = ResolvedStream(url="https://cdn.example.com/a.mp4", type="mp4")
    assert stream.to_dict() == {
        "url": "https://cdn.example.com/a.mp4", "type": "mp4",
        "quality": "HD", "source": "generic_extracted",
    }
