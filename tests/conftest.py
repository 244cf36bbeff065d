import json
from dataclasses import dataclass, field

import pytest

from streamscout.providers.base import FetchError


@dataclass
class Call:
    method: str
    url: str
    headers: dict = field(default_factory=dict)
    params: dict | None = None
    data: object = None


class FakeFetcher:
    """Stands in for Fetcher: URL → canned body (or exception), no network.

    Query params are recorded but not part of the lookup key.
    Unknown URLs raise FetchError(url, 404).
    """

    def __init__(self, routes=None, final_urls=None):
        self.routes = dict(routes or {})
        self.final_urls = dict(final_urls or {})
        self.calls: list[Call] = []
        self.closed = False

    def _lookup(self, method, url, headers=None, params=None, data=None):
        self.calls.append(Call(method, url, dict(headers or {}), params, data))
        body = self.routes.get(url)
        if body is None:
            raise FetchError(url, 404)
        if isinstance(body, Exception):
            raise body
        return body

    @property
    def fetched(self):
        return [c.url for c in self.calls]

    def headers_for(self, url):
        return next(c.headers for c in self.calls if c.url == url)

    async def get(self, url, *, headers=None, params=None, **kw):
        return self._lookup("GET", url, headers, params)

    async def get_json(self, url, *, headers=None, params=None, **kw):
        body = self._lookup("GET", url, headers, params)
        return json.loads(body) if isinstance(body, str) else body

    async def post(self, url, *, headers=None, data=None, **kw):
        return self._lookup("POST", url, headers, data=data)

    async def get_final_url(self, url, **kw):
        self.calls.append(Call("HEAD", url))
        return self.final_urls.get(url, url)

    async def close(self):
        self.closed = True


@pytest.fixture
def fetcher():
    return FakeFetcher()
