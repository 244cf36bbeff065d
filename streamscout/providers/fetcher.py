"""
HTTP fetcher for provider scrapers. One shared aiohttp session with
browser-like headers, an explicit timeout, and optional proxy support.

Non-2xx responses raise FetchError unless the caller passes
allow_error_status=True, in which case they are logged and the body is
returned as usual.
"""
from __future__ import annotations
import logging
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urljoin, urlsplit

import aiohttp

from .. import config
from .base import FetchError

log = logging.getLogger("streamscout.providers.fetcher")

DEFAULT_UA = config.USER_AGENT

BROWSER_HEADERS = {
    "User-Agent": DEFAULT_UA,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}


def origin_of(url: str) -> str | None:
    """scheme://host[:port] of an absolute URL, or None."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def origin_headers(url: str) -> dict[str, str]:
    """Referer/Origin pointing at the URL's own origin."""
    origin = origin_of(url)
    if not origin:
        return {}
    return {"Referer": f"{origin}/", "Origin": origin}


async def _text(resp: aiohttp.ClientResponse) -> str:
    return await resp.text(errors="replace")


async def _json(resp: aiohttp.ClientResponse) -> Any:
    return await resp.json(content_type=None)


async def _final_url(resp: aiohttp.ClientResponse) -> str:
    return str(resp.url)


class Fetcher:
    def __init__(self, *, timeout: int = config.FETCH_TIMEOUT, proxy: str | None = None):
        self.timeout = aiohttp.ClientTimeout(total=timeout, connect=min(timeout, 4))
        self.proxy = proxy
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers=BROWSER_HEADERS,
                connector=aiohttp.TCPConnector(ssl=False),
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    @staticmethod
    def _check(resp: aiohttp.ClientResponse, url: str, allow_error_status: bool):
        if resp.status < 400:
            return
        log.warning("HTTP %s for %s", resp.status, url)
        if not allow_error_status:
            raise FetchError(url, resp.status)

    async def _request(self, method: str, url: str, read: Callable[[aiohttp.ClientResponse], Awaitable],
                       *, base_url: str | None = None, headers: dict | None = None,
                       allow_error_status: bool = False, check: bool = True, **kw):
        full = urljoin(base_url, url) if base_url else url
        session = await self._get_session()
        async with session.request(method, full, headers=headers or {},
                                   proxy=self.proxy, **kw) as resp:
            if check:
                self._check(resp, full, allow_error_status)
            return await read(resp)

    # ── convenience methods ──────────────────

    async def get(self, url: str, *, base_url: str | None = None, headers: dict | None = None,
                  params: dict | None = None, follow_redirects: bool = True,
                  allow_error_status: bool = False) -> str:
        return await self._request("GET", url, _text, base_url=base_url, headers=headers,
                                   params=params, allow_redirects=follow_redirects,
                                   allow_error_status=allow_error_status)

    async def get_json(self, url: str, *, base_url: str | None = None, headers: dict | None = None,
                       params: dict | None = None, allow_error_status: bool = False) -> dict | list:
        return await self._request("GET", url, _json, base_url=base_url, headers=headers,
                                   params=params, allow_error_status=allow_error_status)

    async def post(self, url: str, *, base_url: str | None = None, headers: dict | None = None,
                   data: dict | str | None = None, json_body: dict | None = None,
                   allow_error_status: bool = False) -> str:
        return await self._request("POST", url, _text, base_url=base_url, headers=headers,
                                   data=data, json=json_body,
                                   allow_error_status=allow_error_status)

    async def get_final_url(self, url: str, *, base_url: str | None = None,
                            headers: dict | None = None) -> str:
        """Follow redirects and return the final URL (status ignored)."""
        return await self._request("GET", url, _final_url, base_url=base_url, headers=headers,
                                   allow_redirects=True, check=False)
