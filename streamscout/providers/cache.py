"""
Per-adapter memo for a site's current domain.

    cache = DomainCache("https://site.example", ttl=4 * 3600)
    domain = await cache.get(refresh)
"""
from __future__ import annotations
import logging
import time
from typing import Awaitable, Callable, Optional

from .. import config

log = logging.getLogger("streamscout.providers.cache")


class DomainCache:
    def __init__(self, value: str, *, ttl: float = config.DOMAIN_CACHE_TTL,
                 clock: Callable[[], float] = time.time):
        self.value = value
        self.ttl = ttl
        self.expires_at = 0.0           # first read always refreshes
        self._clock = clock

    def fresh(self) -> bool:
        return self._clock() < self.expires_at

    async def get(self, refresh: Optional[Callable[[], Awaitable[str]]] = None) -> str:
        if self.fresh() or refresh is None:
            return self.value
        try:
            value = await refresh()
        except Exception as e:
            # Keep serving the previous domain; try again next read.
            log.warning("domain refresh failed: %s", e)
            return self.value
        if value:
            self.value = value
        self.expires_at = self._clock() + self.ttl
        return self.value
