import pytest

from streamscout.providers.cache import DomainCache


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def refresher(*values):
    calls = []

    async def refresh():
        calls.append(1)
        value = values[len(calls) - 1]
        if isinstance(value, Exception):
            raise value
        return value

    return refresh, calls


@pytest.mark.asyncio
async def test_first_read_refreshes_then_caches():
    clock = Clock()
    cache = DomainCache("https://old.example", ttl=60, clock=clock)
    refresh, calls = refresher("https://new.example")

    assert await cache.get(refresh) == "https://new.example"
    assert cache.expires_at == 1060.0

    clock.now = 1059.0
    assert await cache.get(refresh) == "https://new.example"
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_expired_entry_is_refreshed():
    clock = Clock()
    cache = DomainCache("https://a.example", ttl=60, clock=clock)
    refresh, calls = refresher("https://b.example", "https://c.example")

    await cache.get(refresh)
    clock.now = 1060.0
    assert await cache.get(refresh) == "https://c.example"
    assert len(calls) == 2
    assert cache.expires_at == 1120.0


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_value():
    cache = DomainCache("https://a.example", ttl=60, clock=Clock())
    refresh, calls = refresher(RuntimeError("dns"), "https://b.example")

    assert await cache.get(refresh) == "https://a.example"
    assert not cache.fresh()
    assert await cache.get(refresh) == "https://b.example"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_empty_refresh_keeps_value():
    cache = DomainCache("https://a.example", ttl=60, clock=Clock())
    refresh, _ = refresher("")
    assert await cache.get(refresh) == "https://a.example"
    assert cache.fresh()


@pytest.mark.asyncio
async def test_no_refresh_function():
    cache = DomainCache("https://a.example", clock=Clock())
    assert await cache.get() == "https://a.example"
