"""
Provider engine — discovers site providers and embed variants, resolves
embeds, returns player-ready streams.

Usage:
    engine = ProviderEngine()
    streams = await engine.run_all(550, "movie")
    for s in streams:
        print(s.to_dict())
    await engine.close()
"""
from __future__ import annotations
import asyncio
import logging
from typing import Optional

from .. import config
from .base import ResolvedStream, SearchResult, StreamOutput
from .extractor import EmbedExtractor
from .fetcher import Fetcher
from .tmdb import TmdbClient

log = logging.getLogger("streamscout.providers")


# ──────────────────────────────
#  Registries
# ──────────────────────────────
class _SiteProvider:
    id: str
    name: str
    media_types: list[str]          # ["movie"] or ["movie", "tv"]

    async def get_streams(self, tmdb_id, media_type="movie", season=None,
                          episode=None) -> list[StreamOutput]:
        raise NotImplementedError

    async def trending(self, media_type="movie", limit=20) -> list[SearchResult]:
        raise NotImplementedError

    async def recent(self, limit=20) -> list[SearchResult]:
        raise NotImplementedError


class _EmbedVariant:
    id: str
    name: str
    rank: int

    def matches(self, url: str) -> bool:
        raise NotImplementedError

    async def resolve(self, url: str, extractor: EmbedExtractor) -> Optional[ResolvedStream]:
        raise NotImplementedError


# Populated when provider/embed modules are imported
_PROVIDERS: dict[str, type[_SiteProvider]] = {}
_EMBEDS: list[type[_EmbedVariant]] = []


def register_provider(provider):
    """Decorator to register a site provider class."""
    if not getattr(provider, "disabled", False):
        _PROVIDERS[provider.id] = provider
    return provider


def register_embed(variant):
    """Decorator to register an embed variant class."""
    global _EMBEDS
    _EMBEDS = [v for v in _EMBEDS if v.id != variant.id]
    _EMBEDS.append(variant)
    _EMBEDS.sort(key=lambda v: v.rank, reverse=True)
    return variant


# ──────────────────────────────
#  Embed resolution
# ──────────────────────────────
class EmbedResolver:
    """Embed URL → ResolvedStream via matching variants, then the generic extractor."""

    def __init__(self, fetcher: Fetcher, *, extractor: EmbedExtractor | None = None):
        self.fetcher = fetcher
        self.extractor = extractor or EmbedExtractor(fetcher)
        self.variants = [cls(fetcher) for cls in _EMBEDS]

    async def resolve(self, embed_url: str, server_hint: str = "") -> Optional[ResolvedStream]:
        log.info("resolving %s [%s]", embed_url, server_hint or "-")
        for variant in self.variants:
            try:
                if not variant.matches(embed_url):
                    continue
                result = await variant.resolve(embed_url, self.extractor)
            except Exception as e:
                log.warning("  [%s] variant failed: %s", variant.id, e)
                continue
            if result:
                log.info("  [%s] resolved %s", variant.id, result.url[:120])
                return result

        result = await self.extractor.extract(embed_url, server_hint=server_hint)
        if not result:
            log.info("  could not extract a direct URL from %s", embed_url)
        return result


# ──────────────────────────────
#  Engine
# ──────────────────────────────
class ProviderEngine:
    def __init__(self, *, timeout: int = config.FETCH_TIMEOUT, fetcher: Fetcher | None = None):
        self.fetcher = fetcher or Fetcher(timeout=timeout)
        self.tmdb = TmdbClient(self.fetcher)
        self.resolver = EmbedResolver(self.fetcher)
        self.providers = {
            pid: cls(self.fetcher, tmdb=self.tmdb, resolver=self.resolver)
            for pid, cls in _PROVIDERS.items()
        }

    async def close(self):
        await self.fetcher.close()

    def list_providers(self):
        return [{"id": p.id, "name": p.name, "media_types": list(p.media_types)}
                for p in self.providers.values()]

    def list_embeds(self):
        return [{"id": v.id, "name": v.name, "rank": v.rank}
                for v in self.resolver.variants]

    async def resolve(self, embed_url: str, server_hint: str = "") -> Optional[ResolvedStream]:
        try:
            return await self.resolver.resolve(embed_url, server_hint)
        except Exception as e:
            log.warning("resolve failed for %s: %s", embed_url, e)
            return None

    async def browse(self, provider_id: str, kind: str = "trending", media_type: str = "movie",
                     limit: int = 20) -> list[SearchResult]:
        """A provider's trending or recent listing."""
        provider = self.providers.get(provider_id)
        if not provider:
            log.warning("unknown provider %r", provider_id)
            return []
        if media_type == "show":
            media_type = "tv"
        try:
            if kind == "recent":
                return await provider.recent(limit)
            return await provider.trending(media_type, limit)
        except Exception as e:
            log.warning("[%s] %s listing failed: %s", provider_id, kind, e)
            return []

    async def run_provider(self, provider_id: str, tmdb_id, media_type: str = "movie",
                           season: int | None = None, episode: int | None = None) -> list[StreamOutput]:
        """Run a single named provider."""
        provider = self.providers.get(provider_id)
        if not provider:
            log.warning("unknown provider %r", provider_id)
            return []
        try:
            return await provider.get_streams(tmdb_id, media_type, season, episode)
        except Exception as e:
            log.warning("[%s] provider failed: %s", provider_id, e)
            return []

    async def run_all(self, tmdb_id, media_type: str = "movie",
                      season: int | None = None, episode: int | None = None) -> list[StreamOutput]:
        """Run every applicable provider concurrently, collect every stream."""
        if media_type == "show":
            media_type = "tv"
        applicable = [p for p in self.providers.values() if media_type in p.media_types]

        results = await asyncio.gather(
            *(p.get_streams(tmdb_id, media_type, season, episode) for p in applicable),
            return_exceptions=True,
        )

        streams: list[StreamOutput] = []
        for provider, res in zip(applicable, results):
            if isinstance(res, BaseException):
                log.warning("[%s] provider failed: %s", provider.id, res)
                continue
            streams.extend(res)

        if not streams:
            log.warning("All providers exhausted, no stream found")
        return streams


# ──────────────────────────────
#  Import all providers/embeds to register them
# ──────────────────────────────
def _load_scrapers():
    # ── Site providers ──
    from .sources import coflix         # noqa: F401
    from .sources import day2soap       # noqa: F401
    from .sources import fivemovierulz  # noqa: F401
    from .sources import yesmovieshub   # noqa: F401
    # ── Embed variants ──
    from .embeds import vidsrc          # noqa: F401  rank 300
    from .embeds import twoembed        # noqa: F401  rank 200
    from .embeds import autoembed       # noqa: F401  rank 100

_load_scrapers()
