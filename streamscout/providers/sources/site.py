"""
Shared plumbing for per-site providers.

Every site implements `search()` and `get_details()`; `get_streams()` chains
them: TMDB → search → best match → details → (episode) → resolve servers.
"""
from __future__ import annotations
import asyncio
import logging
import re
from typing import Optional, TYPE_CHECKING

from ..base import (
    ContentDetails, EmbedCandidate, EpisodeEntry, SearchResult, StreamOutput,
)
from ..fetcher import DEFAULT_UA, Fetcher
from ..tmdb import TmdbClient

if TYPE_CHECKING:
    from ..runner import EmbedResolver

_QUALITY_RE = re.compile(r"(\d{3,4}p|4K|HD|CAM|TS|WEBRip|BluRay)", re.I)
_RESOLUTION_RE = re.compile(r"\d{3,4}p", re.I)


def best_match(results: list[SearchResult], title: str, *,
               media_type: str | None = None, year=None) -> Optional[SearchResult]:
    """First result whose title contains `title` (case-insensitive), else the first result."""
    if not results:
        return None
    target = (title or "").lower()

    def _hit(r: SearchResult) -> bool:
        return target in r.title.lower() and (media_type is None or r.type == media_type)

    if year:
        for r in results:
            if _hit(r) and (str(year) in r.title or str(r.year) == str(year)):
                return r
    return next((r for r in results if _hit(r)), results[0])


def select_episode(episodes: list[EpisodeEntry], season, episode) -> Optional[EpisodeEntry]:
    try:
        season, episode = int(season), int(episode)
    except (TypeError, ValueError):
        return None
    return next((e for e in episodes if e.season == season and e.episode == episode), None)


def quality_from_text(text: str, default: str = "Unknown") -> str:
    m = _QUALITY_RE.search(text or "")
    return m.group(1) if m else default


def normalize_quality(label: str | None) -> str:
    """Lower-case resolution labels such as "1080P"; others pass through."""
    label = (label or "").strip()
    return label.lower() if _RESOLUTION_RE.fullmatch(label) else label


class SiteProvider:
    id: str
    name: str
    base_url: str
    media_types = ["movie", "tv"]
    tolerate_http_errors = False      # log non-2xx and parse the body anyway
    match_by_type = False
    match_by_year = False

    def __init__(self, fetcher: Fetcher, *, tmdb: TmdbClient | None = None,
                 resolver: "EmbedResolver | None" = None):
        self.fetcher = fetcher
        self.tmdb = tmdb or TmdbClient(fetcher)
        if resolver is None:
            from ..runner import EmbedResolver
            resolver = EmbedResolver(fetcher)
        self.resolver = resolver
        self.log = logging.getLogger(f"streamscout.providers.{self.id}")

    # ── HTTP ────────────────────────────────

    async def domain(self) -> str:
        return self.base_url

    def site_headers(self, domain: str | None = None) -> dict[str, str]:
        return {
            "Referer": f"{domain or self.base_url}/",
            "DNT": "1",
            "Upgrade-Insecure-Requests": "1",
        }

    async def request(self, url: str, **kw) -> str:
        self.log.debug("[%s] GET %s", self.id, url)
        return await self.fetcher.get(
            url, headers=kw.pop("headers", None) or self.site_headers(),
            allow_error_status=self.tolerate_http_errors, **kw)

    # ── site-specific ───────────────────────

    async def search(self, title: str) -> list[SearchResult]:
        raise NotImplementedError

    async def get_details(self, url: str) -> Optional[ContentDetails]:
        raise NotImplementedError

    async def episode_servers(self, entry: EpisodeEntry) -> list[EmbedCandidate]:
        details = await self.get_details(entry.url)
        return details.servers if details else []

    # ── browsing ────────────────────────────

    async def trending(self, media_type: str = "movie", limit: int = 20) -> list[SearchResult]:
        """Titles the site currently promotes. Sites without such a listing return []."""
        return []

    async def recent(self, limit: int = 20) -> list[SearchResult]:
        return []

    # ── orchestration ───────────────────────

    async def get_streams(self, tmdb_id, media_type: str = "movie",
                          season: int | None = None, episode: int | None = None) -> list[StreamOutput]:
        if media_type == "show":
            media_type = "tv"
        if media_type not in self.media_types:
            self.log.info("[%s] %s not supported", self.id, media_type)
            return []
        try:
            return await self._get_streams(tmdb_id, media_type, season, episode)
        except Exception as e:
            self.log.error("[%s] Error: %s", self.id, e)
            return []

    async def _get_streams(self, tmdb_id, media_type, season, episode) -> list[StreamOutput]:
        self.log.info("[%s] Fetching streams for TMDB %s (%s) S%sE%s",
                      self.id, tmdb_id, media_type, season, episode)
        info = await self.tmdb.get(tmdb_id, media_type)

        results = await self.search(info.title)
        if not results:
            self.log.info("[%s] No search results found", self.id)
            return []

        match = best_match(
            results, info.title,
            media_type=media_type if self.match_by_type else None,
            year=info.year if self.match_by_year else None,
        )
        self.log.info("[%s] Using result: %s", self.id, match.title)

        details = await self.get_details(match.url)
        if details is None:
            return []

        if media_type == "tv":
            entry = select_episode(details.episodes, season, episode)
            if entry is None:
                self.log.info("[%s] Episode S%sE%s not found", self.id, season, episode)
                return []
            servers = await self.episode_servers(entry)
        else:
            servers = details.servers

        if not servers:
            self.log.info("[%s] No servers found", self.id)
            return []

        resolved = await asyncio.gather(
            *(self.resolver.resolve(s.url, s.name or self.name) for s in servers))

        domain = await self.domain()
        headers = {"User-Agent": DEFAULT_UA, "Referer": domain}
        title = f"{info.title} ({info.year or 'N/A'})"

        streams = []
        for n, (server, stream) in enumerate(zip(servers, resolved), 1):
            if stream is None:
                continue
            quality = stream.quality
            label = normalize_quality(server.quality)
            if quality == "HD" and label not in ("", "HD", "Unknown"):
                quality = label
            streams.append(StreamOutput(
                name=f"{self.name} Server {n}",
                title=title,
                url=stream.url,
                quality=quality,
                size="Unknown",
                headers=dict(headers),
                provider=self.id,
            ))
        self.log.info("[%s] Found %d streams", self.id, len(streams))
        return streams
