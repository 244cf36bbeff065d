"""
Core types for the streamscout provider system.

Two layers:
  - Embed resolution: player page URL → ResolvedStream (hls | mp4)
  - Site providers:   TMDB id → search → details → StreamOutput list
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional


class FetchError(Exception):
    """Raised by the fetcher for a non-2xx response the caller won't tolerate."""

    def __init__(self, url: str, status: int):
        super().__init__(f"HTTP {status} for {url}")
        self.url = url
        self.status = status


# ──────────────────────────────
#  Embed resolution
# ──────────────────────────────
@dataclass(frozen=True)
class ResolvedStream:
    url: str
    type: str                         # "hls" | "mp4"
    quality: str = "HD"               # "1080p" | "720p" | "HD" | ...
    source: str = "generic_extracted"

    def to_dict(self):
        return {"url": self.url, "type": self.type,
                "quality": self.quality, "source": self.source}


@dataclass
class EmbedCandidate:
    url: str
    name: str = ""                    # free-text server label
    quality: str = "HD"               # site-side label, used if resolution has none


# ──────────────────────────────
#  Site scraping
# ──────────────────────────────
@dataclass
class SearchResult:
    title: str
    url: str
    year: Optional[int] = None
    poster_url: Optional[str] = None
    type: str = "movie"               # "movie" | "tv"
    quality: Optional[str] = None

    def to_dict(self):
        return {"title": self.title, "url": self.url, "year": self.year,
                "poster_url": self.poster_url, "type": self.type, "quality": self.quality}


@dataclass
class EpisodeEntry:
    season: int
    episode: int
    url: str
    title: str = ""


@dataclass
class ContentDetails:
    title: str
    poster: Optional[str] = None
    description: Optional[str] = None
    year: Optional[int] = None
    servers: list[EmbedCandidate] = field(default_factory=list)
    episodes: list[EpisodeEntry] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


# ──────────────────────────────
#  Metadata
# ──────────────────────────────
@dataclass
class TitleInfo:
    title: str = "Unknown"
    year: Optional[str] = None
    imdb_id: Optional[str] = None


# ──────────────────────────────
#  Final output (what a player consumes)
# ──────────────────────────────
@dataclass
class StreamOutput:
    name: str
    title: str
    url: str
    quality: str = "HD"
    size: str = "Unknown"
    headers: dict[str, str] = field(default_factory=dict)
    provider: str = ""

    def to_dict(self):
        return {
            "name": self.name,
            "title": self.title,
            "url": self.url,
            "quality": self.quality,
            "size": self.size,
            "headers": dict(self.headers),
            "provider": self.provider,
        }
