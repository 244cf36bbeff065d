"""
Generic embed extractor — turns an arbitrary player page into a direct
HLS/MP4 stream.

Flow:
  1. Fetch the embed page with browser headers + Referer/Origin of its own origin
  2. Scan the body (plus any unpacked p,a,c,k,e,d blocks) with PATTERNS
  3. Drop junk, normalise to absolute URLs, de-duplicate, take the first
  4. Nothing found → follow up to 3 <iframe src> one level deeper (max depth 2)

PATTERNS is plain data: reorder, add or remove entries without touching
the control flow below.
"""
from __future__ import annotations
import logging
import re
from typing import Iterable, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .. import config
from . import unpacker
from .base import ResolvedStream
from .fetcher import Fetcher, origin_headers, origin_of

log = logging.getLogger("streamscout.providers.extractor")

_KEYS_HLS = r"(?:file|src|source|playlist|hls|m3u8|url|stream|video)"
_KEYS_MP4 = r"(?:file|src|source|url|stream|video)"

# Ordered by priority: HLS fields, bare HLS literals, MP4 fields, catch-all.
PATTERNS: list[tuple[str, re.Pattern]] = [
    ("hls_field", re.compile(
        _KEYS_HLS + r"""["']?\s*[:=]\s*["']([^"'\s]*\.m3u8[^"'\s]*)["']""", re.I)),
    ("hls_literal", re.compile(
        r"""["']([^"'\s<>]+\.m3u8(?:[?#][^"'\s<>]*)?)["']""", re.I)),
    ("mp4_field", re.compile(
        _KEYS_MP4 + r"""["']?\s*[:=]\s*["']([^"'\s]*\.mp4[^"'\s]*)["']""", re.I)),
    ("any_video", re.compile(
        r"""(?:https?:)?//[^"'\s<>]+\.(?:m3u8|mp4|mkv|avi|webm)(?:[?#][^"'\s<>]*)?""", re.I)),
]

# "cdn.example.com/path": a host written without its scheme
_HOSTLIKE_RE = re.compile(r"^(?:[a-z0-9-]+\.)+[a-z]{2,}(?::\d+)?/", re.I)


def is_junk(url: Optional[str]) -> bool:
    if not url:
        return True
    url = url.strip()
    return not url or url == "about:blank" or url.lower().startswith("javascript:")


def normalize_url(url: str, base_url: Optional[str] = None) -> str:
    """Make a scraped URL absolute. Protocol-relative URLs become https."""
    url = url.strip()
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("/"):
        origin = origin_of(base_url) if base_url else None
        return f"{origin}{url}" if origin else url
    if "://" in url:
        return url
    if _HOSTLIKE_RE.match(url) or not base_url:
        return f"https://{url}"
    return urljoin(base_url, url)


def classify_stream(url: str) -> str:
    return "hls" if ".m3u8" in url else "mp4"


def guess_quality(url: str) -> str:
    if "1080" in url:
        return "1080p"
    if "720" in url:
        return "720p"
    return "HD"


def to_stream(url: str, source: str = "generic_extracted") -> ResolvedStream:
    return ResolvedStream(url=url, type=classify_stream(url),
                          quality=guess_quality(url), source=source)


def dedupe(urls: Iterable[str]) -> list[str]:
    """Drop exact duplicates, keep discovery order."""
    return list(dict.fromkeys(urls))


def _scan_text(body: str) -> str:
    parts = [body]
    if unpacker.detect(body):
        parts += [u.replace("\\'", "'").replace('\\"', '"') for u in unpacker.unpack_all(body)]
    return "\n".join(parts).replace("\\/", "/")


def scan_candidates(body: str, embed_url: Optional[str] = None,
                    patterns: list[tuple[str, re.Pattern]] = PATTERNS) -> list[str]:
    """Every stream URL the pattern table finds, absolute and de-duplicated."""
    text = _scan_text(body)
    found = []
    for name, pattern in patterns:
        for m in pattern.finditer(text):
            raw = m.group(1) if pattern.groups else m.group(0)
            if is_junk(raw):
                continue
            found.append(normalize_url(raw, embed_url))
            log.debug("[%s] %s", name, raw[:120])
    return dedupe(found)


def iframe_sources(html: str, base_url: str, limit: int = config.MAX_NESTED_IFRAMES) -> list[str]:
    soup = BeautifulSoup(html, "html.parser")
    sources = []
    for iframe in soup.find_all("iframe"):
        src = iframe.get("src")
        if is_junk(src):
            continue
        sources.append(normalize_url(src, base_url))
        if len(sources) >= limit:
            break
    return sources


class EmbedExtractor:
    def __init__(self, fetcher: Fetcher, *,
                 max_depth: int = config.MAX_IFRAME_DEPTH,
                 max_iframes: int = config.MAX_NESTED_IFRAMES,
                 patterns: list[tuple[str, re.Pattern]] = PATTERNS):
        self.fetcher = fetcher
        self.max_depth = max_depth
        self.max_iframes = max_iframes
        self.patterns = patterns

    async def fetch(self, url: str) -> str:
        return await self.fetcher.get(url, headers=origin_headers(url))

    async def extract(self, embed_url: str, depth: int = 0, server_hint: str = "",
                      *, _ancestors: frozenset[str] = frozenset()) -> Optional[ResolvedStream]:
        # only pages on the current chain are skipped; sibling branches may refetch
        ancestors = _ancestors | {embed_url}
        try:
            return await self._extract(embed_url, depth, server_hint, ancestors)
        except Exception as e:
            log.warning("[generic] %s failed: %s", embed_url, e)
            return None

    async def _extract(self, url: str, depth: int, server_hint: str,
                       ancestors: frozenset[str]) -> Optional[ResolvedStream]:
        log.info("[generic] depth=%d %s %s", depth, url, f"({server_hint})" if server_hint else "")
        html = await self.fetch(url)

        found = scan_candidates(html, url, self.patterns)
        if found:
            log.info("[generic] found %s", found[0][:120])
            return to_stream(found[0])

        if depth >= self.max_depth:
            return None

        for iframe in iframe_sources(html, url, self.max_iframes):
            if iframe in ancestors:
                continue
            log.debug("[generic] following iframe %s", iframe)
            result = await self.extract(iframe, depth + 1, server_hint, _ancestors=ancestors)
            if result:
                return result
        return None
