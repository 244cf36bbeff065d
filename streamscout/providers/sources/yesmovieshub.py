"""
YesMoviesHub — grid search page, links listed in the post body.
The site hops domains, so the current one is memoised for DOMAIN_CACHE_TTL.
"""
from __future__ import annotations
import re
from typing import Optional

from bs4 import BeautifulSoup

from ..base import ContentDetails, EmbedCandidate, SearchResult
from ..cache import DomainCache
from ..extractor import normalize_url
from ..fetcher import origin_of
from ..runner import register_provider
from .site import SiteProvider

BASE_DOMAIN = "https://yesmovieshub.online"

QUALITY_RE = re.compile(r"(480p|720p|1080p|2160p|4K|HD|CAM|TS)", re.I)
YEAR_RE = re.compile(r"\((\d{4})\)")

QUALITY_RANK = {
    "CAM": 100, "TS": 200, "480P": 480, "720P": 720, "HD": 720,
    "1080P": 1080, "2160P": 2160, "4K": 2160,
}


def extract_quality(text: str | None) -> str:
    m = QUALITY_RE.search(text or "")
    return m.group(1).upper() if m else "HD"


def extract_year(title: str | None) -> Optional[int]:
    m = YEAR_RE.search(title or "")
    return int(m.group(1)) if m else None


def clean_title(title: str | None) -> str:
    if not title:
        return ""
    title = YEAR_RE.sub("", title, count=1)
    return title.replace("&#8211;", "-").replace("&#8217;", "'").strip()


def quality_rank(quality: str | None) -> int:
    if not quality:
        return 0
    return QUALITY_RANK.get(quality.upper(), 720)


@register_provider
class YesMoviesHub(SiteProvider):
    id = "yesmovieshub"
    name = "YesMoviesHub"
    base_url = BASE_DOMAIN
    media_types = ["movie"]

    def __init__(self, *args, **kw):
        super().__init__(*args, **kw)
        self.domain_cache = DomainCache(BASE_DOMAIN)

    async def _current_domain(self) -> str:
        # Follow the homepage redirect; the final origin is the live domain.
        final = await self.fetcher.get_final_url(BASE_DOMAIN)
        return origin_of(final) or BASE_DOMAIN

    async def domain(self) -> str:
        return await self.domain_cache.get(self._current_domain)

    def parse_items(self, html: str, domain: str) -> list[SearchResult]:
        results: list[SearchResult] = []
        for item in BeautifulSoup(html, "html.parser").select(".item"):
            link = item.select_one("a.title")
            if not link:
                continue
            url, text = link.get("href"), link.get_text(strip=True)
            if not url or not text:
                continue
            url = url if url.startswith("http") else f"{domain}{url}"
            if any(r.url == url for r in results):
                continue

            quality_el = item.select_one(".quality")
            meta_el = item.select_one(".meta")
            meta = meta_el.get_text(strip=True) if meta_el else ""
            img = item.find("img")

            title = clean_title(text)
            if not title:
                continue
            results.append(SearchResult(
                title=title,
                url=url,
                year=extract_year(text),
                poster_url=(img.get("data-src") or img.get("src")) if img else None,
                type="tv" if "SS " in meta or "EP " in meta else "movie",
                quality=extract_quality(quality_el.get_text(strip=True) if quality_el else "HD"),
            ))
        return results

    async def search(self, title: str) -> list[SearchResult]:
        try:
            domain = await self.domain()
            html = await self.request(f"{domain}/", params={"s": title},
                                      headers=self.site_headers(domain))
        except Exception as e:
            self.log.error("[yesmovieshub] Search failed: %s", e)
            return []
        results = self.parse_items(html, domain)
        self.log.info("[yesmovieshub] Found %d search results", len(results))
        return results

    async def trending(self, media_type: str = "movie", limit: int = 20) -> list[SearchResult]:
        if media_type != "movie":
            return []
        try:
            domain = await self.domain()
            html = await self.request(domain, headers=self.site_headers(domain))
        except Exception as e:
            self.log.error("[yesmovieshub] Failed to get trending movies: %s", e)
            return []
        return self.parse_items(html, domain)[:limit]

    async def get_details(self, url: str) -> Optional[ContentDetails]:
        try:
            html = await self.request(url)
        except Exception as e:
            self.log.error("[yesmovieshub] Failed to get movie details: %s", e)
            return None
        soup = BeautifulSoup(html, "html.parser")

        heading = soup.select_one("h1.entry-title, .title")
        full_title = heading.get_text(strip=True) if heading else ""
        desc = soup.select_one(".desc, .description, .entry-content p")
        poster = soup.select_one(".poster img, .movie-poster img")

        tags: list[str] = []
        for a in soup.select('a[href*="/category/"]'):
            genre = a.get_text(strip=True)
            if genre and genre not in tags:
                tags.append(genre)

        links = []
        for el in soup.select(".entry-content a, .download-links a, .player-container"):
            href = el.get("href") or ""
            if any(k in href for k in (".mp4", "stream", "watch")):
                label = el.get_text(strip=True)
                links.append(EmbedCandidate(url=normalize_url(href, url), name=label,
                                           quality=extract_quality(label)))
        links.sort(key=lambda c: quality_rank(c.quality), reverse=True)

        details = ContentDetails(
            title=clean_title(full_title) or "Unknown",
            poster=(poster.get("data-src") or poster.get("src")) if poster else None,
            description=desc.get_text(strip=True) if desc else "",
            year=extract_year(full_title),
            tags=tags,
            servers=links,
        )
        self.log.info("[yesmovieshub] Extracted %d links for: %s", len(links), details.title)
        return details
