"""
Day2Soap — form-POST search, servers hidden in onclick="go('…')" handlers.

Movies: /watch-{slug}-{id}
Shows:  /watch-tv?tmdb={id}&season={s}&episode={e}
"""
from __future__ import annotations
import re
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from bs4 import BeautifulSoup

from ..base import ContentDetails, EmbedCandidate, EpisodeEntry, SearchResult
from ..runner import register_provider
from .site import SiteProvider

BASE_URL = "https://day2soap.xyz"

GO_RE = re.compile(r"""go\(['"]([^'"]+)['"]\)""")
POSTER_RE = re.compile(r"""url\(['"]?([^'")]+)['"]?\)""")


def _abs(path: str) -> str:
    if not path:
        return ""
    return path if path.startswith("http") else f"{BASE_URL}{path}"


def _year(text: str) -> Optional[int]:
    m = re.search(r"\d{4}", text or "")
    return int(m.group(0)) if m else None


def tv_params(href: str) -> dict[str, str]:
    query = urlsplit(href).query or (href.split("?", 1)[1] if "?" in href else "")
    return {k: v[0] for k, v in parse_qs(query).items() if v}


def section_items(soup: BeautifulSoup, heading: str) -> list:
    """.ml-item cards of the .tab-content that follows the titled .ml-title block."""
    for title in soup.select(".ml-title"):
        if heading not in title.get_text():
            continue
        content = title.find_next_sibling()
        if content is not None and "tab-content" in (content.get("class") or []):
            return content.select(".ml-item")
    return []


def parse_item(el) -> Optional[SearchResult]:
    """One .ml-item card → SearchResult."""
    link = el.select_one("a.ml-mask")
    href = link.get("href") if link else None
    if not href:
        return None

    heading = link.find("h2")
    title = (heading.get_text(strip=True) if heading else "") or link.get("title") or ""
    quality = el.select_one(".mli-quality")
    img = el.find("img")
    is_tv = "watch-tv" in href
    if is_tv and not tv_params(href).get("tmdb"):
        return None

    return SearchResult(
        title=title,
        url=_abs(href),
        year=_year(quality.get_text(strip=True)) if quality else None,
        poster_url=_abs(img.get("src") or "") if img else None,
        type="tv" if is_tv else "movie",
    )


@register_provider
class Day2Soap(SiteProvider):
    id = "day2soap"
    name = "Day2Soap"
    base_url = BASE_URL
    media_types = ["movie", "tv"]

    def site_headers(self, domain: str | None = None) -> dict[str, str]:
        return {
            **super().site_headers(domain),
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
        }

    async def post_form(self, path: str, data: dict) -> str:
        return await self.fetcher.post(
            f"{BASE_URL}{path}", data=data,
            headers={**self.site_headers(), "Content-Type": "application/x-www-form-urlencoded"},
        )

    async def search(self, title: str, page: int = 1) -> list[SearchResult]:
        try:
            html = await self.post_form(
                "/search", {"q": title, "category": "movies", "page": str(page)})
        except Exception as e:
            self.log.error("[day2soap] Search error: %s", e)
            return []

        soup = BeautifulSoup(html, "html.parser")
        results = [r for r in (parse_item(el) for el in soup.select(".ml-item")) if r]
        self.log.info("[day2soap] %d search results", len(results))
        return results

    async def trending(self, media_type: str = "movie", limit: int = 20) -> list[SearchResult]:
        try:
            html = await self.post_form("/trending", {"home": "home"})
        except Exception as e:
            self.log.error("[day2soap] Error getting trending %s: %s", media_type, e)
            return []
        soup = BeautifulSoup(html, "html.parser")

        items = section_items(soup, "Trending Series" if media_type == "tv" else "Trending Movies")
        if not items and media_type == "movie":
            # no titled section: fall back to every tab on the page
            items = soup.select(".tab-content .ml-item")
        results = [r for r in map(parse_item, items) if r and r.type == media_type]
        return results[:limit]

    async def recent(self, limit: int = 20) -> list[SearchResult]:
        try:
            html = await self.post_form("/recent", {"recent": "recent"})
        except Exception as e:
            self.log.error("[day2soap] Error getting recent movies: %s", e)
            return []
        soup = BeautifulSoup(html, "html.parser")
        return [r for r in map(parse_item, soup.select(".ml-item")) if r][:limit]

    async def get_details(self, url: str) -> Optional[ContentDetails]:
        try:
            html = await self.request(url)
        except Exception as e:
            self.log.error("[day2soap] Error getting details: %s", e)
            return None
        soup = BeautifulSoup(html, "html.parser")

        heading = soup.find("h3")
        title = heading.get_text(strip=True) if heading else ""
        if not title:
            btn = soup.select_one(".btn-01")
            title = re.sub(r"^\s*\S+\s*", "", btn.get_text()).strip() if btn else ""
        desc = soup.select_one(".desc p")

        thumb = soup.select_one(".mvic-thumb")
        poster = None
        if thumb:
            m = POSTER_RE.search(thumb.get("style") or "")
            poster = _abs(m.group(1)) if m else None

        info = {}
        for p in soup.select(".mvic-info p"):
            text = p.get_text(" ", strip=True)
            for label in ("Release", "Language", "Duration", "Genres"):
                if text.startswith(f"{label}:"):
                    info[label] = text.split(":", 1)[1].strip()

        return ContentDetails(
            title=title or "Unknown",
            poster=poster,
            description=desc.get_text(strip=True) if desc else "",
            year=_year(info.get("Release", "")),
            tags=[g.strip() for g in info.get("Genres", "").split(",") if g.strip()],
            servers=self.servers(soup),
            episodes=self.episodes(soup),
        )

    def servers(self, soup: BeautifulSoup) -> list[EmbedCandidate]:
        servers = []
        for index, a in enumerate(soup.select(".les-content a")):
            m = GO_RE.search(a.get("onclick") or "")
            if not m:
                continue
            label = re.sub(r"\s+", " ", a.get_text()).strip()
            servers.append(EmbedCandidate(url=m.group(1), name=label or f"Server {index + 1}"))
        return servers

    def episodes(self, soup: BeautifulSoup) -> list[EpisodeEntry]:
        entries: dict[tuple[int, int], EpisodeEntry] = {}
        for a in soup.select('a[href*="watch-tv"]'):
            href = a.get("href") or ""
            params = tv_params(href)
            try:
                key = (int(params["season"]), int(params["episode"]))
            except (KeyError, ValueError):
                continue
            entries.setdefault(key, EpisodeEntry(
                season=key[0], episode=key[1], url=_abs(href),
                title=a.get_text(strip=True)))
        return list(entries.values())
