"""FiveMovieRulz — WordPress movie blog; servers are plain hoster links in the post."""
from __future__ import annotations
import re
from typing import Optional
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from ..base import ContentDetails, EmbedCandidate, SearchResult
from ..runner import register_provider
from .site import SiteProvider, quality_from_text

MAIN_URL = "https://5movierulz.mom"

HOSTER_SELECTOR = ('a[href*="filelions.to"], a[href*="streamplay"], '
                   'a[href*="doodstream"], a[href*="mixdrop"]')
EXTRA_SELECTOR = 'a[href*="download"], a[href*="stream"], .download-link'

SERVER_NAMES = {
    "filelions": "FileLions",
    "streamplay": "StreamPlay",
    "doodstream": "DoodStream",
    "mixdrop": "MixDrop",
}

YEAR_RE = re.compile(r"\d{4}")


def server_from_url(url: str) -> str:
    host = urlsplit(url).hostname
    if not host:
        return "Unknown Server"
    for key, label in SERVER_NAMES.items():
        if key in host:
            return label
    return host


def _split_title(text: str) -> str:
    return (text or "").strip().split("(")[0].strip()


@register_provider
class FiveMovieRulz(SiteProvider):
    id = "fivemovierulz"
    name = "FiveMovieRulz"
    base_url = MAIN_URL
    media_types = ["movie"]
    tolerate_http_errors = True
    match_by_year = True

    async def search(self, title: str) -> list[SearchResult]:
        try:
            html = await self.request(f"{MAIN_URL}/", params={"s": title})
        except Exception as e:
            self.log.error("[fivemovierulz] Search failed: %s", e)
            return []

        results = []
        for el in BeautifulSoup(html, "html.parser").select("#main .cont_display"):
            a = el.find("a")
            if not a:
                continue
            raw_title = a.get("title") or ""
            name, href = _split_title(raw_title), a.get("href")
            if not name or not href:
                continue
            img = el.find("img")
            year = YEAR_RE.search(raw_title)
            results.append(SearchResult(
                title=name,
                url=href,
                year=int(year.group(0)) if year else None,
                poster_url=img.get("src") if img else None,
                type="movie",
            ))
        return results

    async def get_details(self, url: str) -> Optional[ContentDetails]:
        try:
            html = await self.request(url)
        except Exception as e:
            self.log.error("[fivemovierulz] Details failed for %s: %s", url, e)
            return None
        soup = BeautifulSoup(html, "html.parser")

        heading = soup.select_one("h2.entry-title")
        heading_text = heading.get_text() if heading else ""
        year = YEAR_RE.search(heading_text)
        poster = soup.select_one(".entry-content img")
        desc = soup.select_one("div.entry-content > p:nth-child(6)")
        info = soup.select_one("div.entry-content > p:nth-child(5)")
        info_text = info.get_text() if info else ""

        tags = []
        if "Genres:" in info_text:
            genres = info_text.split("Genres:", 1)[1].split("Country:")[0]
            tags = [t.strip() for t in genres.split(",") if t.strip()]

        return ContentDetails(
            title=_split_title(heading_text) or "Unknown",
            poster=poster.get("src") if poster else None,
            description=desc.get_text(strip=True) if desc else "",
            year=int(year.group(0)) if year else None,
            tags=tags,
            servers=self.download_links(soup),
        )

    def download_links(self, soup: BeautifulSoup) -> list[EmbedCandidate]:
        links: list[EmbedCandidate] = []
        seen = set()
        for selector in (HOSTER_SELECTOR, EXTRA_SELECTOR):
            for a in soup.select(selector):
                href = a.get("href") or ""
                if not href.startswith("http") or href in seen:
                    continue
                seen.add(href)
                links.append(EmbedCandidate(
                    url=href,
                    name=server_from_url(href),
                    quality=quality_from_text(a.get_text(strip=True)),
                ))
        return links
