"""
Coflix — French catalogue with a JSON suggestion API.

Flow:
  1. coflix.cc/suggest.php?query=…                  → JSON [{title, url, image}]
  2. content page                                    → og:title, poster, season inputs
  3. wp-json/apiflix/v1/series/{post}/{season}       → episodes + their link page
  4. link page → div.embed iframe → li[onclick=showVideo('<base64>')] → player URLs
"""
from __future__ import annotations
import asyncio
import base64
import binascii
import json
import re
from typing import Optional

from bs4 import BeautifulSoup

from ..base import ContentDetails, EmbedCandidate, EpisodeEntry, SearchResult
from ..extractor import normalize_url
from ..runner import register_provider
from .site import SiteProvider

MAIN_URL = "https://coflix.cc"
COFLIX_API = f"{MAIN_URL}/wp-json/apiflix/v1"

SHOW_VIDEO_RE = re.compile(r"showVideo\('([^']+)'")


def image_url(html: str | None) -> Optional[str]:
    """src of the first <img> in an HTML snippet."""
    if not html:
        return None
    img = BeautifulSoup(html, "html.parser").find("img")
    src = img.get("src") if img else None
    if src and src.startswith("//"):
        return f"https:{src}"
    return src


def _b64(data: str) -> str:
    try:
        return base64.b64decode(data + "=" * (-len(data) % 4)).decode("utf-8", errors="ignore")
    except (binascii.Error, ValueError):
        return ""


def _to_int(value, default: int = 1) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@register_provider
class Coflix(SiteProvider):
    id = "coflix"
    name = "Coflix"
    base_url = MAIN_URL
    media_types = ["movie", "tv"]
    tolerate_http_errors = True
    match_by_type = True

    async def search(self, title: str) -> list[SearchResult]:
        try:
            raw = await self.request(f"{MAIN_URL}/suggest.php", params={"query": title})
            items = json.loads(raw)
        except Exception as e:
            self.log.error("[coflix] Search failed: %s", e)
            return []

        results = []
        for item in items if isinstance(items, list) else []:
            url = item.get("url")
            if not url:
                continue
            results.append(SearchResult(
                title=item.get("title") or "Unknown",
                url=url,
                poster_url=image_url(item.get("image")),
                type="movie" if "film" in url else "tv",
            ))
        return results

    async def get_details(self, url: str) -> Optional[ContentDetails]:
        try:
            html = await self.request(url)
        except Exception as e:
            self.log.error("[coflix] Details failed for %s: %s", url, e)
            return None
        soup = BeautifulSoup(html, "html.parser")

        og = soup.select_one('meta[property="og:title"]')
        title = re.sub(r"En$", "", og.get("content", "")).strip() if og else ""
        poster_el = soup.select_one("img.TPostBg")
        poster = poster_el.get("src") if poster_el else None
        if not poster:
            wrap = soup.select_one("div.title-img")
            poster = image_url(str(wrap)) if wrap else None
        desc = soup.select_one("div.summary.link-co p")

        details = ContentDetails(
            title=title or "Unknown",
            poster=poster,
            description=desc.get_text(strip=True) if desc else "",
            tags=[a.get_text(strip=True) for a in soup.select("div.meta.df.aic.fww a")],
        )

        if "film" in url:
            details.servers = await self.stream_links(url)
        else:
            details.episodes = await self.episodes(soup)
        return details

    async def episodes(self, soup: BeautifulSoup) -> list[EpisodeEntry]:
        """Fetch every season's episode list concurrently."""
        seasons = [
            (inp.get("data-season"), inp.get("post-id"))
            for inp in soup.select("section.sc-seasons ul li input")
            if inp.get("data-season") and inp.get("post-id")
        ]

        async def _season(season, post_id) -> list[EpisodeEntry]:
            try:
                data = await self.fetcher.get_json(f"{COFLIX_API}/series/{post_id}/{season}",
                                                   headers=self.site_headers(),
                                                   allow_error_status=True)
            except Exception as e:
                self.log.error("[coflix] Episode fetch error for season %s: %s", season, e)
                return []
            entries = []
            for ep in (data or {}).get("episodes") or []:
                if not ep.get("links"):
                    continue
                entries.append(EpisodeEntry(
                    season=_to_int(ep.get("season")),
                    episode=_to_int(ep.get("number")),
                    url=ep["links"],
                    title=ep.get("title") or "",
                ))
            return entries

        per_season = await asyncio.gather(*(_season(s, p) for s, p in seasons))
        return [e for entries in per_season for e in entries]

    async def episode_servers(self, entry: EpisodeEntry) -> list[EmbedCandidate]:
        return await self.stream_links(entry.url)

    async def stream_links(self, url: str) -> list[EmbedCandidate]:
        try:
            html = await self.request(url)
            iframe = BeautifulSoup(html, "html.parser").select_one("div.embed iframe")
            if not iframe or not iframe.get("src"):
                self.log.warning("[coflix] No iframe found")
                return []
            player_url = normalize_url(iframe["src"], url)
            player = BeautifulSoup(await self.request(player_url), "html.parser")
        except Exception as e:
            self.log.error("[coflix] Stream links failed for %s: %s", url, e)
            return []

        links = []
        for li in player.select("div.OptionsLangDisp div.OD.OD_FR.REactiv li"):
            m = SHOW_VIDEO_RE.search(li.get("onclick") or "")
            if not m:
                continue
            decoded = _b64(m.group(1))
            if decoded.startswith("http"):
                links.append(EmbedCandidate(url=decoded, name=li.get_text(" ", strip=True)))
        return links
