"""2Embed — queries the API endpoints the player script calls for its sources."""
from __future__ import annotations
import logging
import re

from ..base import ResolvedStream
from ..extractor import EmbedExtractor, is_junk, normalize_url, to_stream
from ..fetcher import Fetcher
from ..runner import register_embed

log = logging.getLogger("streamscout.providers.twoembed")

API_PATTERNS = [
    re.compile(r"""fetch\(['"]([^'"]*api[^'"]*)['"]"""),
    re.compile(r"""xhr\.open\(['"]GET['"],\s*['"]([^'"]*)['"]"""),
    re.compile(r"""\$\.get\(['"]([^'"]*)['"]"""),
    re.compile(r"""ajax\(['"]([^'"]*)['"]"""),
]
VIDEO_RE = re.compile(r'"(?:file|url|source)"\s*:\s*"([^"]+\.(?:m3u8|mp4)[^"]*)"')


def api_endpoints(html: str, base_url: str) -> list[str]:
    found = []
    for pattern in API_PATTERNS:
        for m in pattern.finditer(html):
            if not is_junk(m.group(1)):
                found.append(normalize_url(m.group(1), base_url))
    return list(dict.fromkeys(found))


@register_embed
class TwoEmbed:
    id = "2embed"
    name = "2Embed"
    rank = 200

    def __init__(self, fetcher: Fetcher):
        self.fetcher = fetcher

    def matches(self, url: str) -> bool:
        return "2embed.cc" in url

    async def resolve(self, url: str, extractor: EmbedExtractor) -> ResolvedStream | None:
        html = await extractor.fetch(url)
        for api_url in api_endpoints(html, url):
            log.info("[2embed] trying API endpoint %s", api_url)
            try:
                body = await self.fetcher.get(api_url, headers={"Referer": url})
            except Exception as e:
                log.debug("[2embed] API endpoint failed: %s", e)
                continue
            m = VIDEO_RE.search(body.replace("\\/", "/"))
            if m:
                return to_stream(normalize_url(m.group(1), api_url), source="2embed_api")
        return None
