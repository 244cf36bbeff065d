"""
AutoEmbed embed variant.
The player hides its source as a base64 string passed to atob()/decode()/decrypt().
"""
from __future__ import annotations
import base64
import binascii
import re

from ..base import ResolvedStream
from ..extractor import EmbedExtractor, normalize_url, to_stream
from ..fetcher import Fetcher
from ..runner import register_embed

ENCODED_PATTERNS = [
    re.compile(r"""atob\(['"]([^'"]+)['"]\)"""),
    re.compile(r"""decode\(['"]([^'"]+)['"]\)"""),
    re.compile(r"""decrypt\(['"]([^'"]+)['"]\)"""),
]


def b64decode(data: str) -> str:
    """Lenient base64 → text; '' when the input isn't base64."""
    data = data.strip()
    try:
        raw = base64.b64decode(data + "=" * (-len(data) % 4))
    except (binascii.Error, ValueError):
        return ""
    return raw.decode("utf-8", errors="ignore")


def decoded_urls(html: str) -> list[str]:
    found = []
    for pattern in ENCODED_PATTERNS:
        for m in pattern.finditer(html):
            decoded = b64decode(m.group(1)).strip()
            if ".m3u8" in decoded or ".mp4" in decoded:
                found.append(decoded)
    return found


@register_embed
class AutoEmbed:
    id = "autoembed"
    name = "AutoEmbed"
    rank = 100

    def __init__(self, fetcher: Fetcher):
        self.fetcher = fetcher

    def matches(self, url: str) -> bool:
        return "autoembed.cc" in url or "player.autoembed" in url

    async def resolve(self, url: str, extractor: EmbedExtractor) -> ResolvedStream | None:
        found = decoded_urls(await extractor.fetch(url))
        if not found:
            return None
        return to_stream(normalize_url(found[0], url), source="autoembed_decoded")
