"""TMDB lookup: id + media type → title, year, IMDB id."""
from __future__ import annotations
import logging

from .. import config
from .base import TitleInfo
from .fetcher import Fetcher

log = logging.getLogger("streamscout.providers.tmdb")


class TmdbClient:
    def __init__(self, fetcher: Fetcher, *, api_key: str = config.TMDB_API_KEY,
                 base_url: str = config.TMDB_BASE_URL):
        self.fetcher = fetcher
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def get(self, tmdb_id, media_type: str = "movie") -> TitleInfo:
        kind = "tv" if media_type in ("tv", "show") else "movie"
        params = {"api_key": self.api_key}
        if kind == "tv":
            params["append_to_response"] = "external_ids"

        data = await self.fetcher.get_json(f"{self.base_url}/{kind}/{tmdb_id}", params=params)
        if not isinstance(data, dict):
            data = {}

        if kind == "movie":
            title = data.get("title")
            date = data.get("release_date")
            imdb_id = data.get("imdb_id")
        else:
            title = data.get("name")
            date = data.get("first_air_date")
            imdb_id = (data.get("external_ids") or {}).get("imdb_id")

        info = TitleInfo(
            title=title or "Unknown",
            year=date[:4] if date else None,
            imdb_id=imdb_id,
        )
        log.info("[tmdb] %s/%s → %r (%s)", kind, tmdb_id, info.title, info.year)
        return info
