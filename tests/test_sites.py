import json

import pytest
from bs4 import BeautifulSoup

from streamscout.providers.base import (
    ContentDetails, EmbedCandidate, EpisodeEntry, ResolvedStream, SearchResult, TitleInfo,
)
from streamscout.providers.fetcher import DEFAULT_UA
from streamscout.providers.runner import EmbedResolver
from streamscout.providers.sources.coflix import Coflix
from streamscout.providers.sources.day2soap import Day2Soap, parse_item
from streamscout.providers.sources.fivemovierulz import FiveMovieRulz, server_from_url
from streamscout.providers.sources.site import (
    SiteProvider, best_match, normalize_quality, select_episode,
)
from streamscout.providers.sources.yesmovieshub import BASE_DOMAIN, YesMoviesHub
from streamscout.providers.tmdb import TmdbClient

TMDB = "https://tmdb.test/3"

EPISODES = [
    EpisodeEntry(season=1, episode=1, url="https://stub.example/s1e1"),
    EpisodeEntry(season=1, episode=2, url="https://stub.example/s1e2"),
]


class StubTmdb:
    async def get(self, tmdb_id, media_type="movie"):
        return TitleInfo(title="Show", year="2008")


class StubResolver:
    def __init__(self, dead=()):
        self.dead = set(dead)
        self.seen = []

    async def resolve(self, url, server_hint=""):
        self.seen.append((url, server_hint))
        if url in self.dead:
            return None
        return ResolvedStream(url=f"{url}/index.m3u8", type="hls")


class StubSite(SiteProvider):
    id = "stub"
    name = "Stub"
    base_url = "https://stub.example"

    async def search(self, title):
        return [SearchResult(title="Show", url="https://stub.example/show", type="tv")]

    async def get_details(self, url):
        return ContentDetails(
            title="Show",
            episodes=EPISODES,
            servers=[
                EmbedCandidate(url="https://embed.example/a"),
                EmbedCandidate(url="https://embed.example/b", name="Mirror", quality="1080p"),
            ],
        )

    async def episode_servers(self, entry):
        return [EmbedCandidate(url=f"https://embed.example/{entry.season}x{entry.episode}")]


class BrokenSite(StubSite):
    id = "broken"

    async def search(self, title):
        raise RuntimeError("site is down")


def stub(cls=StubSite, fetcher=None, resolver=None):
    return cls(fetcher, tmdb=StubTmdb(), resolver=resolver or StubResolver())


# ── matching ─────────────────────────────

def test_best_match_empty():
    assert best_match([], "Fight Club") is None


def test_best_match_substring_case_insensitive():
    results = [SearchResult("Something Else", "u1"), SearchResult("FIGHT CLUB (1999)", "u2")]
    assert best_match(results, "fight club").url == "u2"


def test_best_match_falls_back_to_first():
    results = [SearchResult("Alpha", "u1"), SearchResult("Beta", "u2")]
    assert best_match(results, "Gamma").url == "u1"


def test_best_match_by_type():
    results = [SearchResult("Fight Club", "u1", type="tv"), SearchResult("Fight Club", "u2")]
    assert best_match(results, "Fight Club", media_type="movie").url == "u2"


def test_best_match_prefers_year():
    results = [SearchResult("Fight Club", "u1", year=2023), SearchResult("Fight Club", "u2", year=1999)]
    assert best_match(results, "Fight Club", year="1999").url == "u2"
    assert best_match(results, "Fight Club").url == "u1"


def test_select_episode():
    assert select_episode(EPISODES, 1, 2) is EPISODES[1]
    assert select_episode(EPISODES, "1", "2") is EPISODES[1]
    assert select_episode(EPISODES, 2, 1) is None
    assert select_episode(EPISODES, None, None) is None


# ── orchestration ────────────────────────

@pytest.mark.asyncio
async def test_get_streams_selects_requested_episode(fetcher):
    resolver = StubResolver()
    streams = await stub(fetcher=fetcher, resolver=resolver).get_streams(1396, "tv", 1, 2)
    assert [s.url for s in streams] == ["https://embed.example/1x2/index.m3u8"]
    assert resolver.seen == [("https://embed.example/1x2", "Stub")]


@pytest.mark.asyncio
async def test_get_streams_missing_episode_is_empty(fetcher):
    assert await stub(fetcher=fetcher).get_streams(1396, "tv", 2, 1) == []


@pytest.mark.asyncio
async def test_get_streams_output_contract(fetcher):
    streams = await stub(fetcher=fetcher).get_streams(550, "movie")
    assert streams[0].to_dict() == {
        "name": "Stub Server 1",
        "title": "Show (2008)",
        "url": "https://embed.example/a/index.m3u8",
        "quality": "HD",
        "size": "Unknown",
        "headers": {"User-Agent": DEFAULT_UA, "Referer": "https://stub.example"},
        "provider": "stub",
    }
    assert streams[1].quality == "1080p"


@pytest.mark.asyncio
async def test_unresolved_servers_are_skipped(fetcher):
    resolver = StubResolver(dead={"https://embed.example/a"})
    streams = await stub(fetcher=fetcher, resolver=resolver).get_streams(550, "movie")
    assert [s.name for s in streams] == ["Stub Server 2"]


@pytest.mark.asyncio
async def test_site_errors_are_isolated(fetcher):
    assert await stub(BrokenSite, fetcher).get_streams(550, "movie") == []


@pytest.mark.asyncio
async def test_unsupported_media_type(fetcher):
    site = stub(fetcher=fetcher)
    site.media_types = ["movie"]
    assert await site.get_streams(1396, "show", 1, 1) == []


class UpperCaseQualitySite(StubSite):
    async def get_details(self, url):
        return ContentDetails(title="Show", servers=[
            EmbedCandidate(url="https://embed.example/a", quality="1080P"),
        ])


def test_normalize_quality():
    assert normalize_quality("1080P") == "1080p"
    assert normalize_quality(" 720p ") == "720p"
    assert normalize_quality("4K") == "4K"
    assert normalize_quality(None) == ""


@pytest.mark.asyncio
async def test_site_quality_label_is_lower_cased(fetcher):
    streams = await stub(UpperCaseQualitySite, fetcher).get_streams(550, "movie")
    assert [s.quality for s in streams] == ["1080p"]


# ── Coflix ───────────────────────────────

COFLIX_FILM = """
<meta property="og:title" content="Fight Club En">
<img class="TPostBg" src="https://img.example/fc.jpg">
<div class="summary link-co"><p>An insomniac office worker.</p></div>
<div class="meta df aic fww"><a>Drame</a><a>Thriller</a></div>
<div class="embed"><iframe src="/player/1"></iframe></div>
"""

COFLIX_PLAYER = """
<div class="OptionsLangDisp"><div class="OD OD_FR REactiv"><ul>
  <li onclick="showVideo('aHR0cHM6Ly9lbWJlZC5leGFtcGxlLmNvbS9lL2FiYw==', 'fr')">Serveur 1</li>
  <li onclick="showVideo('aGVsbG8=')">Cassé</li>
</ul></div></div>
"""


def coflix_routes():
    return {
        f"{TMDB}/movie/550": {"title": "Fight Club", "release_date": "1999-10-15"},
        "https://coflix.cc/suggest.php": json.dumps([
            {"title": "Fight Club", "url": "https://coflix.cc/film/fight-club/",
             "image": '<img src="//img.coflix.cc/p.jpg">'},
            {"title": "Fight Club Serie", "url": "https://coflix.cc/serie/fight-club/"},
        ]),
        "https://coflix.cc/film/fight-club/": COFLIX_FILM,
        "https://coflix.cc/player/1": COFLIX_PLAYER,
        "https://embed.example.com/e/abc":
            '<script>var file = "https://cdn.example.com/fc.m3u8";</script>',
    }


@pytest.mark.asyncio
async def test_coflix_search(fetcher):
    fetcher.routes.update(coflix_routes())
    results = await Coflix(fetcher).search("Fight Club")
    assert [(r.title, r.type) for r in results] == [("Fight Club", "movie"), ("Fight Club Serie", "tv")]
    assert results[0].poster_url == "https://img.coflix.cc/p.jpg"


@pytest.mark.asyncio
async def test_coflix_search_error_is_empty(fetcher):
    assert await Coflix(fetcher).search("Fight Club") == []


@pytest.mark.asyncio
async def test_coflix_film_details(fetcher):
    fetcher.routes.update(coflix_routes())
    details = await Coflix(fetcher).get_details("https://coflix.cc/film/fight-club/")
    assert details.title == "Fight Club"
    assert details.poster == "https://img.example/fc.jpg"
    assert details.tags == ["Drame", "Thriller"]
    assert [(s.url, s.name) for s in details.servers] == [("https://embed.example.com/e/abc", "Serveur 1")]


@pytest.mark.asyncio
async def test_coflix_player_connection_error_leaves_no_servers(fetcher):
    fetcher.routes.update(coflix_routes())
    fetcher.routes["https://coflix.cc/player/1"] = ConnectionError("boom")
    details = await Coflix(fetcher).get_details("https://coflix.cc/film/fight-club/")
    assert details is not None
    assert details.title == "Fight Club"
    assert details.servers == []


@pytest.mark.asyncio
async def test_coflix_episode_page_error_is_empty(fetcher):
    entry = EpisodeEntry(season=1, episode=1, url="https://coflix.cc/episode/missing")
    assert await Coflix(fetcher).episode_servers(entry) == []


@pytest.mark.asyncio
async def test_coflix_series_episodes(fetcher):
    fetcher.routes.update({
        "https://coflix.cc/serie/breaking-bad/": """
            <meta property="og:title" content="Breaking Bad">
            <section class="sc-seasons"><ul>
              <li><input data-season="1" post-id="77"></li>
              <li><input data-season="2" post-id="77"></li>
            </ul></section>
        """,
        "https://coflix.cc/wp-json/apiflix/v1/series/77/1": {"episodes": [
            {"season": "1", "number": "1", "links": "https://coflix.cc/episode/bb-1x1", "title": "Pilot"},
            {"season": "1", "number": "2", "links": ""},
        ]},
    })
    details = await Coflix(fetcher).get_details("https://coflix.cc/serie/breaking-bad/")
    assert details.servers == []
    assert details.episodes == [
        EpisodeEntry(season=1, episode=1, url="https://coflix.cc/episode/bb-1x1", title="Pilot"),
    ]


@pytest.mark.asyncio
async def test_coflix_get_streams(fetcher):
    fetcher.routes.update(coflix_routes())
    site = Coflix(fetcher, tmdb=TmdbClient(fetcher, api_key="k", base_url=TMDB),
                  resolver=EmbedResolver(fetcher))
    streams = await site.get_streams(550, "movie")
    assert [s.to_dict() for s in streams] == [{
        "name": "Coflix Server 1",
        "title": "Fight Club (1999)",
        "url": "https://cdn.example.com/fc.m3u8",
        "quality": "HD",
        "size": "Unknown",
        "headers": {"User-Agent": DEFAULT_UA, "Referer": "https://coflix.cc"},
        "provider": "coflix",
    }]


# ── FiveMovieRulz ────────────────────────

RULZ_SEARCH = """
<div id="main">
  <div class="cont_display"><a href="https://5movierulz.mom/fight-club-2023/"
       title="Fight Club (2023) HDRip"></a></div>
  <div class="cont_display"><a href="https://5movierulz.mom/fight-club-1999/"
       title="Fight Club (1999) BRRip English Full Movie"><img src="https://img.example/fc.jpg"></a></div>
  <div class="cont_display"><span>no link</span></div>
</div>
"""

RULZ_DETAILS = """
<h2 class="entry-title">Fight Club (1999) BRRip</h2>
<div class="entry-content">
  <p>one</p><p>two</p><p>three</p><p><img src="https://img.example/fc.jpg"></p>
  <p>Directed by: David Fincher Genres: Drama, Thriller Country: USA</p>
  <p>An insomniac office worker forms a fight club.</p>
  <a href="https://filelions.to/v/abc">Watch 720p</a>
  <a href="https://mixdrop.co/e/xyz">1080p</a>
  <a href="https://files.example.org/download/1">download 480p</a>
  <a href="https://filelions.to/v/abc">again</a>
</div>
"""


@pytest.mark.asyncio
async def test_fivemovierulz_search(fetcher):
    fetcher.routes["https://5movierulz.mom/"] = RULZ_SEARCH
    results = await FiveMovieRulz(fetcher).search("Fight Club")
    assert [(r.title, r.year) for r in results] == [("Fight Club", 2023), ("Fight Club", 1999)]
    assert best_match(results, "Fight Club", year="1999").url == "https://5movierulz.mom/fight-club-1999/"


@pytest.mark.asyncio
async def test_fivemovierulz_details(fetcher):
    url = "https://5movierulz.mom/fight-club-1999/"
    fetcher.routes[url] = RULZ_DETAILS
    details = await FiveMovieRulz(fetcher).get_details(url)
    assert details.title == "Fight Club"
    assert details.year == 1999
    assert details.tags == ["Drama", "Thriller"]
    assert details.description == "An insomniac office worker forms a fight club."
    assert [(s.name, s.quality) for s in details.servers] == [
        ("FileLions", "720p"), ("MixDrop", "1080p"), ("files.example.org", "480p"),
    ]


def test_server_from_url():
    assert server_from_url("https://doodstream.com/e/1") == "DoodStream"
    assert server_from_url("not a url") == "Unknown Server"


@pytest.mark.asyncio
async def test_fivemovierulz_tv_not_supported(fetcher):
    assert await FiveMovieRulz(fetcher).get_streams(1396, "tv", 1, 1) == []
    assert fetcher.calls == []


# ── YesMoviesHub ─────────────────────────

YMH_SEARCH = """
<div class="item"><a class="title" href="/fight-club-1999/">Fight Club (1999)</a>
  <span class="quality">1080p</span><span class="meta">2h 19m</span>
  <img data-src="https://img.example/a.jpg" src="lazy.gif"></div>
<div class="item"><a class="title" href="https://yesmovieshub.cam/breaking-bad/">Breaking Bad (2008)</a>
  <span class="meta">SS 5 EP 62</span></div>
<div class="item"><a class="title" href="/fight-club-1999/">Fight Club (1999)</a></div>
<div class="item"><span>no title link</span></div>
"""


def test_yesmovieshub_parse_items(fetcher):
    results = YesMoviesHub(fetcher).parse_items(YMH_SEARCH, "https://yesmovieshub.cam")
    assert len(results) == 2
    movie, show = results
    assert movie.url == "https://yesmovieshub.cam/fight-club-1999/"
    assert (movie.title, movie.year, movie.quality, movie.type) == ("Fight Club", 1999, "1080P", "movie")
    assert movie.poster_url == "https://img.example/a.jpg"
    assert (show.type, show.quality) == ("tv", "HD")


@pytest.mark.asyncio
async def test_yesmovieshub_domain_is_cached(fetcher):
    fetcher.final_urls[BASE_DOMAIN] = "https://yesmovieshub.cam/home"
    fetcher.routes["https://yesmovieshub.cam/"] = YMH_SEARCH
    site = YesMoviesHub(fetcher)

    assert len(await site.search("Fight Club")) == 2
    assert len(await site.search("Breaking Bad")) == 2
    assert [c.url for c in fetcher.calls if c.method == "HEAD"] == [BASE_DOMAIN]
    assert await site.domain() == "https://yesmovieshub.cam"


@pytest.mark.asyncio
async def test_yesmovieshub_details_sorted_by_quality(fetcher):
    url = "https://yesmovieshub.cam/fight-club-1999/"
    fetcher.routes[url] = """
        <h1 class="entry-title">Fight Club (1999)</h1>
        <div class="entry-content"><p>Plot here.</p>
          <a href="/watch/fc-720">Stream 720p</a>
          <a href="https://host.example/stream/fc-1080">Stream 1080p</a>
          <a href="https://other.example/about">About</a>
        </div>
        <a href="/category/drama/">Drama</a>
    """
    details = await YesMoviesHub(fetcher).get_details(url)
    assert (details.title, details.year, details.description) == ("Fight Club", 1999, "Plot here.")
    assert details.tags == ["Drama"]
    assert [s.url for s in details.servers] == [
        "https://host.example/stream/fc-1080",
        "https://yesmovieshub.cam/watch/fc-720",
    ]


# ── Day2Soap ─────────────────────────────

D2S_SEARCH = """
<div class="ml-item"><a class="ml-mask" href="/watch-fight-club-550" title="Fight Club">
  <img src="/img/fc.jpg"><span class="mli-quality">1999</span></a></div>
<div class="ml-item"><a class="ml-mask" href="/watch-tv?tmdb=1396&amp;season=1&amp;episode=1">
  <h2>Breaking Bad</h2></a></div>
<div class="ml-item"><a class="ml-mask" href="/watch-tv?season=1">Orphan</a></div>
"""

D2S_EPISODE_1 = """
<h3>Breaking Bad</h3>
<div class="desc"><p>A chemist turns to crime.</p></div>
<div class="mvic-info"><p>Release: 2008</p><p>Genres: Crime, Drama</p></div>
<div class="les-content"><a onclick="go('https://embed.example.com/bb/1x1')">Server A</a></div>
<a href="/watch-tv?tmdb=1396&amp;season=1&amp;episode=1">E1</a>
<a href="/watch-tv?tmdb=1396&amp;season=1&amp;episode=2">E2</a>
"""

D2S_EPISODE_2 = """
<div class="les-content">
  <a href="#">no handler</a>
  <a onclick="go('https://embed.example.com/bb/1x2')">  </a>
</div>
"""


def test_day2soap_parse_item():
    soup = BeautifulSoup(D2S_SEARCH, "html.parser")
    movie, show, orphan = [parse_item(el) for el in soup.select(".ml-item")]
    assert (movie.title, movie.year, movie.type) == ("Fight Club", 1999, "movie")
    assert movie.poster_url == "https://day2soap.xyz/img/fc.jpg"
    assert (show.title, show.type) == ("Breaking Bad", "tv")
    assert orphan is None


@pytest.mark.asyncio
async def test_day2soap_search_posts_form(fetcher):
    fetcher.routes["https://day2soap.xyz/search"] = D2S_SEARCH
    results = await Day2Soap(fetcher).search("breaking bad")
    assert len(results) == 2
    call = fetcher.calls[0]
    assert call.method == "POST"
    assert call.data == {"q": "breaking bad", "category": "movies", "page": "1"}


@pytest.mark.asyncio
async def test_day2soap_details(fetcher):
    url = "https://day2soap.xyz/watch-tv?tmdb=1396&season=1&episode=1"
    fetcher.routes[url] = D2S_EPISODE_1
    details = await Day2Soap(fetcher).get_details(url)
    assert (details.title, details.year, details.tags) == ("Breaking Bad", 2008, ["Crime", "Drama"])
    assert [(s.url, s.name) for s in details.servers] == [("https://embed.example.com/bb/1x1", "Server A")]
    assert [(e.season, e.episode) for e in details.episodes] == [(1, 1), (1, 2)]


@pytest.mark.asyncio
async def test_day2soap_tv_get_streams(fetcher):
    fetcher.routes.update({
        f"{TMDB}/tv/1396": {"name": "Breaking Bad", "first_air_date": "2008-01-20",
                            "external_ids": {"imdb_id": "tt0903747"}},
        "https://day2soap.xyz/search": D2S_SEARCH,
        "https://day2soap.xyz/watch-tv?tmdb=1396&season=1&episode=1": D2S_EPISODE_1,
        "https://day2soap.xyz/watch-tv?tmdb=1396&season=1&episode=2": D2S_EPISODE_2,
        "https://embed.example.com/bb/1x2": 'file: "https://cdn.example.com/bb/s01e02.m3u8"',
    })
    site = Day2Soap(fetcher, tmdb=TmdbClient(fetcher, api_key="k", base_url=TMDB))
    streams = await site.get_streams(1396, "tv", 1, 2)
    assert len(streams) == 1
    assert streams[0].name == "Day2Soap Server 1"
    assert streams[0].title == "Breaking Bad (2008)"
    assert streams[0].url == "https://cdn.example.com/bb/s01e02.m3u8"
    assert streams[0].headers["Referer"] == "https://day2soap.xyz"


@pytest.mark.asyncio
async def test_yesmovieshub_trending(fetcher):
    fetcher.routes[BASE_DOMAIN] = YMH_SEARCH
    trending = await YesMoviesHub(fetcher).trending(limit=1)
    assert [r.title for r in trending] == ["Fight Club"]


@pytest.mark.asyncio
async def test_yesmovieshub_has_no_tv_trending(fetcher):
    assert await YesMoviesHub(fetcher).trending("tv") == []
    assert fetcher.calls == []


D2S_HOME = """
<div class="ml-title">Trending Movies</div>
<div class="tab-content">
  <div class="ml-item"><a class="ml-mask" href="/watch-fight-club-550" title="Fight Club"></a></div>
  <div class="ml-item"><a class="ml-mask" href="/watch-heat-949" title="Heat"></a></div>
</div>
<div class="ml-title">Trending Series</div>
<div class="tab-content">
  <div class="ml-item"><a class="ml-mask" href="/watch-tv?tmdb=1396&amp;season=1&amp;episode=1">
    <h2>Breaking Bad</h2></a></div>
</div>
"""


@pytest.mark.asyncio
async def test_day2soap_trending_movies(fetcher):
    fetcher.routes["https://day2soap.xyz/trending"] = D2S_HOME
    results = await Day2Soap(fetcher).trending("movie", limit=1)
    assert [r.title for r in results] == ["Fight Club"]
    assert fetcher.calls[0].method == "POST"
    assert fetcher.calls[0].data == {"home": "home"}


@pytest.mark.asyncio
async def test_day2soap_trending_series(fetcher):
    fetcher.routes["https://day2soap.xyz/trending"] = D2S_HOME
    results = await Day2Soap(fetcher).trending("tv")
    assert [(r.title, r.type) for r in results] == [("Breaking Bad", "tv")]


@pytest.mark.asyncio
async def test_day2soap_trending_without_titled_section(fetcher):
    fetcher.routes["https://day2soap.xyz/trending"] = f'<div class="tab-content">{D2S_SEARCH}</div>'
    results = await Day2Soap(fetcher).trending()
    assert [r.title for r in results] == ["Fight Club"]


@pytest.mark.asyncio
async def test_day2soap_trending_error_is_empty(fetcher):
    fetcher.routes["https://day2soap.xyz/trending"] = ConnectionError("boom")
    assert await Day2Soap(fetcher).trending() == []


@pytest.mark.asyncio
async def test_day2soap_recent(fetcher):
    fetcher.routes["https://day2soap.xyz/recent"] = D2S_SEARCH
    results = await Day2Soap(fetcher).recent()
    assert [r.title for r in results] == ["Fight Club", "Breaking Bad"]
    assert fetcher.calls[0].data == {"recent": "recent"}
