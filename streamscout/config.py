"""
Runtime settings, read from the environment (and a local .env file).
"""
import os
from dotenv import load_dotenv

load_dotenv()

# Any TMDB v3 key works; this is the public one the site scrapers shipped with.
TMDB_API_KEY = os.getenv("TMDB_API_KEY") or "439c478a771f35c05022f9feabcca01c"
TMDB_BASE_URL = os.getenv("TMDB_BASE_URL", "https://api.themoviedb.org/3")

FETCH_TIMEOUT = int(os.getenv("FETCH_TIMEOUT", "12"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DOMAIN_CACHE_TTL = int(os.getenv("DOMAIN_CACHE_TTL", str(4 * 60 * 60)))

MAX_IFRAME_DEPTH = int(os.getenv("MAX_IFRAME_DEPTH", "2"))
MAX_NESTED_IFRAMES = int(os.getenv("MAX_NESTED_IFRAMES", "3"))

USER_AGENT = os.getenv(
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
)
