FEED_BASE: str = "https://fastapi.metacpan.org"
FEED_URL: str = f"{FEED_BASE}/release/recent?type=l&page=1&page_size=100"

DEFAULT_DELAY_SECONDS: int = 180   # between a processed response and the next request
REQUEST_TIMEOUT_SECONDS: int = 60
MAX_REDIRECTS: int = 2

USER_AGENT: str = (
    "Mozilla/5.0 (X11; U; Linux i686; en-US; rv:1.1) Gecko/20020913 Debian/1.1-1"
)


class ConfigurationError(ValueError):
    """Raised by RecentUploads.spawn when the component cannot be started."""
