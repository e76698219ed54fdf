"""
newsdesk Configuration

Centralized configuration. All environment variables MUST be read here;
no os.getenv() calls elsewhere. Components receive the relevant section
through their constructors.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""
    pass


def _optional_env(name: str, default: str = "") -> str:
    """Get an optional environment variable with a default."""
    return os.environ.get(name, default)


def _optional_env_int(name: str, default: int) -> int:
    """Get an optional integer environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid integer value for {name}: {value}")


def _optional_env_float(name: str, default: float) -> float:
    """Get an optional float environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Invalid number value for {name}: {value}")


def _optional_env_bool(name: str, default: bool) -> bool:
    """Get an optional boolean environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    return value.lower() in ("true", "1", "yes")


def _optional_env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Get a comma-separated list environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    return tuple(part.strip() for part in value.split(",") if part.strip())


DEFAULT_FEED_URLS: tuple[str, ...] = (
    "https://economictimes.indiatimes.com/markets/rssfeeds/1977021501.cms",
    "https://www.moneycontrol.com/rss/latestnews.xml",
    "https://www.business-standard.com/rss/markets-106.rss",
    "https://www.livemint.com/rss/markets",
)

NEWS_API_BASE_URL = "https://newsapi.org/v2/everything"
NEWS_API_QUERY = (
    '(stock OR shares OR NSE OR BSE OR "Reserve Bank" OR RBI OR earnings '
    "OR merger OR acquisition)"
)


@dataclass(frozen=True)
class FeedConfig:
    """External news feed configuration."""
    urls: tuple[str, ...] = DEFAULT_FEED_URLS
    news_api_key: str = ""
    timeout_seconds: float = 8.0

    @property
    def news_api_url(self) -> str | None:
        """News API query URL, or None when no key is configured."""
        if not self.news_api_key:
            return None
        return (
            f"{NEWS_API_BASE_URL}?sources=the-times-of-india,economic-times"
            f"&q={NEWS_API_QUERY}&language=en&sortBy=publishedAt&pageSize=50"
            f"&apiKey={self.news_api_key}"
        )

    @property
    def all_urls(self) -> tuple[str, ...]:
        """Every feed URL to poll during an ingestion run."""
        if self.news_api_url:
            return self.urls + (self.news_api_url,)
        return self.urls


@dataclass(frozen=True)
class EnrichmentConfig:
    """LLM enrichment configuration."""
    groq_api_key: str = ""
    model: str = "llama-3.1-8b-instant"
    timeout_seconds: float = 15.0
    cooldown_seconds: float = 30 * 60
    fallback_ticker_cap: int = 6

    @property
    def ai_enabled(self) -> bool:
        return bool(self.groq_api_key)


@dataclass(frozen=True)
class IngestConfig:
    """Ingestion run batching configuration."""
    priority_batch_size: int = 3
    background_batch_size: int = 5
    background_batch_delay_seconds: float = 1.0


@dataclass(frozen=True)
class MarketConfig:
    """Market data cache and broadcast configuration."""
    cache_ttl_seconds: float = 10.0
    broadcast_interval_seconds: float = 5.0
    quote_timeout_seconds: float = 5.0


@dataclass(frozen=True)
class HTTPServerConfig:
    """REST API server configuration."""
    host: str = "0.0.0.0"
    port: int = 5000


@dataclass(frozen=True)
class WebSocketServerConfig:
    """WebSocket server configuration for market-update subscribers."""
    host: str = "0.0.0.0"
    port: int = 8765
    path: str = "/ws/market"


@dataclass(frozen=True)
class RedisConfig:
    """Optional Redis fan-out configuration."""
    url: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.url)


@dataclass(frozen=True)
class Settings:
    """Root configuration container."""
    feeds: FeedConfig = field(default_factory=FeedConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    market: MarketConfig = field(default_factory=MarketConfig)
    http_server: HTTPServerConfig = field(default_factory=HTTPServerConfig)
    websocket_server: WebSocketServerConfig = field(default_factory=WebSocketServerConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    seed_on_start: bool = True


def load_settings() -> Settings:
    """Load all settings from environment variables.

    Every value has a default so the service starts without a .env file;
    without GROQ_API_KEY enrichment runs on the keyword fallback only and
    without NEWS_API_KEY only the RSS feeds are polled.
    """
    feeds = FeedConfig(
        urls=_optional_env_list("FEED_URLS", DEFAULT_FEED_URLS),
        news_api_key=_optional_env("NEWS_API_KEY", _optional_env("NEWSAPI_KEY", "")),
        timeout_seconds=_optional_env_float("FEED_TIMEOUT_S", 8.0),
    )

    enrichment = EnrichmentConfig(
        groq_api_key=_optional_env("GROQ_API_KEY", ""),
        model=_optional_env("GROQ_MODEL", "llama-3.1-8b-instant"),
        timeout_seconds=_optional_env_float("ENRICHMENT_TIMEOUT_S", 15.0),
        cooldown_seconds=_optional_env_float("ENRICHMENT_COOLDOWN_S", 30 * 60),
        fallback_ticker_cap=_optional_env_int("FALLBACK_TICKER_CAP", 6),
    )

    ingest = IngestConfig(
        priority_batch_size=_optional_env_int("PRIORITY_BATCH_SIZE", 3),
        background_batch_size=_optional_env_int("BACKGROUND_BATCH_SIZE", 5),
        background_batch_delay_seconds=_optional_env_float("BACKGROUND_BATCH_DELAY_S", 1.0),
    )
    if ingest.background_batch_size < 1:
        raise ConfigurationError("BACKGROUND_BATCH_SIZE must be at least 1")
    if ingest.priority_batch_size < 0:
        raise ConfigurationError("PRIORITY_BATCH_SIZE must not be negative")

    market = MarketConfig(
        cache_ttl_seconds=_optional_env_float("MARKET_CACHE_TTL_S", 10.0),
        broadcast_interval_seconds=_optional_env_float("MARKET_BROADCAST_INTERVAL_S", 5.0),
        quote_timeout_seconds=_optional_env_float("QUOTE_TIMEOUT_S", 5.0),
    )

    http_server = HTTPServerConfig(
        host=_optional_env("HTTP_HOST", "0.0.0.0"),
        port=_optional_env_int("HTTP_PORT", 5000),
    )

    websocket_server = WebSocketServerConfig(
        host=_optional_env("WS_HOST", "0.0.0.0"),
        port=_optional_env_int("WS_PORT", 8765),
        path=_optional_env("WS_PATH", "/ws/market"),
    )

    return Settings(
        feeds=feeds,
        enrichment=enrichment,
        ingest=ingest,
        market=market,
        http_server=http_server,
        websocket_server=websocket_server,
        redis=RedisConfig(url=_optional_env("REDIS_URL", "")),
        seed_on_start=_optional_env_bool("SEED_ON_START", True),
    )
