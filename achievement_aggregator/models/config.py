"""Configuration data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    steam_api_key: str = ""
    base_url: str = "https://api.steampowered.com"
    request_timeout: float = 10.0  # Seconds, per upstream call
    upstream_cache_ttl: int = 3600
    response_cache_ttl: int = 3600  # Used when a route sets no TTL of its own
    games_cache_ttl: int = 300
    achievements_cache_ttl: int = 600
    cache_max_entries: int = 4096
    games_rate_window_ms: int = 60000
    games_rate_max_requests: int = 10
    achievements_rate_window_ms: int = 60000
    achievements_rate_max_requests: int = 15
    concurrent_achievement_fetches: int = 8
    log_level: str = "INFO"
