"""Service layer: upstream access, aggregation, caching and admission control."""

from .achievement_merger import AchievementMergeService, merge_achievements
from .cache import CacheEntry, ExpiringCache, request_cache_key
from .config import ConfigurationService, require_api_key
from .errors import (
    AppError,
    ConfigurationError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorResponse,
    ErrorSeverity,
    FieldError,
    RateLimitExceeded,
    UpstreamError,
    UpstreamErrorKind,
    UserFriendlyError,
    ValidationError,
    get_error_service,
)
from .game_catalog import build_cover_url, build_icon_url, transform_game, transform_games
from .gateway import EndpointResponse, SteamGateway
from .rate_limiter import RateLimitDecision, RateLimiterService, RateWindow
from .response_cache import ResponseCacheService
from .steam_client import SteamClientService
from .steam_library import SteamLibraryService
from .validation import ValidationResult

__all__ = [
    "AchievementMergeService",
    "AppError",
    "CacheEntry",
    "ConfigurationError",
    "ConfigurationService",
    "EndpointResponse",
    "ErrorCategory",
    "ErrorHandlingService",
    "ErrorResponse",
    "ErrorSeverity",
    "ExpiringCache",
    "FieldError",
    "RateLimitDecision",
    "RateLimitExceeded",
    "RateLimiterService",
    "RateWindow",
    "ResponseCacheService",
    "SteamClientService",
    "SteamGateway",
    "SteamLibraryService",
    "UpstreamError",
    "UpstreamErrorKind",
    "UserFriendlyError",
    "ValidationError",
    "ValidationResult",
    "build_cover_url",
    "build_icon_url",
    "get_error_service",
    "merge_achievements",
    "request_cache_key",
    "require_api_key",
    "transform_game",
    "transform_games",
]
