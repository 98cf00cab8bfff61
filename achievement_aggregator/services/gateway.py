"""Endpoint boundary handed to the transport layer.

Each endpoint runs the same pipeline: per-route rate limiter, input
validation, response cache, then the library service. Failures never escape
as exceptions; they come back as an error ``EndpointResponse``.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from .errors import ErrorHandlingService, get_error_service
from .rate_limiter import RateLimitDecision, RateLimiterService
from .response_cache import ResponseCacheService
from .steam_library import SteamLibraryService
from .validation import (
    parse_include_achievements,
    validate_game_achievements_request,
    validate_user_games_request,
)

log = structlog.stdlib.get_logger()

USER_GAMES_ROUTE = "/api/steam/user/{steam_id}/games"
GAME_ACHIEVEMENTS_ROUTE = "/api/steam/user/{steam_id}/games/{app_id}/achievements"


@dataclass(frozen=True)
class EndpointResponse:
    """What the transport layer should send back."""
    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    cache_hit: bool = False


class SteamGateway:
    """The two public read endpoints of the aggregator."""

    def __init__(
        self,
        library: SteamLibraryService,
        response_cache: ResponseCacheService,
        games_limiter: RateLimiterService,
        achievements_limiter: RateLimiterService,
        games_cache_ttl: float = 300,
        achievements_cache_ttl: float = 600,
        error_service: ErrorHandlingService | None = None,
    ) -> None:
        self.library = library
        self.response_cache = response_cache
        self.games_limiter = games_limiter
        self.achievements_limiter = achievements_limiter
        self.games_cache_ttl = games_cache_ttl
        self.achievements_cache_ttl = achievements_cache_ttl
        self._errors = error_service or get_error_service()

    async def user_games(
        self,
        client_key: str | None,
        steam_id: str,
        include_achievements: str | None = None,
    ) -> EndpointResponse:
        """``GET /api/steam/user/{steamId}/games?includeAchievements=``."""

        async def produce() -> dict[str, Any]:
            validate_user_games_request(steam_id)
            result = await self.library.get_user_games(
                steam_id, parse_include_achievements(include_achievements)
            )
            return _envelope(
                result.to_dict(),
                {
                    "steamId": steam_id,
                    "lastUpdated": datetime.now(timezone.utc).isoformat(),
                    "source": "steam",
                },
            )

        return await self._serve(
            operation="get_user_games",
            limiter=self.games_limiter,
            client_key=client_key,
            route=USER_GAMES_ROUTE.format(steam_id=steam_id),
            query={"includeAchievements": include_achievements},
            ttl=self.games_cache_ttl,
            produce=produce,
        )

    async def game_achievements(
        self,
        client_key: str | None,
        steam_id: str,
        app_id: str | int,
    ) -> EndpointResponse:
        """``GET /api/steam/user/{steamId}/games/{appId}/achievements``."""

        async def produce() -> dict[str, Any]:
            parsed_app_id = validate_game_achievements_request(steam_id, app_id)
            result = await self.library.get_game_achievements(steam_id, parsed_app_id)
            return _envelope(result.to_dict(), {"steamId": steam_id, "appId": parsed_app_id})

        return await self._serve(
            operation="get_game_achievements",
            limiter=self.achievements_limiter,
            client_key=client_key,
            route=GAME_ACHIEVEMENTS_ROUTE.format(steam_id=steam_id, app_id=app_id),
            query={},
            ttl=self.achievements_cache_ttl,
            produce=produce,
        )

    async def _serve(
        self,
        operation: str,
        limiter: RateLimiterService,
        client_key: str | None,
        route: str,
        query: dict[str, Any],
        ttl: float,
        produce: Callable[[], Awaitable[dict[str, Any]]],
    ) -> EndpointResponse:
        decision: RateLimitDecision | None = None
        try:
            decision = limiter.enforce(client_key)
            body, hit = await self.response_cache.get_or_compute(route, query, produce, ttl=ttl)
        except Exception as e:
            error = self._errors.to_response(
                e, operation, context={"route": route, "client": client_key}
            )
            headers = decision.headers() if decision is not None else {}
            headers.update(error.headers)
            return EndpointResponse(status_code=error.status_code, body=error.body, headers=headers)

        log.debug("Request served", operation=operation, route=route, cache_hit=hit)
        return EndpointResponse(status_code=200, body=body, headers=decision.headers(), cache_hit=hit)


def _envelope(data: dict[str, Any], metadata: dict[str, Any]) -> dict[str, Any]:
    return {"success": True, "data": data, "metadata": metadata}
