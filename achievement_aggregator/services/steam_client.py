"""Steam Web API client with a request-level cache and typed failures."""

from typing import Any

import httpx
import structlog

from .cache import ExpiringCache, request_cache_key
from .errors import UpstreamError, UpstreamErrorKind

log = structlog.stdlib.get_logger()

OWNED_GAMES_ENDPOINT = "IPlayerService/GetOwnedGames/v0001/"
USER_ACHIEVEMENTS_ENDPOINT = "ISteamUserStats/GetPlayerAchievements/v0001/"
GLOBAL_PERCENTAGES_ENDPOINT = "ISteamUserStats/GetGlobalAchievementPercentagesForApp/v0002/"
SCHEMA_ENDPOINT = "ISteamUserStats/GetSchemaForGame/v2/"


class SteamClientService:
    """Client for the four Steam Web API calls the aggregator consumes.

    Every call is cached by endpoint and parameters for ``cache_ttl`` seconds.
    Transport failures, non-2xx answers and malformed payloads are raised as
    ``UpstreamError``. Nothing is retried.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.steampowered.com",
        timeout: float = 10.0,
        cache_ttl: float = 3600,
        cache: ExpiringCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Steam client service.

        Args:
            api_key: Steam Web API key sent with every call
            base_url: API root
            timeout: Per-call timeout in seconds
            cache_ttl: Lifetime of cached upstream payloads in seconds
            cache: Request-level cache (a private one is created when omitted)
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self._cache = cache if cache is not None else ExpiringCache("steam-requests", default_ttl=cache_ttl)

        self._client = httpx.AsyncClient(
            base_url=base_url,
            params={"key": api_key},
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": "steam-achievement-aggregator/0.1.0"},
            transport=transport,
        )

        log.info(
            "Steam client service initialized",
            base_url=base_url,
            timeout=timeout,
            cache_ttl=cache_ttl,
        )

    @property
    def cache(self) -> ExpiringCache:
        return self._cache

    async def fetch_owned_games(self, steam_id: str) -> list[dict[str, Any]]:
        """Fetch the raw owned-games entries for a user."""
        payload = await self._request(
            OWNED_GAMES_ENDPOINT,
            {
                "steamid": steam_id,
                "include_appinfo": 1,
                "include_played_free_games": 1,
                "format": "json",
            },
        )
        return _extract_list(payload, OWNED_GAMES_ENDPOINT, "response", "games")

    async def fetch_user_achievements(self, steam_id: str, app_id: int) -> list[dict[str, Any]]:
        """Fetch a user's unlock state for one game."""
        payload = await self._request(
            USER_ACHIEVEMENTS_ENDPOINT,
            {"steamid": steam_id, "appid": app_id, "l": "english"},
        )
        return _extract_list(payload, USER_ACHIEVEMENTS_ENDPOINT, "playerstats", "achievements")

    async def fetch_global_percentages(self, app_id: int) -> list[dict[str, Any]]:
        """Fetch global unlock percentages for one game."""
        payload = await self._request(GLOBAL_PERCENTAGES_ENDPOINT, {"gameid": app_id})
        return _extract_list(
            payload, GLOBAL_PERCENTAGES_ENDPOINT, "achievementpercentages", "achievements"
        )

    async def fetch_schema(self, app_id: int) -> list[dict[str, Any]]:
        """Fetch the achievement schema for one game."""
        payload = await self._request(SCHEMA_ENDPOINT, {"appid": app_id})
        return _extract_list(payload, SCHEMA_ENDPOINT, "game", "availableGameStats", "achievements")

    async def _request(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET an endpoint through the request cache.

        Raises:
            UpstreamError: On any transport, status or payload failure
        """
        cache_key = request_cache_key(endpoint, params)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        log.debug("Making Steam API request", endpoint=endpoint, params=params)

        try:
            response = await self._client.get(endpoint, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.warning(
                "Steam API request failed",
                endpoint=endpoint,
                status_code=e.response.status_code,
                error=str(e),
            )
            raise UpstreamError(
                message=f"Steam API Error: {e.response.reason_phrase}",
                kind=UpstreamErrorKind.HTTP,
                status_code=e.response.status_code,
                upstream_error_code=_upstream_error_code(e.response),
                endpoint=endpoint,
                original_error=e,
            ) from e
        except httpx.RequestError as e:
            # Timeouts are RequestErrors too
            log.warning(
                "Steam API request failed",
                endpoint=endpoint,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UpstreamError(
                message="Network error contacting Steam API",
                kind=UpstreamErrorKind.NETWORK,
                endpoint=endpoint,
                original_error=e,
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            log.warning("Steam API returned invalid JSON", endpoint=endpoint, error=str(e))
            raise UpstreamError(
                message="Steam API returned a malformed payload",
                kind=UpstreamErrorKind.UNEXPECTED,
                status_code=response.status_code,
                endpoint=endpoint,
                original_error=e,
            ) from e

        if not isinstance(payload, dict):
            raise UpstreamError(
                message="Steam API returned a malformed payload",
                kind=UpstreamErrorKind.UNEXPECTED,
                status_code=response.status_code,
                endpoint=endpoint,
            )

        self._cache.set(cache_key, payload, self.cache_ttl)
        log.info(
            "Steam API request successful",
            endpoint=endpoint,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return payload

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._client.aclose()
        log.info("Steam client closed")

    async def __aenter__(self) -> "SteamClientService":
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        await self.close()


def _extract_list(payload: dict[str, Any], endpoint: str, *path: str) -> list[dict[str, Any]]:
    """Walk ``path`` into ``payload``; a missing key means an empty list."""
    node: Any = payload
    for key in path:
        if not isinstance(node, dict):
            raise UpstreamError(
                message="Steam API returned a malformed payload",
                kind=UpstreamErrorKind.UNEXPECTED,
                endpoint=endpoint,
            )
        node = node.get(key)
        if node is None:
            return []

    if not isinstance(node, list):
        raise UpstreamError(
            message="Steam API returned a malformed payload",
            kind=UpstreamErrorKind.UNEXPECTED,
            endpoint=endpoint,
        )
    return [entry for entry in node if isinstance(entry, dict)]


def _upstream_error_code(response: httpx.Response) -> int | None:
    """Pull ``error.errorcode`` out of an error body when Steam sends one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("errorcode")
        if isinstance(code, int):
            return code
    return None
