"""Aggregation of a user's Steam library and per-game achievements."""

import asyncio

import structlog

from ..models import GameAchievementsResult, GameRecord, UserGamesResult
from .achievement_merger import AchievementMergeService
from .game_catalog import transform_games
from .steam_client import SteamClientService

log = structlog.stdlib.get_logger()


class SteamLibraryService:
    """Builds owned-games and achievement results from the Steam client."""

    def __init__(
        self,
        steam_client: SteamClientService,
        merge_service: AchievementMergeService | None = None,
        concurrent_fetches: int = 8,
    ) -> None:
        """Initialize the library service.

        Args:
            steam_client: Upstream client
            merge_service: Achievement fetch-and-merge service (built from
                ``steam_client`` when omitted)
            concurrent_fetches: Games whose achievements are fetched at once
        """
        self.steam_client: SteamClientService = steam_client
        self.merge_service: AchievementMergeService = merge_service or AchievementMergeService(steam_client)
        self._concurrent_fetches: int = concurrent_fetches
        self._fetch_semaphore: asyncio.Semaphore = asyncio.Semaphore(concurrent_fetches)

        log.info("Steam library service initialized", concurrent_fetches=concurrent_fetches)

    async def get_user_games(self, steam_id: str, include_achievements: bool = False) -> UserGamesResult:
        """Owned games for a user, optionally with each game's achievements.

        A failed owned-games fetch raises. A failed achievement fetch for one
        game only empties that game's achievement list.

        Raises:
            UpstreamError: If the owned-games call fails
        """
        raw_games = await self.steam_client.fetch_owned_games(steam_id)
        games = transform_games(raw_games)

        if include_achievements:
            games = list(
                await asyncio.gather(
                    *(self._attach_achievements(steam_id, game) for game in games)
                )
            )

        result = UserGamesResult.from_games(games)
        log.info(
            "User games aggregated",
            steam_id=steam_id,
            total_count=result.total_count,
            total_playtime=result.total_playtime,
            include_achievements=include_achievements,
        )
        return result

    async def get_game_achievements(self, steam_id: str, app_id: int) -> GameAchievementsResult:
        """Merged achievements and unlock summary for one game.

        Raises:
            UpstreamError: If any of the three achievement calls fails
        """
        achievements = await self.merge_service.fetch_achievements(steam_id, app_id, fail_soft=False)
        result = GameAchievementsResult.from_achievements(achievements)
        log.info(
            "Game achievements aggregated",
            steam_id=steam_id,
            app_id=app_id,
            total=result.summary.total,
            unlocked=result.summary.unlocked,
        )
        return result

    async def _attach_achievements(self, steam_id: str, game: GameRecord) -> GameRecord:
        async with self._fetch_semaphore:
            achievements = await self.merge_service.fetch_achievements(steam_id, game.app_id)
        return game.with_achievements(achievements)
