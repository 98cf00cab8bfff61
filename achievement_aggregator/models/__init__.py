"""Data models for the Steam achievement aggregator."""

from .achievement import STEAM_PLATFORM, AchievementIcon, AchievementRecord, AchievementSummary
from .config import AppConfig
from .game import GameRecord, Playtime
from .results import GameAchievementsResult, UserGamesResult

__all__ = [
    "AchievementIcon",
    "AchievementRecord",
    "AchievementSummary",
    "AppConfig",
    "GameAchievementsResult",
    "GameRecord",
    "Playtime",
    "STEAM_PLATFORM",
    "UserGamesResult",
]
