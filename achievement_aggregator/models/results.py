"""Aggregation result models returned to the gateway."""

from dataclasses import dataclass
from typing import Any

from .achievement import AchievementRecord, AchievementSummary
from .game import GameRecord


@dataclass(frozen=True)
class UserGamesResult:
    """Owned games for one user with totals."""
    games: list[GameRecord]
    total_count: int
    total_playtime: int

    @classmethod
    def from_games(cls, games: list[GameRecord]) -> "UserGamesResult":
        return cls(
            games=games,
            total_count=len(games),
            total_playtime=sum(game.playtime.total for game in games),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "games": [game.to_dict() for game in self.games],
            "totalCount": self.total_count,
            "totalPlaytime": self.total_playtime,
        }


@dataclass(frozen=True)
class GameAchievementsResult:
    """Merged achievements for one game with an unlock summary."""
    achievements: list[AchievementRecord]
    summary: AchievementSummary

    @classmethod
    def from_achievements(cls, achievements: list[AchievementRecord]) -> "GameAchievementsResult":
        return cls(
            achievements=achievements,
            summary=AchievementSummary.from_achievements(achievements),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "achievements": [a.to_dict() for a in self.achievements],
            "summary": self.summary.to_dict(),
        }
