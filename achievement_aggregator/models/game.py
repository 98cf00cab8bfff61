"""Game-related data models."""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from .achievement import AchievementRecord


@dataclass(frozen=True)
class Playtime:
    """Playtime in minutes."""
    total: int
    two_weeks: int | None = None


@dataclass(frozen=True)
class GameRecord:
    """Canonical owned-game record."""
    app_id: int
    name: str
    playtime: Playtime
    icon_url: str
    cover_url: str
    has_community_visible_stats: bool
    last_played: datetime | None = None  # None when the upstream never saw a session
    achievements: list[AchievementRecord] | None = None  # Only set when requested

    def with_achievements(self, achievements: list[AchievementRecord]) -> "GameRecord":
        """Return a copy of this record carrying the given achievements."""
        return replace(self, achievements=achievements)

    def to_dict(self) -> dict[str, Any]:
        """Render the camelCase wire representation."""
        playtime: dict[str, Any] = {"total": self.playtime.total}
        if self.playtime.two_weeks is not None:
            playtime["twoWeeks"] = self.playtime.two_weeks

        data: dict[str, Any] = {
            "appId": self.app_id,
            "name": self.name,
            "playtime": playtime,
            "iconUrl": self.icon_url,
            "coverUrl": self.cover_url,
            "hasCommunityVisibleStats": self.has_community_visible_stats,
        }
        if self.last_played is not None:
            data["lastPlayed"] = self.last_played.isoformat()
        if self.achievements is not None:
            data["achievements"] = [a.to_dict() for a in self.achievements]
        return data
