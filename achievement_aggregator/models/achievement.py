"""Achievement data models."""

from dataclasses import dataclass
from typing import Any

STEAM_PLATFORM = "steam"


@dataclass(frozen=True)
class AchievementIcon:
    """Icon URLs for an achievement."""
    default: str
    achieved: str


@dataclass
class AchievementRecord:
    """Canonical achievement record, identified by ``api_name`` within a game."""
    api_name: str
    name: str
    description: str
    icon: AchievementIcon
    global_percentage: float = 0.0
    unlocked: bool = False
    unlock_time: int | None = None  # Epoch seconds, only when unlocked
    platform: str = STEAM_PLATFORM
    hidden: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        """Render the camelCase wire representation."""
        data: dict[str, Any] = {
            "apiName": self.api_name,
            "name": self.name,
            "description": self.description,
            "icon": {"default": self.icon.default, "achieved": self.icon.achieved},
            "globalPercentage": self.global_percentage,
            "unlocked": self.unlocked,
            "platform": self.platform,
        }
        if self.unlock_time is not None:
            data["unlockTime"] = self.unlock_time
        if self.hidden is not None:
            data["hidden"] = self.hidden
        return data


@dataclass(frozen=True)
class AchievementSummary:
    """Unlock totals for one game."""
    total: int
    unlocked: int
    percentage: float

    @classmethod
    def from_achievements(cls, achievements: list[AchievementRecord]) -> "AchievementSummary":
        total = len(achievements)
        unlocked = sum(1 for a in achievements if a.unlocked)
        percentage = (unlocked / total) * 100 if total > 0 else 0.0
        return cls(total=total, unlocked=unlocked, percentage=percentage)

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "unlocked": self.unlocked, "percentage": self.percentage}
