"""Input validation for gateway requests and lenient checks for produced records."""

import re
from typing import Any

from ..models import STEAM_PLATFORM, AchievementRecord, GameRecord
from .errors import FieldError, ValidationError

STEAM_ID_PATTERN = re.compile(r"^\d{17}$")


class ValidationResult:
    """Result of a validation pass."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None) -> None:
        self.is_valid: bool = is_valid
        self.errors: list[str] = errors or []


def validate_steam_id(value: Any, path: str = "params.steamId") -> list[FieldError]:
    """Check that a SteamID64 is exactly 17 digits."""
    if not isinstance(value, str) or not STEAM_ID_PATTERN.match(value):
        return [FieldError(path=path, message="Invalid SteamID format")]
    return []


def validate_app_id(value: Any, path: str = "params.appId") -> tuple[int | None, list[FieldError]]:
    """Parse an app id given as an int or a digit string.

    Returns:
        The parsed id (None when invalid) and any field errors
    """
    if isinstance(value, bool):
        return None, [FieldError(path=path, message="App id must be a positive integer")]
    if isinstance(value, str):
        if not value.isdigit():
            return None, [FieldError(path=path, message="App id must be a positive integer")]
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        return None, [FieldError(path=path, message="App id must be a positive integer")]
    return value, []


def parse_include_achievements(value: str | bool | None) -> bool:
    """Only the literal string ``"true"`` (or a real True) opts in."""
    if isinstance(value, bool):
        return value
    return value == "true"


def validate_user_games_request(steam_id: Any) -> None:
    """Raise ValidationError when the owned-games request is malformed."""
    errors = validate_steam_id(steam_id)
    if errors:
        raise ValidationError(errors)


def validate_game_achievements_request(steam_id: Any, app_id: Any) -> int:
    """Raise ValidationError when the achievements request is malformed.

    Returns:
        The parsed app id
    """
    errors = validate_steam_id(steam_id)
    parsed_app_id, app_errors = validate_app_id(app_id)
    errors.extend(app_errors)
    if errors or parsed_app_id is None:
        raise ValidationError(errors)
    return parsed_app_id


def check_game_record(game: GameRecord) -> ValidationResult:
    """Check a produced game record against the declared output shape."""
    errors = []

    if not isinstance(game.app_id, int) or isinstance(game.app_id, bool) or game.app_id <= 0:
        errors.append("appId must be a positive integer")
    if not isinstance(game.name, str):
        errors.append("name must be a string")
    if not isinstance(game.playtime.total, int) or game.playtime.total < 0:
        errors.append("playtime.total must be a non-negative integer")
    if game.playtime.two_weeks is not None and not isinstance(game.playtime.two_weeks, int):
        errors.append("playtime.twoWeeks must be an integer")
    if not isinstance(game.has_community_visible_stats, bool):
        errors.append("hasCommunityVisibleStats must be a boolean")

    return ValidationResult(len(errors) == 0, errors)


def check_achievement_record(achievement: AchievementRecord) -> ValidationResult:
    """Check a merged achievement record against the declared output shape."""
    errors = []

    for field_name in ("name", "description"):
        if not isinstance(getattr(achievement, field_name), str):
            errors.append(f"{field_name} must be a string")
    if not isinstance(achievement.icon.default, str) or not isinstance(achievement.icon.achieved, str):
        errors.append("icon urls must be strings")
    if not 0 <= achievement.global_percentage <= 100:
        errors.append("globalPercentage must be between 0 and 100")
    if achievement.unlock_time is not None and not achievement.unlocked:
        errors.append("unlockTime requires unlocked")
    if achievement.platform != STEAM_PLATFORM:
        errors.append(f"platform must be {STEAM_PLATFORM!r}")

    return ValidationResult(len(errors) == 0, errors)
