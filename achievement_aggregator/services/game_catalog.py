"""Mapping of raw owned-games entries to canonical game records."""

from datetime import datetime, timezone
from typing import Any

import structlog

from ..models import GameRecord, Playtime
from .validation import check_game_record

log = structlog.stdlib.get_logger()

ICON_URL_TEMPLATE = "http://media.steampowered.com/steamcommunity/public/images/apps/{app_id}/{icon_hash}.jpg"
COVER_URL_TEMPLATE = "https://cdn.akamai.steamstatic.com/steam/apps/{app_id}/library_600x900.jpg"


def build_icon_url(app_id: int, icon_hash: str) -> str:
    return ICON_URL_TEMPLATE.format(app_id=app_id, icon_hash=icon_hash)


def build_cover_url(app_id: int) -> str:
    return COVER_URL_TEMPLATE.format(app_id=app_id)


def transform_game(raw: dict[str, Any]) -> GameRecord:
    """Map one ``GetOwnedGames`` entry to a GameRecord.

    ``rtime_last_played`` of 0 or absent means the game was never played and
    yields no ``last_played`` rather than the epoch.
    """
    app_id = raw.get("appid")
    last_played_raw = raw.get("rtime_last_played")

    last_played = None
    if last_played_raw:
        try:
            last_played = datetime.fromtimestamp(last_played_raw, tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            log.warning("Unusable last played timestamp ignored", app_id=app_id, value=last_played_raw)

    return GameRecord(
        app_id=app_id,
        name=raw.get("name", ""),
        playtime=Playtime(
            total=raw.get("playtime_forever", 0),
            two_weeks=raw.get("playtime_2weeks"),
        ),
        icon_url=build_icon_url(app_id, raw.get("img_icon_url", "")),
        cover_url=build_cover_url(app_id),
        has_community_visible_stats=bool(raw.get("has_community_visible_stats", False)),
        last_played=last_played,
    )


def transform_games(raw_games: list[dict[str, Any]]) -> list[GameRecord]:
    """Transform a whole owned-games list, preserving upstream order.

    Records that do not match the declared output shape are logged and
    returned anyway.
    """
    games = [transform_game(raw) for raw in raw_games]

    issues = {}
    for game in games:
        result = check_game_record(game)
        if not result.is_valid:
            issues[str(game.app_id)] = result.errors

    if issues:
        log.warning("Game data validation warnings", issues=issues)

    return games
