"""Three-way merge of achievement schema, global percentages and user unlocks."""

import asyncio
from typing import Any

import structlog

from ..models import AchievementIcon, AchievementRecord
from .errors import UpstreamError, UpstreamErrorKind
from .steam_client import SteamClientService
from .validation import check_achievement_record

log = structlog.stdlib.get_logger()


def merge_achievements(
    schema: list[dict[str, Any]],
    global_stats: list[dict[str, Any]],
    user_stats: list[dict[str, Any]],
) -> list[AchievementRecord]:
    """Join the three upstream achievement sources into canonical records.

    The schema defines the key set and the output order. Global percentages
    and user unlocks are overlays: entries whose key is not in the schema are
    dropped. The two overlays touch disjoint fields, so their relative order
    does not change the result.

    Args:
        schema: ``GetSchemaForGame`` achievement entries, keyed by ``name``
        global_stats: ``GetGlobalAchievementPercentagesForApp`` entries, keyed by ``name``
        user_stats: ``GetPlayerAchievements`` entries, keyed by ``apiname``

    Returns:
        One record per schema entry, in schema order
    """
    records: dict[str, AchievementRecord] = {}

    for entry in schema:
        api_name = entry.get("name")
        if not isinstance(api_name, str) or not api_name:
            log.warning("Schema entry without a name skipped", entry=entry)
            continue
        records[api_name] = AchievementRecord(
            api_name=api_name,
            name=entry.get("displayName", ""),
            description=entry.get("description", ""),
            icon=AchievementIcon(
                default=entry.get("icon", ""),
                achieved=entry.get("icongray", ""),
            ),
            hidden=entry.get("hidden") == 1,
        )

    for entry in global_stats:
        record = _overlay_target(records, entry, "name")
        if record is None:
            continue
        try:
            record.global_percentage = float(entry.get("percent", 0))
        except (TypeError, ValueError):
            log.warning(
                "Unparsable global percentage ignored",
                api_name=record.api_name,
                percent=entry.get("percent"),
            )

    for entry in user_stats:
        record = _overlay_target(records, entry, "apiname")
        if record is None:
            continue
        record.unlocked = entry.get("achieved") == 1
        unlock_time = entry.get("unlocktime")
        record.unlock_time = unlock_time if record.unlocked and unlock_time else None

    achievements = list(records.values())

    for achievement in achievements:
        result = check_achievement_record(achievement)
        if not result.is_valid:
            log.warning(
                "Achievement data validation warnings",
                api_name=achievement.api_name,
                errors=result.errors,
            )

    return achievements


def _overlay_target(
    records: dict[str, AchievementRecord],
    entry: dict[str, Any],
    key_field: str,
) -> AchievementRecord | None:
    api_name = entry.get(key_field)
    if not isinstance(api_name, str):
        log.warning("Overlay entry with an invalid key skipped", key_field=key_field, entry=entry)
        return None
    return records.get(api_name)


class AchievementMergeService:
    """Fetches the three achievement sources for a game and merges them."""

    def __init__(self, steam_client: SteamClientService) -> None:
        self.steam_client: SteamClientService = steam_client

    async def fetch_achievements(
        self,
        steam_id: str,
        app_id: int,
        fail_soft: bool = True,
    ) -> list[AchievementRecord]:
        """Fetch and merge one game's achievements.

        The three upstream calls run concurrently and all of them settle
        before anything is decided.

        Args:
            steam_id: SteamID64 of the user
            app_id: Steam app id
            fail_soft: Return an empty list instead of raising when any of
                the three calls failed

        Returns:
            Merged achievements in schema order

        Raises:
            UpstreamError: When a call failed and ``fail_soft`` is False
        """
        results = await asyncio.gather(
            self.steam_client.fetch_schema(app_id),
            self.steam_client.fetch_global_percentages(app_id),
            self.steam_client.fetch_user_achievements(steam_id, app_id),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            if not isinstance(failure, Exception):
                raise failure

        achievements: list[AchievementRecord] = []
        if not failures:
            schema, global_stats, user_stats = results
            try:
                achievements = merge_achievements(schema, global_stats, user_stats)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                failures = [
                    UpstreamError(
                        message="Steam API returned malformed achievement data",
                        kind=UpstreamErrorKind.UNEXPECTED,
                        original_error=e,
                    )
                ]

        if failures:
            log.warning(
                "Could not fetch achievements",
                app_id=app_id,
                steam_id=steam_id,
                errors=[str(f) for f in failures],
                error_types=[type(f).__name__ for f in failures],
                fail_soft=fail_soft,
            )
            if fail_soft:
                return []
            upstream_failures = [f for f in failures if isinstance(f, UpstreamError)]
            raise (upstream_failures or failures)[0]

        log.debug("Achievements merged", app_id=app_id, count=len(achievements))
        return achievements
