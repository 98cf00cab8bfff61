"""Property-based tests for the achievement merge engine."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from hypothesis import given, strategies as st

from achievement_aggregator.services.achievement_merger import AchievementMergeService, merge_achievements
from achievement_aggregator.services.errors import UpstreamError, UpstreamErrorKind
from achievement_aggregator.services.steam_client import SteamClientService


api_names = st.text(
    min_size=1,
    max_size=12,
    alphabet=st.characters(whitelist_categories=("Lu", "Ll", "Nd")),
)
percentages = st.floats(min_value=0.0, max_value=100.0, allow_nan=False, allow_infinity=False)
unlock_times = st.integers(min_value=0, max_value=2_000_000_000)


def schema_entry(name: str, hidden: int = 0) -> dict:
    return {
        "name": name,
        "displayName": f"Display {name}",
        "description": f"Do {name}",
        "icon": f"https://cdn.example.com/{name}.jpg",
        "icongray": f"https://cdn.example.com/{name}_gray.jpg",
        "hidden": hidden,
    }


@st.composite
def merge_inputs(draw: st.DrawFn) -> tuple[list[dict], list[dict], list[dict]]:
    """Schema plus sparse overlays that also mention unknown keys."""
    schema_names = draw(st.lists(api_names, max_size=8, unique=True))
    extra_names = draw(
        st.lists(api_names.filter(lambda n: n not in schema_names), max_size=3, unique=True)
    )
    candidates = schema_names + extra_names

    global_names = draw(st.lists(st.sampled_from(candidates), unique=True)) if candidates else []
    user_names = draw(st.lists(st.sampled_from(candidates), unique=True)) if candidates else []

    schema = [schema_entry(name) for name in schema_names]
    global_stats = [{"name": name, "percent": draw(percentages)} for name in global_names]
    user_stats = [
        {
            "apiname": name,
            "achieved": draw(st.sampled_from([0, 1])),
            "unlocktime": draw(unlock_times),
        }
        for name in user_names
    ]
    return schema, global_stats, user_stats


@given(merge_inputs())
def test_output_keys_equal_schema_keys(inputs: tuple[list[dict], list[dict], list[dict]]) -> None:
    """The schema alone decides which achievements exist and in what order."""
    schema, global_stats, user_stats = inputs

    merged = merge_achievements(schema, global_stats, user_stats)

    assert [a.api_name for a in merged] == [entry["name"] for entry in schema]


@given(merge_inputs())
def test_global_percentage_comes_from_global_stats_or_zero(
    inputs: tuple[list[dict], list[dict], list[dict]]
) -> None:
    schema, global_stats, user_stats = inputs
    percents = {entry["name"]: entry["percent"] for entry in global_stats}

    merged = merge_achievements(schema, global_stats, user_stats)

    for achievement in merged:
        assert achievement.global_percentage == percents.get(achievement.api_name, 0)


@given(merge_inputs())
def test_unlock_state_follows_user_stats(inputs: tuple[list[dict], list[dict], list[dict]]) -> None:
    """unlocked iff achieved; unlock_time iff unlocked with a non-zero time."""
    schema, global_stats, user_stats = inputs
    by_name = {entry["apiname"]: entry for entry in user_stats}

    merged = merge_achievements(schema, global_stats, user_stats)

    for achievement in merged:
        entry = by_name.get(achievement.api_name)
        expected_unlocked = entry is not None and entry["achieved"] == 1
        assert achievement.unlocked is expected_unlocked
        if expected_unlocked and entry["unlocktime"]:
            assert achievement.unlock_time == entry["unlocktime"]
        else:
            assert achievement.unlock_time is None


@given(merge_inputs())
def test_overlay_order_does_not_matter(inputs: tuple[list[dict], list[dict], list[dict]]) -> None:
    schema, global_stats, user_stats = inputs

    forward = merge_achievements(schema, global_stats, user_stats)
    reversed_overlays = merge_achievements(schema, list(reversed(global_stats)), list(reversed(user_stats)))

    assert forward == reversed_overlays


def test_three_source_merge_example() -> None:
    """Schema {A, B, C}, global {A: 10, C: 5}, user {B achieved}."""
    schema = [schema_entry("A"), schema_entry("B"), schema_entry("C")]
    global_stats = [{"name": "A", "percent": 10}, {"name": "C", "percent": 5}]
    user_stats = [{"apiname": "B", "achieved": 1, "unlocktime": 1700000000}]

    merged = merge_achievements(schema, global_stats, user_stats)
    by_name = {a.api_name: a for a in merged}

    assert [a.api_name for a in merged] == ["A", "B", "C"]
    assert by_name["A"].global_percentage == 10
    assert by_name["A"].unlocked is False
    assert by_name["A"].unlock_time is None
    assert by_name["B"].global_percentage == 0
    assert by_name["B"].unlocked is True
    assert by_name["B"].unlock_time == 1700000000
    assert by_name["C"].global_percentage == 5
    assert by_name["C"].unlocked is False


def test_schema_fields_are_mapped() -> None:
    merged = merge_achievements([schema_entry("WIN", hidden=1)], [], [])

    achievement = merged[0]
    assert achievement.name == "Display WIN"
    assert achievement.description == "Do WIN"
    assert achievement.icon.default == "https://cdn.example.com/WIN.jpg"
    assert achievement.icon.achieved == "https://cdn.example.com/WIN_gray.jpg"
    assert achievement.hidden is True
    assert achievement.platform == "steam"


def test_entries_missing_from_schema_are_dropped() -> None:
    merged = merge_achievements(
        [schema_entry("A")],
        [{"name": "GHOST", "percent": 50}],
        [{"apiname": "PHANTOM", "achieved": 1, "unlocktime": 1}],
    )

    assert [a.api_name for a in merged] == ["A"]


def test_string_percentages_are_parsed() -> None:
    merged = merge_achievements([schema_entry("A")], [{"name": "A", "percent": "42.5"}], [])

    assert merged[0].global_percentage == 42.5


def test_unparsable_percentage_keeps_default() -> None:
    merged = merge_achievements([schema_entry("A")], [{"name": "A", "percent": "n/a"}], [])

    assert merged[0].global_percentage == 0


def test_unlock_time_dropped_when_not_achieved() -> None:
    merged = merge_achievements(
        [schema_entry("A")], [], [{"apiname": "A", "achieved": 0, "unlocktime": 1700000000}]
    )

    assert merged[0].unlocked is False
    assert merged[0].unlock_time is None


def test_empty_schema_yields_no_achievements() -> None:
    merged = merge_achievements([], [{"name": "A", "percent": 1}], [{"apiname": "A", "achieved": 1}])

    assert merged == []


def create_mock_client() -> AsyncMock:
    client = AsyncMock(spec=SteamClientService)
    client.fetch_schema.return_value = [schema_entry("A"), schema_entry("B")]
    client.fetch_global_percentages.return_value = [{"name": "A", "percent": 12.5}]
    client.fetch_user_achievements.return_value = [{"apiname": "B", "achieved": 1, "unlocktime": 1600000000}]
    return client


@pytest.mark.asyncio
async def test_fetch_achievements_merges_all_three_sources() -> None:
    client = create_mock_client()
    service = AchievementMergeService(client)

    achievements = await service.fetch_achievements("76561198000000001", 440)

    assert [a.api_name for a in achievements] == ["A", "B"]
    assert achievements[0].global_percentage == 12.5
    assert achievements[1].unlocked is True
    client.fetch_schema.assert_awaited_once_with(440)
    client.fetch_global_percentages.assert_awaited_once_with(440)
    client.fetch_user_achievements.assert_awaited_once_with("76561198000000001", 440)


@pytest.mark.asyncio
@pytest.mark.parametrize("failing", ["fetch_schema", "fetch_global_percentages", "fetch_user_achievements"])
async def test_any_failed_source_yields_empty_list(failing: str) -> None:
    client = create_mock_client()
    getattr(client, failing).side_effect = UpstreamError(
        "Network error contacting Steam API", kind=UpstreamErrorKind.NETWORK
    )
    service = AchievementMergeService(client)

    achievements = await service.fetch_achievements("76561198000000001", 440)

    assert achievements == []


@pytest.mark.asyncio
async def test_fail_soft_waits_for_every_fetch() -> None:
    """A fast failure does not abandon the slower calls already issued."""
    client = create_mock_client()
    finished: list[str] = []

    async def slow_schema(app_id: int) -> list[dict]:
        await asyncio.sleep(0.01)
        finished.append("schema")
        return [schema_entry("A")]

    client.fetch_schema.side_effect = slow_schema
    client.fetch_global_percentages.side_effect = UpstreamError("boom", kind=UpstreamErrorKind.HTTP, status_code=500)
    service = AchievementMergeService(client)

    achievements = await service.fetch_achievements("76561198000000001", 440)

    assert achievements == []
    assert finished == ["schema"]


@pytest.mark.asyncio
async def test_strict_mode_raises_upstream_error() -> None:
    client = create_mock_client()
    client.fetch_user_achievements.side_effect = UpstreamError(
        "Steam API Error: Forbidden", kind=UpstreamErrorKind.HTTP, status_code=403
    )
    service = AchievementMergeService(client)

    with pytest.raises(UpstreamError) as exc_info:
        await service.fetch_achievements("76561198000000001", 440, fail_soft=False)

    assert exc_info.value.upstream_status_code == 403


def test_overlay_entries_with_invalid_keys_are_skipped() -> None:
    merged = merge_achievements(
        [schema_entry("A")],
        [{"name": ["A"], "percent": 1}, {"name": "A", "percent": 7}],
        [{"apiname": {"A": 1}, "achieved": 1}, {"achieved": 1}],
    )

    assert merged[0].global_percentage == 7
    assert merged[0].unlocked is False


@pytest.mark.asyncio
async def test_malformed_source_data_degrades_to_empty_list() -> None:
    client = create_mock_client()
    client.fetch_schema.return_value = ["not an achievement"]
    service = AchievementMergeService(client)

    achievements = await service.fetch_achievements("76561198000000001", 440)

    assert achievements == []


@pytest.mark.asyncio
async def test_malformed_source_data_is_unexpected_in_strict_mode() -> None:
    client = create_mock_client()
    client.fetch_schema.return_value = ["not an achievement"]
    service = AchievementMergeService(client)

    with pytest.raises(UpstreamError) as exc_info:
        await service.fetch_achievements("76561198000000001", 440, fail_soft=False)

    assert exc_info.value.kind is UpstreamErrorKind.UNEXPECTED
