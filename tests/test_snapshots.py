import asyncio
from pathlib import Path

import httpx
import pytest

from conftest import NOW, FakeOddsApi, event_row, sport_row
from oddsnap.core.errors import NoActiveSportsError, UpstreamHttpError
from oddsnap.services.odds_api import OddsApiClient
from oddsnap.services.response_cache import ResponseCache
from oddsnap.services.snapshot_log import SnapshotLogSink
from oddsnap.services.snapshots import (
    create_market_snapshot,
    create_player_names_snapshot,
    create_sport_names_snapshot,
    create_team_names_snapshot,
    resolve_snapshot_options,
)


class RecordingSink:
    def __init__(self) -> None:
        self.written: list[object] = []

    async def _record(self, snapshot) -> str:
        self.written.append(snapshot)
        return f"memory://{len(self.written)}"

    write_market_snapshot = _record
    write_sport_names_snapshot = _record
    write_team_names_snapshot = _record
    write_player_names_snapshot = _record


def _seed_league(fake_api: FakeOddsApi) -> None:
    fake_api.routes.update(
        {
            "/sports": [
                sport_row("basketball_nba", "NBA"),
                sport_row("golf_masters", "Masters", active=False, group="Golf"),
                sport_row("americanfootball_nfl", "NFL", group="American Football"),
            ],
            "/sports/basketball_nba/events": [
                event_row("late", "basketball_nba", 30, "Denver Nuggets", "Phoenix Suns"),
                event_row("early", "basketball_nba", 2),
            ],
            "/sports/americanfootball_nfl/events": [],
            "/sports/basketball_nba/events/early/markets": [
                {"key": "h2h"},
                {
                    "key": "player_points",
                    "outcomes": [
                        {"name": "Over", "description": "LeBron James", "point": 25.5},
                        {"name": "Under", "description": "LeBron James", "point": 25.5},
                        {"name": "Yes", "description": "Boston Celtics"},
                    ],
                },
            ],
            "/sports/basketball_nba/events/late/markets": {
                "id": "late",
                "bookmakers": [
                    {
                        "key": "fanduel",
                        "markets": [
                            {"key": "h2h"},
                            {"key": "player_assists", "outcomes": [{"name": "Over", "participant": "Nikola Jokic"}]},
                        ],
                    }
                ],
            },
            "/sports/basketball_nba/events/early/odds": {"id": "early", "bookmakers": []},
            "/sports/basketball_nba/events/late/odds": {"id": "late", "bookmakers": []},
        }
    )


def test_resolve_snapshot_options_defaults() -> None:
    options = resolve_snapshot_options()

    assert options.hours_ahead == 48
    assert options.max_sports == 3
    assert options.max_events_per_sport == 10
    assert options.regions == "us,us_ex"
    assert options.bookmakers == ["draftkings", "fanduel", "novig"]
    assert options.use_cache is False
    assert options.sports is None


def test_resolve_snapshot_options_falls_back_on_bad_values() -> None:
    options = resolve_snapshot_options(
        hours_ahead="abc",
        max_sports=-2,
        max_events_per_sport=float("nan"),
        regions="   ",
        bookmakers=" , ",
        use_cache="yes",
        sports="all",
    )

    assert options == resolve_snapshot_options()


def test_resolve_snapshot_options_accepts_numeric_strings_and_csv() -> None:
    options = resolve_snapshot_options(
        hours_ahead="12",
        max_sports="2",
        max_events_per_sport=4.7,
        regions="us",
        bookmakers="fanduel, betmgm",
        use_cache=True,
        sports="basketball_nba,americanfootball_nfl",
    )

    assert options.hours_ahead == 12
    assert options.max_sports == 2
    assert options.max_events_per_sport == 4
    assert options.regions == "us"
    assert options.bookmakers == ["fanduel", "betmgm"]
    assert options.use_cache is True
    assert options.sports == ["basketball_nba", "americanfootball_nfl"]


async def test_market_snapshot_captures_entries_and_warnings(fake_api: FakeOddsApi, odds_client, tmp_path: Path) -> None:
    _seed_league(fake_api)
    sink = SnapshotLogSink(tmp_path)

    snapshot = await create_market_snapshot(odds_client, resolve_snapshot_options(max_sports=2), sink=sink)

    assert snapshot.sports_checked == 2
    assert snapshot.events_captured == 2
    assert [entry.event_id for entry in snapshot.entries] == ["early", "late"]
    assert snapshot.entries[0].teams == ["Los Angeles Lakers", "Boston Celtics"]
    assert snapshot.entries[0].market_keys == ["h2h", "player_points"]
    assert snapshot.entries[1].market_keys == ["h2h", "player_assists"]
    assert snapshot.entries[0].odds == {"id": "early", "bookmakers": []}
    assert snapshot.entries[0].odds_fetched_at == NOW
    assert snapshot.captured_at == NOW
    assert snapshot.warnings == ["No events found for sport americanfootball_nfl within the next 48 hours."]
    assert snapshot.markets_by_sport[0].market_keys == ["h2h", "player_points", "player_assists"]

    log_path = Path(snapshot.log_path)
    assert log_path == (tmp_path / "LatestSnapshotMarket.log").resolve()
    assert "Entry 2: Sport basketball_nba (NBA)" in log_path.read_text(encoding="utf-8")

    odds_request = fake_api.calls("/sports/basketball_nba/events/early/odds")[0]
    assert odds_request.url.params["markets"] == "h2h,player_points"
    assert odds_request.url.params["regions"] == "us,us_ex"
    assert odds_request.url.params["bookmakers"] == "draftkings,fanduel,novig"


async def test_market_snapshot_respects_event_and_sport_limits(fake_api: FakeOddsApi, odds_client) -> None:
    _seed_league(fake_api)
    sink = RecordingSink()

    snapshot = await create_market_snapshot(
        odds_client,
        resolve_snapshot_options(max_sports=1, max_events_per_sport=1),
        sink=sink,
    )

    assert snapshot.sports_checked == 1
    assert [entry.event_id for entry in snapshot.entries] == ["early"]
    assert snapshot.warnings == []
    assert fake_api.calls("/sports/americanfootball_nfl/events") == []
    assert snapshot.log_path == "memory://1"


async def test_market_snapshot_takes_earliest_events_up_to_the_limit(fake_api: FakeOddsApi, odds_client) -> None:
    hours = {"e4": 20, "e1": 1, "e5": 40, "e2": 5, "e3": 12}
    fake_api.routes["/sports"] = [sport_row("basketball_nba", "NBA")]
    fake_api.routes["/sports/basketball_nba/events"] = [
        event_row(event_id, "basketball_nba", offset) for event_id, offset in hours.items()
    ]
    for event_id in hours:
        fake_api.routes[f"/sports/basketball_nba/events/{event_id}/markets"] = [{"key": "h2h"}]
        fake_api.routes[f"/sports/basketball_nba/events/{event_id}/odds"] = {"id": event_id, "bookmakers": []}

    snapshot = await create_market_snapshot(
        odds_client,
        resolve_snapshot_options(max_events_per_sport=3),
        sink=RecordingSink(),
    )

    assert snapshot.events_captured == 3
    assert [entry.event_id for entry in snapshot.entries] == ["e1", "e2", "e3"]
    assert fake_api.calls("/sports/basketball_nba/events/e4/markets") == []
    assert fake_api.calls("/sports/basketball_nba/events/e5/odds") == []


async def test_market_snapshot_concurrency_bounds_the_whole_run(fake_api: FakeOddsApi) -> None:
    fake_api.routes["/sports"] = [sport_row(f"league_{n}", f"League {n}") for n in range(3)]
    for n in range(3):
        sport_key = f"league_{n}"
        fake_api.routes[f"/sports/{sport_key}/events"] = [
            event_row(f"{sport_key}-{i}", sport_key, i + 1) for i in range(3)
        ]
        for i in range(3):
            event_path = f"/sports/{sport_key}/events/{sport_key}-{i}"
            fake_api.routes[f"{event_path}/markets"] = [{"key": "h2h"}]
            fake_api.routes[f"{event_path}/odds"] = {"id": f"{sport_key}-{i}", "bookmakers": []}

    in_flight = 0
    peak = 0

    async def slow_handler(request):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        try:
            await asyncio.sleep(0.01)
            return fake_api.handler(request)
        finally:
            in_flight -= 1

    async with httpx.AsyncClient(transport=httpx.MockTransport(slow_handler)) as http_client:
        client = OddsApiClient(cache=ResponseCache(), http_client=http_client, now=lambda: NOW)
        snapshot = await create_market_snapshot(
            client,
            resolve_snapshot_options(max_sports=3),
            sink=RecordingSink(),
            concurrency=2,
        )

    assert snapshot.events_captured == 9
    assert peak == 2


async def test_market_snapshot_order_is_stable_with_parallel_fanout(fake_api: FakeOddsApi, odds_client) -> None:
    _seed_league(fake_api)
    options = resolve_snapshot_options(max_sports=2)

    sequential = await create_market_snapshot(odds_client, options, sink=RecordingSink())
    parallel = await create_market_snapshot(odds_client, options, sink=RecordingSink(), concurrency=4)

    assert [entry.event_id for entry in parallel.entries] == [entry.event_id for entry in sequential.entries]
    assert parallel.warnings == sequential.warnings


async def test_market_snapshot_fails_without_active_sports(fake_api: FakeOddsApi, odds_client) -> None:
    fake_api.routes["/sports"] = [sport_row("golf_masters", "Masters", active=False)]
    sink = RecordingSink()

    with pytest.raises(NoActiveSportsError, match="No active sports available to snapshot."):
        await create_market_snapshot(odds_client, sink=sink)
    assert sink.written == []


async def test_market_snapshot_upstream_failure_persists_nothing(fake_api: FakeOddsApi, odds_client) -> None:
    _seed_league(fake_api)
    fake_api.routes["/sports/basketball_nba/events/late/odds"] = httpx.Response(429, text="quota exceeded")
    sink = RecordingSink()

    with pytest.raises(UpstreamHttpError):
        await create_market_snapshot(odds_client, resolve_snapshot_options(max_sports=2), sink=sink)
    assert sink.written == []


async def test_market_snapshot_sports_filter(fake_api: FakeOddsApi, odds_client) -> None:
    _seed_league(fake_api)

    snapshot = await create_market_snapshot(
        odds_client,
        resolve_snapshot_options(sports="americanfootball_nfl", hours_ahead=6),
        sink=RecordingSink(),
    )

    assert snapshot.sports_checked == 1
    assert snapshot.entries == []
    assert snapshot.warnings == ["No events found for sport americanfootball_nfl within the next 6 hours."]


async def test_sport_names_snapshot_lists_active_sports(fake_api: FakeOddsApi, odds_client) -> None:
    _seed_league(fake_api)

    snapshot = await create_sport_names_snapshot(odds_client, sink=RecordingSink())

    assert [entry.sport_key for entry in snapshot.sport_names] == ["basketball_nba", "americanfootball_nfl"]
    assert snapshot.sport_names[1].group == "American Football"
    assert snapshot.warnings == []


async def test_sport_names_snapshot_without_active_sports_is_not_fatal(fake_api: FakeOddsApi, odds_client) -> None:
    fake_api.routes["/sports"] = []
    sink = RecordingSink()

    snapshot = await create_sport_names_snapshot(odds_client, sink=sink)

    assert snapshot.sports_checked == 0
    assert snapshot.sport_names == []
    assert snapshot.warnings == ["No active sports available from Odds API."]
    assert len(sink.written) == 1


async def test_team_names_snapshot_collects_sorted_unique_teams(fake_api: FakeOddsApi, odds_client) -> None:
    _seed_league(fake_api)
    fake_api.routes["/sports/basketball_nba/events"].append(event_row("third", "basketball_nba", 5, None, None))

    snapshot = await create_team_names_snapshot(odds_client, sink=RecordingSink())

    nba = snapshot.teams_by_sport[0]
    assert nba.teams == [
        "Away Team",
        "Boston Celtics",
        "Denver Nuggets",
        "Home Team",
        "Los Angeles Lakers",
        "Phoenix Suns",
    ]
    assert nba.events_checked == 3
    assert snapshot.events_captured == 3
    assert len(snapshot.teams_by_sport) == 1
    assert snapshot.warnings == ["No events found for sport americanfootball_nfl within the next 48 hours."]


async def test_team_names_snapshot_fails_without_active_sports(fake_api: FakeOddsApi, odds_client) -> None:
    fake_api.routes["/sports"] = []

    with pytest.raises(NoActiveSportsError, match="team name capture"):
        await create_team_names_snapshot(odds_client, sink=RecordingSink())


async def test_player_names_snapshot_filters_teams_and_labels(fake_api: FakeOddsApi, odds_client) -> None:
    _seed_league(fake_api)

    snapshot = await create_player_names_snapshot(odds_client, sink=RecordingSink())

    nba = snapshot.player_names_by_sport[0]
    assert nba.player_names == ["LeBron James", "Nikola Jokic"]
    assert nba.events_checked == 2
    assert nba.markets_checked == 2
    assert snapshot.events_captured == 2
    assert snapshot.markets_captured == 2
    assert snapshot.warnings == ["No events found for sport americanfootball_nfl within the next 48 hours."]


async def test_player_names_snapshot_warns_when_no_players_found(fake_api: FakeOddsApi, odds_client) -> None:
    _seed_league(fake_api)
    fake_api.routes["/sports/basketball_nba/events/early/markets"] = [{"key": "h2h"}]
    fake_api.routes["/sports/basketball_nba/events/late/markets"] = [{"key": "totals"}]

    snapshot = await create_player_names_snapshot(odds_client, resolve_snapshot_options(max_sports=1), sink=RecordingSink())

    assert snapshot.player_names_by_sport[0].player_names == []
    assert snapshot.markets_captured == 0
    assert snapshot.warnings == ["No player-like outcome names found for sport basketball_nba."]


async def test_team_names_snapshot_accepts_a_huge_window(fake_api: FakeOddsApi, odds_client) -> None:
    _seed_league(fake_api)
    options = resolve_snapshot_options(hours_ahead="1e9", max_sports=1)

    snapshot = await create_team_names_snapshot(odds_client, options, sink=RecordingSink())

    assert options.hours_ahead == 1_000_000_000
    assert snapshot.events_captured == 2
    assert snapshot.warnings == []
