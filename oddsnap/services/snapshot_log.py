"""Flat-text persistence for snapshot results.

The files written here are read back by offline tooling that matches the
literal markers (``Entry N: Sport X (Title)``, ``Markets (N): ...``,
``Odds payload:`` followed by an indented JSON block). Changing a marker breaks
those readers; ``parse_snapshot_log`` is the in-repo reader of the market log.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from oddsnap.schemas.snapshot import (
    MarketInfo,
    MarketSnapshotResult,
    PlayerNamesSnapshotResult,
    SnapshotLogSport,
    SnapshotLogSummary,
    SnapshotOptions,
    SportNamesSnapshotResult,
    TeamNamesSnapshotResult,
)
from oddsnap.services.names import filter_player_names

logger = logging.getLogger(__name__)

MARKET_SNAPSHOT_LOG_FILENAME = "LatestSnapshotMarket.log"
SPORT_NAMES_SNAPSHOT_LOG_FILENAME = "LatestSnapshotSportNames.log"
TEAM_NAMES_SNAPSHOT_LOG_FILENAME = "LatestSnapshotTeamNames.log"
PLAYER_NAMES_SNAPSHOT_LOG_FILENAME = "LatestSnapshotPlayerNames.log"
MARKET_CATALOG_LOG_FILENAME = "LatestMarketsCatalog.log"

_PAYLOAD_INDENT = "    "
_ENTRY_RE = re.compile(r"^Entry\s+\d+:\s+Sport\s+(\S+)(?:\s+\((.+)\))?")
_EVENT_RE = re.compile(r"Event\s+[^:]+::\s+(.+?)\s+@")
_MARKETS_RE = re.compile(r"Markets\s*\((\d+)\):\s*(.+)")


def to_iso_z(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _bool_text(value: bool) -> str:
    return "true" if value else "false"


def _sport_label(sport_key: str, sport_title: str | None) -> str:
    return f"{sport_key} ({sport_title})" if sport_title else sport_key


def format_options(options: SnapshotOptions) -> str:
    return (
        f"Options -> hoursAhead={options.hours_ahead}, maxSports={options.max_sports}, "
        f"maxEventsPerSport={options.max_events_per_sport}, regions={options.regions}, "
        f"bookmakers={','.join(options.bookmakers)}, useCache={_bool_text(options.use_cache)}"
    )


def format_warnings(warnings: Sequence[str]) -> list[str]:
    if not warnings:
        return []
    return ["Warnings:", *(f"  {index}. {warning}" for index, warning in enumerate(warnings, start=1))]


def format_odds_payload(odds: Any) -> str:
    text = json.dumps(odds, indent=2, ensure_ascii=False)
    return "\n".join(f"{_PAYLOAD_INDENT}{line}" for line in text.split("\n"))


def format_market_snapshot_log(snapshot: MarketSnapshotResult) -> str:
    lines = [
        f"Market snapshot captured at {to_iso_z(snapshot.captured_at)}",
        format_options(snapshot.options),
        f"Sports checked: {snapshot.sports_checked}",
        f"Events captured: {snapshot.events_captured}",
        *format_warnings(snapshot.warnings),
    ]

    for index, entry in enumerate(snapshot.entries, start=1):
        lines.append("")
        lines.append(f"Entry {index}: Sport {_sport_label(entry.sport_key, entry.sport_title)}")
        lines.append(f"  Event {entry.event_id} :: {' vs '.join(entry.teams)} @ {to_iso_z(entry.start_time)}")
        lines.append(f"  Markets ({len(entry.market_keys)}): {', '.join(entry.market_keys) or 'none'}")
        lines.append(f"  Odds fetched at {to_iso_z(entry.odds_fetched_at)}")
        lines.append("  Odds payload:")
        lines.append(format_odds_payload(entry.odds))

    return "\n".join(lines)


def format_sport_names_snapshot_log(snapshot: SportNamesSnapshotResult) -> str:
    lines = [
        f"Sport names snapshot captured at {to_iso_z(snapshot.captured_at)}",
        format_options(snapshot.options),
        f"Sports checked: {snapshot.sports_checked}",
        *format_warnings(snapshot.warnings),
    ]

    if snapshot.sport_names:
        lines.extend(["", "Sport names:"])
        for sport in snapshot.sport_names:
            lines.append(f"- {_sport_label(sport.sport_key, sport.sport_title)}")
            lines.append(f"  Group: {sport.group}")
            if sport.description:
                lines.append(f"  Description: {sport.description}")
            lines.append(f"  Has outrights: {_bool_text(bool(sport.has_outrights))}")

    return "\n".join(lines)


def format_team_names_snapshot_log(snapshot: TeamNamesSnapshotResult) -> str:
    lines = [
        f"Team names snapshot captured at {to_iso_z(snapshot.captured_at)}",
        format_options(snapshot.options),
        f"Sports checked: {snapshot.sports_checked}",
        f"Events captured: {snapshot.events_captured}",
        *format_warnings(snapshot.warnings),
    ]

    if snapshot.teams_by_sport:
        lines.extend(["", "Teams by sport:"])
        for entry in snapshot.teams_by_sport:
            lines.append(f"- {_sport_label(entry.sport_key, entry.sport_title)}")
            lines.append(f"  Events checked: {entry.events_checked}")
            lines.append(f"  Teams ({len(entry.teams)}): {', '.join(entry.teams) or 'none'}")

    return "\n".join(lines)


def format_player_names_snapshot_log(snapshot: PlayerNamesSnapshotResult) -> str:
    lines = [
        f"Player names snapshot captured at {to_iso_z(snapshot.captured_at)}",
        format_options(snapshot.options),
        f"Sports checked: {snapshot.sports_checked}",
        f"Events captured: {snapshot.events_captured}",
        f"Markets captured: {snapshot.markets_captured}",
        *format_warnings(snapshot.warnings),
    ]

    if snapshot.player_names_by_sport:
        lines.extend(["", "Player-like outcome names by sport:"])
        for entry in snapshot.player_names_by_sport:
            lines.append(f"- {_sport_label(entry.sport_key, entry.sport_title)}")
            lines.append(f"  Events checked: {entry.events_checked}")
            lines.append(f"  Markets checked: {entry.markets_checked}")
            lines.append(f"  Outcome names ({len(entry.player_names)}): {', '.join(entry.player_names) or 'none'}")

    return "\n".join(lines)


def format_market_catalog_log(
    catalog: Sequence[MarketInfo],
    *,
    generated_at: datetime,
    source_description: str | None = None,
) -> str:
    ordered = sorted(catalog, key=lambda market: market.key)
    core_count = sum(1 for market in ordered if market.source == "core")
    additional_count = sum(1 for market in ordered if market.source == "additional")

    lines = [f"Market catalog generated at {to_iso_z(generated_at)}"]
    if source_description:
        lines.append(f"Source: {source_description}")
    lines.extend(
        [
            f"Total markets: {len(ordered)}",
            f"- Core markets: {core_count}",
            f"- Additional markets: {additional_count}",
            "",
            "Markets:",
        ]
    )
    for index, market in enumerate(ordered, start=1):
        lines.append(f"{index}. {market.key} :: {market.name}")
        lines.append(f"    Description: {market.description}")
        lines.append(f"    Source: {market.source}{f' ({market.notes})' if market.notes else ''}")

    return "\n".join(lines)


class SnapshotSink(Protocol):
    """Destination for finished snapshot results; returns where the result went."""

    async def write_market_snapshot(self, snapshot: MarketSnapshotResult) -> str: ...

    async def write_sport_names_snapshot(self, snapshot: SportNamesSnapshotResult) -> str: ...

    async def write_team_names_snapshot(self, snapshot: TeamNamesSnapshotResult) -> str: ...

    async def write_player_names_snapshot(self, snapshot: PlayerNamesSnapshotResult) -> str: ...


class SnapshotLogSink:
    def __init__(self, log_dir: str | Path = "."):
        self.log_dir = Path(log_dir)

    async def _write(self, filename: str, body: str) -> str:
        path = (self.log_dir / filename).resolve()
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_text, body, encoding="utf-8")
        logger.info("Snapshot log written", extra={"log_path": str(path)})
        return str(path)

    async def write_market_snapshot(self, snapshot: MarketSnapshotResult) -> str:
        return await self._write(MARKET_SNAPSHOT_LOG_FILENAME, format_market_snapshot_log(snapshot))

    async def write_sport_names_snapshot(self, snapshot: SportNamesSnapshotResult) -> str:
        return await self._write(SPORT_NAMES_SNAPSHOT_LOG_FILENAME, format_sport_names_snapshot_log(snapshot))

    async def write_team_names_snapshot(self, snapshot: TeamNamesSnapshotResult) -> str:
        return await self._write(TEAM_NAMES_SNAPSHOT_LOG_FILENAME, format_team_names_snapshot_log(snapshot))

    async def write_player_names_snapshot(self, snapshot: PlayerNamesSnapshotResult) -> str:
        return await self._write(PLAYER_NAMES_SNAPSHOT_LOG_FILENAME, format_player_names_snapshot_log(snapshot))

    async def write_market_catalog(
        self,
        catalog: Sequence[MarketInfo],
        *,
        source_description: str | None = None,
        generated_at: datetime | None = None,
    ) -> str:
        body = format_market_catalog_log(
            catalog,
            generated_at=generated_at or datetime.now(UTC),
            source_description=source_description,
        )
        return await self._write(MARKET_CATALOG_LOG_FILENAME, body)


def _read_payload_block(lines: list[str], start: int) -> tuple[Any, int]:
    end = start
    while end < len(lines) and lines[end].startswith(_PAYLOAD_INDENT):
        end += 1
    text = "\n".join(line[len(_PAYLOAD_INDENT):] for line in lines[start:end])
    return json.loads(text), end


def _collect_outcome_names(payload: Any) -> set[str]:
    names: set[str] = set()
    stack = [payload]
    while stack:
        current = stack.pop()
        if isinstance(current, list):
            stack.extend(current)
            continue
        if not isinstance(current, dict):
            continue

        outcomes = current.get("outcomes")
        if isinstance(outcomes, list):
            for outcome in outcomes:
                if not isinstance(outcome, dict):
                    continue
                participant = outcome.get("participant")
                if not isinstance(participant, str):
                    participant = outcome.get("name")
                for value in (participant, outcome.get("description")):
                    if isinstance(value, str) and value.strip():
                        names.add(value.strip())

        stack.extend(value for value in current.values() if isinstance(value, (dict, list)))
    return names


def parse_snapshot_log(text: str) -> SnapshotLogSummary:
    """Rebuild sports, teams, player names and markets from a market snapshot log."""
    lines = text.splitlines()
    sports: dict[str, str | None] = {}
    teams: set[str] = set()
    outcome_names: set[str] = set()
    markets: set[str] = set()

    index = 0
    while index < len(lines):
        line = lines[index]

        entry_match = _ENTRY_RE.match(line)
        if entry_match:
            sport_key, sport_title = entry_match.group(1), entry_match.group(2)
            if sports.get(sport_key) is None:
                sports[sport_key] = sport_title
            index += 1
            continue

        event_match = _EVENT_RE.search(line)
        if event_match:
            teams.update(team.strip() for team in re.split(r"\s+vs\s+", event_match.group(1)) if team.strip())

        markets_match = _MARKETS_RE.search(line)
        if markets_match and int(markets_match.group(1)) > 0:
            markets.update(value.strip() for value in markets_match.group(2).split(",") if value.strip())

        if line.strip() == "Odds payload:":
            payload, index = _read_payload_block(lines, index + 1)
            outcome_names.update(_collect_outcome_names(payload))
            continue

        index += 1

    return SnapshotLogSummary(
        sports=[SnapshotLogSport(sport_key=key, sport_title=title) for key, title in sports.items()],
        teams=sorted(teams),
        players=filter_player_names(outcome_names, teams),
        markets=sorted(markets),
    )
