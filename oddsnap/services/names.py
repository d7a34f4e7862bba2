from __future__ import annotations

from collections.abc import Iterable

from oddsnap.schemas.odds import EventSummary, MarketDefinition

HOME_PLACEHOLDER = "Home Team"
AWAY_PLACEHOLDER = "Away Team"
PLAYER_MARKET_PREFIX = "player_"

GENERIC_OUTCOME_LABELS = frozenset({"over", "under", "yes", "no", "draw", "home team", "away team"})


def _clean(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_teams(event: EventSummary) -> list[str]:
    """Resolve the two team names shown for an event.

    Priority: the payload's own ``teams`` list, then home/away with a
    placeholder for whichever side is missing, then both placeholders.
    """
    from_payload = [team for team in (_clean(value) for value in event.teams) if team]
    if from_payload:
        return from_payload

    home = _clean(event.home_team)
    away = _clean(event.away_team)
    if home or away:
        return [home or HOME_PLACEHOLDER, away or AWAY_PLACEHOLDER]

    return [HOME_PLACEHOLDER, AWAY_PLACEHOLDER]


def is_player_market(market: MarketDefinition) -> bool:
    return isinstance(market.key, str) and market.key.startswith(PLAYER_MARKET_PREFIX)


def extract_player_outcome_names(market: MarketDefinition) -> list[str]:
    if not is_player_market(market) or not isinstance(market.outcomes, list):
        return []

    names: set[str] = set()
    for outcome in market.outcomes:
        if not isinstance(outcome, dict):
            continue
        for field in ("description", "participant"):
            name = _clean(outcome.get(field))
            if name:
                names.add(name)
    return sorted(names)


def is_player_name(name: str, known_teams: Iterable[str] = ()) -> bool:
    trimmed = name.strip()
    if not trimmed:
        return False
    if trimmed.lower() in GENERIC_OUTCOME_LABELS:
        return False
    return trimmed not in set(known_teams)


def filter_player_names(names: Iterable[str], known_teams: Iterable[str] = ()) -> list[str]:
    """Drop team names and generic outcome labels before names are reported as players."""
    teams = {team.strip() for team in known_teams}
    return sorted({name.strip() for name in names if is_player_name(name, teams)})
