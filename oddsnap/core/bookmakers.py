from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BookmakerInfo:
    key: str
    name: str
    note: str | None = None


_PAID_ONLY = "Only available on paid subscriptions"
_ALT_MULTIPLIERS = "Selections with non-default multipliers are included in alternate markets"

BOOKMAKER_REGIONS: dict[str, tuple[BookmakerInfo, ...]] = {
    "us": (
        BookmakerInfo("betonlineag", "BetOnline.ag"),
        BookmakerInfo("betmgm", "BetMGM"),
        BookmakerInfo("betrivers", "BetRivers"),
        BookmakerInfo("betus", "BetUS"),
        BookmakerInfo("bovada", "Bovada"),
        BookmakerInfo("williamhill_us", "Caesars", _PAID_ONLY),
        BookmakerInfo("draftkings", "DraftKings"),
        BookmakerInfo("fanatics", "Fanatics", _PAID_ONLY),
        BookmakerInfo("fanduel", "FanDuel"),
        BookmakerInfo("lowvig", "LowVig.ag"),
        BookmakerInfo("mybookieag", "MyBookie.ag"),
    ),
    "us2": (
        BookmakerInfo("ballybet", "Bally Bet"),
        BookmakerInfo("betanysports", "BetAnything", "Formerly BetAnySports"),
        BookmakerInfo("betparx", "betPARX"),
        BookmakerInfo("espnbet", "ESPN BET"),
        BookmakerInfo("fliff", "Fliff"),
        BookmakerInfo("hardrockbet", "Hard Rock Bet"),
        BookmakerInfo("rebet", "ReBet", _PAID_ONLY),
    ),
    "us_dfs": (
        BookmakerInfo("betr_us_dfs", "Betr Picks", _ALT_MULTIPLIERS),
        BookmakerInfo("pick6", "DraftKings Pick6", _ALT_MULTIPLIERS),
        BookmakerInfo("prizepicks", "PrizePicks", "Alternate market odds may use default assumptions"),
        BookmakerInfo("underdog", "Underdog Fantasy", _ALT_MULTIPLIERS),
    ),
    "us_ex": (
        BookmakerInfo("betopenly", "BetOpenly", 'Use the "includeBetLimits" parameter to find open bets'),
        BookmakerInfo("kalshi", "Kalshi"),
        BookmakerInfo("novig", "Novig"),
        BookmakerInfo("prophetx", "ProphetX"),
    ),
}

DEFAULT_SNAPSHOT_REGIONS: tuple[str, ...] = ("us", "us_ex")
DEFAULT_SNAPSHOT_BOOKMAKERS: tuple[str, ...] = ("draftkings", "fanduel", "novig")


def bookmaker_region(bookmaker_key: str) -> str | None:
    for region, books in BOOKMAKER_REGIONS.items():
        if any(book.key == bookmaker_key for book in books):
            return region
    return None

