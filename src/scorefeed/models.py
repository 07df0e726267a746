"""
Canonical game records shared by every league and provider
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .coerce import parse_datetime

SUPPORTED_LEAGUES = ("mlb", "nhl", "nfl", "nba", "olympic_mhockey", "olympic_whockey")

STATUS_PRE = "pre"
STATUS_LIVE = "live"
STATUS_FINAL = "final"
GAME_STATUSES = (STATUS_PRE, STATUS_LIVE, STATUS_FINAL)


def normalize_league_key(value: Any) -> Optional[str]:
    """Lower-cased league key, or None when unsupported"""
    if value is None:
        return None
    key = str(value).strip().lower()
    return key if key in SUPPORTED_LEAGUES else None


@dataclass
class Team:
    """One side of a game"""
    code3: str = ""
    name: str = ""
    score: Optional[str] = None
    shots: Optional[int] = None
    team_id: Optional[str] = None

    def __post_init__(self):
        code = (self.code3 or "").strip()
        if not code and self.name:
            code = self.name.strip()
        self.code3 = code.upper()[:3]
        self.name = (self.name or "").strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code3': self.code3,
            'name': self.name,
            'score': self.score,
            'shots': self.shots,
            'id': self.team_id,
        }


@dataclass
class SourceInfo:
    """Which provider produced a record, and when"""
    provider_name: str
    fetched_at_utc: str

    def to_dict(self) -> Dict[str, Any]:
        return {'providerName': self.provider_name, 'fetchedAtUTC': self.fetched_at_utc}


@dataclass
class Game:
    """Provider-agnostic scheduled, live or finished game"""
    league_key: str
    game_id: str
    start_time_utc: str = ""
    status: str = STATUS_PRE
    period: str = ""
    clock: str = ""
    detail: str = ""
    home: Team = field(default_factory=Team)
    away: Team = field(default_factory=Team)
    venue: str = ""
    source: Optional[SourceInfo] = None

    def __post_init__(self):
        if self.status not in GAME_STATUSES:
            self.status = STATUS_PRE
        if self.home is None:
            self.home = Team()
        if self.away is None:
            self.away = Team()

    @property
    def start_datetime(self) -> Optional[datetime]:
        return parse_datetime(self.start_time_utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'leagueKey': self.league_key,
            'gameId': self.game_id,
            'startTimeUTC': self.start_time_utc,
            'status': self.status,
            'period': self.period,
            'clock': self.clock,
            'detail': self.detail,
            'home': self.home.to_dict(),
            'away': self.away.to_dict(),
            'venue': self.venue,
            'source': self.source.to_dict() if self.source else None,
        }


def sort_games(games: Iterable[Game]) -> List[Game]:
    """Ascending by start time; games with no resolvable time go first"""
    def sort_key(game: Game):
        start = game.start_datetime
        return (start is not None, start.timestamp() if start else 0.0)

    return sorted(games, key=sort_key)


def merge_games(*game_lists: Iterable[Game]) -> List[Game]:
    """Merge lists keyed by game id; a later duplicate replaces the earlier one"""
    merged: Dict[str, Game] = {}
    for games in game_lists:
        for game in games:
            merged[game.game_id] = game
    return list(merged.values())
