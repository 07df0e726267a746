"""
NFL weekly range resolver

The NFL is polled as a week window (Thursday through Monday) rather than a
single date. Handles:
- Week-start math, including the Wednesday-morning turnover
- Aggregating the five daily scoreboards, with bye teams and Pro Bowl
  exclusion
- A fallback pass against the undated scoreboard
- The January/February playoff advance from the current week to the next
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .coerce import as_dict, as_list, first_string, text_value
from .dates import DEFAULT_TIMEZONE, LocalDateParts, TargetDate, local_date_parts, utc_now
from .errors import FetchError
from .models import Game
from .parser import DataParser, collect_espn_events, dedupe_events
from .providers import espn_scoreboard_url

logger = logging.getLogger(__name__)

PROVIDER_NAME = "espn_nfl"
WEEK_LENGTH_DAYS = 5
THURSDAY = 4
WEDNESDAY = 3
WEDNESDAY_TURNOVER_MINUTES = 9 * 60

PRO_BOWL_MARKERS = ("pro bowl", "pro-bowl", "nfc vs afc", "afc vs nfc")


class NflWeekState(Enum):
    CURRENT_WEEK = "current-week"
    ADVANCED_WEEK = "advanced-week"


@dataclass(frozen=True)
class PlayoffCutoff:
    """Earliest local weekday/time at which the next round is trusted"""
    day_of_week: int  # 0 = Sunday
    minutes: int


# Externally sourced: matches when ESPN has historically published the next
# playoff round. Keyed by the number of games left in the current round.
PLAYOFF_MONTHS = (1, 2)
PLAYOFF_CUTOFFS: Dict[int, PlayoffCutoff] = {
    6: PlayoffCutoff(day_of_week=2, minutes=15 * 60),
    4: PlayoffCutoff(day_of_week=1, minutes=15 * 60 + 15),
    2: PlayoffCutoff(day_of_week=1, minutes=15 * 60 + 15),
}


@dataclass(frozen=True)
class NflWeekRange:
    start: date
    week_offset: int = 0

    @property
    def dates(self) -> List[TargetDate]:
        return [TargetDate.from_date(self.start + timedelta(days=i)) for i in range(WEEK_LENGTH_DAYS)]

    @property
    def end(self) -> date:
        return self.start + timedelta(days=WEEK_LENGTH_DAYS - 1)


@dataclass
class NflWeekResult:
    """Aggregated games and byes for the resolved week"""
    games: List[Game] = field(default_factory=list)
    teams_on_bye: List[Dict[str, Any]] = field(default_factory=list)
    week_range: Optional[NflWeekRange] = None
    state: NflWeekState = NflWeekState.CURRENT_WEEK


def week_start_for_date(parts: LocalDateParts) -> date:
    """Thursday on or before today; Wednesday from 09:00 rolls to tomorrow"""
    offset = (parts.day_of_week - THURSDAY + 7) % 7
    start = parts.local_date - timedelta(days=offset)
    if parts.day_of_week == WEDNESDAY and parts.minutes >= WEDNESDAY_TURNOVER_MINUTES:
        start += timedelta(days=7)
    return start


def week_range(parts: LocalDateParts, week_offset: int = 0) -> NflWeekRange:
    start = week_start_for_date(parts) + timedelta(days=7 * week_offset)
    return NflWeekRange(start=start, week_offset=week_offset)


def _event_tokens(event: Dict[str, Any]) -> Iterable[str]:
    for key in ("name", "shortName", "description", "headline"):
        yield text_value(event.get(key))

    for competition in as_list(event.get("competitions")):
        competition = as_dict(competition)
        for key in ("name", "shortName", "description", "headline"):
            yield text_value(competition.get(key))
        for competitor in as_list(competition.get("competitors")):
            competitor = as_dict(competitor)
            yield text_value(competitor.get("displayName"))
            yield text_value(competitor.get("shortDisplayName"))
            team = as_dict(competitor.get("team"))
            for key in ("displayName", "shortDisplayName", "name", "abbreviation"):
                yield text_value(team.get(key))


def is_pro_bowl(event: Any) -> bool:
    """True for the Pro Bowl / AFC-NFC all-star game"""
    if not isinstance(event, dict):
        return False
    haystack = " ".join(token for token in _event_tokens(event) if token).lower()
    return any(marker in haystack for marker in PRO_BOWL_MARKERS)


def collect_nfl_byes(payload: Any) -> List[Dict[str, Any]]:
    payload = as_dict(payload)
    content = as_dict(payload.get("content"))
    sources = (
        as_dict(payload.get("week")).get("teamsOnBye"),
        as_dict(content.get("week")).get("teamsOnBye"),
        as_dict(as_dict(content.get("schedule")).get("week")).get("teamsOnBye"),
    )
    teams = []
    for source in sources:
        teams.extend(team for team in as_list(source) if isinstance(team, dict))
    return teams


def normalize_bye_team(team: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    abbreviation = first_string(team.get("abbreviation"), team.get("shortDisplayName"),
                                team.get("name"), team.get("location")).upper()
    if not abbreviation:
        return None

    display_name = first_string(team.get("displayName"), team.get("name"), abbreviation)
    return {
        'id': first_string(team.get("id")) or None,
        'abbreviation': abbreviation,
        'displayName': display_name,
        'shortDisplayName': first_string(team.get("shortDisplayName"), team.get("name"), display_name),
    }


def normalize_byes(teams: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Deduplicated by abbreviation and sorted alphabetically"""
    by_abbreviation: Dict[str, Dict[str, Any]] = {}
    for team in teams:
        normalized = normalize_bye_team(team)
        if normalized and normalized['abbreviation'] not in by_abbreviation:
            by_abbreviation[normalized['abbreviation']] = normalized
    return [by_abbreviation[key] for key in sorted(by_abbreviation)]


def should_advance_week(games: List[Game], parts: LocalDateParts) -> bool:
    """Playoff round finished and past its publication cutoff"""
    if parts.local_date.month not in PLAYOFF_MONTHS:
        return False

    cutoff = PLAYOFF_CUTOFFS.get(len(games))
    if cutoff is None:
        return False

    for game in games:
        start = game.start_datetime
        if start is not None and start > parts.now:
            return False

    if parts.day_of_week > cutoff.day_of_week:
        return True
    return parts.day_of_week == cutoff.day_of_week and parts.minutes >= cutoff.minutes


class NflWeekResolver:
    """Fetches and aggregates one NFL week from the ESPN scoreboard"""

    def __init__(self, client, parser: DataParser, timezone: str = DEFAULT_TIMEZONE,
                 clock: Callable[[], datetime] = utc_now):
        self.client = client
        self.parser = parser
        self.timezone = timezone
        self.clock = clock

    async def resolve(self) -> NflWeekResult:
        parts = local_date_parts(self.timezone, self.clock())
        current = week_range(parts)
        games, byes = await self.aggregate(current)
        result = NflWeekResult(games=games, teams_on_bye=byes, week_range=current,
                               state=NflWeekState.CURRENT_WEEK)

        if should_advance_week(games, parts):
            advanced = week_range(parts, week_offset=1)
            logger.info(f"NFL playoff round complete ({len(games)} games); "
                        f"advancing to week of {advanced.start.isoformat()}")
            games, byes = await self.aggregate(advanced)
            result = NflWeekResult(games=games, teams_on_bye=byes, week_range=advanced,
                                   state=NflWeekState.ADVANCED_WEEK)

        logger.info(f"NFL week {result.week_range.start.isoformat()} -> {result.week_range.end.isoformat()}: "
                    f"{len(result.games)} games, {len(result.teams_on_bye)} teams on bye")
        return result

    async def aggregate(self, week: NflWeekRange) -> Tuple[List[Game], List[Dict[str, Any]]]:
        events: List[Dict[str, Any]] = []
        bye_teams: List[Dict[str, Any]] = []

        for target in week.dates:
            payload = await self._fetch(espn_scoreboard_url("football", "nfl", target.date_compact))
            if payload is None:
                continue
            events.extend(collect_espn_events(payload))
            bye_teams.extend(collect_nfl_byes(payload))

        games = self._normalize(events)

        if not games:
            logger.info(f"No NFL games for week of {week.start.isoformat()}; trying default scoreboard")
            payload = await self._fetch(espn_scoreboard_url("football", "nfl"))
            if payload is not None:
                games = self._normalize(collect_espn_events(payload))
                bye_teams.extend(collect_nfl_byes(payload))

        return games, normalize_byes(bye_teams)

    async def _fetch(self, url: str) -> Optional[Any]:
        try:
            return await self.client.get_json(url)
        except FetchError as e:
            logger.warning(f"NFL scoreboard fetch failed for {url}: {e}")
            return None

    def _normalize(self, events: List[Dict[str, Any]]) -> List[Game]:
        kept = [event for event in events if isinstance(event, dict) and not is_pro_bowl(event)]
        return self.parser.normalize_espn_events(dedupe_events(kept), "nfl", PROVIDER_NAME)
