"""
Data parser and normalizer for scorefeed

Handles:
- Discovering game/event lists across the many shapes providers return
- Mapping NHL, MLB and ESPN-style payloads to the canonical Game record
- Ordered field-synonym extraction for teams, scores and shots
- Status normalization to pre/live/final with period/clock/detail text
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from .coerce import (as_dict, as_list, as_number_or_null, first_date, first_number,
                     first_string, first_text, text_value, to_utc_iso)
from .dates import utc_now
from .errors import ParseError
from .models import (STATUS_FINAL, STATUS_LIVE, STATUS_PRE, Game, SourceInfo,
                     Team, sort_games)

logger = logging.getLogger(__name__)

GAME_ID_KEYS = ("id", "gamePk", "gameId")

NHL_LIVE_STATES = ("LIVE", "CRIT", "CRIT_NONOT")
NHL_FINAL_STATES = ("FINAL", "OFF", "COMPLETE", "COMPLETED")

# Shots on goal show up under many names, sometimes nested in a stats block
SHOT_KEYS = ("shotsOnGoal", "sog", "shots", "shotsTotal", "totalShots", "shotsOnGoalTotal")
NESTED_SHOT_KEYS = ("shotsOnGoal", "sog", "shots", "shotsTotal", "totalShots")
STAT_BLOCK_KEYS = ("stats", "teamStats", "statistics", "teamSkaterStats", "skaterStats")
SKATER_SHOT_KEYS = ("shotsOnGoal", "sog", "shots")

TEAM_ABBREV_KEYS = ("teamAbbrev", "abbrev", "triCode", "teamCode", "abbreviation", "shortName")
TEAM_PLACE_KEYS = ("placeName", "locationName", "city", "market")
TEAM_NAME_KEYS = ("teamName", "nickName", "commonName", "name")

START_TIME_KEYS = ("startTimeUTC", "gameDate", "startTime", "gameDateTime", "startTimeLocal")


def _shot_paths() -> List[str]:
    paths = list(SHOT_KEYS)
    for block in STAT_BLOCK_KEYS:
        paths.extend(f"{block}.{key}" for key in NESTED_SHOT_KEYS)
        paths.extend(f"{block}.teamSkaterStats.{key}" for key in SKATER_SHOT_KEYS)
    return paths


SHOT_PATHS = _shot_paths()


@dataclass
class StatusInfo:
    """Canonical status plus human-readable period/clock/detail"""
    status: str
    period: str = ""
    clock: str = ""
    detail: str = ""


# Status normalization

def period_ordinal(number: Any, period_type: Any = "") -> str:
    """Ordinal label for a period; overtime is numbered past regulation"""
    number = as_number_or_null(number)
    kind = text_value(period_type).upper()

    if number is None:
        return ""

    number = int(number)
    if kind == "SO":
        return "SO"
    if kind == "OT":
        if number <= 4:
            return "OT"
        return f"{number - 3}OT"

    if number == 1:
        return "1st"
    if number == 2:
        return "2nd"
    if number == 3:
        return "3rd"
    return f"{number}th"


def final_detail(number: Any, period_type: Any = "") -> str:
    kind = text_value(period_type).upper()
    number = as_number_or_null(number)

    if kind == "SO":
        return "Final/SO"
    if kind == "OT":
        if number and number > 4:
            return f"Final/{int(number) - 3}OT"
        return "Final/OT"
    return "Final"


def live_status(ordinal: str, remaining: str) -> StatusInfo:
    remaining = (remaining or "").strip()
    if remaining.upper() == "END":
        detail = f"{ordinal} End".strip()
        return StatusInfo(STATUS_LIVE, ordinal, "", detail)

    detail = " ".join(part for part in (ordinal, remaining) if part)
    return StatusInfo(STATUS_LIVE, ordinal, remaining, detail or "Live")


def nhl_status(game_state: Any, schedule_state: Any = "",
               period_descriptor: Optional[Dict[str, Any]] = None,
               clock: Any = "") -> StatusInfo:
    """Map NHL scoreboard/REST states to canonical status"""
    descriptor = as_dict(period_descriptor)
    state_raw = text_value(game_state)
    state = state_raw.upper()
    schedule_raw = text_value(schedule_state)
    schedule = schedule_raw.upper()
    remaining = text_value(descriptor.get("periodTimeRemaining")) or text_value(clock)

    number = descriptor.get("number")
    period_type = descriptor.get("periodType")
    ordinal = period_ordinal(number, period_type)

    if state in NHL_LIVE_STATES:
        return live_status(ordinal, remaining)

    if state in NHL_FINAL_STATES:
        return StatusInfo(STATUS_FINAL, ordinal, "", final_detail(number, period_type))

    if state == "POSTPONED" or schedule == "PPD":
        detail = "Postponed"
    elif state == "SUSP" or schedule == "SUSP":
        detail = "Suspended"
    elif state in ("FUT", "PRE", "SCHEDULED"):
        detail = "Scheduled"
    elif state in ("CANCELLED", "CNCL"):
        detail = "Cancelled"
    else:
        detail = schedule_raw or state_raw

    return StatusInfo(STATUS_PRE, "", "", detail)


def statsapi_status(status: Dict[str, Any], period_number: Any, period_type: Any,
                    ordinal: str, remaining: str) -> StatusInfo:
    """Map statsapi abstract/detailed states (legacy NHL) to canonical status"""
    status = as_dict(status)
    abstract = text_value(status.get("abstractGameState")).lower()
    detailed = text_value(status.get("detailedState"))

    if abstract == "live":
        return live_status(ordinal, remaining)
    if abstract == "final":
        return StatusInfo(STATUS_FINAL, ordinal, "", final_detail(period_number, period_type))
    return StatusInfo(STATUS_PRE, "", "", detailed or text_value(status.get("abstractGameState")))


ESPN_IRREGULAR_STATUSES = {
    "STATUS_POSTPONED": "Postponed",
    "STATUS_CANCELED": "Cancelled",
    "STATUS_CANCELLED": "Cancelled",
    "STATUS_SUSPENDED": "Suspended",
}


def espn_status(status: Dict[str, Any]) -> StatusInfo:
    status = as_dict(status)
    status_type = as_dict(status.get("type"))
    state = text_value(status_type.get("state")).lower()
    detail = text_value(status_type.get("description")) or text_value(status.get("detail"))
    period = text_value(status_type.get("shortDetail"))
    clock = text_value(status.get("displayClock"))

    irregular = ESPN_IRREGULAR_STATUSES.get(text_value(status_type.get("name")).upper())
    if irregular:
        return StatusInfo(STATUS_PRE, "", "", irregular)

    if state in ("in", "live"):
        return StatusInfo(STATUS_LIVE, period, clock, detail or "In Progress")
    if state in ("post", "final"):
        return StatusInfo(STATUS_FINAL, period, clock, period or detail or "Final")
    return StatusInfo(STATUS_PRE, period, clock, detail or "Scheduled")


# Shape discovery

def game_key(raw: Dict[str, Any], keys: Iterable[str] = GAME_ID_KEYS) -> Optional[str]:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return str(value)
    return None


def _date_prefix(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if "T" in text:
        return text.split("T", 1)[0]
    return text[:10]


def collect_scoreboard_games(payload: Any, date_iso: str = "") -> List[Dict[str, Any]]:
    """Flatten every NHL-style game container into one de-duplicated list.

    Looks at a top-level ``games`` array, date-keyed buckets under
    ``gameWeek``/``dates``/``gamesByDate``/``gamesByDay``/``gamesByDateV2``
    and a nested ``scoreboard`` object. Games or buckets for another date
    than date_iso are dropped.
    """
    if not isinstance(payload, dict):
        return []

    target_date = (date_iso or "")[:10]
    games: List[Dict[str, Any]] = []
    seen = set()

    def push_game(game: Any):
        if not isinstance(game, dict):
            return
        if target_date:
            game_date = _date_prefix(first_string(*(game.get(k) for k in
                                                    ("gameDate", "startTimeUTC", "startTime",
                                                     "gameDateTime", "startTimeLocal"))))
            if game_date and game_date != target_date:
                return
        key = game_key(game)
        if key is not None:
            if key in seen:
                return
            seen.add(key)
        games.append(game)

    def push_games(entries: Any):
        for entry in as_list(entries):
            push_game(entry)

    def process_bucket(bucket: Any, fallback_date: Optional[str] = None):
        if not bucket:
            return
        if isinstance(bucket, list):
            push_games(bucket)
            return
        if not isinstance(bucket, dict):
            return

        bucket_date = _date_prefix(fallback_date or bucket.get("date")
                                   or bucket.get("gameDate") or bucket.get("day"))
        if target_date and bucket_date and bucket_date != target_date:
            return

        if isinstance(bucket.get("games"), list):
            push_games(bucket["games"])
            return

        named_keys = ("items", "events", "matchups")
        for list_key in named_keys:
            push_games(bucket.get(list_key))

        for key, value in bucket.items():
            if key not in named_keys and isinstance(value, list):
                push_games(value)

    def process_buckets(buckets: Any):
        if isinstance(buckets, list):
            for bucket in buckets:
                process_bucket(bucket)
        elif isinstance(buckets, dict):
            for key, bucket in buckets.items():
                process_bucket(bucket, _date_prefix(key))

    push_games(payload.get("games"))
    for container in ("gameWeek", "dates", "gamesByDate", "gamesByDay", "gamesByDateV2"):
        process_buckets(payload.get(container))

    nested = payload.get("scoreboard")
    if isinstance(nested, dict) and nested is not payload:
        push_games(collect_scoreboard_games(nested, date_iso))

    return games


def collect_espn_events(payload: Any) -> List[Dict[str, Any]]:
    """Events from ESPN-style scoreboards, wherever the list lives"""
    if not isinstance(payload, dict):
        return []

    collected: List[Dict[str, Any]] = []

    def push_events(value: Any):
        for item in as_list(value):
            if item:
                collected.append(item)

    push_events(payload.get("events"))
    push_events(payload.get("games"))

    content = as_dict(payload.get("content"))
    push_events(content.get("events"))
    schedule = as_dict(content.get("schedule"))
    push_events(schedule.get("events"))
    push_events(schedule.get("items"))

    push_events(as_dict(payload.get("scoreboard")).get("events"))
    return dedupe_events(collected)


def collect_statsapi_games(payload: Any) -> List[Dict[str, Any]]:
    """Games from statsapi ``dates[].games[]`` buckets"""
    if not isinstance(payload, dict):
        return []
    games = []
    for bucket in as_list(payload.get("dates")):
        if isinstance(bucket, dict):
            games.extend(g for g in as_list(bucket.get("games")) if isinstance(g, dict))
    return games


def dedupe_events(events: Iterable[Dict[str, Any]], prefix: str = "event") -> List[Dict[str, Any]]:
    """Keep the last event per id/uid; events without either get an index key"""
    merged: Dict[str, Dict[str, Any]] = {}
    for index, event in enumerate(events):
        if not isinstance(event, dict):
            continue
        key = game_key(event, ("id", "uid")) or f"{prefix}-{index}"
        merged[key] = event
    return list(merged.values())


def without_pregame_scores(game: Game) -> Game:
    """Scheduled games carry no score, even when the feed sends "0" """
    if game.status == STATUS_PRE:
        game.home.score = None
        game.away.score = None
    return game


def score_text(value: Any) -> Optional[str]:
    """Score as a string; None when the provider gave nothing"""
    if isinstance(value, dict):
        value = value.get("displayValue", value.get("value"))
    number = as_number_or_null(value)
    if number is not None:
        return str(number)
    text = text_value(value)
    return text or None


def _shots(entry: Dict[str, Any]) -> Optional[int]:
    shots = first_number(entry, SHOT_PATHS)
    return int(shots) if shots is not None else None


def _id_text(value: Any) -> Optional[str]:
    return str(value) if value is not None and value != "" else None


def _require_mapping(payload: Any, provider_name: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ParseError(f"Unexpected payload type {type(payload).__name__}", provider=provider_name)
    return payload


class DataParser:
    """Normalizes provider payloads into canonical games"""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock

    def _source(self, provider_name: str) -> SourceInfo:
        return SourceInfo(provider_name=provider_name, fetched_at_utc=to_utc_iso(self.clock()))

    # NHL public scoreboard (api-web)

    def parse_nhl_scoreboard(self, payload: Any, date_iso: str, provider_name: str) -> List[Game]:
        payload = _require_mapping(payload, provider_name)
        source = self._source(provider_name)
        games = [self.normalize_nhl_scoreboard_game(raw, source, i)
                 for i, raw in enumerate(collect_scoreboard_games(payload, date_iso))]
        logger.debug(f"{provider_name}: parsed {len(games)} games for {date_iso}")
        return hydrate_nhl_games(games)

    def normalize_nhl_scoreboard_game(self, raw: Dict[str, Any], source: SourceInfo,
                                      index: int = 0) -> Game:
        descriptor = as_dict(raw.get("periodDescriptor"))
        clock = first_text(raw, ("clock.timeRemaining", "clock"))
        status = nhl_status(raw.get("gameState"), raw.get("gameScheduleState"), descriptor, clock)

        return without_pregame_scores(Game(
            league_key="nhl",
            game_id=game_key(raw) or f"nhl-{index}",
            start_time_utc=to_utc_iso(first_date(*(raw.get(k) for k in START_TIME_KEYS))),
            status=status.status,
            period=status.period,
            clock=status.clock,
            detail=status.detail,
            away=self.nhl_scoreboard_team(raw.get("awayTeam")),
            home=self.nhl_scoreboard_team(raw.get("homeTeam")),
            venue=text_value(raw.get("venue")),
            source=source,
        ))

    def nhl_scoreboard_team(self, team: Any) -> Team:
        if not isinstance(team, dict):
            return Team()

        abbrev = first_text(team, TEAM_ABBREV_KEYS)
        place = first_text(team, TEAM_PLACE_KEYS)
        name = first_text(team, TEAM_NAME_KEYS)
        if place and name and not name.startswith(place):
            display = f"{place} {name}"
        else:
            display = name or place or abbrev

        score = team.get("score") if team.get("score") is not None else team.get("goals")
        return Team(
            code3=abbrev,
            name=display,
            score=score_text(score),
            shots=_shots(team),
            team_id=_id_text(team.get("id")),
        )

    # NHL legacy stats API (statsapi.web.nhl.com)

    def parse_nhl_stats(self, payload: Any, provider_name: str) -> List[Game]:
        payload = _require_mapping(payload, provider_name)
        source = self._source(provider_name)
        games = [self.normalize_nhl_stats_game(raw, source, i)
                 for i, raw in enumerate(collect_statsapi_games(payload))]
        return hydrate_nhl_games(games)

    def normalize_nhl_stats_game(self, raw: Dict[str, Any], source: SourceInfo,
                                 index: int = 0) -> Game:
        linescore = as_dict(raw.get("linescore"))
        number = as_number_or_null(linescore.get("currentPeriod"))
        ordinal_raw = text_value(linescore.get("currentPeriodOrdinal"))
        period_type = _legacy_period_type(ordinal_raw, number)
        ordinal = period_ordinal(number, period_type) or ordinal_raw
        remaining = text_value(linescore.get("currentPeriodTimeRemaining"))
        status = statsapi_status(raw.get("status"), number, period_type, ordinal, remaining)

        teams = as_dict(raw.get("teams"))
        line_teams = as_dict(linescore.get("teams"))

        return without_pregame_scores(Game(
            league_key="nhl",
            game_id=game_key(raw) or f"nhl-{index}",
            start_time_utc=to_utc_iso(first_date(*(raw.get(k) for k in START_TIME_KEYS))),
            status=status.status,
            period=status.period,
            clock=status.clock,
            detail=status.detail,
            away=self.statsapi_team(teams.get("away"), line_teams.get("away")),
            home=self.statsapi_team(teams.get("home"), line_teams.get("home")),
            venue=first_text(raw, ("venue.name", "venue")),
            source=source,
        ))

    def statsapi_team(self, entry: Any, line_entry: Any = None) -> Team:
        entry = as_dict(entry)
        team = as_dict(entry.get("team"))
        abbrev = first_text(team, ("abbreviation", "teamAbbreviation", "triCode"))
        name = first_text(team, ("name", "teamName", "locationName"))

        shots = _shots(entry)
        if shots is None:
            shots = _shots(as_dict(line_entry))

        return Team(
            code3=abbrev,
            name=name,
            score=score_text(entry.get("score")),
            shots=shots,
            team_id=_id_text(team.get("id")),
        )

    # NHL stats REST (api.nhle.com/stats/rest)

    def parse_nhl_stats_rest(self, payload: Any, provider_name: str) -> List[Game]:
        payload = _require_mapping(payload, provider_name)
        source = self._source(provider_name)
        games = [self.normalize_nhl_stats_rest_game(raw, source, i)
                 for i, raw in enumerate(as_list(payload.get("data"))) if isinstance(raw, dict)]
        return hydrate_nhl_games(games)

    def normalize_nhl_stats_rest_game(self, raw: Dict[str, Any], source: SourceInfo,
                                      index: int = 0) -> Game:
        descriptor = {
            "number": as_number_or_null(raw.get("period")),
            "periodType": raw.get("periodType"),
            "periodTimeRemaining": raw.get("gameClock"),
        }
        status = nhl_status(raw.get("gameState"), raw.get("gameScheduleState"),
                            descriptor, raw.get("gameClock"))

        return without_pregame_scores(Game(
            league_key="nhl",
            game_id=game_key(raw, ("gamePk", "gameId", "id")) or f"nhl-{index}",
            start_time_utc=to_utc_iso(first_date(raw.get("startTimeUTC"), raw.get("gameDate"))),
            status=status.status,
            period=status.period,
            clock=status.clock,
            detail=status.detail,
            away=self.nhl_stats_rest_team(raw, "away"),
            home=self.nhl_stats_rest_team(raw, "home"),
            venue=first_text(raw, ("venueName", "venue")),
            source=source,
        ))

    def nhl_stats_rest_team(self, raw: Dict[str, Any], side: str) -> Team:
        prefix = "home" if side == "home" else "away"

        abbrev = first_text(raw, [f"{prefix}Team{suffix}" for suffix in
                                  ("Abbrev", "Abbreviation", "TriCode", "ShortName")])
        place = first_text(raw, [f"{prefix}Team{suffix}" for suffix in
                                 ("PlaceName", "Location", "City", "Market")])
        name = first_text(raw, [f"{prefix}Team{suffix}" for suffix in
                                ("CommonName", "Name", "NickName", "FullName")])
        display = f"{place} {name}".strip() if place and name else (name or place or abbrev)

        shots = first_number(raw, [f"{prefix}TeamShotsOnGoal", f"{prefix}TeamSOG", f"{prefix}TeamSoG",
                                   f"{prefix}TeamShots", f"{prefix}ShotsOnGoal", f"{prefix}Shots"])
        score = first_number(raw, [f"{prefix}TeamScore", f"{prefix}Score"])
        team_id = first_string(raw.get(f"{prefix}TeamId"), raw.get(f"{prefix}TeamID"))

        return Team(
            code3=abbrev,
            name=display,
            score=str(score) if score is not None else None,
            shots=int(shots) if shots is not None else None,
            team_id=team_id or None,
        )

    # MLB statsapi

    def parse_mlb_schedule(self, payload: Any, provider_name: str) -> List[Game]:
        payload = _require_mapping(payload, provider_name)
        source = self._source(provider_name)
        return [self.normalize_mlb_game(raw, source, i)
                for i, raw in enumerate(collect_statsapi_games(payload))]

    def normalize_mlb_game(self, raw: Dict[str, Any], source: SourceInfo, index: int = 0) -> Game:
        linescore = as_dict(raw.get("linescore"))
        status = mlb_status(raw.get("status"), linescore)
        teams = as_dict(raw.get("teams"))

        return without_pregame_scores(Game(
            league_key="mlb",
            game_id=game_key(raw) or f"mlb-{index}",
            start_time_utc=to_utc_iso(first_date(raw.get("gameDate"))),
            status=status.status,
            period=status.period,
            clock=status.clock,
            detail=status.detail,
            away=self.statsapi_team(teams.get("away")),
            home=self.statsapi_team(teams.get("home")),
            venue=first_text(raw, ("venue.name",)),
            source=source,
        ))

    # ESPN scoreboards (NBA, NFL, Olympic hockey, results pages)

    def parse_espn_scoreboard(self, payload: Any, league_key: str, provider_name: str) -> List[Game]:
        payload = _require_mapping(payload, provider_name)
        return self.normalize_espn_events(collect_espn_events(payload), league_key, provider_name)

    def normalize_espn_events(self, events: Iterable[Any], league_key: str,
                              provider_name: str) -> List[Game]:
        source = self._source(provider_name)
        games = []
        for index, event in enumerate(events or []):
            game = self.normalize_espn_event(event, league_key, source, index)
            if game is not None:
                games.append(game)
        return sort_games(games)

    def normalize_espn_event(self, event: Any, league_key: str, source: SourceInfo,
                             index: int = 0) -> Optional[Game]:
        event = as_dict(event)
        competitions = event.get("competitions")
        if isinstance(competitions, list) and competitions:
            competition = as_dict(competitions[0])
        else:
            competition = as_dict(event.get("competition"))

        competitors = [c for c in as_list(competition.get("competitors")) if isinstance(c, dict)]
        if len(competitors) < 2:
            return None

        home = next((c for c in competitors if c.get("homeAway") == "home"), competitors[0])
        away = next((c for c in competitors if c.get("homeAway") == "away"), competitors[1])
        status = espn_status(event.get("status") or competition.get("status"))
        venue = as_dict(competition.get("venue"))

        return without_pregame_scores(Game(
            league_key=league_key,
            game_id=first_string(event.get("id"), competition.get("id"), f"{league_key}-{index}"),
            start_time_utc=to_utc_iso(first_date(event.get("date"), event.get("startDate"),
                                                 competition.get("date"), competition.get("startDate"))),
            status=status.status,
            period=status.period,
            clock=status.clock,
            detail=status.detail,
            home=self.espn_team(home),
            away=self.espn_team(away),
            venue=first_string(venue.get("fullName"), venue.get("name")),
            source=source,
        ))

    def espn_team(self, competitor: Dict[str, Any]) -> Team:
        team = as_dict(competitor.get("team"))
        name = first_string(team.get("displayName"), team.get("shortDisplayName"),
                            team.get("name"), competitor.get("displayName"))
        code = first_string(team.get("abbreviation"), team.get("shortDisplayName"))
        return Team(
            code3=code,
            name=name,
            score=score_text(competitor.get("score")),
            shots=None,
            team_id=_id_text(team.get("id")),
        )


def _legacy_period_type(ordinal: str, number: Any) -> str:
    ordinal = (ordinal or "").upper()
    if ordinal == "SO":
        return "SO"
    if "OT" in ordinal:
        return "OT"
    if number is not None and number > 3:
        return "OT"
    return "REG"


def mlb_status(status: Any, linescore: Dict[str, Any]) -> StatusInfo:
    status = as_dict(status)
    abstract = text_value(status.get("abstractGameState")).lower()
    detailed = text_value(status.get("detailedState"))
    inning = as_number_or_null(linescore.get("currentInning"))
    ordinal = text_value(linescore.get("currentInningOrdinal"))
    half = text_value(linescore.get("inningState") or linescore.get("inningHalf"))
    period = " ".join(part for part in (half, ordinal) if part)

    if abstract == "live":
        return StatusInfo(STATUS_LIVE, period, "", period or detailed or "In Progress")
    if abstract == "final":
        scheduled = as_number_or_null(linescore.get("scheduledInnings")) or 9
        detail = "Final"
        if inning is not None and inning > scheduled:
            detail = f"Final/{int(inning)}"
        return StatusInfo(STATUS_FINAL, ordinal, "", detail)
    return StatusInfo(STATUS_PRE, "", "", detailed or "Scheduled")


def hydrate_nhl_games(games: Iterable[Optional[Game]]) -> List[Game]:
    """Drop empty entries and order by start time"""
    return sort_games(game for game in games if game is not None)


def create_parser(clock: Callable[[], datetime] = utc_now) -> DataParser:
    """Create and initialize data parser"""
    return DataParser(clock)
