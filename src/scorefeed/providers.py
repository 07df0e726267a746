"""
Upstream providers for every supported league

Each provider fetches one upstream source for a target date and hands the
payload to the DataParser. Providers that depend on a fragile host name it
through ``gate_host``/``gate_kind`` so the orchestrator can consult the
availability tracker before calling them.
"""

import logging
from typing import Dict, List, Optional

from .client import BROWSER_HTML_HEADERS, NHL_STATS_ORIGIN_HEADERS, nhl_request_headers
from .dates import TargetDate
from .errors import FetchError
from .models import Game
from .parser import DataParser
from .results_page import RESULTS_PAGE_URLS, extract_events

logger = logging.getLogger(__name__)

GATE_DNS = "dns"
GATE_REST = "rest"

NHL_STATSAPI_HOST = "statsapi.web.nhl.com"
NHL_STATSAPI_URL = ("https://statsapi.web.nhl.com/api/v1/schedule?date={date}"
                    "&expand=schedule.linescore,schedule.teams")
NHL_SCOREBOARD_URLS = (
    "https://api-web.nhle.com/v1/scoreboard/{date}?site=en_nhl",
    "https://api-web.nhle.com/v1/scoreboard/now?site=en_nhl",
)
NHL_STATS_REST_HOST = "api.nhle.com"
NHL_STATS_REST_URL = "https://api.nhle.com/stats/rest/en/schedule?cayenneExp=gameDate=%22{date}%22"

MLB_SCHEDULE_URL = "https://statsapi.mlb.com/api/v1/schedule/games?sportId=1&date={date}&hydrate=linescore"

ESPN_SCOREBOARD_URL = "https://site.api.espn.com/apis/site/v2/sports/{sport}/{league}/scoreboard"


def espn_scoreboard_url(sport: str, league: str, date_compact: Optional[str] = None) -> str:
    url = ESPN_SCOREBOARD_URL.format(sport=sport, league=league)
    if date_compact:
        url = f"{url}?dates={date_compact}"
    return url


class Provider:
    """Base class for one upstream source of games"""

    name = "provider"
    gate_host: Optional[str] = None
    gate_kind: Optional[str] = None

    def __init__(self, client, parser: DataParser, league_key: str):
        self.client = client
        self.parser = parser
        self.league_key = league_key

    async def fetch(self, target: TargetDate) -> List[Game]:
        raise NotImplementedError

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r}, league={self.league_key!r})"


class NhlStatsApiProvider(Provider):
    """Legacy NHL stats API; its host has been retired, so it is DNS-gated"""

    name = "nhl_statsapi"
    gate_host = NHL_STATSAPI_HOST
    gate_kind = GATE_DNS

    async def fetch(self, target: TargetDate) -> List[Game]:
        url = NHL_STATSAPI_URL.format(date=target.date_iso)
        payload = await self.client.get_json(url, headers=nhl_request_headers())
        return self.parser.parse_nhl_stats(payload, self.name)


class NhlScoreboardProvider(Provider):
    """Public NHL scoreboard: date-scoped URL, then the "now" URL"""

    name = "nhl_scoreboard"

    async def fetch(self, target: TargetDate) -> List[Game]:
        headers = nhl_request_headers(NHL_STATS_ORIGIN_HEADERS)
        games: List[Game] = []
        last_index = len(NHL_SCOREBOARD_URLS) - 1

        for index, template in enumerate(NHL_SCOREBOARD_URLS):
            url = template.format(date=target.date_iso)
            try:
                payload = await self.client.get_json(url, headers=headers)
            except FetchError as e:
                if index == last_index:
                    raise
                logger.debug(f"{self.name}: {url} failed ({e}), trying next URL")
                continue

            games = self.parser.parse_nhl_scoreboard(payload, target.date_iso, self.name)
            if games:
                return games

        return games


class NhlStatsRestProvider(Provider):
    """NHL stats REST schedule; a 404 takes it out of rotation for a day"""

    name = "nhl_stats_rest"
    gate_host = NHL_STATS_REST_HOST
    gate_kind = GATE_REST

    async def fetch(self, target: TargetDate) -> List[Game]:
        url = NHL_STATS_REST_URL.format(date=target.date_iso)
        payload = await self.client.get_json(url, headers=nhl_request_headers(NHL_STATS_ORIGIN_HEADERS))
        return self.parser.parse_nhl_stats_rest(payload, self.name)


class MlbStatsProvider(Provider):
    name = "mlb_statsapi"

    async def fetch(self, target: TargetDate) -> List[Game]:
        url = MLB_SCHEDULE_URL.format(date=target.date_iso)
        payload = await self.client.get_json(url)
        return self.parser.parse_mlb_schedule(payload, self.name)


class EspnScoreboardProvider(Provider):
    """ESPN site API scoreboard for one sport/league path"""

    def __init__(self, client, parser: DataParser, league_key: str,
                 name: str, sport: str, espn_league: str):
        super().__init__(client, parser, league_key)
        self.name = name
        self.sport = sport
        self.espn_league = espn_league

    async def fetch(self, target: TargetDate) -> List[Game]:
        url = espn_scoreboard_url(self.sport, self.espn_league, target.date_compact)
        payload = await self.client.get_json(url)
        return self.parser.parse_espn_scoreboard(payload, self.league_key, self.name)


class PlaceholderProvider(Provider):
    """A source with no usable feed; always yields no games"""

    def __init__(self, client, parser: DataParser, league_key: str, name: str):
        super().__init__(client, parser, league_key)
        self.name = name

    async def fetch(self, target: TargetDate) -> List[Game]:
        return []


class OlympicResultsPageProvider(Provider):
    """Scrapes embedded JSON from the Olympic results pages"""

    name = "espn_results_page"

    def __init__(self, client, parser: DataParser, league_key: str, urls=RESULTS_PAGE_URLS):
        super().__init__(client, parser, league_key)
        self.urls = tuple(urls)

    async def fetch(self, target: TargetDate) -> List[Game]:
        last_error: Optional[FetchError] = None

        for url in self.urls:
            try:
                html = await self.client.get_text(url, headers=BROWSER_HTML_HEADERS)
            except FetchError as e:
                logger.debug(f"{self.name}: {url} failed ({e})")
                last_error = e
                continue

            events = extract_events(html, self.league_key, target.date_iso)
            if events:
                return self.parser.normalize_espn_events(events, self.league_key, self.name)

        if last_error is not None:
            raise last_error
        return []


OLYMPIC_ESPN_LEAGUES = {
    "olympic_mhockey": ("espn_mens_olympics", "mens-olympics"),
    "olympic_whockey": ("espn_womens_olympics", "womens-olympics"),
}

OLYMPIC_PLACEHOLDERS = ("olympics_com", "iihf", "thesportsdb", "wikipedia")


def build_provider_chains(client, parser: DataParser) -> Dict[str, List[Provider]]:
    """Ordered provider chains for every league that goes through the orchestrator"""
    chains: Dict[str, List[Provider]] = {
        "nhl": [
            NhlStatsApiProvider(client, parser, "nhl"),
            NhlScoreboardProvider(client, parser, "nhl"),
            NhlStatsRestProvider(client, parser, "nhl"),
        ],
        "mlb": [MlbStatsProvider(client, parser, "mlb")],
        "nba": [EspnScoreboardProvider(client, parser, "nba", "espn_nba", "basketball", "nba")],
    }

    for league_key, (espn_name, espn_league) in OLYMPIC_ESPN_LEAGUES.items():
        chain: List[Provider] = [
            EspnScoreboardProvider(client, parser, league_key, espn_name, "hockey", espn_league)
        ]
        chain.extend(PlaceholderProvider(client, parser, league_key, name)
                     for name in OLYMPIC_PLACEHOLDERS)
        chain.append(OlympicResultsPageProvider(client, parser, league_key))
        chains[league_key] = chain

    return chains
