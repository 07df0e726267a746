#!/usr/bin/env python3
"""
Tests for upstream providers and provider chains
"""

import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from scorefeed.dates import TargetDate
from scorefeed.errors import NetworkError, ProtocolError
from scorefeed.parser import DataParser
from scorefeed.providers import (GATE_DNS, GATE_REST, NHL_SCOREBOARD_URLS, NHL_STATS_REST_URL,
                                 EspnScoreboardProvider, MlbStatsProvider, NhlScoreboardProvider,
                                 NhlStatsRestProvider, OlympicResultsPageProvider,
                                 PlaceholderProvider, build_provider_chains)
from scorefeed.results_page import RESULTS_PAGE_URLS

TARGET = TargetDate(date_iso="2024-01-10", date_compact="20240110")


class FakeClient:
    """Answers requests from canned responses; exceptions are raised"""

    def __init__(self, responses=None, texts=None):
        self.responses = responses or {}
        self.texts = texts or {}
        self.requests = []

    async def get_json(self, url, headers=None):
        self.requests.append((url, headers))
        value = self.responses.get(url, {})
        if isinstance(value, Exception):
            raise value
        return value

    async def get_text(self, url, headers=None):
        self.requests.append((url, headers))
        value = self.texts.get(url, "")
        if isinstance(value, Exception):
            raise value
        return value


def parser():
    return DataParser(lambda: datetime(2024, 1, 10, 20, 0, tzinfo=timezone.utc))


def scoreboard_game(game_id, game_date="2024-01-10"):
    return {
        "id": game_id,
        "gameDate": game_date,
        "startTimeUTC": f"{game_date}T23:00:00Z",
        "gameState": "FUT",
        "awayTeam": {"abbrev": "TOR"},
        "homeTeam": {"abbrev": "MTL"},
    }


def test_scoreboard_falls_through_to_now_url():
    dated, now = (url.format(date=TARGET.date_iso) for url in NHL_SCOREBOARD_URLS)
    client = FakeClient({
        dated: {"games": []},
        now: {"gameWeek": [{"date": "2024-01-10", "games": [scoreboard_game(7)]}]},
    })

    games = asyncio.run(NhlScoreboardProvider(client, parser(), "nhl").fetch(TARGET))

    assert [g.game_id for g in games] == ["7"]
    assert games[0].source.provider_name == "nhl_scoreboard"
    assert [url for url, _ in client.requests] == [dated, now]
    headers = client.requests[0][1]
    assert headers['x-nhl-stats-origin'] == "https://www.nhl.com"
    assert headers['Referer'] == "https://www.nhl.com/"


def test_scoreboard_stops_at_first_url_with_games():
    dated = NHL_SCOREBOARD_URLS[0].format(date=TARGET.date_iso)
    client = FakeClient({dated: {"games": [scoreboard_game(1)]}})

    games = asyncio.run(NhlScoreboardProvider(client, parser(), "nhl").fetch(TARGET))
    assert len(games) == 1
    assert len(client.requests) == 1


def test_scoreboard_error_on_first_url_is_absorbed_but_last_raises():
    dated, now = (url.format(date=TARGET.date_iso) for url in NHL_SCOREBOARD_URLS)

    client = FakeClient({dated: NetworkError("reset"), now: {"games": [scoreboard_game(3)]}})
    games = asyncio.run(NhlScoreboardProvider(client, parser(), "nhl").fetch(TARGET))
    assert [g.game_id for g in games] == ["3"]

    client = FakeClient({dated: {"games": []}, now: ProtocolError("HTTP 503", status=503)})
    try:
        asyncio.run(NhlScoreboardProvider(client, parser(), "nhl").fetch(TARGET))
    except ProtocolError as e:
        assert e.status == 503
    else:
        raise AssertionError("last URL failure should propagate")


def test_stats_rest_provider_url_and_gate():
    url = NHL_STATS_REST_URL.format(date=TARGET.date_iso)
    assert url.endswith("cayenneExp=gameDate=%222024-01-10%22")

    provider = NhlStatsRestProvider(FakeClient({url: {"data": []}}), parser(), "nhl")
    assert provider.gate_kind == GATE_REST
    assert provider.gate_host == "api.nhle.com"
    assert asyncio.run(provider.fetch(TARGET)) == []


def test_mlb_and_espn_urls():
    client = FakeClient()
    asyncio.run(MlbStatsProvider(client, parser(), "mlb").fetch(TARGET))
    asyncio.run(EspnScoreboardProvider(client, parser(), "nba", "espn_nba", "basketball", "nba").fetch(TARGET))

    assert [url for url, _ in client.requests] == [
        "https://statsapi.mlb.com/api/v1/schedule/games?sportId=1&date=2024-01-10&hydrate=linescore",
        "https://site.api.espn.com/apis/site/v2/sports/basketball/nba/scoreboard?dates=20240110",
    ]


def test_placeholder_is_always_empty():
    client = FakeClient()
    provider = PlaceholderProvider(client, parser(), "olympic_mhockey", "iihf")
    assert asyncio.run(provider.fetch(TARGET)) == []
    assert provider.name == "iihf"
    assert client.requests == []


def test_results_page_provider_tries_each_url():
    state = {
        "header": "Ice Hockey - Women's",
        "events": [{
            "id": "w9",
            "date": "2024-01-10T18:00Z",
            "status": "Final",
            "competitors": [{"team": {"displayName": "Canada", "abbreviation": "CAN"}, "score": 3},
                            {"team": {"displayName": "Japan", "abbreviation": "JPN"}, "score": 0}],
        }],
    }
    html = f'<script id="__NEXT_DATA__">{json.dumps(state)}</script>'
    client = FakeClient(texts={RESULTS_PAGE_URLS[0]: NetworkError("timeout"), RESULTS_PAGE_URLS[1]: html})

    games = asyncio.run(OlympicResultsPageProvider(client, parser(), "olympic_whockey").fetch(TARGET))

    assert [g.game_id for g in games] == ["w9"]
    assert games[0].status == "final"
    assert games[0].home.score == "3"
    assert games[0].away.score == "0"
    assert games[0].source.provider_name == "espn_results_page"
    assert client.requests[1][1]['Accept'].startswith("text/html")


def test_results_page_provider_raises_only_when_every_url_failed():
    client = FakeClient(texts={url: NetworkError("down") for url in RESULTS_PAGE_URLS})
    try:
        asyncio.run(OlympicResultsPageProvider(client, parser(), "olympic_mhockey").fetch(TARGET))
    except NetworkError:
        pass
    else:
        raise AssertionError("NetworkError not raised")

    client = FakeClient(texts={url: "<html></html>" for url in RESULTS_PAGE_URLS})
    assert asyncio.run(OlympicResultsPageProvider(client, parser(), "olympic_mhockey").fetch(TARGET)) == []


def test_chain_layout():
    chains = build_provider_chains(FakeClient(), parser())

    assert [p.name for p in chains["nhl"]] == ["nhl_statsapi", "nhl_scoreboard", "nhl_stats_rest"]
    assert chains["nhl"][0].gate_kind == GATE_DNS
    assert chains["nhl"][0].gate_host == "statsapi.web.nhl.com"
    assert [p.name for p in chains["olympic_mhockey"]] == [
        "espn_mens_olympics", "olympics_com", "iihf", "thesportsdb", "wikipedia", "espn_results_page",
    ]
    assert chains["olympic_whockey"][0].name == "espn_womens_olympics"
    assert all(p.league_key == "olympic_whockey" for p in chains["olympic_whockey"])
    assert len(chains["mlb"]) == 1
    assert len(chains["nba"]) == 1
    assert "nfl" not in chains
