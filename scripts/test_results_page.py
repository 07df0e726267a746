#!/usr/bin/env python3
"""
Tests for Olympic results-page scraping
"""

import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from scorefeed.results_page import (detect_division, extract_events, extract_payloads,
                                    walk_candidates)

PAGE_STATE = {
    "props": {
        "pageProps": {
            "sections": [
                {
                    "header": "Ice Hockey - Men's Tournament",
                    "events": [{
                        "id": "m1",
                        "date": "2026-02-14T20:00Z",
                        "status": "Final",
                        "competitors": [
                            {"homeAway": "home", "score": "4",
                             "team": {"displayName": "Canada", "abbreviation": "CAN"}},
                            {"score": "2", "team": {"displayName": "Sweden"}},
                        ],
                    }, {
                        "id": "m2",
                        "date": "2026-02-15T20:00Z",
                        "status": "Scheduled",
                        "competitors": [
                            {"team": {"displayName": "Finland", "abbreviation": "FIN"}},
                            {"team": {"displayName": "Czechia", "abbreviation": "CZE"}},
                        ],
                    }],
                },
                {
                    "header": {"text": "Ice Hockey - Women's Tournament"},
                    "events": [{
                        "id": "w1",
                        "date": "2026-02-14T15:00Z",
                        "status": "Scheduled",
                        "competitors": [
                            {"team": {"displayName": "United States", "abbreviation": "USA"}},
                            {"team": {"displayName": "Finland", "abbreviation": "FIN"}},
                        ],
                    }],
                },
                {
                    "header": "Curling - Men's Round Robin",
                    "events": [{
                        "id": "c1",
                        "date": "2026-02-14T09:00Z",
                        "status": "Final",
                        "competitors": [
                            {"team": {"displayName": "Norway"}},
                            {"team": {"displayName": "Italy"}},
                        ],
                    }],
                },
            ]
        }
    }
}


def next_data_page(state=PAGE_STATE):
    return (
        "<html><head><title>Results</title></head><body>"
        f"<script id=\"__NEXT_DATA__\" type=\"application/json\">{json.dumps(state)}</script>"
        "</body></html>"
    )


def test_division_detection_checks_women_first():
    assert detect_division("Women's Ice Hockey") == "women"
    assert detect_division("womens-olympics") == "women"
    assert detect_division("Men's Ice Hockey") == "men"
    assert detect_division("Ice Hockey Final") is None


def test_extracts_next_data_payload():
    payloads = extract_payloads(next_data_page())
    assert payloads == [PAGE_STATE]


def test_extracts_window_assignments():
    html = (
        "<html><body>"
        f"<script>window['__espnfitt__']={json.dumps({'page': {'a': 1}})};</script>"
        f"<script>window.__INITIAL_STATE__ = {json.dumps({'b': 2})};\nwindow.other = 1;</script>"
        "<script>window.__INITIAL_STATE__ = {not json};</script>"
        "</body></html>"
    )
    assert extract_payloads(html) == [{"page": {"a": 1}}, {"b": 2}]


def test_page_without_state_yields_nothing():
    assert extract_payloads("<html><body><p>No scripts here</p></body></html>") == []
    assert extract_events("", "olympic_mhockey", "2026-02-14") == []


def test_candidates_carry_section_context():
    found = walk_candidates(PAGE_STATE)
    contexts = {node["id"]: context for node, context in found}

    assert set(contexts) == {"m1", "m2", "w1", "c1"}
    assert contexts["m1"] == {"sport": "ice_hockey", "division": "men"}
    assert contexts["w1"] == {"sport": "ice_hockey", "division": "women"}
    assert contexts["c1"]["sport"] is None


def test_extract_events_matches_league_and_date():
    html = next_data_page()

    men = extract_events(html, "olympic_mhockey", "2026-02-14")
    assert [e["id"] for e in men] == ["m1"]
    home, away = men[0]["competitions"][0]["competitors"]
    assert home["homeAway"] == "home"
    assert away["homeAway"] == "away"
    assert away["team"]["abbreviation"] == "SWE"
    assert men[0]["status"]["type"]["state"] == "post"

    women = extract_events(html, "olympic_whockey", "2026-02-14")
    assert [e["id"] for e in women] == ["w1"]

    assert [e["id"] for e in extract_events(html, "olympic_mhockey", "")] == ["m1", "m2"]
    assert extract_events(html, "nhl", "2026-02-14") == []


def test_extract_events_dedupes_across_payloads():
    html = next_data_page() + (
        f"<script>window.__INITIAL_STATE__ = {json.dumps(PAGE_STATE)};</script>"
    )
    men = extract_events(html, "olympic_mhockey", "2026-02-14")
    assert [e["id"] for e in men] == ["m1"]


def test_events_without_ids_get_a_synthetic_key():
    state = {
        "header": "Ice Hockey Women's",
        "games": [
            {"shortName": "USA v CAN", "date": "2026-02-19T19:10Z", "status": "Live",
             "competitors": [{"team": {"name": "USA"}}, {"team": {"name": "Canada"}}]},
        ],
    }
    events = extract_events(next_data_page(state), "olympic_whockey", "2026-02-19")
    assert len(events) == 1
    assert events[0]["id"] == "USA v CAN-2026-02-19T19:10Z"
    assert events[0]["status"]["type"]["state"] == "in"
