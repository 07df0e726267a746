"""
Olympic results-page scraping

Handles:
- Pulling embedded JSON state blobs out of a results page
  (``__NEXT_DATA__`` script tag, ``window['__espnfitt__']`` and
  ``window.__INITIAL_STATE__`` assignments)
- Walking those blobs for competition-shaped objects while carrying the
  sport/division context announced by section labels
- Turning matching competitions into ESPN-shaped events for the parser
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from .coerce import as_dict, as_list, first_string, text_value
from .parser import dedupe_events

logger = logging.getLogger(__name__)

RESULTS_PAGE_URLS = (
    "https://www.espn.com/olympics/winter/2026/results",
    "https://www.espn.com/olympics/winter/_/year/2026/results",
)

MAX_WALK_DEPTH = 14

SPORT_ICE_HOCKEY = "ice_hockey"
DIVISION_WOMEN = "women"
DIVISION_MEN = "men"

LEAGUE_DIVISIONS = {
    "olympic_mhockey": DIVISION_MEN,
    "olympic_whockey": DIVISION_WOMEN,
}

# "women" contains "men", so the women pattern is always tried first
WOMEN_PATTERN = re.compile(r"women\b|women's|womens", re.IGNORECASE)
MEN_PATTERN = re.compile(r"men\b|men's|mens", re.IGNORECASE)

LABEL_KEYS = ("header", "title", "name", "shortName", "displayName", "description", "text", "label")
NESTED_LABEL_KEYS = ("text", "label", "displayName", "name", "shortText")

ESPNFITT_PATTERN = re.compile(r"window\[['\"]__espnfitt__['\"]\]\s*=\s*(.*?);?\s*$", re.DOTALL)
INITIAL_STATE_PATTERN = re.compile(r"window\.__INITIAL_STATE__\s*=\s*(.*?);\s*(?:window\.|$)", re.DOTALL)


def extract_payloads(html: str) -> List[Any]:
    """Decode every embedded JSON state blob found in the page"""
    soup = BeautifulSoup(html or "", "html.parser")
    payloads = []

    next_data = soup.find("script", id="__NEXT_DATA__")
    if next_data is not None:
        _append_json(payloads, next_data.string or next_data.get_text(), "__NEXT_DATA__")

    for script in soup.find_all("script"):
        text = script.string or script.get_text() or ""
        for pattern, marker in ((ESPNFITT_PATTERN, "__espnfitt__"),
                                (INITIAL_STATE_PATTERN, "__INITIAL_STATE__")):
            match = pattern.search(text)
            if match:
                _append_json(payloads, match.group(1), marker)

    return payloads


def _append_json(payloads: List[Any], raw: str, marker: str):
    raw = (raw or "").strip()
    if not raw:
        return
    try:
        payloads.append(json.loads(raw))
    except ValueError as e:
        logger.debug(f"Could not decode {marker} payload: {e}")


def node_label(node: Dict[str, Any]) -> str:
    for key in LABEL_KEYS:
        value = node.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, dict):
            for nested in NESTED_LABEL_KEYS:
                text = text_value(value.get(nested))
                if text:
                    return text
    return ""


def detect_sport(text: str) -> Optional[str]:
    if "ice hockey" in (text or "").lower():
        return SPORT_ICE_HOCKEY
    return None


def detect_division(text: str) -> Optional[str]:
    if WOMEN_PATTERN.search(text or ""):
        return DIVISION_WOMEN
    if MEN_PATTERN.search(text or ""):
        return DIVISION_MEN
    return None


def _competitors(node: Dict[str, Any]) -> List[Any]:
    competitors = node.get("competitors")
    if not isinstance(competitors, list):
        competitors = as_dict(node.get("competition")).get("competitors")
    return as_list(competitors)


def looks_like_competition(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    if len(_competitors(node)) < 2:
        return False
    return any(key in node for key in ("date", "startDate", "status", "competition"))


def walk_candidates(payload: Any) -> List[Tuple[Dict[str, Any], Dict[str, Optional[str]]]]:
    """Competition-shaped nodes paired with the sport/division in scope"""
    found = []
    seen = set()

    def walk(node: Any, context: Dict[str, Optional[str]], depth: int):
        if depth > MAX_WALK_DEPTH or not isinstance(node, (dict, list)):
            return
        if id(node) in seen:
            return
        seen.add(id(node))

        if isinstance(node, list):
            for item in node:
                walk(item, context, depth + 1)
            return

        label = node_label(node)
        if label:
            context = {
                'sport': detect_sport(label) or context.get('sport'),
                'division': detect_division(label) or context.get('division'),
            }

        if looks_like_competition(node):
            found.append((node, context))
            return

        for value in node.values():
            walk(value, context, depth + 1)

    walk(payload, {'sport': None, 'division': None}, 0)
    return found


def matches_league(node: Dict[str, Any], context: Dict[str, Optional[str]], league_key: str) -> bool:
    wanted = LEAGUE_DIVISIONS.get(league_key)
    if wanted is None:
        return False

    sport = context.get('sport')
    division = context.get('division')
    if sport is None or division is None:
        dumped = json.dumps(node, default=str)
        sport = sport or detect_sport(dumped)
        division = division or detect_division(dumped)

    return sport == SPORT_ICE_HOCKEY and division == wanted


def _status_object(status: Any) -> Dict[str, Any]:
    if isinstance(status, dict):
        return status

    text = text_value(status)
    lowered = text.lower()
    if "final" in lowered or lowered == "post":
        state = "post"
    elif "live" in lowered or "progress" in lowered or lowered == "in":
        state = "in"
    else:
        state = "pre"
    return {'type': {'state': state, 'description': text, 'shortDetail': text}}


def to_espn_event(node: Dict[str, Any]) -> Dict[str, Any]:
    """Reshape a scraped competition into the ESPN scoreboard event layout"""
    competitors = []
    for position, entry in enumerate(_competitors(node)):
        entry = as_dict(entry)
        team = as_dict(entry.get("team") or entry.get("athlete") or entry.get("participant"))
        name = first_string(text_value(team.get("displayName")), text_value(team.get("name")),
                            text_value(entry.get("displayName")), text_value(entry.get("name")))
        abbreviation = first_string(team.get("abbreviation"), entry.get("abbreviation")) or name[:3].upper()
        competitors.append({
            'homeAway': entry.get("homeAway") or ("home" if position == 0 else "away"),
            'score': entry.get("score"),
            'team': {
                'id': team.get("id"),
                'abbreviation': abbreviation,
                'displayName': name,
            },
        })

    competition = as_dict(node.get("competition"))
    return {
        'id': first_string(node.get("id"), node.get("uid"), competition.get("id")) or None,
        'uid': node.get("uid"),
        'shortName': node.get("shortName"),
        'date': first_string(node.get("date"), node.get("startDate"), competition.get("date")),
        'status': _status_object(node.get("status") or competition.get("status")),
        'competitions': [{
            'competitors': competitors,
            'venue': node.get("venue") or competition.get("venue"),
        }],
    }


def extract_events(html: str, league_key: str, date_iso: str = "") -> List[Dict[str, Any]]:
    """ESPN-shaped events for one Olympic hockey league from a results page"""
    events = []
    for payload in extract_payloads(html):
        for node, context in walk_candidates(payload):
            if not matches_league(node, context, league_key):
                continue
            event = to_espn_event(node)
            event_date = (event.get('date') or "")[:10]
            if date_iso and event_date and event_date != date_iso:
                continue
            events.append(event)

    keyed = []
    for index, event in enumerate(events):
        if not event.get('id') and not event.get('uid'):
            event['id'] = f"{event.get('shortName') or 'evt'}-{event.get('date') or index}"
        keyed.append(event)

    return dedupe_events(keyed)
