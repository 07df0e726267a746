"""
League fetch orchestrator

Produces the canonical game list for one league per tick:
- Multi-provider chains (NHL, Olympic hockey) try each provider in order,
  consulting the result cache and availability gates, and fall back to the
  league's last-good snapshot when every provider comes up empty
- MLB and NBA use their single provider directly
- The NFL goes through the weekly range resolver

No provider failure escapes this module; the worst outcome is an empty list.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .availability import AvailabilityTracker
from .cache import CacheManager
from .coerce import to_utc_iso
from .dates import DEFAULT_TIMEZONE, TargetDate, resolve_target_date, utc_now
from .errors import FetchError, ProtocolError
from .models import Game, sort_games
from .nfl import NflWeekResolver
from .providers import GATE_DNS, GATE_REST, Provider

logger = logging.getLogger(__name__)

OLYMPIC_LEAGUES = ("olympic_mhockey", "olympic_whockey")
LAST_GOOD_PROVIDER = "last_good_cache"


@dataclass
class LeagueResult:
    """Outcome of one league fetch, ready to be pushed downstream"""
    league: str
    games: List[Game] = field(default_factory=list)
    provider_used: str = ""
    fetched_at_utc: str = ""
    date_iso: str = ""
    degraded: bool = False
    extras: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            'league': self.league,
            'games': [game.to_dict() for game in self.games],
        }
        if self.degraded:
            payload['degraded'] = True
            payload['providerUsed'] = self.provider_used
        payload.update(self.extras)
        return payload


def olympic_diagnostics(result: LeagueResult) -> Dict[str, Any]:
    return {
        'providerUsed': result.provider_used or "none",
        'fetchedAtUTC': result.fetched_at_utc,
        'gameCount': len(result.games),
        'dateIso': result.date_iso,
    }


def empty_result(league: str, fetched_at_utc: str = "") -> LeagueResult:
    """Empty result that still carries the extras downstream expects for the league"""
    result = LeagueResult(league=league, fetched_at_utc=fetched_at_utc)
    if league == "nfl":
        result.extras['teamsOnBye'] = []
    elif league in OLYMPIC_LEAGUES:
        result.extras['olympicDiagnostics'] = olympic_diagnostics(result)
    return result


class LeagueFetchOrchestrator:
    """Coordinates provider chains, caches and fallbacks per league"""

    def __init__(self, chains: Dict[str, List[Provider]], cache: CacheManager,
                 availability: AvailabilityTracker, nfl_resolver: Optional[NflWeekResolver] = None,
                 timezone: str = DEFAULT_TIMEZONE, clock: Callable[[], datetime] = utc_now):
        self.chains = chains
        self.cache = cache
        self.availability = availability
        self.nfl_resolver = nfl_resolver
        self.timezone = timezone
        self.clock = clock

    async def fetch_league(self, league: str) -> LeagueResult:
        """Fetch one league; never raises"""
        try:
            self.cache.cleanup_if_needed()
            if league == "nfl":
                return await self._fetch_nfl()

            target = resolve_target_date(self.timezone, self.clock())
            chain = self.chains.get(league) or []
            if not chain:
                logger.warning(f"No providers configured for league {league}")
                return self._result(league, [], "", target)

            if len(chain) == 1:
                result = await self._fetch_single(league, chain[0], target)
            else:
                result = await self.run_chain(league, chain, target)

            if league in OLYMPIC_LEAGUES:
                result.extras['olympicDiagnostics'] = olympic_diagnostics(result)
            return result

        except Exception as e:
            logger.error(f"Unexpected error fetching {league}: {e}", exc_info=True)
            return empty_result(league, to_utc_iso(self.clock()))

    async def run_chain(self, league: str, chain: List[Provider], target: TargetDate) -> LeagueResult:
        """Try providers in priority order; first non-empty result wins"""
        results_cache = self.cache.results

        for provider in chain:
            cached = results_cache.get(provider.name, league, target.date_iso)
            if cached:
                logger.debug(f"{league}: using cached {provider.name} result for {target.date_iso}")
                return self._result(league, cached, f"{provider.name} (cache)", target)

            if not await self._gate_open(provider):
                logger.info(f"{league}: skipping {provider.name}, {provider.gate_host} unavailable")
                continue

            games = await self._call_provider(league, provider, target)
            if games is None:
                continue

            if games:
                games = sort_games(games)
                results_cache.set(provider.name, league, target.date_iso, games)
                self.cache.last_good.update(league, games)
                return self._result(league, games, provider.name, target)

            logger.info(f"{league}: {provider.name} returned no games for {target.date_iso}")

        snapshot = self.cache.last_good.get(league)
        if snapshot:
            logger.warning(f"{league}: all providers empty for {target.date_iso}; "
                           f"serving last good snapshot ({len(snapshot)} games)")
            return self._result(league, snapshot, LAST_GOOD_PROVIDER, target, degraded=True)

        logger.info(f"{league}: no games from any provider for {target.date_iso}")
        return self._result(league, [], "", target)

    async def _fetch_single(self, league: str, provider: Provider, target: TargetDate) -> LeagueResult:
        games = await self._call_provider(league, provider, target) or []
        if league == "nba":
            games = sort_games(games)
        return self._result(league, games, provider.name if games else "", target)

    async def _fetch_nfl(self) -> LeagueResult:
        fetched_at = to_utc_iso(self.clock())
        if self.nfl_resolver is None:
            logger.warning("NFL requested but no week resolver configured")
            return empty_result("nfl", fetched_at)

        week = await self.nfl_resolver.resolve()
        date_iso = week.week_range.start.isoformat() if week.week_range else ""
        return LeagueResult(
            league="nfl",
            games=week.games,
            provider_used="espn_nfl" if week.games else "",
            fetched_at_utc=fetched_at,
            date_iso=date_iso,
            extras={'teamsOnBye': week.teams_on_bye},
        )

    async def _gate_open(self, provider: Provider) -> bool:
        if not provider.gate_host:
            return True
        if provider.gate_kind == GATE_DNS:
            return await self.availability.is_available(provider.gate_host)
        if provider.gate_kind == GATE_REST:
            return self.availability.rest_available(provider.gate_host)
        return True

    async def _call_provider(self, league: str, provider: Provider,
                             target: TargetDate) -> Optional[List[Game]]:
        """Provider games, or None when the call failed"""
        try:
            return await provider.fetch(target)
        except FetchError as e:
            if (provider.gate_kind == GATE_REST and isinstance(e, ProtocolError)
                    and e.status == 404):
                self.availability.mark_rest_unavailable(provider.gate_host)
            logger.warning(f"{league}: provider {provider.name} failed for {target.date_iso}: "
                           f"{e.__class__.__name__}: {e}")
        except Exception as e:
            logger.error(f"{league}: provider {provider.name} raised unexpectedly for "
                         f"{target.date_iso}: {e}", exc_info=True)
        return None

    def _result(self, league: str, games: List[Game], provider_used: str,
                target: TargetDate, degraded: bool = False) -> LeagueResult:
        return LeagueResult(
            league=league,
            games=list(games),
            provider_used=provider_used,
            fetched_at_utc=to_utc_iso(self.clock()),
            date_iso=target.date_iso,
            degraded=degraded,
        )
