"""
Acquisition loop for scorefeed

Handles:
- Firing a tick immediately and then every polling interval
- Fetching each configured league sequentially within a tick
- Isolating per-league failures into an empty notification for that league
- Skipping a tick while the previous one is still in flight
- Pushing one payload per league to registered callbacks
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .config import FeedConfig
from .coerce import to_utc_iso
from .dates import utc_now
from .orchestrator import LeagueFetchOrchestrator, LeagueResult, empty_result

logger = logging.getLogger(__name__)


class AcquisitionLoop:
    """Timer-driven fetch of every configured league"""

    def __init__(self, config: FeedConfig, orchestrator: LeagueFetchOrchestrator,
                 leagues: List[str], clock: Callable[[], float] = time.time):
        self.config = config
        self.orchestrator = orchestrator
        self.leagues = list(leagues)
        self.interval = config.polling.update_interval_seconds
        self.clock = clock

        # Polling control
        self.polling_active = False
        self.poll_task: Optional[asyncio.Task] = None
        self.tick_task: Optional[asyncio.Task] = None
        self._tick_in_flight = False

        # Data callbacks
        self.data_callbacks: List[Callable] = []
        self.latest_results: Dict[str, LeagueResult] = {}

        # Stats
        self.tick_count = 0
        self.skipped_ticks = 0
        self.league_failures = 0
        self.last_tick_started = 0.0
        self.last_tick_duration = 0.0

    async def start_polling(self):
        """Start the timer loop"""
        if self.polling_active:
            logger.warning("Polling already active")
            return

        self.polling_active = True
        self.poll_task = asyncio.create_task(self._poll_loop())
        logger.info(f"Started polling {', '.join(self.leagues)} every {self.interval}s")

    async def stop_polling(self):
        """Stop the timer and wait for the current tick"""
        if not self.polling_active:
            return

        self.polling_active = False

        tasks = [task for task in (self.poll_task, self.tick_task) if task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self.poll_task = None
        self.tick_task = None
        logger.info("Stopped polling")

    async def _poll_loop(self):
        while self.polling_active:
            try:
                if self.tick_task is None or self.tick_task.done():
                    self.tick_task = asyncio.create_task(self.run_tick())
                else:
                    self.skipped_ticks += 1
                    logger.warning("Previous tick still running; skipping this one")

                await asyncio.sleep(self.interval)

            except asyncio.CancelledError:
                logger.info("Polling loop cancelled")
                break

    async def run_tick(self) -> Optional[Dict[str, LeagueResult]]:
        """Fetch every league once; returns None when a tick is already running"""
        if self._tick_in_flight:
            self.skipped_ticks += 1
            logger.warning("Tick already in flight; not starting another")
            return None

        self._tick_in_flight = True
        self.last_tick_started = self.clock()
        results: Dict[str, LeagueResult] = {}

        try:
            for league in self.leagues:
                result = await self._fetch_league(league)
                results[league] = result
                self.latest_results[league] = result
                await self._notify_data_callbacks(league, result.to_payload())
        finally:
            self._tick_in_flight = False
            self.tick_count += 1
            self.last_tick_duration = self.clock() - self.last_tick_started

        logger.debug(f"Tick {self.tick_count} finished in {self.last_tick_duration:.2f}s")
        return results

    async def _fetch_league(self, league: str) -> LeagueResult:
        try:
            return await self.orchestrator.fetch_league(league)
        except Exception as e:
            self.league_failures += 1
            logger.error(f"Error fetching {league}: {e}", exc_info=True)
            return empty_result(league, to_utc_iso(utc_now()))

    async def _notify_data_callbacks(self, league: str, payload: Dict[str, Any]):
        """Notify registered callbacks of new data"""
        for callback in self.data_callbacks:
            try:
                if inspect.iscoroutinefunction(callback):
                    await callback(league, payload)
                else:
                    callback(league, payload)
            except Exception as e:
                logger.error(f"Error in data callback for {league}: {e}")

    def register_data_callback(self, callback: Callable):
        """Register a callback receiving (league, payload) after each league fetch"""
        self.data_callbacks.append(callback)

    def get_latest_result(self, league: str) -> Optional[LeagueResult]:
        return self.latest_results.get(league)

    def get_polling_stats(self) -> Dict[str, Any]:
        """Get comprehensive polling statistics"""
        stats = {
            'polling_active': self.polling_active,
            'interval_seconds': self.interval,
            'tick_in_flight': self._tick_in_flight,
            'tick_count': self.tick_count,
            'skipped_ticks': self.skipped_ticks,
            'league_failures': self.league_failures,
            'last_tick_started': self.last_tick_started,
            'last_tick_duration': self.last_tick_duration,
            'leagues': {}
        }

        for league in self.leagues:
            result = self.latest_results.get(league)
            stats['leagues'][league] = {
                'game_count': len(result.games) if result else 0,
                'provider_used': result.provider_used if result else "",
                'degraded': result.degraded if result else False,
                'fetched_at_utc': result.fetched_at_utc if result else "",
            }

        return stats


def create_poller(config: FeedConfig, orchestrator: LeagueFetchOrchestrator,
                  leagues: List[str]) -> AcquisitionLoop:
    """Create and initialize acquisition loop"""
    return AcquisitionLoop(config, orchestrator, leagues)
