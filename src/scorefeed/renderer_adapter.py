"""
Renderer adapter for scorefeed

Receives the per-league notifications pushed by the acquisition loop and
keeps the latest payload for each league where a display process (or the
``--output`` file writer) can read it from another thread.
"""

import json
import logging
import threading
import time
from typing import Any, Dict, List, Optional

from .poller import AcquisitionLoop

logger = logging.getLogger(__name__)


class RendererAdapter:
    """Thread-safe holder of the latest payload per league"""

    def __init__(self, poller: AcquisitionLoop, clock=time.time):
        self.poller = poller
        self.clock = clock

        # Latest {league, games, ...extras} payload per league
        self.current_data: Dict[str, Dict[str, Any]] = {}

        # Thread-safe data access
        self.data_lock = threading.RLock()

        # Data freshness tracking
        self.last_updates: Dict[str, float] = {}

        self.poller.register_data_callback(self._handle_league_update)

    def _handle_league_update(self, league: str, payload: Dict[str, Any]):
        with self.data_lock:
            self.current_data[league] = payload
            self.last_updates[league] = self.clock()

        logger.debug(f"Updated {league}: {len(payload.get('games', []))} games")

    def get_current_data(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot copy of every league's latest payload"""
        with self.data_lock:
            return {league: dict(payload) for league, payload in self.current_data.items()}

    def get_league_data(self, league: str) -> Optional[Dict[str, Any]]:
        with self.data_lock:
            payload = self.current_data.get(league)
            return dict(payload) if payload is not None else None

    def get_games(self, league: str) -> List[Dict[str, Any]]:
        payload = self.get_league_data(league) or {}
        return list(payload.get('games', []))

    def is_data_fresh(self, league: str, max_age_seconds: int = 300) -> bool:
        """Check if data for league is fresh"""
        with self.data_lock:
            last_update = self.last_updates.get(league, 0)
        return (self.clock() - last_update) < max_age_seconds

    def get_network_status(self) -> bool:
        """True when any polled league has gone stale"""
        for league in self.poller.leagues:
            if not self.is_data_fresh(league, max_age_seconds=600):
                return True
        return False

    def write_data_to_file(self, file_path: str):
        """Write current data to file for external consumption"""
        try:
            data_copy = {
                'leagues': self.get_current_data(),
                '_scorefeed_meta': {
                    'timestamp': self.clock(),
                    'last_updates': dict(self.last_updates),
                },
            }

            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(data_copy, f, indent=2, default=str)

        except OSError as e:
            logger.error(f"Failed to write data to file {file_path}: {e}")


def create_renderer_adapter(poller: AcquisitionLoop) -> RendererAdapter:
    """Create renderer adapter bound to an acquisition loop"""
    return RendererAdapter(poller)
