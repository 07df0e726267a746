"""
Lightweight in-memory caching for scorefeed

Handles caching of:
- Normalized provider results per (provider, league, date) with a short TTL
- Last known good game list per league for degraded-mode output

Entries are replaced whole, never mutated in place, so a reader on the
event loop never sees a half-written entry.
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import MIN_PROVIDER_TTL_SECONDS, CacheConfig
from .models import Game

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Represents a cached provider result"""
    key: str
    games: Tuple[Game, ...]
    saved_at: float


class ProviderResultCache:
    """Short-TTL cache keyed by provider, league and date"""

    def __init__(self, ttl_seconds: int = 20, clock: Callable[[], float] = time.time):
        self.ttl_seconds = max(MIN_PROVIDER_TTL_SECONDS, ttl_seconds)
        self.clock = clock
        self.entries: Dict[str, CacheEntry] = {}

    @staticmethod
    def make_key(provider_name: str, league: str, date_iso: str) -> str:
        return f"{provider_name}|{league}|{date_iso}"

    def get(self, provider_name: str, league: str, date_iso: str) -> Optional[List[Game]]:
        """Cached games, or None when absent or expired"""
        key = self.make_key(provider_name, league, date_iso)
        entry = self.entries.get(key)
        if entry is None:
            return None

        if (self.clock() - entry.saved_at) > self.ttl_seconds:
            del self.entries[key]
            return None

        return list(entry.games)

    def set(self, provider_name: str, league: str, date_iso: str, games: List[Game]):
        key = self.make_key(provider_name, league, date_iso)
        self.entries[key] = CacheEntry(key=key, games=tuple(games or []), saved_at=self.clock())

    def cleanup_expired(self) -> int:
        """Remove expired cache entries"""
        now = self.clock()
        expired_keys = [key for key, entry in self.entries.items()
                        if (now - entry.saved_at) > self.ttl_seconds]
        for key in expired_keys:
            del self.entries[key]

        logger.debug(f"Cleaned up {len(expired_keys)} expired cache entries")
        return len(expired_keys)

    def get_stats(self) -> Dict[str, Any]:
        now = self.clock()
        expired_count = sum(1 for entry in self.entries.values()
                            if (now - entry.saved_at) > self.ttl_seconds)
        return {
            'total_entries': len(self.entries),
            'expired_entries': expired_count,
            'ttl_seconds': self.ttl_seconds,
        }


class LastGoodStore:
    """Most recent non-empty game list per league, kept for the process lifetime"""

    def __init__(self):
        self.snapshots: Dict[str, Tuple[Game, ...]] = {}

    def get(self, league: str) -> Optional[List[Game]]:
        snapshot = self.snapshots.get(league)
        if not snapshot:
            return None
        return list(snapshot)

    def update(self, league: str, games: List[Game]) -> bool:
        """Store games if there is at least one; returns whether it was stored"""
        if not games:
            return False
        self.snapshots[league] = tuple(games)
        return True

    def get_stats(self) -> Dict[str, int]:
        return {league: len(games) for league, games in self.snapshots.items()}


class CacheManager:
    """Owns the provider result cache and last-good store"""

    def __init__(self, config: Optional[CacheConfig] = None, clock: Callable[[], float] = time.time):
        self.config = config or CacheConfig()
        self.clock = clock
        self.results = ProviderResultCache(self.config.provider_ttl_seconds, clock=clock)
        self.last_good = LastGoodStore()
        self._last_cleanup = clock()

    def cleanup_if_needed(self):
        """Cleanup expired entries if enough time has passed"""
        current_time = self.clock()
        if current_time - self._last_cleanup > self.config.cleanup_interval:
            self.results.cleanup_expired()
            self._last_cleanup = current_time

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get comprehensive cache statistics"""
        return {
            'provider_cache': self.results.get_stats(),
            'last_good': self.last_good.get_stats(),
            'last_cleanup': self._last_cleanup,
            'config': asdict(self.config),
        }
