#!/usr/bin/env python3
"""
Tests for the provider availability tracker and the result caches
"""

import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from scorefeed.availability import (DNS_PROBE_DEADLINE_SECONDS, REST_BLOCK_TTL_SECONDS,
                                    AvailabilityTracker)
from scorefeed.cache import CacheManager, LastGoodStore, ProviderResultCache
from scorefeed.config import CacheConfig
from scorefeed.models import Game


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_tracker(results):
    """Tracker whose resolver pops outcomes from results (True = resolves)"""
    clock = FakeClock()
    calls = []

    async def resolver(host):
        calls.append(host)
        ok = results.pop(0) if results else False
        if not ok:
            raise OSError(f"cannot resolve {host}")
        return [("addr",)]

    async def sleep(seconds):
        clock.advance(seconds)

    return AvailabilityTracker(resolver=resolver, clock=clock, sleep=sleep), clock, calls


def test_dns_verdict_is_cached_for_five_minutes():
    tracker, clock, calls = make_tracker([True, True])

    assert asyncio.run(tracker.is_available("statsapi.web.nhl.com")) is True
    assert len(calls) == 1

    clock.advance(299)
    assert asyncio.run(tracker.is_available("statsapi.web.nhl.com")) is True
    assert len(calls) == 1

    clock.advance(2)
    assert asyncio.run(tracker.is_available("statsapi.web.nhl.com")) is True
    assert len(calls) == 2


def test_dns_probe_gives_up_at_deadline_without_raising():
    tracker, clock, calls = make_tracker([])
    started = clock.now

    assert asyncio.run(tracker.is_available("dead.example")) is False
    assert len(calls) > 1
    assert clock.now - started >= DNS_PROBE_DEADLINE_SECONDS - 0.2

    # The negative verdict is cached too
    calls.clear()
    assert asyncio.run(tracker.is_available("dead.example")) is False
    assert calls == []


def test_dns_probe_retries_until_success():
    tracker, clock, calls = make_tracker([False, False, True])
    assert asyncio.run(tracker.is_available("flaky.example")) is True
    assert len(calls) == 3


def test_rest_breaker_blocks_for_a_day():
    tracker, clock, _ = make_tracker([])
    host = "api.nhle.com"

    assert tracker.rest_available(host) is True
    tracker.mark_rest_unavailable(host)
    assert tracker.rest_available(host) is False

    clock.advance(REST_BLOCK_TTL_SECONDS - 1)
    assert tracker.rest_available(host) is False

    clock.advance(1)
    assert tracker.rest_available(host) is True
    assert host not in tracker.rest_status


def test_availability_stats():
    tracker, clock, _ = make_tracker([True])
    asyncio.run(tracker.is_available("ok.example"))
    tracker.mark_rest_unavailable("api.nhle.com")

    stats = tracker.get_stats()
    assert stats['dns']['ok.example']['available'] is True
    assert stats['rest']['api.nhle.com']['available'] is False


def test_result_cache_ttl_floor_and_expiry():
    clock = FakeClock()
    assert ProviderResultCache(ttl_seconds=5, clock=clock).ttl_seconds == 15

    cache = ProviderResultCache(clock=clock)
    assert cache.ttl_seconds == 20

    games = [Game(league_key="nhl", game_id="1")]
    cache.set("nhl_scoreboard", "nhl", "2024-01-10", games)

    assert cache.get("nhl_scoreboard", "nhl", "2024-01-10")[0].game_id == "1"
    assert cache.get("nhl_scoreboard", "nhl", "2024-01-11") is None
    assert cache.get("nhl_stats_rest", "nhl", "2024-01-10") is None

    clock.advance(20)
    assert cache.get("nhl_scoreboard", "nhl", "2024-01-10") is not None

    clock.advance(1)
    assert cache.get("nhl_scoreboard", "nhl", "2024-01-10") is None
    assert cache.get_stats()['total_entries'] == 0


def test_result_cache_returns_copies():
    cache = ProviderResultCache(clock=FakeClock())
    cache.set("p", "nhl", "2024-01-10", [Game(league_key="nhl", game_id="1")])

    first = cache.get("p", "nhl", "2024-01-10")
    first.clear()
    assert len(cache.get("p", "nhl", "2024-01-10")) == 1


def test_last_good_only_keeps_non_empty_lists():
    store = LastGoodStore()
    assert store.update("nhl", []) is False
    assert store.get("nhl") is None

    assert store.update("nhl", [Game(league_key="nhl", game_id="1")]) is True
    assert store.update("nhl", []) is False
    assert [g.game_id for g in store.get("nhl")] == ["1"]
    assert store.get_stats() == {"nhl": 1}


def test_cache_manager_cleanup():
    clock = FakeClock()
    manager = CacheManager(CacheConfig(provider_ttl_seconds=15, cleanup_interval=60), clock=clock)
    manager.results.set("p", "nhl", "2024-01-10", [Game(league_key="nhl", game_id="1")])

    clock.advance(30)
    manager.cleanup_if_needed()
    assert manager.results.get_stats()['total_entries'] == 1

    clock.advance(31)
    manager.cleanup_if_needed()
    assert manager.results.get_stats()['total_entries'] == 0

    stats = manager.get_cache_stats()
    assert stats['config']['provider_ttl_seconds'] == 15
