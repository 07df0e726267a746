"""
Provider availability tracking

Two kinds of time-boxed verdicts are kept per host:
- DNS reachability, cached for 5 minutes and re-probed lazily with a
  bounded retry loop (every 200ms, 4 second deadline)
- REST endpoints known to be gone, tripped by an HTTP 404 and skipped for
  24 hours

Probe errors never reach the caller; they only shape the cached verdict.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DNS_TTL_SECONDS = 5 * 60
DNS_PROBE_DEADLINE_SECONDS = 4.0
DNS_PROBE_INTERVAL_SECONDS = 0.2
REST_BLOCK_TTL_SECONDS = 24 * 60 * 60


@dataclass
class AvailabilityRecord:
    """Cached reachability verdict for one host"""
    available: Optional[bool] = None
    checked_at: float = 0
    warned_at: float = 0


async def resolve_host(host: str) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.getaddrinfo(host, None)


class AvailabilityTracker:
    """Circuit breaker over upstream hosts"""

    def __init__(self, resolver: Optional[Callable[[str], Awaitable[Any]]] = None,
                 clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.resolver = resolver or resolve_host
        self.clock = clock
        self.sleep = sleep
        self.dns_status: Dict[str, AvailabilityRecord] = {}
        self.rest_status: Dict[str, AvailabilityRecord] = {}

    async def is_available(self, host: str) -> bool:
        """DNS-style check: cached verdict younger than the TTL, else probe"""
        now = self.clock()
        record = self.dns_status.get(host)
        if (record and record.available is not None
                and record.checked_at and (now - record.checked_at) < DNS_TTL_SECONDS):
            return record.available

        available = await self._probe(host, now)
        self.dns_status[host] = AvailabilityRecord(available=available, checked_at=now)
        return available

    async def _probe(self, host: str, started_at: float) -> bool:
        deadline = started_at + DNS_PROBE_DEADLINE_SECONDS
        last_error = None

        while self.clock() < deadline:
            try:
                await self.resolver(host)
                return True
            except Exception as e:
                last_error = e
                await self.sleep(DNS_PROBE_INTERVAL_SECONDS)

        if last_error is not None:
            logger.debug(f"DNS lookup for {host} failed: {last_error}")
        return False

    def rest_available(self, host: str) -> bool:
        """REST-style check: False while a 404 verdict is inside its window"""
        now = self.clock()
        record = self.rest_status.get(host)
        if not record or record.available is not False:
            return True

        if (now - record.checked_at) >= REST_BLOCK_TTL_SECONDS:
            del self.rest_status[host]
            return True

        if not record.warned_at or (now - record.warned_at) > REST_BLOCK_TTL_SECONDS:
            logger.info(f"{host} previously returned 404; skipping it")
            record.warned_at = now
        return False

    def mark_rest_unavailable(self, host: str):
        now = self.clock()
        self.rest_status[host] = AvailabilityRecord(available=False, checked_at=now, warned_at=now)
        logger.info(f"{host} returned 404; disabling it for 24 hours")

    def get_stats(self) -> Dict[str, Any]:
        now = self.clock()
        return {
            'dns': {
                host: {'available': r.available, 'age_seconds': now - r.checked_at}
                for host, r in self.dns_status.items()
            },
            'rest': {
                host: {'available': r.available, 'age_seconds': now - r.checked_at}
                for host, r in self.rest_status.items()
            },
        }
