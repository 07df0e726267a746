"""
Async HTTP transport shared by every provider

Wraps a pooled aiohttp session and turns transport failures into the
NetworkError / ProtocolError / ParseError taxonomy so provider stages can
be retried or skipped uniformly.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from .config import HttpConfig
from .errors import NetworkError, ParseError, ProtocolError

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

BROWSER_HTML_HEADERS = {
    'User-Agent': BROWSER_USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
}

NHL_STATS_ORIGIN_HEADERS = {
    'x-nhl-stats-origin': 'https://www.nhl.com',
    'x-nhl-stats-referer': 'https://www.nhl.com',
}


def nhl_request_headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Browser-like headers the NHL endpoints expect"""
    headers = {
        'User-Agent': 'Mozilla/5.0 (scorefeed)',
        'Accept': 'application/json',
        'Accept-Language': 'en-US,en;q=0.9',
        'Referer': 'https://www.nhl.com/',
        'Origin': 'https://www.nhl.com',
        'Pragma': 'no-cache',
        'Cache-Control': 'no-cache',
    }
    if extra:
        headers.update(extra)
    return headers


class HttpClient:
    """Pooled aiohttp session with error translation"""

    def __init__(self, config: Optional[HttpConfig] = None):
        self.config = config or HttpConfig()
        self.session: Optional[aiohttp.ClientSession] = None

    async def start(self):
        if self.session is not None:
            return

        timeout = aiohttp.ClientTimeout(
            total=self.config.timeout_seconds,
            connect=self.config.connect_timeout_seconds
        )
        connector = aiohttp.TCPConnector(
            limit=self.config.max_concurrent_requests,
            limit_per_host=3,
            keepalive_timeout=30,
            enable_cleanup_closed=True
        )
        self.session = aiohttp.ClientSession(
            timeout=timeout,
            connector=connector,
            headers={'User-Agent': self.config.user_agent}
        )

    async def close(self):
        if self.session is not None:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> 'HttpClient':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def get_text(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        body, _ = await self._get(url, headers)
        return body

    async def get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        body, content_type = await self._get(url, headers)

        if 'html' in content_type:
            raise ProtocolError(f"Unexpected content type {content_type}", url=url)

        try:
            return json.loads(body)
        except (json.JSONDecodeError, ValueError) as e:
            raise ParseError(f"Invalid JSON: {e}", url=url) from e

    async def _get(self, url: str, headers: Optional[Dict[str, str]]):
        if self.session is None:
            await self.start()

        try:
            async with self.session.get(url, headers=headers or {}) as response:
                if response.status < 200 or response.status >= 300:
                    raise ProtocolError(
                        f"HTTP {response.status} {response.reason or ''}".strip(),
                        url=url,
                        status=response.status
                    )
                body = await response.text()
                return body, (response.content_type or '').lower()
        except asyncio.TimeoutError as e:
            raise NetworkError("Request timeout", url=url) from e
        except aiohttp.ClientError as e:
            raise NetworkError(str(e) or e.__class__.__name__, url=url) from e
        except UnicodeDecodeError as e:
            raise ParseError(f"Undecodable body: {e}", url=url) from e
