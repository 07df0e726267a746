"""
Error types raised while acquiring provider data

Network, protocol and parse failures are stage-local: the orchestrator
catches them and moves on to the next provider. ConfigError is the one
failure surfaced at startup.
"""

from typing import Optional


class FeedError(Exception):
    """Base class for scorefeed errors"""


class FetchError(FeedError):
    """A single provider call failed"""

    def __init__(self, message: str, url: str = "", provider: str = ""):
        super().__init__(message)
        self.url = url
        self.provider = provider


class NetworkError(FetchError):
    """Connection, DNS or timeout failure"""


class ProtocolError(FetchError):
    """Non-2xx status or unexpected content type"""

    def __init__(self, message: str, url: str = "", provider: str = "",
                 status: Optional[int] = None):
        super().__init__(message, url=url, provider=provider)
        self.status = status


class ParseError(FetchError):
    """Malformed body or unexpected payload shape"""


class ConfigError(FeedError, ValueError):
    """Configuration cannot drive the feed"""
