"""
scorefeed

A multi-league live score feed: resolves today's schedule date, walks a
per-league chain of upstream providers with caching and fallbacks, and
normalizes every response into one canonical game record.
"""

__version__ = "1.0.0"
__author__ = "scorefeed contributors"
