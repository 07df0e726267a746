"""
Configuration loader for scorefeed

Handles loading and parsing of YAML/JSON configuration files for:
- League selection (single value, list, or "all")
- Timezone used for schedule-date resolution
- Polling interval and provider cache TTL
- HTTP transport and logging settings
"""

import json
import logging
import os
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .dates import DEFAULT_TIMEZONE, get_zone, is_valid_timezone
from .errors import ConfigError
from .models import SUPPORTED_LEAGUES

logger = logging.getLogger(__name__)

MIN_UPDATE_INTERVAL_SECONDS = 10
MIN_PROVIDER_TTL_SECONDS = 15


@dataclass
class PollingConfig:
    """Configuration for the acquisition timer"""
    update_interval_seconds: int = 60

    def __post_init__(self):
        self.update_interval_seconds = max(MIN_UPDATE_INTERVAL_SECONDS,
                                           int(self.update_interval_seconds or 0))


@dataclass
class CacheConfig:
    """Configuration for in-memory caching behavior"""
    provider_ttl_seconds: int = 20
    cleanup_interval: int = 3600

    def __post_init__(self):
        self.provider_ttl_seconds = max(MIN_PROVIDER_TTL_SECONDS,
                                        int(self.provider_ttl_seconds or 0))


@dataclass
class HttpConfig:
    """Configuration for the shared HTTP session"""
    timeout_seconds: int = 30
    connect_timeout_seconds: int = 10
    max_concurrent_requests: int = 5
    user_agent: str = "scorefeed/1.0"


@dataclass
class FeedConfig:
    """Main configuration class for scorefeed"""
    leagues: Any = "mlb"
    timezone: str = DEFAULT_TIMEZONE

    polling: PollingConfig = field(default_factory=PollingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    http: HttpConfig = field(default_factory=HttpConfig)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        if not is_valid_timezone(self.timezone):
            raise ConfigError(f"Unknown timezone: {self.timezone}")

    @classmethod
    def load_from_file(cls, config_path: str) -> 'FeedConfig':
        """Load configuration from YAML or JSON file"""
        path = Path(config_path)

        if not path.exists():
            logger.warning(f"Config file {config_path} not found, using defaults")
            return cls()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.suffix.lower() in ['.yaml', '.yml']:
                    config_data = yaml.safe_load(f)
                else:
                    config_data = json.load(f)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigError(f"Could not parse config file {config_path}: {e}") from e

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'FeedConfig':
        """Create configuration from dictionary"""
        config_dict = dict(config_dict)

        # "league" is accepted as an alias when "leagues" is absent
        if 'leagues' not in config_dict and 'league' in config_dict:
            config_dict['leagues'] = config_dict.pop('league')
        config_dict.pop('league', None)

        polling_config = _build_section(PollingConfig, config_dict.pop('polling', None), 'polling')
        cache_config = _build_section(CacheConfig, config_dict.pop('cache', None), 'cache')
        http_config = _build_section(HttpConfig, config_dict.pop('http', None), 'http')

        known = {f.name for f in fields(cls)}
        main_config = {}
        for key, value in config_dict.items():
            if key in known:
                main_config[key] = value
            else:
                logger.warning(f"Ignoring unknown config key: {key}")

        main_config.update({
            'polling': polling_config,
            'cache': cache_config,
            'http': http_config,
        })

        return cls(**main_config)

    def get_timezone(self):
        """Get timezone object"""
        return get_zone(self.timezone)

    def resolve_leagues(self) -> List[str]:
        """Supported leagues to poll, in configured order; raises when empty"""
        leagues = coerce_league_list(self.leagues)
        if not leagues:
            raise ConfigError(
                f"No supported leagues configured (got {self.leagues!r}); "
                f"expected any of {', '.join(SUPPORTED_LEAGUES)} or 'all'"
            )
        return leagues

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _build_section(section_cls, data: Optional[Dict[str, Any]], name: str):
    if not data:
        return section_cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(section_cls)}
    values = {}
    for key, value in data.items():
        if key in known:
            values[key] = value
        else:
            logger.warning(f"Ignoring unknown {name} config key: {key}")
    try:
        return section_cls(**values)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value in config section '{name}': {e}") from e


def coerce_league_list(value: Any) -> List[str]:
    """Flatten strings, comma/space separated strings and lists into league keys.

    "all" anywhere expands to every supported league. Unknown tokens are
    dropped and duplicates keep their first position.
    """
    tokens: List[str] = []

    def collect(entry: Any):
        if entry is None:
            return
        if isinstance(entry, (list, tuple)):
            for item in entry:
                collect(item)
            return
        for part in re.split(r"[\s,]+", str(entry).strip()):
            if part:
                tokens.append(part)

    collect(value)

    leagues: List[str] = []
    for token in tokens:
        lower = token.lower()
        if lower == "all":
            return list(SUPPORTED_LEAGUES)
        if lower in SUPPORTED_LEAGUES and lower not in leagues:
            leagues.append(lower)
    return leagues


def load_config(config_path: str = "config/scorefeed.yaml") -> FeedConfig:
    """Load scorefeed configuration; defaults apply only when the file is missing"""
    try:
        return FeedConfig.load_from_file(config_path)
    except OSError as e:
        raise ConfigError(f"Could not read config file {config_path}: {e}") from e


def create_sample_config(output_path: str = "config/scorefeed.yaml"):
    """Create a sample configuration file"""
    config_dict = {
        'leagues': ['nhl', 'nfl', 'nba', 'mlb'],
        'timezone': DEFAULT_TIMEZONE,
        'polling': {
            'update_interval_seconds': 60,
        },
        'cache': {
            'provider_ttl_seconds': 20,
            'cleanup_interval': 3600,
        },
        'http': {
            'timeout_seconds': 30,
            'connect_timeout_seconds': 10,
            'max_concurrent_requests': 5,
            'user_agent': 'scorefeed/1.0',
        },
        'log_level': 'INFO',
    }

    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Sample configuration created at {output_path}")
