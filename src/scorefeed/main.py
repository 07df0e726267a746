"""
Main entry point for scorefeed

Wires configuration, logging, the HTTP client, stores, providers, the
orchestrator and the acquisition loop together. Handles startup, shutdown
and the command line.
"""

import asyncio
import json
import logging
import signal
import sys
import time
from typing import Any, Dict, List, Optional

from .availability import AvailabilityTracker
from .cache import CacheManager
from .client import HttpClient
from .config import FeedConfig, create_sample_config, load_config
from .errors import ConfigError
from .nfl import NflWeekResolver
from .orchestrator import LeagueFetchOrchestrator
from .parser import create_parser
from .poller import AcquisitionLoop, create_poller
from .providers import build_provider_chains
from .renderer_adapter import RendererAdapter, create_renderer_adapter

logger = logging.getLogger(__name__)


class ScoreFeedMain:
    """Owns every scorefeed component for one process"""

    def __init__(self, config_path: str = "config/scorefeed.yaml", output_path: Optional[str] = None):
        self.config_path = config_path
        self.output_path = output_path
        self.config: Optional[FeedConfig] = None
        self.leagues: List[str] = []
        self.client: Optional[HttpClient] = None
        self.cache_manager: Optional[CacheManager] = None
        self.availability: Optional[AvailabilityTracker] = None
        self.orchestrator: Optional[LeagueFetchOrchestrator] = None
        self.poller: Optional[AcquisitionLoop] = None
        self.renderer_adapter: Optional[RendererAdapter] = None

        # Runtime state
        self.running = False
        self.startup_complete = False
        self.start_time = 0.0
        self._stop_event: Optional[asyncio.Event] = None

    async def initialize(self):
        """Initialize all components; raises ConfigError for a malformed config or no pollable leagues"""
        self.start_time = time.time()

        self.config = load_config(self.config_path)
        self._setup_logging()
        self.leagues = self.config.resolve_leagues()

        logger.info(f"Loaded configuration from {self.config_path}")
        logger.info(f"Leagues: {', '.join(self.leagues)}")
        logger.info(f"Timezone: {self.config.timezone}")

        self.client = HttpClient(self.config.http)
        await self.client.start()

        self.cache_manager = CacheManager(self.config.cache)
        self.availability = AvailabilityTracker()

        parser = create_parser()
        chains = build_provider_chains(self.client, parser)
        nfl_resolver = NflWeekResolver(self.client, parser, self.config.timezone)

        self.orchestrator = LeagueFetchOrchestrator(
            chains, self.cache_manager, self.availability,
            nfl_resolver=nfl_resolver, timezone=self.config.timezone
        )
        self.poller = create_poller(self.config, self.orchestrator, self.leagues)
        self.renderer_adapter = create_renderer_adapter(self.poller)

        if self.output_path:
            self.poller.register_data_callback(self._write_output)

        self.startup_complete = True
        logger.info(f"scorefeed initialization complete in {time.time() - self.start_time:.2f}s")

    def _write_output(self, league: str, payload: Dict[str, Any]):
        self.renderer_adapter.write_data_to_file(self.output_path)

    async def start(self):
        """Start polling"""
        if self.running:
            logger.warning("scorefeed already running")
            return

        if not self.startup_complete:
            await self.initialize()

        self.running = True
        self._stop_event = asyncio.Event()
        await self.poller.start_polling()

        if sys.platform != 'win32':
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, self._stop_event.set)

    async def stop(self):
        """Stop polling and release the HTTP session"""
        if self.poller:
            await self.poller.stop_polling()
        if self.client:
            await self.client.close()

        if self.running:
            self.running = False
            logger.info("scorefeed stopped")

    async def run_once(self) -> Dict[str, Dict[str, Any]]:
        """Run a single tick and return every league payload"""
        if not self.startup_complete:
            await self.initialize()
        try:
            results = await self.poller.run_tick() or {}
            return {league: result.to_payload() for league, result in results.items()}
        finally:
            await self.stop()

    async def run_forever(self):
        """Run until a stop signal arrives"""
        await self.start()

        try:
            while self.running and not self._stop_event.is_set():
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=60)
                except asyncio.TimeoutError:
                    stats = self.poller.get_polling_stats()
                    served = sum(1 for s in stats['leagues'].values() if s['game_count'])
                    logger.info(f"Status: {served}/{len(stats['leagues'])} leagues with games, "
                                f"{stats['tick_count']} ticks, {stats['skipped_ticks']} skipped")
        finally:
            await self.stop()

    def _setup_logging(self):
        """Setup logging configuration"""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        logging.getLogger('aiohttp').setLevel(logging.WARNING)

        if self.config.log_file:
            file_handler = logging.FileHandler(self.config.log_file)
            file_handler.setFormatter(
                logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            )
            logging.getLogger().addHandler(file_handler)

    def get_status(self) -> Dict[str, Any]:
        """Get comprehensive status"""
        status = {
            'running': self.running,
            'startup_complete': self.startup_complete,
            'config_path': self.config_path,
            'leagues': list(self.leagues),
        }

        if self.startup_complete:
            status['uptime'] = time.time() - self.start_time
            status['polling'] = self.poller.get_polling_stats()
            status['cache'] = self.cache_manager.get_cache_stats()
            status['availability'] = self.availability.get_stats()

        return status


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for scorefeed"""
    import argparse

    parser = argparse.ArgumentParser(description='Multi-league live score feed')
    parser.add_argument('--config', default='config/scorefeed.yaml',
                        help='Configuration file path')
    parser.add_argument('--create-config', action='store_true',
                        help='Create sample configuration file and exit')
    parser.add_argument('--once', action='store_true',
                        help='Fetch every league once, print JSON and exit')
    parser.add_argument('--output',
                        help='Write the latest payloads to this JSON file after each league update')

    args = parser.parse_args(argv)

    if args.create_config:
        create_sample_config(args.config)
        print(f"Sample configuration created at {args.config}")
        return 0

    feed = ScoreFeedMain(args.config, output_path=args.output)

    try:
        if args.once:
            payloads = await feed.run_once()
            print(json.dumps(payloads, indent=2, default=str))
            return 0

        await feed.run_forever()
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nShutdown requested")
    return 0


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
