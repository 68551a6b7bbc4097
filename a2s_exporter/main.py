"""Main application entry point for the A2S exporter."""

import argparse
import asyncio
import logging
import os
import signal
import sys
import time
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config.loader import ConfigLoader
from .config.models import ExporterConfig
from .poller import PollScheduler, PollState
from .query.client import ProtocolClient
from .query.models import Target
from .services.influx_sink import InfluxSink
from .services.result_cache import ResultCache
from .utils.logger import setup_logger


class ExporterApp:
    """
    Main exporter application.

    Loads configuration, owns the poll state and runs ticks on a fixed
    interval until interrupted.
    """

    def __init__(
        self,
        config_path: str = "config.yaml",
        dry_run: bool = False,
        log_level: str = "INFO"
    ):
        """
        Initialize exporter application.

        Args:
            config_path: Path to configuration file
            dry_run: If True, log batches instead of writing to InfluxDB
            log_level: Log level for application loggers
        """
        self.config_path = config_path
        self.dry_run = dry_run
        self.logger = setup_logger("a2s_exporter", log_level)
        self.scheduler = None
        self._stop = None

        self.config = self._load_config()

        self.state = PollState(
            targets=[Target.from_config(s) for s in self.config.servers],
            cache=ResultCache(self.logger.getChild("cache"))
        )
        self.poller = PollScheduler(
            client=ProtocolClient(logger=self.logger),
            sink=InfluxSink(self.config.influxdb, self.logger.getChild("influx")),
            logger=self.logger.getChild("poller"),
            dry_run=dry_run
        )
        self.logger.info(f"Exporter initialized with {len(self.state.targets)} target(s)")

    def _load_config(self) -> ExporterConfig:
        """
        Load and validate configuration.

        Returns:
            ExporterConfig: Loaded configuration

        Raises:
            SystemExit: If configuration is missing or invalid
        """
        try:
            self.logger.info(f"Loading configuration from {self.config_path}")
            config = ConfigLoader.load_from_file(self.config_path)
            self.logger.info("Configuration loaded successfully")
            return config

        except FileNotFoundError:
            self.logger.error(
                f"Configuration file not found: {self.config_path}\n"
                "Please create config.yaml from config.example.yaml"
            )
            sys.exit(1)

        except Exception as e:
            self.logger.error(f"Failed to load configuration: {e}", exc_info=True)
            sys.exit(1)

    async def run_poll_cycle(self):
        """Execute one tick and log its duration."""
        start_time = time.time()
        try:
            report = await self.poller.run_tick(self.state)
        except Exception as e:
            self.logger.error(
                "Poll cycle failed",
                exc_info=True,
                extra={
                    "error_type": type(e).__name__,
                    "error_message": str(e)
                }
            )
            raise

        self.logger.debug(f"Tick took {time.time() - start_time:.1f}s")
        return report

    def _request_stop(self, signum):
        self.logger.info(f"Received {signal.Signals(signum).name}, initiating graceful shutdown...")
        self._stop.set()

    async def serve(self):
        """
        Run ticks every ``frequency_secs`` until SIGINT or SIGTERM.

        The first tick runs immediately. Ticks never overlap; a tick that
        overruns the interval causes the missed run to be coalesced.
        """
        interval = self.config.frequency_secs
        self._stop = asyncio.Event()

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, self._request_stop, signum)

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.run_poll_cycle,
            trigger=IntervalTrigger(seconds=interval),
            id='poll_cycle',
            name='A2S poll cycle',
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now()
        )
        self.scheduler.start()
        self.logger.info(f"Exporter started. Querying every {interval} second(s).")

        try:
            await self._stop.wait()
        finally:
            self.scheduler.shutdown(wait=False)
            self.logger.info("Scheduler stopped")


def main():
    """
    CLI entry point.

    Parses command-line arguments and starts the exporter.
    """
    parser = argparse.ArgumentParser(
        description='Poll Source engine servers and write their status to InfluxDB',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with scheduler (default)
  a2s-exporter

  # Run once and exit
  a2s-exporter --run-once

  # Query servers but print the batch instead of writing it
  a2s-exporter --run-once --dry-run

  # Use custom config file
  a2s-exporter --config /path/to/config.yaml
        """
    )

    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )

    parser.add_argument(
        '--run-once',
        action='store_true',
        help='Run one poll cycle and exit (no scheduler)'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Log batches instead of writing them to InfluxDB'
    )

    parser.add_argument(
        '--log-level',
        default=os.getenv('LOG_LEVEL', 'INFO'),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    args = parser.parse_args()

    logging.getLogger().setLevel(args.log_level)

    app = ExporterApp(
        config_path=args.config,
        dry_run=args.dry_run,
        log_level=args.log_level
    )

    if args.run_once:
        try:
            report = asyncio.run(app.run_poll_cycle())
        except Exception:
            sys.exit(1)
        sys.exit(0 if report.sent or args.dry_run else 1)

    asyncio.run(app.serve())


if __name__ == '__main__':
    main()
