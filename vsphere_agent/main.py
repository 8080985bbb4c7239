"""Main application entry point for the vSphere performance agent."""

import argparse
import asyncio
import logging
import signal
import sys
import time
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config.loader import ConfigLoader
from .config.models import AgentConfig, CollectionConfig, VCenterConfig
from .config.settings import Settings
from .services.metric_sink import MetricSink
from .services.vsphere_client import VSphereClient
from .utils.logger import setup_logger
from .utils.metrics import CollectionReport
from .workflow import CollectionWorkflow


class AgentApp:
    """
    Main agent application.

    Runs collection passes, either once or on a cron schedule, and
    publishes the records of each pass.
    """

    def __init__(
        self,
        config_path: str = "config/config.yaml",
        datacenter: str = None,
        log_available_counters: bool = False,
        log_level: str = "INFO"
    ):
        """
        Initialize agent application.

        Args:
            config_path: Path to configuration file
            datacenter: Datacenter selector overriding the configured one
            log_available_counters: Log every counter advertised by the target
            log_level: Log level of the agent logger
        """
        self.config_path = config_path
        self.logger = setup_logger("vsphere_agent", log_level)
        self.scheduler = None

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        self.config = self._load_config()
        if datacenter:
            self.config.collection.datacenter = datacenter
        if log_available_counters:
            self.config.collection.log_available_counters = True

        self.client = VSphereClient(self.config.vcenter, self.logger)
        self.sink = MetricSink(self.logger)

    def _load_config(self) -> AgentConfig:
        """
        Load and validate configuration.

        Without a configuration file the connection settings are read from
        VSPHERE_* environment variables.

        Raises:
            SystemExit: If configuration is invalid
        """
        try:
            if not Path(self.config_path).exists():
                self.logger.info(
                    f"Configuration file {self.config_path} not found, using environment variables"
                )
                Settings.validate_required()
                settings = Settings()
                return AgentConfig(
                    vcenter=VCenterConfig(
                        url=Settings.get("VSPHERE_URL", required=True),
                        username=Settings.get("VSPHERE_USERNAME"),
                        password=Settings.get("VSPHERE_PASSWORD"),
                        insecure=settings.INSECURE,
                    ),
                    collection=CollectionConfig(datacenter=settings.DATACENTER),
                )

            self.logger.info(f"Loading configuration from {self.config_path}")
            config = ConfigLoader.load_from_file(self.config_path, self.logger)
            self.logger.info("Configuration loaded successfully")
            return config

        except Exception as e:
            self.logger.error(f"Failed to load configuration: {e}", exc_info=True)
            sys.exit(1)

    def _signal_handler(self, signum, frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, shutting down...")

        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        sys.exit(0)

    async def run_collection_pass(self) -> CollectionReport:
        """
        Connect, collect every selected datacenter, publish, log out.

        Returns:
            CollectionReport: Pass outcome
        """
        start_time = time.time()
        content = await self.client.connect()
        try:
            workflow = CollectionWorkflow(content, self.config, self.sink, self.logger)
            report = await workflow.run()
        except Exception:
            # Records of an aborted pass are never published
            self.sink.reset()
            raise
        finally:
            self.client.disconnect()

        self.sink.publish()

        self.logger.info(
            f"Collection pass finished in {time.time() - start_time:.1f}s",
            extra={
                "datacenters": report.partitions,
                "records": report.records_emitted,
                "failed_datacenters": report.failed_partitions,
                "unresolved_counters": report.unresolved_counters,
            }
        )
        return report

    async def _scheduled_pass(self):
        """Scheduled job: a failed pass is logged and the schedule continues."""
        try:
            await self.run_collection_pass()
        except Exception as e:
            self.logger.error(f"Collection pass failed: {e}", exc_info=True)

    def start_scheduler(self):
        """
        Run collection passes on the configured cron schedule.

        Runs indefinitely until interrupted (SIGTERM/SIGINT).
        """
        schedule = self.config.monitoring.schedule
        minute, hour, day, month, day_of_week = schedule.split()
        trigger = CronTrigger(minute=minute, hour=hour, day=day, month=month, day_of_week=day_of_week)

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        self.scheduler = AsyncIOScheduler(event_loop=loop)
        self.scheduler.add_job(
            self._scheduled_pass,
            trigger=trigger,
            id='collection_pass',
            name='vSphere Performance Collection',
            max_instances=1,  # Prevent overlapping passes
            coalesce=True,
            misfire_grace_time=60
        )
        self.scheduler.start()
        self.logger.info(f"Scheduler started with cron: {schedule}")

        try:
            loop.run_until_complete(self._scheduled_pass())
            loop.run_forever()
        except KeyboardInterrupt:
            self.logger.info("Received keyboard interrupt")
        finally:
            if self.scheduler.running:
                self.scheduler.shutdown()
            self.logger.info("Scheduler stopped")


def main():
    """
    CLI entry point.

    Parses command-line arguments and runs the agent.
    """
    parser = argparse.ArgumentParser(
        description='vSphere performance counter collection agent',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Collect once from the only datacenter and exit
  vsphere-agent --run-once

  # Collect every datacenter on the configured schedule
  vsphere-agent --datacenter all

  # List the counters the target advertises
  vsphere-agent --run-once --log-available-counters
        """
    )

    parser.add_argument(
        '--config',
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--datacenter',
        default=None,
        help='Datacenter to collect: a datacenter name, "default" or "all"'
    )

    parser.add_argument(
        '--run-once',
        action='store_true',
        help='Run one collection pass and exit (no scheduler)'
    )

    parser.add_argument(
        '--log-available-counters',
        action='store_true',
        help='Log every performance counter available on the target'
    )

    parser.add_argument(
        '--log-level',
        default=Settings().LOG_LEVEL.upper(),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    args = parser.parse_args()

    try:
        app = AgentApp(
            config_path=args.config,
            datacenter=args.datacenter,
            log_available_counters=args.log_available_counters,
            log_level=args.log_level
        )

        if args.run_once:
            exit_code = 0
            try:
                report = asyncio.run(app.run_collection_pass())
                if not report.ok:
                    exit_code = 2
            except Exception as e:
                app.logger.error(f"Collection pass failed: {e}", exc_info=True)
                exit_code = 1

            sys.exit(exit_code)
        else:
            app.start_scheduler()

    except Exception as e:
        logging.error(f"Application startup failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
