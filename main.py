#!/usr/bin/env python3
"""
Main application for the CLRebalancer bot.
Runs continuous monitoring, a single check, or prints status.
"""
import argparse
import dataclasses
import json
import logging
import signal
import sys

from bot import RebalanceBot
from client_factory import ClientFactory
from config import Config, VALID_LOG_LEVELS
from exceptions import RebalancerError
from utils import Logger

logger = logging.getLogger(__name__)


class RebalancerApp:
    """Main application class for the rebalance bot"""

    def __init__(self, config: Config):
        """Initialize the application"""
        self.config = config
        ledger, protocol = ClientFactory.create_clients(config)
        self.bot = RebalanceBot(config, ledger, protocol)

        # Set up signal handlers for graceful shutdown
        signal.signal(signal.SIGINT, self.signal_handler)
        signal.signal(signal.SIGTERM, self.signal_handler)

        logger.info("RebalancerApp initialized")

    def signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        signal_name = signal.Signals(signum).name
        logger.info(f"Received {signal_name}, shutting down gracefully...")
        self.stop(f"Received {signal_name}")

    def start(self):
        """Run until a shutdown signal arrives"""
        logger.info("Starting Concentrated Liquidity Rebalance Bot")
        logger.info(f"Network: {self.config.network}")
        logger.info(f"Pool: {self.config.pool_address}")
        logger.info(f"Check interval: {self.config.check_interval} seconds")
        logger.info(f"Rebalance threshold: {self.config.rebalance_threshold:.1%}")
        logger.info("Press Ctrl+C to stop")
        self.bot.run_forever()

    def run_once(self) -> bool:
        """Validate setup and run a single check cycle"""
        self.bot.validate_setup()
        result = self.bot.perform_check()
        if result is None:
            logger.info("No action taken")
            return True
        return result.success

    def stop(self, reason: str = "Manual shutdown"):
        """Stop the bot"""
        self.bot.stop(reason)

    def get_status(self) -> dict:
        """Get current status"""
        return self.bot.get_status()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='CLRebalancer - keeps a concentrated liquidity position centered on the pool price',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Continuous monitoring (default)
  python main.py

  # One check cycle, no transactions
  python main.py --once --dry-run

  # Print configuration and bot status as JSON
  python main.py --status
        """
    )
    parser.add_argument('--once', action='store_true',
                        help='Run a single check cycle and exit')
    parser.add_argument('--status', action='store_true',
                        help='Print bot status as JSON and exit')
    parser.add_argument('--dry-run', action='store_true',
                        help='Compute and log actions without submitting transactions (overrides DRY_RUN)')
    parser.add_argument('--log-level', choices=VALID_LOG_LEVELS,
                        help='Logging level (overrides LOG_LEVEL)')
    parser.add_argument('--env-file', default=None,
                        help='Path to a .env file (default: .env in the working directory)')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main function with mode selection"""
    args = parse_args(argv)

    try:
        config = Config.from_env(dotenv_path=args.env_file)
    except RebalancerError as e:
        Logger.setup_logging(level=args.log_level or "INFO")
        logger.error(f"Configuration validation failed: {e}")
        return 1

    overrides = {}
    if args.dry_run:
        overrides['dry_run'] = True
    if args.log_level:
        overrides['log_level'] = args.log_level
    if overrides:
        config = dataclasses.replace(config, **overrides)

    Logger.setup_logging(level=config.effective_log_level, log_file=config.log_file)
    logger.info(f"Configuration loaded: {config.get_chain_info()}")

    try:
        app = RebalancerApp(config)

        if args.status:
            print(json.dumps(app.get_status(), indent=2, default=str))
            return 0

        if args.once:
            return 0 if app.run_once() else 1

        app.start()
        return 0

    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
        return 1
    except RebalancerError as e:
        logger.error(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
