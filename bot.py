"""
Scheduler for CLRebalancer.
Validates the wallet and pool on startup, then runs one check cycle every
CHECK_INTERVAL seconds on a background thread until stopped.
"""
import logging
import threading
from datetime import datetime
from typing import Any, Dict, Optional

from alert_manager import TelegramAlertManager
from automated_rebalancer import AutomatedRebalancer
from config import Config
from exceptions import ConfigurationError, PositionNotFound
from ledger_client import LedgerClient, ProtocolClient
from position_monitor import PositionMonitor
from snapshots import RebalanceResult
from utils import retry_on_failure

logger = logging.getLogger(__name__)


class RebalanceBot:
    """Periodic driver around AutomatedRebalancer"""

    def __init__(
        self,
        config: Config,
        ledger: LedgerClient,
        protocol: ProtocolClient,
        rebalancer: Optional[AutomatedRebalancer] = None,
        alert_manager: Optional[TelegramAlertManager] = None,
    ):
        self.config = config
        self.ledger = ledger
        self.protocol = protocol
        self.rebalancer = rebalancer or AutomatedRebalancer(config, ledger, protocol)
        self.alert_manager = alert_manager or TelegramAlertManager(config)
        self.monitor = PositionMonitor(protocol)

        self.is_running = False
        self.monitoring_thread: Optional[threading.Thread] = None
        self.cycles = 0
        self.last_result: Optional[RebalanceResult] = None
        self.last_check_time: Optional[datetime] = None

        self._stop_event = threading.Event()
        self._cycle_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    @retry_on_failure(max_attempts=3, delay=2.0)
    def _read_gas_balance(self) -> int:
        return self.ledger.get_total_balance(self.ledger.address, self.config.gas_coin_type)

    def validate_setup(self) -> None:
        """
        Check wallet, pool and configured position before the first cycle.

        A low or unreadable gas balance only warns.

        Raises:
            ConfigurationError: If the pool cannot be read
            PositionNotFound: If POSITION_ID is set and the wallet does not own it
        """
        logger.info("Validating setup...")
        address = self.ledger.address
        logger.info(f"Wallet address: {address}")

        try:
            gas_balance = self._read_gas_balance()
            logger.info(f"Gas balance: {gas_balance}")
            if gas_balance < self.config.min_gas_balance:
                logger.warning(f"Low gas balance: {gas_balance} < {self.config.min_gas_balance}. "
                               f"You may not have enough for transactions.")
        except Exception as e:
            logger.warning(f"Could not check gas balance: {e}")
            logger.warning("Continuing without balance check - ensure you have sufficient gas")

        try:
            pool = self.monitor.get_pool_info(self.config.pool_address)
        except Exception as e:
            raise ConfigurationError(f"Pool {self.config.pool_address} could not be read: {e}") from e
        logger.info(f"Pool found: tick={pool.current_tick} spacing={pool.tick_spacing} "
                    f"pair={pool.coin_type_a}/{pool.coin_type_b}")

        if self.config.position_id:
            position = self.monitor.find_position(address, self.config.position_id)
            if position.pool_id != self.config.pool_address:
                raise PositionNotFound(self.config.position_id,
                                       f"position belongs to pool {position.pool_id}")
            logger.info(f"Position found: [{position.tick_lower}, {position.tick_upper}] "
                        f"liquidity={position.liquidity}")

        logger.info("Setup validation successful")

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    def perform_check(self) -> Optional[RebalanceResult]:
        """
        Run one check cycle. Never raises.

        Returns None when nothing was done, the cycle failed before an
        action, or another cycle was still in flight.
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous check still in progress - skipping this cycle")
            return None

        try:
            self.cycles += 1
            self.last_check_time = datetime.now()
            logger.info(f"=== Position check #{self.cycles} at {self.last_check_time.isoformat()} ===")

            result = self.rebalancer.check_and_rebalance(self.config.pool_address)
            if result is not None:
                self.last_result = result
                self._report(result)
            return result
        except Exception as e:
            logger.error(f"Error during position check: {e}")
            self.alert_manager.send_error_notification(
                "Check Failed", str(e), {'cycle': self.cycles, 'pool': self.config.pool_address}
            )
            return None
        finally:
            self._cycle_lock.release()

    def _report(self, result: RebalanceResult):
        if result.success:
            if result.dry_run:
                logger.info("Dry run cycle completed - no transactions submitted")
            elif result.transaction_digest:
                logger.info(f"Rebalance successful: digest={result.transaction_digest} "
                            f"position={result.new_position_id}")
            self.alert_manager.send_rebalance_notification(result, self.config.pool_address)
            return

        logger.error(f"Rebalance failed: {result.error}")
        if result.error_type == 'ConsolidationFailed':
            self.alert_manager.send_critical_alert(
                "Balance Consolidation Failed",
                f"{result.error}. Liquidity may be sitting idle in the wallet.",
            )
        else:
            self.alert_manager.send_rebalance_notification(result, self.config.pool_address)

    def monitoring_loop(self):
        """Wait CHECK_INTERVAL between cycles until stopped"""
        logger.info(f"Monitoring loop started (interval {self.config.check_interval}s)")
        while not self._stop_event.wait(self.config.check_interval):
            self.perform_check()
        logger.info("Monitoring loop exited")

    def start(self):
        """
        Validate setup, run an immediate check, then schedule periodic checks.

        Raises:
            ConfigurationError, PositionNotFound: From validate_setup
        """
        if self.is_running:
            logger.warning("Bot is already running")
            return

        logger.info("Starting rebalance bot...")
        self.validate_setup()

        self._stop_event.clear()
        self.is_running = True

        self.alert_manager.send_startup_notification(
            network=self.config.network,
            pool_address=self.config.pool_address,
            wallet_address=self.ledger.address,
            position_id=self.config.position_id,
        )

        self.perform_check()
        if self._stop_event.is_set():
            logger.info("Stop requested during initial check - not scheduling further checks")
            return

        self.monitoring_thread = threading.Thread(target=self.monitoring_loop, daemon=True)
        self.monitoring_thread.start()
        logger.info(f"Bot started. Checking every {self.config.check_interval} seconds")

    def stop(self, reason: str = "Manual shutdown"):
        """Stop scheduling new cycles; a cycle already running is allowed to finish"""
        if not self.is_running:
            logger.warning("Bot is not running")
            return

        logger.info("Stopping bot...")
        self.is_running = False
        self._stop_event.set()

        if self.monitoring_thread and self.monitoring_thread is not threading.current_thread():
            # Returns once any in-flight cycle has finished
            self.monitoring_thread.join()

        self.alert_manager.send_shutdown_notification(reason)
        logger.info("Bot stopped")

    def run_forever(self):
        """Start and block until stop() is called from another thread or a signal handler"""
        self.start()
        while not self._stop_event.wait(1.0):
            pass

    def get_status(self) -> Dict[str, Any]:
        """Current bot status"""
        return {
            'running': self.is_running,
            'wallet_address': self.ledger.address,
            'network': self.config.network,
            'pool_address': self.config.pool_address,
            'tracked_position_id': self.rebalancer.tracked_position_id,
            'cycles': self.cycles,
            'last_check_time': self.last_check_time.isoformat() if self.last_check_time else None,
            'last_result': self.last_result.to_dict() if self.last_result else None,
            'dry_run': self.config.dry_run,
        }
