"""
Core rebalancing logic for CLRebalancer.
Reads pool and position state, decides whether to act, and moves liquidity
from the old range to a new range: remove -> consolidate -> add.
"""
import logging
import time
from typing import Callable, Optional, Tuple

from balance_consolidator import BalanceConsolidator
from config import Config
from exceptions import (
    InsufficientBalanceError,
    PositionNotFound,
    TransactionExecutionError,
)
from ledger_client import LedgerClient, ProtocolClient
from models import BaseRangeModel, ModelFactory
from position_monitor import PositionMonitor
from snapshots import (
    AddLiquidityRequest,
    ExecutionResult,
    PoolSnapshot,
    PositionSnapshot,
    RebalanceResult,
    RemoveLiquidityRequest,
    SizingPolicy,
    TargetRange,
)
from strategy import RebalanceStrategy
from utils import ErrorHandler, Logger, retry_with_delay

logger = logging.getLogger(__name__)

POSITION_OBJECT_TYPE = 'Position'


class AutomatedRebalancer:
    """Rebalance orchestrator for a single wallet and pool"""

    def __init__(
        self,
        config: Config,
        ledger: LedgerClient,
        protocol: ProtocolClient,
        range_model: Optional[BaseRangeModel] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the rebalancer

        Args:
            config: Validated configuration
            ledger: Ledger client bound to the managed wallet
            protocol: Liquidity protocol client
            range_model: Range model (defaults to the one selected by config)
            sleep: Wait function used between retries and verification reads
        """
        self.config = config
        self.ledger = ledger
        self.protocol = protocol
        self.monitor = PositionMonitor(protocol)
        self.strategy = RebalanceStrategy(config.rebalance_threshold)
        self.range_model = range_model or ModelFactory.create_for_config(config)
        self.sizing = SizingPolicy.from_config(config)
        self.consolidator = BalanceConsolidator(
            ledger,
            gas_budget=config.gas_budget,
            verify_wait_seconds=config.consolidation_wait_seconds,
            sleep=sleep,
        )
        self.dry_run = config.dry_run
        self._sleep = sleep

        # Follows the position opened by the last successful rebalance
        self.tracked_position_id = config.position_id

        if self.dry_run:
            logger.warning("DRY RUN MODE ENABLED - No real transactions will be executed")

        logger.info(f"Automated Rebalancer initialized (range model: {self.range_model.model_name}, "
                    f"sizing: {'fixed amounts' if self.sizing.uses_fixed_amounts else 'balance fraction'})")

    # ------------------------------------------------------------------
    # Check cycle
    # ------------------------------------------------------------------

    def check_and_rebalance(self, pool_id: str) -> Optional[RebalanceResult]:
        """
        Run one check cycle against pool_id.

        Args:
            pool_id: Pool object id

        Returns:
            RebalanceResult when an action was attempted, None when nothing was needed

        Raises:
            StateReadError: If pool or position state cannot be read
        """
        pool = self.monitor.get_pool_info(pool_id)
        owner = self.ledger.address

        if self.tracked_position_id:
            try:
                position = self.monitor.find_position(owner, self.tracked_position_id)
            except PositionNotFound as e:
                logger.warning(f"Tracked position not found for {owner}: {e}")
                return None
            if position.pool_id != pool_id:
                logger.warning(f"Tracked position {position.position_id} belongs to pool {position.pool_id}, "
                               f"not {pool_id} - skipping")
                return None
        else:
            position = self.monitor.select_position(owner, pool_id)
            if position is None:
                logger.info("No positions found for pool - creating new position")
                return self.create_new_position(pool)

        if not position.has_liquidity:
            logger.warning(f"Position {position.position_id} holds no liquidity - re-adding at a fresh range")
            return self.rebalance_position(position, pool)

        if not self.strategy.should_rebalance(position, pool):
            logger.info(f"Position {position.position_id} is in range "
                        f"[{position.tick_lower}, {position.tick_upper}] at tick {pool.current_tick} "
                        f"- no rebalance needed")
            return None

        return self.rebalance_position(position, pool)

    def rebalance_position(self, position: PositionSnapshot, pool: PoolSnapshot) -> RebalanceResult:
        """
        Move the position's liquidity to a range around the current tick.

        Failures are reported in the result. Steps already committed on the
        ledger (for example a completed removal) stay committed.
        """
        old_range = position.tick_range
        new_range = None
        try:
            new_range = self.range_model.calculate_range(pool)
            logger.info(f"Rebalancing position {position.position_id}: current tick {pool.current_tick}, "
                        f"old range [{old_range.lower}, {old_range.upper}], "
                        f"new range [{new_range.lower}, {new_range.upper}]")

            if position.has_liquidity and self.strategy.is_range_unchanged(old_range, new_range, pool.tick_spacing):
                logger.info("Range unchanged - skipping rebalance")
                return RebalanceResult(success=True, old_range=old_range, new_range=new_range)

            if self.dry_run:
                logger.info(f"[DRY RUN] Would rebalance position {position.position_id} "
                            f"from [{old_range.lower}, {old_range.upper}] to [{new_range.lower}, {new_range.upper}] "
                            f"(liquidity {position.liquidity})")
                return RebalanceResult(success=True, old_range=old_range, new_range=new_range, dry_run=True)

            if position.has_liquidity:
                self.remove_liquidity(position, pool)
                logger.info("Liquidity removed from old position")
            else:
                logger.info("Old position has no liquidity - skipping removal")

            self.consolidator.consolidate_all([pool.coin_type_a, pool.coin_type_b])

            add_result = self.add_liquidity(pool, new_range)
            new_position_id = self._track_new_position(add_result)

            logger.info(f"Rebalance completed successfully: [{old_range.lower}, {old_range.upper}] -> "
                        f"[{new_range.lower}, {new_range.upper}] digest={add_result.digest}")
            return RebalanceResult(
                success=True,
                transaction_digest=add_result.digest,
                old_range=old_range,
                new_range=new_range,
                new_position_id=new_position_id,
            )
        except Exception as e:
            error_info = ErrorHandler.handle_transaction_error(e)
            logger.error(f"Rebalance failed: {e} ({error_info['type']}: {error_info['suggestion']})")
            return RebalanceResult(success=False, error=str(e), old_range=old_range, new_range=new_range,
                                   error_type=type(e).__name__)

    def create_new_position(self, pool: PoolSnapshot) -> RebalanceResult:
        """Open a position when the wallet has none in the pool"""
        new_range = None
        try:
            if self.config.has_fixed_range:
                new_range = TargetRange(self.config.lower_tick, self.config.upper_tick)
                if new_range.lower % pool.tick_spacing or new_range.upper % pool.tick_spacing:
                    logger.warning(f"Configured range [{new_range.lower}, {new_range.upper}] is not aligned "
                                   f"to tick spacing {pool.tick_spacing}")
            else:
                new_range = self.range_model.calculate_range(pool)

            logger.info(f"Creating new position at [{new_range.lower}, {new_range.upper}] "
                        f"(current tick {pool.current_tick})")

            if self.dry_run:
                logger.info(f"[DRY RUN] Would create new position at [{new_range.lower}, {new_range.upper}]")
                return RebalanceResult(success=True, new_range=new_range, dry_run=True)

            self.consolidator.consolidate_all([pool.coin_type_a, pool.coin_type_b])
            add_result = self.add_liquidity(pool, new_range)
            new_position_id = self._track_new_position(add_result)

            return RebalanceResult(
                success=True,
                transaction_digest=add_result.digest,
                new_range=new_range,
                new_position_id=new_position_id,
            )
        except Exception as e:
            error_info = ErrorHandler.handle_transaction_error(e)
            logger.error(f"Failed to create new position: {e} ({error_info['type']}: {error_info['suggestion']})")
            return RebalanceResult(success=False, error=str(e), new_range=new_range, error_type=type(e).__name__)

    # ------------------------------------------------------------------
    # Ledger-facing steps
    # ------------------------------------------------------------------

    def remove_liquidity(self, position: PositionSnapshot, pool: PoolSnapshot) -> ExecutionResult:
        """Remove all liquidity (and collect fees) from position, accepting any settlement amount"""
        logger.info(f"Removing liquidity: position={position.position_id} liquidity={position.liquidity}")
        request = RemoveLiquidityRequest(
            pool_id=position.pool_id,
            position_id=position.position_id,
            liquidity=position.liquidity,
            coin_type_a=position.coin_type_a or pool.coin_type_a,
            coin_type_b=position.coin_type_b or pool.coin_type_b,
            min_amount_a=0,
            min_amount_b=0,
            collect_fee=True,
            gas_budget=self.config.gas_budget,
        )
        return self._execute_with_retry(
            'remove_liquidity',
            lambda: self.protocol.build_remove_liquidity_transaction(request),
        )

    def add_liquidity(self, pool: PoolSnapshot, target_range: TargetRange) -> ExecutionResult:
        """Open a new position at target_range with the configured sizing policy"""
        amount_a, amount_b = self._resolve_amounts(pool)
        logger.info(f"Adding liquidity: pool={pool.pool_id} range=[{target_range.lower}, {target_range.upper}] "
                    f"amount_a={amount_a} amount_b={amount_b}")
        request = AddLiquidityRequest(
            pool_id=pool.pool_id,
            tick_lower=target_range.lower,
            tick_upper=target_range.upper,
            amount_a=amount_a,
            amount_b=amount_b,
            coin_type_a=pool.coin_type_a,
            coin_type_b=pool.coin_type_b,
            slippage=self.config.max_slippage,
            fix_amount_a=True,
            is_open=True,
            collect_fee=False,
            gas_budget=self.config.gas_budget,
        )
        return self._execute_with_retry(
            'add_liquidity',
            lambda: self.protocol.build_add_liquidity_transaction(request),
        )

    def _resolve_amounts(self, pool: PoolSnapshot) -> Tuple[int, int]:
        if self.sizing.uses_fixed_amounts:
            return self.sizing.fixed_amount_a, self.sizing.fixed_amount_b

        owner = self.ledger.address
        balance_a = self._spendable_balance(owner, pool.coin_type_a)
        balance_b = self._spendable_balance(owner, pool.coin_type_b)
        logger.info(f"Spendable balances: {pool.coin_type_a}={balance_a} {pool.coin_type_b}={balance_b}")

        amount_a = self.sizing.amount_from_balance(balance_a)
        amount_b = self.sizing.amount_from_balance(balance_b)
        if amount_a == 0 or amount_b == 0:
            raise InsufficientBalanceError(
                "Insufficient token balance to add liquidity. Please ensure you have both tokens in your wallet."
            )
        return amount_a, amount_b

    def _spendable_balance(self, owner: str, coin_type: str) -> int:
        """Wallet balance, less GAS_BUDGET when coin_type also pays for gas"""
        balance = self.ledger.get_total_balance(owner, coin_type)
        if coin_type == self.config.gas_coin_type:
            return max(0, balance - self.config.gas_budget)
        return balance

    def _execute_with_retry(self, operation: str, build_transaction: Callable) -> ExecutionResult:
        """
        Build, sign and submit a transaction, retrying on failure.

        The transaction is rebuilt for every attempt so it references current
        object state. Only an execution status of success counts.
        """
        def attempt() -> ExecutionResult:
            transaction = build_transaction()
            result = self.ledger.sign_and_execute(transaction, self.config.gas_budget)
            if not result.succeeded:
                Logger.log_transaction(result.digest, operation, False, {'error': result.error})
                raise TransactionExecutionError(operation, result.error or 'Unknown error', result.digest)
            return result

        try:
            result = retry_with_delay(
                attempt,
                max_attempts=self.config.max_tx_attempts,
                delay=self.config.retry_delay_seconds,
                description=operation,
                sleep=self._sleep,
            )
        except TransactionExecutionError:
            raise
        except Exception as e:
            raise TransactionExecutionError(operation, str(e)) from e

        if result.digest:
            self.ledger.wait_for_transaction(result.digest)
        Logger.log_transaction(result.digest, operation, True)
        return result

    def _track_new_position(self, add_result: ExecutionResult) -> Optional[str]:
        new_position_id = add_result.find_created(POSITION_OBJECT_TYPE)
        if new_position_id is None:
            logger.warning("Position created but could not extract position id from transaction result")
            return None

        logger.info(f"Position created: {new_position_id}")
        if self.tracked_position_id:
            logger.info(f"Now tracking position {new_position_id} (was {self.tracked_position_id})")
            self.tracked_position_id = new_position_id
        return new_position_id
