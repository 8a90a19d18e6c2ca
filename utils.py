"""
CLRebalancer - Utility Functions
Retry primitive, tick helpers, logging and error handling utilities
"""
import logging
import os
import time
import functools
from typing import Dict, Any, Optional, Callable, TypeVar

from exceptions import ConsolidationFailed

logger = logging.getLogger(__name__)

T = TypeVar('T')


class TickUtils:
    """Tick grid helpers"""

    @staticmethod
    def round_tick_down(tick: int, tick_spacing: int) -> int:
        """Round tick down to the tick-spacing grid (floor, also for negative ticks)."""
        return (tick // tick_spacing) * tick_spacing

    @staticmethod
    def round_tick_up(tick: int, tick_spacing: int) -> int:
        """Round tick up to the tick-spacing grid."""
        return -((-tick) // tick_spacing) * tick_spacing

    @staticmethod
    def is_aligned(tick: int, tick_spacing: int) -> bool:
        return tick % tick_spacing == 0

    @staticmethod
    def tick_to_price(tick: int) -> float:
        """
        Convert tick to raw price (token B per token A, before decimal adjustment)

        Args:
            tick: Tick value

        Returns:
            Price as float
        """
        return 1.0001 ** tick


def retry_with_delay(
    operation: Callable[[], T],
    max_attempts: int = 2,
    delay: float = 2.0,
    is_success: Optional[Callable[[T], bool]] = None,
    description: str = "operation",
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """
    Call operation until it succeeds or max_attempts is reached.

    An attempt fails when it raises, or when is_success is given and returns
    False for the value it produced. A fixed delay separates attempts.

    Args:
        operation: Zero-argument callable to run
        max_attempts: Total number of attempts (>= 1)
        delay: Seconds to wait between attempts
        is_success: Optional predicate applied to the returned value
        description: Name used in log lines and the final error
        sleep: Wait function (time.sleep by default)

    Returns:
        The value of the first successful attempt

    Raises:
        The last exception raised by operation, or RuntimeError when the last
        attempt returned a value rejected by is_success
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
    sleep = sleep or time.sleep

    last_error: Optional[BaseException] = None
    for attempt in range(1, max_attempts + 1):
        try:
            result = operation()
            if is_success is None or is_success(result):
                if attempt > 1:
                    logger.info(f"{description} succeeded on attempt {attempt}/{max_attempts}")
                return result
            last_error = RuntimeError(f"{description} returned an unsuccessful result: {result}")
        except Exception as e:
            last_error = e

        logger.warning(f"{description} failed (attempt {attempt}/{max_attempts}): {last_error}")
        if attempt < max_attempts:
            logger.info(f"Retrying {description} in {delay:.1f} seconds...")
            sleep(delay)

    logger.error(f"{description} failed after {max_attempts} attempts. Last error: {last_error}")
    raise last_error


def retry_on_failure(max_attempts: int = 3, delay: float = 2.0):
    """
    Decorator form of retry_with_delay for read calls

    Args:
        max_attempts: Total number of attempts
        delay: Delay between attempts in seconds
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return retry_with_delay(
                lambda: func(*args, **kwargs),
                max_attempts=max_attempts,
                delay=delay,
                description=func.__name__,
            )
        return wrapper
    return decorator


class ErrorHandler:
    """Error handling utilities"""

    @staticmethod
    def handle_transaction_error(error: Exception) -> Dict[str, Any]:
        """
        Classify transaction errors and provide meaningful messages

        Args:
            error: Exception object

        Returns:
            Error information dictionary
        """
        error_msg = str(error)
        lowered = error_msg.lower()

        if isinstance(error, ConsolidationFailed) or "fragmented" in lowered:
            return {
                'type': 'consolidation_failed',
                'message': 'Balance records could not be merged into one record per asset',
                'suggestion': 'Removed liquidity is idle in the wallet; the next cycle retries the merge and re-adds it'
            }
        elif "insufficient" in lowered or "balance" in lowered:
            return {
                'type': 'insufficient_balance',
                'message': 'Insufficient token balance or liquidity',
                'suggestion': 'Ensure the wallet holds both pool tokens and enough gas'
            }
        elif "gas" in lowered:
            return {
                'type': 'gas_budget',
                'message': 'Transaction gas budget exceeded',
                'suggestion': 'Increase GAS_BUDGET or top up the gas coin'
            }
        elif "slippage" in lowered:
            return {
                'type': 'slippage',
                'message': 'Price slippage too high',
                'suggestion': 'Increase MAX_SLIPPAGE or reduce position size'
            }
        elif "version" in lowered or "locked" in lowered or "not available for consumption" in lowered:
            return {
                'type': 'stale_object',
                'message': 'Balance record state changed before the transaction executed',
                'suggestion': 'Retry after balance records are consolidated and visible'
            }
        elif "not found" in lowered or "position" in lowered:
            return {
                'type': 'position_not_found',
                'message': 'Position not found or already closed',
                'suggestion': 'Check POSITION_ID'
            }
        elif "tick" in lowered or "range" in lowered:
            return {
                'type': 'invalid_range',
                'message': 'Invalid tick range',
                'suggestion': 'Check LOWER_TICK, UPPER_TICK and RANGE_WIDTH configuration'
            }
        else:
            return {
                'type': 'unknown',
                'message': error_msg,
                'suggestion': 'Check transaction parameters and try again'
            }


class Logger:
    """Logging utilities"""

    @staticmethod
    def setup_logging(level: str = "INFO", log_file: str = None):
        """
        Set up logging configuration

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_file: Optional log file path
        """
        log_level = getattr(logging, level.upper())

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)

        handlers = [console_handler]
        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

        logging.basicConfig(
            level=log_level,
            handlers=handlers,
            force=True
        )

    @staticmethod
    def log_transaction(digest: Optional[str], operation: str, success: bool, details: Dict[str, Any] = None):
        """
        Log transaction details

        Args:
            digest: Transaction digest
            operation: Operation type (add_liquidity, remove_liquidity, merge)
            success: Whether transaction was successful
            details: Additional details
        """
        status = "SUCCESS" if success else "FAILED"
        logger.info(f"Transaction {status}: {operation} - {digest or 'n/a'}")

        if details:
            for key, value in details.items():
                logger.info(f"  {key}: {value}")
