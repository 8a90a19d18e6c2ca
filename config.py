"""
Configuration management for CLRebalancer.
Loads settings from environment variables (and an optional .env file) into
one immutable Config value that is handed to every component.
"""
import os
import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional, Mapping
from dotenv import load_dotenv

from exceptions import ConfigurationError

logger = logging.getLogger(__name__)

VALID_NETWORKS = ('mainnet', 'testnet')
VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'WARN', 'ERROR')

DEFAULT_GAS_COIN_TYPE = '0x2::sui::SUI'


def _get_str(env: Mapping[str, str], key: str, default: str = '') -> str:
    value = env.get(key)
    return value.strip() if value else default


def _get_int(env: Mapping[str, str], key: str, default: Optional[int], errors: list) -> Optional[int]:
    raw = _get_str(env, key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        errors.append(f"{key} must be an integer, got {raw!r}")
        return default


def _get_float(env: Mapping[str, str], key: str, default: float, errors: list) -> float:
    raw = _get_str(env, key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        errors.append(f"{key} must be a number, got {raw!r}")
        return default


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = _get_str(env, key)
    if not raw:
        return default
    return raw.lower() in ('true', '1', 'yes')


def _resolve_private_key(env: Mapping[str, str], errors: list) -> Optional[str]:
    """
    Resolve PRIVATE_KEY, which may only reference another environment variable
    using the ${VARIABLE_NAME} format.
    """
    reference = _get_str(env, 'PRIVATE_KEY')
    if not reference:
        return None

    if not (reference.startswith('${') and reference.endswith('}')):
        errors.append("PRIVATE_KEY must reference an environment variable using ${VARIABLE_NAME} format. "
                      "Never store private keys directly in files!")
        return None

    env_var_name = reference[2:-1]
    value = env.get(env_var_name)
    if not value:
        errors.append(f"Environment variable '{env_var_name}' referenced in PRIVATE_KEY is not set")
        return None
    return value


@dataclass(frozen=True)
class Config:
    """Configuration for the rebalance bot"""

    pool_address: str
    network: str = 'mainnet'
    rpc_url: str = ''
    private_key: Optional[str] = None
    wallet_address: str = ''

    # Bot settings
    position_id: Optional[str] = None
    check_interval: int = 300
    rebalance_threshold: float = 0.05

    # Range settings
    lower_tick: Optional[int] = None
    upper_tick: Optional[int] = None
    range_width: Optional[int] = None

    # Position sizing
    token_a_amount: Optional[int] = None
    token_b_amount: Optional[int] = None
    balance_fraction: float = 0.1
    min_deposit_amount: int = 1000

    # Risk management
    max_slippage: float = 0.01
    gas_budget: int = 50_000_000
    gas_coin_type: str = DEFAULT_GAS_COIN_TYPE
    min_gas_balance: int = 100_000_000

    # Execution
    dry_run: bool = False
    max_tx_attempts: int = 2
    retry_delay_seconds: float = 2.0
    consolidation_wait_seconds: float = 2.0
    client_adapter: str = 'simulator'

    # Logging
    log_level: str = 'INFO'
    log_file: Optional[str] = None
    verbose_logs: bool = False

    # Telegram alerting
    telegram_bot_token: str = ''
    telegram_chat_id: str = ''

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    @property
    def has_fixed_range(self) -> bool:
        return self.lower_tick is not None and self.upper_tick is not None

    @property
    def has_fixed_amounts(self) -> bool:
        return self.token_a_amount is not None and self.token_b_amount is not None

    @property
    def effective_log_level(self) -> str:
        return 'DEBUG' if self.verbose_logs else self.log_level

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None) -> 'Config':
        """
        Build a validated Config from environment variables.

        Args:
            env: Mapping to read instead of os.environ (no .env loading when given)
            dotenv_path: Optional explicit .env path

        Returns:
            Validated Config

        Raises:
            ConfigurationError: If any setting is missing or invalid
        """
        if env is None:
            # Shell variables take precedence over .env entries
            load_dotenv(dotenv_path, override=False)
            env = os.environ

        errors = []
        config = cls(
            pool_address=_get_str(env, 'POOL_ADDRESS'),
            network=_get_str(env, 'NETWORK', 'mainnet').lower(),
            rpc_url=_get_str(env, 'RPC_URL'),
            private_key=_resolve_private_key(env, errors),
            wallet_address=_get_str(env, 'WALLET_ADDRESS'),
            position_id=_get_str(env, 'POSITION_ID') or None,
            check_interval=_get_int(env, 'CHECK_INTERVAL', 300, errors),
            rebalance_threshold=_get_float(env, 'REBALANCE_THRESHOLD', 0.05, errors),
            lower_tick=_get_int(env, 'LOWER_TICK', None, errors),
            upper_tick=_get_int(env, 'UPPER_TICK', None, errors),
            range_width=_get_int(env, 'RANGE_WIDTH', None, errors),
            token_a_amount=_get_int(env, 'TOKEN_A_AMOUNT', None, errors),
            token_b_amount=_get_int(env, 'TOKEN_B_AMOUNT', None, errors),
            balance_fraction=_get_float(env, 'BALANCE_FRACTION', 0.1, errors),
            min_deposit_amount=_get_int(env, 'MIN_DEPOSIT_AMOUNT', 1000, errors),
            max_slippage=_get_float(env, 'MAX_SLIPPAGE', 0.01, errors),
            gas_budget=_get_int(env, 'GAS_BUDGET', 50_000_000, errors),
            gas_coin_type=_get_str(env, 'GAS_COIN_TYPE', DEFAULT_GAS_COIN_TYPE),
            min_gas_balance=_get_int(env, 'MIN_GAS_BALANCE', 100_000_000, errors),
            dry_run=_get_bool(env, 'DRY_RUN', False),
            max_tx_attempts=_get_int(env, 'MAX_TX_ATTEMPTS', 2, errors),
            retry_delay_seconds=_get_float(env, 'RETRY_DELAY_SECONDS', 2.0, errors),
            consolidation_wait_seconds=_get_float(env, 'CONSOLIDATION_WAIT_SECONDS', 2.0, errors),
            client_adapter=_get_str(env, 'CLIENT_ADAPTER', 'simulator').lower(),
            log_level=_get_str(env, 'LOG_LEVEL', 'INFO').upper(),
            log_file=_get_str(env, 'LOG_FILE') or None,
            verbose_logs=_get_bool(env, 'VERBOSE_LOGS', False),
            telegram_bot_token=_get_str(env, 'TELEGRAM_BOT_TOKEN'),
            telegram_chat_id=_get_str(env, 'TELEGRAM_CHAT_ID'),
        )
        config.validate_config(errors)
        return config

    def validate_config(self, errors: Optional[list] = None) -> bool:
        """
        Validate that required configuration is present and consistent.

        Args:
            errors: Problems already found while parsing

        Returns:
            True if valid

        Raises:
            ConfigurationError: Listing every problem found
        """
        errors = list(errors or [])

        if self.network not in VALID_NETWORKS:
            errors.append(f"Invalid NETWORK value: {self.network}. Must be 'mainnet' or 'testnet'")

        if not self.pool_address:
            errors.append("POOL_ADDRESS is required")

        if self.client_adapter != 'simulator' and not self.private_key:
            errors.append("PRIVATE_KEY is required")

        if self.check_interval is None or self.check_interval <= 0:
            errors.append(f"CHECK_INTERVAL must be positive, got {self.check_interval}")

        if not 0 < self.rebalance_threshold < 1:
            errors.append(f"REBALANCE_THRESHOLD must be between 0 and 1, got {self.rebalance_threshold}")

        if (self.lower_tick is None) != (self.upper_tick is None):
            errors.append("LOWER_TICK and UPPER_TICK must be set together")
        elif self.has_fixed_range and self.lower_tick >= self.upper_tick:
            errors.append(f"LOWER_TICK ({self.lower_tick}) must be below UPPER_TICK ({self.upper_tick})")

        if self.range_width is not None and self.range_width <= 0:
            errors.append(f"RANGE_WIDTH must be positive, got {self.range_width}")

        if (self.token_a_amount is None) != (self.token_b_amount is None):
            errors.append("TOKEN_A_AMOUNT and TOKEN_B_AMOUNT must be set together")
        elif self.has_fixed_amounts and (self.token_a_amount <= 0 or self.token_b_amount <= 0):
            errors.append("TOKEN_A_AMOUNT and TOKEN_B_AMOUNT must be positive")

        if not 0 < self.balance_fraction <= 1:
            errors.append(f"BALANCE_FRACTION must be in (0, 1], got {self.balance_fraction}")

        if not 0 <= self.max_slippage < 1:
            errors.append(f"MAX_SLIPPAGE must be in [0, 1), got {self.max_slippage}")

        if self.gas_budget is None or self.gas_budget <= 0:
            errors.append(f"GAS_BUDGET must be positive, got {self.gas_budget}")

        if self.max_tx_attempts is None or self.max_tx_attempts < 1:
            errors.append(f"MAX_TX_ATTEMPTS must be at least 1, got {self.max_tx_attempts}")

        if self.retry_delay_seconds < 0 or self.consolidation_wait_seconds < 0:
            errors.append("RETRY_DELAY_SECONDS and CONSOLIDATION_WAIT_SECONDS cannot be negative")

        if self.log_level not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {list(VALID_LOG_LEVELS)}, got {self.log_level}")

        if errors:
            raise ConfigurationError("Configuration validation failed:\n" + "\n".join(f"- {error}" for error in errors))

        return True

    def get_chain_info(self) -> Dict[str, Any]:
        """Summary safe to log (no credentials)"""
        return {
            'network': self.network,
            'rpc_url': self.rpc_url or 'default',
            'pool_address': self.pool_address,
            'position_id': self.position_id,
            'client_adapter': self.client_adapter,
            'dry_run': self.dry_run,
        }
