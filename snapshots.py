"""
Data records exchanged between the rebalance engine and its ledger/protocol clients.
"""
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional, Tuple

from exceptions import ConfigurationError

EXECUTION_SUCCESS = 'success'
EXECUTION_FAILURE = 'failure'


@dataclass(frozen=True)
class PoolSnapshot:
    """Pool state fetched fresh on every check"""
    pool_id: str
    current_tick: int
    current_sqrt_price: int
    tick_spacing: int
    coin_type_a: str
    coin_type_b: str

    def __post_init__(self):
        if self.tick_spacing <= 0:
            raise ConfigurationError(f"tick_spacing must be positive, got {self.tick_spacing}")


@dataclass(frozen=True)
class PositionSnapshot:
    """One open position owned by the wallet"""
    position_id: str
    pool_id: str
    tick_lower: int
    tick_upper: int
    liquidity: int
    coin_type_a: str = ''
    coin_type_b: str = ''
    in_range: bool = True

    @property
    def has_liquidity(self) -> bool:
        return self.liquidity > 0

    @property
    def tick_range(self) -> 'TargetRange':
        return TargetRange(self.tick_lower, self.tick_upper)


@dataclass(frozen=True)
class TargetRange:
    lower: int
    upper: int

    def __post_init__(self):
        if self.lower >= self.upper:
            raise ValueError(f"Range lower ({self.lower}) must be below upper ({self.upper})")

    @property
    def width(self) -> int:
        return self.upper - self.lower

    def as_dict(self) -> Dict[str, int]:
        return {'tick_lower': self.lower, 'tick_upper': self.upper}


@dataclass(frozen=True)
class BalanceRecord:
    """One fragment of an asset's holdings (a coin object)"""
    record_id: str
    asset_type: str
    amount: int


@dataclass
class ExecutionResult:
    """Ledger response to a submitted transaction"""
    status: str
    digest: Optional[str] = None
    error: Optional[str] = None
    created_objects: List[Tuple[str, str]] = field(default_factory=list)  # (object_id, object_type)

    @property
    def succeeded(self) -> bool:
        return self.status == EXECUTION_SUCCESS

    def find_created(self, type_fragment: str) -> Optional[str]:
        """Id of the first created object whose type contains type_fragment"""
        for object_id, object_type in self.created_objects:
            if type_fragment in object_type:
                return object_id
        return None


@dataclass(frozen=True)
class RemoveLiquidityRequest:
    pool_id: str
    position_id: str
    liquidity: int
    coin_type_a: str
    coin_type_b: str
    min_amount_a: int = 0
    min_amount_b: int = 0
    collect_fee: bool = True
    gas_budget: int = 50_000_000


@dataclass(frozen=True)
class AddLiquidityRequest:
    pool_id: str
    tick_lower: int
    tick_upper: int
    amount_a: int
    amount_b: int
    coin_type_a: str
    coin_type_b: str
    slippage: float = 0.01
    fix_amount_a: bool = True
    is_open: bool = True
    position_id: str = ''
    collect_fee: bool = False
    gas_budget: int = 50_000_000


@dataclass(frozen=True)
class SizingPolicy:
    """
    How much of each token goes into a new position.

    Fixed amounts win when both are set; otherwise a fraction of the fresh
    wallet balance is used, floored at min_amount and capped at the balance.
    """
    fixed_amount_a: Optional[int] = None
    fixed_amount_b: Optional[int] = None
    balance_fraction: float = 0.1
    min_amount: int = 1000

    @property
    def uses_fixed_amounts(self) -> bool:
        return self.fixed_amount_a is not None and self.fixed_amount_b is not None

    def amount_from_balance(self, balance: int) -> int:
        return min(balance, max(self.min_amount, int(balance * self.balance_fraction)))

    @classmethod
    def from_config(cls, config) -> 'SizingPolicy':
        return cls(
            fixed_amount_a=config.token_a_amount,
            fixed_amount_b=config.token_b_amount,
            balance_fraction=config.balance_fraction,
            min_amount=config.min_deposit_amount,
        )


@dataclass
class RebalanceResult:
    """Outcome of one orchestration run"""
    success: bool
    transaction_digest: Optional[str] = None
    error: Optional[str] = None
    old_range: Optional[TargetRange] = None
    new_range: Optional[TargetRange] = None
    new_position_id: Optional[str] = None
    dry_run: bool = False
    error_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
