"""
In-memory ledger and liquidity protocol for CLRebalancer.

Simulates pools, positions and coin-style balance records (including the
fragmentation a removal leaves behind), so the bot can run as a paper trader
and the rebalance engine can be exercised without a network.
"""
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ledger_client import LedgerClient, ProtocolClient
from position_monitor import is_position_in_range
from snapshots import (
    EXECUTION_FAILURE,
    EXECUTION_SUCCESS,
    AddLiquidityRequest,
    BalanceRecord,
    ExecutionResult,
    PoolSnapshot,
    PositionSnapshot,
    RemoveLiquidityRequest,
)
from utils import TickUtils

logger = logging.getLogger(__name__)

POSITION_TYPE = '0x1eabed72::position::Position'
PAPER_COIN_TYPE_A = '0x2::sui::SUI'
PAPER_COIN_TYPE_B = '0xdba34672::usdc::USDC'


@dataclass
class SimulatedPool:
    pool_id: str
    current_tick: int
    tick_spacing: int
    coin_type_a: str
    coin_type_b: str

    def snapshot(self) -> PoolSnapshot:
        sqrt_price = int((TickUtils.tick_to_price(self.current_tick) ** 0.5) * 2 ** 64)
        return PoolSnapshot(
            pool_id=self.pool_id,
            current_tick=self.current_tick,
            current_sqrt_price=sqrt_price,
            tick_spacing=self.tick_spacing,
            coin_type_a=self.coin_type_a,
            coin_type_b=self.coin_type_b,
        )


@dataclass
class SimulatedPosition:
    position_id: str
    pool_id: str
    owner: str
    tick_lower: int
    tick_upper: int
    amount_a: int = 0
    amount_b: int = 0

    @property
    def liquidity(self) -> int:
        return self.amount_a + self.amount_b


@dataclass
class SimulatedCoin:
    coin_id: str
    owner: str
    coin_type: str
    amount: int


@dataclass
class SimulatedTransaction:
    kind: str
    request: Any


@dataclass
class SubmittedTransaction:
    digest: str
    kind: str
    status: str
    detail: Dict[str, Any] = field(default_factory=dict)


class SimulatedChain:
    """
    Shared state behind SimulatedLedgerClient and SimulatedProtocolClient.

    Failure injection:
        fail_next_executions: next N submissions report a failure status
        raise_next_executions: next N submissions raise ConnectionError
        merge_visibility_lag: reads after a merge that still show the old records
        require_single_record: add-liquidity aborts when an input asset is fragmented
        tick_drift: max ticks the price moves on each pool read
    """

    def __init__(self, seed: Optional[int] = None):
        self.pools: Dict[str, SimulatedPool] = {}
        self.positions: Dict[str, SimulatedPosition] = {}
        self.coins: Dict[str, SimulatedCoin] = {}
        self.transactions: List[SubmittedTransaction] = []
        self.fail_next_executions = 0
        self.raise_next_executions = 0
        self.merge_visibility_lag = 0
        self.require_single_record = True
        self.tick_drift = 0
        self._stale_views: Dict[Tuple[str, str], Tuple[int, List[BalanceRecord]]] = {}
        self._counter = 0
        self._random = random.Random(seed)

    # ------------------------------------------------------------------
    # Setup helpers
    # ------------------------------------------------------------------

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"0x{prefix}{self._counter:06x}"

    def add_pool(self, pool_id: str, current_tick: int, tick_spacing: int, coin_type_a: str, coin_type_b: str) -> SimulatedPool:
        pool = SimulatedPool(pool_id, current_tick, tick_spacing, coin_type_a, coin_type_b)
        self.pools[pool_id] = pool
        return pool

    def set_current_tick(self, pool_id: str, tick: int):
        self.pools[pool_id].current_tick = tick

    def mint_coin(self, owner: str, coin_type: str, amount: int) -> str:
        coin_id = self._next_id('c')
        self.coins[coin_id] = SimulatedCoin(coin_id, owner, coin_type, amount)
        return coin_id

    def open_position(self, owner: str, pool_id: str, tick_lower: int, tick_upper: int,
                      amount_a: int = 0, amount_b: int = 0) -> str:
        """Create a position directly, without spending wallet balances"""
        position_id = self._next_id('p')
        self.positions[position_id] = SimulatedPosition(
            position_id, pool_id, owner, tick_lower, tick_upper, amount_a, amount_b
        )
        return position_id

    def close_position(self, position_id: str):
        """Delete an emptied position. Removing liquidity alone leaves it listed."""
        position = self.positions[position_id]
        if position.liquidity:
            raise ValueError(f"Position {position_id} still holds liquidity {position.liquidity}")
        del self.positions[position_id]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def read_pool(self, pool_id: str) -> PoolSnapshot:
        if pool_id not in self.pools:
            raise KeyError(f"Pool {pool_id} not found")
        pool = self.pools[pool_id]
        if self.tick_drift:
            pool.current_tick += self._random.randint(-self.tick_drift, self.tick_drift)
        return pool.snapshot()

    def read_positions(self, owner: str) -> List[PositionSnapshot]:
        snapshots = []
        for position in self.positions.values():
            if position.owner != owner:
                continue
            pool = self.pools[position.pool_id]
            snapshots.append(PositionSnapshot(
                position_id=position.position_id,
                pool_id=position.pool_id,
                tick_lower=position.tick_lower,
                tick_upper=position.tick_upper,
                liquidity=position.liquidity,
                coin_type_a=pool.coin_type_a,
                coin_type_b=pool.coin_type_b,
                in_range=is_position_in_range(position.tick_lower, position.tick_upper, pool.current_tick),
            ))
        return snapshots

    def _current_records(self, owner: str, coin_type: str) -> List[BalanceRecord]:
        return [
            BalanceRecord(coin.coin_id, coin.coin_type, coin.amount)
            for coin in self.coins.values()
            if coin.owner == owner and coin.coin_type == coin_type
        ]

    def total_balance(self, owner: str, coin_type: str) -> int:
        """Settled balance, unaffected by merge visibility lag"""
        return sum(record.amount for record in self._current_records(owner, coin_type))

    def read_balance_records(self, owner: str, coin_type: str) -> List[BalanceRecord]:
        key = (owner, coin_type)
        if key in self._stale_views:
            remaining, stale = self._stale_views[key]
            if remaining > 1:
                self._stale_views[key] = (remaining - 1, stale)
            else:
                del self._stale_views[key]
            return list(stale)
        return self._current_records(owner, coin_type)

    def has_transaction(self, digest: str) -> bool:
        return any(tx.digest == digest for tx in self.transactions)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _injected_failure(self, kind: str) -> Optional[ExecutionResult]:
        if self.raise_next_executions > 0:
            self.raise_next_executions -= 1
            raise ConnectionError(f"simulated network error while submitting {kind}")
        if self.fail_next_executions > 0:
            self.fail_next_executions -= 1
            return self._record(kind, EXECUTION_FAILURE, error='simulated execution failure')
        return None

    def _record(self, kind: str, status: str, error: str = None,
                created: List[Tuple[str, str]] = None, **detail) -> ExecutionResult:
        digest = self._next_id('d')
        self.transactions.append(SubmittedTransaction(digest, kind, status, detail))
        return ExecutionResult(status=status, digest=digest, error=error, created_objects=created or [])

    def merge(self, owner: str, target_id: str, source_ids: List[str]) -> ExecutionResult:
        failure = self._injected_failure('merge')
        if failure:
            return failure

        target = self.coins.get(target_id)
        sources = [self.coins.get(source_id) for source_id in source_ids]
        if target is None or target.owner != owner or any(
                s is None or s.owner != owner or s.coin_type != target.coin_type for s in sources):
            return self._record('merge', EXECUTION_FAILURE, error='invalid merge inputs')

        before = self._current_records(owner, target.coin_type)
        for source in sources:
            target.amount += source.amount
            del self.coins[source.coin_id]

        if self.merge_visibility_lag > 0:
            self._stale_views[(owner, target.coin_type)] = (self.merge_visibility_lag, before)
        return self._record('merge', EXECUTION_SUCCESS, target=target_id, merged=len(sources))

    def execute(self, owner: str, transaction: SimulatedTransaction) -> ExecutionResult:
        failure = self._injected_failure(transaction.kind)
        if failure:
            return failure
        if transaction.kind == 'remove_liquidity':
            return self._remove_liquidity(owner, transaction.request)
        if transaction.kind == 'add_liquidity':
            return self._add_liquidity(owner, transaction.request)
        return self._record(transaction.kind, EXECUTION_FAILURE, error=f"unknown transaction kind {transaction.kind}")

    def _remove_liquidity(self, owner: str, request: RemoveLiquidityRequest) -> ExecutionResult:
        position = self.positions.get(request.position_id)
        if position is None or position.owner != owner:
            return self._record('remove_liquidity', EXECUTION_FAILURE, error=f"Position {request.position_id} not found")
        if request.liquidity > position.liquidity:
            return self._record('remove_liquidity', EXECUTION_FAILURE, error='insufficient liquidity in position')

        share = request.liquidity / position.liquidity if position.liquidity else 0
        out_a = int(position.amount_a * share)
        out_b = int(position.amount_b * share)
        position.amount_a -= out_a
        position.amount_b -= out_b

        # Settlement lands as new balance records, fragmenting the wallet
        pool = self.pools[position.pool_id]
        if out_a:
            self.mint_coin(owner, pool.coin_type_a, out_a)
        if out_b:
            self.mint_coin(owner, pool.coin_type_b, out_b)
        return self._record('remove_liquidity', EXECUTION_SUCCESS, position=request.position_id,
                            amount_a=out_a, amount_b=out_b)

    def _spend(self, owner: str, coin_type: str, amount: int) -> Optional[str]:
        records = self._current_records(owner, coin_type)
        if self.require_single_record and len(records) > 1:
            return f"multiple input records for {coin_type}; merge before adding liquidity"
        candidates = sorted(records, key=lambda record: record.amount, reverse=True)
        if not candidates or candidates[0].amount < amount:
            return f"insufficient balance of {coin_type}"
        coin = self.coins[candidates[0].record_id]
        coin.amount -= amount
        if coin.amount == 0:
            del self.coins[coin.coin_id]
        return None

    def _add_liquidity(self, owner: str, request: AddLiquidityRequest) -> ExecutionResult:
        pool = self.pools.get(request.pool_id)
        if pool is None:
            return self._record('add_liquidity', EXECUTION_FAILURE, error=f"Pool {request.pool_id} not found")
        if (request.tick_lower >= request.tick_upper
                or request.tick_lower % pool.tick_spacing or request.tick_upper % pool.tick_spacing):
            return self._record('add_liquidity', EXECUTION_FAILURE,
                                error=f"invalid tick range [{request.tick_lower}, {request.tick_upper}]")

        for coin_type, amount in ((pool.coin_type_a, request.amount_a), (pool.coin_type_b, request.amount_b)):
            records = self._current_records(owner, coin_type)
            if self.require_single_record and len(records) > 1:
                return self._record('add_liquidity', EXECUTION_FAILURE,
                                    error=f"multiple input records for {coin_type}; merge before adding liquidity")
            if sum(record.amount for record in records) < amount:
                return self._record('add_liquidity', EXECUTION_FAILURE, error=f"insufficient balance of {coin_type}")

        self._spend(owner, pool.coin_type_a, request.amount_a)
        self._spend(owner, pool.coin_type_b, request.amount_b)
        position_id = self.open_position(owner, pool.pool_id, request.tick_lower, request.tick_upper,
                                         request.amount_a, request.amount_b)
        return self._record('add_liquidity', EXECUTION_SUCCESS, created=[(position_id, POSITION_TYPE)],
                            position=position_id)


class SimulatedLedgerClient(LedgerClient):
    """LedgerClient backed by a SimulatedChain"""

    def __init__(self, chain: SimulatedChain, owner: str):
        self.chain = chain
        self._owner = owner

    @property
    def address(self) -> str:
        return self._owner

    def get_balance_records(self, owner: str, asset_type: str) -> List[BalanceRecord]:
        return self.chain.read_balance_records(owner, asset_type)

    def get_total_balance(self, owner: str, asset_type: str) -> int:
        return self.chain.total_balance(owner, asset_type)

    def merge_balance_records(self, target_id: str, source_ids: List[str], gas_budget: int) -> ExecutionResult:
        return self.chain.merge(self._owner, target_id, source_ids)

    def sign_and_execute(self, transaction: Any, gas_budget: int) -> ExecutionResult:
        if not isinstance(transaction, SimulatedTransaction):
            raise TypeError(f"Unsupported transaction object: {type(transaction).__name__}")
        return self.chain.execute(self._owner, transaction)

    def wait_for_transaction(self, digest: str) -> None:
        if not self.chain.has_transaction(digest):
            raise LookupError(f"Transaction {digest} not found")


class SimulatedProtocolClient(ProtocolClient):
    """ProtocolClient backed by a SimulatedChain"""

    def __init__(self, chain: SimulatedChain):
        self.chain = chain

    def get_pool(self, pool_id: str) -> PoolSnapshot:
        return self.chain.read_pool(pool_id)

    def get_positions(self, owner: str) -> List[PositionSnapshot]:
        return self.chain.read_positions(owner)

    def build_remove_liquidity_transaction(self, request: RemoveLiquidityRequest) -> SimulatedTransaction:
        return SimulatedTransaction('remove_liquidity', request)

    def build_add_liquidity_transaction(self, request: AddLiquidityRequest) -> SimulatedTransaction:
        return SimulatedTransaction('add_liquidity', request)


def build_paper_chain(pool_id: str, owner: str, tick_spacing: int = 60, current_tick: int = 0,
                      tick_drift: int = 40, seed: Optional[int] = None) -> SimulatedChain:
    """
    A funded paper-trading chain: one pool and a wallet whose balances are
    split across several records per asset.
    """
    chain = SimulatedChain(seed=seed)
    chain.add_pool(pool_id, current_tick, tick_spacing, PAPER_COIN_TYPE_A, PAPER_COIN_TYPE_B)
    for amount in (40_000_000_000, 35_000_000_000, 25_000_000_000):
        chain.mint_coin(owner, PAPER_COIN_TYPE_A, amount)
    for amount in (150_000_000, 100_000_000):
        chain.mint_coin(owner, PAPER_COIN_TYPE_B, amount)
    chain.tick_drift = tick_drift
    logger.info(f"Paper chain ready: pool={pool_id} tick={current_tick} spacing={tick_spacing} owner={owner}")
    return chain
