"""
Ports to the ledger platform and the liquidity protocol.

Concrete adapters (the in-memory simulator, or a deployment's own chain
adapter registered with ClientFactory) implement these two interfaces. The
rebalance engine only talks to the ledger through them.
"""
from abc import ABC, abstractmethod
from typing import Any, List

from snapshots import (
    PoolSnapshot,
    PositionSnapshot,
    BalanceRecord,
    ExecutionResult,
    RemoveLiquidityRequest,
    AddLiquidityRequest,
)


class LedgerClient(ABC):
    """Balance queries, merges and transaction execution for one wallet."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Wallet address that owns positions and balance records"""
        pass

    @abstractmethod
    def get_balance_records(self, owner: str, asset_type: str) -> List[BalanceRecord]:
        """
        List every balance record of asset_type owned by owner.

        Args:
            owner: Wallet address
            asset_type: Fully qualified asset (coin) type

        Returns:
            All records, including zero-amount ones
        """
        pass

    @abstractmethod
    def merge_balance_records(self, target_id: str, source_ids: List[str], gas_budget: int) -> ExecutionResult:
        """
        Submit one transaction merging source_ids into target_id.

        Args:
            target_id: Record that survives the merge
            source_ids: Records folded into the target
            gas_budget: Gas budget for the transaction

        Returns:
            Execution result with status field
        """
        pass

    @abstractmethod
    def sign_and_execute(self, transaction: Any, gas_budget: int) -> ExecutionResult:
        """
        Sign and submit a transaction built by the protocol client.

        Args:
            transaction: Transaction object from ProtocolClient
            gas_budget: Gas budget for the transaction

        Returns:
            Execution result with status, digest and created objects
        """
        pass

    @abstractmethod
    def wait_for_transaction(self, digest: str) -> None:
        """Block until the transaction is final and its effects are readable"""
        pass

    def get_total_balance(self, owner: str, asset_type: str) -> int:
        """Sum of every balance record of asset_type owned by owner"""
        return sum(record.amount for record in self.get_balance_records(owner, asset_type))


class ProtocolClient(ABC):
    """Pool and position queries plus transaction builders for the liquidity protocol."""

    @abstractmethod
    def get_pool(self, pool_id: str) -> PoolSnapshot:
        pass

    @abstractmethod
    def get_positions(self, owner: str) -> List[PositionSnapshot]:
        """Open positions owned by the wallet across all pools"""
        pass

    @abstractmethod
    def build_remove_liquidity_transaction(self, request: RemoveLiquidityRequest) -> Any:
        pass

    @abstractmethod
    def build_add_liquidity_transaction(self, request: AddLiquidityRequest) -> Any:
        pass
