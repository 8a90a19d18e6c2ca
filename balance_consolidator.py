"""
Balance consolidation for CLRebalancer.

Ordinary transfers can leave one asset split across many balance records.
The protocol's add-liquidity builder expects a single input record per asset,
so before opening a position every required asset is merged down to one
record and the merge is verified on the ledger.
"""
import logging
import time
from typing import Callable, Iterable, List

from exceptions import ConsolidationFailed, StateReadError
from ledger_client import LedgerClient
from snapshots import BalanceRecord
from utils import Logger

logger = logging.getLogger(__name__)


class BalanceConsolidator:
    """Merges fragmented balance records into one record per asset"""

    def __init__(
        self,
        ledger: LedgerClient,
        gas_budget: int,
        verify_wait_seconds: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            ledger: Ledger client for the managed wallet
            gas_budget: Gas budget for merge transactions
            verify_wait_seconds: Extra wait before the second verification read
            sleep: Wait function
        """
        self.ledger = ledger
        self.gas_budget = gas_budget
        self.verify_wait_seconds = verify_wait_seconds
        self._sleep = sleep

    def _read_records(self, asset_type: str) -> List[BalanceRecord]:
        try:
            return list(self.ledger.get_balance_records(self.ledger.address, asset_type))
        except Exception as e:
            raise StateReadError(f"Failed to read balance records for {asset_type}: {e}") from e

    def consolidate(self, asset_type: str) -> None:
        """
        Merge every balance record of asset_type into the largest one.

        Safe to call when already consolidated: one or zero records is a no-op.

        Args:
            asset_type: Asset (coin) type to consolidate

        Raises:
            ConsolidationFailed: If the merge fails or records stay fragmented
            StateReadError: If balance records cannot be read
        """
        records = self._read_records(asset_type)
        if len(records) <= 1:
            logger.debug(f"{asset_type}: {len(records)} balance record(s), nothing to merge")
            return

        # Largest record as target moves the fewest records
        target = max(records, key=lambda record: record.amount)
        source_ids = [record.record_id for record in records if record.record_id != target.record_id]

        logger.info(f"Merging {len(source_ids)} balance records of {asset_type} into {target.record_id}")
        try:
            result = self.ledger.merge_balance_records(target.record_id, source_ids, self.gas_budget)
        except Exception as e:
            raise ConsolidationFailed(asset_type, len(records), f"merge submission failed: {e}") from e

        Logger.log_transaction(result.digest, 'merge_balance_records', result.succeeded,
                               {'asset_type': asset_type, 'merged_records': len(source_ids)})
        if not result.succeeded:
            raise ConsolidationFailed(asset_type, len(records), result.error or 'merge transaction failed')

        if result.digest:
            self.ledger.wait_for_transaction(result.digest)

        remaining = self._read_records(asset_type)
        if len(remaining) > 1:
            logger.warning(f"{asset_type} still shows {len(remaining)} records after merge, "
                           f"waiting {self.verify_wait_seconds:.1f}s for ledger state to settle")
            self._sleep(self.verify_wait_seconds)
            remaining = self._read_records(asset_type)

        if len(remaining) > 1:
            raise ConsolidationFailed(asset_type, len(remaining))

        logger.info(f"{asset_type} consolidated into a single balance record")

    def consolidate_all(self, asset_types: Iterable[str]) -> None:
        """Consolidate each distinct asset type once, in order"""
        seen = set()
        for asset_type in asset_types:
            if asset_type in seen:
                continue
            seen.add(asset_type)
            self.consolidate(asset_type)
