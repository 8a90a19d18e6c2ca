"""
Unit tests for balance record consolidation.
"""
import pytest
import sys
import os
from unittest.mock import Mock

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from balance_consolidator import BalanceConsolidator
from exceptions import ConsolidationFailed, StateReadError
from simulator import SimulatedChain, SimulatedLedgerClient
from snapshots import BalanceRecord, ExecutionResult, EXECUTION_FAILURE, EXECUTION_SUCCESS

OWNER = '0xowner'
SUI = '0x2::sui::SUI'
USDC = '0xusdc::usdc::USDC'


class TestBalanceConsolidator:
    """Test merging against the in-memory ledger."""

    def setup_method(self):
        """Set up test fixtures."""
        self.chain = SimulatedChain(seed=1)
        self.ledger = SimulatedLedgerClient(self.chain, OWNER)
        self.sleep = Mock()
        self.consolidator = BalanceConsolidator(self.ledger, gas_budget=1_000, verify_wait_seconds=2.0,
                                                sleep=self.sleep)

    def test_single_record_is_noop(self):
        self.chain.mint_coin(OWNER, SUI, 500)

        self.consolidator.consolidate(SUI)

        assert self.chain.transactions == []
        assert len(self.ledger.get_balance_records(OWNER, SUI)) == 1

    def test_no_records_is_noop(self):
        self.consolidator.consolidate(SUI)
        assert self.chain.transactions == []

    def test_merges_into_largest_record(self):
        self.chain.mint_coin(OWNER, SUI, 100)
        largest = self.chain.mint_coin(OWNER, SUI, 700)
        self.chain.mint_coin(OWNER, SUI, 200)

        self.consolidator.consolidate(SUI)

        records = self.ledger.get_balance_records(OWNER, SUI)
        assert records == [BalanceRecord(largest, SUI, 1000)]
        assert [tx.kind for tx in self.chain.transactions] == ['merge']

    def test_second_call_is_idempotent(self):
        self.chain.mint_coin(OWNER, SUI, 100)
        self.chain.mint_coin(OWNER, SUI, 200)

        self.consolidator.consolidate(SUI)
        self.consolidator.consolidate(SUI)

        assert len(self.chain.transactions) == 1

    def test_other_owner_records_untouched(self):
        self.chain.mint_coin(OWNER, SUI, 100)
        self.chain.mint_coin('0xsomeone', SUI, 100)

        self.consolidator.consolidate(SUI)

        assert self.chain.transactions == []

    def test_lagging_view_settles_after_wait(self):
        self.chain.mint_coin(OWNER, SUI, 100)
        self.chain.mint_coin(OWNER, SUI, 200)
        self.chain.merge_visibility_lag = 1

        self.consolidator.consolidate(SUI)

        self.sleep.assert_called_once_with(2.0)
        assert len(self.ledger.get_balance_records(OWNER, SUI)) == 1

    def test_still_fragmented_raises(self):
        self.chain.mint_coin(OWNER, SUI, 100)
        self.chain.mint_coin(OWNER, SUI, 200)
        self.chain.merge_visibility_lag = 5

        with pytest.raises(ConsolidationFailed) as exc_info:
            self.consolidator.consolidate(SUI)

        assert exc_info.value.asset_type == SUI
        assert exc_info.value.record_count == 2

    def test_failed_merge_status_raises(self):
        self.chain.mint_coin(OWNER, SUI, 100)
        self.chain.mint_coin(OWNER, SUI, 200)
        self.chain.fail_next_executions = 1

        with pytest.raises(ConsolidationFailed, match="simulated execution failure"):
            self.consolidator.consolidate(SUI)

    def test_merge_submission_error_raises(self):
        self.chain.mint_coin(OWNER, SUI, 100)
        self.chain.mint_coin(OWNER, SUI, 200)
        self.chain.raise_next_executions = 1

        with pytest.raises(ConsolidationFailed, match="merge submission failed"):
            self.consolidator.consolidate(SUI)

    def test_consolidate_all_deduplicates(self):
        for amount in (1, 2, 3):
            self.chain.mint_coin(OWNER, SUI, amount)
            self.chain.mint_coin(OWNER, USDC, amount)

        self.consolidator.consolidate_all([SUI, USDC, SUI])

        assert len(self.chain.transactions) == 2
        assert self.ledger.get_total_balance(OWNER, SUI) == 6
        assert len(self.ledger.get_balance_records(OWNER, USDC)) == 1


class TestBalanceConsolidatorWithMockLedger:
    """Test consolidation against a mocked ledger client."""

    def setup_method(self):
        """Set up test fixtures."""
        self.ledger = Mock()
        self.ledger.address = OWNER
        self.consolidator = BalanceConsolidator(self.ledger, gas_budget=1_000, sleep=Mock())

    def test_read_failure_raises_state_read_error(self):
        self.ledger.get_balance_records.side_effect = ConnectionError("rpc down")

        with pytest.raises(StateReadError):
            self.consolidator.consolidate(SUI)

    def test_waits_for_merge_digest(self):
        self.ledger.get_balance_records.side_effect = [
            [BalanceRecord('0xa', SUI, 5), BalanceRecord('0xb', SUI, 9)],
            [BalanceRecord('0xb', SUI, 14)],
        ]
        self.ledger.merge_balance_records.return_value = ExecutionResult(EXECUTION_SUCCESS, digest='0xd1')

        self.consolidator.consolidate(SUI)

        self.ledger.merge_balance_records.assert_called_once_with('0xb', ['0xa'], 1_000)
        self.ledger.wait_for_transaction.assert_called_once_with('0xd1')

    def test_failure_status_is_not_success(self):
        self.ledger.get_balance_records.return_value = [BalanceRecord('0xa', SUI, 5), BalanceRecord('0xb', SUI, 9)]
        self.ledger.merge_balance_records.return_value = ExecutionResult(EXECUTION_FAILURE, digest='0xd1',
                                                                         error='object locked')

        with pytest.raises(ConsolidationFailed, match="object locked"):
            self.consolidator.consolidate(SUI)
        self.ledger.wait_for_transaction.assert_not_called()
