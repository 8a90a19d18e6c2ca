"""
Unit tests for the rebalance decision logic.
"""
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from position_monitor import is_position_in_range
from snapshots import PoolSnapshot, PositionSnapshot, TargetRange
from strategy import RebalanceStrategy


def make_pool(current_tick, tick_spacing=60):
    return PoolSnapshot('0xpool', current_tick, 0, tick_spacing, '0x2::sui::SUI', '0xusdc::usdc::USDC')


def make_position(lower=-1000, upper=1000, in_range=True, liquidity=10_000):
    return PositionSnapshot('0xpos', '0xpool', lower, upper, liquidity, in_range=in_range)


class TestIsPositionInRange:
    """Both bounds are inclusive."""

    def test_inside(self):
        assert is_position_in_range(-1000, 1000, 0) is True

    def test_on_lower_bound(self):
        assert is_position_in_range(-1000, 1000, -1000) is True

    def test_on_upper_bound(self):
        assert is_position_in_range(-1000, 1000, 1000) is True

    def test_below(self):
        assert is_position_in_range(-1000, 1000, -1001) is False

    def test_above(self):
        assert is_position_in_range(-1000, 1000, 1001) is False


class TestRebalanceStrategy:
    """Test should_rebalance with a 5% threshold on a 2000-tick range (margin 100)."""

    def setup_method(self):
        """Set up test fixtures."""
        self.strategy = RebalanceStrategy(rebalance_threshold=0.05)
        self.position = make_position()

    def test_centered_tick_does_not_rebalance(self):
        assert self.strategy.should_rebalance(self.position, make_pool(0)) is False

    def test_near_lower_bound_rebalances(self):
        assert self.strategy.should_rebalance(self.position, make_pool(-950)) is True

    def test_near_upper_bound_rebalances(self):
        assert self.strategy.should_rebalance(self.position, make_pool(950)) is True

    def test_exactly_at_margin_does_not_rebalance(self):
        assert self.strategy.should_rebalance(self.position, make_pool(-900)) is False
        assert self.strategy.should_rebalance(self.position, make_pool(900)) is False

    def test_out_of_range_flag_is_authoritative(self):
        position = make_position(in_range=False)
        assert self.strategy.should_rebalance(position, make_pool(0)) is True

    def test_reason_mentions_bound(self):
        reason = self.strategy.rebalance_reason(self.position, make_pool(950))
        assert 'upper bound' in reason
        assert self.strategy.rebalance_reason(self.position, make_pool(0)) is None

    @pytest.mark.parametrize("threshold", [0, 1, -0.1, 1.5])
    def test_invalid_threshold(self, threshold):
        with pytest.raises(ValueError):
            RebalanceStrategy(threshold)


class TestRangeUnchanged:
    """Ranges within one tick-spacing unit on both bounds count as unchanged."""

    def test_identical(self):
        assert RebalanceStrategy.is_range_unchanged(TargetRange(960, 1020), TargetRange(960, 1020), 60)

    def test_shifted_one_cell(self):
        assert not RebalanceStrategy.is_range_unchanged(TargetRange(960, 1020), TargetRange(1020, 1080), 60)

    def test_only_one_bound_moved(self):
        assert not RebalanceStrategy.is_range_unchanged(TargetRange(900, 1020), TargetRange(960, 1020), 60)

    def test_sub_spacing_difference(self):
        assert RebalanceStrategy.is_range_unchanged(TargetRange(960, 1020), TargetRange(1000, 1050), 60)
