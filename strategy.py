"""
Rebalance decision logic for CLRebalancer.
Decides whether a position still satisfies its safety margins and whether a
freshly computed range differs enough from the current one to act on.
"""
import logging
from typing import Optional

from snapshots import PoolSnapshot, PositionSnapshot, TargetRange

logger = logging.getLogger(__name__)


class RebalanceStrategy:
    """
    Encapsulates when to rebalance.
    Free of side effects (no ledger calls, no IO).
    """

    def __init__(self, rebalance_threshold: float):
        if not 0 < rebalance_threshold < 1:
            raise ValueError(f"rebalance_threshold must be between 0 and 1, got {rebalance_threshold}")
        self.rebalance_threshold = rebalance_threshold

    def rebalance_reason(self, position: PositionSnapshot, pool: PoolSnapshot) -> Optional[str]:
        """
        Explain why the position needs a rebalance, or None when it does not.

        The protocol's in-range flag is authoritative: a position flagged out of
        range always rebalances. A position flagged in range rebalances when the
        current tick sits within threshold * width of either bound.
        """
        if not position.in_range:
            return (f"position {position.position_id} is out of range "
                    f"[{position.tick_lower}, {position.tick_upper}] at tick {pool.current_tick}")

        margin = self.rebalance_threshold * (position.tick_upper - position.tick_lower)
        distance_to_lower = pool.current_tick - position.tick_lower
        distance_to_upper = position.tick_upper - pool.current_tick

        if distance_to_lower < margin:
            return (f"tick {pool.current_tick} is {distance_to_lower} ticks from lower bound "
                    f"{position.tick_lower} (margin {margin:g})")
        if distance_to_upper < margin:
            return (f"tick {pool.current_tick} is {distance_to_upper} ticks from upper bound "
                    f"{position.tick_upper} (margin {margin:g})")
        return None

    def should_rebalance(self, position: PositionSnapshot, pool: PoolSnapshot) -> bool:
        reason = self.rebalance_reason(position, pool)
        if reason:
            logger.info(f"Rebalance warranted: {reason}")
            return True

        logger.debug(f"Position {position.position_id} within margins at tick {pool.current_tick}")
        return False

    @staticmethod
    def is_range_unchanged(old_range: TargetRange, new_range: TargetRange, tick_spacing: int) -> bool:
        """Both bounds moved by less than one tick-spacing unit."""
        return (abs(old_range.lower - new_range.lower) < tick_spacing
                and abs(old_range.upper - new_range.upper) < tick_spacing)
