"""
Position state reader for CLRebalancer.
Reads pool state and the wallet's open positions through the protocol client.
"""
import logging
from typing import List, Optional

from exceptions import StateReadError, PositionNotFound
from ledger_client import ProtocolClient
from snapshots import PoolSnapshot, PositionSnapshot

logger = logging.getLogger(__name__)


def is_position_in_range(tick_lower: int, tick_upper: int, current_tick: int) -> bool:
    """True iff tick_lower <= current_tick <= tick_upper (both bounds inclusive)."""
    return tick_lower <= current_tick <= tick_upper


class PositionMonitor:
    """Produces fresh pool and position snapshots for each check"""

    def __init__(self, protocol: ProtocolClient):
        self.protocol = protocol

    def get_pool_info(self, pool_id: str) -> PoolSnapshot:
        """
        Fetch current pool state

        Args:
            pool_id: Pool object id

        Returns:
            PoolSnapshot

        Raises:
            StateReadError: If the protocol query fails
        """
        try:
            pool = self.protocol.get_pool(pool_id)
        except Exception as e:
            logger.error(f"Failed to read pool {pool_id}: {e}")
            raise StateReadError(f"Failed to read pool {pool_id}: {e}") from e

        logger.debug(f"Pool {pool_id}: tick={pool.current_tick} spacing={pool.tick_spacing}")
        return pool

    def get_positions(self, owner: str) -> List[PositionSnapshot]:
        """
        Fetch every open position owned by the wallet

        Raises:
            StateReadError: If the protocol query fails
        """
        try:
            return list(self.protocol.get_positions(owner))
        except Exception as e:
            logger.error(f"Failed to read positions for {owner}: {e}")
            raise StateReadError(f"Failed to read positions for {owner}: {e}") from e

    def get_pool_positions(self, owner: str, pool_id: str) -> List[PositionSnapshot]:
        """Open positions owned by the wallet in one pool, in protocol order"""
        return [p for p in self.get_positions(owner) if p.pool_id == pool_id]

    def find_position(self, owner: str, position_id: str) -> PositionSnapshot:
        """
        Locate a specific position owned by the wallet

        Raises:
            PositionNotFound: If the wallet does not own position_id
            StateReadError: If the protocol query fails
        """
        for position in self.get_positions(owner):
            if position.position_id == position_id:
                return position
        raise PositionNotFound(position_id)

    def select_position(self, owner: str, pool_id: str) -> Optional[PositionSnapshot]:
        """
        Pick the position to manage this cycle when no position id is configured.

        The first position in the pool that holds liquidity wins. Emptied
        positions stay listed until closed, so one is only returned when the
        pool has nothing else, which lets a cycle re-add liquidity that an
        earlier, interrupted cycle removed. None when the pool has no positions.
        """
        pool_positions = self.get_pool_positions(owner, pool_id)
        if len(pool_positions) > 1:
            logger.info(f"Found {len(pool_positions)} positions in pool {pool_id}, managing the first one holding liquidity")
        if not pool_positions:
            return None
        funded = [p for p in pool_positions if p.has_liquidity]
        return funded[0] if funded else pool_positions[0]
