"""
Centered range model: a configured total width split evenly around the current tick.
"""
import logging
from typing import Dict, Any

from config import Config
from exceptions import ConfigurationError
from snapshots import PoolSnapshot, TargetRange
from .base_model import BaseRangeModel
from .range_calculator import calculate_optimal_range

logger = logging.getLogger(__name__)


class CenteredRangeModel(BaseRangeModel):
    """
    Allocates RANGE_WIDTH ticks symmetrically around the current tick.

    Both bounds are rounded outward to the tick grid, so the realized width
    is at least RANGE_WIDTH.
    """

    def __init__(self, config: Config):
        super().__init__(config)
        if not config.range_width or config.range_width <= 0:
            raise ConfigurationError("CenteredRangeModel requires a positive RANGE_WIDTH")
        self.range_width = config.range_width
        logger.info(f"Centered range model initialized (width={self.range_width} ticks)")

    def calculate_range(self, pool: PoolSnapshot) -> TargetRange:
        return calculate_optimal_range(pool.current_tick, pool.tick_spacing, self.range_width)

    def get_model_info(self) -> Dict[str, Any]:
        return {
            'name': self.model_name,
            'description': 'Range centered on the current tick, rounded outward to the tick grid',
            'parameters': {'range_width': self.range_width},
        }
