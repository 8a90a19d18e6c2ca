"""
Tightest range model: one tick-spacing cell around the current tick.
"""
from typing import Dict, Any

from snapshots import PoolSnapshot, TargetRange
from .base_model import BaseRangeModel
from .range_calculator import calculate_optimal_range


class TightestRangeModel(BaseRangeModel):
    """Concentrates liquidity in the single grid cell holding the current tick."""

    def calculate_range(self, pool: PoolSnapshot) -> TargetRange:
        return calculate_optimal_range(pool.current_tick, pool.tick_spacing)

    def get_model_info(self) -> Dict[str, Any]:
        return {
            'name': self.model_name,
            'description': 'Single tick-spacing range anchored at the aligned tick at or below the current tick',
            'parameters': {},
        }
