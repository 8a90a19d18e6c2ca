"""
Range calculation on the pool's tick grid.
"""
from typing import Optional

from exceptions import ConfigurationError
from snapshots import TargetRange
from utils import TickUtils


def calculate_optimal_range(current_tick: int, tick_spacing: int, configured_width: Optional[int] = None) -> TargetRange:
    """
    Convert the current tick into an aligned tick range.

    Without a width the range is the single tick-spacing cell holding the
    current tick, so lower <= current_tick < upper (floor division keeps this
    true for negative ticks). With a width W the range spans W/2 ticks on each
    side of the current tick, rounded outward to the grid.

    Args:
        current_tick: Pool's current tick index
        tick_spacing: Pool tick spacing (> 0)
        configured_width: Optional total width in ticks (> 0)

    Returns:
        TargetRange with both bounds on the tick grid

    Raises:
        ConfigurationError: If tick_spacing or configured_width is not positive
    """
    if tick_spacing <= 0:
        raise ConfigurationError(f"tick_spacing must be positive, got {tick_spacing}")

    if configured_width is None:
        lower = TickUtils.round_tick_down(current_tick, tick_spacing)
        return TargetRange(lower, lower + tick_spacing)

    if configured_width <= 0:
        raise ConfigurationError(f"range width must be positive, got {configured_width}")

    # Work in doubled units so an odd width keeps its half tick
    doubled_spacing = 2 * tick_spacing
    lower = ((2 * current_tick - configured_width) // doubled_spacing) * tick_spacing
    upper = -((-(2 * current_tick + configured_width)) // doubled_spacing) * tick_spacing
    return TargetRange(lower, upper)
