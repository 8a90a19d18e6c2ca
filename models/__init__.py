"""
Range models for CLRebalancer.
"""
from .range_calculator import calculate_optimal_range
from .base_model import BaseRangeModel
from .tightest_model import TightestRangeModel
from .centered_model import CenteredRangeModel
from .model_factory import ModelFactory

__all__ = ['calculate_optimal_range', 'BaseRangeModel', 'TightestRangeModel', 'CenteredRangeModel', 'ModelFactory']
