"""
Abstract base class for range models.
"""
from abc import ABC, abstractmethod
from typing import Dict, Any

from config import Config
from snapshots import PoolSnapshot, TargetRange


class BaseRangeModel(ABC):
    """
    Abstract base class for range models.

    A range model turns a fresh pool snapshot into the tick range a new
    position should cover.
    """

    def __init__(self, config: Config):
        """
        Initialize the range model.

        Args:
            config: Configuration object with model parameters
        """
        self.config = config
        self.model_name = self.__class__.__name__

    @abstractmethod
    def calculate_range(self, pool: PoolSnapshot) -> TargetRange:
        """
        Calculate the target range around the pool's current tick.

        Args:
            pool: Current pool snapshot

        Returns:
            TargetRange aligned to pool.tick_spacing
        """
        pass

    @abstractmethod
    def get_model_info(self) -> Dict[str, Any]:
        """
        Get information about the model.

        Returns:
            Dictionary with name, description and parameters
        """
        pass
