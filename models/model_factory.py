"""
Model factory for creating range models.
"""
import logging
from typing import Type, Dict, Any

from config import Config
from .base_model import BaseRangeModel
from .tightest_model import TightestRangeModel
from .centered_model import CenteredRangeModel

logger = logging.getLogger(__name__)


class ModelFactory:
    """
    Factory class for creating range models.

    Switches range policy without changing the rebalancing sequence.
    """

    _models: Dict[str, Type[BaseRangeModel]] = {
        'TightestRangeModel': TightestRangeModel,
        'CenteredRangeModel': CenteredRangeModel,
    }

    @classmethod
    def model_name_for(cls, config: Config) -> str:
        """Centered when a range width is configured, tightest otherwise"""
        return 'CenteredRangeModel' if config.range_width else 'TightestRangeModel'

    @classmethod
    def create_model(cls, model_name: str, config: Config) -> BaseRangeModel:
        """
        Create a range model instance.

        Args:
            model_name: Name of the model to create
            config: Configuration object

        Returns:
            Model instance

        Raises:
            ValueError: If model name is not found
        """
        if model_name not in cls._models:
            available_models = ', '.join(cls._models.keys())
            raise ValueError(f"Unknown model '{model_name}'. Available models: {available_models}")

        model_instance = cls._models[model_name](config)
        logger.info(f"Created {model_name} instance")
        return model_instance

    @classmethod
    def create_for_config(cls, config: Config) -> BaseRangeModel:
        return cls.create_model(cls.model_name_for(config), config)

    @classmethod
    def register_model(cls, name: str, model_class: Type[BaseRangeModel]):
        """
        Register a new model class.

        Args:
            name: Name of the model
            model_class: Model class that inherits from BaseRangeModel
        """
        if not issubclass(model_class, BaseRangeModel):
            raise ValueError("Model class must inherit from BaseRangeModel")

        cls._models[name] = model_class
        logger.info(f"Registered new model: {name}")

    @classmethod
    def get_model_info(cls, model_name: str, config: Config) -> Dict[str, Any]:
        """Detailed information about a specific model"""
        return cls.create_model(model_name, config).get_model_info()
