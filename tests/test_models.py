"""
Unit tests for range calculation and range models.
"""
import pytest
import sys
import os
from unittest.mock import Mock

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Config
from exceptions import ConfigurationError
from models import (
    calculate_optimal_range,
    BaseRangeModel,
    CenteredRangeModel,
    ModelFactory,
    TightestRangeModel,
)
from snapshots import PoolSnapshot, TargetRange


def make_pool(current_tick, tick_spacing=60):
    return PoolSnapshot(
        pool_id='0xpool',
        current_tick=current_tick,
        current_sqrt_price=0,
        tick_spacing=tick_spacing,
        coin_type_a='0x2::sui::SUI',
        coin_type_b='0xusdc::usdc::USDC',
    )


class TestCalculateOptimalRange:
    """Test conversion of the current tick into an aligned range."""

    def test_tightest_positive_tick(self):
        assert calculate_optimal_range(1000, 60) == TargetRange(960, 1020)

    def test_tightest_negative_tick_floors(self):
        assert calculate_optimal_range(-100, 60) == TargetRange(-120, -60)

    def test_tightest_unit_spacing(self):
        assert calculate_optimal_range(500, 1) == TargetRange(500, 501)

    def test_tightest_aligned_tick_is_lower_bound(self):
        assert calculate_optimal_range(1020, 60) == TargetRange(1020, 1080)

    def test_centered_width(self):
        assert calculate_optimal_range(1000, 60, 600) == TargetRange(660, 1320)

    def test_centered_range_contains_current_tick(self):
        for tick in (-1234, -61, 0, 7, 5999):
            target = calculate_optimal_range(tick, 60, 240)
            assert target.lower <= tick <= target.upper
            assert target.lower % 60 == 0
            assert target.upper % 60 == 0
            assert target.width >= 240

    def test_bounds_always_aligned_and_ordered(self):
        for tick in range(-300, 300, 7):
            target = calculate_optimal_range(tick, 10)
            assert target.lower % 10 == 0
            assert target.upper % 10 == 0
            assert target.lower <= tick < target.upper

    def test_zero_spacing_raises(self):
        with pytest.raises(ConfigurationError):
            calculate_optimal_range(1000, 0)

    def test_negative_spacing_raises(self):
        with pytest.raises(ConfigurationError):
            calculate_optimal_range(1000, -60)

    def test_non_positive_width_raises(self):
        with pytest.raises(ConfigurationError):
            calculate_optimal_range(1000, 60, 0)


class TestRangeModels:
    """Test range model classes and the factory."""

    def setup_method(self):
        """Set up test fixtures."""
        self.config = Config(pool_address='0xpool')
        self.centered_config = Config(pool_address='0xpool', range_width=600)

    def test_tightest_model(self):
        model = TightestRangeModel(self.config)
        assert model.calculate_range(make_pool(1000)) == TargetRange(960, 1020)
        assert model.get_model_info()['name'] == 'TightestRangeModel'

    def test_centered_model(self):
        model = CenteredRangeModel(self.centered_config)
        assert model.calculate_range(make_pool(1000)) == TargetRange(660, 1320)
        assert model.get_model_info()['parameters'] == {'range_width': 600}

    def test_centered_model_requires_width(self):
        with pytest.raises(ConfigurationError):
            CenteredRangeModel(self.config)

    def test_factory_selects_model_from_config(self):
        assert isinstance(ModelFactory.create_for_config(self.config), TightestRangeModel)
        assert isinstance(ModelFactory.create_for_config(self.centered_config), CenteredRangeModel)

    def test_factory_unknown_model(self):
        with pytest.raises(ValueError, match="Unknown model"):
            ModelFactory.create_model('NoSuchModel', self.config)

    def test_register_model(self):
        class FixedModel(BaseRangeModel):
            def calculate_range(self, pool):
                return TargetRange(-60, 60)

            def get_model_info(self):
                return {'name': self.model_name, 'description': 'fixed', 'parameters': {}}

        ModelFactory.register_model('FixedModel', FixedModel)
        try:
            model = ModelFactory.create_model('FixedModel', self.config)
            assert model.calculate_range(make_pool(5000)) == TargetRange(-60, 60)
        finally:
            ModelFactory._models.pop('FixedModel', None)

    def test_register_rejects_non_model(self):
        with pytest.raises(ValueError):
            ModelFactory.register_model('Bad', Mock)


class TestPoolSnapshot:

    def test_non_positive_spacing_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="tick_spacing must be positive"):
            make_pool(1000, tick_spacing=0)
