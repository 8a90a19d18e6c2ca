"""
Unit tests for configuration loading and validation.
"""
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Config
from exceptions import ConfigurationError


def base_env(**overrides):
    env = {
        'POOL_ADDRESS': '0xpool',
        'NETWORK': 'testnet',
    }
    env.update(overrides)
    return env


class TestConfigFromEnv:
    """Test Config.from_env with explicit environment mappings."""

    def test_defaults(self):
        config = Config.from_env(base_env())

        assert config.pool_address == '0xpool'
        assert config.network == 'testnet'
        assert config.check_interval == 300
        assert config.rebalance_threshold == 0.05
        assert config.position_id is None
        assert config.max_tx_attempts == 2
        assert config.retry_delay_seconds == 2.0
        assert config.dry_run is False
        assert config.has_fixed_range is False
        assert config.has_fixed_amounts is False
        assert config.client_adapter == 'simulator'

    def test_parses_values(self):
        config = Config.from_env(base_env(
            POSITION_ID='0xpos',
            CHECK_INTERVAL='60',
            REBALANCE_THRESHOLD='0.1',
            LOWER_TICK='-600',
            UPPER_TICK='600',
            TOKEN_A_AMOUNT='1000',
            TOKEN_B_AMOUNT='2000',
            DRY_RUN='true',
            LOG_LEVEL='debug',
        ))

        assert config.position_id == '0xpos'
        assert config.check_interval == 60
        assert config.rebalance_threshold == 0.1
        assert (config.lower_tick, config.upper_tick) == (-600, 600)
        assert config.has_fixed_range is True
        assert (config.token_a_amount, config.token_b_amount) == (1000, 2000)
        assert config.dry_run is True
        assert config.log_level == 'DEBUG'

    def test_private_key_reference_is_resolved(self):
        config = Config.from_env(base_env(PRIVATE_KEY='${MY_KEY}', MY_KEY='suiprivkey1abc'))
        assert config.private_key == 'suiprivkey1abc'

    def test_raw_private_key_rejected(self):
        with pytest.raises(ConfigurationError, match="VARIABLE_NAME"):
            Config.from_env(base_env(PRIVATE_KEY='suiprivkey1abc'))

    def test_unset_private_key_reference_rejected(self):
        with pytest.raises(ConfigurationError, match="MY_KEY"):
            Config.from_env(base_env(PRIVATE_KEY='${MY_KEY}'))

    def test_private_key_required_for_network_adapter(self):
        with pytest.raises(ConfigurationError, match="PRIVATE_KEY is required"):
            Config.from_env(base_env(CLIENT_ADAPTER='sui'))

    def test_pool_address_required(self):
        with pytest.raises(ConfigurationError, match="POOL_ADDRESS"):
            Config.from_env({'NETWORK': 'mainnet'})

    def test_invalid_network(self):
        with pytest.raises(ConfigurationError, match="NETWORK"):
            Config.from_env(base_env(NETWORK='devnet'))

    def test_all_problems_reported_together(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Config.from_env(base_env(CHECK_INTERVAL='soon', REBALANCE_THRESHOLD='2', LOWER_TICK='10'))

        message = str(exc_info.value)
        assert 'CHECK_INTERVAL' in message
        assert 'REBALANCE_THRESHOLD' in message
        assert 'LOWER_TICK and UPPER_TICK' in message

    def test_inverted_fixed_range(self):
        with pytest.raises(ConfigurationError, match="must be below"):
            Config.from_env(base_env(LOWER_TICK='600', UPPER_TICK='-600'))

    def test_verbose_logs_force_debug(self):
        config = Config.from_env(base_env(VERBOSE_LOGS='1', LOG_LEVEL='WARNING'))
        assert config.effective_log_level == 'DEBUG'

    def test_telegram_enabled_needs_token_and_chat(self):
        assert Config.from_env(base_env(TELEGRAM_BOT_TOKEN='t')).telegram_enabled is False
        assert Config.from_env(base_env(TELEGRAM_BOT_TOKEN='t', TELEGRAM_CHAT_ID='c')).telegram_enabled is True

    def test_chain_info_has_no_secrets(self):
        config = Config.from_env(base_env(PRIVATE_KEY='${MY_KEY}', MY_KEY='secret'))
        assert 'secret' not in str(config.get_chain_info())
