"""
Tests for the command line entry point.
"""
import json
import sys
import os
from unittest.mock import Mock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import main


@pytest.fixture
def paper_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(main.signal, 'signal', Mock())
    for key in ('POSITION_ID', 'PRIVATE_KEY', 'LOG_FILE', 'LOWER_TICK', 'UPPER_TICK', 'RANGE_WIDTH',
                'TOKEN_A_AMOUNT', 'TOKEN_B_AMOUNT', 'TELEGRAM_BOT_TOKEN', 'TELEGRAM_CHAT_ID', 'DRY_RUN'):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv('POOL_ADDRESS', '0xpaperpool')
    monkeypatch.setenv('NETWORK', 'testnet')
    monkeypatch.setenv('CLIENT_ADAPTER', 'simulator')
    monkeypatch.setenv('RETRY_DELAY_SECONDS', '0')
    monkeypatch.setenv('CONSOLIDATION_WAIT_SECONDS', '0')


class TestMain:

    def test_parse_args(self):
        args = main.parse_args(['--once', '--dry-run', '--log-level', 'DEBUG'])
        assert args.once is True
        assert args.dry_run is True
        assert args.log_level == 'DEBUG'
        assert args.status is False

    def test_status(self, paper_env, capsys):
        assert main.main(['--status']) == 0

        status = json.loads(capsys.readouterr().out)
        assert status['pool_address'] == '0xpaperpool'
        assert status['network'] == 'testnet'
        assert status['running'] is False

    def test_once_dry_run(self, paper_env):
        assert main.main(['--once', '--dry-run']) == 0

    def test_invalid_config_exits_nonzero(self, paper_env, monkeypatch):
        monkeypatch.setenv('NETWORK', 'devnet')
        assert main.main(['--once']) == 1
