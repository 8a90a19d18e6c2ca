"""
Tests for Telegram notifications with the HTTP layer mocked.
"""
import sys
import os
import requests
from unittest.mock import Mock, patch

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from alert_manager import TelegramAlertManager
from config import Config
from snapshots import RebalanceResult, TargetRange


class TestTelegramAlertManager:
    """Test message delivery and formatting."""

    def setup_method(self):
        """Set up test fixtures."""
        self.config = Config(pool_address='0xpool', telegram_bot_token='123:abc', telegram_chat_id='42')
        with patch('alert_manager.requests.get') as mock_get:
            mock_get.return_value = Mock(status_code=200)
            self.manager = TelegramAlertManager(self.config)

    def test_disabled_without_credentials(self):
        manager = TelegramAlertManager(Config(pool_address='0xpool'))

        with patch('alert_manager.requests.post') as mock_post:
            assert manager.send_error_notification("Check Failed", "boom") is False
        mock_post.assert_not_called()

    @patch('alert_manager.requests.post')
    def test_rebalance_notification(self, mock_post):
        mock_post.return_value = Mock(status_code=200)
        result = RebalanceResult(
            success=True,
            transaction_digest='DigEst123',
            old_range=TargetRange(0, 600),
            new_range=TargetRange(960, 1020),
            new_position_id='0xnewposition',
        )

        assert self.manager.send_rebalance_notification(result, '0xpool', current_tick=1000) is True

        url = mock_post.call_args[0][0]
        data = mock_post.call_args[1]['data']
        assert url == 'https://api.telegram.org/bot123:abc/sendMessage'
        assert data['chat_id'] == '42'
        assert 'Rebalance Completed' in data['text']
        assert '[0, 600] -> [960, 1020]' in data['text']
        assert 'DigEst123' in data['text']

    @patch('alert_manager.requests.post')
    def test_failed_rebalance_notification(self, mock_post):
        mock_post.return_value = Mock(status_code=200)
        result = RebalanceResult(success=False, error='add_liquidity failed: <slippage>')

        self.manager.send_rebalance_notification(result, '0xpool')

        text = mock_post.call_args[1]['data']['text']
        assert 'Rebalance Failed' in text
        assert '&lt;slippage&gt;' in text

    @patch('alert_manager.requests.post')
    def test_http_error_returns_false(self, mock_post):
        mock_post.return_value = Mock(status_code=400, text='Bad Request')
        assert self.manager.send_shutdown_notification("SIGTERM") is False

    @patch('alert_manager.requests.post')
    def test_network_error_never_raises(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("offline")
        assert self.manager.send_critical_alert("Balance Consolidation Failed", "stuck") is False

    @patch('alert_manager.requests.post')
    def test_startup_notification(self, mock_post):
        mock_post.return_value = Mock(status_code=200)

        self.manager.send_startup_notification('testnet', '0xpool', '0x' + 'ab' * 32, position_id=None)

        text = mock_post.call_args[1]['data']['text']
        assert 'Network: testnet' in text
        assert 'first position in pool' in text
