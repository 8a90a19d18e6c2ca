"""
CLRebalancer - Telegram Alert Manager
Handles notifications for rebalances, errors, and bot lifecycle events
"""
import html
import logging
import requests
from typing import Dict, Any, Optional
from datetime import datetime
from config import Config
from snapshots import RebalanceResult

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/{method}"


def _short_id(object_id: Optional[str]) -> str:
    if not object_id:
        return 'n/a'
    if len(object_id) <= 20:
        return object_id
    return f"{object_id[:10]}...{object_id[-8:]}"


class TelegramAlertManager:
    """Manages Telegram notifications for the rebalance bot"""

    def __init__(self, config: Config):
        """
        Initialize Telegram alert manager

        Args:
            config: Configuration object
        """
        self.config = config
        self.bot_token = config.telegram_bot_token
        self.chat_id = config.telegram_chat_id
        self.enabled = config.telegram_enabled

        if self.enabled:
            logger.info("Telegram alerts enabled")
            if not self._test_connection():
                logger.warning("Telegram connection test failed - alerts may not work")
        else:
            logger.info("Telegram alerts disabled (missing bot token or chat ID)")

    def _test_connection(self) -> bool:
        """
        Test Telegram bot connection

        Returns:
            True if connection successful, False otherwise
        """
        try:
            url = TELEGRAM_API_URL.format(token=self.bot_token, method='getMe')
            response = requests.get(url, timeout=10)
            return response.status_code == 200
        except requests.RequestException as e:
            logger.error(f"Telegram connection test failed: {e}")
            return False

    def _send_message(self, message: str, parse_mode: str = "HTML") -> bool:
        """
        Send message to Telegram

        Args:
            message: Message to send
            parse_mode: Message parse mode (HTML or Markdown)

        Returns:
            True if message sent successfully, False otherwise
        """
        if not self.enabled:
            logger.debug("Telegram alerts disabled - not sending message")
            return False

        try:
            url = TELEGRAM_API_URL.format(token=self.bot_token, method='sendMessage')
            data = {
                'chat_id': self.chat_id,
                'text': message,
                'parse_mode': parse_mode,
                'disable_web_page_preview': True
            }

            response = requests.post(url, data=data, timeout=10)

            if response.status_code == 200:
                logger.debug("Telegram message sent successfully")
                return True
            else:
                logger.error(f"Failed to send Telegram message: {response.status_code} - {response.text}")
                return False

        except requests.RequestException as e:
            logger.error(f"Error sending Telegram message: {e}")
            return False

    @staticmethod
    def _timestamp() -> str:
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def send_rebalance_notification(self, result: RebalanceResult, pool_id: str,
                                    current_tick: Optional[int] = None) -> bool:
        """
        Send rebalance notification

        Args:
            result: Outcome of the rebalance attempt
            pool_id: Pool the position belongs to
            current_tick: Pool tick at decision time

        Returns:
            True if notification sent successfully
        """
        old_range = f"[{result.old_range.lower}, {result.old_range.upper}]" if result.old_range else "none"
        new_range = f"[{result.new_range.lower}, {result.new_range.upper}]" if result.new_range else "n/a"

        if result.dry_run:
            headline = "<b>LP Rebalance Simulated (dry run)</b>"
        elif result.success:
            headline = "<b>LP Rebalance Completed</b>"
        else:
            headline = "<b>LP Rebalance Failed</b>"

        lines = [
            headline,
            self._timestamp(),
            "",
            f"Pool: <code>{_short_id(pool_id)}</code>",
        ]
        if current_tick is not None:
            lines.append(f"Current tick: {current_tick}")
        lines.append(f"Range: {old_range} -> {new_range}")
        if result.new_position_id:
            lines.append(f"New position: <code>{_short_id(result.new_position_id)}</code>")
        if result.transaction_digest:
            lines.append(f"Digest: <code>{result.transaction_digest}</code>")
        if result.error:
            lines.append(f"Error: {html.escape(result.error)}")

        return self._send_message("\n".join(lines))

    def send_error_notification(self,
                                error_type: str,
                                error_message: str,
                                context: Optional[Dict[str, Any]] = None) -> bool:
        """
        Send error notification

        Args:
            error_type: Type of error (e.g., "Check Failed", "State Read Error")
            error_message: Error message
            context: Additional context information

        Returns:
            True if notification sent successfully
        """
        context_text = ""
        if context:
            context_text = "\n<b>Context:</b>\n"
            for key, value in context.items():
                context_text += f"  - {key}: {html.escape(str(value))}\n"

        message = f"""
<b>Error Alert</b>
{self._timestamp()}

<b>Error Type:</b> {html.escape(error_type)}
<b>Message:</b> {html.escape(error_message)}{context_text}

Please check the logs for more details.
        """.strip()

        return self._send_message(message)

    def send_startup_notification(self,
                                  network: str,
                                  pool_address: str,
                                  wallet_address: str,
                                  position_id: Optional[str] = None) -> bool:
        """
        Send startup notification

        Returns:
            True if notification sent successfully
        """
        mode = "tracked position" if position_id else "first position in pool"
        message = f"""
<b>LP Rebalancer Started</b>
{self._timestamp()}

<b>Configuration:</b>
  - Network: {network}
  - Pool: <code>{_short_id(pool_address)}</code>
  - Wallet: <code>{_short_id(wallet_address)}</code>
  - Managing: {mode}{f' <code>{_short_id(position_id)}</code>' if position_id else ''}
  - Dry run: {'yes' if self.config.dry_run else 'no'}

Monitoring started
        """.strip()

        return self._send_message(message)

    def send_shutdown_notification(self, reason: str = "Manual shutdown") -> bool:
        """Send shutdown notification"""
        message = f"""
<b>LP Rebalancer Stopped</b>
{self._timestamp()}

<b>Reason:</b> {html.escape(reason)}
        """.strip()

        return self._send_message(message)

    def send_critical_alert(self,
                            alert_type: str,
                            message: str,
                            action_required: bool = True) -> bool:
        """
        Send critical alert requiring immediate attention

        Args:
            alert_type: Type of critical alert
            message: Alert message
            action_required: Whether immediate action is required

        Returns:
            True if notification sent successfully
        """
        urgency = "IMMEDIATE ACTION REQUIRED" if action_required else "Attention Required"

        alert_message = f"""
<b>{urgency}</b>
{self._timestamp()}

<b>Critical Alert:</b> {html.escape(alert_type)}
<b>Message:</b> {html.escape(message)}
        """.strip()

        return self._send_message(alert_message)
