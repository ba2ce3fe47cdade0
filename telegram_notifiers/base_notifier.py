"""Base notifier class with common Telegram functionality."""
from datetime import datetime
import logging

import requests

import config

logger = logging.getLogger(__name__)


class BaseNotifier:
    """Base class for all Telegram notifiers with shared functionality."""

    def __init__(self, bot_token: str = None, channel_id: str = None):
        """
        Initialize base notifier with Telegram credentials.

        Args:
            bot_token: Bot token (default: TELEGRAM_BOT_TOKEN from .env)
            channel_id: Channel/chat id (default: TELEGRAM_CHANNEL_ID from .env)
        """
        self.bot_token = bot_token or config.TELEGRAM_BOT_TOKEN
        self.channel_id = channel_id or config.TELEGRAM_CHANNEL_ID
        self.base_url = f"https://api.telegram.org/bot{self.bot_token}"

        if not self.bot_token or not self.channel_id:
            raise ValueError("Telegram bot token and channel ID must be set in .env file")

    def _send_message(self, message: str) -> bool:
        """
        Send message to Telegram channel.

        Args:
            message: HTML formatted message text

        Returns:
            True if successful, False otherwise
        """
        url = f"{self.base_url}/sendMessage"
        payload = {
            "chat_id": self.channel_id,
            "text": message,
            "parse_mode": "HTML"
        }

        try:
            response = requests.post(url, json=payload, timeout=10)
            response.raise_for_status()
            logger.info("Telegram message sent successfully")
            return True
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Telegram message: {e}")
            return False

    def send_test_message(self) -> bool:
        """Send a test message to verify Telegram integration."""
        test_message = (
            "🧪 <b>PATTERN MONITOR TEST</b> 🧪\n"
            "━━━━━━━━━━━━━━━━━━━━━━━━━━\n\n"
            "✅ Option chain alerts will be delivered here.\n\n"
            f"📅 Test Time: {datetime.now().strftime('%Y-%m-%d %I:%M:%S %p')}\n"
            f"🔔 Minimum severity: {config.TELEGRAM_MIN_SEVERITY}"
        )
        return self._send_message(test_message)
