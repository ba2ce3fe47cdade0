"""Telegram notifier for option chain market alerts."""
import logging
from typing import Callable, Dict

import config
from .base_notifier import BaseNotifier
from .formatting_helpers import (
    ALERT_TYPE_EMOJI,
    SEVERITY_EMOJI,
    format_alert_time,
    format_metadata_section,
    severity_rank,
)

logger = logging.getLogger(__name__)


class MarketAlertNotifier(BaseNotifier):
    """Sends MarketDataService alerts to the Telegram channel."""

    def __init__(self, min_severity: str = None, **kwargs):
        super().__init__(**kwargs)
        self.min_severity = (min_severity or config.TELEGRAM_MIN_SEVERITY).upper()

    def should_send(self, alert: Dict) -> bool:
        return severity_rank(alert.get('severity')) >= severity_rank(self.min_severity)

    def format_market_alert(self, alert: Dict) -> str:
        severity = alert.get('severity', 'LOW')
        type_emoji = ALERT_TYPE_EMOJI.get(alert.get('type'), '🔔')

        message = (
            f"{SEVERITY_EMOJI.get(severity, '⚪')} <b>{alert['title']}</b> {type_emoji}\n"
            "━━━━━━━━━━━━━━━━━━━━━━━━━━\n"
            f"⏰ {format_alert_time(alert.get('timestamp'))}\n\n"
            f"📌 <b>Underlying:</b> {alert['underlying']}\n"
        )

        if alert.get('strike') is not None:
            message += f"🎯 <b>Strike:</b> {alert['strike']:g}\n"

        message += f"⚠️ <b>Severity:</b> {severity}\n\n"
        message += alert['message']
        message += format_metadata_section(alert.get('metadata') or {})
        return message

    def send_market_alert(self, alert: Dict) -> bool:
        """
        Send one market alert to Telegram.

        Args:
            alert: Alert dict from MarketDataService

        Returns:
            True if message sent successfully, False otherwise
        """
        return self._send_message(self.format_market_alert(alert))

    def as_alert_subscriber(self) -> Callable[[Dict], None]:
        """Callback for MarketDataService.subscribe_to_alerts honouring min_severity."""
        def forward(alert: Dict):
            if not self.should_send(alert):
                logger.debug(f"Alert {alert['id']} below {self.min_severity}, not sent to Telegram")
                return
            self.send_market_alert(alert)

        return forward
