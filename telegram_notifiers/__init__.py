"""
Telegram Notifiers Module

Delivers option chain market alerts to a Telegram channel.
"""

from telegram_notifiers.base_notifier import BaseNotifier
from telegram_notifiers.market_alerts import MarketAlertNotifier

__all__ = [
    'BaseNotifier',
    'MarketAlertNotifier',
]
