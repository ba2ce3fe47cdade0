"""
Alert History Manager - Capped in-memory alert history with cooldown deduplication
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

import config

logger = logging.getLogger(__name__)

AlertKey = Tuple[str, Optional[float], str]


class AlertHistoryManager:
    """Keeps the most recent alerts and remembers when each alert key last fired"""

    def __init__(self, max_alerts: int = None, cooldown_minutes: int = None):
        """
        Initialize alert history manager

        Args:
            max_alerts: Number of alerts retained (default from config)
            cooldown_minutes: Dedup window per (underlying, strike, kind) (default from config)
        """
        self.max_alerts = max_alerts or config.ALERT_HISTORY_SIZE
        self.cooldown_minutes = cooldown_minutes if cooldown_minutes is not None else config.ALERT_COOLDOWN_MINUTES
        self.alerts: List[Dict] = []
        self.last_sent: Dict[AlertKey, datetime] = {}

    def is_duplicate(self, underlying: str, strike: Optional[float], kind: str,
                     now: datetime = None) -> bool:
        """
        Check whether an alert for the same underlying, strike and kind
        fired within the cooldown window.

        Args:
            underlying: Underlying symbol
            strike: Strike price (None for underlying-wide alerts)
            kind: Pattern or alert type
            now: Reference time (default: now)

        Returns:
            True if the alert should be suppressed
        """
        now = now or datetime.now()
        last_sent_time = self.last_sent.get((underlying, strike, kind))
        if last_sent_time is None:
            return False

        elapsed = now - last_sent_time
        if elapsed < timedelta(minutes=self.cooldown_minutes):
            logger.debug(f"{underlying}: Skipping duplicate {kind} alert at {strike} "
                         f"(sent {elapsed.total_seconds() / 60:.1f}min ago)")
            return True
        return False

    def mark_sent(self, underlying: str, strike: Optional[float], kind: str, now: datetime = None):
        """Record an alert key as sent, pruning keys whose cooldown has lapsed"""
        now = now or datetime.now()
        self.cleanup_expired(now)
        self.last_sent[(underlying, strike, kind)] = now

    def add_alert(self, alert: Dict):
        """Append an alert, dropping the oldest beyond max_alerts"""
        self.alerts.append(alert)
        if len(self.alerts) > self.max_alerts:
            del self.alerts[:len(self.alerts) - self.max_alerts]

    def get_alerts(self) -> List[Dict]:
        """Alerts, most recent first"""
        return list(reversed(self.alerts))

    def acknowledge(self, alert_id: str) -> bool:
        for alert in self.alerts:
            if alert['id'] == alert_id:
                alert['acknowledged'] = True
                return True
        logger.warning(f"Alert {alert_id} not found, nothing to acknowledge")
        return False

    def clear(self):
        self.alerts = []
        self.last_sent.clear()
        logger.info("Alert history cleared")

    def cleanup_expired(self, now: datetime = None) -> int:
        """Drop cooldown entries older than the cooldown window"""
        now = now or datetime.now()
        cutoff = now - timedelta(minutes=self.cooldown_minutes)
        expired = [key for key, sent_at in self.last_sent.items() if sent_at < cutoff]
        for key in expired:
            del self.last_sent[key]
        return len(expired)

    def get_stats(self) -> Dict:
        """
        Get statistics about alert history

        Returns:
            Dictionary with total_alerts, unacknowledged, by_severity, oldest_entry, newest_entry
        """
        if not self.alerts:
            return {
                "total_alerts": 0,
                "unacknowledged": 0,
                "by_severity": {},
                "oldest_entry": None,
                "newest_entry": None
            }

        by_severity = {}
        for alert in self.alerts:
            by_severity[alert['severity']] = by_severity.get(alert['severity'], 0) + 1

        return {
            "total_alerts": len(self.alerts),
            "unacknowledged": sum(1 for a in self.alerts if not a['acknowledged']),
            "by_severity": by_severity,
            "oldest_entry": self.alerts[0]['timestamp'],
            "newest_entry": self.alerts[-1]['timestamp']
        }
