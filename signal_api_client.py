"""REST client that forwards detected patterns to the signals backend."""
import logging
from typing import Dict, List, Optional

import requests

import config

logger = logging.getLogger(__name__)


class SignalAPIClient:
    """Posts signals to SIGNAL_API_URL/signals using a bearer token."""

    def __init__(self, base_url: str = None, token: str = None, timeout: int = None):
        self.base_url = (base_url or config.SIGNAL_API_URL).rstrip('/')
        self.token = token if token is not None else config.SIGNAL_API_TOKEN
        self.timeout = timeout or config.SIGNAL_API_TIMEOUT
        self.session = requests.Session()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
        }

    def insert_signal(self, pattern: Dict) -> Optional[str]:
        """
        Post one pattern as a signal.

        Args:
            pattern: Pattern dict from PatternDetector

        Returns:
            Signal id assigned by the backend, or None on failure
        """
        payload = {
            "symbol": pattern['underlying'],
            "strike_price": pattern['strike'],
            "signal_type": pattern['type'],
            "direction": pattern['direction'],
            "description": pattern.get('description', ''),
            "confidence_score": pattern['confidence'],
            "is_active": True,
        }

        try:
            response = self.session.post(
                f"{self.base_url}/signals",
                json=payload,
                headers=self._headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to post signal for {pattern['underlying']} {pattern['strike']}: {e}")
            return None
        except ValueError as e:
            logger.error(f"Signal API returned invalid JSON: {e}")
            return None

        signal = data.get('signal') or {}
        return signal.get('id') or data.get('id')

    def store_patterns(self, patterns: List[Dict]) -> int:
        """
        Post every pattern; skipped entirely without an API token.

        Returns:
            Number of signals accepted by the backend
        """
        if not self.is_authenticated:
            logger.warning("Signal API token not configured, skipping pattern storage")
            return 0

        stored = 0
        for pattern in patterns:
            if self.insert_signal(pattern) is not None:
                stored += 1
            else:
                logger.warning(f"Failed to store pattern for {pattern['underlying']} {pattern['strike']}")
        return stored
