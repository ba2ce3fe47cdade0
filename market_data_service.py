#!/usr/bin/env python3
"""
Market Data Service - Rolling history, market context, pattern alerts

Pipeline for every option chain update:
1. Track price history (last PRICE_HISTORY_SIZE ticks)
2. Derive market context (trend, volatility, session bucket)
3. Run PatternDetector + emerging pattern check against previous snapshot
4. Validate (dedupe) and score patterns
5. Raise alerts for high-confidence patterns (with cooldown)
6. Best-effort persist signals
7. Notify update subscribers

Use get_market_data_service() for the shared instance.
"""

import logging
import math
import threading
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional

import numpy as np

import config
from alert_history_manager import AlertHistoryManager
from market_utils import get_time_of_day
from pattern_detector import PatternDetector

logger = logging.getLogger(__name__)

ALERT_TYPE_BY_PATTERN = {
    'GAMMA_SQUEEZE': 'GAMMA_ALERT',
    'MAX_PAIN': 'MAX_PAIN_SHIFT',
    'VOLATILITY_SPIKE': 'VOLATILITY_SPIKE',
    'UNUSUAL_ACTIVITY': 'VOLUME_SPIKE',
}


class MarketDataService:
    """Turns option chain updates into scored patterns and alerts"""

    def __init__(
        self,
        detector: PatternDetector = None,
        signal_stores: List = None,
        alert_history: AlertHistoryManager = None
    ):
        """
        Initialize market data service

        Args:
            detector: Pattern detector (new one if None)
            signal_stores: Objects with store_patterns(patterns) used for best-effort persistence
            alert_history: Alert history manager (new one if None)
        """
        self.detector = detector or PatternDetector()
        self.signal_stores = list(signal_stores or [])
        self.alert_history = alert_history or AlertHistoryManager()

        self.subscribers: List[Callable[[Dict], None]] = []
        self.alert_subscribers: List[Callable[[Dict], None]] = []

        self.previous_data: Dict[str, List[Dict]] = {}
        self.price_history: Dict[str, List[float]] = {}
        self.pattern_history: Dict[str, List[Dict]] = {}

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[Dict], None]) -> Callable[[], None]:
        """Register a market data update callback; returns an unsubscribe function"""
        self.subscribers.append(callback)

        def unsubscribe():
            if callback in self.subscribers:
                self.subscribers.remove(callback)

        return unsubscribe

    def subscribe_to_alerts(self, callback: Callable[[Dict], None]) -> Callable[[], None]:
        """Register an alert callback; returns an unsubscribe function"""
        self.alert_subscribers.append(callback)

        def unsubscribe():
            if callback in self.alert_subscribers:
                self.alert_subscribers.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Main pipeline
    # ------------------------------------------------------------------

    def process_market_data(self, underlying: str, price: float, options: List[Dict]) -> Dict:
        """
        Process one option chain update end to end.

        Args:
            underlying: Underlying symbol
            price: Current underlying price
            options: Option chain rows

        Returns:
            Market data update dict (also delivered to subscribers)

        Raises:
            ValueError: if price is missing or not positive (no state is changed)
        """
        if price is None or price <= 0:
            raise ValueError(f"{underlying}: price must be positive, got {price}")

        timestamp = datetime.now().isoformat()

        self._update_price_history(underlying, price)
        market_context = self.generate_market_context(underlying, price, options)

        patterns = self.detector.analyze_option_chain(options, underlying, price, market_context)

        previous_options = self.previous_data.get(underlying)
        if previous_options:
            patterns.extend(self.detector.monitor_patterns(
                previous_options, options, underlying, price, market_context
            ))

        validated = self.detector.validate_patterns(patterns)
        scored = self.detector.score_patterns(validated)

        self.previous_data[underlying] = [dict(row) for row in options]
        self.pattern_history[underlying] = scored

        self._generate_pattern_alerts(scored, underlying)
        self._generate_specialized_alerts(scored, underlying, price, market_context)

        self._store_patterns(scored)

        update = {
            'underlying': underlying,
            'price': price,
            'options': options,
            'timestamp': timestamp,
            'patterns': scored,
            'market_context': market_context
        }

        for callback in list(self.subscribers):
            try:
                callback(update)
            except Exception as e:
                logger.error(f"Error in market data subscriber: {e}", exc_info=True)

        logger.info(f"{underlying} @ {price:.2f}: {len(scored)} patterns, "
                    f"trend={market_context['trend']}, session={market_context['time_of_day']}")
        return update

    def _update_price_history(self, underlying: str, price: float):
        history = self.price_history.setdefault(underlying, [])
        history.append(price)
        if len(history) > config.PRICE_HISTORY_SIZE:
            del history[:len(history) - config.PRICE_HISTORY_SIZE]

    def generate_market_context(self, underlying: str, current_price: float,
                                options: Optional[List[Dict]] = None) -> Dict:
        """
        Build market context from price history.

        Returns:
            Dict with current_price, previous_price, volatility, trend, volume, time_of_day
        """
        prices = self.price_history.get(underlying, [])
        previous_price = prices[-2] if len(prices) > 1 else current_price
        volume = sum(row['call_volume'] + row['put_volume'] for row in options) if options else 0

        return {
            'current_price': current_price,
            'previous_price': previous_price,
            'volatility': self.calculate_volatility(prices),
            'trend': self.determine_trend(prices),
            'volume': volume,
            'time_of_day': get_time_of_day()
        }

    @staticmethod
    def calculate_volatility(prices: List[float]) -> float:
        """Annualised population std-dev of simple returns (0 with fewer than 2 prices)"""
        if len(prices) < 2:
            return 0.0
        series = np.asarray(prices, dtype=float)
        returns = np.diff(series) / series[:-1]
        return float(np.std(returns) * math.sqrt(252))

    @staticmethod
    def determine_trend(prices: List[float]) -> str:
        if len(prices) < 10:
            return 'SIDEWAYS'

        recent = prices[-10:]
        older = prices[-20:-10]
        if not older:
            return 'SIDEWAYS'

        recent_avg = float(np.mean(recent))
        older_avg = float(np.mean(older))
        change = (recent_avg - older_avg) / older_avg

        if change > 0.005:
            return 'UPTREND'
        if change < -0.005:
            return 'DOWNTREND'
        return 'SIDEWAYS'

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    @staticmethod
    def _new_alert(alert_type: str, severity: str, title: str, message: str,
                   underlying: str, strike: float = None, metadata: Dict = None) -> Dict:
        return {
            'id': f"{int(datetime.now().timestamp() * 1000)}-{uuid.uuid4().hex[:9]}",
            'type': alert_type,
            'severity': severity,
            'title': title,
            'message': message,
            'underlying': underlying,
            'strike': strike,
            'timestamp': datetime.now().isoformat(),
            'acknowledged': False,
            'metadata': metadata or {}
        }

    def _emit_alert(self, alert: Dict, kind: str) -> bool:
        """
        Record and publish an alert unless its (underlying, strike, kind) is cooling down.

        Returns:
            True if the alert was published
        """
        if self.alert_history.is_duplicate(alert['underlying'], alert['strike'], kind):
            return False

        self.alert_history.mark_sent(alert['underlying'], alert['strike'], kind)
        self.alert_history.add_alert(alert)
        logger.info(f"ALERT [{alert['severity']}] {alert['title']}: {alert['message']}")

        for callback in list(self.alert_subscribers):
            try:
                callback(alert)
            except Exception as e:
                logger.error(f"Error in alert subscriber: {e}", exc_info=True)
        return True

    @staticmethod
    def get_severity_from_confidence(confidence: float) -> str:
        if confidence >= 0.9:
            return 'CRITICAL'
        if confidence >= 0.8:
            return 'HIGH'
        if confidence >= 0.6:
            return 'MEDIUM'
        return 'LOW'

    def _generate_pattern_alerts(self, patterns: List[Dict], underlying: str):
        for pattern in patterns:
            if pattern['confidence'] < config.ALERT_CONFIDENCE_THRESHOLD:
                continue

            metadata = pattern.get('metadata', {})
            alert = self._new_alert(
                alert_type=ALERT_TYPE_BY_PATTERN.get(pattern['type'], 'PATTERN_DETECTED'),
                severity=self.get_severity_from_confidence(pattern['confidence']),
                title=f"{pattern['strength']} {pattern['type'].replace('_', ' ')} Detected",
                message=f"{underlying}: {pattern['description']}",
                underlying=underlying,
                strike=pattern['strike'],
                metadata={
                    'confidence': pattern['confidence'],
                    'timeframe': pattern['timeframe'],
                    'risk_level': metadata.get('risk_level'),
                    'expected_move': metadata.get('expected_move'),
                    'pattern_type': pattern['type']
                }
            )
            self._emit_alert(alert, kind=pattern['type'])

    def _generate_specialized_alerts(self, patterns: List[Dict], underlying: str,
                                     price: float, market_context: Dict):
        volatility = market_context['volatility']
        if volatility > config.MARKET_VOLATILITY_ALERT:
            level = 'HIGH' if volatility > config.MARKET_VOLATILITY_ALERT_HIGH else 'MEDIUM'
            self._emit_alert(self._new_alert(
                alert_type='VOLATILITY_SPIKE',
                severity=level,
                title='High Volatility Detected',
                message=(f"{underlying} showing elevated volatility ({volatility * 100:.0f}%). "
                         f"Expect increased price movement."),
                underlying=underlying,
                metadata={'risk_level': level}
            ), kind='MARKET_VOLATILITY')

        gamma_patterns = [p for p in patterns if p['type'] == 'GAMMA_SQUEEZE']
        if gamma_patterns:
            highest = max(gamma_patterns, key=lambda p: p['confidence'])
            self._emit_alert(self._new_alert(
                alert_type='GAMMA_ALERT',
                severity='HIGH',
                title='Gamma Squeeze Risk',
                message=(f"{underlying} showing high gamma concentration at {highest['strike']:g}. "
                         f"Potential for rapid price movement."),
                underlying=underlying,
                strike=highest['strike'],
                metadata={'confidence': highest['confidence'], 'risk_level': 'HIGH'}
            ), kind='GAMMA_ALERT')

        max_pain_patterns = [p for p in patterns if p['type'] == 'MAX_PAIN']
        if max_pain_patterns:
            max_pain = max_pain_patterns[0]
            deviation = abs((max_pain['strike'] - price) / price) * 100
            if deviation > config.MAX_PAIN_ALERT_DEVIATION:
                level = 'HIGH' if deviation > config.MAX_PAIN_ALERT_DEVIATION_HIGH else 'MEDIUM'
                self._emit_alert(self._new_alert(
                    alert_type='MAX_PAIN_SHIFT',
                    severity=level,
                    title='Significant Max Pain Deviation',
                    message=(f"{underlying} trading {deviation:.1f}% away from Max Pain "
                             f"({max_pain['strike']:g}). Potential for price correction."),
                    underlying=underlying,
                    strike=max_pain['strike'],
                    metadata={'expected_move': abs(max_pain['strike'] - price), 'risk_level': level}
                ), kind='MAX_PAIN_SHIFT')

    def check_price_movements(self, underlying: str, current_price: float, previous_price: float) -> Optional[Dict]:
        """
        Alert on a move of PRICE_MOVE_ALERT_PERCENT or more between two prices.

        Returns:
            The published alert, or None
        """
        if not previous_price:
            logger.debug(f"{underlying}: No previous price, skipping price movement check")
            return None

        change_pct = abs((current_price - previous_price) / previous_price) * 100
        if change_pct < config.PRICE_MOVE_ALERT_PERCENT:
            return None

        if change_pct >= 3:
            severity = 'CRITICAL'
        elif change_pct >= 2:
            severity = 'HIGH'
        else:
            severity = 'MEDIUM'

        alert = self._new_alert(
            alert_type='PRICE_MOVEMENT',
            severity=severity,
            title='Significant Price Movement',
            message=f"{underlying} moved {change_pct:.2f}% to ₹{current_price:.2f}",
            underlying=underlying,
            metadata={
                'expected_move': abs(current_price - previous_price),
                'risk_level': 'HIGH' if change_pct >= 2 else 'MEDIUM'
            }
        )
        return alert if self._emit_alert(alert, kind='PRICE_MOVEMENT') else None

    def check_volume_spikes(self, options: List[Dict], underlying: str) -> List[Dict]:
        """
        Alert for every strike trading above VOLUME_SPIKE_ALERT_MULTIPLIER x average volume.

        Returns:
            Published alerts
        """
        if not options:
            return []

        avg_volume = sum(row['call_volume'] + row['put_volume'] for row in options) / (len(options) * 2)
        if avg_volume <= 0:
            return []

        published = []
        for row in options:
            total_volume = row['call_volume'] + row['put_volume']
            volume_ratio = total_volume / avg_volume
            if volume_ratio <= config.VOLUME_SPIKE_ALERT_MULTIPLIER:
                continue

            level = 'HIGH' if volume_ratio > 5 else 'MEDIUM'
            alert = self._new_alert(
                alert_type='VOLUME_SPIKE',
                severity=level,
                title='Volume Spike Detected',
                message=(f"{underlying} {row['strike']:g} showing {total_volume / 1000:.0f}K volume "
                         f"({volume_ratio:.1f}x average)"),
                underlying=underlying,
                strike=row['strike'],
                metadata={'risk_level': level}
            )
            if self._emit_alert(alert, kind='VOLUME_SPIKE'):
                published.append(alert)
        return published

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _store_patterns(self, patterns: List[Dict]):
        if not patterns:
            return
        for store in self.signal_stores:
            try:
                store.store_patterns(patterns)
            except Exception as e:
                logger.error(f"Failed to store patterns in {type(store).__name__}: {e}")

    # ------------------------------------------------------------------
    # History & analytics
    # ------------------------------------------------------------------

    def get_alert_history(self) -> List[Dict]:
        """Alerts, most recent first"""
        return self.alert_history.get_alerts()

    def get_pattern_history(self, underlying: str = None) -> List[Dict]:
        """Latest scored patterns for one underlying, or all underlyings by confidence"""
        if underlying:
            return list(self.pattern_history.get(underlying, []))

        all_patterns = [p for patterns in self.pattern_history.values() for p in patterns]
        all_patterns.sort(key=lambda p: p['confidence'], reverse=True)
        return all_patterns

    def acknowledge_alert(self, alert_id: str) -> bool:
        return self.alert_history.acknowledge(alert_id)

    def clear_alerts(self):
        self.alert_history.clear()

    def get_pattern_statistics(self, underlying: str = None) -> Dict:
        patterns = self.get_pattern_history(underlying)

        pattern_types = {}
        for pattern in patterns:
            pattern_types[pattern['type']] = pattern_types.get(pattern['type'], 0) + 1

        return {
            'total_patterns': len(patterns),
            'bullish_patterns': sum(1 for p in patterns if p['direction'] == 'BULLISH'),
            'bearish_patterns': sum(1 for p in patterns if p['direction'] == 'BEARISH'),
            'high_confidence_patterns': sum(1 for p in patterns if p['confidence'] >= config.CONFIDENCE_HIGH),
            'pattern_types': pattern_types
        }


# Singleton instance
_service_instance = None
_instance_lock = threading.Lock()


def get_market_data_service() -> MarketDataService:
    """
    Get the shared MarketDataService.

    Signal storage is wired from config: SQLite when ENABLE_SIGNAL_STORAGE,
    plus the REST backend when SIGNAL_API_TOKEN is set.
    """
    global _service_instance

    with _instance_lock:
        if _service_instance is None:
            stores = []
            if config.ENABLE_SIGNAL_STORAGE:
                from signal_store import SignalStore
                stores.append(SignalStore())
            if config.SIGNAL_API_TOKEN:
                from signal_api_client import SignalAPIClient
                stores.append(SignalAPIClient())
            _service_instance = MarketDataService(signal_stores=stores)
            logger.info(f"MarketDataService initialized with {len(stores)} signal store(s)")
        return _service_instance


def reset_market_data_service():
    """Drop the shared instance (tests, config reloads)"""
    global _service_instance
    with _instance_lock:
        _service_instance = None
