#!/usr/bin/env python3
"""
Option Chain Pattern Detector

Heuristic pattern detection over option chain snapshots for a single
underlying (NIFTY, BANKNIFTY, CRUDEOIL, ...).

Patterns Supported:
1. Call/Put Long Buildup (OI ↑ + Premium ↑)
2. Call/Put Short Covering (OI ↓ + Premium ↑)
3. Max Pain deviation
4. Gamma Squeeze risk near spot
5. Volatility Spike (ATM premiums vs recent snapshots)
6. Unusual Activity (volume vs chain average)
7. Support/Resistance from OI concentration
8. Momentum Shift from price history
9. Multi-timeframe OI buildup (5MIN / 15MIN)

Each pattern is a dict with type, direction, confidence (0-1), description,
strike, underlying, strength, timeframe and metadata.
"""

from collections import defaultdict
from typing import Dict, List, Optional
import logging
import numpy as np

import config

logger = logging.getLogger(__name__)


class PatternDetector:
    """Detects option chain patterns and keeps rolling history per underlying"""

    SCORE_BOOST_BY_TYPE = {
        'GAMMA_SQUEEZE': 1.2,
        'MAX_PAIN': 1.2,
        'UNUSUAL_ACTIVITY': 1.1,
    }

    SCORE_BOOST_BY_TIMEFRAME = {
        '1MIN': 1.15,
        '5MIN': 1.1,
        '15MIN': 1.05,
    }

    TIME_OF_DAY_MULTIPLIER = {
        'OPENING': 1.2,
        'CLOSING': 1.1,
        'MID_SESSION': 1.0,
        'AFTER_HOURS': 0.8,
    }

    def __init__(
        self,
        option_history_size: int = None,
        price_history_size: int = None
    ):
        """
        Initialize pattern detector

        Args:
            option_history_size: Chain snapshots kept per underlying (default from config)
            price_history_size: Prices kept per underlying (default from config)
        """
        self.option_history_size = option_history_size or config.OPTION_HISTORY_SIZE
        self.price_history_size = price_history_size or config.PRICE_HISTORY_SIZE

        self.option_history: Dict[str, List[List[Dict]]] = defaultdict(list)
        self.price_history: Dict[str, List[float]] = defaultdict(list)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze_option_chain(
        self,
        data: List[Dict],
        underlying: str,
        current_price: float,
        market_context: Optional[Dict] = None
    ) -> List[Dict]:
        """
        Run every detector over one option chain snapshot.

        Args:
            data: Option chain rows (one dict per strike)
            underlying: Underlying symbol
            current_price: Current underlying price
            market_context: Optional market context dict

        Returns:
            Up to MAX_PATTERNS_PER_ANALYSIS patterns, highest confidence first
        """
        if current_price is None or current_price <= 0:
            raise ValueError(f"{underlying}: current price must be positive, got {current_price}")

        self._update_history(underlying, data, current_price)

        if not data:
            logger.debug(f"{underlying}: Empty option chain, skipping analysis")
            return []

        patterns = []
        atm_strike = self.find_atm_strike(data, current_price)
        context_multiplier = self.get_context_multiplier(market_context)

        for row in data:
            patterns.extend(self._analyze_strike(row, underlying, atm_strike, context_multiplier))

        patterns.extend(self._analyze_advanced_patterns(data, underlying, current_price))
        patterns.extend(self._analyze_multi_timeframe(underlying, current_price))

        patterns = [p for p in patterns if p['confidence'] >= config.CONFIDENCE_LOW]
        patterns.sort(key=lambda p: p['confidence'], reverse=True)

        logger.debug(f"{underlying}: {len(patterns)} patterns above confidence floor")
        return patterns[:config.MAX_PATTERNS_PER_ANALYSIS]

    def monitor_patterns(
        self,
        previous_data: List[Dict],
        current_data: List[Dict],
        underlying: str,
        current_price: float,
        market_context: Optional[Dict] = None
    ) -> List[Dict]:
        """
        Detect emerging patterns from the change between two consecutive snapshots.

        Args:
            previous_data: Previous option chain snapshot
            current_data: Current option chain snapshot
            underlying: Underlying symbol
            current_price: Current underlying price
            market_context: Optional market context dict

        Returns:
            List of 1MIN patterns for strikes with fast call OI and premium velocity
        """
        emerging = []
        previous_by_strike = {row['strike']: row for row in previous_data}
        context_multiplier = self.get_context_multiplier(market_context)

        for current in current_data:
            previous = previous_by_strike.get(current['strike'])
            if previous is None:
                continue

            oi_velocity = current['call_oi_change'] - previous['call_oi_change']
            premium_velocity = current['call_ltp_change'] - previous['call_ltp_change']
            volume_acceleration = current['call_volume'] - previous['call_volume']

            if (abs(oi_velocity) > config.VELOCITY_OI_THRESHOLD and
                    abs(premium_velocity) > config.VELOCITY_PREMIUM_THRESHOLD):
                confidence = min(0.9, abs(oi_velocity) / 50000) * context_multiplier
                building = oi_velocity > 0

                emerging.append({
                    'type': 'CALL_LONG_BUILDUP' if building else 'CALL_SHORT_COVER',
                    'direction': 'BULLISH' if building else 'BEARISH',
                    'confidence': min(1.0, confidence),
                    'description': (
                        f"Rapid pattern emergence at {current['strike']:g}. "
                        f"OI velocity: {oi_velocity / 1000:.0f}K, "
                        f"Volume acceleration: {volume_acceleration / 1000:.0f}K"
                    ),
                    'strike': current['strike'],
                    'underlying': underlying,
                    'strength': 'STRONG',
                    'timeframe': '1MIN',
                    'metadata': {
                        'volume_ratio': volume_acceleration / config.VOLUME_THRESHOLD,
                        'risk_level': 'HIGH' if abs(oi_velocity) > 20000 else 'MEDIUM'
                    }
                })

        if emerging:
            logger.info(f"{underlying}: {len(emerging)} emerging patterns detected")
        return emerging

    @staticmethod
    def validate_patterns(patterns: List[Dict]) -> List[Dict]:
        """Keep only the highest-confidence pattern per (strike, type, underlying)"""
        best = {}
        for index, pattern in enumerate(patterns):
            key = (pattern['strike'], pattern['type'], pattern['underlying'])
            if key not in best or pattern['confidence'] > patterns[best[key]]['confidence']:
                best[key] = index

        keep = set(best.values())
        return [p for i, p in enumerate(patterns) if i in keep]

    def score_patterns(self, patterns: List[Dict]) -> List[Dict]:
        """
        Boost high-impact patterns and shorter timeframes for prioritisation.

        Returns:
            New pattern dicts with boosted confidence, highest first
        """
        scored = []
        for pattern in patterns:
            score = pattern['confidence']
            score *= self.SCORE_BOOST_BY_TYPE.get(pattern['type'], 1.0)
            score *= self.SCORE_BOOST_BY_TIMEFRAME.get(pattern['timeframe'], 1.0)

            boosted = dict(pattern)
            boosted['confidence'] = min(1.0, score)
            scored.append(boosted)

        scored.sort(key=lambda p: p['confidence'], reverse=True)
        return scored

    def get_history(self, underlying: str) -> Dict:
        return {
            'snapshots': list(self.option_history.get(underlying, [])),
            'prices': list(self.price_history.get(underlying, [])),
        }

    def reset(self, underlying: str = None):
        """Forget history for one underlying, or all of them"""
        if underlying is None:
            self.option_history.clear()
            self.price_history.clear()
        else:
            self.option_history.pop(underlying, None)
            self.price_history.pop(underlying, None)

    # ------------------------------------------------------------------
    # Shared calculations
    # ------------------------------------------------------------------

    @staticmethod
    def get_strength(confidence: float) -> str:
        if confidence >= config.CONFIDENCE_HIGH:
            return 'STRONG'
        if confidence >= config.CONFIDENCE_MEDIUM:
            return 'MODERATE'
        return 'WEAK'

    @staticmethod
    def find_atm_strike(data: List[Dict], current_price: float) -> float:
        """Strike closest to spot (first one wins on ties)"""
        closest = data[0]
        for row in data[1:]:
            if abs(row['strike'] - current_price) < abs(closest['strike'] - current_price):
                closest = row
        return closest['strike']

    @staticmethod
    def calculate_max_pain(data: List[Dict]) -> float:
        """
        Strike at which option writers pay out the least at expiry.

        For each candidate strike, sums ITM put payout for lower strikes and
        ITM call payout for higher strikes.
        """
        min_pain = float('inf')
        max_pain_strike = 0

        for candidate in data:
            expiry = candidate['strike']
            total_pain = 0
            for other in data:
                if other['strike'] < expiry:
                    total_pain += other['put_oi'] * (expiry - other['strike'])
                elif other['strike'] > expiry:
                    total_pain += other['call_oi'] * (other['strike'] - expiry)

            if total_pain < min_pain:
                min_pain = total_pain
                max_pain_strike = expiry

        return max_pain_strike

    @staticmethod
    def calculate_pcr(data: List[Dict]) -> Optional[float]:
        """Put-Call Ratio on open interest, None when there is no call OI"""
        total_call_oi = sum(row['call_oi'] for row in data)
        total_put_oi = sum(row['put_oi'] for row in data)
        if total_call_oi == 0:
            return None
        return round(total_put_oi / total_call_oi, 2)

    def get_context_multiplier(self, market_context: Optional[Dict]) -> float:
        """
        Confidence multiplier from session time, volatility and trend.

        Returns:
            Multiplier clamped to [0.7, 1.3]; 1.0 without context
        """
        if not market_context:
            return 1.0

        multiplier = self.TIME_OF_DAY_MULTIPLIER.get(market_context.get('time_of_day'), 1.0)

        volatility = market_context.get('volatility', 0)
        if volatility > 2.0:
            multiplier *= 1.1
        elif volatility < 0.5:
            multiplier *= 0.9

        if market_context.get('trend', 'SIDEWAYS') != 'SIDEWAYS':
            multiplier *= 1.05

        return min(1.3, max(0.7, multiplier))

    @staticmethod
    def calculate_enhanced_confidence(
        oi_change: float,
        premium_change: float,
        volume: float,
        strike: float,
        atm_strike: float,
        context_multiplier: float
    ) -> float:
        """
        Weighted confidence for a buildup/covering signal.

        Weights: OI change 35%, premium change 25%, volume 20%,
        ATM proximity 10%, consistency of the first three 10%.
        """
        oi_score = min(1, abs(oi_change) / 50000) * 0.35
        premium_score = min(1, abs(premium_change) / 20) * 0.25
        volume_score = min(1, volume / 100000) * 0.20

        distance_from_atm = abs(strike - atm_strike) / atm_strike if atm_strike else 1
        atm_score = max(0, 1 - distance_from_atm * 5) * 0.10

        consistency_score = (oi_score + premium_score + volume_score) / 3 * 0.10

        confidence = oi_score + premium_score + volume_score + atm_score + consistency_score
        return min(1.0, confidence * context_multiplier)

    # ------------------------------------------------------------------
    # Detectors
    # ------------------------------------------------------------------

    def _update_history(self, underlying: str, data: List[Dict], price: float):
        snapshots = self.option_history[underlying]
        snapshots.append([dict(row) for row in data])
        if len(snapshots) > self.option_history_size:
            del snapshots[:len(snapshots) - self.option_history_size]

        prices = self.price_history[underlying]
        prices.append(price)
        if len(prices) > self.price_history_size:
            del prices[:len(prices) - self.price_history_size]

    def _analyze_strike(
        self,
        row: Dict,
        underlying: str,
        atm_strike: float,
        context_multiplier: float
    ) -> List[Dict]:
        """Buildup and short covering checks for both legs of one strike"""
        patterns = []
        oi_threshold = config.OI_CHANGE_THRESHOLD
        premium_threshold = config.PREMIUM_CHANGE_THRESHOLD

        for side in ('call', 'put'):
            oi_change = row[f'{side}_oi_change']
            premium_change = row[f'{side}_ltp_change']
            volume = row[f'{side}_volume']

            if premium_change <= premium_threshold:
                continue

            if oi_change > oi_threshold:
                pattern_type = f'{side.upper()}_LONG_BUILDUP'
                if side == 'call':
                    description = (
                        f"Strong call buying at {row['strike']:g}. "
                        f"OI +{oi_change / 1000:.0f}K, Premium +₹{premium_change:.2f}"
                    )
                else:
                    description = (
                        f"Heavy put accumulation at {row['strike']:g}. "
                        f"OI +{oi_change / 1000:.0f}K, Premium +₹{premium_change:.2f}"
                    )
            elif oi_change < -oi_threshold:
                pattern_type = f'{side.upper()}_SHORT_COVER'
                description = (
                    f"{side.capitalize()} short covering at {row['strike']:g}. "
                    f"OI {oi_change / 1000:.0f}K, Premium +₹{premium_change:.2f}"
                )
            else:
                continue

            confidence = self.calculate_enhanced_confidence(
                oi_change, premium_change, volume, row['strike'], atm_strike, context_multiplier
            )

            patterns.append({
                'type': pattern_type,
                'direction': 'BULLISH' if side == 'call' else 'BEARISH',
                'confidence': confidence,
                'description': description,
                'strike': row['strike'],
                'underlying': underlying,
                'strength': self.get_strength(confidence),
                'timeframe': '5MIN',
                'metadata': {
                    'volume_ratio': volume / config.VOLUME_THRESHOLD,
                    'risk_level': self._risk_from_confidence(confidence)
                }
            })

        return patterns

    def _analyze_advanced_patterns(
        self,
        data: List[Dict],
        underlying: str,
        current_price: float
    ) -> List[Dict]:
        patterns = []

        for single in (
            self._detect_max_pain(data, underlying, current_price),
            self._detect_gamma_squeeze(data, underlying, current_price),
            self._detect_volatility_spike(data, underlying, current_price),
        ):
            if single:
                patterns.append(single)

        patterns.extend(self._detect_unusual_activity(data, underlying))
        patterns.extend(self._detect_support_resistance(data, underlying, current_price))

        momentum = self._detect_momentum_shift(underlying, current_price)
        if momentum:
            patterns.append(momentum)

        return patterns

    def _detect_max_pain(self, data: List[Dict], underlying: str, current_price: float) -> Optional[Dict]:
        max_pain = self.calculate_max_pain(data)
        deviation = abs(max_pain - current_price)
        deviation_pct = deviation / current_price * 100

        if deviation_pct <= config.MAX_PAIN_DEVIATION_THRESHOLD:
            return None

        direction = 'BULLISH' if max_pain > current_price else 'BEARISH'
        confidence = min(0.9, deviation_pct / 5)

        if deviation_pct > 5:
            risk_level = 'HIGH'
        elif deviation_pct > 3:
            risk_level = 'MEDIUM'
        else:
            risk_level = 'LOW'

        return {
            'type': 'MAX_PAIN',
            'direction': direction,
            'confidence': confidence,
            'description': (
                f"Max Pain at {max_pain:.0f} suggests {direction.lower()} pressure. "
                f"Current price: {current_price:.0f} ({deviation_pct:.1f}% deviation)"
            ),
            'strike': max_pain,
            'underlying': underlying,
            'strength': self.get_strength(confidence),
            'timeframe': 'DAILY',
            'metadata': {
                'max_pain': max_pain,
                'expected_move': deviation,
                'risk_level': risk_level
            }
        }

    def _detect_gamma_squeeze(self, data: List[Dict], underlying: str, current_price: float) -> Optional[Dict]:
        nearby = [
            row for row in data
            if abs(row['strike'] - current_price) / current_price <= config.GAMMA_NEARBY_PCT
        ]

        max_gamma_risk = 0
        risk_direction = 'BULLISH'
        risk_strike = current_price
        total_oi = 0

        for row in nearby:
            total_oi += row['call_oi'] + row['put_oi']

            # Call writers above spot get squeezed on the way up
            if row['strike'] > current_price:
                call_risk = row['call_oi'] * row['call_volume'] / 1_000_000
                if call_risk > max_gamma_risk:
                    max_gamma_risk, risk_direction, risk_strike = call_risk, 'BULLISH', row['strike']

            if row['strike'] < current_price:
                put_risk = row['put_oi'] * row['put_volume'] / 1_000_000
                if put_risk > max_gamma_risk:
                    max_gamma_risk, risk_direction, risk_strike = put_risk, 'BEARISH', row['strike']

        normalized_risk = min(1.0, max_gamma_risk)
        if normalized_risk <= config.GAMMA_SQUEEZE_THRESHOLD:
            return None

        return {
            'type': 'GAMMA_SQUEEZE',
            'direction': risk_direction,
            'confidence': normalized_risk,
            'description': (
                f"High gamma concentration near {risk_strike:.0f}. "
                f"Potential for rapid {risk_direction.lower()} movement. "
                f"Total nearby OI: {total_oi / 1000:.0f}K"
            ),
            'strike': risk_strike,
            'underlying': underlying,
            'strength': self.get_strength(normalized_risk),
            'timeframe': '15MIN',
            'metadata': {
                'gamma_level': normalized_risk,
                'expected_move': abs(risk_strike - current_price),
                'risk_level': 'HIGH' if normalized_risk > 0.8 else 'MEDIUM'
            }
        }

    @staticmethod
    def _average_atm_premium(data: List[Dict], current_price: float) -> Optional[float]:
        atm_rows = [row for row in data if abs(row['strike'] - current_price) < config.ATM_PREMIUM_WINDOW]
        if not atm_rows:
            return None
        avg_call = np.mean([row['call_ltp'] for row in atm_rows])
        avg_put = np.mean([row['put_ltp'] for row in atm_rows])
        return float((avg_call + avg_put) / 2)

    def _detect_volatility_spike(self, data: List[Dict], underlying: str, current_price: float) -> Optional[Dict]:
        avg_premium = self._average_atm_premium(data, current_price)
        if avg_premium is None:
            return None

        # Baseline: ATM premium across earlier snapshots (current one is last)
        earlier = self.option_history.get(underlying, [])[:-1]
        baseline_values = [
            value for value in (self._average_atm_premium(snapshot, current_price) for snapshot in earlier)
            if value
        ]
        if not baseline_values:
            return None

        historical_avg = float(np.mean(baseline_values))
        volatility_ratio = avg_premium / historical_avg
        if volatility_ratio <= config.VOLATILITY_SPIKE_THRESHOLD:
            return None

        confidence = min(0.9, (volatility_ratio - 1) * 2)
        return {
            'type': 'VOLATILITY_SPIKE',
            'direction': 'NEUTRAL',
            'confidence': confidence,
            'description': (
                f"Volatility spike detected. Option premiums {(volatility_ratio - 1) * 100:.0f}% "
                f"above normal. Expect increased price movement."
            ),
            'strike': current_price,
            'underlying': underlying,
            'strength': self.get_strength(confidence),
            'timeframe': '1HOUR',
            'metadata': {
                'volume_ratio': volatility_ratio,
                'risk_level': 'HIGH' if volatility_ratio > 2.5 else 'MEDIUM'
            }
        }

    def _detect_unusual_activity(self, data: List[Dict], underlying: str) -> List[Dict]:
        patterns = []
        avg_volume = sum(row['call_volume'] + row['put_volume'] for row in data) / (len(data) * 2)
        if avg_volume <= 0:
            return patterns

        for row in data:
            total_volume = row['call_volume'] + row['put_volume']
            volume_ratio = total_volume / avg_volume

            if volume_ratio <= config.UNUSUAL_VOLUME_MULTIPLIER:
                continue

            confidence = min(0.85, volume_ratio / 5)
            is_call = row['call_volume'] > row['put_volume']

            patterns.append({
                'type': 'UNUSUAL_ACTIVITY',
                'direction': 'BULLISH' if is_call else 'BEARISH',
                'confidence': confidence,
                'description': (
                    f"Unusual {'call' if is_call else 'put'} activity at {row['strike']:g}. "
                    f"Volume {volume_ratio:.1f}x average ({total_volume / 1000:.0f}K contracts)"
                ),
                'strike': row['strike'],
                'underlying': underlying,
                'strength': self.get_strength(confidence),
                'timeframe': '5MIN',
                'metadata': {
                    'volume_ratio': volume_ratio,
                    'risk_level': 'HIGH' if volume_ratio > 5 else 'MEDIUM'
                }
            })

        return patterns[:config.MAX_UNUSUAL_ACTIVITY_PATTERNS]

    def _detect_support_resistance(self, data: List[Dict], underlying: str, current_price: float) -> List[Dict]:
        patterns = []
        high_oi_rows = sorted(
            (row for row in data if row['call_oi'] + row['put_oi'] > config.SUPPORT_RESISTANCE_MIN_OI),
            key=lambda row: row['call_oi'] + row['put_oi'],
            reverse=True
        )[:5]

        for row in high_oi_rows:
            total_oi = row['call_oi'] + row['put_oi']
            distance_pct = abs(row['strike'] - current_price) / current_price * 100

            if distance_pct > config.SUPPORT_RESISTANCE_MAX_DISTANCE_PCT:
                continue

            is_support = row['strike'] < current_price
            confidence = min(0.8, total_oi / 200000)

            if distance_pct < 1:
                risk_level = 'HIGH'
            elif distance_pct < 3:
                risk_level = 'MEDIUM'
            else:
                risk_level = 'LOW'

            patterns.append({
                'type': 'SUPPORT_RESISTANCE',
                'direction': 'BULLISH' if is_support else 'BEARISH',
                'confidence': confidence,
                'description': (
                    f"Strong {'support' if is_support else 'resistance'} at {row['strike']:g} "
                    f"with {total_oi / 1000:.0f}K OI. {distance_pct:.1f}% from current price."
                ),
                'strike': row['strike'],
                'underlying': underlying,
                'strength': self.get_strength(confidence),
                'timeframe': 'DAILY',
                'metadata': {
                    'risk_level': risk_level
                }
            })

        return patterns

    def _detect_momentum_shift(self, underlying: str, current_price: float) -> Optional[Dict]:
        prices = self.price_history.get(underlying, [])
        if len(prices) < 10:
            return None

        recent = prices[-10:]
        older = prices[-20:-10]
        if not older:
            return None

        recent_avg = float(np.mean(recent))
        older_avg = float(np.mean(older))
        momentum_change = (recent_avg - older_avg) / older_avg
        momentum_strength = abs(momentum_change)

        if momentum_strength <= config.MOMENTUM_SHIFT_THRESHOLD:
            return None

        direction = 'BULLISH' if momentum_change > 0 else 'BEARISH'
        confidence = min(0.8, momentum_strength * 100)

        if momentum_strength > 0.02:
            risk_level = 'HIGH'
        elif momentum_strength > 0.01:
            risk_level = 'MEDIUM'
        else:
            risk_level = 'LOW'

        return {
            'type': 'MOMENTUM_SHIFT',
            'direction': direction,
            'confidence': confidence,
            'description': (
                f"{direction.lower()} momentum shift detected. Price trend changed by "
                f"{momentum_change * 100:.2f}% in recent periods."
            ),
            'strike': current_price,
            'underlying': underlying,
            'strength': self.get_strength(confidence),
            'timeframe': '15MIN',
            'metadata': {
                'expected_move': abs(recent_avg - older_avg),
                'risk_level': risk_level
            }
        }

    def _analyze_multi_timeframe(self, underlying: str, current_price: float) -> List[Dict]:
        patterns = []
        history = self.option_history.get(underlying, [])
        if len(history) < 5:
            return patterns

        # Last 3 snapshots ~ 5 minutes, last 6 ~ 15 minutes of polling
        for window, timeframe in ((3, '5MIN'), (6, '15MIN')):
            trend = self._calculate_trend(history[-window:], current_price)
            if trend:
                trend['timeframe'] = timeframe
                trend['underlying'] = underlying
                patterns.append(trend)

        return patterns

    def _calculate_trend(self, snapshots: List[List[Dict]], current_price: float) -> Optional[Dict]:
        if len(snapshots) < 2:
            return None

        last_by_strike = {row['strike']: row for row in snapshots[-1]}
        total_call_change = 0
        total_put_change = 0
        significant_changes = 0

        for first in snapshots[0]:
            last = last_by_strike.get(first['strike'])
            if last is None:
                continue

            call_change = last['call_oi'] - first['call_oi']
            put_change = last['put_oi'] - first['put_oi']
            total_call_change += call_change
            total_put_change += put_change

            if abs(call_change) > config.OI_CHANGE_THRESHOLD or abs(put_change) > config.OI_CHANGE_THRESHOLD:
                significant_changes += 1

        if significant_changes == 0:
            return None

        net_change = total_call_change - total_put_change
        direction = 'BULLISH' if net_change > 0 else 'BEARISH'
        confidence = min(0.7, significant_changes / 10)

        return {
            'type': 'CALL_LONG_BUILDUP' if net_change > 0 else 'PUT_LONG_BUILDUP',
            'direction': direction,
            'confidence': confidence,
            'description': (
                f"Multi-timeframe {direction.lower()} buildup. Net OI change: "
                f"{net_change / 1000:.0f}K across {significant_changes} strikes"
            ),
            'strike': current_price,
            'strength': self.get_strength(confidence),
            'metadata': {}
        }

    @staticmethod
    def _risk_from_confidence(confidence: float) -> str:
        if confidence > 0.8:
            return 'HIGH'
        if confidence > 0.6:
            return 'MEDIUM'
        return 'LOW'
