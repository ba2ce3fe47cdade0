"""
Tests for MarketDataService: pipeline, alerts, cooldown, persistence hooks
"""

from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

import config
import market_data_service
from market_data_service import MarketDataService


@pytest.fixture
def service(mid_session):
    return MarketDataService()


@pytest.fixture
def buildup_chain(make_row):
    return [make_row(100, call_oi_change=60000, call_ltp_change=25, call_volume=200000)]


def test_process_market_data_returns_update(service, buildup_chain):
    update = service.process_market_data('NIFTY', 100, buildup_chain)

    assert update['underlying'] == 'NIFTY'
    assert update['price'] == 100
    assert update['options'] is buildup_chain
    context = update['market_context']
    assert context['time_of_day'] == 'MID_SESSION'
    assert context['trend'] == 'SIDEWAYS'
    assert context['volatility'] == 0.0
    assert context['volume'] == 200000
    assert context['previous_price'] == 100

    assert len(update['patterns']) == 1
    # 0.92667 detector confidence x 0.9 (calm market) x 1.1 (5MIN boost)
    assert update['patterns'][0]['confidence'] == pytest.approx(0.9266667 * 0.9 * 1.1, rel=1e-5)


def test_high_confidence_pattern_raises_alert(service, buildup_chain):
    service.process_market_data('NIFTY', 100, buildup_chain)

    alerts = service.get_alert_history()
    assert len(alerts) == 1
    alert = alerts[0]
    assert alert['type'] == 'PATTERN_DETECTED'
    assert alert['severity'] == 'CRITICAL'
    assert alert['title'] == 'STRONG CALL LONG BUILDUP Detected'
    assert alert['message'].startswith('NIFTY: Strong call buying at 100')
    assert alert['strike'] == 100
    assert alert['acknowledged'] is False
    assert alert['metadata']['pattern_type'] == 'CALL_LONG_BUILDUP'
    assert alert['metadata']['timeframe'] == '5MIN'


def test_duplicate_alerts_suppressed_within_cooldown(service, buildup_chain):
    service.process_market_data('NIFTY', 100, buildup_chain)
    service.process_market_data('NIFTY', 100, buildup_chain)

    assert len(service.get_alert_history()) == 1

    key = ('NIFTY', 100.0, 'CALL_LONG_BUILDUP')
    service.alert_history.last_sent[key] = datetime.now() - timedelta(minutes=6)
    service.process_market_data('NIFTY', 100, buildup_chain)

    assert len(service.get_alert_history()) == 2


def test_max_pain_alerts(service, make_row):
    chain = [make_row(90, put_oi=5000), make_row(100), make_row(110, call_oi=1000)]

    service.process_market_data('NIFTY', 100, chain)

    alerts = {a['title']: a for a in service.get_alert_history()}
    assert set(alerts) == {'Significant Max Pain Deviation', 'STRONG MAX PAIN Detected'}
    assert alerts['Significant Max Pain Deviation']['severity'] == 'HIGH'
    assert alerts['Significant Max Pain Deviation']['type'] == 'MAX_PAIN_SHIFT'
    assert alerts['Significant Max Pain Deviation']['metadata']['expected_move'] == pytest.approx(10)
    assert alerts['STRONG MAX PAIN Detected']['type'] == 'MAX_PAIN_SHIFT'
    assert alerts['STRONG MAX PAIN Detected']['severity'] == 'CRITICAL'


def test_gamma_squeeze_alerts(service, make_row):
    service.process_market_data('NIFTY', 1000, [make_row(1010, call_oi=1000, call_volume=1000)])

    alerts = {a['title']: a for a in service.get_alert_history()}
    assert set(alerts) == {'Gamma Squeeze Risk', 'STRONG GAMMA SQUEEZE Detected'}
    assert alerts['Gamma Squeeze Risk']['severity'] == 'HIGH'
    assert alerts['Gamma Squeeze Risk']['strike'] == 1010
    assert alerts['STRONG GAMMA SQUEEZE Detected']['type'] == 'GAMMA_ALERT'
    assert alerts['STRONG GAMMA SQUEEZE Detected']['severity'] == 'CRITICAL'


def test_emerging_patterns_use_previous_snapshot(service, make_row):
    service.process_market_data('NIFTY', 105, [make_row(100)])
    update = service.process_market_data(
        'NIFTY', 105, [make_row(100, call_oi_change=30000, call_ltp_change=5, call_volume=20000)]
    )

    emerging = [p for p in update['patterns'] if p['timeframe'] == '1MIN']
    assert len(emerging) == 1
    assert emerging[0]['type'] == 'CALL_LONG_BUILDUP'
    # 0.6 velocity confidence x 0.9 context x 1.15 (1MIN boost)
    assert emerging[0]['confidence'] == pytest.approx(0.6 * 0.9 * 1.15)


def test_subscribers_receive_updates_and_alerts(service, buildup_chain):
    updates, alerts = [], []
    service.subscribe(updates.append)
    service.subscribe_to_alerts(alerts.append)

    service.process_market_data('NIFTY', 100, buildup_chain)

    assert len(updates) == 1
    assert updates[0]['underlying'] == 'NIFTY'
    assert len(alerts) == 1
    assert alerts[0]['type'] == 'PATTERN_DETECTED'


def test_unsubscribe_stops_delivery(service, make_row):
    updates = []
    unsubscribe = service.subscribe(updates.append)

    service.process_market_data('NIFTY', 100, [make_row(100)])
    unsubscribe()
    service.process_market_data('NIFTY', 100, [make_row(100)])
    unsubscribe()

    assert len(updates) == 1


def test_failing_subscriber_does_not_break_pipeline(service, buildup_chain):
    received = []

    def broken(update):
        raise RuntimeError("subscriber down")

    service.subscribe(broken)
    service.subscribe(received.append)
    service.subscribe_to_alerts(broken)

    service.process_market_data('NIFTY', 100, buildup_chain)

    assert len(received) == 1
    assert len(service.get_alert_history()) == 1


def test_patterns_sent_to_signal_stores(mid_session, buildup_chain):
    good = Mock()
    broken = Mock()
    broken.store_patterns.side_effect = RuntimeError("db locked")
    service = MarketDataService(signal_stores=[broken, good])

    update = service.process_market_data('NIFTY', 100, buildup_chain)

    broken.store_patterns.assert_called_once_with(update['patterns'])
    good.store_patterns.assert_called_once_with(update['patterns'])


def test_signal_stores_skipped_without_patterns(mid_session, make_row):
    store = Mock()
    service = MarketDataService(signal_stores=[store])

    service.process_market_data('NIFTY', 100, [make_row(100)])

    store.store_patterns.assert_not_called()


@pytest.mark.parametrize("current,severity", [
    (103.5, 'CRITICAL'),
    (97.5, 'HIGH'),
    (101.5, 'MEDIUM'),
])
def test_check_price_movements(service, current, severity):
    alert = service.check_price_movements('NIFTY', current, 100)

    assert alert is not None
    assert alert['type'] == 'PRICE_MOVEMENT'
    assert alert['severity'] == severity
    assert alert['strike'] is None
    assert alert['metadata']['expected_move'] == pytest.approx(abs(current - 100))


def test_small_or_unknown_price_moves_ignored(service):
    assert service.check_price_movements('NIFTY', 100.5, 100) is None
    assert service.check_price_movements('NIFTY', 150, 0) is None
    assert service.get_alert_history() == []


def test_price_movement_alert_cooldown(service):
    assert service.check_price_movements('NIFTY', 103.5, 100) is not None
    assert service.check_price_movements('NIFTY', 107, 103.5) is None
    assert service.check_price_movements('BANKNIFTY', 103.5, 100) is not None


def test_check_volume_spikes(service, make_row):
    rows = [make_row(100 + 10 * i, call_volume=100, put_volume=100) for i in range(4)]
    rows.append(make_row(140, call_volume=5000))

    alerts = service.check_volume_spikes(rows, 'NIFTY')

    assert len(alerts) == 1
    assert alerts[0]['type'] == 'VOLUME_SPIKE'
    assert alerts[0]['strike'] == 140
    assert alerts[0]['severity'] == 'HIGH'
    assert service.check_volume_spikes([], 'NIFTY') == []
    assert service.check_volume_spikes([make_row(100)], 'NIFTY') == []


def test_calculate_volatility():
    assert MarketDataService.calculate_volatility([100]) == 0.0
    assert MarketDataService.calculate_volatility([100, 110, 99]) == pytest.approx(1.5874, rel=1e-4)


def test_determine_trend():
    assert MarketDataService.determine_trend([100] * 9) == 'SIDEWAYS'
    assert MarketDataService.determine_trend([100] * 10 + [101] * 10) == 'UPTREND'
    assert MarketDataService.determine_trend([100] * 10 + [99] * 10) == 'DOWNTREND'
    assert MarketDataService.determine_trend([100] * 10 + [100.2] * 10) == 'SIDEWAYS'


@pytest.mark.parametrize("confidence,severity", [
    (0.95, 'CRITICAL'),
    (0.85, 'HIGH'),
    (0.7, 'MEDIUM'),
    (0.5, 'LOW'),
])
def test_get_severity_from_confidence(confidence, severity):
    assert MarketDataService.get_severity_from_confidence(confidence) == severity


def test_pattern_history_and_statistics(service, buildup_chain, make_row):
    service.process_market_data('NIFTY', 100, buildup_chain)
    service.process_market_data(
        'BANKNIFTY', 100, [make_row(100, put_oi_change=60000, put_ltp_change=25, put_volume=200000)]
    )

    assert len(service.get_pattern_history('NIFTY')) == 1
    assert len(service.get_pattern_history()) == 2
    assert service.get_pattern_history('FINNIFTY') == []

    stats = service.get_pattern_statistics()
    assert stats['total_patterns'] == 2
    assert stats['bullish_patterns'] == 1
    assert stats['bearish_patterns'] == 1
    assert stats['high_confidence_patterns'] == 2
    assert stats['pattern_types'] == {'CALL_LONG_BUILDUP': 1, 'PUT_LONG_BUILDUP': 1}


def test_acknowledge_and_clear_alerts(service, buildup_chain):
    service.process_market_data('NIFTY', 100, buildup_chain)
    alert_id = service.get_alert_history()[0]['id']

    assert service.acknowledge_alert(alert_id) is True
    assert service.get_alert_history()[0]['acknowledged'] is True
    assert service.acknowledge_alert('missing') is False

    service.clear_alerts()
    assert service.get_alert_history() == []

    # Cooldown is cleared with the history
    service.process_market_data('NIFTY', 100, buildup_chain)
    assert len(service.get_alert_history()) == 1


def test_invalid_price_propagates(service, make_row):
    with pytest.raises(ValueError):
        service.process_market_data('NIFTY', 0, [make_row(100)])


def test_shared_instance(monkeypatch):
    monkeypatch.setattr(config, 'ENABLE_SIGNAL_STORAGE', False)
    monkeypatch.setattr(config, 'SIGNAL_API_TOKEN', None)
    market_data_service.reset_market_data_service()

    first = market_data_service.get_market_data_service()
    assert market_data_service.get_market_data_service() is first
    assert first.signal_stores == []

    market_data_service.reset_market_data_service()
    assert market_data_service.get_market_data_service() is not first
    market_data_service.reset_market_data_service()


def test_rejected_price_leaves_state_untouched(service, make_row):
    service.process_market_data('NIFTY', 100, [make_row(100)])

    with pytest.raises(ValueError):
        service.process_market_data('NIFTY', 0, [make_row(100)])
    with pytest.raises(ValueError):
        service.process_market_data('NIFTY', None, [make_row(100)])

    assert service.price_history['NIFTY'] == [100]
    assert service.detector.get_history('NIFTY')['prices'] == [100]

    update = service.process_market_data('NIFTY', 101, [make_row(100)])
    assert update['market_context']['previous_price'] == 100
    assert update['market_context']['volatility'] == 0.0


def volatility_alerts(service):
    return [a for a in service.get_alert_history() if a['title'] == 'High Volatility Detected']


def test_market_volatility_alert_medium(service):
    # Returns +15% / -13% annualise to ~2.23
    for price in (100, 115, 100):
        service.process_market_data('NIFTY', price, [])

    alerts = volatility_alerts(service)
    assert len(alerts) == 1
    assert alerts[0]['type'] == 'VOLATILITY_SPIKE'
    assert alerts[0]['severity'] == 'MEDIUM'
    assert alerts[0]['strike'] is None


def test_market_volatility_alert_high_and_cooldown(service):
    # Returns +30% / -31% annualise to ~4.8
    for price in (100, 130, 90):
        service.process_market_data('NIFTY', price, [])

    alerts = volatility_alerts(service)
    assert len(alerts) == 1
    assert alerts[0]['severity'] == 'HIGH'

    service.process_market_data('NIFTY', 140, [])
    assert len(volatility_alerts(service)) == 1

    key = ('NIFTY', None, 'MARKET_VOLATILITY')
    service.alert_history.last_sent[key] = datetime.now() - timedelta(minutes=6)
    service.process_market_data('NIFTY', 95, [])
    assert len(volatility_alerts(service)) == 2


def test_calm_market_raises_no_volatility_alert(service):
    for price in (100, 101, 100.5):
        service.process_market_data('NIFTY', price, [])

    assert volatility_alerts(service) == []
