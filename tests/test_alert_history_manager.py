"""
Tests for AlertHistoryManager cooldown and capped history
"""

from datetime import datetime, timedelta

from alert_history_manager import AlertHistoryManager


def make_alert(alert_id, severity='HIGH', acknowledged=False):
    return {
        'id': alert_id,
        'severity': severity,
        'acknowledged': acknowledged,
        'timestamp': f"2026-10-19T10:{int(alert_id):02d}:00",
    }


def test_cooldown_window():
    manager = AlertHistoryManager(cooldown_minutes=5)
    sent_at = datetime(2026, 10, 19, 10, 0)

    assert manager.is_duplicate('NIFTY', 20000, 'MAX_PAIN', now=sent_at) is False
    manager.mark_sent('NIFTY', 20000, 'MAX_PAIN', now=sent_at)

    assert manager.is_duplicate('NIFTY', 20000, 'MAX_PAIN', now=sent_at + timedelta(minutes=4)) is True
    assert manager.is_duplicate('NIFTY', 20000, 'MAX_PAIN', now=sent_at + timedelta(minutes=5)) is False


def test_cooldown_is_keyed_by_underlying_strike_and_kind():
    manager = AlertHistoryManager()
    manager.mark_sent('NIFTY', 20000, 'MAX_PAIN')

    assert manager.is_duplicate('NIFTY', 20000, 'MAX_PAIN') is True
    assert manager.is_duplicate('NIFTY', 20100, 'MAX_PAIN') is False
    assert manager.is_duplicate('NIFTY', 20000, 'GAMMA_ALERT') is False
    assert manager.is_duplicate('BANKNIFTY', 20000, 'MAX_PAIN') is False


def test_history_is_capped_and_newest_first():
    manager = AlertHistoryManager(max_alerts=3)
    for i in range(5):
        manager.add_alert(make_alert(str(i)))

    assert [a['id'] for a in manager.get_alerts()] == ['4', '3', '2']


def test_acknowledge():
    manager = AlertHistoryManager()
    manager.add_alert(make_alert('1'))

    assert manager.acknowledge('1') is True
    assert manager.get_alerts()[0]['acknowledged'] is True
    assert manager.acknowledge('99') is False


def test_clear_resets_alerts_and_cooldowns():
    manager = AlertHistoryManager()
    manager.add_alert(make_alert('1'))
    manager.mark_sent('NIFTY', None, 'PRICE_MOVEMENT')

    manager.clear()

    assert manager.get_alerts() == []
    assert manager.is_duplicate('NIFTY', None, 'PRICE_MOVEMENT') is False


def test_cleanup_expired():
    manager = AlertHistoryManager(cooldown_minutes=5)
    now = datetime(2026, 10, 19, 12, 0)
    manager.mark_sent('NIFTY', 100, 'FRESH', now=now - timedelta(minutes=1))
    manager.mark_sent('NIFTY', 100, 'OLD', now=now - timedelta(minutes=10))

    assert manager.cleanup_expired(now=now) == 1
    assert list(manager.last_sent) == [('NIFTY', 100, 'FRESH')]


def test_stats():
    manager = AlertHistoryManager()
    assert manager.get_stats()['total_alerts'] == 0
    assert manager.get_stats()['oldest_entry'] is None

    manager.add_alert(make_alert('1', severity='HIGH'))
    manager.add_alert(make_alert('2', severity='CRITICAL', acknowledged=True))
    manager.add_alert(make_alert('3', severity='HIGH'))

    stats = manager.get_stats()
    assert stats['total_alerts'] == 3
    assert stats['unacknowledged'] == 2
    assert stats['by_severity'] == {'HIGH': 2, 'CRITICAL': 1}
    assert stats['oldest_entry'] == '2026-10-19T10:01:00'
    assert stats['newest_entry'] == '2026-10-19T10:03:00'


def test_cooldown_map_stays_bounded_with_moving_strikes():
    manager = AlertHistoryManager(cooldown_minutes=5)
    start = datetime(2026, 10, 19, 9, 15)

    # Price-anchored patterns get a new strike on almost every tick
    for tick in range(500):
        manager.mark_sent('NIFTY', 20000 + tick, 'MOMENTUM_SHIFT', now=start + timedelta(minutes=tick))

    assert len(manager.last_sent) <= 6
    assert ('NIFTY', 20499, 'MOMENTUM_SHIFT') in manager.last_sent
