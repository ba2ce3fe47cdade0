import pytest

import market_data_service


@pytest.fixture
def make_row():
    """Factory for option chain rows; every numeric field defaults to 0"""
    def _make_row(strike, **fields):
        row = {
            'strike': float(strike),
            'call_oi': 0.0, 'call_oi_change': 0.0, 'call_ltp': 0.0, 'call_ltp_change': 0.0, 'call_volume': 0.0,
            'put_oi': 0.0, 'put_oi_change': 0.0, 'put_ltp': 0.0, 'put_ltp_change': 0.0, 'put_volume': 0.0,
        }
        row.update(fields)
        return row
    return _make_row


@pytest.fixture
def mid_session(monkeypatch):
    """Pin the session bucket so confidence multipliers are deterministic"""
    monkeypatch.setattr(market_data_service, 'get_time_of_day', lambda: 'MID_SESSION')
