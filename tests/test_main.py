"""
Tests for the command line entry point
"""

import json
import logging
from unittest.mock import Mock

import pytest

import config
import main
import market_data_service
import signal_store


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch, mid_session):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config, 'LOG_FILE', str(tmp_path / 'logs' / 'test.log'))
    monkeypatch.setattr(config, 'SIGNAL_API_TOKEN', None)
    root = logging.getLogger()
    handlers = list(root.handlers)
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def snapshot_file(tmp_path):
    row = {'strike': 100, 'call_oi_change': 60000, 'call_ltp_change': 25, 'call_volume': 200000}
    path = tmp_path / 'replay.json'
    path.write_text(json.dumps([
        {'underlying': 'NIFTY', 'price': 100, 'options': [row]},
        {'underlying': 'NIFTY', 'price': 104, 'options': [row]},
    ]))
    return str(path)


def test_status():
    assert main.main(['status']) == 0


def test_replay_without_storage(snapshot_file):
    assert main.main(['replay', snapshot_file, '--no-store']) == 0


def test_replay_with_sqlite_and_excel(tmp_path, snapshot_file, monkeypatch):
    monkeypatch.setattr(config, 'ENABLE_SIGNAL_STORAGE', True)
    db_path = tmp_path / 'signals.db'
    excel_path = tmp_path / 'alerts.xlsx'

    assert main.main(['replay', snapshot_file, '--db', str(db_path), '--excel', str(excel_path)]) == 0

    assert db_path.exists()
    assert excel_path.exists()


def test_replay_excel_default_path(tmp_path, snapshot_file):
    assert main.main(['replay', snapshot_file, '--no-store', '--excel']) == 0
    assert (tmp_path / config.ALERT_EXCEL_PATH).exists()


def test_replay_bad_file_fails(tmp_path):
    bad = tmp_path / 'chain.txt'
    bad.write_text('nothing')

    assert main.main(['replay', str(bad)]) == 1


def test_replay_empty_file(tmp_path):
    empty = tmp_path / 'empty.json'
    empty.write_text('[]')

    assert main.main(['replay', str(empty), '--no-store']) == 0


def test_stores_closed_when_replay_fails(snapshot_file, monkeypatch):
    store = Mock()
    monkeypatch.setattr(config, 'ENABLE_SIGNAL_STORAGE', True)
    monkeypatch.setattr(signal_store, 'SignalStore', lambda db_path: store)
    monkeypatch.setattr(market_data_service.MarketDataService, 'process_market_data',
                        Mock(side_effect=RuntimeError("feed broken")))

    assert main.main(['replay', snapshot_file]) == 1
    store.close.assert_called_once()
