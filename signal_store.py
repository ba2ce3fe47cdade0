#!/usr/bin/env python3
"""
Signal Store - SQLite persistence for detected option chain patterns

Tables:
- instruments: tracked underlyings (seeded from config.INSTRUMENTS)
- signals: one row per stored pattern, linked to its instrument

Storage is best-effort: callers log failures and carry on.
"""

import os
import sqlite3
import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

import config

logger = logging.getLogger(__name__)


class SignalStore:
    """SQLite-backed store for market signals"""

    def __init__(self, db_path: str = None):
        """
        Initialize signal store.

        Args:
            db_path: Path to SQLite database file (default from config, ":memory:" allowed)
        """
        self.db_path = db_path or config.SIGNAL_DB_PATH
        self._lock = threading.Lock()

        if self.db_path != ":memory:" and os.path.dirname(self.db_path):
            os.makedirs(os.path.dirname(self.db_path), exist_ok=True)

        self.conn = sqlite3.connect(
            self.db_path,
            timeout=config.SQLITE_TIMEOUT_SECONDS,
            check_same_thread=False
        )
        self.conn.row_factory = sqlite3.Row
        if self.db_path != ":memory:":
            self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA synchronous=NORMAL")

        self._create_tables()
        self._seed_instruments()
        logger.info(f"Signal store initialized: {self.db_path}")

    def _create_tables(self):
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS instruments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                symbol TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                type TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS signals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                instrument_id INTEGER NOT NULL REFERENCES instruments(id),
                strike_price REAL NOT NULL,
                signal_type TEXT NOT NULL,
                direction TEXT NOT NULL,
                description TEXT,
                confidence_score REAL NOT NULL,
                timeframe TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            )
        """)

        # Latest signals per instrument
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_signals_instrument
            ON signals(instrument_id, created_at DESC)
        """)

        self.conn.commit()

    def _seed_instruments(self):
        now_str = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        rows = [
            (symbol, info['name'], info['type'], now_str)
            for symbol, info in config.INSTRUMENTS.items()
        ]
        with self._lock:
            self.conn.executemany("""
                INSERT OR IGNORE INTO instruments (symbol, name, type, created_at)
                VALUES (?, ?, ?, ?)
            """, rows)
            self.conn.commit()

    def get_instruments(self) -> Dict[str, int]:
        """Map of symbol -> instrument id for active instruments"""
        with self._lock:
            cursor = self.conn.execute("SELECT id, symbol FROM instruments WHERE is_active = 1")
            rows = cursor.fetchall()
        return {row['symbol']: row['id'] for row in rows}

    def add_instrument(self, symbol: str, name: str, instrument_type: str = 'EQUITY') -> int:
        with self._lock:
            self.conn.execute("""
                INSERT OR IGNORE INTO instruments (symbol, name, type, created_at)
                VALUES (?, ?, ?, ?)
            """, (symbol, name, instrument_type, datetime.now().strftime('%Y-%m-%d %H:%M:%S')))
            self.conn.commit()
        return self.get_instruments()[symbol]

    def store_patterns(self, patterns: List[Dict]) -> int:
        """
        Store patterns as active signals.

        Patterns whose underlying is not a known instrument are skipped.

        Args:
            patterns: Pattern dicts from PatternDetector

        Returns:
            Number of signals inserted
        """
        if not patterns:
            return 0

        instruments = self.get_instruments()
        now_str = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        rows = []

        for pattern in patterns:
            instrument_id = instruments.get(pattern['underlying'])
            if instrument_id is None:
                logger.warning(f"Instrument not found for {pattern['underlying']}, skipping pattern storage")
                continue

            rows.append((
                instrument_id,
                pattern['strike'],
                pattern['type'],
                pattern['direction'],
                pattern.get('description', ''),
                pattern['confidence'],
                pattern.get('timeframe'),
                now_str
            ))

        if not rows:
            return 0

        with self._lock:
            self.conn.executemany("""
                INSERT INTO signals
                (instrument_id, strike_price, signal_type, direction, description,
                 confidence_score, timeframe, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, rows)
            self.conn.commit()

        logger.debug(f"Stored {len(rows)} signals")
        return len(rows)

    def get_active_signals(self, underlying: Optional[str] = None, limit: int = 100) -> List[Dict]:
        """
        Fetch active signals, newest first.

        Args:
            underlying: Restrict to one symbol (default: all)
            limit: Max rows returned
        """
        query = """
            SELECT s.id, i.symbol AS underlying, s.strike_price, s.signal_type, s.direction,
                   s.description, s.confidence_score, s.timeframe, s.created_at
            FROM signals s
            JOIN instruments i ON i.id = s.instrument_id
            WHERE s.is_active = 1
        """
        params = []
        if underlying:
            query += " AND i.symbol = ?"
            params.append(underlying)
        query += " ORDER BY s.id DESC LIMIT ?"
        params.append(limit)

        with self._lock:
            cursor = self.conn.execute(query, params)
            rows = cursor.fetchall()
        return [dict(row) for row in rows]

    def deactivate_signals(self, underlying: str) -> int:
        """Mark every active signal for an underlying inactive"""
        with self._lock:
            cursor = self.conn.execute("""
                UPDATE signals SET is_active = 0
                WHERE is_active = 1
                  AND instrument_id = (SELECT id FROM instruments WHERE symbol = ?)
            """, (underlying,))
            self.conn.commit()
        return cursor.rowcount

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None
