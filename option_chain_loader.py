#!/usr/bin/env python3
"""
Option Chain Loader - Read recorded option chain snapshots for replay

Supported inputs:
- CSV: one row per strike per snapshot with columns
  timestamp, underlying, price, strike, call_oi, call_oi_change, call_ltp,
  call_ltp_change, call_volume, put_oi, put_oi_change, put_ltp,
  put_ltp_change, put_volume
- JSON: list of {"underlying", "price", "timestamp"?, "options": [rows]}

Both yield snapshots as (underlying, price, rows) in time order.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

STRIKE_COLUMNS = [
    'strike',
    'call_oi', 'call_oi_change', 'call_ltp', 'call_ltp_change', 'call_volume',
    'put_oi', 'put_oi_change', 'put_ltp', 'put_ltp_change', 'put_volume',
]

REQUIRED_CSV_COLUMNS = ['timestamp', 'underlying', 'price'] + STRIKE_COLUMNS

Snapshot = Tuple[str, float, List[Dict]]


def normalize_row(row: Dict) -> Dict:
    """Coerce a strike row to floats; missing numeric fields default to 0"""
    normalized = {column: float(row.get(column) or 0) for column in STRIKE_COLUMNS}
    if row.get('timestamp'):
        normalized['timestamp'] = str(row['timestamp'])
    return normalized


def load_csv_snapshots(path: str) -> List[Snapshot]:
    """
    Load snapshots from a CSV file.

    Args:
        path: CSV file path

    Returns:
        Snapshots ordered by timestamp

    Raises:
        ValueError: if required columns are missing
    """
    df = pd.read_csv(path)
    missing = [column for column in REQUIRED_CSV_COLUMNS if column not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing columns {missing}")

    df[STRIKE_COLUMNS + ['price']] = df[STRIKE_COLUMNS + ['price']].fillna(0).astype(float)
    df['timestamp'] = pd.to_datetime(df['timestamp'])
    df = df.sort_values(['timestamp', 'underlying', 'strike'])

    snapshots = []
    for (timestamp, underlying), group in df.groupby(['timestamp', 'underlying'], sort=True):
        rows = []
        for record in group[STRIKE_COLUMNS].to_dict('records'):
            record['timestamp'] = timestamp.isoformat()
            rows.append(record)
        snapshots.append((underlying, float(group['price'].iloc[0]), rows))

    logger.info(f"Loaded {len(snapshots)} snapshots from {path}")
    return snapshots


def load_json_snapshots(path: str) -> List[Snapshot]:
    """
    Load snapshots from a JSON file.

    Raises:
        ValueError: if the document is not a list of snapshot objects
    """
    with open(path, 'r') as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of snapshots")

    snapshots = []
    for index, entry in enumerate(data):
        try:
            underlying = entry['underlying']
            price = float(entry['price'])
            rows = [normalize_row(row) for row in entry.get('options', [])]
        except (KeyError, TypeError) as e:
            raise ValueError(f"{path}: invalid snapshot at index {index}: {e}") from e
        snapshots.append((underlying, price, rows))

    logger.info(f"Loaded {len(snapshots)} snapshots from {path}")
    return snapshots


def load_snapshots(path: str) -> List[Snapshot]:
    """Load snapshots, picking the reader from the file extension"""
    suffix = Path(path).suffix.lower()
    if suffix == '.csv':
        return load_csv_snapshots(path)
    if suffix == '.json':
        return load_json_snapshots(path)
    raise ValueError(f"Unsupported snapshot file type: {suffix or path}")
