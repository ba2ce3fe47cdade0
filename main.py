#!/usr/bin/env python3
"""
Option Chain Pattern Monitor - Main Entry Point

Replays recorded option chain snapshots through the pattern engine and
reports alerts, optionally forwarding them to Telegram and Excel.

Usage:
    python3 main.py replay data/nifty_chain.csv --telegram --excel data/alerts/replay.xlsx
    python3 main.py status
"""

import argparse
import logging
import os
import sys

import config
from market_utils import get_market_status


def setup_logging(verbose: bool = False):
    """Configure logging to both file and console"""
    os.makedirs(os.path.dirname(config.LOG_FILE), exist_ok=True)

    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    file_handler = logging.FileHandler(config.LOG_FILE)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(log_format, date_format))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter(log_format, date_format))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Option chain pattern monitor")
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug output on console')
    subparsers = parser.add_subparsers(dest='command', required=True)

    replay = subparsers.add_parser('replay', help='Replay recorded snapshots (CSV or JSON)')
    replay.add_argument('file', help='Snapshot file')
    replay.add_argument('--telegram', action='store_true', help='Forward alerts to Telegram')
    replay.add_argument('--excel', metavar='PATH', nargs='?', const=config.ALERT_EXCEL_PATH,
                        help='Export alerts to an Excel workbook (default: %(const)s)')
    replay.add_argument('--db', metavar='PATH', help='SQLite signal database (default from config)')
    replay.add_argument('--no-store', action='store_true', help='Do not persist signals')

    subparsers.add_parser('status', help='Show market session status')
    return parser


def run_status() -> int:
    logger = logging.getLogger(__name__)
    status = get_market_status()
    logger.info(f"Current time: {status['current_time']}")
    logger.info(f"Is weekday: {status['is_weekday']}")
    logger.info(f"Is market hours: {status['is_market_hours']}")
    logger.info(f"Session: {status['time_of_day']}")
    logger.info(f"Market open: {status['is_open']}")
    return 0


def run_replay(args) -> int:
    from market_data_service import MarketDataService
    from option_chain_loader import load_snapshots

    logger = logging.getLogger(__name__)

    snapshots = load_snapshots(args.file)
    if not snapshots:
        logger.warning(f"No snapshots found in {args.file}")
        return 0

    stores = []
    if not args.no_store and config.ENABLE_SIGNAL_STORAGE:
        from signal_store import SignalStore
        stores.append(SignalStore(args.db))
    if config.SIGNAL_API_TOKEN:
        from signal_api_client import SignalAPIClient
        stores.append(SignalAPIClient())

    try:
        service = MarketDataService(signal_stores=stores)

        if args.telegram:
            from telegram_notifiers import MarketAlertNotifier
            notifier = MarketAlertNotifier()
            service.subscribe_to_alerts(notifier.as_alert_subscriber())

        last_price = {}
        for underlying, price, rows in snapshots:
            previous = last_price.get(underlying)
            if previous is not None:
                service.check_price_movements(underlying, price, previous)
            service.check_volume_spikes(rows, underlying)
            service.process_market_data(underlying, price, rows)
            last_price[underlying] = price
    finally:
        for store in stores:
            if hasattr(store, 'close'):
                store.close()

    alerts = service.get_alert_history()

    if args.excel:
        from alert_excel_logger import AlertExcelLogger
        excel_logger = AlertExcelLogger(args.excel)
        try:
            excel_logger.export_alerts(list(reversed(alerts)))
        finally:
            excel_logger.close()

    logger.info("=" * 60)
    logger.info("Replay Complete")
    logger.info(f"Snapshots processed: {len(snapshots)}")
    logger.info(f"Alerts raised: {len(alerts)}")
    for underlying in sorted(last_price):
        stats = service.get_pattern_statistics(underlying)
        logger.info(f"{underlying}: {stats['total_patterns']} patterns "
                    f"({stats['bullish_patterns']} bullish / {stats['bearish_patterns']} bearish, "
                    f"{stats['high_confidence_patterns']} high confidence)")
    logger.info("=" * 60)
    return 0


def main(argv=None) -> int:
    """Main execution function"""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        if args.command == 'status':
            return run_status()
        return run_replay(args)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code)
