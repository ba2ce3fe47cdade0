"""
Alert Excel Logger

Logs market alerts (patterns, price moves, volume spikes, risk alerts) to a
cumulative Excel file with one sheet per alert family.
"""

import os
import logging
from datetime import datetime
from typing import Dict, List
from pathlib import Path
import fcntl
import openpyxl
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)


class AlertExcelLogger:
    """
    Manages a cumulative Excel workbook of market alerts.

    Structure:
    - Single file: data/alerts/market_alerts.xlsx
    - 4 sheets: Pattern_alerts, Price_alerts, Volume_alerts, Risk_alerts
    """

    # Sheet names for different alert types
    SHEET_NAMES = {
        "PATTERN_DETECTED": "Pattern_alerts",
        "OI_CHANGE": "Pattern_alerts",
        "PRICE_MOVEMENT": "Price_alerts",
        "VOLUME_SPIKE": "Volume_alerts",
        "VOLATILITY_SPIKE": "Risk_alerts",
        "GAMMA_ALERT": "Risk_alerts",
        "MAX_PAIN_SHIFT": "Risk_alerts",
    }

    HEADERS = [
        "Date", "Time", "Underlying", "Alert Type", "Severity",
        "Strike", "Title", "Message",
        "Confidence %", "Timeframe", "Risk Level", "Expected Move",
        "Acknowledged", "Alert ID"
    ]

    COLUMN_WIDTHS = [12, 10, 12, 18, 10, 10, 32, 70, 13, 11, 11, 14, 13, 26]

    # Row fill per severity
    SEVERITY_FILLS = {
        "CRITICAL": "F8CBAD",
        "HIGH": "FCE4D6",
    }

    def __init__(self, excel_path: str):
        """
        Initialize AlertExcelLogger.

        Args:
            excel_path: Path to Excel file (will be created if not exists)
        """
        self.excel_path = excel_path
        self.workbook = None

        # Ensure directory exists
        Path(excel_path).parent.mkdir(parents=True, exist_ok=True)

        self._load_or_create_workbook()

    def _load_or_create_workbook(self):
        """Load existing workbook or create new one with sheets and headers."""
        if os.path.exists(self.excel_path):
            try:
                self.workbook = openpyxl.load_workbook(self.excel_path)
                logger.info(f"Loaded existing Excel workbook: {self.excel_path}")

                for sheet_name in sorted(set(self.SHEET_NAMES.values())):
                    if sheet_name not in self.workbook.sheetnames:
                        self._create_sheet(sheet_name)
                        logger.info(f"Added missing sheet: {sheet_name}")
            except Exception as e:
                logger.error(f"Error loading workbook: {e}. Creating new workbook.")
                self._create_new_workbook()
        else:
            self._create_new_workbook()

    def _create_new_workbook(self):
        self.workbook = openpyxl.Workbook()

        # Remove default sheet
        if "Sheet" in self.workbook.sheetnames:
            del self.workbook["Sheet"]

        for sheet_name in sorted(set(self.SHEET_NAMES.values())):
            self._create_sheet(sheet_name)

        logger.info(f"Created new Excel workbook: {self.excel_path}")

    def _create_sheet(self, sheet_name: str):
        ws = self.workbook.create_sheet(sheet_name)

        for col_num, header in enumerate(self.HEADERS, start=1):
            cell = ws.cell(row=1, column=col_num, value=header)
            cell.font = Font(bold=True, color="FFFFFF", size=11)
            cell.fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
            cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
            cell.border = THIN_BORDER

        for col_num, width in enumerate(self.COLUMN_WIDTHS, start=1):
            ws.column_dimensions[get_column_letter(col_num)].width = width

        # Freeze header row
        ws.freeze_panes = "A2"

    def _append_alert_row(self, alert: Dict) -> bool:
        sheet_name = self.SHEET_NAMES.get(alert.get('type'))
        if not sheet_name:
            logger.error(f"Unknown alert type: {alert.get('type')}")
            return False

        ws = self.workbook[sheet_name]

        try:
            timestamp = datetime.fromisoformat(alert['timestamp'])
        except (KeyError, TypeError, ValueError):
            timestamp = datetime.now()

        metadata = alert.get('metadata') or {}
        confidence = metadata.get('confidence')
        expected_move = metadata.get('expected_move')

        row_data = [
            timestamp.strftime("%Y-%m-%d"),                         # Date
            timestamp.strftime("%H:%M:%S"),                         # Time
            alert['underlying'],                                    # Underlying
            alert['type'],                                          # Alert Type
            alert['severity'],                                      # Severity
            alert.get('strike') if alert.get('strike') is not None else "",
            alert['title'],                                         # Title
            alert['message'],                                       # Message
            round(confidence * 100, 1) if confidence is not None else "",
            metadata.get('timeframe') or "",                        # Timeframe
            metadata.get('risk_level') or "",                       # Risk Level
            round(expected_move, 2) if expected_move is not None else "",
            "Yes" if alert.get('acknowledged') else "No",           # Acknowledged
            alert['id']                                             # Alert ID
        ]

        next_row = ws.max_row + 1
        fill_color = self.SEVERITY_FILLS.get(alert['severity'])

        for col_num, value in enumerate(row_data, start=1):
            cell = ws.cell(row=next_row, column=col_num, value=value)
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = THIN_BORDER
            if fill_color:
                cell.fill = PatternFill(start_color=fill_color, end_color=fill_color, fill_type="solid")

        return True

    def log_alert(self, alert: Dict) -> bool:
        """
        Log an alert to the appropriate sheet.

        Args:
            alert: Alert dict from MarketDataService

        Returns:
            True if logged successfully, False otherwise
        """
        try:
            if not self._append_alert_row(alert):
                return False
            self._save_workbook()
            logger.info(f"Logged alert: {alert['underlying']} {alert['type']} {alert['id']}")
            return True
        except Exception as e:
            logger.error(f"Error logging alert: {e}", exc_info=True)
            return False

    def export_alerts(self, alerts: List[Dict]) -> int:
        """
        Bulk write alerts (single save at the end).

        Returns:
            Number of alerts written
        """
        written = 0
        for alert in alerts:
            if self._append_alert_row(alert):
                written += 1

        if written:
            self._save_workbook()
        logger.info(f"Exported {written}/{len(alerts)} alerts to {self.excel_path}")
        return written

    def count_rows(self, sheet_name: str) -> int:
        """Number of data rows (excluding header) in a sheet"""
        return self.workbook[sheet_name].max_row - 1

    def _save_workbook(self):
        """Save workbook with file locking for concurrent access protection."""
        try:
            with open(self.excel_path, 'wb') as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                try:
                    self.workbook.save(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except Exception as e:
            logger.error(f"Error saving workbook: {e}", exc_info=True)
            raise

    def close(self):
        """Close workbook and release resources."""
        if self.workbook:
            self.workbook.close()
            self.workbook = None
