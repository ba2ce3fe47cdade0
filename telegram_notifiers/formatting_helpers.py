"""Shared formatting helper functions for Telegram alerts."""
from datetime import datetime

SEVERITY_ORDER = ['LOW', 'MEDIUM', 'HIGH', 'CRITICAL']

SEVERITY_EMOJI = {
    'LOW': '⚪',
    'MEDIUM': '🟡',
    'HIGH': '🟠',
    'CRITICAL': '🔴',
}

ALERT_TYPE_EMOJI = {
    'PATTERN_DETECTED': '🔍',
    'PRICE_MOVEMENT': '📈',
    'VOLUME_SPIKE': '🔥',
    'OI_CHANGE': '📊',
    'VOLATILITY_SPIKE': '⚡',
    'GAMMA_ALERT': '💥',
    'MAX_PAIN_SHIFT': '🎯',
}


def severity_rank(severity: str) -> int:
    """Position of a severity in LOW < MEDIUM < HIGH < CRITICAL (-1 if unknown)."""
    try:
        return SEVERITY_ORDER.index(severity)
    except ValueError:
        return -1


def format_alert_time(timestamp: str) -> str:
    """Format an ISO timestamp as '19 Oct 2026 | 10:05 AM' (raw value if unparseable)."""
    try:
        dt = datetime.fromisoformat(timestamp)
    except (TypeError, ValueError):
        return str(timestamp)
    return f"{dt.strftime('%d %b %Y')} | {dt.strftime('%I:%M %p')}"


def format_metadata_section(metadata: dict) -> str:
    """
    Format alert metadata lines (confidence, timeframe, risk, expected move).

    Args:
        metadata: Alert metadata dict

    Returns:
        Formatted section (empty string if nothing to show)
    """
    lines = []

    confidence = metadata.get('confidence')
    if confidence is not None:
        lines.append(f"   <b>Confidence:</b> {confidence * 100:.0f}%")

    if metadata.get('timeframe'):
        lines.append(f"   <b>Timeframe:</b> {metadata['timeframe']}")

    if metadata.get('risk_level'):
        lines.append(f"   <b>Risk:</b> {metadata['risk_level']}")

    expected_move = metadata.get('expected_move')
    if expected_move is not None:
        lines.append(f"   <b>Expected Move:</b> {expected_move:.2f} pts")

    if not lines:
        return ""
    return "\n\n📋 <b>Details:</b>\n" + "\n".join(lines)
