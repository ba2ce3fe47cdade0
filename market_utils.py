from datetime import datetime, time
from typing import Optional
import pytz
import config


def get_current_ist_time() -> datetime:
    """Get current time in IST timezone"""
    ist = pytz.timezone(config.MARKET_TIMEZONE)
    return datetime.now(ist)


def _to_ist(now: Optional[datetime]) -> datetime:
    if now is None:
        return get_current_ist_time()
    ist = pytz.timezone(config.MARKET_TIMEZONE)
    if now.tzinfo is None:
        return ist.localize(now)
    return now.astimezone(ist)


def get_time_of_day(now: Optional[datetime] = None) -> str:
    """
    Classify a moment into a trading session bucket.

    NSE trading: 9:15 AM - 3:30 PM IST. The first and last
    SESSION_EDGE_MINUTES are OPENING and CLOSING.

    Args:
        now: Moment to classify (naive values are treated as IST, defaults to now)

    Returns:
        'OPENING', 'MID_SESSION', 'CLOSING' or 'AFTER_HOURS'
    """
    current = _to_ist(now)
    minutes = current.hour * 60 + current.minute

    market_open = config.MARKET_OPEN_HOUR * 60 + config.MARKET_OPEN_MINUTE
    market_close = config.MARKET_CLOSE_HOUR * 60 + config.MARKET_CLOSE_MINUTE

    if minutes < market_open or minutes > market_close:
        return 'AFTER_HOURS'
    if minutes < market_open + config.SESSION_EDGE_MINUTES:
        return 'OPENING'
    if minutes > market_close - config.SESSION_EDGE_MINUTES:
        return 'CLOSING'
    return 'MID_SESSION'


def is_market_hours(now: Optional[datetime] = None) -> bool:
    """Check if a moment falls inside 9:15 AM - 3:30 PM IST"""
    current = _to_ist(now).time()
    market_open = time(config.MARKET_OPEN_HOUR, config.MARKET_OPEN_MINUTE)
    market_close = time(config.MARKET_CLOSE_HOUR, config.MARKET_CLOSE_MINUTE)
    return market_open <= current <= market_close


def is_weekday(now: Optional[datetime] = None) -> bool:
    # Saturday=5, Sunday=6
    return _to_ist(now).weekday() < 5


def get_market_status(now: Optional[datetime] = None) -> dict:
    """
    Get detailed market session information

    Returns:
        dict with keys: is_open, is_weekday, is_market_hours, time_of_day, current_time
    """
    current = _to_ist(now)
    weekday = is_weekday(current)
    market_hours = is_market_hours(current)

    return {
        "is_open": weekday and market_hours,
        "is_weekday": weekday,
        "is_market_hours": market_hours,
        "time_of_day": get_time_of_day(current),
        "current_time": current.strftime("%Y-%m-%d %H:%M:%S %Z")
    }
