import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Telegram Configuration
TELEGRAM_BOT_TOKEN = os.getenv('TELEGRAM_BOT_TOKEN')
TELEGRAM_CHANNEL_ID = os.getenv('TELEGRAM_CHANNEL_ID')
TELEGRAM_MIN_SEVERITY = os.getenv('TELEGRAM_MIN_SEVERITY', 'HIGH').upper()  # LOW, MEDIUM, HIGH, CRITICAL

# Market Configuration
MARKET_TIMEZONE = 'Asia/Kolkata'
MARKET_OPEN_HOUR = 9
MARKET_OPEN_MINUTE = 15
MARKET_CLOSE_HOUR = 15
MARKET_CLOSE_MINUTE = 30
SESSION_EDGE_MINUTES = 30  # First/last 30 minutes count as OPENING/CLOSING

# ============================================
# PATTERN DETECTION THRESHOLDS
# ============================================
OI_CHANGE_THRESHOLD = float(os.getenv('OI_CHANGE_THRESHOLD', '5000'))  # Contracts
PREMIUM_CHANGE_THRESHOLD = float(os.getenv('PREMIUM_CHANGE_THRESHOLD', '5'))  # Rs
VOLUME_THRESHOLD = float(os.getenv('VOLUME_THRESHOLD', '10000'))  # Contracts (volume ratio base)

CONFIDENCE_HIGH = 0.8
CONFIDENCE_MEDIUM = 0.6
CONFIDENCE_LOW = 0.4  # Results below this are dropped

VOLATILITY_SPIKE_THRESHOLD = float(os.getenv('VOLATILITY_SPIKE_THRESHOLD', '2.0'))  # Premium vs baseline ratio
UNUSUAL_VOLUME_MULTIPLIER = float(os.getenv('UNUSUAL_VOLUME_MULTIPLIER', '3.0'))  # 3x average volume
GAMMA_SQUEEZE_THRESHOLD = float(os.getenv('GAMMA_SQUEEZE_THRESHOLD', '0.7'))
MAX_PAIN_DEVIATION_THRESHOLD = float(os.getenv('MAX_PAIN_DEVIATION_THRESHOLD', '2.0'))  # Percent

GAMMA_NEARBY_PCT = 0.02  # Strikes within 2% of spot
ATM_PREMIUM_WINDOW = 100  # Points around spot used for ATM premium average
SUPPORT_RESISTANCE_MIN_OI = 50000
SUPPORT_RESISTANCE_MAX_DISTANCE_PCT = 5.0
MOMENTUM_SHIFT_THRESHOLD = 0.005  # 0.5% change between 10-tick averages
VELOCITY_OI_THRESHOLD = 10000  # OI change velocity between consecutive snapshots
VELOCITY_PREMIUM_THRESHOLD = 2

MAX_PATTERNS_PER_ANALYSIS = 15
MAX_UNUSUAL_ACTIVITY_PATTERNS = 3

# History sizes (per underlying)
OPTION_HISTORY_SIZE = int(os.getenv('OPTION_HISTORY_SIZE', '20'))  # Chain snapshots
PRICE_HISTORY_SIZE = int(os.getenv('PRICE_HISTORY_SIZE', '100'))  # Price ticks

# ============================================
# ALERT CONFIGURATION
# ============================================
ALERT_CONFIDENCE_THRESHOLD = float(os.getenv('ALERT_CONFIDENCE_THRESHOLD', '0.7'))
ALERT_COOLDOWN_MINUTES = int(os.getenv('ALERT_COOLDOWN_MINUTES', '5'))  # Same strike/pattern
ALERT_HISTORY_SIZE = int(os.getenv('ALERT_HISTORY_SIZE', '100'))

MARKET_VOLATILITY_ALERT = 2.0  # Annualised volatility above this raises an alert
MARKET_VOLATILITY_ALERT_HIGH = 3.0
MAX_PAIN_ALERT_DEVIATION = 3.0  # Percent
MAX_PAIN_ALERT_DEVIATION_HIGH = 5.0
PRICE_MOVE_ALERT_PERCENT = 1.0
VOLUME_SPIKE_ALERT_MULTIPLIER = 3.0

# ============================================
# SIGNAL PERSISTENCE
# ============================================
ENABLE_SIGNAL_STORAGE = os.getenv('ENABLE_SIGNAL_STORAGE', 'true').lower() == 'true'
SIGNAL_DB_PATH = os.getenv('SIGNAL_DB_PATH', 'data/signals.db')
SQLITE_TIMEOUT_SECONDS = 30

# Optional REST backend for signals (skipped unless a token is configured)
SIGNAL_API_URL = os.getenv('SIGNAL_API_URL', 'http://localhost:3000/api')
SIGNAL_API_TOKEN = os.getenv('SIGNAL_API_TOKEN')
SIGNAL_API_TIMEOUT = int(os.getenv('SIGNAL_API_TIMEOUT', '10'))

# Instruments tracked by the signal store
INSTRUMENTS = {
    'NIFTY': {'name': 'Nifty 50', 'type': 'EQUITY'},
    'BANKNIFTY': {'name': 'Bank Nifty', 'type': 'EQUITY'},
    'FINNIFTY': {'name': 'Fin Nifty', 'type': 'EQUITY'},
    'CRUDEOIL': {'name': 'Crude Oil', 'type': 'COMMODITY'},
    'NATURALGAS': {'name': 'Natural Gas', 'type': 'COMMODITY'},
    'GOLD': {'name': 'Gold', 'type': 'COMMODITY'},
    'SILVER': {'name': 'Silver', 'type': 'COMMODITY'},
}

# Excel export
ALERT_EXCEL_PATH = os.getenv('ALERT_EXCEL_PATH', 'data/alerts/market_alerts.xlsx')

# Logging
LOG_FILE = 'logs/pattern_monitor.log'
