"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_THRESHOLD_PERCENT = 80
MIN_THRESHOLD_PERCENT = 1
MAX_THRESHOLD_PERCENT = 100

MIN_WEEK = 1
MAX_WEEK = 16

# Players round the media duration; overshoot up to this is clamped, beyond it is rejected.
DURATION_TOLERANCE_SECONDS = 1.0

DEFAULT_INACTIVITY_TIMEOUT_SECONDS = 300
DEFAULT_SWEEP_INTERVAL_SECONDS = 60
DEFAULT_LATE_GRACE_MINUTES = 0
DEFAULT_LEDGER_WRITE_RETRIES = 3
DEFAULT_SESSION_CAS_ATTEMPTS = 5
DEFAULT_HISTORY_LIMIT = 50
