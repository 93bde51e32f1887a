"""Settings shared by every environment; each value can be overridden from the environment."""
import os


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


def _env_flag(name: str, default: bool) -> bool:
    return bool(int(os.environ.get(name, "1" if default else "0")))


DB_CONFIG = {
    "host": os.environ.get("DB_HOST", "localhost"),
    "port": _env_int("DB_PORT", 3306),
    "user": os.environ.get("DB_USER", "root"),
    "password": os.environ.get("DB_PASSWORD", ""),
    "database": os.environ.get("DB_NAME", "video_attendance"),
}
DB_POOL_SIZE = _env_int("DB_POOL_SIZE", 5)

# Watch-session finalization
INACTIVITY_TIMEOUT_SECONDS = _env_int("INACTIVITY_TIMEOUT_SECONDS", 300)
SWEEP_INTERVAL_SECONDS = _env_int("SWEEP_INTERVAL_SECONDS", 60)
ENABLE_SESSION_SWEEP = _env_flag("ENABLE_SESSION_SWEEP", True)

# Threshold crossing after session_end + grace is recorded as late
LATE_GRACE_MINUTES = _env_int("LATE_GRACE_MINUTES", 0)

# Optimistic-concurrency and ledger retry bounds
LEDGER_WRITE_RETRIES = _env_int("LEDGER_WRITE_RETRIES", 3)
SESSION_CAS_ATTEMPTS = _env_int("SESSION_CAS_ATTEMPTS", 5)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
