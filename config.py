import os


def _env_float(name, default):
    value = os.environ.get(name)
    return float(value) if value not in (None, "") else default


def _env_int(name, default):
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else default


def _env_bool(name, default):
    value = os.environ.get(name)
    if value in (None, ""):
        return default
    return value.strip().lower() in ['1', 'true', 'on', 'yes']


# 'prod' launches real load, 'dev' forces the portable python burner
ENVIRONMENT = os.environ.get("SPEED_GUARD_ENV", "prod")

HOST = os.environ.get("SPEED_GUARD_HOST", "0.0.0.0")
PORT = _env_int("SPEED_GUARD_PORT", 8080)

# Speed Guard thresholds (percent / Celsius)
CPU_THRESHOLD = _env_float("SPEED_GUARD_CPU_THRESHOLD", 90.0)
SAFETY_THRESHOLD = _env_float("SPEED_GUARD_SAFETY_THRESHOLD", 95.0)
MEMORY_THRESHOLD = _env_float("SPEED_GUARD_MEMORY_THRESHOLD", 85.0)
TEMPERATURE_THRESHOLD = _env_float("SPEED_GUARD_TEMPERATURE_THRESHOLD", 80.0)
CRITICAL_TEMPERATURE = _env_float("SPEED_GUARD_CRITICAL_TEMPERATURE", 90.0)

GUARD_INTERVAL_SECONDS = _env_float("SPEED_GUARD_INTERVAL", 2.0)
HISTORY_SIZE = _env_int("SPEED_GUARD_HISTORY_SIZE", 100)

# Load workers
MAX_STRESS_DURATION = _env_int("SPEED_GUARD_MAX_STRESS_DURATION", 300)  # seconds
TERMINATE_GRACE_SECONDS = _env_float("SPEED_GUARD_TERMINATE_GRACE", 5.0)
MAX_WORKERS = _env_int("SPEED_GUARD_MAX_WORKERS", None)  # None = cpu count, never above it
LOAD_BACKEND = os.environ.get("SPEED_GUARD_LOAD_BACKEND", "auto")
SWEEP_UNTRACKED = _env_bool("SPEED_GUARD_SWEEP_UNTRACKED", True)

# API response windows
HISTORY_RESPONSE_LIMIT = 50
ALERT_WINDOW_HOURS = 24
ALERT_RESPONSE_LIMIT = 20

LOG_FILE = os.environ.get("SPEED_GUARD_LOG_FILE", "/var/log/cpu-control-app.log")
LOG_LEVEL = os.environ.get("SPEED_GUARD_LOG_LEVEL", "INFO")
