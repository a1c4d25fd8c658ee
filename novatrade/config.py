# novatrade/config.py
import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Loads variables from a local .env file into environment variables (dev only).
load_dotenv()


@dataclass(frozen=True)
class Settings:
    # App config
    app_env: str
    log_level: str

    # Scheduler
    tick_interval_seconds: float
    clock_interval_seconds: float

    # Simulation
    history_cap: int
    seed_length: int
    seed_volatility: float
    tick_volatility: float

    # Session clock
    market_timezone: str
    market_open_hour: int
    market_close_hour: int

    # Accounts / persistence
    starting_balance: float
    store_backend: str
    db_path: str
    evaluate_all_users: bool

    # Price oracle
    oracle_provider: str
    gemini_api_key: str
    gemini_model: str
    gemini_base_url: str
    oracle_batch_size: int
    oracle_timeout_seconds: float
    auto_sync_seconds: float


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default).strip()
    try:
        return cast(raw)
    except ValueError:
        raise RuntimeError(f"{name}={raw!r} is not a valid {cast.__name__}")


def _env_positive(name: str, default: str) -> int:
    value = _env_number(name, default, int)
    if value <= 0:
        raise RuntimeError(f"{name}={value} must be a positive integer")
    return value


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def get_settings() -> Settings:
    """
    Reads env vars and returns a Settings object.
    """
    oracle_provider = os.getenv("ORACLE_PROVIDER", "NONE").strip().upper()
    gemini_api_key = os.getenv("GEMINI_API_KEY", "").strip()
    if oracle_provider == "GEMINI" and not gemini_api_key:
        raise RuntimeError("GEMINI_API_KEY is missing. Add it to .env or set ORACLE_PROVIDER=NONE")

    open_hour = _env_number("MARKET_OPEN_HOUR", "9", int)
    close_hour = _env_number("MARKET_CLOSE_HOUR", "15", int)
    if not 0 <= open_hour <= close_hour <= 24:
        raise RuntimeError(f"Invalid market hours open={open_hour} close={close_hour}")

    history_cap = _env_positive("HISTORY_CAP", "50")
    seed_length = _env_positive("SEED_LENGTH", "30")
    oracle_batch_size = _env_positive("ORACLE_BATCH_SIZE", "15")

    return Settings(
        app_env=os.getenv("APP_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        tick_interval_seconds=_env_number("TICK_INTERVAL_SECONDS", "1.0", float),
        clock_interval_seconds=_env_number("CLOCK_INTERVAL_SECONDS", "1.0", float),
        history_cap=history_cap,
        seed_length=seed_length,
        seed_volatility=_env_number("SEED_VOLATILITY", "0.005", float),
        tick_volatility=_env_number("TICK_VOLATILITY", "0.0015", float),
        market_timezone=os.getenv("MARKET_TIMEZONE", "Asia/Kolkata"),
        market_open_hour=open_hour,
        market_close_hour=close_hour,
        starting_balance=_env_number("STARTING_BALANCE", "100000", float),
        store_backend=os.getenv("STORE_BACKEND", "memory").strip().lower(),
        db_path=os.getenv("DB_PATH", "data/novatrade.db"),
        evaluate_all_users=_env_bool("EVALUATE_ALL_USERS", "true"),
        oracle_provider=oracle_provider,
        gemini_api_key=gemini_api_key,
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        gemini_base_url=os.getenv(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        ).rstrip("/"),
        oracle_batch_size=oracle_batch_size,
        oracle_timeout_seconds=_env_number("ORACLE_TIMEOUT_SECONDS", "20", float),
        auto_sync_seconds=_env_number("AUTO_SYNC_SECONDS", "0", float),
    )
