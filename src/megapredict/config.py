from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_PRICE_API_URL = "https://api.binance.com/api/v3/ticker/price"


@dataclass(frozen=True)
class Config:
    price_symbol: str
    price_api_url: str
    price_timeout_seconds: float
    price_stream_enabled: bool
    price_stream_max_age_seconds: float
    round_seconds: int
    schedule_interval_minutes: int
    resolve_lead_seconds: int
    scheduler_enabled: bool
    history_capacity: int
    api_port: int
    api_base_url: str
    cron_secret: str | None
    relay_enabled: bool
    relay_dry_run: bool
    relay_ledger_path: str
    rounds_db_path: str
    test_mode: bool
    test_mode_round_seconds: int
    test_mode_interval_minutes: int


def _bool_from_env(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> Config:
    load_dotenv()

    test_mode = _bool_from_env(os.getenv("TEST_MODE"), False)
    test_mode_round_seconds = int(os.getenv("TEST_MODE_ROUND_SECONDS", "120"))
    test_mode_interval_minutes = int(os.getenv("TEST_MODE_INTERVAL_MINUTES", "2"))
    round_seconds = int(os.getenv("ROUND_SECONDS", "900"))
    schedule_interval_minutes = int(os.getenv("SCHEDULE_INTERVAL_MINUTES", "15"))

    if test_mode:
        round_seconds = test_mode_round_seconds
        schedule_interval_minutes = test_mode_interval_minutes

    if round_seconds <= 0:
        raise ValueError("ROUND_SECONDS must be > 0")
    if schedule_interval_minutes <= 0 or 60 % schedule_interval_minutes != 0:
        raise ValueError("SCHEDULE_INTERVAL_MINUTES must divide 60")

    history_capacity = int(os.getenv("HISTORY_CAPACITY", "50"))
    if history_capacity < 3:
        raise ValueError("HISTORY_CAPACITY must be >= 3")

    api_port = int(os.getenv("API_PORT", "3000"))

    return Config(
        price_symbol=os.getenv("PRICE_SYMBOL", "ETHUSDT").strip().upper(),
        price_api_url=os.getenv("PRICE_API_URL", DEFAULT_PRICE_API_URL).strip(),
        price_timeout_seconds=float(os.getenv("PRICE_TIMEOUT_SECONDS", "5.0")),
        price_stream_enabled=_bool_from_env(os.getenv("PRICE_STREAM_ENABLED"), False),
        price_stream_max_age_seconds=float(
            os.getenv("PRICE_STREAM_MAX_AGE_SECONDS", "5.0")
        ),
        round_seconds=round_seconds,
        schedule_interval_minutes=schedule_interval_minutes,
        resolve_lead_seconds=int(os.getenv("RESOLVE_LEAD_SECONDS", "30")),
        scheduler_enabled=_bool_from_env(os.getenv("SCHEDULER_ENABLED"), True),
        history_capacity=history_capacity,
        api_port=api_port,
        api_base_url=os.getenv("API_BASE_URL", f"http://localhost:{api_port}").strip().rstrip("/"),
        cron_secret=os.getenv("CRON_SECRET", "").strip() or None,
        relay_enabled=_bool_from_env(os.getenv("RELAY_ENABLED"), False),
        relay_dry_run=_bool_from_env(os.getenv("RELAY_DRY_RUN"), True),
        relay_ledger_path=os.getenv(
            "RELAY_LEDGER_PATH",
            "logs/round_relay.jsonl",
        ).strip(),
        rounds_db_path=os.getenv("ROUNDS_DB_PATH", "logs/rounds.sqlite3").strip(),
        test_mode=test_mode,
        test_mode_round_seconds=test_mode_round_seconds,
        test_mode_interval_minutes=test_mode_interval_minutes,
    )
