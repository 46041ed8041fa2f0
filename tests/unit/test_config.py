import pytest

from src.megapredict.config import load_config

_ENV_KEYS = (
    "PRICE_SYMBOL",
    "PRICE_API_URL",
    "PRICE_TIMEOUT_SECONDS",
    "PRICE_STREAM_ENABLED",
    "PRICE_STREAM_MAX_AGE_SECONDS",
    "ROUND_SECONDS",
    "SCHEDULE_INTERVAL_MINUTES",
    "RESOLVE_LEAD_SECONDS",
    "SCHEDULER_ENABLED",
    "HISTORY_CAPACITY",
    "API_PORT",
    "API_BASE_URL",
    "CRON_SECRET",
    "RELAY_ENABLED",
    "RELAY_DRY_RUN",
    "RELAY_LEDGER_PATH",
    "ROUNDS_DB_PATH",
    "TEST_MODE",
    "TEST_MODE_ROUND_SECONDS",
    "TEST_MODE_INTERVAL_MINUTES",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("src.megapredict.config.load_dotenv", lambda: None)
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_load_config_defaults() -> None:
    cfg = load_config()

    assert cfg.price_symbol == "ETHUSDT"
    assert cfg.price_api_url == "https://api.binance.com/api/v3/ticker/price"
    assert cfg.price_timeout_seconds == 5.0
    assert cfg.price_stream_enabled is False
    assert cfg.round_seconds == 900
    assert cfg.schedule_interval_minutes == 15
    assert cfg.resolve_lead_seconds == 30
    assert cfg.scheduler_enabled is True
    assert cfg.history_capacity == 50
    assert cfg.api_port == 3000
    assert cfg.api_base_url == "http://localhost:3000"
    assert cfg.cron_secret is None
    assert cfg.relay_enabled is False
    assert cfg.relay_dry_run is True
    assert cfg.rounds_db_path == "logs/rounds.sqlite3"


def test_load_config_parses_expected_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRICE_SYMBOL", "btcusdt")
    monkeypatch.setenv("PRICE_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("PRICE_STREAM_ENABLED", "yes")
    monkeypatch.setenv("ROUND_SECONDS", "600")
    monkeypatch.setenv("SCHEDULE_INTERVAL_MINUTES", "10")
    monkeypatch.setenv("RESOLVE_LEAD_SECONDS", "20")
    monkeypatch.setenv("SCHEDULER_ENABLED", "false")
    monkeypatch.setenv("API_PORT", "9090")
    monkeypatch.setenv("CRON_SECRET", " s3cret ")
    monkeypatch.setenv("RELAY_ENABLED", "1")
    monkeypatch.setenv("RELAY_DRY_RUN", "off")

    cfg = load_config()

    assert cfg.price_symbol == "BTCUSDT"
    assert cfg.price_timeout_seconds == 2.5
    assert cfg.price_stream_enabled is True
    assert cfg.round_seconds == 600
    assert cfg.schedule_interval_minutes == 10
    assert cfg.resolve_lead_seconds == 20
    assert cfg.scheduler_enabled is False
    assert cfg.api_port == 9090
    assert cfg.api_base_url == "http://localhost:9090"
    assert cfg.cron_secret == "s3cret"
    assert cfg.relay_enabled is True
    assert cfg.relay_dry_run is False


def test_load_config_rejects_interval_not_dividing_hour(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCHEDULE_INTERVAL_MINUTES", "7")

    with pytest.raises(ValueError, match="SCHEDULE_INTERVAL_MINUTES must divide 60"):
        load_config()


def test_load_config_rejects_tiny_history(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HISTORY_CAPACITY", "2")

    with pytest.raises(ValueError, match="HISTORY_CAPACITY"):
        load_config()


def test_load_config_applies_test_mode_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_MODE", "true")
    monkeypatch.setenv("ROUND_SECONDS", "900")
    monkeypatch.setenv("TEST_MODE_ROUND_SECONDS", "60")
    monkeypatch.setenv("TEST_MODE_INTERVAL_MINUTES", "1")

    cfg = load_config()

    assert cfg.test_mode is True
    assert cfg.round_seconds == 60
    assert cfg.schedule_interval_minutes == 1
