from __future__ import annotations

import threading

from .config import Config, load_config
from .history import PriceHistory
from .price_source import BinancePriceSource, PriceCache
from .relay import LedgerRelay, NullRelay, RoundRelay
from .repository import RoundRepository
from .round_service import RoundService
from .rounds import RoundManager

_round_service: RoundService | None = None
_price_cache: PriceCache | None = None
_cron_secret: str | None = None
_lock = threading.Lock()


def _build_relay(config: Config) -> RoundRelay:
    if not config.relay_enabled:
        return NullRelay()
    return LedgerRelay(config.relay_ledger_path, dry_run=config.relay_dry_run)


def build_round_service(config: Config, cache: PriceCache | None = None) -> RoundService:
    service = RoundService(
        manager=RoundManager(
            round_seconds=config.round_seconds,
            history=PriceHistory(config.history_capacity),
        ),
        price_source=BinancePriceSource(
            symbol=config.price_symbol,
            api_url=config.price_api_url,
            timeout_seconds=config.price_timeout_seconds,
            cache=cache,
        ),
        repository=RoundRepository(db_path=config.rounds_db_path),
        relay=_build_relay(config),
        interval_minutes=config.schedule_interval_minutes,
    )
    service.restore()
    return service


def get_or_create_round_service(config: Config | None = None) -> RoundService:
    global _round_service, _price_cache, _cron_secret

    if _round_service is not None:
        return _round_service

    with _lock:
        if _round_service is None:
            cfg = config or load_config()
            cache = (
                PriceCache(max_age_seconds=cfg.price_stream_max_age_seconds)
                if cfg.price_stream_enabled
                else None
            )
            _round_service = build_round_service(cfg, cache)
            _price_cache = cache
            _cron_secret = cfg.cron_secret
        return _round_service


def get_price_cache() -> PriceCache | None:
    return _price_cache


def get_cron_secret() -> str | None:
    return _cron_secret


def install_round_service(service: RoundService | None, *, cron_secret: str | None = None) -> None:
    global _round_service, _price_cache, _cron_secret

    with _lock:
        _round_service = service
        _price_cache = None
        _cron_secret = cron_secret
