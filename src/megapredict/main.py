from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from .config import Config, load_config
from .errors import RoundError
from .price_source import TradeStream, run_price_stream
from .round_service import RoundService
from .runtime import get_or_create_round_service, get_price_cache
from .scheduler import RoundScheduler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def run_schedule_tick(
    service: RoundService,
    scheduler: RoundScheduler,
    next_start: datetime,
) -> datetime:
    """Resolve the current round if it is due, then start a new one at the mark.

    Returns the mark to wait for next.
    """
    now_ts = service.manager.now()

    current = service.manager.current_round()
    if current is not None and scheduler.should_resolve(
        service.manager.time_remaining(),
        current.resolved,
        overdue_seconds=now_ts - current.end_ts,
    ):
        try:
            await service.resolve_round(round_number=current.round_number)
        except RoundError as exc:
            logger.warning("[SCHEDULER] Resolve of round %s failed: %s", current.round_number, exc)

    if now_ts < next_start.timestamp():
        return next_start

    try:
        await service.start_round()
    except RoundError as exc:
        logger.warning("[SCHEDULER] Start failed: %s", exc)
    return scheduler.next_start(now_ts)


async def run_schedule(
    service: RoundService,
    scheduler: RoundScheduler,
    poll_seconds: float = 5.0,
) -> None:
    next_start = scheduler.next_start(service.manager.now())
    logger.info("[SCHEDULER] First round at %s", next_start.isoformat())
    while True:
        next_start = await run_schedule_tick(service, scheduler, next_start)
        await asyncio.sleep(poll_seconds)


async def run(config: Config | None = None) -> None:
    config = config or load_config()
    service = get_or_create_round_service(config)
    scheduler = RoundScheduler(
        interval_minutes=config.schedule_interval_minutes,
        resolve_lead_seconds=config.resolve_lead_seconds,
    )
    logger.info(
        "[SCHEDULER] Tracking %s, rounds of %ss every %s minutes",
        config.price_symbol,
        config.round_seconds,
        config.schedule_interval_minutes,
    )

    cache = get_price_cache()
    async with asyncio.TaskGroup() as tg:
        if cache is not None:
            tg.create_task(run_price_stream(TradeStream(config.price_symbol), cache))
        if config.scheduler_enabled:
            tg.create_task(run_schedule(service, scheduler))
