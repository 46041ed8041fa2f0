from __future__ import annotations

import logging
import sqlite3
from typing import Protocol

from .models import ResolutionResult, Round, to_iso_utc
from .relay import NullRelay, RoundRelay
from .repository import RoundRepository
from .rounds import RoundManager
from .scheduler import seconds_remaining

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    async def get_current_price(self) -> float: ...


class RoundService:
    """Fetches prices, drives the round manager, then persists and relays.

    Prices are fetched before the manager is touched. Persistence and relay
    run after the transition is committed; their failures are logged and
    never undo the local state change.
    """

    def __init__(
        self,
        *,
        manager: RoundManager,
        price_source: PriceSource,
        repository: RoundRepository | None = None,
        relay: RoundRelay | None = None,
        interval_minutes: int = 15,
    ) -> None:
        self.manager = manager
        self.price_source = price_source
        self.repository = repository
        self.relay = relay or NullRelay()
        self.interval_minutes = interval_minutes

    def restore(self) -> int:
        if self.repository is None:
            return 0
        rounds = self.repository.recent_rounds(self.manager.history_capacity)
        self.manager.restore(rounds)
        return len(rounds)

    async def current_price(self) -> float:
        return await self.price_source.get_current_price()

    async def start_round(self) -> Round:
        price = await self.price_source.get_current_price()
        round_ = self.manager.start_round(price)
        self._persist_round(round_)
        try:
            await self.relay.on_round_started(round_)
        except Exception as exc:  # noqa: BLE001
            logger.warning("[RELAY] round_started failed for round %s: %s", round_.round_number, exc)
        return round_

    async def resolve_round(self, round_number: int | None = None) -> ResolutionResult:
        end_price = await self.price_source.get_current_price()
        result = self.manager.resolve_round(end_price, round_number=round_number)
        self._persist_resolution(result)
        try:
            await self.relay.on_round_resolved(result)
        except Exception as exc:  # noqa: BLE001
            logger.warning("[RELAY] round_resolved failed for round %s: %s", result.round_number, exc)
        return result

    async def snapshot(self) -> dict:
        current_price = await self.price_source.get_current_price()
        round_ = self.manager.current_round()
        now_ts = self.manager.now()

        if round_ is None:
            state = "EMPTY"
        else:
            state = "RESOLVED" if round_.resolved else "ACTIVE"

        return {
            "round_number": round_.round_number if round_ else 0,
            "start_price": round_.start_price if round_ else None,
            "current_price": current_price,
            "start_time": to_iso_utc(round_.start_ts) if round_ else None,
            "end_time": to_iso_utc(round_.end_ts) if round_ else None,
            "seconds_left": seconds_remaining(round_.end_ts if round_ else None, now_ts),
            "prediction": round_.prediction.direction if round_ else None,
            "confidence": round_.prediction.confidence if round_ else None,
            "analysis": round_.prediction.analysis() if round_ else None,
            "resolved": round_.resolved if round_ else False,
            "state": state,
            "next_round_time": self.manager.next_scheduled_start(self.interval_minutes).isoformat(),
        }

    def _persist_round(self, round_: Round) -> None:
        if self.repository is None:
            return
        try:
            self.repository.save_round(round_)
        except sqlite3.Error as exc:
            logger.warning("[ROUND] Failed to persist round %s: %s", round_.round_number, exc)

    def _persist_resolution(self, result: ResolutionResult) -> None:
        if self.repository is None:
            return
        try:
            self.repository.save_resolution(result)
        except sqlite3.Error as exc:
            logger.warning("[ROUND] Failed to persist resolution of round %s: %s", result.round_number, exc)
