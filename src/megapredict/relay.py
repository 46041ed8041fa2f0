from __future__ import annotations

import json
import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .models import Direction, ResolutionResult, Round

logger = logging.getLogger(__name__)

PRICE_SCALE = 10**8
DIRECTION_CODES: dict[Direction, int] = {"UP": 1, "DOWN": 2}


def scale_price(price: float) -> int:
    """Fixed-point ledger representation of a price (8 decimals, floored)."""
    return math.floor(price * PRICE_SCALE)


class RoundRelay(ABC):
    @abstractmethod
    async def on_round_started(self, round_: Round) -> None:
        raise NotImplementedError

    @abstractmethod
    async def on_round_resolved(self, result: ResolutionResult) -> None:
        raise NotImplementedError


class NullRelay(RoundRelay):
    async def on_round_started(self, round_: Round) -> None:
        return None

    async def on_round_resolved(self, result: ResolutionResult) -> None:
        return None


class LedgerRelay(RoundRelay):
    """Mirrors round events into an append-only JSONL ledger.

    Entries carry the integer encoding a contract call would use, so a
    separate process can replay them on chain.
    """

    def __init__(self, path: str, dry_run: bool = True) -> None:
        self.dry_run = dry_run
        self._path = Path(path)
        self._lock = threading.Lock()
        if not dry_run:
            self._path.parent.mkdir(parents=True, exist_ok=True)

    async def on_round_started(self, round_: Round) -> None:
        self._emit(
            {
                "type": "round_started",
                "round_number": round_.round_number,
                "start_price": round_.start_price,
                "start_price_scaled": scale_price(round_.start_price),
                "prediction": round_.prediction.direction,
                "prediction_code": DIRECTION_CODES[round_.prediction.direction],
                "confidence": round_.prediction.confidence,
                "start_ts": round_.start_ts,
                "end_ts": round_.end_ts,
            }
        )

    async def on_round_resolved(self, result: ResolutionResult) -> None:
        self._emit(
            {
                "type": "round_resolved",
                "round_number": result.round_number,
                "end_price": result.end_price,
                "end_price_scaled": scale_price(result.end_price),
                "actual_direction": result.actual_direction,
                "prediction_correct": result.prediction_correct,
                "resolved_ts": result.resolved_ts,
            }
        )

    def _emit(self, entry: dict[str, Any]) -> None:
        if self.dry_run:
            logger.info("[DRY_RUN] [RELAY] %s", entry)
            return

        payload = {
            "logged_at": time.time(),
            **entry,
        }
        line = json.dumps(payload, separators=(",", ":"), default=str)
        with self._lock:
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        logger.info("[RELAY] %s round=%s", entry["type"], entry["round_number"])
