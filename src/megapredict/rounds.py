from __future__ import annotations

import logging
import math
import random
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Literal, Sequence

from .errors import InvalidTransition, NoActiveRound, PriceUnavailable
from .forecast import predict
from .history import PriceHistory
from .models import DOWN, UP, ResolutionResult, Round, RoundResolution
from .scheduler import next_scheduled_start, seconds_remaining

logger = logging.getLogger(__name__)

RoundState = Literal["EMPTY", "ACTIVE", "RESOLVED"]

DEFAULT_ROUND_SECONDS = 900


def validate_price(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PriceUnavailable(f"price is not numeric: {value!r}")
    price = float(value)
    if not math.isfinite(price) or price <= 0:
        raise PriceUnavailable(f"price is not usable: {value!r}")
    return price


class RoundManager:
    """Owns the single current-round slot and the price history behind it.

    Every read and write of the slot goes through ``self._lock``; rounds are
    immutable, so callers always get a consistent snapshot. Validation happens
    before any state is touched, which keeps failed calls side-effect free.
    """

    def __init__(
        self,
        *,
        round_seconds: int = DEFAULT_ROUND_SECONDS,
        history: PriceHistory | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        if round_seconds <= 0:
            raise ValueError("round_seconds must be > 0")
        self._lock = threading.Lock()
        self._round_seconds = round_seconds
        self._history = history if history is not None else PriceHistory()
        self._clock = clock
        self._rng = rng
        self._current: Round | None = None

    @property
    def round_seconds(self) -> int:
        return self._round_seconds

    @property
    def history_capacity(self) -> int:
        return self._history.capacity

    def now(self) -> float:
        return self._clock()

    def restore(self, rounds: Sequence[Round]) -> None:
        """Rebuild history and the current slot from persisted rounds, oldest first."""
        if not rounds:
            return
        ordered = sorted(rounds, key=lambda r: r.round_number)
        with self._lock:
            if self._current is not None:
                raise InvalidTransition("cannot restore into a manager that already has a round")
            for item in ordered[-self._history.capacity:]:
                self._history.record(item.start_price)
            self._current = ordered[-1]
        last = ordered[-1]
        logger.info("[ROUND] Restored round %s (resolved=%s)", last.round_number, last.resolved)
        if not last.resolved and last.end_ts <= self._clock():
            logger.warning(
                "[ROUND] Round %s expired unresolved before restart; leaving it unresolved",
                last.round_number,
            )

    def start_round(self, current_price: object) -> Round:
        price = validate_price(current_price)

        with self._lock:
            previous = self._current
            if previous is not None and not previous.resolved:
                logger.warning("[ROUND] Superseding unresolved round %s", previous.round_number)

            self._history.record(price)
            prediction = predict(self._history.snapshot(), self._rng)
            start_ts = self._clock()
            new_round = Round(
                round_number=(previous.round_number if previous else 0) + 1,
                start_price=price,
                start_ts=start_ts,
                end_ts=start_ts + self._round_seconds,
                prediction=prediction,
            )
            self._current = new_round

        logger.info(
            "[ROUND] Round %s started price=%s prediction=%s confidence=%s",
            new_round.round_number,
            price,
            prediction.direction,
            prediction.confidence,
        )
        return new_round

    def resolve_round(self, end_price: object, round_number: int | None = None) -> ResolutionResult:
        with self._lock:
            current = self._current
            if current is None:
                raise NoActiveRound("no round has been started")
            if round_number is not None and round_number != current.round_number:
                raise InvalidTransition(
                    f"round {round_number} is not current (current is {current.round_number})"
                )
            if current.resolved:
                raise InvalidTransition(f"round {current.round_number} is already resolved")

            price = validate_price(end_price)
            change = price - current.start_price
            actual_direction = UP if change >= 0 else DOWN
            correct = actual_direction == current.prediction.direction
            resolved_ts = self._clock()

            self._current = replace(
                current,
                resolution=RoundResolution(
                    end_price=price,
                    actual_direction=actual_direction,
                    prediction_correct=correct,
                    resolved_ts=resolved_ts,
                ),
            )

        logger.info(
            "[ROUND] Round %s resolved %s -> %s (%s) prediction %s",
            current.round_number,
            current.start_price,
            price,
            actual_direction,
            "correct" if correct else "wrong",
        )
        return ResolutionResult(
            round_number=current.round_number,
            start_price=current.start_price,
            end_price=price,
            price_change=f"{change:.2f}",
            actual_direction=actual_direction,
            prediction=current.prediction.direction,
            prediction_correct=correct,
            resolved_ts=resolved_ts,
        )

    def current_round(self) -> Round | None:
        with self._lock:
            return self._current

    def round_number(self) -> int:
        with self._lock:
            return self._current.round_number if self._current else 0

    def state(self) -> RoundState:
        with self._lock:
            if self._current is None:
                return "EMPTY"
            return "RESOLVED" if self._current.resolved else "ACTIVE"

    def time_remaining(self) -> int:
        with self._lock:
            end_ts = self._current.end_ts if self._current else None
        return seconds_remaining(end_ts, self._clock())

    def next_scheduled_start(self, interval_minutes: int = 15) -> datetime:
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        return next_scheduled_start(now, interval_minutes)

    def history_snapshot(self) -> list[float]:
        with self._lock:
            return self._history.snapshot()
