from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

Direction = Literal["UP", "DOWN"]

UP: Direction = "UP"
DOWN: Direction = "DOWN"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso_utc(ts_value: float | None) -> str | None:
    if not isinstance(ts_value, (int, float)):
        return None
    return datetime.fromtimestamp(float(ts_value), tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class PriceSample:
    ts: float
    symbol: str
    price: float


@dataclass(frozen=True)
class Prediction:
    direction: Direction
    confidence: int
    sma5: float | None = None
    sma10: float | None = None
    momentum: float | None = None

    def analysis(self) -> dict | None:
        if self.sma5 is None or self.sma10 is None or self.momentum is None:
            return None
        return {
            "sma5": f"{self.sma5:.2f}",
            "sma10": f"{self.sma10:.2f}",
            "momentum": f"{self.momentum:.2f}",
        }


@dataclass(frozen=True)
class RoundResolution:
    end_price: float
    actual_direction: Direction
    prediction_correct: bool
    resolved_ts: float


@dataclass(frozen=True)
class Round:
    round_number: int
    start_price: float
    start_ts: float
    end_ts: float
    prediction: Prediction
    resolution: RoundResolution | None = None

    @property
    def resolved(self) -> bool:
        return self.resolution is not None

    def to_dict(self) -> dict:
        resolution = self.resolution
        return {
            "round_number": self.round_number,
            "start_price": self.start_price,
            "start_ts": self.start_ts,
            "end_ts": self.end_ts,
            "start_time": to_iso_utc(self.start_ts),
            "end_time": to_iso_utc(self.end_ts),
            "prediction": self.prediction.direction,
            "confidence": self.prediction.confidence,
            "analysis": self.prediction.analysis(),
            "resolved": self.resolved,
            "end_price": resolution.end_price if resolution else None,
            "actual_direction": resolution.actual_direction if resolution else None,
            "prediction_correct": resolution.prediction_correct if resolution else None,
            "resolved_ts": resolution.resolved_ts if resolution else None,
        }


@dataclass(frozen=True)
class ResolutionResult:
    round_number: int
    start_price: float
    end_price: float
    price_change: str
    actual_direction: Direction
    prediction: Direction
    prediction_correct: bool
    resolved_ts: float

    def to_dict(self) -> dict:
        return {
            "round_number": self.round_number,
            "start_price": self.start_price,
            "end_price": self.end_price,
            "price_change": self.price_change,
            "actual_direction": self.actual_direction,
            "prediction": self.prediction,
            "prediction_correct": self.prediction_correct,
            "resolved_ts": self.resolved_ts,
        }
