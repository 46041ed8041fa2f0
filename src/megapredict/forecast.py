from __future__ import annotations

import math
import random
from statistics import fmean
from typing import Sequence

from .models import DOWN, UP, Prediction

MIN_HISTORY = 3
COLD_START_MIN_CONFIDENCE = 50
COLD_START_CONFIDENCE_SPAN = 20
MAX_CONFIDENCE = 85


def _cold_start(rng: random.Random) -> Prediction:
    direction = UP if rng.random() > 0.5 else DOWN
    confidence = COLD_START_MIN_CONFIDENCE + math.floor(rng.random() * COLD_START_CONFIDENCE_SPAN)
    return Prediction(direction=direction, confidence=confidence)


def predict(history: Sequence[float], rng: random.Random | None = None) -> Prediction:
    """Derive an UP/DOWN call from recent prices.

    With fewer than three prices there is no signal yet, so the direction is a
    coin flip and confidence is drawn from [50, 69]. Otherwise three votes are
    counted (short SMA above long SMA, positive momentum, price above short
    SMA); two or more votes mean UP, and confidence grows with unanimity.
    """
    prices = [float(p) for p in history]
    if len(prices) < MIN_HISTORY:
        return _cold_start(rng or random)

    sma5 = fmean(prices[-5:])
    sma10 = fmean(prices[-10:])
    current_price = prices[-1]
    momentum = prices[-1] - prices[-3]

    trend_score = 0
    if sma5 > sma10:
        trend_score += 1
    if momentum > 0:
        trend_score += 1
    if current_price > sma5:
        trend_score += 1

    direction = UP if trend_score >= 2 else DOWN
    confidence = math.floor(min(50 + abs(trend_score - 1.5) * 15, MAX_CONFIDENCE))

    return Prediction(
        direction=direction,
        confidence=confidence,
        sma5=sma5,
        sma10=sma10,
        momentum=momentum,
    )
