from __future__ import annotations

import asyncio
import json
import logging
import threading
import time
from typing import AsyncIterator, Callable

import httpx
import websockets

from .config import DEFAULT_PRICE_API_URL
from .errors import PriceUnavailable
from .models import PriceSample
from .rounds import validate_price

logger = logging.getLogger(__name__)


class PriceCache:
    """Latest streamed price, served only while it is fresh."""

    def __init__(self, max_age_seconds: float, clock: Callable[[], float] = time.time) -> None:
        self._lock = threading.Lock()
        self._max_age_seconds = max_age_seconds
        self._clock = clock
        self._latest: PriceSample | None = None

    def update(self, sample: PriceSample) -> None:
        with self._lock:
            if self._latest is not None and sample.ts < self._latest.ts:
                return
            self._latest = sample

    def fresh(self) -> PriceSample | None:
        with self._lock:
            latest = self._latest
        if latest is None:
            return None
        if self._clock() - latest.ts > self._max_age_seconds:
            return None
        return latest


class BinancePriceSource:
    def __init__(
        self,
        symbol: str,
        api_url: str = DEFAULT_PRICE_API_URL,
        timeout_seconds: float = 5.0,
        cache: PriceCache | None = None,
        clock: Callable[[], float] = time.time,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.symbol = symbol
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self.cache = cache
        self._clock = clock
        self._transport = transport

    async def get_current_price(self) -> float:
        sample = await self.get_sample()
        return sample.price

    async def get_sample(self) -> PriceSample:
        if self.cache is not None:
            cached = self.cache.fresh()
            if cached is not None:
                return cached

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.get(self.api_url, params={"symbol": self.symbol})
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise PriceUnavailable(f"price request failed: {exc}") from exc

        return PriceSample(ts=self._clock(), symbol=self.symbol, price=self._parse_ticker(payload))

    def _parse_ticker(self, payload: object) -> float:
        if not isinstance(payload, dict):
            raise PriceUnavailable("ticker payload is not an object")
        raw = payload.get("price")
        try:
            value = float(raw)
        except (TypeError, ValueError) as exc:
            raise PriceUnavailable(f"ticker price is not numeric: {raw!r}") from exc
        return validate_price(value)


class TradeStream:
    def __init__(self, symbol: str, ping_interval_seconds: int = 15) -> None:
        self.symbol = symbol.upper()
        self.ping_interval_seconds = ping_interval_seconds

    def ws_url(self) -> str:
        return f"wss://stream.binance.com:9443/ws/{self.symbol.lower()}@trade"

    async def stream_samples(self) -> AsyncIterator[PriceSample]:
        while True:
            try:
                logger.info("[PRICE] Connecting trade stream: %s", self.symbol)
                async with websockets.connect(
                    self.ws_url(),
                    ping_interval=self.ping_interval_seconds,
                ) as ws:
                    logger.info("[PRICE] Trade stream connected")
                    async for raw in ws:
                        sample = self._parse(raw)
                        if sample is None or sample.symbol != self.symbol:
                            continue
                        yield sample
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                logger.warning("[PRICE] Trade stream error: %s; reconnecting in 1s", exc)
                await asyncio.sleep(1.0)

    def _parse(self, raw: str | bytes) -> PriceSample | None:
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None

        symbol = str(data.get("s", "")).strip().upper()
        price = data.get("p")
        ts_ms = data.get("T") or data.get("E")
        if not symbol or price is None or ts_ms is None:
            return None

        try:
            return PriceSample(
                ts=float(ts_ms) / 1000.0,
                symbol=symbol,
                price=validate_price(float(price)),
            )
        except (TypeError, ValueError, PriceUnavailable):
            return None


async def run_price_stream(stream: TradeStream, cache: PriceCache) -> None:
    async for sample in stream.stream_samples():
        cache.update(sample)
