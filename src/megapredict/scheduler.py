from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


def next_scheduled_start(now: datetime, interval_minutes: int = 15) -> datetime:
    """Return the next mark after ``now`` whose minute is a multiple of the interval.

    The mark is always in a later minute than ``now``, so calling this exactly
    on a mark returns the following one.
    """
    if interval_minutes <= 0 or 60 % interval_minutes != 0:
        raise ValueError("interval_minutes must divide 60")

    next_mark = math.ceil((now.minute + 1) / interval_minutes) * interval_minutes
    hour_start = now.replace(minute=0, second=0, microsecond=0)
    return hour_start + timedelta(minutes=next_mark)


def seconds_remaining(end_ts: float | None, now_ts: float) -> int:
    if end_ts is None:
        return 0
    return max(0, math.floor(end_ts - now_ts))


@dataclass
class RoundScheduler:
    interval_minutes: int = 15
    resolve_lead_seconds: int = 30
    max_overdue_seconds: int = 30

    def next_start(self, now_ts: float | None = None) -> datetime:
        now_ts = now_ts if now_ts is not None else time.time()
        now = datetime.fromtimestamp(now_ts, tz=timezone.utc)
        return next_scheduled_start(now, self.interval_minutes)

    def should_resolve(self, seconds_left: int, resolved: bool, overdue_seconds: float = 0.0) -> bool:
        # Past the grace period the end price is no longer the window's close.
        if resolved or overdue_seconds > self.max_overdue_seconds:
            return False
        return seconds_left < self.resolve_lead_seconds

    async def wait_until(self, target: datetime, poll_seconds: float = 2.0) -> None:
        target_ts = target.timestamp()
        while True:
            now_ts = time.time()
            if now_ts >= target_ts:
                return
            await asyncio.sleep(max(0.2, min(target_ts - now_ts, poll_seconds)))
