# civic_scout/crawler/politeness.py
"""
Politeness delay policy and per-domain request gate.
"""
from __future__ import annotations

import asyncio
import random
import time
from typing import Callable, Dict, Optional

DelayPolicy = Callable[[], float]


class RandomDelay:
    """Uniform delay in ``[base, maximum]`` seconds."""

    def __init__(self, base: float, maximum: float, rng: Optional[random.Random] = None) -> None:
        if maximum < base:
            raise ValueError("maximum must be >= base")
        self.base = base
        self.maximum = maximum
        self._rng = rng or random.Random()

    def __call__(self) -> float:
        if self.maximum == self.base:
            return self.base
        return self._rng.uniform(self.base, self.maximum)


class DomainThrottle:
    """
    Spaces requests to the same host by a delay drawn from *policy*.

    The first request to a host goes out at once; different hosts never
    wait on each other.
    """

    def __init__(self, policy: DelayPolicy, clock: Callable[[], float] = time.monotonic) -> None:
        self._policy = policy
        self._clock = clock
        self._locks: Dict[str, asyncio.Lock] = {}
        self._last: Dict[str, float] = {}

    async def wait(self, host: str) -> float:
        """Block until *host* may be hit again; returns the seconds slept."""
        lock = self._locks.setdefault(host, asyncio.Lock())
        async with lock:
            slept = 0.0
            last = self._last.get(host)
            if last is not None:
                wait = self._policy() - (self._clock() - last)
                if wait > 0:
                    await asyncio.sleep(wait)
                    slept = wait
            self._last[host] = self._clock()
            return slept


__all__ = ["DelayPolicy", "DomainThrottle", "RandomDelay"]
