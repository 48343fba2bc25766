"""Clock and Cadence for the two-rate agent loop."""
from __future__ import annotations

import random
from typing import Callable

from tick_npc.types import TickContext

# Tolerates float accumulation when a period is an exact multiple of dt.
_TIME_EPSILON = 1e-9


class Clock:
    """Fixed frame timestep: `tps` frames per simulated second."""

    def __init__(self, tps: int) -> None:
        if tps <= 0:
            raise ValueError("tps must be positive")
        self._tps = tps
        self._dt = 1.0 / tps
        self._tick_number = 0

    @property
    def tps(self) -> int:
        return self._tps

    @property
    def dt(self) -> float:
        return self._dt

    @property
    def tick_number(self) -> int:
        return self._tick_number

    @property
    def elapsed(self) -> float:
        return self._tick_number * self._dt

    def advance(self) -> int:
        self._tick_number += 1
        return self._tick_number

    def context(
        self, stop_fn: Callable[[], None], rng: random.Random, dt: float | None = None,
    ) -> TickContext:
        return TickContext(
            tick_number=self._tick_number,
            dt=self._dt if dt is None else dt,
            elapsed=self.elapsed,
            request_stop=stop_fn,
            random=rng,
        )


class Cadence:
    """Accumulates frame time and reports how many coarse periods elapsed."""

    def __init__(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self._accumulated = 0.0

    def advance(self, dt: float) -> int:
        self._accumulated += dt
        fired = 0
        while self._accumulated >= self.interval - _TIME_EPSILON:
            self._accumulated -= self.interval
            fired += 1
        return fired
