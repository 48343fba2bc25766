"""NeedsModel - six bounded, decaying agent attributes."""
from __future__ import annotations

from typing import Iterator

from tick_npc.config import NeedsConfig
from tick_npc.signals import NEED_CHANGED, NEED_CRITICAL, SignalBus
from tick_npc.types import Need


MIN_VALUE = 0.0
MAX_VALUE = 100.0
EPSILON = 1e-9

# most_urgent() only reports needs past these marks.
_URGENT_LOW = 30.0
_URGENT_HIGH = 70.0


def clamp(value: float) -> float:
    return max(MIN_VALUE, min(MAX_VALUE, value))


class NeedsModel:
    """Per-agent need values with linear decay and critical detection.

    Every mutation clamps to [0, 100]. Each operation that moves a value
    publishes ``need_changed`` for it, then re-checks all six needs and
    publishes ``need_critical`` for every need currently past its threshold.
    Critical signals are level-triggered: they repeat on every tick or modify
    for as long as the condition holds.
    """

    def __init__(
        self,
        config: NeedsConfig | None = None,
        bus: SignalBus | None = None,
        agent: str = "",
    ) -> None:
        self.config = config if config is not None else NeedsConfig()
        self.bus = bus if bus is not None else SignalBus()
        self.agent = agent
        self._values: dict[Need, float] = {
            n: clamp(self.config.for_need(n).initial) for n in Need
        }

    # --- Queries ---

    def get(self, need: Need) -> float:
        return self._values[need]

    def __getitem__(self, need: Need) -> float:
        return self._values[need]

    def __iter__(self) -> Iterator[tuple[Need, float]]:
        return iter(self._values.items())

    def as_dict(self) -> dict[str, float]:
        return {n.value: v for n, v in self._values.items()}

    def threshold(self, need: Need) -> float:
        return self.config.for_need(need).critical_threshold

    def is_critical(self, need: Need) -> bool:
        value = self._values[need]
        if need.upper_bound_critical:
            return value >= self.threshold(need)
        return value <= self.threshold(need)

    def critical_needs(self) -> list[Need]:
        return [n for n in Need if self.is_critical(n)]

    def any_critical(self, *needs: Need) -> bool:
        return any(self.is_critical(n) for n in (needs or tuple(Need)))

    def most_urgent(self) -> Need | None:
        """The need most in want of attention, or None if nothing is pressing.

        Depleting needs below 30 win over rising needs above 70.
        """
        low = [Need.HUNGER, Need.FATIGUE, Need.MORALE, Need.HEALTH]
        lowest = min(low, key=lambda n: self._values[n])
        if self._values[lowest] < _URGENT_LOW:
            return lowest
        highest = max((Need.FEAR, Need.INFECTION), key=lambda n: self._values[n])
        if self._values[highest] > _URGENT_HIGH:
            return highest
        return None

    # --- Mutation ---

    def tick(self, dt: float) -> None:
        """Apply ``decay_rate * dt`` to every need, then run critical checks."""
        for need in Need:
            rate = self.config.for_need(need).decay_rate
            self._apply(need, self._values[need] - rate * dt)
        self._check_critical()

    def modify(self, need: Need, delta: float) -> None:
        """Apply an immediate clamped delta, then run critical checks."""
        self._apply(need, self._values[need] + delta)
        self._check_critical()

    def set(self, need: Need, value: float) -> None:
        """Overwrite a need (clamped). Same notifications as modify()."""
        self._apply(need, value)
        self._check_critical()

    def _apply(self, need: Need, raw: float) -> None:
        new = clamp(raw)
        if abs(new - self._values[need]) <= EPSILON:
            return
        self._values[need] = new
        self.bus.publish(
            NEED_CHANGED, agent=self.agent, need=need, value=new,
            critical=self.is_critical(need),
        )

    def _check_critical(self) -> None:
        for need in Need:
            if self.is_critical(need):
                self.bus.publish(
                    NEED_CRITICAL, agent=self.agent, need=need,
                    value=self._values[need],
                )

    def __repr__(self) -> str:
        vals = ", ".join(f"{n.value}={v:.1f}" for n, v in self._values.items())
        return f"NeedsModel({self.agent!r}: {vals})"
