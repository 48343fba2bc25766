"""Shared enums, context and errors for tick-npc."""
from __future__ import annotations

import random as _random
from dataclasses import dataclass
from enum import Enum
from typing import Callable

Vec2 = tuple[float, float]


class Need(Enum):
    """The six bounded agent attributes."""

    HUNGER = "hunger"
    FATIGUE = "fatigue"
    MORALE = "morale"
    FEAR = "fear"
    HEALTH = "health"
    INFECTION = "infection"

    @property
    def upper_bound_critical(self) -> bool:
        """True for needs that turn critical when they rise (fear, infection)."""
        return self in (Need.FEAR, Need.INFECTION)


class ActionKind(Enum):
    """Closed set of utility behaviors, in catalog order."""

    SEEK_FOOD = "seek_food"
    REST = "rest"
    FLEE = "flee"
    WANDER = "wander"
    SEEK_SHELTER = "seek_shelter"
    SOCIALIZE = "socialize"


class JobKind(Enum):
    FARM = "farm"
    GUARD = "guard"
    CRAFT = "craft"
    PATROL = "patrol"
    SCAVENGE = "scavenge"
    COOK = "cook"
    BUILD = "build"


class JobState(Enum):
    IDLE = "idle"
    WORKING = "working"
    INTERRUPTED = "interrupted"
    ON_BREAK = "on_break"


class Status(Enum):
    """Result of stepping a task."""

    SUCCESS = "success"
    FAILURE = "failure"
    RUNNING = "running"


class MoveResult(Enum):
    PENDING = "pending"
    ARRIVED = "arrived"
    BLOCKED = "blocked"


class SpeedMode(Enum):
    WALK = "walk"
    RUN = "run"


@dataclass(frozen=True, slots=True)
class TickContext:
    tick_number: int
    dt: float
    elapsed: float
    request_stop: Callable[[], None]
    random: _random.Random


def _no_stop() -> None:
    pass


def make_context(
    dt: float, elapsed: float = 0.0, tick_number: int = 0,
    rng: _random.Random | None = None,
) -> TickContext:
    """Build a standalone TickContext (for driving agents without an Engine)."""
    return TickContext(
        tick_number=tick_number,
        dt=dt,
        elapsed=elapsed,
        request_stop=_no_stop,
        random=rng if rng is not None else _random.Random(0),
    )


class ConfigError(ValueError):
    """Raised when an agent configuration value is out of range."""


class UnknownAgentError(KeyError):
    """Raised when looking up an agent name the engine does not hold."""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        super().__init__(message)
