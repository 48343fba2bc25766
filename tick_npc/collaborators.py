"""Boundary protocols for movement, world queries and faction lookups.

The core never computes paths or scans a scene itself. It asks a Mover for a
MoveHandle and polls it every frame, and it asks a WorldQuery for entities
around a point. Both are read-only from the core's point of view.

StraightLineMover and SimpleWorld are small in-memory implementations used by
the tests and the examples; real games plug in their own navigation and
spatial index.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Protocol, runtime_checkable

from tick_npc import vec
from tick_npc.types import MoveResult, SpeedMode, Vec2

FOOD = "food"
THREAT = "threat"
AGENT = "agent"
SHELTER = "shelter"
RESOURCE = "resource"


@dataclass
class Entity:
    """Something a detection query can return."""

    id: str
    kind: str
    position: Vec2
    faction: str = ""


EntityFilter = Callable[[Entity], bool]


@runtime_checkable
class MoveHandle(Protocol):
    """An in-flight movement request."""

    @property
    def position(self) -> Vec2:
        """Where the mover currently is."""
        ...

    def poll(self, dt: float) -> MoveResult:
        """Advance by one frame and report progress."""
        ...

    def cancel(self) -> None:
        ...


@runtime_checkable
class Mover(Protocol):
    def move_to(self, start: Vec2, target: Vec2, speed: SpeedMode) -> MoveHandle:
        ...


@runtime_checkable
class WorldQuery(Protocol):
    def entities_near(
        self, position: Vec2, radius: float, filter: EntityFilter | None = None,
    ) -> list[Entity]:
        ...


@runtime_checkable
class FactionLookup(Protocol):
    def is_hostile(self, faction: str, other: str) -> bool:
        ...


def of_kind(*kinds: str) -> EntityFilter:
    wanted = frozenset(kinds)
    return lambda e: e.kind in wanted


def nearest(position: Vec2, entities: Iterable[Entity]) -> Entity | None:
    best: Entity | None = None
    best_dist = float("inf")
    for e in entities:
        d = vec.distance(position, e.position)
        if d < best_dist:
            best, best_dist = e, d
    return best


# --- Reference implementations ---


class _LinearMove:
    def __init__(
        self, start: Vec2, target: Vec2, speed: float, stopping_distance: float,
        blocked: bool,
    ) -> None:
        self._position = start
        self._target = target
        self._speed = speed
        self._stopping = stopping_distance
        self._result = MoveResult.BLOCKED if blocked else MoveResult.PENDING

    @property
    def position(self) -> Vec2:
        return self._position

    def poll(self, dt: float) -> MoveResult:
        if self._result is not MoveResult.PENDING:
            return self._result
        self._position = vec.step_towards(self._position, self._target, self._speed * dt)
        if vec.distance(self._position, self._target) <= self._stopping:
            self._result = MoveResult.ARRIVED
        return self._result

    def cancel(self) -> None:
        if self._result is MoveResult.PENDING:
            self._result = MoveResult.BLOCKED


class StraightLineMover:
    """Moves in a straight line at a fixed speed; no obstacles between points.

    Args:
        walk_speed: Units per second for SpeedMode.WALK.
        run_speed: Units per second for SpeedMode.RUN.
        stopping_distance: Arrival tolerance.
        passable: Optional predicate; a target it rejects is reported BLOCKED
            on the first poll.
    """

    def __init__(
        self,
        walk_speed: float = 1.5,
        run_speed: float = 4.0,
        stopping_distance: float = 0.5,
        passable: Callable[[Vec2], bool] | None = None,
    ) -> None:
        self.walk_speed = walk_speed
        self.run_speed = run_speed
        self.stopping_distance = stopping_distance
        self._passable = passable

    def move_to(self, start: Vec2, target: Vec2, speed: SpeedMode) -> _LinearMove:
        rate = self.run_speed if speed is SpeedMode.RUN else self.walk_speed
        blocked = self._passable is not None and not self._passable(target)
        return _LinearMove(start, target, rate, self.stopping_distance, blocked)


class SimpleWorld:
    """Flat list of static entities plus live agent positions."""

    def __init__(self, entities: Iterable[Entity] = ()) -> None:
        self._entities: dict[str, Entity] = {e.id: e for e in entities}
        self._agents: dict[str, Callable[[], Entity]] = {}

    def add(self, entity: Entity) -> None:
        self._entities[entity.id] = entity

    def remove(self, entity_id: str) -> None:
        self._entities.pop(entity_id, None)

    def track(self, name: str, snapshot: Callable[[], Entity]) -> None:
        """Expose a live entity (usually an agent) through a snapshot callable."""
        self._agents[name] = snapshot

    def untrack(self, name: str) -> None:
        self._agents.pop(name, None)

    def entities_near(
        self, position: Vec2, radius: float, filter: EntityFilter | None = None,
    ) -> list[Entity]:
        found: list[Entity] = []
        candidates = list(self._entities.values()) + [p() for p in self._agents.values()]
        for e in candidates:
            if vec.distance(position, e.position) > radius:
                continue
            if filter is not None and not filter(e):
                continue
            found.append(e)
        return found


class FactionTable:
    """Static symmetric hostility table."""

    def __init__(self, hostile_pairs: Iterable[tuple[str, str]] = ()) -> None:
        self._hostile: set[frozenset[str]] = {frozenset(p) for p in hostile_pairs}

    def is_hostile(self, faction: str, other: str) -> bool:
        if not faction or not other or faction == other:
            return False
        return frozenset((faction, other)) in self._hostile
