"""Planar vector helpers operating on (x, y) tuples."""
from __future__ import annotations

import math
import random as _random
from typing import Iterable

from tick_npc.types import Vec2


def add(a: Vec2, b: Vec2) -> Vec2:
    return (a[0] + b[0], a[1] + b[1])


def sub(a: Vec2, b: Vec2) -> Vec2:
    return (a[0] - b[0], a[1] - b[1])


def scale(v: Vec2, s: float) -> Vec2:
    return (v[0] * s, v[1] * s)


def length(v: Vec2) -> float:
    return math.hypot(v[0], v[1])


def normalize(v: Vec2) -> Vec2:
    mag = length(v)
    if mag == 0.0:
        return (0.0, 0.0)
    return (v[0] / mag, v[1] / mag)


def distance(a: Vec2, b: Vec2) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def step_towards(current: Vec2, target: Vec2, max_step: float) -> Vec2:
    """Move `current` toward `target` by at most `max_step`."""
    gap = distance(current, target)
    if gap <= max_step or gap == 0.0:
        return target
    return add(current, scale(sub(target, current), max_step / gap))


def random_in_radius(center: Vec2, radius: float, rng: _random.Random) -> Vec2:
    """Uniform random point inside a disc."""
    angle = rng.uniform(0.0, math.tau)
    r = radius * math.sqrt(rng.random())
    return (center[0] + r * math.cos(angle), center[1] + r * math.sin(angle))


def away_from(origin: Vec2, points: Iterable[Vec2]) -> Vec2:
    """Normalized sum of unit vectors pointing from each point to origin.

    Returns (0, 0) when the contributions cancel out or there are no points.
    """
    total = (0.0, 0.0)
    for p in points:
        total = add(total, normalize(sub(origin, p)))
    return normalize(total)
