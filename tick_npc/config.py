"""Per-agent-type configuration dataclasses.

All configuration is immutable once built. An agent reads it at construction
and never again; tuning a running agent means building a new one.
"""
from __future__ import annotations

import dataclasses
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from tick_npc.types import ActionKind, ConfigError, Need


def _check_number(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")


def _check_percent(name: str, value: float) -> None:
    _check_number(name, value)
    if not 0.0 <= value <= 100.0:
        raise ConfigError(f"{name} must be within [0, 100], got {value!r}")


def _check_positive(name: str, value: float) -> None:
    _check_number(name, value)
    if value <= 0.0:
        raise ConfigError(f"{name} must be positive, got {value!r}")


def _check_non_negative(name: str, value: float) -> None:
    _check_number(name, value)
    if value < 0.0:
        raise ConfigError(f"{name} must not be negative, got {value!r}")


@dataclass(frozen=True)
class NeedConfig:
    """Starting value, decay and critical threshold of one need.

    ``decay_rate`` is the amount lost per second. A negative rate makes the
    value climb over time.
    """

    initial: float
    decay_rate: float
    critical_threshold: float

    def __post_init__(self) -> None:
        _check_percent("initial", self.initial)
        _check_number("decay_rate", self.decay_rate)
        _check_percent("critical_threshold", self.critical_threshold)


@dataclass(frozen=True)
class NeedsConfig:
    hunger: NeedConfig = NeedConfig(50.0, 0.5, 20.0)
    fatigue: NeedConfig = NeedConfig(50.0, 0.3, 20.0)
    morale: NeedConfig = NeedConfig(50.0, 0.1, 20.0)
    fear: NeedConfig = NeedConfig(0.0, -0.2, 80.0)
    health: NeedConfig = NeedConfig(100.0, 0.0, 20.0)
    infection: NeedConfig = NeedConfig(0.0, -0.1, 80.0)

    def for_need(self, need: Need) -> NeedConfig:
        return getattr(self, need.value)


Overrides = tuple[tuple[Need, ActionKind], ...]


def _override_pairs(raw: Any) -> Overrides:
    """Normalize a mapping or pair sequence; names are accepted for enums."""
    items = raw.items() if isinstance(raw, Mapping) else raw
    try:
        return tuple((Need(need), ActionKind(kind)) for need, kind in items)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"critical_overrides: {exc}") from None


@dataclass(frozen=True)
class DecisionConfig:
    """Utility selection cadence and floor.

    Attributes:
        interval: Seconds between re-scoring passes.
        min_utility_threshold: Scores below this never win.
        log_decisions: Log the full score table at DEBUG on every pass.
        critical_overrides: (need, action) pairs, checked in order. A need
            that is critical forces its action regardless of score until it
            clears. A mapping is accepted and stored as pairs.
    """

    interval: float = 1.0
    min_utility_threshold: float = 0.1
    log_decisions: bool = False
    critical_overrides: Overrides = (
        (Need.HEALTH, ActionKind.SEEK_SHELTER),
        (Need.FEAR, ActionKind.FLEE),
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "critical_overrides", _override_pairs(self.critical_overrides))
        _check_positive("decision interval", self.interval)
        if not isinstance(self.log_decisions, bool):
            raise ConfigError(f"log_decisions must be true or false, got {self.log_decisions!r}")
        _check_number("min_utility_threshold", self.min_utility_threshold)
        if not 0.0 <= self.min_utility_threshold <= 1.0:
            raise ConfigError(
                f"min_utility_threshold must be within [0, 1], got {self.min_utility_threshold!r}"
            )


@dataclass(frozen=True)
class BehaviorConfig:
    wander_radius: float = 10.0
    detection_radius: float = 15.0
    rest_radius: float = 3.0
    rest_duration: float = 5.0
    rest_target: float = 80.0
    reach_distance: float = 2.0
    forage_rate: float = 10.0
    rest_rate: float = 10.0

    def __post_init__(self) -> None:
        for f in dataclasses.fields(self):
            _check_non_negative(f.name, getattr(self, f.name))
        _check_percent("rest_target", self.rest_target)


@dataclass(frozen=True)
class InterruptThresholds:
    """Job-level hard interrupts. Strict comparisons."""

    health_below: float = 30.0
    hunger_below: float = 20.0
    fatigue_below: float = 15.0
    fear_above: float = 80.0

    def __post_init__(self) -> None:
        for f in dataclasses.fields(self):
            _check_percent(f.name, getattr(self, f.name))


@dataclass(frozen=True)
class JobConfig:
    work_duration: float = 300.0
    break_duration: float = 60.0
    work_radius: float = 5.0
    experience_rate: float = 0.1
    interrupts: InterruptThresholds = InterruptThresholds()

    def __post_init__(self) -> None:
        _check_positive("work_duration", self.work_duration)
        _check_non_negative("break_duration", self.break_duration)
        _check_non_negative("work_radius", self.work_radius)
        _check_non_negative("experience_rate", self.experience_rate)


@dataclass(frozen=True)
class AgentConfig:
    needs: NeedsConfig = NeedsConfig()
    decision: DecisionConfig = DecisionConfig()
    behavior: BehaviorConfig = BehaviorConfig()
    job: JobConfig = JobConfig()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AgentConfig:
        """Build a config from nested plain data (e.g. parsed TOML).

        Missing sections and keys keep their defaults. Unknown keys, sections
        that are not tables and values of the wrong type raise ConfigError.
        """
        _reject_unknown("agent", data, ("needs", "decision", "behavior", "job"))
        needs_data = data.get("needs", {})
        _reject_unknown("needs", needs_data, [n.value for n in Need])
        defaults = NeedsConfig()
        needs = NeedsConfig(**{
            n.value: _build(
                NeedConfig, needs_data.get(n.value, {}), f"needs.{n.value}",
                base=defaults.for_need(n),
            )
            for n in Need
        })
        decision = _build(DecisionConfig, data.get("decision", {}), "decision")
        behavior = _build(BehaviorConfig, data.get("behavior", {}), "behavior")

        job_data = data.get("job", {})
        _reject_unknown("job", job_data, [f.name for f in dataclasses.fields(JobConfig)])
        job_data = dict(job_data)
        interrupts = _build(InterruptThresholds, job_data.pop("interrupts", {}), "job.interrupts")
        job = _build(JobConfig, {**job_data, "interrupts": interrupts}, "job")
        return cls(needs=needs, decision=decision, behavior=behavior, job=job)


def load_agent_config(path: str | Path) -> AgentConfig:
    """Read an AgentConfig from a TOML file."""
    with open(path, "rb") as fh:
        data = tomllib.load(fh)
    return AgentConfig.from_dict(data)


def _reject_unknown(section: str, data: Any, allowed: Any) -> None:
    if not isinstance(data, Mapping):
        raise ConfigError(f"{section} must be a table, got {data!r}")
    unknown = set(data) - set(allowed)
    if unknown:
        raise ConfigError(f"Unknown {section} keys: {sorted(unknown)}")


def _build(cls: type, data: Any, section: str, base: Any = None) -> Any:
    names = [f.name for f in dataclasses.fields(cls)]
    _reject_unknown(section, data, names)
    if base is not None:
        return dataclasses.replace(base, **data)
    return cls(**data)
