"""JobScheduler - long-running work that critical needs can pre-empt.

States::

    IDLE -> WORKING <-> INTERRUPTED
            WORKING -> (completed) -> ON_BREAK -> WORKING (static) | IDLE (schedule)

Work happens in cycles. A cycle starts by relocating (or looking around, for
guards and scavengers) and ends, after its period of worked time, by applying
the job's needs deltas. Interrupted time is never counted: the work timer,
the cycle timer and experience all freeze until the interrupt clears.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Sequence

from tick_npc import vec
from tick_npc.collaborators import FOOD, RESOURCE, MoveHandle, of_kind
from tick_npc.config import InterruptThresholds, JobConfig
from tick_npc.signals import (
    BREAK_ENDED,
    BREAK_STARTED,
    JOB_COMPLETED,
    JOB_INTERRUPTED,
    JOB_RESUMED,
    JOB_STARTED,
    THREAT_DETECTED,
)
from tick_npc.types import JobKind, JobState, MoveResult, Need, SpeedMode, Vec2

if TYPE_CHECKING:
    from tick_npc.agent import Agent
    from tick_npc.needs import NeedsModel

logger = logging.getLogger(__name__)

Deltas = tuple[tuple[Need, float], ...]

BREAK_FATIGUE_RATE = 5.0
BREAK_MORALE_RATE = 2.0
# Spot inside the work area a stationary worker walks to.
WORK_SPOT_RADIUS = 2.0
_TIME_EPSILON = 1e-9


@dataclass(frozen=True)
class ScheduleEntry:
    job: JobKind
    duration: float
    description: str = ""


@dataclass
class JobAssignment:
    kind: JobKind | None = None
    state: JobState = JobState.IDLE
    work_timer: float = 0.0
    break_timer: float = 0.0
    cycle_timer: float = 0.0
    cycle_open: bool = False
    pending: Deltas = ()
    schedule: list[ScheduleEntry] = field(default_factory=list)
    schedule_index: int = 0
    schedule_timer: float = 0.0

    @property
    def on_break(self) -> bool:
        return self.state is JobState.ON_BREAK


def interrupt_reason(needs: NeedsModel, limits: InterruptThresholds) -> Need | None:
    """The first need that forbids working right now, if any."""
    if needs[Need.HEALTH] < limits.health_below:
        return Need.HEALTH
    if needs[Need.HUNGER] < limits.hunger_below:
        return Need.HUNGER
    if needs[Need.FATIGUE] < limits.fatigue_below:
        return Need.FATIGUE
    if needs[Need.FEAR] > limits.fear_above:
        return Need.FEAR
    return None


# --- Work cycles: relocate/look around, return the deltas owed at cycle end ---


def _stationary(*deltas: tuple[Need, float]) -> Callable[[JobScheduler], Deltas]:
    def start(sched: JobScheduler) -> Deltas:
        sched.relocate(vec.random_in_radius(sched.work_area, WORK_SPOT_RADIUS, sched.agent.rng))
        return deltas
    return start


def _guard(sched: JobScheduler) -> Deltas:
    agent = sched.agent
    threats = sched.look_around(agent.is_threat)
    if threats:
        logger.info("%s detected a threat while guarding", agent.name)
        agent.bus.publish(
            THREAT_DETECTED, agent=agent.name, job=JobKind.GUARD,
            threats=[t.id for t in threats],
        )
        return ((Need.FEAR, 5.0),)
    sched.relocate(sched.patrol_point())
    return ()


def _patrol(sched: JobScheduler) -> Deltas:
    sched.relocate(sched.patrol_point())
    return ((Need.FATIGUE, -1.0),)


def _scavenge(sched: JobScheduler) -> Deltas:
    agent = sched.agent
    targets = sched.look_around(of_kind(RESOURCE, FOOD))
    if targets:
        sched.relocate(agent.rng.choice(targets).position)
        return ((Need.MORALE, 3.0), (Need.FATIGUE, -2.0))
    sched.relocate(vec.random_in_radius(agent.position, sched.work_radius, agent.rng))
    return ((Need.FATIGUE, -2.0),)


# kind -> (cycle period in seconds, cycle start)
JOB_CYCLES: dict[JobKind, tuple[float, Callable[[JobScheduler], Deltas]]] = {
    JobKind.FARM: (2.0, _stationary((Need.FATIGUE, -2.0), (Need.MORALE, 1.0))),
    JobKind.GUARD: (3.0, _guard),
    JobKind.CRAFT: (4.0, _stationary((Need.FATIGUE, -1.0), (Need.MORALE, 2.0))),
    JobKind.PATROL: (5.0, _patrol),
    JobKind.SCAVENGE: (2.0, _scavenge),
    JobKind.COOK: (3.0, _stationary((Need.HUNGER, 5.0), (Need.MORALE, 2.0), (Need.FATIGUE, -1.0))),
    JobKind.BUILD: (5.0, _stationary((Need.FATIGUE, -3.0), (Need.MORALE, 1.0))),
}


class JobScheduler:
    """Runs one agent's job assignment or rotating schedule."""

    def __init__(self, agent: Agent, config: JobConfig | None = None) -> None:
        self.agent = agent
        self.config = config if config is not None else JobConfig()
        self.assignment = JobAssignment()
        self.experience: dict[JobKind, float] = {k: 0.0 for k in JobKind}
        self.completions: dict[JobKind, int] = {k: 0 for k in JobKind}
        self.work_radius = self.config.work_radius
        self._work_area: Vec2 | None = None
        self._handle: MoveHandle | None = None

    # --- Queries ---

    @property
    def state(self) -> JobState:
        return self.assignment.state

    @property
    def current_job(self) -> JobKind | None:
        return self.assignment.kind

    @property
    def has_control(self) -> bool:
        """True while the job, not the needs layer, owns the agent's body."""
        return self.assignment.state is JobState.WORKING

    @property
    def work_area(self) -> Vec2:
        return self._work_area if self._work_area is not None else self.agent.home

    def set_work_area(self, position: Vec2 | None) -> None:
        self._work_area = position

    def set_work_radius(self, radius: float) -> None:
        self.work_radius = radius

    # --- Assignment ---

    def assign(self, job: JobKind | None) -> None:
        """Replace the running job. ``None`` leaves the agent idle."""
        self._stop_moving()
        a = self.assignment
        a.kind = job
        a.work_timer = a.break_timer = a.cycle_timer = 0.0
        a.cycle_open = False
        a.pending = ()
        if job is None:
            a.state = JobState.IDLE
            return
        a.state = JobState.WORKING
        logger.info("%s started job %s", self.agent.name, job.value)
        self.agent.bus.publish(JOB_STARTED, agent=self.agent.name, job=job)

    def set_schedule(self, entries: Sequence[ScheduleEntry]) -> None:
        """Cycle through `entries` forever, starting with the first."""
        a = self.assignment
        a.schedule = list(entries)
        a.schedule_index = 0
        a.schedule_timer = 0.0
        self.assign(a.schedule[0].job if a.schedule else None)

    # --- Ticking ---

    def tick(self, dt: float) -> None:
        a = self.assignment
        if a.state in (JobState.WORKING, JobState.INTERRUPTED):
            self._work(dt)
        elif a.state is JobState.ON_BREAK:
            self._take_break(dt)
        if a.schedule:
            self._advance_schedule(dt)

    def frame(self, dt: float) -> None:
        """Poll the job's own movement. Only moves while WORKING."""
        if self._handle is None or not self.has_control:
            return
        result = self._handle.poll(dt)
        self.agent.position = self._handle.position
        if result is MoveResult.BLOCKED:
            self.agent.degrade("unreachable", job=self.assignment.kind)
        if result is not MoveResult.PENDING:
            self._handle = None

    def _work(self, dt: float) -> None:
        a = self.assignment
        assert a.kind is not None
        needs = self.agent.needs
        if needs is None:
            self.agent.degrade("no_needs", job=a.kind)
            return
        reason = interrupt_reason(needs, self.config.interrupts)
        if reason is None:
            # A pinned critical override outranks the job even below its thresholds.
            reason = self.agent.decision.state.override_need
        if reason is not None:
            if a.state is JobState.WORKING:
                a.state = JobState.INTERRUPTED
                self._stop_moving()
                logger.info("%s interrupted %s (%s)", self.agent.name, a.kind.value, reason.value)
                self.agent.bus.publish(
                    JOB_INTERRUPTED, agent=self.agent.name, job=a.kind, need=reason,
                )
            return
        if a.state is JobState.INTERRUPTED:
            a.state = JobState.WORKING
            self.agent.bus.publish(JOB_RESUMED, agent=self.agent.name, job=a.kind)

        period, start_cycle = JOB_CYCLES[a.kind]
        if not a.cycle_open:
            a.pending = start_cycle(self)
            a.cycle_open = True
        a.work_timer += dt
        a.cycle_timer += dt
        self.experience[a.kind] += dt * self.config.experience_rate
        if a.cycle_timer >= period - _TIME_EPSILON:
            for need, delta in a.pending:
                needs.modify(need, delta)
            a.cycle_timer = 0.0
            a.cycle_open = False
            a.pending = ()
        if a.work_timer >= self.config.work_duration - _TIME_EPSILON:
            self._complete(a.kind)

    def _complete(self, job: JobKind) -> None:
        a = self.assignment
        self._stop_moving()
        self.completions[job] += 1
        logger.info("%s completed job %s", self.agent.name, job.value)
        self.agent.bus.publish(
            JOB_COMPLETED, agent=self.agent.name, job=job,
            completions=self.completions[job], experience=self.experience[job],
        )
        if self.config.break_duration > 0.0:
            a.state = JobState.ON_BREAK
            a.break_timer = 0.0
            self.agent.bus.publish(BREAK_STARTED, agent=self.agent.name, job=job)
        else:
            self._after_break()

    def _take_break(self, dt: float) -> None:
        a = self.assignment
        needs = self.agent.needs
        if needs is not None:
            needs.modify(Need.FATIGUE, BREAK_FATIGUE_RATE * dt)
            needs.modify(Need.MORALE, BREAK_MORALE_RATE * dt)
        a.break_timer += dt
        if a.break_timer >= self.config.break_duration - _TIME_EPSILON:
            self.agent.bus.publish(BREAK_ENDED, agent=self.agent.name, job=a.kind)
            self._after_break()

    def _after_break(self) -> None:
        a = self.assignment
        if a.schedule:
            a.state = JobState.IDLE
        else:
            self.assign(a.kind)

    def _advance_schedule(self, dt: float) -> None:
        a = self.assignment
        a.schedule_timer += dt
        entry = a.schedule[a.schedule_index]
        if a.schedule_timer >= entry.duration - _TIME_EPSILON:
            a.schedule_index = (a.schedule_index + 1) % len(a.schedule)
            a.schedule_timer = 0.0
            self.assign(a.schedule[a.schedule_index].job)

    # --- Helpers used by work cycles ---

    def relocate(self, target: Vec2) -> None:
        """Start walking to `target`; without a mover, work where we stand."""
        self._stop_moving()
        mover = self.agent.mover
        if mover is None:
            self.agent.degrade("no_mover", job=self.assignment.kind)
            return
        self._handle = mover.move_to(self.agent.position, target, SpeedMode.WALK)

    def look_around(self, filter: Callable) -> list:
        world = self.agent.world
        if world is None:
            self.agent.degrade("no_world_query", job=self.assignment.kind)
            return []
        return world.entities_near(self.agent.position, self.work_radius, filter)

    def patrol_point(self) -> Vec2:
        return vec.random_in_radius(self.work_area, self.work_radius, self.agent.rng)

    def _stop_moving(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
